"""Logging configuration for WordArena."""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("wordarena")

# python-telegram-bot polls through httpx; keep both quiet unless WORDARENA_VERBOSE_HTTP=1.
if os.getenv("WORDARENA_VERBOSE_HTTP", "").strip().lower() not in {"1", "true", "yes"}:
    for _name in ("httpx", "httpcore", "telegram", "telegram.ext"):
        logging.getLogger(_name).setLevel(logging.WARNING)


_CHAT_PREFIX_RE = re.compile(r"^\[(?P<chat>[^\]]+)\]\s*(?P<body>.*)$", re.DOTALL)
_ROUND_RE = re.compile(r"\bround (?P<round>\d+)", re.IGNORECASE)

# First match wins; checked against the lower-cased message body.
_OPERATIONS = (
    ("user_message", lambda s: s.startswith("user:")),
    ("bot_message", lambda s: s.startswith("bot:")),
    ("answer", lambda s: s.startswith("answer")),
    ("round", lambda s: s.startswith("round")),
    ("game", lambda s: s.startswith("game ") or "game(s)" in s),
    ("connection", lambda s: "connection" in s or "reconnect" in s or "polling" in s),
)


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "")
    if not raw:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _infer_operation(body: str) -> str:
    lower = (body or "").lower()
    for name, matches in _OPERATIONS:
        if matches(lower):
            return name
    return "general"


def _chat_kind(chat_id: str | None) -> str | None:
    """Telegram group and supergroup ids are negative; users are positive."""
    if not chat_id:
        return None
    if chat_id.startswith("-") and chat_id[1:].isdigit():
        return "group"
    if chat_id.isdigit():
        return "private"
    return "other"


class _JsonLogFormatter(logging.Formatter):
    """One JSON object per line, with chat, round and operation pulled out of the message."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        chat_id: str | None = None
        body = message
        matched = _CHAT_PREFIX_RE.match(message or "")
        if matched:
            chat_id, body = matched.group("chat"), matched.group("body")

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "chat": chat_id,
            "chat_kind": _chat_kind(chat_id),
            "operation": _infer_operation(body),
            "message": body,
        }
        round_match = _ROUND_RE.search(body)
        if round_match:
            payload["round"] = int(round_match.group("round"))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_optional_json_logging(runtime_root: str | Path | None = None) -> Path | None:
    """Mirror the `wordarena` logger into a JSONL file when JSON_LOG_ENABLED is set.

    JSON_LOG_PATH overrides the default `<runtime_root>/logs/wordarena.jsonl`
    (relative paths resolve against `runtime_root`). JSON_LOG_LEVEL sets the
    file handler level (default INFO).
    """
    if not _env_flag("JSON_LOG_ENABLED"):
        return None

    base = Path(runtime_root).expanduser().resolve() if runtime_root else Path.cwd().resolve()
    raw_path = os.getenv("JSON_LOG_PATH", "").strip()
    path = Path(raw_path).expanduser() if raw_path else Path("logs") / "wordarena.jsonl"
    if not path.is_absolute():
        path = base / path
    path = path.resolve()

    logger = logging.getLogger("wordarena")
    if any(
        isinstance(h, logging.FileHandler) and Path(h.baseFilename).resolve() == path
        for h in logger.handlers
    ):
        return path

    level_name = os.getenv("JSON_LOG_LEVEL", "INFO").strip().upper()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(getattr(logging, level_name, logging.INFO))
    handler.setFormatter(_JsonLogFormatter())
    logger.addHandler(handler)
    logger.info(f"Structured JSON logging enabled: {path.as_posix()}")
    return path
