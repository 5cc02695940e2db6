"""
WordArena — Configuration
Flat .env-based configuration system.
"""

import os
import re
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


DEFAULT_LEXICON_BASE_URL = "https://api.dictionaryapi.dev/api/v2/entries/en"


def _strip_inline_comment(value: str) -> str:
    """Strip shell-style inline comments for unquoted env values."""
    if not value:
        return ""
    cleaned = value.strip()
    if not cleaned:
        return ""
    if cleaned.startswith("#"):
        return ""
    return re.sub(r"\s+#.*$", "", cleaned).strip()


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = _strip_inline_comment(os.getenv(name, ""))
    if not raw:
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    return _strip_inline_comment(os.getenv(name, "")) or default


@dataclass
class Config:
    # Telegram
    telegram_bot_token: str = ""

    # Identity & commands
    owner: str = ""
    command_prefix: str = "."
    bot_name: str = "WordArena"
    answer_marker: str = ">>"

    # Persistence
    data_dir: str = ".wordarena/data"

    # Lexical validation service
    lexicon_base_url: str = DEFAULT_LEXICON_BASE_URL
    lexicon_timeout_sec: int = 5

    # Session lifecycle
    reconnect_delay_sec: int = 3
    pairing_cooldown_sec: int = 90

    # Inbound deduplication
    dedupe_ttl_sec: int = 600
    dedupe_sweep_sec: int = 60

    # Game limits
    max_rounds: int = 50
    max_round_sec: int = 600


def load_config() -> Config:
    """Load config from environment variables."""
    cfg = Config(
        telegram_bot_token=_strip_inline_comment(os.getenv("TELEGRAM_BOT_TOKEN", "")),
        owner=_strip_inline_comment(os.getenv("OWNER", "")),
        command_prefix=_env_str("COMMAND_PREFIX", "."),
        bot_name=_env_str("BOT_NAME", "WordArena"),
        answer_marker=_env_str("ANSWER_MARKER", ">>"),
        data_dir=_env_str("DATA_DIR", ".wordarena/data"),
        lexicon_base_url=_env_str("LEXICON_BASE_URL", DEFAULT_LEXICON_BASE_URL),
        lexicon_timeout_sec=_env_int("LEXICON_TIMEOUT_SEC", 5, minimum=1),
        reconnect_delay_sec=_env_int("RECONNECT_DELAY_SEC", 3),
        pairing_cooldown_sec=_env_int("PAIRING_COOLDOWN_SEC", 90),
        dedupe_ttl_sec=_env_int("DEDUPE_TTL_SEC", 600, minimum=1),
        dedupe_sweep_sec=_env_int("DEDUPE_SWEEP_SEC", 60, minimum=1),
        max_rounds=_env_int("MAX_ROUNDS", 50, minimum=1),
        max_round_sec=_env_int("MAX_ROUND_SEC", 600, minimum=1),
    )

    cfg.lexicon_base_url = cfg.lexicon_base_url.rstrip("/")
    # A marker must never collide with the command prefix.
    if cfg.answer_marker == cfg.command_prefix:
        cfg.answer_marker = ">>"

    return cfg
