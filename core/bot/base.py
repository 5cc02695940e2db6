"""Core bot base state and shared utility methods."""

from __future__ import annotations

import time
from typing import Callable

from config import Config
from lexicon import LexiconClient
from storage import JsonStore

from ..access import AccessRegistry
from ..dedupe import ProcessedMessageCache
from ..games import GameScheduler
from ..logging_setup import log
from ..profiles import ProfileStore
from ..session import SessionManager


class BotBaseMixin:
    def __init__(
        self,
        config: Config,
        store: JsonStore,
        session: SessionManager,
        registry: AccessRegistry | None = None,
        validator=None,
        request_stop: Callable[[str], None] | None = None,
    ):
        self.config = config
        self.store = store
        self.session = session
        self.registry = registry or AccessRegistry(
            store,
            owner_override=config.owner,
            default_prefix=config.command_prefix,
            bot_name=config.bot_name,
        )
        self.profiles = ProfileStore(store)
        self.processed = ProcessedMessageCache(
            ttl_sec=config.dedupe_ttl_sec,
            sweep_interval_sec=config.dedupe_sweep_sec,
        )
        self.games = GameScheduler(
            store,
            self.registry,
            send=self._send_text,
            validator=validator or LexiconClient(config),
            max_rounds=config.max_rounds,
            max_round_sec=config.max_round_sec,
        )
        self.start_time = time.time()
        self._request_stop = request_stop
        # Resolved once; see BotCommandsMixin._build_command_table.
        self._commands = self._build_command_table()

        session.set_message_handler(self.handle_event)
        session.on_ready(self.on_session_ready)
        session.on_lost(self.on_session_lost)

    @property
    def prefix(self) -> str:
        return self.registry.prefix

    @staticmethod
    def _trim_for_log(text: str, max_chars: int = 8000) -> str:
        if len(text) <= max_chars:
            return text
        return text[:max_chars] + "\n...[truncated]"

    def _log_user_message(self, chat_id: str, actor: str, text: str):
        log.info(f"[{chat_id}] User: {actor}: {self._trim_for_log(text)}")

    def _log_bot_message(self, chat_id: str, text: str):
        log.info(f"[{chat_id}] Bot: {self._trim_for_log(text)}")

    @staticmethod
    def _duration_text(seconds: float) -> str:
        hours, remainder = divmod(int(seconds), 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours}h {minutes}m {seconds}s"

    def _uptime_text(self) -> str:
        return self._duration_text(time.time() - self.start_time)

    # ── Session signals ──────────────────────────────────────

    async def on_session_ready(self, self_id: str | None):
        self.processed.ensure_sweeper()
        log.info(f"Session ready as {self_id or '?'} (reconnects so far: {self.session.reconnect_count})")

    async def on_session_lost(self, reason: str):
        running = self.games.running_count()
        if running:
            log.warning(
                f"Connection lost ({reason or 'unknown'}) with {running} game(s) running; "
                "announcements fail until the session reconnects"
            )

    async def shutdown(self):
        self.processed.stop_sweeper()
        await self.games.shutdown()
