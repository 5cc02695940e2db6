"""Application entrypoint: wiring, signal handling and the run loop."""

from __future__ import annotations

import asyncio
import os
import signal
from pathlib import Path

from config import Config, load_config
from lexicon import LexiconClient
from storage import JsonStore

from .access import AccessRegistry
from .bot import WordArenaBot
from .constants import PROJECT_ROOT
from .logging_setup import configure_optional_json_logging, log
from .session import SessionManager
from .transport import TelegramTransport


def resolve_runtime_path(path_value: str) -> Path:
    """Resolve configured paths relative to WORDARENA_HOME or project root."""
    runtime_home = os.getenv("WORDARENA_HOME", "").strip()
    base_dir = Path(runtime_home).expanduser().resolve() if runtime_home else PROJECT_ROOT
    path = Path(path_value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


async def run(config: Config):
    store = JsonStore(config.data_dir)
    registry = AccessRegistry(
        store,
        owner_override=config.owner,
        default_prefix=config.command_prefix,
        bot_name=config.bot_name,
    )
    if not registry.owner:
        log.warning("No owner configured. Set OWNER in .env; owner-only commands are unavailable.")

    session = SessionManager(
        transport_factory=lambda: TelegramTransport(config.telegram_bot_token),
        owner_provider=lambda: registry.owner,
        bot_name=registry.bot_name,
        reconnect_delay_sec=config.reconnect_delay_sec,
        pairing_cooldown_sec=config.pairing_cooldown_sec,
    )

    stop_event = asyncio.Event()

    def _request_stop(reason: str = "signal"):
        log.info(f"Stop requested ({reason}).")
        stop_event.set()

    bot = WordArenaBot(
        config,
        store,
        session,
        registry=registry,
        validator=LexiconClient(config),
        request_stop=_request_stop,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop, sig.name)
        except NotImplementedError:
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))

    await session.start()

    stop_task = asyncio.create_task(stop_event.wait())
    fatal_task = asyncio.create_task(session.fatal.wait())
    await asyncio.wait({stop_task, fatal_task}, return_when=asyncio.FIRST_COMPLETED)
    for task in (stop_task, fatal_task):
        task.cancel()

    log.info("Shutting down...")
    await bot.shutdown()
    await session.shutdown()
    return 1 if session.fatal.is_set() else 0


def main():
    """Start the WordArena bot."""
    config = load_config()
    config.data_dir = str(resolve_runtime_path(config.data_dir))
    Path(config.data_dir).mkdir(parents=True, exist_ok=True)
    configure_optional_json_logging(Path(config.data_dir).parent)

    if not config.telegram_bot_token:
        log.error("TELEGRAM_BOT_TOKEN is required. Set it in .env")
        return 2

    log.info("🎮 WordArena starting...")
    log.info(f"   Data dir: {config.data_dir}")
    log.info(f"   Owner override: {config.owner or '(stored config)'}")
    log.info(f"   Answer marker: '{config.answer_marker} <word>'")
    log.info(f"   Lexicon: {config.lexicon_base_url} (timeout {config.lexicon_timeout_sec}s)")
    log.info(f"   Reconnect delay: {config.reconnect_delay_sec}s")
    log.info(f"   Dedupe window: {config.dedupe_ttl_sec}s (sweep every {config.dedupe_sweep_sec}s)")

    try:
        return asyncio.run(run(config))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
