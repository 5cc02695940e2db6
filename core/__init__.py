"""WordArena core package."""

from .access import AccessRegistry
from .app import main, resolve_runtime_path
from .bot import WordArenaBot
from .constants import PROJECT_ROOT
from .games import GameError, GameScheduler
from .identity import normalize
from .logging_setup import log
from .session import SessionManager
from .transport import TelegramTransport, Transport

__all__ = [
    "AccessRegistry",
    "GameError",
    "GameScheduler",
    "log",
    "main",
    "normalize",
    "PROJECT_ROOT",
    "resolve_runtime_path",
    "SessionManager",
    "TelegramTransport",
    "Transport",
    "WordArenaBot",
]
