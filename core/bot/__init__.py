"""Composed WordArena bot class built from focused mixins."""

from __future__ import annotations

from .base import BotBaseMixin
from .commands import BotCommandsMixin
from .game_commands import BotGameCommandsMixin
from .group_commands import BotGroupCommandsMixin
from .handlers import BotHandlersMixin
from .messaging import BotMessagingMixin


class WordArenaBot(
    BotMessagingMixin,
    BotHandlersMixin,
    BotGameCommandsMixin,
    BotGroupCommandsMixin,
    BotCommandsMixin,
    BotBaseMixin,
):
    """The main bot class wiring the session, access registry and games together."""

    pass


__all__ = ["WordArenaBot"]
