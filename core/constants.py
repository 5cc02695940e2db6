"""Shared constants used by the WordArena bot."""

from __future__ import annotations

from pathlib import Path

# Project root for resolving runtime-relative paths reliably.
PROJECT_ROOT = Path(__file__).resolve().parent.parent

GAMES_DOC = "games"

# Rotating round topics: a valid answer starts with the round's letter.
ROUND_LETTERS = ("S", "C", "P", "M", "T", "B", "D", "R", "A", "F", "G", "L", "H", "W", "E")

POINTS_PER_CORRECT = 10
ELIMINATION_FROM_ROUND = 5
MIN_WORD_LENGTH_RANGE = (3, 6)

OWNER_ONLY_TEXT = "⚠️ Owner-only command."
SUDO_ONLY_TEXT = "⚠️ Sudo-only command."
