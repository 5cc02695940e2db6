#!/usr/bin/env python3
"""
WordArena — Word game bot for Telegram group chats
==================================================
Keeps one long-polling session alive, gates commands by owner/sudo/ban lists,
and runs timed word rounds per chat.

Architecture: Telegram Polling → SessionManager → handle_event → command table
or GameScheduler answer intake
"""

from core.app import main

if __name__ == "__main__":
    raise SystemExit(main())
