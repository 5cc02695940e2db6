"""Transport contract and the Telegram Bot API implementation."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from telegram import Update
from telegram.constants import ChatMemberStatus, ChatType
from telegram.error import Conflict, Forbidden, InvalidToken, NetworkError, RetryAfter, TelegramError, TimedOut
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from .logging_setup import log
from .types import InboundEvent

# Close reasons. Only LOGGED_OUT is terminal.
LOGGED_OUT = "logged_out"
CONNECTION_LOST = "connection_lost"
CONNECT_FAILED = "connect_failed"

# Member statuses shared by every transport.
MEMBER_OWNER = "owner"
MEMBER_ADMIN = "admin"
MEMBER = "member"
MEMBER_GONE = "gone"
ADMIN_STATUSES = frozenset({MEMBER_OWNER, MEMBER_ADMIN})


@dataclass
class ConnectionUpdate:
    connection: str | None = None  # "connecting" | "open" | "close"
    pairing_code: str | None = None
    qr: str | None = None
    close_reason: str | None = None


TransportEvent = Union[ConnectionUpdate, InboundEvent]
EventCallback = Callable[[TransportEvent], Awaitable[None]]


class Transport:
    """A single, non-reusable connection to the messaging network.

    `connect` returns once the connection is open (after emitting an "open"
    update) and raises when it cannot be opened. After that, the transport
    emits a "close" update when the connection dies on its own. A transport is
    discarded after it closes; reconnects build a new one.
    """

    # Whether the authenticated account is a personal account that may be the
    # owner's own login (and can therefore receive its own messages).
    acts_as_owner_account: bool = True

    @property
    def self_id(self) -> str | None:
        raise NotImplementedError

    async def connect(self, on_event: EventCallback):
        raise NotImplementedError

    async def send_message(self, chat_id: str, text: str):
        raise NotImplementedError

    async def close(self):
        raise NotImplementedError

    # ── Group membership ─────────────────────────────────────

    async def member_status(self, chat_id: str, user_id: str) -> str:
        """One of MEMBER_OWNER, MEMBER_ADMIN, MEMBER or MEMBER_GONE."""
        raise NotImplementedError

    async def remove_member(self, chat_id: str, user_id: str):
        raise NotImplementedError

    async def invite_link(self, chat_id: str) -> str:
        raise NotImplementedError

    def classify_error(self, error: BaseException) -> str:
        return CONNECT_FAILED


_MEMBER_STATUS_MAP = {
    ChatMemberStatus.OWNER: MEMBER_OWNER,
    ChatMemberStatus.ADMINISTRATOR: MEMBER_ADMIN,
    ChatMemberStatus.MEMBER: MEMBER,
    ChatMemberStatus.RESTRICTED: MEMBER,
}


class TelegramTransport(Transport):
    """Long-polling Telegram bot connection built on python-telegram-bot."""

    acts_as_owner_account = False

    def __init__(self, token: str, poll_timeout: int = 30, health_check_sec: float = 60):
        self.token = token
        self.poll_timeout = poll_timeout
        self.health_check_sec = health_check_sec
        self._app: Application | None = None
        self._on_event: EventCallback | None = None
        self._self_id: str | None = None
        self._closed = False
        self._watch_task: asyncio.Task | None = None
        # Throttle repeated Telegram polling conflict warnings.
        self._last_conflict_log_at: float = 0.0

    @property
    def self_id(self) -> str | None:
        return self._self_id

    async def connect(self, on_event: EventCallback):
        self._on_event = on_event
        await on_event(ConnectionUpdate(connection="connecting"))

        app = Application.builder().token(self.token).concurrent_updates(True).build()
        app.add_handler(MessageHandler(filters.TEXT | filters.CAPTION, self._on_message))
        app.add_error_handler(self._on_handler_error)
        self._app = app

        await app.initialize()
        self._self_id = str(app.bot.id)
        await app.start()
        await app.updater.start_polling(
            drop_pending_updates=True,
            timeout=self.poll_timeout,
            error_callback=self._on_polling_error,
        )
        log.info(f"Telegram polling started as @{app.bot.username} ({self._self_id})")
        self._watch_task = asyncio.create_task(self._watch_polling())
        await on_event(ConnectionUpdate(connection="open"))

    async def send_message(self, chat_id: str, text: str):
        return await self._bot().send_message(chat_id=int(chat_id), text=text)

    async def close(self):
        if self._closed:
            return
        self._closed = True
        watcher = self._watch_task
        self._watch_task = None
        if watcher and not watcher.done() and watcher is not asyncio.current_task():
            watcher.cancel()
        app = self._app
        if app is None:
            return
        try:
            if app.updater and app.updater.running:
                await app.updater.stop()
            if app.running:
                await app.stop()
            await app.shutdown()
        except Exception as e:
            log.warning(f"Telegram shutdown was not clean: {e}")

    def classify_error(self, error: BaseException) -> str:
        if isinstance(error, (InvalidToken, Forbidden)):
            return LOGGED_OUT
        if isinstance(error, (NetworkError, TimedOut)):
            return CONNECTION_LOST
        return CONNECT_FAILED

    def _bot(self):
        if not self._app or self._closed:
            raise RuntimeError("Telegram transport is not connected")
        return self._app.bot

    # ── Group membership ─────────────────────────────────────

    async def member_status(self, chat_id: str, user_id: str) -> str:
        member = await self._bot().get_chat_member(chat_id=int(chat_id), user_id=int(user_id))
        return _MEMBER_STATUS_MAP.get(member.status, MEMBER_GONE)

    async def remove_member(self, chat_id: str, user_id: str):
        # Telegram has no plain "remove": ban, then lift the ban so the user may rejoin.
        bot = self._bot()
        await bot.ban_chat_member(chat_id=int(chat_id), user_id=int(user_id))
        await bot.unban_chat_member(chat_id=int(chat_id), user_id=int(user_id), only_if_banned=True)

    async def invite_link(self, chat_id: str) -> str:
        link = await self._bot().create_chat_invite_link(chat_id=int(chat_id))
        return link.invite_link

    # ── Polling supervision ──────────────────────────────────

    async def _watch_polling(self):
        """Report a close once polling dies or the token stops working.

        The updater's retry loop aborts silently on InvalidToken without
        calling the error callback, so the token is re-checked with getMe.
        """
        app = self._app
        while not self._closed:
            await asyncio.sleep(self.health_check_sec)
            if self._closed:
                return
            if not app.updater or not app.updater.running:
                log.warning("Telegram polling stopped unexpectedly.")
                await self._report_close(CONNECTION_LOST)
                return
            try:
                await app.bot.get_me()
            except (InvalidToken, Forbidden) as e:
                log.error(f"Telegram rejected the bot token: {e}")
                await self._report_close(LOGGED_OUT)
                return
            except TelegramError as e:
                # Polling retries network failures on its own.
                log.warning(f"Telegram health check failed: {e}")

    async def _report_close(self, reason: str):
        if self._closed or not self._on_event:
            return
        await self._on_event(ConnectionUpdate(connection="close", close_reason=reason))

    # ── python-telegram-bot callbacks ────────────────────────

    async def _on_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = update.effective_message
        chat = update.effective_chat
        if not message or not chat or not self._on_event:
            return

        user = update.effective_user
        is_group = chat.type in (ChatType.GROUP, ChatType.SUPERGROUP)
        reply_to = message.reply_to_message
        reply_sender = None
        if reply_to and reply_to.from_user:
            reply_sender = str(reply_to.from_user.id)

        event = InboundEvent(
            message_id=f"{chat.id}:{message.message_id}",
            chat_id=str(chat.id),
            sender_id=str(user.id) if user else None,
            text=message.text or message.caption or "",
            from_me=bool(user and self._self_id and str(user.id) == self._self_id),
            is_group=is_group,
            reply_to_sender=reply_sender,
            raw=update,
        )
        await self._on_event(event)

    async def _on_handler_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        log.exception("Unhandled error in Telegram update handler", exc_info=context.error)

    def _on_polling_error(self, err: TelegramError):
        """Called by the updater for errors while fetching updates (must be sync)."""
        if isinstance(err, Conflict):
            now = time.time()
            # Polling conflicts repeat every few seconds; avoid log spam.
            if now - self._last_conflict_log_at >= 30:
                self._last_conflict_log_at = now
                log.warning(
                    "Telegram polling conflict: another bot instance is using getUpdates. "
                    "Keep only one instance running for this bot token."
                )
            return
        if isinstance(err, RetryAfter):
            log.warning(f"Telegram rate limit: retry after {err.retry_after}s")
            return
        if isinstance(err, (TimedOut, NetworkError)):
            log.warning(f"Telegram network issue: {err}")
            return
        log.error(f"Telegram polling error: {err}")
