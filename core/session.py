"""Connection lifecycle: connect, verify identity, reconnect with fixed backoff."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable
from urllib.parse import quote

from .identity import normalize, same_party
from .logging_setup import log
from .transport import LOGGED_OUT, ConnectionUpdate, Transport
from .types import ConnectionState, InboundEvent

QR_LINK_BASE = "https://api.qrserver.com/v1/create-qr-code/?size=300x300&data="


@dataclass
class Session:
    """One transport handle. Never reused after it closes."""

    transport: Transport
    state: ConnectionState = ConnectionState.IDLE
    started_at: float = field(default_factory=time.time)


class SessionManager:
    def __init__(
        self,
        transport_factory: Callable[[], Transport],
        owner_provider: Callable[[], str],
        bot_name: str = "WordArena",
        reconnect_delay_sec: float = 3,
        pairing_cooldown_sec: float = 90,
        clock=time.monotonic,
    ):
        self._transport_factory = transport_factory
        self._owner_provider = owner_provider
        self.bot_name = bot_name
        self.reconnect_delay_sec = reconnect_delay_sec
        self.pairing_cooldown_sec = pairing_cooldown_sec
        self._clock = clock

        self.session: Session | None = None
        self.state = ConnectionState.IDLE
        self.reconnecting = False
        self.ready_notified_once = False
        self.reconnect_count = 0
        self.fatal = asyncio.Event()

        self._message_handler: Callable[[InboundEvent], Awaitable[None]] | None = None
        self._ready_listeners: list[Callable[[str | None], Awaitable[None]]] = []
        self._lost_listeners: list[Callable[[str], Awaitable[None]]] = []
        self._pairing_listeners: list[Callable[[str], None]] = []
        self._reconnect_task: asyncio.Task | None = None
        self._stopping = False

        self._last_pairing_shown_at: float | None = None
        self._pending_pairing: str | None = None
        self._pending_pairing_is_code = False
        self._pairing_task: asyncio.Task | None = None

    # ── Wiring ───────────────────────────────────────────────

    def set_message_handler(self, handler: Callable[[InboundEvent], Awaitable[None]]):
        self._message_handler = handler

    def on_ready(self, callback: Callable[[str | None], Awaitable[None]]):
        self._ready_listeners.append(callback)

    def on_lost(self, callback: Callable[[str], Awaitable[None]]):
        self._lost_listeners.append(callback)

    def on_pairing(self, callback: Callable[[str], None]):
        self._pairing_listeners.append(callback)

    @property
    def transport(self) -> Transport | None:
        return self.session.transport if self.session else None

    @property
    def self_id(self) -> str | None:
        transport = self.transport
        return transport.self_id if transport else None

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    def connected_for(self) -> float:
        """Seconds since the live session was created (0 when there is none)."""
        if self.session is None or self.state != ConnectionState.OPEN:
            return 0.0
        return max(0.0, time.time() - self.session.started_at)

    def require_transport(self) -> Transport:
        """The live transport, for calls that must fail loudly when offline."""
        transport = self.transport
        if transport is None or self.state != ConnectionState.OPEN:
            raise RuntimeError("Socket not ready")
        return transport

    def _set_state(self, state: ConnectionState):
        if self.state != state:
            log.info(f"Connection state: {self.state.value} -> {state.value}")
        self.state = state
        if self.session:
            self.session.state = state

    # ── Lifecycle ────────────────────────────────────────────

    async def start(self) -> bool:
        """Open a session unless one is already connecting or open."""
        if self.state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            log.info("Session already active; skipping new start.")
            return False
        if self.reconnecting:
            log.info("Reconnect already scheduled; skipping new start.")
            return False
        if self.state == ConnectionState.CLOSED_FATAL:
            log.error("Session is logged out; re-authenticate before starting again.")
            return False
        self._stopping = False
        return await self._connect_once()

    async def _connect_once(self) -> bool:
        session = Session(transport=self._transport_factory())
        self.session = session
        self._set_state(ConnectionState.CONNECTING)

        async def on_event(event):
            # Events from a replaced transport must not drive the current session.
            if self.session is session:
                await self._handle_transport_event(event)

        try:
            await session.transport.connect(on_event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = session.transport.classify_error(e)
            log.error(f"Connection attempt failed ({reason}): {e}")
            if self.session is session:
                await self._handle_close(reason)
            return False
        return self.session is session and self.state == ConnectionState.OPEN

    async def shutdown(self):
        """Best-effort teardown used on process signals and owner shutdown."""
        self._stopping = True
        for task in (self._reconnect_task, self._pairing_task):
            if task and not task.done() and task is not asyncio.current_task():
                task.cancel()
        self._reconnect_task = None
        self._pairing_task = None
        self.reconnecting = False
        await self._teardown_session()
        if self.state != ConnectionState.CLOSED_FATAL:
            self._set_state(ConnectionState.IDLE)

    async def _teardown_session(self):
        session = self.session
        if session is None:
            return
        try:
            await session.transport.close()
        except Exception as e:
            log.warning(f"Transport teardown failed: {e}")

    # ── Transport events ─────────────────────────────────────

    async def _handle_transport_event(self, event):
        try:
            if isinstance(event, InboundEvent):
                if self.state != ConnectionState.OPEN or not self._message_handler:
                    return
                await self._message_handler(event)
                return
            if not isinstance(event, ConnectionUpdate):
                return
            if event.qr or event.pairing_code:
                self._surface_pairing(event)
            if event.connection == "open":
                await self._handle_open()
            elif event.connection == "close":
                await self._handle_close(event.close_reason or "")
        except Exception as e:
            log.exception(f"Transport event handling error: {e}")

    async def _handle_open(self):
        self._set_state(ConnectionState.OPEN)
        transport = self.transport
        logged_in = normalize(transport.self_id) if transport and transport.self_id else ""
        owner = normalize(self._owner_provider() or "")
        log.info(f"Connection open. Logged in as: {logged_in or '?'}; configured owner: {owner or '?'}")

        owner_account = bool(transport and transport.acts_as_owner_account)
        if logged_in and owner:
            if same_party(logged_in, owner):
                log.info("Owner verified.")
            elif owner_account:
                log.warning(
                    "Owner mismatch detected: logged-in account != configured owner. "
                    "If this login is for a new user, update the stored owner or set OWNER."
                )

        if not self.ready_notified_once:
            self.ready_notified_once = True
            target = owner
            if owner_account and logged_in and not same_party(logged_in, owner):
                target = logged_in
            if target:
                await self.safe_send(target, f"🤖 {self.bot_name} is online and ready!")

        for callback in list(self._ready_listeners):
            try:
                await callback(logged_in or None)
            except Exception as e:
                log.error(f"Ready listener failed: {e}")

    async def _handle_close(self, reason: str):
        if self._stopping:
            return
        if self.state == ConnectionState.CLOSED_FATAL:
            return

        if reason == LOGGED_OUT:
            log.error("Logged out. Re-authenticate the transport credentials and restart.")
            owner = normalize(self._owner_provider() or "")
            if owner:
                await self.safe_send(owner, "❌ Bot logged out. Please re-authenticate.")
            self._set_state(ConnectionState.CLOSED_FATAL)
            await self._notify_lost(reason)
            await self._teardown_session()
            self.fatal.set()
            return

        log.warning(f"Connection closed (reason: {reason or 'unknown'}).")
        self._set_state(ConnectionState.CLOSED_RECOVERABLE)
        await self._notify_lost(reason)
        if not self.reconnecting:
            self.reconnecting = True
            log.info(f"Reconnecting in {self.reconnect_delay_sec}s...")
            self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _notify_lost(self, reason: str):
        for callback in list(self._lost_listeners):
            try:
                await callback(reason)
            except Exception as e:
                log.error(f"Lost listener failed: {e}")

    async def _reconnect_loop(self):
        try:
            while not self._stopping:
                await asyncio.sleep(self.reconnect_delay_sec)
                if self._stopping or self.state == ConnectionState.CLOSED_FATAL:
                    break
                self._set_state(ConnectionState.RECONNECTING)
                await self._teardown_session()
                self.reconnect_count += 1
                if await self._connect_once():
                    break
                if self.state == ConnectionState.CLOSED_FATAL:
                    break
                log.info(f"Reconnect attempt {self.reconnect_count} failed; retrying in {self.reconnect_delay_sec}s")
        except Exception as e:
            log.error(f"Reconnect error: {e}")
        finally:
            self.reconnecting = False
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    # ── Pairing artifacts ────────────────────────────────────

    def _surface_pairing(self, update: ConnectionUpdate):
        artifact = update.pairing_code or update.qr or ""
        now = self._clock()
        last = self._last_pairing_shown_at
        if last is None or now - last >= self.pairing_cooldown_sec:
            self._show_pairing(artifact, is_code=bool(update.pairing_code))
            return

        # Keep only the newest artifact while the cooldown runs.
        self._pending_pairing = artifact
        self._pending_pairing_is_code = bool(update.pairing_code)
        if self._pairing_task is None or self._pairing_task.done():
            delay = self.pairing_cooldown_sec - (now - last)
            self._pairing_task = asyncio.create_task(self._show_pairing_later(delay))

    async def _show_pairing_later(self, delay: float):
        await asyncio.sleep(max(0.0, delay))
        artifact = self._pending_pairing
        self._pending_pairing = None
        if artifact and self.state == ConnectionState.CONNECTING:
            self._show_pairing(artifact, is_code=self._pending_pairing_is_code)

    def _show_pairing(self, artifact: str, is_code: bool):
        self._last_pairing_shown_at = self._clock()
        if is_code:
            log.info(f"Pairing code available: {artifact}")
        else:
            log.info(f"QR code available. Scan via: {QR_LINK_BASE}{quote(artifact)}")
        for callback in list(self._pairing_listeners):
            try:
                callback(artifact)
            except Exception as e:
                log.error(f"Pairing listener failed: {e}")

    # ── Sending ──────────────────────────────────────────────

    async def safe_send(self, chat_id: str, text: str):
        """Send through the live transport; transport errors are logged, never raised."""
        try:
            return await self.require_transport().send_message(chat_id, text)
        except Exception as e:
            log.error(f"[{chat_id}] safe_send error: {e}")
            return None
