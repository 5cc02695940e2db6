"""In-memory collaborators shared by the test modules."""

from __future__ import annotations

import asyncio

from core.transport import CONNECTION_LOST, LOGGED_OUT, MEMBER, ConnectionUpdate, Transport


class LoggedOutError(Exception):
    pass


class FakeTransport(Transport):
    def __init__(self, self_id: str | None = "100", fail_with: Exception | None = None, open_on_connect: bool = True):
        self._self_id = self_id
        self.fail_with = fail_with
        self.open_on_connect = open_on_connect
        self.on_event = None
        self.sent: list[tuple[str, str]] = []
        self.send_error: Exception | None = None
        self.closed = False
        self.member_statuses: dict[str, str] = {}
        self.removed: list[tuple[str, str]] = []

    @property
    def self_id(self):
        return self._self_id

    async def connect(self, on_event):
        self.on_event = on_event
        await on_event(ConnectionUpdate(connection="connecting"))
        if self.fail_with is not None:
            raise self.fail_with
        if self.open_on_connect:
            await on_event(ConnectionUpdate(connection="open"))

    async def send_message(self, chat_id, text):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((chat_id, text))
        return {"chat_id": chat_id, "text": text}

    async def close(self):
        self.closed = True

    async def member_status(self, chat_id, user_id):
        return self.member_statuses.get(user_id, MEMBER)

    async def remove_member(self, chat_id, user_id):
        self.removed.append((chat_id, user_id))

    async def invite_link(self, chat_id):
        return f"https://t.me/+invite{chat_id}"

    def classify_error(self, error):
        if isinstance(error, LoggedOutError):
            return LOGGED_OUT
        return CONNECTION_LOST


class TransportFactory:
    """Hands out queued transports, then fresh healthy ones."""

    def __init__(self, *queued: FakeTransport, self_id: str | None = "100"):
        self.queued = list(queued)
        self.self_id = self_id
        self.created: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = self.queued.pop(0) if self.queued else FakeTransport(self_id=self.self_id)
        self.created.append(transport)
        return transport

    def all_sent(self) -> list[tuple[str, str]]:
        return [item for t in self.created for item in t.sent]


class FakeValidator:
    def __init__(self, words=(), error: Exception | None = None):
        self.words = {w.lower() for w in words}
        self.error = error
        self.calls: list[str] = []

    async def is_valid(self, word: str) -> bool:
        self.calls.append(word)
        if self.error is not None:
            raise self.error
        return word.lower() in self.words


class GatedValidator(FakeValidator):
    """Blocks every lookup until `release()` is called."""

    def __init__(self, words=()):
        super().__init__(words)
        self.gate = asyncio.Event()

    async def is_valid(self, word: str) -> bool:
        self.calls.append(word)
        await self.gate.wait()
        return word.lower() in self.words

    def release(self):
        self.gate.set()


class GatedSleep:
    """Replacement for asyncio.sleep whose waits end only on `release()`."""

    def __init__(self):
        self.waiting: list[asyncio.Event] = []
        self.requested: list[float] = []

    async def __call__(self, seconds: float):
        event = asyncio.Event()
        self.requested.append(seconds)
        self.waiting.append(event)
        await event.wait()

    def release(self):
        self.waiting.pop(0).set()


class MessageSink:
    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    async def __call__(self, chat_id: str, text: str):
        self.messages.append((chat_id, text))
        return True

    def texts(self) -> list[str]:
        return [text for _, text in self.messages]


async def spin(times: int = 10):
    for _ in range(times):
        await asyncio.sleep(0)
