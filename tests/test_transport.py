import asyncio
import unittest
from types import SimpleNamespace

from telegram import Update
from telegram.constants import ChatMemberStatus
from telegram.error import Conflict, Forbidden, InvalidToken, NetworkError, TimedOut

from core.session import SessionManager
from core.transport import (
    CONNECT_FAILED,
    CONNECTION_LOST,
    LOGGED_OUT,
    MEMBER,
    MEMBER_ADMIN,
    MEMBER_GONE,
    MEMBER_OWNER,
    ConnectionUpdate,
    TelegramTransport,
)
from core.types import ConnectionState
from tests.fakes import spin

BOT_ID = 999


def _user(user_id: int) -> dict:
    return {"id": user_id, "is_bot": False, "first_name": f"user{user_id}"}


def _update(chat_id: int, chat_type: str, sender: int, text: str = "hi", reply_from: int | None = None) -> Update:
    chat = {"id": chat_id, "type": chat_type}
    message = {"message_id": 42, "date": 1700000000, "chat": chat, "from": _user(sender), "text": text}
    if reply_from is not None:
        message["reply_to_message"] = {
            "message_id": 41,
            "date": 1699999990,
            "chat": chat,
            "from": _user(reply_from),
            "text": "earlier",
        }
    return Update.de_json({"update_id": 1, "message": message}, None)


class _FakeBot:
    def __init__(self):
        self.get_me_results: list = []
        self.member_status = ChatMemberStatus.MEMBER
        self.calls: list[tuple] = []
        self.sent: list[tuple[int, str]] = []

    async def get_me(self):
        result = self.get_me_results.pop(0) if self.get_me_results else None
        if callable(result):
            result = result()
        if isinstance(result, Exception):
            raise result
        return SimpleNamespace(id=BOT_ID)

    async def send_message(self, chat_id, text):
        self.sent.append((chat_id, text))

    async def get_chat_member(self, chat_id, user_id):
        self.calls.append(("get_chat_member", chat_id, user_id))
        return SimpleNamespace(status=self.member_status)

    async def ban_chat_member(self, chat_id, user_id):
        self.calls.append(("ban_chat_member", chat_id, user_id))

    async def unban_chat_member(self, chat_id, user_id, only_if_banned=False):
        self.calls.append(("unban_chat_member", chat_id, user_id, only_if_banned))

    async def create_chat_invite_link(self, chat_id):
        return SimpleNamespace(invite_link=f"https://t.me/+{abs(chat_id)}")


class _FakeUpdater:
    def __init__(self):
        self.running = True

    async def stop(self):
        self.running = False


class _FakeApp:
    def __init__(self):
        self.bot = _FakeBot()
        self.updater = _FakeUpdater()
        self.running = True
        self.shut_down = False

    async def stop(self):
        self.running = False

    async def shutdown(self):
        self.shut_down = True


class _StubbedTelegramTransport(TelegramTransport):
    """TelegramTransport whose connect skips the network and installs a fake app."""

    def __init__(self, app: _FakeApp):
        super().__init__("123:abc", health_check_sec=0)
        self.fake_app = app

    async def connect(self, on_event):
        self._on_event = on_event
        await on_event(ConnectionUpdate(connection="connecting"))
        self._app = self.fake_app
        self._self_id = str(BOT_ID)
        self._watch_task = asyncio.create_task(self._watch_polling())
        await on_event(ConnectionUpdate(connection="open"))


def _transport_with_app(app: _FakeApp) -> tuple[TelegramTransport, list]:
    events: list = []

    async def collect(event):
        events.append(event)

    transport = TelegramTransport("123:abc", health_check_sec=0)
    transport._app = app
    transport._self_id = str(BOT_ID)
    transport._on_event = collect
    return transport, events


class TestInboundMapping(unittest.IsolatedAsyncioTestCase):
    async def test_group_message_with_reply(self) -> None:
        transport, events = _transport_with_app(_FakeApp())
        await transport._on_message(_update(-1001, "supergroup", 200, ".kick", reply_from=300), None)

        (event,) = events
        self.assertEqual(event.message_id, "-1001:42")
        self.assertEqual(event.chat_id, "-1001")
        self.assertEqual(event.sender_id, "200")
        self.assertEqual(event.text, ".kick")
        self.assertTrue(event.is_group)
        self.assertFalse(event.from_me)
        self.assertEqual(event.reply_to_sender, "300")

    async def test_private_message_from_the_bot_itself(self) -> None:
        transport, events = _transport_with_app(_FakeApp())
        await transport._on_message(_update(BOT_ID, "private", BOT_ID, ">> stone"), None)

        (event,) = events
        self.assertFalse(event.is_group)
        self.assertTrue(event.from_me)
        self.assertIsNone(event.reply_to_sender)


class TestErrorClassification(unittest.TestCase):
    def test_close_reasons(self) -> None:
        transport = TelegramTransport("123:abc")
        self.assertEqual(transport.classify_error(InvalidToken()), LOGGED_OUT)
        self.assertEqual(transport.classify_error(Forbidden("bot was kicked")), LOGGED_OUT)
        self.assertEqual(transport.classify_error(NetworkError("reset")), CONNECTION_LOST)
        self.assertEqual(transport.classify_error(TimedOut()), CONNECTION_LOST)
        self.assertEqual(transport.classify_error(ValueError("boom")), CONNECT_FAILED)

    def test_polling_errors_are_logged_not_raised(self) -> None:
        transport = TelegramTransport("123:abc")
        with self.assertLogs("wordarena", level="WARNING") as logs:
            transport._on_polling_error(Conflict("terminated by other getUpdates request"))
            transport._on_polling_error(Conflict("terminated by other getUpdates request"))
            transport._on_polling_error(NetworkError("reset"))
        conflicts = [line for line in logs.output if "polling conflict" in line]
        self.assertEqual(len(conflicts), 1)


class TestPollingWatchdog(unittest.IsolatedAsyncioTestCase):
    async def test_rejected_token_reports_logged_out(self) -> None:
        app = _FakeApp()
        app.bot.get_me_results = [InvalidToken()]
        transport, events = _transport_with_app(app)

        await asyncio.wait_for(transport._watch_polling(), 1)
        self.assertEqual(events, [ConnectionUpdate(connection="close", close_reason=LOGGED_OUT)])

    async def test_dead_updater_reports_connection_lost(self) -> None:
        app = _FakeApp()
        app.updater.running = False
        transport, events = _transport_with_app(app)

        await asyncio.wait_for(transport._watch_polling(), 1)
        self.assertEqual(events, [ConnectionUpdate(connection="close", close_reason=CONNECTION_LOST)])

    async def test_network_blips_do_not_close(self) -> None:
        app = _FakeApp()
        transport, events = _transport_with_app(app)

        def close_transport():
            transport._closed = True
            return None

        app.bot.get_me_results = [NetworkError("reset"), close_transport]
        await asyncio.wait_for(transport._watch_polling(), 1)
        self.assertEqual(events, [])

    async def test_revoked_token_mid_session_is_fatal(self) -> None:
        app = _FakeApp()
        app.bot.get_me_results = [None, InvalidToken()]
        manager = SessionManager(lambda: _StubbedTelegramTransport(app), owner_provider=lambda: "100")

        self.assertTrue(await manager.start())
        await asyncio.wait_for(manager.fatal.wait(), 1)

        self.assertEqual(manager.state, ConnectionState.CLOSED_FATAL)
        self.assertTrue(app.shut_down)
        self.assertFalse(app.updater.running)
        self.assertIn((100, "❌ Bot logged out. Please re-authenticate."), app.bot.sent)
        await manager.shutdown()

    async def test_close_cancels_the_watchdog(self) -> None:
        app = _FakeApp()
        transport = _StubbedTelegramTransport(app)
        transport.health_check_sec = 60

        async def ignore(event):
            pass

        await transport.connect(ignore)
        watcher = transport._watch_task
        await transport.close()
        await spin()
        self.assertTrue(watcher.cancelled())
        self.assertTrue(app.shut_down)


class TestMembership(unittest.IsolatedAsyncioTestCase):
    async def test_member_status_mapping(self) -> None:
        app = _FakeApp()
        transport, _ = _transport_with_app(app)
        cases = {
            ChatMemberStatus.OWNER: MEMBER_OWNER,
            ChatMemberStatus.ADMINISTRATOR: MEMBER_ADMIN,
            ChatMemberStatus.MEMBER: MEMBER,
            ChatMemberStatus.RESTRICTED: MEMBER,
            ChatMemberStatus.LEFT: MEMBER_GONE,
            ChatMemberStatus.BANNED: MEMBER_GONE,
        }
        for status, expected in cases.items():
            app.bot.member_status = status
            self.assertEqual(await transport.member_status("-1001", "200"), expected, status)

    async def test_remove_member_bans_then_lifts_the_ban(self) -> None:
        app = _FakeApp()
        transport, _ = _transport_with_app(app)
        await transport.remove_member("-1001", "300")
        self.assertEqual(
            app.bot.calls,
            [("ban_chat_member", -1001, 300), ("unban_chat_member", -1001, 300, True)],
        )

    async def test_invite_link(self) -> None:
        transport, _ = _transport_with_app(_FakeApp())
        self.assertEqual(await transport.invite_link("-1001"), "https://t.me/+1001")

    async def test_calls_fail_once_closed(self) -> None:
        transport, _ = _transport_with_app(_FakeApp())
        await transport.close()
        with self.assertRaises(RuntimeError):
            await transport.invite_link("-1001")


if __name__ == "__main__":
    unittest.main()
