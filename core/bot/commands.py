"""Utility and administration command handlers."""

from __future__ import annotations

import time

from ..identity import normalize
from ..logging_setup import log
from ..types import Access, CommandSpec, InboundEvent

COMMAND_SPECS: tuple[CommandSpec, ...] = (
    CommandSpec("ping", "cmd_ping", usage="check latency"),
    CommandSpec("help", "cmd_help", usage="show this menu", aliases=("menu",)),
    CommandSpec("uptime", "cmd_uptime", usage="bot uptime", aliases=("runtime",)),
    CommandSpec(
        "game",
        "cmd_game",
        usage="create|join|start|status|stop word games",
        open_subcommands=("join", "status"),
    ),
    CommandSpec("profile", "cmd_profile", usage="[id] or reply: show a profile"),
    CommandSpec("setbio", "cmd_setbio", usage="<text>: set your bio"),
    CommandSpec("setrole", "cmd_setrole", usage="<text>: set your role"),
    CommandSpec("mode", "cmd_mode", Access.OWNER, usage="public|private"),
    CommandSpec("setprefix", "cmd_setprefix", Access.OWNER, usage="<symbol>"),
    CommandSpec("setsudo", "cmd_setsudo", Access.OWNER, usage="<id> or reply"),
    CommandSpec("delsudo", "cmd_delsudo", Access.OWNER, usage="<id> or reply"),
    CommandSpec("getsudo", "cmd_getsudo", Access.SUDO, usage="list sudo users"),
    CommandSpec("sudo", "cmd_sudo", Access.SUDO, usage="sudo-only menu"),
    CommandSpec("ban", "cmd_ban", Access.SUDO, usage="<id> or reply"),
    CommandSpec("unban", "cmd_unban", Access.SUDO, usage="<id> or reply"),
    CommandSpec("banlist", "cmd_banlist", Access.SUDO, usage="list banned users"),
    CommandSpec("kick", "cmd_kick", Access.SUDO, usage="<id> or reply (groups)"),
    CommandSpec("invite", "cmd_invite", Access.SUDO, usage="group invite link"),
    CommandSpec("restart", "cmd_shutdown", Access.OWNER, usage="exit for the supervisor to restart"),
    CommandSpec("shutdown", "cmd_shutdown", Access.OWNER, usage="stop the bot"),
)


class BotCommandsMixin:
    @staticmethod
    def _build_command_table() -> dict[str, CommandSpec]:
        table: dict[str, CommandSpec] = {}
        for spec in COMMAND_SPECS:
            table[spec.name] = spec
            for alias in spec.aliases:
                table[alias] = spec
        return table

    @staticmethod
    def _resolve_target(arg_string: str, event: InboundEvent) -> str:
        """Identity from the first argument, else the sender of the replied-to message."""
        token = (arg_string or "").split()[0] if (arg_string or "").strip() else ""
        token = token.lstrip("@+")
        if token:
            return normalize(token)
        return normalize(event.reply_to_sender or "")

    # ── /ping ─────────────────────────────────────────────────

    async def cmd_ping(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        t0 = time.perf_counter()
        await self._send_text(chat_id, "🏓 Pinging...")
        latency = (time.perf_counter() - t0) * 1000
        await self._send_text(chat_id, f"✅ Pong! Response time: {latency:.2f} ms")

    # ── /help ─────────────────────────────────────────────────

    async def cmd_help(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        sub, _, rest = arg_string.strip().partition(" ")
        if sub.lower() in ("user", "profile"):
            await self.cmd_profile(chat_id, actor, rest, event)
            return
        prefix = self.prefix
        lines = [
            f"🤖 {self.registry.bot_name} — Menu",
            "",
            f"🔒 Mode: {'Public' if self.registry.public_mode else 'Private'}",
            "",
            "Commands",
        ]
        for spec in COMMAND_SPECS:
            if spec.access != Access.ANYONE:
                continue
            names = " | ".join(f"{prefix}{n}" for n in (spec.name, *spec.aliases))
            lines.append(f"{names} — {spec.usage}")
        lines.extend(
            [
                "",
                "Games",
                f"{prefix}game create <name> [rounds] [seconds] — owner only, in groups",
                f"{prefix}game join — join the waiting game (open to everyone)",
                f"{prefix}game start | {prefix}game stop — owner only",
                f"{prefix}game status — scores so far",
                f"{self.config.answer_marker} <word> — answer the current round",
                "",
                f"{prefix}menu user [id] — show a profile",
                f"{prefix}sudo — sudo-only menu",
            ]
        )
        await self._send_text(chat_id, "\n".join(lines))

    # ── /uptime ───────────────────────────────────────────────

    async def cmd_uptime(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        await self._send_text(
            chat_id,
            f"⏱ Uptime: {self._uptime_text()}\n"
            f"🔌 Connection: {self.session.state.value} for {self._duration_text(self.session.connected_for())} "
            f"(reconnects: {self.session.reconnect_count})",
        )

    # ── Owner settings ───────────────────────────────────────

    async def cmd_mode(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        mode = arg_string.strip().lower()
        if not mode:
            await self._send_text(chat_id, f"Usage: {self.prefix}mode public|private")
            return
        if mode not in {"public", "private"}:
            await self._send_text(chat_id, "Invalid. Use public or private.")
            return
        self.registry.set_mode(mode == "public")
        log.info(f"[{chat_id}] Mode set to {mode} by {actor}")
        await self._send_text(chat_id, f"✅ Mode set to {mode}")

    async def cmd_setprefix(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        value = arg_string.strip()
        if not value:
            await self._send_text(chat_id, f"Usage: {self.prefix}setprefix <symbol>")
            return
        if value.startswith(self.config.answer_marker) or not self.registry.set_prefix(value):
            await self._send_text(chat_id, "⚠️ Invalid prefix.")
            return
        await self._send_text(chat_id, f'✅ Prefix set to "{value}"')

    # ── Sudo management ──────────────────────────────────────

    async def cmd_setsudo(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        target = self._resolve_target(arg_string, event)
        if not target:
            await self._send_text(chat_id, f"Usage: {self.prefix}setsudo <id> or reply with {self.prefix}setsudo")
            return
        self.registry.add_sudo(target)
        await self._send_text(chat_id, f"✅ Added sudo: {target}")

    async def cmd_delsudo(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        target = self._resolve_target(arg_string, event)
        if not target:
            await self._send_text(chat_id, f"Usage: {self.prefix}delsudo <id> or reply with {self.prefix}delsudo")
            return
        if self.registry.is_owner(target):
            await self._send_text(chat_id, "⚠️ The owner always keeps sudo.")
            return
        self.registry.remove_sudo(target)
        await self._send_text(chat_id, f"❌ Removed sudo: {target}")

    async def cmd_getsudo(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        await self._send_text(chat_id, "🧾 Sudo users:\n" + "\n".join(self.registry.sudo_list()))

    async def cmd_sudo(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        names = [f"{self.prefix}{spec.name} — {spec.usage}" for spec in COMMAND_SPECS if spec.access != Access.ANYONE]
        await self._send_text(chat_id, "🛡️ Admin/Sudo commands:\n\n" + "\n".join(names))

    # ── Ban management ───────────────────────────────────────

    async def cmd_banlist(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        banned = self.registry.banned_list()
        if not banned:
            await self._send_text(chat_id, "✅ Nobody is banned.")
            return
        await self._send_text(chat_id, "⛔ Banned users:\n" + "\n".join(banned))

    async def cmd_ban(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        target = self._resolve_target(arg_string, event)
        if not target:
            await self._send_text(chat_id, f"Usage: {self.prefix}ban <id> or reply with {self.prefix}ban")
            return
        if self.registry.is_owner(target):
            await self._send_text(chat_id, "⚠️ The owner cannot be banned.")
            return
        self.registry.ban(target)
        await self._send_text(chat_id, f"⛔ Banned {target}")

    async def cmd_unban(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        target = self._resolve_target(arg_string, event)
        if not target:
            await self._send_text(chat_id, f"Usage: {self.prefix}unban <id> or reply with {self.prefix}unban")
            return
        self.registry.unban(target)
        await self._send_text(chat_id, f"✅ Unbanned {target}")

    # ── /restart, /shutdown ──────────────────────────────────

    async def cmd_shutdown(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        await self._send_text(chat_id, "⏹️ Shutting down...")
        log.info(f"Owner requested shutdown from {chat_id}.")
        if self._request_stop:
            self._request_stop("owner request")
