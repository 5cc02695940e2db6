"""Group administration and profile command handlers."""

from __future__ import annotations

from ..identity import normalize
from ..logging_setup import log
from ..transport import ADMIN_STATUSES, Transport
from ..types import InboundEvent

GROUP_ONLY_TEXT = "⚠️ This command only works in groups."


class BotGroupCommandsMixin:
    async def _bot_is_admin(self, chat_id: str, transport: Transport) -> bool:
        if not transport.self_id:
            return False
        return await transport.member_status(chat_id, transport.self_id) in ADMIN_STATUSES

    # ── /kick, /invite ───────────────────────────────────────

    async def cmd_kick(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        if not event.is_group:
            await self._send_text(chat_id, GROUP_ONLY_TEXT)
            return
        target = self._resolve_target(arg_string, event)
        if not target:
            await self._send_text(chat_id, f"Usage: {self.prefix}kick <id> or reply to a message with {self.prefix}kick")
            return
        if self.registry.is_owner(target) or target == normalize(self.session.self_id or ""):
            await self._send_text(chat_id, "⚠️ The owner and the bot cannot be removed.")
            return

        try:
            transport = self.session.require_transport()
            if not await self._bot_is_admin(chat_id, transport):
                await self._send_text(chat_id, "⚠️ I must be group admin to remove members.")
                return
            await transport.remove_member(chat_id, target)
        except Exception as e:
            log.error(f"[{chat_id}] Kick of {target} failed: {e}")
            await self._send_text(chat_id, f"⚠️ Kick failed: {e}")
            return
        log.info(f"[{chat_id}] {actor} removed {target}")
        await self._send_text(chat_id, f"✅ Removed: {target}")

    async def cmd_invite(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        # Bots cannot add users directly; the closest equivalent is a fresh invite link.
        if not event.is_group:
            await self._send_text(chat_id, GROUP_ONLY_TEXT)
            return
        try:
            transport = self.session.require_transport()
            if not await self._bot_is_admin(chat_id, transport):
                await self._send_text(chat_id, "⚠️ I must be group admin to invite members.")
                return
            link = await transport.invite_link(chat_id)
        except Exception as e:
            log.error(f"[{chat_id}] Invite link failed: {e}")
            await self._send_text(chat_id, f"⚠️ Invite failed: {e}")
            return
        await self._send_text(chat_id, f"🔗 Invite link: {link}")

    # ── Profiles ─────────────────────────────────────────────

    def _access_label(self, identity: str) -> str:
        if self.registry.is_owner(identity):
            return "Owner"
        if self.registry.is_sudo(identity):
            return "Sudo"
        if self.registry.is_banned(identity):
            return "Banned"
        return "Member"

    async def cmd_profile(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        target = self._resolve_target(arg_string, event) or actor
        info = self.profiles.get(target)
        lines = [
            f"👤 Profile: {target}",
            f"Access: {self._access_label(target)}",
            f"Role: {info.get('role') or '-'}",
            f"Bio: {info.get('bio') or '-'}",
        ]
        game = self.games.get(chat_id)
        if game and target in game.participants:
            lines.append(f"Score in '{game.name}': {game.participants[target].score} pts")
        await self._send_text(chat_id, "\n".join(lines))

    async def cmd_setbio(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        if not arg_string.strip():
            await self._send_text(chat_id, f"Usage: {self.prefix}setbio <your bio>")
            return
        self.profiles.set_bio(actor, arg_string)
        await self._send_text(chat_id, "✅ Bio saved.")

    async def cmd_setrole(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        if not arg_string.strip():
            await self._send_text(chat_id, f"Usage: {self.prefix}setrole <role>")
            return
        self.profiles.set_role(actor, arg_string)
        await self._send_text(chat_id, "✅ Role saved.")
