"""Inbound event handling: dedupe, classification, authorization, dispatch."""

from __future__ import annotations

import re
import time

from ..constants import OWNER_ONLY_TEXT, SUDO_ONLY_TEXT
from ..identity import normalize, same_party
from ..logging_setup import log
from ..types import Access, CommandSpec, InboundEvent, ParsedMessage


def classify_text(text: str, prefix: str, answer_marker: str) -> ParsedMessage | None:
    """Resolve a message into a command or a game answer, or None to ignore it.

    The answer marker is checked before the command prefix, so answers work
    whatever prefix is configured.
    """
    stripped = (text or "").strip()
    if not stripped:
        return None

    if answer_marker and stripped.startswith(answer_marker + " "):
        answer = stripped[len(answer_marker):].strip()
        if answer:
            return ParsedMessage(kind="answer", arg_string=answer.split()[0])
        return None

    if not prefix or not stripped.startswith(prefix):
        return None
    body = stripped[len(prefix):].strip()
    if not body:
        return None
    parts = re.split(r"\s+", body, maxsplit=1)
    command = parts[0].lower()
    arg_string = parts[1].strip() if len(parts) > 1 else ""
    return ParsedMessage(kind="command", command=command, arg_string=arg_string)


def _open_in_private(spec: CommandSpec | None, parsed: ParsedMessage) -> bool:
    if spec is None or not spec.open_subcommands:
        return False
    sub = parsed.arg_string.split(maxsplit=1)[0].lower() if parsed.arg_string.strip() else ""
    return sub in spec.open_subcommands


class BotHandlersMixin:
    async def handle_event(self, event: InboundEvent):
        """Entry point for every inbound message; faults are reported to the owner."""
        try:
            await self._handle_event(event)
        except Exception as e:
            log.exception(f"[{getattr(event, 'chat_id', '?')}] Handler error: {e}")
            await self._notify_owner(f"⚠️ Handler error: {str(e)[:1000]}")

    async def _handle_event(self, event: InboundEvent):
        if not event or not event.chat_id:
            return

        chat_id = normalize(event.chat_id)
        actor = normalize(event.sender_id or event.chat_id)
        if not chat_id or not actor:
            return

        # A secondary login must not re-trigger its own commands.
        self_id = normalize(self.session.self_id or "")
        if event.from_me and self_id and not same_party(self_id, self.registry.owner):
            return

        message_id = event.message_id or f"{event.chat_id}_{time.time_ns()}"
        if not self.processed.check_and_add(message_id):
            return

        if self.registry.is_banned(actor):
            log.info(f"[{chat_id}] Sender banned: {actor}")
            return

        parsed = classify_text(event.text, self.prefix, self.config.answer_marker)
        if parsed is None:
            return

        self._log_user_message(chat_id, actor, event.text)

        if parsed.kind == "answer":
            reply = await self.games.on_answer(chat_id, actor, parsed.arg_string)
            if reply:
                await self._send_text(chat_id, reply)
            return

        spec = self._commands.get(parsed.command)
        if not self.registry.public_mode and not self.registry.is_sudo(actor):
            if not _open_in_private(spec, parsed):
                return

        if spec is None:
            await self._send_text(chat_id, f'❓ Unknown command "{parsed.command}". Type {self.prefix}help')
            return

        if spec.access == Access.OWNER and not self.registry.is_owner(actor):
            await self._send_text(chat_id, OWNER_ONLY_TEXT)
            return
        if spec.access == Access.SUDO and not self.registry.is_sudo(actor):
            await self._send_text(chat_id, SUDO_ONLY_TEXT)
            return

        handler = getattr(self, spec.handler)
        await handler(chat_id, actor, parsed.arg_string, event)
