"""Outgoing text: chunking and logged sends through the session."""

from __future__ import annotations

from ..logging_setup import log


class BotMessagingMixin:
    @staticmethod
    def _chunk_message(text: str, max_len: int = 3500) -> list[str]:
        """Split a long message into chunks that fit Telegram's limit.

        Splits at newline boundaries to avoid breaking words.
        """
        if len(text) <= max_len:
            return [text]

        chunks = []
        while text:
            if len(text) <= max_len:
                chunks.append(text)
                break

            # Find the last newline within the limit
            split_at = text.rfind("\n", 0, max_len)
            if split_at <= 0:
                # No newline found: split at max_len
                split_at = max_len

            chunks.append(text[:split_at])
            text = text[split_at:].lstrip("\n")

        return chunks

    async def _send_text(self, chat_id: str, text: str) -> bool:
        """Send text (chunked) via the session. Returns True if every chunk went out."""
        if not text:
            return True
        chunks = self._chunk_message(text)
        delivered = True
        for chunk in chunks:
            self._log_bot_message(chat_id, chunk)
            if await self.session.safe_send(chat_id, chunk) is None:
                delivered = False
        if len(chunks) > 1:
            log.info(f"[{chat_id}] Long reply split into {len(chunks)} messages ({len(text)} chars)")
        return delivered

    async def _notify_owner(self, text: str):
        owner = self.registry.owner
        if owner:
            await self._send_text(owner, text)
