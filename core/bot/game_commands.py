"""Game command handlers: thin wrappers translating GameError into replies."""

from __future__ import annotations

from ..games import GameError
from ..types import InboundEvent


class BotGameCommandsMixin:
    def _game_usage_text(self) -> str:
        prefix = self.prefix
        return (
            "Usage\n"
            f"{prefix}game create <name> [rounds] [seconds]\n"
            f"{prefix}game join\n"
            f"{prefix}game start\n"
            f"{prefix}game status\n"
            f"{prefix}game stop"
        )

    async def cmd_game(self, chat_id: str, actor: str, arg_string: str, event: InboundEvent):
        parts = arg_string.split()
        sub = parts[0].lower() if parts else ""
        args = parts[1:]
        handlers = {
            "create": self._game_create,
            "join": self._game_join,
            "start": self._game_start,
            "status": self._game_status,
            "stop": self._game_stop,
        }
        handler = handlers.get(sub)
        if handler is None:
            await self._send_text(chat_id, self._game_usage_text())
            return
        try:
            reply = await handler(chat_id, actor, args, event)
        except GameError as e:
            reply = str(e)
        await self._send_text(chat_id, reply)

    async def _game_create(self, chat_id: str, actor: str, args: list[str], event: InboundEvent) -> str:
        # Trailing integers are rounds and seconds; the rest is the name.
        numbers: list[int] = []
        words = list(args)
        while words and words[-1].isdigit() and len(numbers) < 2:
            numbers.insert(0, int(words.pop()))
        rounds = numbers[0] if numbers else 5
        seconds = numbers[1] if len(numbers) > 1 else 30
        name = " ".join(words) or "Word Game"

        game = self.games.create(chat_id, actor, name, rounds, seconds, is_group=event.is_group)
        return (
            f"🎮 Game '{game.name}' created: {game.rounds} round(s), {game.time_per_round}s each.\n"
            f"Join with {self.prefix}game join, then the owner starts with {self.prefix}game start."
        )

    async def _game_join(self, chat_id: str, actor: str, args: list[str], event: InboundEvent) -> str:
        if self.games.join(chat_id, actor):
            game = self.games.get(chat_id)
            return f"✅ {actor} joined. Players: {len(game.participants)}"
        return f"ℹ️ {actor} is already in the game."

    async def _game_start(self, chat_id: str, actor: str, args: list[str], event: InboundEvent) -> str:
        game = self.games.start(chat_id, actor)
        return (
            f"🚀 '{game.name}' is starting with {len(game.participants)} player(s)!\n"
            f"Answer with: {self.config.answer_marker} <word>"
        )

    async def _game_status(self, chat_id: str, actor: str, args: list[str], event: InboundEvent) -> str:
        snap = self.games.status(chat_id)
        if snap is None:
            return "ℹ️ No game in this chat."
        lines = [
            f"🎮 {snap['name']} — {snap['status']}",
            f"Round {snap['round']}/{snap['rounds']} ({snap['time_per_round']}s each)",
        ]
        if snap["accepting_answers"]:
            lines.append("Answers are open.")
        scores = snap["scores"]
        if scores:
            lines.append("")
            lines.extend(f"{pid}: {score} pts" for pid, score in scores.items())
        else:
            lines.append("No players yet.")
        return "\n".join(lines)

    async def _game_stop(self, chat_id: str, actor: str, args: list[str], event: InboundEvent) -> str:
        game = self.games.stop(chat_id, actor)
        best = self.games.winner(game)
        if best is None:
            return f"⏹️ Game '{game.name}' stopped."
        return f"⏹️ Game '{game.name}' stopped. Leader: {best[0]} with {best[1]} pts"
