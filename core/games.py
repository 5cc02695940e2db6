"""Per-chat word game scheduler: timed rounds, concurrent answers, scoring."""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable

from storage import JsonStore

from .access import AccessRegistry
from .constants import (
    ELIMINATION_FROM_ROUND,
    GAMES_DOC,
    MIN_WORD_LENGTH_RANGE,
    OWNER_ONLY_TEXT,
    POINTS_PER_CORRECT,
    ROUND_LETTERS,
)
from .identity import normalize
from .logging_setup import log
from .types import Game, GameStatus, Participant, RoundContext


class GameError(RuntimeError):
    """Raised for user-facing game errors."""


class GameScheduler:
    """Owns every `Game` record and the round loop task of each chat.

    Only this class mutates `Game.status` and `Game.round`. Round loops are
    cancelled on `stop` and on `shutdown`; a persisted `running` game found at
    startup is marked finished since its loop cannot be resumed.
    """

    def __init__(
        self,
        store: JsonStore,
        registry: AccessRegistry,
        send: Callable[[str, str], Awaitable[object]],
        validator,
        *,
        max_rounds: int = 50,
        max_round_sec: int = 600,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.registry = registry
        self._send = send
        self._validator = validator
        self.max_rounds = max_rounds
        self.max_round_sec = max_round_sec
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._games: dict[str, Game] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._load()

    # ── Persistence ──────────────────────────────────────────

    def _load(self):
        data = self.store.load(GAMES_DOC, {})
        if not isinstance(data, dict):
            return
        aborted = 0
        for chat_id, raw in data.items():
            try:
                game = Game.from_dict(raw)
            except Exception as e:
                log.warning(f"[{chat_id}] Skipping unreadable game record: {e}")
                continue
            if game.status == GameStatus.RUNNING:
                game.status = GameStatus.FINISHED
                game.round = None
                aborted += 1
            self._games[normalize(chat_id)] = game
        if aborted:
            log.info(f"Marked {aborted} interrupted game(s) as finished")
            self._persist()

    def _persist(self):
        try:
            self.store.save(GAMES_DOC, {chat_id: g.to_dict() for chat_id, g in self._games.items()})
        except Exception as e:
            log.warning(f"Failed to save {GAMES_DOC}.json: {e}")

    # ── Queries ──────────────────────────────────────────────

    def get(self, chat_id: str) -> Game | None:
        return self._games.get(normalize(chat_id))

    def running_count(self) -> int:
        return sum(1 for g in self._games.values() if g.status == GameStatus.RUNNING)

    def status(self, chat_id: str) -> dict | None:
        """Read-only snapshot of a chat's game."""
        game = self.get(chat_id)
        if game is None:
            return None
        return {
            "name": game.name,
            "status": game.status.value,
            "round": game.current_round,
            "rounds": game.rounds,
            "time_per_round": game.time_per_round,
            "accepting_answers": bool(game.round and game.round.accepting_answers),
            "scores": {pid: p.score for pid, p in game.participants.items()},
        }

    # ── Commands ─────────────────────────────────────────────

    def create(
        self,
        chat_id: str,
        issuer: str,
        name: str,
        rounds: int,
        time_per_round: int,
        *,
        is_group: bool,
    ) -> Game:
        if not self.registry.is_owner(issuer):
            raise GameError(OWNER_ONLY_TEXT)
        if not is_group:
            raise GameError("⚠️ Games can only be created in a group chat.")
        chat = normalize(chat_id)
        existing = self._games.get(chat)
        if existing and existing.status == GameStatus.RUNNING:
            raise GameError("⚠️ A game is already running here. Stop it first.")
        if not 1 <= rounds <= self.max_rounds:
            raise GameError(f"⚠️ Rounds must be between 1 and {self.max_rounds}.")
        if not 1 <= time_per_round <= self.max_round_sec:
            raise GameError(f"⚠️ Seconds per round must be between 1 and {self.max_round_sec}.")

        game = Game(
            chat_id=chat,
            name=(name or "Word Game").strip()[:64],
            rounds=rounds,
            time_per_round=time_per_round,
            created_by=normalize(issuer),
        )
        self._games[chat] = game
        self._persist()
        log.info(f"[{chat}] Game '{game.name}' created: {rounds} round(s) x {time_per_round}s")
        return game

    def join(self, chat_id: str, participant: str) -> bool:
        """Add a participant while waiting. Returns False if already joined."""
        game = self.get(chat_id)
        if game is None:
            raise GameError("⚠️ There is no game in this chat.")
        if game.status != GameStatus.WAITING:
            raise GameError("⚠️ This game is not accepting new players.")
        pid = normalize(participant)
        if pid in game.participants:
            return False
        game.participants[pid] = Participant()
        self._persist()
        return True

    def start(self, chat_id: str, issuer: str) -> Game:
        if not self.registry.is_owner(issuer):
            raise GameError(OWNER_ONLY_TEXT)
        game = self.get(chat_id)
        if game is None:
            raise GameError("⚠️ There is no game in this chat.")
        if game.status != GameStatus.WAITING:
            raise GameError("⚠️ Only a waiting game can be started.")
        if not game.participants:
            raise GameError("⚠️ At least one player must join before starting.")

        game.status = GameStatus.RUNNING
        game.current_round = 0
        game.round = None
        self._persist()
        self._tasks[game.chat_id] = asyncio.create_task(self._run_rounds(game))
        log.info(f"[{game.chat_id}] Game '{game.name}' started with {len(game.participants)} player(s)")
        return game

    def stop(self, chat_id: str, issuer: str) -> Game:
        if not self.registry.is_owner(issuer):
            raise GameError(OWNER_ONLY_TEXT)
        game = self.get(chat_id)
        if game is None or game.status == GameStatus.FINISHED:
            raise GameError("⚠️ There is no active game in this chat.")
        if game.status == GameStatus.WAITING:
            raise GameError("⚠️ This game has not started yet. Create a new one to replace it.")
        self._finish(game)
        self._cancel_task(game.chat_id)
        log.info(f"[{game.chat_id}] Game '{game.name}' stopped by owner at round {game.current_round}")
        return game

    async def shutdown(self):
        tasks = [t for t in self._tasks.values() if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    # ── Answer intake ────────────────────────────────────────

    async def on_answer(self, chat_id: str, participant: str, token: str) -> str | None:
        """Validate and credit an answer. Returns an acknowledgment, or None to stay silent."""
        game = self.get(chat_id)
        if game is None or game.status != GameStatus.RUNNING:
            return None
        ctx = game.round
        if ctx is None or not ctx.accepting_answers:
            return "⌛ No round is open right now."

        pid = normalize(participant)
        if pid not in game.participants:
            return "⚠️ You are not playing in this game."
        if pid in ctx.correct:
            return "✅ You already scored this round."

        word = (token or "").strip().lower()
        if not word.startswith(ctx.letter.lower()):
            return f"❌ '{word}' does not start with {ctx.letter}."
        if len(word) < ctx.min_length:
            return f"❌ '{word}' is shorter than {ctx.min_length} letters."

        try:
            valid = await self._validator.is_valid(word)
        except Exception as e:
            log.error(f"[{game.chat_id}] Answer validation failed for '{word}': {e}")
            valid = False
        if not valid:
            return f"❌ '{word}' is not a valid word."

        # The round may have closed (or been replaced) while validation ran.
        if game.round is not ctx or not ctx.accepting_answers or game.status != GameStatus.RUNNING:
            log.info(f"[{game.chat_id}] Answer from {pid} arrived after round {ctx.number} closed; dropped")
            return None

        ctx.correct.add(pid)
        self._persist()
        log.info(f"[{game.chat_id}] Answer '{word}' accepted from {pid} in round {ctx.number}")
        return f"✅ '{word}' accepted!"

    # ── Round loop ───────────────────────────────────────────

    async def _run_rounds(self, game: Game):
        chat_id = game.chat_id
        try:
            while self._games.get(chat_id) is game and game.status == GameStatus.RUNNING:
                game.current_round += 1
                if game.current_round > game.rounds:
                    self._finish(game)
                    await self._send(chat_id, self._winner_text(game))
                    return
                await self._play_round(game)
        except asyncio.CancelledError:
            log.info(f"[{chat_id}] Round loop cancelled at round {game.current_round}")
            raise
        except Exception as e:
            log.error(f"[{chat_id}] Round loop stopped due to error: {e}")
        finally:
            if self._tasks.get(chat_id) is asyncio.current_task():
                self._tasks.pop(chat_id, None)

    async def _play_round(self, game: Game):
        number = game.current_round
        letter = ROUND_LETTERS[(number - 1) % len(ROUND_LETTERS)]
        min_length = self._rng.randint(*MIN_WORD_LENGTH_RANGE)
        ctx = RoundContext(number=number, letter=letter, min_length=min_length)
        game.round = ctx
        self._persist()
        log.info(f"[{game.chat_id}] Round {number}/{game.rounds} open: letter {letter}, min length {min_length}")
        await self._send(
            game.chat_id,
            f"🎯 Round {number}/{game.rounds}\n"
            f"Send a word starting with \"{letter}\", at least {min_length} letters long.\n"
            f"You have {game.time_per_round}s.",
        )

        await self._sleep(game.time_per_round)

        ctx.accepting_answers = False
        if game.status != GameStatus.RUNNING:
            return
        for pid in ctx.correct:
            player = game.participants.get(pid)
            if player is not None:
                player.score += POINTS_PER_CORRECT
        game.round = None

        eliminated: list[str] = []
        if number >= ELIMINATION_FROM_ROUND:
            eliminated = [pid for pid, p in game.participants.items() if p.score <= 0]
            for pid in eliminated:
                del game.participants[pid]
        self._persist()
        log.info(
            f"[{game.chat_id}] Round {number} closed: {len(ctx.correct)} correct, {len(eliminated)} eliminated"
        )
        await self._send(game.chat_id, self._tally_text(game, ctx, eliminated))

    def _finish(self, game: Game):
        game.status = GameStatus.FINISHED
        if game.round is not None:
            game.round.accepting_answers = False
        game.round = None
        self._persist()

    def _cancel_task(self, chat_id: str):
        task = self._tasks.pop(chat_id, None)
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # ── Announcements ────────────────────────────────────────

    @staticmethod
    def winner(game: Game) -> tuple[str, int] | None:
        """Highest score; ties go to the earliest joined participant."""
        best: tuple[str, int] | None = None
        for pid, player in game.participants.items():
            if best is None or player.score > best[1]:
                best = (pid, player.score)
        return best

    @staticmethod
    def _scoreboard(game: Game) -> list[str]:
        ranked = sorted(game.participants.items(), key=lambda item: -item[1].score)
        return [f"{i}. {pid} — {p.score} pts" for i, (pid, p) in enumerate(ranked, 1)]

    def _tally_text(self, game: Game, ctx: RoundContext, eliminated: list[str]) -> str:
        lines = [f"⏱ Round {ctx.number} over! {len(ctx.correct)} correct answer(s)."]
        lines.extend(self._scoreboard(game))
        if eliminated:
            lines.append("")
            lines.append("🚫 Eliminated: " + ", ".join(eliminated))
        return "\n".join(lines)

    def _winner_text(self, game: Game) -> str:
        best = self.winner(game)
        lines = [f"🏁 Game '{game.name}' finished!"]
        if best is None:
            lines.append("No players left standing. No winner this time.")
        else:
            lines.append(f"🏆 Winner: {best[0]} with {best[1]} pts")
        lines.extend(self._scoreboard(game))
        return "\n".join(lines)
