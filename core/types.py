"""Shared datatypes for WordArena."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED_RECOVERABLE = "closed_recoverable"
    RECONNECTING = "reconnecting"
    CLOSED_FATAL = "closed_fatal"


@dataclass
class InboundEvent:
    """One inbound chat message as delivered by a transport."""

    message_id: str | None
    chat_id: str
    sender_id: str | None = None
    text: str = ""
    from_me: bool = False
    is_group: bool = False
    reply_to_sender: str | None = None
    raw: Any = None


@dataclass
class ParsedMessage:
    kind: str  # "command" | "answer"
    command: str = ""
    arg_string: str = ""


class Access(str, Enum):
    ANYONE = "anyone"
    SUDO = "sudo"
    OWNER = "owner"


@dataclass(frozen=True)
class CommandSpec:
    name: str
    handler: str
    access: Access = Access.ANYONE
    usage: str = ""
    aliases: tuple[str, ...] = ()
    # Sub-commands anyone may use while the bot is in private mode.
    open_subcommands: tuple[str, ...] = ()


# ── Games ─────────────────────────────────────────────────────


class GameStatus(str, Enum):
    WAITING = "waiting"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class Participant:
    score: int = 0
    joined_at: float = field(default_factory=time.time)


@dataclass
class RoundContext:
    number: int
    letter: str
    min_length: int
    accepting_answers: bool = True
    correct: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        # min_length only lives for the announcement and the open round.
        return {
            "number": self.number,
            "letter": self.letter,
            "accepting_answers": self.accepting_answers,
            "correct": sorted(self.correct),
        }


@dataclass
class Game:
    chat_id: str
    name: str
    rounds: int
    time_per_round: int
    created_by: str = ""
    status: GameStatus = GameStatus.WAITING
    current_round: int = 0
    participants: dict[str, Participant] = field(default_factory=dict)
    round: RoundContext | None = None
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "chat_id": self.chat_id,
            "name": self.name,
            "rounds": self.rounds,
            "time_per_round": self.time_per_round,
            "created_by": self.created_by,
            "status": self.status.value,
            "current_round": self.current_round,
            "participants": {
                pid: {"score": p.score, "joined_at": p.joined_at}
                for pid, p in self.participants.items()
            },
            "round": self.round.to_dict() if self.round else None,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Game":
        participants = {
            str(pid): Participant(
                score=int(info.get("score", 0)),
                joined_at=float(info.get("joined_at", 0.0)),
            )
            for pid, info in (data.get("participants") or {}).items()
        }
        raw_round = data.get("round")
        round_ctx = None
        if isinstance(raw_round, dict):
            round_ctx = RoundContext(
                number=int(raw_round.get("number", 0)),
                letter=str(raw_round.get("letter", "")),
                min_length=0,
                accepting_answers=bool(raw_round.get("accepting_answers", False)),
                correct=set(raw_round.get("correct") or []),
            )
        return cls(
            chat_id=str(data.get("chat_id", "")),
            name=str(data.get("name", "")),
            rounds=int(data.get("rounds", 0)),
            time_per_round=int(data.get("time_per_round", 0)),
            created_by=str(data.get("created_by", "")),
            status=GameStatus(data.get("status", GameStatus.FINISHED.value)),
            current_round=int(data.get("current_round", 0)),
            participants=participants,
            round=round_ctx,
            created_at=float(data.get("created_at", 0.0)),
        )
