from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .models import JokerEndReason, MoveRejection, Position


@dataclass(frozen=True)
class MoveApplied:
    player_id: str
    path: Tuple[Position, ...]
    collapsed: Position
    joker: bool
    move_number: int


@dataclass(frozen=True)
class JokerStepTaken:
    player_id: str
    position: Position
    steps_taken: int
    must_end: bool


@dataclass(frozen=True)
class JokerTurnCompleted:
    player_id: str
    steps_taken: int
    end_reason: JokerEndReason


@dataclass(frozen=True)
class TurnChanged:
    previous_player_id: str
    player_id: str
    joker_turn: bool


@dataclass(frozen=True)
class GameEnded:
    winner_id: str
    loser_id: str


@dataclass(frozen=True)
class MoveRejected:
    player_id: Optional[str]
    reason: MoveRejection
    message: Optional[str]
