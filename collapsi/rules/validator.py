"""Re-derive legality of an externally supplied path.

The checks run in a fixed order and stop at the first failure, so every
rejection carries exactly one stable ``MoveRejection``:

1. the path is well formed and starts on the mover's card
2. every step is a single orthogonal wraparound step
3. no card repeats
4. no card after the start is collapsed
5. the length matches the origin card (exact, or 1-4 for a joker)
6. the destination is not the start
7. the destination is free (for jokers, every step is a landing and must
   be free)

Expected violations are returned, never raised. A board that contradicts
itself raises ``InvalidStateError``.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Any, Optional, Sequence

from ..board_manager import BoardManager
from ..models import (
    MAX_JOKER_DISTANCE,
    BoardState,
    CardType,
    JokerMoveState,
    MoveRejection,
    Player,
    Position,
    ValidationResult,
)
from .geometry import BoardGeometry

__all__ = ["check_path", "validate_move", "validate_joker_step"]

logger = logging.getLogger(__name__)


def _is_path_shaped(path: Any) -> bool:
    return isinstance(path, (list, tuple)) and len(path) > 0


def check_path(
    board: BoardState,
    occupied: AbstractSet[Position],
    start: Position,
    path: Sequence[Position],
    card_type: CardType,
) -> ValidationResult:
    """Run the seven ordered checks for a path leaving ``start``."""
    if not _is_path_shaped(path) or not all(
        BoardGeometry.is_on_board(p, board.size) for p in path
    ):
        return ValidationResult.reject(
            MoveRejection.INVALID_INPUT,
            "Path must be a non-empty sequence of on-board positions",
        )

    if path[0] != start:
        return ValidationResult.reject(
            MoveRejection.WRONG_START,
            f"Path starts at {path[0].to_key()}, player is on {start.to_key()}",
        )

    for i in range(1, len(path)):
        if not BoardGeometry.is_adjacent(path[i - 1], path[i], board.size):
            return ValidationResult.reject(
                MoveRejection.NOT_ADJACENT,
                f"Step {i} from {path[i - 1].to_key()} to {path[i].to_key()} "
                "is not a single orthogonal step",
            )

    seen: set[Position] = set()
    for i, position in enumerate(path):
        if position in seen:
            return ValidationResult.reject(
                MoveRejection.REVISITED,
                f"Position {position.to_key()} revisited at step {i}",
            )
        seen.add(position)

    for i, position in enumerate(path[1:], start=1):
        if BoardManager.is_collapsed(position, board):
            return ValidationResult.reject(
                MoveRejection.COLLAPSED,
                f"Step {i} crosses collapsed card at {position.to_key()}",
            )

    distance = len(path) - 1
    if card_type.is_joker:
        if not 1 <= distance <= MAX_JOKER_DISTANCE:
            return ValidationResult.reject(
                MoveRejection.WRONG_DISTANCE,
                f"Joker moves 1-{MAX_JOKER_DISTANCE} spaces, path has {distance}",
            )
    elif distance != card_type.distance:
        return ValidationResult.reject(
            MoveRejection.WRONG_DISTANCE,
            f"Card '{card_type.value}' requires exactly {card_type.distance} "
            f"spaces, path has {distance}",
        )

    destination = path[-1]
    if destination == start:
        return ValidationResult.reject(
            MoveRejection.ENDS_ON_START, "Cannot end move on starting card"
        )

    landings = path[1:] if card_type.is_joker else path[-1:]
    for position in landings:
        if position in occupied:
            return ValidationResult.reject(
                MoveRejection.OCCUPIED,
                f"Card at {position.to_key()} is occupied",
            )

    return ValidationResult.ok()


def _mover_context(
    board: BoardState,
    players: Sequence[Player],
    mover_id: Any,
    strict: bool,
) -> tuple[Optional[Player], Optional[CardType]]:
    if strict:
        BoardManager.assert_consistent(board, players)
    mover = BoardManager.get_player(players, mover_id) if isinstance(mover_id, str) else None
    if mover is None or mover.position is None:
        return None, None
    card = BoardManager.get_card(mover.position, board)
    if card is None:
        return None, None
    return mover, card.type


def validate_move(
    board: BoardState,
    players: Sequence[Player],
    path: Sequence[Position],
    mover_id: str,
    *,
    strict: bool = True,
) -> ValidationResult:
    """Validate a complete candidate path for ``mover_id``."""
    mover, card_type = _mover_context(board, players, mover_id, strict)
    if mover is None:
        result = ValidationResult.reject(
            MoveRejection.INVALID_INPUT, f"Unknown or unplaced player: {mover_id!r}"
        )
    else:
        occupied = BoardManager.occupied_positions(board, players)
        result = check_path(board, occupied, mover.position, path, card_type)

    if not result.valid:
        logger.debug("Rejected path for %s: %s", mover_id, result.message)
    return result


def validate_joker_step(
    board: BoardState,
    players: Sequence[Player],
    joker_state: Optional[JokerMoveState],
    next_step: Position,
    *,
    strict: bool = True,
) -> ValidationResult:
    """Validate one more step of a joker turn against the whole turn so far."""
    if joker_state is None or not joker_state.active:
        return ValidationResult.reject(
            MoveRejection.NO_ACTIVE_JOKER, "No active joker turn to extend"
        )
    if joker_state.must_end or joker_state.steps_taken >= MAX_JOKER_DISTANCE:
        return ValidationResult.reject(
            MoveRejection.JOKER_MUST_END, "Joker turn has no steps remaining"
        )

    mover, card_type = _mover_context(board, players, joker_state.player_id, strict)
    if mover is None:
        return ValidationResult.reject(
            MoveRejection.INVALID_INPUT,
            f"Unknown or unplaced player: {joker_state.player_id!r}",
        )
    if not card_type.is_joker or mover.position != joker_state.origin:
        return ValidationResult.reject(
            MoveRejection.NOT_A_JOKER,
            "Joker turn does not start on the player's joker card",
        )

    occupied = BoardManager.occupied_positions(board, players)
    return check_path(
        board,
        occupied,
        joker_state.origin,
        list(joker_state.path) + [next_step],
        card_type,
    )
