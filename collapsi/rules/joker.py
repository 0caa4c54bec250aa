"""Joker turn state machine.

A joker lets its holder move 1-4 spaces, taken as committed single steps:

    Idle --start--> Active --step--> Active ... --end--> Idle

Each step is checked against the whole turn so far (no revisits across the
turn, no collapsed or occupied landings). The turn may be ended by the
player after the first step, and is forced to end after the fourth step or
when no further step exists. Ending collapses the joker the turn started
on, not the card the pawn is heading for.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, List, Optional, Sequence

from ..board_manager import BoardManager
from ..models import (
    MAX_JOKER_DISTANCE,
    AppliedMove,
    BoardState,
    JokerEndReason,
    JokerMoveState,
    JokerStepResult,
    MoveRejection,
    Player,
    Position,
)
from .execution import commit_path
from .geometry import BoardGeometry
from .validator import validate_joker_step, validate_move

__all__ = [
    "start_joker_turn",
    "joker_step_options",
    "extend_joker_turn",
    "end_joker_turn",
]

logger = logging.getLogger(__name__)


def start_joker_turn(
    board: BoardState, player_position: Position, player_id: str
) -> JokerStepResult:
    """Open a joker turn for the pawn on ``player_position``."""
    card = (
        BoardManager.get_card(player_position, board)
        if BoardGeometry.is_on_board(player_position, board.size)
        else None
    )
    if card is None:
        return JokerStepResult(
            valid=False,
            reason=MoveRejection.INVALID_INPUT,
            message="Player position is not on the board",
        )
    if not card.type.is_joker:
        return JokerStepResult(
            valid=False,
            reason=MoveRejection.NOT_A_JOKER,
            message=f"Card '{card.type.value}' is not a joker",
        )
    state = JokerMoveState(
        playerId=player_id,
        origin=player_position,
        path=[player_position],
    )
    return JokerStepResult(valid=True, jokerState=state)


def joker_step_options(
    board: BoardState,
    occupied: AbstractSet[Position],
    joker_state: JokerMoveState,
) -> List[Position]:
    """Cards the joker turn could step onto next, in search order."""
    if not joker_state.active or joker_state.steps_taken >= MAX_JOKER_DISTANCE:
        return []
    visited = set(joker_state.path)
    return [
        nxt
        for nxt in BoardGeometry.neighbors(joker_state.current_position, board.size)
        if nxt not in visited
        and nxt not in occupied
        and not BoardManager.is_collapsed(nxt, board)
    ]


def extend_joker_turn(
    joker_state: Optional[JokerMoveState],
    board: BoardState,
    players: Sequence[Player],
    next_step: Position,
    *,
    strict: bool = True,
) -> JokerStepResult:
    """Take one more step. Sets ``must_end`` when the turn cannot go on."""
    result = validate_joker_step(
        board, players, joker_state, next_step, strict=strict
    )
    if not result.valid:
        return JokerStepResult(
            valid=False, reason=result.reason, message=result.message
        )

    steps = joker_state.steps_taken + 1
    extended = joker_state.model_copy(
        update={"path": list(joker_state.path) + [next_step], "steps_taken": steps}
    )
    end_reason: Optional[JokerEndReason] = None
    if steps >= MAX_JOKER_DISTANCE:
        end_reason = JokerEndReason.MAX_DISTANCE
    else:
        occupied = BoardManager.occupied_positions(board, players)
        if not joker_step_options(board, occupied, extended):
            end_reason = JokerEndReason.NO_VALID_STEPS
    if end_reason is not None:
        extended = extended.model_copy(
            update={"must_end": True, "end_reason": end_reason}
        )

    logger.debug(
        "Joker step %d for %s to %s%s",
        steps,
        joker_state.player_id,
        next_step.to_key(),
        f" (must end: {end_reason.value})" if end_reason else "",
    )
    return JokerStepResult(valid=True, jokerState=extended)


def end_joker_turn(
    joker_state: Optional[JokerMoveState],
    board: BoardState,
    players: Sequence[Player],
    *,
    strict: bool = True,
) -> AppliedMove:
    """Complete the turn: collapse the origin joker, land on the last step."""
    if joker_state is None or not joker_state.active:
        return AppliedMove(
            valid=False,
            reason=MoveRejection.NO_ACTIVE_JOKER,
            message="No active joker turn to end",
        )
    if joker_state.steps_taken < 1:
        return AppliedMove(
            valid=False,
            reason=MoveRejection.NO_JOKER_STEPS,
            message="A joker turn needs at least one step before it can end",
        )

    # The steps were checked one by one; re-check the whole turn so a stale
    # joker state cannot be committed over a changed board.
    result = validate_move(
        board, players, joker_state.path, joker_state.player_id, strict=strict
    )
    if not result.valid:
        return AppliedMove(valid=False, reason=result.reason, message=result.message)

    return commit_path(board, players, joker_state.path, joker_state.player_id)
