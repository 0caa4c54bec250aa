"""Validate-then-commit for complete paths on bare board/player snapshots."""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..board_manager import BoardManager
from ..models import AppliedMove, BoardState, Player, Position
from .validator import validate_move

__all__ = ["apply_move", "commit_path"]

logger = logging.getLogger(__name__)


def commit_path(
    board: BoardState,
    players: Sequence[Player],
    path: Sequence[Position],
    mover_id: str,
) -> AppliedMove:
    """Collapse the origin, move the pawn to the destination.

    The path must already be validated. Inputs are not modified.
    """
    origin, destination = path[0], path[-1]
    new_board = BoardManager.relocate_pawn(board, mover_id, origin, destination)
    new_players: List[Player] = [
        p.model_copy(update={"position": destination}) if p.id == mover_id else p
        for p in players
    ]
    logger.debug(
        "Committed %s: %s -> %s, collapsed %s",
        mover_id,
        origin.to_key(),
        destination.to_key(),
        origin.to_key(),
    )
    return AppliedMove(
        valid=True,
        board=new_board,
        players=new_players,
        collapsedCell=origin,
    )


def apply_move(
    board: BoardState,
    players: Sequence[Player],
    path: Sequence[Position],
    mover_id: str,
    *,
    strict: bool = True,
) -> AppliedMove:
    """Validate ``path`` for ``mover_id`` and, if legal, commit it.

    A rejected path leaves nothing changed and reports the first failing
    check.
    """
    result = validate_move(board, players, path, mover_id, strict=strict)
    if not result.valid:
        return AppliedMove(valid=False, reason=result.reason, message=result.message)
    return commit_path(board, players, list(path), mover_id)
