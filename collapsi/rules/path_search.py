"""Legal destination search.

Paths are simple (no card twice in one turn), never touch a collapsed card,
and must end on an unoccupied card other than the start. Depth is at most
four and branching at most four, so an exhaustive search is cheap; it runs
on an explicit stack so each expansion can be followed step by step.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Dict, List, Optional, Tuple

from ..board_manager import BoardManager
from ..metrics import LEGAL_DESTINATION_LATENCY
from ..models import (
    MAX_JOKER_DISTANCE,
    BoardState,
    CardType,
    PathOption,
    Position,
)
from .geometry import BoardGeometry

__all__ = ["enumerate_paths", "legal_destinations", "has_legal_destination"]

logger = logging.getLogger(__name__)


def enumerate_paths(
    board: BoardState,
    start: Position,
    length: int,
    *,
    occupied: Optional[AbstractSet[Position]] = None,
    block_occupied: bool = False,
) -> List[PathOption]:
    """Return one exemplar path for every destination reachable from
    ``start`` in exactly ``length`` steps.

    ``occupied`` defaults to the occupants recorded on the board. With
    ``block_occupied`` an occupied card may not be crossed either, not just
    not landed on.

    Neighbours are pushed in reverse search order, so the first complete
    path to reach a destination is the one with the lexicographically
    smallest direction sequence (up < down < left < right).
    """
    if length < 1:
        return []
    if occupied is None:
        occupied = BoardManager.occupied_positions(board)

    found: Dict[Position, Tuple[Position, ...]] = {}
    stack: List[Tuple[Position, ...]] = [(start,)]
    expansions = 0

    while stack:
        path = stack.pop()
        if len(path) - 1 == length:
            destination = path[-1]
            if (
                destination != start
                and destination not in occupied
                and destination not in found
            ):
                found[destination] = path
            continue

        expansions += 1
        for nxt in reversed(BoardGeometry.neighbors(path[-1], board.size)):
            if nxt in path:
                continue
            if BoardManager.is_collapsed(nxt, board):
                continue
            if block_occupied and nxt in occupied:
                continue
            stack.append(path + (nxt,))

    logger.debug(
        "Path search from %s length=%d: %d expansions, %d destinations",
        start.to_key(),
        length,
        expansions,
        len(found),
    )
    return [
        PathOption(destination=dest, path=list(found[dest]))
        for dest in sorted(found, key=lambda p: (p.row, p.col))
    ]


def legal_destinations(
    board: BoardState,
    position: Position,
    card_type: CardType,
    *,
    occupied: Optional[AbstractSet[Position]] = None,
) -> List[PathOption]:
    """All legal destinations for a pawn on ``position`` holding a
    ``card_type`` card.

    Numbered cards need an exact length. Jokers take the union over lengths
    1-4; joker steps are landings, so occupied cards block them mid-path.
    For a destination reachable at several joker lengths the shortest path
    is kept.
    """
    card_type = CardType(card_type)
    kind = "joker" if card_type.is_joker else "numbered"
    with LEGAL_DESTINATION_LATENCY.labels(kind).time():
        if not card_type.is_joker:
            return enumerate_paths(
                board, position, card_type.distance, occupied=occupied
            )

        merged: Dict[Position, PathOption] = {}
        for length in range(1, MAX_JOKER_DISTANCE + 1):
            for option in enumerate_paths(
                board,
                position,
                length,
                occupied=occupied,
                block_occupied=True,
            ):
                merged.setdefault(option.destination, option)
        return [
            merged[dest] for dest in sorted(merged, key=lambda p: (p.row, p.col))
        ]


def has_legal_destination(
    board: BoardState,
    position: Position,
    card_type: CardType,
    *,
    occupied: Optional[AbstractSet[Position]] = None,
) -> bool:
    return bool(legal_destinations(board, position, card_type, occupied=occupied))
