"""Toroidal grid geometry for the 4x4 Collapsi board.

Every card has exactly four orthogonal neighbours: leaving one edge re-enters
on the opposite edge. A single modular step rule covers edges and interior
alike, so no caller needs to special-case wraparound.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from ..models import BOARD_SIZE, Position

__all__ = ["BoardGeometry", "DIRECTIONS", "DIRECTION_NAMES"]

# Search order is fixed; exemplar paths are chosen by it.
DIRECTIONS: Tuple[Tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
DIRECTION_NAMES: Tuple[str, ...] = ("up", "down", "left", "right")


class BoardGeometry:
    """Coordinate arithmetic on the wraparound grid."""

    @staticmethod
    def is_on_board(position: object, size: int = BOARD_SIZE) -> bool:
        """Return True if ``position`` is a Position inside the grid."""
        if not isinstance(position, Position):
            return False
        return 0 <= position.row < size and 0 <= position.col < size

    @staticmethod
    def step(
        position: Position, direction: Tuple[int, int], size: int = BOARD_SIZE
    ) -> Position:
        dr, dc = direction
        # Python's % is already non-negative for a positive modulus.
        return Position(
            row=(position.row + dr) % size,
            col=(position.col + dc) % size,
        )

    @staticmethod
    def neighbors(position: Position, size: int = BOARD_SIZE) -> List[Position]:
        """The four orthogonal neighbours in search order."""
        return [BoardGeometry.step(position, d, size) for d in DIRECTIONS]

    @staticmethod
    def direction_between(
        a: Position, b: Position, size: int = BOARD_SIZE
    ) -> int | None:
        """Index into ``DIRECTIONS`` of the single step a -> b, or None."""
        for index, direction in enumerate(DIRECTIONS):
            if BoardGeometry.step(a, direction, size) == b:
                return index
        return None

    @staticmethod
    def is_adjacent(a: Position, b: Position, size: int = BOARD_SIZE) -> bool:
        return BoardGeometry.direction_between(a, b, size) is not None

    @staticmethod
    def all_positions(size: int = BOARD_SIZE) -> List[Position]:
        return [Position(row=r, col=c) for r in range(size) for c in range(size)]

    @staticmethod
    def path_length(path: Sequence[Position]) -> int:
        """Number of steps in a path (positions minus one)."""
        return max(len(path) - 1, 0)

    @staticmethod
    def direction_names(
        path: Sequence[Position], size: int = BOARD_SIZE
    ) -> List[str]:
        """Step names along ``path``; ``"?"`` marks a non-adjacent step."""
        names = []
        for a, b in zip(path, path[1:]):
            index = BoardGeometry.direction_between(a, b, size)
            names.append(DIRECTION_NAMES[index] if index is not None else "?")
        return names

    @staticmethod
    def describe_path(path: Sequence[Position]) -> str:
        """``"0,0 -> 0,1 -> 1,1 (right, down)"`` for log messages."""
        path = list(path)
        text = " -> ".join(p.to_key() for p in path)
        if len(path) > 1:
            text += f" ({', '.join(BoardGeometry.direction_names(path))})"
        return text
