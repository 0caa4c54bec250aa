"""
Shared pytest fixtures for the Collapsi rules tests.

Boards are described as 4 rows of card faces so scenarios read like the
table they model. Game state fixtures are function-scoped to keep tests
isolated.
"""

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

# Ensure the repository root is on sys.path so `import collapsi` works when
# pytest runs from a checkout without an editable install.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from collapsi.board_manager import BoardManager
from collapsi.config import EngineConfig, reset_config
from collapsi.models import (
    BoardState,
    Card,
    CardType,
    GameState,
    GameStatus,
    Player,
    Position,
)
from collapsi.rules.joker import start_joker_turn


Coord = Tuple[int, int]

# A standard deck laid out with both jokers in the first column.
STANDARD_LAYOUT: List[List[str]] = [
    ["red-joker", "A", "2", "3"],
    ["A", "2", "3", "4"],
    ["A", "2", "3", "4"],
    ["black-joker", "A", "2", "3"],
]

STANDARD_DECK: List[CardType] = [
    CardType(face) for row in STANDARD_LAYOUT for face in row
]


def pos(row: int, col: int) -> Position:
    return Position(row=row, col=col)


def path_of(*coords: Coord) -> List[Position]:
    return [Position(row=r, col=c) for r, c in coords]


def uniform_layout(face: str) -> List[List[str]]:
    return [[face] * 4 for _ in range(4)]


def with_card(layout: List[List[str]], coord: Coord, face: str) -> List[List[str]]:
    rows = [list(row) for row in layout]
    rows[coord[0]][coord[1]] = face
    return rows


# =============================================================================
# ISOLATION
# =============================================================================


@pytest.fixture(autouse=True)
def engine_config():
    """Give each test a fresh default configuration."""
    config = EngineConfig()
    reset_config(config)
    yield config
    reset_config(None)


@pytest.fixture(autouse=True)
def _restore_collapsi_logger():
    """Undo handlers and propagation changes made by the CLI or
    setup_logging so caplog keeps working across tests."""
    logger = logging.getLogger("collapsi")
    handlers = list(logger.handlers)
    level, propagate = logger.level, logger.propagate
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def board_factory() -> Callable[..., BoardState]:
    """Factory for BoardState instances from a row-major layout."""

    def _create_board(
        layout: Sequence[Sequence[str]] = STANDARD_LAYOUT,
        collapsed: Iterable[Coord] = (),
        occupants: Optional[Dict[str, Coord]] = None,
    ) -> BoardState:
        collapsed_keys = {f"{r},{c}" for r, c in collapsed}
        by_cell = {f"{r},{c}": pid for pid, (r, c) in (occupants or {}).items()}
        cards = {}
        for r, row in enumerate(layout):
            for c, face in enumerate(row):
                key = f"{r},{c}"
                cards[key] = Card(
                    type=CardType(face),
                    position=Position(row=r, col=c),
                    collapsed=key in collapsed_keys,
                    occupant=by_cell.get(key),
                )
        return BoardState(size=4, cards=cards)

    return _create_board


@pytest.fixture
def players_factory() -> Callable[..., List[Player]]:
    """Factory for the red/blue player pair."""

    def _create_players(
        red: Optional[Coord] = (0, 0),
        blue: Optional[Coord] = (3, 0),
    ) -> List[Player]:
        return [
            Player(
                id="red",
                color="red",
                startingCard=CardType.RED_JOKER,
                position=Position(row=red[0], col=red[1]) if red else None,
            ),
            Player(
                id="blue",
                color="blue",
                startingCard=CardType.BLACK_JOKER,
                position=Position(row=blue[0], col=blue[1]) if blue else None,
            ),
        ]

    return _create_players


@pytest.fixture
def state_factory(board_factory, players_factory) -> Callable[..., GameState]:
    """Factory for a GameState at the start of a turn.

    When the active player stands on a joker, the joker turn is opened the
    way the engine does at the start of a turn.
    """

    def _create_state(
        layout: Sequence[Sequence[str]] = STANDARD_LAYOUT,
        red: Optional[Coord] = (0, 0),
        blue: Optional[Coord] = (3, 0),
        collapsed: Iterable[Coord] = (),
        current_player: int = 0,
        status: GameStatus = GameStatus.PLAYING,
        game_id: str = "game-test",
    ) -> GameState:
        occupants = {}
        if red is not None:
            occupants["red"] = red
        if blue is not None:
            occupants["blue"] = blue
        board = board_factory(layout, collapsed=collapsed, occupants=occupants)
        players = players_factory(red=red, blue=blue)
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)

        joker_state = None
        active = players[current_player]
        if status == GameStatus.PLAYING and active.position is not None:
            card = BoardManager.get_card(active.position, board)
            if card.type.is_joker:
                joker_state = start_joker_turn(
                    board, active.position, active.id
                ).joker_state

        return GameState(
            id=game_id,
            board=board,
            players=players,
            currentPlayer=current_player,
            gameStatus=status,
            jokerState=joker_state,
            createdAt=now,
            lastMoveAt=now,
        )

    return _create_state


@pytest.fixture
def standard_deck() -> List[CardType]:
    return list(STANDARD_DECK)
