"""Collapsi rules engine.

Two pawns on a 4x4 wraparound grid of cards. Each move leaves a card and
collapses it; the player who cannot move on their turn loses.

    from collapsi import GameSession

    session = GameSession.new(seed=7)
    options = session.legal_destinations()
    session.submit_move(options[0].path)

The rules live in ``collapsi.rules``, the turn controller in
``collapsi.game_engine`` and the HTTP surface in ``collapsi.main``.
"""

from .game_engine import GameEngine, TurnResult
from .models import CardType, GameState, GameStatus, MoveRejection, Position
from .session import GameSession

__version__ = "1.0.0"

__all__ = [
    "CardType",
    "GameEngine",
    "GameSession",
    "GameState",
    "GameStatus",
    "MoveRejection",
    "Position",
    "TurnResult",
]
