"""Terminal position detection.

A player who starts a turn with no legal destination loses; the winner is
the other player, i.e. whoever moved last.
"""

from __future__ import annotations

from typing import Sequence

from ..board_manager import BoardManager
from ..errors import InvalidStateError
from ..models import BoardState, GameOutcome, Player
from .path_search import has_legal_destination

__all__ = ["check_game_end"]


def check_game_end(
    board: BoardState,
    players: Sequence[Player],
    active_player_index: int,
    *,
    strict: bool = True,
) -> GameOutcome:
    if len(players) != 2 or not 0 <= active_player_index < len(players):
        raise InvalidStateError(
            "Game needs exactly two players and a valid active index",
            context={"players": len(players), "active": active_player_index},
        )
    if strict:
        BoardManager.assert_consistent(board, players)

    active = players[active_player_index]
    if active.position is None:
        raise InvalidStateError(
            "Active player is not on the board", context={"player": active.id}
        )
    card = BoardManager.get_card(active.position, board)
    if card is None:
        raise InvalidStateError(
            "Active player is off the grid",
            context={"player": active.id, "position": active.position.to_key()},
        )
    occupied = BoardManager.occupied_positions(board, players)
    if has_legal_destination(board, active.position, card.type, occupied=occupied):
        return GameOutcome(ended=False)

    winner = players[1 - active_player_index]
    return GameOutcome(ended=True, winnerId=winner.id)
