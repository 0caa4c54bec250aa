"""Board-level helpers for the Collapsi rules service.

``BoardManager`` owns the card grid: deck construction, card lookups,
occupancy, collapse and the consistency checks between card occupants and
player positions. It is side-effect-free; every mutating helper returns a
new ``BoardState`` and leaves its input untouched.
"""
from __future__ import annotations

import hashlib
import json
import logging
import random
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Set

from .errors import InvalidStateError
from .models import (
    BOARD_SIZE,
    BoardState,
    Card,
    CardType,
    GameState,
    Player,
    Position,
)
from .rules.geometry import BoardGeometry

__all__ = ["BoardManager", "CARD_DECK", "create_default_players"]

logger = logging.getLogger(__name__)

CARD_DECK: tuple[CardType, ...] = (
    CardType.RED_JOKER,
    CardType.BLACK_JOKER,
    CardType.ACE, CardType.ACE, CardType.ACE, CardType.ACE,
    CardType.TWO, CardType.TWO, CardType.TWO, CardType.TWO,
    CardType.THREE, CardType.THREE, CardType.THREE, CardType.THREE,
    CardType.FOUR, CardType.FOUR,
)


def create_default_players() -> List[Player]:
    """Red always moves first and starts on the red joker."""
    return [
        Player(id="red", color="red", startingCard=CardType.RED_JOKER),
        Player(id="blue", color="blue", startingCard=CardType.BLACK_JOKER),
    ]


class BoardManager:
    """Helper for board-level operations.

    - card / collapse / occupancy queries,
    - deck shuffling and board layout,
    - copy-on-write mutations (collapse, relocate a pawn), and
    - invariant checks and hashing used by the engine and HTTP surface.
    """

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_card(position: Position, board: BoardState) -> Optional[Card]:
        """Return the card at ``position`` or ``None`` if off the board."""
        return board.cards.get(position.to_key())

    @staticmethod
    def is_collapsed(position: Position, board: BoardState) -> bool:
        card = BoardManager.get_card(position, board)
        return card is not None and card.collapsed

    @staticmethod
    def get_occupant(position: Position, board: BoardState) -> Optional[str]:
        card = BoardManager.get_card(position, board)
        return card.occupant if card is not None else None

    @staticmethod
    def occupied_positions(
        board: BoardState, players: Iterable[Player] = ()
    ) -> Set[Position]:
        """Cells holding a pawn, according to the board and the players."""
        occupied = {
            card.position for card in board.cards.values() if card.occupant
        }
        occupied.update(p.position for p in players if p.position is not None)
        return occupied

    @staticmethod
    def get_player(players: Sequence[Player], player_id: str) -> Optional[Player]:
        for player in players:
            if player.id == player_id:
                return player
        return None

    @staticmethod
    def find_card(board: BoardState, card_type: CardType) -> Optional[Position]:
        """First position (row-major) holding ``card_type``."""
        for position in BoardGeometry.all_positions(board.size):
            card = BoardManager.get_card(position, board)
            if card is not None and card.type == card_type:
                return position
        return None

    @staticmethod
    def collapsed_count(board: BoardState) -> int:
        return sum(1 for card in board.cards.values() if card.collapsed)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @staticmethod
    def shuffle_deck(rng: Optional[random.Random] = None) -> List[CardType]:
        """Fisher-Yates shuffle of the standard deck."""
        rng = rng or random.Random()
        deck = list(CARD_DECK)
        for i in range(len(deck) - 1, 0, -1):
            j = rng.randint(0, i)
            deck[i], deck[j] = deck[j], deck[i]
        return deck

    @staticmethod
    def validate_deck(deck: Sequence[CardType]) -> None:
        """Raise InvalidStateError unless ``deck`` is a permutation of the
        standard 16-card deck."""
        if len(deck) != BOARD_SIZE * BOARD_SIZE:
            raise InvalidStateError(
                f"Invalid deck size: {len(deck)}",
                context={"expected": BOARD_SIZE * BOARD_SIZE},
            )
        if Counter(deck) != Counter(CARD_DECK):
            raise InvalidStateError(
                "Deck does not match the standard card distribution",
                context={"deck": ",".join(CardType(c).value for c in deck)},
            )

    @staticmethod
    def create_board(deck: Sequence[CardType]) -> BoardState:
        """Lay ``deck`` out row-major into a fresh 4x4 board."""
        BoardManager.validate_deck(deck)
        cards = {}
        for index, card_type in enumerate(deck):
            position = Position(row=index // BOARD_SIZE, col=index % BOARD_SIZE)
            cards[position.to_key()] = Card(
                type=CardType(card_type), position=position
            )
        return BoardState(size=BOARD_SIZE, cards=cards)

    @staticmethod
    def place_players(
        board: BoardState, players: Sequence[Player]
    ) -> tuple[BoardState, List[Player]]:
        """Put each player on its starting joker."""
        placed: List[Player] = []
        for player in players:
            position = BoardManager.find_card(board, player.starting_card)
            if position is None:
                raise InvalidStateError(
                    f"No {player.starting_card.value} card on the board",
                    context={"player": player.id},
                )
            board = BoardManager.set_occupant(board, position, player.id)
            placed.append(player.model_copy(update={"position": position}))
        return board, placed

    # ------------------------------------------------------------------
    # Copy-on-write mutations
    # ------------------------------------------------------------------

    @staticmethod
    def _replace_card(board: BoardState, card: Card) -> BoardState:
        cards = dict(board.cards)
        cards[card.position.to_key()] = card
        return board.model_copy(update={"cards": cards})

    @staticmethod
    def _require_card(position: Position, board: BoardState) -> Card:
        card = BoardManager.get_card(position, board)
        if card is None:
            raise InvalidStateError(
                "No card at position", context={"position": position.to_key()}
            )
        return card

    @staticmethod
    def set_occupant(
        board: BoardState, position: Position, player_id: Optional[str]
    ) -> BoardState:
        card = BoardManager._require_card(position, board)
        if player_id is not None and card.collapsed:
            raise InvalidStateError(
                "Cannot place a pawn on a collapsed card",
                context={"position": position.to_key(), "player": player_id},
            )
        return BoardManager._replace_card(
            board, card.model_copy(update={"occupant": player_id})
        )

    @staticmethod
    def collapse_card(board: BoardState, position: Position) -> BoardState:
        """Collapse the card at ``position`` and clear its occupant."""
        card = BoardManager._require_card(position, board)
        return BoardManager._replace_card(
            board, card.model_copy(update={"collapsed": True, "occupant": None})
        )

    @staticmethod
    def relocate_pawn(
        board: BoardState,
        player_id: str,
        origin: Position,
        destination: Position,
    ) -> BoardState:
        """Collapse ``origin`` and put ``player_id`` on ``destination``."""
        board = BoardManager.collapse_card(board, origin)
        return BoardManager.set_occupant(board, destination, player_id)

    @staticmethod
    def reset_collapsed(board: BoardState) -> BoardState:
        """Administrative reset: un-collapse every card.

        This is the only way a card leaves the collapsed state; move logic
        never calls it.
        """
        logger.info("Resetting %d collapsed cards", BoardManager.collapsed_count(board))
        cards = {
            key: card.model_copy(update={"collapsed": False})
            for key, card in board.cards.items()
        }
        return board.model_copy(update={"cards": cards})

    # ------------------------------------------------------------------
    # Invariants and hashing
    # ------------------------------------------------------------------

    @staticmethod
    def assert_consistent(
        board: BoardState,
        players: Sequence[Player],
        *,
        standard_deck: bool = False,
    ) -> None:
        """Raise InvalidStateError if the board contradicts itself or the
        players.

        Checks: 16 cards each stored under its own key; no collapsed card
        holds a pawn; every placed player sits on exactly the card that
        names it as occupant and no card names an unknown player. With
        ``standard_deck`` the card faces must also be the standard deck.
        """
        if board.size != BOARD_SIZE or len(board.cards) != BOARD_SIZE * BOARD_SIZE:
            raise InvalidStateError(
                "Board must hold 16 cards on a 4x4 grid",
                context={"size": board.size, "cards": len(board.cards)},
            )
        if standard_deck:
            BoardManager.validate_deck(
                [board.cards[key].type for key in sorted(board.cards)]
            )
        player_ids = {p.id for p in players}
        occupants: dict[str, Position] = {}
        for key, card in board.cards.items():
            if card.position.to_key() != key or not BoardGeometry.is_on_board(
                card.position
            ):
                raise InvalidStateError(
                    "Card stored under the wrong key", context={"key": key}
                )
            if card.occupant is None:
                continue
            if card.collapsed:
                raise InvalidStateError(
                    "Collapsed card holds a pawn",
                    context={"position": key, "player": card.occupant},
                )
            if card.occupant not in player_ids:
                raise InvalidStateError(
                    "Card names an unknown occupant",
                    context={"position": key, "player": card.occupant},
                )
            if card.occupant in occupants:
                raise InvalidStateError(
                    "Player occupies more than one card",
                    context={"player": card.occupant},
                )
            occupants[card.occupant] = card.position
        for player in players:
            if player.position is None:
                if player.id in occupants:
                    raise InvalidStateError(
                        "Unplaced player occupies a card",
                        context={"player": player.id},
                    )
                continue
            if occupants.get(player.id) != player.position:
                raise InvalidStateError(
                    "Player position disagrees with board occupant",
                    context={
                        "player": player.id,
                        "position": player.position.to_key(),
                    },
                )

    @staticmethod
    def assert_joker_state(state: GameState) -> None:
        """Raise InvalidStateError unless an open joker turn belongs to the
        active player and still starts from the joker the pawn stands on."""
        joker = state.joker_state
        if joker is None:
            return
        active = state.active_player
        context = {"player": active.id, "joker_player": joker.player_id}
        if joker.player_id != active.id:
            raise InvalidStateError(
                "Joker turn belongs to a player who is not active",
                context=context,
            )
        if active.position is None or joker.origin != active.position:
            raise InvalidStateError(
                "Joker turn does not start where the active player stands",
                context={**context, "origin": joker.origin.to_key()},
            )
        if not joker.path or joker.path[0] != joker.origin:
            raise InvalidStateError(
                "Joker path does not start at its origin", context=context
            )
        if joker.steps_taken != len(joker.path) - 1:
            raise InvalidStateError(
                "Joker step count disagrees with its path",
                context={
                    **context,
                    "steps_taken": joker.steps_taken,
                    "path_length": len(joker.path) - 1,
                },
            )
        card = BoardManager.get_card(joker.origin, state.board)
        if card is None or not card.type.is_joker:
            raise InvalidStateError(
                "Joker turn opened on a card that is not a joker",
                context={**context, "origin": joker.origin.to_key()},
            )

    @staticmethod
    def assert_game_state(state: GameState) -> None:
        """Full check for a state handed in from outside: consistent board
        dealt from the standard deck and a joker turn owned by the active
        player."""
        BoardManager.assert_consistent(
            state.board, state.players, standard_deck=True
        )
        BoardManager.assert_joker_state(state)

    @staticmethod
    def hash_game_state(state: GameState) -> str:
        """Stable SHA-256 fingerprint of everything that affects play.

        Timestamps, ids and the version counter are excluded so two states
        reached by the same moves hash identically.
        """
        payload = state.model_dump(
            mode="json",
            include={
                "board",
                "players",
                "current_player",
                "status",
                "winner",
                "joker_state",
            },
        )
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
