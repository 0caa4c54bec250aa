"""
Pydantic Models for Collapsi Game State
Field aliases mirror the camelCase shapes written by the browser client.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from enum import Enum
from datetime import datetime


BOARD_SIZE = 4
MAX_JOKER_DISTANCE = 4


class CardType(str, Enum):
    """Card face enumeration"""
    RED_JOKER = "red-joker"
    BLACK_JOKER = "black-joker"
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"

    @property
    def is_joker(self) -> bool:
        return self in (CardType.RED_JOKER, CardType.BLACK_JOKER)

    @property
    def distance(self) -> Optional[int]:
        """Exact move length for numbered cards, None for jokers."""
        return _CARD_DISTANCES.get(self)


_CARD_DISTANCES = {
    CardType.ACE: 1,
    CardType.TWO: 2,
    CardType.THREE: 3,
    CardType.FOUR: 4,
}


class GameStatus(str, Enum):
    """Game status enumeration"""
    SETUP = "setup"
    PLAYING = "playing"
    ENDED = "ended"


class JokerEndReason(str, Enum):
    """Why a joker turn was completed"""
    PLAYER_CHOICE = "player_choice"
    MAX_DISTANCE = "max_distance"
    NO_VALID_STEPS = "no_valid_steps"


class MoveRejection(str, Enum):
    """Stable reason strings for rejected moves and sequencing errors"""
    INVALID_INPUT = "invalid input"
    WRONG_START = "wrong start position"
    NOT_ADJACENT = "non-adjacent step"
    REVISITED = "revisited cell"
    COLLAPSED = "collapsed cell"
    WRONG_DISTANCE = "wrong distance"
    ENDS_ON_START = "ends on starting cell"
    OCCUPIED = "occupied cell"
    NO_ACTIVE_JOKER = "no active joker turn"
    NO_JOKER_STEPS = "no joker steps taken"
    JOKER_MUST_END = "joker turn must end"
    JOKER_IN_PROGRESS = "joker turn in progress"
    NOT_A_JOKER = "not a joker card"
    NOT_YOUR_TURN = "not your turn"
    GAME_OVER = "game over"


class Position(BaseModel):
    """Board position. Range is checked by the rules layer, not here."""
    row: int
    col: int

    class Config:
        frozen = True

    def to_key(self) -> str:
        """Convert position to string key"""
        return f"{self.row},{self.col}"

    @classmethod
    def from_key(cls, key: str) -> "Position":
        row, col = key.split(",")
        return cls(row=int(row), col=int(col))


class Card(BaseModel):
    """One face-up card of the grid"""
    type: CardType
    position: Position
    collapsed: bool = False
    occupant: Optional[str] = Field(None, alias="playerId")

    class Config:
        populate_by_name = True


class BoardState(BaseModel):
    """The 4x4 grid, keyed by ``Position.to_key()``"""
    size: int = BOARD_SIZE
    cards: Dict[str, Card] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class Player(BaseModel):
    """Player state"""
    id: str
    color: str
    starting_card: CardType = Field(alias="startingCard")
    position: Optional[Position] = None

    class Config:
        populate_by_name = True


class MoveRecord(BaseModel):
    """One committed move in the game history."""
    id: str
    player_id: str = Field(alias="playerId")
    card_type: CardType = Field(alias="cardType")
    path: List[Position]
    from_pos: Position = Field(alias="from")
    to: Position
    distance: int
    joker: bool = False
    joker_end_reason: Optional[JokerEndReason] = Field(
        None, alias="jokerEndReason"
    )
    move_number: int = Field(alias="moveNumber")
    timestamp: datetime

    class Config:
        populate_by_name = True
        frozen = True


class JokerMoveState(BaseModel):
    """Progress of a joker turn taken as a sequence of single steps.

    ``path[0]`` is the joker card the turn started on; the pawn stays there
    until the turn completes, so ``path[-1]`` is the pending destination.
    """
    player_id: str = Field(alias="playerId")
    origin: Position
    path: List[Position]
    steps_taken: int = Field(0, alias="stepsTaken")
    must_end: bool = Field(False, alias="mustEnd")
    end_reason: Optional[JokerEndReason] = Field(None, alias="endReason")
    active: bool = True

    class Config:
        populate_by_name = True

    @property
    def current_position(self) -> Position:
        return self.path[-1]

    @property
    def can_end(self) -> bool:
        return self.active and self.steps_taken >= 1


class GameState(BaseModel):
    """Complete game state"""
    id: str
    version: int = 0
    board: BoardState
    players: List[Player]
    current_player: int = Field(0, alias="currentPlayer")
    status: GameStatus = Field(GameStatus.PLAYING, alias="gameStatus")
    winner: Optional[str] = None
    move_history: List[MoveRecord] = Field(
        default_factory=list, alias="moveHistory"
    )
    joker_state: Optional[JokerMoveState] = Field(None, alias="jokerState")
    created_at: datetime = Field(alias="createdAt")
    last_move_at: datetime = Field(alias="lastMoveAt")

    class Config:
        populate_by_name = True

    @property
    def active_player(self) -> Player:
        return self.players[self.current_player]


class PathOption(BaseModel):
    """A legal destination together with one path that reaches it"""
    destination: Position
    path: List[Position]

    @property
    def distance(self) -> int:
        return len(self.path) - 1


class ValidationResult(BaseModel):
    """Outcome of validating a candidate path or joker step"""
    valid: bool
    reason: Optional[MoveRejection] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def reject(cls, reason: MoveRejection, message: str) -> "ValidationResult":
        return cls(valid=False, reason=reason, message=message)


class GameOutcome(BaseModel):
    """Terminal-position check result"""
    ended: bool
    winner_id: Optional[str] = Field(None, alias="winnerId")

    class Config:
        populate_by_name = True


class AppliedMove(BaseModel):
    """Result of committing a full path or a completed joker turn
    against a bare board/players snapshot."""
    valid: bool
    reason: Optional[MoveRejection] = None
    message: Optional[str] = None
    board: Optional[BoardState] = None
    players: Optional[List[Player]] = None
    collapsed_cell: Optional[Position] = Field(None, alias="collapsedCell")

    class Config:
        populate_by_name = True


class JokerStepResult(BaseModel):
    """Result of extending a joker turn by one step"""
    valid: bool
    reason: Optional[MoveRejection] = None
    message: Optional[str] = None
    joker_state: Optional[JokerMoveState] = Field(None, alias="jokerState")

    class Config:
        populate_by_name = True


class GameStats(BaseModel):
    """Summary counters derived from a game state"""
    total_moves: int = Field(alias="totalMoves")
    moves_by_player: Dict[str, int] = Field(alias="movesByPlayer")
    collapsed_cards: int = Field(alias="collapsedCards")
    remaining_cards: int = Field(alias="remainingCards")
    joker_moves: int = Field(alias="jokerMoves")

    class Config:
        populate_by_name = True
