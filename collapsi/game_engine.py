"""Turn controller and win detection for the Collapsi rules service.

``GameEngine`` is the only writer of player positions and turn order. It
works on immutable snapshots: every operation takes a ``GameState`` and
returns a ``TurnResult`` carrying a *new* state (or the untouched input when
the proposal is rejected) plus the events produced by the commit.

Turn protocol:

1. When a turn begins, the active player's card decides the distance rule.
   If no legal destination exists the game ends and the player who just
   moved wins. If the card is a joker, a joker turn is opened.
2. The player submits either a full path (``apply_move``) or joker steps
   (``joker_step`` / ``end_joker_turn``).
3. A committed move collapses the origin card, relocates the pawn, appends
   to the move history and hands the turn to the other player.

Illegal proposals never raise; they come back with ``success=False`` and a
``MoveRejection``. A board that violates its own invariants raises
``InvalidStateError``.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .board_manager import BoardManager, create_default_players
from .config import get_config
from .events import (
    GameEnded,
    JokerStepTaken,
    JokerTurnCompleted,
    MoveApplied,
    MoveRejected,
    TurnChanged,
)
from .metrics import record_game_outcome, record_move, record_rejection
from .models import (
    AppliedMove,
    CardType,
    GameOutcome,
    GameState,
    GameStats,
    GameStatus,
    JokerEndReason,
    MoveRecord,
    MoveRejection,
    PathOption,
    Position,
    ValidationResult,
)
from .rules.execution import apply_move as apply_path
from .rules.geometry import BoardGeometry
from .rules.joker import (
    end_joker_turn as finish_joker_turn,
    extend_joker_turn,
    joker_step_options,
    start_joker_turn,
)
from .rules.outcome import check_game_end as detect_game_end
from .rules.path_search import legal_destinations
from .rules.validator import validate_move as validate_path

__all__ = ["GameEngine", "TurnResult"]

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """Outcome of one engine transaction.

    Attributes:
        success: Whether the proposal was committed.
        state: The new state on success, the unchanged input otherwise.
        reason: Rejection reason when ``success`` is False.
        message: Human-readable detail for the rejection.
        events: Events produced by the transaction, in emission order.
        collapsed_cell: Card collapsed by the commit, if a move completed.
    """
    success: bool
    state: GameState
    reason: Optional[MoveRejection] = None
    message: Optional[str] = None
    events: List[object] = field(default_factory=list)
    collapsed_cell: Optional[Position] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class GameEngine:
    """Static, side-effect-free turn controller."""

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    @staticmethod
    def new_game(
        seed: Optional[int] = None,
        deck: Optional[Sequence[CardType]] = None,
        game_id: Optional[str] = None,
    ) -> GameState:
        """Deal a new game: shuffled (or given) deck, pawns on their jokers,
        red to move."""
        if deck is None:
            deck = BoardManager.shuffle_deck(random.Random(seed))
        board = BoardManager.create_board([CardType(c) for c in deck])
        board, players = BoardManager.place_players(board, create_default_players())
        created = _now()
        state = GameState(
            id=game_id or str(uuid.uuid4()),
            board=board,
            players=players,
            currentPlayer=0,
            gameStatus=GameStatus.PLAYING,
            createdAt=created,
            lastMoveAt=created,
        )
        state, _ = GameEngine._begin_turn(state)
        logger.info(
            "New game %s (seed=%s): %s",
            state.id,
            seed,
            ",".join(CardType(c).value for c in deck),
        )
        return state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def _strict() -> bool:
        return get_config().strict_invariants

    @staticmethod
    def _check_state(state: GameState) -> None:
        if GameEngine._strict():
            BoardManager.assert_consistent(state.board, state.players)

    @staticmethod
    def current_card(state: GameState) -> CardType:
        player = state.active_player
        card = BoardManager.get_card(player.position, state.board)
        return card.type

    @staticmethod
    def get_legal_destinations(state: GameState) -> List[PathOption]:
        """Legal destinations for the active player's whole turn."""
        if state.status != GameStatus.PLAYING:
            return []
        GameEngine._check_state(state)
        player = state.active_player
        occupied = BoardManager.occupied_positions(state.board, state.players)
        return legal_destinations(
            state.board, player.position, GameEngine.current_card(state),
            occupied=occupied,
        )

    @staticmethod
    def get_joker_step_options(state: GameState) -> List[Position]:
        """Cards the in-progress joker turn may step onto next."""
        joker = state.joker_state
        if state.status != GameStatus.PLAYING or joker is None:
            return []
        GameEngine._check_state(state)
        BoardManager.assert_joker_state(state)
        occupied = BoardManager.occupied_positions(state.board, state.players)
        return joker_step_options(state.board, occupied, joker)

    @staticmethod
    def check_game_end(state: GameState) -> GameOutcome:
        if state.status == GameStatus.ENDED:
            return GameOutcome(ended=True, winnerId=state.winner)
        return detect_game_end(
            state.board,
            state.players,
            state.current_player,
            strict=GameEngine._strict(),
        )

    @staticmethod
    def get_game_stats(state: GameState) -> GameStats:
        moves_by_player = {p.id: 0 for p in state.players}
        for record in state.move_history:
            moves_by_player[record.player_id] = moves_by_player.get(record.player_id, 0) + 1
        collapsed = BoardManager.collapsed_count(state.board)
        return GameStats(
            totalMoves=len(state.move_history),
            movesByPlayer=moves_by_player,
            collapsedCards=collapsed,
            remainingCards=len(state.board.cards) - collapsed,
            jokerMoves=sum(1 for r in state.move_history if r.joker),
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _precheck(
        state: GameState, player_id: Optional[str]
    ) -> Optional[ValidationResult]:
        if state.status != GameStatus.PLAYING:
            return ValidationResult.reject(
                MoveRejection.GAME_OVER, f"Game is {state.status.value}"
            )
        active = state.active_player
        if player_id is not None and player_id != active.id:
            return ValidationResult.reject(
                MoveRejection.NOT_YOUR_TURN,
                f"It is {active.id}'s turn, not {player_id}'s",
            )
        # An open joker turn always belongs to the active player.
        BoardManager.assert_joker_state(state)
        return None

    @staticmethod
    def validate_move(
        state: GameState,
        path: Sequence[Position],
        player_id: Optional[str] = None,
    ) -> ValidationResult:
        """Check a full path for the active player without committing it."""
        rejection = GameEngine._precheck(state, player_id)
        if rejection is not None:
            return rejection
        joker = state.joker_state
        if joker is not None and joker.steps_taken > 0:
            return ValidationResult.reject(
                MoveRejection.JOKER_IN_PROGRESS,
                "Finish the joker turn step by step",
            )
        return validate_path(
            state.board,
            state.players,
            path,
            state.active_player.id,
            strict=GameEngine._strict(),
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @staticmethod
    def apply_move(
        state: GameState,
        path: Sequence[Position],
        player_id: Optional[str] = None,
    ) -> TurnResult:
        """Validate and commit a full path for the active player."""
        check = GameEngine.validate_move(state, path, player_id)
        if not check.valid:
            return GameEngine._reject(state, check.reason, check.message)

        card_type = GameEngine.current_card(state)
        applied = apply_path(
            state.board,
            state.players,
            path,
            state.active_player.id,
            strict=False,
        )
        end_reason = JokerEndReason.PLAYER_CHOICE if card_type.is_joker else None
        return GameEngine._commit(state, applied, list(path), card_type, end_reason)

    @staticmethod
    def joker_step(
        state: GameState,
        position: Position,
        player_id: Optional[str] = None,
    ) -> TurnResult:
        """Extend the active joker turn by one step.

        When the step leaves no way to continue (four steps taken, or no
        free neighbour) the turn is completed in the same transaction.
        """
        rejection = GameEngine._precheck(state, player_id)
        if rejection is not None:
            return GameEngine._reject(state, rejection.reason, rejection.message)

        step = extend_joker_turn(
            state.joker_state,
            state.board,
            state.players,
            position,
            strict=GameEngine._strict(),
        )
        if not step.valid:
            return GameEngine._reject(state, step.reason, step.message)

        joker = step.joker_state
        stepped = state.model_copy(
            update={
                "joker_state": joker,
                "version": state.version + 1,
                "last_move_at": _now(),
            }
        )
        event = JokerStepTaken(
            player_id=joker.player_id,
            position=position,
            steps_taken=joker.steps_taken,
            must_end=joker.must_end,
        )
        if not joker.must_end:
            return TurnResult(success=True, state=stepped, events=[event])

        result = GameEngine._complete_joker_turn(stepped)
        if not result.success:
            result.state = state
            return result
        result.events.insert(0, event)
        return result

    @staticmethod
    def end_joker_turn(
        state: GameState, player_id: Optional[str] = None
    ) -> TurnResult:
        """Voluntarily end the active joker turn (needs at least one step)."""
        rejection = GameEngine._precheck(state, player_id)
        if rejection is not None:
            return GameEngine._reject(state, rejection.reason, rejection.message)
        return GameEngine._complete_joker_turn(state)

    @staticmethod
    def _complete_joker_turn(state: GameState) -> TurnResult:
        joker = state.joker_state
        applied = finish_joker_turn(
            joker, state.board, state.players, strict=GameEngine._strict()
        )
        if not applied.valid:
            return GameEngine._reject(state, applied.reason, applied.message)
        end_reason = joker.end_reason or JokerEndReason.PLAYER_CHOICE
        return GameEngine._commit(
            state,
            applied,
            list(joker.path),
            GameEngine.current_card(state),
            end_reason,
        )

    # ------------------------------------------------------------------
    # Commit helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _reject(
        state: GameState,
        reason: Optional[MoveRejection],
        message: Optional[str],
    ) -> TurnResult:
        player_id = state.active_player.id
        logger.warning(
            "Rejected proposal from %s in game %s: %s (%s)",
            player_id,
            state.id,
            reason.value if reason else None,
            message,
        )
        record_rejection(reason.value if reason else None)
        return TurnResult(
            success=False,
            state=state,
            reason=reason,
            message=message,
            events=[MoveRejected(player_id=player_id, reason=reason, message=message)],
        )

    @staticmethod
    def _commit(
        state: GameState,
        applied: AppliedMove,
        path: List[Position],
        card_type: CardType,
        joker_end_reason: Optional[JokerEndReason],
    ) -> TurnResult:
        mover = state.active_player
        move_number = len(state.move_history) + 1
        now = _now()
        record = MoveRecord(
            id=f"move-{move_number}",
            playerId=mover.id,
            cardType=card_type,
            path=path,
            from_pos=path[0],
            to=path[-1],
            distance=len(path) - 1,
            joker=card_type.is_joker,
            jokerEndReason=joker_end_reason,
            moveNumber=move_number,
            timestamp=now,
        )
        committed = state.model_copy(
            update={
                "board": applied.board,
                "players": applied.players,
                "move_history": list(state.move_history) + [record],
                "current_player": 1 - state.current_player,
                "joker_state": None,
                "version": state.version + 1,
                "last_move_at": now,
            }
        )
        record_move(
            card_type.value,
            joker_end_reason.value if joker_end_reason else None,
        )
        logger.info(
            "Game %s move %d: %s %s on '%s'",
            state.id,
            move_number,
            mover.id,
            BoardGeometry.describe_path(path),
            card_type.value,
        )

        events: List[object] = [
            MoveApplied(
                player_id=mover.id,
                path=tuple(path),
                collapsed=applied.collapsed_cell,
                joker=card_type.is_joker,
                move_number=move_number,
            )
        ]
        if card_type.is_joker:
            events.append(
                JokerTurnCompleted(
                    player_id=mover.id,
                    steps_taken=len(path) - 1,
                    end_reason=joker_end_reason,
                )
            )

        committed, turn_events = GameEngine._begin_turn(committed)
        events.extend(turn_events)
        return TurnResult(
            success=True,
            state=committed,
            events=events,
            collapsed_cell=applied.collapsed_cell,
        )

    @staticmethod
    def _begin_turn(state: GameState) -> tuple[GameState, List[object]]:
        """Open the active player's turn or end the game if they are stuck."""
        outcome = detect_game_end(
            state.board,
            state.players,
            state.current_player,
            strict=GameEngine._strict(),
        )
        active = state.active_player
        previous = state.players[1 - state.current_player]

        if outcome.ended:
            ended = state.model_copy(
                update={
                    "status": GameStatus.ENDED,
                    "winner": outcome.winner_id,
                    "joker_state": None,
                }
            )
            record_game_outcome(outcome.winner_id)
            logger.info(
                "Game %s over: %s has no legal move, %s wins",
                state.id,
                active.id,
                outcome.winner_id,
            )
            return ended, [GameEnded(winner_id=outcome.winner_id, loser_id=active.id)]

        joker = None
        if GameEngine.current_card(state).is_joker:
            joker = start_joker_turn(state.board, active.position, active.id).joker_state
        opened = state.model_copy(update={"joker_state": joker})
        turn_event = TurnChanged(
            previous_player_id=previous.id,
            player_id=active.id,
            joker_turn=joker is not None,
        )
        return opened, [turn_event]
