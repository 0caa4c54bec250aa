"""Stateful wrapper that threads the current ``GameState`` version through
the engine and notifies listeners after each committed transaction.

Rendering, animation and persistence subscribe here; nothing in the rules
layer calls back into them. Listeners run after the new state is in place,
so a listener reading ``session.state`` sees the committed result.
Submissions must be serialized by the caller.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from .errors import RulesViolationError
from .game_engine import GameEngine, TurnResult
from .models import CardType, GameOutcome, GameState, PathOption, Position

__all__ = ["GameSession", "Listener"]

logger = logging.getLogger(__name__)

Listener = Callable[["GameSession", object], None]


class GameSession:
    def __init__(self, state: GameState) -> None:
        self._state = state
        self._listeners: List[Listener] = []

    @classmethod
    def new(
        cls,
        seed: Optional[int] = None,
        deck: Optional[Sequence[CardType]] = None,
        game_id: Optional[str] = None,
    ) -> "GameSession":
        return cls(GameEngine.new_game(seed=seed, deck=deck, game_id=game_id))

    @property
    def state(self) -> GameState:
        return self._state

    # --- subscriptions ---
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, event: object) -> None:
        for listener in list(self._listeners):
            listener(self, event)

    # --- queries ---
    def legal_destinations(self) -> List[PathOption]:
        return GameEngine.get_legal_destinations(self._state)

    def joker_step_options(self) -> List[Position]:
        return GameEngine.get_joker_step_options(self._state)

    def check_game_end(self) -> GameOutcome:
        return GameEngine.check_game_end(self._state)

    # --- transactions ---
    def submit_move(
        self, path: Sequence[Position], player_id: Optional[str] = None
    ) -> TurnResult:
        return self._run(GameEngine.apply_move(self._state, path, player_id))

    def joker_step(
        self, position: Position, player_id: Optional[str] = None
    ) -> TurnResult:
        return self._run(GameEngine.joker_step(self._state, position, player_id))

    def end_joker_turn(self, player_id: Optional[str] = None) -> TurnResult:
        return self._run(GameEngine.end_joker_turn(self._state, player_id))

    def _run(self, result: TurnResult) -> TurnResult:
        if result.success:
            self._state = result.state
            logger.debug(
                "Session %s now at version %d", self._state.id, self._state.version
            )
        for event in result.events:
            self.emit(event)
        return result

    @staticmethod
    def require(result: TurnResult) -> TurnResult:
        """Raise RulesViolationError for a rejected transaction."""
        if not result.success:
            raise RulesViolationError(
                result.message or "Move rejected",
                rule_ref=result.reason.value if result.reason else None,
            )
        return result
