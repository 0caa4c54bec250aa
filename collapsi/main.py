"""
Collapsi Rules Service - FastAPI Application
Stateless HTTP surface over the rules engine: every request carries the full
game state and every response carries the next one.
"""

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .board_manager import BoardManager
from .config import get_config
from .core.logging_config import configure_third_party_loggers, resolve_format
from .errors import CollapsiError
from .game_engine import GameEngine, TurnResult
from .models import (
    CardType,
    GameOutcome,
    GameState,
    GameStatus,
    PathOption,
    Position,
    ValidationResult,
)

SERVICE_NAME = "Collapsi Rules Service"
SERVICE_VERSION = "1.0.0"

config = get_config()

# Configure logging
logging.basicConfig(
    level=config.log_level,
    format=resolve_format(config.log_format),
)
configure_third_party_loggers()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=SERVICE_NAME,
    description="Move validation and turn resolution for Collapsi",
    version=SERVICE_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class NewGameRequest(BaseModel):
    """Request model for dealing a new game."""
    seed: Optional[int] = None
    deck: Optional[List[CardType]] = None
    id: Optional[str] = None


class StateRequest(BaseModel):
    game_state: GameState


class PathRequest(BaseModel):
    game_state: GameState
    path: List[Position]


class JokerStepRequest(BaseModel):
    game_state: GameState
    position: Position


class LegalDestinationsResponse(BaseModel):
    destinations: List[PathOption]
    card_type: CardType


class TransitionResponse(BaseModel):
    """Response model for every state-changing rules endpoint."""
    valid: bool
    validation_error: Optional[str] = None
    reason: Optional[str] = None
    next_state: Optional[GameState] = None
    state_hash: Optional[str] = None
    game_status: Optional[GameStatus] = None
    winner: Optional[str] = None
    collapsed_cell: Optional[Position] = Field(None, alias="collapsedCell")

    class Config:
        populate_by_name = True


def _transition_response(result: TurnResult) -> TransitionResponse:
    if not result.success:
        return TransitionResponse(
            valid=False,
            validation_error=result.message,
            reason=result.reason.value if result.reason else None,
        )
    next_state = result.state
    return TransitionResponse(
        valid=True,
        next_state=next_state,
        state_hash=BoardManager.hash_game_state(next_state),
        game_status=next_state.status,
        winner=next_state.winner,
        collapsed_cell=result.collapsed_cell,
    )


def _checked(state: GameState) -> GameState:
    """Reject client-supplied states that could not arise from play."""
    if get_config().strict_invariants:
        BoardManager.assert_game_state(state)
    return state


def _state_error(endpoint: str, error: CollapsiError) -> HTTPException:
    logger.warning("Rejected state in %s: %s", endpoint, error)
    return HTTPException(status_code=409, detail=error.to_dict())


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "service": SERVICE_NAME,
        "status": "running",
        "version": SERVICE_VERSION,
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.post("/games", response_model=GameState, response_model_by_alias=True)
async def new_game(request: NewGameRequest):
    """Deal a new game from a seed or an explicit 16-card deck."""
    try:
        return GameEngine.new_game(
            seed=request.seed, deck=request.deck, game_id=request.id
        )
    except CollapsiError as e:
        raise _state_error("/games", e)
    except Exception as e:
        logger.error("Error in /games: %s", str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/rules/legal_destinations", response_model=LegalDestinationsResponse)
async def get_legal_destinations(request: StateRequest):
    """Every destination the active player can reach this turn, each with
    one exemplar path."""
    try:
        state = _checked(request.game_state)
        return LegalDestinationsResponse(
            destinations=GameEngine.get_legal_destinations(state),
            card_type=GameEngine.current_card(state),
        )
    except CollapsiError as e:
        raise _state_error("/rules/legal_destinations", e)
    except Exception as e:
        logger.error(
            "Error in /rules/legal_destinations: %s", str(e), exc_info=True
        )
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/rules/validate_move", response_model=ValidationResult)
async def validate_move(request: PathRequest):
    """Check a full path without committing it."""
    try:
        return GameEngine.validate_move(_checked(request.game_state), request.path)
    except CollapsiError as e:
        raise _state_error("/rules/validate_move", e)
    except Exception as e:
        logger.error("Error in /rules/validate_move: %s", str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/rules/apply_move", response_model=TransitionResponse)
async def apply_move(request: PathRequest):
    """Validate a full path and, if legal, return the committed next state.

    Rejected paths are a normal response with ``valid=False`` and the stable
    rejection reason; only a corrupt state is an HTTP error.
    """
    try:
        result = GameEngine.apply_move(_checked(request.game_state), request.path)
        return _transition_response(result)
    except CollapsiError as e:
        raise _state_error("/rules/apply_move", e)
    except Exception as e:
        logger.error("Error in /rules/apply_move: %s", str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/rules/joker/step", response_model=TransitionResponse)
async def joker_step(request: JokerStepRequest):
    try:
        result = GameEngine.joker_step(_checked(request.game_state), request.position)
        return _transition_response(result)
    except CollapsiError as e:
        raise _state_error("/rules/joker/step", e)
    except Exception as e:
        logger.error("Error in /rules/joker/step: %s", str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/rules/joker/end", response_model=TransitionResponse)
async def joker_end(request: StateRequest):
    try:
        result = GameEngine.end_joker_turn(_checked(request.game_state))
        return _transition_response(result)
    except CollapsiError as e:
        raise _state_error("/rules/joker/end", e)
    except Exception as e:
        logger.error("Error in /rules/joker/end: %s", str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/rules/game_end", response_model=GameOutcome)
async def game_end(request: StateRequest):
    try:
        return GameEngine.check_game_end(_checked(request.game_state))
    except CollapsiError as e:
        raise _state_error("/rules/game_end", e)
    except Exception as e:
        logger.error("Error in /rules/game_end: %s", str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.host, port=config.port)
