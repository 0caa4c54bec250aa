"""JSON snapshots of a game, sufficient to resume it.

The layout is the camelCase ``GameState`` shape plus a ``snapshotVersion``
field. An in-progress joker turn is part of the state, so a game can be
resumed mid-turn.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError as PydanticValidationError

from .board_manager import BoardManager
from .errors import InvalidStateError
from .models import GameState

__all__ = [
    "SNAPSHOT_VERSION",
    "dump_snapshot",
    "load_snapshot",
    "save_snapshot",
    "load_snapshot_file",
]

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def dump_snapshot(state: GameState) -> str:
    payload: Dict[str, Any] = state.model_dump(mode="json", by_alias=True)
    payload["snapshotVersion"] = SNAPSHOT_VERSION
    return json.dumps(payload, indent=2)


def load_snapshot(text: str) -> GameState:
    """Parse a snapshot and check its board against the players."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidStateError("Snapshot is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise InvalidStateError("Snapshot must be a JSON object")

    version = payload.pop("snapshotVersion", SNAPSHOT_VERSION)
    if version != SNAPSHOT_VERSION:
        raise InvalidStateError(
            "Unsupported snapshot version",
            context={"version": version, "supported": SNAPSHOT_VERSION},
        )
    try:
        state = GameState.model_validate(payload)
    except PydanticValidationError as exc:
        raise InvalidStateError(
            "Snapshot does not match the game state layout",
            context={"errors": exc.error_count()},
        ) from exc

    BoardManager.assert_game_state(state)
    return state


def save_snapshot(state: GameState, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_snapshot(state))
    logger.debug("Saved game %s (version %d) to %s", state.id, state.version, path)
    return path


def load_snapshot_file(path: Union[str, Path]) -> GameState:
    return load_snapshot(Path(path).read_text())
