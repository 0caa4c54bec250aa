"""Move legality rules: grid geometry, path search, path validation and the
joker turn state machine.

Submodules import ``collapsi.board_manager``, which itself depends on
``geometry``; import them directly rather than through this package.
"""

from .geometry import BoardGeometry, DIRECTIONS, DIRECTION_NAMES

__all__ = ["BoardGeometry", "DIRECTIONS", "DIRECTION_NAMES"]
