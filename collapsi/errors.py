"""
Collapsi Error Hierarchy

Unified exception hierarchy for the rules service. Expected rule violations
(illegal paths, out-of-turn joker steps, ...) are never raised: the engine
reports them as a ``MoveRejection`` on its result objects. The exceptions
below are for callers that prefer raising, for configuration problems, and
for boards that violate their own invariants.

Usage:
    from collapsi.errors import InvalidStateError, RulesViolationError

    try:
        session.require(session.submit_move(path))
    except RulesViolationError as e:
        logger.warning(f"Invalid move: {e.message}, rule: {e.rule_ref}")
"""

from typing import Any

__all__ = [
    "CollapsiError",
    "ConfigurationError",
    "InvalidMoveError",
    "InvalidStateError",
    "RulesViolationError",
    "ValidationError",
]


class CollapsiError(Exception):
    """Base exception for all Collapsi errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "COLLAPSI_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Game Rules Errors
# =============================================================================


class RulesViolationError(CollapsiError):
    """Invalid move per game rules.

    Raised only on request (see ``GameSession.require``); the engine itself
    returns rejections as values. ``rule_ref`` carries the stable
    ``MoveRejection`` string.
    """
    code: str = "RULES_VIOLATION"

    def __init__(
        self,
        message: str,
        rule_ref: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.rule_ref = rule_ref
        if rule_ref:
            self.context["rule_ref"] = rule_ref


class InvalidStateError(CollapsiError):
    """Corrupted or unexpected game state.

    Raised when the board or players are in a configuration that should not
    be possible through normal gameplay (two pawns on one card, a pawn on a
    collapsed card, a malformed deck).
    """
    code: str = "INVALID_STATE"


class InvalidMoveError(CollapsiError):
    """Move that cannot be applied to current state."""
    code: str = "INVALID_MOVE"


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(CollapsiError):
    """Base class for validation errors."""
    code: str = "VALIDATION_ERROR"


class ConfigurationError(ValidationError):
    """Invalid configuration."""
    code: str = "CONFIGURATION_ERROR"
