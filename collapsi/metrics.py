"""Prometheus metrics for the Collapsi rules service.

This module centralises counters and histograms so the engine and the HTTP
handlers can record lightweight telemetry without each owning its own
metric instances.
"""

from __future__ import annotations

from typing import Final, Optional

from prometheus_client import Counter, Histogram


MOVES_APPLIED: Final[Counter] = Counter(
    "collapsi_moves_total",
    "Total committed moves, labeled by the card type moved from.",
    labelnames=("card_type",),
)

MOVE_REJECTIONS: Final[Counter] = Counter(
    "collapsi_move_rejections_total",
    "Total rejected move proposals, labeled by rejection reason.",
    labelnames=("reason",),
)

JOKER_TURNS: Final[Counter] = Counter(
    "collapsi_joker_turns_total",
    (
        "Total completed joker turns, labeled by why the turn ended "
        "(player_choice, max_distance, no_valid_steps)."
    ),
    labelnames=("end_reason",),
)

GAMES_COMPLETED: Final[Counter] = Counter(
    "collapsi_games_completed_total",
    "Total finished games, labeled by winning player id.",
    labelnames=("winner",),
)

LEGAL_DESTINATION_LATENCY: Final[Histogram] = Histogram(
    "collapsi_legal_destinations_seconds",
    "Latency of legal destination searches, labeled by card kind.",
    labelnames=("card_kind",),
    # Searches are expected to stay far below 100ms.
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)


def record_rejection(reason: Optional[str]) -> None:
    MOVE_REJECTIONS.labels(reason or "unknown").inc()


def record_move(card_type: str, joker_end_reason: Optional[str] = None) -> None:
    """Record a committed move; joker turns also count their end reason."""
    MOVES_APPLIED.labels(card_type).inc()
    if joker_end_reason is not None:
        JOKER_TURNS.labels(joker_end_reason).inc()


def record_game_outcome(winner: Optional[str]) -> None:
    GAMES_COMPLETED.labels(winner or "none").inc()
