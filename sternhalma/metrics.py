"""Prometheus metrics for the Sternhalma AI and trainer.

Counters and histograms are declared once here so that search, the
end-game solver and the evolutionary loop can record lightweight
telemetry without managing their own metric instances. They are labeled
by difficulty and outcome so they can be filtered in local Prometheus
setups.
"""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Gauge, Histogram


AI_MOVE_REQUESTS: Final[Counter] = Counter(
    "sternhalma_ai_move_requests_total",
    (
        "Total number of AI move computations, labeled by difficulty "
        "and outcome."
    ),
    labelnames=("difficulty", "outcome"),
)

AI_MOVE_LATENCY: Final[Histogram] = Histogram(
    "sternhalma_ai_move_latency_seconds",
    "Wall-clock time spent choosing an AI move, labeled by difficulty.",
    labelnames=("difficulty",),
    buckets=(
        0.01,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.0,
        5.0,
        10.0,
    ),
)

AI_SEARCH_NODES: Final[Counter] = Counter(
    "sternhalma_ai_search_nodes_total",
    "Total number of positions statically evaluated during search.",
    labelnames=("difficulty",),
)

ENDGAME_SOLVER_MOVES: Final[Counter] = Counter(
    "sternhalma_endgame_solver_moves_total",
    "Moves chosen by the end-game priority ladder, labeled by rule.",
    labelnames=("rule",),
)

TRAINING_GAMES: Final[Counter] = Counter(
    "sternhalma_training_games_total",
    "Headless training games played, labeled by outcome (decisive or draw).",
    labelnames=("outcome",),
)

TRAINING_GENERATIONS: Final[Counter] = Counter(
    "sternhalma_training_generations_total",
    "Evolutionary generations completed.",
)

TRAINING_BEST_FITNESS: Final[Gauge] = Gauge(
    "sternhalma_training_best_fitness",
    "Best fitness observed in the most recently completed generation.",
)
