"""Move penalties subtracted from search scores.

Both penalties are measured for the player making the move. A return value
of ``math.inf`` vetoes the move.
"""

from __future__ import annotations

import math
from typing import Mapping

from sternhalma.game.coordinates import centroid, coord_to_key, distance
from sternhalma.game.state import get_goal_positions_for_state
from sternhalma.game.types import GameState, Move

# Moves per active player scanned for repetitions.
REPETITION_LOOKBACK_PER_PLAYER = 6

# Stand-in for a vetoed move when ranking candidates.
VETO_SCORE = 1_000_000.0


def compute_regression_penalty(
    state: GameState, move: Move, player: int, genome: Mapping[str, float]
) -> float:
    """Penalty for moving away from the goal centroid or out of the goal."""
    goals = get_goal_positions_for_state(state, player)
    if not goals:
        return 0.0
    goal_center = centroid(goals)
    delta = distance(move.to, goal_center) - distance(move.from_pos, goal_center)
    penalty = delta * genome["regression_multiplier"] if delta > 0 else 0.0

    goal_keys = {coord_to_key(g) for g in goals}
    if move.from_key in goal_keys and move.to_key not in goal_keys:
        penalty += genome["goal_leave_penalty"]
    return penalty


def compute_repetition_penalty(
    state: GameState, move: Move, genome: Mapping[str, float]
) -> float:
    """Penalty for sending a piece back to a cell it recently left.

    The moving piece's path is traced back through the last
    ``active players * 6`` history entries. Returning to any cell on it costs
    ``cycle_penalty``; one earlier exact reversal of this move costs
    ``repetition_penalty``; two or more veto the move.
    """
    history = state.move_history
    lookback = len(state.active_players) * REPETITION_LOOKBACK_PER_PLAYER
    start = max(0, len(history) - lookback)

    visited = set()
    trace = move.from_pos
    for past in reversed(history[start:]):
        if past.to == trace:
            visited.add(past.from_pos)
            trace = past.from_pos

    if move.to not in visited:
        return 0.0

    reversals = sum(
        1 for past in history[start:]
        if past.from_pos == move.to and past.to == move.from_pos
    )
    if reversals >= 2:
        return math.inf
    if reversals == 1:
        return genome["repetition_penalty"]
    return genome["cycle_penalty"]


def total_penalty(state: GameState, move: Move, player: int, genome: Mapping[str, float]) -> float:
    return compute_regression_penalty(state, move, player, genome) + compute_repetition_penalty(
        state, move, genome
    )


def is_vetoed(state: GameState, move: Move, player: int, genome: Mapping[str, float]) -> bool:
    return math.isinf(total_penalty(state, move, player, genome))
