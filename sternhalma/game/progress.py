"""Calibrated 0-100 progress on the standard star."""

from __future__ import annotations

from functools import lru_cache

from sternhalma.game.board import goal_positions, home_positions
from sternhalma.game.coordinates import centroid, distance
from sternhalma.game.factory import get_player_pieces
from sternhalma.game.types import GameState


@lru_cache(maxsize=6)
def _starting_total_distance(player: int) -> float:
    center = centroid(goal_positions(player))
    return sum(distance(p, center) for p in home_positions(player))


@lru_cache(maxsize=6)
def _goal_total_distance(player: int) -> float:
    goals = goal_positions(player)
    center = centroid(goals)
    return sum(distance(p, center) for p in goals)


def compute_player_progress(state: GameState, player: int) -> float:
    """0 with every piece at home, 100 with every piece in the goal.

    Interpolates the summed distance of the player's pieces to the goal
    centroid between its starting and fully-home values.
    """
    center = centroid(goal_positions(player))
    current = sum(distance(p, center) for p in get_player_pieces(state, player))
    start = _starting_total_distance(player)
    span = start - _goal_total_distance(player)
    if span <= 0:
        return 100.0
    progress = (start - current) / span * 100
    return max(0.0, min(100.0, progress))
