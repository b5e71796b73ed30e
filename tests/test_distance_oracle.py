"""Tests for the goal-distance oracle used on custom boards."""

import pytest

from sternhalma.ai.distance_oracle import (
    UNREACHABLE_COST,
    DistanceCache,
    cache_stats,
    compute_move_distances,
    compute_optimal_assignment,
    compute_path_based_progress,
    compute_theoretical_distance,
    distances_from_goals,
    get_worst_assignment_cost,
)
from sternhalma.game.factory import create_game, create_game_from_layout
from sternhalma.game.types import WALL
from tests.conftest import coord, strip_layout


class TestDistanceCache:
    def test_evicts_oldest_first(self):
        cache = DistanceCache(max_entries=2)
        cache.put("a", {"x": 1})
        cache.put("b", {"x": 2})
        cache.put("c", {"x": 3})
        assert "a" not in cache
        assert "b" in cache and "c" in cache
        assert len(cache) == 2

    def test_tracks_hits_and_misses(self):
        cache = DistanceCache(max_entries=4)
        assert cache.get("missing") is None
        cache.put("k", {})
        assert cache.get("k") == {}
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1


class TestGoalDistances:
    def test_multi_source_bfs(self, strip_game):
        distances = distances_from_goals(strip_game, [coord("5,0")])
        assert distances == {f"{q},0": 5 - q for q in range(6)}

    def test_walls_block_paths(self):
        state = create_game_from_layout(strip_layout(walls=["3,0"]))
        distances = distances_from_goals(state, [coord("5,0")])
        assert "3,0" not in distances
        assert "0,0" not in distances
        assert distances["4,0"] == 1

    def test_results_are_cached(self, strip_game):
        distances_from_goals(strip_game, [coord("5,0")])
        distances_from_goals(strip_game, [coord("5,0")])
        assert cache_stats()["hits"] >= 1

    def test_walls_on_same_sized_board_are_not_served_from_cache(self, strip_game):
        open_distances = distances_from_goals(strip_game, [coord("5,0")])
        assert open_distances["0,0"] == 5

        walled = strip_game.clone()
        walled.board["3,0"] = WALL
        distances = distances_from_goals(walled, [coord("5,0")])
        assert "0,0" not in distances

    def test_new_games_clear_the_cache(self, strip_game):
        distances_from_goals(strip_game, [coord("5,0")])
        assert cache_stats()["entries"] == 1
        create_game_from_layout(strip_layout(walls=["3,0"]))
        assert cache_stats()["entries"] == 0

        distances_from_goals(strip_game, [coord("5,0")])
        create_game(2)
        assert cache_stats()["entries"] == 0

    def test_unreachable_pieces_use_sentinel(self):
        state = create_game_from_layout(strip_layout(walls=["3,0"]))
        worst = get_worst_assignment_cost(state, [coord("0,0")], [coord("5,0")])
        assert worst == UNREACHABLE_COST


class TestDerivedQueries:
    def test_path_progress_interpolates(self, strip_game):
        goals = [coord("5,0")]
        home = [coord("0,0")]
        assert compute_path_based_progress(strip_game, [coord("0,0")], goals, home) == 0.0
        assert compute_path_based_progress(strip_game, [coord("3,0")], goals, home) == pytest.approx(60.0)
        assert compute_path_based_progress(strip_game, [coord("5,0")], goals, home) == 100.0

    def test_pieces_in_goal_do_not_count_as_stragglers(self, strip_game):
        goals = [coord("4,0"), coord("5,0")]
        assert get_worst_assignment_cost(strip_game, [coord("5,0"), coord("1,0")], goals) == 3

    def test_greedy_assignment(self, strip_game):
        goals = [coord("4,0"), coord("5,0")]
        total, assignments = compute_optimal_assignment(
            strip_game, [coord("5,0"), coord("2,0")], goals
        )
        assert total == 2
        assert {(a.piece, a.goal, a.cost) for a in assignments} == {
            (coord("5,0"), coord("5,0"), 0),
            (coord("2,0"), coord("4,0"), 2),
        }

    def test_move_distances_respect_occupancy(self, strip_game):
        """Pieces block step paths unless occupancy is ignored."""
        blocked = compute_move_distances(strip_game, coord("0,0"))
        assert "5,0" not in blocked
        assert blocked["4,0"] == 4
        assert compute_theoretical_distance(strip_game, coord("0,0"), coord("5,0")) == 5
        assert compute_theoretical_distance(strip_game, coord("2,0"), coord("2,0")) == 0

    def test_theoretical_distance_through_wall(self):
        state = create_game_from_layout(strip_layout(walls=["3,0"]))
        assert compute_theoretical_distance(state, coord("0,0"), coord("5,0")) == UNREACHABLE_COST
