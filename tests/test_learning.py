"""Tests for the learned-weight signal."""

import random

import pytest

from sternhalma import config
from sternhalma.ai.learning import (
    LearnedWeights,
    LearningData,
    LearningStats,
    LearningStore,
    calculate_game_quality,
    compute_evaluation_factors,
    compute_weights_from_games,
    create_game_summary,
    extract_game_patterns,
    extract_player_metrics,
    get_learning_store,
    learned_score,
)
from sternhalma.ai.search import LEARNED_BLEND, SearchAI, find_best_move
from sternhalma.game.board import goal_positions
from sternhalma.game.coordinates import coord_to_key
from sternhalma.game.moves import is_valid_move
from sternhalma.game.state import apply_move
from sternhalma.game.types import Move
from sternhalma.models import AIConfig, Difficulty
from tests.conftest import build_state, coord

GOAL_KEYS_P0 = [coord_to_key(c) for c in goal_positions(0)]


@pytest.fixture
def finished_game():
    state = build_state({**{k: 0 for k in GOAL_KEYS_P0 if k != "-1,5"}, "1,2": 0, "4,-8": 2})
    moves = [
        Move(coord("1,2"), coord("0,3"), is_jump=False),
        Move(coord("4,-8"), coord("4,-7"), is_jump=False),
        Move(coord("0,3"), coord("-1,4"), is_jump=False),
        Move(coord("4,-7"), coord("4,-8"), is_jump=False),
        Move(coord("-1,4"), coord("-1,5"), is_jump=False),
    ]
    for move in moves:
        state = apply_move(state, move)
    assert state.winner == 0
    return state


class TestPatterns:
    def test_player_metrics(self, finished_game):
        metrics = extract_player_metrics(finished_game, 0, True)
        assert metrics.total_moves == 3
        assert metrics.step_moves == 3
        assert metrics.jump_moves == 0
        assert metrics.moves_to_first_goal_entry == 3
        assert metrics.avg_distance_gained_per_move > 0
        assert metrics.is_winner

    def test_game_patterns_and_quality(self, finished_game):
        patterns = extract_game_patterns(finished_game, "g1")
        assert patterns.winner == 0
        assert patterns.winner_move_count == 3
        assert patterns.total_moves == 5
        quality = calculate_game_quality(patterns)
        assert 0.1 <= quality <= 1.0

    def test_draw_quality_is_minimal(self, two_player_game):
        patterns = extract_game_patterns(two_player_game, "draw")
        assert calculate_game_quality(patterns) == 0.1

    def test_weights_are_clamped(self, finished_game):
        summary = create_game_summary(extract_game_patterns(finished_game, "g1"))
        weights = compute_weights_from_games([summary] * 5)
        for value in (
            weights.distance_weight,
            weights.cohesion_weight,
            weights.mobility_weight,
            weights.jump_preference,
        ):
            assert 0.5 <= value <= 1.5
        assert 0.7 <= weights.advancement_balance <= 1.3

    def test_no_winners_gives_defaults(self, two_player_game):
        summary = create_game_summary(extract_game_patterns(two_player_game, "draw"))
        assert compute_weights_from_games([summary]) == LearnedWeights()


class TestStore:
    def test_learn_and_persist(self, tmp_path, finished_game):
        store = LearningStore(tmp_path / "learning.json")
        summary = store.learn_from_game(finished_game, "g1")
        assert summary.game_id == "g1"

        reloaded = LearningStore(tmp_path / "learning.json").load()
        assert reloaded.stats.total_games_analyzed == 1
        assert reloaded.stats.total_wins_analyzed == 1
        assert reloaded.stats.avg_moves_to_win_by_player_count[2] == 3
        assert reloaded.weights.games_analyzed == 1
        assert store.get_weights().games_analyzed == 1

    def test_player_count_average_uses_lifetime_win_count(self, tmp_path, finished_game):
        """The running average must not depend on how many games the capped history keeps."""
        store = LearningStore(tmp_path / "learning.json")
        store.save(LearningData(stats=LearningStats(
            total_games_analyzed=3,
            total_wins_analyzed=3,
            avg_moves_to_win_by_player_count={2: 7.0},
            wins_by_player_count={2: 3},
        )))
        store.learn_from_game(finished_game, "g4")

        stats = store.load().stats
        assert stats.wins_by_player_count[2] == 4
        assert stats.avg_moves_to_win_by_player_count[2] == pytest.approx(6.0)

    def test_corrupt_store_falls_back(self, tmp_path):
        path = tmp_path / "learning.json"
        path.write_text("not json")
        assert LearningStore(path).load().weights == LearnedWeights()

    def test_clear(self, tmp_path, finished_game):
        store = LearningStore(tmp_path / "learning.json")
        store.learn_from_game(finished_game, "g1")
        store.clear()
        assert store.get_weights().games_analyzed == 0

    def test_default_store_follows_config(self):
        assert get_learning_store().path == config.LEARNING_DATA_PATH


class TestBlending:
    def test_factors(self, two_player_game):
        factors = compute_evaluation_factors(two_player_game, 0)
        assert factors.distance < 0
        assert factors.goal_occupation == 0
        assert factors.cohesion > 0

    def test_unused_weights_score_zero(self, two_player_game):
        assert learned_score(two_player_game, 0, LearnedWeights()) == 0.0

    def test_search_blends_learned_score(self, two_player_game):
        weights = LearnedWeights(games_analyzed=3, distance_weight=1.4)
        plain = SearchAI(0, AIConfig(difficulty=Difficulty.HARD), rng=random.Random(0))
        blended = SearchAI(
            0, AIConfig(difficulty=Difficulty.HARD), learned_weights=weights, rng=random.Random(0)
        )
        expected = plain.evaluate_position(two_player_game) + LEARNED_BLEND * learned_score(
            two_player_game, 0, weights
        )
        assert blended.evaluate_position(two_player_game) == pytest.approx(expected)

    def test_easy_never_blends(self):
        weights = LearnedWeights(games_analyzed=3)
        ai = SearchAI(0, AIConfig(difficulty=Difficulty.EASY), learned_weights=weights)
        assert ai.learned_weights is None

    def test_find_best_move_with_learning_enabled(self, monkeypatch, finished_game, two_player_game):
        monkeypatch.setattr(config, "LEARNING_ENABLED", True)
        get_learning_store().learn_from_game(finished_game, "g1")
        move = find_best_move(two_player_game, Difficulty.MEDIUM, rng=random.Random(0))
        assert is_valid_move(two_player_game, move, 0)
