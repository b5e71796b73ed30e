"""Tests for the end-game priority ladder."""

import random

from prometheus_client import REGISTRY

from sternhalma.ai.endgame import (
    _choose,
    could_enter_goal_if_empty,
    find_endgame_move,
    get_empty_goals_by_depth,
    get_goal_position_depth,
    get_pieces_outside_goal,
    is_direct_goal_entry,
    is_late_endgame,
)
from sternhalma.game.board import goal_positions
from sternhalma.game.coordinates import coord_to_key
from sternhalma.game.moves import get_all_valid_moves
from sternhalma.game.types import Move
from tests.conftest import build_state, coord

GOAL_KEYS_P0 = [coord_to_key(c) for c in goal_positions(0)]


def _state(empty, outside):
    """Player 0 fills its goal except ``empty`` and has pieces on ``outside``."""
    pieces = {k: 0 for k in GOAL_KEYS_P0 if k not in empty}
    pieces["4,-8"] = 2
    pieces.update({k: 0 for k in outside})
    return build_state(pieces)


class TestHelpers:
    def test_late_endgame_threshold(self):
        assert is_late_endgame(_state(["-1,5", "-2,5", "-3,5"], ["0,0"]), 0)
        assert not is_late_endgame(_state(["-1,5", "-2,5", "-3,5", "-4,5"], ["0,0"]), 0)

    def test_empty_goals_deepest_first(self):
        state = _state(["-1,5", "-4,8", "-3,6"], [])
        empty = get_empty_goals_by_depth(state, 0)
        assert empty[0] == coord("-4,8")
        depths = [get_goal_position_depth(g) for g in empty]
        assert depths == sorted(depths, reverse=True)

    def test_direct_entry_and_outside_pieces(self):
        state = _state(["-1,5"], ["-1,4"])
        assert get_pieces_outside_goal(state, 0) == [coord("-1,4")]
        goal_keys = set(GOAL_KEYS_P0)
        assert is_direct_goal_entry(Move(coord("-1,4"), coord("-1,5"), is_jump=False), goal_keys)
        assert not is_direct_goal_entry(Move(coord("-2,5"), coord("-1,5"), is_jump=False), goal_keys)

    def test_could_enter_goal_if_empty(self):
        state = _state(["-2,6", "-4,8"], ["-1,4", "-1,3"])
        outside = get_pieces_outside_goal(state, 0)
        assert could_enter_goal_if_empty(state, coord("-1,5"), outside) == coord("-1,3")
        assert could_enter_goal_if_empty(state, coord("-4,8"), outside) is None


class TestLadder:
    def test_direct_entry_first(self):
        state = _state(["-1,5"], ["-1,4"])
        move, rule = _choose(state, 0, random.Random(0))
        assert rule == "direct_entry"
        assert (move.from_key, move.to_key) == ("-1,4", "-1,5")

    def test_make_room_for_jump_in(self):
        """A shallow goal piece blocking a jump-in moves deeper."""
        state = _state(["-2,6", "-4,8"], ["-1,4", "-1,3"])
        move, rule = _choose(state, 0, random.Random(0))
        assert rule == "make_room"
        assert (move.from_key, move.to_key) == ("-1,5", "-2,6")

    def test_fill_deeper_cells(self):
        state = _state(["-4,8"], ["0,0"])
        move, rule = _choose(state, 0, random.Random(0))
        assert rule == "deeper"
        assert move.to == coord("-4,8")
        assert move.from_key in GOAL_KEYS_P0

    def test_stepping_stone(self):
        state = _state(["-1,5"], ["-1,3", "0,3"])
        move, rule = _choose(state, 0, random.Random(0))
        assert rule == "stepping_stone"
        assert move.to == coord("-1,4")

    def test_advance_outside_piece(self):
        """With nothing to shuffle, the outside piece heads for the goal."""
        state = _state(["-4,5"], ["4,-4"])
        move, rule = _choose(state, 0, random.Random(0))
        assert rule in {"advance", "shuffle_sequence"}
        if rule == "advance":
            assert move.from_key == "4,-4"

    def test_no_moves(self):
        assert find_endgame_move(build_state({"-4,8": 2}), 0) is None

    def test_records_rule_metric(self):
        labels = {"rule": "direct_entry"}
        before = REGISTRY.get_sample_value("sternhalma_endgame_solver_moves_total", labels) or 0.0
        find_endgame_move(_state(["-1,5"], ["-1,4"]), 0, random.Random(0))
        assert REGISTRY.get_sample_value("sternhalma_endgame_solver_moves_total", labels) == before + 1

