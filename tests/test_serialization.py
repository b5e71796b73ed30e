"""Round-trip tests for the flat GameState form."""

import json

import pytest

from sternhalma.errors import InvalidStateError
from sternhalma.game.factory import create_game, create_game_from_layout
from sternhalma.game.state import apply_move
from sternhalma.game.types import GameState, Move
from sternhalma.models import AIConfig, Difficulty, Personality
from tests.conftest import coord, strip_layout


class TestGameStateSerialization:
    def test_round_trip_preserves_everything(self):
        state = create_game(
            2,
            player_colors={0: "#ff0000", 2: "#0000ff"},
            ai_players={2: AIConfig(difficulty=Difficulty.HARD, personality=Personality.DEFENSIVE)},
        )
        state = apply_move(state, Move(coord("2,-6"), coord("0,-4"), is_jump=True, jump_path=(coord("1,-5"),)))

        data = json.loads(json.dumps(state.to_dict()))
        restored = GameState.from_dict(data)

        assert restored.board == state.board
        assert restored.move_history == state.move_history
        assert restored.player_colors == {0: "#ff0000", 2: "#0000ff"}
        assert restored.ai_players[2].difficulty is Difficulty.HARD
        assert restored.current_player == state.current_player
        assert restored.turn_number == state.turn_number

    def test_unset_optional_fields_stay_unset(self):
        state = create_game(2)
        data = state.to_dict()
        assert "isCustomLayout" not in data
        assert "playerColors" not in data
        restored = GameState.from_dict(data)
        assert restored.is_custom_layout is None
        assert restored.player_colors is None
        assert restored.ai_players is None
        assert restored.winner is None

    def test_board_is_a_list_of_pairs(self):
        data = create_game(2).to_dict()
        assert isinstance(data["boardEntries"], list)
        assert all(len(entry) == 2 for entry in data["boardEntries"])

    def test_custom_layout_round_trip(self):
        state = create_game_from_layout(strip_layout(walls=["3,0"]))
        restored = GameState.from_dict(state.to_dict())
        assert restored.board == state.board
        assert restored.custom_goal_positions == {0: ["5,0"], 2: ["0,0"]}
        assert restored.is_custom_layout is True

    def test_malformed_state(self):
        with pytest.raises(InvalidStateError):
            GameState.from_dict({"playerCount": 2})

    def test_move_dict_omits_unset_fields(self):
        data = Move(coord("1,-5"), coord("1,-4"), is_jump=False).to_dict()
        assert set(data) == {"from", "to", "isJump"}
