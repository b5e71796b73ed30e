"""
Shared pytest fixtures for the Sternhalma tests.

Game state fixtures are function-scoped so every test gets its own
snapshot. Persistent paths (evolved genome, learning data) are redirected
into ``tmp_path`` for every test so nothing touches the user's home.
"""

from typing import Callable, Dict, Iterable, Optional

import pytest
from prometheus_client.registry import CollectorRegistry

from sternhalma import config
from sternhalma.ai import distance_oracle, learning
from sternhalma.game.board import default_board_positions
from sternhalma.game.coordinates import CubeCoord, coord_to_key, key_to_coord
from sternhalma.game.factory import create_game, create_game_from_layout
from sternhalma.game.types import EMPTY, GameState, piece
from sternhalma.models import BoardLayout


# =============================================================================
# PROMETHEUS REGISTRY FIX
# =============================================================================
# Test modules can import the metrics module through different paths; make
# re-registration of an identical collector a no-op instead of an error.


def _patch_prometheus_registry():
    """Patch the registry so duplicate metric registration is ignored."""
    _original_register = CollectorRegistry.register

    def _safe_register(self, collector):
        """Register collector, ignoring duplicates."""
        try:
            return _original_register(self, collector)
        except ValueError as e:
            if "Duplicated timeseries" not in str(e):
                raise
            return None

    # Only patch once
    if not getattr(CollectorRegistry, "_patched_for_tests", False):
        CollectorRegistry.register = _safe_register
        CollectorRegistry._patched_for_tests = True


_patch_prometheus_registry()


# =============================================================================
# ENVIRONMENT ISOLATION
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path, monkeypatch):
    """Point persisted genome and learning data at a per-test directory."""
    monkeypatch.setattr(config, "EVOLVED_GENOME_PATH", tmp_path / "evolved_genome.json")
    monkeypatch.setattr(config, "LEARNING_DATA_PATH", tmp_path / "learning.json")
    monkeypatch.setattr(config, "LEARNING_ENABLED", False)
    monkeypatch.setattr(learning, "_default_store", None)
    distance_oracle.clear_cache()
    yield tmp_path
    distance_oracle.clear_cache()


# =============================================================================
# GAME STATE FIXTURES
# =============================================================================


@pytest.fixture
def two_player_game() -> GameState:
    """Fresh standard two-player game (players 0 and 2, player 0 to move)."""
    return create_game(2)


@pytest.fixture
def three_player_game() -> GameState:
    return create_game(3)


def build_state(
    pieces: Dict[str, int],
    active_players: Iterable[int] = (0, 2),
    current_player: Optional[int] = None,
) -> GameState:
    """Standard star with only the given ``{key: player}`` pieces placed."""
    active = list(active_players)
    board = {coord_to_key(c): EMPTY for c in default_board_positions()}
    for key, player in pieces.items():
        assert key in board, f"{key} is not on the standard board"
        board[key] = piece(player)
    return GameState(
        board=board,
        player_count=len(active),
        active_players=active,
        current_player=current_player if current_player is not None else active[0],
    )


@pytest.fixture
def make_state() -> Callable[..., GameState]:
    return build_state


def strip_layout(length: int = 6, walls: Optional[list] = None) -> BoardLayout:
    """A single row of ``length`` cells; player 0 starts at one end, goal at the other."""
    cells = [f"{q},0" for q in range(length)]
    return BoardLayout(
        id="strip",
        name="Strip",
        cells=cells,
        starting_positions={0: ["0,0"], 2: [f"{length - 1},0"]},
        goal_positions={0: [f"{length - 1},0"], 2: ["0,0"]},
        walls=walls,
    )


@pytest.fixture
def strip_game() -> GameState:
    return create_game_from_layout(strip_layout())


def coord(key: str) -> CubeCoord:
    return key_to_coord(key)
