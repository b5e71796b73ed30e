"""Game creation for the standard star and for custom editor layouts."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from sternhalma.ai import distance_oracle
from sternhalma.errors import ConfigurationError, InvalidStateError
from sternhalma.game.board import ACTIVE_PLAYERS, default_board_positions, home_positions
from sternhalma.game.coordinates import CubeCoord, coord_to_key, key_to_coord
from sternhalma.game.types import EMPTY, WALL, Cell, GameState, piece
from sternhalma.models import AIConfig, BoardLayout

logger = logging.getLogger(__name__)


def default_starting_keys(player: int) -> List[str]:
    return [coord_to_key(c) for c in home_positions(player)]


def create_game(
    player_count: int,
    selected_players: Optional[Sequence[int]] = None,
    player_colors: Optional[Dict[int, str]] = None,
    ai_players: Optional[Dict[int, AIConfig]] = None,
) -> GameState:
    """Start a game on the standard 121-cell star.

    ``selected_players`` overrides the default seating for ``player_count``.
    """
    if selected_players is None:
        if player_count not in ACTIVE_PLAYERS:
            raise ConfigurationError(
                "Unsupported player count",
                context={"player_count": player_count},
            )
        active = list(ACTIVE_PLAYERS[player_count])
    else:
        active = list(selected_players)
        if (
            not active
            or any(p not in range(6) for p in active)
            or len(set(active)) != len(active)
        ):
            raise ConfigurationError(
                "Selected players must be distinct indices 0-5",
                context={"selected_players": active},
            )

    board: Dict[str, Cell] = {coord_to_key(c): EMPTY for c in default_board_positions()}
    starting: Dict[int, List[str]] = {}
    for player in active:
        keys = default_starting_keys(player)
        starting[player] = keys
        for key in keys:
            board[key] = piece(player)

    distance_oracle.clear_cache()
    logger.debug(f"Created standard game for players {active}")
    return GameState(
        board=board,
        player_count=player_count,
        active_players=active,
        current_player=active[0],
        player_colors=player_colors,
        ai_players=ai_players,
        starting_positions=starting,
    )


def create_game_from_layout(
    layout: BoardLayout,
    player_colors: Optional[Dict[int, str]] = None,
    ai_players: Optional[Dict[int, AIConfig]] = None,
) -> GameState:
    """Start a game on a custom board.

    Players with at least one starting cell become active, in index order.
    Walls are placed after pieces and overwrite them.
    """
    board: Dict[str, Cell] = {}
    for key in layout.cells:
        try:
            key_to_coord(key)
        except ValueError as exc:
            raise InvalidStateError(
                "Malformed cell key in layout",
                context={"layout": layout.id, "key": key},
            ) from exc
        board[key] = EMPTY

    active: List[int] = []
    for player in range(6):
        positions = layout.starting_positions.get(player)
        if not positions:
            continue
        active.append(player)
        for key in positions:
            board[key] = piece(player)

    for key in layout.walls or ():
        board[key] = WALL

    count = len(active)
    if count <= 2:
        player_count = 2
    elif count == 3:
        player_count = 3
    elif count <= 4:
        player_count = 4
    else:
        player_count = 6

    distance_oracle.clear_cache()
    logger.debug(f"Created custom game '{layout.name}' with {len(board)} cells, players {active}")
    return GameState(
        board=board,
        player_count=player_count,
        active_players=active,
        current_player=active[0] if active else 0,
        is_custom_layout=True,
        player_colors=player_colors,
        ai_players=ai_players,
        custom_goal_positions=layout.goal_positions,
        starting_positions=layout.starting_positions,
    )


def get_player_pieces(state: GameState, player: int) -> List[CubeCoord]:
    """Coordinates of ``player``'s pieces, in board order."""
    return [
        key_to_coord(key)
        for key, cell in state.board.items()
        if cell.is_piece and cell.player == player
    ]
