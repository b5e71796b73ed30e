"""
Reconciliation with the online synchronization layer.

The server stores confirmed turns as untagged ``{from, to}`` key pairs. Each
pair is classified here as a step, jump or swap by looking at coordinate
distance and at what stands on the destination, then replayed to rebuild the
authoritative state.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from sternhalma.game.board import ACTIVE_PLAYERS
from sternhalma.game.coordinates import distance, key_to_coord
from sternhalma.game.factory import create_game, create_game_from_layout
from sternhalma.game.moves import get_jump_moves
from sternhalma.game.state import advance_turn, goal_keys_for_state, move_piece
from sternhalma.game.types import GameState, Move
from sternhalma.models import AIConfig, OnlineGame, OnlineMove, OnlinePlayerSlot

logger = logging.getLogger(__name__)


def classify_online_move(state: GameState, online_move: OnlineMove) -> Move:
    """Turn an untagged coordinate pair into a typed Move.

    Distance above one is a jump; its path is recovered from the jump
    generator, falling back to any path the server sent. A one-cell move
    onto an opponent piece standing on the mover's goal is a swap.
    """
    from_pos = key_to_coord(online_move.from_key)
    to = key_to_coord(online_move.to_key)

    if distance(from_pos, to) > 1:
        for candidate in get_jump_moves(state, from_pos):
            if candidate.to == to:
                return candidate
        path = (
            tuple(key_to_coord(k) for k in online_move.jump_path)
            if online_move.jump_path
            else None
        )
        return Move(from_pos, to, is_jump=True, jump_path=path)

    mover = state.board.get(online_move.from_key)
    target = state.board.get(online_move.to_key)
    if (
        mover is not None
        and mover.is_piece
        and target is not None
        and target.is_piece
        and target.player != mover.player
        and online_move.to_key in goal_keys_for_state(state, mover.player)
    ):
        return Move(from_pos, to, is_jump=False, is_swap=True)
    return Move(from_pos, to, is_jump=False)


def _seat_mappings(
    players: List[OnlinePlayerSlot], active: List[int]
) -> Tuple[Dict[int, str], Dict[int, AIConfig]]:
    colors: Dict[int, str] = {}
    ai_players: Dict[int, AIConfig] = {}
    for slot, player_index in zip(players, active):
        if slot.color:
            colors[player_index] = slot.color
        if slot.type == "ai" and slot.ai_config is not None:
            ai_players[player_index] = slot.ai_config
    return colors, ai_players


def reconstruct_game_state(game: OnlineGame) -> GameState:
    """Replay every confirmed turn from the initial position."""
    active = ACTIVE_PLAYERS.get(game.player_count, [])
    colors, ai_players = _seat_mappings(game.players, active)

    if game.board_type == "custom" and game.custom_layout is not None:
        state = create_game_from_layout(game.custom_layout, colors or None, ai_players or None)
    else:
        state = create_game(game.player_count, None, colors or None, ai_players or None)

    for turn in game.turns:
        for online_move in turn.moves:
            state = move_piece(state, classify_online_move(state, online_move))
        state = advance_turn(state)
    logger.debug(f"Reconstructed online game {game.id} after {len(game.turns)} turns")
    return state


def serialize_moves(state: GameState, start_index: int = 0) -> List[Dict[str, str]]:
    """``{from, to}`` key pairs for moves recorded since ``start_index``."""
    return [
        {"from": m.from_key, "to": m.to_key}
        for m in state.move_history[start_index:]
    ]


def serialize_turn(state: GameState, start_index: int, player_index: Optional[int] = None) -> dict:
    """Payload for submitting the current turn's moves to the server."""
    player = player_index
    if player is None:
        recent = state.move_history[start_index:]
        player = recent[0].player if recent else state.current_player
    return {"playerIndex": player, "moves": serialize_moves(state, start_index)}
