"""
Move generation: steps, chain jumps and swaps.

Board membership is always tested by key lookup, so the same code serves
the standard star and arbitrary custom layouts.
"""

from __future__ import annotations

from collections import deque
from typing import List

from sternhalma.errors import RulesViolationError
from sternhalma.game.coordinates import DIRECTIONS, CubeCoord, coord_to_key, jump_destination, key_to_coord
from sternhalma.game.state import get_home_positions_for_state, goal_keys_for_state
from sternhalma.game.types import GameState, Move


def _is_empty(state: GameState, coord: CubeCoord) -> bool:
    cell = state.board.get(coord_to_key(coord))
    return cell is not None and cell.is_empty


def _has_piece(state: GameState, coord: CubeCoord) -> bool:
    cell = state.board.get(coord_to_key(coord))
    return cell is not None and cell.is_piece


def get_step_moves(state: GameState, from_pos: CubeCoord) -> List[Move]:
    return [
        Move(from_pos, from_pos + d, is_jump=False)
        for d in DIRECTIONS
        if _is_empty(state, from_pos + d)
    ]


def get_jump_moves(state: GameState, from_pos: CubeCoord) -> List[Move]:
    """Every chain-jump destination, found breadth first.

    Any piece can be jumped. A landing cell is visited at most once per
    chain, so each destination appears once with its shortest jump path.
    """
    moves: List[Move] = []
    visited = {coord_to_key(from_pos)}
    queue = deque([(from_pos, ())])

    while queue:
        current, path = queue.popleft()
        for d in DIRECTIONS:
            over = current + d
            landing = jump_destination(current, over)
            landing_key = coord_to_key(landing)
            if landing_key in visited:
                continue
            if not _has_piece(state, over) or not _is_empty(state, landing):
                continue
            visited.add(landing_key)
            new_path = path + (over,)
            moves.append(Move(from_pos, landing, is_jump=True, jump_path=new_path))
            queue.append((landing, new_path))
    return moves


def has_player_left_home(state: GameState, player: int) -> bool:
    for pos in get_home_positions_for_state(state, player):
        cell = state.board.get(coord_to_key(pos))
        if cell is not None and cell.is_piece and cell.player == player:
            return False
    return True


def get_swap_moves(state: GameState, from_pos: CubeCoord, player: int) -> List[Move]:
    """Single steps onto an own goal cell held by an opponent.

    Only available once the player has vacated every starting cell. A custom
    layout without goals for the player allows no swaps.
    """
    if not has_player_left_home(state, player):
        return []
    if state.is_custom_layout and not (
        state.custom_goal_positions and state.custom_goal_positions.get(player)
    ):
        return []
    goals = goal_keys_for_state(state, player)

    moves = []
    for d in DIRECTIONS:
        to = from_pos + d
        to_key = coord_to_key(to)
        if to_key not in goals:
            continue
        cell = state.board.get(to_key)
        if cell is None or not cell.is_piece or cell.player == player:
            continue
        moves.append(Move(from_pos, to, is_jump=False, is_swap=True))
    return moves


def get_valid_moves(state: GameState, from_pos: CubeCoord) -> List[Move]:
    """Steps, then jumps, then swaps for the piece on ``from_pos``."""
    cell = state.board.get(coord_to_key(from_pos))
    if cell is None or not cell.is_piece:
        return []
    return (
        get_step_moves(state, from_pos)
        + get_jump_moves(state, from_pos)
        + get_swap_moves(state, from_pos, cell.player)
    )


def get_all_valid_moves(state: GameState, player: int) -> List[Move]:
    moves: List[Move] = []
    for key, cell in state.board.items():
        if cell.is_piece and cell.player == player:
            moves.extend(get_valid_moves(state, key_to_coord(key)))
    return moves


def is_valid_move(state: GameState, move: Move, player: int) -> bool:
    """Re-derive the legal set and check membership by origin and destination."""
    cell = state.board.get(move.from_key)
    if cell is None or not cell.is_piece or cell.player != player:
        return False
    return any(
        m.from_pos == move.from_pos and m.to == move.to
        for m in get_valid_moves(state, move.from_pos)
    )


def find_legal_move(state: GameState, move: Move, player: int) -> Move:
    """Return the generator's own Move matching ``move`` by origin and destination.

    Caller-supplied jump paths and flags are discarded in favour of the
    generator's.

    Raises:
        RulesViolationError: if no legal move matches.
    """
    cell = state.board.get(move.from_key)
    if cell is not None and cell.is_piece and cell.player == player:
        for candidate in get_valid_moves(state, move.from_pos):
            if candidate.to == move.to:
                return candidate
    raise RulesViolationError(
        "Move is not legal in this position",
        context={"player": player, "from": move.from_key, "to": move.to_key},
    )
