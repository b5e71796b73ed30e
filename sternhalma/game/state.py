"""
Game state machine.

All transitions return a new GameState and leave their input untouched.

- ``move_piece`` relocates a piece and records it without ending the turn
  (used while a chain jump is still being entered hop by hop).
- ``advance_turn`` passes the turn to the next unfinished active player.
- ``apply_move`` does both.
- ``undo_move`` reverses the last recorded move.
"""

from __future__ import annotations

from typing import List, Optional

from sternhalma.errors import InvalidMoveError
from sternhalma.game.board import goal_positions, home_positions
from sternhalma.game.coordinates import CubeCoord, coord_to_key, key_to_coord
from sternhalma.game.factory import get_player_pieces
from sternhalma.game.types import EMPTY, FinishedPlayer, GameState, Move


# =============================================================================
# Goal and home lookups
# =============================================================================


def get_goal_positions_for_state(state: GameState, player: int) -> List[CubeCoord]:
    if state.is_custom_layout and state.custom_goal_positions and state.custom_goal_positions.get(player):
        return [key_to_coord(k) for k in state.custom_goal_positions[player]]
    return list(goal_positions(player))


def get_home_positions_for_state(state: GameState, player: int) -> List[CubeCoord]:
    if state.is_custom_layout and state.starting_positions and state.starting_positions.get(player):
        return [key_to_coord(k) for k in state.starting_positions[player]]
    return list(home_positions(player))


def goal_keys_for_state(state: GameState, player: int) -> set:
    return {coord_to_key(c) for c in get_goal_positions_for_state(state, player)}


def count_pieces_in_goal(state: GameState, player: int) -> int:
    count = 0
    for pos in get_goal_positions_for_state(state, player):
        cell = state.board.get(coord_to_key(pos))
        if cell is not None and cell.is_piece and cell.player == player:
            count += 1
    return count


def has_player_won(state: GameState, player: int) -> bool:
    """True when every one of the player's pieces sits on one of their goal cells."""
    goals = goal_keys_for_state(state, player)
    pieces = get_player_pieces(state, player)
    if not pieces or not goals:
        return False
    return all(coord_to_key(p) in goals for p in pieces)


def check_winner(state: GameState) -> Optional[int]:
    for player in state.active_players:
        if has_player_won(state, player):
            return player
    return None


def is_finished(state: GameState, player: int) -> bool:
    return any(f.player == player for f in state.finished_players)


def is_game_over(state: GameState) -> bool:
    return state.winner is not None


def is_game_fully_over(state: GameState) -> bool:
    return len(state.finished_players) >= len(state.active_players)


# =============================================================================
# Transitions
# =============================================================================


def move_piece(state: GameState, move: Move) -> GameState:
    """Relocate a piece and record the move. The turn does not advance.

    Raises:
        InvalidMoveError: if no piece stands on ``move.from_pos``.
    """
    from_key = move.from_key
    to_key = move.to_key
    moving = state.board.get(from_key)
    if moving is None or not moving.is_piece:
        raise InvalidMoveError("No piece at move origin", context={"from": from_key})

    new_state = state.clone()
    if move.is_swap:
        displaced = state.board.get(to_key)
        new_state.board[from_key] = displaced if displaced is not None and displaced.is_piece else EMPTY
    else:
        new_state.board[from_key] = EMPTY
    new_state.board[to_key] = moving

    player = moving.player
    new_state.move_history.append(move.with_player(player, state.turn_number))

    if not is_finished(new_state, player) and has_player_won(new_state, player):
        new_state.finished_players.append(
            FinishedPlayer(player, len(new_state.move_history))
        )
        if new_state.winner is None:
            new_state.winner = player
    return new_state


def advance_turn(state: GameState) -> GameState:
    """Pass the turn to the next active player who has not finished."""
    new_state = state.clone()
    finished = {f.player for f in state.finished_players}
    active = state.active_players
    current_index = active.index(state.current_player)
    num_players = len(active)

    next_index = (current_index + 1) % num_players
    for _ in range(num_players):
        if active[next_index] not in finished:
            break
        next_index = (next_index + 1) % num_players

    new_state.current_player = active[next_index]
    if next_index <= current_index:
        new_state.turn_number += 1
    return new_state


def apply_move(state: GameState, move: Move) -> GameState:
    return advance_turn(move_piece(state, move))


def undo_move(state: GameState) -> Optional[GameState]:
    """Reverse the last recorded move, or return None if there is none.

    Restores a swapped-out piece, hands the turn back to the mover, and
    un-finishes them if the undone move is what completed their goal.
    """
    if not state.move_history:
        return None

    last = state.move_history[-1]
    to_key = last.to_key
    from_key = last.from_key
    moved = state.board.get(to_key)
    if moved is None or not moved.is_piece:
        raise InvalidMoveError("No piece at move destination", context={"to": to_key})

    new_state = state.clone()
    new_state.move_history.pop()
    if last.is_swap:
        displaced = state.board.get(from_key)
        new_state.board[to_key] = displaced if displaced is not None and displaced.is_piece else EMPTY
    else:
        new_state.board[to_key] = EMPTY
    new_state.board[from_key] = moved

    owner = moved.player
    new_state.current_player = owner
    new_state.finished_players = [
        f for f in new_state.finished_players
        if f.player != owner or has_player_won(new_state, owner)
    ]
    if not new_state.finished_players:
        new_state.winner = None
    elif new_state.winner is not None and not any(
        f.player == new_state.winner for f in new_state.finished_players
    ):
        new_state.winner = new_state.finished_players[0].player

    if last.turn_number is not None:
        new_state.turn_number = last.turn_number
    else:
        # Untagged history: the counter went up only if handing over the turn
        # wrapped, which includes wrapping back to a lone unfinished mover.
        active = state.active_players
        if state.current_player in active and owner in active:
            if active.index(state.current_player) <= active.index(owner) and new_state.turn_number > 1:
                new_state.turn_number -= 1
    return new_state
