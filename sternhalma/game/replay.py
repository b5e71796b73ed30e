"""
Saved-game records and deterministic replay.

A saved game stores its initial configuration plus a normalized move list
in which the hops of each chain jump are merged into a single move.
Replaying that list from the initial configuration regenerates every
intermediate state.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sternhalma.game.factory import create_game, create_game_from_layout
from sternhalma.game.state import apply_move
from sternhalma.game.types import CellKind, GameState, Move
from sternhalma.models import (
    BoardLayout,
    FinishRecord,
    InitialConfig,
    MovePayload,
    SavedGameRecord,
    SavedGameSummary,
)


@dataclass(frozen=True, slots=True)
class LongestHop:
    move_index: int
    jump_length: int


def normalize_move_history(moves: Sequence[Move]) -> List[Move]:
    """Merge consecutive chain-jump hops into one move per turn.

    A move continues the previous one when it is a jump by the same player
    in the same turn, starting where the previous move ended.
    """
    if not moves:
        return []

    normalized: List[Move] = []
    current = moves[0]
    for nxt in moves[1:]:
        if (
            nxt.is_jump
            and nxt.from_pos == current.to
            and nxt.player == current.player
            and nxt.turn_number == current.turn_number
        ):
            current = Move(
                from_pos=current.from_pos,
                to=nxt.to,
                is_jump=True,
                jump_path=(current.jump_path or ()) + (nxt.jump_path or ()),
                is_swap=bool(current.is_swap or nxt.is_swap),
                player=current.player,
                turn_number=current.turn_number,
            )
        else:
            normalized.append(current)
            current = nxt
    normalized.append(current)
    return normalized


def find_longest_hop(moves: Sequence[Move]) -> Optional[LongestHop]:
    """The move with the longest jump path; earliest wins ties."""
    best: Optional[LongestHop] = None
    for i, move in enumerate(moves):
        if move.is_jump and move.jump_path:
            length = len(move.jump_path)
            if best is None or length > best.jump_length:
                best = LongestHop(i, length)
    return best


def initial_state(config: InitialConfig) -> GameState:
    if config.is_custom_layout and config.custom_cells is not None:
        layout = BoardLayout(
            cells=config.custom_cells,
            starting_positions=config.custom_starting_positions or {},
            goal_positions=config.custom_goal_positions,
            walls=config.custom_walls,
        )
        return create_game_from_layout(layout, config.player_colors, config.ai_players)
    state = create_game(
        config.player_count,
        config.active_players,
        config.player_colors,
        config.ai_players,
    )
    if config.is_custom_layout:
        state.is_custom_layout = True
    return state


def reconstruct_game_states(record: SavedGameRecord) -> List[GameState]:
    """``states[0]`` is the initial position and ``states[i]`` follows move ``i``."""
    current = initial_state(record.initial_config)
    states = [current]
    for payload in record.moves:
        move = Move.from_dict(payload.model_dump(by_alias=True, exclude_none=True))
        current = apply_move(current, move)
        states.append(current)
    return states


def _stripped(move: Move) -> MovePayload:
    data = move.to_dict()
    data.pop("turnNumber", None)
    if not move.is_swap:
        data.pop("isSwap", None)
    return MovePayload.model_validate(data)


def build_saved_game(
    game_id: str,
    final_state: GameState,
    date_saved: Optional[int] = None,
) -> Tuple[SavedGameRecord, SavedGameSummary]:
    """Build the replay record and listing summary for a finished game."""
    moves = normalize_move_history(final_state.move_history)
    longest = find_longest_hop(moves)
    saved_at = date_saved if date_saved is not None else int(time.time() * 1000)

    config = InitialConfig(
        player_count=final_state.player_count,
        active_players=list(final_state.active_players),
        player_colors=final_state.player_colors,
        ai_players=final_state.ai_players,
    )
    if final_state.is_custom_layout:
        config.is_custom_layout = True
        config.custom_cells = list(final_state.board)
        config.custom_starting_positions = final_state.starting_positions
        config.custom_goal_positions = final_state.custom_goal_positions
        walls = [k for k, c in final_state.board.items() if c.kind is CellKind.WALL]
        config.custom_walls = walls or None

    if final_state.winner is not None:
        winner = final_state.winner
    elif final_state.finished_players:
        winner = final_state.finished_players[0].player
    else:
        winner = 0

    record = SavedGameRecord(
        id=game_id,
        initial_config=config,
        moves=[_stripped(m) for m in moves],
        finished_players=[
            FinishRecord(player=f.player, move_count=f.move_count)
            for f in final_state.finished_players
        ],
        date_saved=saved_at,
    )
    summary = SavedGameSummary(
        id=game_id,
        date_saved=saved_at,
        player_count=final_state.player_count,
        active_players=list(final_state.active_players),
        winner=winner,
        total_moves=len(moves),
        total_turns=final_state.turn_number,
        longest_hop=longest.jump_length if longest else 0,
        player_colors=final_state.player_colors,
        ai_players=final_state.ai_players,
    )
    return record, summary
