"""
Rule-based end-game solver.

Once a player has most pieces home, flat evaluation handles the last
pieces badly: freeing a goal cell for a jump-in takes several quiet moves
that no single-ply score rewards. This module replaces search with a fixed
priority ladder; the first rule that yields a move wins.

"Depth" of a goal cell is its hex distance from the board center. Deep
cells are filled first since shallow pieces can wall them off.

1. direct entry from outside, deepest target then longest chain
2. make room: move a goal piece that blocks a jump-in deeper
3. any strictly deeper in-goal move
4. step a piece onto a stepping stone next to an empty goal
5. in-goal shuffle that unlocks an entry next ply
6. bounded shuffle-sequence lookahead
7. advance outside pieces toward the deepest empty goal
8. any move that neither leaves the goal nor retreats within it
9. leave the goal, preferring moves that unlock an entry
"""

from __future__ import annotations

import logging
import random
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from sternhalma.game.board import PIECES_PER_PLAYER
from sternhalma.game.coordinates import DIRECTIONS, ORIGIN, CubeCoord, centroid, coord_to_key, distance
from sternhalma.game.factory import get_player_pieces
from sternhalma.game.moves import get_all_valid_moves
from sternhalma.game.state import apply_move, count_pieces_in_goal, goal_keys_for_state, get_goal_positions_for_state
from sternhalma.game.types import GameState, Move
from sternhalma.metrics import ENDGAME_SOLVER_MOVES

logger = logging.getLogger(__name__)

LATE_ENDGAME_PIECES = PIECES_PER_PLAYER - 3
SHUFFLE_SEARCH_DEPTH = 4
# Positions expanded by one shuffle-sequence search before it gives up.
SHUFFLE_NODE_BUDGET = 2000

# Ordering tolerance for "advance toward the goal" candidates.
_TOLERANCE = 0.5


def is_late_endgame(state: GameState, player: int) -> bool:
    return count_pieces_in_goal(state, player) >= LATE_ENDGAME_PIECES


def get_goal_position_depth(goal: CubeCoord) -> float:
    return distance(goal, ORIGIN)


def get_empty_goals_by_depth(state: GameState, player: int) -> List[CubeCoord]:
    """Empty goal cells, deepest first."""
    empty = []
    for goal in get_goal_positions_for_state(state, player):
        cell = state.board.get(coord_to_key(goal))
        if cell is not None and cell.is_empty:
            empty.append(goal)
    return sorted(empty, key=get_goal_position_depth, reverse=True)


def get_pieces_outside_goal(state: GameState, player: int) -> List[CubeCoord]:
    goal_keys = goal_keys_for_state(state, player)
    return [p for p in get_player_pieces(state, player) if coord_to_key(p) not in goal_keys]


def is_direct_goal_entry(move: Move, goal_keys: Set[str]) -> bool:
    return move.to_key in goal_keys and move.from_key not in goal_keys


def _jump_len(move: Move) -> int:
    return len(move.jump_path) if move.jump_path else 0


def could_enter_goal_if_empty(
    state: GameState, goal: CubeCoord, outside: Sequence[CubeCoord]
) -> Optional[CubeCoord]:
    """Outside piece that could jump into ``goal`` were it empty, if any."""
    outside_set = set(outside)
    for d in DIRECTIONS:
        jumper = goal - d - d
        if jumper not in outside_set:
            continue
        over = state.board.get(coord_to_key(goal - d))
        if over is not None and over.is_piece:
            return jumper
    return None


def _enables_entry(state: GameState, move: Move, player: int, goal_keys: Set[str]) -> bool:
    nxt = apply_move(state, move)
    return any(is_direct_goal_entry(m, goal_keys) for m in get_all_valid_moves(nxt, player))


def _enabled_entry_depths(state: GameState, move: Move, player: int, goal_keys: Set[str]) -> List[float]:
    nxt = apply_move(state, move)
    return [
        get_goal_position_depth(m.to)
        for m in get_all_valid_moves(nxt, player)
        if is_direct_goal_entry(m, goal_keys)
    ]


def find_make_room_move(
    state: GameState,
    player: int,
    all_moves: Sequence[Move],
    goal_keys: Set[str],
    outside: Sequence[CubeCoord],
) -> Optional[Move]:
    blockers = []
    for goal in get_goal_positions_for_state(state, player):
        cell = state.board.get(coord_to_key(goal))
        if cell is None or not cell.is_piece or cell.player != player:
            continue
        if could_enter_goal_if_empty(state, goal, outside) is not None:
            blockers.append(goal)
    blockers.sort(key=get_goal_position_depth)

    for blocker in blockers:
        deeper = [
            m for m in all_moves
            if m.from_pos == blocker
            and m.to_key in goal_keys
            and get_goal_position_depth(m.to) > get_goal_position_depth(m.from_pos)
        ]
        if deeper:
            return max(deeper, key=lambda m: get_goal_position_depth(m.to))
    return None


def find_stepping_stone_move(
    state: GameState,
    all_moves: Sequence[Move],
    goal_keys: Set[str],
    outside: Sequence[CubeCoord],
    empty_goals: Sequence[CubeCoord],
) -> Optional[Move]:
    if not empty_goals or not outside:
        return None
    outside_set = set(outside)
    for empty_goal in empty_goals:
        for d in DIRECTIONS:
            if empty_goal - d - d not in outside_set:
                continue
            stone = empty_goal - d
            cell = state.board.get(coord_to_key(stone))
            if cell is None or not cell.is_empty:
                continue
            stone_move = next((m for m in all_moves if m.to == stone), None)
            if stone_move is None:
                continue
            if stone_move.from_key in goal_keys and stone_move.to_key not in goal_keys:
                if get_goal_position_depth(empty_goal) <= get_goal_position_depth(stone_move.from_pos):
                    continue
            return stone_move
    return None


class _ShuffleSearch:
    """Depth-limited search for a move sequence that unlocks a goal entry."""

    def __init__(self, player: int, goal_keys: Set[str], budget: int = SHUFFLE_NODE_BUDGET) -> None:
        self.player = player
        self.goal_keys = goal_keys
        self.budget = budget
        self.nodes = 0

    def _allowed(self, move: Move, depth: int) -> bool:
        from_in = move.from_key in self.goal_keys
        to_in = move.to_key in self.goal_keys
        if from_in and to_in:
            return get_goal_position_depth(move.to) >= get_goal_position_depth(move.from_pos)
        if from_in and not to_in:
            return depth >= 3
        return True

    def search(self, state: GameState, moves: Iterable[Move], depth: int) -> Optional[Move]:
        if depth <= 0:
            return None
        for move in moves:
            if not self._allowed(move, depth):
                continue
            if self.nodes >= self.budget:
                return None
            self.nodes += 1
            nxt = apply_move(state, move)
            next_moves = get_all_valid_moves(nxt, self.player)
            if any(is_direct_goal_entry(m, self.goal_keys) for m in next_moves):
                return move
            if depth > 1 and self.search(nxt, next_moves, depth - 1) is not None:
                return move
        return None


def find_shuffle_sequence(
    state: GameState,
    player: int,
    moves: Sequence[Move],
    goal_keys: Set[str],
    max_depth: int = SHUFFLE_SEARCH_DEPTH,
) -> Optional[Move]:
    """First move of a sequence of at most ``max_depth`` moves unlocking an entry."""
    return _ShuffleSearch(player, goal_keys).search(state, moves, max_depth)


def _advance_outside(
    all_moves: Sequence[Move], outside: Sequence[CubeCoord], target: CubeCoord
) -> Optional[Move]:
    candidates = []
    for piece in outside:
        piece_dist = distance(piece, target)
        for move in all_moves:
            if move.from_pos != piece:
                continue
            improvement = piece_dist - distance(move.to, target)
            candidates.append((move, improvement, piece_dist, _jump_len(move)))
    if not candidates:
        return None

    def better(a, b) -> bool:
        if abs(a[1] - b[1]) > _TOLERANCE:
            return a[1] > b[1]
        if abs(a[2] - b[2]) > _TOLERANCE:
            return a[2] > b[2]
        return a[3] > b[3]

    # Tolerance comparisons are not transitive, so keep a stable running best.
    def pick(pool):
        best = pool[0]
        for c in pool[1:]:
            if better(c, best):
                best = c
        return best[0]

    forward = [c for c in candidates if c[1] >= 0]
    return pick(forward) if forward else pick(candidates)


def _choose(state: GameState, player: int, rng: random.Random) -> Optional[Tuple[Move, str]]:
    all_moves = get_all_valid_moves(state, player)
    if not all_moves:
        return None

    goals = get_goal_positions_for_state(state, player)
    goal_keys = {coord_to_key(g) for g in goals}
    outside = get_pieces_outside_goal(state, player)
    empty_goals = get_empty_goals_by_depth(state, player)

    if not outside and not empty_goals:
        return all_moves[0], "finished"

    entries = [m for m in all_moves if is_direct_goal_entry(m, goal_keys)]
    if entries:
        best = max(entries, key=lambda m: (get_goal_position_depth(m.to), _jump_len(m)))
        return best, "direct_entry"

    move = find_make_room_move(state, player, all_moves, goal_keys, outside)
    if move is not None:
        return move, "make_room"

    deeper = [
        m for m in all_moves
        if m.from_key in goal_keys and m.to_key in goal_keys
        and get_goal_position_depth(m.to) > get_goal_position_depth(m.from_pos)
    ]
    if deeper:
        best = max(deeper, key=lambda m: get_goal_position_depth(m.to) - get_goal_position_depth(m.from_pos))
        return best, "deeper"

    move = find_stepping_stone_move(state, all_moves, goal_keys, outside, empty_goals)
    if move is not None:
        return move, "stepping_stone"

    shuffles = []
    for m in all_moves:
        if m.from_key not in goal_keys or m.to_key not in goal_keys:
            continue
        if get_goal_position_depth(m.to) < get_goal_position_depth(m.from_pos):
            continue
        depths = _enabled_entry_depths(state, m, player, goal_keys)
        if depths:
            shuffles.append((m, max(depths)))
    if shuffles:
        return max(shuffles, key=lambda s: s[1])[0], "unlocking_shuffle"

    move = find_shuffle_sequence(state, player, all_moves, goal_keys)
    if move is not None:
        return move, "shuffle_sequence"

    if empty_goals and outside:
        move = _advance_outside(all_moves, outside, empty_goals[0])
        if move is not None:
            return move, "advance"

    goal_center = centroid(goals)
    safe = []
    for m in all_moves:
        from_in = m.from_key in goal_keys
        to_in = m.to_key in goal_keys
        if from_in and not to_in:
            continue
        if from_in and to_in and get_goal_position_depth(m.to) < get_goal_position_depth(m.from_pos):
            continue
        forward = distance(m.from_pos, goal_center) - distance(m.to, goal_center)
        safe.append((m, forward * 10 + _jump_len(m) + rng.random() * 0.01))
    if safe:
        return max(safe, key=lambda s: s[1])[0], "safe"

    leaving = []
    for m in all_moves:
        if m.from_key in goal_keys and m.to_key not in goal_keys:
            forward = distance(m.from_pos, goal_center) - distance(m.to, goal_center)
            leaving.append((m, _enables_entry(state, m, player, goal_keys), forward))
    if leaving:
        return max(leaving, key=lambda c: (c[1], c[2]))[0], "leave_goal"

    return all_moves[0], "fallback"


def find_endgame_move(
    state: GameState, player: int, rng: Optional[random.Random] = None
) -> Optional[Move]:
    """Pick ``player``'s move by the priority ladder; None when no move exists."""
    choice = _choose(state, player, rng or random.Random())
    if choice is None:
        return None
    move, rule = choice
    ENDGAME_SOLVER_MOVES.labels(rule=rule).inc()
    logger.debug(f"End-game rule {rule} chose {move.from_key}->{move.to_key}")
    return move
