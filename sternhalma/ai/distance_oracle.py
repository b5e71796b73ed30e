"""Hex-step distances to goal regions on arbitrary board topologies.

A multi-source BFS seeded from every goal cell gives, for each reachable
cell, the step distance to the nearest goal. Topologies do not change
during a game, so maps are cached per (passable cell set, goal set) in a
bounded oldest-first cache. The game factories call ``clear_cache`` when a
new board begins.

Unreachable cells cost ``UNREACHABLE_COST`` rather than infinity.
"""

from __future__ import annotations

from collections import OrderedDict, deque
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass

from sternhalma import config
from sternhalma.game.coordinates import DIRECTIONS, CubeCoord, coord_to_key
from sternhalma.game.types import CellKind, GameState

UNREACHABLE_COST = 100

DistanceMap = dict[str, int]


class DistanceCache:
    """Oldest-first evicting cache of goal distance maps."""

    def __init__(self, max_entries: int = 50) -> None:
        self._table: OrderedDict[Hashable, DistanceMap] = OrderedDict()
        self.max_entries = max_entries
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: Hashable) -> DistanceMap | None:
        if key in self._table:
            self.hits += 1
            return self._table[key]
        self.misses += 1
        return None

    def put(self, key: Hashable, value: DistanceMap) -> None:
        if key not in self._table and len(self._table) >= self.max_entries:
            self._table.popitem(last=False)
            self.evictions += 1
        self._table[key] = value

    def __contains__(self, key: Hashable) -> bool:
        return key in self._table

    def __len__(self) -> int:
        return len(self._table)

    def clear(self) -> None:
        self._table.clear()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def stats(self) -> dict:
        total_lookups = self.hits + self.misses
        return {
            "entries": len(self._table),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.hits / total_lookups if total_lookups > 0 else 0.0,
        }


_cache = DistanceCache(config.DISTANCE_CACHE_SIZE)


def clear_cache() -> None:
    """Drop every cached distance map."""
    _cache.clear()


def cache_stats() -> dict:
    return _cache.stats()


def _passable(state: GameState, key: str) -> bool:
    cell = state.board.get(key)
    return cell is not None and cell.kind is not CellKind.WALL


def _cache_key(state: GameState, goal_keys: Iterable[str]) -> Hashable:
    passable = frozenset(k for k, c in state.board.items() if c.kind is not CellKind.WALL)
    return passable, frozenset(goal_keys)


def distances_from_goals(state: GameState, goals: Sequence[CubeCoord]) -> DistanceMap:
    """Map every reachable cell key to its step distance from the nearest goal.

    Walls are impassable. Occupancy is ignored.
    """
    goal_keys = [coord_to_key(g) for g in goals]
    cache_key = _cache_key(state, goal_keys)
    cached = _cache.get(cache_key)
    if cached is not None:
        return cached

    distances: DistanceMap = {}
    queue: deque[tuple[CubeCoord, int]] = deque()
    for goal, key in zip(goals, goal_keys):
        if key in distances or not _passable(state, key):
            continue
        distances[key] = 0
        queue.append((goal, 0))

    while queue:
        current, dist = queue.popleft()
        for d in DIRECTIONS:
            nxt = current + d
            nxt_key = coord_to_key(nxt)
            if nxt_key in distances or not _passable(state, nxt_key):
                continue
            distances[nxt_key] = dist + 1
            queue.append((nxt, dist + 1))

    _cache.put(cache_key, distances)
    return distances


def _cost(distances: DistanceMap, coord: CubeCoord) -> int:
    return distances.get(coord_to_key(coord), UNREACHABLE_COST)


def compute_path_based_progress(
    state: GameState,
    pieces: Sequence[CubeCoord],
    goals: Sequence[CubeCoord],
    home_positions: Sequence[CubeCoord],
) -> float:
    """0-100 progress from summed path cost, interpolated between home and 0."""
    if not pieces or not goals:
        return 0.0
    distances = distances_from_goals(state, goals)
    current = sum(_cost(distances, p) for p in pieces)
    start = sum(_cost(distances, h) for h in home_positions)
    if start <= 0:
        return 100.0
    progress = (start - current) / start * 100
    return max(0.0, min(100.0, progress))


def get_worst_assignment_cost(
    state: GameState, pieces: Sequence[CubeCoord], goals: Sequence[CubeCoord]
) -> int:
    """Largest path cost among pieces not already on a goal cell."""
    if not pieces or not goals:
        return 0
    goal_keys = {coord_to_key(g) for g in goals}
    distances = distances_from_goals(state, goals)
    worst = 0
    for piece in pieces:
        if coord_to_key(piece) in goal_keys:
            continue
        worst = max(worst, _cost(distances, piece))
    return worst


@dataclass(frozen=True, slots=True)
class Assignment:
    piece: CubeCoord
    goal: CubeCoord
    cost: int


def compute_optimal_assignment(
    state: GameState, pieces: Sequence[CubeCoord], goals: Sequence[CubeCoord]
) -> tuple[int, list[Assignment]]:
    """Greedy nearest-first assignment of outside pieces to free goal cells.

    Pieces already on a goal are assigned to it at cost 0. The remaining
    pieces, closest first, take the unoccupied goals in order. Returns the
    total cost and the assignments.
    """
    if not pieces or not goals:
        return 0, []

    goal_keys = {coord_to_key(g) for g in goals}
    inside = [p for p in pieces if coord_to_key(p) in goal_keys]
    outside = [p for p in pieces if coord_to_key(p) not in goal_keys]

    assignments = [Assignment(p, p, 0) for p in inside]
    occupied = {coord_to_key(p) for p in inside}
    available = [g for g in goals if coord_to_key(g) not in occupied]
    if not outside or not available:
        return 0, assignments

    distances = distances_from_goals(state, goals)
    ranked = sorted(outside, key=lambda p: _cost(distances, p))
    total = 0
    for piece, goal in zip(ranked, available):
        cost = _cost(distances, piece)
        assignments.append(Assignment(piece, goal, cost))
        total += cost
    return total, assignments


def compute_move_distances(
    state: GameState, from_pos: CubeCoord, ignore_occupancy: bool = False
) -> DistanceMap:
    """Step distances from ``from_pos``; through empty cells only unless told otherwise."""
    start = coord_to_key(from_pos)
    distances: DistanceMap = {start: 0}
    queue: deque[tuple[CubeCoord, int]] = deque([(from_pos, 0)])
    while queue:
        current, dist = queue.popleft()
        for d in DIRECTIONS:
            nxt = current + d
            nxt_key = coord_to_key(nxt)
            if nxt_key in distances:
                continue
            cell = state.board.get(nxt_key)
            if cell is None:
                continue
            if ignore_occupancy:
                if cell.kind is CellKind.WALL:
                    continue
            elif not cell.is_empty:
                continue
            distances[nxt_key] = dist + 1
            queue.append((nxt, dist + 1))
    return distances


def compute_theoretical_distance(state: GameState, from_pos: CubeCoord, to: CubeCoord) -> int:
    """Shortest step count over the topology, or UNREACHABLE_COST."""
    if from_pos == to:
        return 0
    return compute_move_distances(state, from_pos, ignore_occupancy=True).get(
        coord_to_key(to), UNREACHABLE_COST
    )
