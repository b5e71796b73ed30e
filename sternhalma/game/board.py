"""
Default star topology and board-shape helpers.

The standard board is the 121-cell six-pointed star: a radius-4 center
hexagon plus six 10-cell arms. Arm ``p`` is player ``p``'s home; a player's
goal is the arm of the opposite player. Everything downstream queries the
board mapping, so custom layouts work the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from sternhalma.game.coordinates import (
    DIRECTIONS,
    ORIGIN,
    CubeCoord,
    coord_to_key,
    distance,
    key_to_coord,
)

CENTER_RADIUS = 4
TRIANGLE_SIZE = 4
PIECES_PER_PLAYER = 10

OPPOSITE_PLAYER: Dict[int, int] = {0: 2, 2: 0, 1: 4, 4: 1, 3: 5, 5: 3}

# Seating order by player count; turn order follows the list.
ACTIVE_PLAYERS: Dict[int, List[int]] = {
    2: [0, 2],
    3: [0, 3, 1],
    4: [4, 3, 1, 5],
    6: [0, 4, 3, 2, 1, 5],
}

# Tip cell of each player's home arm.
ARM_TIPS: Dict[int, CubeCoord] = {
    0: CubeCoord(4, -8, 4),
    1: CubeCoord(-8, 4, 4),
    2: CubeCoord(-4, 8, -4),
    3: CubeCoord(4, 4, -8),
    4: CubeCoord(8, -4, -4),
    5: CubeCoord(-4, -4, 8),
}


def classify_region(coord: CubeCoord) -> Optional[int]:
    """Return the arm (player index) a cell belongs to, or None in the center.

    The axis with the largest absolute component picks the pair of opposite
    arms and its sign picks one of them. Ties resolve r, then q, then s.
    """
    if distance(coord, ORIGIN) <= CENTER_RADIUS:
        return None
    abs_q, abs_r, abs_s = abs(coord.q), abs(coord.r), abs(coord.s)
    if abs_r >= abs_q and abs_r >= abs_s:
        return 0 if coord.r < 0 else 2
    if abs_q >= abs_r and abs_q >= abs_s:
        return 1 if coord.q < 0 else 4
    return 3 if coord.s < 0 else 5


@lru_cache(maxsize=1)
def default_board_positions() -> Tuple[CubeCoord, ...]:
    """All 121 cells of the star, ordered by row (r) then column (q).

    The star is the union of the two radius-8 triangles q,r,s >= -4 and
    q,r,s <= 4.
    """
    size = 2 * TRIANGLE_SIZE
    cells = []
    for r in range(-size, size + 1):
        for q in range(-size, size + 1):
            s = -q - r
            if abs(s) > size:
                continue
            up = q >= -TRIANGLE_SIZE and r >= -TRIANGLE_SIZE and s >= -TRIANGLE_SIZE
            down = q <= TRIANGLE_SIZE and r <= TRIANGLE_SIZE and s <= TRIANGLE_SIZE
            if up or down:
                cells.append(CubeCoord(q, r, s))
    return tuple(cells)


@lru_cache(maxsize=1)
def default_board_keys() -> FrozenSet[str]:
    return frozenset(coord_to_key(c) for c in default_board_positions())


@lru_cache(maxsize=6)
def arm_positions(arm: int) -> Tuple[CubeCoord, ...]:
    return tuple(c for c in default_board_positions() if classify_region(c) == arm)


def home_positions(player: int) -> Tuple[CubeCoord, ...]:
    """Standard-board starting cells of ``player``."""
    return arm_positions(player)


def goal_positions(player: int) -> Tuple[CubeCoord, ...]:
    """Standard-board goal cells of ``player`` (the opposite arm)."""
    return arm_positions(OPPOSITE_PLAYER[player])


def is_on_board(board: Mapping[str, object], coord: CubeCoord) -> bool:
    return coord_to_key(coord) in board


# =============================================================================
# Board geometry for external renderers
# =============================================================================


@dataclass(frozen=True, slots=True)
class BoardTriangle:
    """Three mutually adjacent cells, vertices as sorted-by-emission keys."""
    vertices: Tuple[str, str, str]
    player_owners: Tuple[int, ...]
    zone_player: Optional[int]


def _neighbor_key(key: str, direction: CubeCoord) -> str:
    c = key_to_coord(key)
    return f"{c.q + direction.q},{c.r + direction.r}"


def _edge_key(a: str, b: str) -> Tuple[str, str]:
    return (a, b) if a < b else (b, a)


def board_triangles(
    board_keys: Iterable[str],
    starting_positions: Optional[Mapping[int, Sequence[str]]] = None,
    is_custom_layout: bool = False,
) -> List[BoardTriangle]:
    """Every triangle of mutually adjacent cells, emitted once per triangle."""
    keys = set(board_keys)
    start_owner: Dict[str, int] = {}
    for player, positions in (starting_positions or {}).items():
        for k in positions:
            start_owner[k] = int(player)

    triangles = []
    for key in keys:
        for i in range(6):
            n1 = _neighbor_key(key, DIRECTIONS[i])
            n2 = _neighbor_key(key, DIRECTIONS[(i + 1) % 6])
            if n1 not in keys or n2 not in keys:
                continue
            if key > n1 or key > n2:
                continue
            owners = tuple(start_owner[v] for v in (key, n1, n2) if v in start_owner)
            zone = None
            if not is_custom_layout:
                for v in (key, n1, n2):
                    zone = classify_region(key_to_coord(v))
                    if zone is not None:
                        break
            triangles.append(BoardTriangle((key, n1, n2), owners, zone))
    return triangles


def all_edges(board_keys: Iterable[str]) -> List[Tuple[str, str]]:
    keys = set(board_keys)
    edges = set()
    for key in keys:
        for d in DIRECTIONS:
            n = _neighbor_key(key, d)
            if n in keys:
                edges.add(_edge_key(key, n))
    return sorted(edges)


def border_edges(board_keys: Iterable[str]) -> List[Tuple[str, str]]:
    """Edges shared by at most one triangle: the board outline."""
    keys = set(board_keys)
    counts: Dict[Tuple[str, str], int] = {}
    for tri in board_triangles(keys):
        v0, v1, v2 = tri.vertices
        for a, b in ((v0, v1), (v1, v2), (v0, v2)):
            ek = _edge_key(a, b)
            counts[ek] = counts.get(ek, 0) + 1
    return [e for e in all_edges(keys) if counts.get(e, 0) <= 1]
