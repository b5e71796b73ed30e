"""
Cube-coordinate arithmetic for hexagonal boards.

Every cell is addressed by a cube coordinate (q, r, s) with q + r + s = 0.
Boards are keyed by the canonical string ``"q,r"``; s is always derivable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple


@dataclass(frozen=True, slots=True)
class CubeCoord:
    """Immutable cube coordinate. Centroids may carry float components."""

    q: int
    r: int
    s: int

    def __post_init__(self) -> None:
        if abs(self.q + self.r + self.s) > 1e-9:
            raise ValueError(f"cube coordinate must satisfy q + r + s = 0: {self}")

    @classmethod
    def from_qr(cls, q: int, r: int) -> CubeCoord:
        return cls(q, r, -q - r)

    @property
    def key(self) -> str:
        return coord_to_key(self)

    def __add__(self, other: CubeCoord) -> CubeCoord:
        return CubeCoord(self.q + other.q, self.r + other.r, self.s + other.s)

    def __sub__(self, other: CubeCoord) -> CubeCoord:
        return CubeCoord(self.q - other.q, self.r - other.r, self.s - other.s)

    def to_dict(self) -> dict:
        return {"q": self.q, "r": self.r, "s": self.s}

    @classmethod
    def from_dict(cls, data: dict) -> CubeCoord:
        q, r = data["q"], data["r"]
        return cls(q, r, data.get("s", -q - r))


ORIGIN = CubeCoord(0, 0, 0)

# Order matters: move generation and the end-game solver iterate in this order.
DIRECTIONS: Tuple[CubeCoord, ...] = (
    CubeCoord(1, -1, 0),
    CubeCoord(1, 0, -1),
    CubeCoord(0, 1, -1),
    CubeCoord(-1, 1, 0),
    CubeCoord(-1, 0, 1),
    CubeCoord(0, -1, 1),
)


def coord_to_key(coord: CubeCoord) -> str:
    return f"{coord.q},{coord.r}"


def key_to_coord(key: str) -> CubeCoord:
    q_str, r_str = key.split(",")
    q, r = int(q_str), int(r_str)
    return CubeCoord(q, r, -q - r)


def distance(a: CubeCoord, b: CubeCoord) -> float:
    """Hex distance; integral for board cells, fractional against centroids."""
    return max(abs(a.q - b.q), abs(a.r - b.r), abs(a.s - b.s))


def neighbors(coord: CubeCoord) -> List[CubeCoord]:
    return [coord + d for d in DIRECTIONS]


def rotate60(coord: CubeCoord) -> CubeCoord:
    return CubeCoord(-coord.r, -coord.s, -coord.q)


def rotate(coord: CubeCoord, steps: int) -> CubeCoord:
    """Rotate ``coord`` by ``steps`` x 60 degrees around the origin."""
    result = coord
    for _ in range(steps % 6):
        result = rotate60(result)
    return result


def jump_destination(from_pos: CubeCoord, over: CubeCoord) -> CubeCoord:
    """Reflect ``over`` through ``from_pos``: the landing cell of a jump."""
    return CubeCoord(
        2 * over.q - from_pos.q,
        2 * over.r - from_pos.r,
        2 * over.s - from_pos.s,
    )


def centroid(coords: Sequence[CubeCoord]) -> CubeCoord:
    if not coords:
        return ORIGIN
    n = len(coords)
    q = sum(c.q for c in coords) / n
    r = sum(c.r for c in coords) / n
    return CubeCoord(q, r, -q - r)


def move_path(from_pos: CubeCoord, jump_path: Iterable[CubeCoord]) -> List[CubeCoord]:
    """Landing cells visited by a chain jump, starting at ``from_pos``."""
    path = [from_pos]
    current = from_pos
    for over in jump_path:
        current = jump_destination(current, over)
        path.append(current)
    return path
