"""Property tests for cube-coordinate arithmetic."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sternhalma.game.coordinates import (
    DIRECTIONS,
    ORIGIN,
    CubeCoord,
    centroid,
    coord_to_key,
    distance,
    jump_destination,
    key_to_coord,
    move_path,
    neighbors,
    rotate,
)

cube_coords = st.builds(
    CubeCoord.from_qr,
    st.integers(min_value=-12, max_value=12),
    st.integers(min_value=-12, max_value=12),
)


class TestCubeCoord:
    @given(cube_coords)
    def test_components_sum_to_zero(self, c):
        """Every constructed coordinate satisfies q + r + s = 0."""
        assert c.q + c.r + c.s == 0

    def test_rejects_invalid_components(self):
        """A coordinate off the q + r + s = 0 plane is refused."""
        with pytest.raises(ValueError):
            CubeCoord(1, 1, 1)

    @given(cube_coords)
    def test_key_round_trip(self, c):
        """Keys are "q,r" and parse back to the same coordinate."""
        key = coord_to_key(c)
        assert key == f"{c.q},{c.r}"
        assert key_to_coord(key) == c

    def test_dict_form_fills_missing_s(self):
        assert CubeCoord.from_dict({"q": 2, "r": -3}) == CubeCoord(2, -3, 1)


class TestDistance:
    @given(cube_coords)
    def test_distance_to_self_is_zero(self, c):
        assert distance(c, c) == 0

    @given(cube_coords)
    def test_neighbors_are_at_distance_one(self, c):
        """All six neighbors are adjacent and distinct."""
        ns = neighbors(c)
        assert len(set(ns)) == 6
        assert all(distance(c, n) == 1 for n in ns)

    @given(cube_coords, cube_coords)
    def test_distance_is_symmetric(self, a, b):
        assert distance(a, b) == distance(b, a)


class TestRotation:
    @given(cube_coords)
    def test_six_rotations_are_identity(self, c):
        assert rotate(c, 6) == c

    @given(cube_coords, st.integers(min_value=0, max_value=5))
    def test_rotation_preserves_distance_from_origin(self, c, steps):
        assert distance(rotate(c, steps), ORIGIN) == distance(c, ORIGIN)

    def test_rotation_cycles_directions(self):
        """Rotating the first direction visits every direction once."""
        seen = {rotate(DIRECTIONS[0], k) for k in range(6)}
        assert seen == set(DIRECTIONS)


class TestJumpGeometry:
    @given(cube_coords, st.sampled_from(DIRECTIONS))
    def test_jump_lands_two_away(self, start, direction):
        """A jump over a neighbor lands 2 from the start and 1 from the jumped cell."""
        over = start + direction
        landing = jump_destination(start, over)
        assert distance(start, landing) == 2
        assert distance(over, landing) == 1

    def test_move_path_follows_each_hop(self):
        start = CubeCoord(0, 0, 0)
        path = move_path(start, [CubeCoord(1, -1, 0), CubeCoord(3, -2, -1)])
        assert path == [start, CubeCoord(2, -2, 0), CubeCoord(4, -2, -2)]

    def test_centroid_of_empty_is_origin(self):
        assert centroid([]) == ORIGIN

    def test_centroid_averages(self):
        c = centroid([CubeCoord(2, -2, 0), CubeCoord(0, 2, -2)])
        assert (c.q, c.r, c.s) == (1, 0, -1)
