"""
Tests for rcrane.helpers module.

This module tests the geometry kernel:
- distance/angle/torsion: basic measures and their invariances
- distance_to_line: perpendicular distance
- rotate_about_axis/rotate_atoms: Rodrigues rotation
- place_atom: internal-coordinate placement
- angle_dist/fmodpos: angular differences
"""

import math

import numpy as np
import pytest

from rcrane.errors import DegenerateGeometryError
from rcrane.helpers import (
    angle,
    angle_dist,
    distance,
    distance_to_line,
    fmodpos,
    place_atom,
    rotate_about_axis,
    rotate_atoms,
    torsion,
    unit_vector,
)

QUAD = [
    np.array([1.2, 0.3, -0.4]),
    np.array([0.1, 0.2, 0.0]),
    np.array([0.0, 1.6, 0.2]),
    np.array([0.9, 2.1, 1.3]),
]


def _rigid_motion(points, angle_deg=37.0):
    axis = np.array([0.3, -1.0, 0.5])
    shift = np.array([4.0, -2.5, 7.1])
    return [rotate_about_axis(p, np.zeros(3), axis, angle_deg) + shift for p in points]


class TestDistanceAndAngle:
    """Tests for distance() and angle()."""

    def test_distance_symmetric(self):
        """distance(a, b) == distance(b, a)."""
        a, b = QUAD[0], QUAD[3]
        assert distance(a, b) == pytest.approx(distance(b, a))

    def test_distance_to_self_is_zero(self):
        """distance(a, a) == 0."""
        assert distance(QUAD[1], QUAD[1]) == 0.0

    def test_right_angle(self):
        """angle() at the vertex of perpendicular rays is 90 degrees."""
        assert angle([1, 0, 0], [0, 0, 0], [0, 2, 0]) == pytest.approx(90.0)

    def test_straight_angle(self):
        """Collinear opposite rays give 180 degrees."""
        assert angle([1, 0, 0], [0, 0, 0], [-3, 0, 0]) == pytest.approx(180.0)

    def test_angle_coincident_raises(self):
        """angle() raises DegenerateGeometryError for a zero-length ray."""
        with pytest.raises(DegenerateGeometryError):
            angle([0, 0, 0], [0, 0, 0], [1, 0, 0])

    def test_unit_vector_zero_raises(self):
        """unit_vector() refuses the zero vector."""
        with pytest.raises(DegenerateGeometryError):
            unit_vector([0, 0, 0])


class TestTorsion:
    """Tests for torsion()."""

    def test_known_value(self):
        """A quarter turn gives 270 (i.e. -90) degrees."""
        assert torsion([1, 0, 0], [0, 0, 0], [0, 1, 0], [0, 1, 1]) == pytest.approx(270.0)

    def test_range(self):
        """torsion() is normalized to [0, 360)."""
        value = torsion(*QUAD)
        assert 0.0 <= value < 360.0

    def test_invariant_under_rigid_motion(self):
        """Rotating and translating all four atoms leaves the torsion unchanged."""
        moved = _rigid_motion(QUAD)
        assert torsion(*moved) == pytest.approx(torsion(*QUAD), abs=1e-9)

    def test_reversal_gives_same_value(self):
        """Reversing the atom order gives the same dihedral."""
        forward = torsion(*QUAD)
        backward = torsion(*QUAD[::-1])
        assert backward == pytest.approx(forward, abs=1e-9)

    def test_mirror_gives_complement(self):
        """Mirroring the geometry gives 360 - x."""
        mirrored = [p * np.array([1.0, 1.0, -1.0]) for p in QUAD]
        assert torsion(*mirrored) == pytest.approx(360.0 - torsion(*QUAD), abs=1e-9)


class TestDistanceToLine:
    """Tests for distance_to_line()."""

    def test_point_off_axis(self):
        """Distance from (0, 3, 0) to the x axis is 3."""
        assert distance_to_line([0, 3, 0], [0, 0, 0], [5, 0, 0]) == pytest.approx(3.0)

    def test_point_on_line(self):
        """A point on the line has distance 0."""
        assert distance_to_line([2, 2, 2], [0, 0, 0], [1, 1, 1]) == pytest.approx(0.0, abs=1e-12)

    def test_degenerate_line(self):
        """A line through coincident points is rejected."""
        with pytest.raises(DegenerateGeometryError):
            distance_to_line([1, 0, 0], [0, 0, 0], [0, 0, 0])


class TestRotation:
    """Tests for rotate_about_axis() and rotate_atoms()."""

    def test_quarter_turn_about_z(self):
        """+90 degrees about z maps x to y (right-hand rule)."""
        out = rotate_about_axis([1, 0, 0], [0, 0, 0], [0, 0, 1], 90.0)
        np.testing.assert_allclose(out, [0, 1, 0], atol=1e-12)

    def test_round_trip(self):
        """Rotating by theta then by -theta returns the original points."""
        pts = np.array(QUAD)
        axis_point = np.array([0.5, -0.2, 1.0])
        axis = np.array([1.0, 2.0, -0.5])
        there = rotate_about_axis(pts, axis_point, axis, 73.0)
        back = rotate_about_axis(there, axis_point, axis, -73.0)
        np.testing.assert_allclose(back, pts, atol=1e-12)

    def test_preserves_distance_to_axis_point(self):
        """Rotation keeps distances to a point on the axis."""
        axis_point = np.array([1.0, 1.0, 1.0])
        out = rotate_about_axis(QUAD[3], axis_point, [0, 1, 1], 123.0)
        assert distance(out, axis_point) == pytest.approx(distance(QUAD[3], axis_point))

    def test_shape_preserved(self):
        """A single point stays a single point; a block stays a block."""
        assert rotate_about_axis([1, 2, 3], [0, 0, 0], [0, 0, 1], 10.0).shape == (3,)
        assert rotate_about_axis(np.ones((4, 3)), [0, 0, 0], [0, 0, 1], 10.0).shape == (4, 3)

    def test_zero_axis_raises(self):
        """A zero-length axis is rejected."""
        with pytest.raises(DegenerateGeometryError):
            rotate_about_axis([1, 0, 0], [0, 0, 0], [0, 0, 0], 30.0)

    def test_rotate_atoms_changes_torsion(self):
        """Rotating the last atom about the central bond shifts the torsion by the angle."""
        atoms = dict(zip(("a", "b", "c", "d"), QUAD))
        before = torsion(*QUAD)
        # axis runs c -> b, so a positive angle about (c - b) through c
        rotated = rotate_atoms(atoms, ["d"], ("c", "b"), 25.0)
        after = torsion(rotated["a"], rotated["b"], rotated["c"], rotated["d"])
        assert abs(angle_dist(after, before)) == pytest.approx(25.0, abs=1e-9)

    def test_rotate_atoms_returns_copy(self):
        """rotate_atoms() does not modify its input."""
        atoms = dict(zip(("a", "b", "c", "d"), QUAD))
        original = atoms["d"].copy()
        rotate_atoms(atoms, ["d"], ("b", "c"), 45.0)
        np.testing.assert_array_equal(atoms["d"], original)


class TestPlaceAtom:
    """Tests for place_atom()."""

    @pytest.mark.parametrize("dihedral", [-150.0, 0.0, 60.0, 180.0, 300.0])
    def test_reproduces_internal_coordinates(self, dihedral):
        """The placed atom has the requested bond, angle and torsion."""
        a, b, c = QUAD[0], QUAD[1], QUAD[2]
        d = place_atom(a, b, c, 1.52, 111.0, dihedral)
        assert distance(c, d) == pytest.approx(1.52)
        assert angle(b, c, d) == pytest.approx(111.0)
        assert angle_dist(torsion(a, b, c, d), dihedral) == pytest.approx(0.0, abs=1e-9)


class TestAngleDist:
    """Tests for angle_dist() and fmodpos()."""

    def test_wraps_across_zero(self):
        """350 - 10 is -20 on the circle."""
        assert angle_dist(350.0, 10.0) == pytest.approx(-20.0)

    def test_range(self):
        """Result lies in [-180, 180)."""
        for a, b in [(0, 180), (180, 0), (720, 1), (-359, 359)]:
            assert -180.0 <= angle_dist(a, b) < 180.0

    def test_fmodpos_negative(self):
        """fmodpos() of a negative number is non-negative."""
        assert fmodpos(-30.0, 360.0) == pytest.approx(330.0)
        assert math.isclose(fmodpos(725.0, 360.0), 5.0)
