"""
Tests for rcrane.kernels module.

The compiled kernels must agree with the scalar geometry helpers.
"""

import math

import numpy as np

from rcrane.helpers import angle, distance, rotate_about_axis, torsion
from rcrane.kernels import angle_kernel, distance_kernel, rodrigues_kernel, torsion_kernel

COORDS = np.array(
    [
        [1.2, 0.3, -0.4],
        [0.1, 0.2, 0.0],
        [0.0, 1.6, 0.2],
        [0.9, 2.1, 1.3],
        [-1.0, 2.5, 0.7],
    ]
)


class TestKernels:
    """Kernel results match rcrane.helpers."""

    def test_distance_kernel(self):
        """distance_kernel() matches distance() for every pair."""
        pairs = np.array([[0, 1], [1, 3], [4, 0]], dtype=np.int64)
        out = distance_kernel(COORDS, pairs)
        expected = [distance(COORDS[i], COORDS[j]) for i, j in pairs]
        np.testing.assert_allclose(out, expected)

    def test_angle_kernel(self):
        """angle_kernel() matches angle() for every triple."""
        triples = np.array([[0, 1, 2], [1, 2, 3], [2, 3, 4]], dtype=np.int64)
        out = angle_kernel(COORDS, triples)
        expected = [angle(*COORDS[t]) for t in triples]
        np.testing.assert_allclose(out, expected)

    def test_angle_kernel_coincident_is_nan(self):
        """Coincident vertex and outer atom give nan instead of raising."""
        coords = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        out = angle_kernel(coords, np.array([[0, 1, 2]], dtype=np.int64))
        assert math.isnan(out[0])

    def test_torsion_kernel(self):
        """torsion_kernel() matches torsion() for every quadruple."""
        quads = np.array([[0, 1, 2, 3], [1, 2, 3, 4], [4, 3, 2, 1]], dtype=np.int64)
        out = torsion_kernel(COORDS, quads)
        expected = [torsion(*COORDS[q]) for q in quads]
        np.testing.assert_allclose(out, expected)

    def test_rodrigues_kernel(self):
        """rodrigues_kernel() matches rotate_about_axis() (radians vs degrees)."""
        pivot = np.array([0.5, -0.5, 1.0])
        axis = np.array([1.0, 2.0, 2.0]) / 3.0
        out = rodrigues_kernel(COORDS, pivot, axis, math.radians(40.0))
        expected = rotate_about_axis(COORDS, pivot, axis, 40.0)
        np.testing.assert_allclose(out, expected, atol=1e-12)

    def test_rodrigues_kernel_leaves_input(self):
        """The input block is not modified."""
        coords = COORDS.copy()
        rodrigues_kernel(coords, np.zeros(3), np.array([0.0, 0.0, 1.0]), 1.0)
        np.testing.assert_array_equal(coords, COORDS)
