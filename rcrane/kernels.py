# Compiled versions of the geometry used inside the refinement objective.
"""
rcrane.kernels
==============

Numba-compiled batch versions of the geometry kernel.

The refinement objective is evaluated thousands of times per nucleotide, so
the bond lengths, bond angles and torsions it needs are computed in one call
each over an ``(N, 3)`` coordinate block and integer index arrays. Every
kernel here gives the same numbers as its scalar counterpart in
:mod:`rcrane.helpers`.

Functions
---------
distance_kernel : distances for index pairs
angle_kernel : bond angles (degrees) for index triples
torsion_kernel : dihedrals (degrees, [0, 360)) for index quadruples
rodrigues_kernel : rotate rows of a block about an axis through a pivot
"""

from __future__ import annotations

import math

import numpy as np
from numba import jit


@jit(nopython=True)
def distance_kernel(coords, pairs):
    """
    Distances between atom pairs.

    Parameters
    ----------
    coords : numpy.ndarray, shape (N, 3)
        Coordinates in Å (plain floats).
    pairs : numpy.ndarray of int, shape (M, 2)
        Row indices into ``coords``.

    Returns
    -------
    numpy.ndarray, shape (M,)
    """
    out = np.empty(pairs.shape[0])
    for k in range(pairs.shape[0]):
        i = pairs[k, 0]
        j = pairs[k, 1]
        dx = coords[i, 0] - coords[j, 0]
        dy = coords[i, 1] - coords[j, 1]
        dz = coords[i, 2] - coords[j, 2]
        out[k] = math.sqrt(dx * dx + dy * dy + dz * dz)
    return out


@jit(nopython=True)
def angle_kernel(coords, triples):
    """
    Bond angles at the middle atom of each index triple.

    Returns ``nan`` for a triple whose outer atom coincides with the vertex.
    """
    out = np.empty(triples.shape[0])
    for k in range(triples.shape[0]):
        a = triples[k, 0]
        b = triples[k, 1]
        c = triples[k, 2]
        x1 = coords[a, 0] - coords[b, 0]
        y1 = coords[a, 1] - coords[b, 1]
        z1 = coords[a, 2] - coords[b, 2]
        x2 = coords[c, 0] - coords[b, 0]
        y2 = coords[c, 1] - coords[b, 1]
        z2 = coords[c, 2] - coords[b, 2]
        n1 = math.sqrt(x1 * x1 + y1 * y1 + z1 * z1)
        n2 = math.sqrt(x2 * x2 + y2 * y2 + z2 * z2)
        if n1 == 0.0 or n2 == 0.0:
            out[k] = np.nan
            continue
        cos_t = (x1 * x2 + y1 * y2 + z1 * z2) / (n1 * n2)
        if cos_t > 1.0:
            cos_t = 1.0
        elif cos_t < -1.0:
            cos_t = -1.0
        out[k] = math.degrees(math.acos(cos_t))
    return out


@jit(nopython=True)
def torsion_kernel(coords, quads):
    """
    Dihedral angles for each index quadruple, normalized to ``[0, 360)``.

    Same formula as :func:`rcrane.helpers.torsion`.
    """
    out = np.empty(quads.shape[0])
    for k in range(quads.shape[0]):
        p1 = quads[k, 0]
        p2 = quads[k, 1]
        p3 = quads[k, 2]
        p4 = quads[k, 3]
        # bond vectors
        b1x = coords[p2, 0] - coords[p1, 0]
        b1y = coords[p2, 1] - coords[p1, 1]
        b1z = coords[p2, 2] - coords[p1, 2]
        b2x = coords[p3, 0] - coords[p2, 0]
        b2y = coords[p3, 1] - coords[p2, 1]
        b2z = coords[p3, 2] - coords[p2, 2]
        b3x = coords[p4, 0] - coords[p3, 0]
        b3y = coords[p4, 1] - coords[p3, 1]
        b3z = coords[p4, 2] - coords[p3, 2]
        # b2 x b3
        n2x = b2y * b3z - b2z * b3y
        n2y = b2z * b3x - b2x * b3z
        n2z = b2x * b3y - b2y * b3x
        # b1 x b2
        n1x = b1y * b2z - b1z * b2y
        n1y = b1z * b2x - b1x * b2z
        n1z = b1x * b2y - b1y * b2x
        b2len = math.sqrt(b2x * b2x + b2y * b2y + b2z * b2z)
        y = b2len * (b1x * n2x + b1y * n2y + b1z * n2z)
        x = n1x * n2x + n1y * n2y + n1z * n2z
        t = math.degrees(math.atan2(y, x))
        if t < 0.0:
            t += 360.0
        out[k] = t
    return out


@jit(nopython=True)
def rodrigues_kernel(points, pivot, axis, angle):
    """
    Rotate points about a unit axis through a pivot.

    Parameters
    ----------
    points : numpy.ndarray, shape (N, 3)
        Coordinates to rotate (not modified).
    pivot : numpy.ndarray, shape (3,)
        Point on the axis.
    axis : numpy.ndarray, shape (3,)
        **Unit** axis vector.
    angle : float
        Rotation angle in radians (right-hand rule about ``axis``).

    Returns
    -------
    numpy.ndarray, shape (N, 3)
    """
    u = axis[0]
    v = axis[1]
    w = axis[2]
    cos_t = math.cos(angle)
    sin_t = math.sin(angle)
    out = np.empty_like(points)
    for k in range(points.shape[0]):
        x = points[k, 0] - pivot[0]
        y = points[k, 1] - pivot[1]
        z = points[k, 2] - pivot[2]
        a = u * x + v * y + w * z
        out[k, 0] = a * u + (x - a * u) * cos_t + (v * z - w * y) * sin_t + pivot[0]
        out[k, 1] = a * v + (y - a * v) * cos_t + (w * x - u * z) * sin_t + pivot[1]
        out[k, 2] = a * w + (z - a * w) * cos_t + (u * y - v * x) * sin_t + pivot[2]
    return out
