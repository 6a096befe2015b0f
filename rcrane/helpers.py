# helpers.py
"""
rcrane.helpers
==============

Geometry kernel: vector arithmetic, distances, bond angles, dihedrals and
axis-angle rotation on plain ``numpy`` 3-vectors (Å, degrees).

Functions
---------
add, sub, scale, magnitude, dot, cross : vector arithmetic
distance : Euclidean distance between two points
angle : bond angle at a vertex, in degrees
torsion : signed dihedral angle in [0, 360)
distance_to_line : perpendicular distance from a point to a line
rotate_about_axis : Rodrigues rotation of points about an axis
rotate_atoms : rotate named atoms of an AtomSet about an axis through two atoms
place_atom : place a fourth atom from bond length, angle and torsion
angle_dist : signed smallest difference between two angles
fmodpos : non-negative floating modulus

Examples
--------
>>> import numpy as np
>>> from rcrane.helpers import torsion
>>> round(torsion([1, 0, 0], [0, 0, 0], [0, 1, 0], [0, 1, 1]), 6)
270.0
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

import numpy as np
from numpy.typing import ArrayLike

from rcrane.errors import DegenerateGeometryError

# Atom name -> coordinates (Å)
AtomSet = dict[str, np.ndarray]


def vec(point: ArrayLike) -> np.ndarray:
    """Return ``point`` as a float64 array of shape (3,)."""
    return np.asarray(point, dtype=float).reshape(3)


def add(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    return vec(a) + vec(b)


def sub(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    return vec(a) - vec(b)


def scale(a: ArrayLike, factor: float) -> np.ndarray:
    return vec(a) * float(factor)


def magnitude(a: ArrayLike) -> float:
    return float(np.linalg.norm(vec(a)))


def dot(a: ArrayLike, b: ArrayLike) -> float:
    return float(np.dot(vec(a), vec(b)))


def cross(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    return np.cross(vec(a), vec(b))


def unit_vector(a: ArrayLike, what: str = "vector") -> np.ndarray:
    """
    Normalize a vector.

    Raises
    ------
    DegenerateGeometryError
        If the vector has zero length.
    """
    v = vec(a)
    norm = np.linalg.norm(v)
    if norm == 0.0:
        raise DegenerateGeometryError(f"Cannot normalize zero-length {what}")
    return v / norm


def distance(a: ArrayLike, b: ArrayLike) -> float:
    """Euclidean distance ``|a - b|`` in Å."""
    return magnitude(sub(a, b))


def angle(a: ArrayLike, b: ArrayLike, c: ArrayLike) -> float:
    """
    Bond angle at vertex ``b`` between the rays to ``a`` and ``c``.

    Parameters
    ----------
    a, b, c : array-like, shape (3,)
        Atom positions; ``b`` is the vertex.

    Returns
    -------
    float
        Angle in degrees, in ``[0, 180]``.

    Raises
    ------
    DegenerateGeometryError
        If ``a`` or ``c`` coincides with ``b``.
    """
    ba = unit_vector(sub(a, b), "bond vector")
    bc = unit_vector(sub(c, b), "bond vector")
    cos_theta = float(np.clip(np.dot(ba, bc), -1.0, 1.0))
    return math.degrees(math.acos(cos_theta))


def torsion(p1: ArrayLike, p2: ArrayLike, p3: ArrayLike, p4: ArrayLike) -> float:
    """
    Signed dihedral angle about the ``p2``–``p3`` axis.

    Parameters
    ----------
    p1, p2, p3, p4 : array-like, shape (3,)
        Four consecutive atom positions.

    Returns
    -------
    float
        Dihedral in degrees, normalized to ``[0, 360)``.

    Notes
    -----
    Uses ``atan2(|b2| b1·(b2×b3), (b1×b2)·(b2×b3))`` with the bond vectors
    ``b1 = p2-p1``, ``b2 = p3-p2`` and ``b3 = p4-p3``. The sign follows the
    IUPAC convention. Reversing the atom order gives the same value; the
    mirror image gives ``360 - x``.
    """
    b1 = sub(p2, p1)
    b2 = sub(p3, p2)
    b3 = sub(p4, p3)
    n2 = np.cross(b2, b3)
    y = np.linalg.norm(b2) * np.dot(b1, n2)
    x = np.dot(np.cross(b1, b2), n2)
    result = math.degrees(math.atan2(y, x))
    if result < 0:
        result += 360.0
    return result


def distance_to_line(p: ArrayLike, c: ArrayLike, n: ArrayLike) -> float:
    """
    Perpendicular distance from ``p`` to the infinite line through ``c`` and ``n``.

    Raises
    ------
    DegenerateGeometryError
        If ``c`` and ``n`` coincide.
    """
    cn = sub(c, n)
    length = np.linalg.norm(cn)
    if length == 0.0:
        raise DegenerateGeometryError("Line through coincident points")
    return float(np.linalg.norm(np.cross(cn, sub(n, p))) / length)


def rotate_about_axis(
    points: ArrayLike,
    axis_point: ArrayLike,
    axis_direction: ArrayLike,
    angle_degrees: float,
) -> np.ndarray:
    """
    Rodrigues rotation of points about an arbitrary axis.

    Parameters
    ----------
    points : array-like, shape (3,) or (N, 3)
        Points to rotate.
    axis_point : array-like, shape (3,)
        A point on the axis; it is moved to the origin for the rotation and
        moved back afterwards.
    axis_direction : array-like, shape (3,)
        Axis direction (normalized internally).
    angle_degrees : float
        Rotation angle. Positive angles rotate counter-clockwise when viewed
        looking down ``axis_direction`` toward ``axis_point`` (right-hand rule).

    Returns
    -------
    numpy.ndarray
        Rotated points with the same shape as ``points``.

    Raises
    ------
    DegenerateGeometryError
        If ``axis_direction`` has zero length.
    """
    pts = np.asarray(points, dtype=float)
    single = pts.ndim == 1
    pts = np.atleast_2d(pts)
    u = unit_vector(axis_direction, "rotation axis")
    origin = vec(axis_point)

    theta = math.radians(angle_degrees)
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)

    shifted = pts - origin
    a = shifted @ u
    rotated = (
        np.outer(a, u)
        + (shifted - np.outer(a, u)) * cos_t
        + np.cross(u, shifted) * sin_t
    )
    rotated += origin
    return rotated[0] if single else rotated


def rotate_atoms(
    atoms: Mapping[str, np.ndarray],
    names: Iterable[str],
    axis_names: tuple[str, str],
    angle_degrees: float,
) -> AtomSet:
    """
    Rotate named atoms about the axis ``atoms[axis0] - atoms[axis1]``.

    The rotation is performed with ``atoms[axis0]`` at the origin. The input
    mapping is not modified; a new AtomSet is returned.
    """
    zero = vec(atoms[axis_names[0]])
    axis = zero - vec(atoms[axis_names[1]])
    names = list(names)
    moved = rotate_about_axis(
        np.array([atoms[n] for n in names]), zero, axis, angle_degrees
    )
    result = dict(atoms)
    for name, pos in zip(names, moved):
        result[name] = pos
    return result


def place_atom(
    a: ArrayLike,
    b: ArrayLike,
    c: ArrayLike,
    bond: float,
    bond_angle: float,
    dihedral: float,
) -> np.ndarray:
    """
    Place atom ``d`` bonded to ``c`` from internal coordinates.

    Parameters
    ----------
    a, b, c : array-like, shape (3,)
        Reference atoms (``c`` is bonded to the new atom).
    bond : float
        Length ``|c - d|`` in Å.
    bond_angle : float
        Angle ``b-c-d`` in degrees.
    dihedral : float
        Torsion ``a-b-c-d`` in degrees (same convention as :func:`torsion`).

    Returns
    -------
    numpy.ndarray
        Position of ``d``.
    """
    a, b, c = vec(a), vec(b), vec(c)
    bc = unit_vector(c - b, "bond vector")
    n = unit_vector(np.cross(b - a, bc), "plane normal")
    m = np.column_stack((bc, np.cross(n, bc), n))

    theta = math.radians(bond_angle)
    phi = math.radians(dihedral)
    d2 = np.array(
        [
            -bond * math.cos(theta),
            bond * math.sin(theta) * math.cos(phi),
            bond * math.sin(theta) * math.sin(phi),
        ]
    )
    return c + m @ d2


def fmodpos(num: float, mod: float) -> float:
    """Floating modulus with a non-negative result."""
    res = math.fmod(num, mod)
    if res < 0:
        res += mod
    return res


def angle_dist(a: float, b: float) -> float:
    """
    Signed smallest difference ``a - b`` between two angles, in ``[-180, 180)``.

    >>> angle_dist(350.0, 10.0)
    -20.0
    """
    return fmodpos(a - b + 180.0, 360.0) - 180.0
