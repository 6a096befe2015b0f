# rcrane/phosphate.py
"""
Phosphoryl oxygen (OP1/OP2) placement.

Use :func:`build_phos_oxy` when the O3' of the previous nucleotide is known and
:func:`build_init_phos_oxy` for the phosphate next to a chain break, where only
one bridging oxygen is available.
"""

from __future__ import annotations

from collections.abc import Mapping

import numpy as np

from rcrane.errors import MissingAtomError
from rcrane.helpers import AtomSet, rotate_about_axis, unit_vector, vec

PHOS_BOND_LENGTH = 1.485  # P-OP1 / P-OP2
PHOS_BOND_ANGLE = 119.6  # OP1-P-OP2
INIT_PHOS_ANGLE = 108.0  # O5'-P-OP1 when only one bridging oxygen is known


def _require(atoms: Mapping[str, np.ndarray], name: str, what: str) -> np.ndarray:
    if atoms.get(name) is None:
        raise MissingAtomError(what, name)
    return vec(atoms[name])


def _split_about(p: np.ndarray, point: np.ndarray, axis: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Rotate ``point`` (relative to P) by +/- half the OP1-P-OP2 angle and add P."""
    half = PHOS_BOND_ANGLE / 2
    zero = np.zeros(3)
    op1 = rotate_about_axis(point, zero, axis, half) + p
    op2 = rotate_about_axis(point, zero, axis, -half) + p
    return op1, op2


def build_phos_oxy(
    cur_atoms: Mapping[str, np.ndarray],
    prev_atoms: Mapping[str, np.ndarray] | None = None,
) -> AtomSet:
    """
    Build the phosphoryl oxygens of a nucleotide from both bridging oxygens.

    Parameters
    ----------
    cur_atoms : Mapping[str, numpy.ndarray]
        Needs P and O5'. Also O3'-1 when ``prev_atoms`` is not given.
    prev_atoms : Mapping[str, numpy.ndarray], optional
        Previous nucleotide; its O3' is used if present.

    Returns
    -------
    AtomSet
        Copy of ``cur_atoms`` with OP1 and OP2 added.

    Notes
    -----
    P is projected onto the O3'-O5' line, the projection is reflected through
    P and scaled to the P-OP bond length, then rotated by half the OP1-P-OP2
    angle either way about the O3'-O5' direction.
    """
    if prev_atoms is not None and prev_atoms.get("O3'") is not None:
        o3 = vec(prev_atoms["O3'"])
    else:
        o3 = _require(cur_atoms, "O3'-1", "phosphoryl oxygens")
    p = _require(cur_atoms, "P", "phosphoryl oxygens")
    o5 = _require(cur_atoms, "O5'", "phosphoryl oxygens")

    norm = o5 - o3
    i = np.dot(norm, p - o3) / np.dot(norm, o5 - o3)
    inter = o3 + i * (o5 - o3)

    scaled = unit_vector(p - inter, "P offset from the O3'-O5' line") * PHOS_BOND_LENGTH
    op1, op2 = _split_about(p, scaled, norm)

    result = dict(cur_atoms)
    result["OP1"] = op1
    result["OP2"] = op2
    return result


def build_init_phos_oxy(
    cur_atoms: Mapping[str, np.ndarray],
    prev_atoms: Mapping[str, np.ndarray] | None = None,
) -> AtomSet:
    """
    Build phosphoryl oxygens using a single bridging oxygen.

    Parameters
    ----------
    cur_atoms : Mapping[str, numpy.ndarray]
        Nucleotide whose phosphate gets oxygens; needs P (and O5', C5' when
        ``prev_atoms`` is not given).
    prev_atoms : Mapping[str, numpy.ndarray], optional
        Previous nucleotide. When given, its O3' and C3' orient the oxygens;
        use this for the last phosphate before a chain break.

    Returns
    -------
    AtomSet
        Copy of ``cur_atoms`` with OP1 and OP2 added. Both make an angle of
        :data:`INIT_PHOS_ANGLE` with the bridging oxygen.

    Notes
    -----
    The oxygens are split by :data:`PHOS_BOND_ANGLE` about the P-O bond, so
    OP1-P-OP2 itself comes out near 110.6 degrees.
    """
    p = _require(cur_atoms, "P", "phosphoryl oxygens")
    if prev_atoms is not None:
        o = _require(prev_atoms, "O3'", "phosphoryl oxygens")
        c = _require(prev_atoms, "C3'", "phosphoryl oxygens")
    else:
        o = _require(cur_atoms, "O5'", "phosphoryl oxygens")
        c = _require(cur_atoms, "C5'", "phosphoryl oxygens")

    phos_oxy = unit_vector(o - p, "P-O bond") * PHOS_BOND_LENGTH

    # rotate within the C-O-P plane, away from C
    plane_norm = unit_vector(np.cross(c - o, p - o), "C-O-P plane normal")
    phos_oxy = rotate_about_axis(phos_oxy, np.zeros(3), plane_norm, -INIT_PHOS_ANGLE)

    op1, op2 = _split_about(p, phos_oxy, o - p)

    result = dict(cur_atoms)
    result["OP1"] = op1
    result["OP2"] = op2
    return result
