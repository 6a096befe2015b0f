# rcrane/sugar.py
"""
rcrane.sugar
============

Idealized ribose templates and their placement on a base.

A template holds the ribose atoms ``C1' C2' O2' C3' O3' C4' O4' C5' O5'`` and
the glycosidic nitrogen (stored as both ``N9`` and ``N1``), centred so that
C1' sits at the origin. Two templates exist, one per sugar pucker. The default
ones are generated from internal coordinates; templates from a PDB file can be
used instead.

Classes
-------
SugarBuilder : holds the two templates and attaches a sugar to a base.

Functions
---------
ideal_sugar_template : template generated from ring pseudorotation geometry.
align_sugar : rotate/translate a template onto a base at a fixed chi.
rotate_sugar : rotate sugar atoms about the glycosidic bond (chi) and the
    C1'-O4' bond (xi).

Examples
--------
>>> import numpy as np
>>> from rcrane.sugar import SugarBuilder
>>> builder = SugarBuilder()
>>> base = {"C1'": np.zeros(3), "N9": np.array([1.47, 0, 0]),
...         "C4": np.array([2.2, 1.1, 0.0])}
>>> atoms = builder.build_init_sugar(base, 3)
>>> sorted(a for a in atoms if a.endswith("'"))  # doctest: +NORMALIZE_WHITESPACE
["C1'", "C2'", "C3'", "C4'", "C5'", "O2'", "O3'", "O4'", "O5'"]
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from functools import lru_cache

import numpy as np

from rcrane.errors import DegenerateGeometryError, MissingAtomError
from rcrane.helpers import AtomSet, place_atom, rotate_about_axis, torsion, vec

# Chi used for newly built sugars (anti)
STARTING_CHI = -150.0

SUGAR_ATOMS: tuple[str, ...] = (
    "C1'", "C2'", "O2'", "C3'", "O3'", "C4'", "O4'", "C5'", "O5'"
)
RING_ATOMS: tuple[str, ...] = ("C1'", "C2'", "O2'", "C3'", "C4'", "O4'")
C3C4_ATOMS: tuple[str, ...] = ("C3'", "C4'", "O5'")

SUGAR_SUBSETS: dict[str, tuple[str, ...]] = {
    "all": SUGAR_ATOMS,
    "c3c4": C3C4_ATOMS,
    "ring": RING_ATOMS,
}

# Ring pseudorotation phase (degrees) per pucker; shared amplitude
PSEUDOROTATION_PHASE = {3: 18.0, 2: 162.0}
PUCKER_AMPLITUDE = 38.0

# Ring bond lengths (Å) and internal angles (degrees)
_RING_BONDS = {"O4'C1'": 1.414, "C1'C2'": 1.528, "C2'C3'": 1.525, "C4'O4'": 1.453}
_RING_ANGLES = {"C4'O4'C1'": 109.6, "O4'C1'C2'": 106.4, "C1'C2'C3'": 101.5}

# Exocyclic bonds: (length, angle at the ring atom)
_GLYCOSIDIC = (1.465, 113.7)
_O2P = (1.413, 112.0)
_C5P = (1.510, 115.5)
_O3P = (1.423, 110.5)
_O5P = (1.425, 110.2)
_IDEAL_GAMMA = 54.0

_PUCKER_NAMES = {"c3p": 3, "c3": 3, "c3'": 3, "3": 3, "c2p": 2, "c2": 2, "c2'": 2, "2": 2}


def normalize_pucker(pucker) -> int:
    """
    Map a pucker designation (``3``, ``"C3'"``, ``"c3p"``, ...) to 3 or 2.

    Raises
    ------
    ValueError
        If the pucker is not recognized.
    """
    key = str(pucker).strip().lower()
    if key not in _PUCKER_NAMES:
        raise ValueError(f"Unrecognized sugar pucker ({pucker})")
    return _PUCKER_NAMES[key]


def _ring_torsions(pucker: int) -> list[float]:
    """Endocyclic torsions nu0..nu4 from the pseudorotation phase."""
    phase = PSEUDOROTATION_PHASE[pucker]
    return [
        PUCKER_AMPLITUDE * math.cos(math.radians(phase + 144.0 * (j - 2)))
        for j in range(5)
    ]


@lru_cache(maxsize=None)
def _ideal_template(pucker: int) -> tuple[tuple[str, tuple[float, float, float]], ...]:
    nu = _ring_torsions(pucker)
    o4 = np.zeros(3)
    c1 = np.array([_RING_BONDS["O4'C1'"], 0.0, 0.0])
    theta = math.radians(_RING_ANGLES["C4'O4'C1'"])
    c4 = _RING_BONDS["C4'O4'"] * np.array([math.cos(theta), math.sin(theta), 0.0])

    c2 = place_atom(c4, o4, c1, _RING_BONDS["C1'C2'"], _RING_ANGLES["O4'C1'C2'"], nu[0])
    c3 = place_atom(o4, c1, c2, _RING_BONDS["C2'C3'"], _RING_ANGLES["C1'C2'C3'"], nu[1])

    # Exocyclic substituents sit 120 degrees from the ring bond in Newman
    # projection: base and C5' on the beta face, O2' and O3' on the alpha face.
    n = place_atom(c3, c2, c1, *_GLYCOSIDIC, torsion(c3, c2, c1, o4) + 120.0)
    o2 = place_atom(c4, c3, c2, *_O2P, torsion(c4, c3, c2, c1) - 120.0)
    nu3 = torsion(c2, c3, c4, o4)
    c5 = place_atom(c2, c3, c4, *_C5P, nu3 - 120.0)
    o3 = place_atom(c5, c4, c3, *_O3P, nu3 + 120.0)
    o5 = place_atom(c3, c4, c5, *_O5P, _IDEAL_GAMMA)

    atoms = {
        "C1'": c1, "C2'": c2, "O2'": o2, "C3'": c3, "O3'": o3,
        "C4'": c4, "O4'": o4, "C5'": c5, "O5'": o5, "N9": n, "N1": n,
    }
    return tuple((name, tuple(pos - c1)) for name, pos in atoms.items())


def ideal_sugar_template(pucker) -> AtomSet:
    """
    Ribose template for a pucker, C1' at the origin.

    Parameters
    ----------
    pucker : int or str
        ``3``/``"C3'"`` for C3'-endo, ``2``/``"C2'"`` for C2'-endo.

    Returns
    -------
    AtomSet
        Fresh copy of the template coordinates.

    Notes
    -----
    The ring is generated from the pseudorotation description (phase 18 degrees
    for C3'-endo, 162 degrees for C2'-endo, amplitude 38 degrees). Delta comes
    out near 84 and 143 degrees and xi near 240 and 218 degrees respectively.
    """
    return {name: np.array(pos) for name, pos in _ideal_template(normalize_pucker(pucker))}


def center_template(atoms: Mapping[str, np.ndarray]) -> AtomSet:
    """Translate a template so that C1' is at the origin."""
    if atoms.get("C1'") is None:
        raise MissingAtomError("sugar template", "C1'")
    c1 = vec(atoms["C1'"])
    return {name: vec(pos) - c1 for name, pos in atoms.items()}


def _rotate_about_origin(atoms: Mapping[str, np.ndarray], angle: float, axis) -> AtomSet:
    names = list(atoms)
    moved = rotate_about_axis(np.array([atoms[n] for n in names]), np.zeros(3), axis, angle)
    return dict(zip(names, moved))


def align_sugar(base_atoms: Mapping[str, np.ndarray], template: Mapping[str, np.ndarray]) -> AtomSet:
    """
    Place a C1'-centred sugar template on a base.

    The template's glycosidic vector is rotated onto the base's ``N - C1'``
    vector, the sugar is then turned about the glycosidic bond so chi equals
    :data:`STARTING_CHI`, and finally it is moved onto the base's C1'.

    Parameters
    ----------
    base_atoms : Mapping[str, numpy.ndarray]
        Must contain C1' and either N9/C4 (purine) or N1/C2 (pyrimidine).
    template : Mapping[str, numpy.ndarray]
        Sugar template with C1' at the origin.

    Returns
    -------
    AtomSet
        Sugar atoms only (the template's N1, N9, C2 and C4 are dropped).

    Raises
    ------
    MissingAtomError
        If the base atoms needed for the alignment are absent.
    DegenerateGeometryError
        If the glycosidic bond has zero length or points exactly opposite to
        the template's.
    """
    if base_atoms.get("N9") is not None:
        n_atom, c_atom = "N9", "C4"
    else:
        n_atom, c_atom = "N1", "C2"
    for name in ("C1'", n_atom, c_atom):
        if base_atoms.get(name) is None:
            raise MissingAtomError("sugar placement", name)

    c1 = vec(base_atoms["C1'"])
    base_n = vec(base_atoms[n_atom]) - c1
    if not np.any(base_n):
        raise DegenerateGeometryError("Glycosidic bond has zero length")
    sugar = {name: vec(pos) for name, pos in template.items()}
    sugar_n = sugar[n_atom]

    axis = np.cross(sugar_n, base_n)
    if np.any(axis):
        rot_angle = torsion(base_n, axis, np.zeros(3), sugar_n)
        if rot_angle != 0:
            sugar = _rotate_about_origin(sugar, rot_angle, axis)
    elif np.dot(sugar_n, base_n) < 0:
        raise DegenerateGeometryError(
            "Template glycosidic bond is antiparallel to the base's"
        )

    base_c = vec(base_atoms[c_atom]) - c1
    cur_chi = torsion(base_c, base_n, np.zeros(3), sugar["O4'"])
    sugar = _rotate_about_origin(sugar, cur_chi - STARTING_CHI, base_n)

    for name in ("N1", "N9", "C2", "C4"):
        sugar.pop(name, None)
    return {name: pos + c1 for name, pos in sugar.items()}


def rotate_sugar(
    atoms: Mapping[str, np.ndarray],
    chi_rotation: float,
    subset: str = "all",
    xi_rotation: float = 0.0,
) -> AtomSet:
    """
    Rotate sugar atoms about the glycosidic bond and, optionally, about C1'-O4'.

    Parameters
    ----------
    atoms : Mapping[str, numpy.ndarray]
        Nucleotide atoms; needs C1' and N9 or N1 (and O4' for ``xi_rotation``).
    chi_rotation : float
        Degrees to rotate chi by, relative to the current value.
    subset : {"all", "c3c4", "ring"}
        Which sugar atoms move. ``"ring"`` moves C1' C2' O2' C3' C4' O4' only.
    xi_rotation : float
        Degrees to rotate the sugar/base angle by, relative to the current value.

    Returns
    -------
    AtomSet
        Copy of ``atoms`` with the selected sugar atoms moved.
    """
    if atoms.get("C1'") is None:
        raise MissingAtomError("chi", "C1'")
    base_n = atoms.get("N9")
    if base_n is None:
        base_n = atoms.get("N1")
    if base_n is None:
        raise MissingAtomError("chi", "N9/N1")

    c1 = vec(atoms["C1'"])
    names = [n for n in SUGAR_SUBSETS[subset] if atoms.get(n) is not None]
    pts = np.array([atoms[n] for n in names])
    pts = rotate_about_axis(pts, c1, c1 - vec(base_n), chi_rotation)

    if xi_rotation:
        if atoms.get("O4'") is None:
            raise MissingAtomError("xi (the sugar/base angle)", "O4'")
        o4 = rotate_about_axis(vec(atoms["O4'"]), c1, c1 - vec(base_n), chi_rotation)
        pts = rotate_about_axis(pts, c1, c1 - o4, xi_rotation)

    result = dict(atoms)
    for name, pos in zip(names, pts):
        result[name] = pos
    return result


class SugarBuilder:
    """
    Attach idealized sugars to bases.

    Parameters
    ----------
    c3p_template, c2p_template : Mapping[str, numpy.ndarray], optional
        Templates for C3'-endo and C2'-endo sugars. They are re-centred on C1'.
        Defaults to :func:`ideal_sugar_template`.

    Examples
    --------
    >>> builder = SugarBuilder()
    >>> sorted(builder.template(2))[:3]
    ["C1'", "C2'", "C3'"]
    """

    def __init__(
        self,
        c3p_template: Mapping[str, np.ndarray] | None = None,
        c2p_template: Mapping[str, np.ndarray] | None = None,
    ):
        self._templates: dict[int, AtomSet] = {
            3: center_template(c3p_template if c3p_template is not None else ideal_sugar_template(3)),
            2: center_template(c2p_template if c2p_template is not None else ideal_sugar_template(2)),
        }

    @classmethod
    def from_pdb(cls, c3p_path: str | None = None, c2p_path: str | None = None) -> SugarBuilder:
        """
        Build from template PDB files (first residue of each file).

        Either path may be ``None`` to keep the generated template.
        """
        from rcrane.pdb_io import read_pdb

        def first_residue(path):
            if path is None:
                return None
            return read_pdb(path)[0].residues[0].atoms

        return cls(first_residue(c3p_path), first_residue(c2p_path))

    def template(self, pucker) -> AtomSet:
        """Copy of the template for ``pucker``."""
        return {k: v.copy() for k, v in self._templates[normalize_pucker(pucker)].items()}

    def build_init_sugar(self, base_atoms: Mapping[str, np.ndarray], pucker) -> AtomSet:
        """
        Build sugar coordinates onto a base.

        Parameters
        ----------
        base_atoms : Mapping[str, numpy.ndarray]
            Atoms of the nucleotide (at least C1' and the glycosidic base atoms).
        pucker : int or str
            Sugar pucker to build.

        Returns
        -------
        AtomSet
            The placed sugar merged with ``base_atoms``; atoms already present
            in ``base_atoms`` keep their coordinates.
        """
        sugar = align_sugar(base_atoms, self.template(pucker))
        sugar.update({k: vec(v) for k, v in base_atoms.items()})
        return sugar
