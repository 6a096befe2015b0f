# rcrane/measure.py
"""
Named backbone torsions measured on a single AtomSet.

Atoms from neighbouring nucleotides are looked up under suffixed names:
``"O3'-1"`` is the previous residue's O3', ``"P+1"`` and ``"O5'+1"`` are the
next residue's phosphate and O5'.

Every function raises :class:`~rcrane.errors.MissingAtomError` when an atom it
needs is absent.
"""

from __future__ import annotations

from collections.abc import Mapping

import numpy as np

from rcrane.errors import MissingAtomError
from rcrane.helpers import torsion

TORSION_ATOMS: dict[str, tuple[str, str, str, str]] = {
    # alpha is measured in reverse order, which gives the same value
    "alpha": ("C5'", "O5'", "P", "O3'-1"),
    "beta": ("P", "O5'", "C5'", "C4'"),
    "gamma": ("O5'", "C5'", "C4'", "C3'"),
    "delta": ("C5'", "C4'", "C3'", "O3'"),
    "epsilon": ("C4'", "C3'", "O3'", "P+1"),
    "zeta": ("C3'", "O3'", "P+1", "O5'+1"),
}


def _measure(atoms: Mapping[str, np.ndarray], name: str, names) -> float:
    for atom in names:
        if atoms.get(atom) is None:
            raise MissingAtomError(name, atom)
    return torsion(*(atoms[atom] for atom in names))


def calc_alpha(atoms: Mapping[str, np.ndarray]) -> float:
    return _measure(atoms, "alpha", TORSION_ATOMS["alpha"])


def calc_beta(atoms: Mapping[str, np.ndarray]) -> float:
    return _measure(atoms, "beta", TORSION_ATOMS["beta"])


def calc_gamma(atoms: Mapping[str, np.ndarray]) -> float:
    return _measure(atoms, "gamma", TORSION_ATOMS["gamma"])


def calc_delta(atoms: Mapping[str, np.ndarray]) -> float:
    return _measure(atoms, "delta", TORSION_ATOMS["delta"])


def calc_epsilon(atoms: Mapping[str, np.ndarray]) -> float:
    return _measure(atoms, "epsilon", TORSION_ATOMS["epsilon"])


def calc_zeta(atoms: Mapping[str, np.ndarray]) -> float:
    return _measure(atoms, "zeta", TORSION_ATOMS["zeta"])


def glycosidic_atoms(atoms: Mapping[str, np.ndarray]) -> tuple[str, str] | None:
    """
    Base atoms defining chi: ``("N9", "C4")`` for purines, ``("N1", "C2")``
    for pyrimidines, or ``None`` when neither pair is present.
    """
    if atoms.get("N9") is not None and atoms.get("C4") is not None:
        return ("N9", "C4")
    if atoms.get("N1") is not None and atoms.get("C2") is not None:
        return ("N1", "C2")
    return None


def calc_chi(atoms: Mapping[str, np.ndarray]) -> float:
    """Glycosidic torsion ``O4'-C1'-N9-C4`` (purine) or ``O4'-C1'-N1-C2``."""
    if atoms.get("N9") is not None:
        names = ("O4'", "C1'", "N9", "C4")
    else:
        names = ("O4'", "C1'", "N1", "C2")
    return _measure(atoms, "chi", names)


def calc_xi(atoms: Mapping[str, np.ndarray]) -> float:
    """Sugar/base angle ``C4'-O4'-C1'-N9`` (or ``N1``)."""
    base_n = "N9" if atoms.get("N9") is not None else "N1"
    return _measure(atoms, "xi (the sugar/base angle)", ("C4'", "O4'", "C1'", base_n))


def measure_suite(
    prev_atoms: Mapping[str, np.ndarray], cur_atoms: Mapping[str, np.ndarray]
) -> dict[str, float]:
    """
    Measure the seven torsions spanning the suite between two residues.

    Torsions whose atoms are missing are left out of the result.

    Returns
    -------
    dict[str, float]
        Keys among ``delta_prev, epsilon, zeta, alpha, beta, gamma, delta``.
    """
    prev = dict(prev_atoms)
    cur = dict(cur_atoms)
    if cur.get("P") is not None:
        prev["P+1"] = cur["P"]
    if cur.get("O5'") is not None:
        prev["O5'+1"] = cur["O5'"]
    if prev.get("O3'") is not None:
        cur["O3'-1"] = prev["O3'"]

    calcs = (
        ("delta_prev", calc_delta, prev),
        ("epsilon", calc_epsilon, prev),
        ("zeta", calc_zeta, prev),
        ("alpha", calc_alpha, cur),
        ("beta", calc_beta, cur),
        ("gamma", calc_gamma, cur),
        ("delta", calc_delta, cur),
    )
    result: dict[str, float] = {}
    for name, func, atoms in calcs:
        try:
            result[name] = func(atoms)
        except MissingAtomError:
            continue
    return result
