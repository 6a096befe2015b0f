# rcrane/builder.py
"""
rcrane.builder
==============

Initial (unrefined) backbone coordinates for one nucleotide at a time.

:class:`NucleotideBuilder` places an idealized sugar on a base and, when the
next phosphate is known, the next nucleotide's O5' at the ideal zeta of the
suite's rotamer. The coordinates are only a starting point; see
:mod:`rcrane.refine`.

Examples
--------
>>> from rcrane.builder import NucleotideBuilder
>>> builder = NucleotideBuilder()
>>> cur, nxt = builder.build_nt("1a", cur_atoms, next_atoms)  # doctest: +SKIP
>>> "O5'" in nxt  # doctest: +SKIP
True
"""

from __future__ import annotations

from collections.abc import Mapping

import numpy as np

from rcrane.catalog import end_pucker, start_pucker
from rcrane.dihedrals import RotamerTorsionStats, load_torsion_stats
from rcrane.errors import MissingAtomError
from rcrane.helpers import AtomSet, rotate_atoms, unit_vector, vec
from rcrane.measure import calc_zeta
from rcrane.sugar import SugarBuilder

P_O5P_IDEAL = 1.593  # P-O5' bond length
P_ANGLE_IDEAL = 104.0  # O3'-P-O5' bond angle


class NucleotideBuilder:
    """
    Build sugars and the next O5' for a nucleotide.

    Parameters
    ----------
    stats : Mapping[str, RotamerTorsionStats], optional
        Torsion statistics (only zeta is used). Defaults to the bundled table.
    sugar_builder : SugarBuilder, optional
        Source of the sugar templates. Defaults to generated templates.
    """

    def __init__(
        self,
        stats: Mapping[str, RotamerTorsionStats] | None = None,
        sugar_builder: SugarBuilder | None = None,
    ):
        self.stats = stats if stats is not None else load_torsion_stats()
        self.sugar_builder = sugar_builder if sugar_builder is not None else SugarBuilder()

    def ideal_zeta(self, rot: str) -> float:
        return self.stats[rot].zeta

    def _build_sugar(self, cur_atoms: Mapping[str, np.ndarray], pucker: int) -> AtomSet:
        built = self.sugar_builder.build_init_sugar(cur_atoms, pucker)
        if cur_atoms.get("O5'") is not None:
            built["O5'"] = vec(cur_atoms["O5'"])
        return built

    def build_nt(
        self,
        rot: str,
        cur_atoms: Mapping[str, np.ndarray],
        next_atoms: Mapping[str, np.ndarray],
    ) -> tuple[AtomSet, AtomSet]:
        """
        Build initial coordinates for a nucleotide followed by a known phosphate.

        Parameters
        ----------
        rot : str
            Rotamer of the suite that *starts* at this nucleotide.
        cur_atoms : Mapping[str, numpy.ndarray]
            Current nucleotide; at least C1' and the glycosidic base atoms.
            An existing O5' is kept.
        next_atoms : Mapping[str, numpy.ndarray]
            Next nucleotide; must contain P.

        Returns
        -------
        tuple[AtomSet, AtomSet]
            ``(cur, nxt)``: the current nucleotide with its sugar built, and a
            copy of the next nucleotide with O5' placed at the ideal P-O5'
            length, O3'-P-O5' angle and the rotamer's mean zeta.

        Raises
        ------
        MissingAtomError
            If the next nucleotide has no phosphate.
        """
        if next_atoms.get("P") is None:
            raise MissingAtomError("next O5' placement", "P")

        cur = self._build_sugar(cur_atoms, start_pucker(rot))

        # temporary atoms for the rotations; removed below
        work = dict(cur)
        p_next = vec(next_atoms["P"])
        work["P+1"] = p_next
        work["O5'+1"] = p_next + unit_vector(work["O3'"] - p_next, "O3'-P bond") * P_O5P_IDEAL

        axis_vector = np.cross(p_next - work["O3'"], p_next - work["C3'"])
        work["axis"] = p_next + axis_vector
        work = rotate_atoms(work, ["O5'+1"], ("P+1", "axis"), P_ANGLE_IDEAL)

        work = rotate_atoms(
            work, ["O5'+1"], ("O3'", "P+1"), calc_zeta(work) - self.ideal_zeta(rot)
        )

        nxt = dict(next_atoms)
        nxt["P"] = work["P+1"]
        nxt["O5'"] = work["O5'+1"]
        return cur, nxt

    def build_last_nt(self, rot: str, cur_atoms: Mapping[str, np.ndarray]) -> AtomSet:
        """
        Build initial coordinates for the last nucleotide of a segment.

        Parameters
        ----------
        rot : str
            Rotamer of the suite that *ends* at this nucleotide.
        cur_atoms : Mapping[str, numpy.ndarray]
            Current nucleotide; an existing O5' is kept.
        """
        return self._build_sugar(cur_atoms, end_pucker(rot))
