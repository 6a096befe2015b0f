# rcrane/refine.py
"""
rcrane.refine
=============

Refinement of all backbone atoms of one nucleotide.

The objective scores a nucleotide, together with the O3' of the previous
nucleotide and the P/O5' of the next one, against

* the rotamer's mean backbone torsions,
* ideal bond lengths and bond angles,
* the ideal sugar/base angle (xi) for the sugar pucker, and
* how far the phosphates moved away from where they started.

Every term is a squared standardized deviation. The parameters are two
rotations of the sugar ring (chi and xi) and Cartesian displacements of the
backbone atoms. The objective is minimized with the downhill simplex of
:mod:`rcrane.simplex`, restarted from its own result until it stops improving.

Classes
-------
NucleotideObjective : objective for a nucleotide inside a segment.
InitAtomsObjective : objective for P, O5' and C5' of a segment's first nucleotide.
RefinementResult : refined coordinates plus the final objective value.

Functions
---------
full_nt_minimize : refine a nucleotide, falling back to a syn sugar if needed.
min_init_atoms : refine P, O5' and C5' of a segment's first nucleotide.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import numpy as np

from rcrane.catalog import end_pucker
from rcrane.config import RCraneConfig
from rcrane.dihedrals import RotamerTorsionStats, load_torsion_stats
from rcrane.errors import MissingAtomError
from rcrane.helpers import AtomSet, unit_vector, vec
from rcrane.kernels import angle_kernel, distance_kernel, rodrigues_kernel, torsion_kernel
from rcrane.measure import calc_chi, glycosidic_atoms
from rcrane.simplex import minimise_nd
from rcrane.sugar import RING_ATOMS, rotate_sugar

logger = logging.getLogger(__name__)

# Ideal bond lengths (Å)
C3P_O3P_IDEAL = 1.423
O3P_P_IDEAL = 1.607
P_O5P_IDEAL = 1.593
O5P_C5P_IDEAL = 1.425
C5P_C4P_IDEAL = 1.510
BOND_SD = 0.06

# Ideal bond angles (degrees), named by the vertex atom
C3P_ANGLE_IDEAL = 110.5
O3P_ANGLE_IDEAL = 119.7
P_ANGLE_IDEAL = 104.0
O5P_ANGLE_IDEAL = 120.9
C5P_ANGLE_IDEAL = 110.2
C4P_ANGLE_IDEAL = 115.5
ANGLE_SD = 4.0

# Rotamer torsion SDs are scaled by this
TORSION_SD_MOD = 1.0 / 3.0

# Sugar/base angle (xi) by pucker
SUGAR_BASE_IDEAL = {3: 241.0, 2: 214.2}
SUGAR_BASE_SD = {3: 2.0, 2: 2.0}

PHOS_SD = 0.1
NEXT_PHOS_SD = 0.1

SYN_CHI = 70.0

# initial simplex steps for chi, xi and each displacement coordinate
CHI_SCALE = 10.0
XI_SCALE = 3.0
DISPLACEMENT_SCALE = 1.0


def _require(atoms: Mapping[str, np.ndarray], name: str, what: str) -> np.ndarray:
    if atoms.get(name) is None:
        raise MissingAtomError(what, name)
    return vec(atoms[name])


class _AtomBlock:
    """Coordinate block with ``(residue tag, atom name)`` row labels."""

    def __init__(self):
        self.keys: list[tuple[str, str]] = []
        self.index: dict[tuple[str, str], int] = {}
        self._rows: list[np.ndarray] = []

    def add(self, tag: str, name: str, pos: np.ndarray) -> int:
        key = (tag, name)
        if key not in self.index:
            self.index[key] = len(self.keys)
            self.keys.append(key)
            self._rows.append(vec(pos))
        return self.index[key]

    def __getitem__(self, key: tuple[str, str]) -> int:
        return self.index[key]

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self.index

    def array(self) -> np.ndarray:
        return np.array(self._rows, dtype=float)


class _BlockObjective:
    """
    Shared machinery: the terms are index arrays into one coordinate block
    and are evaluated with the compiled kernels.
    """

    def _init_terms(self, block: _AtomBlock):
        self._block = block
        self._base = block.array()
        self._t_labels: list[str] = []
        self._t_quads: list[tuple[int, int, int, int]] = []
        self._t_mean: list[float] = []
        self._t_sd: list[float] = []
        self._b_labels: list[str] = []
        self._b_pairs: list[tuple[int, int]] = []
        self._b_ideal: list[float] = []
        self._a_labels: list[str] = []
        self._a_triples: list[tuple[int, int, int]] = []
        self._a_ideal: list[float] = []
        self._p_labels: list[str] = []
        self._p_idx: list[int] = []
        self._p_ref: list[np.ndarray] = []
        self._p_sd: list[float] = []
        self._moving: list[int] = []

    def _key(self, atom: str) -> tuple[str, str]:
        tag, _, name = atom.partition(":")
        return (tag, name)

    def _torsion(self, label, atoms, mean, sd):
        self._t_labels.append(label)
        self._t_quads.append(tuple(self._block[self._key(a)] for a in atoms))
        self._t_mean.append(mean)
        self._t_sd.append(sd)

    def _bond(self, label, atoms, ideal):
        self._b_labels.append(label)
        self._b_pairs.append(tuple(self._block[self._key(a)] for a in atoms))
        self._b_ideal.append(ideal)

    def _angle(self, label, atoms, ideal):
        self._a_labels.append(label)
        self._a_triples.append(tuple(self._block[self._key(a)] for a in atoms))
        self._a_ideal.append(ideal)

    def _phos(self, label, atom, ref, sd):
        self._p_labels.append(label)
        self._p_idx.append(self._block[self._key(atom)])
        self._p_ref.append(vec(ref))
        self._p_sd.append(sd)

    def _freeze(self):
        self._t_quads = np.array(self._t_quads, dtype=np.int64).reshape(-1, 4)
        self._t_mean = np.array(self._t_mean, dtype=float)
        self._t_sd = np.array(self._t_sd, dtype=float)
        self._b_pairs = np.array(self._b_pairs, dtype=np.int64).reshape(-1, 2)
        self._b_ideal = np.array(self._b_ideal, dtype=float)
        self._a_triples = np.array(self._a_triples, dtype=np.int64).reshape(-1, 3)
        self._a_ideal = np.array(self._a_ideal, dtype=float)
        self._p_idx = np.array(self._p_idx, dtype=np.int64)
        self._p_ref = np.array(self._p_ref, dtype=float).reshape(-1, 3)
        self._p_sd = np.array(self._p_sd, dtype=float)
        self._moving = np.array(self._moving, dtype=np.int64)

    @property
    def n_params(self) -> int:
        return len(self.scales)

    def coordinates(self, params) -> np.ndarray:
        raise NotImplementedError

    def _deviations(self, coords: np.ndarray):
        if len(self._t_quads):
            t = torsion_kernel(coords, self._t_quads)
            t_dev = (np.mod(t - self._t_mean + 180.0, 360.0) - 180.0) / self._t_sd
        else:
            t = t_dev = np.empty(0)
        b = distance_kernel(coords, self._b_pairs)
        b_dev = (b - self._b_ideal) / BOND_SD
        a = angle_kernel(coords, self._a_triples)
        a_dev = (a - self._a_ideal) / ANGLE_SD
        p = np.linalg.norm(coords[self._p_idx] - self._p_ref, axis=1)
        p_dev = p / self._p_sd
        return (t, t_dev), (b, b_dev), (a, a_dev), (p, p_dev)

    def evaluate(self, params) -> float:
        """
        Objective value for a parameter vector.

        Returns ``inf`` when the geometry is degenerate (coincident atoms).
        """
        total = 0.0
        for _, dev in self._deviations(self.coordinates(params)):
            total += float(np.dot(dev, dev))
        if not math.isfinite(total):
            return math.inf
        return total

    __call__ = evaluate

    def breakdown(self, params) -> dict[str, tuple[float, float]]:
        """Every term as ``label -> (measured value, standardized deviation)``."""
        groups = self._deviations(self.coordinates(params))
        labels = (self._t_labels, self._b_labels, self._a_labels, self._p_labels)
        result: dict[str, tuple[float, float]] = {}
        for names, (values, devs) in zip(labels, groups):
            for name, value, dev in zip(names, values, devs):
                result[name] = (float(value), float(dev))
        return result

    def _write_back(self, coords: np.ndarray, sources: Mapping[str, Mapping[str, np.ndarray] | None]):
        out: dict[str, AtomSet | None] = {
            tag: (dict(atoms) if atoms is not None else None) for tag, atoms in sources.items()
        }
        for (tag, name), row in zip(self._block.keys, coords):
            if out.get(tag) is not None:
                out[tag][name] = row.copy()
        return out


class NucleotideObjective(_BlockObjective):
    """
    Objective for refining a nucleotide within a segment.

    Parameters
    ----------
    prev_atoms : Mapping[str, numpy.ndarray]
        Previous nucleotide; needs C5', C4', C3' and O3'.
    cur_atoms : Mapping[str, numpy.ndarray]
        Nucleotide being refined; needs P, O5', C5', C4', C3' and O3'. With a
        glycosidic nitrogen (N9 or N1) the sugar ring also rotates and the xi
        term is added; that needs C1' and O4'.
    next_atoms : Mapping[str, numpy.ndarray] or None
        Next nucleotide; needs P, and its O5' when present is refined too.
    cur_rot : str
        Rotamer of the suite ending at ``cur_atoms``.
    next_rot : str, optional
        Rotamer of the suite starting at ``cur_atoms``. Adds epsilon and zeta
        terms (requires the next P and O5').
    phos_ref : array-like, optional
        Reference position for the phosphate displacement term. Defaults to
        the current P.
    next_phos_ref : array-like, optional
        Reference for the next phosphate. Defaults to the next P.
    stats : Mapping[str, RotamerTorsionStats], optional
        Torsion statistics; defaults to the bundled table.

    Notes
    -----
    Parameters, in order: chi rotation, xi rotation (degrees), then
    displacements (Å) of the previous O3', P, O5', C5', O3', and, when a next
    nucleotide is given, the next P and next O5'.

    Examples
    --------
    >>> obj = NucleotideObjective(prev, cur, nxt, "1a", "1a")  # doctest: +SKIP
    >>> obj.evaluate(np.zeros(obj.n_params))  # doctest: +SKIP
    3.21...
    """

    def __init__(
        self,
        prev_atoms: Mapping[str, np.ndarray],
        cur_atoms: Mapping[str, np.ndarray],
        next_atoms: Mapping[str, np.ndarray] | None,
        cur_rot: str,
        next_rot: str | None = None,
        phos_ref=None,
        next_phos_ref=None,
        stats: Mapping[str, RotamerTorsionStats] | None = None,
    ):
        stats = stats if stats is not None else load_torsion_stats()
        self.cur_rot = cur_rot
        self.next_rot = next_rot
        self._sources = {"prev": prev_atoms, "cur": cur_atoms, "next": next_atoms}

        block = _AtomBlock()
        for name in ("C5'", "C4'", "C3'", "O3'"):
            block.add("prev", name, _require(prev_atoms, name, "refinement (previous nucleotide)"))
        for name in ("P", "O5'", "C5'", "C4'", "C3'", "O3'"):
            block.add("cur", name, _require(cur_atoms, name, "refinement"))

        base_n = None
        if cur_atoms.get("N9") is not None:
            base_n = "N9"
        elif cur_atoms.get("N1") is not None:
            base_n = "N1"
        if base_n is not None:
            for name in ("C1'", "O4'"):
                block.add("cur", name, _require(cur_atoms, name, "chi/xi rotation"))
            block.add("cur", base_n, cur_atoms[base_n])
            for name in RING_ATOMS:
                if cur_atoms.get(name) is not None:
                    block.add("cur", name, cur_atoms[name])

        has_next = next_atoms is not None
        has_next_o5 = has_next and next_atoms.get("O5'") is not None
        if has_next:
            block.add("next", "P", _require(next_atoms, "P", "refinement (next nucleotide)"))
            if has_next_o5:
                block.add("next", "O5'", next_atoms["O5'"])
        if next_rot is not None and not has_next_o5:
            raise MissingAtomError("epsilon/zeta of the next suite", "P+1/O5'+1")

        self._init_terms(block)

        moving = [("prev", "O3'"), ("cur", "P"), ("cur", "O5'"), ("cur", "C5'"), ("cur", "O3'")]
        if has_next:
            moving.append(("next", "P"))
        if has_next_o5:
            moving.append(("next", "O5'"))
        self._moving = [block[k] for k in moving]
        self.scales = np.array(
            [CHI_SCALE, XI_SCALE] + [DISPLACEMENT_SCALE] * (3 * len(moving)), dtype=float
        )

        # sugar ring rotation about the glycosidic bond, pivoting on C1'
        if base_n is not None:
            ring = [block[("cur", n)] for n in RING_ATOMS if ("cur", n) in block]
            self._ring = np.array(ring, dtype=np.int64)
            self._pivot = vec(cur_atoms["C1'"])
            self._chi_axis = unit_vector(self._pivot - vec(cur_atoms[base_n]), "glycosidic bond")
            self._o4_row = ring.index(block[("cur", "O4'")])
        else:
            self._ring = None

        # torsions
        cur_stats = stats[cur_rot]
        mod = TORSION_SD_MOD
        self._torsion("prev delta", ("prev:C5'", "prev:C4'", "prev:C3'", "prev:O3'"),
                      cur_stats.delta_prev, cur_stats.delta_prev_sd * mod)
        self._torsion("prev epsilon", ("prev:C4'", "prev:C3'", "prev:O3'", "cur:P"),
                      cur_stats.epsilon, cur_stats.epsilon_sd * mod)
        self._torsion("prev zeta", ("prev:C3'", "prev:O3'", "cur:P", "cur:O5'"),
                      cur_stats.zeta, cur_stats.zeta_sd * mod)
        self._torsion("alpha", ("cur:C5'", "cur:O5'", "cur:P", "prev:O3'"),
                      cur_stats.alpha, cur_stats.alpha_sd * mod)
        self._torsion("beta", ("cur:P", "cur:O5'", "cur:C5'", "cur:C4'"),
                      cur_stats.beta, cur_stats.beta_sd * mod)
        self._torsion("gamma", ("cur:O5'", "cur:C5'", "cur:C4'", "cur:C3'"),
                      cur_stats.gamma, cur_stats.gamma_sd * mod)
        self._torsion("delta", ("cur:C5'", "cur:C4'", "cur:C3'", "cur:O3'"),
                      cur_stats.delta, cur_stats.delta_sd * mod)
        if next_rot is not None:
            next_stats = stats[next_rot]
            self._torsion("epsilon", ("cur:C4'", "cur:C3'", "cur:O3'", "next:P"),
                          next_stats.epsilon, next_stats.epsilon_sd * mod)
            self._torsion("zeta", ("cur:C3'", "cur:O3'", "next:P", "next:O5'"),
                          next_stats.zeta, next_stats.zeta_sd * mod)

        # bonds
        self._bond("prev C3'-O3'", ("prev:C3'", "prev:O3'"), C3P_O3P_IDEAL)
        self._bond("prev O3'-P", ("prev:O3'", "cur:P"), O3P_P_IDEAL)
        self._bond("P-O5'", ("cur:P", "cur:O5'"), P_O5P_IDEAL)
        self._bond("O5'-C5'", ("cur:O5'", "cur:C5'"), O5P_C5P_IDEAL)
        self._bond("C5'-C4'", ("cur:C5'", "cur:C4'"), C5P_C4P_IDEAL)
        self._bond("C3'-O3'", ("cur:C3'", "cur:O3'"), C3P_O3P_IDEAL)
        if has_next:
            self._bond("O3'-next P", ("cur:O3'", "next:P"), O3P_P_IDEAL)
        if has_next_o5:
            self._bond("next P-O5'", ("next:P", "next:O5'"), P_O5P_IDEAL)

        # angles
        self._angle("prev C3' angle", ("prev:C4'", "prev:C3'", "prev:O3'"), C3P_ANGLE_IDEAL)
        self._angle("prev O3' angle", ("prev:C3'", "prev:O3'", "cur:P"), O3P_ANGLE_IDEAL)
        self._angle("P angle", ("prev:O3'", "cur:P", "cur:O5'"), P_ANGLE_IDEAL)
        self._angle("O5' angle", ("cur:P", "cur:O5'", "cur:C5'"), O5P_ANGLE_IDEAL)
        self._angle("C5' angle", ("cur:O5'", "cur:C5'", "cur:C4'"), C5P_ANGLE_IDEAL)
        self._angle("C4' angle", ("cur:C5'", "cur:C4'", "cur:C3'"), C4P_ANGLE_IDEAL)
        self._angle("C3' angle", ("cur:C4'", "cur:C3'", "cur:O3'"), C3P_ANGLE_IDEAL)
        if has_next:
            self._angle("O3' angle", ("cur:C3'", "cur:O3'", "next:P"), O3P_ANGLE_IDEAL)
        if has_next_o5:
            self._angle("next P angle", ("cur:O3'", "next:P", "next:O5'"), P_ANGLE_IDEAL)

        # sugar/base angle
        if base_n is not None:
            pucker = end_pucker(cur_rot)
            self._torsion("xi", ("cur:C4'", "cur:O4'", "cur:C1'", f"cur:{base_n}"),
                          SUGAR_BASE_IDEAL[pucker], SUGAR_BASE_SD[pucker])

        # phosphate movement
        self._phos("phosphate shift", "cur:P",
                   phos_ref if phos_ref is not None else cur_atoms["P"], PHOS_SD)
        if has_next:
            self._phos("next phosphate shift", "next:P",
                       next_phos_ref if next_phos_ref is not None else next_atoms["P"],
                       NEXT_PHOS_SD)

        self._freeze()

    def coordinates(self, params) -> np.ndarray:
        """Coordinate block after applying ``params``."""
        params = np.asarray(params, dtype=float)
        coords = self._base.copy()
        if self._ring is not None:
            chi, xi = params[0], params[1]
            if chi:
                coords[self._ring] = rodrigues_kernel(
                    coords[self._ring], self._pivot, self._chi_axis, math.radians(chi)
                )
            if xi:
                xi_axis = self._pivot - coords[self._ring[self._o4_row]]
                xi_axis = xi_axis / np.linalg.norm(xi_axis)
                coords[self._ring] = rodrigues_kernel(
                    coords[self._ring], self._pivot, xi_axis, math.radians(xi)
                )
        coords[self._moving] += params[2:].reshape(-1, 3)
        return coords

    def apply(self, params) -> tuple[AtomSet, AtomSet, AtomSet | None]:
        """
        New ``(prev, cur, next)`` AtomSets for ``params``.

        The input AtomSets are not modified.
        """
        out = self._write_back(self.coordinates(params), self._sources)
        return out["prev"], out["cur"], out["next"]


class InitAtomsObjective(_BlockObjective):
    """
    Objective for the P, O5' and C5' of the first nucleotide of a segment.

    Parameters
    ----------
    atoms : Mapping[str, numpy.ndarray]
        Needs P, O5', C5', C4' and C3'.
    phos_ref : array-like, optional
        Reference for the phosphate displacement. Defaults to the current P.

    Notes
    -----
    Parameters: displacements (Å) of P, O5' and C5'.
    """

    def __init__(self, atoms: Mapping[str, np.ndarray], phos_ref=None):
        self._source = atoms
        block = _AtomBlock()
        for name in ("P", "O5'", "C5'", "C4'", "C3'"):
            block.add("cur", name, _require(atoms, name, "chain-start refinement"))
        self._init_terms(block)
        self._moving = [block[("cur", n)] for n in ("P", "O5'", "C5'")]
        self.scales = np.full(9, DISPLACEMENT_SCALE)

        self._bond("P-O5'", ("cur:P", "cur:O5'"), P_O5P_IDEAL)
        self._bond("O5'-C5'", ("cur:O5'", "cur:C5'"), O5P_C5P_IDEAL)
        self._bond("C5'-C4'", ("cur:C5'", "cur:C4'"), C5P_C4P_IDEAL)
        self._angle("O5' angle", ("cur:P", "cur:O5'", "cur:C5'"), O5P_ANGLE_IDEAL)
        self._angle("C5' angle", ("cur:O5'", "cur:C5'", "cur:C4'"), C5P_ANGLE_IDEAL)
        self._angle("C4' angle", ("cur:C5'", "cur:C4'", "cur:C3'"), C4P_ANGLE_IDEAL)
        self._phos("phosphate shift", "cur:P",
                   phos_ref if phos_ref is not None else atoms["P"], PHOS_SD)
        self._freeze()

    def coordinates(self, params) -> np.ndarray:
        coords = self._base.copy()
        coords[self._moving] += np.asarray(params, dtype=float).reshape(-1, 3)
        return coords

    def apply(self, params) -> AtomSet:
        return self._write_back(self.coordinates(params), {"cur": self._source})["cur"]


@dataclass
class RefinementResult:
    """
    Refined coordinates for one nucleotide.

    Attributes
    ----------
    prev, cur : AtomSet
        Previous and current nucleotide.
    nxt : AtomSet or None
        Next nucleotide, when one took part in the refinement.
    value : float
        Final objective value.
    syn : bool
        Whether the syn-sugar rebuild was kept.
    """

    prev: AtomSet
    cur: AtomSet
    nxt: AtomSet | None
    value: float
    syn: bool = False


def _single_run(objective: _BlockObjective, config: RCraneConfig, rng: np.random.Generator):
    """One simplex run from zero with randomly signed initial steps."""
    signs = rng.choice((-1.0, 1.0), size=objective.n_params)
    result = minimise_nd(
        np.zeros(objective.n_params),
        objective.scales * signs,
        objective,
        ftol=config.ftol,
        itmax=config.max_iterations,
    )
    return result.point, result.value


def _restart_until_stalled(
    step: Callable[[object], tuple[object, float]],
    state,
    config: RCraneConfig,
    early_stop: bool,
):
    """
    Repeat ``step`` until the objective stops improving.

    A run counts as stalled when ``new / previous > config.min_stop_ratio``.
    With ``early_stop`` the loop also ends once the value is below
    ``config.early_stop_value``.
    """
    state, prev_val = step(state)
    cur_val = prev_val
    for _ in range(config.max_restarts):
        state, cur_val = step(state)
        if early_stop and cur_val < config.early_stop_value:
            break
        if prev_val == 0 or cur_val / prev_val > config.min_stop_ratio:
            break
        prev_val = cur_val
    return state, cur_val


def full_nt_minimize(
    prev_atoms: Mapping[str, np.ndarray],
    cur_atoms: Mapping[str, np.ndarray],
    next_atoms: Mapping[str, np.ndarray] | None,
    cur_rot: str,
    next_rot: str | None = None,
    phos_loc=None,
    config: RCraneConfig | None = None,
    rng: np.random.Generator | None = None,
    stats: Mapping[str, RotamerTorsionStats] | None = None,
    log: logging.Logger | None = None,
) -> RefinementResult:
    """
    Refine a nucleotide's backbone.

    Parameters
    ----------
    prev_atoms, cur_atoms, next_atoms
        See :class:`NucleotideObjective`. ``next_atoms`` is ``None`` at the end
        of a segment.
    cur_rot, next_rot : str
        Rotamers of the suites ending and starting at ``cur_atoms``.
    phos_loc : array-like, optional
        Where the current phosphate was before an earlier refinement moved it;
        displacement is measured from there. Defaults to the current P.
    config : RCraneConfig, optional
        Restart, tolerance and syn-fallback settings.
    rng : numpy.random.Generator, optional
        Source of the random step signs.
    stats : Mapping[str, RotamerTorsionStats], optional
        Torsion statistics.
    log : logging.Logger, optional
        Logger for progress messages.

    Returns
    -------
    RefinementResult

    Notes
    -----
    The simplex is restarted from its own result until the objective stops
    improving. If the final value is above ``config.syn_sugar_cutoff`` and the
    base atoms defining chi are present, the whole sugar of the *input*
    nucleotide is turned to chi = 70 degrees (syn) and refined the same way;
    the syn result is kept only if it scores lower.
    """
    config = config or RCraneConfig()
    rng = rng if rng is not None else np.random.default_rng(config.seed)
    stats = stats if stats is not None else load_torsion_stats(config.rotamer_stats_path)
    log = log or logger

    phos_ref = vec(phos_loc) if phos_loc is not None else _require(cur_atoms, "P", "refinement")
    next_phos_ref = vec(next_atoms["P"]) if next_atoms is not None and next_atoms.get("P") is not None else None

    def step(state):
        prev, cur, nxt = state
        objective = NucleotideObjective(
            prev, cur, nxt, cur_rot, next_rot,
            phos_ref=phos_ref, next_phos_ref=next_phos_ref, stats=stats,
        )
        point, value = _single_run(objective, config, rng)
        return objective.apply(point), value

    start = (dict(prev_atoms), dict(cur_atoms), dict(next_atoms) if next_atoms is not None else None)
    (prev, cur, nxt), value = _restart_until_stalled(step, start, config, early_stop=False)
    result = RefinementResult(prev, cur, nxt, value)

    if value > config.syn_sugar_cutoff:
        if glycosidic_atoms(cur_atoms) is None:
            log.info("Cannot rebuild nucleotide with a syn sugar: no base present")
            return result

        log.info("Objective %.2f above %.0f; rebuilding nucleotide with a syn sugar",
                 value, config.syn_sugar_cutoff)
        syn_cur = rotate_sugar(cur_atoms, SYN_CHI - calc_chi(cur_atoms), "all")
        start = (dict(prev_atoms), syn_cur, dict(next_atoms) if next_atoms is not None else None)
        (prev, cur, nxt), syn_value = _restart_until_stalled(step, start, config, early_stop=True)

        if syn_value < value:
            log.info("Using syn structure (%.2f < %.2f)", syn_value, value)
            result = RefinementResult(prev, cur, nxt, syn_value, syn=True)
        else:
            log.info("Using anti structure (%.2f <= %.2f)", value, syn_value)

    return result


def min_init_atoms(
    atoms: Mapping[str, np.ndarray],
    config: RCraneConfig | None = None,
    rng: np.random.Generator | None = None,
) -> tuple[AtomSet, float]:
    """
    Refine P, O5' and C5' of the first nucleotide of a segment.

    Parameters
    ----------
    atoms : Mapping[str, numpy.ndarray]
        See :class:`InitAtomsObjective`.
    config : RCraneConfig, optional
        Restart and tolerance settings.
    rng : numpy.random.Generator, optional
        Source of the random step signs.

    Returns
    -------
    tuple[AtomSet, float]
        Refined atoms and the final objective value.
    """
    config = config or RCraneConfig()
    rng = rng if rng is not None else np.random.default_rng(config.seed)
    phos_ref = _require(atoms, "P", "chain-start refinement")

    def step(state):
        objective = InitAtomsObjective(state, phos_ref=phos_ref)
        point, value = _single_run(objective, config, rng)
        return objective.apply(point), value

    return _restart_until_stalled(step, dict(atoms), config, early_stop=True)
