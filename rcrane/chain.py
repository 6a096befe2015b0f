# rcrane/chain.py
"""
rcrane.chain
============

Residue/suite/chain model used by the decoder and the builder.

A :class:`Chain` owns its residues in order. A :class:`Suite` is the unit of
backbone conformation: the stretch from one sugar to the next, spanning the
atoms ``delta(i-1) epsilon zeta alpha beta gamma delta(i)``. Suites are not
stored; they are derived from pairs of connected residues on demand.

Residue measures (``eta``, ``theta``, ``pperp``, ``phos_dist`` and
``starting_sugar_dist``) and the connectivity test are computed once and cached
by the residue. A measure that cannot be computed is ``None``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

import numpy as np

from rcrane.helpers import AtomSet, distance, distance_to_line, torsion, vec

# sugar atom used for pseudotorsions and sugar distances
SUGAR_ATOM = "C1'"

# bond-length cut-offs for the connectivity test (Å)
O3P_CONNECT_DIST = 3.0
C1P_CONNECT_DIST = 6.0


class Residue:
    """
    One nucleotide.

    Parameters
    ----------
    number : str or int
        Residue number as it appears in the input (may carry an insertion code).
    name : str
        Residue name, e.g. ``"G"``.
    atoms : Mapping[str, array-like], optional
        Atom name -> coordinates.
    break_before : bool, default=False
        Force a chain break between this residue and the previous one.

    Attributes
    ----------
    chain : Chain or None
        Owning chain, set by :meth:`Chain.add_residue`.
    index : int or None
        Position within the chain.
    """

    def __init__(
        self,
        number,
        name: str,
        atoms: Mapping[str, np.ndarray] | None = None,
        break_before: bool = False,
    ):
        self.number = str(number)
        self.name = name
        self._atoms: AtomSet = {k: vec(v) for k, v in (atoms or {}).items()}
        self.break_before = break_before
        self.chain: Chain | None = None
        self.index: int | None = None
        self._connected_to_prev: bool | None = None
        self._measures: dict[str, float | None] = {}

    def __repr__(self) -> str:
        return f"Residue({self.number!r}, {self.name!r}, {len(self._atoms)} atoms)"

    @property
    def atoms(self) -> AtomSet:
        return self._atoms

    @atoms.setter
    def atoms(self, new_atoms: Mapping[str, np.ndarray]) -> None:
        # connectivity is decided on the input coordinates and kept
        self._atoms = {k: vec(v) for k, v in new_atoms.items()}
        self._measures.clear()

    def has(self, *names: str) -> bool:
        """Whether every named atom is present."""
        return all(self._atoms.get(n) is not None for n in names)

    # ------------------------------------------------------------------
    # Neighbours and connectivity
    # ------------------------------------------------------------------

    @property
    def prev_res(self) -> Residue | None:
        if self.chain is None or not self.index:
            return None
        return self.chain.residues[self.index - 1]

    @property
    def next_res(self) -> Residue | None:
        if self.chain is None or self.index is None:
            return None
        if self.index + 1 >= len(self.chain.residues):
            return None
        return self.chain.residues[self.index + 1]

    def connected_to_prev(self) -> bool:
        """
        Whether this residue is covalently linked to the previous one.

        An explicit break wins. Otherwise, with manual connectivity every
        consecutive pair is linked; with full atoms the P-O3' distance must be
        below 3 Å; with pseudo-atoms (or no O3') the P-C1' distance must be
        below 6 Å.
        """
        if self._connected_to_prev is None:
            self._connected_to_prev = self._compute_connected_to_prev()
        return self._connected_to_prev

    def _compute_connected_to_prev(self) -> bool:
        prev = self.prev_res
        if prev is None or self.break_before:
            return False
        if self.chain is not None and self.chain.manual_connect:
            return True
        pseudoatom = self.chain is not None and self.chain.pseudoatom
        if self.has("P") and prev.has("O3'") and not pseudoatom:
            return distance(self._atoms["P"], prev.atoms["O3'"]) < O3P_CONNECT_DIST
        if self.has("P") and prev.has("C1'"):
            return distance(self._atoms["P"], prev.atoms["C1'"]) < C1P_CONNECT_DIST
        return False

    def connected_to_next(self) -> bool:
        nxt = self.next_res
        return nxt is not None and nxt.connected_to_prev()

    @property
    def prev_connected_res(self) -> Residue | None:
        return self.prev_res if self.connected_to_prev() else None

    @property
    def next_connected_res(self) -> Residue | None:
        return self.next_res if self.connected_to_next() else None

    @property
    def starting_suite(self) -> Suite | None:
        """Suite that ends at this residue (``None`` if not connected)."""
        if self.connected_to_prev():
            return Suite(self.prev_res, self)
        return None

    @property
    def ending_suite(self) -> Suite | None:
        """Suite that starts at this residue (``None`` if not connected)."""
        if self.connected_to_next():
            return Suite(self, self.next_res)
        return None

    # ------------------------------------------------------------------
    # Cached measures
    # ------------------------------------------------------------------

    def _cached(self, name: str, func) -> float | None:
        if name not in self._measures:
            self._measures[name] = func()
        return self._measures[name]

    @property
    def eta(self) -> float | None:
        """Pseudotorsion ``C1'(i-1), P(i), C1'(i), P(i+1)``."""

        def calc():
            prev, nxt = self.prev_res, self.next_res
            if not (self.connected_to_prev() and self.connected_to_next()):
                return None
            if not (prev.has(SUGAR_ATOM) and self.has("P", SUGAR_ATOM) and nxt.has("P")):
                return None
            return torsion(
                prev.atoms[SUGAR_ATOM], self._atoms["P"], self._atoms[SUGAR_ATOM], nxt.atoms["P"]
            )

        return self._cached("eta", calc)

    @property
    def theta(self) -> float | None:
        """Pseudotorsion ``P(i), C1'(i), P(i+1), C1'(i+1)``."""

        def calc():
            nxt = self.next_res
            if not self.connected_to_next():
                return None
            if not (self.has("P", SUGAR_ATOM) and nxt.has("P", SUGAR_ATOM)):
                return None
            return torsion(
                self._atoms["P"], self._atoms[SUGAR_ATOM], nxt.atoms["P"], nxt.atoms[SUGAR_ATOM]
            )

        return self._cached("theta", calc)

    @property
    def pperp(self) -> float | None:
        """Distance from the next phosphate to the glycosidic bond line."""

        def calc():
            nitrogen = self._atoms.get("N9")
            if nitrogen is None:
                nitrogen = self._atoms.get("N1")
            nxt = self.next_res
            if nitrogen is None or not self.has("C1'") or not self.connected_to_next():
                return None
            if not nxt.has("P"):
                return None
            return distance_to_line(nxt.atoms["P"], self._atoms["C1'"], nitrogen)

        return self._cached("pperp", calc)

    @property
    def phos_dist(self) -> float | None:
        """Distance between this phosphate and the next."""

        def calc():
            nxt = self.next_res
            if not self.connected_to_next() or not self.has("P") or not nxt.has("P"):
                return None
            return distance(self._atoms["P"], nxt.atoms["P"])

        return self._cached("phos_dist", calc)

    @property
    def starting_sugar_dist(self) -> float | None:
        """C1'-C1' distance to the previous residue."""

        def calc():
            prev = self.prev_res
            if not self.connected_to_prev() or not self.has(SUGAR_ATOM):
                return None
            if not prev.has(SUGAR_ATOM):
                return None
            return distance(self._atoms[SUGAR_ATOM], prev.atoms[SUGAR_ATOM])

        return self._cached("starting_sugar_dist", calc)

    @property
    def ending_sugar_dist(self) -> float | None:
        if self.connected_to_next():
            return self.next_res.starting_sugar_dist
        return None


class Suite:
    """
    The backbone stretch between two connected residues.

    Parameters
    ----------
    starting_res, ending_res : Residue
        The 5' and 3' residues of the suite.
    """

    def __init__(self, starting_res: Residue, ending_res: Residue):
        self.starting_res = starting_res
        self.ending_res = ending_res

    def __repr__(self) -> str:
        return f"Suite({self.full_number})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Suite):
            return NotImplemented
        return self.starting_res is other.starting_res and self.ending_res is other.ending_res

    def __hash__(self) -> int:
        return hash((id(self.starting_res), id(self.ending_res)))

    @property
    def number(self) -> str:
        return self.ending_res.number

    @property
    def full_number(self) -> str:
        return f"{self.starting_res.number}-{self.ending_res.number}"

    @property
    def theta(self) -> float | None:
        return self.starting_res.theta

    @property
    def eta(self) -> float | None:
        return self.ending_res.eta

    @property
    def sugar_dist(self) -> float | None:
        return self.ending_res.starting_sugar_dist

    def connected_to_next(self) -> bool:
        """Whether the following suite shares this suite's ending residue."""
        nxt = self.ending_res.next_res
        return self.ending_res.connected_to_next() and nxt.has("P", "C1'")

    def connected_to_prev(self) -> bool:
        """Whether the preceding suite shares this suite's starting residue."""
        start = self.starting_res
        return start.connected_to_prev() and start.has("P") and start.prev_res.has("C1'")

    def next_connected_suite(self) -> Suite | None:
        if self.connected_to_next():
            return Suite(self.ending_res, self.ending_res.next_res)
        return None

    def prev_connected_suite(self) -> Suite | None:
        if self.connected_to_prev():
            return Suite(self.starting_res.prev_res, self.starting_res)
        return None

    def atom(self, name: str) -> np.ndarray | None:
        """
        Look up an atom of the suite.

        Names ending in ``-1`` (and O3', which belongs to the 5' sugar's
        backbone) come from the starting residue; everything else from the
        ending residue.
        """
        if name.endswith("-1"):
            return self.starting_res.atoms.get(name[:-2])
        if name == "O3'":
            return self.starting_res.atoms.get(name)
        return self.ending_res.atoms.get(name)


class Chain:
    """
    Ordered residues of one polymer chain.

    Parameters
    ----------
    chain_id : str
        Chain identifier (``" "`` if the input has none).
    pseudoatom : bool, default=False
        Coordinates only contain P, C1' and base atoms; the connectivity test
        ignores O3'.
    manual_connect : bool, default=False
        Consecutive residues are connected unless a break separates them.

    Examples
    --------
    >>> chain = Chain("A")
    >>> chain.add_residue(Residue(1, "G", {"P": [0, 0, 0], "C1'": [3, 0, 0]}))
    >>> chain.add_residue(Residue(2, "A", {"P": [5, 0, 0], "C1'": [8, 0, 0]}))
    >>> [s.full_number for s in chain.suites()]
    ['1-2']
    """

    def __init__(self, chain_id: str = " ", pseudoatom: bool = False, manual_connect: bool = False):
        self.id = chain_id
        self.pseudoatom = pseudoatom
        self.manual_connect = manual_connect
        self.residues: list[Residue] = []
        self._index: dict[str, int] = {}

    def __repr__(self) -> str:
        return f"Chain({self.id!r}, {len(self.residues)} residues)"

    def __len__(self) -> int:
        return len(self.residues)

    def __iter__(self) -> Iterator[Residue]:
        return iter(self.residues)

    def add_residue(self, residue: Residue) -> Residue:
        residue.chain = self
        residue.index = len(self.residues)
        self._index[residue.number] = residue.index
        self.residues.append(residue)
        return residue

    def has_res(self, number) -> bool:
        return str(number) in self._index

    def res(self, number) -> Residue:
        """Residue by its input number."""
        return self.residues[self._index[str(number)]]

    @property
    def first_res(self) -> Residue | None:
        return self.residues[0] if self.residues else None

    @property
    def last_res(self) -> Residue | None:
        return self.residues[-1] if self.residues else None

    def suite(self, number) -> Suite | None:
        """Suite ending at residue ``number`` (``None`` if not connected)."""
        if not self.has_res(number):
            return None
        return self.res(number).starting_suite

    def suites(self) -> list[Suite]:
        """
        Every buildable suite in chain order.

        A suite needs a connection between the two residues, C1' on the first
        and both P and C1' on the second.
        """
        result = []
        for res in self.residues[1:]:
            prev = res.prev_res
            if res.connected_to_prev() and prev.has("C1'") and res.has("P", "C1'"):
                result.append(Suite(prev, res))
        return result

    def suite_connectivity(self, suites: list[Suite] | None = None) -> list[bool]:
        """``connected[i]``: suite ``i`` shares its starting residue with suite ``i-1``."""
        if suites is None:
            suites = self.suites()
        connected = []
        for i, suite in enumerate(suites):
            connected.append(
                i > 0
                and suites[i - 1].ending_res is suite.starting_res
                and suite.connected_to_prev()
            )
        return connected
