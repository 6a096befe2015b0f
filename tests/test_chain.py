"""
Tests for rcrane.chain module.

- Residue: connectivity test, cached measures, atom replacement
- Suite: neighbours and atom lookup
- Chain: suite enumeration and suite connectivity
"""

import numpy as np
import pytest

from rcrane.chain import Chain, Residue, Suite


def _two_residues(p2, o3=None, c1=(0.0, 0.0, 0.0), **chain_kw):
    chain = Chain("A", **chain_kw)
    first = {"C1'": np.array(c1)}
    if o3 is not None:
        first["O3'"] = np.array(o3)
    chain.add_residue(Residue(1, "G", first))
    chain.add_residue(Residue(2, "A", {"P": np.array(p2), "C1'": np.array([9.0, 0.0, 0.0])}))
    return chain


class TestConnectivity:
    """Tests for Residue.connected_to_prev()."""

    def test_o3_p_bonded(self):
        """P within 3 Å of the previous O3' is connected."""
        chain = _two_residues([2.9, 0, 0], o3=[0.0, 0, 0], c1=[-20.0, 0, 0])
        assert chain.residues[1].connected_to_prev()

    def test_o3_p_too_far(self):
        """With full atoms the O3' test decides, even if C1' is close."""
        chain = _two_residues([3.1, 0, 0], o3=[0.0, 0, 0], c1=[1.0, 0, 0])
        assert not chain.residues[1].connected_to_prev()

    def test_pseudoatom_uses_c1(self):
        """Pseudo-atom chains ignore O3' and use the C1'-P distance."""
        chain = _two_residues([5.9, 0, 0], o3=[40.0, 0, 0], pseudoatom=True)
        assert chain.residues[1].connected_to_prev()

    def test_c1_p_too_far(self):
        """P 6 Å or more from the previous C1' is not connected."""
        chain = _two_residues([6.1, 0, 0], pseudoatom=True)
        assert not chain.residues[1].connected_to_prev()

    def test_c1_fallback_without_o3(self):
        """Without O3' the C1' test is used for full-atom chains too."""
        chain = _two_residues([5.0, 0, 0])
        assert chain.residues[1].connected_to_prev()

    def test_manual_connect(self):
        """Manual connectivity links residues regardless of distance."""
        chain = _two_residues([50.0, 0, 0], manual_connect=True)
        assert chain.residues[1].connected_to_prev()

    def test_break_wins(self, make_chain):
        """An explicit break separates residues even with manual connectivity."""
        chain = make_chain(3)
        chain.residues[2].break_before = True
        assert chain.residues[1].connected_to_prev()
        assert not chain.residues[2].connected_to_prev()
        assert not chain.residues[1].connected_to_next()

    def test_first_residue(self, make_chain):
        """The first residue has nothing before it."""
        chain = make_chain(2)
        assert not chain.first_res.connected_to_prev()
        assert chain.first_res.prev_res is None

    def test_missing_phosphate(self):
        """A residue without P cannot be tested and is not connected."""
        chain = Chain("A")
        chain.add_residue(Residue(1, "G", {"C1'": [0.0, 0, 0]}))
        chain.add_residue(Residue(2, "A", {"C1'": [1.0, 0, 0]}))
        assert not chain.residues[1].connected_to_prev()

    def test_connectivity_kept_after_rebuild(self):
        """Replacing atoms does not change a decided connection."""
        chain = _two_residues([5.0, 0, 0], pseudoatom=True)
        second = chain.residues[1]
        assert second.connected_to_prev()
        second.atoms = {"P": np.array([60.0, 0, 0]), "C1'": np.array([9.0, 0, 0])}
        assert second.connected_to_prev()


class TestResidue:
    """Tests for Residue atoms and measures."""

    def test_number_is_string(self):
        assert Residue(12, "C").number == "12"

    def test_has(self):
        res = Residue(1, "G", {"P": [0, 0, 0], "C1'": [1, 0, 0]})
        assert res.has("P", "C1'")
        assert not res.has("P", "O3'")

    def test_atoms_are_arrays(self):
        """Coordinates are stored as float arrays."""
        res = Residue(1, "G", {"P": [0, 1, 2]})
        assert isinstance(res.atoms["P"], np.ndarray)
        assert res.atoms["P"].dtype == float

    def test_setter_clears_measures(self, make_chain):
        """New atoms invalidate the cached measures."""
        chain = make_chain(2)
        first = chain.first_res
        before = first.phos_dist
        first.atoms = dict(first.atoms, P=first.atoms["P"] + np.array([1.0, 0, 0]))
        assert first.phos_dist != pytest.approx(before)

    def test_phos_dist(self, make_chain):
        chain = make_chain(2)
        first, second = chain.residues
        expected = np.linalg.norm(second.atoms["P"] - first.atoms["P"])
        assert first.phos_dist == pytest.approx(expected)

    def test_measures_none_at_ends(self, make_chain):
        """Measures needing a missing neighbour are None."""
        chain = make_chain(3)
        assert chain.first_res.eta is None
        assert chain.last_res.theta is None
        assert chain.last_res.phos_dist is None
        assert chain.residues[1].eta is not None
        assert chain.first_res.theta is not None

    def test_pperp(self, make_chain):
        """Distance from the next P to the glycosidic line is positive."""
        chain = make_chain(2)
        assert chain.first_res.pperp > 0

    def test_sugar_dists(self, make_chain):
        chain = make_chain(2)
        first, second = chain.residues
        expected = np.linalg.norm(second.atoms["C1'"] - first.atoms["C1'"])
        assert second.starting_sugar_dist == pytest.approx(expected)
        assert first.ending_sugar_dist == pytest.approx(expected)


class TestSuite:
    """Tests for Suite."""

    def test_numbers(self, make_chain):
        suite = make_chain(2).suites()[0]
        assert suite.number == "2"
        assert suite.full_number == "1-2"

    def test_equality(self, make_chain):
        """Suites over the same residues are equal."""
        chain = make_chain(2)
        assert chain.suites()[0] == Suite(*chain.residues)
        assert len({chain.suites()[0], Suite(*chain.residues)}) == 1

    def test_neighbours(self, make_chain):
        chain = make_chain(3)
        first, second = chain.suites()
        assert first.next_connected_suite() == second
        assert second.prev_connected_suite() == first
        assert first.prev_connected_suite() is None
        assert second.next_connected_suite() is None

    def test_atom_lookup(self, make_chain):
        """-1 names and O3' come from the starting residue."""
        chain = make_chain(2)
        first, second = chain.residues
        first.atoms = dict(first.atoms, **{"O3'": np.array([1.0, 2.0, 3.0])})
        suite = Suite(first, second)
        np.testing.assert_array_equal(suite.atom("O3'"), [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(suite.atom("P-1"), first.atoms["P"])
        np.testing.assert_array_equal(suite.atom("P"), second.atoms["P"])
        assert suite.atom("O4'") is None

    def test_pseudotorsions(self, make_chain):
        """Suite theta/eta come from its starting/ending residues."""
        chain = make_chain(3)
        suite = chain.suites()[0]
        assert suite.theta == chain.residues[0].theta
        assert suite.eta == chain.residues[1].eta


class TestChain:
    """Tests for Chain."""

    def test_lookup(self, make_chain):
        chain = make_chain(3)
        assert len(chain) == 3
        assert chain.has_res(2)
        assert chain.res("2") is chain.residues[1]
        assert not chain.has_res(9)

    def test_suites(self, make_chain):
        """n connected residues give n - 1 suites."""
        assert [s.full_number for s in make_chain(4).suites()] == ["1-2", "2-3", "3-4"]

    def test_suite_by_number(self, make_chain):
        chain = make_chain(3)
        assert chain.suite(3).full_number == "2-3"
        assert chain.suite(1) is None
        assert chain.suite(7) is None

    def test_helix_connected_by_distance(self, helix_atoms):
        """Consecutive helix seed residues pass the C1'-P test."""
        chain = Chain("A", pseudoatom=True)
        for i in range(3):
            chain.add_residue(Residue(i + 1, "A", helix_atoms(i)))
        assert len(chain.suites()) == 2

    def test_suite_needs_c1(self, make_chain):
        """A residue without C1' ends no suite."""
        chain = make_chain(3)
        chain.residues[1].atoms = {"P": chain.residues[1].atoms["P"]}
        assert chain.suites() == []

    def test_suite_connectivity(self, make_chain):
        """Flags are False at chain starts and after breaks."""
        chain = make_chain(5)
        chain.residues[3].break_before = True
        suites = chain.suites()
        assert [s.full_number for s in suites] == ["1-2", "2-3", "4-5"]
        assert chain.suite_connectivity(suites) == [False, True, False]

    def test_suite_connectivity_default(self, make_chain):
        chain = make_chain(3)
        assert chain.suite_connectivity() == [False, True]
