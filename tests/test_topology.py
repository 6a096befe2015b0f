"""
Tests for rcrane.topology module (OpenMM projection).
"""

import numpy as np
import pytest
from openmm import unit

from rcrane.chain import Chain, Residue
from rcrane.topology import angstrom, chains_from_topology, chains_to_topology, nostrom


@pytest.fixture
def chain(seed_atoms):
    chain = Chain("A")
    chain.add_residue(Residue(1, "G", dict(seed_atoms[0], OP1=seed_atoms[0]["P"] + 1.2)))
    chain.add_residue(Residue("2A", "A", seed_atoms[1]))
    return chain


class TestUnits:
    """Tests for angstrom() and nostrom()."""

    def test_round_trip(self):
        values = np.array([[1.0, 2.0, 3.0]])
        np.testing.assert_allclose(nostrom(angstrom(values)), values)

    def test_converts_nanometers(self):
        """Positions in nm come back in Å."""
        np.testing.assert_allclose(nostrom(np.array([0.1, 0.2, 0.3]) * unit.nanometer), [1.0, 2.0, 3.0])

    def test_unitless_rejected(self):
        with pytest.raises(AttributeError):
            nostrom(np.zeros(3))


class TestChainsToTopology:
    """Tests for chains_to_topology()."""

    def test_counts(self, chain):
        topology, positions = chains_to_topology([chain])
        assert topology.getNumChains() == 1
        assert topology.getNumResidues() == 2
        assert topology.getNumAtoms() == 9
        assert len(nostrom(positions)) == 9

    def test_positions_in_order(self, chain):
        """Atoms are emitted phosphate first; positions match."""
        topology, positions = chains_to_topology([chain])
        atoms = list(topology.atoms())
        assert [a.name for a in atoms[:3]] == ["P", "OP1", "C1'"]
        np.testing.assert_allclose(nostrom(positions)[2], chain.residues[0].atoms["C1'"])

    def test_insertion_code(self, chain):
        topology, _ = chains_to_topology([chain])
        res = list(topology.residues())[1]
        assert res.id == "2"
        assert res.insertionCode == "A"

    def test_standard_bonds(self, chain):
        """The glycosidic bond comes from the standard residue template."""
        topology, _ = chains_to_topology([chain])
        bonded = {frozenset((b[0].name, b[1].name)) for b in topology.bonds()}
        assert frozenset(("C1'", "N9")) in bonded


class TestChainsFromTopology:
    """Tests for chains_from_topology()."""

    def test_round_trip(self, chain):
        topology, positions = chains_to_topology([chain])
        back = chains_from_topology(topology, positions)
        assert len(back) == 1
        assert back[0].id == "A"
        assert [r.number for r in back[0]] == ["1", "2A"]
        assert [r.name for r in back[0]] == ["G", "A"]
        for old, new in zip(chain, back[0]):
            assert set(new.atoms) == set(old.atoms)
            for name in old.atoms:
                np.testing.assert_allclose(new.atoms[name], old.atoms[name], atol=1e-9)

    def test_pseudoatom(self, chain):
        """Pseudo-atom mode drops the phosphoryl oxygens."""
        topology, positions = chains_to_topology([chain])
        back = chains_from_topology(topology, positions, pseudoatom=True)
        assert "OP1" not in back[0].residues[0].atoms
        assert back[0].manual_connect
        assert [s.full_number for s in back[0].suites()] == ["1-2A"]
