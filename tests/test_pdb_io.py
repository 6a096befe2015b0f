"""
Tests for rcrane.pdb_io module.

- pdb_structure/normalize_atom_name: fixed-column parsing
- read_pdb: chains, residues, pseudo-atom mode, BREAK records, duplicates
- write_pdb: strict column layout, TER/END, round trip
- read_probabilities: per-suite rotamer probabilities
"""

import logging

import numpy as np
import pytest

from rcrane.chain import Chain, Residue
from rcrane.pdb_io import (
    chains_to_frame,
    normalize_atom_name,
    pdb_structure,
    read_pdb,
    read_probabilities,
    write_pdb,
)


def _atom_line(serial, name, resn, chain, seq, xyz, ins=" ", record="ATOM"):
    field = name if len(name) == 4 else f" {name:<3s}"
    x, y, z = xyz
    return (
        f"{record:<6s}{serial:>5d} {field} {resn:>3s} {chain}{seq:>4d}{ins}   "
        f"{x:8.3f}{y:8.3f}{z:8.3f}  1.00  0.00           {name[0]}\n"
    )


@pytest.fixture
def dinucleotide_pdb(tmp_path):
    """Two bonded residues (O3'-P 1.6 Å) with old-style atom names."""
    lines = [
        _atom_line(1, "P", "G", "A", 1, (0.0, 0.0, 0.0)),
        _atom_line(2, "O1P", "G", "A", 1, (1.0, 0.0, 0.0)),
        _atom_line(3, "C1*", "G", "A", 1, (3.0, 1.0, 0.0)),
        _atom_line(4, "N9", "G", "A", 1, (4.0, 1.0, 0.0)),
        _atom_line(5, "O3*", "G", "A", 1, (5.0, 0.0, 0.0)),
        _atom_line(6, "P", "C", "A", 2, (6.6, 0.0, 0.0)),
        _atom_line(7, "C1'", "C", "A", 2, (8.0, 1.0, 0.0)),
        _atom_line(8, "N1", "C", "A", 2, (9.0, 1.0, 0.0)),
        "TER       9        C A   2\n",
        "END\n",
    ]
    path = tmp_path / "dinuc.pdb"
    path.write_text("".join(lines))
    return str(path)


class TestParsing:
    """Tests for pdb_structure() and normalize_atom_name()."""

    def test_fixed_columns(self):
        """Fields are cut at the PDB column positions."""
        line = _atom_line(12, "C1'", "G", "B", 7, (1.5, -2.25, 10.0), ins="A")
        fields = pdb_structure(line)
        assert fields[0] == "ATOM"
        assert fields[1] == "12"
        assert fields[2] == "C1'"
        assert fields[4] == "G"
        assert fields[5] == "B"
        assert fields[6] == "7"
        assert fields[7] == "A"
        assert [float(v) for v in fields[8:11]] == [1.5, -2.25, 10.0]

    def test_short_line(self):
        """Lines shorter than 80 columns are padded."""
        fields = pdb_structure("BREAK")
        assert fields[0] == "BREAK"
        assert len(fields) == 15

    @pytest.mark.parametrize(
        "raw,expected",
        [("C1*", "C1'"), ("O1P", "OP1"), ("O2P", "OP2"), (" P  ", "P"), ("O5'", "O5'")],
    )
    def test_normalize_atom_name(self, raw, expected):
        assert normalize_atom_name(raw) == expected


class TestReadPDB:
    """Tests for read_pdb()."""

    def test_residues_and_atoms(self, dinucleotide_pdb):
        """Residues are grouped and atom names normalized."""
        chains = read_pdb(dinucleotide_pdb)
        assert len(chains) == 1
        chain = chains[0]
        assert chain.id == "A"
        assert [r.number for r in chain] == ["1", "2"]
        assert [r.name for r in chain] == ["G", "C"]
        first = chain.residues[0]
        assert set(first.atoms) == {"P", "OP1", "C1'", "N9", "O3'"}
        np.testing.assert_allclose(first.atoms["C1'"], [3.0, 1.0, 0.0])

    def test_full_atom_connectivity(self, dinucleotide_pdb):
        """Full-atom input is connected through O3'-P."""
        chain = read_pdb(dinucleotide_pdb)[0]
        assert not chain.manual_connect
        assert chain.residues[1].connected_to_prev()
        assert [s.full_number for s in chain.suites()] == ["1-2"]

    def test_pseudoatom_filter(self, dinucleotide_pdb):
        """Pseudo-atom mode keeps P, C1' and base atoms only."""
        chain = read_pdb(dinucleotide_pdb, pseudoatom=True)[0]
        assert set(chain.residues[0].atoms) == {"P", "C1'", "N9"}
        assert chain.pseudoatom
        assert chain.manual_connect

    def test_manual_connect_override(self, dinucleotide_pdb):
        chain = read_pdb(dinucleotide_pdb, pseudoatom=True, manual_connect=False)[0]
        assert not chain.manual_connect

    def test_break_record(self, tmp_path):
        """BREAK separates the residues on either side."""
        lines = [
            _atom_line(1, "P", "G", "A", 1, (0.0, 0.0, 0.0)),
            _atom_line(2, "C1'", "G", "A", 1, (3.0, 0.0, 0.0)),
            _atom_line(3, "P", "G", "A", 2, (6.0, 0.0, 0.0)),
            _atom_line(4, "C1'", "G", "A", 2, (9.0, 0.0, 0.0)),
            "BREAK\n",
            _atom_line(5, "P", "G", "A", 3, (12.0, 0.0, 0.0)),
            _atom_line(6, "C1'", "G", "A", 3, (15.0, 0.0, 0.0)),
        ]
        path = tmp_path / "break.pdb"
        path.write_text("".join(lines))
        chain = read_pdb(str(path), pseudoatom=True)[0]
        assert [r.break_before for r in chain] == [False, False, True]
        assert [s.full_number for s in chain.suites()] == ["1-2"]

    def test_insertion_code_and_hetatm(self, tmp_path):
        """Insertion codes are part of the residue number; HETATM is read."""
        lines = [
            _atom_line(1, "P", "G", "A", 12, (0.0, 0.0, 0.0)),
            _atom_line(2, "P", "G", "A", 12, (5.0, 0.0, 0.0), ins="A", record="HETATM"),
        ]
        path = tmp_path / "ins.pdb"
        path.write_text("".join(lines))
        chain = read_pdb(str(path))[0]
        assert [r.number for r in chain] == ["12", "12A"]

    def test_chain_order(self, tmp_path):
        """Chains come back in order of first appearance."""
        lines = [
            _atom_line(1, "P", "G", "B", 1, (0.0, 0.0, 0.0)),
            _atom_line(2, "P", "G", "A", 1, (5.0, 0.0, 0.0)),
            _atom_line(3, "P", "G", "B", 2, (9.0, 0.0, 0.0)),
        ]
        path = tmp_path / "chains.pdb"
        path.write_text("".join(lines))
        chains = read_pdb(str(path))
        assert [c.id for c in chains] == ["B", "A"]
        assert len(chains[0]) == 2

    def test_duplicate_atom(self, tmp_path, caplog):
        """The first copy of a duplicate atom is kept and a warning logged."""
        lines = [
            _atom_line(1, "P", "G", "A", 1, (0.0, 0.0, 0.0)),
            _atom_line(2, "P", "G", "A", 1, (1.0, 1.0, 1.0)),
        ]
        path = tmp_path / "dup.pdb"
        path.write_text("".join(lines))
        with caplog.at_level(logging.WARNING, logger="rcrane.pdb_io"):
            chain = read_pdb(str(path))[0]
        assert "Duplicate atom found" in caplog.text
        np.testing.assert_array_equal(chain.residues[0].atoms["P"], [0.0, 0.0, 0.0])


class TestWritePDB:
    """Tests for write_pdb() and chains_to_frame()."""

    @pytest.fixture
    def chain(self):
        chain = Chain("A")
        chain.add_residue(Residue(1, "G", {
            "O3'": [5.0, 0.0, 0.0], "C1'": [3.0, 1.0, 0.0], "P": [0.0, 0.0, 0.0], "N9": [4.0, 1.0, 0.0],
        }))
        chain.add_residue(Residue("2A", "C", {"P": [6.6, 0.0, 0.0], "C1'": [-8.125, 1.0, 0.0]}))
        return chain

    def test_atom_order(self, chain):
        """Phosphate, sugar, base, then O3'."""
        df = chains_to_frame([chain])
        names = list(df[df["Records"] == "ATOM"]["AtomTyp"])
        assert names == ["P", "C1'", "N9", "O3'", "P", "C1'"]

    def test_ter_per_chain(self, chain):
        df = chains_to_frame([chain, chain])
        assert list(df["Records"]).count("TER") == 2

    def test_columns(self, chain, tmp_path):
        """Names, numbers and coordinates sit in their PDB columns."""
        path = tmp_path / "out.pdb"
        write_pdb(str(path), [chain])
        lines = path.read_text().splitlines()
        first = lines[0]
        assert first[0:6] == "ATOM  "
        assert first[6:11] == "    1"
        assert first[12:16] == " P  "
        assert first[17:20] == "  G"
        assert first[21] == "A"
        assert first[22:26] == "   1"
        assert first[30:54] == "   0.000   0.000   0.000"
        assert first[54:60] == "  1.00"
        c1 = lines[5]
        assert c1[12:16] == " C1'"
        assert c1[22:27] == "   2A"
        assert c1[30:38] == "  -8.125"
        assert lines[-2].startswith("TER")
        assert lines[-1] == "END"

    def test_round_trip(self, chain, tmp_path):
        """Written files read back to the same residues and coordinates."""
        path = tmp_path / "round.pdb"
        write_pdb(str(path), [chain])
        back = read_pdb(str(path))[0]
        assert [r.number for r in back] == ["1", "2A"]
        for old, new in zip(chain, back):
            assert set(old.atoms) == set(new.atoms)
            for name in old.atoms:
                np.testing.assert_allclose(new.atoms[name], old.atoms[name], atol=1e-3)

    def test_unknown_atoms_not_written(self, tmp_path):
        """Atoms outside the write order are dropped."""
        chain = Chain("A")
        chain.add_residue(Residue(1, "G", {"P": [0, 0, 0], "H5'": [1, 0, 0]}))
        df = chains_to_frame([chain])
        assert list(df["AtomTyp"]) == ["P", "P"]


class TestReadProbabilities:
    """Tests for read_probabilities()."""

    def test_with_suite_column(self, tmp_path):
        """The suite label column is dropped; empty cells are zero."""
        path = tmp_path / "probs.csv"
        path.write_text("suite,1a,1b,2a\n1-2,0.7,0.3,\n2-3,0.1,,0.9\n")
        probs = read_probabilities(str(path))
        assert probs == [
            {"1a": 0.7, "1b": 0.3, "2a": 0.0},
            {"1a": 0.1, "1b": 0.0, "2a": 0.9},
        ]

    def test_without_suite_column(self, tmp_path):
        path = tmp_path / "probs.csv"
        path.write_text("1a, 2[\n0.5, 0.5\n")
        assert read_probabilities(str(path)) == [{"1a": 0.5, "2[": 0.5}]
