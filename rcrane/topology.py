"""
rcrane.topology
===============

Projection between OpenMM topologies and RCrane chains.

OpenMM positions carry units; RCrane works in plain Å. Units are attached and
stripped only here, with :func:`angstrom` and :func:`nostrom`.

Examples
--------
>>> from openmm import app
>>> from rcrane.topology import chains_from_topology, chains_to_topology
>>> pdb = app.PDBFile("rna.pdb")  # doctest: +SKIP
>>> chains = chains_from_topology(pdb.topology, pdb.positions)  # doctest: +SKIP
>>> topology, positions = chains_to_topology(chains)  # doctest: +SKIP
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike
from openmm import app, unit
from openmm.unit import Quantity

from rcrane.chain import Chain, Residue
from rcrane.pdb_io import PSEUDO_ATOMS, WRITE_ORDER, normalize_atom_name


def angstrom(array: ArrayLike) -> Quantity:
    """Attach Å units to a numeric array."""
    return np.asarray(array, dtype=float) * unit.angstrom


def nostrom(quantity: Quantity) -> np.ndarray:
    """
    Strip units from lengths, returning Å as floats.

    Raises
    ------
    AttributeError
        If a unitless array is passed.
    """
    return np.asarray(quantity.value_in_unit(unit.angstrom), dtype=float)


def chains_from_topology(
    topology: app.Topology,
    positions: Quantity,
    pseudoatom: bool = False,
    manual_connect: bool | None = None,
) -> list[Chain]:
    """
    Build RCrane chains from an OpenMM topology.

    Parameters
    ----------
    topology : openmm.app.Topology
        Topology of the RNA.
    positions : openmm.unit.Quantity
        Atom positions (any length unit), indexed like ``topology.atoms()``.
    pseudoatom, manual_connect
        See :func:`rcrane.pdb_io.read_pdb`.

    Returns
    -------
    list[Chain]
    """
    if manual_connect is None:
        manual_connect = pseudoatom
    coords = nostrom(positions)

    chains = []
    for top_chain in topology.chains():
        chain = Chain(top_chain.id or " ", pseudoatom=pseudoatom, manual_connect=manual_connect)
        for top_res in top_chain.residues():
            number = f"{top_res.id}{(top_res.insertionCode or '').strip()}"
            atoms = {}
            for atom in top_res.atoms():
                name = normalize_atom_name(atom.name)
                if pseudoatom and name not in PSEUDO_ATOMS:
                    continue
                atoms.setdefault(name, coords[atom.index])
            chain.add_residue(Residue(number, top_res.name, atoms))
        chains.append(chain)
    return chains


def chains_to_topology(chains: Sequence[Chain]) -> tuple[app.Topology, Quantity]:
    """
    Build an OpenMM topology and positions from RCrane chains.

    Atoms are added in the order phosphate, sugar, base, O3'. Bonds are
    created from OpenMM's standard residue templates, so residues named
    A/C/G/U get their intra-residue and O3'-P links.

    Returns
    -------
    tuple[openmm.app.Topology, openmm.unit.Quantity]
        Topology and positions in Å.
    """
    topology = app.Topology()
    positions = []
    for chain in chains:
        top_chain = topology.addChain(chain.id)
        for res in chain:
            number, ins = res.number, " "
            if number and not number[-1].isdigit():
                number, ins = number[:-1], number[-1]
            top_res = topology.addResidue(res.name, top_chain, id=number, insertionCode=ins)
            for name in WRITE_ORDER:
                pos = res.atoms.get(name)
                if pos is None:
                    continue
                topology.addAtom(name, app.Element.getBySymbol(name[0]), top_res)
                positions.append(pos)
    topology.createStandardBonds()
    return topology, angstrom(np.array(positions, dtype=float).reshape(-1, 3))
