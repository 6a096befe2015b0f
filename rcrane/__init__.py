"""
RCrane - RNA backbone construction
==================================

A Python package for building an all-atom RNA backbone from phosphate, C1'
and base coordinates.

Public API
----------
run_rcrane : Decode the rotamer path and build every chain.
RCraneConfig : Configuration for an RCrane run.
RCraneResult : Result of an RCrane run.
read_pdb, write_pdb : PDB input and output.
chains_from_topology, chains_to_topology : OpenMM topology projection.

Examples
--------
>>> from rcrane import RCraneConfig, read_pdb, run_rcrane
>>> chains = read_pdb("seeds.pdb", pseudoatom=True)  # doctest: +SKIP
>>> result = run_rcrane(RCraneConfig(seed=3), chains, rotamer_string="1a1a")  # doctest: +SKIP
"""

from rcrane.pdb_io import read_pdb, write_pdb
from rcrane.run import RCraneConfig, RCraneResult, run_rcrane
from rcrane.topology import chains_from_topology, chains_to_topology

__all__ = [
    "run_rcrane",
    "RCraneConfig",
    "RCraneResult",
    "read_pdb",
    "write_pdb",
    "chains_from_topology",
    "chains_to_topology",
]
