"""
Pytest configuration for the RCrane test suite.

This file provides shared fixtures and markers for all tests:
- `slow` marker: Tests that run the full refinement
- Synthetic A-form-like seed coordinates (P, C1' and purine N9/C4)
- Seed chains and a fast configuration
"""

import math

import numpy as np
import pytest

from rcrane.chain import Chain, Residue
from rcrane.config import RCraneConfig

RISE = 2.81  # Å per residue
TWIST = 32.7  # degrees per residue


def pytest_configure(config):
    """Register custom markers to avoid warnings."""
    config.addinivalue_line("markers", "slow: marks tests as slow-running")


def _cyl(r, phi_deg, z):
    phi = math.radians(phi_deg)
    return np.array([r * math.cos(phi), r * math.sin(phi), z])


def helix_seed_atoms(i):
    """
    Seed atoms of residue ``i`` on a right-handed helix.

    P sits at radius 8.9 Å; C1' sits between consecutive phosphates, about
    5.5 Å from its own P and 4.7 Å from the next one, with the base pointing
    toward the helix axis.
    """
    phi = TWIST * i
    z = RISE * i
    c1_phi = phi + TWIST / 2
    return {
        "P": _cyl(8.9, phi, z),
        "C1'": _cyl(4.54, c1_phi, z + 2.905),
        "N9": _cyl(3.07, c1_phi, z + 2.905),
        "C4": _cyl(2.07, c1_phi, z + 3.805),
    }


# ---------------------------------------------------------------------------
# Shared Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def seed_atoms():
    """Seed atoms of the first three helix residues."""
    return [helix_seed_atoms(i) for i in range(3)]


@pytest.fixture
def make_chain():
    """Factory for a manually connected seed chain of ``n`` residues."""

    def make(n=3, chain_id="A"):
        chain = Chain(chain_id, pseudoatom=True, manual_connect=True)
        for i in range(n):
            chain.add_residue(Residue(i + 1, "A", helix_seed_atoms(i)))
        return chain

    return make


@pytest.fixture
def fast_config():
    """Configuration with few restarts and a low iteration cap."""
    return RCraneConfig(
        name="test",
        verbose=False,
        log_file=False,
        seed=5,
        max_restarts=1,
        max_iterations=300,
    )


@pytest.fixture
def built_trio(seed_atoms):
    """
    Initial (unrefined) coordinates for three consecutive nucleotides.

    Returns ``(prev, cur, nxt)`` built with rotamer 1a for both suites.
    """
    from rcrane.builder import NucleotideBuilder

    builder = NucleotideBuilder()
    prev, cur = builder.build_nt("1a", seed_atoms[0], seed_atoms[1])
    cur, nxt = builder.build_nt("1a", cur, seed_atoms[2])
    return prev, cur, nxt


@pytest.fixture
def helix_atoms():
    """The :func:`helix_seed_atoms` factory."""
    return helix_seed_atoms
