# rcrane/dihedrals.py
"""
Per-rotamer backbone torsion statistics.

Every rotamer has a mean and a standard deviation for each of the seven
torsions spanning its suite: the previous residue's delta, epsilon, zeta,
alpha, beta, gamma and the current residue's delta. The table is read once
with pandas and exposed as immutable :class:`RotamerTorsionStats` records.

The bundled table ``rcrane/data/dihedData.csv`` has a header row naming the
columns::

    rotamer, delta_prev, epsilon, zeta, alpha, beta, gamma, delta,
    delta_prev_sd, epsilon_sd, zeta_sd, alpha_sd, beta_sd, gamma_sd, delta_sd

Only the presence of these columns is checked.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType

import pandas as pd

logger = logging.getLogger(__name__)

TORSIONS: tuple[str, ...] = (
    "delta_prev",
    "epsilon",
    "zeta",
    "alpha",
    "beta",
    "gamma",
    "delta",
)

COLUMNS: tuple[str, ...] = (
    ("rotamer",) + TORSIONS + tuple(f"{name}_sd" for name in TORSIONS)
)

DEFAULT_STATS_PATH = os.path.join(os.path.dirname(__file__), "data", "dihedData.csv")


@dataclass(frozen=True)
class RotamerTorsionStats:
    """
    Torsion means and standard deviations (degrees) for one rotamer.

    Attributes
    ----------
    rotamer : str
        Rotamer code.
    delta_prev, epsilon, zeta, alpha, beta, gamma, delta : float
        Mean torsions in suite order.
    delta_prev_sd, epsilon_sd, zeta_sd, alpha_sd, beta_sd, gamma_sd, delta_sd : float
        Standard deviations of the same torsions.
    """

    rotamer: str
    delta_prev: float
    epsilon: float
    zeta: float
    alpha: float
    beta: float
    gamma: float
    delta: float
    delta_prev_sd: float
    epsilon_sd: float
    zeta_sd: float
    alpha_sd: float
    beta_sd: float
    gamma_sd: float
    delta_sd: float

    def mean(self, torsion: str) -> float:
        return getattr(self, torsion)

    def sd(self, torsion: str) -> float:
        return getattr(self, f"{torsion}_sd")


def _read_stats_table(path: str) -> pd.DataFrame:
    """Read the statistics CSV and check its columns."""
    df = pd.read_csv(path, dtype={"rotamer": str}, skipinitialspace=True)
    missing = [c for c in COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(
            f"Rotamer statistics table {path} is missing columns: {', '.join(missing)}"
        )
    return df


def load_torsion_stats(path: str | None = None) -> Mapping[str, RotamerTorsionStats]:
    """
    Load per-rotamer torsion statistics.

    Parameters
    ----------
    path : str, optional
        CSV file to read. Defaults to the bundled table.

    Returns
    -------
    Mapping[str, RotamerTorsionStats]
        Rotamer code -> statistics, in file order.

    Notes
    -----
    Results are cached per path; the returned records are immutable.
    """
    return _load_cached(os.path.abspath(path or DEFAULT_STATS_PATH))


@lru_cache(maxsize=None)
def _load_cached(path: str) -> Mapping[str, RotamerTorsionStats]:
    df = _read_stats_table(path)
    stats: dict[str, RotamerTorsionStats] = {}
    for row in df.itertuples(index=False):
        record = row._asdict()
        rotamer = str(record["rotamer"]).strip()
        values = {name: float(record[name]) for name in COLUMNS[1:]}
        stats[rotamer] = RotamerTorsionStats(rotamer=rotamer, **values)
    logger.debug("Loaded torsion statistics for %d rotamers from %s", len(stats), path)
    return MappingProxyType(stats)
