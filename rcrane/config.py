# rcrane/config.py
"""
Run configuration shared by the refiner and the pipeline driver.

:class:`RCraneConfig` is re-exported from :mod:`rcrane.run`.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RCraneConfig:
    """
    Configuration for an RCrane backbone build.

    Parameters
    ----------
    name : str, default="rcrane"
        Job name (used for the log file ``{name}_output.log``).
    verbose : bool, default=True
        Whether to log progress to the console.
    log_file : bool, default=True
        Whether to write the log file.
    seed : int or None, default=None
        Seed for the random step signs of the minimizer. ``None`` draws fresh
        entropy; the seed actually used is logged so a run can be repeated.
    syn_sugar_cutoff : float, default=200.0
        Objective value above which a syn sugar is tried as well.
    min_stop_ratio : float, default=0.999
        Restarts stop once ``new / previous`` objective value exceeds this.
    max_restarts : int, default=25
        Maximum number of simplex restarts per refinement.
    ftol : float, default=0.001
        Relative tolerance of each simplex run.
    max_iterations : int, default=5000
        Iteration cap of each simplex run.
    early_stop_value : float, default=0.1
        Objective value below which the syn and chain-start restart loops stop.
    rotamer_stats_path : str or None, default=None
        CSV of per-rotamer torsion statistics. ``None`` uses the bundled table.
    c3p_template, c2p_template : str or None, default=None
        PDB files with C3'-endo / C2'-endo sugars. ``None`` uses generated
        templates.

    Examples
    --------
    >>> config = RCraneConfig(name="test", seed=7, max_restarts=3)
    >>> config.syn_sugar_cutoff
    200.0
    """

    name: str = "rcrane"
    verbose: bool = True
    log_file: bool = True
    seed: int | None = None
    syn_sugar_cutoff: float = 200.0
    min_stop_ratio: float = 0.999
    max_restarts: int = 25
    ftol: float = 0.001
    max_iterations: int = 5000
    early_stop_value: float = 0.1
    rotamer_stats_path: str | None = None
    c3p_template: str | None = None
    c2p_template: str | None = None
