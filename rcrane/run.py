"""
rcrane.run
==========

Python API for building RNA backbones with RCrane.

Use :class:`RCraneConfig` to configure the run and :func:`run_rcrane` to
execute it on chains read with :func:`rcrane.pdb_io.read_pdb` (or projected
from OpenMM with :func:`rcrane.topology.chains_from_topology`).

Examples
--------
>>> from rcrane.pdb_io import read_pdb
>>> from rcrane.run import RCraneConfig, run_rcrane
>>> chains = read_pdb("phosphates_and_bases.pdb", pseudoatom=True)  # doctest: +SKIP
>>> config = RCraneConfig(name="my_rna", seed=11)
>>> result = run_rcrane(config, chains, rotamer_string="1a1a1a")  # doctest: +SKIP
>>> result.path  # doctest: +SKIP
['1a', '1a', '1a']
>>> result.save_pdb("my_rna_RESULT.pdb")  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np

from rcrane.builder import NucleotideBuilder
from rcrane.catalog import split_rotamer_string, validate_rotamer_path
from rcrane.chain import Chain
from rcrane.config import RCraneConfig
from rcrane.decoder import rotamer_hmm
from rcrane.dihedrals import RotamerTorsionStats, load_torsion_stats
from rcrane.errors import RotamerStringError
from rcrane.helpers import vec
from rcrane.phosphate import build_init_phos_oxy, build_phos_oxy
from rcrane.refine import full_nt_minimize, min_init_atoms
from rcrane.sugar import SugarBuilder

__all__ = ["RCraneConfig", "RCraneResult", "build_chain", "run_rcrane"]


@dataclass
class RCraneResult:
    """
    Result of an RCrane run.

    Attributes
    ----------
    path : list[str]
        Rotamer of every suite, all chains concatenated in order.
    scores : dict[str, float]
        Final objective value per refined nucleotide, keyed ``"chain:number"``.
    chains : list[Chain]
        The chains with their backbones built (modified in place).
    seed : int
        Seed of the random step signs; pass it back in the config to repeat
        the run.

    Examples
    --------
    >>> result.path
    ['1a', '1a']
    >>> result.save_pdb("output.pdb")
    """

    path: list[str]
    scores: dict[str, float] = field(default_factory=dict)
    chains: list[Chain] = field(default_factory=list)
    seed: int | None = None

    def save_pdb(self, path: str) -> str:
        """
        Save the built chains to a PDB file.

        Parameters
        ----------
        path : str
            Output file path.

        Returns
        -------
        str
            Path to the saved file.
        """
        from rcrane.pdb_io import write_pdb

        write_pdb(path, self.chains)
        return path

    def to_topology(self):
        """
        Project the built chains onto an OpenMM topology.

        Returns
        -------
        tuple[openmm.app.Topology, openmm.unit.Quantity]
            Topology and positions, ready for OpenMM.
        """
        from rcrane.topology import chains_to_topology

        return chains_to_topology(self.chains)


def _setup_logger(name: str, verbose: bool, log_file: bool = True) -> logging.Logger:
    """Set up logger for the run."""
    logger = logging.getLogger(f"rcrane.{name}")
    logger.setLevel(logging.INFO)
    if logger.hasHandlers():
        logger.handlers.clear()

    # File handler
    if log_file:
        file_handler = logging.FileHandler(f"{name}_output.log", mode="w")
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    # Console handler (if verbose)
    if verbose:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(console)

    return logger


def build_chain(
    chain: Chain,
    path: Sequence[str],
    config: RCraneConfig | None = None,
    stats: Mapping[str, RotamerTorsionStats] | None = None,
    sugar_builder: SugarBuilder | None = None,
    rng: np.random.Generator | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, float]:
    """
    Build and refine the backbone of one chain, suite by suite.

    Parameters
    ----------
    chain : Chain
        Chain with P, C1' and base coordinates. Its residues' atoms are
        replaced as the backbone is built.
    path : Sequence[str]
        One rotamer per suite of ``chain.suites()``.
    config : RCraneConfig, optional
        Refinement settings.
    stats : Mapping[str, RotamerTorsionStats], optional
        Torsion statistics. Defaults to ``config.rotamer_stats_path``.
    sugar_builder : SugarBuilder, optional
        Sugar templates. Defaults to the templates named in ``config``.
    rng : numpy.random.Generator, optional
        Source of the minimizer's random step signs.
    logger : logging.Logger, optional
        Progress logger.

    Returns
    -------
    dict[str, float]
        Final objective value per refined nucleotide, keyed by residue number.

    Raises
    ------
    RotamerStringError
        If ``path`` does not have one rotamer per suite.
    """
    config = config or RCraneConfig()
    rng = rng if rng is not None else np.random.default_rng(config.seed)
    stats = stats if stats is not None else load_torsion_stats(config.rotamer_stats_path)
    if sugar_builder is None:
        sugar_builder = SugarBuilder.from_pdb(config.c3p_template, config.c2p_template)
    log = logger or logging.getLogger(__name__)

    # deciding the suites fixes connectivity on the input coordinates
    suites = chain.suites()
    if len(path) != len(suites):
        raise RotamerStringError(
            f"Chain {chain.id.strip() or '(blank)'} has {len(suites)} suites "
            f"but {len(path)} rotamers were given"
        )

    builder = NucleotideBuilder(stats, sugar_builder)
    scores: dict[str, float] = {}
    next_built_phos_loc = None

    for i, suite in enumerate(suites):
        start, end = suite.starting_res, suite.ending_res
        after = end.next_res
        cur_rot = path[i]
        next_rot = path[i + 1] if i + 1 < len(path) else None
        log.info("Building nucleotide %s (suite %s, rotamer %s)", end.number, suite.full_number, cur_rot)

        built_init = False
        if not start.has("O4'"):
            start.atoms, end.atoms = builder.build_nt(cur_rot, start.atoms, end.atoms)
            built_init = True

        # where this suite's phosphate sat before the previous refinement moved it
        built_phos_loc = None if built_init else next_built_phos_loc
        if after is not None and after.has("P"):
            next_built_phos_loc = vec(after.atoms["P"])
        else:
            next_built_phos_loc = None

        if suite.connected_to_next() and next_rot is not None:
            end_atoms, after_atoms = builder.build_nt(next_rot, end.atoms, after.atoms)
            result = full_nt_minimize(
                start.atoms, end_atoms, after_atoms, cur_rot, next_rot, built_phos_loc,
                config=config, rng=rng, stats=stats, log=log,
            )
            after.atoms = result.nxt
        else:
            end_atoms = builder.build_last_nt(cur_rot, end.atoms)
            # a connected next residue without P has nothing to refine
            has_after_phos = end.connected_to_next() and after.has("P")
            after_atoms = after.atoms if has_after_phos else None
            result = full_nt_minimize(
                start.atoms, end_atoms, after_atoms, cur_rot, None, built_phos_loc,
                config=config, rng=rng, stats=stats, log=log,
            )
            if has_after_phos:
                after.atoms = build_init_phos_oxy(result.nxt, result.cur)

        start.atoms = result.prev
        end.atoms = result.cur
        scores[end.number] = result.value
        log.info("Nucleotide %s refined, objective %.3f", end.number, result.value)

        if built_init and start.has("P"):
            start.atoms, init_value = min_init_atoms(start.atoms, config=config, rng=rng)
            start.atoms = build_init_phos_oxy(start.atoms)
            log.info("Chain-start nucleotide %s refined, objective %.3f", start.number, init_value)

        end.atoms = build_phos_oxy(end.atoms, start.atoms)

    return scores


def _split_path(path: Sequence[str], counts: Sequence[int]) -> list[list[str]]:
    parts, pos = [], 0
    for n in counts:
        parts.append(list(path[pos : pos + n]))
        pos += n
    return parts


def run_rcrane(
    config: RCraneConfig,
    chains: Sequence[Chain],
    probabilities: Sequence[Mapping[str, float]] | None = None,
    rotamer_string: str | None = None,
) -> RCraneResult:
    """
    Decode (or take) a rotamer path and build the backbone of every chain.

    Parameters
    ----------
    config : RCraneConfig
        Configuration object with all parameters.
    chains : Sequence[Chain]
        Chains to build, modified in place.
    probabilities : Sequence[Mapping[str, float]], optional
        Rotamer probabilities for every suite of every chain, in chain order.
    rotamer_string : str, optional
        Two-character rotamer codes for every suite, e.g. ``"1a1a&a"``. Takes
        precedence over ``probabilities``.

    Returns
    -------
    RCraneResult
        Path, per-nucleotide scores and the built chains.

    Raises
    ------
    RotamerStringError
        If the rotamer string is malformed, has the wrong length or puts
        incompatible rotamers on connected suites. Raised before anything is
        built.
    ValueError
        If neither ``probabilities`` nor ``rotamer_string`` is given, or the
        number of probability rows does not match the number of suites.
    """
    logger = _setup_logger(config.name, config.verbose, config.log_file)

    seed = config.seed
    if seed is None:
        seed = int(np.random.SeedSequence().generate_state(1)[0])
    rng = np.random.default_rng(seed)

    logger.info("RCrane - RNA backbone construction")
    logger.info("Job: %s", config.name)
    logger.info("Random seed: %d", seed)

    chain_suites = [chain.suites() for chain in chains]
    counts = [len(s) for s in chain_suites]
    connected: list[bool] = []
    suite_names: list[str] = []
    for chain, suites in zip(chains, chain_suites):
        connected.extend(chain.suite_connectivity(suites))
        suite_names.extend(f"{chain.id.strip()}:{s.full_number}" for s in suites)
    logger.info("Found %d suites in %d chain(s)", sum(counts), len(chains))

    if rotamer_string is not None:
        path = split_rotamer_string(rotamer_string)
        validate_rotamer_path(path, connected, suite_names)
        logger.info("Using supplied rotamers: %s", " ".join(path))
    elif probabilities is not None:
        if len(probabilities) != sum(counts):
            raise ValueError(
                f"Got probabilities for {len(probabilities)} suites, structure has {sum(counts)}"
            )
        path = []
        for probs, conn in zip(_split_path(probabilities, counts), _split_path(connected, counts)):
            path.extend(rotamer_hmm(probs, conn))
        logger.info("Predicted rotamers: %s", " ".join(path))
    else:
        raise ValueError("Either probabilities or rotamer_string must be given")

    stats = load_torsion_stats(config.rotamer_stats_path)
    sugar_builder = SugarBuilder.from_pdb(config.c3p_template, config.c2p_template)

    scores: dict[str, float] = {}
    for chain, chain_path in zip(chains, _split_path(path, counts)):
        logger.info("Building chain %s", chain.id.strip() or "(blank)")
        chain_scores = build_chain(
            chain, chain_path, config, stats=stats, sugar_builder=sugar_builder,
            rng=rng, logger=logger,
        )
        scores.update({f"{chain.id.strip()}:{num}": val for num, val in chain_scores.items()})

    logger.info("Completed. Built %d nucleotides", len(scores))

    return RCraneResult(path=path, scores=scores, chains=list(chains), seed=seed)
