"""
Command-line entry point.

Example::

    rcrane seeds.pdb --rotamers "1a 1a 1b" -o built.pdb --seed 7
    rcrane seeds.pdb --probs suite_probs.csv
"""

from __future__ import annotations

import argparse

from rcrane.config import RCraneConfig
from rcrane.errors import RCraneError
from rcrane.pdb_io import read_pdb, read_probabilities
from rcrane.run import run_rcrane


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rcrane",
        description="RCrane - build an RNA backbone from phosphate, C1' and base coordinates",
    )
    parser.add_argument("input", help="PDB file with P, C1' and base atoms.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "-r", "--rotamers", type=str, help="Rotamer for every suite, e.g. '1a1a1b'."
    )
    source.add_argument(
        "-p", "--probs", type=str, help="CSV of per-suite rotamer probabilities."
    )
    parser.add_argument("-n", "--name", type=str, default="rcrane", help="Job name.")
    parser.add_argument(
        "-o", "--output", type=str, default=None, help="Output PDB (default: NAME_RESULT.pdb)."
    )
    parser.add_argument("-s", "--seed", type=int, default=None, help="Random seed.")
    parser.add_argument("-q", "--quiet", action="store_true", help="No console logging.")
    parser.add_argument(
        "--no-log-file", action="store_true", help="Do not write NAME_output.log."
    )
    parser.add_argument(
        "--full-atom",
        action="store_true",
        help="Read every atom and decide connectivity from O3'-P distances.",
    )
    parser.add_argument("--stats", type=str, default=None, help="Rotamer torsion statistics CSV.")
    parser.add_argument("--c3p-template", type=str, default=None, help="C3'-endo sugar PDB.")
    parser.add_argument("--c2p-template", type=str, default=None, help="C2'-endo sugar PDB.")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = RCraneConfig(
        name=args.name,
        verbose=not args.quiet,
        log_file=not args.no_log_file,
        seed=args.seed,
        rotamer_stats_path=args.stats,
        c3p_template=args.c3p_template,
        c2p_template=args.c2p_template,
    )

    try:
        chains = read_pdb(args.input, pseudoatom=not args.full_atom)
        probabilities = read_probabilities(args.probs) if args.probs else None
        result = run_rcrane(
            config, chains, probabilities=probabilities, rotamer_string=args.rotamers
        )
    except (RCraneError, ValueError) as err:
        parser.exit(1, f"{parser.prog}: error: {err}\n")

    result.save_pdb(args.output or f"{config.name}_RESULT.pdb")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
