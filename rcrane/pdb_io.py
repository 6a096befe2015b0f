"""
PDB input and output for RCrane.

- Fixed-column parsing of ATOM/HETATM records into a pandas DataFrame
  (short lines are padded to 80 columns), then grouping into
  :class:`~rcrane.chain.Chain` objects in order of first appearance.
- Atom names are normalized to PDB 3.0: ``*`` becomes ``'`` and
  ``O1P``/``O2P`` become ``OP1``/``OP2``.
- Pseudo-atom mode keeps only P, C1' and base atoms.
- ``BREAK`` records cut the connection between the residues on either side.
- Strict writer: exact PDB column widths, %8.3f XYZ, one TER per chain and a
  trailing END.

Per-suite rotamer probabilities are read from CSV with :func:`read_probabilities`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd

from rcrane.chain import Chain, Residue

logger = logging.getLogger(__name__)

# --------------------------- Constants & Helpers ---------------------------

PDB_ITEMS: list[str] = [
    "Records",  # "ATOM", "HETATM", "TER", "BREAK"
    "AtomSeq",  # serial (string)
    "AtomTyp",  # atom name
    "Alt_Loc",  # altloc flag
    "ResName",  # residue name
    "ChainID",  # chain identifier
    "Seq_Num",  # residue sequence number (string)
    "InsCode",  # insertion code
    "Coord_X",  # x
    "Coord_Y",  # y
    "Coord_Z",  # z
    "SD_Occp",  # occupancy
    "SD_Temp",  # B-factor
    "Element",  # element symbol
    "Charges",  # charge
]

BASE_ATOMS: tuple[str, ...] = (
    "N1", "N2", "O2", "C2", "N3", "N4", "O4", "C4", "C5", "N6", "O6", "C6", "N7", "C8", "N9",
)

# atoms read in pseudo-atom mode
PSEUDO_ATOMS: frozenset[str] = frozenset(BASE_ATOMS + ("C1'", "P"))

# output order within a residue
PHOSPHATE_ATOMS: tuple[str, ...] = ("P", "OP1", "OP2", "O5'", "C5'")
SUGAR_ATOMS: tuple[str, ...] = ("C4'", "O4'", "C1'", "C2'", "O2'", "C3'")
WRITE_ORDER: tuple[str, ...] = PHOSPHATE_ATOMS + SUGAR_ATOMS + BASE_ATOMS + ("O3'",)

_ATOM_RENAMES = {"O1P": "OP1", "O2P": "OP2"}


def _pad80(s: str) -> str:
    """Return a string of at least 80 characters (PDB width)."""
    return (s.rstrip("\n") + " " * 80)[:80]


def normalize_atom_name(name: str) -> str:
    """PDB 3.0 atom name: ``"C1*"`` -> ``"C1'"``, ``"O1P"`` -> ``"OP1"``."""
    name = name.strip().replace("*", "'")
    return _ATOM_RENAMES.get(name, name)


# --------------------------- Parsing ---------------------------


def pdb_structure(line: str) -> list[str]:
    """Parse one PDB line (ATOM/HETATM/TER/BREAK) into fixed fields."""
    s = _pad80(line)

    return [
        s[0:6].strip(),  # 0 Records
        s[6:11].strip(),  # 1 AtomSeq
        s[12:16].strip(),  # 2 AtomTyp
        s[16],  # 3 Alt_Loc
        s[17:20].strip(),  # 4 ResName
        s[21],  # 5 ChainID
        s[22:26].strip(),  # 6 Seq_Num
        s[26],  # 7 InsCode
        s[30:38].strip(),  # 8 Coord_X
        s[38:46].strip(),  # 9 Coord_Y
        s[46:54].strip(),  # 10 Coord_Z
        s[54:60].strip(),  # 11 SD_Occp
        s[60:66].strip(),  # 12 SD_Temp
        s[76:78].strip(),  # 13 Element
        s[78:80].strip(),  # 14 Charges
    ]


def _parse_pdb_lines(lines: Sequence[str]) -> pd.DataFrame:
    """Convert PDB file lines to a DataFrame with columns PDB_ITEMS."""
    data: list[list[str]] = []
    for line in lines:
        if line.startswith(("ATOM", "HETATM", "TER", "BREAK")):
            data.append(pdb_structure(line))
    df = pd.DataFrame(data, columns=PDB_ITEMS)
    for col in ("Coord_X", "Coord_Y", "Coord_Z"):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def read_pdb(
    path: str,
    pseudoatom: bool = False,
    manual_connect: bool | None = None,
) -> list[Chain]:
    """
    Read RNA coordinates from a PDB file.

    Parameters
    ----------
    path : str
        PDB file.
    pseudoatom : bool, default=False
        Keep only P, C1' and base atoms. Connectivity then uses the P-C1'
        distance.
    manual_connect : bool, optional
        Treat consecutive residues as connected unless a ``BREAK`` record
        separates them. Defaults to ``pseudoatom``.

    Returns
    -------
    list[Chain]
        Chains in order of first appearance.
    """
    if manual_connect is None:
        manual_connect = pseudoatom

    with open(path) as f:
        pdb_df = _parse_pdb_lines(f.readlines())

    chains: dict[str, Chain] = {}
    pending_break = False
    for row in pdb_df.itertuples(index=False):
        rec = row.Records.upper()
        if rec == "BREAK":
            pending_break = True
            continue
        if rec not in ("ATOM", "HETATM"):
            continue

        atom = normalize_atom_name(row.AtomTyp)
        if pseudoatom and atom not in PSEUDO_ATOMS:
            continue

        chain_id = row.ChainID
        if chain_id not in chains:
            chains[chain_id] = Chain(chain_id, pseudoatom=pseudoatom, manual_connect=manual_connect)
        chain = chains[chain_id]

        number = row.Seq_Num + row.InsCode.strip()
        if not chain.has_res(number):
            chain.add_residue(Residue(number, row.ResName, break_before=pending_break))
            pending_break = False
        res = chain.res(number)

        if atom in res.atoms:
            logger.warning(
                "Duplicate atom found: file %s, chain %s, residue %s (%s), atom %s",
                path, chain_id, number, row.ResName, atom,
            )
            continue
        res.atoms[atom] = np.array([row.Coord_X, row.Coord_Y, row.Coord_Z], dtype=float)

    logger.debug("Read %d chain(s) from %s", len(chains), path)
    return list(chains.values())


def read_probabilities(path: str) -> list[dict[str, float]]:
    """
    Read per-suite rotamer probabilities.

    The CSV has one row per suite in chain order, an optional ``suite`` label
    column and one column per rotamer code. Empty cells count as zero.

    Returns
    -------
    list[dict[str, float]]
        One rotamer -> probability mapping per suite.
    """
    df = pd.read_csv(path, dtype={"suite": str}, skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]
    probs = df.drop(columns=["suite"], errors="ignore").fillna(0.0).astype(float)
    return [dict(row) for row in probs.to_dict(orient="records")]


# --------------------------- Strict Writer ---------------------------


def _fmt_float(v: str | float | int, width: int, prec: int) -> str:
    """Right-align float to PDB width; blanks if missing/unparseable."""
    try:
        return f"{float(v):>{width}.{prec}f}"
    except (TypeError, ValueError):
        return " " * width


def _atom_field(atom: str) -> str:
    """
    PDB atom-name alignment:
      - If atom name is 4 chars, no leading space.
      - Else left pad one space so it sits in cols 13-16 correctly.
    """
    a = (atom or "").strip()
    if len(a) == 4:
        return f"{a:>4s}"
    return f" {a:<3s}"


def _format_atom_line(row: dict) -> str:
    return (
        f"{row['Records']:<6s}"
        f"{str(row['AtomSeq']):>5s}"
        " "
        f"{_atom_field(row['AtomTyp'])}"
        " "
        f"{row['ResName'][:3]:>3s}"
        " "
        f"{row['ChainID'][:1]:1s}"
        f"{row['Seq_Num']:>4s}"
        f"{row['InsCode'][:1]:1s}"
        "   "
        f"{_fmt_float(row['Coord_X'], 8, 3)}"
        f"{_fmt_float(row['Coord_Y'], 8, 3)}"
        f"{_fmt_float(row['Coord_Z'], 8, 3)}"
        f"{_fmt_float(row['SD_Occp'], 6, 2)}"
        f"{_fmt_float(row['SD_Temp'], 6, 2)}"
        f"{'':10s}"
        f"{row['Element'][:2]:>2s}"
        f"{'':2s}\n"
    )


def _format_ter_line(row: dict) -> str:
    """
    TER line fields:
      1-6 'TER', 7-11 serial, 18-20 resName, 22 chain, 23-26 resSeq, 27 iCode.
    """
    return (
        f"{'TER':<6s}"
        f"{str(row['AtomSeq']):>5s}"
        f"{'':6s}"
        f"{row['ResName'][:3]:>3s} "
        f"{row['ChainID'][:1]:1s}"
        f"{row['Seq_Num']:>4s}"
        f"{row['InsCode'][:1]:1s}\n"
    )


def _split_number(number: str) -> tuple[str, str]:
    """``"12A"`` -> ``("12", "A")``."""
    if number and not number[-1].isdigit():
        return number[:-1], number[-1]
    return number, " "


def chains_to_frame(chains: Sequence[Chain]) -> pd.DataFrame:
    """
    Tabulate chains as PDB records (columns PDB_ITEMS).

    Atoms are ordered phosphate, sugar, base, O3' within each residue; atoms
    outside that list are not written. Every chain ends with a TER record.
    """
    rows: list[dict] = []
    serial = 1
    for chain in chains:
        last = None
        for res in chain:
            seq, ins = _split_number(res.number)
            for name in WRITE_ORDER:
                pos = res.atoms.get(name)
                if pos is None:
                    continue
                last = {
                    "Records": "ATOM",
                    "AtomSeq": serial,
                    "AtomTyp": name,
                    "Alt_Loc": " ",
                    "ResName": res.name,
                    "ChainID": chain.id,
                    "Seq_Num": seq,
                    "InsCode": ins,
                    "Coord_X": float(pos[0]),
                    "Coord_Y": float(pos[1]),
                    "Coord_Z": float(pos[2]),
                    "SD_Occp": 1.0,
                    "SD_Temp": 0.0,
                    "Element": name[0],
                    "Charges": "",
                }
                rows.append(last)
                serial += 1
        if last is not None:
            rows.append(dict(last, Records="TER", AtomSeq=serial))
            serial += 1
    return pd.DataFrame(rows, columns=PDB_ITEMS)


def write_pdb(path: str, chains: Sequence[Chain]) -> None:
    """
    Write chains to strict PDB fixed-width format.

    Columns (PDB 3.3 style):
      1-6  Record name
      7-11 Atom serial number
      13-16 Atom name (special alignment; see _atom_field)
      18-20 resName
      22    chainID
      23-26 resSeq
      27    iCode
      31-54 X, Y, Z (8.3)
      55-60 occupancy (6.2)
      61-66 tempFactor (6.2)
      77-78 element
    """
    pdb_df = chains_to_frame(chains)
    with open(path, "w") as fw:
        for row in pdb_df.to_dict(orient="records"):
            if row["Records"] == "TER":
                fw.write(_format_ter_line(row))
            else:
                fw.write(_format_atom_line(row))
        fw.write("END\n")
    logger.debug("Wrote %d record(s) to %s", len(pdb_df), path)
