# rcrane/catalog.py
"""
Rotamer catalog.

Each backbone rotamer (a two-character suite conformer code) is bound to the
sugar puckers at the start and the end of its suite: ``3`` for C3'-endo and
``2`` for C2'-endo. The table is fixed; its order is the catalog iteration
order used wherever ties must be broken deterministically.

Examples
--------
>>> from rcrane.catalog import PUCKERS, start_pucker, end_pucker
>>> PUCKERS["1b"]
(3, 2)
>>> end_pucker("1a") == start_pucker("1b")
True
"""

from __future__ import annotations

from collections.abc import Sequence
from types import MappingProxyType
from typing import Literal, TypeAlias

from rcrane.errors import RotamerStringError

Pucker: TypeAlias = Literal[2, 3]

C3_ENDO: Pucker = 3
C2_ENDO: Pucker = 2

_PUCKER_TABLE: list[tuple[str, tuple[int, int]]] = [
    ("1a", (3, 3)),
    ("1m", (3, 3)),
    ("1L", (3, 3)),
    ("&a", (3, 3)),
    ("7a", (3, 3)),
    ("3a", (3, 3)),
    ("9a", (3, 3)),
    ("1g", (3, 3)),
    ("7d", (3, 3)),
    ("3d", (3, 3)),
    ("5d", (3, 3)),
    ("1e", (3, 3)),
    ("1c", (3, 3)),
    ("1f", (3, 3)),
    ("5j", (3, 3)),
    ("1b", (3, 2)),
    ("1[", (3, 2)),
    ("3b", (3, 2)),
    ("1z", (3, 2)),
    ("5z", (3, 2)),
    ("7p", (3, 2)),
    ("1t", (3, 2)),
    ("5q", (3, 2)),
    ("1o", (3, 2)),
    ("7r", (3, 2)),
    ("2a", (2, 3)),
    ("4a", (2, 3)),
    ("0a", (2, 3)),
    ("#a", (2, 3)),
    ("4g", (2, 3)),
    ("6g", (2, 3)),
    ("8d", (2, 3)),
    ("4d", (2, 3)),
    ("6d", (2, 3)),
    ("2h", (2, 3)),
    ("4n", (2, 3)),
    ("0i", (2, 3)),
    ("6n", (2, 3)),
    ("6j", (2, 3)),
    ("2[", (2, 2)),
    ("4b", (2, 2)),
    ("0b", (2, 2)),
    ("4p", (2, 2)),
    ("6p", (2, 2)),
    ("4s", (2, 2)),
    ("2o", (2, 2)),
    ("5n", (3, 3)),
    ("5p", (3, 2)),
    ("5r", (3, 2)),
    ("2g", (2, 3)),
    ("0k", (2, 3)),
    ("2z", (2, 2)),
    ("2u", (2, 2)),
]

# Read-only view: rotamer -> (start pucker, end pucker)
PUCKERS = MappingProxyType(dict(_PUCKER_TABLE))

# Catalog iteration order
ROTAMERS: tuple[str, ...] = tuple(rot for rot, _ in _PUCKER_TABLE)


def is_rotamer(rot: str) -> bool:
    return rot in PUCKERS


def start_pucker(rot: str) -> int:
    """Sugar pucker at the 5' end of a suite in rotamer ``rot``."""
    return PUCKERS[rot][0]


def end_pucker(rot: str) -> int:
    """Sugar pucker at the 3' end of a suite in rotamer ``rot``."""
    return PUCKERS[rot][1]


def compatible(prev_rot: str, cur_rot: str) -> bool:
    """Whether ``cur_rot`` may follow ``prev_rot`` across a connected junction."""
    return end_pucker(prev_rot) == start_pucker(cur_rot)


def split_rotamer_string(text: str) -> list[str]:
    """
    Split a rotamer string into two-character codes.

    Spaces are ignored, so ``"1a 1a1b"`` and ``"1a1a1b"`` are equivalent.

    Raises
    ------
    RotamerStringError
        If the string has an odd number of non-space characters.
    """
    packed = text.replace(" ", "")
    if len(packed) % 2:
        raise RotamerStringError(
            f"Rotamer string has an odd number of characters: {text!r}"
        )
    return [packed[i : i + 2] for i in range(0, len(packed), 2)]


def validate_rotamer_path(
    path: Sequence[str],
    connected: Sequence[bool],
    suite_names: Sequence[str] | None = None,
) -> None:
    """
    Check a user-supplied rotamer path before any construction.

    Parameters
    ----------
    path : Sequence[str]
        One rotamer per suite, in chain order.
    connected : Sequence[bool]
        ``connected[i]`` is True when suite ``i`` is connected to suite ``i-1``.
        ``connected[0]`` is ignored.
    suite_names : Sequence[str], optional
        Labels used in error messages (e.g. ``"12-13"``).

    Raises
    ------
    RotamerStringError
        On unknown rotamer codes, a length that differs from the number of
        suites, or a pucker conflict at a connected junction.
    """
    invalid = [rot for rot in path if rot not in PUCKERS]
    if invalid:
        raise RotamerStringError(
            "Specified rotamer string contains invalid rotamers: " + ", ".join(invalid)
        )

    if len(path) != len(connected):
        raise RotamerStringError(
            "Specified rotamer string is not appropriate length. The input "
            f"contains {len(connected)} suites and the rotamer string contains "
            f"{len(path)} rotamers."
        )

    names = list(suite_names) if suite_names is not None else [
        str(i) for i in range(len(path))
    ]
    for i in range(1, len(path)):
        if connected[i] and not compatible(path[i - 1], path[i]):
            raise RotamerStringError(
                "Specified rotamer string contains conflicting puckers. Suite "
                f"{names[i - 1]} ({path[i - 1]}) ends with a "
                f"C{end_pucker(path[i - 1])}'-endo pucker and suite {names[i]} "
                f"({path[i]}) starts with a C{start_pucker(path[i])}'-endo pucker."
            )
