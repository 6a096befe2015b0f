# rcrane/errors.py
"""
Exception types raised by RCrane.

All errors derive from :class:`RCraneError` so callers can catch the whole
family at once. Where a more specific built-in meaning applies (a missing key,
a bad value) the error also derives from that built-in.
"""

from __future__ import annotations


class RCraneError(RuntimeError):
    """Base class for RCrane failures."""

    pass


class MissingAtomError(RCraneError, KeyError):
    """
    A geometric calculation needs an atom that the AtomSet does not contain.

    Residue and suite accessors catch this and report the value as unavailable.
    """

    def __init__(self, quantity: str, atom: str | None = None):
        self.quantity = quantity
        self.atom = atom
        msg = f"Missing atom for calculating {quantity}"
        if atom is not None:
            msg += f" ({atom})"
        super().__init__(msg)

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return self.args[0]


class RotamerStringError(RCraneError, ValueError):
    """A user-supplied rotamer string cannot be used for this structure."""

    pass


class ZeroProbabilityError(RCraneError, ValueError):
    """Emission probabilities for a suite are all zero or not valid numbers."""

    pass


class DegenerateGeometryError(RCraneError):
    """A rotation axis or bond vector has zero length."""

    pass
