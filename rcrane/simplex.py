# rcrane/simplex.py
"""
rcrane.simplex
==============

Downhill simplex (Nelder-Mead) minimization.

This is the classic ``amoeba`` routine with an incrementally maintained
centroid: after a single-vertex replacement the centroid is shifted instead of
recomputed, and it is recomputed in full only after a shrink.

Examples
--------
>>> from rcrane.simplex import minimise_nd
>>> res = minimise_nd([3.0, -2.0], [1.0, 1.0], lambda x: (x ** 2).sum(), ftol=1e-10)
>>> bool(abs(res.point).max() < 1e-3)
True
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

ALPHA = 1.0  # reflection
BETA = 0.5  # contraction
GAMMA = 2.0  # expansion
TINY = 1e-16

DEFAULT_FTOL = 1e-6
DEFAULT_ITMAX = 200

Objective = Callable[[np.ndarray], float]


@dataclass
class SimplexResult:
    """
    Outcome of one simplex run.

    Attributes
    ----------
    point : numpy.ndarray
        Best vertex found.
    value : float
        Objective value at ``point``.
    iterations : int
        Number of iterations performed.
    converged : bool
        False when the run stopped on the iteration cap.
    """

    point: np.ndarray
    value: float
    iterations: int
    converged: bool


def construct_vertices(guess: Sequence[float], scales: Sequence[float]) -> np.ndarray:
    """Vertices ``guess`` and ``guess + scales[i] * e_i``, shape ``(n+1, n)``."""
    guess = np.asarray(guess, dtype=float)
    p = np.tile(guess, (len(guess) + 1, 1))
    for i, s in enumerate(scales):
        p[i + 1, i] += s
    return p


def _find_markers(y: np.ndarray) -> tuple[int, int, int]:
    """Indices of the lowest, second highest and highest vertex."""
    ilo = 0
    if y[0] > y[1]:
        ihi, inhi = 0, 1
    else:
        ihi, inhi = 1, 0
    for i in range(len(y)):
        if y[i] < y[ilo]:
            ilo = i
        if y[i] > y[ihi]:
            inhi = ihi
            ihi = i
        elif y[i] > y[inhi] and ihi != i:
            inhi = i
    return ilo, inhi, ihi


def _centroid(p: np.ndarray, ihi: int) -> np.ndarray:
    n = p.shape[1]
    return (p.sum(axis=0) - p[ihi]) / n


def _reflection(p1: np.ndarray, p2: np.ndarray, scale: float) -> np.ndarray:
    return p1 + scale * (p1 - p2)


def amoeba(
    p: np.ndarray,
    y: np.ndarray,
    func: Objective,
    ftol: float = DEFAULT_FTOL,
    itmax: int = DEFAULT_ITMAX,
) -> SimplexResult:
    """
    Run the simplex from given vertices.

    Parameters
    ----------
    p : numpy.ndarray, shape (n+1, n)
        Initial vertices (modified in place).
    y : numpy.ndarray, shape (n+1,)
        Objective values at the vertices (modified in place).
    func : callable
        Objective taking a parameter vector.
    ftol : float
        Stop when ``2|y_hi - y_lo| / (|y_hi| + |y_lo| + TINY) < ftol``.
    itmax : int
        Iteration cap. Running past it logs a warning.

    Returns
    -------
    SimplexResult
    """
    n_vertices = p.shape[0]
    iterations = 0
    recalc = True
    ihi_o = 0
    pbar = None
    converged = True

    while True:
        ilo, inhi, ihi = _find_markers(y)

        rtol = 2 * abs(y[ihi] - y[ilo]) / (abs(y[ihi]) + abs(y[ilo]) + TINY)
        if rtol < ftol:
            break
        if iterations > itmax:
            logger.warning("Simplex exceeded maximum iterations (%d)", itmax)
            converged = False
            break
        iterations += 1

        if recalc:
            pbar = _centroid(p, ihi)
        elif ihi_o != ihi:
            pbar += (p[ihi_o] - p[ihi]) / p.shape[1]
        recalc = False

        pr = _reflection(pbar, p[ihi], ALPHA)
        ypr = func(pr)

        if ypr < y[ilo]:
            # try going further in the same direction
            pe = _reflection(pbar, pr, -GAMMA)
            ype = func(pe)
            if ype < y[ilo]:
                p[ihi], y[ihi] = pe, ype
            else:
                p[ihi], y[ihi] = pr, ypr
        elif ypr >= y[inhi]:
            if ypr < y[ihi]:
                p[ihi], y[ihi] = pr, ypr
            pc = _reflection(pbar, p[ihi], -BETA)
            ypc = func(pc)
            if ypc < y[ihi]:
                p[ihi], y[ihi] = pc, ypc
            else:
                # shrink toward the best vertex
                for i in range(n_vertices):
                    if i != ilo:
                        p[i] = _reflection(p[ilo], p[i], -BETA)
                        y[i] = func(p[i])
                recalc = True
        else:
            p[ihi], y[ihi] = pr, ypr

        ihi_o = ihi

    return SimplexResult(p[ilo].copy(), float(y[ilo]), iterations, converged)


def minimise_nd(
    guess: Sequence[float],
    scales: Sequence[float],
    func: Objective,
    ftol: float = DEFAULT_FTOL,
    itmax: int = DEFAULT_ITMAX,
) -> SimplexResult:
    """
    Minimize ``func`` starting from ``guess``.

    Parameters
    ----------
    guess : Sequence[float]
        Starting point.
    scales : Sequence[float]
        Initial step along each coordinate (sign matters).
    func : callable
        Objective taking a ``numpy.ndarray``.
    ftol, itmax
        See :func:`amoeba`.
    """
    p = construct_vertices(guess, scales)
    y = np.array([func(v) for v in p], dtype=float)
    return amoeba(p, y, func, ftol=ftol, itmax=itmax)
