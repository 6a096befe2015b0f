# rcrane/decoder.py
"""
rcrane.decoder
==============

Viterbi decoding of the most likely rotamer sequence for a chain.

Every suite supplies a probability per rotamer (the emission). Between two
connected suites the end pucker of the first rotamer must equal the start
pucker of the second (the transition is 1 when it does, 0 when it does not);
across a chain break every transition is allowed. Scores are kept in log space,
with :data:`NEG_INF` standing in for ``ln(0)``.

Examples
--------
>>> from rcrane.decoder import rotamer_hmm
>>> probs = [{"1a": 0.6, "1b": 0.4}, {"1a": 0.1, "2a": 0.9}]
>>> rotamer_hmm(probs, [True, True])
['1b', '2a']
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence

import numpy as np

from rcrane.catalog import PUCKERS, ROTAMERS, end_pucker, start_pucker
from rcrane.errors import ZeroProbabilityError

logger = logging.getLogger(__name__)

NEG_INF = -999999999.0  # stand-in for ln(0)


def safe_log(value: float) -> float:
    """Natural log with ``safe_log(0) == NEG_INF``."""
    if value == 0:
        return NEG_INF
    return math.log(value)


def transition_log_prob(prev_rot: str, cur_rot: str, connected: bool = True) -> float:
    """
    Log transition probability between consecutive suites.

    Returns 0 when the suites are not connected or the puckers agree, and
    :data:`NEG_INF` otherwise.
    """
    if not connected:
        return 0.0
    if end_pucker(prev_rot) == start_pucker(cur_rot):
        return 0.0
    return NEG_INF


def _transition_matrix(rotamers: Sequence[str]) -> np.ndarray:
    """``T[i, j]`` = log transition from ``rotamers[i]`` to ``rotamers[j]`` (connected)."""
    ends = np.array([end_pucker(r) for r in rotamers])
    starts = np.array([start_pucker(r) for r in rotamers])
    return np.where(ends[:, None] == starts[None, :], 0.0, NEG_INF)


def _emission_row(probs: Mapping[str, float], index: int) -> np.ndarray:
    values = np.array([float(probs.get(rot, 0.0)) for rot in ROTAMERS])
    if np.any(np.isnan(values)) or np.any(values < 0):
        raise ZeroProbabilityError(
            f"Suite {index} has negative or undefined rotamer probabilities"
        )
    if not np.any(values > 0):
        raise ZeroProbabilityError(f"All rotamer probabilities are zero for suite {index}")
    unknown = [rot for rot in probs if rot not in PUCKERS]
    if unknown:
        logger.debug("Ignoring unknown rotamers for suite %d: %s", index, ", ".join(unknown))
    return np.array([safe_log(v) for v in values])


def normalize_probabilities(probs: Mapping[str, float]) -> dict[str, float]:
    """
    Rescale a rotamer -> probability mapping so it sums to one.

    Raises
    ------
    ZeroProbabilityError
        If the probabilities sum to zero.
    """
    total = float(sum(probs.values()))
    if total == 0 or math.isnan(total):
        raise ZeroProbabilityError("Cannot normalize probabilities that sum to zero")
    return {rot: float(p) / total for rot, p in probs.items()}


def rotamer_hmm(
    probabilities: Sequence[Mapping[str, float]],
    connected: Sequence[bool] | None = None,
) -> list[str]:
    """
    Most likely rotamer for every suite of a chain.

    Parameters
    ----------
    probabilities : Sequence[Mapping[str, float]]
        One mapping per suite, in chain order. Rotamers absent from a mapping
        have probability zero.
    connected : Sequence[bool], optional
        ``connected[i]`` is True when suite ``i`` is connected to suite
        ``i-1``; ``connected[0]`` is ignored. Defaults to all connected.

    Returns
    -------
    list[str]
        The decoded path. Ties go to the rotamer that comes first in catalog
        order.

    Raises
    ------
    ZeroProbabilityError
        If a suite has no rotamer with a positive probability.
    """
    n = len(probabilities)
    if n == 0:
        return []
    if connected is None:
        connected = [True] * n
    if len(connected) != n:
        raise ValueError(
            f"Got {len(connected)} connectivity flags for {n} suites"
        )

    emissions = np.vstack([_emission_row(p, i) for i, p in enumerate(probabilities)])
    trans = _transition_matrix(ROTAMERS)
    n_rot = len(ROTAMERS)

    scores = np.empty((n, n_rot))
    back = np.zeros((n, n_rot), dtype=int)
    scores[0] = emissions[0]
    for t in range(1, n):
        if connected[t]:
            cand = scores[t - 1][:, None] + trans
        else:
            cand = np.repeat(scores[t - 1][:, None], n_rot, axis=1)
        # argmax returns the first maximum, i.e. catalog order on ties
        back[t] = np.argmax(cand, axis=0)
        scores[t] = cand[back[t], np.arange(n_rot)] + emissions[t]

    path_idx = [int(np.argmax(scores[-1]))]
    for t in range(n - 1, 0, -1):
        path_idx.append(int(back[t, path_idx[-1]]))
    path_idx.reverse()
    return [ROTAMERS[i] for i in path_idx]


def score_path(
    path: Sequence[str],
    probabilities: Sequence[Mapping[str, float]],
    connected: Sequence[bool] | None = None,
) -> float:
    """Log score of a given path under the same model as :func:`rotamer_hmm`."""
    if connected is None:
        connected = [True] * len(path)
    total = 0.0
    for i, rot in enumerate(path):
        total += safe_log(float(probabilities[i].get(rot, 0.0)))
        if i:
            total += transition_log_prob(path[i - 1], rot, connected[i])
    return total
