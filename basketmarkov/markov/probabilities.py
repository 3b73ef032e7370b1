from __future__ import annotations
from dataclasses import dataclass

import numpy as np

from basketmarkov.markov.transitions import TransitionCounts


@dataclass(frozen=True)
class TransitionProbabilities:
    """Six float arrays aligned with ``TransitionCounts``; NaN marks undefined."""

    p0: np.ndarray
    p1: np.ndarray
    p00: np.ndarray
    p01: np.ndarray
    p10: np.ndarray
    p11: np.ndarray

    def as_dict(self) -> dict:
        return {
            "p0": self.p0, "p1": self.p1,
            "p00": self.p00, "p01": self.p01,
            "p10": self.p10, "p11": self.p11,
        }


def estimate_probabilities(counts: TransitionCounts, symmetric: bool = False) -> TransitionProbabilities:
    """
    Turn raw counts into frequency ratios.

    When ``n1 == 0`` both ``p10`` and ``p11`` are 0. When ``n0 == 0`` the
    ``p01``/``p00`` ratios stay NaN unless ``symmetric`` is set, in which case
    they are zeroed the same way. ``p0``/``p1`` are NaN for a single-order
    history.
    """
    n1 = counts.n1.astype(np.float64)
    n0 = counts.n0.astype(np.float64)

    with np.errstate(divide="ignore", invalid="ignore"):
        p1 = n1 / (n1 + n0)
        p10 = np.where(n1 > 0, counts.n10 / n1, 0.0)
        p11 = np.where(n1 > 0, counts.n11 / n1, 0.0)
        p01 = counts.n01 / n0
        p00 = counts.n00 / n0

    if symmetric:
        p01 = np.where(n0 > 0, p01, 0.0)
        p00 = np.where(n0 > 0, p00, 0.0)

    return TransitionProbabilities(p0=1.0 - p1, p1=p1, p00=p00, p01=p01, p10=p10, p11=p11)
