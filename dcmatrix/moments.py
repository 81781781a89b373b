"""
Per-group moment summaries for the moment-matching independence tests.

Under independence the statistic ``T = n * dcov2_V`` behaves like a weighted
sum of chi-square variables whose weights are products of the eigenvalues of
the two groups' centred distance kernels. Its second moment and skewness
therefore factor into one term per group.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .estimators import BiasCorrectedEstimator
from .summaries.base import DistanceSummary

_U_ESTIMATOR = BiasCorrectedEstimator()


@dataclass(frozen=True)
class Moments:
    """``vc``: factors of ``E[T^2]`` (``sum(vc_X * vc_Y) / n^10``); ``skw``: skewness factor."""

    vc: np.ndarray
    skw: Optional[float] = None


def double_centre(dist: np.ndarray) -> np.ndarray:
    row = dist.mean(axis=1)
    col = dist.mean(axis=0)
    return dist - row[:, None] - col[None, :] + dist.mean()


def kernel_skewness(dist: np.ndarray) -> float:
    """``8^(1/4) tr(A^3)/n^3 / (tr(A^2)/n^2)^(3/2)`` for the double-centred matrix A."""
    n = dist.shape[0]
    a = double_centre(dist)
    tr2 = float(np.sum(a * a)) / n ** 2
    tr3 = float(np.sum(a * (a @ a))) / n ** 3
    if not tr2 > 0:
        return math.nan
    return 8.0 ** 0.25 * tr3 / tr2 ** 1.5


def calc_moments(summary: DistanceSummary, with_skewness: bool = False) -> Moments:
    """Moment summary of one group on its summary's rows.

    The skewness factor needs the full distance matrix, so ``with_skewness``
    requires a summary produced by the standard algorithm.
    """
    n = summary.ncc
    if n < 4:
        return Moments(vc=np.full(2, math.nan), skw=math.nan if with_skewness else None)
    dvar = _U_ESTIMATOR.dvar(summary)
    vc = np.array(
        [
            summary.adotdot ** 2 * n ** 2 / (n - 1),
            math.sqrt(2.0) * float(n) ** 5 * dvar,
        ]
    )
    skw = None
    if with_skewness:
        if summary.dist is None:
            raise ValueError("Skewness needs the full distance matrix (algorithm='standard')")
        skw = kernel_skewness(summary.dist)
    return Moments(vc=vc, skw=skw)


__all__ = ["Moments", "calc_moments", "double_centre", "kernel_skewness"]
