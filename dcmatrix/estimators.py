"""
Distance covariance estimators from sufficient statistics.

With ``aijbij = sum_ij a_ij b_ij``, ``Sab = sum_i a_i. b_i.`` and
``Tab = a.. b..`` over the raw distance matrices of two groups on n rows:

- bias corrected (U-statistic):
  ``aijbij/(n(n-3)) - 2 Sab/(n(n-2)(n-3)) + Tab/(n(n-1)(n-2)(n-3))``
- classical (V-statistic):
  ``aijbij/n^2 - 2 Sab/n^3 + Tab/n^4``
"""

from __future__ import annotations

import math

import numpy as np

from .summaries.base import DistanceSummary, PairwiseTerms


class DistanceCovarianceEstimator:
    """Converts sufficient statistics into dCov^2, dCov and dCor."""

    bias_corrected = False

    def dcov2(self, aijbij: float, sab: float, tab: float, n: int) -> float:
        raise NotImplementedError

    def dcov(self, dcov2: float) -> float:
        raise NotImplementedError

    def dcor(self, dcov2: float, dvar_x: float, dvar_y: float) -> float:
        """``dcov / (dvar_x dvar_y)^(1/4)``; NaN when the denominator is not positive."""
        denom = dvar_x * dvar_y
        if not denom > 0:
            return math.nan
        return self.dcov(dcov2) / math.sqrt(math.sqrt(denom))

    def pair_dcov2(self, terms: PairwiseTerms) -> float:
        return self.dcov2(terms.aijbij, terms.sab, terms.tab, terms.ncc)

    def dvar(self, summary: DistanceSummary) -> float:
        """Distance variance of one group (the group against itself)."""
        return self.dcov2(summary.aijaij, summary.saa, summary.adotdot ** 2, summary.ncc)


class BiasCorrectedEstimator(DistanceCovarianceEstimator):
    bias_corrected = True

    def dcov2(self, aijbij: float, sab: float, tab: float, n: int) -> float:
        if n < 4:
            return math.nan
        return (
            aijbij / n / (n - 3)
            - 2.0 * sab / n / (n - 2) / (n - 3)
            + tab / n / (n - 1) / (n - 2) / (n - 3)
        )

    def dcov(self, dcov2: float) -> float:
        # may be negative; keep the sign
        return math.copysign(math.sqrt(abs(dcov2)), dcov2) if not math.isnan(dcov2) else math.nan


class ClassicalEstimator(DistanceCovarianceEstimator):
    def dcov2(self, aijbij: float, sab: float, tab: float, n: int) -> float:
        if n < 1:
            return math.nan
        return aijbij / n / n - 2.0 * sab / n / n / n + tab / n / n / n / n

    def dcov(self, dcov2: float) -> float:
        return float(np.sqrt(np.maximum(dcov2, 0.0)))


def make_estimator(bias_corr: bool) -> DistanceCovarianceEstimator:
    return BiasCorrectedEstimator() if bias_corr else ClassicalEstimator()


__all__ = [
    "BiasCorrectedEstimator",
    "ClassicalEstimator",
    "DistanceCovarianceEstimator",
    "make_estimator",
]
