from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from ..grouping import GroupData
from ..metrics import Metric


@dataclass
class DistanceSummary:
    """Sufficient statistics of one group's distance matrix on a fixed row set.

    Sums run over the raw distance matrix (zero diagonal): ``aidot`` are the
    row sums, ``adotdot`` their total and ``aijaij`` the sum of squared
    entries. ``dist`` and ``values`` are only kept by algorithms that need them
    to build cross terms.
    """

    aidot: np.ndarray
    adotdot: float
    aijaij: float
    rows: np.ndarray
    metric: Metric
    dist: Optional[np.ndarray] = None
    values: Optional[np.ndarray] = None

    @property
    def ncc(self) -> int:
        return int(self.rows.size)

    @property
    def saa(self) -> float:
        return float(np.dot(self.aidot, self.aidot))


@dataclass
class PairwiseTerms:
    """Cross statistics of a group pair on the pair's common rows."""

    aijbij: float
    aidot: np.ndarray
    bidot: np.ndarray
    adotdot: float
    bdotdot: float
    aijaij: float
    bijbij: float
    rows: np.ndarray
    x: Optional[DistanceSummary] = None
    y: Optional[DistanceSummary] = None

    @property
    def ncc(self) -> int:
        return int(self.rows.size)

    @property
    def sab(self) -> float:
        return float(np.dot(self.aidot, self.bidot))

    @property
    def saa(self) -> float:
        return float(np.dot(self.aidot, self.aidot))

    @property
    def sbb(self) -> float:
        return float(np.dot(self.bidot, self.bidot))

    @property
    def tab(self) -> float:
        return float(self.adotdot * self.bdotdot)


class DistanceAlgorithm:
    """Strategy for computing distance summaries and their cross terms.

    ``prepare`` runs once per group, ``summarize`` once per group (or once per
    pair under pairwise-complete observations) and ``cross``/``permuted_cross``
    once per pair or resample.
    """

    name = "base"

    def prepare(self, group: GroupData) -> Any:
        return group

    def summarize(self, prepared: Any, group: GroupData, rows: np.ndarray) -> DistanceSummary:
        raise NotImplementedError

    def cross(self, x: DistanceSummary, y: DistanceSummary) -> float:
        """``sum_ij a_ij b_ij`` for two summaries on the same rows."""
        raise NotImplementedError

    def permuted_cross(
        self, x: DistanceSummary, y: DistanceSummary, perm: np.ndarray
    ) -> float:
        """``sum_ij a_ij b_{perm(i) perm(j)}``."""
        raise NotImplementedError

    def combine(
        self, x: DistanceSummary, y: DistanceSummary, keep_raw: bool = False
    ) -> PairwiseTerms:
        if x.ncc != y.ncc:
            raise ValueError(
                f"Summaries cover different row sets ({x.ncc} vs {y.ncc} rows)"
            )
        return PairwiseTerms(
            aijbij=float(self.cross(x, y)),
            aidot=x.aidot,
            bidot=y.aidot,
            adotdot=x.adotdot,
            bdotdot=y.adotdot,
            aijaij=x.aijaij,
            bijbij=y.aijaij,
            rows=x.rows,
            x=x if keep_raw else None,
            y=y if keep_raw else None,
        )

    def resample(self, terms: PairwiseTerms, perm: np.ndarray) -> tuple[float, float]:
        """Cross term and ``Sab`` with the second group's rows reordered by ``perm``."""
        if terms.x is None or terms.y is None:
            raise ValueError("Resampling needs the pair's raw summaries (keep_raw=True)")
        aijbij = self.permuted_cross(terms.x, terms.y, perm)
        sab = float(np.dot(terms.aidot, terms.bidot[perm]))
        return float(aijbij), sab

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def all_rows(rows: np.ndarray, n: int) -> bool:
    """True when the sorted index array ``rows`` covers all ``n`` rows."""
    return rows.size == n


__all__ = ["DistanceAlgorithm", "DistanceSummary", "PairwiseTerms", "all_rows"]
