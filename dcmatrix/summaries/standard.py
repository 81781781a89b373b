from __future__ import annotations

import numpy as np

from ..grouping import GroupData
from .base import DistanceAlgorithm, DistanceSummary, all_rows


class StandardAlgorithm(DistanceAlgorithm):
    """Materialise the full n x n distance matrix of each group.

    Supports any metric and any group width. The matrix is kept in the summary
    for cross terms, resampling and moment estimation.
    """

    name = "standard"

    def prepare(self, group: GroupData) -> np.ndarray:
        n = group.values.shape[0]
        if group.is_complete:
            return group.metric.matrix(group.values)
        rows = group.complete_rows
        dist = np.full((n, n), np.nan)
        dist[np.ix_(rows, rows)] = group.metric.matrix(group.values[rows])
        return dist

    def summarize(self, prepared: np.ndarray, group: GroupData, rows: np.ndarray) -> DistanceSummary:
        if all_rows(rows, prepared.shape[0]):
            dist = prepared
        else:
            dist = prepared[np.ix_(rows, rows)]
        aidot = dist.sum(axis=1)
        return DistanceSummary(
            aidot=aidot,
            adotdot=float(aidot.sum()),
            aijaij=float(np.sum(dist * dist)),
            rows=rows,
            metric=group.metric,
            dist=dist,
        )

    def cross(self, x: DistanceSummary, y: DistanceSummary) -> float:
        return float(np.sum(x.dist * y.dist))

    def permuted_cross(self, x: DistanceSummary, y: DistanceSummary, perm: np.ndarray) -> float:
        return float(np.sum(x.dist * y.dist[np.ix_(perm, perm)]))


__all__ = ["StandardAlgorithm"]
