from __future__ import annotations

import numpy as np

from ..grouping import GroupData
from .base import DistanceAlgorithm, DistanceSummary


class MemsaveAlgorithm(DistanceAlgorithm):
    """Recompute distance rows block by block instead of storing the matrix.

    Peak memory is ``block_size x n`` per group. Every cross term recomputes
    the distances of both groups, so this is much slower than the standard
    algorithm and only worth it when an n x n matrix does not fit in memory.
    """

    name = "memsave"

    def __init__(self, block_size: int = 256):
        self.block_size = max(1, int(block_size))

    def _blocks(self, n: int):
        for start in range(0, n, self.block_size):
            yield slice(start, min(start + self.block_size, n))

    def summarize(self, prepared: GroupData, group: GroupData, rows: np.ndarray) -> DistanceSummary:
        values = group.values[rows]
        n = values.shape[0]
        aidot = np.zeros(n)
        aijaij = 0.0
        for blk in self._blocks(n):
            d = group.metric.cross(values[blk], values)
            aidot[blk] = d.sum(axis=1)
            aijaij += float(np.sum(d * d))
        return DistanceSummary(
            aidot=aidot,
            adotdot=float(aidot.sum()),
            aijaij=aijaij,
            rows=rows,
            metric=group.metric,
            values=values,
        )

    def cross(self, x: DistanceSummary, y: DistanceSummary) -> float:
        total = 0.0
        for blk in self._blocks(x.ncc):
            dx = x.metric.cross(x.values[blk], x.values)
            dy = y.metric.cross(y.values[blk], y.values)
            total += float(np.sum(dx * dy))
        return total

    def permuted_cross(self, x: DistanceSummary, y: DistanceSummary, perm: np.ndarray) -> float:
        perm = np.asarray(perm)
        y_perm = y.values[perm]
        total = 0.0
        for blk in self._blocks(x.ncc):
            dx = x.metric.cross(x.values[blk], x.values)
            dy = y.metric.cross(y_perm[blk], y_perm)
            total += float(np.sum(dx * dy))
        return total

    def __repr__(self) -> str:
        return f"MemsaveAlgorithm(block_size={self.block_size})"


__all__ = ["MemsaveAlgorithm"]
