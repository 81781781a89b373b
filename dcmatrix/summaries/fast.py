"""
O(n log n) summaries for single-column groups under the Euclidean or discrete
metric.

Row sums of ``|x_i - x_j|`` come from sorted prefix sums. The Euclidean cross
sum ``sum_ij |x_i - x_j| |y_i - y_j|`` splits every pair of the x-sorted sample
on the order of its y values; the per-point sums over earlier points with a
smaller y are dominance sums, built level by level as in a bottom-up merge
sort. Discrete groups reduce to category counts.
"""

from __future__ import annotations

import numpy as np

from ..grouping import GroupData
from .base import DistanceAlgorithm, DistanceSummary


def abs_diff_row_sums(values: np.ndarray) -> np.ndarray:
    """``sum_j |v_i - v_j|`` for every i."""
    v = np.asarray(values, dtype=float).ravel()
    n = v.size
    if n == 0:
        return np.zeros(0)
    order = np.argsort(v, kind="mergesort")
    s = v[order]
    prefix = np.cumsum(s)
    total = prefix[-1]
    idx = np.arange(n, dtype=float)
    left = idx * s - np.concatenate(([0.0], prefix[:-1]))
    right = (total - prefix) - (n - 1 - idx) * s
    sums = np.empty(n)
    sums[order] = left + right
    return sums


def dominance_sums(ranks: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """For every position j, column sums of ``weights[:, i]`` over ``i < j`` with ``ranks[i] <= ranks[j]``.

    ``weights`` is (k, n). Each level of a bottom-up merge sort pairs the left
    and right halves of blocks of width ``2 * width``; a right-half point
    collects the left-half points of its block whose rank does not exceed its
    own. Keys ``block * m + rank`` let one sorted array serve all blocks.
    """
    ranks = np.asarray(ranks, dtype=np.int64)
    n = ranks.size
    out = np.zeros(weights.shape, dtype=float)
    if n < 2:
        return out
    m = int(ranks.max()) + 1
    pos = np.arange(n)
    width = 1
    while width < n:
        block = pos // (2 * width)
        in_right = (pos // width) % 2 == 1
        left = np.flatnonzero(~in_right)
        right = np.flatnonzero(in_right)

        left_keys = block[left] * m + ranks[left]
        order = np.argsort(left_keys, kind="mergesort")
        keys = left_keys[order]
        cum = np.zeros((weights.shape[0], left.size + 1))
        np.cumsum(weights[:, left[order]], axis=1, out=cum[:, 1:])

        right_block = block[right] * m
        hi = np.searchsorted(keys, right_block + ranks[right], side="right")
        lo = np.searchsorted(keys, right_block, side="left")
        out[:, right] += cum[:, hi] - cum[:, lo]
        width *= 2
    return out


def _pair_terms(s: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    # sum over a point set of (x - x_i)(y - y_i) from its count, sum x, sum y, sum xy
    return s[0] * x * y - x * s[2] - y * s[1] + s[3]


def abs_product_sum(x: np.ndarray, y: np.ndarray) -> float:
    """``sum_{i,j} |x_i - x_j| |y_i - y_j|`` over all ordered pairs."""
    x = np.asarray(x, dtype=float).ravel()
    y = np.asarray(y, dtype=float).ravel()
    if x.size < 2:
        return 0.0
    # Centring leaves the differences unchanged and keeps products small.
    x = x - x.mean()
    y = y - y.mean()
    order = np.argsort(x, kind="mergesort")
    xs = x[order]
    ys = y[order]
    _, ranks = np.unique(ys, return_inverse=True)

    weights = np.vstack([np.ones_like(xs), xs, ys, xs * ys])
    below = dominance_sums(ranks.ravel(), weights)
    before = np.cumsum(weights, axis=1) - weights

    # earlier points with a smaller y add (x_j - x_i)(y_j - y_i), the others subtract it
    per_point = 2.0 * _pair_terms(below, xs, ys) - _pair_terms(before, xs, ys)
    return 2.0 * float(per_point.sum())


def _sum_sq_counts(codes: np.ndarray) -> float:
    _, counts = np.unique(codes, return_counts=True)
    return float(np.sum(counts.astype(float) ** 2))


def _discrete_cross(cx: np.ndarray, cy: np.ndarray) -> float:
    """Number of ordered pairs differing in both codes."""
    n = float(cx.size)
    joint = cx.astype(np.int64) * (int(cy.max()) + 1) + cy.astype(np.int64)
    return n * n - _sum_sq_counts(cx) - _sum_sq_counts(cy) + _sum_sq_counts(joint)


def _discrete_euclidean_cross(codes: np.ndarray, y: np.ndarray, y_total: float) -> float:
    """``sum_ij 1(c_i != c_j) |y_i - y_j|``: all pairs minus within-category pairs."""
    within = 0.0
    for c in np.unique(codes):
        members = y[codes == c]
        if members.size > 1:
            within += float(abs_diff_row_sums(members).sum())
    return y_total - within


class FastAlgorithm(DistanceAlgorithm):
    """Sorting-based summaries; never builds an n x n matrix."""

    name = "fast"

    def summarize(self, prepared: GroupData, group: GroupData, rows: np.ndarray) -> DistanceSummary:
        if group.values.shape[1] != 1 or group.metric.name not in ("euclidean", "discrete"):
            raise ValueError(
                f"The fast algorithm needs a single-column group with the euclidean "
                f"or discrete metric; group {group.label!r} has {group.values.shape[1]} "
                f"column(s) and metric {group.metric}"
            )
        v = group.values[rows, 0]
        n = v.size
        if group.metric.is_discrete:
            c = group.metric.value
            _, inverse, counts = np.unique(v, return_inverse=True, return_counts=True)
            aidot = c * (n - counts[inverse].astype(float))
            aijaij = c * c * (float(n) * n - float(np.sum(counts.astype(float) ** 2)))
        else:
            aidot = abs_diff_row_sums(v)
            centred = v - v.mean() if n else v
            aijaij = 2.0 * n * float(np.sum(centred * centred))
        return DistanceSummary(
            aidot=aidot,
            adotdot=float(aidot.sum()),
            aijaij=float(aijaij),
            rows=rows,
            metric=group.metric,
            values=v,
        )

    def _cross_values(self, x: DistanceSummary, xv: np.ndarray,
                      y: DistanceSummary, yv: np.ndarray, y_total: float, x_total: float) -> float:
        if x.metric.is_discrete and y.metric.is_discrete:
            return x.metric.value * y.metric.value * _discrete_cross(xv, yv)
        if x.metric.is_discrete:
            return x.metric.value * _discrete_euclidean_cross(xv, yv, y_total)
        if y.metric.is_discrete:
            return y.metric.value * _discrete_euclidean_cross(yv, xv, x_total)
        return abs_product_sum(xv, yv)

    def cross(self, x: DistanceSummary, y: DistanceSummary) -> float:
        return self._cross_values(x, x.values, y, y.values, y.adotdot, x.adotdot)

    def permuted_cross(self, x: DistanceSummary, y: DistanceSummary, perm: np.ndarray) -> float:
        return self._cross_values(x, x.values, y, y.values[perm], y.adotdot, x.adotdot)


__all__ = ["FastAlgorithm", "abs_diff_row_sums", "abs_product_sum", "dominance_sums"]
