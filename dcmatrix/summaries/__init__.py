from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..grouping import GroupData
from ..metrics import FAST_METRICS
from .base import DistanceAlgorithm, DistanceSummary, PairwiseTerms
from .fast import FastAlgorithm, abs_diff_row_sums, abs_product_sum
from .memsave import MemsaveAlgorithm
from .standard import StandardAlgorithm

logger = logging.getLogger(__name__)

ALGORITHMS = ("auto", "fast", "standard", "memsave")

FAST_MIN_ROWS = 200


def _fast_capable(groups: Sequence[GroupData]) -> bool:
    return all(
        g.spec.size == 1 and g.metric.func is None and g.metric.name in FAST_METRICS
        for g in groups
    )


def select_algorithm(
    algorithm: str,
    n: int,
    groups_x: Sequence[GroupData],
    groups_y: Optional[Sequence[GroupData]] = None,
    test: str = "none",
) -> str:
    """Resolve ``algorithm`` to one of fast, standard or memsave.

    ``auto`` picks fast exactly when all of the following hold, else standard:

    ====================================  ==========
    condition                             required
    ====================================  ==========
    n > 200                               yes
    every X group is one column           yes
    every X metric is euclidean/discrete  yes
    test is not bb3                       yes
    every Y group is one column           if Y given
    every Y metric is euclidean/discrete  if Y given
    ====================================  ==========
    """
    if algorithm not in ALGORITHMS:
        raise ValueError(
            'Algorithm must be one of "fast", "standard", "memsave" or "auto"'
        )
    capable = _fast_capable(groups_x) and (groups_y is None or _fast_capable(groups_y))

    if algorithm == "auto":
        algorithm = "fast" if (n > FAST_MIN_ROWS and capable and test != "bb3") else "standard"
        logger.debug(
            "auto algorithm -> %s (n=%d, fast-capable groups=%s, test=%s)",
            algorithm, n, capable, test,
        )
    elif algorithm == "fast" and not capable:
        raise ValueError(
            "algorithm='fast' needs single-column groups with the euclidean or discrete metric"
        )

    if test == "bb3" and algorithm != "standard":
        raise ValueError("bb3 p-value calculation is only possible with algorithm='standard'")
    return algorithm


def make_algorithm(name: str) -> DistanceAlgorithm:
    if name == "fast":
        return FastAlgorithm()
    if name == "standard":
        return StandardAlgorithm()
    if name == "memsave":
        return MemsaveAlgorithm()
    raise ValueError(f"Unknown algorithm: {name}")


__all__ = [
    "ALGORITHMS",
    "DistanceAlgorithm",
    "DistanceSummary",
    "FastAlgorithm",
    "MemsaveAlgorithm",
    "PairwiseTerms",
    "StandardAlgorithm",
    "abs_diff_row_sums",
    "abs_product_sum",
    "make_algorithm",
    "select_algorithm",
]
