from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy.linalg import eigh

from .grouping import GroupData


def normalize_sample(values: np.ndarray) -> np.ndarray:
    """Whiten a sample so distance covariance becomes affine invariant.

    One column is divided by its standard deviation; several columns are
    multiplied by the inverse symmetric square root of their covariance matrix.
    """
    x = np.asarray(values, dtype=float)
    if x.ndim == 1:
        x = x[:, None]
    with np.errstate(divide="ignore", invalid="ignore"):
        if x.shape[1] == 1:
            return x / np.std(x, ddof=1)
        evals, evecs = eigh(np.cov(x, rowvar=False))
        inv_sqrt = (evecs / np.sqrt(evals)) @ evecs.T
    return x @ inv_sqrt


def normalize_groups(groups: Sequence[GroupData], pairwise: bool = False) -> None:
    """Normalise every numeric group in place.

    Without ``pairwise`` only complete groups are touched (incomplete ones are
    skipped later anyway); with ``pairwise`` each group is normalised on its own
    complete rows.
    """
    for group in groups:
        if group.metric.is_discrete:
            continue
        if pairwise:
            rows = group.complete_rows
            if rows.size > 1:
                values = np.array(group.values, dtype=float)
                values[rows] = normalize_sample(values[rows])
                group.values = values
        elif group.is_complete:
            group.values = normalize_sample(group.values)


__all__ = ["normalize_sample", "normalize_groups"]
