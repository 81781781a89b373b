"""
Row-selection policies for missing data.

Complete-row sets are carried as explicit integer index arrays so that the rows
contributing to each matrix cell can be inspected.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class MissingDataPolicy(str, Enum):
    EVERYTHING = "everything"
    COMPLETE_OBS = "complete.obs"
    PAIRWISE_COMPLETE_OBS = "pairwise.complete.obs"

    @classmethod
    def parse(cls, value: "str | MissingDataPolicy") -> "MissingDataPolicy":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                'use must be one of "everything", "complete.obs" or "pairwise.complete.obs"'
            ) from None

    @property
    def pairwise(self) -> bool:
        return self is MissingDataPolicy.PAIRWISE_COMPLETE_OBS


def complete_rows(frame: pd.DataFrame) -> np.ndarray:
    """Boolean mask of rows with no missing value."""
    return ~frame.isna().any(axis=1).to_numpy()


def drop_incomplete(
    X: pd.DataFrame, Y: Optional[pd.DataFrame] = None
) -> Tuple[pd.DataFrame, Optional[pd.DataFrame], np.ndarray]:
    """Keep only the rows complete in X and, when given, in Y.

    Returns the filtered frames and the kept row indices of the original data.
    """
    keep = complete_rows(X)
    if Y is not None:
        keep &= complete_rows(Y)
    rows = np.flatnonzero(keep)
    logger.debug("complete.obs keeps %d of %d rows.", rows.size, keep.size)
    X = X.iloc[rows].reset_index(drop=True)
    if Y is not None:
        Y = Y.iloc[rows].reset_index(drop=True)
    return X, Y, rows


def common_rows(mask_x: np.ndarray, mask_y: np.ndarray) -> np.ndarray:
    """Indices of rows complete in both groups of a pair."""
    return np.flatnonzero(np.asarray(mask_x, dtype=bool) & np.asarray(mask_y, dtype=bool))


__all__ = [
    "MissingDataPolicy",
    "common_rows",
    "complete_rows",
    "drop_incomplete",
]
