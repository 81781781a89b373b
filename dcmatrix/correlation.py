from __future__ import annotations

import logging
import warnings
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from scipy.stats import pearsonr, spearmanr

from .grouping import is_categorical_column
from .missing import MissingDataPolicy

logger = logging.getLogger(__name__)

CORRELATION_METHODS = ("pearson", "spearman", "kendall", "none")


def _numeric(frame: pd.DataFrame, name: str) -> pd.DataFrame:
    bad = [c for c in frame.columns if is_categorical_column(frame[c])]
    if bad:
        logger.warning(
            "Linear correlation is undefined for non-numeric columns %s of %s; "
            "their entries are NaN.", bad, name,
        )
    out = frame.copy()
    for c in bad:
        out[c] = np.nan
    return out.astype(float)


def _column_pvalue(x: np.ndarray, y: np.ndarray, method: str) -> Tuple[float, int]:
    ok = np.isfinite(x) & np.isfinite(y)
    n = int(ok.sum())
    if n < 3 or np.ptp(x[ok]) == 0 or np.ptp(y[ok]) == 0:
        return np.nan, n
    test = pearsonr if method == "pearson" else spearmanr
    return float(test(x[ok], y[ok])[1]), n


def correlation_matrix(
    X: pd.DataFrame,
    Y: Optional[pd.DataFrame],
    method: str = "pearson",
    use: MissingDataPolicy = MissingDataPolicy.EVERYTHING,
) -> np.ndarray:
    """Column-wise linear correlation; p x p without Y, p x q with Y."""
    x = _numeric(X, "X")
    p = x.shape[1]
    frame = x if Y is None else pd.concat(
        [x.set_axis(range(p), axis=1),
         _numeric(Y, "Y").set_axis(range(p, p + Y.shape[1]), axis=1)],
        axis=1,
    )
    corr = frame.corr(method=method).to_numpy(copy=True)
    if use is MissingDataPolicy.EVERYTHING:
        has_na = frame.isna().any(axis=0).to_numpy()
        corr[has_na, :] = np.nan
        corr[:, has_na] = np.nan
        if Y is None:
            # a column with missing values is undefined even against itself
            np.fill_diagonal(corr, np.where(has_na, np.nan, 1.0))
    return corr if Y is None else corr[:p, p:]


def correlation_pvalues(
    X: pd.DataFrame,
    Y: Optional[pd.DataFrame],
    method: str = "pearson",
    use: MissingDataPolicy = MissingDataPolicy.EVERYTHING,
) -> Optional[np.ndarray]:
    """Per column pair p-values of the linear correlation on complete rows.

    Returns ``None`` with a warning for Kendall's tau.
    """
    if method == "kendall":
        warnings.warn(
            "P-value calculation for Kendall correlation not implemented",
            UserWarning,
            stacklevel=3,
        )
        return None
    x = _numeric(X, "X").to_numpy()
    y = x if Y is None else _numeric(Y, "Y").to_numpy()
    n_rows = x.shape[0]
    out = np.full((x.shape[1], y.shape[1]), np.nan)
    for i in range(x.shape[1]):
        for j in range(y.shape[1]):
            if Y is None and j <= i:
                continue
            pval, n = _column_pvalue(x[:, i], y[:, j], method)
            if use is MissingDataPolicy.EVERYTHING and n < n_rows:
                pval = np.nan
            out[i, j] = pval
            if Y is None:
                out[j, i] = pval
    if Y is None:
        np.fill_diagonal(out, 0.0)
    return out


__all__ = ["CORRELATION_METHODS", "correlation_matrix", "correlation_pvalues"]
