from __future__ import annotations

import logging
import warnings
from typing import Optional

import numpy as np
from statsmodels.stats.multitest import multipletests

logger = logging.getLogger(__name__)

ADJUST_METHODS = {
    "holm": "holm",
    "hochberg": "simes-hochberg",
    "hommel": "hommel",
    "bonferroni": "bonferroni",
    "BH": "fdr_bh",
    "BY": "fdr_by",
    "fdr": "fdr_bh",
}


def adjust_pvalue_vector(p_values: np.ndarray, method: str) -> np.ndarray:
    """Adjust the finite entries of ``p_values``; NaN entries are left out of the family."""
    p_values = np.asarray(p_values, dtype=float)
    out = np.full(p_values.shape, np.nan)
    finite = np.isfinite(p_values)
    if not finite.any():
        return out
    _, corrected, _, _ = multipletests(
        p_values[finite], method=ADJUST_METHODS[method], is_sorted=False, returnsorted=False
    )
    out[finite] = corrected
    return out


def adjust_pvalues(
    pvalues: Optional[np.ndarray], method: str, symmetric: bool = False
) -> Optional[np.ndarray]:
    """Adjust a p-value matrix for multiple testing.

    For a symmetric (single-sample) matrix only the strict lower triangle is a
    distinct test; it is adjusted, mirrored, and the diagonal set to 0.
    Returns ``None`` for ``"none"``, an unknown method (with a warning) or
    missing p-values.
    """
    if method == "none":
        return None
    if method not in ADJUST_METHODS:
        warnings.warn(
            f'adjustp should be one of {", ".join(repr(m) for m in ADJUST_METHODS)}; '
            "no p-value correction performed",
            UserWarning,
            stacklevel=3,
        )
        return None
    if pvalues is None:
        logger.debug("No p-values to adjust.")
        return None

    pvalues = np.asarray(pvalues, dtype=float)
    if not symmetric:
        return adjust_pvalue_vector(pvalues.ravel(), method).reshape(pvalues.shape)

    d = pvalues.shape[0]
    lower = np.tril_indices(d, k=-1)
    adjusted = np.zeros((d, d))
    pvec = adjust_pvalue_vector(pvalues[lower], method)
    adjusted[lower] = pvec
    adjusted[lower[1], lower[0]] = pvec
    logger.debug("Adjusted %d distinct p-values with %s.", pvec.size, method)
    return adjusted


__all__ = ["ADJUST_METHODS", "adjust_pvalue_vector", "adjust_pvalues"]
