from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional

import numpy as np
import pandas as pd

from .metrics import Metric

MATRIX_FIELDS = ("dcov", "dcor", "pvalue", "adj_pvalues", "ncc")


@dataclass
class DCMatrixResult:
    """Distance covariance/correlation matrices between groups plus call metadata.

    Matrices are ``d_x x d_y`` (``d_x x d_x`` and symmetric without Y) and hold
    NaN for skipped groups. Disabled outputs are ``None``. ``ncc`` counts the
    rows that entered each cell. ``corr``/``pval_cor`` are column-level.
    """

    dcov: Optional[np.ndarray]
    dcor: Optional[np.ndarray]
    pvalue: Optional[np.ndarray]
    adj_pvalues: Optional[np.ndarray]
    ncc: np.ndarray
    labels_x: List[Hashable]
    labels_y: List[Hashable]
    metrics_x: List[Metric]
    metrics_y: Optional[List[Metric]]
    with_y: bool
    n: int
    b: int
    test: str
    algorithm: str
    calc_dcov: bool
    calc_dcor: bool
    bias_corr: bool
    affine: bool
    calc_cor: str
    use: str
    call: Dict[str, Any] = field(default_factory=dict)
    corr: Optional[np.ndarray] = None
    pval_cor: Optional[np.ndarray] = None
    X: Optional[pd.DataFrame] = None
    Y: Optional[pd.DataFrame] = None

    @property
    def d_x(self) -> int:
        return len(self.labels_x)

    @property
    def d_y(self) -> int:
        return len(self.labels_y)

    def to_frame(self, name: str = "dcor") -> pd.DataFrame:
        """Return one of the group matrices as a DataFrame labelled by group."""
        if name not in MATRIX_FIELDS:
            raise ValueError(f"Unknown matrix '{name}'; expected one of {MATRIX_FIELDS}")
        matrix = getattr(self, name)
        if matrix is None:
            raise ValueError(f"Matrix '{name}' was not computed for this result")
        return pd.DataFrame(matrix, index=list(self.labels_x), columns=list(self.labels_y))

    def __repr__(self) -> str:
        shape = f"{self.d_x}x{self.d_y}"
        return (
            f"DCMatrixResult({shape}, n={self.n}, test={self.test!r}, "
            f"algorithm={self.algorithm!r}, bias_corr={self.bias_corr})"
        )


__all__ = ["DCMatrixResult", "MATRIX_FIELDS"]
