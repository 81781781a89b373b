from __future__ import annotations

import numbers
from dataclasses import asdict, dataclass
from typing import Any, Dict, Hashable, Optional, Sequence

from .correlation import CORRELATION_METHODS
from .metrics import MetricSpec
from .missing import MissingDataPolicy
from .statistics import TESTS
from .summaries import ALGORITHMS


@dataclass(frozen=True)
class DCMatrixConfig:
    """Options of one :func:`dcmatrix.dcmatrix` call, validated on construction.

    Parameters
    ----------
    calc_dcov, calc_dcor
        Whether to fill the distance covariance / correlation matrices.
    calc_cor
        ``"pearson"``, ``"spearman"``, ``"kendall"`` or ``"none"``; adds a
        column-level linear correlation matrix.
    calc_pval_cor
        Also compute p-values of the linear correlations (not for Kendall).
    return_data
        Keep X and Y on the result.
    test
        ``"none"``, ``"permutation"``, ``"gamma"``, ``"conservative"`` or ``"bb3"``.
    adjustp
        Multiple-testing adjustment: ``"none"``, ``"holm"``, ``"hochberg"``,
        ``"hommel"``, ``"bonferroni"``, ``"BH"``, ``"BY"`` or ``"fdr"``. Unknown
        values only warn when the adjustment is attempted.
    b
        Number of permutations for the permutation test.
    affine
        Whiten each group first so the result is affine invariant.
    bias_corr
        Use the bias-corrected (U-statistic) estimator instead of the V-statistic.
    group_x, group_y
        Group label per column; ``None`` puts every column in its own group.
    metr_x, metr_y
        One metric for all groups or one per group.
    use
        ``"everything"``, ``"complete.obs"`` or ``"pairwise.complete.obs"``.
    algorithm
        ``"auto"``, ``"fast"``, ``"standard"`` or ``"memsave"``.
    fc_discrete
        Apply the discrete metric to single non-numeric columns.
    random_state
        Seed for the permutations.
    max_workers
        Evaluate group pairs on this many threads (``None`` or 1: serially).
    progress
        Show a progress bar over group pairs.
    """

    calc_dcov: bool = True
    calc_dcor: bool = True
    calc_cor: str = "pearson"
    calc_pval_cor: bool = False
    return_data: bool = True
    test: str = "none"
    adjustp: str = "none"
    b: int = 499
    affine: bool = False
    bias_corr: bool = True
    group_x: Optional[Sequence[Hashable]] = None
    group_y: Optional[Sequence[Hashable]] = None
    metr_x: MetricSpec = "euclidean"
    metr_y: MetricSpec = "euclidean"
    use: str = "everything"
    algorithm: str = "auto"
    fc_discrete: bool = False
    random_state: Optional[int] = None
    max_workers: Optional[int] = None
    progress: bool = False

    def __post_init__(self):
        if self.test not in TESTS:
            raise ValueError(
                'Test must be one of "none", "permutation", "gamma", "bb3" or "conservative"'
            )
        MissingDataPolicy.parse(self.use)
        if self.algorithm not in ALGORITHMS:
            raise ValueError(
                'Algorithm must be one of "fast", "standard", "memsave" or "auto"'
            )
        if self.calc_cor not in CORRELATION_METHODS:
            raise ValueError(f"calc_cor must be one of {CORRELATION_METHODS}")
        if self.test == "permutation" and not (isinstance(self.b, numbers.Integral) and self.b > 0):
            raise ValueError(f"b must be a positive integer; got {self.b!r}")
        if self.max_workers is not None and int(self.max_workers) < 1:
            raise ValueError(f"max_workers must be at least 1; got {self.max_workers!r}")

    @property
    def missing_policy(self) -> MissingDataPolicy:
        return MissingDataPolicy.parse(self.use)

    def as_call(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["DCMatrixConfig"]
