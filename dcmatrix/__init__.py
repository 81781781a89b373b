"""
Distance covariance and distance correlation matrices between groups of variables.

This package provides:
- Grouping of sample columns into multivariate variables with per-group metrics
- Fast, standard and memory-saving estimators of distance covariance
- Permutation, gamma, conservative and bb3 independence tests
- Multiple-testing adjustment of the resulting p-value matrices
"""

__version__ = "0.1.0"

from .config import DCMatrixConfig
from .core import compute_dcmatrix, dcmatrix
from .estimators import BiasCorrectedEstimator, ClassicalEstimator, make_estimator
from .metrics import Metric, make_metric, resolve_metrics
from .missing import MissingDataPolicy
from .result import DCMatrixResult

__all__ = [
    "BiasCorrectedEstimator",
    "ClassicalEstimator",
    "DCMatrixConfig",
    "DCMatrixResult",
    "Metric",
    "MissingDataPolicy",
    "compute_dcmatrix",
    "dcmatrix",
    "make_estimator",
    "make_metric",
    "resolve_metrics",
]
