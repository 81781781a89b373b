"""
Pairwise-distance metrics and per-group metric resolution.

A metric is resolved once per group. Numeric metrics operate on float
matrices, the ``discrete`` metric on integer category codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Union

import numpy as np
from scipy.spatial.distance import cdist

METRIC_NAMES = ("euclidean", "alpha", "minkowski", "gaussian", "boundsq", "discrete")
FAST_METRICS = ("euclidean", "discrete")

_DEFAULT_PARAMS = {
    "alpha": 1.0,
    "minkowski": 2.0,
    "gaussian": 1.0,
    "boundsq": 1.0,
    "discrete": 1.0,
}


@dataclass(frozen=True)
class Metric:
    """A resolved distance metric: a known name with optional parameter, or a callable."""

    name: str
    param: Optional[float] = None
    func: Optional[Callable[[np.ndarray, np.ndarray], float]] = None

    @property
    def value(self) -> float:
        """Parameter with its per-metric default filled in."""
        if self.param is not None:
            return float(self.param)
        return _DEFAULT_PARAMS.get(self.name, 1.0)

    @property
    def is_discrete(self) -> bool:
        return self.name == "discrete"

    def cross(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Distances between every row of ``a`` and every row of ``b``."""
        a = np.asarray(a)
        b = np.asarray(b)
        if a.ndim == 1:
            a = a[:, None]
        if b.ndim == 1:
            b = b[:, None]

        if self.func is not None:
            return cdist(a, b, metric=self.func)
        if self.name == "discrete":
            return self.value * (cdist(a, b, metric="hamming") > 0)
        if self.name == "minkowski":
            return cdist(a, b, metric="minkowski", p=self.value)

        d = cdist(a, b, metric="euclidean")
        if self.name == "euclidean":
            return d
        if self.name == "alpha":
            return d ** self.value
        h = self.value
        if self.name == "gaussian":
            return 1.0 - np.exp(-(d * d) / (2.0 * h * h))
        if self.name == "boundsq":
            d2 = d * d
            return d2 / (h * h + d2)
        raise ValueError(f"Unknown metric: {self.name}")

    def matrix(self, values: np.ndarray) -> np.ndarray:
        """Full symmetric distance matrix of ``values`` with zero diagonal."""
        return self.cross(values, values)

    def __str__(self) -> str:
        if self.func is not None:
            return getattr(self.func, "__name__", "custom")
        if self.param is None:
            return self.name
        return f"{self.name}({self.param:g})"


def _parses_as_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        float(value)
    except (TypeError, ValueError):
        return False
    return True


def make_metric(spec: Any) -> Metric:
    """Build a single :class:`Metric` from a name, ``(name, param)`` pair, callable or Metric."""
    if isinstance(spec, Metric):
        return spec
    if callable(spec):
        return Metric(name="custom", func=spec)
    if isinstance(spec, str):
        if spec not in METRIC_NAMES:
            raise ValueError(
                f"Unknown metric '{spec}'; expected one of {METRIC_NAMES} or a callable"
            )
        return Metric(name=spec)
    if isinstance(spec, (tuple, list)) and len(spec) == 2 and _parses_as_number(spec[1]):
        base = make_metric(spec[0])
        return Metric(name=base.name, param=float(spec[1]), func=base.func)
    raise ValueError(f"Cannot interpret metric specification: {spec!r}")


MetricSpec = Union[str, Metric, Callable, Sequence[Any]]


def resolve_metrics(spec: MetricSpec, n_groups: int) -> List[Metric]:
    """Return one metric per group.

    A single name, callable or Metric is broadcast. A two-element sequence whose
    second entry parses as a number is a parametrised metric, broadcast as well.
    Any other sequence must have exactly one entry per group.
    """
    if isinstance(spec, (str, Metric)) or callable(spec):
        return [make_metric(spec)] * n_groups
    if not isinstance(spec, (list, tuple)):
        raise ValueError(f"Cannot interpret metric specification: {spec!r}")
    if len(spec) == 1:
        return [make_metric(spec[0])] * n_groups
    if len(spec) == 2 and _parses_as_number(spec[1]):
        return [make_metric(spec)] * n_groups
    if len(spec) != n_groups:
        raise ValueError(
            f"Metric list has {len(spec)} entries but there are {n_groups} groups"
        )
    return [make_metric(s) for s in spec]


__all__ = [
    "FAST_METRICS",
    "METRIC_NAMES",
    "Metric",
    "make_metric",
    "resolve_metrics",
]
