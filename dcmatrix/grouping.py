from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Hashable, List, Optional, Sequence

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from .metrics import Metric

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupSpec:
    """Columns of one sample that are treated together as one multivariate variable."""

    label: Hashable
    columns: np.ndarray

    @property
    def size(self) -> int:
        return int(self.columns.size)


@dataclass
class GroupData:
    """Values of one group ready for summarisation.

    ``values`` is always 2-D (n x p). Numeric metrics get floats, the discrete
    metric integer category codes with ``-1`` for missing entries. ``complete``
    marks the rows without missing values in this group.
    """

    spec: GroupSpec
    metric: Metric
    values: np.ndarray
    complete: np.ndarray

    @property
    def label(self) -> Hashable:
        return self.spec.label

    @property
    def is_complete(self) -> bool:
        return bool(self.complete.all())

    @property
    def complete_rows(self) -> np.ndarray:
        return np.flatnonzero(self.complete)


def as_frame(data: Any, name: str = "X") -> pd.DataFrame:
    """Convert a sample into a DataFrame with at least one column."""
    if isinstance(data, pd.DataFrame):
        frame = data
    elif isinstance(data, pd.Series):
        frame = data.to_frame()
    else:
        arr = np.asarray(data)
        if arr.ndim == 1:
            arr = arr[:, None]
        if arr.ndim != 2:
            raise ValueError(f"{name} must be 1-D or 2-D; got shape {arr.shape}.")
        frame = pd.DataFrame(arr)
    if frame.shape[1] == 0:
        raise ValueError(f"{name} must have at least one column.")
    return frame.reset_index(drop=True)


def partition_columns(
    n_columns: int, group: Optional[Sequence[Hashable]] = None, column_names=None
) -> List[GroupSpec]:
    """Split ``n_columns`` columns into groups.

    Without ``group`` every column is its own group, in column order and
    labelled by its name. Otherwise one group per distinct label, in sorted
    label order.
    """
    if group is None:
        names = list(column_names) if column_names is not None else list(range(n_columns))
        return [GroupSpec(label=names[k], columns=np.array([k])) for k in range(n_columns)]

    labels = np.asarray(list(group))
    if labels.size != n_columns:
        raise ValueError(
            f"Group vector has length {labels.size} but the sample has {n_columns} columns"
        )
    return [
        GroupSpec(label=lab.item() if hasattr(lab, "item") else lab,
                  columns=np.flatnonzero(labels == lab))
        for lab in np.unique(labels)
    ]


def is_categorical_column(column: pd.Series) -> bool:
    return not (ptypes.is_numeric_dtype(column) or ptypes.is_bool_dtype(column))


def _category_codes(block: pd.DataFrame) -> np.ndarray:
    codes = np.empty(block.shape, dtype=np.int64)
    for k, col in enumerate(block.columns):
        codes[:, k], _ = pd.factorize(block[col], use_na_sentinel=True)
    return codes


def build_groups(
    frame: pd.DataFrame,
    specs: Sequence[GroupSpec],
    metrics: Sequence[Metric],
    fc_discrete: bool = False,
) -> List[GroupData]:
    """Extract per-group value matrices and complete-row masks."""
    groups = []
    for spec, metric in zip(specs, metrics):
        block = frame.iloc[:, spec.columns]
        if fc_discrete and spec.size == 1 and is_categorical_column(block.iloc[:, 0]):
            if not metric.is_discrete:
                logger.debug("Group %r is categorical; using the discrete metric.", spec.label)
            metric = Metric(name="discrete", param=metric.param if metric.is_discrete else None)

        complete = ~block.isna().any(axis=1).to_numpy()
        if metric.is_discrete:
            values = _category_codes(block)
        else:
            try:
                values = block.to_numpy(dtype=float, na_value=np.nan, copy=True)
            except (TypeError, ValueError) as e:
                raise ValueError(
                    f"Group {spec.label!r} holds non-numeric data; use metric 'discrete' "
                    f"or fc_discrete=True. ({e})"
                ) from e
        groups.append(GroupData(spec=spec, metric=metric, values=values, complete=complete))
    return groups


__all__ = [
    "GroupData",
    "GroupSpec",
    "as_frame",
    "build_groups",
    "is_categorical_column",
    "partition_columns",
]
