"""Shared fixtures and brute-force distance covariance references for the tests."""

import numpy as np
import pandas as pd
import pytest


def u_centre(dist: np.ndarray) -> np.ndarray:
    """U-centred distance matrix (zero diagonal)."""
    n = dist.shape[0]
    rows = dist.sum(axis=1)
    cols = dist.sum(axis=0)
    total = dist.sum()
    out = dist - rows[:, None] / (n - 2) - cols[None, :] / (n - 2) + total / ((n - 1) * (n - 2))
    np.fill_diagonal(out, 0.0)
    return out


def reference_u_dcov2(a: np.ndarray, b: np.ndarray) -> float:
    n = a.shape[0]
    return float(np.sum(u_centre(a) * u_centre(b)) / (n * (n - 3)))


def reference_v_dcov2(a: np.ndarray, b: np.ndarray) -> float:
    def centre(d):
        return d - d.mean(axis=0)[None, :] - d.mean(axis=1)[:, None] + d.mean()

    return float(np.mean(centre(a) * centre(b)))


def abs_dist(v: np.ndarray) -> np.ndarray:
    v = np.asarray(v, dtype=float).ravel()
    return np.abs(v[:, None] - v[None, :])


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def dependent_frame(rng):
    """Four numeric columns: a, b=a+noise, c independent, d=c^2+noise."""
    n = 60
    a = rng.normal(size=n)
    c = rng.normal(size=n)
    return pd.DataFrame(
        {
            "a": a,
            "b": a + 0.2 * rng.normal(size=n),
            "c": c,
            "d": c ** 2 + 0.1 * rng.normal(size=n),
        }
    )
