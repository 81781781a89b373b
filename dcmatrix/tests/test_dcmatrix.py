"""
Tests for the public dcmatrix entry point.

Covers result shapes and labels, agreement between the summary algorithms,
the missing-data policies, option validation, affine invariance and the
calibration of the permutation test against the gamma approximation.
"""

import math

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose

from dcmatrix import DCMatrixConfig, compute_dcmatrix, dcmatrix

from conftest import abs_dist, reference_u_dcov2


class TestShape:
    """Test suite for result shapes, labels and diagonals."""

    def test_single_sample_is_symmetric_with_fixed_diagonal(self, dependent_frame):
        """Test that one sample gives symmetric matrices with a fixed diagonal."""
        res = dcmatrix(dependent_frame, test="gamma")
        assert res.dcov.shape == (4, 4)
        assert_allclose(res.dcov, res.dcov.T)
        assert_allclose(res.dcor, res.dcor.T)
        assert_allclose(np.diag(res.dcor), 1.0)
        assert_allclose(np.diag(res.pvalue), 0.0)
        assert res.labels_x == ["a", "b", "c", "d"]
        assert res.ncc[0, 1] == 60

    def test_dependent_columns_stand_out(self, dependent_frame):
        """Test that dependent column pairs get high dCor and small p-values."""
        res = dcmatrix(dependent_frame, test="gamma")
        assert res.dcor[0, 1] > 0.8
        assert res.dcor[2, 3] > res.dcor[0, 2]
        assert res.pvalue[0, 1] < 0.001
        assert res.pvalue[2, 3] < 0.01

    def test_dcov_matches_u_statistic(self, dependent_frame):
        """Test dCov entries against the U-centred reference."""
        res = dcmatrix(dependent_frame, calc_cor="none")
        a = abs_dist(dependent_frame["a"])
        c = abs_dist(dependent_frame["c"])
        expected = reference_u_dcov2(a, c)
        assert_allclose(res.dcov[0, 2], math.copysign(math.sqrt(abs(expected)), expected))
        dvar = reference_u_dcov2(a, a)
        assert_allclose(res.dcov[0, 0], math.sqrt(dvar))

    def test_two_samples(self, dependent_frame):
        """Test that X and Y give a p x q result."""
        res = dcmatrix(dependent_frame[["a", "c"]], dependent_frame[["b", "d"]], test="gamma")
        assert res.dcor.shape == (2, 2)
        assert res.with_y
        assert res.labels_y == ["b", "d"]
        assert res.dcor[0, 0] > 0.8
        assert res.pvalue[1, 1] < 0.01
        assert res.corr.shape == (2, 2)

    def test_grouped_columns(self, dependent_frame):
        """Test that group labels collapse columns into groups."""
        res = dcmatrix(dependent_frame, group_x=["g1", "g1", "g2", "g2"])
        assert res.dcor.shape == (2, 2)
        assert res.labels_x == ["g1", "g2"]
        assert res.algorithm == "standard"

    def test_single_group(self, dependent_frame):
        """Test that a single group gives a 1 x 1 result."""
        res = dcmatrix(dependent_frame[["a"]])
        assert res.dcor.shape == (1, 1)
        assert res.dcor[0, 0] == 1.0

    def test_classical_estimator_is_non_negative(self, dependent_frame):
        """Test that the V-statistic dCov is never negative."""
        res = dcmatrix(dependent_frame, bias_corr=False)
        assert np.all(res.dcov >= 0)
        assert np.all(res.dcor[np.isfinite(res.dcor)] <= 1.0 + 1e-12)

    def test_disabled_outputs(self, dependent_frame):
        """Test that switched-off outputs are None."""
        res = dcmatrix(dependent_frame, calc_dcov=False, calc_cor="none", return_data=False)
        assert res.dcov is None
        assert res.pvalue is None
        assert res.corr is None
        assert res.X is None
        with pytest.raises(ValueError):
            res.to_frame("dcov")

    def test_return_data_and_frame(self, dependent_frame):
        """Test the kept data, labelled frames and the call record."""
        res = dcmatrix(dependent_frame)
        pd.testing.assert_frame_equal(res.X, dependent_frame)
        frame = res.to_frame("dcor")
        assert list(frame.index) == ["a", "b", "c", "d"]
        assert frame.loc["a", "b"] == res.dcor[0, 1]
        assert "DCMatrixResult(4x4" in repr(res)
        assert res.call["test"] == "none"

    def test_one_dimensional_input(self, rng):
        """Test that vectors are accepted as single-column samples."""
        x = rng.normal(size=30)
        res = dcmatrix(x, x ** 2)
        assert res.dcor.shape == (1, 1)

    def test_default_call_returns_pearson_matrix(self, rng):
        """Test that a default call fills the Pearson matrix with a unit diagonal."""
        values = rng.normal(size=(30, 3))
        res = dcmatrix(pd.DataFrame(values, columns=["u", "v", "w"]))
        assert_allclose(res.corr, np.corrcoef(values, rowvar=False), atol=1e-12)
        assert_allclose(np.diag(res.corr), 1.0)

    def test_default_call_marks_incomplete_columns(self, rng):
        """Test that columns with gaps get NaN correlations, diagonal included."""
        frame = pd.DataFrame(rng.normal(size=(30, 3)), columns=["u", "v", "w"])
        frame.loc[4, "v"] = np.nan
        res = dcmatrix(frame)
        assert np.isnan(res.corr[1]).all()
        assert np.isnan(res.corr[:, 1]).all()
        assert_allclose(res.corr[[0, 2], [0, 2]], 1.0)


class TestAlgorithms:
    """Test suite for choosing between the summary algorithms."""

    @pytest.fixture
    def large_frame(self, rng):
        n = 250
        x = rng.normal(size=n)
        return pd.DataFrame(
            {
                "x": x,
                "y": np.abs(x) + 0.5 * rng.normal(size=n),
                "z": rng.normal(size=n),
                "lab": np.where(x > 0, "pos", "neg"),
            }
        )

    def test_auto_selects_fast_and_agrees_with_other_algorithms(self, large_frame):
        """Test that auto picks fast and that all algorithms agree."""
        kwargs = dict(fc_discrete=True, calc_cor="none")
        fast = dcmatrix(large_frame, **kwargs)
        assert fast.algorithm == "fast"
        assert fast.metrics_x[3].name == "discrete"
        for name in ("standard", "memsave"):
            other = dcmatrix(large_frame, algorithm=name, **kwargs)
            assert other.algorithm == name
            assert_allclose(fast.dcov, other.dcov, rtol=1e-6, atol=1e-9)
            assert_allclose(fast.dcor, other.dcor, rtol=1e-6, atol=1e-9)

    def test_fast_permutation_matches_standard(self, large_frame):
        """Test that seeded permutation p-values do not depend on the algorithm."""
        kwargs = dict(calc_cor="none", test="permutation", b=19, random_state=11)
        frame = large_frame[["x", "y", "z"]]
        fast = dcmatrix(frame, algorithm="fast", **kwargs)
        standard = dcmatrix(frame, algorithm="standard", **kwargs)
        assert_allclose(fast.pvalue, standard.pvalue)

    def test_explicit_fast_with_multicolumn_group_raises(self, large_frame):
        """Test that fast refuses multi-column groups."""
        with pytest.raises(ValueError):
            dcmatrix(large_frame[["x", "y"]], group_x=[1, 1], algorithm="fast")

    @pytest.mark.parametrize("algorithm", ["fast", "memsave"])
    def test_bb3_needs_standard(self, large_frame, algorithm):
        """Test that bb3 is refused by algorithms without distance matrices."""
        with pytest.raises(ValueError):
            dcmatrix(large_frame[["x", "y"]], test="bb3", algorithm=algorithm)

    def test_bb3_with_auto_uses_standard(self, large_frame):
        """Test that auto falls back to standard for bb3."""
        res = dcmatrix(large_frame[["x", "y"]], test="bb3", calc_cor="none")
        assert res.algorithm == "standard"
        assert res.pvalue[0, 1] < 0.01


class TestMissingData:
    """Test suite for the missing-data policies."""

    @pytest.fixture
    def frame_with_gaps(self, dependent_frame):
        frame = dependent_frame.copy()
        frame.loc[[3, 10], "a"] = np.nan
        frame.loc[[20], "d"] = np.nan
        return frame

    def test_everything_leaves_incomplete_groups_out(self, frame_with_gaps):
        """Test that 'everything' gives NaN for groups with gaps."""
        res = dcmatrix(frame_with_gaps)
        assert np.isnan(res.dcov[0, 1])
        assert np.isnan(res.dcov[0, 0])
        assert res.dcor[0, 0] == 1.0
        assert np.isfinite(res.dcov[1, 2])
        assert np.isnan(res.corr[0, 1])

    def test_complete_obs_equals_prefiltered_data(self, frame_with_gaps):
        """Test that 'complete.obs' matches dropping incomplete rows first."""
        res = dcmatrix(frame_with_gaps, use="complete.obs")
        clean = frame_with_gaps.dropna().reset_index(drop=True)
        expected = dcmatrix(clean)
        assert res.n == 57
        assert_allclose(res.dcov, expected.dcov)
        assert_allclose(res.dcor, expected.dcor)

    def test_pairwise_counts_rows_per_pair(self, frame_with_gaps):
        """Test that pairwise mode uses the rows complete for each pair."""
        res = dcmatrix(frame_with_gaps, use="pairwise.complete.obs", test="permutation", b=9)
        assert res.ncc[0, 1] == 58
        assert res.ncc[0, 3] == 57
        assert res.ncc[1, 2] == 60
        assert res.ncc[0, 0] == 58
        assert np.isfinite(res.dcov).all()
        assert np.isfinite(res.pvalue).all()

        clean = frame_with_gaps[["a", "b"]].dropna().reset_index(drop=True)
        assert_allclose(res.dcov[0, 1], dcmatrix(clean).dcov[0, 1])

    def test_affine_with_pairwise_rows(self, frame_with_gaps):
        """Test that affine whitening works on groups with gaps in pairwise mode."""
        kwargs = dict(use="pairwise.complete.obs", calc_cor="none")
        plain = dcmatrix(frame_with_gaps, **kwargs)
        whitened = dcmatrix(frame_with_gaps, affine=True, **kwargs)
        # single columns are only rescaled
        assert_allclose(whitened.dcor, plain.dcor, rtol=1e-8)
        assert np.isfinite(whitened.dcor).all()
        assert frame_with_gaps["a"].isna().sum() == 2


class TestConfiguration:
    """Test suite for option validation and warnings."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"test": "ttest"},
            {"use": "all.obs"},
            {"algorithm": "quick"},
            {"calc_cor": "phik"},
            {"test": "permutation", "b": 0},
            {"max_workers": 0},
        ],
    )
    def test_invalid_options_raise(self, dependent_frame, kwargs):
        """Test that invalid option values raise ValueError."""
        with pytest.raises(ValueError):
            dcmatrix(dependent_frame, **kwargs)

    def test_config_is_reusable(self, dependent_frame):
        """Test that a config object drives compute_dcmatrix."""
        config = DCMatrixConfig(test="gamma", calc_cor="none")
        res = compute_dcmatrix(dependent_frame, None, config)
        assert res.test == "gamma"
        assert config.as_call()["calc_cor"] == "none"

    def test_row_mismatch_raises(self, dependent_frame):
        """Test that X and Y need the same rows."""
        with pytest.raises(ValueError, match="same number of rows"):
            dcmatrix(dependent_frame, dependent_frame.iloc[:10])

    def test_kendall_pvalues_warn(self, dependent_frame):
        """Test that Kendall p-values are skipped with a warning."""
        with pytest.warns(UserWarning, match="Kendall"):
            res = dcmatrix(dependent_frame, calc_cor="kendall", calc_pval_cor=True)
        assert res.pval_cor is None
        assert res.corr.shape == (4, 4)

    def test_invalid_adjustment_warns(self, dependent_frame):
        """Test that an unknown adjustment warns and gives no matrix."""
        with pytest.warns(UserWarning):
            res = dcmatrix(dependent_frame, test="gamma", adjustp="tukey")
        assert res.adj_pvalues is None

    def test_adjusted_pvalues(self, dependent_frame):
        """Test Bonferroni over the off-diagonal family."""
        res = dcmatrix(dependent_frame, test="gamma", adjustp="bonferroni")
        lower = np.tril_indices(4, k=-1)
        assert_allclose(res.adj_pvalues[lower], np.minimum(res.pvalue[lower] * 6, 1.0))
        assert_allclose(res.adj_pvalues, res.adj_pvalues.T)

    def test_pearson_pvalues(self, dependent_frame):
        """Test that Pearson p-values are returned on request."""
        res = dcmatrix(dependent_frame, calc_pval_cor=True)
        assert res.pval_cor.shape == (4, 4)
        assert res.pval_cor[0, 1] < 0.001


class TestInvariance:
    """Test suite for affine invariance and seeded reproducibility."""

    def test_affine_invariance(self, rng, dependent_frame):
        """Test that affine=True removes a linear mix inside a group."""
        frame = dependent_frame.copy()
        mixed = frame.copy()
        mixed["a"] = 2.0 * frame["a"] + frame["b"] + 3.0
        mixed["b"] = -frame["a"] + 0.5 * frame["b"]
        groups = ["ab", "ab", "c", "d"]
        base = dcmatrix(frame, group_x=groups, affine=True, calc_cor="none")
        moved = dcmatrix(mixed, group_x=groups, affine=True, calc_cor="none")
        assert_allclose(base.dcor, moved.dcor, rtol=1e-8)

    def test_affine_invariance_of_grouped_second_sample(self, rng, dependent_frame):
        """Test that affine=True removes an affine map of a grouped Y."""
        X = dependent_frame[["a", "c"]]
        Y = pd.DataFrame(
            {
                "p": dependent_frame["b"],
                "q": dependent_frame["d"],
                "r": rng.normal(size=len(dependent_frame)),
            }
        )
        moved = pd.DataFrame(
            {
                "p": 2.0 * Y["p"] + Y["r"] + 1.0,
                "q": 3.0 * Y["q"] - 1.0,
                "r": Y["p"] - Y["r"],
            }
        )
        group_y = ["u", "v", "u"]
        base = dcmatrix(X, Y, group_y=group_y, affine=True, calc_cor="none")
        other = dcmatrix(X, moved, group_y=group_y, affine=True, calc_cor="none")
        assert base.dcor.shape == (2, 2)
        assert base.labels_y == ["u", "v"]
        assert_allclose(base.dcor, other.dcor, rtol=1e-8)

    def test_seeded_permutations_are_reproducible_across_workers(self, dependent_frame):
        """Test that seeded p-values do not depend on the worker count."""
        kwargs = dict(test="permutation", b=49, random_state=5, calc_cor="none")
        serial = dcmatrix(dependent_frame, **kwargs)
        threaded = dcmatrix(dependent_frame, max_workers=2, **kwargs)
        assert_allclose(serial.pvalue, threaded.pvalue)

    def test_seeded_pairwise_permutations_are_reproducible(self, dependent_frame):
        """Test reproducible pairwise permutation p-values across worker counts."""
        kwargs = dict(test="permutation", b=29, random_state=3, calc_cor="none",
                      use="pairwise.complete.obs")
        first = dcmatrix(dependent_frame, **kwargs)
        second = dcmatrix(dependent_frame, max_workers=3, **kwargs)
        assert_allclose(first.pvalue, second.pvalue)


def test_permutation_pvalues_approach_gamma_pvalues():
    """Test that many permutations give p-values close to the gamma approximation."""
    rng = np.random.default_rng(2000)
    n = 300
    u = rng.normal(size=n)
    frame = pd.DataFrame(
        {"u": u, "v": 0.12 * u + rng.normal(size=n), "w": rng.normal(size=n)}
    )
    kwargs = dict(algorithm="standard", calc_cor="none")
    perm = dcmatrix(frame, test="permutation", b=1999, random_state=17, **kwargs)
    gamma = dcmatrix(frame, test="gamma", **kwargs)
    off = ~np.eye(3, dtype=bool)
    assert np.abs(perm.pvalue[off] - gamma.pvalue[off]).max() < 0.06
