from __future__ import annotations

import concurrent.futures as cf
import logging
import math
from dataclasses import dataclass
from typing import Any, Hashable, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from .affine import normalize_groups
from .config import DCMatrixConfig
from .correlation import correlation_matrix, correlation_pvalues
from .estimators import DistanceCovarianceEstimator, make_estimator
from .grouping import GroupData, as_frame, build_groups, partition_columns
from .metrics import MetricSpec, resolve_metrics
from .missing import MissingDataPolicy, common_rows, drop_incomplete
from .moments import Moments, calc_moments
from .result import DCMatrixResult
from .statistics import IndependenceTest, adjust_pvalues, make_test
from .summaries import DistanceAlgorithm, DistanceSummary, make_algorithm, select_algorithm

logger = logging.getLogger(__name__)


@dataclass
class GroupCache:
    """Per-group state reused by every pair the group takes part in."""

    group: GroupData
    prepared: Any
    summary: Optional[DistanceSummary] = None
    dvar: float = math.nan
    moments: Optional[Moments] = None


@dataclass
class PairResult:
    dcov: float = math.nan
    dcor: float = math.nan
    pvalue: float = math.nan
    ncc: int = 0


class PairEvaluator:
    """Computes dCov, dCor and the p-value of one group pair.

    Pairs share nothing mutable, so ``evaluate`` may run on several threads.
    """

    def __init__(
        self,
        algorithm: DistanceAlgorithm,
        estimator: DistanceCovarianceEstimator,
        test: IndependenceTest,
        policy: MissingDataPolicy,
        b: int,
        permutations: Optional[List[np.ndarray]] = None,
    ):
        self.algorithm = algorithm
        self.estimator = estimator
        self.test = test
        self.policy = policy
        self.b = b
        self.permutations = permutations

    def group_cache(self, group: GroupData, skip: bool) -> Optional[GroupCache]:
        if skip:
            return None
        cache = GroupCache(group=group, prepared=self.algorithm.prepare(group))
        if not self.policy.pairwise:
            rows = np.arange(group.values.shape[0])
            cache.summary = self.algorithm.summarize(cache.prepared, group, rows)
            cache.dvar = self.estimator.dvar(cache.summary)
            if self.test.needs_moments:
                cache.moments = calc_moments(cache.summary, self.test.needs_skewness)
        return cache

    def self_dvar(self, cache: GroupCache) -> Tuple[float, int]:
        """Distance variance of a group on its own complete rows."""
        if cache.summary is not None:
            return cache.dvar, cache.summary.ncc
        rows = cache.group.complete_rows
        if rows.size < 2:
            return math.nan, int(rows.size)
        summary = self.algorithm.summarize(cache.prepared, cache.group, rows)
        return self.estimator.dvar(summary), summary.ncc

    def evaluate(self, cx: GroupCache, cy: GroupCache, seed: Optional[np.random.SeedSequence] = None) -> PairResult:
        if self.policy.pairwise:
            rows = common_rows(cx.group.complete, cy.group.complete)
            if rows.size < 2:
                return PairResult(ncc=int(rows.size))
            sx = self.algorithm.summarize(cx.prepared, cx.group, rows)
            sy = self.algorithm.summarize(cy.prepared, cy.group, rows)
            dvar_x = self.estimator.dvar(sx)
            dvar_y = self.estimator.dvar(sy)
            if self.test.needs_moments:
                moments_x = calc_moments(sx, self.test.needs_skewness)
                moments_y = calc_moments(sy, self.test.needs_skewness)
            else:
                moments_x = moments_y = None
            permutations = None
            if self.test.needs_resamples:
                rng = np.random.default_rng(seed)
                permutations = [rng.permutation(rows.size) for _ in range(self.b)]
        else:
            sx, sy = cx.summary, cy.summary
            dvar_x, dvar_y = cx.dvar, cy.dvar
            moments_x, moments_y = cx.moments, cy.moments
            permutations = self.permutations

        terms = self.algorithm.combine(sx, sy, keep_raw=self.test.needs_resamples)
        with np.errstate(divide="ignore", invalid="ignore"):
            dcov2 = self.estimator.pair_dcov2(terms)
            return PairResult(
                dcov=self.estimator.dcov(dcov2),
                dcor=self.estimator.dcor(dcov2, dvar_x, dvar_y),
                pvalue=self.test.pvalue(
                    terms, dcov2, moments_x, moments_y, permutations=permutations
                ),
                ncc=terms.ncc,
            )


def _prepare_groups(frame, group, metr, fc_discrete) -> List[GroupData]:
    specs = partition_columns(frame.shape[1], group, frame.columns)
    metrics = resolve_metrics(metr, len(specs))
    return build_groups(frame, specs, metrics, fc_discrete=fc_discrete)


def compute_dcmatrix(X: Any, Y: Any, config: DCMatrixConfig) -> DCMatrixResult:
    """Run a validated configuration on X (and Y)."""
    policy = config.missing_policy
    with_y = Y is not None

    frame_x = as_frame(X, "X")
    frame_y = as_frame(Y, "Y") if with_y else None
    if with_y and frame_y.shape[0] != frame_x.shape[0]:
        raise ValueError("X and Y must have same number of rows (samples)")
    data_x, data_y = frame_x, frame_y

    if policy is MissingDataPolicy.COMPLETE_OBS:
        frame_x, frame_y, _ = drop_incomplete(frame_x, frame_y)
    n = frame_x.shape[0]

    groups_x = _prepare_groups(frame_x, config.group_x, config.metr_x, config.fc_discrete)
    groups_y = (
        _prepare_groups(frame_y, config.group_y, config.metr_y, config.fc_discrete)
        if with_y else None
    )
    algorithm_name = select_algorithm(config.algorithm, n, groups_x, groups_y, config.test)

    if config.affine:
        normalize_groups(groups_x, pairwise=policy.pairwise)
        if with_y:
            normalize_groups(groups_y, pairwise=policy.pairwise)

    algorithm = make_algorithm(algorithm_name)
    estimator = make_estimator(config.bias_corr)
    test = make_test(config.test, b=config.b, estimator=estimator, algorithm=algorithm)

    d_x = len(groups_x)
    d_y = len(groups_y) if with_y else d_x

    seeds = np.random.SeedSequence(config.random_state)
    permutations = None
    if test.needs_resamples and not policy.pairwise:
        rng = np.random.default_rng(seeds.spawn(1)[0])
        permutations = [rng.permutation(n) for _ in range(config.b)]

    evaluator = PairEvaluator(algorithm, estimator, test, policy, config.b, permutations)

    # under "everything" a group with any missing value is left out entirely
    skip_incomplete = policy is MissingDataPolicy.EVERYTHING
    caches_x = [evaluator.group_cache(g, skip_incomplete and not g.is_complete) for g in groups_x]
    if with_y:
        caches_y = [evaluator.group_cache(g, skip_incomplete and not g.is_complete) for g in groups_y]
    else:
        caches_y = caches_x
    for name, groups, caches in (("X", groups_x, caches_x), ("Y", groups_y or [], caches_y)):
        missing = [g.label for g, c in zip(groups, caches) if c is None]
        if missing:
            logger.debug("Skipping %s groups with missing values: %s", name, missing)

    dcov = np.full((d_x, d_y), np.nan) if config.calc_dcov else None
    dcor = np.full((d_x, d_y), np.nan) if config.calc_dcor else None
    pvalue = np.full((d_x, d_y), np.nan) if config.test != "none" else None
    ncc = np.zeros((d_x, d_y), dtype=int)

    if not with_y:
        for i, cache in enumerate(caches_x):
            if cache is not None:
                dvar, rows_used = evaluator.self_dvar(cache)
                ncc[i, i] = rows_used
                if dcov is not None:
                    dcov[i, i] = estimator.dcov(dvar)
        if dcor is not None:
            np.fill_diagonal(dcor, 1.0)
        if pvalue is not None:
            np.fill_diagonal(pvalue, 0.0)

    if with_y:
        pairs = [(i, j) for i in range(d_x) for j in range(d_y)]
    else:
        pairs = [(i, j) for i in range(d_x) for j in range(i + 1, d_x)]
    pairs = [(i, j) for i, j in pairs if caches_x[i] is not None and caches_y[j] is not None]
    pair_seeds = seeds.spawn(len(pairs)) if policy.pairwise and test.needs_resamples else [None] * len(pairs)

    jobs = [(caches_x[i], caches_y[j], s) for (i, j), s in zip(pairs, pair_seeds)]
    if config.max_workers is not None and config.max_workers > 1 and len(jobs) > 1:
        executor = cf.ThreadPoolExecutor(max_workers=config.max_workers)
        results = executor.map(lambda job: evaluator.evaluate(*job), jobs)
    else:
        executor = None
        results = (evaluator.evaluate(*job) for job in jobs)

    try:
        for (i, j), res in tqdm(
            zip(pairs, results), total=len(pairs), desc="Group pairs", disable=not config.progress
        ):
            cells = [(i, j)] if with_y else [(i, j), (j, i)]
            for a, c in cells:
                if dcov is not None:
                    dcov[a, c] = res.dcov
                if dcor is not None:
                    dcor[a, c] = res.dcor
                if pvalue is not None:
                    pvalue[a, c] = res.pvalue
                ncc[a, c] = res.ncc
    finally:
        if executor is not None:
            executor.shutdown()

    corr = pval_cor = None
    if config.calc_cor != "none":
        corr = correlation_matrix(frame_x, frame_y, config.calc_cor, policy)
        if config.calc_pval_cor:
            pval_cor = correlation_pvalues(frame_x, frame_y, config.calc_cor, policy)

    adj = adjust_pvalues(pvalue, config.adjustp, symmetric=not with_y)

    return DCMatrixResult(
        dcov=dcov,
        dcor=dcor,
        pvalue=pvalue,
        adj_pvalues=adj,
        ncc=ncc,
        labels_x=[g.label for g in groups_x],
        labels_y=[g.label for g in (groups_y if with_y else groups_x)],
        metrics_x=[g.metric for g in groups_x],
        metrics_y=[g.metric for g in groups_y] if with_y else None,
        with_y=with_y,
        n=n,
        b=config.b,
        test=config.test,
        algorithm=algorithm_name,
        calc_dcov=config.calc_dcov,
        calc_dcor=config.calc_dcor,
        bias_corr=config.bias_corr,
        affine=config.affine,
        calc_cor=config.calc_cor,
        use=policy.value,
        call=config.as_call(),
        corr=corr,
        pval_cor=pval_cor,
        X=data_x if config.return_data else None,
        Y=data_y if config.return_data else None,
    )


def dcmatrix(
    X: Any,
    Y: Any = None,
    *,
    calc_dcov: bool = True,
    calc_dcor: bool = True,
    calc_cor: str = "pearson",
    calc_pval_cor: bool = False,
    return_data: bool = True,
    test: str = "none",
    adjustp: str = "none",
    b: int = 499,
    affine: bool = False,
    bias_corr: bool = True,
    group_x: Optional[Sequence[Hashable]] = None,
    group_y: Optional[Sequence[Hashable]] = None,
    metr_x: MetricSpec = "euclidean",
    metr_y: MetricSpec = "euclidean",
    use: str = "everything",
    algorithm: str = "auto",
    fc_discrete: bool = False,
    random_state: Optional[int] = None,
    max_workers: Optional[int] = None,
    progress: bool = False,
) -> DCMatrixResult:
    """Distance covariance and distance correlation matrices between groups.

    Without ``Y`` all groups of X are compared with each other (symmetric
    matrices, dCor diagonal 1, p-value diagonal 0). With ``Y`` every group of
    X is compared with every group of Y.

    Parameters
    ----------
    X, Y
        Samples with the same number of rows: DataFrames, 2-D arrays, or 1-D
        arrays/Series for a single column.
    **options
        See :class:`dcmatrix.config.DCMatrixConfig` for every keyword.

    Returns
    -------
    DCMatrixResult

    Raises
    ------
    ValueError
        Unknown ``test``, ``use``, ``algorithm`` or ``calc_cor``; X and Y with
        different row counts; bb3 with an algorithm other than standard.
    """
    config = DCMatrixConfig(
        calc_dcov=calc_dcov,
        calc_dcor=calc_dcor,
        calc_cor=calc_cor,
        calc_pval_cor=calc_pval_cor,
        return_data=return_data,
        test=test,
        adjustp=adjustp,
        b=b,
        affine=affine,
        bias_corr=bias_corr,
        group_x=group_x,
        group_y=group_y,
        metr_x=metr_x,
        metr_y=metr_y,
        use=use,
        algorithm=algorithm,
        fc_discrete=fc_discrete,
        random_state=random_state,
        max_workers=max_workers,
        progress=progress,
    )
    return compute_dcmatrix(X, Y, config)


__all__ = ["DCMatrixConfig", "PairEvaluator", "compute_dcmatrix", "dcmatrix"]
