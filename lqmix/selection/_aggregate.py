"""Repeated fitting with cell-wise median aggregation.

Bootstrap standard errors, intervals and p-values of a quantile mixed
model change from one run to the next.  :func:`aggregate_repeated_fits`
fits the same specification ``n_runs`` times, each with a fresh estimator
and its own seed, and reports the median of every
(quantile, term, statistic) cell across runs.  Medians are never taken
across quantiles or terms.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from patsy import PatsyError
from sklearn.exceptions import ConvergenceWarning
from sklearn.utils import check_random_state

from lqmix._config import ModelSpec, normalize_taus
from lqmix.exceptions import FitFailedError
from lqmix.mixed._inference import STAT_COLUMNS, CoefficientTable

logger = logging.getLogger(__name__)

#: Quantile grid used when none is given.
DEFAULT_TAUS = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9)


def median_of_runs(stack) -> tuple[np.ndarray, np.ndarray]:
    """Cell-wise median over the first axis, ignoring NaN.

    Parameters
    ----------
    stack : array-like, shape (n_runs, ...)

    Returns
    -------
    medians : ndarray, shape ``stack.shape[1:]``
        NaN where no run produced a value.
    n_valid : ndarray of int, same shape
        Number of non-missing runs per cell.
    """
    stack = np.asarray(stack, dtype=np.float64)
    n_valid = np.sum(~np.isnan(stack), axis=0)
    with warnings.catch_warnings():
        # all-NaN cells are expected and reported through n_valid
        warnings.simplefilter("ignore", RuntimeWarning)
        medians = np.nanmedian(stack, axis=0)
    return medians, n_valid


@dataclass(frozen=True, eq=False)
class AggregatedTable:
    """Median-of-runs coefficient table for one quantile.

    Attributes
    ----------
    tau : float
    terms : tuple of str
    medians : ndarray, shape (n_terms, 5)
        Columns in :data:`~lqmix.mixed.STAT_COLUMNS` order.
    n_valid : ndarray of int, shape (n_terms, 5)
    n_runs : int
    """

    tau: float
    terms: tuple
    medians: np.ndarray
    n_valid: np.ndarray
    n_runs: int

    @property
    def low_confidence(self) -> np.ndarray:
        """Cells backed by fewer than half of the runs."""
        return self.n_valid < self.n_runs / 2.0

    def as_coefficient_table(self) -> CoefficientTable:
        return CoefficientTable.from_values(self.terms, self.medians,
                                            tau=self.tau, method="median")

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(self.medians, index=list(self.terms),
                             columns=list(STAT_COLUMNS))
        frame.index.name = "term"
        frame["low_confidence"] = self.low_confidence.any(axis=1)
        return frame


@dataclass(frozen=True, eq=False)
class AggregationResult:
    """Output of :func:`aggregate_repeated_fits`.

    ``tables`` follows the order of ``taus``.  ``errors`` holds one message
    per run that failed entirely.
    """

    spec: ModelSpec
    taus: tuple
    tables: tuple
    n_runs: int
    n_successful: int
    errors: tuple = ()

    def __getitem__(self, tau: float) -> AggregatedTable:
        for t, table in zip(self.taus, self.tables):
            if np.isclose(t, tau):
                return table
        raise KeyError(f"No aggregated table for tau={tau}.")

    def __iter__(self):
        return iter(self.tables)

    def __len__(self) -> int:
        return len(self.tables)


@dataclass(frozen=True, eq=False)
class _RunOutcome:
    tables: Optional[tuple] = None
    converged: Optional[tuple] = None
    error: Optional[str] = None


def _single_run(data, spec: ModelSpec, nboot: int, alpha: float,
                seed: int) -> _RunOutcome:
    model = spec.build_estimator()
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            model.fit(data)
        tables = model.summary(nboot=nboot, alpha=alpha, random_state=seed)
    except (ValueError, np.linalg.LinAlgError, FloatingPointError, PatsyError) as exc:
        return _RunOutcome(error=f"{type(exc).__name__}: {exc}")
    return _RunOutcome(tables=tuple(tables),
                       converged=tuple(bool(c) for c in model.converged_))


def aggregate_repeated_fits(
    data: pd.DataFrame,
    spec: ModelSpec,
    taus: Sequence[float] = DEFAULT_TAUS,
    n_runs: int = 10,
    nboot: int = 50,
    alpha: float = 0.05,
    random_state=None,
    n_jobs: Optional[int] = None,
) -> AggregationResult:
    """Fit *spec* ``n_runs`` times and take cell-wise medians.

    Parameters
    ----------
    data : DataFrame
        Prepared observations.
    spec : ModelSpec
        Selected model; its ``tau`` is replaced by *taus*.
    taus : sequence of float
        Quantile levels, in output order.
    n_runs : int
        Number of independent runs.
    nboot : int
        Bootstrap replicates per run and quantile.
    alpha : float
        Significance level of the confidence bounds.
    random_state : int, RandomState or None
        Seeds the per-run seeds.
    n_jobs : int or None
        Parallel runs through joblib.

    Returns
    -------
    AggregationResult

    Notes
    -----
    A run that raises contributes nothing.  A run that does not converge
    at some quantile contributes nothing to that quantile's table.  Terms
    missing from a run are missing values, never zeros.

    Raises
    ------
    FitFailedError
        If every run failed.
    """
    if n_runs < 1:
        raise ValueError(f"n_runs must be >= 1, got {n_runs}.")
    taus = normalize_taus(taus)
    run_spec = spec.with_tau(taus)
    rng = check_random_state(random_state)
    seeds = rng.randint(np.iinfo(np.int32).max, size=n_runs)

    logger.info("Fitting %r %d times at %d quantile(s)",
                spec.fixed, n_runs, len(taus))
    outcomes = Parallel(n_jobs=n_jobs)(
        delayed(_single_run)(data, run_spec, nboot, alpha, int(seed))
        for seed in seeds
    )

    errors = tuple(o.error for o in outcomes if o.error is not None)
    ok = [o for o in outcomes if o.error is None]
    for message in errors:
        warnings.warn(f"Run failed and is excluded from the medians: {message}",
                      UserWarning, stacklevel=2)
    if not ok:
        raise FitFailedError(f"All {n_runs} runs failed: {errors[0]}")

    tables = []
    for k, tau in enumerate(taus):
        terms: list[str] = []
        for o in ok:
            for term in o.tables[k].terms:
                if term not in terms:
                    terms.append(term)
        stack = np.full((n_runs, len(terms), len(STAT_COLUMNS)), np.nan)
        for r, o in enumerate(ok):
            if not o.converged[k]:
                continue
            frame = o.tables[k].to_frame().reindex(terms)
            stack[r] = frame.to_numpy(dtype=np.float64)
        medians, n_valid = median_of_runs(stack)
        table = AggregatedTable(tau=tau, terms=tuple(terms), medians=medians,
                                n_valid=n_valid, n_runs=n_runs)
        if table.low_confidence.any():
            logger.warning("tau=%g: %d cell(s) rest on fewer than half of the runs",
                           tau, int(table.low_confidence.sum()))
        tables.append(table)

    return AggregationResult(
        spec=run_spec,
        taus=taus,
        tables=tuple(tables),
        n_runs=n_runs,
        n_successful=len(ok),
        errors=errors,
    )
