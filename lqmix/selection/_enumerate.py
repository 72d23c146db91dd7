"""Brute-force covariate selection by information criteria.

Every subset of the candidate covariates is added to a base formula, the
resulting model is fitted at a single quantile and the model with the
smallest BIC is selected.  Candidates are enumerated by subset size and
then by the lexical order of the covariate names; that order also breaks
ties, since the first minimum wins.
"""

from __future__ import annotations

import itertools
import logging
import math
import warnings
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from patsy import PatsyError
from sklearn.exceptions import ConvergenceWarning

from lqmix._config import ModelSpec
from lqmix.exceptions import FitFailedError

logger = logging.getLogger(__name__)

_ON_FAILURE = ("warn", "raise")


@dataclass(frozen=True)
class CandidateFit:
    """Information criteria of one candidate model.

    ``error`` holds the failure message when the fit raised; ``aic``,
    ``bic`` and ``loglik`` are then NaN.
    """

    formula: str
    covariates: tuple
    aic: float
    bic: float
    loglik: float
    converged: bool
    error: Optional[str] = None

    @property
    def usable(self) -> bool:
        return self.error is None and self.converged and np.isfinite(self.bic)


@dataclass(frozen=True)
class EnumerationResult:
    """All candidates plus the BIC- and AIC-minimising ones.

    ``selected`` (min BIC) is the model carried forward; ``aic_selected``
    is kept for comparison only.
    """

    candidates: tuple
    selected: CandidateFit
    aic_selected: CandidateFit
    tau: float

    @property
    def excluded(self) -> tuple:
        return tuple(c for c in self.candidates if not c.usable)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "formula": [c.formula for c in self.candidates],
            "n_covariates": [len(c.covariates) for c in self.candidates],
            "aic": [c.aic for c in self.candidates],
            "bic": [c.bic for c in self.candidates],
            "loglik": [c.loglik for c in self.candidates],
            "converged": [c.converged for c in self.candidates],
            "selected": [c is self.selected for c in self.candidates],
        })


def covariate_subsets(covariates: Sequence[str]) -> list[tuple]:
    """All subsets of *covariates*, smallest first, lexical within a size."""
    names = [str(c) for c in covariates]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate covariate names in {names}.")
    names = sorted(names)
    return [
        subset
        for k in range(len(names) + 1)
        for subset in itertools.combinations(names, k)
    ]


def _add_terms(base: str, subset: Sequence[str]) -> str:
    return base + "".join(f" + {name}" for name in subset)


def enumerate_formulas(base: str, covariates: Sequence[str]) -> list[str]:
    """Return the ``2 ** len(covariates)`` formulas ``base + subset``.

    >>> enumerate_formulas("y ~ g", ["b", "a"])
    ['y ~ g', 'y ~ g + a', 'y ~ g + b', 'y ~ g + a + b']
    """
    return [_add_terms(base, s) for s in covariate_subsets(covariates)]


def _fit_candidate(data: pd.DataFrame, spec: ModelSpec, subset: tuple) -> CandidateFit:
    formula = _add_terms(spec.fixed, subset)
    model = spec.with_fixed(formula).build_estimator()
    try:
        with warnings.catch_warnings():
            # reported once by the enumerator
            warnings.simplefilter("ignore", ConvergenceWarning)
            model.fit(data)
    except (ValueError, np.linalg.LinAlgError, FloatingPointError, PatsyError) as exc:
        return CandidateFit(formula, subset, math.nan, math.nan, math.nan,
                            converged=False, error=f"{type(exc).__name__}: {exc}")
    return CandidateFit(
        formula,
        subset,
        aic=float(model.aic_[0]),
        bic=float(model.bic_[0]),
        loglik=float(model.loglik_[0]),
        converged=bool(model.converged_[0]),
    )


def enumerate_models(
    data: pd.DataFrame,
    spec: ModelSpec,
    covariates: Sequence[str],
    on_failure: str = "warn",
    n_jobs: Optional[int] = None,
) -> EnumerationResult:
    """Fit ``spec.fixed + S`` for every subset ``S`` of *covariates*.

    Parameters
    ----------
    data : DataFrame
        Prepared observations.
    spec : ModelSpec
        Base model.  ``spec.fixed`` is the core formula and ``spec.tau``
        must hold exactly one quantile.
    covariates : sequence of str
        Optional terms to add.
    on_failure : {"warn", "raise"}
        ``"warn"`` drops candidates that raise or do not converge from the
        comparison and emits a ``UserWarning``; ``"raise"`` makes them
        fatal.
    n_jobs : int or None
        Parallel fits through joblib.  Result order does not depend on it.

    Returns
    -------
    EnumerationResult

    Raises
    ------
    FitFailedError
        When ``on_failure="raise"`` and a candidate failed, or when no
        candidate is usable.
    """
    if on_failure not in _ON_FAILURE:
        raise ValueError(
            f"on_failure must be one of {list(_ON_FAILURE)}, got {on_failure!r}."
        )
    if len(spec.tau) != 1:
        raise ValueError(
            f"Model enumeration uses a single quantile, got {spec.tau}."
        )

    subsets = covariate_subsets(covariates)
    logger.info("Enumerating %d candidate models at tau=%g",
                len(subsets), spec.tau[0])
    candidates = tuple(Parallel(n_jobs=n_jobs)(
        delayed(_fit_candidate)(data, spec, subset) for subset in subsets
    ))

    failed = [c for c in candidates if not c.usable]
    for c in failed:
        reason = c.error or "did not converge"
        if on_failure == "raise":
            raise FitFailedError(f"Candidate {c.formula!r} failed: {reason}")
        warnings.warn(
            f"Excluding candidate {c.formula!r} from model selection: {reason}",
            UserWarning,
            stacklevel=2,
        )

    usable = [c for c in candidates if c.usable]
    if not usable:
        raise FitFailedError("No candidate model could be fitted.")

    # min() keeps the first of equal values, i.e. enumeration order
    selected = min(usable, key=lambda c: c.bic)
    aic_selected = min(usable, key=lambda c: c.aic)
    logger.info("Selected %r (BIC=%.3f); AIC prefers %r",
                selected.formula, selected.bic, aic_selected.formula)
    return EnumerationResult(
        candidates=candidates,
        selected=selected,
        aic_selected=aic_selected,
        tau=spec.tau[0],
    )
