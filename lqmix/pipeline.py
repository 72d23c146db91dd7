"""End-to-end analysis: select covariates, aggregate repeated fits, compare.

.. code-block:: python

    from lqmix.datasets import make_crohn_abundance
    from lqmix.pipeline import run_analysis

    frame = make_crohn_abundance(random_state=1).frame
    result = run_analysis(frame, random_state=1)
    result.long_table.head()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import pandas as pd

from lqmix._config import LqmmControl, ModelSpec
from lqmix.comparison import LinearMixedFit, fit_linear_mixed
from lqmix.reporting import to_long_table
from lqmix.selection._aggregate import (
    DEFAULT_TAUS,
    AggregationResult,
    aggregate_repeated_fits,
)
from lqmix.selection._enumerate import EnumerationResult, enumerate_models

logger = logging.getLogger(__name__)

BASE_FORMULA = "log_density ~ group * visit"
CANDIDATE_COVARIATES = ("age_centered", "sex", "smoking")


@dataclass(frozen=True, eq=False)
class AnalysisResult:
    enumeration: EnumerationResult
    aggregation: AggregationResult
    comparison: Optional[LinearMixedFit]
    long_table: pd.DataFrame


def run_analysis(
    data: pd.DataFrame,
    base_formula: str = BASE_FORMULA,
    covariates: Sequence[str] = CANDIDATE_COVARIATES,
    taus: Sequence[float] = DEFAULT_TAUS,
    selection_tau: float = 0.5,
    random: str = "~ visit",
    group: str = "individual",
    covariance: str = "pdDiag",
    control: Optional[LqmmControl] = None,
    n_runs: int = 10,
    nboot: int = 50,
    compare_lmm: bool = True,
    on_failure: str = "warn",
    random_state=None,
    n_jobs: Optional[int] = None,
) -> AnalysisResult:
    """Run covariate selection, repeated-fit aggregation and the LMM fit.

    The covariate subset with the smallest BIC at *selection_tau* is
    refitted ``n_runs`` times over *taus*.  The long table stacks the
    quantile medians (label ``"lqmm"``) and, when *compare_lmm* is set,
    the linear mixed model (label ``"lmm"``).
    """
    spec = ModelSpec(
        fixed=base_formula,
        random=random,
        group=group,
        tau=selection_tau,
        covariance=covariance,
        control=control or LqmmControl(),
    )
    enumeration = enumerate_models(data, spec, covariates,
                                   on_failure=on_failure, n_jobs=n_jobs)
    chosen = spec.with_fixed(enumeration.selected.formula)
    aggregation = aggregate_repeated_fits(
        data, chosen, taus=taus, n_runs=n_runs, nboot=nboot,
        random_state=random_state, n_jobs=n_jobs,
    )

    frames = [to_long_table(aggregation, label="lqmm")]
    comparison = None
    if compare_lmm:
        comparison = fit_linear_mixed(data, chosen.fixed, random=random,
                                      group=group)
        frames.append(to_long_table(comparison.table, label="lmm"))

    return AnalysisResult(
        enumeration=enumeration,
        aggregation=aggregation,
        comparison=comparison,
        long_table=pd.concat(frames, ignore_index=True),
    )
