"""Ordinary linear mixed model fitted once as a reference.

Wraps :func:`statsmodels.formula.api.mixedlm` and returns its fixed
effects in the same table layout as the quantile fits.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from lqmix.mixed._inference import CoefficientTable


@dataclass(frozen=True, eq=False)
class LinearMixedFit:
    """Fixed-effect table and variance components of a ``MixedLM`` fit."""

    table: CoefficientTable
    loglik: float
    cov_re: pd.DataFrame
    scale: float
    converged: bool


def fit_linear_mixed(
    data: pd.DataFrame,
    fixed: str,
    random: str = "~ visit",
    group: str = "individual",
    reml: bool = True,
    alpha: float = 0.05,
) -> LinearMixedFit:
    """Fit ``fixed`` with random ``random`` effects grouped by ``group``.

    The random-effects covariance is unstructured.

    Returns
    -------
    LinearMixedFit
    """
    if group not in data.columns:
        raise ValueError(f"Grouping column {group!r} not in data.")
    model = smf.mixedlm(fixed, data, groups=data[group], re_formula=random)
    result = model.fit(reml=reml)

    names = list(result.fe_params.index)
    ci = result.conf_int(alpha=alpha).loc[names]
    table = CoefficientTable(
        names,
        result.fe_params.to_numpy(),
        result.bse_fe.loc[names].to_numpy(),
        ci.iloc[:, 0].to_numpy(),
        ci.iloc[:, 1].to_numpy(),
        result.pvalues.loc[names].to_numpy(),
        tau=None,
        method="lmm",
    )
    return LinearMixedFit(
        table=table,
        loglik=float(result.llf),
        cov_re=result.cov_re,
        scale=float(result.scale),
        converged=bool(getattr(result, "converged", True)),
    )
