"""lqmix — linear quantile mixed models for longitudinal data.

Fits quantile mixed-effects models by maximising an asymmetric-Laplace
likelihood integrated with Gauss-Hermite quadrature, selects covariates
by BIC and stabilises bootstrap inference by taking medians over
repeated fits.

Quick start::

    from lqmix import ModelSpec, enumerate_models, aggregate_repeated_fits
    from lqmix.datasets import make_crohn_abundance

    frame = make_crohn_abundance(random_state=0).frame
    spec = ModelSpec(fixed="log_density ~ group * visit")
    selection = enumerate_models(frame, spec, ["age_centered", "sex", "smoking"])
    result = aggregate_repeated_fits(
        frame, spec.with_fixed(selection.selected.formula), random_state=0
    )
"""

__version__ = "0.1.0"

from lqmix._config import LqmmControl, ModelSpec
from lqmix.comparison import LinearMixedFit, fit_linear_mixed
from lqmix.datasets import make_crohn_abundance, prepare_observations
from lqmix.estimators._base import BaseQuantileEstimator
from lqmix.exceptions import DataValidationError, FitFailedError
from lqmix.mixed._estimator import QuantileMixedRegressor
from lqmix.mixed._inference import STAT_COLUMNS, CoefficientTable
from lqmix.mixed.solvers import get_solver, list_solvers, register_solver
from lqmix.mixed.solvers.base import BaseSolver, SolverResult
from lqmix.reporting import to_long_table
from lqmix.selection import (
    AggregatedTable,
    AggregationResult,
    EnumerationResult,
    aggregate_repeated_fits,
    enumerate_formulas,
    enumerate_models,
    median_of_runs,
)

__all__ = [
    "BaseQuantileEstimator",
    "QuantileMixedRegressor",
    "LqmmControl",
    "ModelSpec",
    "BaseSolver",
    "SolverResult",
    "CoefficientTable",
    "STAT_COLUMNS",
    "EnumerationResult",
    "AggregatedTable",
    "AggregationResult",
    "LinearMixedFit",
    "DataValidationError",
    "FitFailedError",
    "enumerate_formulas",
    "enumerate_models",
    "aggregate_repeated_fits",
    "median_of_runs",
    "fit_linear_mixed",
    "to_long_table",
    "make_crohn_abundance",
    "prepare_observations",
    "get_solver",
    "list_solvers",
    "register_solver",
]
