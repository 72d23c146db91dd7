"""Model selection and repeated-fit aggregation."""

from lqmix.selection._aggregate import (
    DEFAULT_TAUS,
    AggregatedTable,
    AggregationResult,
    aggregate_repeated_fits,
    median_of_runs,
)
from lqmix.selection._enumerate import (
    CandidateFit,
    EnumerationResult,
    covariate_subsets,
    enumerate_formulas,
    enumerate_models,
)

__all__ = [
    "CandidateFit",
    "EnumerationResult",
    "covariate_subsets",
    "enumerate_formulas",
    "enumerate_models",
    "AggregatedTable",
    "AggregationResult",
    "aggregate_repeated_fits",
    "median_of_runs",
    "DEFAULT_TAUS",
]
