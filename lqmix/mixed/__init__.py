"""Linear quantile mixed models.

Contains the :class:`QuantileMixedRegressor` estimator, the likelihood and
covariance parameterizations, block-bootstrap inference and the solver
registry.
"""

from lqmix.mixed._bootstrap import BootstrapResult, block_bootstrap
from lqmix.mixed._covariance import COVARIANCE_TYPES, cov_matrix, n_cov_params
from lqmix.mixed._estimator import QuantileMixedRegressor
from lqmix.mixed._inference import STAT_COLUMNS, CoefficientTable, bootstrap_table
from lqmix.mixed._likelihood import MixedQuantileProblem
from lqmix.mixed.solvers import get_solver, list_solvers, register_solver
from lqmix.mixed.solvers.base import BaseSolver, SolverResult

__all__ = [
    "QuantileMixedRegressor",
    "MixedQuantileProblem",
    "BaseSolver",
    "SolverResult",
    "CoefficientTable",
    "BootstrapResult",
    "STAT_COLUMNS",
    "COVARIANCE_TYPES",
    "block_bootstrap",
    "bootstrap_table",
    "cov_matrix",
    "n_cov_params",
    "get_solver",
    "list_solvers",
    "register_solver",
]
