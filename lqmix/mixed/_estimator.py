"""Linear quantile mixed model estimator.

This is the main public API for the ``lqmix`` package.

.. code-block:: python

    from lqmix import QuantileMixedRegressor
    model = QuantileMixedRegressor(
        fixed="log_density ~ group * visit",
        random="~ visit",
        group="individual",
        tau=[0.25, 0.5, 0.75],
    )
    model.fit(frame)
    tables = model.summary(nboot=50, random_state=0)

Notes
-----
* Each quantile is fitted independently from the same OLS starting point,
  so the point estimates are a deterministic function of the data and the
  control settings.  Only :meth:`summary` draws random numbers.
* ``df`` for the information criteria counts the fixed effects, the
  covariance parameters and the scale; BIC uses the number of
  observations.
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional

import numpy as np
import pandas as pd
import patsy
from sklearn.exceptions import ConvergenceWarning
from sklearn.utils import check_random_state
from sklearn.utils.validation import check_is_fitted

from lqmix._config import LqmmControl, normalize_taus
from lqmix._typing import TauLike
from lqmix.estimators._base import BaseQuantileEstimator, information_criteria
from lqmix.mixed._bootstrap import block_bootstrap
from lqmix.mixed._covariance import check_covariance, cov_matrix
from lqmix.mixed._inference import CoefficientTable, bootstrap_table
from lqmix.mixed._likelihood import MixedQuantileProblem
from lqmix.mixed.solvers import get_solver
from lqmix.mixed.solvers.base import SolverResult

logger = logging.getLogger(__name__)


class QuantileMixedRegressor(BaseQuantileEstimator):
    """Linear quantile mixed model (asymmetric Laplace, Gauss-Hermite).

    Parameters
    ----------
    fixed : str
        Patsy formula for the response and the fixed effects, e.g.
        ``"log_density ~ group * visit"``.
    random : str, default="~ 1"
        One-sided patsy formula for the random effects.
    group : str, default="individual"
        Column identifying the grouping unit.
    tau : float or sequence of float, default=0.5
        Quantile level(s).  Each is fitted separately.
    covariance : str, default="pdDiag"
        ``"pdIdent"``, ``"pdDiag"``, ``"pdCompSymm"`` or ``"pdSymm"``.
    control : LqmmControl or None
        Solver settings.  ``None`` means ``LqmmControl()``.

    Attributes
    ----------
    coef_ : DataFrame, shape (n_terms, n_quantiles)
        Fixed-effect estimates, one column per quantile.
    term_names_ : list of str
    taus_ : tuple of float
    sigma_ : ndarray, shape (n_quantiles,)
        Asymmetric Laplace scale per quantile.
    cov_re_ : list of DataFrame
        Random-effects covariance matrix per quantile.
    loglik_, aic_, bic_ : ndarray, shape (n_quantiles,)
    converged_ : ndarray of bool, shape (n_quantiles,)
    n_iter_ : list of int
    solver_results_ : list of SolverResult
    n_obs_, n_groups_ : int
    """

    def __init__(
        self,
        fixed: str = "y ~ 1",
        random: str = "~ 1",
        group: str = "individual",
        tau: TauLike = 0.5,
        covariance: str = "pdDiag",
        control: Optional[LqmmControl] = None,
    ) -> None:
        self.fixed = fixed
        self.random = random
        self.group = group
        self.tau = tau
        self.covariance = covariance
        self.control = control

    # ──────────────────────────────────────────────────────────────────
    # fit / predict
    # ──────────────────────────────────────────────────────────────────

    def fit(self, data: pd.DataFrame):
        """Fit the model to *data*.

        Parameters
        ----------
        data : DataFrame
            Must contain every column used by ``fixed``, ``random`` and
            ``group``.  Rows with missing values are rejected.

        Returns
        -------
        self
        """
        check_covariance(self.covariance)
        taus = normalize_taus(self.tau)
        control = self.control or LqmmControl()

        problem, design_info, random_names, levels = self._build_problem(
            data, control.n_nodes)
        solver = get_solver(control.method)

        results: list[SolverResult] = []
        for t in taus:
            res = solver.solve(problem, t, control)
            if not res.converged:
                warnings.warn(
                    f"Quantile mixed model did not converge at tau={t:g} "
                    f"within {control.max_iter} iterations.",
                    ConvergenceWarning,
                    stacklevel=2,
                )
            results.append(res)

        terms = list(design_info.column_names)
        self.taus_ = taus
        self.term_names_ = terms
        self.random_names_ = random_names
        self.group_levels_ = levels
        self.design_info_ = design_info
        self.problem_ = problem
        self.control_ = control
        self.n_obs_ = problem.n_obs
        self.n_groups_ = problem.n_groups
        self.solver_results_ = results

        self.coef_ = pd.DataFrame(
            np.column_stack([r.beta for r in results]),
            index=terms,
            columns=list(taus),
        )
        self.sigma_ = np.array([r.sigma for r in results])
        self.cov_re_ = [
            pd.DataFrame(cov_matrix(r.theta, self.covariance, problem.q),
                         index=random_names, columns=random_names)
            for r in results
        ]
        self.loglik_ = np.array([r.loglik for r in results])
        df = problem.p + problem.m + 1
        ics = [information_criteria(r.loglik, df, problem.n_obs) for r in results]
        self.aic_ = np.array([a for a, _ in ics])
        self.bic_ = np.array([b for _, b in ics])
        self.converged_ = np.array([r.converged for r in results])
        self.n_iter_ = [r.iterations for r in results]

        logger.debug("Fitted %r on %d observations in %d groups (taus=%s)",
                     self.fixed, problem.n_obs, problem.n_groups, taus)
        return self

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        """Population-level predictions (random effects at zero).

        Returns
        -------
        ndarray, shape (n_samples,) or (n_samples, n_quantiles)
        """
        check_is_fitted(self)
        (X,) = patsy.build_design_matrices([self.design_info_], data,
                                           NA_action="raise")
        pred = np.asarray(X) @ self.coef_.to_numpy()
        return pred[:, 0] if pred.shape[1] == 1 else pred

    def random_effects(self) -> list[pd.DataFrame]:
        """Predicted random effects per group, one frame per quantile."""
        check_is_fitted(self)
        out = []
        for t, r in zip(self.taus_, self.solver_results_):
            u = self.problem_.random_effects(r.beta, r.theta, r.sigma, t)
            out.append(pd.DataFrame(u, index=self.group_levels_,
                                    columns=self.random_names_))
        return out

    # ──────────────────────────────────────────────────────────────────
    # Inference
    # ──────────────────────────────────────────────────────────────────

    def summary(
        self,
        nboot: int = 50,
        alpha: float = 0.05,
        random_state=None,
    ) -> list[CoefficientTable]:
        """Block-bootstrap coefficient tables, one per quantile.

        Parameters
        ----------
        nboot : int
            Bootstrap replicates per quantile.
        alpha : float
            Significance level of the confidence bounds.
        random_state : int, RandomState or None
            Seed.  Different seeds give different standard errors,
            intervals and p-values; the estimates do not change.

        Returns
        -------
        list of CoefficientTable
        """
        check_is_fitted(self)
        if not (0 < alpha < 1):
            raise ValueError(f"alpha must be in (0, 1), got {alpha}.")
        rng = check_random_state(random_state)

        tables = []
        for t, res in zip(self.taus_, self.solver_results_):
            boot = block_bootstrap(self.problem_, res, t, self.control_,
                                   nboot=nboot, random_state=rng)
            if boot.n_failed:
                logger.debug("%d of %d bootstrap replicates failed at tau=%g",
                             boot.n_failed, nboot, t)
            tables.append(bootstrap_table(self.term_names_, res.beta,
                                          boot.boot_coefficients, t, alpha))
        return tables

    # ──────────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────────

    def _response(self, data) -> np.ndarray:
        y, _ = patsy.dmatrices(self.fixed, data, NA_action="raise")
        return np.asarray(y, dtype=np.float64).ravel()

    def _build_problem(self, data: pd.DataFrame, n_nodes: int):
        if self.group not in data.columns:
            raise ValueError(f"Grouping column {self.group!r} not in data.")
        y, X = patsy.dmatrices(self.fixed, data, NA_action="raise")
        Z = patsy.dmatrix(self.random, data, NA_action="raise")
        if y.shape[1] != 1:
            raise ValueError(f"Formula {self.fixed!r} must have one response.")
        codes, levels = pd.factorize(data[self.group], sort=True)
        if np.any(codes < 0):
            raise ValueError(f"Grouping column {self.group!r} has missing values.")
        problem = MixedQuantileProblem(
            y=np.asarray(y).ravel(),
            X=np.asarray(X),
            Z=np.asarray(Z),
            groups=codes,
            covariance=self.covariance,
            n_nodes=n_nodes,
        )
        if np.linalg.matrix_rank(problem.X) < problem.p:
            raise ValueError(
                f"Fixed-effects design of {self.fixed!r} is rank deficient."
            )
        return (problem, X.design_info, list(Z.design_info.column_names),
                list(levels))
