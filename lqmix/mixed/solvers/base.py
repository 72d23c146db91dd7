"""Abstract base class and result dataclass for quantile mixed-model solvers.

All solvers implement the ``BaseSolver`` interface, producing a standardised
``SolverResult``.  This follows the **Strategy** pattern: the estimator
delegates to an interchangeable solver selected at runtime through
:func:`lqmix.mixed.solvers.get_solver`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from lqmix._config import LqmmControl
from lqmix._typing import FloatArray
from lqmix.mixed._likelihood import MixedQuantileProblem

StartValues = tuple  # (beta, theta, sigma)


@dataclass(frozen=True, eq=False)
class SolverResult:
    """Standardised output produced by every solver.

    Parameters
    ----------
    beta : FloatArray
        Fixed-effect coefficients, shape ``(p,)``.
    theta : FloatArray
        Unconstrained covariance parameters, shape ``(m,)``.
    sigma : float
        Scale of the asymmetric Laplace error.
    loglik : float
        Marginal log-likelihood at the solution.
    converged : bool
        ``False`` when the iteration cap was reached before the
        log-likelihood tolerance was met.
    iterations : int
        Total inner-optimizer iterations.
    solver_info : dict
        Solver-specific extra information.
    """

    beta: FloatArray
    theta: FloatArray
    sigma: float
    loglik: float
    converged: bool = True
    iterations: int = 0
    solver_info: dict[str, Any] = field(default_factory=dict)


class BaseSolver(ABC):
    """Abstract base class every quantile mixed-model solver implements.

    Subclasses **must** override :meth:`_solve_impl`.
    """

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def solve(
        self,
        problem: MixedQuantileProblem,
        tau: float,
        control: Optional[LqmmControl] = None,
        start: Optional[StartValues] = None,
    ) -> SolverResult:
        """Maximise the likelihood of *problem* at quantile *tau*.

        Parameters
        ----------
        problem : MixedQuantileProblem
        tau : float
            Quantile level in (0, 1).
        control : LqmmControl, optional
            Iteration caps and tolerances.  Defaults to ``LqmmControl()``.
        start : tuple, optional
            ``(beta, theta, sigma)`` starting point.  Defaults to
            :meth:`MixedQuantileProblem.start_values`.

        Returns
        -------
        SolverResult

        Raises
        ------
        ValueError
            If *tau* or the starting values are invalid.
        """
        if not (0 < tau < 1):
            raise ValueError(f"tau must be in (0, 1), got {tau}.")
        control = control or LqmmControl()
        if start is None:
            start = problem.start_values()
        beta, theta, sigma = start
        beta = np.asarray(beta, dtype=np.float64)
        theta = np.asarray(theta, dtype=np.float64)
        if beta.shape != (problem.p,) or theta.shape != (problem.m,):
            raise ValueError(
                f"Start values have shapes {beta.shape} and {theta.shape}, "
                f"expected ({problem.p},) and ({problem.m},)."
            )
        if not sigma > 0:
            raise ValueError(f"Starting sigma must be positive, got {sigma}.")
        return self._solve_impl(problem, float(tau), control,
                                (beta, theta, float(sigma)))

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    @abstractmethod
    def _solve_impl(
        self,
        problem: MixedQuantileProblem,
        tau: float,
        control: LqmmControl,
        start: StartValues,
    ) -> SolverResult:
        """Core solving logic — implemented by every concrete solver."""
