"""Derivative-free Nelder-Mead solver over all parameters jointly."""

from __future__ import annotations

import logging

import numpy as np
from scipy.optimize import minimize

from lqmix._config import LqmmControl
from lqmix.mixed._likelihood import MixedQuantileProblem
from lqmix.mixed.solvers.base import BaseSolver, SolverResult, StartValues

logger = logging.getLogger(__name__)


class NelderMeadSolver(BaseSolver):
    """Nelder-Mead on ``(beta, theta, log sigma)`` (``method="df"``)."""

    def _solve_impl(
        self,
        problem: MixedQuantileProblem,
        tau: float,
        control: LqmmControl,
        start: StartValues,
    ) -> SolverResult:
        x0 = problem.pack(*start)

        def objective(x):
            beta, theta, sigma = problem.unpack(x)
            return -problem.loglik(beta, theta, sigma, tau)

        res = minimize(
            objective,
            x0,
            method="Nelder-Mead",
            options={
                "maxiter": control.max_iter,
                "xatol": control.tol_theta,
                "fatol": control.tol_ll,
                "adaptive": x0.shape[0] > 5,
            },
        )
        beta, theta, sigma = problem.unpack(res.x)
        level = logging.INFO if control.verbose else logging.DEBUG
        logger.log(level, "df tau=%.3f: loglik=%.6f after %d iterations (%s)",
                   tau, -res.fun, res.nit, res.message)

        return SolverResult(
            beta=np.array(beta, dtype=np.float64),
            theta=np.array(theta, dtype=np.float64),
            sigma=sigma,
            loglik=-float(res.fun),
            converged=bool(res.success),
            iterations=int(res.nit),
            solver_info={"message": res.message, "nfev": int(res.nfev)},
        )
