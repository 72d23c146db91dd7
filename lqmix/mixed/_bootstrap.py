"""Block bootstrap for linear quantile mixed models.

Whole groups (individuals) are resampled with replacement and the model is
refitted from the original estimates, as R's ``boot.lqmm`` does.  A group
drawn twice enters the replicate as two independent groups.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from sklearn.utils import check_random_state

from lqmix._config import LqmmControl
from lqmix.mixed._likelihood import MixedQuantileProblem
from lqmix.mixed.solvers import get_solver
from lqmix.mixed.solvers.base import SolverResult


@dataclass
class BootstrapResult:
    """Output of a block bootstrap.

    Attributes
    ----------
    boot_coefficients : ndarray, shape (nboot, p)
        Replicate fixed-effect vectors; rows of failed replicates are NaN.
    coefficients : ndarray, shape (p,)
        Point estimate from the original fit.
    nboot : int
        Number of replicates requested.
    n_failed : int
        Number of replicates whose refit raised.
    """

    boot_coefficients: np.ndarray
    coefficients: np.ndarray
    nboot: int
    n_failed: int = 0

    @property
    def covariance(self) -> np.ndarray:
        """Sample covariance matrix of the usable replicates."""
        B = self.boot_coefficients
        B = B[np.all(np.isfinite(B), axis=1)]
        return np.cov(B, rowvar=False)


def block_bootstrap(
    problem: MixedQuantileProblem,
    fit: SolverResult,
    tau: float,
    control: Optional[LqmmControl] = None,
    nboot: int = 50,
    random_state: Optional[Union[int, np.random.RandomState]] = None,
) -> BootstrapResult:
    """Resample groups *nboot* times and refit from *fit*'s estimates.

    Parameters
    ----------
    problem : MixedQuantileProblem
        The problem the original fit was computed on.
    fit : SolverResult
        Original solution, used as the starting point of every refit.
    tau : float
    control : LqmmControl, optional
    nboot : int
        Number of bootstrap replicates.
    random_state : int or RandomState or None
        Seed for reproducibility.

    Returns
    -------
    BootstrapResult
    """
    if nboot < 1:
        raise ValueError(f"nboot must be >= 1, got {nboot}.")
    control = control or LqmmControl()
    rng = check_random_state(random_state)
    solver = get_solver(control.method)
    start = (fit.beta, fit.theta, fit.sigma)

    B = np.full((nboot, problem.p), np.nan)
    n_failed = 0
    for r in range(nboot):
        ids = rng.randint(0, problem.n_groups, size=problem.n_groups)
        try:
            res = solver.solve(problem.resample_groups(ids), tau, control,
                               start=start)
        except (ValueError, np.linalg.LinAlgError, FloatingPointError):
            # degenerate replicate, e.g. a non-finite likelihood
            n_failed += 1
            continue
        B[r, :] = res.beta

    return BootstrapResult(
        boot_coefficients=B,
        coefficients=np.asarray(fit.beta, dtype=np.float64),
        nboot=nboot,
        n_failed=n_failed,
    )
