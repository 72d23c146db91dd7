"""Immutable solver settings and model specifications."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
import numpy as np

from lqmix._typing import TauLike


@dataclass(frozen=True)
class LqmmControl:
    """Solver settings shared by every fit.

    Parameters
    ----------
    method : str
        Registered solver name, ``"gs"`` (restarted BFGS) or ``"df"``
        (Nelder-Mead).
    max_iter : int
        Iteration cap of the inner optimizer.
    tol_ll : float
        Relative change in log-likelihood between rounds below which
        the fit is considered converged.
    tol_theta : float
        Gradient / simplex tolerance passed to the inner optimizer.
    outer_max_iter : int
        Maximum number of BFGS restarts for ``"gs"``.
    n_nodes : int
        Gauss-Hermite points per random-effect dimension.
    verbose : bool
        Log solver progress at INFO instead of DEBUG.
    """

    method: str = "gs"
    max_iter: int = 500
    tol_ll: float = 1e-5
    tol_theta: float = 1e-5
    outer_max_iter: int = 20
    n_nodes: int = 7
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be >= 1, got {self.max_iter}.")
        if self.outer_max_iter < 1:
            raise ValueError(
                f"outer_max_iter must be >= 1, got {self.outer_max_iter}."
            )
        if self.tol_ll <= 0 or self.tol_theta <= 0:
            raise ValueError("Tolerances must be positive.")
        if self.n_nodes < 1:
            raise ValueError(f"n_nodes must be >= 1, got {self.n_nodes}.")


def normalize_taus(tau: TauLike) -> tuple[float, ...]:
    """Return *tau* as a tuple of distinct floats in (0, 1), order kept."""
    taus = tuple(float(t) for t in np.atleast_1d(tau).ravel())
    if not taus:
        raise ValueError("At least one quantile level is required.")
    for t in taus:
        if not (0 < t < 1):
            raise ValueError(f"tau must be in (0, 1), got {t}.")
    if len(set(taus)) != len(taus):
        raise ValueError(f"Quantile levels must be distinct, got {taus}.")
    return taus


@dataclass(frozen=True)
class ModelSpec:
    """Everything needed to fit one quantile mixed model.

    ``fixed`` and ``random`` are patsy formulas; ``random`` has no
    left-hand side.  The default random part is a random intercept and a
    random slope on ``visit`` grouped by ``individual``.
    """

    fixed: str
    random: str = "~ visit"
    group: str = "individual"
    tau: tuple = (0.5,)
    covariance: str = "pdDiag"
    control: LqmmControl = field(default_factory=LqmmControl)

    def __post_init__(self) -> None:
        from lqmix.mixed._covariance import check_covariance

        object.__setattr__(self, "tau", normalize_taus(self.tau))
        check_covariance(self.covariance)

    def with_fixed(self, fixed: str) -> "ModelSpec":
        return dataclasses.replace(self, fixed=fixed)

    def with_tau(self, tau) -> "ModelSpec":
        return dataclasses.replace(self, tau=tau)

    def build_estimator(self):
        """Return an unfitted :class:`QuantileMixedRegressor` for this spec."""
        from lqmix.mixed._estimator import QuantileMixedRegressor

        tau = self.tau[0] if len(self.tau) == 1 else list(self.tau)
        return QuantileMixedRegressor(
            fixed=self.fixed,
            random=self.random,
            group=self.group,
            tau=tau,
            covariance=self.covariance,
            control=self.control,
        )
