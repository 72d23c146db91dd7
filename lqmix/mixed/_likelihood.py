"""Asymmetric-Laplace likelihood of a linear quantile mixed model.

The model for observation ``j`` of group ``i`` is

.. math::
    y_{ij} = x_{ij}'\\beta + z_{ij}'u_i + \\varepsilon_{ij},
    \\qquad \\varepsilon_{ij} \\sim AL(0, \\sigma, \\tau),
    \\qquad u_i \\sim N(0, \\Psi)

and the marginal likelihood of each group is integrated over ``u_i`` by
Gauss-Hermite quadrature.  All sums are carried out in log space.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from scipy import sparse
from scipy.special import logsumexp

from lqmix._typing import FloatArray, IntArray
from lqmix.mixed._covariance import check_covariance, cov_cholesky, n_cov_params
from lqmix.util.quadrature import gauss_hermite_grid


def check_loss(r: np.ndarray, tau: float) -> np.ndarray:
    """Koenker-Bassett check function ``rho_tau(r)``."""
    return r * (tau - (r < 0))


@dataclass(frozen=True, eq=False)
class MixedQuantileProblem:
    """Design matrices and quadrature grid for one fitting problem.

    Parameters
    ----------
    y : ndarray, shape (n,)
        Response.
    X : ndarray, shape (n, p)
        Fixed-effects design matrix (including the intercept column).
    Z : ndarray, shape (n, q)
        Random-effects design matrix.
    groups : ndarray of int, shape (n,)
        Group codes in ``0 .. n_groups - 1``.
    covariance : str
        Covariance structure tag, see :mod:`lqmix.mixed._covariance`.
    n_nodes : int
        Quadrature points per random-effect dimension.
    """

    y: FloatArray
    X: FloatArray
    Z: FloatArray
    groups: IntArray
    covariance: str = "pdDiag"
    n_nodes: int = 7
    _indicator: sparse.csr_matrix = field(init=False, repr=False)
    _nodes: FloatArray = field(init=False, repr=False)
    _log_weights: FloatArray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        y = np.asarray(self.y, dtype=np.float64).ravel()
        X = np.asarray(self.X, dtype=np.float64)
        Z = np.asarray(self.Z, dtype=np.float64)
        groups = np.asarray(self.groups, dtype=np.int64).ravel()
        check_covariance(self.covariance)

        if X.ndim != 2 or Z.ndim != 2:
            raise ValueError("X and Z must be 2-D arrays.")
        n = y.shape[0]
        if X.shape[0] != n or Z.shape[0] != n or groups.shape[0] != n:
            raise ValueError(
                f"Row counts differ: y={n}, X={X.shape[0]}, "
                f"Z={Z.shape[0]}, groups={groups.shape[0]}."
            )
        if n < 2:
            raise ValueError(
                "Got 1 sample, need at least 2 n_samples for "
                "quantile regression."
            )
        if not (np.all(np.isfinite(y)) and np.all(np.isfinite(X))
                and np.all(np.isfinite(Z))):
            raise ValueError("y, X and Z must not contain NaN or inf.")
        if groups.min() < 0:
            raise ValueError("Group codes must be non-negative.")

        n_groups = int(groups.max()) + 1
        indicator = sparse.csr_matrix(
            (np.ones(n), (groups, np.arange(n))), shape=(n_groups, n)
        )
        nodes, log_weights = gauss_hermite_grid(Z.shape[1], self.n_nodes)

        # frozen dataclass: assign normalised arrays through object.__setattr__
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "X", X)
        object.__setattr__(self, "Z", Z)
        object.__setattr__(self, "groups", groups)
        object.__setattr__(self, "_indicator", indicator)
        object.__setattr__(self, "_nodes", nodes)
        object.__setattr__(self, "_log_weights", log_weights)

    # -- dimensions ----------------------------------------------------------

    @property
    def n_obs(self) -> int:
        return self.y.shape[0]

    @property
    def n_groups(self) -> int:
        return self._indicator.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    @property
    def q(self) -> int:
        return self.Z.shape[1]

    @property
    def m(self) -> int:
        """Number of covariance parameters."""
        return n_cov_params(self.covariance, self.q)

    # -- likelihood ----------------------------------------------------------

    def loglik(
        self,
        beta: FloatArray,
        theta: FloatArray,
        sigma: float,
        tau: float,
    ) -> float:
        """Marginal log-likelihood at ``(beta, theta, sigma)``."""
        if not sigma > 0:
            return -np.inf
        L = cov_cholesky(theta, self.covariance, self.q)
        U = self._nodes @ L.T                              # (K, q)
        eta = self.y - self.X @ beta                       # (n,)
        R = eta[:, np.newaxis] - self.Z @ U.T              # (n, K)
        logf = (np.log(tau * (1.0 - tau)) - np.log(sigma)
                - check_loss(R, tau) / sigma)
        S = self._indicator @ logf                         # (G, K)
        return float(np.sum(logsumexp(S + self._log_weights, axis=1)))

    def random_effects(
        self,
        beta: FloatArray,
        theta: FloatArray,
        sigma: float,
        tau: float,
    ) -> FloatArray:
        """Posterior-mean random effects per group, shape ``(G, q)``."""
        L = cov_cholesky(theta, self.covariance, self.q)
        U = self._nodes @ L.T
        R = (self.y - self.X @ beta)[:, np.newaxis] - self.Z @ U.T
        S = self._indicator @ (-check_loss(R, tau) / sigma) + self._log_weights
        post = np.exp(S - logsumexp(S, axis=1, keepdims=True))
        return post @ U

    # -- packing helpers -----------------------------------------------------

    def pack(self, beta, theta, sigma) -> FloatArray:
        return np.concatenate([beta, theta, [np.log(sigma)]])

    def unpack(self, params: FloatArray) -> tuple[FloatArray, FloatArray, float]:
        p, m = self.p, self.m
        return params[:p], params[p:p + m], float(np.exp(params[p + m]))

    def start_values(self) -> tuple[FloatArray, FloatArray, float]:
        """OLS coefficients, unit covariance and mean absolute residual."""
        beta, *_ = np.linalg.lstsq(self.X, self.y, rcond=None)
        theta = np.zeros(self.m)
        sigma = float(np.mean(np.abs(self.y - self.X @ beta)))
        if not sigma > 0:
            sigma = 1.0
        return beta, theta, sigma

    # -- resampling ----------------------------------------------------------

    def resample_groups(self, group_ids: IntArray) -> "MixedQuantileProblem":
        """Build the problem for a bootstrap draw of whole groups.

        A group drawn more than once contributes one independent copy per
        draw.
        """
        rows = []
        codes = []
        order = np.argsort(self.groups, kind="stable")
        starts = np.searchsorted(self.groups[order], np.arange(self.n_groups))
        ends = np.searchsorted(self.groups[order], np.arange(self.n_groups),
                               side="right")
        for new_code, g in enumerate(group_ids):
            idx = order[starts[g]:ends[g]]
            rows.append(idx)
            codes.append(np.full(idx.shape[0], new_code, dtype=np.int64))
        rows = np.concatenate(rows)
        return MixedQuantileProblem(
            y=self.y[rows],
            X=self.X[rows],
            Z=self.Z[rows],
            groups=np.concatenate(codes),
            covariance=self.covariance,
            n_nodes=self.n_nodes,
        )
