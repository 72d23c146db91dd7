"""Parameterizations of the random-effects covariance matrix.

Each structure maps an unconstrained vector ``theta`` onto a symmetric
positive-definite ``(q, q)`` matrix ``Psi`` so that the optimizers can
search over the whole real line.  The tags follow the ``nlme`` ``pdMat``
class names used by R's ``lqmm``.

``pdIdent``
    ``Psi = exp(2 theta) I`` — one parameter.
``pdDiag``
    ``Psi = diag(exp(2 theta_k))`` — ``q`` parameters.
``pdCompSymm``
    Common variance ``exp(2 theta_0)`` and common correlation
    ``rho = (exp(theta_1) - 1) / (exp(theta_1) + q - 1)``, which keeps
    ``rho`` inside ``(-1 / (q - 1), 1)`` — two parameters (one when
    ``q == 1``).
``pdSymm``
    Unstructured, log-Cholesky — ``q (q + 1) / 2`` parameters.
"""

from __future__ import annotations

import numpy as np

from lqmix._typing import FloatArray

COVARIANCE_TYPES = ("pdIdent", "pdDiag", "pdCompSymm", "pdSymm")


def check_covariance(covariance: str) -> str:
    """Raise ``ValueError`` unless *covariance* is a known structure tag."""
    if covariance not in COVARIANCE_TYPES:
        raise ValueError(
            f"Unknown covariance structure {covariance!r}. "
            f"Choose from {list(COVARIANCE_TYPES)}."
        )
    return covariance


def n_cov_params(covariance: str, q: int) -> int:
    """Number of free parameters of *covariance* for ``q`` random effects."""
    check_covariance(covariance)
    if covariance == "pdIdent":
        return 1
    if covariance == "pdDiag":
        return q
    if covariance == "pdCompSymm":
        return 2 if q > 1 else 1
    return q * (q + 1) // 2


def cov_cholesky(theta: FloatArray, covariance: str, q: int) -> FloatArray:
    """Lower-triangular factor ``L`` with ``Psi = L @ L.T``."""
    theta = np.asarray(theta, dtype=np.float64)
    expected = n_cov_params(covariance, q)
    if theta.shape != (expected,):
        raise ValueError(
            f"{covariance} with q={q} needs {expected} parameters, "
            f"got shape {theta.shape}."
        )

    if covariance == "pdIdent":
        return np.exp(theta[0]) * np.eye(q)
    if covariance == "pdDiag":
        return np.diag(np.exp(theta))
    if covariance == "pdSymm":
        L = np.zeros((q, q))
        L[np.tril_indices(q)] = theta
        L[np.diag_indices(q)] = np.exp(np.diag(L))
        return L

    # pdCompSymm
    var = np.exp(2.0 * theta[0])
    if q == 1:
        return np.array([[np.sqrt(var)]])
    e = np.exp(theta[1])
    rho = (e - 1.0) / (e + q - 1.0)
    psi = var * ((1.0 - rho) * np.eye(q) + rho * np.ones((q, q)))
    return np.linalg.cholesky(psi)


def cov_matrix(theta: FloatArray, covariance: str, q: int) -> FloatArray:
    """Random-effects covariance matrix ``Psi`` for parameters *theta*."""
    L = cov_cholesky(theta, covariance, q)
    return L @ L.T
