"""Gauss-Hermite quadrature grids for integrating over normal random effects.

References
----------
.. [1] Geraci, M. and Bottai, M. (2014). "Linear quantile mixed models."
       *Statistics and Computing* 24(3): 461–479.
"""

from __future__ import annotations

import itertools

import numpy as np
from scipy.special import roots_hermite

from lqmix._typing import FloatArray


def gauss_hermite_grid(q: int, n_nodes: int = 7) -> tuple[FloatArray, FloatArray]:
    """Product Gauss-Hermite grid for a ``q``-variate standard normal.

    Parameters
    ----------
    q : int
        Dimension of the random effects.
    n_nodes : int
        Quadrature points per dimension.

    Returns
    -------
    nodes : ndarray, shape (n_nodes ** q, q)
        Abscissae rescaled to a standard normal, i.e. ``sqrt(2) * t``.
    log_weights : ndarray, shape (n_nodes ** q,)
        Log weights, normalised to sum to one.
    """
    if q < 1:
        raise ValueError(f"q must be >= 1, got {q}.")
    if n_nodes < 1:
        raise ValueError(f"n_nodes must be >= 1, got {n_nodes}.")

    t, w = roots_hermite(n_nodes)
    z = np.sqrt(2.0) * t
    logw = np.log(w) - 0.5 * np.log(np.pi)

    nodes = np.array(list(itertools.product(z, repeat=q)), dtype=np.float64)
    log_weights = np.array(
        [sum(c) for c in itertools.product(logw, repeat=q)], dtype=np.float64
    )
    return nodes, log_weights
