"""Utility functions for quantile mixed models."""

from lqmix.util.quadrature import gauss_hermite_grid

__all__ = [
    "gauss_hermite_grid",
]
