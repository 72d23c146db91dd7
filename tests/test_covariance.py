"""Tests for covariance parameterizations and quadrature grids."""

import numpy as np
import pytest

from lqmix.mixed._covariance import (
    COVARIANCE_TYPES,
    cov_cholesky,
    cov_matrix,
    n_cov_params,
)
from lqmix.util import gauss_hermite_grid


class TestNumberOfParameters:

    @pytest.mark.parametrize("covariance, q, expected", [
        ("pdIdent", 3, 1),
        ("pdDiag", 3, 3),
        ("pdCompSymm", 3, 2),
        ("pdCompSymm", 1, 1),
        ("pdSymm", 2, 3),
        ("pdSymm", 3, 6),
    ])
    def test_counts(self, covariance, q, expected):
        assert n_cov_params(covariance, q) == expected

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown covariance"):
            n_cov_params("pdBlocked", 2)


class TestCovMatrix:

    @pytest.mark.parametrize("covariance", COVARIANCE_TYPES)
    def test_positive_definite(self, covariance):
        rng = np.random.RandomState(1)
        q = 3
        theta = rng.randn(n_cov_params(covariance, q))
        psi = cov_matrix(theta, covariance, q)
        np.testing.assert_allclose(psi, psi.T)
        assert np.all(np.linalg.eigvalsh(psi) > 0)

    def test_ident(self):
        psi = cov_matrix(np.array([np.log(2.0)]), "pdIdent", 2)
        np.testing.assert_allclose(psi, 4.0 * np.eye(2))

    def test_diag(self):
        psi = cov_matrix(np.log([1.0, 3.0]), "pdDiag", 2)
        np.testing.assert_allclose(psi, np.diag([1.0, 9.0]))

    def test_comp_symm_zero_correlation(self):
        # theta_1 = 0 -> rho = 0
        psi = cov_matrix(np.array([0.0, 0.0]), "pdCompSymm", 3)
        np.testing.assert_allclose(psi, np.eye(3), atol=1e-12)

    def test_symm_log_cholesky(self):
        theta = np.array([np.log(2.0), 0.5, np.log(0.3)])
        L = cov_cholesky(theta, "pdSymm", 2)
        np.testing.assert_allclose(L, [[2.0, 0.0], [0.5, 0.3]])
        np.testing.assert_allclose(cov_matrix(theta, "pdSymm", 2), L @ L.T)

    def test_wrong_length_raises(self):
        with pytest.raises(ValueError, match="needs 2 parameters"):
            cov_matrix(np.zeros(3), "pdDiag", 2)


class TestGaussHermiteGrid:

    def test_shapes(self):
        nodes, logw = gauss_hermite_grid(2, 5)
        assert nodes.shape == (25, 2)
        assert logw.shape == (25,)

    def test_weights_sum_to_one(self):
        _, logw = gauss_hermite_grid(2, 7)
        assert np.exp(logw).sum() == pytest.approx(1.0)

    def test_standard_normal_moments(self):
        nodes, logw = gauss_hermite_grid(1, 7)
        w = np.exp(logw)
        assert np.sum(w * nodes[:, 0]) == pytest.approx(0.0, abs=1e-12)
        assert np.sum(w * nodes[:, 0] ** 2) == pytest.approx(1.0)
        assert np.sum(w * nodes[:, 0] ** 4) == pytest.approx(3.0)

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            gauss_hermite_grid(0, 7)
