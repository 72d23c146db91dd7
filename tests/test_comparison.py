"""Tests for the linear mixed model reference fit."""

import warnings

import numpy as np
import pytest

from lqmix.comparison import LinearMixedFit, fit_linear_mixed


@pytest.fixture(scope="module")
def lmm(crohn):
    with warnings.catch_warnings():
        # statsmodels may warn about the boundary of the variance space
        warnings.simplefilter("ignore")
        return fit_linear_mixed(crohn, "log_density ~ group * visit")


class TestFitLinearMixed:

    def test_returns_fit(self, lmm):
        assert isinstance(lmm, LinearMixedFit)

    def test_fixed_effect_rows(self, lmm):
        assert lmm.table.terms == (
            "Intercept",
            "group[T.1]",
            "group[T.2]",
            "visit[T.2]",
            "group[T.1]:visit[T.2]",
            "group[T.2]:visit[T.2]",
        )

    def test_no_quantile(self, lmm):
        assert lmm.table.tau is None
        assert lmm.table.method == "lmm"

    def test_intervals_bracket_estimates(self, lmm):
        t = lmm.table
        assert np.all(np.isfinite(t.estimates))
        ok = np.isfinite(t.std_errors)
        assert np.all(t.lower[ok] <= t.estimates[ok])
        assert np.all(t.estimates[ok] <= t.upper[ok])

    def test_random_effects_covariance(self, lmm):
        assert lmm.cov_re.shape == (2, 2)
        assert lmm.scale > 0

    def test_missing_group(self, crohn):
        with pytest.raises(ValueError, match="Grouping column"):
            fit_linear_mixed(crohn, "log_density ~ group", group="nobody")
