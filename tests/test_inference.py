"""Tests for coefficient tables and bootstrap summaries."""

import numpy as np
import pytest
from scipy.stats import t as student_t

from lqmix.mixed._inference import STAT_COLUMNS, CoefficientTable, bootstrap_table


def _table(**kwargs):
    params = dict(
        terms=["a", "b"],
        estimates=[1.0, 2.0],
        std_errors=[0.1, 0.2],
        lower=[0.8, 1.6],
        upper=[1.2, 2.4],
        p_values=[0.01, 0.5],
        tau=0.5,
    )
    params.update(kwargs)
    return CoefficientTable(**params)


class TestCoefficientTable:

    def test_repr(self):
        text = repr(_table())
        assert "tau=0.5" in text
        assert "Std Err" in text

    def test_to_frame(self):
        frame = _table().to_frame()
        assert list(frame.columns) == list(STAT_COLUMNS)
        assert list(frame.index) == ["a", "b"]
        assert frame.loc["b", "upper"] == 2.4

    def test_values_roundtrip(self):
        t = _table()
        again = CoefficientTable.from_values(t.terms, t.values, tau=t.tau)
        np.testing.assert_array_equal(again.values, t.values)

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError, match="p_values has 1 entries"):
            _table(p_values=[0.1])

    def test_frozen(self):
        with pytest.raises(AttributeError):
            _table().tau = 0.9


class TestBootstrapTable:

    @pytest.fixture
    def draws(self):
        rng = np.random.RandomState(5)
        return rng.normal([1.0, 0.0], [0.2, 0.5], size=(40, 2))

    def test_std_errors(self, draws):
        table = bootstrap_table(["a", "b"], [1.0, 0.1], draws, tau=0.5)
        np.testing.assert_allclose(table.std_errors, draws.std(axis=0, ddof=1))

    def test_estimates_are_point_estimates(self, draws):
        table = bootstrap_table(["a", "b"], [1.0, 0.1], draws, tau=0.5)
        np.testing.assert_array_equal(table.estimates, [1.0, 0.1])

    def test_p_values_use_student_t(self, draws):
        table = bootstrap_table(["a", "b"], [1.0, 0.1], draws, tau=0.5)
        se = draws.std(axis=0, ddof=1)
        expected = 2 * student_t.sf(np.abs(np.array([1.0, 0.1]) / se), 39)
        np.testing.assert_allclose(table.p_values, expected)

    def test_bounds_symmetric(self, draws):
        table = bootstrap_table(["a", "b"], [1.0, 0.1], draws, tau=0.5, alpha=0.1)
        np.testing.assert_allclose(table.upper - table.estimates,
                                   table.estimates - table.lower)
        crit = student_t.ppf(0.95, 39)
        np.testing.assert_allclose(table.upper - table.estimates,
                                   crit * table.std_errors)

    def test_failed_replicates_dropped(self, draws):
        with_nan = draws.copy()
        with_nan[0] = np.nan
        table = bootstrap_table(["a", "b"], [1.0, 0.1], with_nan, tau=0.5)
        np.testing.assert_allclose(table.std_errors,
                                   draws[1:].std(axis=0, ddof=1))

    def test_too_few_replicates(self):
        B = np.array([[1.0, 2.0], [np.nan, np.nan]])
        table = bootstrap_table(["a", "b"], [1.0, 2.0], B, tau=0.5)
        assert np.all(np.isnan(table.std_errors))
        assert np.all(np.isnan(table.p_values))
        np.testing.assert_array_equal(table.estimates, [1.0, 2.0])
