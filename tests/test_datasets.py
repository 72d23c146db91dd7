"""Tests for the example cohort and observation preparation."""

import numpy as np
import pandas as pd
import pytest

from lqmix.datasets import (
    DETECTION_FLOOR,
    REQUIRED_COLUMNS,
    load_abundance_csv,
    log_density,
    make_crohn_abundance,
    prepare_observations,
)
from lqmix.exceptions import DataValidationError


@pytest.fixture
def raw():
    return make_crohn_abundance(random_state=7).raw


class TestMakeCrohnAbundance:

    def test_returns_bunch(self):
        data = make_crohn_abundance(random_state=0)
        assert hasattr(data, "frame")
        assert hasattr(data, "raw")
        assert isinstance(data.DESCR, str)

    def test_shape(self, crohn):
        assert crohn.shape[0] == 144
        assert crohn["individual"].nunique() == 72

    def test_two_visits_each(self, crohn):
        counts = crohn.groupby("individual").size()
        assert set(counts) == {2}

    def test_group_sizes(self, crohn):
        per_individual = crohn.drop_duplicates("individual")
        assert (per_individual["group"] == 0).sum() == 15
        assert (per_individual["group"] != 0).sum() == 57

    def test_controls_are_healthy(self, crohn):
        controls = crohn[crohn["group"] == 0]
        assert set(controls["status"]) == {0}

    def test_exacerbation_at_second_visit(self, crohn):
        flare = crohn[(crohn["group"] == 2) & (crohn["visit"] == 2)]
        assert set(flare["status"]) == {2}

    def test_reproducible_with_seed(self):
        a = make_crohn_abundance(random_state=3).raw
        b = make_crohn_abundance(random_state=3).raw
        pd.testing.assert_frame_equal(a, b)

    def test_invalid_fraction_raises(self):
        with pytest.raises(ValueError, match="frac_exacerbation"):
            make_crohn_abundance(frac_exacerbation=1.5)


class TestDerivedColumns:

    def test_log_density_floor(self, crohn):
        floor = crohn["density_scaled"] <= 0
        np.testing.assert_allclose(crohn.loc[floor, "log_density"],
                                   np.log(DETECTION_FLOOR))
        np.testing.assert_allclose(crohn.loc[~floor, "log_density"],
                                   np.log(crohn.loc[~floor, "density_scaled"]))

    def test_log_density_zero(self):
        assert log_density([0.0])[0] == pytest.approx(4.6052, abs=1e-4)

    def test_log_density_never_nan(self, crohn):
        assert crohn["log_density"].notna().all()

    def test_density_scaled(self, crohn):
        np.testing.assert_allclose(crohn["density_scaled"],
                                   crohn["density"] * 1000)

    def test_age_centered_sums_to_zero(self, crohn):
        assert crohn["age_centered"].sum() == pytest.approx(0.0, abs=1e-8)
        np.testing.assert_allclose(crohn["age_centered"],
                                   crohn["age"] - crohn["age"].mean())

    def test_categorical_levels(self, crohn):
        assert list(crohn["group"].cat.categories) == [0, 1, 2]
        assert list(crohn["visit"].cat.categories) == [1, 2]
        assert list(crohn["smoking"].cat.categories) == ["ex", "never", "current"]


class TestPrepareObservations:

    def test_does_not_modify_input(self, raw):
        before = raw.copy()
        prepare_observations(raw)
        pd.testing.assert_frame_equal(raw, before)

    def test_missing_column(self, raw):
        with pytest.raises(DataValidationError, match="Missing required"):
            prepare_observations(raw.drop(columns="smoking"))

    def test_unknown_level_names_row_and_column(self, raw):
        raw.loc[5, "smoking"] = "sometimes"
        with pytest.raises(DataValidationError, match="smoking") as info:
            prepare_observations(raw)
        assert info.value.column == "smoking"
        assert info.value.rows == [5]

    def test_float_coded_levels_accepted(self, raw):
        raw["visit"] = raw["visit"].astype(float)
        out = prepare_observations(raw)
        assert list(out["visit"].cat.categories) == [1, 2]

    def test_negative_density(self, raw):
        raw.loc[3, "density"] = -0.1
        with pytest.raises(DataValidationError, match="non-negative") as info:
            prepare_observations(raw)
        assert info.value.rows == [3]

    def test_nan_density(self, raw):
        raw.loc[0, "density"] = np.nan
        with pytest.raises(DataValidationError, match="density"):
            prepare_observations(raw)

    def test_unequal_visit_counts(self, raw):
        with pytest.raises(DataValidationError, match="visit"):
            prepare_observations(raw.drop(index=0))

    def test_required_visit_count(self, raw):
        with pytest.raises(DataValidationError, match="3 visit"):
            prepare_observations(raw, n_visits=3)

    def test_duplicate_visit(self, raw):
        raw.loc[1, "visit"] = raw.loc[0, "visit"]
        with pytest.raises(DataValidationError, match="Repeated"):
            prepare_observations(raw)

    def test_three_sex_levels(self, raw):
        raw.loc[0, "sex"] = "X"
        raw.loc[2, "sex"] = "F"
        raw.loc[4, "sex"] = "M"
        with pytest.raises(DataValidationError, match="sex"):
            prepare_observations(raw)

    def test_single_sex_level(self, raw):
        raw["sex"] = "F"
        with pytest.raises(DataValidationError, match="exactly two levels"):
            prepare_observations(raw)

    def test_is_value_error(self):
        assert issubclass(DataValidationError, ValueError)

    def test_load_csv(self, raw, tmp_path):
        path = tmp_path / "abundance.csv"
        raw.to_csv(path, index=False)
        out = load_abundance_csv(path, n_visits=2)
        assert out.shape[0] == raw.shape[0]
        for column in REQUIRED_COLUMNS:
            assert column in out.columns
        assert "log_density" in out.columns
