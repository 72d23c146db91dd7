"""Validation and derived columns for longitudinal abundance data.

One row per (individual, visit).  Raw columns:

========== ==========================================
individual subject identifier, shared across visits
visit      ``1`` or ``2``
group      ``0`` control, ``1`` remission-remission,
           ``2`` remission-exacerbation
status     disease status ``0``, ``1`` or ``2``
age        years
sex        two levels
smoking    ``ex``, ``never`` or ``current``
density    relative abundance of the taxon, ``>= 0``
========== ==========================================

Derived columns: ``age_centered``, ``density_scaled`` (``density * 1000``)
and ``log_density`` (``ln(density_scaled)``, or ``ln(100)`` when the scaled
abundance is at or below zero).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from lqmix.exceptions import DataValidationError

REQUIRED_COLUMNS = (
    "individual", "visit", "group", "status", "age", "sex", "smoking", "density",
)

CATEGORY_LEVELS = {
    "visit": (1, 2),
    "group": (0, 1, 2),
    "status": (0, 1, 2),
    "smoking": ("ex", "never", "current"),
}

#: Multiplier applied to relative abundances before taking logs.
DENSITY_SCALE = 1000.0
#: Value substituted for scaled abundances at or below the detection limit.
DETECTION_FLOOR = 100.0


def _as_level_strings(col: pd.Series) -> pd.Series:
    if pd.api.types.is_float_dtype(col):
        finite = col.dropna()
        if np.all(np.isfinite(finite)) and np.all(finite == np.round(finite)):
            col = col.astype("Int64")
    return col.astype("string").str.strip()


def _categorical(frame: pd.DataFrame, column: str, levels) -> pd.Categorical:
    lookup = {str(level): level for level in levels}
    as_str = _as_level_strings(frame[column])
    bad = ~as_str.isin(list(lookup)).fillna(False).astype(bool)
    if bad.any():
        rows = list(frame.index[bad.to_numpy()])
        raise DataValidationError(
            f"Column {column!r} has unknown level(s) "
            f"{sorted(set(frame[column][bad].astype(str)))} at row(s) {rows[:10]}; "
            f"expected one of {list(levels)}.",
            column=column,
            rows=rows,
        )
    return pd.Categorical(as_str.map(lookup), categories=list(levels))


def log_density(density_scaled) -> np.ndarray:
    """``ln(x)`` where ``x > 0``, ``ln(DETECTION_FLOOR)`` elsewhere."""
    x = np.asarray(density_scaled, dtype=np.float64)
    positive = x > 0
    return np.where(positive, np.log(np.where(positive, x, 1.0)),
                    np.log(DETECTION_FLOOR))


def prepare_observations(
    frame: pd.DataFrame,
    n_visits: Optional[int] = None,
) -> pd.DataFrame:
    """Validate raw observations and add the derived columns.

    Parameters
    ----------
    frame : DataFrame
        Raw observations with :data:`REQUIRED_COLUMNS`.
    n_visits : int, optional
        Required number of visits per individual.  When omitted every
        individual must simply have the same number of visits.

    Returns
    -------
    DataFrame
        A new frame with categorical ``visit``, ``group``, ``status``,
        ``sex`` and ``smoking`` and the derived columns appended.  The
        input is not modified.

    Raises
    ------
    DataValidationError
        With the offending column and rows.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise DataValidationError(f"Missing required column(s): {missing}.",
                                  column=missing[0])
    out = frame.copy().reset_index(drop=True)
    if out.empty:
        raise DataValidationError("No observations.")

    if out["individual"].isna().any():
        rows = list(out.index[out["individual"].isna()])
        raise DataValidationError(
            f"Missing individual identifier at row(s) {rows[:10]}.",
            column="individual", rows=rows,
        )
    out["individual"] = out["individual"].astype(str)

    for column, levels in CATEGORY_LEVELS.items():
        out[column] = _categorical(out, column, levels)

    sex = _as_level_strings(out["sex"])
    if sex.isna().any():
        rows = list(out.index[sex.isna().to_numpy()])
        raise DataValidationError(f"Missing sex at row(s) {rows[:10]}.",
                                  column="sex", rows=rows)
    sex_levels = sorted(sex.unique())
    if len(sex_levels) != 2:
        raise DataValidationError(
            f"Column 'sex' must have exactly two levels, got {sex_levels}.",
            column="sex",
        )
    out["sex"] = pd.Categorical(sex, categories=sex_levels)

    for column in ("age", "density"):
        values = pd.to_numeric(out[column], errors="coerce")
        bad = ~np.isfinite(values.to_numpy(dtype=np.float64))
        if column == "density":
            bad |= values.to_numpy(dtype=np.float64) < 0
        if bad.any():
            rows = list(out.index[bad])
            raise DataValidationError(
                f"Column {column!r} must be finite"
                f"{' and non-negative' if column == 'density' else ''}; "
                f"violated at row(s) {rows[:10]}.",
                column=column, rows=rows,
            )
        out[column] = values.astype(np.float64)

    dup = out.duplicated(["individual", "visit"], keep=False)
    if dup.any():
        rows = list(out.index[dup])
        raise DataValidationError(
            f"Repeated (individual, visit) pairs at row(s) {rows[:10]}.",
            column="visit", rows=rows,
        )

    counts = out.groupby("individual", sort=False).size()
    expected = n_visits if n_visits is not None else int(counts.mode().iloc[0])
    off = counts[counts != expected]
    if len(off):
        rows = list(out.index[out["individual"].isin(off.index)])
        raise DataValidationError(
            f"Every individual must have {expected} visit(s); "
            f"{dict(off.head(10))} differ.",
            column="individual", rows=rows,
        )

    out["age_centered"] = out["age"] - out["age"].mean()
    out["density_scaled"] = out["density"] * DENSITY_SCALE
    out["log_density"] = log_density(out["density_scaled"])
    return out


def load_abundance_csv(
    path: Union[str, Path],
    n_visits: Optional[int] = None,
    **read_csv_kwargs,
) -> pd.DataFrame:
    """Read a CSV of raw observations and :func:`prepare_observations` it."""
    frame = pd.read_csv(path, **read_csv_kwargs)
    return prepare_observations(frame, n_visits=n_visits)
