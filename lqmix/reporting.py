"""Long-format coefficient tables for plotting.

One row per (term, quantile) with the columns ``label, term_group, term,
quantile, estimate, lower, upper, p_value, significant``.
``quantile`` is ``100 * tau`` (NaN for a mean model) and ``significant``
marks ``p_value < 0.05``.  ``term_group`` names the variable(s) behind a
coefficient, so every level of a factor shares one group.
"""

from __future__ import annotations

from typing import Mapping, Union

import numpy as np
import pandas as pd

from lqmix.mixed._inference import CoefficientTable
from lqmix.selection._aggregate import AggregatedTable, AggregationResult

LONG_COLUMNS = ("label", "term_group", "term", "quantile", "estimate",
                "lower", "upper", "p_value", "significant")

Tables = Union[
    AggregationResult,
    Mapping[float, Union[CoefficientTable, AggregatedTable]],
    CoefficientTable,
    AggregatedTable,
    list,
    tuple,
]


def term_group(term: str) -> str:
    """Strip patsy level suffixes from *term*.

    >>> term_group("group[T.2]:visit[T.2]")
    'group:visit'
    >>> term_group("age_centered")
    'age_centered'
    """
    return ":".join(factor.split("[", 1)[0] for factor in term.split(":"))


def _as_list(tables: Tables) -> list:
    if isinstance(tables, (CoefficientTable, AggregatedTable)):
        return [tables]
    if isinstance(tables, AggregationResult):
        return list(tables.tables)
    if isinstance(tables, Mapping):
        return list(tables.values())
    return list(tables)


def to_long_table(tables: Tables, label: str = "lqmm",
                  significance: float = 0.05) -> pd.DataFrame:
    """Stack coefficient tables into one long frame.

    Rows are ordered by term (first appearance) and then by quantile in
    the order the tables were given.
    """
    frames = []
    for table in _as_list(tables):
        frame = table.to_frame().reset_index()
        tau = table.tau
        frame["quantile"] = np.nan if tau is None else round(100.0 * tau, 6)
        frame["order"] = len(frames)
        frames.append(frame)
    if not frames:
        return pd.DataFrame(columns=list(LONG_COLUMNS))

    long = pd.concat(frames, ignore_index=True)
    terms = list(dict.fromkeys(long["term"]))
    long["term"] = pd.Categorical(long["term"], categories=terms)
    long = long.sort_values(["term", "order"], kind="stable")
    long["term"] = long["term"].astype(str)
    long["term_group"] = long["term"].map(term_group)
    long["label"] = label
    long["significant"] = long["p_value"] < significance
    return long.loc[:, list(LONG_COLUMNS)].reset_index(drop=True)
