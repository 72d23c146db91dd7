"""Coefficient tables (estimates, standard errors, intervals, p-values).

Bootstrap inference follows R's ``summary.lqmm``: the standard error is
the standard deviation of the bootstrap replicates, and both p-values and
confidence bounds use a Student-t reference with ``R - 1`` degrees of
freedom, ``R`` being the number of usable replicates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import t as student_t

#: Column order shared by every coefficient table in the package.
STAT_COLUMNS = ("estimate", "std_error", "lower", "upper", "p_value")


@dataclass(frozen=True, eq=False)
class CoefficientTable:
    """Summary table for one fitted model at one quantile.

    Attributes
    ----------
    terms : tuple of str
        Fixed-effect term names, in design-matrix order.
    estimates, std_errors, lower, upper, p_values : ndarray, shape (p,)
    tau : float or None
        Quantile level; ``None`` for a mean (linear mixed) model.
    method : str
        How the table was produced (``"boot"``, ``"lmm"``, …).
    """

    terms: tuple
    estimates: np.ndarray
    std_errors: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    p_values: np.ndarray
    tau: Optional[float] = None
    method: str = "boot"

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(str(t) for t in self.terms))
        n = len(self.terms)
        for name in ("estimates", "std_errors", "lower", "upper", "p_values"):
            arr = np.asarray(getattr(self, name), dtype=np.float64).ravel()
            if arr.shape != (n,):
                raise ValueError(
                    f"{name} has {arr.shape[0]} entries, expected {n}."
                )
            object.__setattr__(self, name, arr)

    @classmethod
    def from_values(cls, terms: Sequence[str], values: np.ndarray,
                    tau: Optional[float] = None,
                    method: str = "boot") -> "CoefficientTable":
        """Build a table from a ``(p, 5)`` array in :data:`STAT_COLUMNS` order."""
        values = np.asarray(values, dtype=np.float64)
        return cls(terms, *values.T, tau=tau, method=method)

    @property
    def values(self) -> np.ndarray:
        """``(p, 5)`` array in :data:`STAT_COLUMNS` order."""
        return np.column_stack([self.estimates, self.std_errors, self.lower,
                                self.upper, self.p_values])

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(self.values, index=list(self.terms),
                             columns=list(STAT_COLUMNS))
        frame.index.name = "term"
        return frame

    def __repr__(self) -> str:
        tau = "None" if self.tau is None else f"{self.tau:g}"
        lines = [f"CoefficientTable(tau={tau}, method={self.method!r})"]
        width = max([12] + [len(t) for t in self.terms])
        lines.append(
            f"{'':>{width}s} {'Value':>10s} {'Std Err':>10s} "
            f"{'lower':>10s} {'upper':>10s} {'Pr(>|t|)':>10s}"
        )
        for i, name in enumerate(self.terms):
            lines.append(
                f"{name:>{width}s} {self.estimates[i]:10.4f} "
                f"{self.std_errors[i]:10.4f} {self.lower[i]:10.4f} "
                f"{self.upper[i]:10.4f} {self.p_values[i]:10.4f}"
            )
        return "\n".join(lines)


def bootstrap_table(
    terms: Sequence[str],
    coefficients: np.ndarray,
    boot_coefficients: np.ndarray,
    tau: float,
    alpha: float = 0.05,
) -> CoefficientTable:
    """Summarise an ``(R, p)`` matrix of bootstrap draws.

    Rows containing NaN (failed replicates) are dropped.  With fewer than
    two usable replicates every column except the estimate is NaN.
    """
    coefficients = np.asarray(coefficients, dtype=np.float64)
    B = np.asarray(boot_coefficients, dtype=np.float64)
    B = B[np.all(np.isfinite(B), axis=1)]
    n_ok = B.shape[0]
    p = coefficients.shape[0]

    if n_ok < 2:
        nan = np.full(p, np.nan)
        return CoefficientTable(terms, coefficients, nan, nan, nan, nan,
                                tau=tau, method="boot")

    se = np.std(B, axis=0, ddof=1)
    dof = n_ok - 1
    with np.errstate(divide="ignore", invalid="ignore"):
        tstat = coefficients / se
    p_values = 2.0 * student_t.sf(np.abs(tstat), dof)
    crit = student_t.ppf(1.0 - alpha / 2.0, dof)
    return CoefficientTable(
        terms,
        coefficients,
        se,
        coefficients - crit * se,
        coefficients + crit * se,
        p_values,
        tau=tau,
        method="boot",
    )
