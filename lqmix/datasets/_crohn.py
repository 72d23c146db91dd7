"""Synthetic Crohn's disease microbiome cohort.

Two visits per individual.  Controls stay healthy, the
remission-remission group stays in remission and the
remission-exacerbation group flares at the second visit.  The relative
abundance of the taxon drops with disease activity and a share of the
samples fall below the detection limit (abundance ``0``).
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np
import pandas as pd
from sklearn.utils import Bunch, check_random_state

from lqmix.datasets._prepare import prepare_observations

# log10 relative abundance: baseline and shifts by (group, visit)
_BASELINE = -2.5
_GROUP_SHIFT = {0: 0.0, 1: -0.3, 2: -0.4}
_FLARE_SHIFT = -0.6
_DETECTION_LIMIT = 1e-5


def make_crohn_abundance(
    n_controls: int = 15,
    n_patients: int = 57,
    frac_exacerbation: float = 0.45,
    random_state: Optional[Union[int, np.random.RandomState]] = None,
) -> Bunch:
    """Generate the example longitudinal abundance cohort.

    Parameters
    ----------
    n_controls : int
        Healthy controls (group ``0``).
    n_patients : int
        Crohn's patients, split between remission-remission (group ``1``)
        and remission-exacerbation (group ``2``).
    frac_exacerbation : float
        Share of patients who flare at the second visit.
    random_state : int, RandomState or None

    Returns
    -------
    sklearn.utils.Bunch
        Dictionary-like with keys:

        - ``frame`` : DataFrame — prepared observations,
          ``2 * (n_controls + n_patients)`` rows
        - ``raw`` : DataFrame — the raw columns before preparation
        - ``DESCR`` : str
    """
    if n_controls < 1 or n_patients < 2:
        raise ValueError("Need at least one control and two patients.")
    if not (0 < frac_exacerbation < 1):
        raise ValueError(
            f"frac_exacerbation must be in (0, 1), got {frac_exacerbation}."
        )
    rng = check_random_state(random_state)

    n_re = max(1, min(n_patients - 1, int(round(n_patients * frac_exacerbation))))
    groups = np.concatenate([
        np.zeros(n_controls, dtype=int),
        np.ones(n_patients - n_re, dtype=int),
        np.full(n_re, 2, dtype=int),
    ])
    ids = ([f"C{i + 1:02d}" for i in range(n_controls)]
           + [f"P{i + 1:02d}" for i in range(n_patients)])
    n = len(ids)

    age = np.clip(rng.normal(38.0, 12.0, size=n), 18.0, 80.0).round(1)
    sex = rng.choice(["F", "M"], size=n)
    smoking = rng.choice(["ex", "never", "current"], size=n, p=[0.25, 0.5, 0.25])
    intercepts = rng.normal(0.0, 0.5, size=n)
    slopes = rng.normal(0.0, 0.2, size=n)

    records = []
    for i in range(n):
        g = groups[i]
        for visit in (1, 2):
            flare = g == 2 and visit == 2
            status = 0 if g == 0 else (2 if flare else 1)
            mu = (_BASELINE + _GROUP_SHIFT[g] + (_FLARE_SHIFT if flare else 0.0)
                  + intercepts[i] + slopes[i] * (visit - 1)
                  - 0.005 * (age[i] - 38.0))
            log10_abundance = mu + rng.laplace(0.0, 0.4)
            density = 10.0 ** log10_abundance
            if density < _DETECTION_LIMIT or rng.uniform() < 0.05:
                density = 0.0
            records.append({
                "individual": ids[i],
                "visit": visit,
                "group": g,
                "status": status,
                "age": age[i],
                "sex": sex[i],
                "smoking": smoking[i],
                "density": density,
            })

    raw = pd.DataFrame.from_records(records)
    return Bunch(
        frame=prepare_observations(raw, n_visits=2),
        raw=raw,
        DESCR=(
            f"Synthetic Crohn's disease cohort: {n_controls} controls and "
            f"{n_patients} patients ({n_patients - n_re} remission-remission, "
            f"{n_re} remission-exacerbation), two visits each.  The response "
            "is the relative abundance of one bacterial taxon."
        ),
    )
