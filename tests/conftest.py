"""Shared fixtures."""

import numpy as np
import pandas as pd
import pytest

from lqmix.datasets import make_crohn_abundance


@pytest.fixture(scope="session")
def crohn():
    """Prepared example cohort (15 controls + 57 patients, two visits)."""
    return make_crohn_abundance(random_state=2024).frame


@pytest.fixture
def simulated_frame():
    """Random-intercept data with symmetric Laplace noise.

    y = 1 + 2 x + u_i + e,  u_i ~ N(0, 0.5^2),  e ~ Laplace(0, 0.4)
    """
    rng = np.random.RandomState(0)
    n_groups, per_group = 60, 4
    g = np.repeat(np.arange(n_groups), per_group)
    x = rng.randn(n_groups * per_group)
    u = rng.normal(0.0, 0.5, size=n_groups)[g]
    y = 1.0 + 2.0 * x + u + rng.laplace(0.0, 0.4, size=g.shape[0])
    return pd.DataFrame({"y": y, "x": x, "id": [f"s{k}" for k in g]})
