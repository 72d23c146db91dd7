"""Type aliases and common types for the lqmix package."""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import numpy.typing as npt

# Quantile level(s) accepted by estimators and selection helpers
TauLike = Union[float, Sequence[float]]

# Strict numpy array types returned from computations
FloatArray = npt.NDArray[np.float64]
IntArray = npt.NDArray[np.int64]
