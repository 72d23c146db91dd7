"""Example data and validation of longitudinal abundance observations."""

from lqmix.datasets._crohn import make_crohn_abundance
from lqmix.datasets._prepare import (
    CATEGORY_LEVELS,
    DETECTION_FLOOR,
    REQUIRED_COLUMNS,
    load_abundance_csv,
    log_density,
    prepare_observations,
)

__all__ = [
    "make_crohn_abundance",
    "prepare_observations",
    "load_abundance_csv",
    "log_density",
    "REQUIRED_COLUMNS",
    "CATEGORY_LEVELS",
    "DETECTION_FLOOR",
]
