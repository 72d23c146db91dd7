"""Estimator base classes for conditional quantile estimation."""

from lqmix.estimators._base import BaseQuantileEstimator, information_criteria

__all__ = ["BaseQuantileEstimator", "information_criteria"]
