"""Abstract base class for formula-driven conditional quantile estimators.

Estimators in ``lqmix`` take a :class:`pandas.DataFrame` and patsy formulas
rather than ``(X, y)`` arrays, but otherwise follow the sklearn estimator
conventions: constructor arguments are stored verbatim (so ``get_params``
and ``clone`` work), and fitted state lives in attributes with a trailing
underscore.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod

import numpy as np
from sklearn.base import BaseEstimator
from sklearn.utils.validation import check_is_fitted


def information_criteria(loglik: float, df: int, nobs: int) -> tuple[float, float]:
    """Return ``(AIC, BIC)`` for a log-likelihood with *df* parameters."""
    aic = -2.0 * loglik + 2.0 * df
    bic = -2.0 * loglik + np.log(nobs) * df
    return float(aic), float(bic)


class BaseQuantileEstimator(BaseEstimator, metaclass=ABCMeta):
    """Abstract base for formula-driven quantile estimators.

    Subclasses **must** implement :meth:`fit`, :meth:`predict` and
    :meth:`_response`.
    """

    @abstractmethod
    def fit(self, data):
        """Fit the model.  Must be overridden by subclasses."""

    @abstractmethod
    def predict(self, data):
        """Predict.  Must be overridden by subclasses."""

    @abstractmethod
    def _response(self, data) -> np.ndarray:
        """Return the response vector for *data*."""

    def pinball_loss(self, data):
        r"""Return the mean pinball (check) loss on *data*.

        .. math::
            \frac{1}{n}\sum_i \rho_\tau(y_i - \hat y_i)

        Predictions are population-level (random effects set to zero).
        With several quantiles the loss is averaged over all of them.

        Returns
        -------
        float
        """
        check_is_fitted(self)
        y_pred = np.asarray(self.predict(data), dtype=np.float64)
        y = self._response(data)
        taus = np.atleast_1d(self.tau).astype(np.float64)

        if y_pred.ndim == 1:
            y_pred = y_pred[:, np.newaxis]
        residuals = y[:, np.newaxis] - y_pred
        loss = np.where(
            residuals >= 0,
            taus[np.newaxis, :] * residuals,
            (taus[np.newaxis, :] - 1) * residuals,
        )
        return float(np.mean(loss))
