# armakf/models/time_series/likelihood.py
"""
Exact Gaussian log-likelihood from Kalman prediction errors.

With prediction errors e_t and their variances f_t (in units of the
innovation variance sigma^2) the prediction error decomposition gives::

    log L = -1/2 * (n log(2 pi sigma^2) + sum log f_t + sum e_t^2 / (sigma^2 f_t))

``gaussian_loglikelihood`` evaluates it at sigma^2 = 1.
``concentrated_loglikelihood`` replaces sigma^2 by its maximiser
``sum(e_t^2 / f_t) / n``.

Degenerate inputs (zero or negative variances, non-finite errors) produce
non-finite values rather than exceptions, so an optimiser can treat them
as a penalty.
"""

import logging
from typing import Tuple

import numpy as np

from armakf.core.types import Vector
from armakf.core.validation import validate_vector

# Set up module-level logger
logger = logging.getLogger("armakf.models.time_series.likelihood")

_LOG_2PI = np.log(2.0 * np.pi)


def _validate_pair(errors: Vector, variances: Vector) -> Tuple[Vector, Vector]:
    errors = validate_vector(errors, vector_name="prediction_errors")
    variances = validate_vector(variances, errors.shape[0], "prediction_error_variances")
    return errors, variances


def gaussian_loglikelihood(errors: Vector, variances: Vector, sigma2: float = 1.0) -> float:
    """
    Exact Gaussian log-likelihood at a given innovation variance.

    Args:
        errors: Prediction errors e_t
        variances: Prediction error variances f_t
        sigma2: Innovation variance

    Returns:
        The log-likelihood; nan or -inf for degenerate variances

    Raises:
        DimensionError: If errors and variances differ in length

    Examples:
        >>> import numpy as np
        >>> from armakf.models.time_series.likelihood import gaussian_loglikelihood
        >>> round(gaussian_loglikelihood(np.zeros(1), np.ones(1)), 6)
        -0.918939
    """
    errors, variances = _validate_pair(errors, variances)
    n = errors.shape[0]

    with np.errstate(divide="ignore", invalid="ignore"):
        scaled = variances * sigma2
        return float(-0.5 * (n * _LOG_2PI
                             + np.sum(np.log(scaled))
                             + np.sum(errors ** 2 / scaled)))


def concentrated_loglikelihood(errors: Vector, variances: Vector) -> Tuple[float, float]:
    """
    Log-likelihood with the innovation variance concentrated out.

    Returns:
        Tuple of (log-likelihood, sigma2 estimate)

    Raises:
        DimensionError: If errors and variances differ in length
    """
    errors, variances = _validate_pair(errors, variances)
    n = errors.shape[0]

    with np.errstate(divide="ignore", invalid="ignore"):
        sigma2 = float(np.sum(errors ** 2 / variances) / n)
        loglik = float(-0.5 * (n * (_LOG_2PI + np.log(sigma2))
                               + np.sum(np.log(variances))
                               + n))

    return loglik, sigma2
