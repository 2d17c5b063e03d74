# armakf/models/time_series/__init__.py
"""
ARMA Kalman Toolbox Time Series Module

Key components:
- StateSpaceARMA: companion-form state space of an ARMA(p, q) model
- stationary_covariance: Lyapunov solve by Kronecker inversion
- initial_state_covariance: algorithm AS 154, packed output
- ArmaKalmanFilter / KalmanFilterResult: prediction errors and variances
- filter_many / filter_many_async: thread-pool evaluation of many models
- gaussian_loglikelihood / concentrated_loglikelihood
"""

import logging

# Set up module-level logger
logger = logging.getLogger("armakf.models.time_series")

try:
    from .state_space import StateSpaceARMA, difference_series
    from .initial_covariance import (
        stationary_covariance,
        initial_state_covariance,
        validate_as154_dimensions,
        LYAPUNOV_SENTINEL
    )
    from .kalman import (
        ArmaKalmanFilter,
        KalmanFilterResult,
        filter_many,
        filter_many_async
    )
    from .likelihood import gaussian_loglikelihood, concentrated_loglikelihood
except ImportError as e:
    logger.error(f"Error importing time series components: {e}")
    raise ImportError(
        "Failed to import time series components. Please ensure the package "
        "is correctly installed with numpy, scipy, pandas and numba."
    ) from e

__all__ = [
    'StateSpaceARMA',
    'difference_series',
    'stationary_covariance',
    'initial_state_covariance',
    'validate_as154_dimensions',
    'LYAPUNOV_SENTINEL',
    'ArmaKalmanFilter',
    'KalmanFilterResult',
    'filter_many',
    'filter_many_async',
    'gaussian_loglikelihood',
    'concentrated_loglikelihood'
]
