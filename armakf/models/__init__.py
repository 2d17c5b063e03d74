# armakf/models/__init__.py
"""
ARMA Kalman Toolbox Models Module

Holds the time series models of the toolbox: the ARMA state-space form,
its stationary initial covariance, and the Kalman filter that produces the
prediction error decomposition of the Gaussian likelihood.
"""

import logging

# Set up module-level logger
logger = logging.getLogger("armakf.models")

try:
    from . import time_series
except ImportError as e:
    logger.error(f"Error importing model components: {e}")
    raise ImportError(
        "Failed to import model components. Please ensure the package "
        "is correctly installed. You can install it using: "
        "pip install armakf"
    ) from e

from .time_series import (
    StateSpaceARMA,
    ArmaKalmanFilter,
    KalmanFilterResult,
    stationary_covariance,
    initial_state_covariance
)

__all__ = [
    'time_series',
    'StateSpaceARMA',
    'ArmaKalmanFilter',
    'KalmanFilterResult',
    'stationary_covariance',
    'initial_state_covariance'
]
