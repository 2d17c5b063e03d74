# armakf/models/time_series/state_space.py
"""
State-space form of an ARMA(p, q) model.

The model ``y_t = sum_i phi_i y_{t-i} + e_t + sum_j theta_j e_{t-j}`` is
written with state dimension ``r = max(p, q + 1)`` as::

    a_{t+1} = T a_t + R e_{t+1}
    y_t     = [1, 0, ..., 0] a_t

where T is the companion transition matrix with the AR coefficients in its
first column and ones on the superdiagonal, and R = (1, theta_1, ...,
theta_q, 0, ..., 0). The state disturbance covariance is Q = R R' (unit
innovation variance; the scale is concentrated out of the likelihood).
"""

import logging
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from armakf.core.exceptions import raise_parameter_error
from armakf.core.types import (
    ARMAOrder, CoefficientVector, Matrix, TimeSeriesData, TransitionMatrix, Vector
)
from armakf.core.validation import (
    validate_coefficients, validate_order, validate_time_series
)

# Set up module-level logger
logger = logging.getLogger("armakf.models.time_series.state_space")


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def difference_series(series: Vector, differences: int = 1, lag: int = 1) -> Vector:
    """
    Difference a series ``differences`` times at the given lag.

    Each pass maps ``x`` to ``x[lag:] - x[:-lag]`` and so shortens the series
    by ``lag`` observations.

    Raises:
        ParameterError: If ``differences`` is negative or ``lag`` is less than 1

    Examples:
        >>> import numpy as np
        >>> from armakf.models.time_series.state_space import difference_series
        >>> difference_series(np.array([1.0, 4.0, 9.0, 16.0]), differences=2)
        array([2., 2.])
    """
    differences = validate_order(differences, "differences")
    lag = validate_order(lag, "lag")
    if lag < 1:
        raise_parameter_error(
            f"lag must be at least 1, got {lag}",
            param_name="lag",
            param_value=lag,
            constraint=">= 1"
        )

    result = np.asarray(series, dtype=np.float64)
    for _ in range(differences):
        result = result[lag:] - result[:-lag]
    return result


def transition_matrix(ar_coefficients: Vector, dimension: int) -> TransitionMatrix:
    """Companion-form transition matrix with the AR coefficients in column 0."""
    transition = np.zeros((dimension, dimension), dtype=np.float64)
    transition[:ar_coefficients.shape[0], 0] = ar_coefficients
    transition[np.arange(dimension - 1), np.arange(1, dimension)] = 1.0
    return transition


def moving_average_vector(ma_coefficients: Vector, dimension: int) -> Vector:
    """The vector R = (1, theta_1, ..., theta_q) padded with zeros to length r."""
    vector = np.zeros(dimension, dtype=np.float64)
    vector[0] = 1.0
    vector[1:ma_coefficients.shape[0] + 1] = ma_coefficients
    return vector


class StateSpaceARMA:
    """
    An ARMA model and the differenced observations it is evaluated on.

    All arrays are copied on construction and exposed read-only, so one
    instance can be shared between filters running in different threads.

    Args:
        ar_coefficients: AR coefficients phi_1, ..., phi_p (may be empty)
        ma_coefficients: MA coefficients theta_1, ..., theta_q (may be empty)
        series: Observations before differencing; a pandas Series keeps its index
        differences: Number of lag-1 differences to take before filtering

    Raises:
        ParameterError: If coefficients are not finite or differences is negative
        DataError: If fewer than one observation remains after differencing

    Examples:
        >>> from armakf.models.time_series.state_space import StateSpaceARMA
        >>> ss = StateSpaceARMA([0.5], [0.3], [1.0, 0.2, -0.4])
        >>> ss.r
        2
        >>> ss.transition_matrix
        array([[0.5, 1. ],
               [0. , 0. ]])
    """

    def __init__(self,
                 ar_coefficients: Optional[CoefficientVector],
                 ma_coefficients: Optional[CoefficientVector],
                 series: TimeSeriesData,
                 differences: int = 0) -> None:
        self._ar = _read_only(validate_coefficients(ar_coefficients, "ar_coefficients"))
        self._ma = _read_only(validate_coefficients(ma_coefficients, "ma_coefficients"))
        self._differences = validate_order(differences, "differences")

        observations = validate_time_series(series, "series", min_length=self._differences + 1)
        self._index: Optional[pd.Index] = None
        if isinstance(series, pd.Series):
            self._index = series.index[self._differences:]

        self._y = _read_only(np.ascontiguousarray(difference_series(observations, self._differences)))

        self._r = max(self.p, self.q + 1)
        self._transition = _read_only(transition_matrix(self._ar, self._r))
        self._ma_vector = _read_only(moving_average_vector(self._ma, self._r))
        self._disturbance = _read_only(np.outer(self._ma_vector, self._ma_vector))

        logger.debug(
            f"Built ARMA({self.p}, {self.q}) state space with r={self._r} "
            f"and {self.nobs} observations"
        )

    @property
    def ar_coefficients(self) -> Vector:
        return self._ar

    @property
    def ma_coefficients(self) -> Vector:
        return self._ma

    @property
    def p(self) -> int:
        """Autoregressive order."""
        return self._ar.shape[0]

    @property
    def q(self) -> int:
        """Moving-average order."""
        return self._ma.shape[0]

    @property
    def order(self) -> ARMAOrder:
        return (self.p, self.q)

    @property
    def r(self) -> int:
        """State dimension max(p, q + 1)."""
        return self._r

    @property
    def differences(self) -> int:
        return self._differences

    @property
    def differenced_series(self) -> Vector:
        """Observations after differencing, as seen by the filter."""
        return self._y

    @property
    def index(self) -> Optional[pd.Index]:
        """Index of the differenced observations when built from a pandas Series."""
        return self._index

    @property
    def nobs(self) -> int:
        return self._y.shape[0]

    @property
    def transition_matrix(self) -> TransitionMatrix:
        return self._transition

    @property
    def moving_average_vector(self) -> Vector:
        return self._ma_vector

    @property
    def disturbance_covariance(self) -> Matrix:
        """State disturbance covariance Q = R R'."""
        return self._disturbance

    def system_matrices(self) -> Tuple[TransitionMatrix, Matrix]:
        """Return (T, Q)."""
        return self._transition, self._disturbance

    def __repr__(self) -> str:
        return (f"StateSpaceARMA(p={self.p}, q={self.q}, r={self.r}, "
                f"differences={self.differences}, nobs={self.nobs})")
