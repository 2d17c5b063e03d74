# armakf/core/validation.py

"""
Validation utilities for the ARMA Kalman Toolbox.

Input checks shared by the state-space builder, the covariance solvers and
the Kalman filter. Each helper returns a normalised float64 array on success
and raises one of the toolbox exceptions on failure, so call sites read as
``x = validate_...(x, "name")``.
"""

from typing import Any, Optional

import numpy as np
import pandas as pd

from armakf.core.exceptions import (
    raise_data_error, raise_dimension_error, raise_parameter_error
)
from armakf.core.types import CoefficientVector, Matrix, TimeSeriesData, Vector


def validate_coefficients(
    coefficients: Optional[CoefficientVector],
    coefficient_name: str = "coefficients"
) -> Vector:
    """Validate a sequence of AR or MA coefficients.

    ``None`` and empty sequences are both accepted and mean "order zero".

    Args:
        coefficients: Coefficient sequence to validate
        coefficient_name: Name of the coefficients for error messages

    Returns:
        np.ndarray: 1-D float64 copy of the coefficients

    Raises:
        ParameterError: If the coefficients are not a flat sequence of finite numbers
    """
    if coefficients is None:
        return np.zeros(0, dtype=np.float64)

    try:
        array = np.array(coefficients, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise_parameter_error(
            f"{coefficient_name} must be a sequence of numbers",
            param_name=coefficient_name,
            constraint="numeric",
            details=str(e)
        )

    if array.ndim == 0:
        array = array.reshape(1)

    if array.ndim != 1:
        raise_parameter_error(
            f"{coefficient_name} must be one-dimensional, got shape {array.shape}",
            param_name=coefficient_name,
            constraint="1-D sequence"
        )

    if not np.all(np.isfinite(array)):
        raise_parameter_error(
            f"{coefficient_name} must contain only finite values",
            param_name=coefficient_name,
            param_value=array,
            constraint="finite"
        )

    return array


def validate_order(order: Any, order_name: str = "order") -> int:
    """Validate a non-negative integer order such as a differencing count.

    Raises:
        ParameterError: If order is not a non-negative integer
    """
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
        raise_parameter_error(
            f"{order_name} must be an integer, got {type(order).__name__}",
            param_name=order_name,
            param_value=order,
            constraint="integer"
        )
    if order < 0:
        raise_parameter_error(
            f"{order_name} must be non-negative, got {order}",
            param_name=order_name,
            param_value=order,
            constraint=">= 0"
        )
    return int(order)


def validate_time_series(
    data: TimeSeriesData,
    data_name: str = "data",
    min_length: int = 1
) -> Vector:
    """Validate an observation sequence.

    Args:
        data: Observations as a NumPy array, pandas Series or plain sequence
        data_name: Name of the data for error messages
        min_length: Minimum number of observations required

    Returns:
        np.ndarray: 1-D float64 copy of the observations

    Raises:
        DataError: If the series is too short or contains NaN or infinite values
        DimensionError: If the data is not one-dimensional
    """
    if data is None:
        raise TypeError(f"{data_name} cannot be None")

    if isinstance(data, pd.Series):
        array = data.to_numpy(dtype=np.float64, copy=True)
    else:
        array = np.array(data, dtype=np.float64)

    if array.ndim == 2 and 1 in array.shape:
        array = array.ravel()

    if array.ndim != 1:
        raise_dimension_error(
            f"{data_name} must be one-dimensional, got shape {array.shape}",
            array_name=data_name,
            expected_shape="(n,)",
            actual_shape=array.shape
        )

    if array.shape[0] < min_length:
        raise_data_error(
            f"{data_name} must contain at least {min_length} observations, got {array.shape[0]}",
            data_name=data_name,
            issue="too short"
        )

    if np.isnan(array).any():
        raise_data_error(
            f"{data_name} contains NaN values",
            data_name=data_name,
            issue="contains NaN values",
            index=int(np.flatnonzero(np.isnan(array))[0])
        )

    if np.isinf(array).any():
        raise_data_error(
            f"{data_name} contains infinite values",
            data_name=data_name,
            issue="contains infinite values",
            index=int(np.flatnonzero(np.isinf(array))[0])
        )

    return array


def validate_square_matrix(
    matrix: Any,
    matrix_name: str = "matrix",
    expected_size: Optional[int] = None
) -> Matrix:
    """Validate that a matrix is square, optionally of a given size.

    Returns:
        np.ndarray: C-contiguous float64 copy of the matrix

    Raises:
        DimensionError: If matrix is not square or has the wrong size
    """
    if matrix is None:
        raise TypeError(f"{matrix_name} cannot be None")

    matrix = np.array(matrix, dtype=np.float64, order="C")

    if matrix.ndim != 2:
        raise_dimension_error(
            f"{matrix_name} must be 2-dimensional, got {matrix.ndim} dimensions",
            array_name=matrix_name,
            expected_shape="square matrix",
            actual_shape=matrix.shape
        )

    if matrix.shape[0] != matrix.shape[1]:
        raise_dimension_error(
            f"{matrix_name} must be square, got shape {matrix.shape}",
            array_name=matrix_name,
            expected_shape=f"({matrix.shape[0]}, {matrix.shape[0]})",
            actual_shape=matrix.shape
        )

    if expected_size is not None and matrix.shape[0] != expected_size:
        raise_dimension_error(
            f"{matrix_name} must be {expected_size}x{expected_size}, got shape {matrix.shape}",
            array_name=matrix_name,
            expected_shape=(expected_size, expected_size),
            actual_shape=matrix.shape
        )

    return matrix


def validate_vector(
    vector: Any,
    expected_length: Optional[int] = None,
    vector_name: str = "vector"
) -> Vector:
    """Validate that an array is a vector with the expected length.

    Column and row vectors are flattened.

    Raises:
        DimensionError: If vector is not 1-dimensional or has wrong length
    """
    if vector is None:
        raise TypeError(f"{vector_name} cannot be None")

    vector = np.array(vector, dtype=np.float64)

    if vector.ndim == 2 and (vector.shape[0] == 1 or vector.shape[1] == 1):
        vector = vector.ravel()
    elif vector.ndim != 1:
        raise_dimension_error(
            f"{vector_name} must be 1-dimensional, got shape {vector.shape}",
            array_name=vector_name,
            expected_shape="1D vector",
            actual_shape=vector.shape
        )

    if expected_length is not None and vector.shape[0] != expected_length:
        raise_dimension_error(
            f"{vector_name} has length {vector.shape[0]}, expected {expected_length}",
            array_name=vector_name,
            expected_shape=f"vector of length {expected_length}",
            actual_shape=vector.shape
        )

    return vector
