# armakf/utils/matrix_ops.py
"""
Matrix Operations Module

Packed-triangular storage and symmetry helpers for state covariance matrices.

The packed layout stores the r(r+1)/2 unique entries of a symmetric r x r
matrix row by row over the upper triangle::

    (0,0), (0,1), ..., (0,r-1), (1,1), (1,2), ..., (r-1,r-1)

which is the same sequence as the lower triangle taken column by column.
This is the layout produced by the AS154 initial covariance routine. Note it
differs from ``vech`` (lower triangle taken row by row).

Functions:
    packed_length: Number of packed entries for an r x r matrix
    pack_symmetric: Pack a symmetric matrix
    unpack_symmetric: Rebuild the full symmetric matrix from packed entries
    ensure_symmetric: Symmetrize a matrix by averaging with its transpose
    is_symmetric: Check symmetry within a tolerance
    is_positive_semidefinite: Check that the smallest eigenvalue is not negative
"""

import logging
import math
from typing import Optional

import numpy as np
from numba import jit
from scipy import linalg

from armakf.core.config import get_numerical_config
from armakf.core.types import Matrix, PackedMatrix
from armakf.core.exceptions import raise_dimension_error, raise_parameter_error

# Set up module-level logger
logger = logging.getLogger("armakf.utils.matrix_ops")


def packed_length(dimension: int) -> int:
    """Number of unique entries r(r+1)/2 of a symmetric r x r matrix."""
    if dimension < 0:
        raise_parameter_error(
            f"dimension must be non-negative, got {dimension}",
            param_name="dimension",
            param_value=dimension,
            constraint=">= 0"
        )
    return dimension * (dimension + 1) // 2


def _packed_dimension(length: int) -> int:
    """Inverse of packed_length, or -1 if length is not triangular."""
    dimension = (math.isqrt(8 * length + 1) - 1) // 2
    if dimension * (dimension + 1) // 2 != length:
        return -1
    return dimension


@jit(nopython=True, cache=True)
def _pack_numba(matrix: np.ndarray) -> np.ndarray:
    n = matrix.shape[0]
    result = np.zeros(n * (n + 1) // 2, dtype=np.float64)
    idx = 0
    for i in range(n):
        for j in range(i, n):
            result[idx] = matrix[i, j]
            idx += 1
    return result


@jit(nopython=True, cache=True)
def _unpack_numba(packed: np.ndarray, n: int) -> np.ndarray:
    result = np.zeros((n, n), dtype=np.float64)
    idx = 0
    for i in range(n):
        for j in range(i, n):
            result[i, j] = packed[idx]
            result[j, i] = packed[idx]
            idx += 1
    return result


def pack_symmetric(matrix: Matrix) -> PackedMatrix:
    """
    Pack the upper triangle of a square matrix row by row.

    Only the upper triangle is read; the caller is responsible for the matrix
    being symmetric.

    Args:
        matrix: Square matrix of shape (r, r)

    Returns:
        Vector of length r(r+1)/2

    Raises:
        DimensionError: If the input is not a square matrix

    Examples:
        >>> import numpy as np
        >>> from armakf.utils.matrix_ops import pack_symmetric
        >>> pack_symmetric(np.array([[1.0, 2.0], [2.0, 3.0]]))
        array([1., 2., 3.])
    """
    matrix = np.asarray(matrix, dtype=np.float64)

    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise_dimension_error(
            "Input must be a square matrix",
            array_name="matrix",
            expected_shape="(r, r)",
            actual_shape=matrix.shape
        )

    return _pack_numba(np.ascontiguousarray(matrix))


def unpack_symmetric(packed: PackedMatrix, dimension: Optional[int] = None) -> Matrix:
    """
    Rebuild a full symmetric matrix from its packed upper triangle.

    Args:
        packed: Vector of r(r+1)/2 entries in packed order
        dimension: Matrix dimension r; inferred from the length when omitted

    Returns:
        Symmetric matrix of shape (r, r)

    Raises:
        DimensionError: If the length is not r(r+1)/2

    Examples:
        >>> import numpy as np
        >>> from armakf.utils.matrix_ops import unpack_symmetric
        >>> unpack_symmetric(np.array([1.09, 0.3, 0.09]))
        array([[1.09, 0.3 ],
               [0.3 , 0.09]])
    """
    packed = np.asarray(packed, dtype=np.float64)

    if packed.ndim != 1:
        raise_dimension_error(
            "Packed input must be a vector",
            array_name="packed",
            expected_shape="(r(r+1)/2,)",
            actual_shape=packed.shape
        )

    if dimension is None:
        dimension = _packed_dimension(packed.shape[0])
        if dimension < 0:
            raise_dimension_error(
                f"Packed length {packed.shape[0]} is not of the form r(r+1)/2",
                array_name="packed",
                expected_shape="(r(r+1)/2,)",
                actual_shape=packed.shape
            )
    elif packed.shape[0] != packed_length(dimension):
        raise_dimension_error(
            f"Packed length {packed.shape[0]} does not match dimension {dimension}",
            array_name="packed",
            expected_shape=(packed_length(dimension),),
            actual_shape=packed.shape
        )

    return _unpack_numba(np.ascontiguousarray(packed), dimension)


def ensure_symmetric(matrix: Matrix, tol: float = 1e-10) -> Matrix:
    """
    Ensure a matrix is symmetric by averaging with its transpose.

    If the matrix is already symmetric within ``tol`` it is returned unchanged.

    Raises:
        DimensionError: If the input matrix is not square
    """
    matrix = np.asarray(matrix)

    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise_dimension_error(
            "Input must be a square matrix",
            array_name="matrix",
            expected_shape="(n, n)",
            actual_shape=matrix.shape
        )

    if np.allclose(matrix, matrix.T, rtol=0.0, atol=tol):
        return matrix

    return (matrix + matrix.T) / 2


def is_symmetric(matrix: Matrix, tol: Optional[float] = None) -> bool:
    """
    Check whether a square matrix equals its transpose within an absolute tolerance.

    ``tol`` defaults to ``numerical.symmetry_tolerance``. Non-square input and
    matrices containing non-finite values are not symmetric.
    """
    if tol is None:
        tol = get_numerical_config().symmetry_tolerance
    matrix = np.asarray(matrix)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        return False
    if not np.all(np.isfinite(matrix)):
        return False
    return bool(np.max(np.abs(matrix - matrix.T), initial=0.0) <= tol)


def is_positive_semidefinite(matrix: Matrix, tol: Optional[float] = None) -> bool:
    """
    Check whether a symmetric matrix is positive semi-definite.

    The smallest eigenvalue of the symmetrized matrix may be as low as
    ``-tol * max(1, largest absolute eigenvalue)``; ``tol`` defaults to
    ``numerical.psd_tolerance``.

    Examples:
        >>> import numpy as np
        >>> from armakf.utils.matrix_ops import is_positive_semidefinite
        >>> is_positive_semidefinite(np.array([[1.0, 1.0], [1.0, 1.0]]))
        True
        >>> is_positive_semidefinite(np.array([[1.0, 2.0], [2.0, 1.0]]))
        False
    """
    if tol is None:
        tol = get_numerical_config().psd_tolerance
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        return False
    if matrix.size == 0:
        return True
    if not np.all(np.isfinite(matrix)):
        return False

    eigenvalues = linalg.eigvalsh((matrix + matrix.T) / 2, check_finite=False)
    scale = max(1.0, float(np.max(np.abs(eigenvalues))))
    return bool(eigenvalues[0] >= -tol * scale)
