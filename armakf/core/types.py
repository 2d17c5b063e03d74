# armakf/core/types.py

"""
Core type annotations for the ARMA Kalman Toolbox.

Type aliases used across the package so that signatures say what shape of
array they expect (a vector, a square matrix, a packed triangle) even though
NumPy itself only knows about ``np.ndarray``.
"""

from typing import Any, Dict, Literal, Sequence, Tuple, Union

import numpy as np
import pandas as pd

# NumPy array type aliases
Vector = np.ndarray  # 1D array
Matrix = np.ndarray  # 2D array
Tensor3D = np.ndarray  # 3D array

# Specialized array types
TimeSeriesData = Union[np.ndarray, pd.Series, Sequence[float]]  # Single time series
CoefficientVector = Union[np.ndarray, Sequence[float]]  # AR or MA coefficients
CovarianceMatrix = np.ndarray  # Symmetric, positive semi-definite
PackedMatrix = np.ndarray  # r(r+1)/2 unique entries of a symmetric r x r matrix
TransitionMatrix = np.ndarray  # r x r companion matrix

# Model specification types
ARMAOrder = Tuple[int, int]  # (p, q) for AR and MA orders
InitialCovarianceMethod = Literal["lyapunov", "as154"]
InitialCovarianceSpec = Union[InitialCovarianceMethod, np.ndarray]

# Configuration types
ConfigDict = Dict[str, Dict[str, Any]]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
