"""
ARMA Kalman Toolbox Utilities Module

Packed-triangular storage for symmetric covariance matrices and the
symmetry and positive semi-definiteness checks used on filter output.
"""

import logging

# Set up module-level logger
logger = logging.getLogger("armakf.utils")

from .matrix_ops import (
    packed_length,
    pack_symmetric,
    unpack_symmetric,
    ensure_symmetric,
    is_symmetric,
    is_positive_semidefinite
)

__all__ = [
    'packed_length',
    'pack_symmetric',
    'unpack_symmetric',
    'ensure_symmetric',
    'is_symmetric',
    'is_positive_semidefinite'
]
