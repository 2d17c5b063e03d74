# armakf/__init__.py
"""
ARMA Kalman Toolbox - exact ARMA likelihood ingredients for Python

Evaluates ARMA(p, q) models through a state-space Kalman filter and
computes the stationary initial state covariance that starts the filter,
either by a direct Lyapunov solve or by algorithm AS 154 (Gardner, Harvey
& Phillips, 1980).

The toolbox provides:
- StateSpaceARMA: companion-form state space built from coefficients and data
- ArmaKalmanFilter: one-step prediction errors e_t and variances f_t
- stationary_covariance / initial_state_covariance: the two initial covariance solvers
- gaussian_loglikelihood / concentrated_loglikelihood: the exact Gaussian likelihood
- filter_many / filter_many_async: parallel evaluation of many models

This module serves as the main entry point for the package.
"""

import os
import importlib
import logging
import re
import warnings
from typing import Tuple, Union

# Set up package-wide logger
logger = logging.getLogger("armakf")
logger.setLevel(getattr(logging, os.environ.get("ARMAKF_LOG_LEVEL", "INFO").upper(), logging.INFO))
_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logger.addHandler(_handler)

from .version import (
    __version__,
    __title__,
    __description__,
    __author__,
    __license__,
    __dependencies__
)

# Import subpackages to make them available in the armakf namespace
try:
    from . import core
    from . import models
    from . import utils
except ImportError as e:
    logger.error(f"Error importing ARMA Kalman Toolbox components: {e}")
    raise ImportError(
        "Failed to import ARMA Kalman Toolbox components. Please ensure the "
        "package is correctly installed. You can install it using: "
        "pip install armakf"
    ) from e

from .core.exceptions import (
    ArmaKFError,
    ParameterError,
    DimensionError,
    DataError,
    ModelSpecificationError,
    ConfigurationError,
    NumericWarning
)
from .core.config import get_config, set_config, reset_config
from .models.time_series import (
    StateSpaceARMA,
    ArmaKalmanFilter,
    KalmanFilterResult,
    stationary_covariance,
    initial_state_covariance,
    filter_many,
    filter_many_async,
    gaussian_loglikelihood,
    concentrated_loglikelihood
)
from .utils.matrix_ops import pack_symmetric, unpack_symmetric


def _version_tuple(version: str) -> Tuple[int, ...]:
    parts = []
    for piece in version.split(".")[:3]:
        # Leading digits only, so "1rc1" counts as 1
        match = re.match(r"\d+", piece)
        if match is None:
            break
        parts.append(int(match.group()))
    return tuple(parts)


def _check_dependencies() -> None:
    """
    Warn if a runtime dependency is older than the supported minimum.

    Missing dependencies already failed the imports above.
    """
    for package, requirement in __dependencies__.items():
        imported = importlib.import_module(package)
        pkg_version = getattr(imported, "__version__", None)
        if pkg_version is None:
            logger.warning(f"Cannot determine version for {package}")
            continue
        minimum = requirement.lstrip(">=")
        if _version_tuple(pkg_version) < _version_tuple(minimum):
            warnings.warn(
                f"{package} version {pkg_version} is older than the recommended "
                f"version {minimum}. This may cause compatibility issues.",
                UserWarning
            )


# Public API functions

def get_version() -> str:
    """
    Return the version of the ARMA Kalman Toolbox.

    Returns:
        str: Version string in format MAJOR.MINOR.PATCH
    """
    return __version__


def set_log_level(level: Union[str, int]) -> None:
    """
    Set the logging level for the ARMA Kalman Toolbox.

    Args:
        level: Logging level, either as string ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
              or as an integer constant from the logging module
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)
    logger.info(f"Log level set to {logging.getLevelName(level)}")


_check_dependencies()

__all__ = [
    # Subpackages
    'core',
    'models',
    'utils',

    # Model components
    'StateSpaceARMA',
    'ArmaKalmanFilter',
    'KalmanFilterResult',
    'stationary_covariance',
    'initial_state_covariance',
    'filter_many',
    'filter_many_async',
    'gaussian_loglikelihood',
    'concentrated_loglikelihood',
    'pack_symmetric',
    'unpack_symmetric',

    # Errors
    'ArmaKFError',
    'ParameterError',
    'DimensionError',
    'DataError',
    'ModelSpecificationError',
    'ConfigurationError',
    'NumericWarning',

    # Configuration
    'get_config',
    'set_config',
    'reset_config',

    # Functions
    'get_version',
    'set_log_level',

    # Metadata
    '__version__',
    '__title__',
    '__description__',
    '__author__',
    '__license__'
]
