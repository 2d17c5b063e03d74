# armakf/version.py
"""
ARMA Kalman Toolbox Version Information

Version number, package metadata and release history, accessible
programmatically via armakf.__version__.

The toolbox follows semantic versioning (MAJOR.MINOR.PATCH).
"""

from typing import Any, Dict, Tuple

# Version components
VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0

# Full version string
__version__ = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"

# Package metadata
__title__ = "ARMA Kalman Toolbox"
__description__ = "Kalman filter and AS 154 initial covariance for exact ARMA likelihoods"
__author__ = "ARMA Kalman Toolbox Developers"
__license__ = "MIT"

# Python version requirements
__python_requires__ = ">=3.10"

# Runtime dependencies, checked on import
__dependencies__ = {
    "numpy": ">=1.26.0",
    "scipy": ">=1.11.3",
    "pandas": ">=2.1.1",
    "numba": ">=0.58.0"
}

VERSION_HISTORY = [
    {
        "version": "0.1.0",
        "release_date": "2026-10-17",
        "changes": [
            "ARMA state-space builder with optional differencing",
            "Kalman filter producing prediction errors and variances",
            "Stationary initial covariance by Lyapunov solve and by AS 154",
            "Exact and concentrated Gaussian log-likelihood",
            "Thread-pool and asyncio evaluation of many models"
        ]
    }
]


def get_version_info() -> Dict[str, Any]:
    """Get version, release date, changes and dependency requirements."""
    current_version = VERSION_HISTORY[0]

    return {
        "version": __version__,
        "major": VERSION_MAJOR,
        "minor": VERSION_MINOR,
        "patch": VERSION_PATCH,
        "release_date": current_version["release_date"],
        "changes": current_version["changes"],
        "python_requires": __python_requires__,
        "dependencies": __dependencies__,
        "author": __author__,
        "license": __license__
    }


def get_version_components() -> Tuple[int, int, int]:
    return (VERSION_MAJOR, VERSION_MINOR, VERSION_PATCH)
