'''
Pytest configuration and fixtures for the ARMA Kalman Toolbox test suite.

Provides seeded data generators, ready-built state-space models and an
isolated configuration directory so that no test reads or writes the
user's ~/.armakf.
'''

import os
import tempfile
from typing import Sequence

# Must be set before the configuration manager is first used
os.environ["ARMAKF_CONFIG_DIR"] = tempfile.mkdtemp(prefix="armakf-tests-")

import numpy as np
import pandas as pd
import pytest
from scipy import signal
from hypothesis import strategies as st

from armakf.core.config import reset_config
from armakf.models.time_series.state_space import StateSpaceARMA


def simulate_arma(rng: np.random.Generator,
                  ar: Sequence[float],
                  ma: Sequence[float],
                  nobs: int,
                  burn: int = 200) -> np.ndarray:
    """Simulate a unit-variance Gaussian ARMA process with scipy's lfilter."""
    innovations = rng.standard_normal(nobs + burn)
    y = signal.lfilter(np.r_[1.0, ma], np.r_[1.0, -np.asarray(ar, dtype=float)], innovations)
    return y[burn:]


# Stationary, invertible parameter sets covering each branch of AS154
STATIONARY_MODELS = [
    ([0.5], []),
    ([0.5, -0.3], []),
    ([0.2, 0.1, 0.3], []),
    ([], [0.3]),
    ([], [0.4, 0.2]),
    ([0.6], [0.3]),
    ([-0.4], [0.5]),
    ([0.5, -0.2], [0.4]),
    ([0.3], [0.2, -0.1, 0.05]),
    ([0.4, 0.2], [0.3, -0.2]),
]


@pytest.fixture(autouse=True)
def _reset_configuration():
    """Restore default configuration after every test."""
    yield
    reset_config()


# ---- Basic Data Generation Fixtures ----

@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def sample_size() -> int:
    """Default sample size for test data."""
    return 200


@pytest.fixture
def ar1_data(rng: np.random.Generator, sample_size: int) -> np.ndarray:
    """AR(1) data with phi = 0.5."""
    return simulate_arma(rng, [0.5], [], sample_size)


@pytest.fixture
def arma21_data(rng: np.random.Generator, sample_size: int) -> np.ndarray:
    """ARMA(2,1) data with phi = (0.5, -0.2), theta = 0.4."""
    return simulate_arma(rng, [0.5, -0.2], [0.4], sample_size)


@pytest.fixture
def arma11_pandas_data(rng: np.random.Generator, sample_size: int) -> pd.Series:
    """ARMA(1,1) data as a pandas Series with a daily DatetimeIndex."""
    index = pd.date_range(start="2020-01-01", periods=sample_size, freq="D")
    return pd.Series(simulate_arma(rng, [0.6], [0.3], sample_size), index=index)


# ---- State Space Fixtures ----

@pytest.fixture
def ar1_state_space(ar1_data: np.ndarray) -> StateSpaceARMA:
    return StateSpaceARMA([0.5], [], ar1_data)


@pytest.fixture
def arma21_state_space(arma21_data: np.ndarray) -> StateSpaceARMA:
    return StateSpaceARMA([0.5, -0.2], [0.4], arma21_data)


# ---- Hypothesis Strategies ----

stationary_coefficient = st.floats(min_value=-0.8, max_value=0.8,
                                   allow_nan=False, allow_infinity=False)
