# armakf/models/time_series/kalman.py
"""
Kalman filter for ARMA models in state-space form.

``ArmaKalmanFilter`` runs the whole prediction/update recursion when it is
constructed and then only exposes its outputs: the one-step prediction
errors e_t and their variances f_t, which are the ingredients of the exact
Gaussian likelihood (see ``armakf.models.time_series.likelihood``).

The filter starts from a zero state and a stationary initial covariance.
That covariance is obtained by the direct Lyapunov solve (default), by
algorithm AS 154, or supplied by the caller. No validity checks are made on
f_t during the recursion: parameters outside the stationary region give
non-finite output rather than an exception, which an outer optimiser can
penalise.

Many independent models can be filtered in parallel threads with
``filter_many`` (or ``filter_many_async`` from asyncio code); the compiled
recursion releases the GIL.
"""

import asyncio
import concurrent.futures
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from armakf.core.config import (
    get_filter_config, get_numerical_config, get_performance_config
)
from armakf.core.exceptions import raise_parameter_error, warn_numeric
from armakf.core.types import CovarianceMatrix, InitialCovarianceSpec, Matrix, Tensor3D, Vector
from armakf.core.validation import validate_square_matrix
from armakf.models.time_series._numba_core import arma_kalman_recursion
from armakf.models.time_series.initial_covariance import (
    initial_state_covariance, stationary_covariance
)
from armakf.models.time_series.likelihood import (
    concentrated_loglikelihood, gaussian_loglikelihood
)
from armakf.models.time_series.state_space import StateSpaceARMA
from armakf.utils.matrix_ops import unpack_symmetric

# Set up module-level logger
logger = logging.getLogger("armakf.models.time_series.kalman")

INITIAL_COVARIANCE_METHODS = ("lyapunov", "as154")


@dataclass
class KalmanFilterResult:
    """Output of one Kalman filter pass.

    Attributes:
        prediction_errors: One-step prediction errors e_t
        prediction_error_variances: Prediction error variances f_t
        filtered_state: Filtered state at the last observation
        filtered_covariance: Filtered state covariance at the last observation
        initial_covariance: Predicted state covariance used at t = 0
        initial_covariance_method: "lyapunov", "as154" or "user"
        ar_order: Autoregressive order p
        ma_order: Moving-average order q
        filtered_states: Filtered state at every step, when history was stored
        filtered_covariances: Filtered covariance at every step, when history was stored
        index: Index of the differenced observations, when built from a pandas Series
    """

    prediction_errors: Vector
    prediction_error_variances: Vector
    filtered_state: Vector
    filtered_covariance: CovarianceMatrix
    initial_covariance: CovarianceMatrix
    initial_covariance_method: str
    ar_order: int = 0
    ma_order: int = 0
    filtered_states: Optional[Matrix] = None
    filtered_covariances: Optional[Tensor3D] = None
    index: Optional[pd.Index] = None

    @property
    def nobs(self) -> int:
        return self.prediction_errors.shape[0]

    @property
    def is_finite(self) -> bool:
        """Whether every prediction error and variance is finite."""
        return bool(np.all(np.isfinite(self.prediction_errors))
                    and np.all(np.isfinite(self.prediction_error_variances)))

    def check_finite(self, warn: bool = True) -> bool:
        """Check the output for non-finite values, optionally issuing a NumericWarning."""
        finite = self.is_finite
        if not finite and warn:
            bad = int(np.sum(~np.isfinite(self.prediction_errors)
                             | ~np.isfinite(self.prediction_error_variances)))
            warn_numeric(
                f"Kalman filter produced {bad} non-finite prediction errors or variances",
                operation="ArmaKalmanFilter",
                issue="non-finite output",
                details="The model parameters are probably outside the stationary region."
            )
        return finite

    def loglikelihood(self, concentrated: bool = False) -> float:
        """Exact Gaussian log-likelihood (unit innovation variance unless concentrated)."""
        if concentrated:
            return concentrated_loglikelihood(self.prediction_errors,
                                              self.prediction_error_variances)[0]
        return gaussian_loglikelihood(self.prediction_errors, self.prediction_error_variances)

    def standardized_errors(self) -> Vector:
        """Prediction errors divided by the square root of their variances."""
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.prediction_errors / np.sqrt(self.prediction_error_variances)

    def to_dataframe(self) -> pd.DataFrame:
        """Per-observation output as a DataFrame.

        Returns:
            pd.DataFrame: Columns ``prediction_error``, ``prediction_error_variance``
            and ``standardized_error``, indexed like the differenced series
        """
        return pd.DataFrame(
            {
                "prediction_error": self.prediction_errors,
                "prediction_error_variance": self.prediction_error_variances,
                "standardized_error": self.standardized_errors(),
            },
            index=self.index
        )

    def summary(self) -> str:
        """Generate a text summary of the filter output."""
        lines = [
            "ARMA Kalman Filter",
            "=" * 40,
            f"Model: ARMA({self.ar_order}, {self.ma_order})",
            f"Observations: {self.nobs}",
            f"Initial covariance: {self.initial_covariance_method}",
            "-" * 40,
        ]
        if self.is_finite:
            loglik, sigma2 = concentrated_loglikelihood(self.prediction_errors,
                                                        self.prediction_error_variances)
            lines.append(f"Log-likelihood (sigma2 = 1): {self.loglikelihood():.6f}")
            lines.append(f"Log-likelihood (concentrated): {loglik:.6f}")
            lines.append(f"Innovation variance estimate: {sigma2:.6f}")
        else:
            lines.append("Output contains non-finite values")
        lines.append("=" * 40)
        return "\n".join(lines)


def _resolve_initial_covariance(state_space: StateSpaceARMA,
                                initial_covariance: InitialCovarianceSpec,
                                condition_limit: Optional[float] = None) -> Tuple[CovarianceMatrix, str]:
    if isinstance(initial_covariance, str):
        if initial_covariance == "lyapunov":
            covariance = stationary_covariance(*state_space.system_matrices(),
                                               condition_limit=condition_limit)
            return covariance, "lyapunov"
        if initial_covariance == "as154":
            packed = initial_state_covariance(state_space.ar_coefficients,
                                              state_space.ma_coefficients)
            return unpack_symmetric(packed, state_space.r), "as154"
        raise_parameter_error(
            f"Unknown initial covariance method: {initial_covariance}",
            param_name="initial_covariance",
            param_value=initial_covariance,
            constraint=f"one of {INITIAL_COVARIANCE_METHODS} or an (r, r) array"
        )

    covariance = validate_square_matrix(initial_covariance, "initial_covariance",
                                        expected_size=state_space.r)
    return covariance, "user"


class ArmaKalmanFilter:
    """
    Kalman filter for an ARMA model, run once on construction.

    Args:
        state_space: The model and its differenced observations
        initial_covariance: "lyapunov", "as154" or an explicit (r, r) matrix;
            defaults to ``filter.initial_covariance_method``
        store_history: Keep the filtered state and covariance of every step;
            defaults to ``filter.store_history``
        condition_limit: Condition number above which the Lyapunov system counts
            as singular; defaults to ``numerical.condition_number_limit``

    Raises:
        ParameterError: If the initial covariance method is not recognised
        DimensionError: If an explicit initial covariance is not (r, r)

    Examples:
        >>> from armakf.models.time_series.state_space import StateSpaceARMA
        >>> from armakf.models.time_series.kalman import ArmaKalmanFilter
        >>> kf = ArmaKalmanFilter(StateSpaceARMA([0.5], [], [1.0, 2.0]))
        >>> kf.prediction_errors
        array([1. , 1.5])
    """

    def __init__(self,
                 state_space: StateSpaceARMA,
                 initial_covariance: Optional[InitialCovarianceSpec] = None,
                 store_history: Optional[bool] = None,
                 condition_limit: Optional[float] = None) -> None:
        filter_config = get_filter_config()
        if initial_covariance is None:
            initial_covariance = filter_config.initial_covariance_method
        if store_history is None:
            store_history = filter_config.store_history

        self._state_space = state_space
        self._store_history = bool(store_history)
        self._initial_covariance, self._method = _resolve_initial_covariance(
            state_space, initial_covariance, condition_limit
        )
        self._initial_covariance.setflags(write=False)

        logger.debug(
            f"Filtering {state_space!r} with {self._method} initial covariance"
        )

        transition, disturbance = state_space.system_matrices()
        (errors, variances, state, covariance,
         state_history, covariance_history) = arma_kalman_recursion(
            state_space.differenced_series,
            transition,
            disturbance,
            np.ascontiguousarray(self._initial_covariance),
            self._store_history
        )

        for array in (errors, variances, state, covariance, state_history, covariance_history):
            array.setflags(write=False)

        self._errors = errors
        self._variances = variances
        self._filtered_state = state
        self._filtered_covariance = covariance
        self._state_history = state_history if self._store_history else None
        self._covariance_history = covariance_history if self._store_history else None

    @property
    def state_space(self) -> StateSpaceARMA:
        return self._state_space

    @property
    def prediction_errors(self) -> Vector:
        """One-step prediction errors e_t (read-only)."""
        return self._errors

    @property
    def prediction_error_variances(self) -> Vector:
        """Prediction error variances f_t (read-only)."""
        return self._variances

    @property
    def initial_covariance(self) -> CovarianceMatrix:
        return self._initial_covariance

    @property
    def initial_covariance_method(self) -> str:
        return self._method

    @property
    def filtered_state(self) -> Vector:
        return self._filtered_state

    @property
    def filtered_covariance(self) -> CovarianceMatrix:
        return self._filtered_covariance

    @property
    def filtered_states(self) -> Optional[Matrix]:
        return self._state_history

    @property
    def filtered_covariances(self) -> Optional[Tensor3D]:
        return self._covariance_history

    def result(self) -> KalmanFilterResult:
        """Bundle the filter output into a KalmanFilterResult."""
        return KalmanFilterResult(
            prediction_errors=self._errors,
            prediction_error_variances=self._variances,
            filtered_state=self._filtered_state,
            filtered_covariance=self._filtered_covariance,
            initial_covariance=self._initial_covariance,
            initial_covariance_method=self._method,
            ar_order=self._state_space.p,
            ma_order=self._state_space.q,
            filtered_states=self._state_history,
            filtered_covariances=self._covariance_history,
            index=self._state_space.index
        )

    def loglikelihood(self, concentrated: bool = False) -> float:
        return self.result().loglikelihood(concentrated)


def _batch_settings(initial_covariance: Optional[InitialCovarianceSpec],
                    store_history: Optional[bool],
                    max_workers: Optional[int]) -> Tuple[InitialCovarianceSpec, bool, float, int]:
    # Read configuration in the calling thread, not in the workers
    filter_config = get_filter_config()
    if initial_covariance is None:
        initial_covariance = filter_config.initial_covariance_method
    if store_history is None:
        store_history = filter_config.store_history
    if max_workers is None:
        max_workers = get_performance_config().max_workers
    if max_workers < 1:
        raise_parameter_error(
            f"max_workers must be at least 1, got {max_workers}",
            param_name="max_workers",
            param_value=max_workers,
            constraint=">= 1"
        )
    condition_limit = get_numerical_config().condition_number_limit
    return initial_covariance, store_history, condition_limit, max_workers


def _filter_one(state_space: StateSpaceARMA,
                initial_covariance: InitialCovarianceSpec,
                store_history: bool,
                condition_limit: float) -> KalmanFilterResult:
    return ArmaKalmanFilter(state_space, initial_covariance, store_history,
                            condition_limit).result()


def filter_many(state_spaces: Sequence[StateSpaceARMA],
                initial_covariance: Optional[InitialCovarianceSpec] = None,
                store_history: Optional[bool] = None,
                max_workers: Optional[int] = None) -> List[KalmanFilterResult]:
    """
    Filter many independent models on a thread pool.

    Args:
        state_spaces: Models to filter
        initial_covariance: Initial covariance method (or matrix) used for every model
        store_history: Whether to keep per-step filtered states and covariances
        max_workers: Number of worker threads; defaults to ``performance.max_workers``

    Returns:
        One KalmanFilterResult per model, in input order

    Raises:
        ParameterError: If max_workers is less than 1
    """
    initial_covariance, store_history, condition_limit, max_workers = _batch_settings(
        initial_covariance, store_history, max_workers
    )
    if not state_spaces:
        return []

    logger.debug(f"Filtering {len(state_spaces)} models with {max_workers} workers")
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(
            lambda ss: _filter_one(ss, initial_covariance, store_history, condition_limit),
            state_spaces
        ))


async def filter_many_async(state_spaces: Sequence[StateSpaceARMA],
                            initial_covariance: Optional[InitialCovarianceSpec] = None,
                            store_history: Optional[bool] = None,
                            max_workers: Optional[int] = None) -> List[KalmanFilterResult]:
    """
    Asynchronously filter many independent models.

    Each model is filtered in a worker thread through ``loop.run_in_executor``
    so the event loop stays responsive. Results are returned in input order.
    """
    initial_covariance, store_history, condition_limit, max_workers = _batch_settings(
        initial_covariance, store_history, max_workers
    )
    if not state_spaces:
        return []

    loop = asyncio.get_event_loop()
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        tasks = [
            loop.run_in_executor(executor, _filter_one, ss, initial_covariance,
                                 store_history, condition_limit)
            for ss in state_spaces
        ]
        return list(await asyncio.gather(*tasks))
