"""
Tests for the ARMA Kalman filter.

Checks the recursion against hand-computed values, the structural
properties of its output (symmetric PSD covariances, e_0 = y_0,
determinism), the behaviour for degenerate parameters, the result
container, and parallel evaluation of many models.
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from armakf.core.config import set_config
from armakf.core.exceptions import DimensionError, NumericWarning, ParameterError
from armakf.models.time_series.kalman import (
    ArmaKalmanFilter,
    KalmanFilterResult,
    filter_many,
    filter_many_async
)
from armakf.models.time_series import initial_covariance as initial_covariance_module
from armakf.models.time_series.state_space import StateSpaceARMA
from armakf.utils.matrix_ops import is_positive_semidefinite, is_symmetric


def _naive_filter(y, T, Q, P0):
    """Reference recursion with dense NumPy algebra."""
    r = T.shape[0]
    a = np.zeros(r)
    P = P0.copy()
    errors, variances = [], []
    for t, obs in enumerate(y):
        if t > 0:
            a = T @ a
            P = T @ P @ T.T + Q
        e = obs - a[0]
        f = P[0, 0]
        g = P[:, 0].copy()
        a = a + g * e / f
        P = P - np.outer(g, g) / f
        errors.append(e)
        variances.append(f)
    return np.array(errors), np.array(variances)


class TestArmaKalmanFilter:
    """Tests for the filter recursion."""

    def test_ar1_hand_computed(self):
        kf = ArmaKalmanFilter(StateSpaceARMA([0.5], [], [1.0, 2.0, -1.0]))
        # Stationary AR(1): the filter reduces to e_t = y_t - phi y_{t-1}, f_t = 1
        assert_allclose(kf.prediction_errors, [1.0, 1.5, -2.0])
        assert_allclose(kf.prediction_error_variances, [4.0 / 3.0, 1.0, 1.0])

    def test_white_noise(self):
        y = np.array([0.3, -1.2, 2.5])
        kf = ArmaKalmanFilter(StateSpaceARMA([], [], y))
        assert_array_equal(kf.prediction_errors, y)
        assert_array_equal(kf.prediction_error_variances, np.ones(3))

    def test_first_error_equals_first_observation(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space)
        assert kf.prediction_errors[0] == arma21_state_space.differenced_series[0]

    def test_first_variance_is_initial_covariance(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space)
        assert kf.prediction_error_variances[0] == kf.initial_covariance[0, 0]

    def test_matches_dense_reference(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space)
        T, Q = arma21_state_space.system_matrices()
        errors, variances = _naive_filter(arma21_state_space.differenced_series,
                                          T, Q, np.asarray(kf.initial_covariance))
        assert_allclose(kf.prediction_errors, errors, rtol=1e-10, atol=1e-12)
        assert_allclose(kf.prediction_error_variances, variances, rtol=1e-10)

    def test_output_lengths(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space)
        n = arma21_state_space.nobs
        assert kf.prediction_errors.shape == (n,)
        assert kf.prediction_error_variances.shape == (n,)

    def test_outputs_are_read_only(self, ar1_state_space):
        kf = ArmaKalmanFilter(ar1_state_space)
        with pytest.raises(ValueError):
            kf.prediction_errors[0] = 0.0
        with pytest.raises(ValueError):
            kf.prediction_error_variances[0] = 0.0

    def test_repeated_runs_are_bit_identical(self, arma21_state_space):
        first = ArmaKalmanFilter(arma21_state_space)
        second = ArmaKalmanFilter(arma21_state_space)
        assert_array_equal(first.prediction_errors, second.prediction_errors)
        assert_array_equal(first.prediction_error_variances, second.prediction_error_variances)

    def test_covariances_symmetric_and_psd(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space, store_history=True)
        covariances = kf.filtered_covariances
        r = arma21_state_space.r
        assert covariances.shape == (200, r, r)
        for covariance in covariances:
            assert is_symmetric(covariance, tol=1e-10)
            assert is_positive_semidefinite(covariance, tol=1e-8)

    def test_variances_positive_and_converge(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space)
        f = kf.prediction_error_variances
        assert np.all(f >= 1.0 - 1e-10)
        # Invertible MA part: f_t tends to the innovation variance
        assert_allclose(f[-1], 1.0, atol=1e-8)

    def test_history_not_stored_by_default(self, ar1_state_space):
        kf = ArmaKalmanFilter(ar1_state_space)
        assert kf.filtered_states is None
        assert kf.filtered_covariances is None

    def test_history_last_entry_is_final_state(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space, store_history=True)
        assert_array_equal(kf.filtered_states[-1], kf.filtered_state)
        assert_array_equal(kf.filtered_covariances[-1], kf.filtered_covariance)

    def test_pure_moving_average(self, rng):
        y = rng.standard_normal(50)
        ss = StateSpaceARMA([], [0.4, 0.2], y)
        kf = ArmaKalmanFilter(ss)
        errors, variances = _naive_filter(y, *ss.system_matrices(),
                                          np.asarray(kf.initial_covariance))
        assert_allclose(kf.prediction_errors, errors, rtol=1e-10, atol=1e-12)
        assert_allclose(kf.prediction_error_variances, variances, rtol=1e-10)


class TestInitialCovarianceSelection:
    """Tests for the choice of initial covariance."""

    def test_default_is_lyapunov(self, ar1_state_space):
        assert ArmaKalmanFilter(ar1_state_space).initial_covariance_method == "lyapunov"

    def test_as154_matches_lyapunov(self, arma21_state_space):
        lyapunov = ArmaKalmanFilter(arma21_state_space, initial_covariance="lyapunov")
        as154 = ArmaKalmanFilter(arma21_state_space, initial_covariance="as154")
        assert as154.initial_covariance_method == "as154"
        assert_allclose(as154.initial_covariance, lyapunov.initial_covariance, atol=1e-8)
        assert_allclose(as154.prediction_errors, lyapunov.prediction_errors, atol=1e-8)
        assert_allclose(as154.prediction_error_variances,
                        lyapunov.prediction_error_variances, atol=1e-8)

    def test_method_from_configuration(self, ar1_state_space):
        set_config("filter", "initial_covariance_method", "as154")
        assert ArmaKalmanFilter(ar1_state_space).initial_covariance_method == "as154"

    def test_store_history_from_configuration(self, ar1_state_space):
        set_config("filter", "store_history", True)
        assert ArmaKalmanFilter(ar1_state_space).filtered_states is not None

    def test_user_matrix(self, ar1_state_space):
        kf = ArmaKalmanFilter(ar1_state_space, initial_covariance=np.array([[2.0]]))
        assert kf.initial_covariance_method == "user"
        assert kf.prediction_error_variances[0] == 2.0

    def test_user_matrix_wrong_size(self, arma21_state_space):
        with pytest.raises(DimensionError):
            ArmaKalmanFilter(arma21_state_space, initial_covariance=np.eye(3))

    def test_unknown_method(self, ar1_state_space):
        with pytest.raises(ParameterError):
            ArmaKalmanFilter(ar1_state_space, initial_covariance="diffuse")


class TestDegenerateParameters:
    """Non-stationary parameters never raise; degeneracy shows in the output."""

    def test_unit_root_uses_sentinel_and_finishes(self, rng):
        ss = StateSpaceARMA([1.0], [], rng.standard_normal(100))
        kf = ArmaKalmanFilter(ss)
        assert_array_equal(kf.initial_covariance, np.ones((1, 1)))
        assert kf.prediction_errors.shape == (100,)
        assert np.all(np.isfinite(kf.prediction_errors))
        assert np.all(np.isfinite(kf.prediction_error_variances))

    def test_singular_arma_uses_sentinel_and_finishes(self, rng):
        ss = StateSpaceARMA([1.0], [0.5], rng.standard_normal(100))
        kf = ArmaKalmanFilter(ss)
        assert_array_equal(kf.initial_covariance, np.ones((2, 2)))
        assert kf.result().is_finite

    def test_explicit_condition_limit(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space, condition_limit=1.0)
        assert_array_equal(kf.initial_covariance, np.ones((2, 2)))
        default = ArmaKalmanFilter(arma21_state_space)
        assert not np.array_equal(default.initial_covariance, np.ones((2, 2)))

    def test_zero_variance_propagates_nan(self):
        ss = StateSpaceARMA([0.5], [], [1.0, 2.0, 3.0])
        kf = ArmaKalmanFilter(ss, initial_covariance=np.zeros((1, 1)))
        assert kf.prediction_errors[0] == 1.0
        assert kf.prediction_error_variances[0] == 0.0
        assert np.all(np.isnan(kf.prediction_errors[1:]))
        assert np.all(np.isnan(kf.prediction_error_variances[1:]))

    def test_check_finite_warns(self):
        ss = StateSpaceARMA([0.5], [], [1.0, 2.0, 3.0])
        result = ArmaKalmanFilter(ss, initial_covariance=np.zeros((1, 1))).result()
        assert not result.is_finite
        with pytest.warns(NumericWarning):
            assert result.check_finite(warn=True) is False

    def test_check_finite_silent(self, ar1_state_space, recwarn):
        result = ArmaKalmanFilter(ar1_state_space).result()
        assert result.check_finite() is True
        assert not any(issubclass(w.category, NumericWarning) for w in recwarn)


class TestKalmanFilterResult:
    """Tests for the result container."""

    def test_fields(self, arma21_state_space):
        kf = ArmaKalmanFilter(arma21_state_space)
        result = kf.result()
        assert isinstance(result, KalmanFilterResult)
        assert result.nobs == arma21_state_space.nobs
        assert result.ar_order == 2
        assert result.ma_order == 1
        assert result.index is None
        assert_array_equal(result.prediction_errors, kf.prediction_errors)

    def test_standardized_errors(self, ar1_state_space):
        result = ArmaKalmanFilter(ar1_state_space).result()
        expected = result.prediction_errors / np.sqrt(result.prediction_error_variances)
        assert_allclose(result.standardized_errors(), expected)

    def test_to_dataframe_keeps_index(self, arma11_pandas_data):
        ss = StateSpaceARMA([0.6], [0.3], arma11_pandas_data, differences=1)
        df = ArmaKalmanFilter(ss).result().to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ["prediction_error", "prediction_error_variance",
                                    "standardized_error"]
        assert len(df) == len(arma11_pandas_data) - 1
        assert df.index.equals(arma11_pandas_data.index[1:])

    def test_to_dataframe_default_index(self, ar1_state_space):
        df = ArmaKalmanFilter(ar1_state_space).result().to_dataframe()
        assert isinstance(df.index, pd.RangeIndex)

    def test_summary(self, ar1_state_space):
        summary = ArmaKalmanFilter(ar1_state_space).result().summary()
        assert "ARMA(1, 0)" in summary
        assert "lyapunov" in summary
        assert "Log-likelihood" in summary

    def test_summary_non_finite(self):
        ss = StateSpaceARMA([0.5], [], [1.0, 2.0, 3.0])
        summary = ArmaKalmanFilter(ss, initial_covariance=np.zeros((1, 1))).result().summary()
        assert "non-finite" in summary


class TestBatchFiltering:
    """Tests for thread-pool and asyncio evaluation of many models."""

    @pytest.fixture
    def state_spaces(self, rng):
        y = rng.standard_normal(150)
        return [StateSpaceARMA([phi], [0.2], y) for phi in np.linspace(-0.8, 0.8, 9)]

    def test_filter_many_matches_sequential(self, state_spaces):
        results = filter_many(state_spaces, max_workers=4)
        assert len(results) == len(state_spaces)
        for ss, result in zip(state_spaces, results):
            kf = ArmaKalmanFilter(ss)
            assert_array_equal(result.prediction_errors, kf.prediction_errors)
            assert_array_equal(result.prediction_error_variances,
                               kf.prediction_error_variances)

    def test_filter_many_empty(self):
        assert filter_many([]) == []

    def test_filter_many_invalid_workers(self, state_spaces):
        with pytest.raises(ParameterError):
            filter_many(state_spaces, max_workers=0)

    def test_filter_many_reads_condition_limit_once(self, state_spaces, monkeypatch):
        set_config("numerical", "condition_number_limit", 1.0)

        def fail():
            raise AssertionError("configuration read inside a worker")

        monkeypatch.setattr(initial_covariance_module, "get_numerical_config", fail)
        results = filter_many(state_spaces, max_workers=3)
        for result in results:
            assert_array_equal(result.initial_covariance, np.ones((2, 2)))

    def test_filter_many_passes_options(self, state_spaces):
        results = filter_many(state_spaces, initial_covariance="as154", store_history=True)
        assert all(r.initial_covariance_method == "as154" for r in results)
        assert all(r.filtered_states is not None for r in results)

    @pytest.mark.asyncio
    async def test_filter_many_async(self, state_spaces):
        results = await filter_many_async(state_spaces, max_workers=2)
        expected = filter_many(state_spaces, max_workers=1)
        assert len(results) == len(expected)
        for result, reference in zip(results, expected):
            assert_array_equal(result.prediction_errors, reference.prediction_errors)
