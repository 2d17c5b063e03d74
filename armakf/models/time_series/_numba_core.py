"""
Numba-accelerated core functions for the ARMA Kalman filter.

This module holds the compute kernels behind ``ArmaKalmanFilter`` and
``initial_state_covariance``:

- the Kalman prediction/update recursion for an ARMA model in state-space form
- algorithm AS 154 (Gardner, Harvey & Phillips, 1980) for the stationary
  initial state covariance, together with its ``inclu2`` and ``regres``
  helpers (Givens-rotation least squares without square roots)

All kernels are compiled with ``nogil=True`` so independent filters can run
in parallel threads, and with ``error_model="numpy"`` so that a zero
prediction variance yields inf/nan instead of raising ZeroDivisionError.
Inputs are assumed validated by the Python wrappers.
"""

import logging
from typing import Tuple

import numpy as np
from numba import jit

# Set up module-level logger
logger = logging.getLogger("armakf.models.time_series._numba_core")

# AS154 thresholds. |x| at or below STRUCTURAL_ZERO is skipped as a structural
# zero; a pivot below DIAGONAL_ZERO ends the current row early.
STRUCTURAL_ZERO = 1e-12
DIAGONAL_ZERO = 1e-12


# ============================================================================
# Kalman Filter Recursion
# ============================================================================

@jit(nopython=True, cache=True, nogil=True, error_model="numpy")
def arma_kalman_recursion(y: np.ndarray,
                          transition: np.ndarray,
                          disturbance: np.ndarray,
                          initial_covariance: np.ndarray,
                          store_history: bool) -> Tuple[np.ndarray, np.ndarray, np.ndarray,
                                                        np.ndarray, np.ndarray, np.ndarray]:
    """
    Run the Kalman filter over an ARMA state-space model.

    The observation operator is the first unit vector, so the prediction
    error is ``y[t] - a[0]`` and its variance is ``P[0, 0]``. The predicted
    state starts at zero and the predicted covariance at
    ``initial_covariance``. Nothing is checked along the way: a zero or
    negative variance propagates inf/nan through the remaining steps.

    Args:
        y: Observations, shape (n,)
        transition: Transition matrix T, shape (r, r)
        disturbance: State disturbance covariance Q = R R', shape (r, r)
        initial_covariance: Predicted state covariance at t = 0, shape (r, r)
        store_history: Whether to keep every filtered state and covariance

    Returns:
        Tuple of prediction errors (n,), prediction error variances (n,),
        final filtered state (r,), final filtered covariance (r, r),
        filtered state history (n, r) and filtered covariance history
        (n, r, r); the histories have zero rows when store_history is False.
    """
    n = y.shape[0]
    r = transition.shape[0]

    errors = np.empty(n)
    variances = np.empty(n)

    n_history = n if store_history else 0
    state_history = np.zeros((n_history, r))
    covariance_history = np.zeros((n_history, r, r))

    predicted_state = np.zeros(r)
    predicted_cov = np.empty((r, r))
    predicted_cov[:, :] = initial_covariance
    filtered_state = np.zeros(r)
    filtered_cov = np.zeros((r, r))
    gain = np.empty(r)
    temp = np.empty((r, r))

    for t in range(n):
        if t > 0:
            # a_t = T a_{t-1|t-1}
            for i in range(r):
                s = 0.0
                for k in range(r):
                    s += transition[i, k] * filtered_state[k]
                predicted_state[i] = s

            # P_t = T P_{t-1|t-1} T' + Q
            for i in range(r):
                for j in range(r):
                    s = 0.0
                    for k in range(r):
                        s += transition[i, k] * filtered_cov[k, j]
                    temp[i, j] = s
            for i in range(r):
                for j in range(r):
                    s = 0.0
                    for k in range(r):
                        s += temp[i, k] * transition[j, k]
                    predicted_cov[i, j] = s + disturbance[i, j]

        error = y[t] - predicted_state[0]
        variance = predicted_cov[0, 0]
        errors[t] = error
        variances[t] = variance

        for i in range(r):
            gain[i] = predicted_cov[i, 0]

        for i in range(r):
            filtered_state[i] = predicted_state[i] + gain[i] * error / variance
            for j in range(r):
                filtered_cov[i, j] = predicted_cov[i, j] - gain[i] * gain[j] / variance

        if store_history:
            state_history[t, :] = filtered_state
            covariance_history[t, :, :] = filtered_cov

    return errors, variances, filtered_state, filtered_cov, state_history, covariance_history


# ============================================================================
# AS 154 Initial State Covariance
# ============================================================================

@jit(nopython=True, cache=True, nogil=True, error_model="numpy")
def _inclu2(np_: int,
            weight: float,
            xnext: np.ndarray,
            xrow: np.ndarray,
            ynext: float,
            d: np.ndarray,
            rbar: np.ndarray,
            thetab: np.ndarray) -> int:
    """
    Fold one weighted observation row into the triangular factorisation.

    ``d`` holds the diagonal, ``rbar`` the strict upper triangle packed by
    rows and ``thetab`` the transformed right-hand side. ``xnext`` is copied
    into the scratch row ``xrow`` and left untouched.

    Returns:
        1 if the weight is not positive, otherwise 0
    """
    y = ynext
    wt = weight
    for i in range(np_):
        xrow[i] = xnext[i]
    if wt <= 0.0:
        return 1

    ithisr = 0
    for i in range(np_):
        if abs(xrow[i]) > STRUCTURAL_ZERO:
            xi = xrow[i]
            di = d[i]
            dpi = di + wt * xi * xi
            d[i] = dpi
            cbar = di / dpi
            sbar = wt * xi / dpi
            wt = cbar * wt
            if i != np_ - 1:
                for k in range(i + 1, np_):
                    xk = xrow[k]
                    rbthis = rbar[ithisr]
                    xrow[k] = xk - xi * rbthis
                    rbar[ithisr] = cbar * rbthis + sbar * xk
                    ithisr += 1
            xk = y
            y = xk - xi * thetab[i]
            thetab[i] = cbar * thetab[i] + sbar * xk
            if abs(di) < DIAGONAL_ZERO:
                return 0
        else:
            ithisr = ithisr + np_ - i - 1
    return 0


@jit(nopython=True, cache=True, nogil=True, error_model="numpy")
def _regres(np_: int,
            nrbar: int,
            rbar: np.ndarray,
            thetab: np.ndarray,
            beta: np.ndarray) -> None:
    """Back-substitute the triangular system into ``beta`` (in place)."""
    ithisr = nrbar - 1
    im = np_ - 1
    for i in range(np_):
        bi = thetab[im]
        if im != np_ - 1:
            jm = np_ - 1
            for _ in range(i):
                bi = bi - rbar[ithisr] * beta[jm]
                ithisr -= 1
                jm -= 1
        beta[im] = bi
        im -= 1


@jit(nopython=True, cache=True, nogil=True, error_model="numpy")
def as154_covariance(phi: np.ndarray, theta: np.ndarray) -> np.ndarray:
    """
    Stationary state covariance of an ARMA(p, q) model by algorithm AS 154.

    Returns the r(r+1)/2 entries of the covariance, upper triangle by rows
    (equivalently lower triangle by columns), r = max(p, q + 1). The
    r^2 x r^2 Lyapunov system is never formed: each of its np unique
    equations is folded into a running triangular factorisation by
    ``_inclu2`` and the result recovered by ``_regres``.

    Args:
        phi: Autoregressive coefficients, shape (p,)
        theta: Moving-average coefficients, shape (q,)

    Returns:
        Packed covariance, shape (r(r+1)/2,)
    """
    p = phi.shape[0]
    q = theta.shape[0]
    if p == 0 and q == 0:
        return np.ones(1)

    r = max(p, q + 1)
    np_ = r * (r + 1) // 2
    nrbar = np_ * (np_ - 1) // 2

    P = np.zeros(np_)
    V = np.zeros(np_)
    xrow = np.zeros(np_)

    # V = R R', packed
    V[0] = 1.0
    for i in range(1, r):
        if i <= q:
            V[i] = theta[i - 1]
    index = r
    for j in range(1, r):
        vj = V[j]
        for i in range(j, r):
            V[index] = V[i] * vj
            index += 1

    if p == 0:
        # Pure moving average: back-substitution
        indexn = np_
        index = np_
        for i in range(r):
            for j in range(i + 1):
                index -= 1
                P[index] = V[index]
                if j != 0:
                    indexn -= 1
                    P[index] += P[indexn]
        return P

    rbar = np.zeros(nrbar)
    thetab = np.zeros(np_)
    xnext = np.zeros(np_)

    index = 0
    index1 = -1
    npr = np_ - r
    npr1 = npr + 1
    indexj = npr
    index2 = npr - 1

    for j in range(r):
        phij = phi[j] if j < p else 0.0
        xnext[indexj] = 0.0
        indexj += 1
        indexi = npr1 + j
        for i in range(j, r):
            ynext = V[index]
            index += 1
            phii = phi[i] if i < p else 0.0
            if j != r - 1:
                xnext[indexj] = -phii
                if i != r - 1:
                    xnext[indexi] -= phij
                    index1 += 1
                    xnext[index1] = -1.0
            xnext[npr] = -phii * phij
            index2 += 1
            if index2 >= np_:
                index2 = 0
            xnext[index2] += 1.0
            _inclu2(np_, 1.0, xnext, xrow, ynext, P, rbar, thetab)
            xnext[index2] = 0.0
            if i != r - 1:
                xnext[indexi] = 0.0
                indexi += 1
                xnext[index1] = 0.0

    _regres(np_, nrbar, rbar, thetab, P)

    # Rotate the last r entries (the first row) to the front
    for i in range(r):
        xnext[i] = P[npr + i]
    index = np_ - 1
    index1 = npr - 1
    for i in range(npr):
        P[index] = P[index1]
        index -= 1
        index1 -= 1
    for i in range(r):
        P[i] = xnext[i]

    return P
