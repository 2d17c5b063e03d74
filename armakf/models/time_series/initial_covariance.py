# armakf/models/time_series/initial_covariance.py
"""
Stationary initial state covariance for the ARMA Kalman filter.

Two independent routes to the solution P of ``P = T P T' + Q``:

``stationary_covariance``
    Direct solve through the Kronecker form
    ``vec(P) = (I - T kron T)^{-1} vec(Q)``. This is O(r^6) and is the
    default used by the filter. If the system is singular or
    ill-conditioned (non-stationary parameters) an r x r matrix of ones is
    returned instead of raising, so that a likelihood evaluated during a
    parameter search stays defined.

``initial_state_covariance``
    Algorithm AS 154 (Gardner, Harvey & Phillips, 1980), which never forms
    the r^2 x r^2 system and returns the r(r+1)/2 unique entries in packed
    order (see ``armakf.utils.matrix_ops``).
"""

import logging
from typing import Optional

import numpy as np
from scipy import linalg

from armakf.core.config import get_numerical_config
from armakf.core.exceptions import raise_specification_error
from armakf.core.types import CoefficientVector, CovarianceMatrix, Matrix, PackedMatrix
from armakf.core.validation import validate_coefficients, validate_square_matrix
from armakf.models.time_series._numba_core import as154_covariance

# Set up module-level logger
logger = logging.getLogger("armakf.models.time_series.initial_covariance")

# Fill value of the covariance returned when the Lyapunov system is singular
LYAPUNOV_SENTINEL = 1.0

# AS154 fault codes
FAULT_NEGATIVE_AR_ORDER = 1
FAULT_NEGATIVE_MA_ORDER = 2
FAULT_STATE_DIMENSION = 5
FAULT_PACKED_LENGTH = 6
FAULT_RBAR_LENGTH = 7


def stationary_covariance(transition: Matrix,
                          disturbance: Matrix,
                          condition_limit: Optional[float] = None) -> CovarianceMatrix:
    """
    Solve the discrete Lyapunov equation P = T P T' + Q by Kronecker inversion.

    Args:
        transition: Transition matrix T, shape (r, r)
        disturbance: State disturbance covariance Q, shape (r, r)
        condition_limit: Condition number of I - T kron T above which the
            system counts as singular; defaults to
            ``numerical.condition_number_limit``

    Returns:
        The stationary covariance, or an r x r matrix of ones when the
        system is singular, ill-conditioned or has a non-finite solution

    Raises:
        DimensionError: If T and Q are not square matrices of the same size

    Examples:
        >>> import numpy as np
        >>> from armakf.models.time_series.initial_covariance import stationary_covariance
        >>> stationary_covariance(np.array([[0.5]]), np.array([[1.0]]))
        array([[1.33333333]])
        >>> stationary_covariance(np.array([[1.0]]), np.array([[1.0]]))
        array([[1.]])
    """
    transition = validate_square_matrix(transition, "transition")
    r = transition.shape[0]
    disturbance = validate_square_matrix(disturbance, "disturbance", expected_size=r)

    if condition_limit is None:
        condition_limit = get_numerical_config().condition_number_limit

    system = np.eye(r * r) - np.kron(transition, transition)
    vec_disturbance = disturbance.ravel(order="F")

    with np.errstate(divide="ignore", invalid="ignore"):
        condition = np.linalg.cond(system)
    if not np.isfinite(condition) or condition > condition_limit:
        logger.debug(
            f"Lyapunov system is singular (condition number {condition:.3g}), "
            f"using sentinel covariance"
        )
        return np.full((r, r), LYAPUNOV_SENTINEL)

    try:
        inverse = linalg.inv(system)
    except linalg.LinAlgError as e:
        logger.debug(f"Lyapunov system could not be inverted ({e}), using sentinel covariance")
        return np.full((r, r), LYAPUNOV_SENTINEL)

    covariance = (inverse @ vec_disturbance).reshape((r, r), order="F")
    if not np.all(np.isfinite(covariance)):
        logger.debug("Lyapunov solution is not finite, using sentinel covariance")
        return np.full((r, r), LYAPUNOV_SENTINEL)

    return covariance


def validate_as154_dimensions(p: int, q: int, r: int, np_: int, nrbar: int) -> None:
    """
    Check the AS154 workspace dimensions against their defining formulas.

    A failure here is a programming error in the caller, not bad data.

    Raises:
        ModelSpecificationError: With ``fault_code`` 1 (p < 0), 2 (q < 0),
            5 (r != max(p, q + 1)), 6 (np != r(r+1)/2) or
            7 (nrbar != np(np-1)/2)
    """
    if p < 0:
        raise_specification_error(
            f"AR order must be non-negative, got {p}",
            model_type="AS154", parameter="p", fault_code=FAULT_NEGATIVE_AR_ORDER
        )
    if q < 0:
        raise_specification_error(
            f"MA order must be non-negative, got {q}",
            model_type="AS154", parameter="q", fault_code=FAULT_NEGATIVE_MA_ORDER
        )
    if r != max(p, q + 1):
        raise_specification_error(
            f"State dimension r={r} does not equal max(p, q + 1)={max(p, q + 1)}",
            model_type="AS154", parameter="r", fault_code=FAULT_STATE_DIMENSION
        )
    if np_ != r * (r + 1) // 2:
        raise_specification_error(
            f"Packed length np={np_} does not equal r(r+1)/2={r * (r + 1) // 2}",
            model_type="AS154", parameter="np", fault_code=FAULT_PACKED_LENGTH
        )
    if nrbar != np_ * (np_ - 1) // 2:
        raise_specification_error(
            f"Workspace length nrbar={nrbar} does not equal np(np-1)/2={np_ * (np_ - 1) // 2}",
            model_type="AS154", parameter="nrbar", fault_code=FAULT_RBAR_LENGTH
        )


def initial_state_covariance(ar_coefficients: Optional[CoefficientVector],
                             ma_coefficients: Optional[CoefficientVector]) -> PackedMatrix:
    """
    Stationary initial state covariance of an ARMA(p, q) model by AS 154.

    Args:
        ar_coefficients: AR coefficients phi_1, ..., phi_p (may be empty)
        ma_coefficients: MA coefficients theta_1, ..., theta_q (may be empty)

    Returns:
        The r(r+1)/2 unique entries of the covariance, upper triangle by rows,
        r = max(p, q + 1). ``[1.0]`` when both orders are zero.

    Raises:
        ParameterError: If the coefficients are not finite

    Examples:
        >>> from armakf.models.time_series.initial_covariance import initial_state_covariance
        >>> initial_state_covariance([0.5], [])
        array([1.33333333])
        >>> initial_state_covariance([], [0.3])
        array([1.09, 0.3 , 0.09])
    """
    phi = validate_coefficients(ar_coefficients, "ar_coefficients")
    theta = validate_coefficients(ma_coefficients, "ma_coefficients")
    p = phi.shape[0]
    q = theta.shape[0]

    if p == 0 and q == 0:
        return np.array([1.0])

    r = max(p, q + 1)
    np_ = r * (r + 1) // 2
    validate_as154_dimensions(p, q, r, np_, np_ * (np_ - 1) // 2)

    return as154_covariance(phi, theta)
