'''
Custom exception and warning classes for the ARMA Kalman Toolbox.

The toolbox separates two kinds of failure. Bad input supplied by a user
(coefficients that are not finite, arrays of the wrong shape, empty series)
and structural contract violations inside the AS154 covariance routine are
raised as exceptions from this module. Numerical degeneracy produced by a
legal but non-stationary parameter vector is never raised: the Lyapunov
solver substitutes a sentinel covariance and the Kalman recursion lets
non-finite values propagate, so that an outer optimiser can penalise the
region instead of aborting its search.
'''

from typing import Any, Dict, List, Optional, Tuple, Union
import inspect
import warnings
from pathlib import Path

import numpy as np


def _format_message(message: str,
                    details: Optional[str],
                    context: Optional[Dict[str, Any]],
                    depth: int) -> str:
    """Assemble message, details, context and caller location into one string."""
    full_message = message
    if details:
        full_message += f"\n\nDetails: {details}"

    if context:
        context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
        full_message += f"\n\nContext:\n{context_str}"

    frame = inspect.currentframe()
    if frame:
        try:
            for _ in range(depth):
                if frame is None:
                    break
                frame = frame.f_back
            if frame:
                caller_info = inspect.getframeinfo(frame)
                full_message += f"\n\nLocation: {Path(caller_info.filename).name}:{caller_info.lineno}"
        finally:
            del frame  # Avoid reference cycles

    return full_message


def _summarize_value(value: Any) -> Any:
    if isinstance(value, np.ndarray) and value.size > 10:
        return f"Array with shape {value.shape}"
    return value


class ArmaKFError(Exception):
    """Base exception class for all ARMA Kalman Toolbox errors.

    Attributes:
        message: The error message
        details: Additional details about the error
        context: Dictionary containing contextual information about the error
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}
        super().__init__(_format_message(message, details, context, depth=2))


class ParameterError(ArmaKFError):
    """Exception raised for invalid model parameters.

    Used when AR or MA coefficients are not finite, orders are negative,
    or an option such as the initial covariance method is not recognised.

    Attributes:
        param_name: The name of the parameter that caused the error
        param_value: The invalid parameter value
        constraint: Description of the constraint that was violated
    """

    def __init__(self,
                 message: str,
                 param_name: Optional[str] = None,
                 param_value: Optional[Any] = None,
                 constraint: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.param_name = param_name
        self.param_value = param_value
        self.constraint = constraint

        context_dict = context or {}
        if param_name:
            context_dict["Parameter"] = param_name
        if param_value is not None:
            context_dict["Value"] = _summarize_value(param_value)
        if constraint:
            context_dict["Constraint"] = constraint

        super().__init__(message, details, context_dict)


class DimensionError(ArmaKFError):
    """Exception raised when array dimensions are incompatible.

    Attributes:
        array_name: The name of the array that caused the error
        expected_shape: The expected shape of the array
        actual_shape: The actual shape of the array
    """

    def __init__(self,
                 message: str,
                 array_name: Optional[str] = None,
                 expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                 actual_shape: Optional[Tuple[int, ...]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.array_name = array_name
        self.expected_shape = expected_shape
        self.actual_shape = actual_shape

        context_dict = context or {}
        if array_name:
            context_dict["Array"] = array_name
        if expected_shape is not None:
            context_dict["Expected Shape"] = expected_shape
        if actual_shape is not None:
            context_dict["Actual Shape"] = actual_shape

        super().__init__(message, details, context_dict)


class DataError(ArmaKFError):
    """Exception raised for unusable observation sequences.

    Attributes:
        data_name: The name of the data that caused the error
        issue: Description of the issue with the data
        index: The index or location where the issue was detected
    """

    def __init__(self,
                 message: str,
                 data_name: Optional[str] = None,
                 issue: Optional[str] = None,
                 index: Optional[Union[int, Tuple[int, ...], str]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.data_name = data_name
        self.issue = issue
        self.index = index

        context_dict = context or {}
        if data_name:
            context_dict["Data"] = data_name
        if issue:
            context_dict["Issue"] = issue
        if index is not None:
            context_dict["Index"] = index

        super().__init__(message, details, context_dict)


class ModelSpecificationError(ArmaKFError):
    """Exception raised for structural contract violations.

    These errors indicate a bug in the calling code rather than bad data,
    for example AS154 dimensions (p, q, r, np, nrbar) that do not satisfy
    their defining formulas. They are never recovered from.

    Attributes:
        model_type: The type of model being specified
        parameter: The parameter or component that is incorrectly specified
        valid_options: List of valid options for the parameter
        fault_code: Numeric fault code, where the routine defines one
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 parameter: Optional[str] = None,
                 valid_options: Optional[List[Any]] = None,
                 fault_code: Optional[int] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.parameter = parameter
        self.valid_options = valid_options
        self.fault_code = fault_code

        context_dict = context or {}
        if model_type:
            context_dict["Model Type"] = model_type
        if parameter:
            context_dict["Parameter"] = parameter
        if valid_options:
            context_dict["Valid Options"] = valid_options
        if fault_code is not None:
            context_dict["Fault Code"] = fault_code

        super().__init__(message, details, context_dict)


class ConfigurationError(ArmaKFError):
    """Exception raised for errors in configuration.

    Attributes:
        config_file: The configuration file path
        setting: The setting that caused the error
        value: The invalid setting value
        issue: Description of the issue with the configuration
    """

    def __init__(self,
                 message: str,
                 config_file: Optional[Union[str, Path]] = None,
                 setting: Optional[str] = None,
                 value: Optional[Any] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.config_file = config_file
        self.setting = setting
        self.value = value
        self.issue = issue

        context_dict = context or {}
        if config_file:
            context_dict["Config File"] = str(config_file)
        if setting:
            context_dict["Setting"] = setting
        if value is not None:
            context_dict["Value"] = value
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class ArmaKFWarning(Warning):
    """Base warning class for all ARMA Kalman Toolbox warnings.

    Attributes:
        message: The warning message
        details: Additional details about the warning
        context: Dictionary containing contextual information about the warning
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}
        super().__init__(_format_message(message, details, context, depth=2))


class NumericWarning(ArmaKFWarning):
    """Warning for degenerate numerical results.

    Issued only on request, for example when a caller asks a filter result
    to check its own output for non-finite values.

    Attributes:
        operation: The operation where the issue was detected
        issue: Description of the numerical issue
        value: The value that may cause numerical issues
    """

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.issue = issue
        self.value = value

        context_dict = context or {}
        if operation:
            context_dict["Operation"] = operation
        if issue:
            context_dict["Issue"] = issue
        if value is not None:
            context_dict["Value"] = _summarize_value(value)

        super().__init__(message, details, context_dict)


# Helper functions for raising exceptions with consistent formatting

def raise_parameter_error(message: str,
                          param_name: Optional[str] = None,
                          param_value: Optional[Any] = None,
                          constraint: Optional[str] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a ParameterError with consistent formatting.

    Raises:
        ParameterError: The formatted parameter error
    """
    raise ParameterError(message, param_name, param_value, constraint, details, context)


def raise_dimension_error(message: str,
                          array_name: Optional[str] = None,
                          expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                          actual_shape: Optional[Tuple[int, ...]] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a DimensionError with consistent formatting.

    Raises:
        DimensionError: The formatted dimension error
    """
    raise DimensionError(message, array_name, expected_shape, actual_shape, details, context)


def raise_data_error(message: str,
                     data_name: Optional[str] = None,
                     issue: Optional[str] = None,
                     index: Optional[Union[int, Tuple[int, ...], str]] = None,
                     details: Optional[str] = None,
                     context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a DataError with consistent formatting.

    Raises:
        DataError: The formatted data error
    """
    raise DataError(message, data_name, issue, index, details, context)


def raise_specification_error(message: str,
                              model_type: Optional[str] = None,
                              parameter: Optional[str] = None,
                              fault_code: Optional[int] = None,
                              details: Optional[str] = None,
                              context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a ModelSpecificationError with consistent formatting.

    Raises:
        ModelSpecificationError: The formatted specification error
    """
    raise ModelSpecificationError(message, model_type, parameter, None, fault_code, details, context)


def warn_numeric(message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a NumericWarning with consistent formatting."""
    warnings.warn(
        NumericWarning(message, operation, issue, value, details, context),
        stacklevel=2
    )
