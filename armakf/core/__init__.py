"""
ARMA Kalman Toolbox Core Module

Exception hierarchy, configuration management, type aliases and input
validation shared by the rest of the toolbox.
"""

import logging

# Set up module-level logger
logger = logging.getLogger("armakf.core")

from .exceptions import (
    ArmaKFError,
    ParameterError,
    DimensionError,
    DataError,
    ModelSpecificationError,
    ConfigurationError,
    ArmaKFWarning,
    NumericWarning,
    raise_parameter_error,
    raise_dimension_error,
    raise_data_error,
    raise_specification_error,
    warn_numeric
)

from .types import (
    Vector,
    Matrix,
    TimeSeriesData,
    CoefficientVector,
    CovarianceMatrix,
    PackedMatrix,
    TransitionMatrix,
    ARMAOrder,
    InitialCovarianceMethod,
    InitialCovarianceSpec
)

from .validation import (
    validate_coefficients,
    validate_order,
    validate_time_series,
    validate_square_matrix,
    validate_vector
)

from .config import (
    ConfigManager,
    get_config,
    set_config,
    reset_config,
    save_config,
    get_config_manager,
    get_numerical_config,
    get_filter_config,
    get_performance_config,
    get_logging_config
)

__all__ = [
    # Exceptions
    'ArmaKFError',
    'ParameterError',
    'DimensionError',
    'DataError',
    'ModelSpecificationError',
    'ConfigurationError',
    'ArmaKFWarning',
    'NumericWarning',
    'raise_parameter_error',
    'raise_dimension_error',
    'raise_data_error',
    'raise_specification_error',
    'warn_numeric',

    # Types
    'Vector',
    'Matrix',
    'TimeSeriesData',
    'CoefficientVector',
    'CovarianceMatrix',
    'PackedMatrix',
    'TransitionMatrix',
    'ARMAOrder',
    'InitialCovarianceMethod',
    'InitialCovarianceSpec',

    # Validation
    'validate_coefficients',
    'validate_order',
    'validate_time_series',
    'validate_square_matrix',
    'validate_vector',

    # Configuration
    'ConfigManager',
    'get_config',
    'set_config',
    'reset_config',
    'save_config',
    'get_config_manager',
    'get_numerical_config',
    'get_filter_config',
    'get_performance_config',
    'get_logging_config'
]

logger.debug("ARMA Kalman Toolbox core module initialized")
