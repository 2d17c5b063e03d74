"""
Tests for package metadata, logging control and the exception hierarchy.
"""

import logging
import warnings

import numpy as np
import pytest

import armakf
from armakf.core.exceptions import (
    ArmaKFError,
    ArmaKFWarning,
    ConfigurationError,
    DataError,
    DimensionError,
    ModelSpecificationError,
    NumericWarning,
    ParameterError,
    raise_parameter_error,
    warn_numeric
)
from armakf.version import get_version_components, get_version_info


class TestMetadata:
    """Tests for version information."""

    def test_version_string(self):
        assert armakf.get_version() == armakf.__version__
        major, minor, patch = get_version_components()
        assert armakf.__version__ == f"{major}.{minor}.{patch}"

    def test_version_info(self):
        info = get_version_info()
        assert info["version"] == armakf.__version__
        assert set(info["dependencies"]) == {"numpy", "scipy", "pandas", "numba"}
        assert info["changes"]

    def test_version_tuple(self):
        assert armakf._version_tuple("1.26.4") == (1, 26, 4)
        assert armakf._version_tuple("2.1.1rc1") == (2, 1, 1)
        assert armakf._version_tuple("1.3.0b12") == (1, 3, 0)
        assert armakf._version_tuple("2.1.1rc1") < armakf._version_tuple("2.1.2")
        assert armakf._version_tuple("dev") == ()
        assert armakf._version_tuple("0.58.0") > armakf._version_tuple("0.57.9")

    def test_public_api(self):
        for name in armakf.__all__:
            assert hasattr(armakf, name)


class TestLogging:
    """Tests for the package logger."""

    def test_set_log_level(self):
        package_logger = logging.getLogger("armakf")
        previous = package_logger.level
        try:
            armakf.set_log_level("warning")
            assert package_logger.level == logging.WARNING
            armakf.set_log_level(logging.DEBUG)
            assert package_logger.level == logging.DEBUG
        finally:
            package_logger.setLevel(previous)

    def test_sentinel_substitution_is_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="armakf"):
            armakf.stationary_covariance(np.array([[1.0]]), np.array([[1.0]]))
        assert any("sentinel" in record.getMessage() for record in caplog.records)


class TestExceptions:
    """Tests for the error and warning classes."""

    @pytest.mark.parametrize("error_class", [
        ParameterError, DimensionError, DataError, ModelSpecificationError, ConfigurationError
    ])
    def test_hierarchy(self, error_class):
        assert issubclass(error_class, ArmaKFError)

    def test_message_carries_context(self):
        with pytest.raises(ParameterError) as exc_info:
            raise_parameter_error("bad order", param_name="p", param_value=-1,
                                  constraint=">= 0")
        error = exc_info.value
        assert error.message == "bad order"
        assert error.param_name == "p"
        assert error.context["Constraint"] == ">= 0"
        assert "Parameter: p" in str(error)
        assert "Location:" in str(error)

    def test_large_values_are_summarized(self):
        error = ParameterError("too long", param_name="ar", param_value=np.zeros(50))
        assert error.context["Value"] == "Array with shape (50,)"

    def test_specification_error_fault_code(self):
        error = ModelSpecificationError("bad r", model_type="AS154", fault_code=5)
        assert error.fault_code == 5
        assert "Fault Code: 5" in str(error)

    def test_numeric_warning(self):
        assert issubclass(NumericWarning, ArmaKFWarning)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            warn_numeric("overflow", operation="test")
        assert len(caught) == 1
        assert issubclass(caught[0].category, NumericWarning)
