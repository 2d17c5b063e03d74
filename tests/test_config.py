"""
Tests for the configuration manager.
"""

import json
import logging
from pathlib import Path

import pytest

from armakf.core.config import (
    ConfigManager,
    NumericalConfig,
    get_config,
    get_config_manager,
    get_filter_config,
    get_logging_config,
    get_numerical_config,
    get_performance_config,
    reset_config,
    set_config,
    to_dict
)
from armakf.core.exceptions import ConfigurationError


@pytest.fixture
def fresh_manager(tmp_path, monkeypatch):
    """A manager reading its user file from an empty temporary directory."""
    monkeypatch.setenv("ARMAKF_CONFIG_DIR", str(tmp_path))
    return ConfigManager()


class TestDefaults:
    """Tests for the built-in defaults."""

    def test_numerical_defaults(self):
        numerical = get_numerical_config()
        assert numerical.condition_number_limit == 1e12
        assert numerical.symmetry_tolerance == 1e-10
        assert numerical.psd_tolerance == 1e-8

    def test_filter_defaults(self):
        assert get_filter_config().initial_covariance_method == "lyapunov"
        assert get_filter_config().store_history is False

    def test_performance_and_logging_defaults(self):
        assert get_performance_config().max_workers == 4
        assert get_logging_config().log_level == "INFO"

    def test_get_unknown_returns_default(self):
        assert get_config("numerical", "missing", 3) == 3
        assert get_config("missing", "option") is None

    def test_to_dict(self):
        config = to_dict()
        assert set(config) == {"core", "numerical", "filter", "performance", "logging"}
        assert isinstance(config["core"]["user_config_dir"], str)
        assert set(config["core"]) == {"user_config_dir"}
        json.dumps(config)


class TestRuntimeChanges:
    """Tests for set_config and reset_config."""

    def test_set_and_get(self):
        set_config("filter", "initial_covariance_method", "as154")
        assert get_config("filter", "initial_covariance_method") == "as154"

    def test_string_values_are_converted(self):
        set_config("numerical", "condition_number_limit", "1e10")
        assert get_config("numerical", "condition_number_limit") == 1e10
        set_config("filter", "store_history", "true")
        assert get_config("filter", "store_history") is True
        set_config("performance", "max_workers", "2")
        assert get_config("performance", "max_workers") == 2

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError):
            set_config("filter", "missing", 1)
        with pytest.raises(ConfigurationError):
            set_config("missing", "option", 1)

    def test_invalid_values(self):
        with pytest.raises(ConfigurationError):
            set_config("filter", "initial_covariance_method", "diffuse")
        with pytest.raises(ConfigurationError):
            set_config("logging", "log_level", "VERBOSE")
        with pytest.raises(ConfigurationError):
            set_config("performance", "max_workers", "many")

    def test_log_level_applies_to_package_logger(self):
        set_config("logging", "log_level", "DEBUG")
        assert logging.getLogger("armakf").level == logging.DEBUG

    def test_reset_option_section_and_all(self):
        set_config("numerical", "psd_tolerance", 1e-4)
        set_config("numerical", "symmetry_tolerance", 1e-4)
        set_config("performance", "max_workers", 8)

        reset_config("numerical", "psd_tolerance")
        assert get_config("numerical", "psd_tolerance") == 1e-8
        assert get_config("numerical", "symmetry_tolerance") == 1e-4

        reset_config("numerical")
        assert get_config("numerical", "symmetry_tolerance") == 1e-10
        assert get_config("performance", "max_workers") == 8

        reset_config()
        assert get_config("performance", "max_workers") == 4
        assert get_config_manager().get_modified_options() == {}

    def test_modified_options(self):
        set_config("performance", "max_workers", 2)
        assert get_config_manager().get_modified_options() == {"performance.max_workers": 2}


class TestConfigSources:
    """Tests for the user file and environment overrides."""

    def test_user_file_is_loaded(self, tmp_path, fresh_manager):
        (tmp_path / "armakf_config.json").write_text(
            json.dumps({"filter": {"initial_covariance_method": "as154"},
                        "numerical": {"condition_number_limit": 1e8}})
        )
        fresh_manager.initialize()
        assert fresh_manager.get("filter", "initial_covariance_method") == "as154"
        assert fresh_manager.get("numerical", "condition_number_limit") == 1e8

    def test_corrupt_user_file_is_ignored(self, tmp_path, fresh_manager):
        (tmp_path / "armakf_config.json").write_text("{not json")
        fresh_manager.initialize()
        assert fresh_manager.get("filter", "initial_covariance_method") == "lyapunov"

    def test_environment_override(self, monkeypatch, fresh_manager):
        monkeypatch.setenv("ARMAKF_PERFORMANCE_MAX_WORKERS", "7")
        monkeypatch.setenv("ARMAKF_FILTER_STORE_HISTORY", "yes")
        fresh_manager.initialize()
        assert fresh_manager.get("performance", "max_workers") == 7
        assert fresh_manager.get("filter", "store_history") is True

    def test_environment_overrides_user_file(self, tmp_path, monkeypatch, fresh_manager):
        (tmp_path / "armakf_config.json").write_text(
            json.dumps({"performance": {"max_workers": 3}})
        )
        monkeypatch.setenv("ARMAKF_PERFORMANCE_MAX_WORKERS", "5")
        fresh_manager.initialize()
        assert fresh_manager.get("performance", "max_workers") == 5

    def test_invalid_values_fall_back_to_defaults(self, tmp_path, fresh_manager):
        (tmp_path / "armakf_config.json").write_text(
            json.dumps({"numerical": {"condition_number_limit": 0.5},
                        "filter": {"initial_covariance_method": "diffuse"},
                        "performance": {"max_workers": 0}})
        )
        fresh_manager.initialize()
        assert fresh_manager.get("numerical", "condition_number_limit") == \
            NumericalConfig.condition_number_limit
        assert fresh_manager.get("filter", "initial_covariance_method") == "lyapunov"
        assert fresh_manager.get("performance", "max_workers") == 4

    def test_save_writes_modified_options(self, tmp_path, fresh_manager):
        fresh_manager.initialize()
        fresh_manager.set("filter", "initial_covariance_method", "as154")
        fresh_manager.save_user_config()

        config_file = Path(tmp_path) / "armakf_config.json"
        assert fresh_manager.get_config_file() == config_file
        assert json.loads(config_file.read_text()) == {
            "filter": {"initial_covariance_method": "as154"}
        }

        reloaded = ConfigManager()
        reloaded.initialize()
        assert reloaded.get("filter", "initial_covariance_method") == "as154"

    def test_initialize_does_not_create_directory(self, tmp_path, monkeypatch):
        target = tmp_path / "not-created"
        monkeypatch.setenv("ARMAKF_CONFIG_DIR", str(target))
        ConfigManager().initialize()
        assert not target.exists()
