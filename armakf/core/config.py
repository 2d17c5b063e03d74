'''
Configuration management for the ARMA Kalman Toolbox.

Settings are layered, later layers overriding earlier ones:
1. Defaults built into the dataclass sections below
2. A user JSON file (``~/.armakf/armakf_config.json`` unless ARMAKF_CONFIG_DIR is set)
3. Environment variables named ``ARMAKF_<SECTION>_<OPTION>``
4. Runtime modifications through ``set_config``

The AS154 structural-zero thresholds and the Lyapunov sentinel value are
deliberately not exposed here; they are fixed constants of the algorithms.
'''

import os
import json
import logging
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, get_type_hints

from .exceptions import ConfigurationError
from .types import ConfigDict, LogLevel

# Set up module-level logger
logger = logging.getLogger("armakf.core.config")

# Constants for configuration paths and environment variables
CONFIG_ENV_PREFIX = "ARMAKF_"
DEFAULT_CONFIG_FILENAME = "armakf_config.json"
USER_CONFIG_DIR_ENV = "ARMAKF_CONFIG_DIR"

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_VALID_COVARIANCE_METHODS = ("lyapunov", "as154")


@dataclass
class CoreConfig:
    """
    Core configuration settings.

    Attributes:
        user_config_dir: Directory holding the user configuration file
    """
    user_config_dir: Path = field(default_factory=lambda: Path.home() / ".armakf")


@dataclass
class NumericalConfig:
    """
    Numerical tolerances.

    Attributes:
        condition_number_limit: Condition number of I - T⊗T above which the
            Lyapunov system is treated as singular
        symmetry_tolerance: Absolute tolerance used by symmetry checks
        psd_tolerance: Smallest eigenvalue still accepted as positive semi-definite
    """
    condition_number_limit: float = 1e12
    symmetry_tolerance: float = 1e-10
    psd_tolerance: float = 1e-8


@dataclass
class FilterConfig:
    """
    Kalman filter defaults.

    Attributes:
        initial_covariance_method: How the stationary initial covariance is
            computed when none is given ("lyapunov" or "as154")
        store_history: Whether filters keep every filtered state and covariance
    """
    initial_covariance_method: str = "lyapunov"
    store_history: bool = False


@dataclass
class PerformanceConfig:
    """
    Performance settings.

    Attributes:
        max_workers: Worker threads used when evaluating many filters at once
    """
    max_workers: int = 4


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Attributes:
        log_level: Level of the ``armakf`` logger
        log_file: Path to log file (None for no file logging)
        log_format: Format string for log messages
        log_date_format: Format string for log message timestamps
        console_logging: Whether to log to the console
        file_logging: Whether to log to ``log_file``
    """
    log_level: LogLevel = "INFO"
    log_file: Optional[Path] = None
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    console_logging: bool = True
    file_logging: bool = False


@dataclass
class ArmaKFConfig:
    """Complete configuration, one attribute per section."""
    core: CoreConfig = field(default_factory=CoreConfig)
    numerical: NumericalConfig = field(default_factory=NumericalConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTION_TYPES = {
    "core": CoreConfig,
    "numerical": NumericalConfig,
    "filter": FilterConfig,
    "performance": PerformanceConfig,
    "logging": LoggingConfig,
}


class ConfigManager:
    """
    Configuration manager for the ARMA Kalman Toolbox.

    Holds the current ``ArmaKFConfig`` and applies the user file and
    environment overrides on first use.

    Attributes:
        _config: The current configuration object
        _initialized: Whether the manager has loaded file and environment overrides
        _config_file: Path to the user configuration file
    """

    def __init__(self):
        self._config = ArmaKFConfig()
        self._initialized = False
        self._config_file: Optional[Path] = None
        self._modified_keys = set()

    def initialize(self) -> None:
        """
        Load the user configuration file, apply environment overrides,
        validate the result and configure logging.
        """
        if self._initialized:
            return

        self._resolve_config_file()
        self._load_user_config()
        self._apply_env_overrides()
        self._validate_config()
        self._setup_logging()

        self._initialized = True
        logger.debug("Configuration manager initialized")

    def _resolve_config_file(self) -> None:
        env_config_dir = os.environ.get(USER_CONFIG_DIR_ENV)
        if env_config_dir:
            self._config.core.user_config_dir = Path(env_config_dir)
        self._config_file = self._config.core.user_config_dir / DEFAULT_CONFIG_FILENAME

    def _load_user_config(self) -> None:
        if not self._config_file or not self._config_file.exists():
            logger.debug("No user configuration file found")
            return

        try:
            with open(self._config_file, 'r') as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load user configuration: {e}")
            return

        self._update_from_dict(user_config)
        logger.debug(f"Loaded user configuration from {self._config_file}")

    def _apply_env_overrides(self) -> None:
        for env_var, value in os.environ.items():
            if not env_var.startswith(CONFIG_ENV_PREFIX) or env_var == USER_CONFIG_DIR_ENV:
                continue

            key = env_var[len(CONFIG_ENV_PREFIX):]
            parts = key.lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, option = parts
            section_obj = getattr(self._config, section, None)
            if section not in _SECTION_TYPES or not hasattr(section_obj, option):
                continue

            try:
                typed_value = self._coerce(section, option, value)
            except (TypeError, ValueError) as e:
                logger.warning(f"Failed to apply environment override {env_var}: {e}")
                continue

            setattr(section_obj, option, typed_value)
            logger.debug(f"Applied environment override: {env_var}={value}")

    def _coerce(self, section: str, option: str, value: Any) -> Any:
        """Convert a raw (string or JSON) value to the option's declared type."""
        hints = get_type_hints(_SECTION_TYPES[section])
        target = hints[option]
        if value is None:
            return None

        if target is bool or target == Optional[bool]:
            if isinstance(value, str):
                return value.lower() in ('true', 'yes', '1', 'y')
            return bool(value)
        if target is int or target == Optional[int]:
            return int(value)
        if target is float:
            return float(value)
        if target is Path or target == Optional[Path]:
            return Path(value)
        return value

    def _setup_logging(self) -> None:
        """Configure the ``armakf`` logger from the logging section."""
        package_logger = logging.getLogger("armakf")

        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        package_logger.setLevel(getattr(logging, self._config.logging.log_level))

        formatter = logging.Formatter(
            fmt=self._config.logging.log_format,
            datefmt=self._config.logging.log_date_format
        )

        if self._config.logging.console_logging:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            package_logger.addHandler(console_handler)

        if self._config.logging.file_logging and self._config.logging.log_file:
            try:
                self._config.logging.log_file.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(self._config.logging.log_file)
            except OSError as e:
                logger.warning(f"Failed to set up file logging: {e}")
            else:
                file_handler.setFormatter(formatter)
                package_logger.addHandler(file_handler)

    def _validate_config(self) -> None:
        """Reset out-of-range values to their defaults, logging each reset."""
        numerical = self._config.numerical
        if numerical.condition_number_limit <= 1.0:
            logger.warning(
                f"Invalid condition_number_limit: {numerical.condition_number_limit}, must exceed 1"
            )
            numerical.condition_number_limit = NumericalConfig.condition_number_limit
        if numerical.symmetry_tolerance < 0:
            logger.warning(f"Invalid symmetry_tolerance: {numerical.symmetry_tolerance}, must be non-negative")
            numerical.symmetry_tolerance = NumericalConfig.symmetry_tolerance
        if numerical.psd_tolerance < 0:
            logger.warning(f"Invalid psd_tolerance: {numerical.psd_tolerance}, must be non-negative")
            numerical.psd_tolerance = NumericalConfig.psd_tolerance

        if self._config.filter.initial_covariance_method not in _VALID_COVARIANCE_METHODS:
            logger.warning(
                f"Invalid initial_covariance_method: {self._config.filter.initial_covariance_method}, "
                f"using lyapunov"
            )
            self._config.filter.initial_covariance_method = "lyapunov"

        if self._config.performance.max_workers < 1:
            logger.warning(f"Invalid max_workers: {self._config.performance.max_workers}, using 4")
            self._config.performance.max_workers = PerformanceConfig.max_workers

        if self._config.logging.log_level not in _VALID_LOG_LEVELS:
            logger.warning(f"Invalid log level: {self._config.logging.log_level}, using INFO")
            self._config.logging.log_level = "INFO"

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        for section_name, section_values in config_dict.items():
            section_obj = getattr(self._config, section_name, None)
            if section_name not in _SECTION_TYPES or not isinstance(section_values, dict):
                logger.warning(f"Unknown configuration section: {section_name}")
                continue

            for option_name, value in section_values.items():
                if not hasattr(section_obj, option_name):
                    logger.warning(f"Unknown configuration option: {section_name}.{option_name}")
                    continue
                try:
                    setattr(section_obj, option_name, self._coerce(section_name, option_name, value))
                except (TypeError, ValueError) as e:
                    logger.warning(f"Failed to set {section_name}.{option_name}: {e}")

    def save_user_config(self) -> None:
        """
        Write the options modified at runtime to the user configuration file.

        Raises:
            ConfigurationError: If the file cannot be written
        """
        if self._config_file is None:
            self._resolve_config_file()

        modified: ConfigDict = {}
        for key in sorted(self._modified_keys):
            section, option = key.split('.', 1)
            modified.setdefault(section, {})[option] = self._json_serialize(
                getattr(getattr(self._config, section), option)
            )

        try:
            self._config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._config_file, 'w') as f:
                json.dump(modified, f, indent=4)
        except OSError as e:
            raise ConfigurationError(
                "Failed to save user configuration",
                config_file=self._config_file,
                issue=str(e)
            ) from e
        logger.debug(f"Saved user configuration to {self._config_file}")

    def _json_serialize(self, obj: Any) -> Any:
        if isinstance(obj, Path):
            return str(obj)
        return obj

    def to_dict(self) -> Dict[str, Any]:
        """Return the configuration as nested dictionaries of JSON-friendly values."""
        result = asdict(self._config)
        for section in result.values():
            for option, value in section.items():
                section[option] = self._json_serialize(value)
        return result

    def _check_key(self, section: str, option: Optional[str] = None) -> None:
        if section not in _SECTION_TYPES:
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                setting=section,
                issue=f"valid sections are {', '.join(_SECTION_TYPES)}"
            )
        if option is not None and option not in {f.name for f in fields(_SECTION_TYPES[section])}:
            raise ConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                setting=f"{section}.{option}"
            )

    def get(self, section: str, option: str, default: Any = None) -> Any:
        """Get a configuration value, or ``default`` if the key does not exist."""
        section_obj = getattr(self._config, section, None)
        if section not in _SECTION_TYPES or not hasattr(section_obj, option):
            return default
        return getattr(section_obj, option)

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Set a configuration value.

        Raises:
            ConfigurationError: If the key does not exist or the value cannot be converted
        """
        self._check_key(section, option)
        try:
            typed_value = self._coerce(section, option, value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid value for {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue=str(e)
            ) from e

        if section == "filter" and option == "initial_covariance_method" \
                and typed_value not in _VALID_COVARIANCE_METHODS:
            raise ConfigurationError(
                f"Invalid value for {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue=f"must be one of {_VALID_COVARIANCE_METHODS}"
            )
        if section == "logging" and option == "log_level" and typed_value not in _VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid value for {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue=f"must be one of {_VALID_LOG_LEVELS}"
            )

        setattr(getattr(self._config, section), option, typed_value)
        self._modified_keys.add(f"{section}.{option}")
        logger.debug(f"Set configuration option: {section}.{option}={typed_value}")

        if section == "logging":
            self._setup_logging()

    def reset(self, section: Optional[str] = None, option: Optional[str] = None) -> None:
        """
        Reset the whole configuration, one section, or one option to defaults.

        Raises:
            ConfigurationError: If the section or option is not found
        """
        if section is None:
            self._config = ArmaKFConfig()
            self._modified_keys.clear()
            self._setup_logging()
            logger.debug("Reset all configuration to defaults")
            return

        self._check_key(section, option)
        default_section = _SECTION_TYPES[section]()

        if option is None:
            setattr(self._config, section, default_section)
            self._modified_keys = {k for k in self._modified_keys if not k.startswith(f"{section}.")}
            if section == "logging":
                self._setup_logging()
            logger.debug(f"Reset configuration section: {section}")
            return

        setattr(getattr(self._config, section), option, getattr(default_section, option))
        self._modified_keys.discard(f"{section}.{option}")
        logger.debug(f"Reset configuration option: {section}.{option}")

    def get_modified_options(self) -> Dict[str, Any]:
        """Return ``{"section.option": value}`` for every option set at runtime."""
        return {
            key: getattr(getattr(self._config, key.split('.', 1)[0]), key.split('.', 1)[1])
            for key in sorted(self._modified_keys)
        }

    def get_sections(self) -> List[str]:
        return list(_SECTION_TYPES)

    def get_options(self, section: str) -> List[str]:
        self._check_key(section)
        return [f.name for f in fields(_SECTION_TYPES[section])]

    def get_section(self, section: str) -> Any:
        self._check_key(section)
        return getattr(self._config, section)

    def get_config_file(self) -> Optional[Path]:
        return self._config_file

    def get_full_config(self) -> ArmaKFConfig:
        return self._config


# Module-level manager shared by the convenience functions below
_config_manager = ConfigManager()


def initialize_config() -> None:
    """Initialize the configuration system."""
    _config_manager.initialize()


def get_config_manager() -> ConfigManager:
    """Get the (initialized) configuration manager instance."""
    if not _config_manager._initialized:
        initialize_config()
    return _config_manager


def get_config(section: str, option: str, default: Any = None) -> Any:
    """
    Get a configuration value.

    Args:
        section: The configuration section
        option: The configuration option
        default: Default value if the option is not found

    Returns:
        The configuration value, or the default if not found
    """
    return get_config_manager().get(section, option, default)


def set_config(section: str, option: str, value: Any) -> None:
    """
    Set a configuration value.

    Raises:
        ConfigurationError: If the section or option is not found
    """
    get_config_manager().set(section, option, value)


def reset_config(section: Optional[str] = None, option: Optional[str] = None) -> None:
    """Reset configuration to default values."""
    get_config_manager().reset(section, option)


def save_config() -> None:
    """Save the options modified at runtime to the user configuration file."""
    get_config_manager().save_user_config()


def get_numerical_config() -> NumericalConfig:
    return get_config_manager().get_section("numerical")


def get_filter_config() -> FilterConfig:
    return get_config_manager().get_section("filter")


def get_performance_config() -> PerformanceConfig:
    return get_config_manager().get_section("performance")


def get_logging_config() -> LoggingConfig:
    return get_config_manager().get_section("logging")


def to_dict() -> Dict[str, Any]:
    """Return the full configuration as a dictionary."""
    return get_config_manager().to_dict()
