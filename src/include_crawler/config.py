# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for the include crawler."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".include_crawler.yml"


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for the include crawler.

    Loads configuration from .include_crawler.yml with validation and defaults.
    Values passed as ``overrides`` (command-line flags) take precedence over
    the file.
    """

    OUTPUT_FORMATS = ("json", "dot", "text")
    MAX_WORKERS_LIMIT = 64

    DEFAULTS: Dict[str, Any] = {
        "search_paths": [],  # Relative to the crawl root
        "extensions": ["c", "h", "hh", "hpp", "hxx", "inc"],
        "ignore_patterns": [],
        "follow_symlinks": False,
        "output_format": "text",
        "max_workers": 8,
        "scan_timeout_seconds": 5.0,
        "max_file_size_bytes": 10 * 1024 * 1024,
        "report_unresolved_macros": True,
        "plugin_dirs": ["plugins"],
        "third_party_dirs": ["third_party", "vendor", "external"],
    }

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
        required: bool = False,
    ):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, only defaults
                and overrides are used.
            overrides: Values that replace file values (None entries are skipped).
            required: Raise instead of falling back to defaults when the
                file does not exist.

        Raises:
            ConfigurationError: If a required file is missing, or an override
                is unknown or invalid.
        """
        self.config_path = Path(config_path) if config_path is not None else None
        self._config: Dict[str, Any] = self._defaults()

        if self.config_path is not None:
            if required and not self.config_path.is_file():
                raise ConfigurationError(f"Configuration file not found: {self.config_path}")
            self._load_config()

        if overrides:
            self._apply_overrides(overrides)

    @classmethod
    def _defaults(cls) -> Dict[str, Any]:
        # Copy lists so instances never share mutable defaults
        return {k: list(v) if isinstance(v, list) else v for k, v in cls.DEFAULTS.items()}

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        assert self.config_path is not None
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                return

            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()
        except OSError as e:
            logger.warning(
                f"Error reading configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = self._coerce(key, value)

    def _apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Apply command-line values on top of file values.

        Raises:
            ConfigurationError: If an override is unknown or invalid.
        """
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in self.DEFAULTS:
                raise ConfigurationError(f"Unknown configuration parameter '{key}'")
            if not self._validate_parameter(key, value):
                raise ConfigurationError(f"Invalid value for '{key}': {value}")
            self._config[key] = self._coerce(key, value)

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        default = self.DEFAULTS[key]

        # bool is an int subclass; keep flags and counts apart
        if isinstance(default, bool) or isinstance(value, bool):
            return isinstance(default, bool) and isinstance(value, bool)

        if isinstance(default, float):
            if not isinstance(value, (int, float)):
                return False
        elif not isinstance(value, type(default)):
            return False

        # Range validation for numeric parameters
        if key == "max_workers":
            return bool(1 <= value <= self.MAX_WORKERS_LIMIT)
        elif key in ("scan_timeout_seconds", "max_file_size_bytes"):
            return bool(value > 0)
        elif key == "output_format":
            return value in self.OUTPUT_FORMATS
        elif key == "extensions":
            return bool(value) and all(isinstance(e, str) and e.strip(".") for e in value)
        elif key in ("search_paths", "ignore_patterns", "plugin_dirs", "third_party_dirs"):
            return all(isinstance(item, str) for item in value)

        return True

    def _coerce(self, key: str, value: Any) -> Any:
        if key == "scan_timeout_seconds":
            return float(value)
        if key == "extensions":
            return [e.lstrip(".") for e in value]
        if isinstance(value, list):
            return list(value)
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Effective configuration values."""
        return {k: list(v) if isinstance(v, list) else v for k, v in self._config.items()}

    # Property accessors for all configuration values
    @property
    def search_paths(self) -> List[str]:
        """Extra include search directories, relative to the crawl root."""
        value = self._config["search_paths"]
        assert isinstance(value, list)
        return value

    @property
    def extensions(self) -> List[str]:
        """File extensions (without dots) to discover."""
        value = self._config["extensions"]
        assert isinstance(value, list)
        return value

    @property
    def ignore_patterns(self) -> List[str]:
        """fnmatch patterns for paths to skip during discovery."""
        value = self._config["ignore_patterns"]
        assert isinstance(value, list)
        return value

    @property
    def follow_symlinks(self) -> bool:
        """Whether discovery descends into symlinked directories."""
        value = self._config["follow_symlinks"]
        assert isinstance(value, bool)
        return value

    @property
    def output_format(self) -> str:
        """Report format: json, dot or text."""
        value = self._config["output_format"]
        assert isinstance(value, str)
        return value

    @property
    def max_workers(self) -> int:
        """Size of the scan thread pool."""
        value = self._config["max_workers"]
        assert isinstance(value, int)
        return value

    @property
    def scan_timeout_seconds(self) -> float:
        """Per-file scan deadline in seconds."""
        value = self._config["scan_timeout_seconds"]
        assert isinstance(value, float)
        return value

    @property
    def max_file_size_bytes(self) -> int:
        """Files larger than this are recorded as unreadable and not scanned."""
        value = self._config["max_file_size_bytes"]
        assert isinstance(value, int)
        return value

    @property
    def report_unresolved_macros(self) -> bool:
        """Whether unexpanded macro includes are reported as unresolved."""
        value = self._config["report_unresolved_macros"]
        assert isinstance(value, bool)
        return value

    @property
    def plugin_dirs(self) -> List[str]:
        """Directories (relative to the root) whose files are plugin edges."""
        value = self._config["plugin_dirs"]
        assert isinstance(value, list)
        return value

    @property
    def third_party_dirs(self) -> List[str]:
        """Directories (relative to the root) whose files are third-party edges."""
        value = self._config["third_party_dirs"]
        assert isinstance(value, list)
        return value
