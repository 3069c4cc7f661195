"""Configuration loading and management.

This module loads the source configuration from YAML files or dictionaries,
validates it and keeps the global configuration instance.

The loading hierarchy is:
1. Default values from Pydantic models
2. Configuration file (YAML)
3. Environment variables referenced from the file
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
)
from .models import Config, SystemConfig

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "HEADSCAN_CONFIG_PATH"


class ConfigurationLoader:
    """Handles loading and validation of configuration from various sources."""

    def __init__(self) -> None:
        self._config: Config | None = None
        self._config_file_path: Path | None = None

    def load_from_file(self, config_path: str | Path) -> Config:
        """Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationFileError: If file cannot be read or parsed
            ConfigurationValidationError: If configuration validation fails
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigurationFileError(
                f"Configuration file not found: {config_path}", file_path=str(config_path)
            )

        if not config_path.is_file():
            raise ConfigurationFileError(
                f"Configuration path is not a file: {config_path}",
                file_path=str(config_path),
            )

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f)

            if config_data is None:
                config_data = {}

        except yaml.YAMLError as e:
            raise ConfigurationFileError(
                f"Failed to parse YAML configuration: {e}", file_path=str(config_path)
            ) from e
        except OSError as e:
            raise ConfigurationFileError(
                f"Failed to read configuration file: {e}", file_path=str(config_path)
            ) from e

        config = self.load_from_dict(config_data)
        self._config_file_path = config_path.resolve()
        logger.info(
            f"Loaded configuration with {len(config.sources)} sources from {config_path}"
        )
        return config

    def load_from_dict(self, config_data: dict[str, Any]) -> Config:
        """Load configuration from a dictionary.

        Raises:
            ConfigurationValidationError: If configuration validation fails
        """
        if not isinstance(config_data, dict):
            raise ConfigurationValidationError(
                "Configuration root must be a mapping"
            )
        try:
            self._config = Config.model_validate(config_data)
        except ValidationError as e:
            errors = e.errors()
            raise ConfigurationValidationError(
                f"Configuration validation failed: {e}", errors=errors
            ) from e

        return self._config

    def find_config_file(self, filename: str = "headscan.yaml") -> Path | None:
        """Find configuration file in standard locations.

        Search order:
        1. Current working directory
        2. HEADSCAN_CONFIG_PATH environment variable
        3. ~/.headscan/

        Args:
            filename: Configuration filename to search for

        Returns:
            Path to found configuration file, or None if not found
        """
        search_paths = [Path.cwd() / filename]

        env_path_str = os.getenv(CONFIG_PATH_ENV)
        if env_path_str:
            env_path = Path(env_path_str)
            if env_path.is_file():
                search_paths.append(env_path)
            else:
                search_paths.append(env_path / filename)

        search_paths.append(Path.home() / ".headscan" / filename)

        for path in search_paths:
            if path.exists() and path.is_file():
                return path

        return None

    def auto_load(self, config_filename: str = "headscan.yaml") -> Config:
        """Automatically load configuration from standard locations.

        Raises:
            ConfigurationFileError: If no configuration file is found
            ConfigurationValidationError: If configuration validation fails
        """
        config_path = self.find_config_file(config_filename)

        if config_path is None:
            raise ConfigurationFileError(
                f"No configuration file '{config_filename}' found in standard locations"
            )

        return self.load_from_file(config_path)

    @property
    def config(self) -> Config | None:
        """Get the loaded configuration."""
        return self._config

    @property
    def config_file_path(self) -> Path | None:
        """Get the path to the loaded configuration file."""
        return self._config_file_path

    @property
    def is_loaded(self) -> bool:
        """Check if configuration has been loaded."""
        return self._config is not None


def configure_logging(system_config: SystemConfig) -> None:
    """Apply the configured log level and format to the root logger."""
    logging.basicConfig(
        level=getattr(logging, system_config.log_level.value),
        format=system_config.log_format,
    )


# Global configuration loader instance
_loader = ConfigurationLoader()


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from file or auto-discovery.

    Args:
        config_path: Explicit path to configuration file

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If configuration cannot be loaded or is invalid
    """
    try:
        if config_path:
            return _loader.load_from_file(config_path)
        return _loader.auto_load()
    except (ConfigurationFileError, ConfigurationValidationError) as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def get_config() -> Config:
    """Get the currently loaded configuration.

    Raises:
        ConfigurationError: If no configuration has been loaded
    """
    if not _loader.is_loaded or _loader.config is None:
        raise ConfigurationError("No configuration loaded. Call load_config() first.")

    return _loader.config


def get_loader() -> ConfigurationLoader:
    """Get the global configuration loader instance."""
    return _loader


def reload_config() -> Config:
    """Reload configuration from the same source.

    Raises:
        ConfigurationError: If no configuration was previously loaded or reload fails
    """
    if not _loader.is_loaded:
        raise ConfigurationError(
            "Cannot reload: no configuration was previously loaded"
        )

    if _loader.config_file_path:
        return _loader.load_from_file(_loader.config_file_path)
    return _loader.auto_load()


def is_config_loaded() -> bool:
    """Check if configuration has been loaded."""
    return _loader.is_loaded
