"""Configuration for head discovery.

Example usage:
    from headscan.config import load_config, configure_logging

    config = load_config("headscan.yaml")
    configure_logging(config.system)
"""

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
)
from .loader import (
    ConfigurationLoader,
    configure_logging,
    get_config,
    get_loader,
    is_config_loaded,
    load_config,
    reload_config,
)
from .models import (
    BaseConfigModel,
    Config,
    ForkTrust,
    LogLevel,
    SourceConfig,
    SystemConfig,
    TraitConfig,
    TraitKind,
    WebhookRegistration,
)

__all__ = [
    "BaseConfigModel",
    "Config",
    "ConfigurationError",
    "ConfigurationFileError",
    "ConfigurationLoader",
    "ConfigurationValidationError",
    "ForkTrust",
    "LogLevel",
    "SourceConfig",
    "SystemConfig",
    "TraitConfig",
    "TraitKind",
    "WebhookRegistration",
    "configure_logging",
    "get_config",
    "get_loader",
    "is_config_loaded",
    "load_config",
    "reload_config",
]
