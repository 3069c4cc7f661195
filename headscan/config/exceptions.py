"""Exceptions raised while loading the source configuration."""

from typing import Any


class ConfigurationError(Exception):
    """Base exception for configuration problems."""

    pass


class ConfigurationFileError(ConfigurationError):
    """Raised when the configuration file is missing, unreadable or not YAML."""

    def __init__(self, message: str, file_path: str | None = None):
        super().__init__(message)
        self.file_path = file_path


class ConfigurationValidationError(ConfigurationError):
    """Raised when the configuration does not describe valid sources.

    Attributes:
        errors: Error records as reported by pydantic, each with a ``loc``
            tuple such as ``("sources", 0, "traits", 1, "strategies", 0)``
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []

    @property
    def locations(self) -> list[str]:
        """Dotted paths of the invalid settings, e.g. ``sources.0.repo_owner``."""
        return [
            ".".join(str(part) for part in error.get("loc", ()))
            for error in self.errors
        ]
