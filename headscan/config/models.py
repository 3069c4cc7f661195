"""Pydantic configuration models for head discovery.

The configuration hierarchy follows this structure:
- Config: Root configuration
- SystemConfig: Logging and environment settings
- SourceConfig: One scanned repository and its ordered traits
- TraitConfig: One trait of a source

Environment variables are substituted using the format ${VAR_NAME} with
optional defaults: ${VAR_NAME:default_value}
"""

import os
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from headscan.scm import CheckoutStrategy


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class TraitKind(str, Enum):
    """Traits that can be configured on a source."""

    BRANCH_DISCOVERY = "branch_discovery"
    ORIGIN_PR_DISCOVERY = "origin_pr_discovery"
    FORK_PR_DISCOVERY = "fork_pr_discovery"
    TAG_DISCOVERY = "tag_discovery"
    PUBLIC_REPO_PR_FILTER = "public_repo_pr_filter"
    WILDCARD_FILTER = "wildcard_filter"
    WEBHOOK_REGISTRATION = "webhook_registration"
    DISABLE_NOTIFICATIONS = "disable_notifications"
    CHECKOUT_CREDENTIALS = "checkout_credentials"
    REFSPECS = "refspecs"


class ForkTrust(str, Enum):
    """Which fork pull requests may supply their own build instructions."""

    EVERYONE = "everyone"
    TEAM_FORKS = "team_forks"
    NOBODY = "nobody"


class WebhookRegistration(str, Enum):
    """Who registers the hosting webhook for a source."""

    DISABLE = "disable"
    SYSTEM = "system"
    ITEM = "item"

    @property
    def strength(self) -> int:
        """Rank used when several traits request a mode; the strongest wins."""
        return _REGISTRATION_STRENGTH[self]


_REGISTRATION_STRENGTH = {
    WebhookRegistration.DISABLE: 0,
    WebhookRegistration.SYSTEM: 1,
    WebhookRegistration.ITEM: 2,
}


class BaseConfigModel(BaseModel):
    """Base configuration model with environment variable substitution."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def substitute_env_vars(cls, values: Any) -> Any:
        """Substitute environment variables in string values.

        Supports formats:
        - ${VAR_NAME} - Required environment variable
        - ${VAR_NAME:default} - Optional with default value

        Raises:
            ValueError: If required environment variable is missing
        """
        if not isinstance(values, dict):
            return values

        def substitute_value(value: Any) -> Any:
            if isinstance(value, str):
                pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

                def replacer(match: re.Match[str]) -> str:
                    var_name = match.group(1)
                    default_value = match.group(2)

                    env_value = os.getenv(var_name)
                    if env_value is not None:
                        return env_value
                    elif default_value is not None:
                        return default_value
                    else:
                        raise ValueError(
                            f"Required environment variable '{var_name}' not found"
                        )

                return re.sub(pattern, replacer, value)
            elif isinstance(value, dict):
                return {k: substitute_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [substitute_value(item) for item in value]
            else:
                return value

        return {key: substitute_value(value) for key, value in values.items()}


class SystemConfig(BaseConfigModel):
    """Core system configuration settings."""

    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="System-wide logging level"
    )

    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Format of log records",
    )

    environment: str = Field(
        default="development",
        description="Deployment environment (development, staging, production)",
    )


class TraitConfig(BaseConfigModel):
    """Configuration of one trait."""

    kind: TraitKind = Field(description="Trait to apply")

    strategies: list[CheckoutStrategy] = Field(
        default_factory=lambda: [CheckoutStrategy.HEAD],
        min_length=1,
        description="Pull request checkout strategies (head, merge)",
    )

    trust: ForkTrust = Field(
        default=ForkTrust.TEAM_FORKS, description="Fork pull request trust policy"
    )

    includes: str = Field(default="*", description="Space separated include wildcards")

    excludes: str = Field(default="", description="Space separated exclude wildcards")

    mode: WebhookRegistration = Field(
        default=WebhookRegistration.SYSTEM, description="Webhook registration mode"
    )

    credentials_id: str | None = Field(
        default=None, description="Credentials used for checkouts"
    )

    refspecs: list[str] = Field(
        default_factory=list, description="Additional refspecs to fetch"
    )

    @field_validator("strategies", "mode", mode="before")
    @classmethod
    def normalize_names(cls, v: Any) -> Any:
        """Accept enum names in any case and with surrounding spaces."""
        if isinstance(v, str):
            return v.strip().lower()
        if isinstance(v, list):
            return [item.strip().lower() if isinstance(item, str) else item for item in v]
        return v


class SourceConfig(BaseConfigModel):
    """Configuration for one scanned repository."""

    id: str = Field(description="Unique source identifier")

    server_url: str | None = Field(
        default=None, description="Server URL, unset for the cloud service"
    )

    repo_owner: str = Field(description="Repository owner or project key")

    repository: str = Field(description="Repository name")

    credentials_id: str | None = Field(
        default=None, description="Credentials used to scan the repository"
    )

    traits: list[TraitConfig] = Field(
        default_factory=list, description="Ordered traits of the source"
    )

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str | None) -> str | None:
        """Strip trailing slashes and require an http(s) URL."""
        if v is None or v.strip() == "":
            return None
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("Server URL must start with http:// or https://")
        return v

    @field_validator("repo_owner", "repository")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or v.strip() == "":
            raise ValueError("Repository owner and name cannot be empty")
        return v.strip()


class Config(BaseConfigModel):
    """Root configuration."""

    system: SystemConfig = Field(
        default_factory=SystemConfig, description="Core system configuration"
    )

    sources: list[SourceConfig] = Field(
        default_factory=list, description="Scanned repositories"
    )

    @model_validator(mode="after")
    def validate_unique_source_ids(self) -> "Config":
        """Ensure source identifiers are unique."""
        seen: set[str] = set()
        for source in self.sources:
            if source.id in seen:
                raise ValueError(f"Duplicate source id '{source.id}'")
            seen.add(source.id)
        return self
