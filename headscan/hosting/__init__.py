"""Hosting service client package."""

from .client import (
    HostedBranch,
    HostedCommit,
    HostedPullRequest,
    HostedRepository,
    HostingClient,
    HostingClientFactory,
    PullRequestEndpoint,
)
from .exceptions import (
    HostingAuthenticationError,
    HostingConnectionError,
    HostingError,
    HostingForbiddenError,
    HostingNotFoundError,
    HostingRateLimitError,
    HostingServerError,
    HostingTimeoutError,
)

__all__ = [
    "HostedBranch",
    "HostedCommit",
    "HostedPullRequest",
    "HostedRepository",
    "HostingAuthenticationError",
    "HostingClient",
    "HostingClientFactory",
    "HostingConnectionError",
    "HostingError",
    "HostingForbiddenError",
    "HostingNotFoundError",
    "HostingRateLimitError",
    "HostingServerError",
    "HostingTimeoutError",
    "PullRequestEndpoint",
]
