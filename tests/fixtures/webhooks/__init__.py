"""
Webhook payload fixtures.
"""

from .payloads import (
    change,
    cloud_pull_request,
    cloud_push,
    cloud_repository,
    reference,
    server_pull_request,
    server_push,
    server_repository,
)

__all__ = [
    "change",
    "cloud_pull_request",
    "cloud_push",
    "cloud_repository",
    "reference",
    "server_pull_request",
    "server_push",
    "server_repository",
]
