"""
Test fixtures for hosting clients and sources.
"""

from .factories import make_branch, make_pull_request, make_source
from .fake_client import FakeClientFactory, FakeHostingClient

__all__ = [
    "FakeClientFactory",
    "FakeHostingClient",
    "make_branch",
    "make_pull_request",
    "make_source",
]
