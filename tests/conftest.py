"""
Shared pytest fixtures for head discovery tests.
"""

import pytest

from headscan.discovery import (
    BranchDiscoveryTrait,
    ForkPullRequestDiscoveryTrait,
    OriginPullRequestDiscoveryTrait,
    ScanListener,
)
from headscan.scm import CheckoutStrategy
from tests.fixtures.hosting import FakeHostingClient, make_branch


@pytest.fixture
def listener() -> ScanListener:
    """
    Why: Scans write human-readable progress that tests assert on
    What: Provides a fresh in-memory progress log
    How: Creates a ScanListener named after the default test repository
    """
    return ScanListener(name="bob/foo")


@pytest.fixture
def origin_client() -> FakeHostingClient:
    """
    Why: Most scenarios scan the git repository bob/foo
    What: Provides a fake client for bob/foo with a master branch at h1
    How: Builds a FakeHostingClient with one branch and one dated commit
    """
    return FakeHostingClient(
        owner="bob",
        repository="foo",
        branches=[make_branch("master", "h1")],
        commits={"h1": 1_500_000_000_000},
        files={"master": {"Jenkinsfile"}},
    )


@pytest.fixture
def default_traits() -> list:
    """Branches, origin PRs and fork PRs with the HEAD strategy."""
    return [
        BranchDiscoveryTrait(),
        OriginPullRequestDiscoveryTrait([CheckoutStrategy.HEAD]),
        ForkPullRequestDiscoveryTrait([CheckoutStrategy.HEAD]),
    ]
