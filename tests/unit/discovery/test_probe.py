"""
Unit tests for probes, criteria, lazy cells and the metadata cache.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from headscan.discovery import (
    LAST_MODIFIED_UNKNOWN,
    AcceptAllCriteria,
    AllOfCriteria,
    HostingProbe,
    Lazy,
    PathExistsCriteria,
    PullRequestMetadata,
    PullRequestMetadataCache,
    RequestClosedError,
    ScanListener,
)
from headscan.hosting import HostingServerError
from tests.fixtures.hosting import FakeHostingClient


class TestHostingProbe:
    """Tests for probe queries against a hosting client."""

    async def test_last_modified_returns_commit_date(self):
        client = FakeHostingClient(commits={"h1": 1_600_000_000_000})
        probe = HostingProbe("master", "h1", client, ScanListener(), ref="master")

        assert await probe.last_modified() == 1_600_000_000_000
        assert probe.name == "master"

    async def test_last_modified_unknown_commit_returns_sentinel(self):
        """
        Why: Freshness is advisory and must never fail a scan
        What: Tests that an unknown commit yields the sentinel and a log line
        How: Probes a hash the fake client does not know
        """
        listener = ScanListener()
        probe = HostingProbe("master", "nope", FakeHostingClient(), listener)

        assert await probe.last_modified() == LAST_MODIFIED_UNKNOWN
        assert "Can not resolve commit by hash [nope] on repository bob/foo" in listener.text

    async def test_last_modified_lookup_failure_returns_sentinel(self):
        client = FakeHostingClient()
        client.resolve_commit = AsyncMock(side_effect=HostingServerError("down"))
        probe = HostingProbe("master", "h1", client, ScanListener())

        assert await probe.last_modified() == LAST_MODIFIED_UNKNOWN

    async def test_exists_uses_ref_and_propagates_failures(self):
        client = FakeHostingClient(files={"master": {"Jenkinsfile"}})
        probe = HostingProbe("master", "h1", client, ScanListener(), ref="master")

        assert await probe.exists("Jenkinsfile")
        assert not await probe.exists("README")

        client.check_path_exists = AsyncMock(side_effect=HostingServerError("down"))
        with pytest.raises(HostingServerError):
            await probe.exists("Jenkinsfile")

    async def test_ref_defaults_to_hash(self):
        client = FakeHostingClient(files={"h1": {"Jenkinsfile"}})
        probe = HostingProbe("PR-1", "h1", client, ScanListener())

        assert await probe.exists("Jenkinsfile")
        assert client.path_checks == [("h1", "Jenkinsfile")]


class TestCriteria:
    """Tests for criteria predicates."""

    async def test_path_exists_criteria_logs_outcome(self):
        listener = ScanListener()
        client = FakeHostingClient(files={"master": {"Jenkinsfile"}})
        found = HostingProbe("master", "h1", client, listener, ref="master")
        missing = HostingProbe("dev", "h2", client, listener, ref="dev")
        criteria = PathExistsCriteria("Jenkinsfile")

        assert await criteria.is_head(found, listener)
        assert not await criteria.is_head(missing, listener)
        assert listener.lines == ["'Jenkinsfile' found", "'Jenkinsfile' not found"]

    async def test_all_of_stops_at_first_failure(self):
        listener = ScanListener()
        client = FakeHostingClient(files={"master": {"Jenkinsfile"}})
        probe = HostingProbe("master", "h1", client, listener, ref="master")
        criteria = AllOfCriteria(
            PathExistsCriteria("README"), PathExistsCriteria("Jenkinsfile")
        )

        assert not await criteria.is_head(probe, listener)
        assert client.path_checks == [("master", "README")]

    async def test_accept_all(self):
        probe = HostingProbe("master", "h1", FakeHostingClient(), ScanListener())

        assert await AcceptAllCriteria().is_head(probe, ScanListener())


class TestLazy:
    """Tests for fetch-once cells."""

    async def test_value_computed_once_under_concurrency(self):
        """
        Why: Branch and pull request lists must be fetched at most once
        What: Tests that concurrent readers share a single supplier call
        How: Gathers several get() calls on a slow supplier
        """
        calls = 0

        async def supplier():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return [1, 2, 3]

        cell = Lazy(supplier, "numbers")
        results = await asyncio.gather(*(cell.get() for _ in range(5)))

        assert calls == 1
        assert all(result == [1, 2, 3] for result in results)
        assert cell.realized

    async def test_failure_is_not_cached(self):
        attempts = 0

        async def supplier():
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise HostingServerError("flaky")
            return "ok"

        cell = Lazy(supplier)

        with pytest.raises(HostingServerError):
            await cell.get()
        assert await cell.get() == "ok"

    async def test_get_after_close_raises(self):
        cell = Lazy(AsyncMock(return_value="value"), "value")
        await cell.get()

        cell.close()

        assert cell.closed
        assert not cell.realized
        with pytest.raises(RequestClosedError):
            await cell.get()


class TestPullRequestMetadataCache:
    """Tests for the cross-scan metadata cache."""

    async def test_put_get_and_retain(self):
        cache = PullRequestMetadataCache()
        for pull_request_id in ("1", "2", "3"):
            await cache.put(pull_request_id, PullRequestMetadata(f"t{pull_request_id}", "bob"))

        removed = await cache.retain({"2", "3", "4"})

        assert removed == 1
        assert await cache.keys() == {"2", "3"}
        assert await cache.get("1") is None
        assert (await cache.get("2")).title == "t2"
