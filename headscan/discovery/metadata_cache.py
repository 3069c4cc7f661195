"""In-memory cache of pull request metadata that persists across scans."""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class PullRequestMetadata:
    """Display details of a pull request."""

    title: str | None
    author_login: str | None


class PullRequestMetadataCache:
    """Concurrency-safe mapping of pull request id to metadata.

    One cache belongs to one source. A rescan replaces the key set with the
    ids seen by that scan through :meth:`retain`.
    """

    def __init__(self) -> None:
        self._entries: dict[str, PullRequestMetadata] = {}
        self._lock = asyncio.Lock()

    async def get(self, pull_request_id: str) -> PullRequestMetadata | None:
        """Get metadata by pull request id."""
        async with self._lock:
            return self._entries.get(pull_request_id)

    async def put(self, pull_request_id: str, metadata: PullRequestMetadata) -> None:
        """Store metadata for a pull request."""
        async with self._lock:
            self._entries[pull_request_id] = metadata

    async def retain(self, pull_request_ids: Iterable[str]) -> int:
        """Drop every entry whose id is not in ``pull_request_ids``.

        Returns:
            Number of entries removed
        """
        keep = set(pull_request_ids)
        async with self._lock:
            stale = [key for key in self._entries if key not in keep]
            for key in stale:
                del self._entries[key]
            return len(stale)

    async def keys(self) -> set[str]:
        """Return the ids currently cached."""
        async with self._lock:
            return set(self._entries)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
