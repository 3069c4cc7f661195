"""Registry of sources and navigators that webhook events are routed to."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from headscan.discovery import HostedSource
from headscan.discovery.source import CLOUD_SERVER_URL, normalize_server_url
from headscan.scm import Head, Revision

from .processors import HeadDeltaEvent

logger = logging.getLogger(__name__)

ReindexCallback = Callable[[HostedSource], Awaitable[None]]
HeadsCallback = Callable[
    [HostedSource, HeadDeltaEvent, dict[Head, Revision | None]], Awaitable[None]
]
NavigatorCallback = Callable[["SourceNavigator", HeadDeltaEvent], Awaitable[None]]


class SourceNavigator:
    """Owner-level container of sources, such as a team or project folder."""

    def __init__(
        self,
        repo_owner: str,
        on_event: NavigatorCallback,
        server_url: str | None = None,
    ):
        self.repo_owner = repo_owner
        self.on_event = on_event
        self.server_url = normalize_server_url(server_url)

    @property
    def is_cloud(self) -> bool:
        return self.server_url == CLOUD_SERVER_URL


@dataclass
class _Registration:
    source: HostedSource
    on_reindex: ReindexCallback
    on_heads: HeadsCallback | None = None


class SourceRegistry:
    """Routes reindex triggers and head deltas to registered sources.

    Events are handled as independent asyncio tasks through :meth:`dispatch`,
    so an event never waits for a running scan.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, _Registration] = {}
        self._navigators: list[SourceNavigator] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    def register(
        self,
        source: HostedSource,
        on_reindex: ReindexCallback,
        on_heads: HeadsCallback | None = None,
    ) -> None:
        """Register a source.

        Args:
            source: Source to route events to
            on_reindex: Called when the source must be rescanned
            on_heads: Called with the head delta of a push; without it a push
                triggers ``on_reindex``
        """
        self._registrations[source.id] = _Registration(source, on_reindex, on_heads)
        logger.debug(f"Registered source {source.id} ({source.full_name})")

    def unregister(self, source_id: str) -> bool:
        return self._registrations.pop(source_id, None) is not None

    def register_navigator(self, navigator: SourceNavigator) -> None:
        self._navigators.append(navigator)

    @property
    def sources(self) -> list[HostedSource]:
        return [registration.source for registration in self._registrations.values()]

    async def reindex(self, owner: str, repository: str) -> int:
        """Trigger a rescan of every source of ``owner/repository``.

        Owner matching ignores case, repository matching is exact.

        Returns:
            Number of sources triggered
        """
        count = 0
        for registration in list(self._registrations.values()):
            source = registration.source
            if source.repo_owner.lower() == owner.lower() and source.repository == repository:
                logger.info(f"Reindexing source {source.id} ({source.full_name})")
                try:
                    await registration.on_reindex(source)
                except Exception as e:
                    logger.error(f"Reindex of source {source.id} failed: {e}")
                    continue
                count += 1
        if count == 0:
            logger.debug(f"No source registered for {owner}/{repository}")
        return count

    async def fire(self, event: HeadDeltaEvent) -> int:
        """Deliver a head delta to matching navigators and sources.

        Returns:
            Number of sources the event was applied to
        """
        for navigator in list(self._navigators):
            if event.is_match_navigator(navigator):
                try:
                    await navigator.on_event(navigator, event)
                except Exception as e:
                    logger.error(
                        f"Navigator {navigator.repo_owner} failed on {event}: {e}"
                    )

        count = 0
        for registration in list(self._registrations.values()):
            source = registration.source
            if not event.is_match(source):
                continue
            try:
                if registration.on_heads is None:
                    await registration.on_reindex(source)
                else:
                    await registration.on_heads(source, event, event.heads(source))
            except Exception as e:
                logger.error(f"Applying {event} to source {source.id} failed: {e}")
                continue
            count += 1
        return count

    def dispatch(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run an event handler as its own task."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every dispatched task to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
