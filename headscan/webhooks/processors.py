"""Hook processors: turn validated payloads into reindexes or head deltas."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from pydantic import ValidationError

from headscan.discovery import HostedSource
from headscan.scm import BranchHead, Head, RepositoryKind, Revision, revision_for

from .events import (
    Change,
    CloudPullRequestPayload,
    CloudPushPayload,
    HookEventType,
    InstanceKind,
    PullRequestEvent,
    PushEvent,
    ServerPullRequestPayload,
    ServerPushPayload,
    cloud_repository,
    normalize_changes,
    server_repository,
)
from .exceptions import WebhookRejectedError

if TYPE_CHECKING:
    from .registry import SourceNavigator, SourceRegistry

logger = logging.getLogger(__name__)

# Reference types that denote branches (git and mercurial)
BRANCH_REFERENCE_TYPES = frozenset({"branch", "named_branch", "BRANCH"})


class HeadEventType(Enum):
    """Kind of change a head delta event announces."""

    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"


def infer_event_type(changes: list[Change]) -> HeadEventType:
    """Derive one event type for a batch of changes.

    A batch of creations only is CREATED and a batch of deletions only is
    REMOVED. Any other mix, including one creation and one deletion, is
    UPDATED.
    """
    event_type: HeadEventType | None = None
    for change in changes:
        if event_type in (None, HeadEventType.CREATED) and change.created:
            event_type = HeadEventType.CREATED
        elif event_type in (None, HeadEventType.REMOVED) and change.closed:
            event_type = HeadEventType.REMOVED
        else:
            event_type = HeadEventType.UPDATED
    return event_type or HeadEventType.UPDATED


def _host(url: str | None) -> str | None:
    if not url:
        return None
    host = urlparse(url).hostname
    return host.lower() if host else None


class HeadDeltaEvent:
    """Aggregate head changes from one push, applied to matching sources."""

    def __init__(self, type: HeadEventType, payload: PushEvent):
        self.type = type
        self.payload = payload

    def __repr__(self) -> str:
        return (
            f"HeadDeltaEvent(type={self.type.value}, "
            f"repository={self.payload.repository.full_name}, "
            f"changes={len(self.payload.changes)})"
        )

    def _server_matches(self, server_url: str, is_cloud: bool) -> bool:
        if self.payload.kind == InstanceKind.CLOUD:
            return is_cloud
        if is_cloud:
            return False
        server_host = _host(server_url)
        return any(
            _host(href) == server_host
            for href in self.payload.repository.links.get("self", [])
        )

    def is_match_navigator(self, navigator: "SourceNavigator") -> bool:
        """Check whether the event concerns a navigator's owner."""
        return self._server_matches(
            navigator.server_url, navigator.is_cloud
        ) and (
            navigator.repo_owner.lower()
            == self.payload.repository.owner_name.lower()
        )

    def is_match(self, source: HostedSource) -> bool:
        """Check whether the event concerns a source's repository."""
        repository = self.payload.repository
        return (
            self._server_matches(source.server_url, source.is_cloud)
            and source.repo_owner.lower() == repository.owner_name.lower()
            and source.repository == repository.repository_name
        )

    def heads(self, source: HostedSource) -> dict[Head, Revision | None]:
        """Compute the head delta for a source.

        Returns:
            Mapping of head to its new revision, or None for a removed head.
            Empty if the event does not concern the source.
        """
        if not self.is_match(source):
            return {}
        kind = RepositoryKind.from_string(self.payload.repository.scm)
        if kind is None:
            logger.warning(
                f"Ignoring push to {self.payload.repository.full_name}: "
                f"unknown scm '{self.payload.repository.scm}'"
            )
            return {}
        result: dict[Head, Revision | None] = {}
        for change in self.payload.changes:
            if change.closed:
                if change.old is not None and change.old.type in BRANCH_REFERENCE_TYPES:
                    result[BranchHead(change.old.name, repository_kind=kind)] = None
            elif change.new is not None and change.new.type in BRANCH_REFERENCE_TYPES:
                head = BranchHead(change.new.name, repository_kind=kind)
                result[head] = revision_for(kind, head, change.new.hash)
        return result


class HookProcessor(ABC):
    """Parses one family of event payloads and acts on the registry."""

    @abstractmethod
    def parse(
        self, event_type: HookEventType, body: str, kind: InstanceKind
    ) -> PushEvent | PullRequestEvent:
        """Validate and normalize a payload.

        Raises:
            WebhookRejectedError: If the payload is malformed
        """
        pass

    @abstractmethod
    async def apply(
        self, event: PushEvent | PullRequestEvent, registry: "SourceRegistry"
    ) -> None:
        """Act on a normalized event."""
        pass

    @staticmethod
    def _reject(event_type: HookEventType, error: ValidationError) -> WebhookRejectedError:
        return WebhookRejectedError(
            f"Malformed {event_type.value} payload",
            details={"errors": error.errors(include_url=False)},
        )


class PushHookProcessor(HookProcessor):
    """Push events become head deltas, or a reindex when they list no change."""

    def parse(
        self, event_type: HookEventType, body: str, kind: InstanceKind
    ) -> PushEvent:
        try:
            if kind == InstanceKind.SERVER:
                server = ServerPushPayload.model_validate_json(body)
                return PushEvent(
                    kind=kind,
                    repository=server_repository(server.repository),
                    changes=normalize_changes(server.push),
                )
            cloud = CloudPushPayload.model_validate_json(body)
        except ValidationError as e:
            raise self._reject(event_type, e) from e
        return PushEvent(
            kind=kind,
            repository=cloud_repository(cloud.repository),
            changes=normalize_changes(cloud.push),
        )

    async def apply(self, event: PushEvent, registry: "SourceRegistry") -> None:
        repository = event.repository
        if not event.changes:
            logger.info(
                f"Push to {repository.full_name} lists no change, reindexing"
            )
            await registry.reindex(repository.owner_name, repository.repository_name)
            return
        delta = HeadDeltaEvent(infer_event_type(event.changes), event)
        logger.info(f"Received {delta}")
        await registry.fire(delta)


class PullRequestHookProcessor(HookProcessor):
    """Pull request events always trigger a reindex of the repository."""

    def parse(
        self, event_type: HookEventType, body: str, kind: InstanceKind
    ) -> PullRequestEvent:
        try:
            if kind == InstanceKind.SERVER:
                server = ServerPullRequestPayload.model_validate_json(body)
                pull_request = server.pull_request
                return PullRequestEvent(
                    kind=kind,
                    repository=server_repository(pull_request.to_ref.repository),
                    pull_request_id=(
                        str(pull_request.id) if pull_request.id is not None else None
                    ),
                )
            cloud = CloudPullRequestPayload.model_validate_json(body)
        except ValidationError as e:
            raise self._reject(event_type, e) from e
        return PullRequestEvent(
            kind=kind,
            repository=cloud_repository(cloud.repository),
            pull_request_id=(
                str(cloud.pullrequest.id) if cloud.pullrequest.id is not None else None
            ),
        )

    async def apply(self, event: PullRequestEvent, registry: "SourceRegistry") -> None:
        repository = event.repository
        logger.info(
            f"Pull request {event.pull_request_id} event for "
            f"{repository.full_name}, reindexing"
        )
        await registry.reindex(repository.owner_name, repository.repository_name)
