"""Webhook event types, payload models and normalized events.

Payloads are validated with pydantic models shaped after the JSON the cloud
service and the self-hosted server send, then normalized into
:class:`PushEvent` or :class:`PullRequestEvent` so the rest of the package
does not care which flavour of server sent them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InstanceKind(Enum):
    """Flavour of the hosting service that sent an event."""

    CLOUD = "cloud"
    SERVER = "server"

    @classmethod
    def from_header(cls, value: str | None) -> "InstanceKind | None":
        """Map the instance kind header, absent meaning cloud.

        Returns:
            Matching kind or None if the value is unknown
        """
        if value is None or value.strip() == "":
            return cls.CLOUD
        normalized = value.strip().lower()
        for kind in cls:
            if kind.value == normalized:
                return kind
        return None


class HookEventType(Enum):
    """Event keys sent by the hosting service."""

    # Cloud
    PUSH = "repo:push"
    PULL_REQUEST_CREATED = "pullrequest:created"
    PULL_REQUEST_UPDATED = "pullrequest:updated"
    PULL_REQUEST_MERGED = "pullrequest:fulfilled"
    PULL_REQUEST_DECLINED = "pullrequest:rejected"
    # Server
    SERVER_REFS_CHANGED = "repo:refs_changed"
    SERVER_PULL_REQUEST_OPENED = "pr:opened"
    SERVER_PULL_REQUEST_FROM_REF_UPDATED = "pr:from_ref_updated"
    SERVER_PULL_REQUEST_MERGED = "pr:merged"
    SERVER_PULL_REQUEST_DECLINED = "pr:declined"

    @classmethod
    def from_key(cls, key: str) -> "HookEventType | None":
        for event_type in cls:
            if event_type.value == key:
                return event_type
        return None

    @property
    def is_push(self) -> bool:
        return self in (HookEventType.PUSH, HookEventType.SERVER_REFS_CHANGED)


# Payload models


class PayloadModel(BaseModel):
    """Base payload model; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TargetPayload(PayloadModel):
    hash: str | None = None


class ReferencePayload(PayloadModel):
    name: str
    type: str = "branch"
    target: TargetPayload | None = None


class ChangePayload(PayloadModel):
    old: ReferencePayload | None = None
    new: ReferencePayload | None = None
    created: bool = False
    closed: bool = False


class PushPayload(PayloadModel):
    changes: list[ChangePayload] = Field(default_factory=list)


class CloudOwnerPayload(PayloadModel):
    username: str | None = None
    nickname: str | None = None


class CloudRepositoryPayload(PayloadModel):
    scm: str = "git"
    full_name: str
    name: str | None = None
    owner: CloudOwnerPayload | None = None
    is_private: bool = False
    links: dict[str, Any] = Field(default_factory=dict)


class ServerProjectPayload(PayloadModel):
    key: str


class ServerRepositoryPayload(PayloadModel):
    scm_id: str = Field(default="git", alias="scmId")
    slug: str
    project: ServerProjectPayload
    public: bool = False
    links: dict[str, Any] = Field(default_factory=dict)


class CloudPushPayload(PayloadModel):
    push: PushPayload = Field(default_factory=PushPayload)
    repository: CloudRepositoryPayload


class ServerPushPayload(PayloadModel):
    push: PushPayload = Field(default_factory=PushPayload)
    repository: ServerRepositoryPayload


class CloudPullRequestBody(PayloadModel):
    id: int | str | None = None


class CloudPullRequestPayload(PayloadModel):
    pullrequest: CloudPullRequestBody = Field(default_factory=CloudPullRequestBody)
    repository: CloudRepositoryPayload


class ServerRefPayload(PayloadModel):
    repository: ServerRepositoryPayload


class ServerPullRequestBody(PayloadModel):
    id: int | str | None = None
    to_ref: ServerRefPayload = Field(alias="toRef")


class ServerPullRequestPayload(PayloadModel):
    pull_request: ServerPullRequestBody = Field(alias="pullRequest")


# Normalized events


@dataclass(frozen=True)
class Reference:
    """A branch reference of a push change."""

    name: str
    type: str
    hash: str | None


@dataclass(frozen=True)
class Change:
    """One changed reference of a push."""

    old: Reference | None
    new: Reference | None
    created: bool = False
    closed: bool = False


@dataclass(frozen=True)
class EventRepository:
    """Repository an event refers to."""

    owner_name: str
    repository_name: str
    scm: str
    links: dict[str, list[str]] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.owner_name}/{self.repository_name}"


@dataclass(frozen=True)
class PushEvent:
    """Normalized push event."""

    kind: InstanceKind
    repository: EventRepository
    changes: list[Change] = field(default_factory=list)


@dataclass(frozen=True)
class PullRequestEvent:
    """Normalized pull request event."""

    kind: InstanceKind
    repository: EventRepository
    pull_request_id: str | None = None


def _cloud_links(links: dict[str, Any]) -> dict[str, list[str]]:
    normalized: dict[str, list[str]] = {}
    for name, link in links.items():
        if isinstance(link, dict) and "href" in link:
            normalized[name] = [link["href"]]
    return normalized


def _server_links(links: dict[str, Any]) -> dict[str, list[str]]:
    normalized: dict[str, list[str]] = {}
    for name, entries in links.items():
        if isinstance(entries, list):
            normalized[name] = [
                entry["href"]
                for entry in entries
                if isinstance(entry, dict) and "href" in entry
            ]
    return normalized


def cloud_repository(payload: CloudRepositoryPayload) -> EventRepository:
    owner, _, name = payload.full_name.partition("/")
    if not name:
        name = payload.name or ""
    return EventRepository(
        owner_name=owner,
        repository_name=name,
        scm=payload.scm,
        links=_cloud_links(payload.links),
    )


def server_repository(payload: ServerRepositoryPayload) -> EventRepository:
    return EventRepository(
        owner_name=payload.project.key,
        repository_name=payload.slug,
        scm=payload.scm_id,
        links=_server_links(payload.links),
    )


def _reference(payload: ReferencePayload | None) -> Reference | None:
    if payload is None:
        return None
    return Reference(
        name=payload.name,
        type=payload.type,
        hash=payload.target.hash if payload.target else None,
    )


def normalize_changes(push: PushPayload) -> list[Change]:
    return [
        Change(
            old=_reference(change.old),
            new=_reference(change.new),
            created=change.created,
            closed=change.closed,
        )
        for change in push.changes
    ]
