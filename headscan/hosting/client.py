"""Hosting service client contract and the records it returns.

The HTTP/JSON implementation of a concrete hosting service (pagination,
authentication, request shapes) lives outside this package. Discovery code
only depends on :class:`HostingClient`; each instance is bound to one
``owner/repository`` pair on one server.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class HostedBranch:
    """Branch as reported by the hosting service."""

    name: str
    raw_hash: str | None  # Bitbucket Server < 4.x does not report it
    last_modified_millis: int | None = None


@dataclass(frozen=True)
class HostedCommit:
    """Commit details used for freshness queries."""

    hash: str
    date_millis: int


@dataclass(frozen=True)
class PullRequestEndpoint:
    """Source side of a pull request."""

    owner: str
    repository: str
    branch: str
    commit_hash: str | None = None

    @property
    def full_name(self) -> str:
        """Return ``owner/repository``."""
        return f"{self.owner}/{self.repository}"


@dataclass(frozen=True)
class HostedPullRequest:
    """Open pull request as reported by the hosting service."""

    id: str
    title: str | None
    author_login: str | None
    source: PullRequestEndpoint
    destination_branch: str


@dataclass(frozen=True)
class HostedRepository:
    """Repository details."""

    owner: str
    name: str
    scm: str  # 'git' or 'hg'
    is_private: bool
    links: dict[str, list[str]] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        """Return ``owner/name``."""
        return f"{self.owner}/{self.name}"


class HostingClient(ABC):
    """Async client bound to a single repository on a hosting service."""

    @property
    @abstractmethod
    def owner(self) -> str:
        """Owner (user, team or project key) of the bound repository."""
        pass

    @property
    @abstractmethod
    def repository_name(self) -> str:
        """Name of the bound repository."""
        pass

    @abstractmethod
    async def get_branches(self) -> list[HostedBranch]:
        """List branches in hosting-reported order.

        Raises:
            HostingError: On any I/O failure
        """
        pass

    @abstractmethod
    async def get_pull_requests(self) -> list[HostedPullRequest]:
        """List open pull requests targeting the bound repository.

        Raises:
            HostingError: On any I/O failure
        """
        pass

    @abstractmethod
    async def resolve_commit(self, hash: str) -> HostedCommit | None:
        """Look up a commit by hash.

        Returns:
            The commit or None if the hosting service does not know it
        """
        pass

    @abstractmethod
    async def resolve_source_full_hash(self, pull_request: HostedPullRequest) -> str:
        """Resolve the full hash of a pull request's source commit.

        Raises:
            HostingForbiddenError: If the credentials cannot see the source
            HostingError: On any other I/O failure
        """
        pass

    @abstractmethod
    async def check_path_exists(self, ref: str, path: str) -> bool:
        """Check whether ``path`` exists at ``ref`` (branch name or hash)."""
        pass

    @abstractmethod
    async def get_repository(self) -> HostedRepository:
        """Fetch repository details."""
        pass

    async def is_private(self) -> bool:
        """Check whether the bound repository is private."""
        repository = await self.get_repository()
        return repository.is_private

    async def get_default_branch(self) -> str | None:
        """Return the default branch name, if the service reports one."""
        return None


# Builds a client for ``(owner, repository)`` on the source's server.
HostingClientFactory = Callable[[str, str], HostingClient]
