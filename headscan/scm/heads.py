"""Head value types: branches and pull requests.

Heads compare by concrete type and ``name`` only. The remaining fields
describe the head but do not take part in identity, so a head rebuilt from a
webhook payload equals the one built by a full scan.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

PR_NAME_PREFIX = "PR-"


class RepositoryKind(Enum):
    """Version control system of a hosted repository."""

    GIT = "git"
    MERCURIAL = "hg"

    @classmethod
    def from_string(cls, value: str | None) -> "RepositoryKind | None":
        """Map the hosting service ``scm`` field to a kind.

        Args:
            value: Raw ``scm`` value such as ``git`` or ``hg``

        Returns:
            Matching kind or None if the value is unknown
        """
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized == "mercurial":
            normalized = "hg"
        for kind in cls:
            if kind.value == normalized:
                return kind
        return None


class CheckoutStrategy(Enum):
    """How a pull request is turned into a buildable unit."""

    HEAD = "head"  # the pull request's own tip
    MERGE = "merge"  # synthetic merge with the target branch


@dataclass(frozen=True)
class HeadOrigin:
    """Whether a pull request comes from the scanned repository or a fork."""

    fork_name: str | None = None

    DEFAULT: ClassVar["HeadOrigin"]

    @classmethod
    def fork(cls, name: str) -> "HeadOrigin":
        """Create a fork origin keyed by ``owner`` or ``owner/repository``."""
        return cls(fork_name=name)

    @property
    def is_default(self) -> bool:
        return self.fork_name is None

    def __str__(self) -> str:
        return "default" if self.fork_name is None else f"fork:{self.fork_name}"


HeadOrigin.DEFAULT = HeadOrigin()


@dataclass(frozen=True)
class Head:
    """A named, buildable line of development."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class BranchHead(Head):
    """A branch of the scanned repository."""

    repository_kind: RepositoryKind | None = field(default=None, compare=False)

    @property
    def branch_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class PullRequestHead(Head):
    """One checkout strategy of one pull request."""

    id: str = field(compare=False)
    source_owner: str = field(compare=False)
    source_repository: str = field(compare=False)
    source_branch_name: str = field(compare=False)
    target: BranchHead = field(compare=False)
    checkout_strategy: CheckoutStrategy = field(
        default=CheckoutStrategy.HEAD, compare=False
    )
    origin: HeadOrigin = field(default=HeadOrigin.DEFAULT, compare=False)

    @property
    def repository_kind(self) -> RepositoryKind | None:
        """Kind shared with the target branch."""
        return self.target.repository_kind

    @property
    def origin_name(self) -> str:
        return self.source_branch_name

    @property
    def is_fork(self) -> bool:
        return not self.origin.is_default


def pull_request_name(
    pull_request_id: str, strategy: CheckoutStrategy, multiple_strategies: bool
) -> str:
    """Build the display name of a pull request head.

    Args:
        pull_request_id: Hosting service identifier of the pull request
        strategy: Checkout strategy of this head
        multiple_strategies: True if more than one strategy is requested for
            the pull request's origin classification

    Returns:
        ``PR-<id>`` or ``PR-<id>-<strategy>``
    """
    name = f"{PR_NAME_PREFIX}{pull_request_id}"
    if multiple_strategies:
        name = f"{name}-{strategy.value}"
    return name
