"""Revision value types for branch and pull request heads."""

from dataclasses import dataclass

from .heads import CheckoutStrategy, Head, PullRequestHead, RepositoryKind


@dataclass(frozen=True)
class Revision:
    """Concrete snapshot of a head."""

    head: Head


@dataclass(frozen=True)
class GitRevision(Revision):
    """Git commit of a head."""

    hash: str | None

    def __str__(self) -> str:
        return self.hash or ""


@dataclass(frozen=True)
class MercurialRevision(Revision):
    """Mercurial changeset of a head."""

    hash: str | None

    def __str__(self) -> str:
        return self.hash or ""


@dataclass(frozen=True)
class PullRequestRevision(Revision):
    """Pull request snapshot made of its target and source revisions.

    Equality covers the head and both constituent revisions, so a source push
    with an unchanged target is still a change.
    """

    head: PullRequestHead
    target: GitRevision | MercurialRevision
    pull: GitRevision | MercurialRevision

    def __str__(self) -> str:
        if self.head.checkout_strategy == CheckoutStrategy.MERGE:
            return f"{self.pull}+{self.target}"
        return str(self.pull)


def revision_for(
    kind: RepositoryKind, head: Head, hash: str | None
) -> GitRevision | MercurialRevision:
    """Create the revision type matching a repository kind.

    Args:
        kind: Kind already resolved for the repository
        head: Head the revision belongs to
        hash: Commit or changeset hash

    Returns:
        GitRevision or MercurialRevision
    """
    if kind == RepositoryKind.MERCURIAL:
        return MercurialRevision(head=head, hash=hash)
    return GitRevision(head=head, hash=hash)
