"""Head and revision model."""

from .heads import (
    PR_NAME_PREFIX,
    BranchHead,
    CheckoutStrategy,
    Head,
    HeadOrigin,
    PullRequestHead,
    RepositoryKind,
    pull_request_name,
)
from .revisions import (
    GitRevision,
    MercurialRevision,
    PullRequestRevision,
    Revision,
    revision_for,
)

__all__ = [
    "PR_NAME_PREFIX",
    "BranchHead",
    "CheckoutStrategy",
    "GitRevision",
    "Head",
    "HeadOrigin",
    "MercurialRevision",
    "PullRequestHead",
    "PullRequestRevision",
    "RepositoryKind",
    "Revision",
    "pull_request_name",
    "revision_for",
]
