"""Traits: composable policies that decorate a discovery context or a checkout.

A trait has two halves. :meth:`SourceTrait.decorate_context` only adds
requirements to a :class:`DiscoveryContext`, so the set of traits can be
applied in any order. :meth:`SourceTrait.decorate_builder` edits the outbound
:class:`CheckoutBuilder` and runs in list order, later traits overriding
earlier ones.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from headscan.config.models import (
    ForkTrust,
    TraitConfig,
    TraitKind,
    WebhookRegistration,
)
from headscan.scm import BranchHead, CheckoutStrategy, Head, PullRequestHead, Revision

from .context import DiscoveryContext
from .interfaces import HeadAuthority, HeadPrefilter

if TYPE_CHECKING:
    from .request import DiscoveryRequest

logger = logging.getLogger(__name__)


@dataclass
class CheckoutBuilder:
    """Outbound checkout configuration handed to external checkout tooling."""

    head: Head
    revision: Revision | None
    remote: str
    credentials_id: str | None = None
    refspecs: list[str] = field(default_factory=list)
    browser_url: str | None = None


class SourceTrait:
    """Base trait; both halves default to no-ops."""

    def decorate_context(self, context: DiscoveryContext) -> None:
        """Add requirements to a discovery context."""
        pass

    def decorate_builder(self, builder: CheckoutBuilder) -> None:
        """Adjust an outbound checkout configuration."""
        pass


class TraitPipeline:
    """Ordered list of traits."""

    def __init__(self, traits: Iterable[SourceTrait] = ()):
        self.traits = list(traits)

    def decorate_context(self, context: DiscoveryContext) -> DiscoveryContext:
        return context.with_traits(self.traits)

    def decorate_builder(self, builder: CheckoutBuilder) -> CheckoutBuilder:
        for trait in self.traits:
            trait.decorate_builder(builder)
        return builder


# Authorities


class BranchHeadAuthority(HeadAuthority):
    """Branches of the scanned repository are always trusted."""

    def is_trusted(self, request: "DiscoveryRequest", head: Head) -> bool:
        return isinstance(head, BranchHead)


class OriginPullRequestAuthority(HeadAuthority):
    """Pull requests from the scanned repository itself are trusted."""

    def is_trusted(self, request: "DiscoveryRequest", head: Head) -> bool:
        return isinstance(head, PullRequestHead) and not head.is_fork


class TrustEveryone(HeadAuthority):
    """Every fork pull request is trusted."""

    def is_trusted(self, request: "DiscoveryRequest", head: Head) -> bool:
        return isinstance(head, PullRequestHead) and head.is_fork


class TrustTeamForks(HeadAuthority):
    """Forks owned by the scanned repository's owner are trusted."""

    def is_trusted(self, request: "DiscoveryRequest", head: Head) -> bool:
        return (
            isinstance(head, PullRequestHead)
            and head.is_fork
            and head.source_owner.lower() == request.source.repo_owner.lower()
        )


class TrustNobody(HeadAuthority):
    """No fork pull request is trusted."""

    def is_trusted(self, request: "DiscoveryRequest", head: Head) -> bool:
        return False


_FORK_AUTHORITIES: dict[ForkTrust, type[HeadAuthority]] = {
    ForkTrust.EVERYONE: TrustEveryone,
    ForkTrust.TEAM_FORKS: TrustTeamForks,
    ForkTrust.NOBODY: TrustNobody,
}


# Prefilters


def wildcard_pattern(wildcards: str) -> re.Pattern[str]:
    """Compile space separated ``*`` wildcards into one anchored pattern."""
    parts = [
        re.escape(wildcard).replace(r"\*", ".*")
        for wildcard in wildcards.split(" ")
        if wildcard
    ]
    return re.compile("|".join(parts) if parts else "(?!)")


class WildcardHeadFilter(HeadPrefilter):
    """Include/exclude heads by branch name wildcards.

    Pull requests are filtered on their source branch name.
    """

    def __init__(self, includes: str = "*", excludes: str = ""):
        self.includes = includes
        self.excludes = excludes
        self._includes = wildcard_pattern(includes)
        self._excludes = wildcard_pattern(excludes)

    def is_excluded(self, request: "DiscoveryRequest", head: Head) -> bool:
        if isinstance(head, PullRequestHead):
            name = head.source_branch_name
        else:
            name = head.name
        return not self._includes.fullmatch(name) or bool(
            self._excludes.fullmatch(name)
        )


# Discovery traits


class BranchDiscoveryTrait(SourceTrait):
    """Discover the repository's branches."""

    def decorate_context(self, context: DiscoveryContext) -> None:
        context.want_branches(True)
        context.with_authority(BranchHeadAuthority())


class OriginPullRequestDiscoveryTrait(SourceTrait):
    """Discover pull requests whose source is the repository itself."""

    def __init__(self, strategies: Iterable[CheckoutStrategy] = (CheckoutStrategy.HEAD,)):
        self.strategies = frozenset(strategies)

    def decorate_context(self, context: DiscoveryContext) -> None:
        context.want_origin_prs(True)
        context.with_origin_pr_strategies(self.strategies)
        context.with_authority(OriginPullRequestAuthority())


class ForkPullRequestDiscoveryTrait(SourceTrait):
    """Discover pull requests from forks, trusted per ``trust``."""

    def __init__(
        self,
        strategies: Iterable[CheckoutStrategy] = (CheckoutStrategy.HEAD,),
        trust: ForkTrust = ForkTrust.TEAM_FORKS,
    ):
        self.strategies = frozenset(strategies)
        self.trust = trust

    def decorate_context(self, context: DiscoveryContext) -> None:
        context.want_fork_prs(True)
        context.with_fork_pr_strategies(self.strategies)
        context.with_authority(_FORK_AUTHORITIES[self.trust]())


class TagDiscoveryTrait(SourceTrait):
    """Declare interest in tags."""

    def decorate_context(self, context: DiscoveryContext) -> None:
        context.want_tags(True)


class PublicRepoPullRequestFilterTrait(SourceTrait):
    """Skip pull requests entirely when the repository is public."""

    def decorate_context(self, context: DiscoveryContext) -> None:
        context.skip_public_prs(True)


class WildcardHeadFilterTrait(SourceTrait):
    """Filter heads by include/exclude wildcards."""

    def __init__(self, includes: str = "*", excludes: str = ""):
        self.includes = includes
        self.excludes = excludes

    def decorate_context(self, context: DiscoveryContext) -> None:
        context.with_prefilter(WildcardHeadFilter(self.includes, self.excludes))


class WebhookRegistrationTrait(SourceTrait):
    """Choose who registers the hosting webhook."""

    def __init__(self, mode: WebhookRegistration):
        self.mode = mode

    def decorate_context(self, context: DiscoveryContext) -> None:
        context.webhook_registration(self.mode)


class DisableNotificationsTrait(SourceTrait):
    """Turn off build status notifications."""

    def decorate_context(self, context: DiscoveryContext) -> None:
        context.with_notifications_disabled(True)


# Builder traits


class CheckoutCredentialsTrait(SourceTrait):
    """Use dedicated credentials for checkouts."""

    def __init__(self, credentials_id: str | None):
        self.credentials_id = credentials_id

    def decorate_builder(self, builder: CheckoutBuilder) -> None:
        builder.credentials_id = self.credentials_id


class RefSpecsTrait(SourceTrait):
    """Fetch additional refspecs on checkout."""

    def __init__(self, refspecs: Iterable[str]):
        self.refspecs = list(refspecs)

    def decorate_builder(self, builder: CheckoutBuilder) -> None:
        for refspec in self.refspecs:
            if refspec not in builder.refspecs:
                builder.refspecs.append(refspec)


def build_trait(config: TraitConfig) -> SourceTrait:
    """Create a trait from its configuration."""
    if config.kind == TraitKind.BRANCH_DISCOVERY:
        return BranchDiscoveryTrait()
    if config.kind == TraitKind.ORIGIN_PR_DISCOVERY:
        return OriginPullRequestDiscoveryTrait(config.strategies)
    if config.kind == TraitKind.FORK_PR_DISCOVERY:
        return ForkPullRequestDiscoveryTrait(config.strategies, config.trust)
    if config.kind == TraitKind.TAG_DISCOVERY:
        return TagDiscoveryTrait()
    if config.kind == TraitKind.PUBLIC_REPO_PR_FILTER:
        return PublicRepoPullRequestFilterTrait()
    if config.kind == TraitKind.WILDCARD_FILTER:
        return WildcardHeadFilterTrait(config.includes, config.excludes)
    if config.kind == TraitKind.WEBHOOK_REGISTRATION:
        return WebhookRegistrationTrait(config.mode)
    if config.kind == TraitKind.DISABLE_NOTIFICATIONS:
        return DisableNotificationsTrait()
    if config.kind == TraitKind.CHECKOUT_CREDENTIALS:
        return CheckoutCredentialsTrait(config.credentials_id)
    if config.kind == TraitKind.REFSPECS:
        return RefSpecsTrait(config.refspecs)
    raise ValueError(f"Unsupported trait kind: {config.kind}")


def build_traits(configs: Iterable[TraitConfig]) -> list[SourceTrait]:
    """Create traits in configuration order."""
    traits = [build_trait(config) for config in configs]
    logger.debug(f"Built {len(traits)} traits")
    return traits
