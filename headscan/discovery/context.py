"""Discovery context: the union of requirements declared by traits."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from headscan.config.models import WebhookRegistration
from headscan.scm import CheckoutStrategy

from .exceptions import ContextFrozenError
from .interfaces import HeadAuthority, HeadObserver, HeadPrefilter, SourceCriteria

if TYPE_CHECKING:
    import asyncio

    from .listener import ScanListener
    from .request import DiscoveryRequest
    from .source import HostedSource
    from .traits import SourceTrait


@dataclass(frozen=True)
class DiscoverySettings:
    """Snapshot of a context taken when a request is built."""

    want_branches: bool
    want_tags: bool
    want_origin_prs: bool
    want_fork_prs: bool
    skip_public_prs: bool
    origin_pr_strategies: frozenset[CheckoutStrategy]
    fork_pr_strategies: frozenset[CheckoutStrategy]
    webhook_registration: WebhookRegistration
    notifications_disabled: bool
    authorities: tuple[HeadAuthority, ...]
    prefilters: tuple[HeadPrefilter, ...]

    @property
    def want_prs(self) -> bool:
        return self.want_origin_prs or self.want_fork_prs


class DiscoveryContext:
    """Mutable accumulator that traits decorate before a scan.

    The ``want_*`` accumulators only ever turn a requirement on and the
    strategy setters only ever add. When several traits request a webhook
    registration mode the strongest one is kept. So the order in which traits
    decorate a context does not change the result. Once :meth:`new_request`
    has been called the context is frozen.
    """

    def __init__(self, criteria: SourceCriteria | None = None):
        """Initialize context.

        Args:
            criteria: Predicate for the scan, None to match every head
        """
        self.criteria = criteria
        self._want_branches = False
        self._want_tags = False
        self._want_origin_prs = False
        self._want_fork_prs = False
        self._skip_public_prs = False
        self._origin_pr_strategies: set[CheckoutStrategy] = set()
        self._fork_pr_strategies: set[CheckoutStrategy] = set()
        self._webhook_registration: WebhookRegistration | None = None
        self._notifications_disabled = False
        self._authorities: list[HeadAuthority] = []
        self._prefilters: list[HeadPrefilter] = []
        self._frozen = False

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ContextFrozenError(
                "Discovery context cannot change after a request was built"
            )

    # Accumulators

    def want_branches(self, include: bool) -> "DiscoveryContext":
        self._check_mutable()
        self._want_branches = self._want_branches or include
        return self

    def want_tags(self, include: bool) -> "DiscoveryContext":
        self._check_mutable()
        self._want_tags = self._want_tags or include
        return self

    def want_origin_prs(self, include: bool) -> "DiscoveryContext":
        self._check_mutable()
        self._want_origin_prs = self._want_origin_prs or include
        return self

    def want_fork_prs(self, include: bool) -> "DiscoveryContext":
        self._check_mutable()
        self._want_fork_prs = self._want_fork_prs or include
        return self

    def skip_public_prs(self, skip: bool) -> "DiscoveryContext":
        self._check_mutable()
        self._skip_public_prs = self._skip_public_prs or skip
        return self

    def with_origin_pr_strategies(
        self, strategies: Iterable[CheckoutStrategy]
    ) -> "DiscoveryContext":
        self._check_mutable()
        self._origin_pr_strategies.update(strategies)
        return self

    def with_fork_pr_strategies(
        self, strategies: Iterable[CheckoutStrategy]
    ) -> "DiscoveryContext":
        self._check_mutable()
        self._fork_pr_strategies.update(strategies)
        return self

    def webhook_registration(self, mode: WebhookRegistration) -> "DiscoveryContext":
        self._check_mutable()
        current = self._webhook_registration
        if current is None or mode.strength > current.strength:
            self._webhook_registration = mode
        return self

    def with_notifications_disabled(self, disabled: bool) -> "DiscoveryContext":
        self._check_mutable()
        self._notifications_disabled = self._notifications_disabled or disabled
        return self

    def with_authority(self, authority: HeadAuthority) -> "DiscoveryContext":
        self._check_mutable()
        self._authorities.append(authority)
        return self

    def with_prefilter(self, prefilter: HeadPrefilter) -> "DiscoveryContext":
        self._check_mutable()
        self._prefilters.append(prefilter)
        return self

    def with_traits(self, traits: Iterable["SourceTrait"]) -> "DiscoveryContext":
        """Let each trait decorate this context."""
        for trait in traits:
            trait.decorate_context(self)
        return self

    # Readers

    @property
    def wants_branches(self) -> bool:
        return self._want_branches

    @property
    def wants_tags(self) -> bool:
        return self._want_tags

    @property
    def wants_origin_prs(self) -> bool:
        return self._want_origin_prs

    @property
    def wants_fork_prs(self) -> bool:
        return self._want_fork_prs

    @property
    def wants_prs(self) -> bool:
        return self._want_origin_prs or self._want_fork_prs

    @property
    def skips_public_prs(self) -> bool:
        return self._skip_public_prs

    @property
    def origin_pr_strategies(self) -> frozenset[CheckoutStrategy]:
        return frozenset(self._origin_pr_strategies)

    @property
    def fork_pr_strategies(self) -> frozenset[CheckoutStrategy]:
        return frozenset(self._fork_pr_strategies)

    @property
    def registration(self) -> WebhookRegistration:
        return self._webhook_registration or WebhookRegistration.SYSTEM

    @property
    def notifications_disabled(self) -> bool:
        return self._notifications_disabled

    @property
    def frozen(self) -> bool:
        return self._frozen

    def settings(self) -> DiscoverySettings:
        """Snapshot the accumulated requirements."""
        return DiscoverySettings(
            want_branches=self._want_branches,
            want_tags=self._want_tags,
            want_origin_prs=self._want_origin_prs,
            want_fork_prs=self._want_fork_prs,
            skip_public_prs=self._skip_public_prs,
            origin_pr_strategies=frozenset(self._origin_pr_strategies),
            fork_pr_strategies=frozenset(self._fork_pr_strategies),
            webhook_registration=self.registration,
            notifications_disabled=self._notifications_disabled,
            authorities=tuple(self._authorities),
            prefilters=tuple(self._prefilters),
        )

    def new_request(
        self,
        source: "HostedSource",
        observer: HeadObserver,
        listener: "ScanListener | None" = None,
        interrupt: "asyncio.Event | None" = None,
    ) -> "DiscoveryRequest":
        """Build the request for one scan of ``source`` and freeze this context.

        Args:
            source: Repository being scanned
            observer: Sink receiving the candidates
            listener: Progress log, a new one is created if omitted
            interrupt: Event that asks the scan to stop between candidates

        Returns:
            Discovery request bound to the source
        """
        from .request import DiscoveryRequest

        settings = self.settings()
        self._frozen = True
        return DiscoveryRequest(
            source=source,
            settings=settings,
            criteria=self.criteria,
            observer=observer,
            listener=listener,
            interrupt=interrupt,
        )
