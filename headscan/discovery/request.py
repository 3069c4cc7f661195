"""Discovery request: the scan control loop for one repository.

A request is built by :meth:`DiscoveryContext.new_request` and lives for a
single scan. It fetches the branch and pull request lists at most once, turns
each candidate into a head, resolves its revision, probes it against the
criteria and reports the outcome to the observer. The observer may ask for the
scan to stop; that signal is only checked between candidates.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from headscan.hosting import (
    HostedBranch,
    HostedPullRequest,
    HostingClient,
    HostingForbiddenError,
)
from headscan.scm import (
    BranchHead,
    CheckoutStrategy,
    Head,
    PullRequestHead,
    PullRequestRevision,
    RepositoryKind,
    Revision,
    pull_request_name,
    revision_for,
)

from .context import DiscoverySettings
from .exceptions import DiscoveryError, ScanInterruptedError
from .interfaces import HeadObserver, Probe, SourceCriteria
from .lazy import Lazy
from .listener import ScanListener
from .metadata_cache import PullRequestMetadata
from .probe import HostingProbe

if TYPE_CHECKING:
    from .source import HostedSource

logger = logging.getLogger(__name__)

RevisionFactory = Callable[[Head], Awaitable[Revision | None]]
ProbeFactory = Callable[[Head, Revision], Probe]


class DiscoveryRequest:
    """One scan of one repository."""

    def __init__(
        self,
        source: "HostedSource",
        settings: DiscoverySettings,
        criteria: SourceCriteria | None,
        observer: HeadObserver,
        listener: ScanListener | None = None,
        interrupt: asyncio.Event | None = None,
    ):
        """Initialize request.

        Args:
            source: Repository being scanned
            settings: Frozen requirements of the discovery context
            criteria: Predicate for candidates, None to match every head
            observer: Sink receiving the candidates
            listener: Progress log of the scan
            interrupt: Event that asks the scan to stop between candidates
        """
        self.source = source
        self.settings = settings
        self.criteria = criteria
        self.observer = observer
        self.listener = listener or ScanListener(name=source.full_name)
        self._interrupt = interrupt or asyncio.Event()
        self._branches: Lazy[list[HostedBranch]] = Lazy(
            self._fetch_branches, "branches"
        )
        self._pull_requests: Lazy[list[HostedPullRequest]] = Lazy(
            self._fetch_pull_requests, "pull requests"
        )
        self._source_hashes: dict[str, str | None] = {}
        self.skipped: list[DiscoveryError] = []
        self.seen_pull_request_ids: set[str] = set()
        self._closed = False

    # Requirements

    @property
    def wants_branches(self) -> bool:
        return self.settings.want_branches

    @property
    def wants_tags(self) -> bool:
        return self.settings.want_tags

    @property
    def wants_origin_prs(self) -> bool:
        return self.settings.want_origin_prs

    @property
    def wants_fork_prs(self) -> bool:
        return self.settings.want_fork_prs

    @property
    def wants_prs(self) -> bool:
        return self.settings.want_prs

    @property
    def is_complete(self) -> bool:
        return self.observer.is_complete

    def is_trusted(self, head: Head) -> bool:
        """Check whether any configured authority trusts the head."""
        return any(
            authority.is_trusted(self, head) for authority in self.settings.authorities
        )

    def is_excluded(self, head: Head) -> bool:
        """Check the observer restriction and the configured prefilters."""
        includes = self.observer.includes
        if includes is not None and head not in includes:
            return True
        return any(
            prefilter.is_excluded(self, head) for prefilter in self.settings.prefilters
        )

    # Interruption

    def interrupt(self) -> None:
        """Ask the scan to stop before the next candidate."""
        self._interrupt.set()

    def check_interrupt(self) -> None:
        """Raise if the scan was asked to stop.

        Raises:
            ScanInterruptedError: If :meth:`interrupt` was called
        """
        if self._interrupt.is_set():
            raise ScanInterruptedError(f"Scan of {self.source.full_name} interrupted")

    # Lazy sequences

    async def _fetch_branches(self) -> list[HostedBranch]:
        branches = await self.source.client.get_branches()
        logger.debug(f"Fetched {len(branches)} branches of {self.source.full_name}")
        return branches

    async def _fetch_pull_requests(self) -> list[HostedPullRequest]:
        pull_requests = await self.source.client.get_pull_requests()
        logger.debug(
            f"Fetched {len(pull_requests)} pull requests of {self.source.full_name}"
        )
        return pull_requests

    async def branches(self) -> list[HostedBranch]:
        """Branches of the repository, fetched on first use."""
        return await self._branches.get()

    async def pull_requests(self) -> list[HostedPullRequest]:
        """Open pull requests of the repository, fetched on first use."""
        return await self._pull_requests.get()

    # Candidate processing

    async def process(
        self,
        head: Head,
        revision_factory: RevisionFactory,
        probe_factory: ProbeFactory,
    ) -> bool:
        """Evaluate one candidate head.

        Args:
            head: Candidate head
            revision_factory: Resolves the head's revision, None to skip it
            probe_factory: Builds the probe for the resolved revision

        Returns:
            True if the observer needs no further candidates
        """
        if self.is_excluded(head):
            logger.debug(f"Head {head} of {self.source.full_name} excluded")
            return self.observer.is_complete
        revision = await revision_factory(head)
        if revision is None:
            return self.observer.is_complete
        if self.criteria is None:
            matched = True
        else:
            probe = probe_factory(head, revision)
            matched = await self.criteria.is_head(probe, self.listener)
        if matched:
            self.listener.info(f"Met criteria: {head} ({revision})")
        else:
            self.listener.info(f"Does not meet criteria: {head}")
        self.observer.record(head, revision, matched)
        return self.observer.is_complete

    def _skip(self, error_type: str, message: str, **context: object) -> None:
        self.listener.warning(message)
        self.skipped.append(
            DiscoveryError(
                error_type=error_type,
                message=message,
                context={"repository": self.source.full_name, **context},
                recoverable=True,
            )
        )

    # Scan

    async def run(self) -> None:
        """Run the scan phases in order until the observer is complete.

        Raises:
            HostingError: On any hosting failure other than a forbidden pull
                request source
            ScanInterruptedError: If the scan was interrupted
        """
        kind = await self.source.repository_kind()
        if self.wants_branches and not self.observer.is_complete:
            if await self._retrieve_branches(kind):
                return
        if self.wants_prs and not self.observer.is_complete:
            if await self._retrieve_pull_requests(kind):
                return
        if self.wants_tags and not self.observer.is_complete:
            await self._retrieve_tags(kind)

    async def _retrieve_branches(self, kind: RepositoryKind) -> bool:
        self.listener.info(f"Looking up {self.source.full_name} for branches")
        count = 0
        for branch in await self.branches():
            self.check_interrupt()
            count += 1
            head = BranchHead(branch.name, repository_kind=kind)
            self.listener.info(f"Checking branch {branch.name} from {self.source.full_name}")
            if await self.process(
                head,
                self._branch_revision_factory(branch, kind),
                self._branch_probe_factory(branch),
            ):
                self.listener.info(f"{count} branches were processed (query completed)")
                return True
        self.listener.info(f"{count} branches were processed")
        return False

    def _branch_revision_factory(
        self, branch: HostedBranch, kind: RepositoryKind
    ) -> RevisionFactory:
        async def factory(head: Head) -> Revision | None:
            if branch.raw_hash is None:
                if self.source.is_cloud:
                    message = f"Cannot determine the hash of branch {branch.name}, skipping"
                else:
                    message = (
                        f"Cannot determine the hash of branch {branch.name}: "
                        "Bitbucket Server versions older than 4.x do not report it, skipping"
                    )
                self._skip("missing_hash", message, branch=branch.name)
                return None
            return revision_for(kind, head, branch.raw_hash)

        return factory

    def _branch_probe_factory(self, branch: HostedBranch) -> ProbeFactory:
        def factory(head: Head, revision: Revision) -> Probe:
            return HostingProbe(
                head.name,
                str(revision),
                self.source.client,
                self.listener,
                ref=branch.name,
            )

        return factory

    async def _retrieve_pull_requests(self, kind: RepositoryKind) -> bool:
        if self.settings.skip_public_prs and not await self.source.client.is_private():
            self.listener.info(
                f"Skipping pull requests for public repository {self.source.full_name}"
            )
            await self._prune_metadata()
            return False

        self.listener.info(f"Looking up {self.source.full_name} for pull requests")
        origin_name = self.source.full_name.lower()
        count = 0
        for pull_request in await self.pull_requests():
            self.check_interrupt()
            fork = pull_request.source.full_name.lower() != origin_name
            if fork and not self.wants_fork_prs:
                continue
            if not fork and not self.wants_origin_prs:
                continue
            count += 1
            self.listener.info(
                f"Checking PR-{pull_request.id} from {pull_request.source.full_name} "
                f"and branch {pull_request.source.branch}"
            )
            requested = (
                self.settings.fork_pr_strategies
                if fork
                else self.settings.origin_pr_strategies
            )
            strategies = [strategy for strategy in CheckoutStrategy if strategy in requested]
            for strategy in strategies:
                head = self._pull_request_head(
                    pull_request, kind, strategy, len(strategies) > 1
                )
                if await self.process(
                    head,
                    self._pull_request_revision_factory(pull_request, kind),
                    self._pull_request_probe_factory(pull_request, fork),
                ):
                    self.listener.info(
                        f"{count} pull requests were processed (query completed)"
                    )
                    return True

        self.listener.info(f"{count} pull requests were processed")
        await self._prune_metadata()
        return False

    async def _prune_metadata(self) -> None:
        # Targeted scans see a subset of pull requests and must not prune
        if self.observer.includes is not None:
            return
        removed = await self.source.metadata_cache.retain(self.seen_pull_request_ids)
        logger.debug(
            f"Pruned {removed} pull request metadata entries of {self.source.full_name}"
        )

    def _pull_request_head(
        self,
        pull_request: HostedPullRequest,
        kind: RepositoryKind,
        strategy: CheckoutStrategy,
        multiple_strategies: bool,
    ) -> PullRequestHead:
        return PullRequestHead(
            name=pull_request_name(pull_request.id, strategy, multiple_strategies),
            id=pull_request.id,
            source_owner=pull_request.source.owner,
            source_repository=pull_request.source.repository,
            source_branch_name=pull_request.source.branch,
            target=BranchHead(pull_request.destination_branch, repository_kind=kind),
            checkout_strategy=strategy,
            origin=self.source.origin_of(
                pull_request.source.owner, pull_request.source.repository
            ),
        )

    async def _resolve_source_hash(self, pull_request: HostedPullRequest) -> str | None:
        """Resolve a pull request's source hash once per request.

        A forbidden source is recorded as a skip and cached as None so every
        strategy of that pull request is skipped.
        """
        if pull_request.id in self._source_hashes:
            return self._source_hashes[pull_request.id]
        try:
            hash = await self.source.client.resolve_source_full_hash(pull_request)
        except HostingForbiddenError as e:
            self._skip(
                "forbidden",
                f"Skipping PR-{pull_request.id} from {pull_request.source.full_name}: "
                f"the credentials cannot read its source commit ({e})",
                pull_request_id=pull_request.id,
            )
            hash = None
        self._source_hashes[pull_request.id] = hash
        if hash is not None:
            self.seen_pull_request_ids.add(pull_request.id)
            await self.source.metadata_cache.put(
                pull_request.id,
                PullRequestMetadata(pull_request.title, pull_request.author_login),
            )
        return hash

    async def _target_hash(self, branch_name: str) -> str | None:
        for branch in await self.branches():
            if branch.name == branch_name:
                return branch.raw_hash
        return None

    def _pull_request_revision_factory(
        self, pull_request: HostedPullRequest, kind: RepositoryKind
    ) -> RevisionFactory:
        async def factory(head: Head) -> Revision | None:
            assert isinstance(head, PullRequestHead)
            source_hash = await self._resolve_source_hash(pull_request)
            if source_hash is None:
                return None
            target_hash = await self._target_hash(head.target.name)
            if target_hash is None:
                self._skip(
                    "missing_target",
                    f"Target branch {head.target.name} of PR-{pull_request.id} "
                    f"not found in {self.source.full_name}, skipping",
                    pull_request=pull_request.id,
                    branch=head.target.name,
                )
                return None
            return PullRequestRevision(
                head=head,
                target=revision_for(kind, head.target, target_hash),
                pull=revision_for(kind, head, source_hash),
            )

        return factory

    def _pull_request_probe_factory(
        self, pull_request: HostedPullRequest, fork: bool
    ) -> ProbeFactory:
        def factory(head: Head, revision: Revision) -> Probe:
            assert isinstance(revision, PullRequestRevision)
            pull_hash = str(revision.pull)
            client: HostingClient = self.source.client
            ref = pull_request.source.branch
            if fork:
                if self.source.is_cloud:
                    client = self.source.client_factory(
                        pull_request.source.owner, pull_request.source.repository
                    )
                else:
                    # Server exposes fork commits through the target repository
                    ref = pull_hash
            return HostingProbe(head.name, pull_hash, client, self.listener, ref=ref)

        return factory

    async def _retrieve_tags(self, kind: RepositoryKind) -> bool:
        self.listener.info(
            f"Tag discovery is not supported for {self.source.full_name}, skipping tags"
        )
        return False

    # Lifecycle

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the fetched sequences. Safe to call more than once."""
        if self._closed:
            return
        self._branches.close()
        self._pull_requests.close()
        self._source_hashes.clear()
        self._closed = True

    async def __aenter__(self) -> "DiscoveryRequest":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
