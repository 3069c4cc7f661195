"""Hosted source: scans, point lookups and trust for one repository.

:class:`HostedSource` ties a configured repository to its hosting client and
trait list. It resolves the repository kind once, classifies pull request
origins, runs full scans through :class:`DiscoveryRequest`, and answers
single-head questions outside a scan.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import quote

from headscan.config.models import SourceConfig
from headscan.hosting import (
    HostedBranch,
    HostingClient,
    HostingClientFactory,
    HostingError,
)
from headscan.scm import (
    BranchHead,
    CheckoutStrategy,
    Head,
    HeadOrigin,
    PullRequestHead,
    PullRequestRevision,
    RepositoryKind,
    Revision,
    revision_for,
)

from .context import DiscoveryContext
from .exceptions import DiscoveryError, ScanInterruptedError
from .interfaces import HeadObserver, ScanOutcome, ScanStatus, SourceCriteria
from .listener import ScanListener
from .metadata_cache import PullRequestMetadataCache
from .observers import CollectingObserver, NoOpObserver
from .probe import AcceptAllCriteria
from .traits import CheckoutBuilder, SourceTrait, TraitPipeline, build_traits

logger = logging.getLogger(__name__)

CLOUD_SERVER_URL = "https://bitbucket.org"


def normalize_server_url(server_url: str | None) -> str:
    """Return the server URL without trailing slashes, cloud if unset."""
    if not server_url:
        return CLOUD_SERVER_URL
    return server_url.rstrip("/")


@dataclass(frozen=True)
class HeadMetadata:
    """Display details of a head."""

    display_name: str
    url: str
    title: str | None = None
    contributor: str | None = None


@dataclass(frozen=True)
class RepositoryMetadata:
    """Display details of the scanned repository."""

    url: str
    default_branch: str | None = None


class HostedSource:
    """A repository on a Bitbucket-style server, configured with traits."""

    def __init__(
        self,
        id: str,
        repo_owner: str,
        repository: str,
        client_factory: HostingClientFactory,
        server_url: str | None = None,
        traits: Iterable[SourceTrait] = (),
        metadata_cache: PullRequestMetadataCache | None = None,
        credentials_id: str | None = None,
    ):
        """Initialize source.

        Args:
            id: Unique identifier of the source
            repo_owner: Repository owner (user, team or project key)
            repository: Repository name
            client_factory: Builds a hosting client for ``(owner, repository)``
            server_url: Server URL, None for the cloud service
            traits: Ordered traits configuring discovery and checkout
            metadata_cache: Pull request metadata cache kept across scans
            credentials_id: Default credentials for checkouts
        """
        self.id = id
        self.repo_owner = repo_owner
        self.repository = repository
        self.client_factory = client_factory
        self.server_url = normalize_server_url(server_url)
        self.traits = list(traits)
        self.metadata_cache = metadata_cache or PullRequestMetadataCache()
        self.credentials_id = credentials_id
        self._client: HostingClient | None = None
        self._repository_kind: RepositoryKind | None = None
        self._kind_lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls, config: SourceConfig, client_factory: HostingClientFactory
    ) -> "HostedSource":
        """Create a source from its configuration."""
        return cls(
            id=config.id,
            repo_owner=config.repo_owner,
            repository=config.repository,
            client_factory=client_factory,
            server_url=config.server_url,
            traits=build_traits(config.traits),
            credentials_id=config.credentials_id,
        )

    @property
    def full_name(self) -> str:
        return f"{self.repo_owner}/{self.repository}"

    @property
    def is_cloud(self) -> bool:
        return self.server_url == CLOUD_SERVER_URL

    @property
    def client(self) -> HostingClient:
        """Client bound to the scanned repository."""
        if self._client is None:
            self._client = self.client_factory(self.repo_owner, self.repository)
        return self._client

    async def repository_kind(self) -> RepositoryKind:
        """Resolve the repository kind once and remember it."""
        if self._repository_kind is None:
            async with self._kind_lock:
                if self._repository_kind is None:
                    repository = await self.client.get_repository()
                    kind = RepositoryKind.from_string(repository.scm)
                    if kind is None:
                        logger.warning(
                            f"Unknown scm '{repository.scm}' for {self.full_name}, "
                            "assuming git"
                        )
                        kind = RepositoryKind.GIT
                    self._repository_kind = kind
        return self._repository_kind

    def origin_of(self, owner: str, repository: str) -> HeadOrigin:
        """Classify a pull request source repository.

        Args:
            owner: Owner of the pull request source repository
            repository: Name of the pull request source repository

        Returns:
            DEFAULT for this repository, otherwise a fork keyed by ``owner`` if
            the repository name matches, else by ``owner/repository``
        """
        if (
            owner.lower() == self.repo_owner.lower()
            and repository.lower() == self.repository.lower()
        ):
            return HeadOrigin.DEFAULT
        if repository.lower() == self.repository.lower():
            return HeadOrigin.fork(owner)
        return HeadOrigin.fork(f"{owner}/{repository}")

    def new_context(self, criteria: SourceCriteria | None = None) -> DiscoveryContext:
        """Create a discovery context decorated by this source's traits."""
        return DiscoveryContext(criteria).with_traits(self.traits)

    async def retrieve(
        self,
        observer: HeadObserver,
        criteria: SourceCriteria | None = None,
        listener: ScanListener | None = None,
        interrupt: asyncio.Event | None = None,
    ) -> list[DiscoveryError]:
        """Run a full scan.

        Args:
            observer: Sink receiving the candidates
            criteria: Predicate for candidates, None to match every head
            listener: Progress log of the scan
            interrupt: Event that asks the scan to stop between candidates

        Returns:
            Candidates skipped without failing the scan
        """
        context = self.new_context(criteria)
        async with context.new_request(self, observer, listener, interrupt) as request:
            await request.run()
            return list(request.skipped)

    async def retrieve_head(
        self, head: Head, listener: ScanListener | None = None
    ) -> Revision | None:
        """Resolve the current revision of a known head.

        Returns:
            The revision, or None if the head no longer exists
        """
        listener = listener or ScanListener(name=self.full_name)
        kind = await self.repository_kind()
        if isinstance(head, PullRequestHead):
            return await self._retrieve_pull_request(head, kind, listener)
        if isinstance(head, BranchHead):
            branches = await self.client.get_branches()
            hash = self._find_hash(branches, head.name)
            if hash is None:
                listener.info(f"No branch found for {head.name} in {self.full_name}")
                return None
            return revision_for(kind, head, hash)
        listener.info(f"Unsupported head type {type(head).__name__} for {head}")
        return None

    async def _retrieve_pull_request(
        self, head: PullRequestHead, kind: RepositoryKind, listener: ScanListener
    ) -> PullRequestRevision | None:
        target_hash = self._find_hash(await self.client.get_branches(), head.target.name)
        if target_hash is None:
            listener.info(
                f"No branch found for {head.target.name} in {self.full_name}, "
                f"target of {head}"
            )
            return None
        if head.origin.is_default:
            source_client = self.client
        else:
            source_client = self.client_factory(head.source_owner, head.source_repository)
        source_hash = self._find_hash(
            await source_client.get_branches(), head.source_branch_name
        )
        if source_hash is None:
            listener.info(
                f"No branch found for {head.source_branch_name} in "
                f"{head.source_owner}/{head.source_repository}, source of {head}"
            )
            return None
        return PullRequestRevision(
            head=head,
            target=revision_for(kind, head.target, target_hash),
            pull=revision_for(kind, head, source_hash),
        )

    @staticmethod
    def _find_hash(branches: list[HostedBranch], name: str) -> str | None:
        for branch in branches:
            if branch.name == name:
                return branch.raw_hash
        return None

    async def get_trusted_revision(
        self, revision: Revision, listener: ScanListener | None = None
    ) -> Revision:
        """Return the revision whose files may be trusted.

        Branch revisions are returned unchanged. A pull request revision is
        returned unchanged when its head is trusted by the configured traits;
        otherwise its target revision is returned.
        """
        if not isinstance(revision, PullRequestRevision):
            return revision
        listener = listener or ScanListener(name=self.full_name)
        context = DiscoveryContext(AcceptAllCriteria()).with_traits(self.traits)
        async with context.new_request(self, NoOpObserver(), listener) as request:
            if request.is_trusted(revision.head):
                return revision
        listener.info(
            f"Loading trusted files from base branch {revision.head.target.name} "
            f"at {revision.target} rather than {revision.pull}"
        )
        return revision.target

    # Links and metadata

    def _browse_url(self, head: Head) -> str:
        if self.is_cloud:
            base = f"{self.server_url}/{self.repo_owner}/{self.repository}"
            if isinstance(head, PullRequestHead):
                return f"{base}/pull-requests/{head.id}"
            return f"{base}/branch/{quote(head.name, safe='')}"
        base = f"{self.server_url}/projects/{self.repo_owner}/repos/{self.repository}"
        if isinstance(head, PullRequestHead):
            return f"{base}/pull-requests/{head.id}/overview"
        ref = quote(f"refs/heads/{head.name}", safe="")
        return f"{base}/compare/commits?sourceBranch={ref}"

    async def head_metadata(self, head: Head) -> HeadMetadata:
        """Describe a head for display."""
        url = self._browse_url(head)
        if isinstance(head, PullRequestHead):
            metadata = await self.metadata_cache.get(head.id)
            if metadata is not None:
                return HeadMetadata(
                    display_name=metadata.title or head.name,
                    url=url,
                    title=metadata.title,
                    contributor=metadata.author_login,
                )
        return HeadMetadata(display_name=head.name, url=url)

    async def repository_metadata(self) -> RepositoryMetadata:
        """Describe the repository for display."""
        if self.is_cloud:
            url = f"{self.server_url}/{self.repo_owner}/{self.repository}"
        else:
            url = f"{self.server_url}/projects/{self.repo_owner}/repos/{self.repository}"
        return RepositoryMetadata(
            url=url, default_branch=await self.client.get_default_branch()
        )

    def remote_url(self, owner: str, repository: str) -> str:
        """Clone URL of ``owner/repository`` on this server."""
        if self.is_cloud:
            return f"{self.server_url}/{owner}/{repository}.git"
        return f"{self.server_url}/scm/{owner.lower()}/{repository}.git"

    def build_checkout(
        self, head: Head, revision: Revision | None = None
    ) -> CheckoutBuilder:
        """Build the checkout configuration of a head.

        The traits' builder half runs last, in trait order.
        """
        if isinstance(head, PullRequestHead):
            remote = self.remote_url(head.source_owner, head.source_repository)
            branches = [head.source_branch_name]
            if head.checkout_strategy == CheckoutStrategy.MERGE:
                branches.append(head.target.name)
        else:
            remote = self.remote_url(self.repo_owner, self.repository)
            branches = [head.name]
        builder = CheckoutBuilder(
            head=head,
            revision=revision,
            remote=remote,
            credentials_id=self.credentials_id,
            refspecs=[f"+refs/heads/{b}:refs/remotes/origin/{b}" for b in branches],
            browser_url=self._browse_url(head),
        )
        return TraitPipeline(self.traits).decorate_builder(builder)


async def run_scan(
    source: HostedSource,
    observer: HeadObserver,
    criteria: SourceCriteria | None = None,
    listener: ScanListener | None = None,
    interrupt: asyncio.Event | None = None,
) -> ScanOutcome:
    """Run a full scan and map its failure kind to a scan status.

    The failure is kept as-is on the outcome. Task cancellation is logged and
    re-raised.
    """
    listener = listener or ScanListener(name=source.full_name)
    status = ScanStatus.SUCCESS
    error: BaseException | None = None
    try:
        skipped = await source.retrieve(observer, criteria, listener, interrupt)
        if skipped:
            logger.info(f"Scan of {source.full_name} skipped {len(skipped)} candidates")
    except HostingError as e:
        listener.error(f"Scan of {source.full_name} failed: {e}")
        status, error = ScanStatus.FAILURE, e
    except ScanInterruptedError as e:
        listener.error(f"Scan of {source.full_name} aborted: {e}")
        status, error = ScanStatus.ABORTED, e
    except asyncio.CancelledError:
        listener.error(f"Scan of {source.full_name} cancelled")
        raise
    except Exception as e:
        logger.exception(f"Unexpected error scanning {source.full_name}")
        listener.error(f"Scan of {source.full_name} failed unexpectedly: {e}")
        status, error = ScanStatus.NOT_BUILT, e

    observed = dict(observer.observed) if isinstance(observer, CollectingObserver) else {}
    return ScanOutcome(
        status=status, observed=observed, error=error, log=list(listener.lines)
    )
