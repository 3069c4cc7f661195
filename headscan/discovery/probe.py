"""Probes and criteria evaluated against a candidate revision."""

import logging

from headscan.hosting import HostingClient, HostingError

from .interfaces import Probe, SourceCriteria
from .listener import ScanListener

logger = logging.getLogger(__name__)

# Returned by last_modified() when the commit cannot be resolved
LAST_MODIFIED_UNKNOWN = 0


class HostingProbe(Probe):
    """Probe answering queries through a hosting client.

    ``ref`` addresses path lookups (a branch name or a hash) and ``hash``
    addresses the commit lookup.
    """

    def __init__(
        self,
        name: str,
        hash: str,
        client: HostingClient,
        listener: ScanListener,
        ref: str | None = None,
    ):
        """Initialize probe.

        Args:
            name: Name of the probed head
            hash: Commit hash of the candidate revision
            client: Client of the repository holding the revision
            listener: Progress log of the scan
            ref: Reference used for path lookups, defaults to ``hash``
        """
        self._name = name
        self.hash = hash
        self.ref = ref or hash
        self.client = client
        self.listener = listener

    @property
    def name(self) -> str:
        return self._name

    async def last_modified(self) -> int:
        try:
            commit = await self.client.resolve_commit(self.hash)
        except HostingError as e:
            logger.debug(f"Commit lookup failed for {self.hash}: {e}")
            commit = None
        if commit is None:
            self.listener.info(
                f"Can not resolve commit by hash [{self.hash}] on repository "
                f"{self.client.owner}/{self.client.repository_name}"
            )
            return LAST_MODIFIED_UNKNOWN
        return commit.date_millis

    async def exists(self, path: str) -> bool:
        return await self.client.check_path_exists(self.ref, path)


class AcceptAllCriteria(SourceCriteria):
    """Matches every candidate."""

    async def is_head(self, probe: Probe, listener: ScanListener) -> bool:
        return True


class PathExistsCriteria(SourceCriteria):
    """Matches candidates that contain a marker file such as ``Jenkinsfile``."""

    def __init__(self, path: str):
        self.path = path

    async def is_head(self, probe: Probe, listener: ScanListener) -> bool:
        if await probe.exists(self.path):
            listener.info(f"'{self.path}' found")
            return True
        listener.info(f"'{self.path}' not found")
        return False


class AllOfCriteria(SourceCriteria):
    """Matches when every nested criteria matches, evaluated in order."""

    def __init__(self, *criteria: SourceCriteria):
        self.criteria = criteria

    async def is_head(self, probe: Probe, listener: ScanListener) -> bool:
        for criteria in self.criteria:
            if not await criteria.is_head(probe, listener):
                return False
        return True
