"""Abstract base classes and interfaces for head discovery.

This module defines the contracts shared by the scan loop, the trait pipeline
and the consuming system: the observer that receives discovered heads, the
criteria evaluated against a probe, and the trust and filter policies that
traits register on a discovery context.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from headscan.scm import Head, Revision

if TYPE_CHECKING:
    from .listener import ScanListener
    from .request import DiscoveryRequest


class ScanStatus(Enum):
    """Scan-level result, mirrored from the failure kind."""

    SUCCESS = "success"
    FAILURE = "failure"  # hosting I/O failure
    ABORTED = "aborted"  # interrupted or cancelled
    NOT_BUILT = "not_built"  # unexpected error


@dataclass
class ScanOutcome:
    """Result of one scan of one source."""

    status: ScanStatus
    observed: dict[Head, Revision] = field(default_factory=dict)
    error: BaseException | None = None
    log: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == ScanStatus.SUCCESS


class HeadObserver(ABC):
    """Sink that receives the outcome of every evaluated candidate."""

    @abstractmethod
    def observe(self, head: Head, revision: Revision) -> None:
        """Accept a head that met the criteria.

        Args:
            head: Matching head
            revision: Its current revision
        """
        pass

    def record(self, head: Head, revision: Revision, matched: bool) -> None:
        """Record a candidate; only matching candidates are observed."""
        if matched:
            self.observe(head, revision)

    @property
    def is_complete(self) -> bool:
        """True once the observer needs no further candidates."""
        return False

    @property
    def includes(self) -> frozenset[Head] | None:
        """Heads this observer is restricted to, or None for all heads."""
        return None


class Probe(ABC):
    """Revision-scoped query surface used by criteria."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the probed head."""
        pass

    @abstractmethod
    async def last_modified(self) -> int:
        """Commit time in epoch milliseconds, or the unknown sentinel."""
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check whether a path exists at the probed revision."""
        pass


class SourceCriteria(ABC):
    """Predicate deciding whether a head is interesting."""

    @abstractmethod
    async def is_head(self, probe: Probe, listener: "ScanListener") -> bool:
        """Evaluate the criteria against a probe.

        Args:
            probe: Probe bound to the candidate revision
            listener: Progress log of the scan

        Returns:
            True if the candidate matches
        """
        pass


class HeadAuthority(ABC):
    """Trust policy registered by a trait."""

    @abstractmethod
    def is_trusted(self, request: "DiscoveryRequest", head: Head) -> bool:
        """Return True if this authority vouches for the head."""
        pass


class HeadPrefilter(ABC):
    """Name-based filter applied before any network call for a candidate."""

    @abstractmethod
    def is_excluded(self, request: "DiscoveryRequest", head: Head) -> bool:
        """Return True if the head must not be considered."""
        pass
