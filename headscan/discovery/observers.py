"""Stock head observers."""

from headscan.scm import Head, Revision

from .interfaces import HeadObserver


class CollectingObserver(HeadObserver):
    """Collects observed heads, optionally stopping after ``limit`` matches."""

    def __init__(self, limit: int | None = None):
        self.limit = limit
        self.observed: dict[Head, Revision] = {}
        self.records: list[tuple[Head, Revision, bool]] = []

    def observe(self, head: Head, revision: Revision) -> None:
        self.observed[head] = revision

    def record(self, head: Head, revision: Revision, matched: bool) -> None:
        self.records.append((head, revision, matched))
        super().record(head, revision, matched)

    @property
    def is_complete(self) -> bool:
        return self.limit is not None and len(self.observed) >= self.limit


class NoOpObserver(HeadObserver):
    """Discards everything."""

    def observe(self, head: Head, revision: Revision) -> None:
        pass


class SelectHeadObserver(HeadObserver):
    """Looks for a single head and completes once it has been seen."""

    def __init__(self, head: Head):
        self.head = head
        self.revision: Revision | None = None

    def observe(self, head: Head, revision: Revision) -> None:
        if head == self.head:
            self.revision = revision

    @property
    def is_complete(self) -> bool:
        return self.revision is not None

    @property
    def includes(self) -> frozenset[Head] | None:
        return frozenset({self.head})
