"""Discovery errors and skip records."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class DiscoveryError:
    """Candidate skipped during a scan without failing the scan."""

    error_type: str
    message: str
    context: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    recoverable: bool = True


class ScanInterruptedError(Exception):
    """Raised between candidates when a scan was asked to stop."""

    def __init__(self, message: str = "Scan interrupted"):
        super().__init__(message)


class RequestClosedError(RuntimeError):
    """Raised when a closed discovery request is asked for data."""

    pass


class ContextFrozenError(RuntimeError):
    """Raised when a discovery context is changed after a request was built."""

    pass
