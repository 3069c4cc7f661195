"""Per-scan progress log."""

import logging

logger = logging.getLogger(__name__)


class ScanListener:
    """Human-readable progress log of one scan.

    Lines are kept in memory for the consumer and mirrored to the standard
    logging hierarchy.
    """

    def __init__(self, name: str = "scan", log: logging.Logger | None = None):
        """Initialize listener.

        Args:
            name: Label prefixed to mirrored log records
            log: Logger to mirror lines to
        """
        self.name = name
        self.lines: list[str] = []
        self._log = log or logger

    def info(self, message: str) -> None:
        """Append an informational line."""
        self.lines.append(message)
        self._log.info(f"[{self.name}] {message}")

    def warning(self, message: str) -> None:
        """Append a line describing a skipped candidate."""
        self.lines.append(message)
        self._log.warning(f"[{self.name}] {message}")

    def error(self, message: str) -> None:
        """Append a line describing a fatal failure."""
        self.lines.append(message)
        self._log.error(f"[{self.name}] {message}")

    @property
    def text(self) -> str:
        return "\n".join(self.lines)
