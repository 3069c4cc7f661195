"""Webhook-related exceptions."""

from typing import Any


class WebhookRejectedError(Exception):
    """Inbound webhook envelope cannot be processed.

    This is a client error: the caller should answer the hosting service with
    ``status_code`` and never treat it as a scan failure.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize rejection.

        Args:
            message: Human-readable error message
            status_code: HTTP status to answer with
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}
