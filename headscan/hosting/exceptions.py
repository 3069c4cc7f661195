"""Hosting service client exceptions."""

from typing import Any


class HostingError(Exception):
    """Base exception for hosting service I/O errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        """Initialize hosting error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: Response data from the hosting API
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data or {}


class HostingAuthenticationError(HostingError):
    """Raised when authentication fails."""

    pass


class HostingForbiddenError(HostingError):
    """Raised when the credentials may not read the requested resource (403)."""

    def __init__(
        self,
        message: str,
        response_data: dict[str, Any] | None = None,
    ):
        """Initialize forbidden error.

        Args:
            message: Error message
            response_data: Response data from the hosting API
        """
        super().__init__(message, status_code=403, response_data=response_data)


class HostingRateLimitError(HostingError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        reset_time: int | None = None,
        remaining: int = 0,
        limit: int = 0,
    ):
        """Initialize rate limit error.

        Args:
            message: Error message
            reset_time: Unix timestamp when rate limit resets
            remaining: Remaining API calls
            limit: Total rate limit
        """
        super().__init__(message, status_code=429)
        self.reset_time = reset_time
        self.remaining = remaining
        self.limit = limit


class HostingNotFoundError(HostingError):
    """Raised when resource is not found."""

    pass


class HostingServerError(HostingError):
    """Raised when the hosting service returns a 5xx error."""

    pass


class HostingConnectionError(HostingError):
    """Raised when connection to the hosting service fails."""

    pass


class HostingTimeoutError(HostingError):
    """Raised when request times out."""

    pass
