"""Shared exceptions module.

Auth errors (`AuthExpiredError`, `TransientAuthError`, `UnauthorizedError`) are the only ones
the token manager and the record API client react to. Everything else propagates to the caller
with the upstream response body attached as `details`.
"""

from typing import Any, Optional


class LeadbridgeException(Exception):
    """Base exception for Leadbridge services."""

    is_rate_limit: bool = False

    def __init__(self, message: str = "Leadbridge error", details: Optional[Any] = None):
        """Create a new LeadbridgeException instance.

        Args:
        ----
            message (str): The error message.
            details (Any, optional): Upstream response body or other diagnostics.

        """
        self.message = message
        self.details = details
        super().__init__(self.message)


class ConfigurationError(LeadbridgeException):
    """Raised when a required credential or API key is not configured."""

    pass


class AuthExpiredError(LeadbridgeException):
    """The refresh token itself was rejected.

    Not retryable: an operator has to issue a new refresh token out of band.
    """

    def __init__(
        self,
        message: str = "Refresh token is invalid or expired",
        details: Optional[Any] = None,
    ):
        """Create a new AuthExpiredError instance."""
        super().__init__(message, details)


class TransientAuthError(LeadbridgeException):
    """The token refresh failed for a reason that may go away on its own."""

    def __init__(self, message: str = "Token refresh failed", details: Optional[Any] = None):
        """Create a new TransientAuthError instance."""
        super().__init__(message, details)


class RateLimitBlockedError(LeadbridgeException):
    """A client-side cooldown or a server-side throttle blocked the call. Retry later."""

    is_rate_limit = True

    def __init__(
        self,
        message: str = "Rate limit protection active. Please try again soon.",
        retry_after: Optional[float] = None,
        details: Optional[Any] = None,
    ):
        """Create a new RateLimitBlockedError instance.

        Args:
        ----
            message (str): The error message.
            retry_after (float, optional): Seconds until a new attempt is allowed, if known.
            details (Any, optional): Upstream response body, for server-side throttles.

        """
        self.retry_after = retry_after
        super().__init__(message, details)


class InvalidRequestError(LeadbridgeException):
    """The caller sent a request that cannot be processed as given."""

    pass


class RecordValidationError(LeadbridgeException):
    """The destination rejected a record field (bad record shape)."""

    pass


class NotFoundException(LeadbridgeException):
    """Exception raised when an object is not found."""

    def __init__(self, message: str = "Object not found", details: Optional[Any] = None):
        """Create a new NotFoundException instance."""
        super().__init__(message, details)


class UpstreamError(LeadbridgeException):
    """Any other non-2xx response (or transport failure) from either platform."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        """Create a new UpstreamError instance.

        Args:
        ----
            message (str): The error message.
            status_code (int, optional): HTTP status of the failed response, if there was one.
            details (Any, optional): Upstream response body.

        """
        self.status_code = status_code
        super().__init__(message, details)


class UnauthorizedError(UpstreamError):
    """The record API rejected the bearer token (HTTP 401)."""

    def __init__(self, message: str = "Access token rejected", details: Optional[Any] = None):
        """Create a new UnauthorizedError instance."""
        super().__init__(message, status_code=401, details=details)
