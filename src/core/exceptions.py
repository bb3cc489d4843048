"""Custom exception hierarchy for the forum client."""

from typing import Optional

from src.core.types import FailureKind


class ForumClientError(Exception):
    """Base exception for all forum client errors."""

    def __init__(self, message: str = "An error occurred in the forum client"):
        self.message = message
        super().__init__(self.message)


class NetworkError(ForumClientError):
    """Base exception for network-related errors."""

    def __init__(self, message: str = "A network error occurred"):
        super().__init__(message)


class ApiError(NetworkError):
    """A logical API call failed.

    Keeps the HTTP status (None when no response arrived) and the
    failure classification alongside the human-readable message.
    """

    kind = FailureKind.PERMANENT

    def __init__(self, message: str = "API request failed",
                 status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RateLimitError(ApiError):
    """HTTP 429 - Rate limit exceeded."""

    kind = FailureKind.RATE_LIMITED

    def __init__(self, message: str = "API rate limit exceeded",
                 status_code: Optional[int] = 429,
                 retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message, status_code)


class TransientError(ApiError):
    """Server-side or timeout error that may succeed on retry (408, 500, 503)."""

    kind = FailureKind.TRANSIENT

    def __init__(self, message: str = "Temporary server error",
                 status_code: Optional[int] = None):
        super().__init__(message, status_code)


class NetworkUnavailableError(ApiError):
    """No response was received at all."""

    kind = FailureKind.NETWORK_UNAVAILABLE

    def __init__(self, message: str = "Network unavailable"):
        super().__init__(message, None)


class PermanentError(ApiError):
    """Client or validation error. Retrying will not help."""

    kind = FailureKind.PERMANENT

    def __init__(self, message: str = "Request rejected by server",
                 status_code: Optional[int] = None):
        super().__init__(message, status_code)


class DecodingError(PermanentError):
    """Response body does not match the expected shape."""

    def __init__(self, message: str = "Unexpected response format",
                 status_code: Optional[int] = None):
        super().__init__(message, status_code)


class AuthenticationError(PermanentError):
    """HTTP 401/403 - Not logged in or not allowed."""

    def __init__(self, message: str = "Authentication required",
                 status_code: Optional[int] = 401):
        super().__init__(message, status_code)


class NotFoundError(PermanentError):
    """HTTP 404 - Resource does not exist."""

    def __init__(self, message: str = "Resource not found",
                 status_code: Optional[int] = 404):
        super().__init__(message, status_code)


class ReplyNotAllowedError(PermanentError):
    """The target comment no longer accepts replies (deleted)."""

    def __init__(self, message: str = "This comment can no longer be replied to"):
        super().__init__(message, None)


class DataError(ForumClientError):
    """Base exception for data-related errors."""

    def __init__(self, message: str = "A data error occurred"):
        super().__init__(message)


class ConfigError(DataError):
    """Configuration is invalid or missing."""

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message)
