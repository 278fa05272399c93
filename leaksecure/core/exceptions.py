"""Core exceptions for Leak Secure."""

from typing import Any, Dict, Optional


class LeakSecureError(Exception):
    """Base exception for all Leak Secure errors."""

    code = "LEAK_SECURE_ERROR"
    status_code = 500
    is_operational = True

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Initialize the exception."""
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(LeakSecureError):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ConfigurationError(LeakSecureError):
    """Raised when configuration is invalid."""

    code = "CONFIGURATION_ERROR"
    status_code = 500
    is_operational = False


class RepositoryAccessError(LeakSecureError):
    """Raised when a repository cannot be read (missing or forbidden)."""

    code = "REPOSITORY_ACCESS_ERROR"
    status_code = 403


class NotFoundError(RepositoryAccessError):
    """Raised when a remote resource is not found."""

    code = "NOT_FOUND"
    status_code = 404


class RateLimitError(LeakSecureError):
    """Raised when the local bucket or the remote API rate limit is exhausted."""

    code = "RATE_LIMIT_ERROR"
    status_code = 429

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.retry_after = retry_after


class OperationTimeoutError(LeakSecureError):
    """Raised when a remote call or a whole scan exceeds its time budget."""

    code = "TIMEOUT_ERROR"
    status_code = 504


class RemoteAPIError(LeakSecureError):
    """Raised for any other failure reported by the remote API."""

    code = "REMOTE_API_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        transient: bool = False,
    ):
        super().__init__(message, context)
        self.transient = transient


class CircuitOpenError(LeakSecureError):
    """Raised when the circuit breaker rejects a call without invoking it."""

    code = "CIRCUIT_BREAKER_ERROR"
    status_code = 503


def is_operational_error(error: BaseException) -> bool:
    """Return True for expected runtime failures, False for programming errors."""
    if isinstance(error, LeakSecureError):
        return error.is_operational
    return False


def format_error_for_client(error: BaseException) -> Dict[str, Any]:
    """
    Build the sanitized error report returned to callers.

    Known errors keep their message and context; anything else is reported
    generically so internal details and stack traces never leak.

    Args:
        error: The exception to report

    Returns:
        Dict with ``error``, ``code``, ``message`` and ``context`` keys
    """
    if isinstance(error, LeakSecureError):
        return {
            "error": type(error).__name__,
            "code": error.code,
            "message": error.message,
            "context": dict(error.context),
        }

    if isinstance(error, Exception):
        return {
            "error": "InternalError",
            "code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "context": {},
        }

    return {
        "error": "UnknownError",
        "code": "UNKNOWN_ERROR",
        "message": "An unknown error occurred",
        "context": {},
    }
