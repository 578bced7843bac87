"""
kbsync Error Classification System.

This module provides the exception hierarchy used across the knowledge-base
engine: embedding calls, store access, synchronization and retrieval.

Error Categories:
-----------------
1. Retryable Errors: Transient provider failures that may succeed on retry
   - Rate limiting (HTTP 429)
   - Service unavailable (HTTP 503)
   - Other 5xx responses

2. Permanent Errors: Failures that won't succeed on retry
   - Authentication errors (HTTP 401/403)
   - Invalid parameters (HTTP 400)
   - Not found (HTTP 404, or a missing source record)
   - Configuration errors

3. Domain Errors: Raised by the engine components themselves
   - EmbeddingError: empty input or provider failure while embedding
   - StoreError: knowledge store read/write failure
   - SyncError: a whole source-type pass could not run
   - RetrievalError: retrieval could not produce a result

Usage:
------
    from kbsync.errors import EmbeddingError, NotFoundError

    try:
        results = await retrieval.retrieve_relevant_documents(query, organization_id="org-1")
    except EmbeddingError as e:
        logger.warning(f"Retrieval skipped: {e}")
        results = []
"""

from typing import Any


class KBSyncError(Exception):
    """
    Base exception for all kbsync errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error (optional)
        original_error: The underlying exception that caused this error (optional)
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.original_error:
            base += f" | Caused by: {type(self.original_error).__name__}: {self.original_error}"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "original_error": str(self.original_error) if self.original_error else None
        }


# =============================================================================
# Retryable Errors - Transient failures that may succeed on retry
# =============================================================================

class RetryableError(KBSyncError):
    """
    Base class for errors that may succeed on retry.

    The engine itself does not retry; a retryable failure is recorded in the
    sync summary and the caller decides whether to issue a fresh sync.

    Attributes:
        retry_after: Suggested wait time before retry (seconds), if known
    """

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)
        self.retry_after = retry_after


class RateLimitError(RetryableError):
    """Raised when the embedding provider rate limit is exceeded (HTTP 429)."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, retry_after, details, original_error)


class ServiceUnavailableError(RetryableError):
    """Raised when the provider is temporarily unavailable (HTTP 503)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, retry_after, details, original_error)


class TransientError(RetryableError):
    """Generic retryable error for unclassified transient failures."""
    pass


# =============================================================================
# Permanent Errors - Failures that won't succeed on retry
# =============================================================================

class PermanentError(KBSyncError):
    """
    Base class for errors that will not succeed on retry.

    These errors indicate issues that require intervention: invalid
    credentials, malformed requests, missing records or bad configuration.
    """
    pass


class AuthenticationError(PermanentError):
    """Raised when authentication with the provider fails (HTTP 401/403)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


class InvalidRequestError(PermanentError):
    """Raised when request parameters are invalid (HTTP 400)."""

    def __init__(
        self,
        message: str = "Invalid request parameters",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


class NotFoundError(PermanentError):
    """
    Raised when a requested resource is not found.

    Used both for HTTP 404 responses and for sync-by-id operations whose
    source record (e.g. a project) no longer exists.
    """

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


class ConfigurationError(PermanentError):
    """Raised when there's a configuration problem."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


# =============================================================================
# Domain-Specific Errors
# =============================================================================

class EmbeddingError(KBSyncError):
    """Raised when embedding operation fails."""
    pass


class RetrievalError(KBSyncError):
    """Raised when retrieval operation fails."""
    pass


class SyncError(KBSyncError):
    """Raised when a synchronization pass cannot run."""
    pass


class StoreError(KBSyncError):
    """Raised when knowledge store operation fails."""
    pass


# =============================================================================
# Helper Functions
# =============================================================================

def is_retryable(error: Exception) -> bool:
    """
    Check if an error, or any error it wraps, is a RetryableError.

    Domain errors carry the provider failure in ``original_error``, so an
    ``EmbeddingError`` caused by a rate limit is still retryable.
    """
    while error is not None:
        if isinstance(error, RetryableError):
            return True
        error = getattr(error, "original_error", None)
    return False


def classify_http_error(status_code: int, message: str = "", headers: dict | None = None) -> KBSyncError:
    """
    Classify an HTTP error based on status code.

    Args:
        status_code: HTTP status code
        message: Error message from response
        headers: Response headers (used to extract Retry-After)

    Returns:
        Appropriate KBSyncError subclass instance

    Example:
        if response.status_code >= 400:
            raise classify_http_error(
                response.status_code,
                response.text,
                dict(response.headers)
            )
    """
    headers = headers or {}
    retry_after = None

    if "Retry-After" in headers:
        try:
            retry_after = float(headers["Retry-After"])
        except (ValueError, TypeError):
            pass

    details = {"status_code": status_code}

    if status_code == 429:
        return RateLimitError(
            message=message or "API rate limit exceeded",
            retry_after=retry_after,
            details=details
        )
    elif status_code in (401, 403):
        return AuthenticationError(
            message=message or "Authentication failed - invalid API key",
            details=details
        )
    elif status_code == 400:
        return InvalidRequestError(
            message=message or "Invalid request parameters",
            details=details
        )
    elif status_code == 404:
        return NotFoundError(
            message=message or "Resource not found",
            details=details
        )
    elif status_code == 503:
        return ServiceUnavailableError(
            message=message or "Service temporarily unavailable",
            retry_after=retry_after,
            details=details
        )
    elif status_code >= 500:
        return TransientError(
            message=message or f"Server error (HTTP {status_code})",
            details=details
        )
    else:
        return PermanentError(
            message=message or f"HTTP error {status_code}",
            details=details
        )
