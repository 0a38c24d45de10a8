"""
Custom exceptions for the scan pipeline with structured error context.

Errors are grouped by the scope they abort:

    IngestionException (base)
    ├── FetchError                  chunk-level, the whole chunk fails
    │   ├── NetworkError            (retryable)
    │   ├── RateLimitError          (retryable)
    │   ├── SourceAuthenticationError
    │   └── ResourceNotFoundError
    ├── NormalizationError          item-level, item skipped, chunk continues
    ├── StoreError
    │   ├── DatabaseError
    │   └── UpsertError             chunk-level
    ├── ContinuationError           logged and swallowed
    ├── ScanAuthError
    │   ├── UnauthorizedError       HTTP 401
    │   └── ForbiddenError          HTTP 403
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class IngestionException(Exception):
    """
    Base exception for all scan and ingestion errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (source, cursor, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(IngestionException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        super().__init__(message, context, original_exception)
        self.max_retries = max_retries
        self.retry_delay = retry_delay


class NonRetryableError(IngestionException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    - Malformed source items
    """
    pass


# ============================================================================
# Fetch Errors
# ============================================================================

class FetchError(IngestionException):
    """
    Raised when a source fetcher cannot deliver a page.

    Aborts the chunk. The cursor is not advanced and no continuation is
    scheduled; the next cron tick restarts the sweep.

    Context should include:
        - source: Source being fetched
        - cursor: Offset requested
        - url: Endpoint that failed (if applicable)
        - status_code: HTTP status code (if applicable)
    """
    pass


class NetworkError(RetryableError, FetchError):
    """Network-related errors that should be retried."""
    pass


class RateLimitError(RetryableError, FetchError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


class SourceAuthenticationError(NonRetryableError, FetchError):
    """The source rejected our credentials (HTTP 401, 403)."""
    pass


class ResourceNotFoundError(NonRetryableError, FetchError):
    """Resource not found errors (HTTP 404) that should not be retried."""
    pass


# ============================================================================
# Normalization Errors
# ============================================================================

class NormalizationError(NonRetryableError):
    """
    Raised when a single fetched item cannot be mapped to a record.

    Item-level: the chunk processor records it in ``errors`` and moves on.

    Context should include:
        - source: Source the item came from
        - index: Position of the item in the fetched page
    """
    pass


# ============================================================================
# Store Errors
# ============================================================================

class StoreError(IngestionException):
    """Base exception for persistent store failures."""
    pass


class DatabaseError(StoreError):
    """
    Exception raised when database operations fail outside an upsert.

    Context should include:
        - operation: Type of database operation
        - table_name: Name of the table
    """
    pass


class UpsertError(StoreError):
    """
    Exception raised when a record upsert fails.

    The record's transaction has been rolled back. Aborts the chunk.

    Context should include:
        - source: Source of the record
        - external_id: External identifier of the record
    """
    pass


# ============================================================================
# Continuation Errors
# ============================================================================

class ContinuationError(IngestionException):
    """
    Raised when a continuation call cannot be delivered.

    Never propagated to the caller that scheduled it.
    """
    pass


# ============================================================================
# Authorization Errors
# ============================================================================

class ScanAuthError(NonRetryableError):
    """Base exception for rejected scan requests."""

    status_code = 401


class UnauthorizedError(ScanAuthError):
    """No valid credential was presented (HTTP 401)."""

    status_code = 401


class ForbiddenError(ScanAuthError):
    """Caller is authenticated but lacks the admin role (HTTP 403)."""

    status_code = 403
