"""
Core utilities and configuration for the deal scan service.

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory
    exceptions: Exception hierarchy, grouped by the scope each error aborts
    logging: Logging configuration
    security: Request credentials and role checks for the scan endpoints

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import FetchError, UpsertError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    # Exceptions
    "IngestionException",
    "RetryableError",
    "NonRetryableError",
    "FetchError",
    "NetworkError",
    "RateLimitError",
    "SourceAuthenticationError",
    "ResourceNotFoundError",
    "NormalizationError",
    "StoreError",
    "DatabaseError",
    "UpsertError",
    "ContinuationError",
    "ScanAuthError",
    "UnauthorizedError",
    "ForbiddenError",
]
