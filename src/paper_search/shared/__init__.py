"""
Shared kernel for Paper Search.

Provides:
- Unified exception hierarchy
- Async utilities for provider calls
- Environment-driven settings
"""

from .async_utils import (
    # Fault tolerance
    CircuitBreaker,
    # Retry
    async_retry,
    # Parallel execution
    gather_with_errors,
)
from .exceptions import (
    # API errors
    APIError,
    CircuitOpenError,
    # Configuration errors
    ConfigurationError,
    # Data errors
    DataError,
    DimensionMismatchError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    IndexCommitError,
    IndexOpenError,
    InvalidParameterError,
    InvalidQueryError,
    # Local index errors
    LocalIndexError,
    NetworkError,
    NotFoundError,
    # Base
    PaperSearchError,
    ParseError,
    QueryParseError,
    RateLimitError,
    ServiceUnavailableError,
    # Validation errors
    ValidationError,
    VectorStoreError,
    # Utilities
    get_retry_delay,
    is_retryable_error,
)

__all__ = [
    # Exceptions
    "PaperSearchError",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "APIError",
    "RateLimitError",
    "CircuitOpenError",
    "NetworkError",
    "ServiceUnavailableError",
    "ValidationError",
    "InvalidQueryError",
    "InvalidParameterError",
    "DataError",
    "NotFoundError",
    "ParseError",
    "LocalIndexError",
    "QueryParseError",
    "IndexCommitError",
    "IndexOpenError",
    "VectorStoreError",
    "DimensionMismatchError",
    "ConfigurationError",
    "is_retryable_error",
    "get_retry_delay",
    # Async utilities
    "async_retry",
    "gather_with_errors",
    "CircuitBreaker",
]
