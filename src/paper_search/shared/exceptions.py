"""
Unified Exception Hierarchy for Paper Search.

Exception Hierarchy:
    PaperSearchError (base)
    ├── APIError
    │   ├── RateLimitError
    │   │   └── CircuitOpenError
    │   ├── NetworkError
    │   └── ServiceUnavailableError
    ├── ValidationError
    │   ├── InvalidQueryError
    │   └── InvalidParameterError
    ├── DataError
    │   ├── NotFoundError
    │   └── ParseError
    ├── LocalIndexError
    │   ├── QueryParseError
    │   ├── IndexCommitError
    │   ├── IndexOpenError
    │   ├── VectorStoreError
    │   └── DimensionMismatchError
    └── ConfigurationError

API errors are recoverable at the federated-search level (a failing provider
is logged and skipped). Local index errors always propagate to the caller.
"""

from __future__ import annotations

import dataclasses
import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = auto()      # Recoverable, can continue
    ERROR = auto()        # Failed but can retry
    CRITICAL = auto()     # Cannot continue
    TRANSIENT = auto()    # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""
    API = "api"
    VALIDATION = "validation"
    DATA = "data"
    INDEX = "index"
    CONFIGURATION = "config"
    NETWORK = "network"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context for error messages."""
    tool_name: str | None = None
    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    example: str | None = None
    retry_after: float | None = None
    related_errors: tuple[Exception, ...] = field(default_factory=tuple)
    metadata: dict[str, Any] = field(default_factory=dict)


def _merge_context(context: ErrorContext | None, **overrides: Any) -> ErrorContext:
    """Return ``context`` with ``overrides`` applied, keeping caller-set suggestions."""
    ctx = context or ErrorContext()
    if ctx.suggestion and "suggestion" in overrides:
        overrides.pop("suggestion")
    if ctx.example and "example" in overrides:
        overrides.pop("example")
    return dataclasses.replace(ctx, **overrides)


class PaperSearchError(Exception):
    """
    Base exception for all Paper Search errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    - Agent-friendly formatting
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.API,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.tool_name:
            result["tool"] = self.context.tool_name
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.example:
            result["example"] = self.context.example
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result

    def to_agent_message(self) -> str:
        """Format for Agent consumption (Markdown)."""
        parts = [f"❌ **Error**: {self}"]

        if self.context.suggestion:
            parts.append(f"💡 **Suggestion**: {self.context.suggestion}")
        if self.context.example:
            parts.append(f"📝 **Example**: `{self.context.example}`")
        if self.retryable:
            if self.context.retry_after:
                parts.append(f"🔄 Retry after {self.context.retry_after:.1f} seconds")
            else:
                parts.append("🔄 This error is retryable")

        return "\n".join(parts)


# =============================================================================
# API Errors
# =============================================================================

class APIError(PaperSearchError):
    """Base class for provider and transport errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.API,
            retryable=retryable,
        )


class RateLimitError(APIError):
    """Raised when a provider rate limit is exceeded."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        *,
        retry_after: float = 1.0,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _merge_context(
            context,
            suggestion="Wait and retry the request",
            retry_after=retry_after,
        )
        super().__init__(message, context=ctx, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


class CircuitOpenError(RateLimitError):
    """Raised when a circuit breaker rejects a call without contacting the provider."""

    def __init__(
        self,
        service: str,
        *,
        retry_after: float = 30.0,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            f"{service}: circuit breaker is open",
            retry_after=retry_after,
            context=context,
        )
        self.retryable = False


class NetworkError(APIError):
    """Raised for network connectivity issues."""

    def __init__(
        self,
        message: str = "Network connection failed",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context=context, retryable=True)
        self.category = ErrorCategory.NETWORK


class ServiceUnavailableError(APIError):
    """Raised when a provider is temporarily unavailable."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        *,
        service: str = "provider",
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(f"{service}: {message}", context=context, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(PaperSearchError):
    """Base class for validation errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )


class InvalidQueryError(ValidationError):
    """Raised when a search query is invalid."""

    def __init__(
        self,
        query: str | None,
        reason: str = "Query cannot be empty",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _merge_context(
            context,
            input_value=query,
            suggestion="Provide a valid search query",
            example='search_papers(query="holographic entanglement")',
        )
        super().__init__(f"Invalid query: {reason}", context=ctx)


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _merge_context(
            context,
            input_value=value,
            suggestion=f"Expected {expected}",
        )
        super().__init__(
            f"Invalid parameter '{param_name}': {value!r} (expected {expected})",
            context=ctx,
        )


# =============================================================================
# Data Errors
# =============================================================================

class DataError(PaperSearchError):
    """Base class for data-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.DATA,
            retryable=False,
        )


class NotFoundError(DataError):
    """Raised when requested data is not found."""

    def __init__(
        self,
        resource: str,
        identifier: str | None = None,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        msg = f"{resource} not found"
        if identifier:
            msg = f"{resource} not found: {identifier}"

        ctx = _merge_context(
            context,
            input_value=identifier,
            suggestion="Check the identifier and try again",
        )
        super().__init__(msg, context=ctx)


class ParseError(DataError):
    """Raised when a provider payload cannot be decoded."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        full_msg = f"Parse error: {message}"
        if source:
            full_msg = f"Parse error ({source}): {message}"
        super().__init__(full_msg, context=context)


# =============================================================================
# Local Index Errors
# =============================================================================

class LocalIndexError(PaperSearchError):
    """Base class for lexical index and vector store failures."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.INDEX,
            retryable=False,
        )


class QueryParseError(LocalIndexError):
    """Raised when a lexical query string is malformed."""

    def __init__(
        self,
        query: str,
        reason: str,
        *,
        position: int | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _merge_context(
            context,
            input_value=query,
            suggestion="Check quotes, parentheses and field names",
            example='search_local(query=\'title:"black hole" AND entropy\')',
        )
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Cannot parse query{where}: {reason}", context=ctx)
        self.query = query
        self.reason = reason
        self.position = position


class IndexCommitError(LocalIndexError):
    """Raised when staged lexical changes cannot be made durable."""


class IndexOpenError(LocalIndexError):
    """Raised when an index location cannot be created or opened."""


class VectorStoreError(LocalIndexError):
    """Raised for storage-layer failures inside the vector store."""


class DimensionMismatchError(LocalIndexError):
    """Raised when an embedding length differs from the store dimension."""

    def __init__(
        self,
        expected: int,
        actual: int,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _merge_context(
            context,
            input_value=actual,
            suggestion=f"Use an embedder producing {expected}-dimensional vectors",
        )
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}",
            context=ctx,
        )
        self.expected = expected
        self.actual = actual


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(PaperSearchError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


def is_retryable_error(error: Exception) -> bool:
    """Check if an error should be retried."""
    if isinstance(error, PaperSearchError):
        return error.retryable

    error_str = str(error).lower()
    transient_patterns = [
        "rate limit",
        "too many requests",
        "temporarily unavailable",
        "service unavailable",
        "connection reset",
        "timeout",
    ]
    return any(pattern in error_str for pattern in transient_patterns)


def get_retry_delay(error: Exception, attempt: int) -> float:
    """
    Calculate retry delay with exponential backoff.

    Args:
        error: The exception that occurred
        attempt: Current attempt number (0-based)

    Returns:
        Delay in seconds before next retry
    """
    base_delay = 1.0

    if isinstance(error, PaperSearchError) and error.context.retry_after:
        base_delay = error.context.retry_after

    delay = base_delay * (2 ** attempt)
    jitter = random.uniform(0, 0.1 * delay)

    # Cap at 30 seconds
    return min(delay + jitter, 30.0)
