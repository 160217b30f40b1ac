"""
Async Utilities for Provider Calls.

Provides:
- Parallel execution with TaskGroup (order-preserving, optional error capture)
- Retry with exponential backoff
- Circuit breaker for failing providers
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

from .exceptions import (
    CircuitOpenError,
    get_retry_delay,
    is_retryable_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Retry Decorator
# =============================================================================

def async_retry(
    max_attempts: int = 3,
    retryable_check: Callable[[Exception], bool] = is_retryable_error,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for async functions with automatic retry.

    Uses exponential backoff with jitter; a ``retry_after`` carried by the
    error context is used as the base delay.

    Example:
        @async_retry(max_attempts=3)
        async def fetch_record(paper_id: str) -> dict:
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not retryable_check(e) or attempt == max_attempts - 1:
                        raise

                    delay = get_retry_delay(e, attempt)
                    logger.warning(
                        f"Retry {attempt + 1}/{max_attempts} for {func.__name__}: "
                        f"{e} (waiting {delay:.1f}s)"
                    )
                    await asyncio.sleep(delay)

            msg = f"async_retry requires max_attempts >= 1, got {max_attempts}"
            raise ValueError(msg)

        return wrapper
    return decorator


# =============================================================================
# Parallel Execution with TaskGroup
# =============================================================================

async def gather_with_errors(
    *coros: Awaitable[T],
    return_exceptions: bool = False,
) -> list[T | Exception]:
    """
    Execute coroutines in parallel using TaskGroup.

    Results are returned in the order the coroutines were given.

    Args:
        *coros: Coroutines to execute
        return_exceptions: If True, return exceptions in place of results
            instead of cancelling the siblings and raising

    Example:
        results = await gather_with_errors(
            arxiv.search(query, 10),
            crossref.search(query, 10),
            return_exceptions=True,
        )
    """
    if not return_exceptions:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(coro) for coro in coros]
        return [task.result() for task in tasks]

    results: list[T | Exception] = [None] * len(coros)  # type: ignore[list-item]

    async def safe_run(coro: Awaitable[T], index: int) -> None:
        try:
            results[index] = await coro
        except Exception as e:
            results[index] = e

    async with asyncio.TaskGroup() as tg:
        for i, coro in enumerate(coros):
            tg.create_task(safe_run(coro, i))

    return results


# =============================================================================
# Circuit Breaker Pattern
# =============================================================================

@dataclass
class CircuitBreaker:
    """
    Circuit breaker for fault tolerance.

    States:
    - closed: Normal operation
    - open: Failing, reject requests immediately
    - half_open: Testing if the provider recovered

    Example:
        breaker = CircuitBreaker(failure_threshold=5)

        async with breaker:
            result = await risky_api_call()
    """
    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    half_open_max_calls: int = 3
    name: str = "provider"

    _failure_count: int = field(init=False, default=0)
    _last_failure_time: float | None = field(init=False, default=None)
    _state: str = field(init=False, default="closed")
    _half_open_calls: int = field(init=False, default=0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (rejecting requests)."""
        if self._state == "open":
            if self._last_failure_time is not None:
                if time.monotonic() - self._last_failure_time > self.recovery_timeout:
                    return False  # Move to half-open
            return True
        return False

    async def __aenter__(self) -> CircuitBreaker:
        async with self._lock:
            if self.is_open:
                raise CircuitOpenError(self.name, retry_after=self.recovery_timeout)

            if self._state == "open":
                self._state = "half_open"
                self._half_open_calls = 0

            if self._state == "half_open":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError(self.name, retry_after=self.recovery_timeout / 2)
                self._half_open_calls += 1

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        async with self._lock:
            if exc_val is not None:
                self._failure_count += 1
                self._last_failure_time = time.monotonic()

                if self._failure_count >= self.failure_threshold:
                    self._state = "open"
                    logger.warning(
                        f"{self.name}: circuit breaker opened after {self._failure_count} failures"
                    )
            elif self._state == "half_open":
                self._state = "closed"
                self._failure_count = 0
                logger.info(f"{self.name}: circuit breaker closed (recovered)")
            elif self._state == "closed":
                self._failure_count = max(0, self._failure_count - 1)
