"""Tests for async_utils.py - CircuitBreaker, retry, gather."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from paper_search.shared.async_utils import (
    CircuitBreaker,
    async_retry,
    gather_with_errors,
)
from paper_search.shared.exceptions import (
    CircuitOpenError,
    InvalidQueryError,
    NetworkError,
)


# ============================================================
# async_retry
# ============================================================

class TestAsyncRetry:
    async def test_success_no_retry(self):
        call_count = 0

        @async_retry(max_attempts=3)
        async def succeed():
            nonlocal call_count
            call_count += 1
            return "ok"

        assert await succeed() == "ok"
        assert call_count == 1

    @patch("paper_search.shared.async_utils.asyncio.sleep", new_callable=AsyncMock)
    async def test_retry_on_transient_error(self, mock_sleep):
        call_count = 0

        @async_retry(max_attempts=3)
        async def flaky():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise NetworkError("connection reset")
            return "recovered"

        assert await flaky() == "recovered"
        assert call_count == 3
        assert mock_sleep.await_count == 2

    @patch("paper_search.shared.async_utils.asyncio.sleep", new_callable=AsyncMock)
    async def test_gives_up_after_max_attempts(self, mock_sleep):
        call_count = 0

        @async_retry(max_attempts=2)
        async def always_fails():
            nonlocal call_count
            call_count += 1
            raise NetworkError("down")

        with pytest.raises(NetworkError):
            await always_fails()
        assert call_count == 2
        assert mock_sleep.await_count == 1

    async def test_non_retryable_raises_immediately(self):
        call_count = 0

        @async_retry(max_attempts=5)
        async def invalid():
            nonlocal call_count
            call_count += 1
            raise InvalidQueryError("")

        with pytest.raises(InvalidQueryError):
            await invalid()
        assert call_count == 1

    async def test_zero_attempts_rejected(self):
        @async_retry(max_attempts=0)
        async def never():
            return 1

        with pytest.raises(ValueError, match="max_attempts"):
            await never()


# ============================================================
# gather_with_errors
# ============================================================

class TestGatherWithErrors:
    async def test_preserves_order(self):
        async def delayed(value, delay):
            await asyncio.sleep(delay)
            return value

        results = await gather_with_errors(delayed("a", 0.03), delayed("b", 0.0), delayed("c", 0.01))
        assert results == ["a", "b", "c"]

    async def test_return_exceptions(self):
        async def ok():
            return 1

        async def fail():
            raise NetworkError("boom")

        results = await gather_with_errors(ok(), fail(), ok(), return_exceptions=True)
        assert results[0] == 1
        assert isinstance(results[1], NetworkError)
        assert results[2] == 1

    async def test_raises_without_return_exceptions(self):
        async def fail():
            raise NetworkError("boom")

        with pytest.raises(ExceptionGroup):
            await gather_with_errors(fail())

    async def test_empty(self):
        assert await gather_with_errors(return_exceptions=True) == []


# ============================================================
# CircuitBreaker
# ============================================================

class TestCircuitBreaker:
    async def test_closed_passes(self):
        breaker = CircuitBreaker(failure_threshold=2)
        async with breaker:
            pass
        assert breaker.state == "closed"

    async def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60.0, name="peer")
        for _ in range(2):
            with pytest.raises(NetworkError):
                async with breaker:
                    raise NetworkError("down")
        assert breaker.state == "open"
        assert breaker.is_open

        with pytest.raises(CircuitOpenError, match="peer"):
            async with breaker:
                pass

    async def test_half_open_recovers(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0.0)
        with pytest.raises(NetworkError):
            async with breaker:
                raise NetworkError("down")
        assert breaker.state == "open"

        await asyncio.sleep(0.01)
        async with breaker:
            pass
        assert breaker.state == "closed"
