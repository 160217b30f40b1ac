"""
Base API Client - Common HTTP request pattern with retry, rate limiting, and circuit breaker.

Provides for every HTTP-backed paper source:
- Automatic retry on 429 (rate limit) with Retry-After support
- Retry with backoff on transport errors and 5xx responses
- Rate limiting (configurable interval between requests)
- Circuit breaker for fault tolerance
- Typed errors, so the federated pipeline can log and skip a failing source
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
from typing_extensions import Self

from paper_search.shared.async_utils import CircuitBreaker, async_retry
from paper_search.shared.exceptions import (
    APIError,
    NetworkError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

_MAX_ATTEMPTS = 3


class BaseAPIClient:
    """
    Base class for HTTP paper-source clients.

    Provides common infrastructure:
    - httpx.AsyncClient management
    - Rate limiting with configurable interval
    - Retry on 429 / 5xx / transport errors with exponential backoff
    - Circuit breaker for fault tolerance

    Subclasses should set ``_service_name`` and can override
    ``_handle_expected_status()`` for service-specific status codes.

    Example:
        class MyClient(BaseAPIClient):
            _service_name = "MyAPI"

            def __init__(self):
                super().__init__(base_url="https://api.example.com", min_interval=0.1)

            async def get_item(self, item_id: str) -> dict | None:
                return await self._make_request(f"/items/{item_id}")
    """

    _service_name: str = "API"

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        min_interval: float = 0.1,
        headers: dict[str, str] | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize base client.

        Args:
            base_url: Base URL for the API (optional, can pass full URLs)
            timeout: Request timeout in seconds
            min_interval: Minimum seconds between requests (rate limiting)
            headers: Default headers for all requests
            circuit_breaker: Optional circuit breaker for fault tolerance.
                             If None, a default one is created (threshold=10, recovery=60s).
            transport: Optional httpx transport (e.g. ``httpx.MockTransport`` in tests)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._min_interval = min_interval
        self._last_request_time = 0.0
        self._rate_lock = asyncio.Lock()
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers or {},
            transport=transport,
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
        )
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=10,
            recovery_timeout=60.0,
            name=self._service_name,
        )

    async def _rate_limit(self) -> None:
        """Enforce minimum interval between requests."""
        async with self._rate_lock:
            elapsed = time.time() - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.time()

    def _build_url(self, url: str) -> str:
        """Build full URL from path or full URL."""
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._base_url}{url}"

    async def _make_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        expect_json: bool = True,
    ) -> Any:
        """
        Make an HTTP request with retry and circuit breaker protection.

        Args:
            url: Full URL or path (appended to base_url)
            method: HTTP method (GET or POST)
            params: Query string parameters
            data: JSON body for POST requests
            headers: Additional headers for this request
            expect_json: If True, parse response as JSON; otherwise return text

        Returns:
            Parsed JSON, response text, or None for "not found"

        Raises:
            RateLimitError: still rate limited after retries (or breaker open)
            NetworkError: transport failure after retries
            ServiceUnavailableError: 5xx after retries
            APIError: other non-success status
            ParseError: body is not valid JSON
        """
        return await self._request_with_retry(
            self._build_url(url),
            method=method,
            params=params,
            data=data,
            headers=headers,
            expect_json=expect_json,
        )

    @async_retry(max_attempts=_MAX_ATTEMPTS)
    async def _request_with_retry(
        self,
        full_url: str,
        *,
        method: str,
        params: dict[str, Any] | None,
        data: dict[str, Any] | None,
        headers: dict[str, str] | None,
        expect_json: bool,
    ) -> Any:
        await self._rate_limit()
        async with self._circuit_breaker:
            try:
                response = await self._execute_request(
                    full_url, method=method, params=params, data=data, headers=headers
                )
            except httpx.TimeoutException as e:
                msg = f"{self._service_name}: request timed out ({full_url})"
                raise NetworkError(msg) from e
            except httpx.RequestError as e:
                msg = f"{self._service_name}: request failed: {e}"
                raise NetworkError(msg) from e

            expected = self._handle_expected_status(response, full_url)
            if expected is not _CONTINUE:
                return expected

            status = response.status_code
            if status == 429:
                retry_after = self._get_retry_after(response)
                logger.warning(f"{self._service_name}: Rate limited (429), retry after {retry_after:.1f}s")
                raise RateLimitError(f"{self._service_name}: rate limit exceeded", retry_after=retry_after)
            if status >= 500:
                raise ServiceUnavailableError(
                    f"HTTP {status} {response.reason_phrase}", service=self._service_name
                )
            if status >= 400:
                msg = f"{self._service_name} HTTP error {status}: {response.reason_phrase}"
                raise APIError(msg, retryable=False)

            return self._parse_response(response, expect_json)

    async def _execute_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Execute the actual HTTP request. Override for custom behavior."""
        if method == "POST":
            return await self._client.post(url, params=params, json=data, headers=headers or {})
        return await self._client.get(url, params=params, headers=headers or {})

    def _handle_expected_status(self, response: httpx.Response, url: str) -> Any:
        """
        Handle expected non-200 status codes that shouldn't raise.

        Return a value to short-circuit; return the sentinel ``_CONTINUE`` to
        continue normal processing. Default: 404 means "not found" (None).
        """
        if response.status_code == 404:
            logger.debug(f"{self._service_name}: not found ({url})")
            return None
        return _CONTINUE

    def _parse_response(self, response: httpx.Response, expect_json: bool) -> Any:
        """Parse response body. Override for custom extraction logic."""
        if not expect_json:
            return response.text
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(str(e), source=self._service_name) from e

    @staticmethod
    def _get_retry_after(response: httpx.Response, default: float = 2.0) -> float:
        """Extract Retry-After (seconds) from response headers."""
        try:
            return float(response.headers.get("Retry-After", default))
        except (ValueError, TypeError):
            return default

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


# Sentinel object to indicate "continue normal processing" from _handle_expected_status
_CONTINUE = object()
