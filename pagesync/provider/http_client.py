"""
Transport layer for provider calls.

Provides:
- RetryConfig: bounded exponential backoff with jitter
- HTTPClient: httpx.AsyncClient wrapper that retries transient failures

Retries live here, below the adapter, so the sync engine never loops on
its own. ``max_retries=0`` surfaces every transport failure on the first
attempt. A 429 carrying ``Retry-After`` waits that long instead of the
computed backoff (capped at ``max_backoff_seconds``).
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


@dataclass
class RetryConfig:
    """
    Backoff policy.

    Delay for attempt ``n`` (0-indexed) is
    ``min(max_backoff_seconds, base_delay * 2**n)`` plus up to
    ``jitter_factor`` of that as random jitter.
    """

    max_retries: int = 3
    max_backoff_seconds: float = 60.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def is_retryable_status(self, status_code: int) -> bool:
        """429 and transient 5xx; 401/404 go straight back to the caller."""
        return status_code in RETRYABLE_STATUSES

    def is_retryable_exception(self, exc: Exception) -> bool:
        return isinstance(exc, RETRYABLE_EXCEPTIONS)

    def delay_for(self, attempt: int, response: httpx.Response | None = None) -> float:
        """Backoff for ``attempt``, preferring the server's Retry-After hint."""
        if response is not None:
            retry_after = response.headers.get("Retry-After")
            if retry_after:
                try:
                    return min(float(retry_after), self.max_backoff_seconds)
                except ValueError:
                    pass
        return self.calculate_backoff(attempt)


class HTTPClientError(Exception):
    """A request that failed for good (non-retryable or retries used up)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """Still rate limited after the last retry."""


class HTTPClient:
    """
    Async HTTP client with bounded retry.

    Example:
        async with HTTPClient(RetryConfig(max_retries=3), headers=auth) as client:
            response = await client.post(url, json_body={"page_size": 100})
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self.headers = dict(headers) if headers else {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, json_body: dict[str, Any] | None = None) -> httpx.Response:
        return await self.request("POST", url, json_body=json_body)

    async def patch(self, url: str, json_body: dict[str, Any] | None = None) -> httpx.Response:
        return await self.request("PATCH", url, json_body=json_body)

    async def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Raises:
            HTTPClientError: Non-retryable status, or retries exhausted
            RateLimitError: Still 429 after the last attempt
        """
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        attempts = self.retry_config.max_retries + 1
        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                response = await self._client.request(
                    method, url, params=params or None, json=json_body
                )
            except RETRYABLE_EXCEPTIONS as e:
                if is_last:
                    raise HTTPClientError(
                        f"Request failed after {attempt + 1} attempts: {e}"
                    ) from e
                await self._backoff(attempt, url, type(e).__name__)
                continue

            status_code = response.status_code
            if status_code < 400:
                return response

            if not self.retry_config.is_retryable_status(status_code):
                raise HTTPClientError(
                    f"{method} {url} returned {status_code}",
                    status_code=status_code,
                    response_body=response.text,
                )

            if is_last:
                error_cls = RateLimitError if status_code == 429 else HTTPClientError
                raise error_cls(
                    f"{method} {url} returned {status_code} after {attempt + 1} attempts",
                    status_code=status_code,
                    response_body=response.text,
                )
            await self._backoff(attempt, url, str(status_code), response)

        # range() is never empty: max_retries >= 0
        raise AssertionError("unreachable")

    async def _backoff(
        self,
        attempt: int,
        url: str,
        reason: str,
        response: httpx.Response | None = None,
    ) -> None:
        delay = self.retry_config.delay_for(attempt, response)
        logger.warning(
            "Retrying %s (%s), attempt %d/%d, sleeping %.2fs",
            url,
            reason,
            attempt + 1,
            self.retry_config.max_retries + 1,
            delay,
        )
        await asyncio.sleep(delay)
