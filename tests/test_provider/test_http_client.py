"""Tests for HTTP client infrastructure layer."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from pagesync.provider.http_client import (
    HTTPClient,
    HTTPClientError,
    RateLimitError,
    RetryConfig,
)

URL = "https://api.example.com/v1/thing"


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_backoff_grows_exponentially(self):
        config = RetryConfig(base_delay=1.0, jitter_factor=0.0)
        assert config.calculate_backoff(0) == 1.0
        assert config.calculate_backoff(1) == 2.0
        assert config.calculate_backoff(3) == 8.0

    def test_backoff_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_backoff_seconds=5.0, jitter_factor=0.0)
        assert config.calculate_backoff(10) == 5.0

    def test_jitter_bounded(self):
        config = RetryConfig(base_delay=1.0, jitter_factor=0.5)
        for _ in range(20):
            assert 1.0 <= config.calculate_backoff(0) <= 1.5

    def test_retryable_statuses(self):
        config = RetryConfig()
        assert config.is_retryable_status(429)
        assert config.is_retryable_status(503)
        assert not config.is_retryable_status(401)
        assert not config.is_retryable_status(404)

    def test_retryable_exceptions(self):
        config = RetryConfig()
        assert config.is_retryable_exception(httpx.ConnectError("boom"))
        assert not config.is_retryable_exception(ValueError("nope"))


class TestHTTPClient:
    """Tests for HTTPClient request/retry behavior."""

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        client = HTTPClient()
        with pytest.raises(RuntimeError):
            await client.get(URL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_default_headers_sent(self):
        route = respx.get(URL).mock(return_value=httpx.Response(200, json={}))

        async with HTTPClient(headers={"Authorization": "Bearer t"}) as client:
            await client.get(URL)

        assert route.calls.last.request.headers["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_sends_json(self):
        route = respx.post(URL).mock(return_value=httpx.Response(200, json={"ok": True}))

        async with HTTPClient() as client:
            response = await client.post(URL, json_body={"page_size": 10})

        assert response.json() == {"ok": True}
        assert json.loads(route.calls.last.request.content) == {"page_size": 10}

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_then_succeeds(self):
        route = respx.get(URL).mock(
            side_effect=[httpx.Response(503), httpx.Response(200, json={"ok": True})]
        )

        with patch("pagesync.provider.http_client.asyncio.sleep", new=AsyncMock()) as sleep:
            async with HTTPClient(RetryConfig(max_retries=2)) as client:
                response = await client.get(URL)

        assert response.status_code == 200
        assert route.call_count == 2
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_exhausted(self):
        respx.get(URL).mock(return_value=httpx.Response(429, text="slow down"))

        with patch("pagesync.provider.http_client.asyncio.sleep", new=AsyncMock()):
            async with HTTPClient(RetryConfig(max_retries=1)) as client:
                with pytest.raises(RateLimitError) as exc_info:
                    await client.get(URL)

        assert exc_info.value.status_code == 429
        assert exc_info.value.response_body == "slow down"

    @pytest.mark.asyncio
    @respx.mock
    async def test_zero_retries_fails_immediately(self):
        route = respx.get(URL).mock(return_value=httpx.Response(502))

        async with HTTPClient(RetryConfig(max_retries=0)) as client:
            with pytest.raises(HTTPClientError):
                await client.get(URL)

        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_error_not_retried(self):
        route = respx.get(URL).mock(
            return_value=httpx.Response(401, json={"code": "unauthorized"})
        )

        async with HTTPClient(RetryConfig(max_retries=3)) as client:
            with pytest.raises(HTTPClientError) as exc_info:
                await client.get(URL)

        assert route.call_count == 1
        assert exc_info.value.status_code == 401
        assert "unauthorized" in exc_info.value.response_body

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error_wrapped(self):
        respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))

        with patch("pagesync.provider.http_client.asyncio.sleep", new=AsyncMock()):
            async with HTTPClient(RetryConfig(max_retries=1)) as client:
                with pytest.raises(HTTPClientError, match="after 2 attempts"):
                    await client.get(URL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_after_header_honored(self):
        respx.get(URL).mock(
            side_effect=[
                httpx.Response(429, headers={"Retry-After": "7"}),
                httpx.Response(200, json={}),
            ]
        )

        with patch("pagesync.provider.http_client.asyncio.sleep", new=AsyncMock()) as sleep:
            async with HTTPClient(RetryConfig(max_retries=1)) as client:
                await client.get(URL)

        sleep.assert_awaited_once_with(7.0)

    def test_retry_after_capped(self):
        config = RetryConfig(max_backoff_seconds=5.0)
        response = httpx.Response(429, headers={"Retry-After": "120"})
        assert config.delay_for(0, response) == 5.0
