"""Tests for rate limiting (src/cybertask/core/rate_limit.py).

Tests cover:
- get_rate_limit_key: Key generation from the client IP
- _check_in_memory_rate_limit: Token bucket algorithm
- global_rate_limit_middleware: Request flow, exemptions and the error envelope
- _check_global_rate_limit: Redis preference and in-memory fallback
"""

import json
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from starlette.requests import Request
from starlette.responses import Response

from src.cybertask.core import rate_limit
from src.cybertask.core.rate_limit import (
    _check_in_memory_rate_limit,
    get_rate_limit_key,
    global_rate_limit_middleware,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _reset_rate_limit_state(reset_rate_limit_buckets):
    yield


@pytest.fixture
def mock_request() -> MagicMock:
    request = MagicMock(spec=Request)
    request.headers = {}
    request.client = MagicMock()
    request.client.host = "192.168.1.100"
    request.url.path = "/api/tasks"
    return request


@pytest.fixture
def mock_settings() -> MagicMock:
    """Rate limiting is disabled when app_env='testing', so pretend to be development."""
    settings = MagicMock()
    settings.app_env = "development"
    settings.global_rate_limit_per_second = 10
    settings.global_rate_limit_burst = 20
    settings.redis_url = None
    return settings


class TestGetRateLimitKey:
    def test_returns_client_ip(self, mock_request: MagicMock) -> None:
        with patch("src.cybertask.core.rate_limit.get_remote_address", return_value="10.0.0.7"):
            assert get_rate_limit_key(mock_request) == "10.0.0.7"

    def test_ignores_client_supplied_headers(self, mock_request: MagicMock) -> None:
        """Headers must not yield a fresh bucket per request."""
        mock_request.headers = {"X-Forwarded-For": "1.2.3.4", "Authorization": "Bearer x"}

        with patch("src.cybertask.core.rate_limit.get_remote_address", return_value="10.0.0.7"):
            assert get_rate_limit_key(mock_request) == "10.0.0.7"

    def test_returns_unknown_when_ip_not_available(self, mock_request: MagicMock) -> None:
        with patch("src.cybertask.core.rate_limit.get_remote_address", return_value=None):
            assert get_rate_limit_key(mock_request) == "unknown"


class TestCheckInMemoryRateLimit:
    async def test_new_client_gets_burst_minus_one(self, mock_settings: MagicMock) -> None:
        with patch("src.cybertask.core.rate_limit.get_settings", return_value=mock_settings):
            assert await _check_in_memory_rate_limit("new-client") is True

        bucket = rate_limit._rate_limit_buckets["new-client"]
        assert bucket["tokens"] == pytest.approx(mock_settings.global_rate_limit_burst - 1, abs=0.1)

    async def test_denies_request_when_bucket_empty(self, mock_settings: MagicMock) -> None:
        mock_settings.global_rate_limit_burst = 2

        with patch("src.cybertask.core.rate_limit.get_settings", return_value=mock_settings):
            assert await _check_in_memory_rate_limit("exhaust-client") is True
            assert await _check_in_memory_rate_limit("exhaust-client") is True
            assert await _check_in_memory_rate_limit("exhaust-client") is False

    async def test_replenishes_tokens_over_time(self, mock_settings: MagicMock) -> None:
        mock_settings.global_rate_limit_burst = 2

        with patch("src.cybertask.core.rate_limit.get_settings", return_value=mock_settings):
            await _check_in_memory_rate_limit("replenish-client")
            await _check_in_memory_rate_limit("replenish-client")
            assert await _check_in_memory_rate_limit("replenish-client") is False

            rate_limit._rate_limit_buckets["replenish-client"]["last_update"] = time.time() - 0.5

            assert await _check_in_memory_rate_limit("replenish-client") is True

    async def test_tokens_capped_at_burst_limit(self, mock_settings: MagicMock) -> None:
        mock_settings.global_rate_limit_burst = 5
        mock_settings.global_rate_limit_per_second = 100

        with patch("src.cybertask.core.rate_limit.get_settings", return_value=mock_settings):
            await _check_in_memory_rate_limit("cap-client")
            bucket = rate_limit._rate_limit_buckets["cap-client"]
            bucket["last_update"] = time.time() - 1000
            await _check_in_memory_rate_limit("cap-client")

        assert bucket["tokens"] <= mock_settings.global_rate_limit_burst

    async def test_separate_buckets_per_client(self, mock_settings: MagicMock) -> None:
        mock_settings.global_rate_limit_burst = 1

        with patch("src.cybertask.core.rate_limit.get_settings", return_value=mock_settings):
            assert await _check_in_memory_rate_limit("client1") is True
            assert await _check_in_memory_rate_limit("client1") is False
            assert await _check_in_memory_rate_limit("client2") is True


class TestGlobalRateLimitMiddleware:
    @pytest.mark.parametrize("path", ["/health", "/metrics", "/docs", "/openapi.json", "/redoc"])
    async def test_exempt_paths_bypass_rate_limit(
        self, mock_request: MagicMock, path: str
    ) -> None:
        call_next = AsyncMock(return_value=Response(content=b"OK"))
        mock_request.url.path = path

        response = await global_rate_limit_middleware(mock_request, call_next)

        assert response.body == b"OK"

    async def test_returns_429_envelope_when_rate_limited(
        self, mock_request: MagicMock, mock_settings: MagicMock
    ) -> None:
        mock_settings.global_rate_limit_burst = 1
        call_next = AsyncMock(return_value=Response(content=b"Success"))

        with (
            patch("src.cybertask.core.rate_limit.get_settings", return_value=mock_settings),
            patch("src.cybertask.core.rate_limit.get_remote_address", return_value="limited"),
            patch(
                "src.cybertask.core.rate_limit.get_redis", new_callable=AsyncMock
            ) as mock_get_redis,
        ):
            mock_get_redis.return_value = None
            first = await global_rate_limit_middleware(mock_request, call_next)
            second = await global_rate_limit_middleware(mock_request, call_next)

        assert first.body == b"Success"
        assert second.status_code == 429
        assert second.headers["Retry-After"] == "1"
        body = json.loads(second.body)
        assert body["success"] is False
        assert body["error"] == "RATE_LIMIT_EXCEEDED"
        call_next.assert_called_once_with(mock_request)

    async def test_testing_environment_is_never_limited(self, mock_request: MagicMock) -> None:
        call_next = AsyncMock(return_value=Response(content=b"OK"))

        for _ in range(50):
            response = await global_rate_limit_middleware(mock_request, call_next)
            assert response.body == b"OK"


class TestCheckGlobalRateLimit:
    async def test_uses_redis_when_available(self, mock_settings: MagicMock) -> None:
        mock_redis = AsyncMock()
        mock_redis.script_load = AsyncMock(return_value="script-sha")
        mock_redis.evalsha = AsyncMock(return_value=1)

        with (
            patch("src.cybertask.core.rate_limit.get_settings", return_value=mock_settings),
            patch(
                "src.cybertask.core.rate_limit.get_redis", new_callable=AsyncMock
            ) as mock_get_redis,
        ):
            mock_get_redis.return_value = mock_redis
            result = await rate_limit._check_global_rate_limit("redis-ip")

        assert result is True
        mock_redis.evalsha.assert_called_once()
        assert mock_redis.evalsha.call_args.args[2] == "cybertask:ratelimit:redis-ip"
        assert "redis-ip" not in rate_limit._rate_limit_buckets

    async def test_falls_back_to_memory_on_redis_error(self, mock_settings: MagicMock) -> None:
        rate_limit._script_sha = "stale-sha"
        mock_redis = AsyncMock()
        mock_redis.evalsha = AsyncMock(side_effect=Exception("NOSCRIPT"))

        with (
            patch("src.cybertask.core.rate_limit.get_settings", return_value=mock_settings),
            patch(
                "src.cybertask.core.rate_limit.get_redis", new_callable=AsyncMock
            ) as mock_get_redis,
        ):
            mock_get_redis.return_value = mock_redis
            result = await rate_limit._check_global_rate_limit("error-ip")

        assert result is True
        assert "error-ip" in rate_limit._rate_limit_buckets
        assert rate_limit._script_sha is None
