"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

# Set APP_ENV to testing before any app imports to disable rate limiting
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256-signing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
# Cheap Argon2 parameters; the production defaults make every login take ~100ms
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "8192")

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import AsyncGenerator, Generator

import pytest
from fakeredis import aioredis as fakeredis_aio
from redis.asyncio import Redis

from src.cybertask.core import rate_limit
from src.cybertask.core import redis as redis_core
from src.cybertask.core.config import get_settings
from src.cybertask.core.realtime import connection_manager
from src.cybertask.core.shutdown import request_tracker

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_process_state() -> Generator[None]:
    """Sockets and the shutdown flag are process globals."""
    connection_manager.reset()
    request_tracker.reset()
    yield
    connection_manager.reset()
    request_tracker.reset()


# --- Rate Limit Fixtures ---


@pytest.fixture
def reset_rate_limit_buckets() -> Generator[None]:
    """Reset rate limit in-memory state.

    Use this fixture when you need to ensure rate limit state is clean.
    """
    rate_limit._rate_limit_buckets.clear()
    rate_limit._script_sha = None
    yield
    rate_limit._rate_limit_buckets.clear()
    rate_limit._script_sha = None


# --- Redis Test Fixtures (shared) ---


@pytest.fixture
async def fake_redis() -> AsyncGenerator[Redis]:
    """Provides a fakeredis client for testing."""
    client = fakeredis_aio.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def mock_redis(fake_redis: Redis, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[Redis]:
    """Patches get_redis() to return the fakeredis client.

    Patches every module that imported get_redis so the fake is used everywhere.
    """
    redis_core.reset_redis_state()

    async def _get_fake_redis() -> Redis:
        return fake_redis

    monkeypatch.setattr("src.cybertask.core.redis.get_redis", _get_fake_redis)
    monkeypatch.setattr("src.cybertask.core.cache.get_redis", _get_fake_redis)
    monkeypatch.setattr("src.cybertask.core.rate_limit.get_redis", _get_fake_redis)
    monkeypatch.setattr("src.cybertask.core.health.get_redis", _get_fake_redis)
    yield fake_redis
    redis_core.reset_redis_state()


@pytest.fixture
async def mock_redis_unavailable(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[None]:
    """Patches get_redis() to return None (simulates Redis unavailable)."""
    redis_core.reset_redis_state()

    async def _get_none() -> None:
        return None

    monkeypatch.setattr("src.cybertask.core.redis.get_redis", _get_none)
    monkeypatch.setattr("src.cybertask.core.cache.get_redis", _get_none)
    monkeypatch.setattr("src.cybertask.core.rate_limit.get_redis", _get_none)
    monkeypatch.setattr("src.cybertask.core.health.get_redis", _get_none)
    yield
    redis_core.reset_redis_state()
