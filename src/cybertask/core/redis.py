"""Optional Redis client.

CyberTask runs without Redis; features backed by it (refresh token blacklist,
distributed rate limiting) degrade to database checks or per-process state.
"""

from redis.asyncio import ConnectionPool, Redis

from src.cybertask.core.config import get_settings
from src.cybertask.core.logging import get_logger

logger = get_logger(__name__)

_pool: ConnectionPool | None = None
_redis: Redis | None = None
_connection_attempted: bool = False


async def get_redis() -> Redis | None:
    """Return the shared Redis client, or None when it is not available.

    The first call connects lazily. A failed attempt is not retried until
    close_redis() or reset_redis_state() is called.
    """
    global _pool, _redis, _connection_attempted

    if _redis is not None:
        return _redis
    if _connection_attempted:
        return None

    _connection_attempted = True
    settings = get_settings()
    if not settings.redis_url:
        logger.info("Redis not configured (REDIS_URL not set)")
        return None

    try:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            decode_responses=True,
        )
        _redis = Redis(connection_pool=_pool)
        await _redis.ping()  # type: ignore[misc]
        logger.info("Redis connected", max_connections=settings.redis_pool_size)
        return _redis
    except Exception as e:
        logger.warning("Redis connection failed, continuing without it", error=str(e))
        await _teardown()
        return None


async def _teardown() -> None:
    global _pool, _redis
    if _redis is not None:
        await _redis.aclose()
    if _pool is not None:
        await _pool.disconnect()
    _redis = None
    _pool = None


async def close_redis() -> None:
    """Close the Redis connection pool. Called during application shutdown."""
    global _connection_attempted
    if _redis is not None:
        logger.info("Closing Redis connection")
    await _teardown()
    _connection_attempted = False


def reset_redis_state() -> None:
    """Forget the current client without closing it (tests only)."""
    global _pool, _redis, _connection_attempted
    _redis = None
    _pool = None
    _connection_attempted = False
