"""Rate limiting.

Two layers:
1. A global per-IP token bucket applied to every request (DoS protection).
   Uses an atomic Redis Lua script when Redis is available, otherwise an
   in-process bucket.
2. slowapi decorators on sensitive endpoints (login, register, password reset).

Both are disabled when APP_ENV=testing.
"""

import asyncio
import time
from collections import defaultdict

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.cybertask.core.config import get_settings
from src.cybertask.core.exceptions import error_body
from src.cybertask.core.logging import get_logger
from src.cybertask.core.redis import get_redis

logger = get_logger(__name__)

EXEMPT_PATHS = frozenset({"/health", "/metrics", "/docs", "/openapi.json", "/redoc"})

_rate_limit_buckets: dict[str, dict[str, float]] = defaultdict(dict)
_rate_limit_lock = asyncio.Lock()

# KEYS[1] = bucket key; ARGV = rate, burst, now, ttl. Returns 1 if allowed.
_REDIS_TOKEN_BUCKET_SCRIPT = """
local key = KEYS[1]
local rate = tonumber(ARGV[1])
local burst = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local ttl = tonumber(ARGV[4])

local bucket = redis.call('HMGET', key, 'tokens', 'last_update')
local tokens = tonumber(bucket[1]) or burst
local last_update = tonumber(bucket[2]) or now

tokens = math.min(burst, tokens + (now - last_update) * rate)

local allowed = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
end
redis.call('HSET', key, 'tokens', tokens, 'last_update', now)
redis.call('EXPIRE', key, ttl)
return allowed
"""

_script_sha: str | None = None


def get_rate_limit_key(request: Request) -> str:
    """Rate limit key: client IP only.

    Never derive the key from unauthenticated headers; a client could rotate
    them to get a fresh bucket on every request.
    """
    return get_remote_address(request) or "unknown"


def create_limiter() -> Limiter:
    """Create the slowapi limiter (Redis storage when configured)."""
    settings = get_settings()

    if settings.app_env == "testing":
        return Limiter(key_func=get_rate_limit_key, enabled=False)

    if settings.redis_url:
        logger.info("Endpoint rate limiter using Redis backend")
        return Limiter(key_func=get_rate_limit_key, storage_uri=settings.redis_url)

    logger.info("Endpoint rate limiter using in-memory backend (not distributed)")
    return Limiter(key_func=get_rate_limit_key)


limiter = create_limiter()


async def _check_in_memory_rate_limit(client_ip: str) -> bool:
    """Token bucket in process memory. Returns True if the request is allowed."""
    settings = get_settings()
    rate = settings.global_rate_limit_per_second
    burst = settings.global_rate_limit_burst
    now = time.time()

    async with _rate_limit_lock:
        bucket = _rate_limit_buckets[client_ip]
        if not bucket:
            bucket.update(tokens=float(burst), last_update=now)

        elapsed = now - bucket["last_update"]
        bucket["tokens"] = min(burst, bucket["tokens"] + elapsed * rate)
        bucket["last_update"] = now

        if bucket["tokens"] >= 1:
            bucket["tokens"] -= 1
            return True
        return False


async def _check_redis_rate_limit(redis: object, client_ip: str) -> bool:
    """Token bucket in Redis, evaluated atomically by the Lua script."""
    global _script_sha
    settings = get_settings()
    rate = settings.global_rate_limit_per_second
    burst = settings.global_rate_limit_burst
    ttl = int(burst / rate) + 60

    if _script_sha is None:
        _script_sha = await redis.script_load(_REDIS_TOKEN_BUCKET_SCRIPT)  # type: ignore[attr-defined]

    result = await redis.evalsha(  # type: ignore[attr-defined]
        _script_sha,
        1,
        f"cybertask:ratelimit:{client_ip}",
        str(rate),
        str(burst),
        str(time.time()),
        str(ttl),
    )
    return bool(int(result) == 1)


async def _check_global_rate_limit(client_ip: str) -> bool:
    global _script_sha
    settings = get_settings()
    if settings.app_env == "testing":
        return True

    redis = await get_redis()
    if redis is None:
        return await _check_in_memory_rate_limit(client_ip)

    try:
        return await _check_redis_rate_limit(redis, client_ip)
    except Exception as e:
        logger.warning(
            "Redis rate limit check failed, falling back to in-memory",
            error=str(e),
            client_ip=client_ip,
        )
        # Script cache is lost if Redis restarted
        _script_sha = None
        return await _check_in_memory_rate_limit(client_ip)


async def global_rate_limit_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Reject clients that exceed the global per-IP request rate with 429."""
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    client_ip = get_rate_limit_key(request)
    if not await _check_global_rate_limit(client_ip):
        logger.warning("Global rate limit exceeded", client_ip=client_ip, path=request.url.path)
        return JSONResponse(
            status_code=429,
            content=error_body("Too many requests. Please slow down.", "RATE_LIMIT_EXCEEDED"),
            headers={"Retry-After": "1"},
        )

    return await call_next(request)
