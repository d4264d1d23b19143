"""Refresh token blacklist backed by Redis.

The database is authoritative for revocation; Redis lets the refresh endpoint
reject a revoked token without touching the refresh_tokens table.
"""

from src.cybertask.core.redis import get_redis

PREFIX_REVOKED_REFRESH = "cybertask:revoked_refresh"


def _key(token_hash: str) -> str:
    return f"{PREFIX_REVOKED_REFRESH}:{token_hash}"


async def blacklist_token(token_hash: str, ttl: int) -> bool:
    """Mark a refresh token hash as revoked for ``ttl`` seconds.

    Returns:
        True if written to Redis, False if Redis is unavailable or ttl <= 0.
    """
    if ttl <= 0:
        return False
    redis = await get_redis()
    if not redis:
        return False
    await redis.setex(_key(token_hash), ttl, "1")
    return True


async def is_token_blacklisted(token_hash: str) -> bool | None:
    """Check the blacklist.

    Returns:
        True if revoked, False if Redis confirms it is not, None if Redis is
        unavailable (the caller must check the database).
    """
    redis = await get_redis()
    if not redis:
        return None
    return await redis.exists(_key(token_hash)) > 0


async def blacklist_tokens(tokens_with_ttls: list[tuple[str, int]]) -> int:
    """Bulk blacklist (token_hash, ttl) pairs in one pipeline.

    Entries with a non-positive TTL are already expired and are skipped.

    Returns:
        Number of hashes written (0 if Redis is unavailable).
    """
    live = [(token_hash, ttl) for token_hash, ttl in tokens_with_ttls if ttl > 0]
    if not live:
        return 0
    redis = await get_redis()
    if not redis:
        return 0

    pipe = redis.pipeline()
    for token_hash, ttl in live:
        pipe.setex(_key(token_hash), ttl, "1")
    await pipe.execute()
    return len(live)
