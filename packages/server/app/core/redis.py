"""
Redis connection and the session revocation list.

Revoked session token IDs (JWT ``jti`` claims) are stored as
``syncnotes:revoked-session:<jti>`` keys that expire with the token itself,
so the list never outgrows the set of tokens that could still be presented.
"""

from __future__ import annotations

import redis.asyncio as redis

from app.core.config import get_settings

settings = get_settings()

REVOKED_SESSION_PREFIX = "syncnotes:revoked-session:"

_redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


async def close_redis() -> None:
    """Close the client on shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


async def add_revoked_session(jti: str, ttl_seconds: int) -> None:
    client = await get_redis()
    await client.setex(f"{REVOKED_SESSION_PREFIX}{jti}", ttl_seconds, "1")


async def is_session_revoked(jti: str) -> bool:
    client = await get_redis()
    return await client.exists(f"{REVOKED_SESSION_PREFIX}{jti}") > 0
