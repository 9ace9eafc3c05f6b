"""
Redis connection for the Redis-backed cache store.

One pooled client is shared by the process. A failed connection is
remembered so later lookups fall straight through to the file store.
"""

from typing import Optional

import redis.asyncio as redis
import structlog

logger = structlog.get_logger(__name__)

_redis_client: Optional[redis.Redis] = None
_connection_failed = False


def _display_url(redis_url: str) -> str:
    # Hide credentials
    return redis_url.split("@")[-1] if "@" in redis_url else redis_url.split("//")[-1]


async def get_redis_client(redis_url: Optional[str]) -> Optional[redis.Redis]:
    """
    Return the shared Redis client, connecting on first use.

    Args:
        redis_url: Connection URL, e.g. ``redis://localhost:6379/0``.

    Returns:
        A connected client, or None when Redis is not configured or unreachable.
    """
    global _redis_client, _connection_failed

    if _redis_client is not None:
        return _redis_client

    if _connection_failed:
        return None

    if not redis_url:
        logger.warning("Redis URL not configured", hint="Set LEGALAGENT_REDIS_URL to enable the Redis cache backend")
        _connection_failed = True
        return None

    client = redis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
        socket_timeout=5,
        socket_connect_timeout=5,
        retry_on_timeout=True,
    )
    try:
        await client.ping()
    except redis.RedisError as e:
        logger.error("Redis connection failed", error=str(e), redis_url=_display_url(redis_url))
        await client.aclose()
        _connection_failed = True
        return None

    logger.info("Redis client connected", url=_display_url(redis_url))
    _redis_client = client
    return _redis_client


async def close_redis_client() -> None:
    """Close the shared client and allow a fresh connection attempt."""
    global _redis_client, _connection_failed

    _connection_failed = False
    if _redis_client is None:
        return
    try:
        await _redis_client.aclose()
        logger.info("Redis client closed")
    except redis.RedisError as e:
        logger.warning("Error closing Redis client", error=str(e))
    finally:
        _redis_client = None
