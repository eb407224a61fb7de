"""
Redis client initialization and connection management.

Redis backs the token blacklist and the order-item message event channel.
Both uses degrade gracefully when Redis is down.
"""

import logging

import redis.asyncio as redis
from adorder.app.core.config import settings

logger = logging.getLogger(__name__)

# Module-level async client; connections are opened lazily on first command
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Return the shared Redis client.

    Looked up at call time, so replacing ``redis_client`` (tests do) takes
    effect everywhere.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Check Redis reachability for the health endpoint.

    Returns:
        True if Redis answered, False otherwise
    """
    try:
        return bool(await redis_client.ping())
    except Exception:
        return False


async def close_redis() -> None:
    """Release the connection pool on application shutdown."""
    try:
        await redis_client.aclose()
    except Exception as e:
        logger.warning("Error closing Redis client: %s", e)
