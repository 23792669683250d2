"""
Redis client initialization and connection management.

Redis holds the session revocation list.
"""

import logging
import redis.asyncio as redis
from buffet_ledger.app.core.config import settings

logger = logging.getLogger(__name__)

# Connection is opened lazily on first command
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.

    Used as a FastAPI dependency so tests can substitute an in-memory client.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except redis.RedisError:
        logger.warning("Redis ping failed", exc_info=True)
        return False
