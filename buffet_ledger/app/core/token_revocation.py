"""
Session Token Revocation using Redis.

A signed session token stays cryptographically valid until it expires, so
logging out records the token in a blacklist for the rest of its lifetime.
"""

import hashlib
import logging
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:session:"


def _token_key(token: str) -> str:
    # Tokens are long; key on a digest instead of the raw value
    return f"{TOKEN_BLACKLIST_PREFIX}{hashlib.sha256(token.encode('utf-8')).hexdigest()}"


async def revoke_token(redis_client, token: str, user_id: int, ttl_seconds: int) -> bool:
    """
    Revoke a session token by adding it to the blacklist.

    Args:
        redis_client: Async Redis client
        token: The session token to revoke
        user_id: Owner of the token (stored for audit purposes)
        ttl_seconds: Remaining token lifetime; the entry expires with the token

    Returns:
        True if successfully revoked, False otherwise
    """
    if ttl_seconds <= 0:
        # Already expired, nothing to block
        return True

    try:
        await redis_client.set(_token_key(token), str(user_id), ex=ttl_seconds)
        return True
    except RedisError:
        logger.exception("Error revoking session token for user %s", user_id)
        return False


async def is_token_revoked(redis_client, token: str) -> bool:
    """
    Check if a token has been revoked.

    Returns:
        True if token is revoked, False otherwise
    """
    try:
        exists = await redis_client.exists(_token_key(token))
        return exists > 0
    except RedisError:
        # Fail open: the cookie is already cleared client-side on logout
        logger.exception("Error checking session token revocation")
        return False
