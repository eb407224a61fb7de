"""
Token Revocation System using Redis.

Implements token blacklisting to immediately invalidate JWT tokens
when users log out or are deactivated.
"""

import logging

from adorder.app.core.redis_client import get_redis
from adorder.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        user_id: User ID who owns the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        client = await get_redis()
        # Tokens expire on their own; the blacklist entry only needs to outlive them
        ttl_seconds = settings.access_token_expire_minutes * 60
        await client.setex(f"{TOKEN_BLACKLIST_PREFIX}{token}", ttl_seconds, str(user_id))
        return True
    except Exception as e:
        logger.warning("Error revoking token for user %s: %s", user_id, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open when Redis is unreachable; the database active-user check
    in ``get_current_user`` still applies.
    """
    try:
        client = await get_redis()
        exists = await client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}")
        return exists > 0
    except Exception as e:
        logger.warning("Error checking token revocation: %s", e)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Revoke all active tokens for a specific user.

    Called when an administrator deactivates an account.
    """
    try:
        client = await get_redis()
        ttl_seconds = settings.access_token_expire_minutes * 60
        await client.setex(f"{USER_TOKENS_PREFIX}{user_id}:revoked", ttl_seconds, "1")
        return True
    except Exception as e:
        logger.warning("Error revoking all tokens for user %s: %s", user_id, e)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    """Check if all tokens for a user have been revoked."""
    try:
        client = await get_redis()
        exists = await client.exists(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return exists > 0
    except Exception as e:
        logger.warning("Error checking user token revocation: %s", e)
        return False
