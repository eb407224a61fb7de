"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from adorder.app.core.jwt import decode_access_token
from adorder.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from adorder.app.core.exceptions import AuthenticationError, TokenRevokedError
from adorder.app.db.session import get_db
from adorder.app.models.user import User

# HTTP Bearer security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks:
    1. Validates JWT token signature and expiry
    2. Checks if token has been explicitly revoked
    3. Checks if all user tokens have been revoked (account deactivated)
    4. Verifies the user still exists and is active

    The returned payload carries the tier as stored in the database, not the
    tier claimed by the token.

    Args:
        request: Current request; the user id is kept on its state for the access log
        credentials: HTTP Bearer token from request header
        db: Database session for real-time user status check

    Returns:
        Token payload enriched with ``tier``, ``email`` and ``token``

    Raises:
        AuthenticationError: 401 if authentication fails for any reason
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")

    token = credentials.credentials

    # 1. Decode and validate JWT
    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    # 2. Check if this specific token has been revoked
    if await is_token_revoked(token):
        raise TokenRevokedError()

    # 3. Check if all user tokens have been revoked
    if await are_user_tokens_revoked(user_id):
        raise AuthenticationError("User access has been revoked")

    # 4. Real-time database check
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    request.state.user_id = user.id
    payload["tier"] = user.tier.value
    payload["email"] = user.email
    payload["token"] = token
    return payload
