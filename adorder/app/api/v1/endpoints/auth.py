"""
Authentication API endpoints.

Provides login, logout, password change and user info endpoints.
Accounts are created by administrators (see ``admin_users``).
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from adorder.app.db.session import get_db
from adorder.app.models.user import User
from adorder.app.schemas.auth import UserLogin, TokenResponse, UserResponse, PasswordChange, MessageResponse
from adorder.app.core.security import get_password_hash, verify_password
from adorder.app.core.jwt import create_access_token
from adorder.app.core.dependencies import get_current_user
from adorder.app.core.exceptions import AuthenticationError, InvalidArgumentError, ResourceNotFoundError
from adorder.app.core.token_revocation import revoke_token
from adorder.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


def client_ip(request: Request):
    return request.client.host if request.client else None


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Logs successful and failed login attempts for security monitoring.
    Unknown email, wrong password and inactive accounts all answer 401 alike.
    """
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password) or not user.is_active:
        if not user:
            reason = "User not found"
        elif not user.is_active:
            reason = "Account is inactive"
        else:
            reason = "Invalid password"
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=user.id if user else None,
            actor_email=credentials.email,
            metadata={"reason": reason},
            ip_address=client_ip(request)
        )
        raise AuthenticationError("Invalid credentials")

    jwt_payload = {
        "sub": user.email,
        "user_id": user.id,
        "tier": user.tier.value,
    }
    access_token = create_access_token(data=jwt_payload)

    response = TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        email=user.email,
        tier=user.tier
    )

    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        actor_id=response.user_id,
        actor_email=response.email,
        ip_address=client_ip(request)
    )

    return response


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information, including the wallet balance.
    """
    result = await db.execute(select(User).where(User.id == current_user["user_id"]))
    user = result.scalar_one_or_none()

    if not user:
        raise ResourceNotFoundError("User", current_user["user_id"])

    return UserResponse.model_validate(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token."""
    await revoke_token(current_user["token"], current_user["user_id"])

    await log_event(
        db=db,
        action=AuditAction.LOGOUT,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("email"),
        ip_address=client_ip(request)
    )
    return MessageResponse(message="Logged out")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: PasswordChange,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(User).where(User.id == current_user["user_id"]))
    user = result.scalar_one()

    if not verify_password(data.current_password, user.hashed_password):
        raise InvalidArgumentError("Current password is incorrect", error_code="ERR_INVALID_PASSWORD")

    user.hashed_password = get_password_hash(data.new_password)
    await db.commit()

    await log_event(
        db=db,
        action=AuditAction.PASSWORD_CHANGED,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("email")
    )
    return MessageResponse(message="Password changed")
