"""
Admin API Endpoints.

Provides admin-only user management, balance adjustment and audit trail endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from adorder.app.db.session import get_db
from adorder.app.models.user import User
from adorder.app.models.enums import LedgerTransactionType, UserTier
from adorder.app.schemas.admin import (
    UserCreate, UserListResponse, UserListItem, DeactivateUserRequest,
    BalanceAdjustRequest, BalanceAdjustResponse,
    AdminActionResponse, AuditTrailResponse, AuditLogResponse
)
from adorder.app.core.guards import require_capability
from adorder.app.core.permissions import Capability
from adorder.app.core.exceptions import ConflictError, InvalidArgumentError, ResourceNotFoundError
from adorder.app.core.security import get_password_hash
from adorder.app.core.token_revocation import revoke_all_user_tokens
from adorder.app.domain.wallet.ledger_service import LedgerService
from adorder.app.services.audit import log_event, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/users", response_model=UserListItem, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    admin: dict = Depends(require_capability(Capability.manage_users)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an account (admin-only). Duplicate emails are rejected.
    """
    existing = await db.execute(select(User.id).where(User.email == data.email))
    if existing.first() is not None:
        raise ConflictError("Email already registered", ConflictError.DUPLICATE)

    user = User(
        email=data.email,
        display_name=data.display_name,
        hashed_password=get_password_hash(data.password),
        tier=data.tier,
        is_active=True,
        balance=0,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    response = UserListItem.model_validate(user)

    await log_event(
        db=db,
        action=AuditAction.USER_CREATED,
        actor_id=admin["user_id"],
        actor_email=admin.get("email"),
        target_user_id=response.id,
        metadata={"email": response.email, "tier": response.tier.value}
    )
    return response


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_capability(Capability.manage_users)),
    db: AsyncSession = Depends(get_db)
):
    """
    List all users (admin-only), newest first.
    """
    total_result = await db.execute(select(func.count(User.id)))
    total = total_result.scalar()

    offset = (page - 1) * page_size
    query = select(User).order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)
    users = result.scalars().all()

    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/users/{user_id}/deactivate", response_model=AdminActionResponse)
async def deactivate_user(
    user_id: int,
    request: DeactivateUserRequest,
    admin: dict = Depends(require_capability(Capability.manage_users)),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a user and revoke all their active tokens (admin-only).
    """
    result = await db.execute(select(User).where(User.id == user_id))
    target_user = result.scalar_one_or_none()

    if not target_user:
        raise ResourceNotFoundError("User", user_id)

    if target_user.id == admin["user_id"]:
        raise InvalidArgumentError("Cannot deactivate yourself")

    if target_user.tier == UserTier.admin:
        raise InvalidArgumentError("Cannot deactivate another admin user")

    if not target_user.is_active:
        raise ConflictError("User is already inactive", ConflictError.ALREADY_PROCESSED)

    target_user.is_active = False
    email = target_user.email
    await db.commit()

    await revoke_all_user_tokens(user_id)

    await log_event(
        db=db,
        action=AuditAction.USER_DEACTIVATED,
        actor_id=admin["user_id"],
        actor_email=admin.get("email"),
        target_user_id=user_id,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{email}' has been deactivated",
        user_id=user_id,
        action=AuditAction.USER_DEACTIVATED
    )


@router.post("/users/{user_id}/balance-adjust", response_model=BalanceAdjustResponse)
async def adjust_balance(
    user_id: int,
    data: BalanceAdjustRequest,
    admin: dict = Depends(require_capability(Capability.adjust_balance)),
    db: AsyncSession = Depends(get_db)
):
    """
    Manual balance correction (admin-only).

    The amount is applied with the sign given; the non-negative guard does not apply.
    """
    entry = await LedgerService.append_entry(
        db,
        user_id=user_id,
        transaction_type=LedgerTransactionType.admin_adjust,
        amount=data.amount,
        memo=data.memo or "Manual adjustment",
    )
    await db.commit()

    response = BalanceAdjustResponse(
        user_id=user_id,
        transaction_type=entry.transaction_type,
        amount=entry.amount,
        balance_after=entry.balance_after,
        ledger_entry_id=entry.id
    )

    await log_event(
        db=db,
        action=AuditAction.BALANCE_ADJUSTED,
        actor_id=admin["user_id"],
        actor_email=admin.get("email"),
        target_user_id=user_id,
        metadata={"amount": response.amount, "balance_after": response.balance_after, "memo": data.memo}
    )
    return response


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    target_user_id: int = Query(None, description="Filter by target user ID"),
    action: str = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs"),
    admin: dict = Depends(require_capability(Capability.view_audit_log)),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail (admin-only), most recent first.
    """
    logs = await get_audit_trail(db=db, target_user_id=target_user_id, action=action, limit=limit)

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
