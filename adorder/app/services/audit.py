"""
Audit logging service for tracking security events, admin decisions and wallet movements.

Audit writes happen after the business transaction has committed and never
undo it: a failed audit write is rolled back and logged.
"""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from adorder.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"

    # User administration
    USER_CREATED = "USER_CREATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    BALANCE_ADJUSTED = "BALANCE_ADJUSTED"

    # Orders & wallet
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    PAYMENT_COMPLETED = "PAYMENT_COMPLETED"
    PAYMENT_FAILED = "PAYMENT_FAILED"

    # Cancellation workflow
    CANCELLATION_REQUESTED = "CANCELLATION_REQUESTED"
    CANCELLATION_APPROVED = "CANCELLATION_APPROVED"
    CANCELLATION_REJECTED = "CANCELLATION_REJECTED"
    CANCELLATION_COMPLETED = "CANCELLATION_COMPLETED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_email: Optional[str] = None,
    target_user_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> Optional[AuditLog]:
    """
    Log a security or admin event to the audit log.

    Args:
        db: Database session (the business transaction must already be committed)
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_email: Email of actor
        target_user_id: ID of user being acted upon (if applicable)
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance, or None when the write failed
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_email=actor_email,
        action=action,
        target_user_id=target_user_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    try:
        db.add(audit_log)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("Audit write failed for %s: %s", action, e)
        return None

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    target_user_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_user_id:
        query = query.where(AuditLog.target_user_id == target_user_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
