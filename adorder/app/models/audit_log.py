"""
Audit Log Database Model.

Tracks security-critical events, admin decisions and wallet movements.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from adorder.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking security events and admin actions.

    Events logged:
    - LOGIN_SUCCESS / LOGIN_FAILED / LOGOUT
    - USER_CREATED / USER_DEACTIVATED / BALANCE_ADJUSTED
    - ORDER_CONFIRMED / PAYMENT_COMPLETED
    - CANCELLATION_* decisions
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_email = Column(String(255), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # Who was the target of the action
    target_user_id = Column(Integer, index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_email}, target={self.target_user_id})>"
