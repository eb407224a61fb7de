"""
Cancellation Request database model.

Pause / cancel / refund requests raised by order owners against a single
order item and decided by an administrator.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from adorder.app.db.session import Base
from adorder.app.models.enums import CancellationRequestType, CancellationRequestStatus


class CancellationRequest(Base):
    """
    Cancellation Request model.

    Workflow: pending -> approved | rejected; approved -> completed.
    At most one pending request per order item, enforced by a partial unique index.
    """
    __tablename__ = "cancellation_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    request_type = Column(Enum(CancellationRequestType), nullable=False)
    status = Column(Enum(CancellationRequestStatus), default=CancellationRequestStatus.pending, nullable=False, index=True)

    reason = Column(Text, nullable=False)
    details = Column(Text, nullable=True)

    # Decision
    admin_note = Column(Text, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    processed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)

    order_item = relationship("OrderItem")
    requester = relationship("User", foreign_keys=[user_id])
    processor = relationship("User", foreign_keys=[processed_by])

    __table_args__ = (
        Index(
            "ix_cancellation_requests_one_pending",
            "order_item_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self):
        return f"<CancellationRequest(id={self.id}, item={self.order_item_id}, type='{self.request_type.value}', status='{self.status.value}')>"
