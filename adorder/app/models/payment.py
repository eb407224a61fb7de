"""
Payment transaction model.

Tracks a point top-up from creation through the payment gateway result.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, BigInteger, String, ForeignKey, DateTime, Enum, JSON
from sqlalchemy.sql import func
from adorder.app.db.session import Base
from adorder.app.models.enums import PaymentStatus


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(BigInteger, nullable=False)  # money paid
    point_amount = Column(BigInteger, nullable=False)  # points credited on success
    status = Column(Enum(PaymentStatus), default=PaymentStatus.pending, nullable=False, index=True)

    # Gateway
    payment_method = Column(String(30), nullable=False)
    pg_provider = Column(String(30), nullable=True)
    pg_order_id = Column(String(64), unique=True, nullable=False)
    pg_transaction_id = Column(String(128), nullable=True)
    pg_response = Column(JSON, nullable=True)

    # Client info
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)

    error_message = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<PaymentTransaction(id={self.id}, user={self.user_id}, status='{self.status.value}', amount={self.amount})>"
