"""
Point ledger entry model.

Immutable record of every movement of a user's points.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, BigInteger, ForeignKey, DateTime, Enum, String
from sqlalchemy.sql import func
from adorder.app.db.session import Base
from adorder.app.models.enums import LedgerTransactionType


class LedgerEntry(Base):
    """
    Ledger Entry model.

    ``amount`` is signed (charge/refund positive, deduct negative).
    ``balance_after`` is the running balance right after this entry was applied.
    NO updates or deletions allowed.
    """
    __tablename__ = "point_ledger"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    transaction_type = Column(Enum(LedgerTransactionType), nullable=False)
    amount = Column(BigInteger, nullable=False)
    balance_after = Column(BigInteger, nullable=False)

    # Linkage
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    payment_transaction_id = Column(Integer, ForeignKey("payment_transactions.id"), nullable=True)

    memo = Column(String(255), nullable=True)

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, type='{self.transaction_type.value}', amount={self.amount})>"
