"""
User database model.

A user is both the login identity and the wallet holder: ``balance`` is the
maintained running total of the user's point ledger.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, BigInteger
from sqlalchemy.sql import func
from adorder.app.db.session import Base
from adorder.app.models.enums import UserTier


class User(Base):
    """
    User model for authentication, tier pricing and the points wallet.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    tier = Column(Enum(UserTier), default=UserTier.basic, nullable=False)

    # Running balance; only LedgerService writes it, always together with a ledger entry
    balance = Column(BigInteger, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', tier='{self.tier.value}')>"
