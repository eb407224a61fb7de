"""
Customer book models.

Advertisers keep their own clients (businesses they buy ads for) and the
search keywords tracked for each.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from adorder.app.db.session import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    business_name = Column(String(255), nullable=False)
    place_id = Column(String(100), nullable=True)
    place_url = Column(String(500), nullable=True)
    contact = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Customer(id={self.id}, owner={self.user_id}, name='{self.business_name}')>"


class CustomerKeyword(Base):
    __tablename__ = "customer_keywords"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    keyword = Column(String(100), nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)
