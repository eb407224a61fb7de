"""
Order and Order Item database models.

One order is one checkout; each order item is one billable line measured as
daily quantity x 7 x weeks.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, BigInteger, String, ForeignKey, DateTime, Enum, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from adorder.app.db.session import Base
from adorder.app.models.enums import OrderStatus, UserTier


class Order(Base):
    """
    Order header.

    Owned exclusively by the purchasing user. ``order_details`` keeps a snapshot
    of the cart as submitted.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Product snapshot
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    product_name = Column(String(255), nullable=False)
    unit_price = Column(BigInteger, nullable=False)
    user_tier = Column(Enum(UserTier), nullable=True)

    # Totals
    quantity = Column(BigInteger, nullable=False)
    total_price = Column(BigInteger, nullable=False)
    order_details = Column(JSON, nullable=True)

    status = Column(Enum(OrderStatus), default=OrderStatus.received, nullable=False, index=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), onupdate=datetime.utcnow, nullable=False)

    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")

    @property
    def order_number(self) -> str:
        return f"#{self.id:08d}"

    def __repr__(self):
        return f"<Order(id={self.id}, user={self.user_id}, status='{self.status.value}', total={self.total_price})>"


class OrderItem(Base):
    """
    Order line.

    Invariants: total_qty == daily_qty * 7 * weeks and item_price == total_qty * unit_price.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    client_name = Column(String(255), nullable=False)
    daily_qty = Column(Integer, nullable=False)
    weeks = Column(Integer, nullable=False)
    total_qty = Column(BigInteger, nullable=False)
    unit_price = Column(BigInteger, nullable=False)
    item_price = Column(BigInteger, nullable=False)

    # Per-product deliverable fields (keyword, URL, dates...)
    item_details = Column(JSON, nullable=True)

    status = Column(Enum(OrderStatus), default=OrderStatus.received, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), onupdate=datetime.utcnow, nullable=False)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem(id={self.id}, order={self.order_id}, status='{self.status.value}')>"
