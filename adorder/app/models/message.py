"""
Order Item Message Database Model.

Conversation thread between an order owner and the administrators about one
order item.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from adorder.app.db.session import Base
from adorder.app.models.enums import MessageAuthorRole


class OrderItemMessage(Base):
    __tablename__ = "order_item_messages"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=False, index=True)

    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    author_role = Column(Enum(MessageAuthorRole), nullable=False)

    message = Column(Text, nullable=False)
    message_type = Column(String(30), default="general", nullable=False)

    # State
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)

    author = relationship("User")

    def __repr__(self):
        return f"<OrderItemMessage(id={self.id}, item={self.order_item_id}, author={self.author_id})>"
