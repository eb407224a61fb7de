"""
Product catalogue models.

Products carry a vendor base price; the price a user pays is that base price
scaled by the multiplier of the user's tier.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, BigInteger, String, Text, Boolean, Float, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from adorder.app.db.session import Base
from adorder.app.models.enums import UserTier


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    unit = Column(String(20), default="건", nullable=False)
    vendor_base_price = Column(BigInteger, nullable=False)
    currency = Column(String(10), default="KRW", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, server_default=func.now(), nullable=False)

    input_definitions = relationship(
        "ProductInputDefinition",
        back_populates="product",
        order_by="ProductInputDefinition.sort_order",
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"


class ProductInputDefinition(Base):
    """
    One field a buyer fills in per order item (keyword, place URL, start date...).
    """
    __tablename__ = "product_input_definitions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    field_key = Column(String(64), nullable=False)
    label = Column(String(255), nullable=False)
    field_type = Column(String(20), default="TEXT", nullable=False)  # TEXT | URL | DATE | NUMBER
    required = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    product = relationship("Product", back_populates="input_definitions")


class TierPricingRule(Base):
    """Price multiplier per user tier."""
    __tablename__ = "tier_pricing_rules"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tier = Column(Enum(UserTier), unique=True, nullable=False)
    multiplier = Column(Float, nullable=False, default=1.0)

    def __repr__(self):
        return f"<TierPricingRule(tier='{self.tier.value}', multiplier={self.multiplier})>"
