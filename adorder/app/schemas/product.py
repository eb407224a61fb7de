"""
Product catalogue schemas.
"""

from pydantic import BaseModel
from typing import Optional, List
from adorder.app.models.enums import UserTier


class ProductInputDefinitionResponse(BaseModel):
    id: int
    field_key: str
    label: str
    field_type: str
    required: bool
    sort_order: int

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    """Product as seen by the calling user, priced for their tier."""
    id: int
    name: str
    description: Optional[str] = None
    unit: str
    currency: str
    vendor_base_price: int
    tier: UserTier
    multiplier: float
    tier_price: int


class ProductDetailResponse(ProductResponse):
    input_definitions: List[ProductInputDefinitionResponse] = []
