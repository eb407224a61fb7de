"""
Order Schemas.

Checkout payloads use the camelCase keys the storefront sends; read models
use snake_case.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List, Dict, Any
from adorder.app.models.enums import OrderStatus, UserTier
from adorder.app.schemas.product import ProductInputDefinitionResponse


class OrderItemInput(BaseModel):
    """One cart line as submitted. Totals are recomputed server-side."""
    client_name: str = Field(..., alias="clientName", min_length=1, max_length=255)
    daily_count: int = Field(..., alias="dailyCount")
    weeks: int
    total_count: Optional[int] = Field(default=None, alias="totalCount")
    estimated_price: Optional[int] = Field(default=None, alias="estimatedPrice")
    details: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class OrderConfirmRequest(BaseModel):
    product_id: Optional[int] = Field(default=None, alias="productId")
    product_name: str = Field(..., alias="productName", min_length=1, max_length=255)
    unit_price: int = Field(..., alias="unitPrice")
    items: List[OrderItemInput] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class OrderConfirmResponse(BaseModel):
    success: bool = True
    order_id: int = Field(..., alias="orderId")
    order_number: str = Field(..., alias="orderNumber")
    total_quantity: int = Field(..., alias="totalQuantity")
    total_price: int = Field(..., alias="totalPrice")
    item_count: int = Field(..., alias="itemCount")
    new_balance: int = Field(..., alias="newBalance")

    class Config:
        populate_by_name = True


class OrderItemResponse(BaseModel):
    id: int
    order_id: int
    client_name: str
    daily_qty: int
    weeks: int
    total_qty: int
    unit_price: int
    item_price: int
    item_details: Optional[Dict[str, Any]] = None
    status: OrderStatus
    created_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    product_id: Optional[int] = None
    product_name: str
    unit_price: int
    user_tier: Optional[UserTier] = None
    quantity: int
    total_price: int
    status: OrderStatus
    order_details: Optional[Dict[str, Any]] = None
    confirmed_at: Optional[datetime] = None
    created_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderDetailResponse(BaseModel):
    """Order header with items, the service period and the product's input fields."""
    order: OrderResponse
    start_date: date
    end_date: date
    period_text: str
    input_definitions: List[ProductInputDefinitionResponse] = []


class OrderItemDetailResponse(BaseModel):
    item: OrderItemResponse
    order_id: int
    order_number: str
    product_name: str
    product_unit: Optional[str] = None
    order_status: OrderStatus
    input_definitions: List[ProductInputDefinitionResponse] = []
