"""
Cancellation Request Schemas.

Request bodies take plain strings for the enum-valued fields; the service
validates them so bad values surface as 400 rather than 422.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from adorder.app.models.enums import CancellationRequestType, CancellationRequestStatus, OrderStatus


class CancellationRequestCreate(BaseModel):
    order_item_id: Optional[int] = None
    request_type: Optional[str] = None
    reason: Optional[str] = None
    details: Optional[str] = None


class CancellationProcess(BaseModel):
    action: Optional[str] = None
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class CancellationComplete(BaseModel):
    """Refund amount in points; defaults to the item's price."""
    amount: Optional[int] = None
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class CancellationRequestResponse(BaseModel):
    id: int
    order_item_id: int
    user_id: int
    request_type: CancellationRequestType
    status: CancellationRequestStatus
    reason: str
    details: Optional[str] = None
    admin_note: Optional[str] = None
    processed_at: Optional[datetime] = None
    processed_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CancellationDecisionResponse(BaseModel):
    request: CancellationRequestResponse
    message: str


class CancellationCompletionResponse(BaseModel):
    request: CancellationRequestResponse
    refunded_amount: int = 0
    new_balance: Optional[int] = None
    message: str


class OrderItemSummary(BaseModel):
    id: int
    client_name: str
    status: OrderStatus
    item_price: int
    order_id: int
    order_number: str
    product_name: str


class UserSummary(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None


class AdminCancellationRequestResponse(CancellationRequestResponse):
    """Request joined with item, order, requester and processor summaries."""
    order_item: Optional[OrderItemSummary] = None
    requester: Optional[UserSummary] = None
    processor: Optional[UserSummary] = None


class AdminCancellationRequestList(BaseModel):
    requests: List[AdminCancellationRequestResponse]
    total: int
