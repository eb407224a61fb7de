"""
Payment Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Any
from adorder.app.models.enums import PaymentStatus


class PaymentCreate(BaseModel):
    amount: Optional[int] = None
    payment_method: str = Field(default="test", alias="paymentMethod", max_length=30)

    class Config:
        populate_by_name = True


class PaymentCallback(BaseModel):
    """Result notification sent by the payment gateway."""
    transaction_id: int = Field(..., alias="transactionId")
    pg_transaction_id: Optional[str] = Field(default=None, alias="pgTransactionId", max_length=128)
    status: str
    amount: Optional[int] = None
    pg_response: Optional[Dict[str, Any]] = Field(default=None, alias="pgResponse")

    class Config:
        populate_by_name = True


class PaymentTransactionResponse(BaseModel):
    id: int
    amount: int
    point_amount: int
    status: PaymentStatus
    payment_method: str
    pg_provider: Optional[str] = None
    pg_order_id: str
    pg_transaction_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentCreateResponse(BaseModel):
    success: bool = True
    transaction: PaymentTransactionResponse
    balance: Optional[int] = None
    message: str


class PaymentListResponse(BaseModel):
    success: bool = True
    transactions: List[PaymentTransactionResponse]
