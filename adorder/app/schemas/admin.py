"""
Admin API Schema Definitions.

Pydantic schemas for admin endpoints.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from adorder.app.models.enums import UserTier, LedgerTransactionType


class UserCreate(BaseModel):
    """Accounts are provisioned by administrators only."""
    email: EmailStr
    password: str = Field(..., min_length=8, description="Initial password (min 8 characters)")
    tier: UserTier = UserTier.basic
    display_name: Optional[str] = Field(None, max_length=100)


class UserListItem(BaseModel):
    """Schema for user in list response."""
    id: int
    email: str
    display_name: Optional[str] = None
    tier: UserTier
    balance: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Schema for list users response."""
    users: List[UserListItem]
    total: int
    page: int
    page_size: int


class DeactivateUserRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Reason for deactivation (for audit log)")


class BalanceAdjustRequest(BaseModel):
    """Signed manual correction. Negative values may take the balance below zero."""
    amount: int
    memo: Optional[str] = Field(None, max_length=255)


class BalanceAdjustResponse(BaseModel):
    user_id: int
    transaction_type: LedgerTransactionType
    amount: int
    balance_after: int
    ledger_entry_id: int


class AdminActionResponse(BaseModel):
    """Schema for admin action response."""
    success: bool
    message: str
    user_id: int
    action: str


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_email: Optional[str]
    action: str
    target_user_id: Optional[int]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
