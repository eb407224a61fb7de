"""
Wallet Schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List
from adorder.app.models.enums import LedgerTransactionType


class LedgerEntryResponse(BaseModel):
    id: int
    transaction_type: LedgerTransactionType
    amount: int
    balance_after: int
    order_id: Optional[int] = None
    payment_transaction_id: Optional[int] = None
    memo: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WalletResponse(BaseModel):
    balance: int
    transactions: List[LedgerEntryResponse]
