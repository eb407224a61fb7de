"""
Wallet endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from adorder.app.db.session import get_db
from adorder.app.core.config import settings
from adorder.app.core.dependencies import get_current_user
from adorder.app.domain.wallet.ledger_service import LedgerService
from adorder.app.schemas.wallet import WalletResponse, LedgerEntryResponse

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("", response_model=WalletResponse)
async def get_wallet(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Running balance and the most recent ledger entries."""
    user_id = current_user["user_id"]
    balance = await LedgerService.get_balance(db, user_id)
    entries = await LedgerService.list_entries(db, user_id, limit=settings.wallet_history_limit)
    return WalletResponse(
        balance=balance,
        transactions=[LedgerEntryResponse.model_validate(e) for e in entries]
    )
