"""
Ledger Service (Domain Logic).

Owns every write to a user's points: each movement is one immutable
``LedgerEntry`` plus a conditional update of the running balance on the user
row, both inside the caller's transaction. The caller commits.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from adorder.app.core.exceptions import InvalidArgumentError, InsufficientBalanceError, ResourceNotFoundError
from adorder.app.models.enums import LedgerTransactionType
from adorder.app.models.ledger_entry import LedgerEntry
from adorder.app.models.user import User

logger = logging.getLogger(__name__)


def signed_amount(transaction_type: LedgerTransactionType, amount: int) -> int:
    """
    Apply the sign convention of a transaction type.

    charge/refund are credits, deduct is a debit, admin_adjust keeps the sign
    the administrator gave and must not be zero.
    """
    if transaction_type in (LedgerTransactionType.charge, LedgerTransactionType.refund):
        return abs(amount)
    if transaction_type == LedgerTransactionType.deduct:
        return -abs(amount)
    if amount == 0:
        raise InvalidArgumentError("Adjustment amount must not be zero")
    return amount


class LedgerService:

    @staticmethod
    async def compute_balance(db: AsyncSession, user_id: int) -> int:
        """Sum of all ledger amounts of the user (0 when there are none)."""
        result = await db.execute(
            select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(LedgerEntry.user_id == user_id)
        )
        return int(result.scalar_one())

    @staticmethod
    async def get_balance(db: AsyncSession, user_id: int) -> int:
        """
        Read the maintained running balance straight from the database.

        Raises:
            ResourceNotFoundError: user does not exist
        """
        result = await db.execute(select(User.balance).where(User.id == user_id))
        balance = result.scalar_one_or_none()
        if balance is None:
            raise ResourceNotFoundError("User", user_id)
        return int(balance)

    @staticmethod
    async def append_entry(
        db: AsyncSession,
        user_id: int,
        transaction_type: LedgerTransactionType,
        amount: int,
        order_id: Optional[int] = None,
        payment_transaction_id: Optional[int] = None,
        memo: Optional[str] = None,
        enforce_non_negative: Optional[bool] = None,
    ) -> LedgerEntry:
        """
        Apply one balance movement and record it.

        Flow:
        1. Normalize the sign by transaction type
        2. Conditionally update ``users.balance`` (debits only succeed when the
           result stays >= 0, unless the type is admin_adjust)
        3. Insert the ledger entry with the resulting ``balance_after``

        Nothing is committed here; a later rollback discards both the balance
        change and the entry.

        Args:
            db: Database session
            user_id: Wallet owner
            transaction_type: charge | deduct | refund | admin_adjust
            amount: Magnitude (sign is taken from the type, except admin_adjust)
            order_id: Order this movement pays for, if any
            payment_transaction_id: Payment this movement comes from, if any
            memo: Free text shown in the wallet history
            enforce_non_negative: Override the default guard policy

        Returns:
            The flushed LedgerEntry

        Raises:
            InvalidArgumentError: zero admin adjustment
            ResourceNotFoundError: user does not exist
            InsufficientBalanceError: the debit would make the balance negative
        """
        delta = signed_amount(transaction_type, amount)

        if enforce_non_negative is None:
            enforce_non_negative = transaction_type != LedgerTransactionType.admin_adjust

        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + delta)
            .execution_options(synchronize_session=False)
        )
        if enforce_non_negative and delta < 0:
            stmt = stmt.where(User.balance + delta >= 0)

        result = await db.execute(stmt)

        if result.rowcount == 0:
            current = await db.execute(select(User.balance).where(User.id == user_id))
            current_balance = current.scalar_one_or_none()
            if current_balance is None:
                raise ResourceNotFoundError("User", user_id)
            raise InsufficientBalanceError(required=abs(delta), current=int(current_balance))

        balance_after = await LedgerService.get_balance(db, user_id)

        entry = LedgerEntry(
            user_id=user_id,
            transaction_type=transaction_type,
            amount=delta,
            balance_after=balance_after,
            order_id=order_id,
            payment_transaction_id=payment_transaction_id,
            memo=memo,
        )
        db.add(entry)
        await db.flush()

        logger.info(
            "Ledger %s for user %s: %+d (balance %d)",
            transaction_type.value, user_id, delta, balance_after
        )
        return entry

    @staticmethod
    async def list_entries(db: AsyncSession, user_id: int, limit: int = 50) -> List[LedgerEntry]:
        """Most recent entries first."""
        result = await db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.user_id == user_id)
            .order_by(desc(LedgerEntry.created_at), desc(LedgerEntry.id))
            .limit(limit)
        )
        return list(result.scalars().all())
