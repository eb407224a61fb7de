"""
Payment Service (Domain Logic).

A point top-up is recorded as a ``PaymentTransaction`` first and credited to
the wallet only once the payment completes. The ``test`` method completes
immediately; other methods wait for the gateway callback.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple, Dict, Any

from sqlalchemy import select, update, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adorder.app.core.config import settings
from adorder.app.core.exceptions import InvalidArgumentError, PartialFailureError, ResourceNotFoundError
from adorder.app.domain.wallet.ledger_service import LedgerService
from adorder.app.models.enums import LedgerTransactionType, PaymentStatus
from adorder.app.models.payment import PaymentTransaction

logger = logging.getLogger(__name__)

TEST_METHOD = "test"
CALLBACK_STATUSES = (PaymentStatus.completed, PaymentStatus.failed, PaymentStatus.cancelled)
MAX_LIST_LIMIT = 100


def new_pg_order_id() -> str:
    return f"ORDER-{int(datetime.utcnow().timestamp() * 1000)}-{uuid.uuid4().hex[:8]}"


class PaymentService:

    @staticmethod
    async def _credit(db: AsyncSession, transaction: PaymentTransaction) -> int:
        """Append the charge entry for a completed transaction; returns the new balance."""
        entry = await LedgerService.append_entry(
            db,
            user_id=transaction.user_id,
            transaction_type=LedgerTransactionType.charge,
            amount=transaction.point_amount,
            payment_transaction_id=transaction.id,
            memo=f"Point charge ({transaction.amount:,}) [TxID: {transaction.pg_order_id}]",
        )
        return entry.balance_after

    @staticmethod
    async def _mark_failed(db: AsyncSession, transaction_id: int, error_message: str) -> None:
        await db.execute(
            update(PaymentTransaction)
            .where(PaymentTransaction.id == transaction_id)
            .values(status=PaymentStatus.failed, failed_at=datetime.utcnow(), error_message=error_message)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    @staticmethod
    async def create_payment(
        db: AsyncSession,
        user_id: int,
        amount: Optional[int],
        payment_method: str = TEST_METHOD,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[PaymentTransaction, Optional[int]]:
        """
        Start a top-up.

        Returns:
            (transaction, new balance when the payment completed synchronously)

        Raises:
            InvalidArgumentError: amount below the minimum charge
            PartialFailureError: the payment completed but the points could not
                be credited; the transaction is marked failed
        """
        if amount is None or amount < settings.min_charge_amount:
            raise InvalidArgumentError(
                f"Minimum charge amount is {settings.min_charge_amount:,}",
                error_code="ERR_MIN_CHARGE_AMOUNT",
                details={"minimum": settings.min_charge_amount},
            )

        transaction = PaymentTransaction(
            user_id=user_id,
            amount=amount,
            point_amount=amount,
            status=PaymentStatus.pending,
            payment_method=payment_method,
            pg_provider=TEST_METHOD if payment_method == TEST_METHOD else None,
            pg_order_id=new_pg_order_id(),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(transaction)
        await db.commit()
        await db.refresh(transaction)

        if payment_method != TEST_METHOD:
            return transaction, None

        transaction_id = transaction.id
        now = datetime.utcnow()
        transaction.status = PaymentStatus.completed
        transaction.completed_at = now
        transaction.pg_transaction_id = f"TEST-{transaction.id}"
        transaction.pg_response = {
            "test": True,
            "completed_at": now.isoformat(),
            "message": "Test payment completed",
        }

        try:
            await db.flush()
            balance = await PaymentService._credit(db, transaction)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Crediting payment %s failed", transaction_id)
            await PaymentService._mark_failed(db, transaction_id, "Point credit failed")
            raise PartialFailureError(
                "Payment was received but points could not be credited",
                error_code="ERR_LEDGER_WRITE_FAILED",
                details={"transaction_id": transaction_id},
            )

        logger.info("Test payment %s completed for user %s: %d points", transaction_id, user_id, amount)
        return transaction, balance

    @staticmethod
    async def handle_callback(
        db: AsyncSession,
        transaction_id: int,
        status: str,
        pg_transaction_id: Optional[str] = None,
        amount: Optional[int] = None,
        pg_response: Optional[Dict[str, Any]] = None,
    ) -> PaymentTransaction:
        """
        Apply a gateway result.

        A transaction that is already completed is returned unchanged, so a
        repeated callback never credits twice.

        Raises:
            InvalidArgumentError: unknown status or amount mismatch
            ResourceNotFoundError: unknown transaction
            PartialFailureError: points could not be credited
        """
        try:
            new_status = PaymentStatus(status)
        except ValueError:
            new_status = None
        if new_status not in CALLBACK_STATUSES:
            raise InvalidArgumentError(f"Invalid payment status: {status!r}")

        transaction = await db.get(PaymentTransaction, transaction_id)
        if transaction is None:
            raise ResourceNotFoundError("Payment transaction", transaction_id)

        if transaction.status == PaymentStatus.completed:
            logger.info("Ignoring callback for already completed payment %s", transaction_id)
            return transaction

        if amount is not None and amount != transaction.amount:
            raise InvalidArgumentError(
                "Callback amount does not match the transaction",
                error_code="ERR_AMOUNT_MISMATCH",
                details={"expected": transaction.amount, "received": amount},
            )

        now = datetime.utcnow()
        values = {
            "status": new_status,
            "pg_transaction_id": pg_transaction_id,
            "pg_response": pg_response,
        }
        if new_status == PaymentStatus.completed:
            values["completed_at"] = now
        elif new_status == PaymentStatus.failed:
            values["failed_at"] = now

        # Only one callback may move the transaction to completed
        result = await db.execute(
            update(PaymentTransaction)
            .where(
                PaymentTransaction.id == transaction_id,
                PaymentTransaction.status != PaymentStatus.completed,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            await db.refresh(transaction)
            return transaction

        if new_status == PaymentStatus.completed:
            try:
                await PaymentService._credit(db, transaction)
            except SQLAlchemyError:
                await db.rollback()
                logger.exception("Crediting payment %s failed", transaction_id)
                await PaymentService._mark_failed(db, transaction_id, "Point credit failed")
                raise PartialFailureError(
                    "Payment was received but points could not be credited",
                    error_code="ERR_LEDGER_WRITE_FAILED",
                    details={"transaction_id": transaction_id},
                )

        await db.commit()
        await db.refresh(transaction)
        logger.info("Payment %s -> %s", transaction_id, new_status.value)
        return transaction

    @staticmethod
    async def list_transactions(
        db: AsyncSession,
        user_id: int,
        status: Optional[str] = None,
        limit: int = 50,
    ) -> List[PaymentTransaction]:
        """The user's transactions, newest first."""
        query = (
            select(PaymentTransaction)
            .where(PaymentTransaction.user_id == user_id)
            .order_by(desc(PaymentTransaction.created_at), desc(PaymentTransaction.id))
            .limit(max(1, min(limit, MAX_LIST_LIMIT)))
        )
        if status:
            try:
                query = query.where(PaymentTransaction.status == PaymentStatus(status))
            except ValueError:
                raise InvalidArgumentError(f"Invalid payment status: {status!r}")

        result = await db.execute(query)
        return list(result.scalars().all())
