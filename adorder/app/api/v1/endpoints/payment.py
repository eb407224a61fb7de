"""
Payment API endpoints.

Point top-ups: create (test method completes immediately), history, and the
gateway result callback.
"""

import secrets

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from adorder.app.db.session import get_db
from adorder.app.core.config import settings
from adorder.app.core.dependencies import get_current_user
from adorder.app.core.exceptions import AuthenticationError
from adorder.app.domain.payments.payment_service import PaymentService
from adorder.app.models.enums import PaymentStatus
from adorder.app.schemas.payment import (
    PaymentCreate, PaymentCallback, PaymentCreateResponse,
    PaymentListResponse, PaymentTransactionResponse
)
from adorder.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/payment", tags=["Payment"])


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("", response_model=PaymentCreateResponse)
async def create_payment(
    data: PaymentCreate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Start a point top-up.

    Amounts below the minimum charge are rejected with 400.
    """
    transaction, balance = await PaymentService.create_payment(
        db,
        user_id=current_user["user_id"],
        amount=data.amount,
        payment_method=data.payment_method,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    response = PaymentTransactionResponse.model_validate(transaction)

    if response.status == PaymentStatus.completed:
        await log_event(
            db=db,
            action=AuditAction.PAYMENT_COMPLETED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("email"),
            metadata={"transaction_id": response.id, "amount": response.amount}
        )
        message = "Charge completed"
    else:
        message = "Waiting for payment"

    return PaymentCreateResponse(transaction=response, balance=balance, message=message)


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    status: Optional[str] = Query(None, description="pending | completed | failed | cancelled"),
    limit: int = Query(50, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Caller's transactions, newest first."""
    transactions = await PaymentService.list_transactions(db, current_user["user_id"], status, limit)
    return PaymentListResponse(
        transactions=[PaymentTransactionResponse.model_validate(t) for t in transactions]
    )


@router.post("/callback", response_model=PaymentTransactionResponse)
async def payment_callback(
    data: PaymentCallback,
    x_payment_callback_secret: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Gateway result notification.

    Guarded by the shared ``X-Payment-Callback-Secret`` header when one is configured.
    """
    expected = settings.payment_callback_secret
    if expected and not secrets.compare_digest(x_payment_callback_secret or "", expected):
        raise AuthenticationError("Invalid callback secret")

    transaction = await PaymentService.handle_callback(
        db,
        transaction_id=data.transaction_id,
        status=data.status,
        pg_transaction_id=data.pg_transaction_id,
        amount=data.amount,
        pg_response=data.pg_response,
    )
    response = PaymentTransactionResponse.model_validate(transaction)

    if response.status in (PaymentStatus.completed, PaymentStatus.failed):
        await log_event(
            db=db,
            action=(
                AuditAction.PAYMENT_COMPLETED
                if response.status == PaymentStatus.completed
                else AuditAction.PAYMENT_FAILED
            ),
            target_user_id=transaction.user_id,
            metadata={"transaction_id": response.id, "source": "callback"}
        )
    return response
