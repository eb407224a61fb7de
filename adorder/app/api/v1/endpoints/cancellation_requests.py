"""
Cancellation Request API Endpoints.

Order owners raise pause / cancel / refund requests; administrators list,
approve or reject them, and complete approved ones.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from adorder.app.db.session import get_db
from adorder.app.core.dependencies import get_current_user
from adorder.app.core.guards import require_capability
from adorder.app.core.permissions import Capability
from adorder.app.domain.cancellations.cancellation_service import CancellationService
from adorder.app.models.cancellation_request import CancellationRequest
from adorder.app.models.enums import CancellationRequestStatus
from adorder.app.schemas.cancellation import (
    CancellationRequestCreate, CancellationProcess, CancellationComplete,
    CancellationRequestResponse, CancellationDecisionResponse, CancellationCompletionResponse,
    AdminCancellationRequestResponse, AdminCancellationRequestList,
    OrderItemSummary, UserSummary
)
from adorder.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/cancellation-requests", tags=["Cancellation Requests"])
admin_router = APIRouter(prefix="/admin/cancellation-requests", tags=["Admin - Cancellation Requests"])


@router.post("", response_model=CancellationRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_cancellation_request(
    data: CancellationRequestCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Request a pause, cancellation or refund for one of the caller's order items.

    Only one pending request may exist per item.
    """
    request = await CancellationService.create_request(
        db,
        current_user,
        order_item_id=data.order_item_id,
        request_type=data.request_type,
        reason=data.reason,
        details=data.details,
    )
    response = CancellationRequestResponse.model_validate(request)

    await log_event(
        db=db,
        action=AuditAction.CANCELLATION_REQUESTED,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("email"),
        metadata={
            "request_id": response.id,
            "order_item_id": response.order_item_id,
            "request_type": response.request_type.value,
        }
    )
    return response


@router.get("", response_model=List[CancellationRequestResponse])
async def list_my_cancellation_requests(
    order_item_id: Optional[int] = Query(None, description="Order item ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Caller's own requests for an item, newest first."""
    requests = await CancellationService.list_for_owner(db, current_user["user_id"], order_item_id)
    return [CancellationRequestResponse.model_validate(r) for r in requests]


def _admin_view(request: CancellationRequest) -> AdminCancellationRequestResponse:
    base = CancellationRequestResponse.model_validate(request).model_dump()

    item = request.order_item
    order_item = None
    if item is not None:
        order_item = OrderItemSummary(
            id=item.id,
            client_name=item.client_name,
            status=item.status,
            item_price=item.item_price,
            order_id=item.order_id,
            order_number=item.order.order_number,
            product_name=item.order.product_name,
        )

    def summary(user):
        if user is None:
            return None
        return UserSummary(id=user.id, email=user.email, display_name=user.display_name)

    return AdminCancellationRequestResponse(
        **base,
        order_item=order_item,
        requester=summary(request.requester),
        processor=summary(request.processor),
    )


@admin_router.get("", response_model=AdminCancellationRequestList)
async def list_cancellation_requests(
    status_filter: Optional[str] = Query(None, alias="status", description="pending | approved | rejected | completed"),
    type_filter: Optional[str] = Query(None, alias="type", description="pause | cancel | refund"),
    current_user: dict = Depends(require_capability(Capability.view_all_requests)),
    db: AsyncSession = Depends(get_db)
):
    """All requests, newest first, with item, order, requester and processor summaries."""
    requests = await CancellationService.list_for_admin(
        db, current_user, status=status_filter, request_type=type_filter
    )
    views = [_admin_view(r) for r in requests]
    return AdminCancellationRequestList(requests=views, total=len(views))


@admin_router.patch("/{request_id}", response_model=CancellationDecisionResponse)
async def process_cancellation_request(
    data: CancellationProcess,
    request_id: int = Path(..., description="Cancellation request ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Approve or reject a pending request (admin-only).

    Approval moves the order item to pause / cancelled / refunded.
    """
    request, message = await CancellationService.process_request(
        db, current_user, request_id, data.action, data.admin_notes
    )
    response = CancellationRequestResponse.model_validate(request)

    action = (
        AuditAction.CANCELLATION_APPROVED
        if response.status == CancellationRequestStatus.approved
        else AuditAction.CANCELLATION_REJECTED
    )
    await log_event(
        db=db,
        action=action,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("email"),
        target_user_id=response.user_id,
        metadata={"request_id": response.id, "order_item_id": response.order_item_id}
    )
    return CancellationDecisionResponse(request=response, message=message)


@admin_router.post("/{request_id}/complete", response_model=CancellationCompletionResponse)
async def complete_cancellation_request(
    data: CancellationComplete,
    request_id: int = Path(..., description="Cancellation request ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Complete an approved request (admin-only).

    Refund requests credit the requester's wallet in the same transaction.
    """
    request, entry = await CancellationService.complete_request(
        db, current_user, request_id, amount=data.amount, admin_note=data.admin_notes
    )
    response = CancellationRequestResponse.model_validate(request)
    refunded = entry.amount if entry is not None else 0
    new_balance = entry.balance_after if entry is not None else None

    await log_event(
        db=db,
        action=AuditAction.CANCELLATION_COMPLETED,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("email"),
        target_user_id=response.user_id,
        metadata={"request_id": response.id, "refunded_amount": refunded}
    )

    if refunded:
        message = f"Request completed; {refunded:,} points refunded"
    else:
        message = "Request completed"
    return CancellationCompletionResponse(
        request=response,
        refunded_amount=refunded,
        new_balance=new_balance,
        message=message,
    )
