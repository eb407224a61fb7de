"""
Cancellation Service (Domain Logic).

Workflow for pause / cancel / refund requests on a single order item:

    pending -> approved | rejected       (process_request)
    approved -> completed                (complete_request)

Every transition is a conditional UPDATE on the current status, so two
administrators acting on the same request cannot both succeed.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, update, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from adorder.app.core.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    InvalidArgumentError,
    PartialFailureError,
    ResourceNotFoundError,
)
from adorder.app.core.permissions import Capability, has_capability
from adorder.app.domain.orders.order_service import OrderService
from adorder.app.domain.wallet.ledger_service import LedgerService
from adorder.app.models.cancellation_request import CancellationRequest
from adorder.app.models.enums import (
    CancellationAction,
    CancellationRequestStatus,
    CancellationRequestType,
    LedgerTransactionType,
    OrderStatus,
)
from adorder.app.models.ledger_entry import LedgerEntry
from adorder.app.models.order import OrderItem

logger = logging.getLogger(__name__)

# Order item status an approved request moves the item to
TARGET_ITEM_STATUS = {
    CancellationRequestType.pause: OrderStatus.pause,
    CancellationRequestType.cancel: OrderStatus.cancelled,
    CancellationRequestType.refund: OrderStatus.refunded,
}

TYPE_LABELS = {
    CancellationRequestType.pause: "pause",
    CancellationRequestType.cancel: "cancellation",
    CancellationRequestType.refund: "refund",
}


def _parse_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidArgumentError(
            f"Invalid {field_name}: {value!r}",
            details={"field": field_name, "allowed": allowed}
        )


def _require_capability(current_user: dict, capability: Capability):
    if not has_capability(current_user.get("tier"), capability):
        raise InsufficientPermissionsError()


class CancellationService:

    @staticmethod
    async def _has_pending_request(db: AsyncSession, order_item_id: int) -> bool:
        result = await db.execute(
            select(CancellationRequest.id).where(
                CancellationRequest.order_item_id == order_item_id,
                CancellationRequest.status == CancellationRequestStatus.pending,
            )
        )
        return result.first() is not None

    @staticmethod
    async def create_request(
        db: AsyncSession,
        current_user: dict,
        order_item_id: Optional[int],
        request_type: Optional[str],
        reason: Optional[str],
        details: Optional[str] = None,
    ) -> CancellationRequest:
        """
        Raise a request against an order item owned by the caller.

        Raises:
            InvalidArgumentError: missing item id or reason, unknown request type
            ResourceNotFoundError: order item does not exist
            InsufficientPermissionsError: caller does not own the item
            ConflictError(AlreadyPending): the item already has a pending request
        """
        if not order_item_id or not request_type or not reason or not reason.strip():
            raise InvalidArgumentError(
                "order_item_id, request_type and reason are required",
                error_code="ERR_MISSING_FIELDS",
            )
        parsed_type = _parse_enum(CancellationRequestType, request_type, "request_type")

        await OrderService.get_item_with_order(db, order_item_id, current_user)

        if await CancellationService._has_pending_request(db, order_item_id):
            raise ConflictError("A pending request already exists for this item", ConflictError.ALREADY_PENDING)

        request = CancellationRequest(
            order_item_id=order_item_id,
            user_id=current_user["user_id"],
            request_type=parsed_type,
            status=CancellationRequestStatus.pending,
            reason=reason.strip(),
            details=details,
        )
        db.add(request)

        try:
            await db.commit()
        except IntegrityError:
            # Lost the race against a concurrent request for the same item
            await db.rollback()
            raise ConflictError("A pending request already exists for this item", ConflictError.ALREADY_PENDING)

        await db.refresh(request)
        logger.info(
            "Cancellation request %s (%s) created for item %s",
            request.id, parsed_type.value, order_item_id
        )
        return request

    @staticmethod
    async def _apply_item_status(db: AsyncSession, order_item_id: int, target: OrderStatus) -> None:
        result = await db.execute(
            update(OrderItem)
            .where(OrderItem.id == order_item_id)
            .values(status=target, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ResourceNotFoundError("Order item", order_item_id)

    @staticmethod
    async def _transition(
        db: AsyncSession,
        request_id: int,
        expected: CancellationRequestStatus,
        **values,
    ) -> bool:
        result = await db.execute(
            update(CancellationRequest)
            .where(CancellationRequest.id == request_id, CancellationRequest.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def process_request(
        db: AsyncSession,
        current_user: dict,
        request_id: int,
        action: Optional[str],
        admin_note: Optional[str] = None,
    ) -> Tuple[CancellationRequest, str]:
        """
        Approve or reject a pending request.

        Approval moves the order item to the mapped status in the same
        transaction as the request transition.

        Returns:
            (updated request, confirmation message)

        Raises:
            InsufficientPermissionsError: caller cannot process cancellations
            InvalidArgumentError: action is not approve/reject
            ResourceNotFoundError: request does not exist
            ConflictError(AlreadyProcessed): request is no longer pending
            PartialFailureError: item status update failed; request left pending
        """
        _require_capability(current_user, Capability.process_cancellations)
        parsed_action = _parse_enum(CancellationAction, action, "action")

        request = await db.get(CancellationRequest, request_id)
        if request is None:
            raise ResourceNotFoundError("Cancellation request", request_id)
        if request.status != CancellationRequestStatus.pending:
            raise ConflictError("Request has already been processed", ConflictError.ALREADY_PROCESSED)

        if parsed_action == CancellationAction.approve:
            target = TARGET_ITEM_STATUS[request.request_type]
            try:
                await CancellationService._apply_item_status(db, request.order_item_id, target)
            except (SQLAlchemyError, ResourceNotFoundError):
                await db.rollback()
                logger.exception("Item status update failed for request %s", request_id)
                raise PartialFailureError(
                    "Order item status could not be updated; the request is still pending",
                    error_code="ERR_ITEM_STATUS_UPDATE_FAILED",
                    details={"request_id": request_id},
                )
            new_status = CancellationRequestStatus.approved
        else:
            new_status = CancellationRequestStatus.rejected

        transitioned = await CancellationService._transition(
            db,
            request_id,
            CancellationRequestStatus.pending,
            status=new_status,
            processed_at=datetime.utcnow(),
            processed_by=current_user["user_id"],
            admin_note=admin_note,
        )
        if not transitioned:
            await db.rollback()
            raise ConflictError("Request has already been processed", ConflictError.ALREADY_PROCESSED)

        await db.commit()
        await db.refresh(request)

        label = TYPE_LABELS[request.request_type]
        if new_status == CancellationRequestStatus.approved:
            message = f"The {label} request has been approved"
        else:
            message = f"The {label} request has been rejected"

        logger.info("Cancellation request %s %s by %s", request_id, new_status.value, current_user["user_id"])
        return request, message

    @staticmethod
    async def complete_request(
        db: AsyncSession,
        current_user: dict,
        request_id: int,
        amount: Optional[int] = None,
        admin_note: Optional[str] = None,
    ) -> Tuple[CancellationRequest, Optional[LedgerEntry]]:
        """
        Close an approved request.

        For refund requests a ``refund`` ledger entry is credited to the requester
        (``amount`` defaults to the item's price) in the same transaction as the
        status change.

        Returns:
            (updated request, refund ledger entry or None)

        Raises:
            InsufficientPermissionsError: caller cannot process cancellations
            ResourceNotFoundError: request does not exist
            ConflictError(NotApproved | AlreadyProcessed): request is not approved
            InvalidArgumentError: negative refund amount
            PartialFailureError: refund could not be recorded
        """
        _require_capability(current_user, Capability.process_cancellations)

        result = await db.execute(
            select(CancellationRequest)
            .options(selectinload(CancellationRequest.order_item))
            .where(CancellationRequest.id == request_id)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise ResourceNotFoundError("Cancellation request", request_id)
        if request.status == CancellationRequestStatus.completed:
            raise ConflictError("Request has already been completed", ConflictError.ALREADY_PROCESSED)
        if request.status != CancellationRequestStatus.approved:
            raise ConflictError("Only approved requests can be completed", ConflictError.NOT_APPROVED)

        entry = None
        if request.request_type == CancellationRequestType.refund:
            refund_amount = request.order_item.item_price if amount is None else amount
            if refund_amount < 0:
                raise InvalidArgumentError("Refund amount must not be negative")
            if refund_amount > 0:
                try:
                    entry = await LedgerService.append_entry(
                        db,
                        user_id=request.user_id,
                        transaction_type=LedgerTransactionType.refund,
                        amount=refund_amount,
                        order_id=request.order_item.order_id,
                        memo=f"Refund for order item {request.order_item_id} (request {request.id})",
                    )
                except SQLAlchemyError:
                    await db.rollback()
                    logger.exception("Refund ledger write failed for request %s", request_id)
                    raise PartialFailureError(
                        "Refund could not be recorded; the request is still approved",
                        error_code="ERR_LEDGER_WRITE_FAILED",
                    )

        values = {"status": CancellationRequestStatus.completed, "completed_at": datetime.utcnow()}
        if admin_note is not None:
            values["admin_note"] = admin_note

        transitioned = await CancellationService._transition(
            db, request_id, CancellationRequestStatus.approved, **values
        )
        if not transitioned:
            await db.rollback()
            raise ConflictError("Request has already been completed", ConflictError.ALREADY_PROCESSED)

        await db.commit()
        await db.refresh(request)
        return request, entry

    @staticmethod
    async def list_for_owner(
        db: AsyncSession,
        user_id: int,
        order_item_id: Optional[int],
    ) -> List[CancellationRequest]:
        """The caller's own requests for one item, newest first."""
        if not order_item_id:
            raise InvalidArgumentError("order_item_id is required", error_code="ERR_MISSING_FIELDS")

        result = await db.execute(
            select(CancellationRequest)
            .where(
                CancellationRequest.order_item_id == order_item_id,
                CancellationRequest.user_id == user_id,
            )
            .order_by(desc(CancellationRequest.created_at), desc(CancellationRequest.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_for_admin(
        db: AsyncSession,
        current_user: dict,
        status: Optional[str] = None,
        request_type: Optional[str] = None,
    ) -> List[CancellationRequest]:
        """
        All requests, newest first, with item/order/requester/processor loaded.
        """
        _require_capability(current_user, Capability.view_all_requests)

        query = (
            select(CancellationRequest)
            .options(
                selectinload(CancellationRequest.order_item).selectinload(OrderItem.order),
                selectinload(CancellationRequest.requester),
                selectinload(CancellationRequest.processor),
            )
            .order_by(desc(CancellationRequest.created_at), desc(CancellationRequest.id))
        )

        if status:
            query = query.where(
                CancellationRequest.status == _parse_enum(CancellationRequestStatus, status, "status")
            )
        if request_type:
            query = query.where(
                CancellationRequest.request_type == _parse_enum(CancellationRequestType, request_type, "type")
            )

        result = await db.execute(query)
        return list(result.scalars().all())
