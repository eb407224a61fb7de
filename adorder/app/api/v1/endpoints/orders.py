"""
Order API endpoints.

Checkout, order history, order detail and order item detail. Every read is
scoped to the caller's own orders.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from adorder.app.db.session import get_db
from adorder.app.core.dependencies import get_current_user
from adorder.app.domain.orders.order_service import OrderService
from adorder.app.schemas.order import (
    OrderConfirmRequest, OrderConfirmResponse, OrderResponse,
    OrderDetailResponse, OrderItemDetailResponse, OrderItemResponse
)
from adorder.app.schemas.product import ProductInputDefinitionResponse
from adorder.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("/confirm", response_model=OrderConfirmResponse)
async def confirm_order(
    data: OrderConfirmRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Place an order paid from the points wallet.

    Responses:
    - 400 ERR_EMPTY_CART / ERR_INVALID_ARGUMENT: bad cart
    - 400 ERR_INSUFFICIENT_BALANCE: details carry required, current and shortage
    - 500 ERR_*_FAILED: a write failed and nothing was persisted
    """
    result = await OrderService.confirm_order(db, current_user["user_id"], data)

    await log_event(
        db=db,
        action=AuditAction.ORDER_CONFIRMED,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("email"),
        metadata={
            "order_id": result["order_id"],
            "total_price": result["total_price"],
            "item_count": result["item_count"],
        }
    )

    return OrderConfirmResponse(**result)


@router.get("", response_model=List[OrderResponse])
async def list_my_orders(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Caller's orders with nested items, newest first."""
    orders = await OrderService.list_orders(db, current_user["user_id"])
    return [OrderResponse.model_validate(order) for order in orders]


@router.get("/items/{item_id}", response_model=OrderItemDetailResponse)
async def get_order_item(
    item_id: int = Path(..., description="Order item ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Order item detail. 404 when missing, 403 when it belongs to someone else."""
    detail = await OrderService.get_item_detail(db, current_user, item_id)
    return OrderItemDetailResponse(
        item=OrderItemResponse.model_validate(detail["item"]),
        order_id=detail["order_id"],
        order_number=detail["order_number"],
        product_name=detail["product_name"],
        product_unit=detail["product_unit"],
        order_status=detail["order_status"],
        input_definitions=[ProductInputDefinitionResponse.model_validate(d) for d in detail["input_definitions"]],
    )


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: int = Path(..., description="Order ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Order header, items, product input fields and service period."""
    detail = await OrderService.get_order_detail(db, current_user["user_id"], order_id)
    return OrderDetailResponse(
        order=OrderResponse.model_validate(detail["order"]),
        start_date=detail["start_date"],
        end_date=detail["end_date"],
        period_text=detail["period_text"],
        input_definitions=[ProductInputDefinitionResponse.model_validate(d) for d in detail["input_definitions"]],
    )
