"""
Order Service (Domain Logic).

Order placement runs as one database transaction:

1. Validate the cart and recompute every line's totals
2. Check the running balance
3. Create the Order
4. Create the Order Items
5. Debit the wallet (conditional update + ledger entry)
6. Commit

Any failing step rolls the whole transaction back, so an order never exists
without its items and its debit, and a debit never exists without its order.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from adorder.app.core.exceptions import (
    InvalidArgumentError,
    InsufficientBalanceError,
    PartialFailureError,
    ResourceNotFoundError,
)
from adorder.app.core.guards import OwnershipGuard
from adorder.app.domain.wallet.ledger_service import LedgerService
from adorder.app.models.enums import LedgerTransactionType, OrderStatus, UserTier
from adorder.app.models.order import Order, OrderItem
from adorder.app.models.product import Product, ProductInputDefinition
from adorder.app.models.user import User
from adorder.app.schemas.order import OrderConfirmRequest, OrderItemInput

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7

ownership_guard = OwnershipGuard()


def compute_item_totals(daily_count: int, weeks: int, unit_price: int) -> Tuple[int, int]:
    """Return ``(total_count, estimated_price)`` for one cart line."""
    total_count = daily_count * DAYS_PER_WEEK * weeks
    return total_count, total_count * unit_price


class PricedLine:
    """A validated cart line with server-side totals."""

    def __init__(self, source: OrderItemInput, total_count: int, estimated_price: int):
        self.source = source
        self.total_count = total_count
        self.estimated_price = estimated_price


class OrderService:

    @staticmethod
    def price_cart(items: Sequence[OrderItemInput], unit_price: int) -> List[PricedLine]:
        """
        Validate a cart and recompute its totals.

        Raises:
            InvalidArgumentError: empty cart, negative values, or client totals
                that disagree with the server computation
        """
        if not items:
            raise InvalidArgumentError("Order has no items", error_code="ERR_EMPTY_CART")
        if unit_price < 0:
            raise InvalidArgumentError("unitPrice must not be negative")

        lines = []
        for index, item in enumerate(items):
            if item.daily_count < 0 or item.weeks < 0:
                raise InvalidArgumentError(
                    "dailyCount and weeks must not be negative",
                    details={"index": index}
                )
            total_count, estimated_price = compute_item_totals(item.daily_count, item.weeks, unit_price)

            if item.total_count is not None and item.total_count != total_count:
                raise InvalidArgumentError(
                    "totalCount does not match dailyCount x 7 x weeks",
                    details={"index": index, "expected": total_count, "received": item.total_count}
                )
            if item.estimated_price is not None and item.estimated_price != estimated_price:
                raise InvalidArgumentError(
                    "estimatedPrice does not match totalCount x unitPrice",
                    details={"index": index, "expected": estimated_price, "received": item.estimated_price}
                )
            lines.append(PricedLine(item, total_count, estimated_price))
        return lines

    @staticmethod
    async def _create_order(
        db: AsyncSession,
        user_id: int,
        user_tier: UserTier,
        request: OrderConfirmRequest,
        lines: List[PricedLine],
        total_quantity: int,
        total_price: int,
    ) -> Order:
        order = Order(
            user_id=user_id,
            product_id=request.product_id,
            product_name=request.product_name,
            unit_price=request.unit_price,
            user_tier=user_tier,
            quantity=total_quantity,
            total_price=total_price,
            order_details={
                "items": [
                    {
                        "clientName": line.source.client_name,
                        "dailyCount": line.source.daily_count,
                        "weeks": line.source.weeks,
                        "totalCount": line.total_count,
                        "estimatedPrice": line.estimated_price,
                    }
                    for line in lines
                ]
            },
            status=OrderStatus.received,
            confirmed_at=datetime.utcnow(),
        )
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def _create_items(
        db: AsyncSession,
        order: Order,
        unit_price: int,
        lines: List[PricedLine],
    ) -> List[OrderItem]:
        items = [
            OrderItem(
                order_id=order.id,
                client_name=line.source.client_name,
                daily_qty=line.source.daily_count,
                weeks=line.source.weeks,
                total_qty=line.total_count,
                unit_price=unit_price,
                item_price=line.estimated_price,
                item_details=line.source.details,
                status=OrderStatus.received,
            )
            for line in lines
        ]
        db.add_all(items)
        await db.flush()
        return items

    @staticmethod
    async def confirm_order(db: AsyncSession, user_id: int, request: OrderConfirmRequest) -> dict:
        """
        Place an order and pay for it from the wallet.

        Args:
            db: Database session (committed here on success, rolled back on failure)
            user_id: Purchasing user
            request: Cart as submitted

        Returns:
            Dict with orderId, orderNumber, totalQuantity, totalPrice, itemCount, newBalance

        Raises:
            InvalidArgumentError: empty or inconsistent cart
            ResourceNotFoundError: unknown user or product
            InsufficientBalanceError: balance below total price (checked up front
                and again by the conditional debit)
            PartialFailureError: a write step failed; nothing was persisted
        """
        lines = OrderService.price_cart(request.items, request.unit_price)
        total_quantity = sum(line.total_count for line in lines)
        total_price = sum(line.estimated_price for line in lines)

        result = await db.execute(select(User.balance, User.tier).where(User.id == user_id))
        row = result.one_or_none()
        if row is None:
            raise ResourceNotFoundError("User", user_id)
        balance, tier = row

        if balance < total_price:
            raise InsufficientBalanceError(required=total_price, current=balance)

        if request.product_id is not None:
            product = await db.get(Product, request.product_id)
            if product is None:
                raise ResourceNotFoundError("Product", request.product_id)

        try:
            order = await OrderService._create_order(
                db, user_id, tier, request, lines, total_quantity, total_price
            )
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Order creation failed for user %s", user_id)
            raise PartialFailureError("Order creation failed", error_code="ERR_ORDER_CREATION_FAILED")

        order_id = order.id
        order_number = order.order_number

        try:
            await OrderService._create_items(db, order, request.unit_price, lines)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Order item creation failed for order %s", order_id)
            raise PartialFailureError(
                "Order item creation failed; the order was not placed",
                error_code="ERR_ITEM_CREATION_FAILED",
            )

        try:
            entry = await LedgerService.append_entry(
                db,
                user_id=user_id,
                transaction_type=LedgerTransactionType.deduct,
                amount=total_price,
                order_id=order_id,
                memo=f"Order confirmed: {request.product_name} ({len(lines)} items)",
            )
        except InsufficientBalanceError:
            # Another request spent the balance after the up-front check
            await db.rollback()
            raise
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Ledger write failed for order %s", order_id)
            raise PartialFailureError(
                "Payment could not be recorded; the order was not placed",
                error_code="ERR_LEDGER_WRITE_FAILED",
            )

        new_balance = entry.balance_after

        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Commit failed for order %s", order_id)
            raise PartialFailureError("Order could not be committed")

        logger.info("Order %s confirmed for user %s: %d points", order_id, user_id, total_price)

        return {
            "order_id": order_id,
            "order_number": order_number,
            "total_quantity": total_quantity,
            "total_price": total_price,
            "item_count": len(lines),
            "new_balance": new_balance,
        }

    @staticmethod
    async def list_orders(db: AsyncSession, user_id: int) -> List[Order]:
        """The user's orders with items, newest first."""
        result = await db.execute(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.user_id == user_id)
            .order_by(desc(Order.created_at), desc(Order.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_input_definitions(db: AsyncSession, product_id: Optional[int]) -> List[ProductInputDefinition]:
        if product_id is None:
            return []
        result = await db.execute(
            select(ProductInputDefinition)
            .where(ProductInputDefinition.product_id == product_id)
            .order_by(ProductInputDefinition.sort_order, ProductInputDefinition.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_order_detail(db: AsyncSession, user_id: int, order_id: int) -> dict:
        """
        Order header, items, product input definitions and service period.

        Orders of other users are reported as not found.
        """
        result = await db.execute(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id, Order.user_id == user_id)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise ResourceNotFoundError("Order", order_id)

        input_definitions = await OrderService.get_input_definitions(db, order.product_id)

        start = order.created_at.date()
        weeks = order.items[0].weeks if order.items else 0
        end = start + timedelta(days=weeks * DAYS_PER_WEEK)

        return {
            "order": order,
            "start_date": start,
            "end_date": end,
            "period_text": f"{start:%Y.%m.%d} ~ {end:%Y.%m.%d}",
            "input_definitions": input_definitions,
        }

    @staticmethod
    async def get_item_with_order(
        db: AsyncSession,
        item_id: int,
        current_user: dict,
        allow_admin: bool = False,
    ) -> Tuple[OrderItem, Order]:
        """
        Load an order item with its parent order and enforce ownership.

        Raises:
            ResourceNotFoundError: item does not exist
            InsufficientPermissionsError: caller does not own the parent order
        """
        result = await db.execute(
            select(OrderItem)
            .options(selectinload(OrderItem.order))
            .where(OrderItem.id == item_id)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise ResourceNotFoundError("Order item", item_id)

        ownership_guard.enforce(item.order.user_id, current_user, "order item", allow_admin=allow_admin)
        return item, item.order

    @staticmethod
    async def get_item_detail(db: AsyncSession, current_user: dict, item_id: int) -> dict:
        item, order = await OrderService.get_item_with_order(db, item_id, current_user)

        product_unit = None
        if order.product_id is not None:
            product = await db.get(Product, order.product_id)
            if product is not None:
                product_unit = product.unit

        return {
            "item": item,
            "order_id": order.id,
            "order_number": order.order_number,
            "product_name": order.product_name,
            "product_unit": product_unit,
            "order_status": order.status,
            "input_definitions": await OrderService.get_input_definitions(db, order.product_id),
        }
