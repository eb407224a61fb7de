"""
Order item message service.

Handles the owner/admin conversation thread attached to each order item.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.orm import selectinload
from datetime import datetime
from typing import Optional, List

from adorder.app.core.exceptions import InvalidArgumentError, InsufficientPermissionsError, ResourceNotFoundError
from adorder.app.core.permissions import Capability, has_capability
from adorder.app.domain.orders.order_service import OrderService
from adorder.app.models.enums import MessageAuthorRole
from adorder.app.models.message import OrderItemMessage
from adorder.app.services.realtime import publish_message_event


class MessageService:

    @staticmethod
    async def list_messages(db: AsyncSession, current_user: dict, order_item_id: int) -> List[OrderItemMessage]:
        """
        Thread for an item, oldest first.

        Messages written by someone other than the caller are marked read.
        """
        await OrderService.get_item_with_order(db, order_item_id, current_user, allow_admin=True)

        result = await db.execute(
            select(OrderItemMessage)
            .options(selectinload(OrderItemMessage.author))
            .where(OrderItemMessage.order_item_id == order_item_id)
            .order_by(OrderItemMessage.created_at, OrderItemMessage.id)
        )
        messages = list(result.scalars().all())

        unread_ids = [
            m.id for m in messages
            if not m.is_read and m.author_id != current_user["user_id"]
        ]
        if unread_ids:
            now = datetime.utcnow()
            await db.execute(
                update(OrderItemMessage)
                .where(OrderItemMessage.id.in_(unread_ids))
                .values(is_read=True, read_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            for m in messages:
                if m.id in unread_ids:
                    m.is_read = True
                    m.read_at = now
            await publish_message_event(order_item_id, "read", {"message_ids": unread_ids})

        return messages

    @staticmethod
    async def create_message(
        db: AsyncSession,
        current_user: dict,
        order_item_id: int,
        message: Optional[str],
        message_type: Optional[str] = None,
    ) -> OrderItemMessage:
        if not message or not message.strip():
            raise InvalidArgumentError("Message must not be empty")

        await OrderService.get_item_with_order(db, order_item_id, current_user, allow_admin=True)

        if has_capability(current_user.get("tier"), Capability.reply_as_admin):
            author_role = MessageAuthorRole.admin
        else:
            author_role = MessageAuthorRole.user

        entry = OrderItemMessage(
            order_item_id=order_item_id,
            author_id=current_user["user_id"],
            author_role=author_role,
            message=message.strip(),
            message_type=message_type or "general",
        )
        db.add(entry)
        await db.commit()

        result = await db.execute(
            select(OrderItemMessage)
            .options(selectinload(OrderItemMessage.author))
            .where(OrderItemMessage.id == entry.id)
            .execution_options(populate_existing=True)
        )
        created = result.scalar_one()

        await publish_message_event(
            order_item_id,
            "created",
            {"id": created.id, "author_role": created.author_role.value, "message_type": created.message_type},
        )
        return created

    @staticmethod
    async def delete_message(db: AsyncSession, current_user: dict, order_item_id: int, message_id: int) -> None:
        """Only the author may delete a message."""
        result = await db.execute(
            select(OrderItemMessage).where(
                OrderItemMessage.id == message_id,
                OrderItemMessage.order_item_id == order_item_id,
            )
        )
        message = result.scalar_one_or_none()
        if message is None:
            raise ResourceNotFoundError("Message", message_id)

        if message.author_id != current_user["user_id"]:
            raise InsufficientPermissionsError("Only the author can delete this message")

        await db.delete(message)
        await db.commit()

        await publish_message_event(order_item_id, "deleted", {"id": message_id})
