"""
Order item message endpoints.

Owner and administrators share one thread per order item.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from adorder.app.db.session import get_db
from adorder.app.core.dependencies import get_current_user
from adorder.app.models.message import OrderItemMessage
from adorder.app.schemas.message import MessageCreate, MessageResponse, MessageListResponse
from adorder.app.services.message_service import MessageService

router = APIRouter(prefix="/orders/items", tags=["Order Item Messages"])


def _to_response(message: OrderItemMessage) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        order_item_id=message.order_item_id,
        author_id=message.author_id,
        author_email=message.author.email if message.author else None,
        author_role=message.author_role,
        message=message.message,
        message_type=message.message_type,
        is_read=message.is_read,
        read_at=message.read_at,
        created_at=message.created_at,
    )


@router.get("/{item_id}/messages", response_model=MessageListResponse)
async def list_messages(
    item_id: int = Path(..., description="Order item ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Thread oldest first; messages from the other side are marked read."""
    messages = await MessageService.list_messages(db, current_user, item_id)
    return MessageListResponse(messages=[_to_response(m) for m in messages])


@router.post("/{item_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_message(
    data: MessageCreate,
    item_id: int = Path(..., description="Order item ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    message = await MessageService.create_message(
        db, current_user, item_id, data.message, data.message_type
    )
    return _to_response(message)


@router.delete("/{item_id}/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    item_id: int = Path(..., description="Order item ID"),
    message_id: int = Path(..., description="Message ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Author-only delete."""
    await MessageService.delete_message(db, current_user, item_id, message_id)
