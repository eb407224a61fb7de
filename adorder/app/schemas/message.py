"""
Order item message schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from adorder.app.models.enums import MessageAuthorRole


class MessageCreate(BaseModel):
    message: Optional[str] = None
    message_type: Optional[str] = Field(None, max_length=30)


class MessageResponse(BaseModel):
    id: int
    order_item_id: int
    author_id: int
    author_email: Optional[str] = None
    author_role: MessageAuthorRole
    message: str
    message_type: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
