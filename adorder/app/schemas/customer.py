"""
Customer and keyword schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class CustomerCreate(BaseModel):
    business_name: str = Field(..., max_length=255)
    place_id: Optional[str] = Field(None, max_length=100)
    place_url: Optional[str] = Field(None, max_length=500)
    contact: Optional[str] = Field(None, max_length=100)


class CustomerUpdate(BaseModel):
    business_name: Optional[str] = Field(None, max_length=255)
    place_id: Optional[str] = Field(None, max_length=100)
    place_url: Optional[str] = Field(None, max_length=500)
    contact: Optional[str] = Field(None, max_length=100)


class CustomerResponse(BaseModel):
    id: int
    business_name: str
    place_id: Optional[str] = None
    place_url: Optional[str] = None
    contact: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class KeywordCreate(BaseModel):
    """Comma separated keywords, e.g. ``"gangnam cafe, brunch"``."""
    keywords: str


class KeywordResponse(BaseModel):
    id: int
    customer_id: int
    keyword: str
    created_at: datetime

    class Config:
        from_attributes = True


class KeywordBatchResponse(BaseModel):
    added: List[KeywordResponse]
    skipped: List[str]
