"""
Customer book endpoints.

Customers and their keywords are private to the advertiser who created them.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from adorder.app.db.session import get_db
from adorder.app.core.dependencies import get_current_user
from adorder.app.schemas.customer import (
    CustomerCreate, CustomerUpdate, CustomerResponse,
    KeywordCreate, KeywordResponse, KeywordBatchResponse
)
from adorder.app.services.customer_service import CustomerService

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("", response_model=List[CustomerResponse])
async def list_customers(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    customers = await CustomerService.list_customers(db, current_user["user_id"])
    return [CustomerResponse.model_validate(c) for c in customers]


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    customer = await CustomerService.create_customer(db, current_user["user_id"], data.model_dump())
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int = Path(..., description="Customer ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    customer = await CustomerService.get_owned(db, current_user, customer_id)
    return CustomerResponse.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    data: CustomerUpdate,
    customer_id: int = Path(..., description="Customer ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Partial update; only the fields sent are changed."""
    customer = await CustomerService.update_customer(
        db, current_user, customer_id, data.model_dump(exclude_unset=True)
    )
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: int = Path(..., description="Customer ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Deletes the customer together with its keywords."""
    await CustomerService.delete_customer(db, current_user, customer_id)


@router.get("/{customer_id}/keywords", response_model=List[KeywordResponse])
async def list_keywords(
    customer_id: int = Path(..., description="Customer ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    keywords = await CustomerService.list_keywords(db, current_user, customer_id)
    return [KeywordResponse.model_validate(k) for k in keywords]


@router.post("/{customer_id}/keywords", response_model=KeywordBatchResponse, status_code=status.HTTP_201_CREATED)
async def add_keywords(
    data: KeywordCreate,
    customer_id: int = Path(..., description="Customer ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Add comma separated keywords.

    Case-insensitive duplicates are skipped and listed under ``skipped``.
    """
    added, skipped = await CustomerService.add_keywords(db, current_user, customer_id, data.keywords)
    return KeywordBatchResponse(
        added=[KeywordResponse.model_validate(k) for k in added],
        skipped=skipped
    )


@router.delete("/{customer_id}/keywords/{keyword_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_keyword(
    customer_id: int = Path(..., description="Customer ID"),
    keyword_id: int = Path(..., description="Keyword ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await CustomerService.delete_keyword(db, current_user, customer_id, keyword_id)
