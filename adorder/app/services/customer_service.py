"""
Customer book service.

Each advertiser manages their own customers and the keywords tracked for them.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, desc
from typing import Optional, List, Dict, Any, Tuple

from adorder.app.core.exceptions import ResourceNotFoundError, InvalidArgumentError
from adorder.app.core.guards import OwnershipGuard
from adorder.app.models.customer import Customer, CustomerKeyword

ownership_guard = OwnershipGuard()

EDITABLE_FIELDS = ("business_name", "place_id", "place_url", "contact")


def split_keywords(raw: str) -> List[str]:
    """Split a comma separated string, dropping blanks."""
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


class CustomerService:

    @staticmethod
    async def get_owned(db: AsyncSession, current_user: dict, customer_id: int) -> Customer:
        customer = await db.get(Customer, customer_id)
        if customer is None:
            raise ResourceNotFoundError("Customer", customer_id)
        ownership_guard.enforce(customer.user_id, current_user, "customer")
        return customer

    @staticmethod
    async def list_customers(db: AsyncSession, user_id: int) -> List[Customer]:
        result = await db.execute(
            select(Customer)
            .where(Customer.user_id == user_id)
            .order_by(desc(Customer.created_at), desc(Customer.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_customer(db: AsyncSession, user_id: int, data: Dict[str, Any]) -> Customer:
        business_name = (data.get("business_name") or "").strip()
        if not business_name:
            raise InvalidArgumentError("business_name is required")

        customer = Customer(
            user_id=user_id,
            business_name=business_name,
            place_id=data.get("place_id"),
            place_url=data.get("place_url"),
            contact=data.get("contact"),
        )
        db.add(customer)
        await db.commit()
        await db.refresh(customer)
        return customer

    @staticmethod
    async def update_customer(
        db: AsyncSession,
        current_user: dict,
        customer_id: int,
        changes: Dict[str, Any],
    ) -> Customer:
        customer = await CustomerService.get_owned(db, current_user, customer_id)

        if "business_name" in changes:
            name = (changes["business_name"] or "").strip()
            if not name:
                raise InvalidArgumentError("business_name must not be empty")
            changes["business_name"] = name

        for field in EDITABLE_FIELDS:
            if field in changes:
                setattr(customer, field, changes[field])

        await db.commit()
        await db.refresh(customer)
        return customer

    @staticmethod
    async def delete_customer(db: AsyncSession, current_user: dict, customer_id: int) -> None:
        customer = await CustomerService.get_owned(db, current_user, customer_id)
        await db.execute(delete(CustomerKeyword).where(CustomerKeyword.customer_id == customer.id))
        await db.delete(customer)
        await db.commit()

    @staticmethod
    async def list_keywords(db: AsyncSession, current_user: dict, customer_id: int) -> List[CustomerKeyword]:
        await CustomerService.get_owned(db, current_user, customer_id)
        result = await db.execute(
            select(CustomerKeyword)
            .where(CustomerKeyword.customer_id == customer_id)
            .order_by(CustomerKeyword.created_at, CustomerKeyword.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_keywords(
        db: AsyncSession,
        current_user: dict,
        customer_id: int,
        raw_keywords: Optional[str],
    ) -> Tuple[List[CustomerKeyword], List[str]]:
        """
        Add comma separated keywords.

        Keywords already present (case-insensitive), or repeated within the
        batch, are skipped.

        Returns:
            (created keywords, skipped keyword strings)
        """
        candidates = split_keywords(raw_keywords)
        if not candidates:
            raise InvalidArgumentError("At least one keyword is required")

        existing = await CustomerService.list_keywords(db, current_user, customer_id)
        seen = {kw.keyword.lower() for kw in existing}

        created, skipped = [], []
        for keyword in candidates:
            key = keyword.lower()
            if key in seen:
                skipped.append(keyword)
                continue
            seen.add(key)
            created.append(CustomerKeyword(customer_id=customer_id, keyword=keyword))

        if created:
            db.add_all(created)
            await db.commit()

        return created, skipped

    @staticmethod
    async def delete_keyword(db: AsyncSession, current_user: dict, customer_id: int, keyword_id: int) -> None:
        await CustomerService.get_owned(db, current_user, customer_id)

        result = await db.execute(
            select(CustomerKeyword).where(
                CustomerKeyword.id == keyword_id,
                CustomerKeyword.customer_id == customer_id,
            )
        )
        keyword = result.scalar_one_or_none()
        if keyword is None:
            raise ResourceNotFoundError("Keyword", keyword_id)

        await db.delete(keyword)
        await db.commit()
