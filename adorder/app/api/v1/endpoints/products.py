"""
Product catalogue endpoints.

Prices are returned for the caller's tier.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List

from adorder.app.db.session import get_db
from adorder.app.core.dependencies import get_current_user
from adorder.app.core.exceptions import ResourceNotFoundError
from adorder.app.core.permissions import parse_tier
from adorder.app.domain.pricing.tier_pricing import TierPricingResolver, apply_multiplier
from adorder.app.models.enums import UserTier
from adorder.app.models.product import Product
from adorder.app.schemas.product import ProductResponse, ProductDetailResponse, ProductInputDefinitionResponse

router = APIRouter(prefix="/products", tags=["Products"])


def _priced(product: Product, tier: UserTier, multiplier: float) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "unit": product.unit,
        "currency": product.currency,
        "vendor_base_price": product.vendor_base_price,
        "tier": tier,
        "multiplier": multiplier,
        "tier_price": apply_multiplier(product.vendor_base_price, multiplier),
    }


@router.get("", response_model=List[ProductResponse])
async def list_products(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Active products priced for the caller's tier."""
    tier = parse_tier(current_user["tier"])
    multiplier = await TierPricingResolver.get_multiplier(db, tier)

    result = await db.execute(
        select(Product).where(Product.is_active.is_(True)).order_by(Product.id)
    )
    return [ProductResponse(**_priced(p, tier, multiplier)) for p in result.scalars().all()]


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(
    product_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Product with its order input fields, ordered by ``sort_order``."""
    result = await db.execute(
        select(Product)
        .options(selectinload(Product.input_definitions))
        .where(Product.id == product_id, Product.is_active.is_(True))
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise ResourceNotFoundError("Product", product_id)

    tier = parse_tier(current_user["tier"])
    multiplier = await TierPricingResolver.get_multiplier(db, tier)

    return ProductDetailResponse(
        **_priced(product, tier, multiplier),
        input_definitions=[
            ProductInputDefinitionResponse.model_validate(d) for d in product.input_definitions
        ],
    )
