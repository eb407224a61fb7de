"""
Tier pricing resolver.

A product's price for a user is the vendor base price scaled by the
multiplier configured for the user's tier, rounded half-up to whole points.
"""

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adorder.app.models.enums import UserTier
from adorder.app.models.product import TierPricingRule

DEFAULT_MULTIPLIER = 1.0


def round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def apply_multiplier(base_price: int, multiplier: float) -> int:
    return round_half_up(Decimal(str(base_price)) * Decimal(str(multiplier)))


class TierPricingResolver:

    @staticmethod
    async def get_multiplier(db: AsyncSession, tier: UserTier) -> float:
        """Multiplier for ``tier``; 1.0 when no rule exists."""
        result = await db.execute(
            select(TierPricingRule.multiplier).where(TierPricingRule.tier == tier)
        )
        multiplier = result.scalar_one_or_none()
        return DEFAULT_MULTIPLIER if multiplier is None else float(multiplier)
