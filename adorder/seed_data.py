"""
Database seeding script for a fresh installation.

Creates the first ADMIN account, the tier pricing rules and a sample product.
Accounts cannot self-register, so the seeded admin is the way in.

Usage:
    python -m adorder.seed_data
"""

import asyncio
import os

from sqlalchemy import select

from adorder.app.db.session import AsyncSessionLocal, engine, Base
from adorder.app.models.user import User
from adorder.app.models.enums import UserTier
from adorder.app.models.product import Product, ProductInputDefinition, TierPricingRule
from adorder.app.core.security import get_password_hash

DEFAULT_ADMIN_EMAIL = "admin@adorder.example.com"
DEFAULT_ADMIN_PASSWORD = "admin12345"

TIER_MULTIPLIERS = {
    UserTier.basic: 1.0,
    UserTier.silver: 0.95,
    UserTier.gold: 0.9,
    UserTier.vip: 0.85,
    UserTier.admin: 1.0,
}

SAMPLE_PRODUCT = {
    "name": "Place traffic booster",
    "description": "Daily visits to a map place listing",
    "unit": "건",
    "vendor_base_price": 35,
}

SAMPLE_INPUTS = [
    ("keyword", "Search keyword", "TEXT", True),
    ("place_url", "Place URL", "URL", True),
    ("start_date", "Start date", "DATE", False),
]


async def seed_data(session_factory=AsyncSessionLocal) -> dict:
    """
    Seed the admin account, tier pricing rules and a sample product.

    Each part is skipped when it already exists, so the script can be re-run.

    Returns:
        Counts of created rows per kind
    """
    created = {"admin": 0, "tier_rules": 0, "products": 0}

    async with session_factory() as db:
        print("🌱 Starting seeding...")

        admin_email = os.getenv("SEED_ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL)
        admin_password = os.getenv("SEED_ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD)

        result = await db.execute(select(User).where(User.email == admin_email))
        if result.scalar_one_or_none():
            print("ℹ️  ADMIN user already exists, skipping")
        else:
            db.add(User(
                email=admin_email,
                display_name="Administrator",
                hashed_password=get_password_hash(admin_password),
                tier=UserTier.admin,
                is_active=True,
                balance=0,
            ))
            created["admin"] = 1
            print(f"✅ Created ADMIN user ({admin_email})")

        result = await db.execute(select(TierPricingRule.tier))
        existing_tiers = set(result.scalars().all())
        for tier, multiplier in TIER_MULTIPLIERS.items():
            if tier not in existing_tiers:
                db.add(TierPricingRule(tier=tier, multiplier=multiplier))
                created["tier_rules"] += 1
        print(f"✅ Tier pricing rules: {created['tier_rules']} created")

        result = await db.execute(select(Product).where(Product.name == SAMPLE_PRODUCT["name"]))
        if result.scalar_one_or_none() is None:
            product = Product(**SAMPLE_PRODUCT)
            db.add(product)
            await db.flush()
            for order, (key, label, field_type, required) in enumerate(SAMPLE_INPUTS):
                db.add(ProductInputDefinition(
                    product_id=product.id,
                    field_key=key,
                    label=label,
                    field_type=field_type,
                    required=required,
                    sort_order=order,
                ))
            created["products"] = 1
            print(f"✅ Created sample product '{SAMPLE_PRODUCT['name']}'")

        await db.commit()

    print("\n🎉 Seeding completed")
    return created


async def main():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_data()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
