"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from adorder.app.api.v1.endpoints import (
    auth, admin_users, products, orders, messages,
    cancellation_requests, payment, wallet, customers
)

router = APIRouter()

# Authentication & user administration
router.include_router(auth.router)
router.include_router(admin_users.router)

# Catalogue & ordering
router.include_router(products.router)
router.include_router(orders.router)
router.include_router(messages.router)

# Cancellation workflow
router.include_router(cancellation_requests.router)
router.include_router(cancellation_requests.admin_router)

# Wallet & payments
router.include_router(wallet.router)
router.include_router(payment.router)

# Customer book
router.include_router(customers.router)
