"""
FastAPI Application Entry Point.

This is the main application file for the Ad Order Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from adorder.app.core.config import settings
from adorder.app.api.v1.router import router as api_v1_router
from adorder.app.core.observability import ObservabilityMiddleware
from adorder.app.core.redis_client import ping_redis, close_redis
from adorder.app.db.session import engine, Base
from adorder.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from adorder.app.models.user import User
from adorder.app.models.audit_log import AuditLog
from adorder.app.models.product import Product, ProductInputDefinition, TierPricingRule
from adorder.app.models.payment import PaymentTransaction
from adorder.app.models.order import Order, OrderItem
from adorder.app.models.ledger_entry import LedgerEntry
from adorder.app.models.cancellation_request import CancellationRequest
from adorder.app.models.message import OrderItemMessage
from adorder.app.models.customer import Customer, CustomerKeyword

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup; releases Redis and the DB pool on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await close_redis()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Ad product ordering, points wallet and cancellation workflow API",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Ad Order Backend API",
        "docs": "/docs",
        "health": "/health",
    }
