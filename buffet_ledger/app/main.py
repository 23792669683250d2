"""
FastAPI Application Entry Point.

This is the main application file for the Buffet Ledger API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from buffet_ledger.app.core.config import settings
from buffet_ledger.app.core.logging_config import setup_logging
from buffet_ledger.app.core.observability import ObservabilityMiddleware
from buffet_ledger.app.core.redis_client import ping_redis, redis_client
from buffet_ledger.app.api.v1.router import router as api_v1_router
from buffet_ledger.app.db.session import engine, Base
from buffet_ledger.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from buffet_ledger.app.models.user import User
from buffet_ledger.app.models.company import Company
from buffet_ledger.app.models.ledger_entry import LedgerEntry
from buffet_ledger.app.models.payment import Payment
from buffet_ledger.app.models.receipt import Receipt
from buffet_ledger.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Closes the Redis connection pool on shutdown.
    """
    setup_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not await ping_redis():
        logger.warning("Redis unavailable at startup; logout revocation checks will fail open")

    logger.info("%s %s started (%s)", settings.app_name, settings.api_version, settings.environment)
    yield

    await redis_client.aclose()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Visit ledger and payment settlement for a company buffet",
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
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to the Buffet Ledger API",
        "docs": "/docs",
        "health": "/health",
    }
