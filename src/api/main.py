"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.hashing.bcrypt_hasher import BcryptPasswordHasher
from src.adapters.repository.memory import InMemoryAccountRepository
from src.adapters.repository.postgres import PostgresAccountRepository, run_migrations
from src.adapters.revocation.memory import InMemoryRevocationStore
from src.api.dependencies import build_email_sender
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Account lifecycle API v1 - Register, verify, log in and reset passwords",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the account repository (and database pool, migrations)
    - Creates the revocation store, password hasher and email sender
    - Drains the email queue and closes the pool on shutdown
    """
    settings = get_settings()
    logging.getLogger("src").setLevel(settings.log_level.upper())

    logger.info("Starting application...")

    pool = None
    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        # Create connection pool with explicit sizing
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            open=True,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)
        repository = PostgresAccountRepository(pool)
    else:
        logger.warning("Using in-memory account storage; data is lost on restart")
        repository = InMemoryAccountRepository()

    email_sender = build_email_sender(settings)

    # Store adapters in app state for dependency injection
    app.state.pool = pool
    app.state.repository = repository
    app.state.revocations = InMemoryRevocationStore()
    app.state.password_hasher = BcryptPasswordHasher(rounds=settings.bcrypt_cost)
    app.state.email_sender = email_sender

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    email_sender.shutdown(wait=True)
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="credgate",
    description="Account lifecycle API - Registration, OTP email verification, JWT sessions and password reset",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
