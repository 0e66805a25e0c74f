"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.keyring import load_signing_keyring
from src.adapters.repository.postgres import run_migrations
from src.adapters.sms import build_verification_channel
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.statistics import RegistrationStatistics

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Phone and public key registration API v1 - Verify a phone number "
        "and get an OpenPGP key signed by the network",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Loads signing keys and resolves the verification channel
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    # Run migrations
    logger.info("Running database migrations...")
    run_migrations(pool)

    keyring = load_signing_keyring(
        settings.signing_keys,
        primary_domain=settings.domain,
        fingerprint_hint=settings.signing_key_fingerprint,
        passphrase=settings.signing_key_passphrase,
    )
    if settings.domain.lower() not in keyring.domains:
        logger.warning("No signing key configured for %s, registrations will fail", settings.domain)

    channel = build_verification_channel(
        settings.verification_channel, settings.verification_channel_options
    )
    logger.info("Verification channel: %s", settings.verification_channel)

    # Store shared resources in app state for dependency injection
    app.state.pool = pool
    app.state.keyring = keyring
    app.state.verification_channel = channel
    app.state.statistics = RegistrationStatistics()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    close = getattr(channel, "close", None)
    if close is not None:
        close()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="phonekey-register",
    description="Phone number verification and OpenPGP key co-signing registration API",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    # Validate database connectivity
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
