"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures logging, routers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from airena.adapters.repository.postgres import PostgresReminderRepository, run_migrations
from airena.adapters.scheduling.runner import ReminderRunner
from airena.api.dependencies import get_email_dispatcher
from airena.api.v1 import router as v1_router
from airena.config.settings import get_settings
from airena.domain.reminders import ReminderScheduler

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "auth",
        "description": "Registration, email verification and two-step login",
    },
    {
        "name": "admin",
        "description": "Host approval decisions and reminder sweeps",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Starts the reminder runner when enabled
    - Stops the runner and closes the pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    # Store pool in app state for dependency injection
    app.state.pool = pool

    runner = None
    if settings.scheduler_enabled:
        scheduler = ReminderScheduler(
            repository=PostgresReminderRepository(pool),
            dispatcher=get_email_dispatcher(),
            dashboard_url=settings.dashboard_url,
        )
        runner = ReminderRunner(
            scheduler,
            timezone_name=settings.reminder_timezone,
            daily_hour=settings.daily_sweep_hour,
        )
        await runner.start()
    else:
        logger.info("Reminder runner disabled")

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    if runner is not None:
        await runner.stop()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="airena",
    description="AIrena identity API - Registration, host approval, two-step login and reminders",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
