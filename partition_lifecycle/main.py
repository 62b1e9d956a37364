"""FastAPI application entry point for the partition lifecycle admin API."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from partition_lifecycle.api.exception_handlers import register_exception_handlers
from partition_lifecycle.api.routes import partitions_router
from partition_lifecycle.core import close_db, get_settings, init_db
from partition_lifecycle.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle - startup and shutdown events."""
    # Initialize logging first (before any other initialization)
    setup_logging()

    await init_db()
    logger.info("Database initialized")

    yield

    await close_db()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Build the FastAPI application with routes and exception handlers."""
    settings = get_settings()
    application = FastAPI(
        title=settings.app_name,
        description="Monthly partition lifecycle management for PostgreSQL time-series tables",
        version=settings.app_version,
        lifespan=lifespan,
    )
    register_exception_handlers(application)
    application.include_router(partitions_router)

    @application.get("/")
    async def root() -> dict[str, str]:
        """Liveness check endpoint."""
        return {"status": "ok", "message": settings.app_name}

    return application


app = create_app()
