"""Database connection and session management using SQLAlchemy 2.0 async patterns.

This module provides PostgreSQL database connectivity using asyncpg.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from partition_lifecycle.core.config import get_settings

# Global engine and session factory
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the global async session factory.

    Returns:
        async_sessionmaker: Factory for creating async database sessions.

    Raises:
        RuntimeError: If database has not been initialized.
    """
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _async_session_factory


async def init_db(create_tables: bool = True) -> None:
    """Initialize the database engine and create the managed tables.

    This function should be called once during application startup. The
    partitioned parent table and the archive schema/table are created if
    missing; partitions themselves are left to the provisioner.

    Args:
        create_tables: Create the tables defined in the model metadata.
    """
    global _engine, _async_session_factory  # noqa: PLW0603

    settings = get_settings()

    _engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,  # Verify connections before use
    )

    _async_session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    if not create_tables:
        return

    metadata = build_managed_metadata(settings.partition_schema, settings.archive_schema)
    schemas = sorted({table.schema for table in metadata.tables.values()})

    async with _engine.begin() as conn:
        for schema in schemas:
            await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
        await conn.run_sync(metadata.create_all)


def build_managed_metadata(partition_schema: str, archive_schema: str) -> MetaData:
    """Copy the model tables into the configured schemas.

    Args:
        partition_schema: Schema of the partitioned parent tables
        archive_schema: Schema of the monthly aggregate tables

    Returns:
        MetaData holding one schema-qualified copy of every model table.
    """
    from partition_lifecycle.models import ARCHIVE_SCHEMA, Base

    metadata = MetaData()
    for table in Base.metadata.sorted_tables:
        schema = archive_schema if table.schema == ARCHIVE_SCHEMA else partition_schema
        table.to_metadata(metadata, schema=schema)
    return metadata


async def close_db() -> None:
    """Close the database engine and cleanup resources.

    This function should be called during application shutdown.
    """
    global _engine, _async_session_factory  # noqa: PLW0603

    if _engine is not None:
        try:
            await _engine.dispose()
        finally:
            _engine = None
            _async_session_factory = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async database session as a context manager.

    The session commits when the block exits cleanly and rolls back when it
    raises, so every ``async with get_session()`` block is one transaction.

    Usage:
        async with get_session() as session:
            result = await session.execute(text("SELECT 1"))

    Yields:
        AsyncSession: An async SQLAlchemy session.

    Raises:
        RuntimeError: If database has not been initialized.
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

