"""Database connection management for Docreview.

This module provides factory functions for creating SQLAlchemy async engines
and session factories, configured from the application's DatabaseConfig.

Production deployments use asyncpg against PostgreSQL with connection
pooling; SQLite (aiosqlite) URLs are accepted for local runs and tests.

Example usage:
    >>> from docreview.config import DatabaseConfig
    >>> from docreview.database.connection import get_engine, get_session_factory
    >>>
    >>> engine = get_engine(DatabaseConfig(url="postgresql+asyncpg://localhost/docreview"))
    >>> SessionFactory = get_session_factory(engine)
    >>>
    >>> async with SessionFactory() as session:
    ...     result = await session.execute(select(DocumentReview))
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docreview.config import DatabaseConfig
from docreview.database.models.base import Base


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Pool sizing is only applied to server databases; SQLite uses the
    dialect's default pool.

    Args:
        config: Database configuration containing URL, pool settings,
                and SQL echo preference.

    Returns:
        Configured AsyncEngine instance.
    """
    kwargs: dict[str, Any] = {"echo": config.echo}
    if not config.url.startswith("sqlite"):
        kwargs["pool_size"] = config.pool_size
        kwargs["max_overflow"] = config.max_overflow
    return create_async_engine(config.url, **kwargs)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    Sessions use expire_on_commit=False so attributes stay readable after
    commit without triggering lazy loads in async code.

    Args:
        engine: AsyncEngine to bind sessions to.

    Returns:
        Configured async_sessionmaker that produces AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet.

    Used by ``docreview db init`` for local databases; production schemas
    are managed with Alembic.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
