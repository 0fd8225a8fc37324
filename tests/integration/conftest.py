"""Pytest fixtures for integration tests.

Provides async database fixtures backed by an in-memory SQLite database and
a fully wired ReviewService. Production deployments use PostgreSQL; the
schema and queries are portable so the workflow logic is exercised here
without a server.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from docreview.config import ChecksConfig, DatabaseConfig, DocreviewConfig, NotificationConfig
from docreview.database.models.base import Base
from docreview.database.models.reviewer import ReviewerProfile
from docreview.database.models.workflow import WorkflowConfig
from docreview.database.queries.reviewer import create_reviewer, update_reviewer
from docreview.database.queries.workflow import create_workflow
from docreview.integrations.notifications import NotificationDispatcher
from docreview.workflow.service import ReviewService, build_review_service


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine for testing.

    Yields:
        Configured AsyncEngine instance sharing one in-memory database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a new async database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_config() -> DocreviewConfig:
    """Configuration with inline checks and a short word minimum."""
    return DocreviewConfig(
        database=DatabaseConfig(url="sqlite+aiosqlite:///:memory:"),
        checks=ChecksConfig(min_word_count=20, run_in_background=False),
        notifications=NotificationConfig(enabled=True, timeout_seconds=1.0),
    )


@pytest.fixture
def notification_sender() -> AsyncMock:
    """Sender mock recording every delivered notification."""
    return AsyncMock()


@pytest_asyncio.fixture
async def service(
    test_config: DocreviewConfig,
    session_factory: async_sessionmaker[AsyncSession],
    notification_sender: AsyncMock,
) -> AsyncGenerator[ReviewService, None]:
    """ReviewService wired to the test database and the mock sender."""
    dispatcher = NotificationDispatcher(notification_sender, timeout_seconds=1.0)
    review_service = build_review_service(test_config, session_factory, dispatcher=dispatcher)
    yield review_service
    await review_service.close()


@pytest.fixture
def make_reviewer(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[ReviewerProfile]]:
    """Factory creating reviewer profiles, optionally with seeded metrics."""

    async def _make(
        user_id: str,
        roles: list[str] | None = None,
        metrics: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> ReviewerProfile:
        async with session_factory() as session:
            reviewer = await create_reviewer(
                session,
                user_id=user_id,
                name=user_id.capitalize(),
                email=f"{user_id}@example.com",
                roles=roles or ["technical"],
                **kwargs,
            )
            if metrics:
                reviewer = await update_reviewer(session, user_id, **metrics)
            return reviewer

    return _make


@pytest.fixture
def make_workflow(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[WorkflowConfig]]:
    """Factory creating workflow configurations."""

    async def _make(name: str = "Technical Review", **kwargs: Any) -> WorkflowConfig:
        values: dict[str, Any] = {
            "document_types": ["technical_spec"],
            "required_roles": ["technical"],
            "auto_assignment": True,
        }
        values.update(kwargs)
        async with session_factory() as session:
            return await create_workflow(session, name=name, **values)

    return _make
