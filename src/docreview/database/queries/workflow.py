"""Workflow configuration query functions for Docreview."""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docreview.database.models.workflow import WorkflowConfig

logger = structlog.get_logger(__name__)


async def create_workflow(
    session: AsyncSession,
    name: str,
    document_types: list[str],
    required_roles: list[str],
    review_stages: list[dict[str, Any]] | None = None,
    default_due_days: int = 5,
    auto_assignment: bool = False,
    auto_notification: bool = True,
    minimum_reviewers: int = 1,
    description: str | None = None,
    is_active: bool = True,
) -> WorkflowConfig:
    """Create and commit a workflow configuration."""
    workflow = WorkflowConfig(
        name=name,
        description=description,
        document_types=document_types,
        required_roles=[str(getattr(r, "value", r)) for r in required_roles],
        review_stages=review_stages or [],
        default_due_days=default_due_days,
        auto_assignment=auto_assignment,
        auto_notification=auto_notification,
        minimum_reviewers=minimum_reviewers,
        is_active=is_active,
    )
    session.add(workflow)
    await session.commit()

    logger.info(
        "workflow_created",
        workflow_id=str(workflow.id),
        name=name,
        document_types=document_types,
        auto_assignment=auto_assignment,
    )
    return workflow


async def get_workflow(
    session: AsyncSession,
    workflow_id: uuid.UUID,
) -> WorkflowConfig | None:
    """Retrieve a workflow configuration by ID."""
    stmt = select(WorkflowConfig).where(WorkflowConfig.id == workflow_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_active_workflows(session: AsyncSession) -> list[WorkflowConfig]:
    """List active workflow configurations, oldest first."""
    stmt = (
        select(WorkflowConfig)
        .where(WorkflowConfig.is_active.is_(True))
        .order_by(WorkflowConfig.created_at.asc(), WorkflowConfig.name.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
