"""Reviewer profile query functions for Docreview.

Provides async functions for creating, reading, and listing
ReviewerProfile records, including the ranking used for auto-assignment.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docreview.database.models.reviewer import ReviewerProfile

logger = structlog.get_logger(__name__)


async def create_reviewer(
    session: AsyncSession,
    user_id: str,
    name: str,
    email: str,
    roles: Iterable[str],
    expertise: list[str] | None = None,
    preferred_document_types: list[str] | None = None,
    max_concurrent_reviews: int = 3,
    max_hours: float = 20.0,
    title: str | None = None,
    department: str | None = None,
    is_active: bool = True,
) -> ReviewerProfile:
    """Create and commit a new reviewer profile.

    Args:
        session: Active async database session.
        user_id: Unique external user identifier.
        name: Display name.
        email: Notification address.
        roles: ReviewerRole values (enum members or strings).
        expertise: Expertise tags.
        preferred_document_types: Preferred document types (empty = any).
        max_concurrent_reviews: Upper bound on active assignments.
        max_hours: Upper bound on estimated hours across active assignments.
        title: Job title.
        department: Department name.
        is_active: Whether the reviewer can be assigned.

    Returns:
        The newly created ReviewerProfile.
    """
    reviewer = ReviewerProfile(
        user_id=user_id,
        name=name,
        email=email,
        roles=[str(getattr(r, "value", r)) for r in roles],
        expertise=expertise or [],
        preferred_document_types=preferred_document_types or [],
        max_concurrent_reviews=max_concurrent_reviews,
        max_hours=max_hours,
        title=title,
        department=department,
        is_active=is_active,
    )
    session.add(reviewer)
    await session.commit()

    logger.info(
        "reviewer_created",
        user_id=user_id,
        roles=reviewer.roles,
        max_concurrent_reviews=max_concurrent_reviews,
        max_hours=max_hours,
    )
    return reviewer


async def get_reviewer(
    session: AsyncSession,
    user_id: str,
) -> ReviewerProfile | None:
    """Retrieve a reviewer profile by user ID."""
    stmt = select(ReviewerProfile).where(ReviewerProfile.user_id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def update_reviewer(
    session: AsyncSession,
    user_id: str,
    **fields: Any,
) -> ReviewerProfile | None:
    """Update profile fields and commit.

    Returns:
        The updated profile, or None if no such reviewer exists.
    """
    reviewer = await get_reviewer(session, user_id)
    if reviewer is None:
        return None
    for key, value in fields.items():
        setattr(reviewer, key, value)
    reviewer.touch()
    await session.commit()
    logger.info("reviewer_updated", user_id=user_id, fields=sorted(fields))
    return reviewer


async def list_reviewers(
    session: AsyncSession,
    role: str | None = None,
    active_only: bool = True,
    user_ids: Iterable[str] | None = None,
) -> list[ReviewerProfile]:
    """List reviewers ranked for assignment.

    Ranking is average_quality_score descending, then
    on_time_completion_rate descending. Role membership is checked in
    Python because roles are stored as a JSON list.

    Args:
        session: Active async database session.
        role: Only reviewers who may fill this role.
        active_only: Exclude inactive reviewers.
        user_ids: Restrict to these user IDs.

    Returns:
        Ranked list of ReviewerProfile instances.
    """
    stmt = select(ReviewerProfile)
    if active_only:
        stmt = stmt.where(ReviewerProfile.is_active.is_(True))
    if user_ids is not None:
        stmt = stmt.where(ReviewerProfile.user_id.in_(list(user_ids)))
    stmt = stmt.order_by(
        ReviewerProfile.average_quality_score.desc(),
        ReviewerProfile.on_time_completion_rate.desc(),
        ReviewerProfile.created_at.asc(),
    )
    result = await session.execute(stmt)
    reviewers = list(result.scalars().all())
    if role is not None:
        reviewers = [r for r in reviewers if r.has_role(role)]
    return reviewers
