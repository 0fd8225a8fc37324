"""Document review query functions for Docreview.

Provides async functions for reading DocumentReview records: lookup by ID,
filtered/sorted/paged search, reviewer-scoped listings, and the workload
aggregate used by the capacity model. Writes happen in the workflow
engine's atomic units of work; these functions never commit.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docreview.database.models.review import (
    ACTIVE_ASSIGNMENT_STATUSES,
    AssignmentStatus,
    DocumentReview,
    ReviewerAssignment,
    ReviewPriority,
    ReviewStatus,
)

logger = structlog.get_logger(__name__)

SortField = Literal["created_at", "due_date", "priority", "status"]

_PRIORITY_RANK = {
    ReviewPriority.low: 0,
    ReviewPriority.medium: 1,
    ReviewPriority.high: 2,
    ReviewPriority.critical: 3,
}


class ReviewSearchParams(BaseModel):
    """Filters, sort and page for review search.

    Attributes:
        status: Match any of these statuses.
        priority: Match any of these priorities.
        document_type: Match any of these document types.
        project_id: Restrict to one project.
        reviewer_id: Restrict to reviews with an assignment for this reviewer.
        date_from: Created at or after.
        date_to: Created at or before.
        sort_by: Sort column; priority sorts by urgency rank.
        sort_order: "asc" or "desc".
        limit: Page size.
        offset: Rows to skip.
    """

    status: list[ReviewStatus] | None = None
    priority: list[ReviewPriority] | None = None
    document_type: list[str] | None = None
    project_id: str | None = None
    reviewer_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    sort_by: SortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


async def get_review(
    session: AsyncSession,
    review_id: uuid.UUID,
) -> DocumentReview | None:
    """Retrieve a review with its assignments, rounds and history.

    Args:
        session: Active async database session.
        review_id: UUID of the review to retrieve.

    Returns:
        The DocumentReview if found, None otherwise.
    """
    stmt = select(DocumentReview).where(DocumentReview.id == review_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def _apply_filters(stmt: Select, params: ReviewSearchParams) -> Select:
    if params.status:
        stmt = stmt.where(DocumentReview.status.in_(params.status))
    if params.priority:
        stmt = stmt.where(DocumentReview.priority.in_(params.priority))
    if params.document_type:
        stmt = stmt.where(DocumentReview.document_type.in_(params.document_type))
    if params.project_id is not None:
        stmt = stmt.where(DocumentReview.project_id == params.project_id)
    if params.reviewer_id is not None:
        stmt = stmt.where(
            DocumentReview.assigned_reviewers.any(
                ReviewerAssignment.reviewer_id == params.reviewer_id
            )
        )
    if params.date_from is not None:
        stmt = stmt.where(DocumentReview.created_at >= params.date_from)
    if params.date_to is not None:
        stmt = stmt.where(DocumentReview.created_at <= params.date_to)
    return stmt


def _sort_column(sort_by: SortField):
    if sort_by == "priority":
        return case(
            *[(DocumentReview.priority == p, rank) for p, rank in _PRIORITY_RANK.items()],
            else_=0,
        )
    return getattr(DocumentReview, sort_by)


async def search_reviews(
    session: AsyncSession,
    params: ReviewSearchParams,
) -> tuple[list[DocumentReview], int]:
    """Search reviews with filters, sorting and paging.

    Args:
        session: Active async database session.
        params: Search parameters.

    Returns:
        Tuple of (page of reviews, total number of matching reviews).
    """
    count_stmt = _apply_filters(select(func.count(DocumentReview.id)), params)
    total = (await session.execute(count_stmt)).scalar_one()

    column = _sort_column(params.sort_by)
    order = column.asc() if params.sort_order == "asc" else column.desc()
    stmt = (
        _apply_filters(select(DocumentReview), params)
        .order_by(order, DocumentReview.id)
        .limit(params.limit)
        .offset(params.offset)
    )
    result = await session.execute(stmt)
    reviews = list(result.scalars().all())

    logger.debug(
        "reviews_searched",
        total=total,
        returned=len(reviews),
        sort_by=params.sort_by,
        sort_order=params.sort_order,
    )
    return reviews, total


async def list_reviews_for_reviewer(
    session: AsyncSession,
    reviewer_id: str,
    statuses: set[ReviewStatus] | None = None,
) -> list[DocumentReview]:
    """List reviews on which the reviewer holds a non-declined assignment.

    Args:
        session: Active async database session.
        reviewer_id: User ID of the reviewer.
        statuses: Optional set of review statuses to restrict to.

    Returns:
        Matching reviews ordered by due date (unset due dates last).
    """
    stmt = select(DocumentReview).where(
        DocumentReview.assigned_reviewers.any(
            (ReviewerAssignment.reviewer_id == reviewer_id)
            & (ReviewerAssignment.status != AssignmentStatus.declined)
        )
    )
    if statuses:
        stmt = stmt.where(DocumentReview.status.in_(statuses))
    stmt = stmt.order_by(DocumentReview.due_date.is_(None), DocumentReview.due_date.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_reviews_created_between(
    session: AsyncSession,
    start: datetime,
    end: datetime,
) -> list[DocumentReview]:
    """List reviews created within [start, end]."""
    stmt = (
        select(DocumentReview)
        .where(DocumentReview.created_at >= start, DocumentReview.created_at <= end)
        .order_by(DocumentReview.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_reviewer_workload(
    session: AsyncSession,
    reviewer_id: str,
) -> tuple[int, float]:
    """Aggregate a reviewer's active assignments across all reviews.

    Args:
        session: Active async database session.
        reviewer_id: User ID of the reviewer.

    Returns:
        Tuple of (active assignment count, total estimated hours).
    """
    stmt = select(
        func.count(ReviewerAssignment.id),
        func.coalesce(func.sum(ReviewerAssignment.estimated_hours), 0.0),
    ).where(
        ReviewerAssignment.reviewer_id == reviewer_id,
        ReviewerAssignment.status.in_(ACTIVE_ASSIGNMENT_STATUSES),
    )
    count, hours = (await session.execute(stmt)).one()
    return int(count), float(hours)
