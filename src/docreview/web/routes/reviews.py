"""Document review endpoints for Docreview.

This module provides REST API endpoints over ReviewService:
- Create, get and search reviews
- Assign reviewers, accept and decline assignments
- Submit review rounds and update review status
- Review analytics for a period

Typed workflow errors propagate to the application's exception handlers,
which map them to 404 / 409 / 422 responses.

Example:
    >>> from fastapi import FastAPI
    >>> from docreview.web.routes.reviews import create_reviews_router
    >>>
    >>> app = FastAPI()
    >>> app.include_router(create_reviews_router())
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi import status as http_status
from pydantic import AliasChoices, BaseModel, Field

from docreview.database.models.review import (
    AssignmentStatus,
    FeedbackSeverity,
    FeedbackType,
    ReviewDecision,
    ReviewerRole,
    ReviewPriority,
    ReviewStatus,
)
from docreview.database.queries.review import ReviewSearchParams
from docreview.errors import NotFoundError
from docreview.logging import bind_review_context, get_logger
from docreview.workflow.rounds import FeedbackItem
from docreview.workflow.service import ReviewService

logger = get_logger(__name__)


# --- Request schemas ---


class ReviewCreate(BaseModel):
    """Request schema for submitting a document for review."""

    document_id: str = Field(..., min_length=1)
    document_name: str = Field(..., min_length=1, max_length=500)
    document_type: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    document_path: str | None = None
    priority: ReviewPriority = ReviewPriority.medium
    due_date: datetime | None = None
    workflow_id: UUID | None = None
    required_roles: list[ReviewerRole] | None = None
    preferred_reviewer_ids: list[str] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AssignmentCreate(BaseModel):
    """Request schema for assigning a reviewer."""

    reviewer_id: str = Field(..., min_length=1)
    role: ReviewerRole
    estimated_hours: float | None = Field(default=None, gt=0)


class AssignmentDecline(BaseModel):
    """Request schema for declining an assignment."""

    reason: str | None = None


class RoundSubmit(BaseModel):
    """Request schema for submitting a completed review round."""

    round_number: int = Field(..., ge=1)
    decision: ReviewDecision
    feedback: list[FeedbackItem] = Field(default_factory=list)
    overall_comments: str | None = None
    quality_score: float | None = Field(default=None, ge=0, le=100)
    reviewer_id: str | None = None


class StatusUpdate(BaseModel):
    """Request schema for an operator status change."""

    status: ReviewStatus
    comments: str | None = None


# --- Response schemas ---


class AssignmentResponse(BaseModel):
    """A reviewer assignment on a review."""

    reviewer_id: str
    reviewer_name: str
    reviewer_email: str
    role: ReviewerRole
    status: AssignmentStatus
    estimated_hours: float
    assigned_at: datetime
    accepted_at: datetime | None
    declined_at: datetime | None
    decline_reason: str | None

    model_config = {"from_attributes": True}


class FeedbackResponse(BaseModel):
    """One feedback item of a round."""

    type: FeedbackType
    severity: FeedbackSeverity
    title: str | None
    description: str
    suggestion: str | None
    section: str | None
    line_number: int | None

    model_config = {"from_attributes": True}


class RoundResponse(BaseModel):
    """A completed review round."""

    round_number: int
    reviewer_id: str
    started_at: datetime
    completed_at: datetime
    decision: ReviewDecision
    overall_comments: str | None
    quality_score: float | None
    feedback_quality_score: float
    thoroughness_score: float
    feedback: list[FeedbackResponse]

    model_config = {"from_attributes": True}


class StatusChangeResponse(BaseModel):
    """One entry of the review's status history."""

    from_status: ReviewStatus
    to_status: ReviewStatus
    comments: str | None
    changed_at: datetime

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    """Full review with assignments, rounds and status history."""

    id: UUID
    document_id: str
    document_name: str
    document_type: str
    document_path: str | None
    project_id: str
    priority: ReviewPriority
    status: ReviewStatus
    due_date: datetime | None
    current_round: int
    current_reviewer_id: str | None
    compliance_score: float | None
    automated_checks: list[dict[str, Any]]
    metadata: dict[str, Any] = Field(
        validation_alias=AliasChoices("extra_metadata", "metadata")
    )
    completed_at: datetime | None
    version: int
    created_at: datetime
    updated_at: datetime
    assigned_reviewers: list[AssignmentResponse]
    review_rounds: list[RoundResponse]
    status_changes: list[StatusChangeResponse]

    model_config = {"from_attributes": True}


class ReviewPage(BaseModel):
    """A page of search results."""

    items: list[ReviewResponse]
    total: int
    limit: int
    offset: int


class QualityTrendResponse(BaseModel):
    """Average round quality on one day."""

    day: date
    average_quality_score: float
    rounds: int

    model_config = {"from_attributes": True}


class FeedbackIssueResponse(BaseModel):
    """Frequency of one feedback type/severity pair."""

    type: str
    severity: str
    count: int

    model_config = {"from_attributes": True}


class AnalyticsResponse(BaseModel):
    """Aggregate review statistics for a period."""

    start: datetime
    end: datetime
    total_reviews: int
    completed_reviews: int
    pending_reviews: int
    overdue_reviews: int
    average_review_time: float
    on_time_completion_rate: float
    average_quality_score: float
    active_reviewers: int
    document_type_breakdown: dict[str, int]
    quality_trends: list[QualityTrendResponse]
    common_issues: list[FeedbackIssueResponse]

    model_config = {"from_attributes": True}


# --- Dependency injection ---


def get_review_service(request: Request) -> ReviewService:
    """Dependency that retrieves the ReviewService from app state."""
    return request.app.state.review_service  # type: ignore[no-any-return]


def create_reviews_router() -> APIRouter:
    """Create the document review router.

    Routes:
        GET /reviews/ - Search reviews
        POST /reviews/ - Create a review
        GET /reviews/analytics - Analytics for a creation-date window
        GET /reviews/{review_id} - Get a review
        POST /reviews/{review_id}/assignments - Assign a reviewer
        POST /reviews/{review_id}/assignments/{reviewer_id}/accept - Accept
        POST /reviews/{review_id}/assignments/{reviewer_id}/decline - Decline
        POST /reviews/{review_id}/rounds - Submit a review round
        PATCH /reviews/{review_id}/status - Operator status change
    """
    router = APIRouter(prefix="/reviews", tags=["reviews"])

    @router.get("/", response_model=ReviewPage)
    async def search(
        status: list[ReviewStatus] | None = Query(default=None),  # noqa: B008
        priority: list[ReviewPriority] | None = Query(default=None),  # noqa: B008
        document_type: list[str] | None = Query(default=None),  # noqa: B008
        project_id: str | None = None,
        reviewer_id: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        sort_by: Literal["created_at", "due_date", "priority", "status"] = "created_at",
        sort_order: Literal["asc", "desc"] = "desc",
        limit: int = Query(default=20, ge=1, le=100),
        offset: int = Query(default=0, ge=0),
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewPage:
        """Search reviews with filters, sorting and paging."""
        params = ReviewSearchParams(
            status=status,
            priority=priority,
            document_type=document_type,
            project_id=project_id,
            reviewer_id=reviewer_id,
            date_from=date_from,
            date_to=date_to,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
        reviews, total = await service.search_reviews(params)
        return ReviewPage(
            items=[ReviewResponse.model_validate(r) for r in reviews],
            total=total,
            limit=limit,
            offset=offset,
        )

    @router.post("/", response_model=ReviewResponse, status_code=http_status.HTTP_201_CREATED)
    async def create(
        data: ReviewCreate,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewResponse:
        """Submit a document for review."""
        review = await service.create_review(
            document_id=data.document_id,
            document_name=data.document_name,
            document_type=data.document_type,
            project_id=data.project_id,
            priority=data.priority,
            document_path=data.document_path,
            due_date=data.due_date,
            workflow_id=data.workflow_id,
            required_roles=data.required_roles,
            preferred_reviewer_ids=data.preferred_reviewer_ids,
            metadata=data.metadata,
        )
        logger.info("review_created_via_api", review_id=str(review.id))
        return ReviewResponse.model_validate(review)

    @router.get("/analytics", response_model=AnalyticsResponse)
    async def analytics(
        start: datetime,
        end: datetime,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> AnalyticsResponse:
        """Aggregate statistics over reviews created within [start, end]."""
        return AnalyticsResponse.model_validate(await service.get_analytics(start, end))

    @router.get("/{review_id}", response_model=ReviewResponse)
    async def get(
        review_id: UUID,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewResponse:
        """Get a review by ID."""
        review = await service.get_review(review_id)
        if review is None:
            raise NotFoundError("review", review_id)
        return ReviewResponse.model_validate(review)

    @router.post("/{review_id}/assignments", response_model=ReviewResponse)
    async def assign(
        review_id: UUID,
        data: AssignmentCreate,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewResponse:
        """Assign a reviewer to the review."""
        bind_review_context(str(review_id), data.reviewer_id)
        review = await service.assign_reviewer(
            review_id, data.reviewer_id, data.role, data.estimated_hours
        )
        return ReviewResponse.model_validate(review)

    @router.post(
        "/{review_id}/assignments/{reviewer_id}/accept",
        response_model=ReviewResponse,
    )
    async def accept(
        review_id: UUID,
        reviewer_id: str,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewResponse:
        """Accept an assignment."""
        bind_review_context(str(review_id), reviewer_id)
        return ReviewResponse.model_validate(
            await service.accept_assignment(review_id, reviewer_id)
        )

    @router.post(
        "/{review_id}/assignments/{reviewer_id}/decline",
        response_model=ReviewResponse,
    )
    async def decline(
        review_id: UUID,
        reviewer_id: str,
        data: AssignmentDecline | None = None,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewResponse:
        """Decline an assignment."""
        bind_review_context(str(review_id), reviewer_id)
        reason = data.reason if data is not None else None
        return ReviewResponse.model_validate(
            await service.decline_assignment(review_id, reviewer_id, reason)
        )

    @router.post("/{review_id}/rounds", response_model=ReviewResponse)
    async def submit_round(
        review_id: UUID,
        data: RoundSubmit,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewResponse:
        """Submit a completed review round."""
        bind_review_context(str(review_id), data.reviewer_id)
        review = await service.submit_feedback(
            review_id,
            data.round_number,
            data.feedback,
            data.decision,
            overall_comments=data.overall_comments,
            quality_score=data.quality_score,
            reviewer_id=data.reviewer_id,
        )
        return ReviewResponse.model_validate(review)

    @router.patch("/{review_id}/status", response_model=ReviewResponse)
    async def update_status(
        review_id: UUID,
        data: StatusUpdate,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewResponse:
        """Move the review to a new status."""
        bind_review_context(str(review_id))
        review = await service.update_review_status(review_id, data.status, data.comments)
        return ReviewResponse.model_validate(review)

    return router
