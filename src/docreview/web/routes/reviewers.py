"""Reviewer endpoints for Docreview.

This module provides REST API endpoints for reviewer profiles:
- Create and get reviewer profiles
- List reviewers available for a role
- Current workload and the reviewer dashboard

Example:
    >>> from fastapi import FastAPI
    >>> from docreview.web.routes.reviewers import create_reviewers_router
    >>>
    >>> app = FastAPI()
    >>> app.include_router(create_reviewers_router())
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request
from fastapi import status as http_status
from pydantic import BaseModel, Field

from docreview.database.models.review import ReviewerRole
from docreview.database.queries import reviewer as reviewer_queries
from docreview.errors import NotFoundError, ValidationError
from docreview.logging import get_logger
from docreview.web.routes.reviews import ReviewResponse, get_review_service
from docreview.workflow.service import ReviewService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


class ReviewerCreate(BaseModel):
    """Request schema for creating a reviewer profile."""

    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    roles: list[ReviewerRole] = Field(..., min_length=1)
    title: str | None = None
    department: str | None = None
    expertise: list[str] = Field(default_factory=list)
    preferred_document_types: list[str] = Field(default_factory=list)
    max_concurrent_reviews: int = Field(default=3, ge=1, le=100)
    max_hours: float = Field(default=20.0, gt=0, le=168)


class ReviewerResponse(BaseModel):
    """Reviewer profile with running metrics."""

    user_id: str
    name: str
    email: str
    title: str | None
    department: str | None
    roles: list[str]
    expertise: list[str]
    preferred_document_types: list[str]
    is_active: bool
    max_concurrent_reviews: int
    max_hours: float
    total_reviews: int
    completed_reviews: int
    average_review_time: float
    average_quality_score: float
    on_time_completion_rate: float
    feedback_quality_score: float
    thoroughness_score: float
    metrics_updated_at: datetime | None

    model_config = {"from_attributes": True}


class WorkloadResponse(BaseModel):
    """Active assignments held by a reviewer."""

    active_reviews: int
    active_hours: float

    model_config = {"from_attributes": True}


class AvailableReviewerResponse(BaseModel):
    """A reviewer who could take the work now."""

    reviewer: ReviewerResponse
    workload: WorkloadResponse

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    """A reviewer's dashboard."""

    reviewer: ReviewerResponse
    assigned_reviews: list[ReviewResponse]
    pending_reviews: list[ReviewResponse]
    completed_reviews: list[ReviewResponse]
    overdue_reviews: list[ReviewResponse]
    workload: WorkloadResponse
    upcoming_deadlines: list[datetime]

    model_config = {"from_attributes": True}


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Dependency that retrieves session factory from app state."""
    return request.app.state.session_factory  # type: ignore[return-value]


def create_reviewers_router() -> APIRouter:
    """Create the reviewer router.

    Routes:
        POST /reviewers/ - Create a reviewer profile
        GET /reviewers/available - Reviewers with capacity for a role
        GET /reviewers/{user_id} - Get a reviewer profile
        GET /reviewers/{user_id}/workload - Current workload
        GET /reviewers/{user_id}/dashboard - Reviewer dashboard
    """
    router = APIRouter(prefix="/reviewers", tags=["reviewers"])

    @router.post("/", response_model=ReviewerResponse, status_code=http_status.HTTP_201_CREATED)
    async def create(
        data: ReviewerCreate,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ReviewerResponse:
        """Create a reviewer profile."""
        async with session_factory() as session:
            if await reviewer_queries.get_reviewer(session, data.user_id) is not None:
                raise ValidationError(f"Reviewer {data.user_id} already exists")
            reviewer = await reviewer_queries.create_reviewer(
                session,
                user_id=data.user_id,
                name=data.name,
                email=data.email,
                roles=data.roles,
                expertise=data.expertise,
                preferred_document_types=data.preferred_document_types,
                max_concurrent_reviews=data.max_concurrent_reviews,
                max_hours=data.max_hours,
                title=data.title,
                department=data.department,
            )
        logger.info("reviewer_created_via_api", user_id=data.user_id)
        return ReviewerResponse.model_validate(reviewer)

    @router.get("/available", response_model=list[AvailableReviewerResponse])
    async def available(
        role: ReviewerRole,
        document_type: str | None = None,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> list[AvailableReviewerResponse]:
        """Ranked reviewers holding the role who have capacity right now."""
        candidates = await service.available_reviewers(role, document_type)
        return [AvailableReviewerResponse.model_validate(c) for c in candidates]

    @router.get("/{user_id}", response_model=ReviewerResponse)
    async def get(
        user_id: str,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ReviewerResponse:
        """Get a reviewer profile."""
        async with session_factory() as session:
            reviewer = await reviewer_queries.get_reviewer(session, user_id)
        if reviewer is None:
            raise NotFoundError("reviewer", user_id)
        return ReviewerResponse.model_validate(reviewer)

    @router.get("/{user_id}/workload", response_model=WorkloadResponse)
    async def workload(
        user_id: str,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> WorkloadResponse:
        """Current workload of the reviewer."""
        return WorkloadResponse.model_validate(await service.reviewer_workload(user_id))

    @router.get("/{user_id}/dashboard", response_model=DashboardResponse)
    async def dashboard(
        user_id: str,
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> DashboardResponse:
        """The reviewer's dashboard."""
        return DashboardResponse.model_validate(await service.get_reviewer_dashboard(user_id))

    return router
