"""FastAPI route definitions for Docreview.

This module contains the health, document review and reviewer routers.
"""

from __future__ import annotations

from docreview.web.routes.health import (
    HealthResponse,
    ReadinessResponse,
    create_health_router,
)
from docreview.web.routes.reviewers import (
    AvailableReviewerResponse,
    DashboardResponse,
    ReviewerCreate,
    ReviewerResponse,
    WorkloadResponse,
    create_reviewers_router,
)
from docreview.web.routes.reviews import (
    AnalyticsResponse,
    AssignmentCreate,
    ReviewCreate,
    ReviewPage,
    ReviewResponse,
    RoundSubmit,
    StatusUpdate,
    create_reviews_router,
)

__all__ = [
    # Health
    "HealthResponse",
    "ReadinessResponse",
    "create_health_router",
    # Reviewers
    "AvailableReviewerResponse",
    "DashboardResponse",
    "ReviewerCreate",
    "ReviewerResponse",
    "WorkloadResponse",
    "create_reviewers_router",
    # Reviews
    "AnalyticsResponse",
    "AssignmentCreate",
    "ReviewCreate",
    "ReviewPage",
    "ReviewResponse",
    "RoundSubmit",
    "StatusUpdate",
    "create_reviews_router",
]
