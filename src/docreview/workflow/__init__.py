"""Review workflow engine for Docreview.

This module implements the review status state machine, business-day due
dates, per-entity locking and atomic units of work, automated checks,
workflow resolution, reviewer capacity, reviewer assignment, feedback
scoring, review round processing, reviewer metrics, and the ReviewService
that exposes the workflow operations.
"""

from __future__ import annotations

from docreview.workflow.assignment import AvailableReviewer, ReviewerAssignmentEngine
from docreview.workflow.capacity import CapacityDecision, ReviewerCapacityModel, Workload
from docreview.workflow.checks import (
    AutomatedCheckRunner,
    CheckPlugin,
    CheckResult,
    CheckStatus,
    compliance_score,
    default_plugins,
)
from docreview.workflow.due_dates import add_business_days, is_business_day
from docreview.workflow.locking import EntityLocks, UnitOfWork, review_key, reviewer_key
from docreview.workflow.metrics import ReviewerMetricsTracker, RoundStats
from docreview.workflow.resolver import ReviewPolicy, WorkflowConfigResolver
from docreview.workflow.rounds import FeedbackItem, ReviewRoundProcessor
from docreview.workflow.scoring import feedback_quality_score, thoroughness_score
from docreview.workflow.service import (
    FeedbackIssue,
    QualityTrendPoint,
    ReviewAnalytics,
    ReviewerDashboard,
    ReviewService,
    build_review_service,
)
from docreview.workflow.state_machine import (
    VALID_TRANSITIONS,
    transition,
    validate_transition,
)

__all__ = [
    # Assignment
    "AvailableReviewer",
    "ReviewerAssignmentEngine",
    # Capacity
    "CapacityDecision",
    "ReviewerCapacityModel",
    "Workload",
    # Checks
    "AutomatedCheckRunner",
    "CheckPlugin",
    "CheckResult",
    "CheckStatus",
    "compliance_score",
    "default_plugins",
    # Due dates
    "add_business_days",
    "is_business_day",
    # Locking
    "EntityLocks",
    "UnitOfWork",
    "review_key",
    "reviewer_key",
    # Metrics and scoring
    "ReviewerMetricsTracker",
    "RoundStats",
    "feedback_quality_score",
    "thoroughness_score",
    # Resolution
    "ReviewPolicy",
    "WorkflowConfigResolver",
    # Rounds
    "FeedbackItem",
    "ReviewRoundProcessor",
    # Service
    "FeedbackIssue",
    "QualityTrendPoint",
    "ReviewAnalytics",
    "ReviewerDashboard",
    "ReviewService",
    "build_review_service",
    # State machine
    "VALID_TRANSITIONS",
    "transition",
    "validate_transition",
]
