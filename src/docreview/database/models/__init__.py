"""SQLAlchemy ORM models for Docreview.

This module defines the database schema: document reviews with their
assignments, rounds, feedback and status history, reviewer profiles, and
workflow configurations.

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from docreview.database.models.base import Base, TimestampMixin, as_utc, utcnow
from docreview.database.models.review import (
    ACTIVE_ASSIGNMENT_STATUSES,
    TERMINAL_STATUSES,
    AssignmentStatus,
    DocumentReview,
    FeedbackSeverity,
    FeedbackType,
    ReviewDecision,
    ReviewerAssignment,
    ReviewerRole,
    ReviewFeedback,
    ReviewPriority,
    ReviewRound,
    ReviewStatus,
    ReviewStatusChange,
)
from docreview.database.models.reviewer import ReviewerProfile
from docreview.database.models.workflow import WorkflowConfig

__all__ = [
    "Base",
    "TimestampMixin",
    "as_utc",
    "utcnow",
    "ACTIVE_ASSIGNMENT_STATUSES",
    "TERMINAL_STATUSES",
    "AssignmentStatus",
    "DocumentReview",
    "FeedbackSeverity",
    "FeedbackType",
    "ReviewDecision",
    "ReviewerAssignment",
    "ReviewerRole",
    "ReviewFeedback",
    "ReviewPriority",
    "ReviewRound",
    "ReviewStatus",
    "ReviewStatusChange",
    "ReviewerProfile",
    "WorkflowConfig",
]
