"""Reviewer profile model for Docreview.

A ReviewerProfile describes a person who can review documents: the roles
they may fill, their capacity limits, and running performance metrics.
The metrics columns are written only by the ReviewerMetricsTracker.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from docreview.database.models.base import Base, JSONType, TimestampMixin, utcnow


class ReviewerProfile(TimestampMixin, Base):
    """A reviewer with roles, capacity limits and running metrics.

    Attributes:
        user_id: Unique external user identifier.
        name: Display name.
        email: Notification address.
        title: Job title.
        department: Department name.
        roles: ReviewerRole values the reviewer may fill.
        expertise: Free-form expertise tags.
        preferred_document_types: Document types the reviewer prefers;
            empty means any type.
        is_active: Inactive reviewers are never assigned.
        max_concurrent_reviews: Upper bound on active assignments.
        max_hours: Upper bound on estimated hours across active assignments.
        total_reviews: Rounds counted by the metrics tracker.
        completed_reviews: Completed rounds folded into the averages.
        average_review_time: Mean hours per round.
        average_quality_score: Mean round quality score (0-100).
        on_time_completion_rate: Percentage of rounds finished by the due date.
        feedback_quality_score: Mean feedback quality score (0-100).
        thoroughness_score: Mean thoroughness score (0-100).
        metrics_updated_at: Last time metrics changed.
        version: Optimistic concurrency counter.
    """

    __tablename__ = "reviewer_profiles"

    user_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    department: Mapped[str | None] = mapped_column(Text, nullable=True)
    roles: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    expertise: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    preferred_document_types: Mapped[list[str]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    max_concurrent_reviews: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    max_hours: Mapped[float] = mapped_column(Float, default=20.0, nullable=False)

    total_reviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_reviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_review_time: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    average_quality_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    on_time_completion_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    feedback_quality_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    thoroughness_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    metrics_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_reviewer_profiles_active", "is_active"),
    )

    def has_role(self, role: str) -> bool:
        """Whether the reviewer may fill the given role."""
        return str(getattr(role, "value", role)) in (self.roles or [])

    def prefers(self, document_type: str) -> bool:
        """Whether the reviewer takes documents of this type."""
        return not self.preferred_document_types or document_type in self.preferred_document_types

    def touch(self) -> None:
        """Mark the profile row dirty so its version is bumped on flush."""
        self.updated_at = utcnow()
