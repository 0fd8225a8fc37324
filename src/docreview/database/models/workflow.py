"""Review workflow configuration model for Docreview.

A WorkflowConfig is the review policy for one or more document types. The
engine only reads these records; they are managed by operators (see the
``docreview seed`` command).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from docreview.database.models.base import Base, JSONType, TimestampMixin


class WorkflowConfig(TimestampMixin, Base):
    """Review policy for a set of document types.

    Attributes:
        name: Unique workflow name.
        description: Free-form description.
        document_types: Document types the workflow applies to.
        required_roles: ReviewerRole values to fill on auto-assignment.
        review_stages: Stage dicts ({stage_number, name, required_role,
            estimated_hours, max_days}); the first stage's estimated_hours
            is the default assignment estimate.
        default_due_days: Business days from creation to due date.
        auto_assignment: Assign reviewers automatically at intake.
        auto_notification: Send notifications for this workflow's reviews.
        minimum_reviewers: Informational lower bound on reviewers.
        is_active: Inactive workflows are skipped during resolution.
    """

    __tablename__ = "workflow_configs"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_types: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    required_roles: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    review_stages: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    default_due_days: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    auto_assignment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    auto_notification: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    minimum_reviewers: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def stage_estimated_hours(self) -> float | None:
        """Estimated hours of the first review stage, if any stage defines it."""
        if not self.review_stages:
            return None
        hours = self.review_stages[0].get("estimated_hours")
        return float(hours) if hours is not None else None
