"""Document review models for Docreview.

Defines the DocumentReview aggregate and its children: reviewer
assignments, completed review rounds with their feedback items, and the
status change audit trail. Also defines the enums shared by the workflow
engine.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docreview.database.models.base import Base, JSONType, TimestampMixin, utcnow


class ReviewStatus(str, enum.Enum):
    """Lifecycle states of a document review.

    States:
        pending_assignment: Created, no reviewer assigned yet.
        assigned: At least one reviewer assigned, work not started.
        in_review: The current reviewer accepted and is reviewing.
        revision_requested: A round ended asking for a revision.
        approved: Terminal, document approved.
        rejected: Terminal, document rejected.
        completed: Terminal, closed by an operator.
    """

    pending_assignment = "pending_assignment"
    assigned = "assigned"
    in_review = "in_review"
    revision_requested = "revision_requested"
    approved = "approved"
    rejected = "rejected"
    completed = "completed"


TERMINAL_STATUSES: frozenset[ReviewStatus] = frozenset(
    {ReviewStatus.approved, ReviewStatus.rejected, ReviewStatus.completed}
)


class ReviewPriority(str, enum.Enum):
    """Review urgency."""

    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class ReviewerRole(str, enum.Enum):
    """Role a reviewer plays on a review."""

    technical = "technical"
    business = "business"
    compliance = "compliance"
    subject_matter_expert = "subject_matter_expert"
    project_manager = "project_manager"
    quality_assurance = "quality_assurance"
    stakeholder = "stakeholder"


class AssignmentStatus(str, enum.Enum):
    """Status of one reviewer assignment."""

    assigned = "assigned"
    in_review = "in_review"
    completed = "completed"
    declined = "declined"


ACTIVE_ASSIGNMENT_STATUSES: frozenset[AssignmentStatus] = frozenset(
    {AssignmentStatus.assigned, AssignmentStatus.in_review}
)


class ReviewDecision(str, enum.Enum):
    """Outcome of a review round."""

    approve = "approve"
    reject = "reject"
    request_revision = "request_revision"


class FeedbackType(str, enum.Enum):
    """Category of a feedback item."""

    content_accuracy = "content_accuracy"
    technical_compliance = "technical_compliance"
    formatting = "formatting"
    completeness = "completeness"
    clarity = "clarity"
    stakeholder_alignment = "stakeholder_alignment"
    regulatory_compliance = "regulatory_compliance"


class FeedbackSeverity(str, enum.Enum):
    """Severity of a feedback item."""

    critical = "critical"
    major = "major"
    minor = "minor"
    info = "info"


class DocumentReview(TimestampMixin, Base):
    """Top-level record tracking one document's review lifecycle.

    Attributes:
        document_id: External identifier of the reviewed document.
        document_name: Human-readable document name.
        document_type: Document type used for workflow resolution.
        document_path: Reference handed to the automated check plugins.
        project_id: Owning project identifier.
        priority: Review urgency.
        status: Current lifecycle state.
        due_date: When the review is due.
        current_round: Number of completed rounds.
        current_reviewer_id: User ID of the reviewer expected to act next.
        compliance_score: Aggregate automated check score, None while pending.
        automated_checks: Serialized CheckResult list.
        extra_metadata: Caller-supplied metadata (tags, generation job ids).
        completed_at: Set iff the review reached a terminal status.
        version: Optimistic concurrency counter.
    """

    __tablename__ = "document_reviews"

    document_id: Mapped[str] = mapped_column(Text, nullable=False)
    document_name: Mapped[str] = mapped_column(Text, nullable=False)
    document_type: Mapped[str] = mapped_column(Text, nullable=False)
    document_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    project_id: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[ReviewPriority] = mapped_column(
        default=ReviewPriority.medium,
        nullable=False,
    )
    status: Mapped[ReviewStatus] = mapped_column(
        default=ReviewStatus.pending_assignment,
        nullable=False,
    )
    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    current_round: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_reviewer_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    compliance_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    automated_checks: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    extra_metadata: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        default=dict,
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    assigned_reviewers: Mapped[list["ReviewerAssignment"]] = relationship(
        back_populates="review",
        cascade="all, delete-orphan",
        order_by="ReviewerAssignment.assigned_at",
        lazy="selectin",
    )
    review_rounds: Mapped[list["ReviewRound"]] = relationship(
        back_populates="review",
        cascade="all, delete-orphan",
        order_by="ReviewRound.round_number",
        lazy="selectin",
    )
    status_changes: Mapped[list["ReviewStatusChange"]] = relationship(
        back_populates="review",
        cascade="all, delete-orphan",
        order_by="ReviewStatusChange.changed_at",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_document_reviews_status", "status"),
        Index("ix_document_reviews_project_id", "project_id"),
        Index("ix_document_reviews_document_type", "document_type"),
        Index("ix_document_reviews_created_at", "created_at"),
    )

    @property
    def is_terminal(self) -> bool:
        """Whether the review is in a terminal status."""
        return self.status in TERMINAL_STATUSES

    def find_assignment(
        self,
        reviewer_id: str,
        role: ReviewerRole | None = None,
    ) -> ReviewerAssignment | None:
        """Return the reviewer's assignment, preferring non-declined ones.

        Args:
            reviewer_id: User ID of the reviewer.
            role: Restrict the lookup to this role.
        """
        matches = [
            a
            for a in self.assigned_reviewers
            if a.reviewer_id == reviewer_id and (role is None or a.role == role)
        ]
        for assignment in matches:
            if assignment.status != AssignmentStatus.declined:
                return assignment
        return matches[0] if matches else None

    def open_assignments(self, reviewer_id: str | None = None) -> list[ReviewerAssignment]:
        """Assignments still counting against capacity (assigned or in_review)."""
        return [
            a
            for a in self.assigned_reviewers
            if a.status in ACTIVE_ASSIGNMENT_STATUSES
            and (reviewer_id is None or a.reviewer_id == reviewer_id)
        ]

    def touch(self) -> None:
        """Mark the review row dirty so its version is bumped on flush."""
        self.updated_at = utcnow()


class ReviewerAssignment(TimestampMixin, Base):
    """Binding of one reviewer to one role on one review.

    Created once per (review, reviewer, role); only its status changes.
    """

    __tablename__ = "reviewer_assignments"

    review_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("document_reviews.id", ondelete="CASCADE"),
        nullable=False,
    )
    reviewer_id: Mapped[str] = mapped_column(Text, nullable=False)
    reviewer_name: Mapped[str] = mapped_column(Text, nullable=False)
    reviewer_email: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[ReviewerRole] = mapped_column(nullable=False)
    status: Mapped[AssignmentStatus] = mapped_column(
        default=AssignmentStatus.assigned,
        nullable=False,
    )
    estimated_hours: Mapped[float] = mapped_column(Float, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    declined_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    decline_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    review: Mapped[DocumentReview] = relationship(back_populates="assigned_reviewers")

    __table_args__ = (
        UniqueConstraint("review_id", "reviewer_id", "role", name="uq_assignment_reviewer_role"),
        Index("ix_reviewer_assignments_reviewer_status", "reviewer_id", "status"),
    )


class ReviewRound(TimestampMixin, Base):
    """One completed reviewer pass. Immutable once appended."""

    __tablename__ = "review_rounds"

    review_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("document_reviews.id", ondelete="CASCADE"),
        nullable=False,
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    reviewer_id: Mapped[str] = mapped_column(Text, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    decision: Mapped[ReviewDecision] = mapped_column(nullable=False)
    overall_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    quality_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    feedback_quality_score: Mapped[float] = mapped_column(Float, nullable=False)
    thoroughness_score: Mapped[float] = mapped_column(Float, nullable=False)

    review: Mapped[DocumentReview] = relationship(back_populates="review_rounds")
    feedback: Mapped[list["ReviewFeedback"]] = relationship(
        back_populates="round",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("review_id", "round_number", name="uq_round_number"),
    )


class ReviewFeedback(TimestampMixin, Base):
    """A single feedback item inside a review round. Immutable."""

    __tablename__ = "review_feedback"

    round_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("review_rounds.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[FeedbackType] = mapped_column(nullable=False)
    severity: Mapped[FeedbackSeverity] = mapped_column(nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    suggestion: Mapped[str | None] = mapped_column(Text, nullable=True)
    section: Mapped[str | None] = mapped_column(Text, nullable=True)
    line_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    round: Mapped[ReviewRound] = relationship(back_populates="feedback")


class ReviewStatusChange(TimestampMixin, Base):
    """Audit entry written for every review status transition."""

    __tablename__ = "review_status_changes"

    review_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("document_reviews.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_status: Mapped[ReviewStatus] = mapped_column(nullable=False)
    to_status: Mapped[ReviewStatus] = mapped_column(nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    review: Mapped[DocumentReview] = relationship(back_populates="status_changes")
