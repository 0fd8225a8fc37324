"""Review workflow schema for Docreview.

Creates the review tables: document_reviews, reviewer_assignments,
review_rounds, review_feedback, review_status_changes, reviewer_profiles
and workflow_configs, with their enum types.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS: dict[str, tuple[str, ...]] = {
    "reviewstatus": (
        "pending_assignment", "assigned", "in_review", "revision_requested",
        "approved", "rejected", "completed",
    ),
    "reviewpriority": ("low", "medium", "high", "critical"),
    "reviewerrole": (
        "technical", "business", "compliance", "subject_matter_expert",
        "project_manager", "quality_assurance", "stakeholder",
    ),
    "assignmentstatus": ("assigned", "in_review", "completed", "declined"),
    "reviewdecision": ("approve", "reject", "request_revision"),
    "feedbacktype": (
        "content_accuracy", "technical_compliance", "formatting", "completeness",
        "clarity", "stakeholder_alignment", "regulatory_compliance",
    ),
    "feedbackseverity": ("critical", "major", "minor", "info"),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        "reviewer_profiles",
        *_timestamps(),
        sa.Column("user_id", sa.Text(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("department", sa.Text(), nullable=True),
        sa.Column("roles", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("expertise", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column(
            "preferred_document_types",
            JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("max_concurrent_reviews", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("max_hours", sa.Float(), nullable=False, server_default="20"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_review_time", sa.Float(), nullable=False, server_default="0"),
        sa.Column("average_quality_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("on_time_completion_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("feedback_quality_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("thoroughness_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("metrics_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_reviewer_profiles_active", "reviewer_profiles", ["is_active"])

    op.create_table(
        "workflow_configs",
        *_timestamps(),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("document_types", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("required_roles", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("review_stages", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("default_due_days", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("auto_assignment", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_notification", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("minimum_reviewers", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "document_reviews",
        *_timestamps(),
        sa.Column("document_id", sa.Text(), nullable=False),
        sa.Column("document_name", sa.Text(), nullable=False),
        sa.Column("document_type", sa.Text(), nullable=False),
        sa.Column("document_path", sa.Text(), nullable=True),
        sa.Column("project_id", sa.Text(), nullable=False),
        sa.Column("priority", _enum("reviewpriority"), nullable=False, server_default="medium"),
        sa.Column(
            "status",
            _enum("reviewstatus"),
            nullable=False,
            server_default="pending_assignment",
        ),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_round", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_reviewer_id", sa.Text(), nullable=True),
        sa.Column("compliance_score", sa.Float(), nullable=True),
        sa.Column("automated_checks", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("extra_metadata", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_document_reviews_status", "document_reviews", ["status"])
    op.create_index("ix_document_reviews_project_id", "document_reviews", ["project_id"])
    op.create_index("ix_document_reviews_document_type", "document_reviews", ["document_type"])
    op.create_index("ix_document_reviews_created_at", "document_reviews", ["created_at"])

    op.create_table(
        "reviewer_assignments",
        *_timestamps(),
        sa.Column(
            "review_id",
            sa.Uuid(),
            sa.ForeignKey("document_reviews.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reviewer_id", sa.Text(), nullable=False),
        sa.Column("reviewer_name", sa.Text(), nullable=False),
        sa.Column("reviewer_email", sa.Text(), nullable=False),
        sa.Column("role", _enum("reviewerrole"), nullable=False),
        sa.Column("status", _enum("assignmentstatus"), nullable=False, server_default="assigned"),
        sa.Column("estimated_hours", sa.Float(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("declined_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decline_reason", sa.Text(), nullable=True),
        sa.UniqueConstraint(
            "review_id", "reviewer_id", "role", name="uq_assignment_reviewer_role"
        ),
    )
    op.create_index(
        "ix_reviewer_assignments_reviewer_status",
        "reviewer_assignments",
        ["reviewer_id", "status"],
    )

    op.create_table(
        "review_rounds",
        *_timestamps(),
        sa.Column(
            "review_id",
            sa.Uuid(),
            sa.ForeignKey("document_reviews.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("reviewer_id", sa.Text(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("decision", _enum("reviewdecision"), nullable=False),
        sa.Column("overall_comments", sa.Text(), nullable=True),
        sa.Column("quality_score", sa.Float(), nullable=True),
        sa.Column("feedback_quality_score", sa.Float(), nullable=False),
        sa.Column("thoroughness_score", sa.Float(), nullable=False),
        sa.UniqueConstraint("review_id", "round_number", name="uq_round_number"),
    )

    op.create_table(
        "review_feedback",
        *_timestamps(),
        sa.Column(
            "round_id",
            sa.Uuid(),
            sa.ForeignKey("review_rounds.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", _enum("feedbacktype"), nullable=False),
        sa.Column("severity", _enum("feedbackseverity"), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("suggestion", sa.Text(), nullable=True),
        sa.Column("section", sa.Text(), nullable=True),
        sa.Column("line_number", sa.Integer(), nullable=True),
    )

    op.create_table(
        "review_status_changes",
        *_timestamps(),
        sa.Column(
            "review_id",
            sa.Uuid(),
            sa.ForeignKey("document_reviews.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_status", _enum("reviewstatus"), nullable=False),
        sa.Column("to_status", _enum("reviewstatus"), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("review_status_changes")
    op.drop_table("review_feedback")
    op.drop_table("review_rounds")
    op.drop_table("reviewer_assignments")
    op.drop_table("document_reviews")
    op.drop_table("workflow_configs")
    op.drop_table("reviewer_profiles")

    for name in reversed(list(ENUMS)):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
