"""Review status state machine for Docreview.

This module holds the single authoritative transition table for
DocumentReview.status and the ``transition`` function through which every
status change in the engine passes. The function validates the move,
maintains the completed_at invariant (set iff terminal), closes the open
assignments of a review that becomes terminal, and appends an
audit entry to the review's status history.
"""

from __future__ import annotations

import structlog

from docreview.database.models.base import utcnow
from docreview.database.models.review import (
    TERMINAL_STATUSES,
    AssignmentStatus,
    DocumentReview,
    ReviewStatus,
    ReviewStatusChange,
)
from docreview.errors import InvalidTransitionError

logger = structlog.get_logger(__name__)


# Authoritative state machine definition
VALID_TRANSITIONS: dict[ReviewStatus, set[ReviewStatus]] = {
    ReviewStatus.pending_assignment: {ReviewStatus.assigned, ReviewStatus.completed},
    ReviewStatus.assigned: {ReviewStatus.in_review, ReviewStatus.completed},
    ReviewStatus.in_review: {
        ReviewStatus.approved,
        ReviewStatus.rejected,
        ReviewStatus.revision_requested,
        ReviewStatus.completed,
    },
    ReviewStatus.revision_requested: {
        ReviewStatus.in_review,
        ReviewStatus.assigned,
        ReviewStatus.completed,
    },
    ReviewStatus.approved: set(),  # Terminal
    ReviewStatus.rejected: set(),  # Terminal
    ReviewStatus.completed: set(),  # Terminal
}


def validate_transition(current: ReviewStatus, target: ReviewStatus) -> bool:
    """Validate if a review status transition is allowed.

    Args:
        current: Current review status.
        target: Target review status.

    Returns:
        True if the transition is valid according to VALID_TRANSITIONS.
    """
    return target in VALID_TRANSITIONS.get(current, set())


def transition(
    review: DocumentReview,
    target: ReviewStatus,
    comments: str | None = None,
) -> ReviewStatusChange:
    """Move a review to a new status.

    The caller owns the transaction; nothing is flushed here.

    Args:
        review: The review to transition (attached to a session).
        target: Target status.
        comments: Optional operator comments recorded in the history.

    Returns:
        The appended ReviewStatusChange entry.

    Raises:
        InvalidTransitionError: If the transition is not in VALID_TRANSITIONS.
    """
    current = review.status
    review_id = str(review.id) if review.id is not None else None
    if not validate_transition(current, target):
        raise InvalidTransitionError(current, target, review_id)

    now = utcnow()
    review.status = target
    closed: list[str] = []
    if target in TERMINAL_STATUSES:
        review.completed_at = now
        # Terminal reviews hold no capacity; declined assignments keep their status
        for assignment in review.open_assignments():
            assignment.status = AssignmentStatus.completed
            closed.append(assignment.reviewer_id)
    else:
        review.completed_at = None

    change = ReviewStatusChange(
        from_status=current,
        to_status=target,
        comments=comments,
        changed_at=now,
    )
    review.status_changes.append(change)
    review.touch()

    logger.info(
        "review_transition",
        review_id=review_id,
        from_status=current.value,
        to_status=target.value,
        completed_at=review.completed_at.isoformat() if review.completed_at else None,
        closed_assignments=closed or None,
    )
    return change
