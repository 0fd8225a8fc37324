"""Unit tests for the review status state machine.

Tests cover:
- All valid transitions in VALID_TRANSITIONS
- Invalid transitions raise InvalidTransitionError
- Terminal states have no outgoing transitions
- completed_at is set exactly when the review becomes terminal
- Every transition appends one status history entry
- Entering a terminal status closes open assignments
"""

from __future__ import annotations

import pytest

from docreview.database.models.review import (
    TERMINAL_STATUSES,
    AssignmentStatus,
    DocumentReview,
    ReviewerAssignment,
    ReviewerRole,
    ReviewStatus,
)
from docreview.errors import InvalidTransitionError, ValidationError
from docreview.workflow.state_machine import (
    VALID_TRANSITIONS,
    transition,
    validate_transition,
)


def _review(status: ReviewStatus) -> DocumentReview:
    return DocumentReview(
        document_id="doc-1",
        document_name="Architecture Overview",
        document_type="technical_spec",
        project_id="proj-1",
        status=status,
        completed_at=None,
        assigned_reviewers=[],
        status_changes=[],
    )


def _assignment(reviewer_id: str, status: AssignmentStatus) -> ReviewerAssignment:
    return ReviewerAssignment(
        reviewer_id=reviewer_id,
        reviewer_name=reviewer_id.capitalize(),
        reviewer_email=f"{reviewer_id}@example.com",
        role=ReviewerRole.technical,
        status=status,
        estimated_hours=4.0,
    )


ALL_VALID = [
    (current, target)
    for current, targets in VALID_TRANSITIONS.items()
    for target in sorted(targets, key=lambda s: s.value)
]

ALL_INVALID = [
    (current, target)
    for current in ReviewStatus
    for target in ReviewStatus
    if target not in VALID_TRANSITIONS[current]
]


class TestValidateTransition:
    """Tests for the transition table lookup."""

    @pytest.mark.parametrize("current,target", ALL_VALID)
    def test_valid_transitions(self, current: ReviewStatus, target: ReviewStatus) -> None:
        """Test that every listed transition is accepted."""
        assert validate_transition(current, target) is True

    @pytest.mark.parametrize("current,target", ALL_INVALID)
    def test_invalid_transitions(self, current: ReviewStatus, target: ReviewStatus) -> None:
        """Test that every unlisted transition is refused."""
        assert validate_transition(current, target) is False

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_states_have_no_exits(self, status: ReviewStatus) -> None:
        """Test that approved, rejected and completed are final."""
        assert VALID_TRANSITIONS[status] == set()

    def test_table_covers_every_status(self) -> None:
        """Test that the table has an entry for each status."""
        assert set(VALID_TRANSITIONS) == set(ReviewStatus)

    def test_completed_reachable_from_every_active_status(self) -> None:
        """Test that administrative completion is allowed from any active status."""
        for status in ReviewStatus:
            if status not in TERMINAL_STATUSES:
                assert ReviewStatus.completed in VALID_TRANSITIONS[status]


class TestTransition:
    """Tests for the transition function."""

    def test_transition_updates_status_and_history(self) -> None:
        """Test that a valid transition records one history entry."""
        review = _review(ReviewStatus.assigned)

        change = transition(review, ReviewStatus.in_review, comments="picked up")

        assert review.status == ReviewStatus.in_review
        assert review.status_changes == [change]
        assert change.from_status == ReviewStatus.assigned
        assert change.to_status == ReviewStatus.in_review
        assert change.comments == "picked up"
        assert change.changed_at is not None

    @pytest.mark.parametrize(
        "target",
        [ReviewStatus.approved, ReviewStatus.rejected, ReviewStatus.completed],
    )
    def test_terminal_transition_sets_completed_at(self, target: ReviewStatus) -> None:
        """Test that completed_at is stamped on entry to a terminal status."""
        review = _review(ReviewStatus.in_review)

        change = transition(review, target)

        assert review.completed_at is not None
        assert review.completed_at == change.changed_at

    def test_non_terminal_transition_clears_completed_at(self) -> None:
        """Test that completed_at stays unset for active statuses."""
        review = _review(ReviewStatus.in_review)

        transition(review, ReviewStatus.revision_requested)

        assert review.completed_at is None

    def test_invalid_transition_raises(self) -> None:
        """Test that a refused transition leaves the review untouched."""
        review = _review(ReviewStatus.pending_assignment)

        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(review, ReviewStatus.approved)

        assert exc_info.value.current == ReviewStatus.pending_assignment
        assert exc_info.value.target == ReviewStatus.approved
        assert "pending_assignment to approved" in str(exc_info.value)
        assert review.status == ReviewStatus.pending_assignment
        assert review.status_changes == []

    def test_invalid_transition_is_a_validation_error(self) -> None:
        """Test that callers can treat refused transitions as validation errors."""
        review = _review(ReviewStatus.approved)

        with pytest.raises(ValidationError):
            transition(review, ReviewStatus.in_review)

    def test_revision_loop(self) -> None:
        """Test the in_review -> revision_requested -> in_review cycle."""
        review = _review(ReviewStatus.in_review)

        transition(review, ReviewStatus.revision_requested)
        transition(review, ReviewStatus.in_review)
        transition(review, ReviewStatus.approved)

        assert [c.to_status for c in review.status_changes] == [
            ReviewStatus.revision_requested,
            ReviewStatus.in_review,
            ReviewStatus.approved,
        ]
        assert review.is_terminal

    @pytest.mark.parametrize(
        "target",
        [ReviewStatus.approved, ReviewStatus.rejected, ReviewStatus.completed],
    )
    def test_terminal_transition_closes_open_assignments(self, target: ReviewStatus) -> None:
        """Test that open assignments complete and declined ones are kept."""
        review = _review(ReviewStatus.in_review)
        review.assigned_reviewers.extend(
            [
                _assignment("alice", AssignmentStatus.in_review),
                _assignment("bob", AssignmentStatus.assigned),
                _assignment("carol", AssignmentStatus.declined),
            ]
        )

        transition(review, target)

        assert [a.status for a in review.assigned_reviewers] == [
            AssignmentStatus.completed,
            AssignmentStatus.completed,
            AssignmentStatus.declined,
        ]
        assert review.open_assignments() == []

    def test_non_terminal_transition_keeps_assignments(self) -> None:
        """Test that a revision request leaves assignments open."""
        review = _review(ReviewStatus.in_review)
        review.assigned_reviewers.append(_assignment("bob", AssignmentStatus.assigned))

        transition(review, ReviewStatus.revision_requested)

        assert review.assigned_reviewers[0].status == AssignmentStatus.assigned
        assert review.open_assignments("bob") == review.assigned_reviewers
