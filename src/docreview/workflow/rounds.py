"""Review round processing.

A round is one reviewer's complete pass over the document: feedback items,
an overall decision and an optional quality score. Submitting a round
appends it to the review, advances ``current_round``, applies the decision
to the review status and completes the acting reviewer's assignment, all
in one atomic unit of work. Reviewer metrics and the decision notification
follow after commit and never fail the submission.

Decision table:
    approve          -> approved
    reject           -> rejected
    request_revision -> revision_requested
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

import structlog
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from docreview.database.models.base import utcnow
from docreview.database.models.review import (
    AssignmentStatus,
    DocumentReview,
    FeedbackSeverity,
    FeedbackType,
    ReviewDecision,
    ReviewFeedback,
    ReviewRound,
    ReviewStatus,
)
from docreview.database.queries.review import get_review
from docreview.errors import NotFoundError, ValidationError
from docreview.integrations.notifications import NotificationDispatcher, NotificationTemplate
from docreview.workflow.locking import UnitOfWork, review_key
from docreview.workflow.metrics import ReviewerMetricsTracker
from docreview.workflow.scoring import feedback_quality_score, thoroughness_score
from docreview.workflow.state_machine import transition

logger = structlog.get_logger(__name__)

DECISION_STATUS: dict[ReviewDecision, ReviewStatus] = {
    ReviewDecision.approve: ReviewStatus.approved,
    ReviewDecision.reject: ReviewStatus.rejected,
    ReviewDecision.request_revision: ReviewStatus.revision_requested,
}

DECISION_TEMPLATE: dict[ReviewDecision, NotificationTemplate] = {
    ReviewDecision.approve: NotificationTemplate.REVIEW_APPROVED,
    ReviewDecision.reject: NotificationTemplate.REVIEW_REJECTED,
    ReviewDecision.request_revision: NotificationTemplate.REVISION_REQUESTED,
}


class FeedbackItem(BaseModel):
    """One feedback item submitted with a round."""

    type: FeedbackType
    severity: FeedbackSeverity
    title: str | None = None
    description: str = Field(..., min_length=1)
    suggestion: str | None = None
    section: str | None = None
    line_number: int | None = Field(default=None, ge=1)


class ReviewRoundProcessor:
    """Records completed review rounds and applies their decisions."""

    def __init__(
        self,
        uow: UnitOfWork,
        metrics: ReviewerMetricsTracker,
        dispatcher: NotificationDispatcher,
    ) -> None:
        self.uow = uow
        self.metrics = metrics
        self.dispatcher = dispatcher
        self._logger = logger.bind(component="ReviewRoundProcessor")

    async def submit_feedback(
        self,
        review_id: uuid.UUID,
        round_number: int,
        feedback_items: Sequence[FeedbackItem],
        decision: ReviewDecision,
        overall_comments: str | None = None,
        quality_score: float | None = None,
        reviewer_id: str | None = None,
    ) -> DocumentReview:
        """Submit a completed round for the review's current reviewer.

        Args:
            review_id: Review receiving the round.
            round_number: Must equal the review's current_round + 1.
            feedback_items: Feedback for the round (may be empty).
            decision: Reviewer's decision for the round.
            overall_comments: Free-form summary, also recorded in the
                status history.
            quality_score: Optional 0-100 rating of the document.
            reviewer_id: Acting reviewer; must match the current reviewer
                when given.

        Raises:
            NotFoundError: Review does not exist.
            ValidationError: Wrong round number, reviewer mismatch, no
                current reviewer, or quality_score out of range.
            InvalidTransitionError: The review is not in_review.
        """
        if quality_score is not None and not 0 <= quality_score <= 100:
            raise ValidationError("quality_score must be between 0 and 100")

        async def _work(session: AsyncSession) -> tuple[DocumentReview, ReviewRound]:
            review = await get_review(session, review_id)
            if review is None:
                raise NotFoundError("review", review_id)

            acting = review.current_reviewer_id
            if acting is None:
                raise ValidationError(f"Review {review_id} has no current reviewer")
            if reviewer_id is not None and reviewer_id != acting:
                raise ValidationError(
                    f"Reviewer {reviewer_id} is not the current reviewer of review {review_id}"
                )
            expected = review.current_round + 1
            if round_number != expected:
                raise ValidationError(
                    f"Round {round_number} submitted for review {review_id}; "
                    f"expected round {expected}"
                )

            now = utcnow()
            assignment = review.find_assignment(acting)
            started_at = now
            if assignment is not None:
                started_at = assignment.accepted_at or assignment.assigned_at

            review_round = ReviewRound(
                round_number=round_number,
                reviewer_id=acting,
                started_at=started_at,
                completed_at=now,
                decision=decision,
                overall_comments=overall_comments,
                quality_score=quality_score,
                feedback_quality_score=feedback_quality_score(feedback_items),
                thoroughness_score=thoroughness_score(feedback_items),
                feedback=[
                    ReviewFeedback(
                        type=item.type,
                        severity=item.severity,
                        title=item.title,
                        description=item.description,
                        suggestion=item.suggestion,
                        section=item.section,
                        line_number=item.line_number,
                    )
                    for item in feedback_items
                ],
            )

            transition(review, DECISION_STATUS[decision], comments=overall_comments)
            review.review_rounds.append(review_round)
            review.current_round = round_number
            # Covers every role the acting reviewer holds on this review
            for held in review.open_assignments(acting):
                held.status = AssignmentStatus.completed
            review.touch()
            return review, review_round

        review, review_round = await self.uow.run([review_key(review_id)], _work)

        self._logger.info(
            "review_round_submitted",
            review_id=str(review_id),
            round_number=round_number,
            reviewer_id=review_round.reviewer_id,
            decision=decision.value,
            status=review.status.value,
            feedback_items=len(feedback_items),
            feedback_quality_score=review_round.feedback_quality_score,
        )

        await self._record_metrics(review, review_round)
        self._notify_decision(review, decision)
        return review

    async def _record_metrics(self, review: DocumentReview, review_round: ReviewRound) -> None:
        try:
            stats = self.metrics.stats_for_round(review, review_round)
            await self.metrics.update(review_round.reviewer_id, stats)
        except Exception:
            self._logger.exception(
                "metrics_update_failed",
                review_id=str(review.id),
                reviewer_id=review_round.reviewer_id,
            )

    def _notify_decision(self, review: DocumentReview, decision: ReviewDecision) -> None:
        recipients: list[str] = []
        author = (review.extra_metadata or {}).get("author_email")
        if author:
            recipients.append(author)
        for assignment in review.assigned_reviewers:
            if (
                assignment.status != AssignmentStatus.declined
                and assignment.reviewer_email not in recipients
            ):
                recipients.append(assignment.reviewer_email)

        data = {
            "review_id": str(review.id),
            "document_name": review.document_name,
            "decision": decision.value,
            "round_number": review.current_round,
            "status": review.status.value,
        }
        for address in recipients:
            try:
                self.dispatcher.dispatch(address, DECISION_TEMPLATE[decision], data)
            except Exception:
                self._logger.exception(
                    "notification_dispatch_failed",
                    review_id=str(review.id),
                    address=address,
                )
