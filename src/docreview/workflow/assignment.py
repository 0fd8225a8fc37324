"""Reviewer assignment engine.

Assigns reviewers to reviews manually or automatically while respecting
role requirements and reviewer capacity, and handles assignment acceptance
and decline. Every operation is one atomic unit of work holding the
review's lock and the reviewer's lock, so the capacity check and the
assignment write cannot interleave with another assignment of the same
reviewer.

Assignment rules:
    - A (reviewer, role) pair is assigned at most once per review.
    - The first reviewer assigned while no reviewer is current becomes the
      current reviewer; a pending_assignment review moves to assigned.
    - Assigning a different reviewer to a revision_requested review makes
      them current and moves the review back to assigned.
    - Declining never triggers automatic replacement.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from docreview.database.models.base import utcnow
from docreview.database.models.review import (
    ACTIVE_ASSIGNMENT_STATUSES,
    AssignmentStatus,
    DocumentReview,
    ReviewerAssignment,
    ReviewerRole,
    ReviewStatus,
)
from docreview.database.models.reviewer import ReviewerProfile
from docreview.database.models.workflow import WorkflowConfig
from docreview.database.queries.review import get_review
from docreview.database.queries.reviewer import get_reviewer, list_reviewers
from docreview.errors import (
    CapacityExceededError,
    NotFoundError,
    ValidationError,
)
from docreview.integrations.notifications import NotificationDispatcher, NotificationTemplate
from docreview.workflow.capacity import ReviewerCapacityModel, Workload
from docreview.workflow.locking import UnitOfWork, review_key, reviewer_key
from docreview.workflow.state_machine import transition

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AvailableReviewer:
    """A reviewer eligible for a role together with their workload."""

    reviewer: ReviewerProfile
    workload: Workload


async def _load_review(session: AsyncSession, review_id: uuid.UUID) -> DocumentReview:
    review = await get_review(session, review_id)
    if review is None:
        raise NotFoundError("review", review_id)
    return review


class ReviewerAssignmentEngine:
    """Creates and transitions reviewer assignments."""

    def __init__(
        self,
        uow: UnitOfWork,
        capacity: ReviewerCapacityModel,
        dispatcher: NotificationDispatcher,
        default_estimated_hours: float = 8.0,
    ) -> None:
        self.uow = uow
        self.capacity = capacity
        self.dispatcher = dispatcher
        self.default_estimated_hours = default_estimated_hours
        self._logger = logger.bind(component="ReviewerAssignmentEngine")

    async def _assign_in_session(
        self,
        session: AsyncSession,
        review_id: uuid.UUID,
        reviewer_id: str,
        role: ReviewerRole,
        estimated_hours: float,
    ) -> tuple[DocumentReview, ReviewerAssignment, ReviewerProfile]:
        review = await _load_review(session, review_id)
        if review.is_terminal:
            raise ValidationError(
                f"Review {review_id} is {review.status.value}; no further assignments"
            )

        reviewer = await get_reviewer(session, reviewer_id)
        if reviewer is None:
            raise NotFoundError("reviewer", reviewer_id)
        if not reviewer.is_active:
            raise ValidationError(f"Reviewer {reviewer_id} is inactive")

        if any(
            a.reviewer_id == reviewer_id and a.role == role for a in review.assigned_reviewers
        ):
            raise ValidationError(
                f"Reviewer {reviewer_id} is already assigned to review {review_id} "
                f"as {role.value}"
            )

        workload = await self.capacity.workload(session, reviewer_id)
        decision = self.capacity.check(reviewer, workload, estimated_hours)
        if not decision:
            raise CapacityExceededError(reviewer_id, decision.reason or "capacity exceeded")

        assignment = ReviewerAssignment(
            reviewer_id=reviewer_id,
            reviewer_name=reviewer.name,
            reviewer_email=reviewer.email,
            role=role,
            status=AssignmentStatus.assigned,
            estimated_hours=estimated_hours,
            assigned_at=utcnow(),
        )
        review.assigned_reviewers.append(assignment)

        if review.current_reviewer_id is None:
            review.current_reviewer_id = reviewer_id
        if review.status == ReviewStatus.pending_assignment:
            transition(review, ReviewStatus.assigned)
        elif (
            review.status == ReviewStatus.revision_requested
            and review.current_reviewer_id != reviewer_id
        ):
            review.current_reviewer_id = reviewer_id
            transition(review, ReviewStatus.assigned)

        # Bump both versions so a concurrent writer elsewhere conflicts
        review.touch()
        reviewer.touch()
        return review, assignment, reviewer

    def _notify_assignment(
        self,
        review: DocumentReview,
        assignment: ReviewerAssignment,
    ) -> None:
        self.dispatcher.dispatch(
            assignment.reviewer_email,
            NotificationTemplate.REVIEW_ASSIGNMENT,
            {
                "review_id": str(review.id),
                "document_name": review.document_name,
                "role": assignment.role.value,
                "estimated_hours": assignment.estimated_hours,
                "due_date": review.due_date.isoformat() if review.due_date else None,
            },
        )

    async def assign(
        self,
        review_id: uuid.UUID,
        reviewer_id: str,
        role: ReviewerRole,
        estimated_hours: float | None = None,
        notify: bool = True,
    ) -> DocumentReview:
        """Assign a reviewer to a review in a given role.

        Raises:
            NotFoundError: Review or reviewer does not exist.
            ValidationError: Reviewer inactive, duplicate (reviewer, role),
                or review already terminal.
            CapacityExceededError: The reviewer lacks capacity.
            ConcurrencyConflictError: Concurrent modification persisted.
        """
        hours = self.default_estimated_hours if estimated_hours is None else estimated_hours
        if hours <= 0:
            raise ValidationError("estimated_hours must be positive")

        async def _work(session: AsyncSession):
            return await self._assign_in_session(session, review_id, reviewer_id, role, hours)

        review, assignment, _ = await self.uow.run(
            [review_key(review_id), reviewer_key(reviewer_id)], _work
        )

        self._logger.info(
            "reviewer_assigned",
            review_id=str(review_id),
            reviewer_id=reviewer_id,
            role=role.value,
            estimated_hours=hours,
            status=review.status.value,
        )
        if notify:
            self._notify_assignment(review, assignment)
        return review

    async def _candidates(
        self,
        role: str,
        document_type: str,
        preferred_reviewer_ids: list[str] | None,
    ) -> list[str]:
        async with self.uow.session_factory() as session:
            preferred: list[ReviewerProfile] = []
            if preferred_reviewer_ids:
                preferred = await list_reviewers(
                    session, role=role, user_ids=preferred_reviewer_ids
                )
            ranked = [
                r for r in await list_reviewers(session, role=role) if r.prefers(document_type)
            ]
        ordered: list[str] = []
        for reviewer in [*preferred, *ranked]:
            if reviewer.user_id not in ordered:
                ordered.append(reviewer.user_id)
        return ordered

    async def auto_assign(
        self,
        review_id: uuid.UUID,
        workflow: WorkflowConfig,
        required_roles: list[ReviewerRole] | None = None,
        preferred_reviewer_ids: list[str] | None = None,
        notify: bool = True,
    ) -> list[ReviewerAssignment]:
        """Fill each required role with the best reviewer who has capacity.

        Preferred reviewers holding the role are tried first, then all
        active reviewers with the role ranked by average quality score and
        on-time completion rate. Roles without an eligible reviewer are
        skipped and logged.

        Returns:
            The assignments created, in role order.
        """
        roles = (
            list(required_roles)
            if required_roles
            else [ReviewerRole(r) for r in (workflow.required_roles or [])]
        )
        hours = workflow.stage_estimated_hours() or self.default_estimated_hours

        async with self.uow.session_factory() as session:
            document_type = (await _load_review(session, review_id)).document_type

        created: list[ReviewerAssignment] = []
        for role in roles:
            candidates = await self._candidates(role.value, document_type, preferred_reviewer_ids)
            assigned = None
            for candidate_id in candidates:
                try:
                    assigned = await self.assign(
                        review_id, candidate_id, role, hours, notify=notify
                    )
                except (CapacityExceededError, ValidationError) as exc:
                    self._logger.debug(
                        "auto_assign_candidate_skipped",
                        review_id=str(review_id),
                        reviewer_id=candidate_id,
                        role=role.value,
                        reason=str(exc),
                    )
                    continue
                assignment = assigned.find_assignment(candidate_id, role)
                if assignment is not None:
                    created.append(assignment)
                break

            if assigned is None:
                self._logger.warning(
                    "auto_assign_role_skipped",
                    review_id=str(review_id),
                    role=role.value,
                    candidates=len(candidates),
                )

        self._logger.info(
            "auto_assign_completed",
            review_id=str(review_id),
            roles=[r.value for r in roles],
            assigned=len(created),
        )
        return created

    async def accept(self, review_id: uuid.UUID, reviewer_id: str) -> DocumentReview:
        """Accept an assignment and start reviewing.

        A reviewer whose assignment completed may accept again while the
        review is revision_requested and they are the current reviewer;
        this starts the next round.

        Raises:
            NotFoundError: Review or assignment does not exist.
            ValidationError: The assignment cannot be accepted now.
            CapacityExceededError: Re-accepting would exceed capacity.
        """

        async def _work(session: AsyncSession) -> DocumentReview:
            review = await _load_review(session, review_id)
            assignment = review.find_assignment(reviewer_id)
            if assignment is None:
                raise NotFoundError("assignment", f"{reviewer_id} on review {review_id}")

            is_current = review.current_reviewer_id == reviewer_id
            if assignment.status == AssignmentStatus.completed:
                if not (is_current and review.status == ReviewStatus.revision_requested):
                    raise ValidationError(
                        f"Assignment of {reviewer_id} on review {review_id} is completed"
                    )
                reviewer = await get_reviewer(session, reviewer_id)
                if reviewer is None:
                    raise NotFoundError("reviewer", reviewer_id)
                workload = await self.capacity.workload(session, reviewer_id)
                decision = self.capacity.check(reviewer, workload, assignment.estimated_hours)
                if not decision:
                    raise CapacityExceededError(reviewer_id, decision.reason or "capacity exceeded")
                reviewer.touch()
            elif assignment.status != AssignmentStatus.assigned:
                raise ValidationError(
                    f"Assignment of {reviewer_id} on review {review_id} is "
                    f"{assignment.status.value} and cannot be accepted"
                )

            assignment.status = AssignmentStatus.in_review
            assignment.accepted_at = utcnow()
            if is_current and review.status in (
                ReviewStatus.assigned,
                ReviewStatus.revision_requested,
            ):
                transition(review, ReviewStatus.in_review)
            review.touch()
            return review

        review = await self.uow.run([review_key(review_id), reviewer_key(reviewer_id)], _work)
        self._logger.info(
            "assignment_accepted",
            review_id=str(review_id),
            reviewer_id=reviewer_id,
            status=review.status.value,
        )
        return review

    async def decline(
        self,
        review_id: uuid.UUID,
        reviewer_id: str,
        reason: str | None = None,
    ) -> DocumentReview:
        """Decline an assignment.

        If the decliner was the current reviewer, the next active assignee
        (if any) becomes current; if that assignee has already accepted, an
        assigned review moves to in_review. The caller is responsible for
        assigning a replacement.

        Raises:
            NotFoundError: Review or assignment does not exist.
            ValidationError: The assignment is already completed or declined.
        """

        async def _work(session: AsyncSession) -> DocumentReview:
            review = await _load_review(session, review_id)
            assignment = review.find_assignment(reviewer_id)
            if assignment is None:
                raise NotFoundError("assignment", f"{reviewer_id} on review {review_id}")
            if assignment.status in (AssignmentStatus.completed, AssignmentStatus.declined):
                raise ValidationError(
                    f"Assignment of {reviewer_id} on review {review_id} is "
                    f"{assignment.status.value} and cannot be declined"
                )

            assignment.status = AssignmentStatus.declined
            assignment.declined_at = utcnow()
            assignment.decline_reason = reason

            if review.current_reviewer_id == reviewer_id:
                successor = next(
                    (
                        a
                        for a in review.assigned_reviewers
                        if a.reviewer_id != reviewer_id
                        and a.status in ACTIVE_ASSIGNMENT_STATUSES
                    ),
                    None,
                )
                review.current_reviewer_id = successor.reviewer_id if successor else None
                # A successor who already accepted is reviewing now
                if (
                    successor is not None
                    and successor.status == AssignmentStatus.in_review
                    and review.status == ReviewStatus.assigned
                ):
                    transition(review, ReviewStatus.in_review)
            review.touch()
            return review

        review = await self.uow.run([review_key(review_id), reviewer_key(reviewer_id)], _work)
        self._logger.info(
            "assignment_declined",
            review_id=str(review_id),
            reviewer_id=reviewer_id,
            reason=reason,
            current_reviewer_id=review.current_reviewer_id,
        )
        return review

    async def available_reviewers(
        self,
        role: ReviewerRole,
        document_type: str | None = None,
        estimated_hours: float | None = None,
    ) -> list[AvailableReviewer]:
        """Ranked reviewers who hold the role and could accept the work now."""
        hours = self.default_estimated_hours if estimated_hours is None else estimated_hours
        available: list[AvailableReviewer] = []
        async with self.uow.session_factory() as session:
            for reviewer in await list_reviewers(session, role=role.value):
                if document_type is not None and not reviewer.prefers(document_type):
                    continue
                workload = await self.capacity.workload(session, reviewer.user_id)
                if self.capacity.can_accept(reviewer, workload, hours):
                    available.append(AvailableReviewer(reviewer, workload))
        return available
