"""ReviewService: the operations exposed to the API and CLI.

Wires the workflow components together and implements the review
lifecycle control flow:

    intake -> automated checks -> workflow resolution -> optional
    auto-assignment -> (reviewer work) -> round processing -> metrics ->
    state transition -> repeat or terminate

The service itself holds no scoring or transition logic; it delegates to
the injected components and owns only orchestration, read models
(dashboard and analytics) and background check tasks.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from docreview.config import DocreviewConfig, WorkflowSettings
from docreview.database.models.base import as_utc, utcnow
from docreview.database.models.review import (
    TERMINAL_STATUSES,
    AssignmentStatus,
    DocumentReview,
    ReviewDecision,
    ReviewerRole,
    ReviewPriority,
    ReviewStatus,
)
from docreview.database.models.reviewer import ReviewerProfile
from docreview.database.queries.review import (
    ReviewSearchParams,
    get_review,
    list_reviews_created_between,
    list_reviews_for_reviewer,
    search_reviews,
)
from docreview.database.queries.reviewer import get_reviewer
from docreview.errors import NotFoundError, ValidationError
from docreview.integrations.notifications import NotificationDispatcher, build_dispatcher
from docreview.logging import bind_review_context
from docreview.workflow.assignment import AvailableReviewer, ReviewerAssignmentEngine
from docreview.workflow.capacity import ReviewerCapacityModel, Workload
from docreview.workflow.checks import (
    AutomatedCheckRunner,
    CheckResult,
    compliance_score,
    default_plugins,
)
from docreview.workflow.due_dates import add_business_days
from docreview.workflow.locking import EntityLocks, SessionFactory, UnitOfWork, review_key
from docreview.workflow.metrics import ReviewerMetricsTracker
from docreview.workflow.resolver import WorkflowConfigResolver
from docreview.workflow.rounds import FeedbackItem, ReviewRoundProcessor
from docreview.workflow.state_machine import transition

logger = structlog.get_logger(__name__)

ACTIVE_REVIEW_STATUSES = {
    ReviewStatus.pending_assignment,
    ReviewStatus.assigned,
    ReviewStatus.in_review,
    ReviewStatus.revision_requested,
}
COMMON_ISSUE_LIMIT = 10


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


@dataclass
class ReviewerDashboard:
    """A reviewer's view of their current and recent work."""

    reviewer: ReviewerProfile
    assigned_reviews: list[DocumentReview]
    pending_reviews: list[DocumentReview]
    completed_reviews: list[DocumentReview]
    overdue_reviews: list[DocumentReview]
    workload: Workload
    upcoming_deadlines: list[datetime]


@dataclass(frozen=True)
class QualityTrendPoint:
    """Average round quality score on one day."""

    day: date
    average_quality_score: float
    rounds: int


@dataclass(frozen=True)
class FeedbackIssue:
    """How often one feedback type/severity combination was raised."""

    type: str
    severity: str
    count: int


@dataclass
class ReviewAnalytics:
    """Aggregate statistics over reviews created in a period."""

    start: datetime
    end: datetime
    total_reviews: int = 0
    completed_reviews: int = 0
    pending_reviews: int = 0
    overdue_reviews: int = 0
    average_review_time: float = 0.0
    on_time_completion_rate: float = 0.0
    average_quality_score: float = 0.0
    active_reviewers: int = 0
    document_type_breakdown: dict[str, int] = field(default_factory=dict)
    quality_trends: list[QualityTrendPoint] = field(default_factory=list)
    common_issues: list[FeedbackIssue] = field(default_factory=list)


def _is_overdue(review: DocumentReview, now: datetime) -> bool:
    due = as_utc(review.due_date)
    return due is not None and due < now and review.status not in TERMINAL_STATUSES


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ReviewService:
    """Document review workflow operations."""

    def __init__(
        self,
        session_factory: SessionFactory,
        uow: UnitOfWork,
        settings: WorkflowSettings,
        check_runner: AutomatedCheckRunner,
        resolver: WorkflowConfigResolver,
        capacity: ReviewerCapacityModel,
        assignment: ReviewerAssignmentEngine,
        rounds: ReviewRoundProcessor,
        dispatcher: NotificationDispatcher,
        run_checks_in_background: bool = False,
    ) -> None:
        self.session_factory = session_factory
        self.uow = uow
        self.settings = settings
        self.check_runner = check_runner
        self.resolver = resolver
        self.capacity = capacity
        self.assignment = assignment
        self.rounds = rounds
        self.dispatcher = dispatcher
        self.run_checks_in_background = run_checks_in_background
        self._background: set[asyncio.Task[None]] = set()
        self._logger = logger.bind(component="ReviewService")

    # -- intake -------------------------------------------------------------

    async def create_review(
        self,
        document_id: str,
        document_name: str,
        document_type: str,
        project_id: str,
        priority: ReviewPriority = ReviewPriority.medium,
        document_path: str | None = None,
        due_date: datetime | None = None,
        workflow_id: uuid.UUID | None = None,
        required_roles: Sequence[ReviewerRole | str] | None = None,
        preferred_reviewer_ids: Sequence[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DocumentReview:
        """Create a review for a submitted document.

        Runs the automated checks (inline, or in the background when
        configured), resolves the applicable workflow, computes the due
        date in business days when none is given, persists the review in
        pending_assignment and auto-assigns reviewers when the workflow
        enables it.

        Returns:
            The created review, reloaded after any auto-assignment.
        """
        roles = [ReviewerRole(r) for r in required_roles] if required_roles else None

        checks: list[CheckResult] = []
        score: float | None = None
        if not self.run_checks_in_background:
            checks = await self.check_runner.run(document_path, document_type)
            score = compliance_score(checks)

        async def _work(session: AsyncSession):
            workflow = await self.resolver.resolve(session, document_type, workflow_id)
            policy = self.resolver.policy_for(workflow)
            due = due_date or add_business_days(utcnow(), policy.due_days)
            review = DocumentReview(
                document_id=document_id,
                document_name=document_name,
                document_type=document_type,
                document_path=document_path,
                project_id=project_id,
                priority=priority,
                status=ReviewStatus.pending_assignment,
                due_date=due,
                current_round=0,
                compliance_score=score,
                automated_checks=[c.model_dump(mode="json") for c in checks],
                extra_metadata=dict(metadata or {}),
                assigned_reviewers=[],
                review_rounds=[],
                status_changes=[],
            )
            session.add(review)
            await session.flush()
            return review, workflow, policy

        review, workflow, policy = await self.uow.run([], _work)
        self._logger.info(
            "review_created",
            review_id=str(review.id),
            document_id=document_id,
            document_type=document_type,
            workflow_id=str(policy.workflow_id) if policy.workflow_id else None,
            compliance_score=score,
            due_date=review.due_date.isoformat() if review.due_date else None,
        )

        if self.run_checks_in_background:
            self._spawn_checks(review.id, document_path, document_type)

        if workflow is not None and policy.auto_assignment:
            await self.assignment.auto_assign(
                review.id,
                workflow,
                required_roles=roles,
                preferred_reviewer_ids=list(preferred_reviewer_ids or []),
                notify=policy.notify,
            )
            review = await self.get_review(review.id) or review
        return review

    def _spawn_checks(
        self,
        review_id: uuid.UUID,
        document_path: str | None,
        document_type: str,
    ) -> None:
        task = asyncio.get_running_loop().create_task(
            self._apply_checks(review_id, document_path, document_type)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _apply_checks(
        self,
        review_id: uuid.UUID,
        document_path: str | None,
        document_type: str,
    ) -> None:
        bind_review_context(str(review_id))
        try:
            checks = await self.check_runner.run(document_path, document_type)
            score = compliance_score(checks)

            async def _work(session: AsyncSession) -> None:
                review = await get_review(session, review_id)
                if review is None:
                    raise NotFoundError("review", review_id)
                review.automated_checks = [c.model_dump(mode="json") for c in checks]
                review.compliance_score = score
                review.touch()

            await self.uow.run([review_key(review_id)], _work)
            self._logger.info(
                "background_checks_applied",
                review_id=str(review_id),
                compliance_score=score,
            )
        except Exception:
            self._logger.exception("background_checks_failed", review_id=str(review_id))

    # -- assignment ---------------------------------------------------------

    async def assign_reviewer(
        self,
        review_id: uuid.UUID,
        reviewer_id: str,
        role: ReviewerRole | str,
        estimated_hours: float | None = None,
    ) -> DocumentReview:
        """Assign a reviewer manually."""
        return await self.assignment.assign(
            review_id, reviewer_id, ReviewerRole(role), estimated_hours
        )

    async def accept_assignment(self, review_id: uuid.UUID, reviewer_id: str) -> DocumentReview:
        """Accept a pending assignment."""
        return await self.assignment.accept(review_id, reviewer_id)

    async def decline_assignment(
        self,
        review_id: uuid.UUID,
        reviewer_id: str,
        reason: str | None = None,
    ) -> DocumentReview:
        """Decline an assignment; no replacement is assigned."""
        return await self.assignment.decline(review_id, reviewer_id, reason)

    async def available_reviewers(
        self,
        role: ReviewerRole | str,
        document_type: str | None = None,
    ) -> list[AvailableReviewer]:
        """Ranked reviewers with the role who have capacity right now."""
        return await self.assignment.available_reviewers(ReviewerRole(role), document_type)

    async def reviewer_workload(self, reviewer_id: str) -> Workload:
        """Current workload of one reviewer."""
        async with self.session_factory() as session:
            if await get_reviewer(session, reviewer_id) is None:
                raise NotFoundError("reviewer", reviewer_id)
            return await self.capacity.workload(session, reviewer_id)

    # -- rounds and status --------------------------------------------------

    async def submit_feedback(
        self,
        review_id: uuid.UUID,
        round_number: int,
        feedback_items: Sequence[FeedbackItem],
        decision: ReviewDecision | str,
        overall_comments: str | None = None,
        quality_score: float | None = None,
        reviewer_id: str | None = None,
    ) -> DocumentReview:
        """Submit a completed review round."""
        return await self.rounds.submit_feedback(
            review_id,
            round_number,
            feedback_items,
            ReviewDecision(decision),
            overall_comments=overall_comments,
            quality_score=quality_score,
            reviewer_id=reviewer_id,
        )

    async def update_review_status(
        self,
        review_id: uuid.UUID,
        status: ReviewStatus | str,
        comments: str | None = None,
    ) -> DocumentReview:
        """Move a review to ``status`` through the transition table.

        Raises:
            NotFoundError: Review does not exist.
            InvalidTransitionError: The move is not allowed.
        """
        target = ReviewStatus(status)

        async def _work(session: AsyncSession) -> DocumentReview:
            review = await get_review(session, review_id)
            if review is None:
                raise NotFoundError("review", review_id)
            transition(review, target, comments=comments)
            review.touch()
            return review

        review = await self.uow.run([review_key(review_id)], _work)
        self._logger.info(
            "review_status_updated",
            review_id=str(review_id),
            status=target.value,
        )
        return review

    # -- reads --------------------------------------------------------------

    async def get_review(self, review_id: uuid.UUID) -> DocumentReview | None:
        """Fetch one review with its assignments, rounds and history, or None."""
        async with self.session_factory() as session:
            return await get_review(session, review_id)

    async def search_reviews(
        self,
        params: ReviewSearchParams,
    ) -> tuple[list[DocumentReview], int]:
        """Filtered, sorted, paged review search returning (page, total)."""
        async with self.session_factory() as session:
            return await search_reviews(session, params)

    async def get_reviewer_dashboard(self, reviewer_id: str) -> ReviewerDashboard:
        """Build the dashboard for one reviewer.

        Raises:
            NotFoundError: Reviewer does not exist.
        """
        now = utcnow()
        async with self.session_factory() as session:
            reviewer = await get_reviewer(session, reviewer_id)
            if reviewer is None:
                raise NotFoundError("reviewer", reviewer_id)
            active = await list_reviews_for_reviewer(
                session, reviewer_id, ACTIVE_REVIEW_STATUSES
            )
            finished = await list_reviews_for_reviewer(session, reviewer_id, TERMINAL_STATUSES)
            workload = await self.capacity.workload(session, reviewer_id)

        finished.sort(key=lambda r: as_utc(r.completed_at) or now, reverse=True)
        deadlines = sorted(as_utc(r.due_date) for r in active if r.due_date is not None)
        return ReviewerDashboard(
            reviewer=reviewer,
            assigned_reviews=active,
            pending_reviews=[
                r for r in active if r.status in (ReviewStatus.assigned, ReviewStatus.in_review)
            ],
            completed_reviews=finished[: self.settings.dashboard_completed_limit],
            overdue_reviews=[r for r in active if _is_overdue(r, now)],
            workload=workload,
            upcoming_deadlines=deadlines[: self.settings.upcoming_deadline_limit],
        )

    async def get_analytics(self, start: datetime, end: datetime) -> ReviewAnalytics:
        """Aggregate statistics over reviews created within [start, end].

        Raises:
            ValidationError: start is after end.
        """
        if start > end:
            raise ValidationError("start must not be after end")
        now = utcnow()
        async with self.session_factory() as session:
            reviews = await list_reviews_created_between(session, start, end)

        analytics = ReviewAnalytics(start=start, end=end, total_reviews=len(reviews))
        completed = [r for r in reviews if r.status in TERMINAL_STATUSES]
        analytics.completed_reviews = len(completed)
        analytics.pending_reviews = len(reviews) - len(completed)
        analytics.overdue_reviews = sum(1 for r in reviews if _is_overdue(r, now))

        durations = [
            (as_utc(r.completed_at) - as_utc(r.created_at)).total_seconds() / 3600
            for r in completed
            if r.completed_at is not None and r.created_at is not None
        ]
        if durations:
            analytics.average_review_time = sum(durations) / len(durations)
        if completed:
            on_time = [
                r
                for r in completed
                if r.due_date is None
                or (r.completed_at is not None and as_utc(r.completed_at) <= as_utc(r.due_date))
            ]
            analytics.on_time_completion_rate = len(on_time) / len(completed) * 100

        quality = [
            rnd.quality_score
            for r in completed
            for rnd in r.review_rounds
            if rnd.quality_score is not None
        ]
        if quality:
            analytics.average_quality_score = sum(quality) / len(quality)

        analytics.document_type_breakdown = dict(Counter(r.document_type for r in reviews))
        analytics.active_reviewers = len(
            {
                a.reviewer_id
                for r in reviews
                for a in r.assigned_reviewers
                if a.status != AssignmentStatus.declined
            }
        )

        by_day: dict[date, list[float]] = defaultdict(list)
        issues: Counter[tuple[str, str]] = Counter()
        for r in reviews:
            for rnd in r.review_rounds:
                if rnd.quality_score is not None:
                    by_day[as_utc(rnd.completed_at).date()].append(rnd.quality_score)
                for item in rnd.feedback:
                    issues[(item.type.value, item.severity.value)] += 1
        analytics.quality_trends = [
            QualityTrendPoint(day, sum(scores) / len(scores), len(scores))
            for day, scores in sorted(by_day.items())
        ]
        analytics.common_issues = [
            FeedbackIssue(type=t, severity=s, count=n)
            for (t, s), n in issues.most_common(COMMON_ISSUE_LIMIT)
        ]
        return analytics

    # -- lifecycle ----------------------------------------------------------

    async def drain(self) -> None:
        """Wait for background checks and in-flight notifications."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.dispatcher.drain()

    async def close(self) -> None:
        """Drain background work and release the notification sender."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.dispatcher.close()


def build_review_service(
    config: DocreviewConfig,
    session_factory: SessionFactory,
    dispatcher: NotificationDispatcher | None = None,
    locks: EntityLocks | None = None,
) -> ReviewService:
    """Assemble a ReviewService and its components from configuration.

    Args:
        config: Root configuration.
        session_factory: Async session factory bound to the database.
        dispatcher: Notification dispatcher; built from config if omitted.
        locks: Shared lock registry; a fresh one if omitted. Every service
            instance operating on the same database within one process
            must share one registry.
    """
    dispatcher = dispatcher or build_dispatcher(config.notifications)
    uow = UnitOfWork(
        session_factory,
        locks or EntityLocks(),
        retries=config.workflow.conflict_retries,
    )
    capacity = ReviewerCapacityModel()
    return ReviewService(
        session_factory=session_factory,
        uow=uow,
        settings=config.workflow,
        check_runner=AutomatedCheckRunner(
            default_plugins(config.checks),
            timeout_seconds=config.checks.timeout_seconds,
        ),
        resolver=WorkflowConfigResolver(config.workflow),
        capacity=capacity,
        assignment=ReviewerAssignmentEngine(
            uow,
            capacity,
            dispatcher,
            default_estimated_hours=config.workflow.default_estimated_hours,
        ),
        rounds=ReviewRoundProcessor(uow, ReviewerMetricsTracker(uow), dispatcher),
        dispatcher=dispatcher,
        run_checks_in_background=config.checks.run_in_background,
    )
