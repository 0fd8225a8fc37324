"""Reviewer capacity model.

A reviewer can take on new work iff they are active and the new assignment
keeps them within both configured limits: the number of concurrently
active assignments and the total estimated hours of those assignments.
Active means status ``assigned`` or ``in_review`` on any review.

The decision is only meaningful inside the same locked unit of work that
records the assignment (see ``docreview.workflow.locking``).
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from docreview.database.models.reviewer import ReviewerProfile
from docreview.database.queries.review import get_reviewer_workload


@dataclass(frozen=True)
class Workload:
    """Active assignments held by a reviewer."""

    active_reviews: int = 0
    active_hours: float = 0.0


@dataclass(frozen=True)
class CapacityDecision:
    """Outcome of a capacity check; ``reason`` explains a refusal."""

    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


class ReviewerCapacityModel:
    """Stateless capacity policy."""

    async def workload(self, session: AsyncSession, reviewer_id: str) -> Workload:
        """Load the reviewer's current workload."""
        count, hours = await get_reviewer_workload(session, reviewer_id)
        return Workload(active_reviews=count, active_hours=hours)

    def check(
        self,
        reviewer: ReviewerProfile,
        workload: Workload,
        estimated_hours: float,
    ) -> CapacityDecision:
        """Decide whether the reviewer may accept ``estimated_hours`` more work."""
        if not reviewer.is_active:
            return CapacityDecision(False, "reviewer is inactive")
        if workload.active_reviews + 1 > reviewer.max_concurrent_reviews:
            return CapacityDecision(
                False,
                f"already at {workload.active_reviews} of "
                f"{reviewer.max_concurrent_reviews} concurrent reviews",
            )
        if workload.active_hours + estimated_hours > reviewer.max_hours:
            return CapacityDecision(
                False,
                f"{workload.active_hours:g}h assigned + {estimated_hours:g}h requested "
                f"exceeds limit of {reviewer.max_hours:g}h",
            )
        return CapacityDecision(True)

    def can_accept(
        self,
        reviewer: ReviewerProfile,
        workload: Workload,
        estimated_hours: float,
    ) -> bool:
        """Boolean form of ``check``."""
        return self.check(reviewer, workload, estimated_hours).allowed
