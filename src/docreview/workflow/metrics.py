"""Reviewer performance metrics.

The ReviewerMetricsTracker folds each completed review round into the
acting reviewer's running statistics. Every statistic is an incremental
mean over completed rounds (``mean += (x - mean) / n``); on-time completion
contributes 100 or 0 so its mean is a percentage. All component scores are
clamped to [0, 100] before folding.

Metric updates are best-effort from the caller's point of view: the round
processor catches and logs any failure here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from docreview.database.models.base import as_utc, utcnow
from docreview.database.models.review import DocumentReview, ReviewRound
from docreview.database.models.reviewer import ReviewerProfile
from docreview.database.queries.reviewer import get_reviewer
from docreview.workflow.locking import UnitOfWork, reviewer_key

logger = structlog.get_logger(__name__)

DEFAULT_REVIEW_HOURS = 8.0
DEFAULT_QUALITY_SCORE = 75.0


def clamp_score(value: float) -> float:
    """Clamp a score into [0, 100]."""
    return max(0.0, min(100.0, float(value)))


@dataclass(frozen=True)
class RoundStats:
    """Per-round sample folded into a reviewer's metrics."""

    review_time_hours: float
    quality_score: float
    on_time: bool
    feedback_quality_score: float
    thoroughness_score: float


def _running_mean(current: float, sample: float, count: int) -> float:
    return current + (sample - current) / count


def fold_round(reviewer: ReviewerProfile, stats: RoundStats, now: datetime) -> None:
    """Apply one RoundStats sample to the reviewer's running metrics."""
    n = reviewer.completed_reviews + 1
    reviewer.total_reviews += 1
    reviewer.completed_reviews = n
    reviewer.average_review_time = _running_mean(
        reviewer.average_review_time, max(0.0, stats.review_time_hours), n
    )
    reviewer.average_quality_score = clamp_score(
        _running_mean(reviewer.average_quality_score, clamp_score(stats.quality_score), n)
    )
    reviewer.on_time_completion_rate = clamp_score(
        _running_mean(reviewer.on_time_completion_rate, 100.0 if stats.on_time else 0.0, n)
    )
    reviewer.feedback_quality_score = clamp_score(
        _running_mean(
            reviewer.feedback_quality_score, clamp_score(stats.feedback_quality_score), n
        )
    )
    reviewer.thoroughness_score = clamp_score(
        _running_mean(reviewer.thoroughness_score, clamp_score(stats.thoroughness_score), n)
    )
    reviewer.metrics_updated_at = now
    reviewer.touch()


class ReviewerMetricsTracker:
    """Maintains reviewers' running performance statistics."""

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow
        self._logger = logger.bind(component="ReviewerMetricsTracker")

    @staticmethod
    def stats_for_round(review: DocumentReview, review_round: ReviewRound) -> RoundStats:
        """Derive the metrics sample for a completed round.

        Review time is the span from start to completion in hours (8 when
        unknown); quality defaults to 75 when the reviewer gave none; the
        round is on time when it completed by the review's due date or the
        review has no due date.
        """
        started = as_utc(review_round.started_at)
        completed = as_utc(review_round.completed_at)
        if started is not None and completed is not None:
            hours = (completed - started).total_seconds() / 3600
        else:
            hours = DEFAULT_REVIEW_HOURS

        due = as_utc(review.due_date)
        on_time = due is None or (completed is not None and completed <= due)

        quality = review_round.quality_score
        return RoundStats(
            review_time_hours=hours,
            quality_score=DEFAULT_QUALITY_SCORE if quality is None else quality,
            on_time=on_time,
            feedback_quality_score=review_round.feedback_quality_score,
            thoroughness_score=review_round.thoroughness_score,
        )

    async def update(self, reviewer_id: str, stats: RoundStats) -> ReviewerProfile | None:
        """Fold ``stats`` into the reviewer's metrics atomically.

        Returns:
            The updated profile, or None if the reviewer has no profile.
        """

        async def _apply(session: AsyncSession) -> ReviewerProfile | None:
            reviewer = await get_reviewer(session, reviewer_id)
            if reviewer is None:
                return None
            fold_round(reviewer, stats, utcnow())
            return reviewer

        reviewer = await self.uow.run([reviewer_key(reviewer_id)], _apply)
        if reviewer is None:
            self._logger.warning("metrics_reviewer_missing", reviewer_id=reviewer_id)
            return None

        self._logger.info(
            "reviewer_metrics_updated",
            reviewer_id=reviewer_id,
            completed_reviews=reviewer.completed_reviews,
            average_quality_score=round(reviewer.average_quality_score, 2),
            on_time_completion_rate=round(reviewer.on_time_completion_rate, 2),
        )
        return reviewer
