"""Unit tests for the reviewer capacity model."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from docreview.database.models.reviewer import ReviewerProfile
from docreview.workflow.capacity import CapacityDecision, ReviewerCapacityModel, Workload


def _reviewer(
    is_active: bool = True,
    max_concurrent_reviews: int = 3,
    max_hours: float = 20.0,
) -> ReviewerProfile:
    return ReviewerProfile(
        user_id="alice",
        name="Alice",
        email="alice@example.com",
        roles=["technical"],
        is_active=is_active,
        max_concurrent_reviews=max_concurrent_reviews,
        max_hours=max_hours,
    )


class TestCapacityCheck:
    """Tests for ReviewerCapacityModel.check."""

    def test_idle_reviewer_accepts(self) -> None:
        """Test that an active reviewer with no work can accept."""
        model = ReviewerCapacityModel()
        decision = model.check(_reviewer(), Workload(), 8.0)
        assert decision.allowed is True
        assert decision.reason is None

    def test_inactive_reviewer_refused(self) -> None:
        """Test that inactive reviewers never accept work."""
        model = ReviewerCapacityModel()
        decision = model.check(_reviewer(is_active=False), Workload(), 1.0)
        assert not decision
        assert decision.reason == "reviewer is inactive"

    def test_concurrent_review_limit(self) -> None:
        """Test that the concurrent review count is enforced."""
        model = ReviewerCapacityModel()
        reviewer = _reviewer(max_concurrent_reviews=2)

        assert model.can_accept(reviewer, Workload(active_reviews=1, active_hours=2.0), 2.0)
        decision = model.check(reviewer, Workload(active_reviews=2, active_hours=4.0), 2.0)
        assert not decision.allowed
        assert "2 of 2 concurrent reviews" in decision.reason

    @pytest.mark.parametrize(
        "active_hours,requested,allowed",
        [
            (12.0, 8.0, True),  # exactly at the limit
            (12.0, 8.5, False),
            (0.0, 20.5, False),
        ],
    )
    def test_hour_limit(self, active_hours: float, requested: float, allowed: bool) -> None:
        """Test that the summed estimated hours must stay within max_hours."""
        model = ReviewerCapacityModel()
        workload = Workload(active_reviews=1, active_hours=active_hours)
        assert model.can_accept(_reviewer(max_hours=20.0), workload, requested) is allowed

    def test_decision_is_truthy_when_allowed(self) -> None:
        """Test the boolean form of CapacityDecision."""
        assert CapacityDecision(True)
        assert not CapacityDecision(False, "full")


class TestWorkload:
    """Tests for loading a reviewer's workload."""

    @pytest.mark.asyncio
    async def test_workload_from_query(self) -> None:
        """Test that the active assignment count and hours are wrapped."""
        session = AsyncMock()
        with patch(
            "docreview.workflow.capacity.get_reviewer_workload",
            AsyncMock(return_value=(2, 11.5)),
        ) as query:
            workload = await ReviewerCapacityModel().workload(session, "alice")

        query.assert_awaited_once_with(session, "alice")
        assert workload == Workload(active_reviews=2, active_hours=11.5)
