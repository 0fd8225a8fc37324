"""Unit tests for feedback quality and thoroughness scoring.

Tests cover:
- Per-item score components
- Severity weighting and the 100 cap
- Empty feedback defaults
- Thoroughness coverage and volume bonuses
"""

from __future__ import annotations

import pytest

from docreview.database.models.review import FeedbackSeverity, FeedbackType
from docreview.workflow.rounds import FeedbackItem
from docreview.workflow.scoring import (
    feedback_item_score,
    feedback_quality_score,
    severity_weight,
    thoroughness_score,
)


def _item(
    severity: FeedbackSeverity = FeedbackSeverity.minor,
    type: FeedbackType = FeedbackType.formatting,
    description: str = "Fix heading",
    suggestion: str | None = None,
    section: str | None = None,
    line_number: int | None = None,
) -> FeedbackItem:
    return FeedbackItem(
        type=type,
        severity=severity,
        description=description,
        suggestion=suggestion,
        section=section,
        line_number=line_number,
    )


class TestFeedbackItemScore:
    """Tests for the unweighted per-item score."""

    def test_base_score(self) -> None:
        """Test that a bare short item scores 60."""
        assert feedback_item_score(_item()) == 60.0

    @pytest.mark.parametrize(
        "length,expected",
        [(50, 60.0), (51, 70.0), (100, 70.0), (101, 80.0)],
    )
    def test_description_length_bonus(self, length: int, expected: float) -> None:
        """Test the +10 bonuses above 50 and 100 characters."""
        assert feedback_item_score(_item(description="x" * length)) == expected

    def test_suggestion_bonus(self) -> None:
        """Test the +15 bonus for a suggestion."""
        assert feedback_item_score(_item(suggestion="Use a table")) == 75.0

    def test_location_bonus_from_section_or_line(self) -> None:
        """Test the +10 bonus for a section or a line reference."""
        assert feedback_item_score(_item(section="2.1")) == 70.0
        assert feedback_item_score(_item(line_number=12)) == 70.0
        assert feedback_item_score(_item(section="2.1", line_number=12)) == 70.0


class TestFeedbackQualityScore:
    """Tests for the severity-weighted mean."""

    def test_empty_feedback_scores_fifty(self) -> None:
        """Test the default for rounds without feedback."""
        assert feedback_quality_score([]) == 50.0

    @pytest.mark.parametrize(
        "severity,weight",
        [
            (FeedbackSeverity.critical, 3),
            (FeedbackSeverity.major, 2),
            (FeedbackSeverity.minor, 1),
            (FeedbackSeverity.info, 1),
        ],
    )
    def test_severity_weights(self, severity: FeedbackSeverity, weight: int) -> None:
        """Test the weight assigned to each severity."""
        assert severity_weight(severity) == weight
        assert severity_weight(severity.value) == weight

    def test_weighted_mean(self) -> None:
        """Test a mixed set of items against a hand-computed value."""
        feedback = [
            _item(
                severity=FeedbackSeverity.critical,
                type=FeedbackType.content_accuracy,
                description="d" * 120,
                suggestion="Cite the source",
                section="3.2",
            ),
            _item(),
            _item(),
        ]
        # (105 * 3 + 60 + 60) / 5
        assert feedback_quality_score(feedback) == pytest.approx(87.0)

    def test_capped_at_one_hundred(self) -> None:
        """Test that the mean never exceeds 100."""
        full = _item(
            severity=FeedbackSeverity.critical,
            description="d" * 200,
            suggestion="Rewrite",
            section="1",
        )
        assert feedback_quality_score([full]) == 100.0


class TestThoroughnessScore:
    """Tests for thoroughness_score."""

    def test_empty_feedback(self) -> None:
        """Test the base score with no feedback."""
        assert thoroughness_score([]) == 50.0

    def test_types_severities_and_volume(self) -> None:
        """Test the coverage and volume bonuses."""
        feedback = [
            _item(severity=FeedbackSeverity.critical, type=FeedbackType.content_accuracy),
            _item(),
            _item(),
        ]
        # 50 + 2 types * 5 + 2 severities * 5 + 3 items * 2
        assert thoroughness_score(feedback) == 76.0

    def test_volume_bonus_capped(self) -> None:
        """Test that the per-item bonus stops at 20."""
        feedback = [_item() for _ in range(15)]
        # 50 + 5 + 5 + 20
        assert thoroughness_score(feedback) == 80.0

    def test_capped_at_one_hundred(self) -> None:
        """Test that broad, voluminous feedback caps at 100."""
        types = list(FeedbackType)
        severities = list(FeedbackSeverity)
        feedback = [
            _item(type=types[i % len(types)], severity=severities[i % len(severities)])
            for i in range(14)
        ]
        # 50 + 7 * 5 + 4 * 5 + 20 = 125
        assert thoroughness_score(feedback) == 100.0
