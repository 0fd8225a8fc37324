"""Derived scores for review feedback.

Both functions accept any objects exposing the feedback attributes
(``type``, ``severity``, ``description``, ``suggestion``, ``section``,
``line_number``), so they work on ORM rows and request payloads alike.

feedback_quality_score:
    Per item: 60 base, +10 if the description is longer than 50 characters,
    +10 more if longer than 100, +15 with a suggestion, +10 with a section or
    line reference. Items are weighted by severity (critical 3, major 2,
    anything else 1); the weighted mean is capped at 100. No feedback
    scores 50.

thoroughness_score:
    50 base, +5 per distinct feedback type, +5 per distinct severity,
    +2 per item up to 20, capped at 100.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

SEVERITY_WEIGHTS: dict[str, int] = {"critical": 3, "major": 2}
DEFAULT_SEVERITY_WEIGHT = 1
EMPTY_FEEDBACK_QUALITY = 50.0


def _value(field: Any) -> Any:
    return getattr(field, "value", field)


def feedback_item_score(item: Any) -> float:
    """Unweighted quality score of one feedback item."""
    score = 60.0
    description = item.description or ""
    if len(description) > 50:
        score += 10
    if len(description) > 100:
        score += 10
    if item.suggestion:
        score += 15
    if item.section or item.line_number:
        score += 10
    return score


def severity_weight(severity: Any) -> int:
    """Weight of a severity in the feedback quality mean."""
    return SEVERITY_WEIGHTS.get(_value(severity), DEFAULT_SEVERITY_WEIGHT)


def feedback_quality_score(feedback: Sequence[Any]) -> float:
    """Severity-weighted mean item score, capped at 100."""
    if not feedback:
        return EMPTY_FEEDBACK_QUALITY
    total = 0.0
    total_weight = 0
    for item in feedback:
        weight = severity_weight(item.severity)
        total += feedback_item_score(item) * weight
        total_weight += weight
    return min(total / total_weight, 100.0)


def thoroughness_score(feedback: Sequence[Any]) -> float:
    """Coverage of types and severities plus volume, capped at 100."""
    types = {_value(item.type) for item in feedback}
    severities = {_value(item.severity) for item in feedback}
    score = 50.0
    score += len(types) * 5
    score += len(severities) * 5
    score += min(len(feedback) * 2, 20)
    return min(score, 100.0)
