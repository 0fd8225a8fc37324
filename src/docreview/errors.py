"""Typed errors raised by the review workflow engine.

Callers distinguish three situations by error kind:

- ``ConcurrencyConflictError``: a concurrent writer won; retrying is safe.
- ``ValidationError`` (and subclasses): the request itself is invalid.
- ``NotFoundError``: a referenced review, reviewer or workflow is absent.

``CheckRunnerError`` never escapes the check runner; it is converted into a
failed check result at intake.
"""

from __future__ import annotations

from typing import Any


class DocreviewError(Exception):
    """Base class for all engine errors."""

    retry_safe: bool = False


class NotFoundError(DocreviewError):
    """Raised when a referenced record does not exist.

    Attributes:
        kind: Record kind ("review", "reviewer", "workflow", "assignment").
        identifier: The identifier that was looked up.
    """

    def __init__(self, kind: str, identifier: Any) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} {identifier} not found")


class ValidationError(DocreviewError):
    """Raised when a request is invalid for the current state of the data."""


class InvalidTransitionError(ValidationError):
    """Raised when a review status transition is not in the transition table.

    Attributes:
        current: The current review status.
        target: The attempted target status.
        review_id: The ID of the review that failed to transition.
    """

    def __init__(self, current: Any, target: Any, review_id: str | None = None) -> None:
        self.current = current
        self.target = target
        self.review_id = review_id
        msg = f"Invalid transition from {current.value} to {target.value}"
        if review_id:
            msg += f" for review {review_id}"
        super().__init__(msg)


class CapacityExceededError(ValidationError):
    """Raised when a reviewer cannot take on the requested workload."""

    def __init__(self, reviewer_id: str, reason: str) -> None:
        self.reviewer_id = reviewer_id
        self.reason = reason
        super().__init__(f"Reviewer {reviewer_id} cannot accept this review: {reason}")


class ConcurrencyConflictError(DocreviewError):
    """Raised when a record changed underneath an atomic update.

    Attributes:
        keys: Entity keys involved in the failed unit of work.
        attempts: How many times the unit of work was run.
    """

    retry_safe = True

    def __init__(self, keys: tuple[str, ...], attempts: int) -> None:
        self.keys = keys
        self.attempts = attempts
        super().__init__(
            f"Concurrent modification of {', '.join(keys)} "
            f"(gave up after {attempts} attempts)"
        )


class CheckRunnerError(DocreviewError):
    """Raised by the check runner when a plugin fails or times out.

    Attributes:
        check_name: Name of the failing plugin.
    """

    def __init__(self, check_name: str, message: str) -> None:
        self.check_name = check_name
        super().__init__(f"Check {check_name} failed: {message}")
