"""Automated pre-submission checks.

The AutomatedCheckRunner executes a pluggable set of independent checks
against a document at intake and reduces their results to a compliance
score. A plugin is any callable ``(document_ref, document_type)`` returning
a list of CheckResult (sync or async). A plugin that raises or exceeds the
timeout is recorded as one failed result; intake never aborts because of a
check.

Compliance score policy:
    - If any result carries a numeric score, the score is the mean of those
      scores; unscored results are ignored.
    - Otherwise it is the share of passed results, times 100.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Union

import structlog
from pydantic import BaseModel, Field

from docreview.config import ChecksConfig
from docreview.database.models.base import utcnow
from docreview.errors import CheckRunnerError

logger = structlog.get_logger(__name__)

_TEXT_SUFFIXES = {".md", ".txt", ".html", ".htm", ".rst"}


class CheckStatus(str, Enum):
    """Outcome of one automated check."""

    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"


class CheckResult(BaseModel):
    """Result of one automated check.

    Attributes:
        check_type: Machine-readable category (e.g. "format_validation").
        check_name: Human-readable check name.
        status: passed, warning or failed.
        score: Optional numeric score (0-100).
        details: Explanation of the outcome.
        recommendations: Suggested improvements.
        executed_at: When the check ran.
    """

    check_type: str
    check_name: str
    status: CheckStatus
    score: float | None = Field(default=None, ge=0.0, le=100.0)
    details: str
    recommendations: list[str] = Field(default_factory=list)
    executed_at: datetime = Field(default_factory=utcnow)


CheckPlugin = Callable[
    [Union[str, None], str],
    Union[list[CheckResult], Awaitable[list[CheckResult]]],
]


def plugin_name(plugin: CheckPlugin) -> str:
    """Name used for logging and failure results."""
    return (
        getattr(plugin, "name", None)
        or getattr(plugin, "__name__", None)
        or type(plugin).__name__
    )


def compliance_score(results: Sequence[CheckResult]) -> float:
    """Reduce check results to a 0-100 compliance score.

    Returns 0.0 when there are no results at all.
    """
    if not results:
        return 0.0
    scores = [r.score for r in results if r.score is not None]
    if scores:
        return sum(scores) / len(scores)
    passed = sum(1 for r in results if r.status == CheckStatus.PASSED)
    return passed / len(results) * 100


class AutomatedCheckRunner:
    """Runs check plugins concurrently with a per-plugin timeout."""

    def __init__(
        self,
        plugins: Sequence[CheckPlugin],
        timeout_seconds: float = 30.0,
    ) -> None:
        self.plugins = list(plugins)
        self.timeout_seconds = timeout_seconds
        self._logger = logger.bind(component="AutomatedCheckRunner")

    async def run(self, document_ref: str | None, document_type: str) -> list[CheckResult]:
        """Run every plugin and collect the results in plugin order."""
        outcomes = await asyncio.gather(
            *(self._run_plugin(p, document_ref, document_type) for p in self.plugins)
        )
        results = [result for outcome in outcomes for result in outcome]
        self._logger.info(
            "automated_checks_completed",
            document_type=document_type,
            check_count=len(results),
            failed=sum(1 for r in results if r.status == CheckStatus.FAILED),
        )
        return results

    async def _run_plugin(
        self,
        plugin: CheckPlugin,
        document_ref: str | None,
        document_type: str,
    ) -> list[CheckResult]:
        name = plugin_name(plugin)
        try:
            return await self._invoke_bounded(plugin, name, document_ref, document_type)
        except CheckRunnerError as exc:
            self._logger.warning("check_plugin_failed", check_name=name, error=str(exc))
            return [
                CheckResult(
                    check_type="system_error",
                    check_name=name,
                    status=CheckStatus.FAILED,
                    details=str(exc),
                )
            ]

    async def _invoke_bounded(
        self,
        plugin: CheckPlugin,
        name: str,
        document_ref: str | None,
        document_type: str,
    ) -> list[CheckResult]:
        if inspect.iscoroutinefunction(plugin) or inspect.iscoroutinefunction(
            getattr(plugin, "__call__", None)
        ):
            call = plugin(document_ref, document_type)
        else:
            # Sync plugins run in a worker thread so the timeout still applies
            call = asyncio.to_thread(plugin, document_ref, document_type)
        try:
            outcome = await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise CheckRunnerError(name, f"timed out after {self.timeout_seconds}s") from exc
        except CheckRunnerError:
            raise
        except Exception as exc:
            raise CheckRunnerError(name, str(exc) or type(exc).__name__) from exc
        return list(outcome)


async def _read_text(document_ref: str | None) -> str | None:
    if not document_ref:
        return None
    path = Path(document_ref)
    if path.suffix.lower() not in _TEXT_SUFFIXES:
        return None

    def _load() -> str | None:
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8", errors="ignore")

    return await asyncio.to_thread(_load)


class FileExistenceCheck:
    """The document reference points at a readable file."""

    name = "Document File Exists"

    async def __call__(self, document_ref: str | None, document_type: str) -> list[CheckResult]:
        if not document_ref:
            return [
                CheckResult(
                    check_type="file_existence",
                    check_name=self.name,
                    status=CheckStatus.WARNING,
                    details="No document path supplied",
                )
            ]
        exists = await asyncio.to_thread(Path(document_ref).is_file)
        return [
            CheckResult(
                check_type="file_existence",
                check_name=self.name,
                status=CheckStatus.PASSED if exists else CheckStatus.FAILED,
                details=(
                    "Document file exists and is accessible"
                    if exists
                    else f"Document file not found: {document_ref}"
                ),
            )
        ]


class FormatValidationCheck:
    """The document has one of the accepted file extensions."""

    name = "Document Format Validation"

    def __init__(self, allowed_extensions: Sequence[str]) -> None:
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}

    async def __call__(self, document_ref: str | None, document_type: str) -> list[CheckResult]:
        if not document_ref:
            return []
        suffix = Path(document_ref).suffix.lower()
        if suffix in self.allowed_extensions:
            return [
                CheckResult(
                    check_type="format_validation",
                    check_name=self.name,
                    status=CheckStatus.PASSED,
                    details=f"Document format {suffix} is valid",
                )
            ]
        return [
            CheckResult(
                check_type="format_validation",
                check_name=self.name,
                status=CheckStatus.WARNING,
                details=f"Unexpected document format {suffix or '(none)'}",
                recommendations=[
                    f"Convert the document to one of {', '.join(sorted(self.allowed_extensions))}"
                ],
            )
        ]


class ContentLengthCheck:
    """The document meets the minimum word count."""

    name = "Minimum Content Length"

    def __init__(self, min_word_count: int) -> None:
        self.min_word_count = min_word_count

    async def __call__(self, document_ref: str | None, document_type: str) -> list[CheckResult]:
        text = await _read_text(document_ref)
        if text is None:
            return []
        words = len(text.split())
        if self.min_word_count == 0:
            score = 100.0
        else:
            score = round(min(100.0, words / self.min_word_count * 100), 1)
        if words >= self.min_word_count:
            status = CheckStatus.PASSED
            details = "Document meets minimum content requirements"
            recommendations: list[str] = []
        else:
            status = CheckStatus.WARNING if words else CheckStatus.FAILED
            details = f"Document has {words} words, {self.min_word_count} expected"
            recommendations = ["Expand the document with more detailed content and examples"]
        return [
            CheckResult(
                check_type="content_validation",
                check_name=self.name,
                status=status,
                score=score,
                details=details,
                recommendations=recommendations,
            )
        ]


class PmbokComplianceCheck:
    """Project documents cover the core PMBOK sections."""

    name = "PMBOK Compliance"

    REQUIRED_SECTIONS: tuple[tuple[str, str], ...] = (
        ("stakeholder", "Add stakeholder identification section"),
        ("risk", "Include risk management considerations"),
        ("scope", "Define the project scope"),
        ("schedule", "Add a schedule or milestone section"),
    )

    @staticmethod
    def applies_to(document_type: str) -> bool:
        lowered = document_type.lower()
        return "pmbok" in lowered or "project" in lowered

    async def __call__(self, document_ref: str | None, document_type: str) -> list[CheckResult]:
        if not self.applies_to(document_type):
            return []
        text = await _read_text(document_ref)
        if text is None:
            return [
                CheckResult(
                    check_type="compliance_check",
                    check_name=self.name,
                    status=CheckStatus.WARNING,
                    details="Document text unavailable; PMBOK sections not verified",
                )
            ]
        lowered = text.lower()
        missing = [advice for keyword, advice in self.REQUIRED_SECTIONS if keyword not in lowered]
        found = len(self.REQUIRED_SECTIONS) - len(missing)
        score = round(found / len(self.REQUIRED_SECTIONS) * 100, 1)
        if not missing:
            status = CheckStatus.PASSED
            details = "Document complies with PMBOK standards"
        elif score >= 50:
            status = CheckStatus.WARNING
            details = "Document partially complies with PMBOK standards"
        else:
            status = CheckStatus.FAILED
            details = "Document does not cover the core PMBOK sections"
        return [
            CheckResult(
                check_type="compliance_check",
                check_name=self.name,
                status=status,
                score=score,
                details=details,
                recommendations=missing,
            )
        ]


def default_plugins(config: ChecksConfig) -> list[CheckPlugin]:
    """Built-in check plugins configured from ChecksConfig."""
    return [
        FileExistenceCheck(),
        FormatValidationCheck(config.allowed_extensions),
        ContentLengthCheck(config.min_word_count),
        PmbokComplianceCheck(),
    ]
