"""Workflow configuration resolution.

Selects the review policy for a document: an explicitly requested workflow
first, otherwise the first active workflow covering the document type.
When nothing matches, callers fall back to a manual-only policy built from
the engine defaults.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from docreview.config import WorkflowSettings
from docreview.database.models.workflow import WorkflowConfig
from docreview.database.queries.workflow import get_workflow, list_active_workflows

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReviewPolicy:
    """Effective policy applied to one review at intake."""

    workflow_id: uuid.UUID | None
    due_days: int
    auto_assignment: bool
    required_roles: list[str] = field(default_factory=list)
    estimated_hours: float = 8.0
    notify: bool = True


class WorkflowConfigResolver:
    """Finds the WorkflowConfig that applies to a document type."""

    def __init__(self, settings: WorkflowSettings) -> None:
        self.settings = settings
        self._logger = logger.bind(component="WorkflowConfigResolver")

    async def resolve(
        self,
        session: AsyncSession,
        document_type: str,
        workflow_id: uuid.UUID | None = None,
    ) -> WorkflowConfig | None:
        """Return the applicable workflow, or None for manual-only handling.

        Args:
            session: Active async database session.
            document_type: Type of the submitted document.
            workflow_id: Explicitly requested workflow.
        """
        if workflow_id is not None:
            workflow = await get_workflow(session, workflow_id)
            if workflow is None:
                self._logger.warning("workflow_not_found", workflow_id=str(workflow_id))
            return workflow

        for workflow in await list_active_workflows(session):
            if document_type in (workflow.document_types or []):
                self._logger.debug(
                    "workflow_resolved",
                    document_type=document_type,
                    workflow_id=str(workflow.id),
                )
                return workflow

        self._logger.info("no_workflow_for_document_type", document_type=document_type)
        return None

    def policy_for(self, workflow: WorkflowConfig | None) -> ReviewPolicy:
        """Build the effective policy, using defaults when workflow is None."""
        if workflow is None:
            return ReviewPolicy(
                workflow_id=None,
                due_days=self.settings.default_due_days,
                auto_assignment=False,
                estimated_hours=self.settings.default_estimated_hours,
            )
        return ReviewPolicy(
            workflow_id=workflow.id,
            due_days=workflow.default_due_days,
            auto_assignment=workflow.auto_assignment,
            required_roles=list(workflow.required_roles or []),
            estimated_hours=workflow.stage_estimated_hours()
            or self.settings.default_estimated_hours,
            notify=workflow.auto_notification,
        )
