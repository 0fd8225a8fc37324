"""Database setup CLI commands.

This module provides commands for creating the schema on a local database
and seeding reviewer profiles and workflow configurations from a JSON file.

Seed file format::

    {
      "reviewers": [{"user_id": "...", "name": "...", "email": "...",
                     "roles": ["technical"], ...}],
      "workflows": [{"name": "...", "document_types": ["..."],
                     "required_roles": ["..."], "review_stages": [...], ...}]
    }

Entries whose reviewer user_id or workflow name already exists are skipped,
so seeding is repeatable.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table
from sqlalchemy import select

from docreview.database.connection import create_schema
from docreview.database.models.review import ReviewerRole
from docreview.database.models.workflow import WorkflowConfig
from docreview.database.queries.reviewer import create_reviewer, get_reviewer
from docreview.database.queries.workflow import create_workflow
from docreview.web.routes.reviewers import ReviewerCreate

app = typer.Typer(help="Database commands")
console = Console()


class WorkflowSeed(BaseModel):
    """One workflow configuration in a seed file."""

    name: str = Field(..., min_length=1)
    description: str | None = None
    document_types: list[str] = Field(..., min_length=1)
    required_roles: list[ReviewerRole] = Field(default_factory=list)
    review_stages: list[dict[str, Any]] = Field(default_factory=list)
    default_due_days: int = Field(default=5, ge=0)
    auto_assignment: bool = False
    auto_notification: bool = True
    minimum_reviewers: int = Field(default=1, ge=1)
    is_active: bool = True


class SeedFile(BaseModel):
    """Contents of a seed file."""

    reviewers: list[ReviewerCreate] = Field(default_factory=list)
    workflows: list[WorkflowSeed] = Field(default_factory=list)


@app.command()
def init() -> None:
    """Create all tables that do not exist yet."""
    from docreview.main import get_app_context

    ctx = get_app_context()

    try:
        ctx.run(lambda: create_schema(ctx.engine))
    except Exception as e:
        console.print(f"[red]Error creating schema:[/red] {e}")
        raise typer.Exit(code=1)

    console.print("[green]Database schema created[/green]")


def seed(
    seed_file: Annotated[
        Path,
        typer.Argument(
            help="JSON file with reviewers and workflows",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
) -> None:
    """Load reviewer profiles and workflow configurations from JSON."""
    from docreview.main import get_app_context

    ctx = get_app_context()

    try:
        data = SeedFile.model_validate(json.loads(seed_file.read_text(encoding="utf-8")))
    except Exception as e:
        console.print(f"[red]Invalid seed file:[/red] {e}")
        raise typer.Exit(code=1)

    async def _seed() -> tuple[list[str], list[str], list[str]]:
        created_reviewers: list[str] = []
        created_workflows: list[str] = []
        skipped: list[str] = []
        async with ctx.session_factory() as session:
            for r in data.reviewers:
                if await get_reviewer(session, r.user_id) is not None:
                    skipped.append(f"reviewer {r.user_id}")
                    continue
                await create_reviewer(session, **r.model_dump())
                created_reviewers.append(r.user_id)

            result = await session.execute(select(WorkflowConfig.name))
            existing = set(result.scalars().all())
            for w in data.workflows:
                if w.name in existing:
                    skipped.append(f"workflow {w.name}")
                    continue
                await create_workflow(session, **w.model_dump())
                created_workflows.append(w.name)
        return created_reviewers, created_workflows, skipped

    try:
        reviewers, workflows, skipped = ctx.run(_seed)
    except Exception as e:
        console.print(f"[red]Error seeding database:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Seed Summary")
    table.add_column("Kind", style="cyan")
    table.add_column("Created", style="green")
    table.add_column("Names")
    table.add_row("reviewers", str(len(reviewers)), ", ".join(reviewers))
    table.add_row("workflows", str(len(workflows)), ", ".join(workflows))
    console.print(table)
    for item in skipped:
        console.print(f"[yellow]Skipped existing[/yellow] {item}")
