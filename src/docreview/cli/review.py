"""Review inspection CLI commands.

This module provides read-only commands for listing and showing reviews.
"""

from __future__ import annotations

import json
from typing import Annotated, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from docreview.database.models.review import ReviewStatus
from docreview.database.queries.review import ReviewSearchParams, get_review, search_reviews

app = typer.Typer(help="Review inspection commands")
console = Console()

STATUS_COLORS = {
    "pending_assignment": "dim",
    "assigned": "cyan",
    "in_review": "yellow",
    "revision_requested": "magenta",
    "approved": "green",
    "rejected": "red",
    "completed": "blue",
}


def _colored(status: ReviewStatus) -> str:
    color = STATUS_COLORS.get(status.value, "white")
    return f"[{color}]{status.value}[/{color}]"


@app.command("list")
def list_reviews(
    status: Annotated[
        Optional[str],
        typer.Option("--status", "-s", help="Filter by review status"),
    ] = None,
    project: Annotated[
        Optional[str],
        typer.Option("--project", "-p", help="Filter by project ID"),
    ] = None,
    reviewer: Annotated[
        Optional[str],
        typer.Option("--reviewer", "-r", help="Filter by assigned reviewer"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum reviews to show", min=1, max=100),
    ] = 20,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (table or json)"),
    ] = "table",
) -> None:
    """List reviews, most recently created first."""
    from docreview.main import get_app_context

    ctx = get_app_context()

    statuses = None
    if status is not None:
        try:
            statuses = [ReviewStatus(status)]
        except ValueError:
            console.print(
                f"[red]Invalid status:[/red] {status}. "
                f"Valid values: {', '.join(s.value for s in ReviewStatus)}"
            )
            raise typer.Exit(code=1)

    params = ReviewSearchParams(
        status=statuses,
        project_id=project,
        reviewer_id=reviewer,
        limit=limit,
    )

    async def _search():
        async with ctx.session_factory() as session:
            return await search_reviews(session, params)

    try:
        reviews, total = ctx.run(_search)
    except Exception as e:
        console.print(f"[red]Error listing reviews:[/red] {e}")
        raise typer.Exit(code=1)

    if format == "json":
        output = [
            {
                "id": str(r.id),
                "document_name": r.document_name,
                "document_type": r.document_type,
                "status": r.status.value,
                "priority": r.priority.value,
                "current_round": r.current_round,
                "current_reviewer_id": r.current_reviewer_id,
                "due_date": r.due_date.isoformat() if r.due_date else None,
            }
            for r in reviews
        ]
        console.print(json.dumps(output, indent=2))
        return

    if not reviews:
        console.print("[yellow]No reviews found[/yellow]")
        return

    table = Table(title=f"Reviews ({len(reviews)} of {total})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Document", style="bold")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Round", justify="right")
    table.add_column("Due", style="dim")
    for r in reviews:
        table.add_row(
            str(r.id),
            r.document_name,
            r.document_type,
            _colored(r.status),
            r.priority.value,
            str(r.current_round),
            r.due_date.strftime("%Y-%m-%d") if r.due_date else "-",
        )
    console.print(table)


@app.command()
def show(
    review_id: Annotated[str, typer.Argument(help="Review UUID")],
) -> None:
    """Show one review with its assignments, rounds and history."""
    from docreview.main import get_app_context

    ctx = get_app_context()

    try:
        uid = UUID(review_id)
    except ValueError:
        console.print(f"[red]Invalid review ID:[/red] {review_id}")
        raise typer.Exit(code=1)

    async def _get():
        async with ctx.session_factory() as session:
            return await get_review(session, uid)

    try:
        review = ctx.run(_get)
    except Exception as e:
        console.print(f"[red]Error loading review:[/red] {e}")
        raise typer.Exit(code=1)

    if review is None:
        console.print(f"[red]Review not found:[/red] {review_id}")
        raise typer.Exit(code=1)

    score = "pending" if review.compliance_score is None else f"{review.compliance_score:.1f}"
    console.print(
        Panel(
            f"[bold]Document:[/bold] {review.document_name} ({review.document_type})\n"
            f"[bold]Project:[/bold] {review.project_id}\n"
            f"[bold]Status:[/bold] {_colored(review.status)}\n"
            f"[bold]Priority:[/bold] {review.priority.value}\n"
            f"[bold]Round:[/bold] {review.current_round}\n"
            f"[bold]Current reviewer:[/bold] {review.current_reviewer_id or '-'}\n"
            f"[bold]Compliance score:[/bold] {score}\n"
            f"[bold]Due:[/bold] {review.due_date.isoformat() if review.due_date else '-'}",
            title=f"Review {review.id}",
            border_style="cyan",
        )
    )

    if review.assigned_reviewers:
        table = Table(title="Assignments")
        table.add_column("Reviewer", style="bold")
        table.add_column("Role")
        table.add_column("Status")
        table.add_column("Hours", justify="right")
        for a in review.assigned_reviewers:
            table.add_row(a.reviewer_id, a.role.value, a.status.value, f"{a.estimated_hours:g}")
        console.print(table)

    if review.review_rounds:
        table = Table(title="Rounds")
        table.add_column("#", justify="right")
        table.add_column("Reviewer")
        table.add_column("Decision")
        table.add_column("Quality", justify="right")
        table.add_column("Feedback", justify="right")
        for rnd in review.review_rounds:
            table.add_row(
                str(rnd.round_number),
                rnd.reviewer_id,
                rnd.decision.value,
                "-" if rnd.quality_score is None else f"{rnd.quality_score:g}",
                str(len(rnd.feedback)),
            )
        console.print(table)
