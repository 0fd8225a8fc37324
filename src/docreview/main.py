"""Main CLI entry point for Docreview.

This module provides the main Typer application with sub-commands for
database setup, seeding reviewers and workflows, review inspection and
serving the REST API.

Usage:
    docreview db init
    docreview seed reviewers.json
    docreview review list --status in_review
    docreview review show <review-id>
    docreview serve --port 8000
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Optional, TypeVar

import typer
from rich.console import Console

from docreview.cli import db as db_cli
from docreview.cli import review as review_cli
from docreview.config import DocreviewConfig, load_config
from docreview.database.connection import get_engine, get_session_factory
from docreview.logging import setup_logging

T = TypeVar("T")

app = typer.Typer(
    name="docreview",
    help="Docreview: document review workflow engine",
    no_args_is_help=True,
)

app.add_typer(db_cli.app, name="db", help="Manage the database schema")
app.add_typer(review_cli.app, name="review", help="Inspect reviews")
app.command("seed")(db_cli.seed)

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Docreview configuration
        engine: Async SQLAlchemy engine
        session_factory: Factory for creating database sessions
    """

    def __init__(self, config: DocreviewConfig):
        self.config = config
        self.engine = get_engine(config.database)
        self.session_factory = get_session_factory(self.engine)

    def run(self, work: Callable[[], Awaitable[T]]) -> T:
        """Run an async command body and dispose the engine afterwards."""

        async def _main() -> T:
            try:
                return await work()
            finally:
                await self.engine.dispose()

        return asyncio.run(_main())


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: DocreviewConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the Docreview REST API server."""
    import uvicorn

    from docreview.web.app import create_app

    config = get_app_context().config
    bind_host = host or config.web.host
    bind_port = port or config.web.port

    console.print("[bold cyan]Starting Docreview API[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {bind_host}")
    console.print(f"[dim]Port:[/dim] {bind_port}")
    console.print()

    uvicorn.run(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_level=config.logging.level.lower(),
    )


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, set up logging and the application context."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)

    try:
        initialize_context(config)
    except Exception as e:
        console.print(f"[red]Error initializing application:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
