"""FastAPI application factory for Docreview.

This module provides the main application factory function that creates
and configures a FastAPI application with:
- CORS middleware for cross-origin requests
- Request logging middleware with correlation IDs
- Database and ReviewService lifecycle management
- Mapping of workflow errors to HTTP status codes
- Health, review and reviewer endpoints

Example usage:
    >>> from docreview.config import DocreviewConfig
    >>> from docreview.web.app import create_app
    >>>
    >>> app = create_app(DocreviewConfig())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi import status as http_status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docreview import __version__
from docreview.config import DocreviewConfig
from docreview.database.connection import get_engine, get_session_factory
from docreview.errors import (
    ConcurrencyConflictError,
    DocreviewError,
    NotFoundError,
    ValidationError,
)
from docreview.logging import get_logger
from docreview.web.middleware import RequestLoggingMiddleware
from docreview.web.routes.health import create_health_router
from docreview.web.routes.reviewers import create_reviewers_router
from docreview.web.routes.reviews import create_reviews_router
from docreview.workflow.service import build_review_service

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

logger = get_logger(__name__)

_ERROR_STATUS: list[tuple[type[DocreviewError], int]] = [
    (NotFoundError, http_status.HTTP_404_NOT_FOUND),
    (ConcurrencyConflictError, http_status.HTTP_409_CONFLICT),
    (ValidationError, http_status.HTTP_422_UNPROCESSABLE_ENTITY),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the engine, session factory and ReviewService; dispose on exit.

    Args:
        app: FastAPI application instance

    Yields:
        None after startup, cleans up on context exit
    """
    config: DocreviewConfig = app.state.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine: AsyncEngine = get_engine(config.database)
    session_factory: async_sessionmaker[AsyncSession] = get_session_factory(engine)
    service = build_review_service(config, session_factory)

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.review_service = service

    logger.info(
        "database_pool_initialized",
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )

    yield

    logger.info("app_shutdown_begin")
    await service.close()
    await engine.dispose()
    logger.info("database_pool_disposed")


def status_for_error(exc: DocreviewError) -> int:
    """HTTP status code for a workflow error."""
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return http_status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_docreview_error(request: Request, exc: DocreviewError) -> JSONResponse:
    """Render a workflow error as a JSON error response."""
    code = status_for_error(exc)
    log = logger.warning if code < 500 else logger.error
    log(
        "request_error",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
        status_code=code,
    )
    return JSONResponse(
        status_code=code,
        content={
            "detail": str(exc),
            "error": type(exc).__name__,
            "retry_safe": exc.retry_safe,
        },
    )


def create_app(config: DocreviewConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Args:
        config: Optional DocreviewConfig. If None, creates default config.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = DocreviewConfig()

    app = FastAPI(
        title="Docreview",
        version=__version__,
        description="Document review workflow engine",
        lifespan=lifespan,
    )

    # Lifespan reads config from app.state
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(DocreviewError, handle_docreview_error)  # type: ignore[arg-type]

    app.include_router(create_health_router())
    app.include_router(create_reviews_router())
    app.include_router(create_reviewers_router())

    logger.info(
        "app_created",
        cors_origins=config.web.cors_origins,
        version=__version__,
    )

    return app
