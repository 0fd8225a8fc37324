"""Request logging middleware for Docreview.

This module provides middleware for logging HTTP requests with:
- Request method, path, and status code
- Request duration in milliseconds
- Correlation IDs carried into every log line of the request
- Structured logging via structlog

Example:
    >>> from fastapi import FastAPI
    >>> from docreview.web.middleware import RequestLoggingMiddleware
    >>>
    >>> app = FastAPI()
    >>> app.add_middleware(RequestLoggingMiddleware)
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from docreview.logging import clear_review_context, get_logger, set_correlation_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs HTTP requests with timing and correlation IDs.

    For each incoming request, this middleware:
    1. Takes the correlation ID from the X-Correlation-ID header, or
       generates a UUID when the header is absent
    2. Sets it in the logging context so review workflow events carry it
    3. Logs the request start and its completion with status and duration
    4. Echoes the correlation ID on the response

    Review context bound by the review routes is cleared when the request
    finishes.

    Example:
        >>> from fastapi import FastAPI
        >>> from docreview.web.middleware import RequestLoggingMiddleware
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(RequestLoggingMiddleware)
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request with logging.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware or route handler

        Returns:
            HTTP response from downstream handlers, with the correlation ID
            header set

        Raises:
            Exception: Any error from downstream handlers, after it is logged
        """
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            query=str(request.url.query) if request.url.query else None,
        )

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
                exc_info=True,
            )
            raise

        finally:
            set_correlation_id(None)
            clear_review_context()
