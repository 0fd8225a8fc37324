"""Web interface for Docreview.

This module provides the FastAPI REST API over the review workflow
operations, with request logging and workflow error mapping.
"""

from __future__ import annotations

from docreview.web.app import create_app, status_for_error
from docreview.web.middleware import RequestLoggingMiddleware

__all__ = [
    "create_app",
    "status_for_error",
    "RequestLoggingMiddleware",
]
