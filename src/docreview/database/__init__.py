"""Database layer for Docreview.

This module handles database connections, session management, and provides
the SQLAlchemy async engine configuration.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    create_schema: Create all tables on an engine.
    Base: SQLAlchemy declarative base for all models.
"""

from docreview.database.connection import create_schema, get_engine, get_session_factory
from docreview.database.models import (
    AssignmentStatus,
    Base,
    DocumentReview,
    ReviewerAssignment,
    ReviewerProfile,
    ReviewFeedback,
    ReviewRound,
    ReviewStatus,
    ReviewStatusChange,
    TimestampMixin,
    WorkflowConfig,
)

__all__ = [
    "create_schema",
    "get_engine",
    "get_session_factory",
    "AssignmentStatus",
    "Base",
    "DocumentReview",
    "ReviewerAssignment",
    "ReviewerProfile",
    "ReviewFeedback",
    "ReviewRound",
    "ReviewStatus",
    "ReviewStatusChange",
    "TimestampMixin",
    "WorkflowConfig",
]
