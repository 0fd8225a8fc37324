"""SQLAlchemy declarative base and common column mixins for Docreview.

This module defines the DeclarativeBase class, a TimestampMixin that
provides id, created_at, and updated_at columns shared across all models,
and the portable JSON column type used for list and document fields.

All models in the Docreview database should inherit from Base and
include TimestampMixin for consistent primary key and timestamp handling.

Example:
    >>> class MyModel(TimestampMixin, Base):
    ...     __tablename__ = "my_table"
    ...     name: Mapped[str] = mapped_column(Text, nullable=False)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise a datetime read back from the database to aware UTC.

    SQLite drops tzinfo on round-trip; PostgreSQL keeps it. Naive values are
    taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base for all Docreview models."""

    pass


class TimestampMixin:
    """Mixin providing id (UUID), created_at, and updated_at columns.

    Values are generated client-side so they are available immediately after
    a flush without a refresh round-trip.

    Attributes:
        id: UUID primary key.
        created_at: Timestamp set on row creation.
        updated_at: Timestamp set on row creation and on each modification.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )
