"""Mixins for SQLAlchemy models."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String, func


def generate_uuid() -> str:
    """Generate a string primary key."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class UUIDPrimaryKeyMixin:
    """Mixin for a server-generated UUID string primary key."""

    id = Column(String(36), primary_key=True, default=generate_uuid)


class CreatedAtMixin:
    """Mixin to add a created_at timestamp column."""

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class TimestampMixin(CreatedAtMixin):
    """Mixin to add created_at and updated_at timestamp columns."""

    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
