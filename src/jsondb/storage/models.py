"""SQLAlchemy ORM models holding JSONDb documents.

Each JSONDb table is two documents: its metadata (id counter, schema,
relations) and its row collection. Both are stored whole in a JSON column
and always read and rewritten in full.

The plain ``JSON`` type is used on every dialect (not JSONB) so the key
order of schema documents survives a round trip.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all JSONDb models."""

    pass


class MetadataDocument(Base):
    """Metadata document of one table."""

    __tablename__ = "jsondb_metadata"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class RowsDocument(Base):
    """Row collection of one table, as an ordered JSON array of objects."""

    __tablename__ = "jsondb_rows"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    rows: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
