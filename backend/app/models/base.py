"""Declarative base and column mixins for the catalog and fleet tables.

Users and sessions are keyed by UUID; every catalog and fleet table uses a
serial integer key from SerialIdMixin. All datetimes are timezone-aware.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class SerialIdMixin:
    """Auto-incrementing integer primary key ``id``."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    """``created_at`` / ``updated_at``, both filled in by PostgreSQL.

    Collections ordered "oldest first" sort on ``created_at`` with ``id`` as
    the tie-breaker.
    """

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
