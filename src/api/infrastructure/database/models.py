"""ORM base for identity tables."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base shared by every mapped table.

    Alembic reads ``Base.metadata`` as its autogenerate target, so a model
    module must be imported before migrations run.
    """


class TimestampMixin:
    """Audit columns for rows that mirror an aggregate.

    Repositories copy the aggregate's own timestamps onto the row; the
    column defaults only cover rows written outside an aggregate, such as
    seeded affiliation codes.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), insert_default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
