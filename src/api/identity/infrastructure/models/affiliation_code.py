"""SQLAlchemy ORM model for the affiliation_codes registry table."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


class AffiliationCodeModel(Base, TimestampMixin):
    """ORM model for affiliation_codes table.

    used_by references identities.id but carries no foreign key: the
    registry can be seeded before any identity exists.
    """

    __tablename__ = "affiliation_codes"

    code: Mapped[str] = mapped_column(String(20), primary_key=True)
    owner_email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    is_used: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    used_by: Mapped[str | None] = mapped_column(String(26), nullable=True)
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<AffiliationCodeModel(code={self.code}, is_used={self.is_used})>"
