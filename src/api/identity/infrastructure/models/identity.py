"""SQLAlchemy ORM model for the identities table.

The table is the single serialization point for identity uniqueness:
email is unique among active rows (partial unique index) and the
external identity id is unique across all rows.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin

ACTIVE_EMAIL_INDEX = "uq_identities_active_email"
EXTERNAL_IDENTITY_CONSTRAINT = "uq_identities_external_identity_id"


class IdentityModel(Base, TimestampMixin):
    """ORM model for identities table.

    Notes:
    - id is VARCHAR(26) for ULID format
    - credential_digest is always populated; federated-only identities
      store the digest of an unguessable placeholder
    - identities are never deleted; deactivated_at marks a soft delete
    """

    __tablename__ = "identities"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    credential_digest: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    origin: Mapped[str] = mapped_column(String(20), nullable=False)
    affiliation_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    external_identity_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True
    )
    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("external_identity_id", name=EXTERNAL_IDENTITY_CONSTRAINT),
        Index(
            ACTIVE_EMAIL_INDEX,
            "email",
            unique=True,
            postgresql_where=text("deactivated_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<IdentityModel(id={self.id}, role={self.role}, origin={self.origin})>"
