"""create identities and affiliation_codes tables

Identities carry both authentication origins in one row. Email is unique
among active identities only (partial unique index); the external
identity id is unique across all rows.

Revision ID: 4c1e9a7b2d10
Revises:
Create Date: 2026-10-18 09:12:44.310521

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "4c1e9a7b2d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "identities",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("credential_digest", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("origin", sa.String(length=20), nullable=False),
        sa.Column("affiliation_code", sa.String(length=20), nullable=True),
        sa.Column("external_identity_id", sa.String(length=128), nullable=True),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="identities_pkey"),
        sa.UniqueConstraint(
            "external_identity_id", name="uq_identities_external_identity_id"
        ),
    )
    op.create_index(op.f("ix_identities_email"), "identities", ["email"])
    # Deactivated rows release their email for a new registration
    op.create_index(
        "uq_identities_active_email",
        "identities",
        ["email"],
        unique=True,
        postgresql_where=sa.text("deactivated_at IS NULL"),
    )

    op.create_table(
        "affiliation_codes",
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("owner_email", sa.String(length=254), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_by", sa.String(length=26), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("code"),
    )
    op.create_index(
        op.f("ix_affiliation_codes_owner_email"), "affiliation_codes", ["owner_email"]
    )
    op.create_index(
        op.f("ix_affiliation_codes_is_used"), "affiliation_codes", ["is_used"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_affiliation_codes_is_used"), table_name="affiliation_codes")
    op.drop_index(
        op.f("ix_affiliation_codes_owner_email"), table_name="affiliation_codes"
    )
    op.drop_table("affiliation_codes")
    op.drop_index("uq_identities_active_email", table_name="identities")
    op.drop_index(op.f("ix_identities_email"), table_name="identities")
    op.drop_table("identities")
