"""Create registry tables

Revision ID: 3e9a1c52b7d4
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3e9a1c52b7d4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "registry_scopes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("collection_id", sa.Integer(), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("collection_name", sa.String(length=120), nullable=False),
        sa.Column("registry_created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("schema_version", sa.Integer(), nullable=False),
        sa.Column("total_teams", sa.Integer(), nullable=False),
        sa.Column("total_players", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_registry_scopes"),
        sa.UniqueConstraint(
            "collection_id",
            "period",
            name="uq_registry_scopes_collection_period",
        ),
    )

    op.create_table(
        "registry_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("scope_id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.Integer(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("ledger_address", sa.String(), nullable=False),
        sa.Column("token_name", sa.String(), nullable=False),
        sa.Column("token_symbol", sa.String(length=16), nullable=False),
        sa.Column("payment_token_address", sa.String(), nullable=True),
        sa.Column("team_external_id", sa.Integer(), nullable=False),
        sa.Column("team_name", sa.String(), nullable=False),
        sa.Column("team_code", sa.String(), nullable=False),
        sa.Column("team_logo_url", sa.String(), nullable=False),
        sa.Column(
            "team_venue_json",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("position", sa.String(), nullable=False),
        sa.Column("nationality", sa.String(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("photo_url", sa.String(), nullable=False),
        sa.Column("provisioned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "snapshot_json",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["scope_id"],
            ["registry_scopes.id"],
            name="fk_registry_records_scope_id_registry_scopes",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_registry_records"),
        sa.UniqueConstraint(
            "scope_id",
            "external_id",
            name="uq_registry_records_scope_external_id",
        ),
        sa.UniqueConstraint("ledger_address", name="uq_registry_records_ledger_address"),
    )
    op.create_index(
        "ix_registry_records_scope_id",
        "registry_records",
        ["scope_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_registry_records_scope_id", table_name="registry_records")
    op.drop_table("registry_records")
    op.drop_table("registry_scopes")
