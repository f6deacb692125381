from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from registry_sync.db.base import Base, TimestampMixin


class RegistryRecordRow(Base, TimestampMixin):
    __tablename__ = "registry_records"

    id: Mapped[int] = mapped_column(primary_key=True)

    scope_id: Mapped[int] = mapped_column(
        ForeignKey("registry_scopes.id", ondelete="CASCADE"), nullable=False
    )
    external_id: Mapped[int] = mapped_column(Integer, nullable=False)

    display_name: Mapped[str] = mapped_column(String, nullable=False)
    ledger_address: Mapped[str] = mapped_column(String, nullable=False)
    token_name: Mapped[str] = mapped_column(String, nullable=False)
    token_symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    payment_token_address: Mapped[str | None] = mapped_column(String, nullable=True)

    team_external_id: Mapped[int] = mapped_column(Integer, nullable=False)
    team_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    team_code: Mapped[str] = mapped_column(String, nullable=False, default="")
    team_logo_url: Mapped[str] = mapped_column(String, nullable=False, default="")
    team_venue_json: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False
    )

    position: Mapped[str] = mapped_column(String, nullable=False, default="Unknown")
    nationality: Mapped[str] = mapped_column(String, nullable=False, default="")
    age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    photo_url: Mapped[str] = mapped_column(String, nullable=False, default="")

    provisioned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    snapshot_json: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False
    )

    scope: Mapped[RegistryScopeRow] = relationship(back_populates="records")

    __table_args__ = (
        UniqueConstraint("scope_id", "external_id", name="uq_registry_records_scope_external_id"),
        UniqueConstraint("ledger_address", name="uq_registry_records_ledger_address"),
        Index("ix_registry_records_scope_id", "scope_id"),
    )


from registry_sync.db.models.registry_scope import RegistryScopeRow  # noqa: E402
