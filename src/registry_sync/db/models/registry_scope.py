from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from registry_sync.db.base import Base, TimestampMixin


class RegistryScopeRow(Base, TimestampMixin):
    __tablename__ = "registry_scopes"

    id: Mapped[int] = mapped_column(primary_key=True)

    collection_id: Mapped[int] = mapped_column(Integer, nullable=False)  # league id
    period: Mapped[int] = mapped_column(Integer, nullable=False)  # season
    collection_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    registry_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_teams: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_players: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    records: Mapped[list[RegistryRecordRow]] = relationship(
        back_populates="scope",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("collection_id", "period", name="uq_registry_scopes_collection_period"),
    )


from registry_sync.db.models.registry_record import RegistryRecordRow  # noqa: E402
