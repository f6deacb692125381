from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from registry_sync.domain.models import DatasetScope, StatSnapshot, VenueInfo

REGISTRY_SCHEMA_VERSION = 1


class RegistryRecord(BaseModel):
    """Durable sync state for one entity within a scope."""

    model_config = ConfigDict(frozen=True)

    external_id: int
    display_name: str
    ledger_address: str

    token_name: str
    token_symbol: str
    payment_token_address: str | None = None

    team_external_id: int
    team_name: str = ""
    team_code: str = ""
    team_logo_url: str = ""
    team_venue: VenueInfo = VenueInfo()

    position: str = "Unknown"
    nationality: str = ""
    age: int = 0
    photo_url: str = ""

    provisioned_at: datetime
    last_synced_at: datetime | None = None
    last_snapshot: StatSnapshot


class Registry(BaseModel):
    """All records of one dataset scope plus header counters."""

    schema_version: int = REGISTRY_SCHEMA_VERSION
    scope: DatasetScope
    collection_name: str = ""
    created_at: datetime
    last_updated: datetime

    total_teams: int = 0
    total_players: int = 0

    records: dict[int, RegistryRecord] = Field(default_factory=dict)

    @classmethod
    def empty(cls, scope: DatasetScope, *, collection_name: str, now: datetime) -> Registry:
        return cls(scope=scope, collection_name=collection_name, created_at=now, last_updated=now)

    @property
    def provisioned_records(self) -> int:
        return len(self.records)

    def comparable(self) -> dict[str, object]:
        """Fields that must survive a save/load round-trip unchanged."""
        return self.model_dump(mode="json", exclude={"last_updated"})
