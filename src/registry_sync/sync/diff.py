from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from registry_sync.domain.models import (
    STAT_COUNTER_FIELDS,
    EntityStats,
    StatSnapshot,
    TeamRecord,
    VenueInfo,
)
from registry_sync.registry.models import RegistryRecord


@dataclass(frozen=True)
class FieldChange:
    field: str
    old: Any
    new: Any

    def describe(self) -> str:
        return f"{self.field}: {self.old} -> {self.new}"


@dataclass(frozen=True)
class Unchanged:
    external_id: int


@dataclass(frozen=True)
class ChangeSet:
    """Differences found for one record, plus the record as it should be stored."""

    external_id: int
    stats: tuple[FieldChange, ...]
    metadata: tuple[FieldChange, ...]
    record: RegistryRecord

    @property
    def requires_ledger_write(self) -> bool:
        return bool(self.stats)

    @property
    def changed_fields(self) -> tuple[str, ...]:
        return tuple(c.field for c in (*self.stats, *self.metadata))

    def describe(self) -> tuple[str, ...]:
        return tuple(c.describe() for c in (*self.stats, *self.metadata))


def diff_snapshots(
    old: StatSnapshot,
    new: StatSnapshot,
    fields: Sequence[str] = STAT_COUNTER_FIELDS,
) -> tuple[FieldChange, ...]:
    """Counter-level differences. ``last_updated`` and ``placeholder`` never count."""

    return tuple(
        FieldChange(f, getattr(old, f), getattr(new, f))
        for f in fields
        if getattr(old, f) != getattr(new, f)
    )


def diff_metadata(
    record: RegistryRecord,
    stats: EntityStats,
    team: TeamRecord | None = None,
) -> tuple[FieldChange, ...]:
    """Display metadata that changed. Empty provider values never overwrite stored ones."""

    changes: list[FieldChange] = []
    if stats.photo_url and stats.photo_url != record.photo_url:
        changes.append(FieldChange("photo", record.photo_url, stats.photo_url))
    if stats.team_logo_url and stats.team_logo_url != record.team_logo_url:
        changes.append(FieldChange("team_logo", record.team_logo_url, stats.team_logo_url))
    if team is not None and team.venue != record.team_venue:
        changes.append(
            FieldChange("venue", record.team_venue.model_dump(), team.venue.model_dump())
        )
    if record.last_snapshot.placeholder and not stats.snapshot.placeholder:
        changes.append(FieldChange("snapshot_source", "placeholder", "provider"))
    return tuple(changes)


def apply_metadata(record: RegistryRecord, changes: Sequence[FieldChange]) -> dict[str, Any]:
    """Record field updates for a set of metadata changes."""

    updates: dict[str, Any] = {}
    for change in changes:
        if change.field == "photo":
            updates["photo_url"] = change.new
        elif change.field == "team_logo":
            updates["team_logo_url"] = change.new
        elif change.field == "venue":
            updates["team_venue"] = VenueInfo.model_validate(change.new)
        elif change.field == "snapshot_source":
            updates["last_snapshot"] = record.last_snapshot.model_copy(
                update={"placeholder": False}
            )
    return updates
