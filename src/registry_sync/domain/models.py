from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# Fixed, ordered counter set. The ledger stats payload uses this order.
STAT_COUNTER_FIELDS: tuple[str, ...] = (
    "goals",
    "assists",
    "penalties_scored",
    "shots_total",
    "shots_on_target",
    "duels_total",
    "duels_won",
    "tackles_total",
    "appearances",
    "yellow_cards",
    "red_cards",
)


def _none_to(value: Any, default: Any) -> Any:
    return default if value is None else value


class DatasetScope(BaseModel):
    """One synchronization universe: a league (collection) and a season (period)."""

    model_config = ConfigDict(frozen=True)

    collection_id: int
    period: int

    @property
    def key(self) -> str:
        return f"{self.collection_id}-{self.period}"

    def __str__(self) -> str:
        return f"league={self.collection_id} season={self.period}"


class VenueInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Unknown"
    city: str = "Unknown"
    capacity: int = 0

    @field_validator("name", "city", mode="before")
    @classmethod
    def _unknown_if_missing(cls, v: Any) -> Any:
        return v or "Unknown"

    @field_validator("capacity", mode="before")
    @classmethod
    def _zero_if_missing(cls, v: Any) -> Any:
        return _none_to(v, 0)


class TeamRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    team_id: int
    name: str
    code: str = ""
    country: str = ""
    logo_url: str = ""
    venue: VenueInfo = VenueInfo()

    @field_validator("code", "country", "logo_url", mode="before")
    @classmethod
    def _empty_if_missing(cls, v: Any) -> Any:
        return _none_to(v, "")


class StatSnapshot(BaseModel):
    """Counters used for change detection and ledger writes.

    Equality and hashing only look at the counters; ``last_updated`` and
    ``placeholder`` are bookkeeping.
    """

    model_config = ConfigDict(frozen=True)

    goals: int = 0
    assists: int = 0
    penalties_scored: int = 0
    shots_total: int = 0
    shots_on_target: int = 0
    duels_total: int = 0
    duels_won: int = 0
    tackles_total: int = 0
    appearances: int = 0
    yellow_cards: int = 0
    red_cards: int = 0

    last_updated: int = 0
    placeholder: bool = False

    @field_validator(*STAT_COUNTER_FIELDS, mode="before")
    @classmethod
    def _zero_if_missing(cls, v: Any) -> Any:
        return _none_to(v, 0)

    @classmethod
    def make_placeholder(cls, *, last_updated: int) -> StatSnapshot:
        """All-zero snapshot used when the provider has nothing for an entity."""
        return cls(last_updated=last_updated, placeholder=True)

    def counters(self, fields: Sequence[str] = STAT_COUNTER_FIELDS) -> tuple[int, ...]:
        return tuple(int(getattr(self, f)) for f in fields)

    def ledger_payload(self) -> list[int]:
        return [*self.counters(), self.last_updated]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatSnapshot):
            return NotImplemented
        return self.counters() == other.counters()

    def __hash__(self) -> int:
        return hash(self.counters())


class ExternalEntity(BaseModel):
    """The provider's view of a player, as discovered in a team listing."""

    model_config = ConfigDict(frozen=True)

    external_id: int
    display_name: str
    first_name: str = ""
    last_name: str = ""
    team_external_id: int
    team_name: str = ""
    position: str = "Unknown"
    nationality: str = ""
    age: int = 0
    photo_url: str = ""
    snapshot: StatSnapshot | None = None

    @field_validator(
        "first_name", "last_name", "team_name", "nationality", "photo_url", mode="before"
    )
    @classmethod
    def _empty_if_missing(cls, v: Any) -> Any:
        return _none_to(v, "")

    @field_validator("position", mode="before")
    @classmethod
    def _unknown_position(cls, v: Any) -> Any:
        return v or "Unknown"

    @field_validator("age", mode="before")
    @classmethod
    def _zero_age(cls, v: Any) -> Any:
        return _none_to(v, 0)


class EntityStats(BaseModel):
    """Result of a per-entity statistics lookup."""

    model_config = ConfigDict(frozen=True)

    external_id: int
    snapshot: StatSnapshot
    photo_url: str = ""
    team_logo_url: str = ""
