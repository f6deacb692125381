from __future__ import annotations

from typing import Protocol

from registry_sync.domain.models import DatasetScope, EntityStats, ExternalEntity, TeamRecord


class StatsProvider(Protocol):
    """
    Orchestration depends on this, not on any HTTP client.

    Implementations validate raw provider payloads into the domain models and
    never synthesize entity identifiers.
    """

    provider_key: str

    def fetch_teams(self, scope: DatasetScope) -> list[TeamRecord]:
        ...

    def fetch_entity_list(self, team_id: int, scope: DatasetScope) -> list[ExternalEntity]:
        ...

    def fetch_entity_stats(self, external_id: int, scope: DatasetScope) -> EntityStats | None:
        """
        Returns None when the provider has no statistics for the entity in scope.
        """
        ...

    def pace(self, duration_ms: int) -> None:
        """Cooperative delay between successive external calls."""
        ...
