from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from registry_sync.domain.models import DatasetScope, EntityStats, ExternalEntity, TeamRecord
from registry_sync.ingestion.providers.api_football.client import (
    ApiFootballClient,
    response_items,
)
from registry_sync.ingestion.providers.api_football.parser import (
    parse_entity_stats,
    parse_player,
    parse_team,
)
from registry_sync.ingestion.providers.base.adapter import StatsProvider
from registry_sync.ingestion.providers.base.errors import ProviderMappingError

logger = logging.getLogger(__name__)

PROVIDER_KEY = "api_football"


def _scope_params(scope: DatasetScope) -> dict[str, Any]:
    return {"league": scope.collection_id, "season": scope.period}


@dataclass
class ApiFootballAdapter(StatsProvider):
    """
    API-Football v3 (soccer) adapter: teams, squad listings and player statistics.
    """

    client: ApiFootballClient
    provider_key: str = PROVIDER_KEY
    max_pages: int = 50

    _sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    _clock: Callable[[], float] = field(default=time.time, repr=False)

    def _now(self) -> int:
        return int(self._clock())

    def fetch_teams(self, scope: DatasetScope) -> list[TeamRecord]:
        items = self.client.get_response_items("/teams", params=_scope_params(scope))
        teams: list[TeamRecord] = []
        for item in items:
            try:
                teams.append(parse_team(item))
            except ProviderMappingError as exc:
                logger.warning("Skipping unparseable team item (%s): %s", scope, exc.message)
        return teams

    def fetch_entity_list(self, team_id: int, scope: DatasetScope) -> list[ExternalEntity]:
        """All players of a team in scope, walking every page the provider reports."""

        entities: list[ExternalEntity] = []
        seen: set[int] = set()
        page = 1
        while True:
            params = {"team": team_id, **_scope_params(scope), "page": page}
            payload = self.client.get("/players", params=params)
            now = self._now()

            for item in response_items(payload, path="/players", params=params):
                try:
                    entity = parse_player(
                        item,
                        team_id=team_id,
                        team_name="",
                        league_id=scope.collection_id,
                        last_updated=now,
                    )
                except ProviderMappingError as exc:
                    logger.warning("Skipping unparseable player item (team=%s): %s", team_id, exc)
                    continue
                if entity.external_id in seen:
                    continue
                seen.add(entity.external_id)
                entities.append(entity)

            paging = payload.get("paging") or {}
            total_pages = paging.get("total") if isinstance(paging, dict) else None
            if not isinstance(total_pages, int) or page >= total_pages or page >= self.max_pages:
                break
            page += 1

        return entities

    def fetch_entity_stats(self, external_id: int, scope: DatasetScope) -> EntityStats | None:
        items = self.client.get_response_items(
            "/players", params={"id": external_id, **_scope_params(scope)}
        )
        if not items:
            return None
        return parse_entity_stats(items[0], league_id=scope.collection_id, last_updated=self._now())

    def pace(self, duration_ms: int) -> None:
        if duration_ms > 0:
            self._sleep(duration_ms / 1000.0)
