from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from registry_sync.domain.models import DatasetScope
from registry_sync.registry.models import Registry


def export_filename(scope: DatasetScope) -> str:
    return f"enhanced-registry-{scope.collection_id}-{scope.period}.json"


def enhanced_registry(registry: Registry, *, now: datetime) -> dict[str, Any]:
    """Flat, consumer-friendly view of a registry: header counters plus one entry per record."""

    players = [
        registry.records[k].model_dump(mode="json", exclude={"last_snapshot"})
        | {"stats": registry.records[k].last_snapshot.model_dump(mode="json")}
        for k in sorted(registry.records)
    ]
    return {
        "leagueId": registry.scope.collection_id,
        "leagueName": registry.collection_name,
        "season": registry.scope.period,
        "totalTeams": registry.total_teams,
        "totalPlayers": registry.total_players,
        "deployedTokens": registry.provisioned_records,
        "fetchTime": now.isoformat(),
        "players": players,
    }


def write_enhanced_registry(registry: Registry, directory: Path, *, now: datetime) -> Path:
    path = directory / export_filename(registry.scope)
    directory.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    payload = enhanced_registry(registry, now=now)
    tmp.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    tmp.replace(path)
    return path
