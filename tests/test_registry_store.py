from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from registry_sync.db import Base, DatabaseConfig, create_db_engine, create_session_factory
from registry_sync.domain.models import DatasetScope, StatSnapshot, VenueInfo
from registry_sync.registry.errors import LedgerAddressReassigned, RegistryStoreError
from registry_sync.registry.export import enhanced_registry, write_enhanced_registry
from registry_sync.registry.models import Registry, RegistryRecord
from registry_sync.registry.sql_store import SqlRegistryStore
from registry_sync.registry.store import JsonFileRegistryStore, RegistryStore

LIGUE_1 = DatasetScope(collection_id=61, period=2024)
PREMIER = DatasetScope(collection_id=39, period=2024)
NOW = datetime(2024, 11, 3, 2, 0, 0, 123456, tzinfo=UTC)


def _clock() -> datetime:
    return NOW


def _record(external_id: int, *, goals: int = 5, address: str | None = None) -> RegistryRecord:
    return RegistryRecord(
        external_id=external_id,
        display_name=f"Player {external_id}",
        ledger_address=address or f"0x{external_id:040x}",
        token_name=f"Player {external_id} (Ligue 1 2024)",
        token_symbol=f"P{external_id}",
        payment_token_address="0xpar" if external_id % 2 else None,
        team_external_id=85,
        team_name="Paris Saint Germain",
        team_code="PAR",
        team_logo_url="https://media.test/85.png",
        team_venue=VenueInfo(name="Parc des Princes", city="Paris", capacity=47929),
        position="Attacker",
        nationality="France",
        age=25,
        photo_url=f"https://media.test/players/{external_id}.png",
        provisioned_at=NOW,
        last_synced_at=NOW,
        last_snapshot=StatSnapshot(goals=goals, appearances=10, last_updated=1_700_000_000),
    )


def _populated(store: RegistryStore, scope: DatasetScope = LIGUE_1) -> Registry:
    registry = store.load_or_create(scope, collection_name="Ligue 1")
    registry.total_teams = 18
    registry.total_players = 3
    for external_id in (10, 11, 12):
        store.upsert(registry, _record(external_id))
    return registry


def test_json_store_round_trips_exactly(tmp_path: Path) -> None:
    store = JsonFileRegistryStore(tmp_path, clock=_clock)
    registry = _populated(store)
    store.save(registry)

    loaded = JsonFileRegistryStore(tmp_path, clock=_clock).load_or_create(LIGUE_1)

    assert loaded.comparable() == registry.comparable()
    assert loaded.records[11].last_snapshot.goals == 5
    assert loaded.provisioned_records == 3
    assert (tmp_path / "player-registry-61-2024.json").exists()


def test_json_store_writes_atomically(tmp_path: Path) -> None:
    store = JsonFileRegistryStore(tmp_path, clock=_clock)
    registry = _populated(store)
    store.save(registry)
    store.save(registry)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["player-registry-61-2024.json"]
    raw = json.loads((tmp_path / "player-registry-61-2024.json").read_text(encoding="utf-8"))
    assert raw["scope"] == {"collection_id": 61, "period": 2024}
    assert set(raw["records"]) == {"10", "11", "12"}


def test_scopes_never_share_records(tmp_path: Path) -> None:
    store = JsonFileRegistryStore(tmp_path, clock=_clock)
    store.save(_populated(store, LIGUE_1))

    other = store.load_or_create(PREMIER, collection_name="Premier League")

    assert other.scope == PREMIER
    assert other.records == {}


def test_scope_mismatch_on_fixed_path_starts_fresh(tmp_path: Path) -> None:
    path = tmp_path / "registry.json"
    store = JsonFileRegistryStore(tmp_path, path=path, clock=_clock)
    store.save(_populated(store, LIGUE_1))

    fresh = store.load_or_create(PREMIER)

    assert fresh.scope == PREMIER
    assert fresh.records == {}
    stale = [p for p in tmp_path.iterdir() if ".stale-" in p.name]
    assert len(stale) == 1
    assert not path.exists()


def test_unreadable_registry_is_a_store_error(tmp_path: Path) -> None:
    (tmp_path / "player-registry-61-2024.json").write_text("{not json", encoding="utf-8")
    store = JsonFileRegistryStore(tmp_path, clock=_clock)

    with pytest.raises(RegistryStoreError):
        store.load_or_create(LIGUE_1)


def test_upsert_refuses_to_rebind_ledger_address(tmp_path: Path) -> None:
    store = JsonFileRegistryStore(tmp_path, clock=_clock)
    registry = _populated(store)

    store.upsert(registry, _record(10, goals=9))
    assert registry.records[10].last_snapshot.goals == 9

    with pytest.raises(LedgerAddressReassigned):
        store.upsert(registry, _record(10, address="0xdeadbeef"))


def test_sql_store_round_trips_and_updates(tmp_path: Path) -> None:
    engine = create_db_engine(DatabaseConfig(database_url=f"sqlite+pysqlite:///{tmp_path}/r.db"))
    Base.metadata.create_all(engine)
    store = SqlRegistryStore(create_session_factory(engine), clock=_clock)

    registry = _populated(store)
    store.save(registry)

    loaded = store.load_or_create(LIGUE_1)
    assert loaded.comparable() == registry.comparable()

    store.upsert(loaded, _record(11, goals=6))
    store.upsert(loaded, _record(13))
    store.save(loaded)

    reloaded = store.load_or_create(LIGUE_1)
    assert sorted(reloaded.records) == [10, 11, 12, 13]
    assert reloaded.records[11].last_snapshot.goals == 6
    assert reloaded.records[10].payment_token_address is None
    assert reloaded.records[11].team_venue.capacity == 47929

    assert store.load_or_create(PREMIER).records == {}


def test_enhanced_export_flattens_records(tmp_path: Path) -> None:
    store = JsonFileRegistryStore(tmp_path, clock=_clock)
    registry = _populated(store)

    payload = enhanced_registry(registry, now=NOW)
    path = write_enhanced_registry(registry, tmp_path / "out", now=NOW)

    assert payload["leagueName"] == "Ligue 1"
    assert payload["deployedTokens"] == 3
    assert [p["external_id"] for p in payload["players"]] == [10, 11, 12]
    assert payload["players"][0]["stats"]["goals"] == 5
    assert path.name == "enhanced-registry-61-2024.json"
    assert json.loads(path.read_text(encoding="utf-8"))["totalTeams"] == 18
