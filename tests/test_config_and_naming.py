from __future__ import annotations

import json
from pathlib import Path

import pytest

from registry_sync.core.config import PipelineConfig, Settings
from registry_sync.core.leagues import league_name
from registry_sync.core.team_tokens import load_team_token_addresses, resolve_team_token_address
from registry_sync.core.text import full_name, token_name, token_symbol
from registry_sync.domain.models import STAT_COUNTER_FIELDS, DatasetScope


def test_token_symbol_uses_initial_and_surname() -> None:
    assert token_symbol("Kylian Mbappe") == "KMBA"
    assert token_symbol("Gianluigi  Donnarumma") == "GDON"
    assert token_symbol("Marquinhos") == "MARQ"
    assert token_symbol("Lee Kang-in Jr") == "LJR"


def test_token_name_includes_league_and_season() -> None:
    assert token_name("Kylian Mbappe", "Ligue 1", 2024) == "Kylian Mbappe (Ligue 1 2024)"


def test_full_name_falls_back_to_provider_name() -> None:
    assert full_name(" Kylian ", "Mbappe") == "Kylian Mbappe"
    assert full_name("", "", fallback="K. Mbappe") == "K. Mbappe"


def test_league_name_has_fallback() -> None:
    assert league_name(61) == "Ligue 1"
    assert league_name(39) == "Premier League"
    assert league_name(999) == "League 999"


def test_team_token_addresses_resolve_by_team_symbol(tmp_path: Path) -> None:
    path = tmp_path / "teamFanTokenAddress.json"
    path.write_text(json.dumps({"PAR": "0xpar", "LIL": ""}), encoding="utf-8")

    addresses = load_team_token_addresses(path)

    assert addresses == {"PAR": "0xpar"}
    assert resolve_team_token_address(85, addresses) == "0xpar"
    assert resolve_team_token_address(79, addresses) is None
    assert resolve_team_token_address(123456, addresses) is None


def test_pipeline_config_validates_inputs() -> None:
    scope = DatasetScope(collection_id=61, period=2024)

    with pytest.raises(ValueError):
        PipelineConfig(scope=scope, collection_name="Ligue 1", checkpoint_every=-1)
    with pytest.raises(ValueError):
        PipelineConfig(scope=scope, collection_name="Ligue 1", pace_ms=-5)
    with pytest.raises(ValueError, match="Unknown snapshot fields"):
        PipelineConfig(scope=scope, collection_name="Ligue 1", snapshot_fields=("goals", "xg"))


def test_settings_build_pipeline_config_with_overrides() -> None:
    settings = Settings(
        _env_file=None,
        league_id=39,
        season=2023,
        provision_pace_ms=2000,
        reconcile_pace_ms=1000,
        snapshot_fields=["goals", "assists"],
    )

    provision = settings.pipeline_config()
    reconcile = settings.pipeline_config(season=2024, pace_ms=0, for_reconcile=False)
    scheduled = settings.pipeline_config(for_reconcile=True, checkpoint_every=0)

    assert provision.scope == DatasetScope(collection_id=39, period=2023)
    assert provision.collection_name == "Premier League"
    assert provision.pace_ms == 2000
    assert provision.snapshot_fields == ("goals", "assists")
    assert reconcile.scope.period == 2024
    assert reconcile.pace_ms == 0
    assert scheduled.pace_ms == 1000
    assert scheduled.checkpoint_every == 0


def test_settings_default_snapshot_fields_cover_all_counters() -> None:
    config = Settings(_env_file=None).pipeline_config()
    assert config.snapshot_fields == STAT_COUNTER_FIELDS


def test_settings_require_keys() -> None:
    settings = Settings(_env_file=None, api_football_key=None, ledger_gateway_url=None)

    with pytest.raises(RuntimeError, match="API_FOOTBALL_KEY"):
        settings.require_api_football_key()
    with pytest.raises(RuntimeError, match="LEDGER_GATEWAY_URL"):
        settings.require_ledger_gateway_url()
