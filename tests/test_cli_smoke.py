from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from registry_sync.cli.app import app
from registry_sync.core.config import settings
from registry_sync.domain.models import DatasetScope
from registry_sync.registry.store import JsonFileRegistryStore


def test_cli_help_smoke() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    # Basic sanity checks that the command groups are registered.
    assert "sync" in result.stdout
    assert "registry" in result.stdout


def test_cli_sync_help_lists_passes() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["sync", "--help"])
    assert result.exit_code == 0
    for command in ("provision", "reconcile", "schedule"):
        assert command in result.stdout


def test_registry_show_and_export(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "registry_dir", tmp_path)
    monkeypatch.setattr(settings, "registry_backend", "json")
    store = JsonFileRegistryStore(tmp_path)
    registry = store.load_or_create(DatasetScope(collection_id=61, period=2024))
    registry.total_teams = 18
    store.save(registry)

    runner = CliRunner()
    shown = runner.invoke(app, ["registry", "show", "--league-id", "61", "--season", "2024"])
    exported = runner.invoke(
        app, ["registry", "export", "--league-id", "61", "--season", "2024"]
    )

    assert shown.exit_code == 0, shown.output
    assert "total_teams=18" in shown.stdout
    assert exported.exit_code == 0, exported.output
    assert (tmp_path / "enhanced-registry-61-2024.json").exists()
