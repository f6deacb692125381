from __future__ import annotations

from pathlib import Path

import typer

from registry_sync.cli.common import build_store
from registry_sync.core.config import settings
from registry_sync.core.logging import configure_logging
from registry_sync.registry.export import write_enhanced_registry
from registry_sync.registry.models import Registry
from registry_sync.registry.store import utcnow

app = typer.Typer(help="Inspect and export the player registry.")


def _load(league_id: int | None, season: int | None, dry_run: bool) -> Registry:
    configure_logging(settings.log_level)
    config = settings.pipeline_config(league_id=league_id, season=season)
    store = build_store(dry_run=dry_run)
    return store.load_or_create(config.scope, collection_name=config.collection_name)


@app.command("show")
def show_cmd(
    league_id: int | None = typer.Option(None, "--league-id", help="API-Football league id."),
    season: int | None = typer.Option(None, "--season", help="Season year (e.g. 2024)."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Read the dry-run registry."),
    limit: int = typer.Option(0, "--limit", help="Also list up to this many records."),
) -> None:
    """Print the registry header and counters."""

    registry = _load(league_id, season, dry_run)
    placeholders = sum(1 for r in registry.records.values() if r.last_snapshot.placeholder)
    last_synced = [r.last_synced_at for r in registry.records.values() if r.last_synced_at]

    typer.echo(
        " ".join(
            [
                f"Registry {registry.collection_name} {registry.scope.period}",
                f"(league_id={registry.scope.collection_id}):",
                f"total_teams={registry.total_teams}",
                f"total_players={registry.total_players}",
                f"provisioned_records={registry.provisioned_records}",
                f"placeholder_snapshots={placeholders}",
            ]
        )
    )
    typer.echo(f"created_at={registry.created_at.isoformat()}")
    typer.echo(f"last_updated={registry.last_updated.isoformat()}")
    if last_synced:
        typer.echo(f"last_synced_at={max(last_synced).isoformat()}")

    for external_id in sorted(registry.records)[: max(limit, 0)]:
        record = registry.records[external_id]
        typer.echo(
            f"  {external_id} {record.display_name} [{record.token_symbol}] "
            f"{record.team_name} -> {record.ledger_address}"
        )


@app.command("export")
def export_cmd(
    league_id: int | None = typer.Option(None, "--league-id", help="API-Football league id."),
    season: int | None = typer.Option(None, "--season", help="Season year (e.g. 2024)."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Export the dry-run registry."),
    out_dir: Path | None = typer.Option(
        None, "--out-dir", help="Directory for the export (default: registry directory)."
    ),
) -> None:
    """Write the enhanced registry export (flat player list plus counters)."""

    registry = _load(league_id, season, dry_run)
    path = write_enhanced_registry(registry, out_dir or settings.registry_dir, now=utcnow())
    typer.echo(f"Exported {registry.provisioned_records} records to {path}")
