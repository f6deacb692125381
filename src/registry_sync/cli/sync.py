from __future__ import annotations

import typer

from registry_sync.cli.common import echo_summary, execute_pass, pipeline_components
from registry_sync.core.config import PipelineConfig, settings
from registry_sync.core.logging import configure_logging
from registry_sync.sync.results import RunKind, SyncRunSummary
from registry_sync.sync.scheduler import ReconcileScheduler

app = typer.Typer(help="Provision and reconcile ledger records against provider statistics.")


def _run(kind: RunKind, config: PipelineConfig, *, dry_run: bool, show_failures: bool) -> None:
    with pipeline_components(dry_run=dry_run) as components:
        summary, path = execute_pass(kind, config, components)
    echo_summary(summary, path, show_failures=show_failures)


@app.command("provision")
def provision_cmd(
    league_id: int | None = typer.Option(
        None, "--league-id", help="API-Football league id (default from settings)."
    ),
    season: int | None = typer.Option(None, "--season", help="Season year (e.g. 2024)."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Use an in-memory ledger and a separate dry-run registry.",
    ),
    checkpoint_every: int | None = typer.Option(
        None,
        "--checkpoint-every",
        help="Save the registry after this many new records (0 disables intermediate saves).",
    ),
    pace_ms: int | None = typer.Option(
        None, "--pace-ms", help="Pause between entities, in milliseconds."
    ),
    show_failures: bool = typer.Option(
        False,
        "--show-failures/--no-show-failures",
        help="Print external id + error for each failed entity.",
    ),
    stop_on_failure: bool = typer.Option(
        False,
        "--stop-on-failure",
        help="Stop immediately and raise the underlying exception.",
    ),
) -> None:
    """Allocate and seed a ledger record for every player not yet in the registry."""

    config = settings.pipeline_config(
        league_id=league_id,
        season=season,
        pace_ms=pace_ms,
        checkpoint_every=checkpoint_every,
        stop_on_failure=stop_on_failure,
    )
    _run(RunKind.PROVISION, config, dry_run=dry_run, show_failures=show_failures)


@app.command("reconcile")
def reconcile_cmd(
    league_id: int | None = typer.Option(
        None, "--league-id", help="API-Football league id (default from settings)."
    ),
    season: int | None = typer.Option(None, "--season", help="Season year (e.g. 2024)."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Use an in-memory ledger and a separate dry-run registry.",
    ),
    checkpoint_every: int | None = typer.Option(
        None,
        "--checkpoint-every",
        help="Save the registry after this many records (0 disables intermediate saves).",
    ),
    pace_ms: int | None = typer.Option(
        None, "--pace-ms", help="Pause between records, in milliseconds."
    ),
    show_failures: bool = typer.Option(
        False,
        "--show-failures/--no-show-failures",
        help="Print external id + error for each failed record.",
    ),
    stop_on_failure: bool = typer.Option(
        False,
        "--stop-on-failure",
        help="Stop immediately and raise the underlying exception.",
    ),
) -> None:
    """Re-fetch statistics for every registered player and write changes to the ledger."""

    config = settings.pipeline_config(
        league_id=league_id,
        season=season,
        pace_ms=pace_ms,
        checkpoint_every=checkpoint_every,
        stop_on_failure=stop_on_failure,
        for_reconcile=True,
    )
    _run(RunKind.RECONCILE, config, dry_run=dry_run, show_failures=show_failures)


@app.command("schedule")
def schedule_cmd(
    cron: str | None = typer.Option(
        None, "--cron", help="Crontab expression (default from settings, e.g. '0 2 * * *')."
    ),
    league_id: int | None = typer.Option(None, "--league-id", help="API-Football league id."),
    season: int | None = typer.Option(None, "--season", help="Season year (e.g. 2024)."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use an in-memory ledger."),
    run_now: bool = typer.Option(
        False, "--run-now", help="Run one reconciliation immediately before scheduling."
    ),
) -> None:
    """Run reconciliation on a cron cadence until interrupted."""

    configure_logging(settings.log_level)
    config = settings.pipeline_config(league_id=league_id, season=season, for_reconcile=True)

    def run_pass() -> SyncRunSummary:
        with pipeline_components(dry_run=dry_run) as components:
            summary, path = execute_pass(RunKind.RECONCILE, config, components)
        echo_summary(summary, path)
        return summary

    scheduler = ReconcileScheduler(
        run_pass,
        cron=cron or settings.reconcile_cron,
        timezone=settings.scheduler_timezone,
    )
    if run_now:
        scheduler.run_once()
    scheduler.start()
