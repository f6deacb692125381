from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer

from registry_sync.core.config import PipelineConfig, settings
from registry_sync.core.logging import configure_logging
from registry_sync.db import DatabaseConfig, registry_session_factory
from registry_sync.ingestion.providers.api_football.adapter import ApiFootballAdapter
from registry_sync.ingestion.providers.api_football.client import (
    ApiFootballClient,
    ApiFootballRateLimiter,
)
from registry_sync.ingestion.providers.base.adapter import StatsProvider
from registry_sync.ingestion.providers.base.client import BaseHttpClient
from registry_sync.ledger.client import LedgerClient
from registry_sync.ledger.http_gateway import HttpLedgerClient
from registry_sync.ledger.memory import InMemoryLedger
from registry_sync.registry.sql_store import SqlRegistryStore
from registry_sync.registry.store import JsonFileRegistryStore, RegistryStore
from registry_sync.sync.provisioning import provision_all
from registry_sync.sync.reconciliation import reconcile_all
from registry_sync.sync.results import RunKind, SyncRunSummary, write_summary


@dataclass
class PipelineComponents:
    provider: StatsProvider
    ledger: LedgerClient
    store: RegistryStore


def build_store(*, dry_run: bool = False) -> RegistryStore:
    # Dry runs get their own registry so fake ledger addresses never leak into the real one.
    if dry_run:
        return JsonFileRegistryStore(settings.registry_dir / "dry-run")
    if settings.registry_backend == "sql":
        db = DatabaseConfig(database_url=settings.database_url, echo=settings.db_echo)
        return SqlRegistryStore(registry_session_factory(db))
    return JsonFileRegistryStore(settings.registry_dir)


@contextmanager
def pipeline_components(*, dry_run: bool = False) -> Iterator[PipelineComponents]:
    """
    Provider, ledger and registry store for one CLI invocation.
    HTTP clients are closed on exit, including on error.
    """
    configure_logging(settings.log_level)

    with ExitStack() as stack:
        provider_http = stack.enter_context(
            BaseHttpClient(
                base_url=settings.api_football_base_url,
                timeout_s=settings.api_football_timeout_s,
            )
        )
        provider = ApiFootballAdapter(
            client=ApiFootballClient(
                http=provider_http,
                api_key=settings.require_api_football_key(),
                rate_limiter=ApiFootballRateLimiter(
                    low_watermark=settings.api_football_low_watermark,
                    exhausted_cooldown_s=settings.api_football_exhausted_cooldown_s,
                    near_limit_cooldown_s=settings.api_football_near_limit_cooldown_s,
                ),
            )
        )

        ledger: LedgerClient
        if dry_run:
            ledger = InMemoryLedger()
        else:
            ledger_http = stack.enter_context(
                BaseHttpClient(
                    base_url=settings.require_ledger_gateway_url(),
                    timeout_s=settings.ledger_timeout_s,
                )
            )
            ledger = HttpLedgerClient(
                http=ledger_http,
                api_key=settings.ledger_api_key,
                confirm_timeout_s=settings.ledger_confirm_timeout_s,
                poll_interval_s=settings.ledger_poll_interval_s,
            )

        yield PipelineComponents(
            provider=provider, ledger=ledger, store=build_store(dry_run=dry_run)
        )


def execute_pass(
    kind: RunKind,
    config: PipelineConfig,
    components: PipelineComponents,
    *,
    summary_dir: Path | None = None,
) -> tuple[SyncRunSummary, Path]:
    """Load the scope's registry, run one pass over it and write the run summary."""

    store = components.store
    registry = store.load_or_create(config.scope, collection_name=config.collection_name)
    run = provision_all if kind is RunKind.PROVISION else reconcile_all
    summary = run(config, components.provider, components.ledger, store, registry)
    path = write_summary(summary, summary_dir or settings.summary_dir)
    return summary, path


def echo_summary(summary: SyncRunSummary, path: Path, *, show_failures: bool = False) -> None:
    typer.echo(
        " ".join(
            [
                f"{summary.kind.value.capitalize()} {summary.collection_name} "
                f"{summary.scope.period}:",
                f"teams_seen={summary.teams_seen}",
                f"teams_failed={len(summary.teams_failed)}",
                f"total={summary.total}",
                f"provisioned={summary.provisioned}",
                f"updated={summary.updated}",
                f"unchanged={summary.unchanged}",
                f"skipped={summary.skipped}",
                f"failed={summary.failed}",
            ]
        )
    )
    typer.echo(f"Summary written to {path}")

    if show_failures:
        for result in summary.entities:
            if result.error is not None:
                typer.echo(f"  {result.external_id} {result.display_name}: {result.error.message}")

    if summary.failure_reasons:
        typer.echo("Failures (top):")
        for reason, count in summary.top_failure_reasons(5):
            typer.echo(f"  {count}x {reason}")
