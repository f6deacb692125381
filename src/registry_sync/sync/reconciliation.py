from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime

from registry_sync.core.config import PipelineConfig
from registry_sync.domain.models import TeamRecord
from registry_sync.ingestion.providers.base.adapter import StatsProvider
from registry_sync.ingestion.providers.base.errors import ProviderEmpty, ProviderError
from registry_sync.ledger.client import LedgerClient
from registry_sync.registry.models import Registry, RegistryRecord
from registry_sync.registry.store import Clock, RegistryStore, utcnow
from registry_sync.sync.diff import (
    ChangeSet,
    Unchanged,
    apply_metadata,
    diff_metadata,
    diff_snapshots,
)
from registry_sync.sync.policy import Checkpointer
from registry_sync.sync.results import (
    EntityOutcome,
    EntityResult,
    RunKind,
    SyncRunSummary,
    format_failure_reason,
)

logger = logging.getLogger(__name__)


def reconcile_one(
    config: PipelineConfig,
    record: RegistryRecord,
    client: StatsProvider,
    ledger: LedgerClient,
    *,
    teams: Mapping[int, TeamRecord] | None = None,
    now: datetime | None = None,
) -> ChangeSet | Unchanged:
    """Diff one record against fresh provider data and write changed counters to the ledger.

    Raises ``ProviderEmpty`` when the provider has nothing for the entity, and
    lets provider and ledger errors propagate. The caller's registry is not
    touched; a returned ``ChangeSet`` carries the record as it should be stored.
    """

    stats = client.fetch_entity_stats(record.external_id, config.scope)
    if stats is None:
        raise ProviderEmpty(f"No statistics for entity {record.external_id} in {config.scope}")

    team = teams.get(record.team_external_id) if teams else None
    stat_changes = diff_snapshots(record.last_snapshot, stats.snapshot, config.snapshot_fields)
    meta_changes = diff_metadata(record, stats, team)
    if not stat_changes and not meta_changes:
        return Unchanged(external_id=record.external_id)

    updates = apply_metadata(record, meta_changes)
    if stat_changes:
        # Only counter changes reach the ledger.
        ledger.write_snapshot(record.ledger_address, stats.snapshot)
        updates["last_snapshot"] = stats.snapshot
    updates["last_synced_at"] = now or utcnow()

    return ChangeSet(
        external_id=record.external_id,
        stats=stat_changes,
        metadata=meta_changes,
        record=record.model_copy(update=updates),
    )


def _team_index(
    config: PipelineConfig, client: StatsProvider, summary: SyncRunSummary
) -> dict[int, TeamRecord]:
    try:
        teams = client.fetch_teams(config.scope)
    except ProviderError as exc:
        # Venue refresh is opportunistic; stats still reconcile without it.
        reason = format_failure_reason(exc)
        logger.warning(
            "Could not fetch teams for %s; skipping venue refresh: %s", config.scope, reason
        )
        summary.run_errors.append(reason)
        return {}
    summary.teams_seen = len(teams)
    return {team.team_id: team for team in teams}


def reconcile_all(
    config: PipelineConfig,
    client: StatsProvider,
    ledger: LedgerClient,
    store: RegistryStore,
    registry: Registry,
    *,
    clock: Clock = utcnow,
) -> SyncRunSummary:
    """Bring every provisioned record in the registry up to date.

    Records are visited in ascending external id order. The registry is
    checkpointed every ``config.checkpoint_every`` records and saved at the end,
    including when the run is interrupted.
    """

    scope = config.scope
    if registry.scope != scope:
        raise ValueError(f"Registry is for {registry.scope}, pipeline is for {scope}")

    summary = SyncRunSummary(
        kind=RunKind.RECONCILE,
        scope=scope,
        collection_name=config.collection_name,
        started_at=clock(),
    )
    checkpoint = Checkpointer(store=store, registry=registry, every=config.checkpoint_every)
    records = [registry.records[k] for k in sorted(registry.records)]
    logger.info("Reconciling %d records for %s", len(records), scope)

    try:
        teams = _team_index(config, client, summary)

        for idx, record in enumerate(records, start=1):
            logger.info(
                "[%d/%d] Checking %s (%s)",
                idx,
                len(records),
                record.display_name,
                record.external_id,
            )
            now = clock()
            try:
                outcome = reconcile_one(config, record, client, ledger, teams=teams, now=now)
            except ProviderEmpty:
                logger.warning(
                    "No stats for %s (%s); will retry next cycle",
                    record.display_name,
                    record.external_id,
                )
                result = EntityResult(
                    external_id=record.external_id,
                    display_name=record.display_name,
                    outcome=EntityOutcome.NO_DATA,
                    ledger_address=record.ledger_address,
                )
            except Exception as exc:
                result = EntityResult.failure(record.external_id, record.display_name, exc)
                assert result.error is not None
                logger.error(
                    "Failed to reconcile %s (%s): %s",
                    record.display_name,
                    record.external_id,
                    result.error.message,
                )
                if config.stop_on_failure:
                    summary.add(result)
                    raise
            else:
                if isinstance(outcome, Unchanged):
                    store.upsert(registry, record.model_copy(update={"last_synced_at": now}))
                    result = EntityResult(
                        external_id=record.external_id,
                        display_name=record.display_name,
                        outcome=EntityOutcome.UNCHANGED,
                        ledger_address=record.ledger_address,
                    )
                else:
                    store.upsert(registry, outcome.record)
                    if outcome.requires_ledger_write:
                        logger.info(
                            "Updated %s: %s", record.display_name, ", ".join(outcome.describe())
                        )
                        result_outcome = EntityOutcome.UPDATED
                    else:
                        logger.info(
                            "Metadata changed for %s: %s",
                            record.display_name,
                            ", ".join(outcome.changed_fields),
                        )
                        result_outcome = EntityOutcome.METADATA_UPDATED
                    result = EntityResult(
                        external_id=record.external_id,
                        display_name=record.display_name,
                        outcome=result_outcome,
                        ledger_address=record.ledger_address,
                        changes=outcome.changed_fields,
                    )

            summary.add(result)
            checkpoint.advance()
            client.pace(config.pace_ms)
    finally:
        checkpoint.flush()
        summary.finished_at = clock()

    logger.info(
        "Reconciliation finished for %s: total=%d updated=%d unchanged=%d no_data=%d failed=%d",
        scope,
        summary.total,
        summary.updated,
        summary.unchanged,
        len(summary.with_outcome(EntityOutcome.NO_DATA)),
        summary.failed,
    )
    return summary
