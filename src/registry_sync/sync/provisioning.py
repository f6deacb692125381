from __future__ import annotations

import logging
from datetime import datetime

from registry_sync.core.config import PipelineConfig
from registry_sync.core.team_tokens import resolve_team_token_address
from registry_sync.core.text import token_name, token_symbol
from registry_sync.domain.models import ExternalEntity, StatSnapshot, TeamRecord
from registry_sync.ingestion.providers.base.adapter import StatsProvider
from registry_sync.ingestion.providers.base.errors import ProviderError
from registry_sync.ledger.client import InitializationPayload, LedgerClient
from registry_sync.ledger.errors import LedgerWriteFailed
from registry_sync.registry.models import Registry, RegistryRecord
from registry_sync.registry.store import Clock, RegistryStore, utcnow
from registry_sync.sync.policy import Checkpointer
from registry_sync.sync.results import (
    EntityOutcome,
    EntityResult,
    RunKind,
    SyncRunSummary,
    format_failure_reason,
)

logger = logging.getLogger(__name__)


def _initial_snapshot(
    config: PipelineConfig,
    entity: ExternalEntity,
    client: StatsProvider,
    *,
    now: datetime,
) -> tuple[StatSnapshot, str, str]:
    """First snapshot plus photo and team logo, or a placeholder when the provider has none.

    Squad listings already carry the season's statistics block; when present it
    seeds the record and the per-entity stats lookup is skipped.
    """

    if entity.snapshot is not None:
        return entity.snapshot, entity.photo_url, ""

    try:
        stats = client.fetch_entity_stats(entity.external_id, config.scope)
    except ProviderError as exc:
        logger.warning(
            "Stats fetch failed for %s (%s); using placeholder snapshot: %s",
            entity.display_name,
            entity.external_id,
            format_failure_reason(exc),
        )
        stats = None
    else:
        if stats is None:
            logger.warning(
                "No stats for %s (%s); using placeholder snapshot",
                entity.display_name,
                entity.external_id,
            )

    if stats is None:
        placeholder = StatSnapshot.make_placeholder(last_updated=int(now.timestamp()))
        return placeholder, entity.photo_url, ""
    return stats.snapshot, stats.photo_url or entity.photo_url, stats.team_logo_url


def provision_entity(
    config: PipelineConfig,
    entity: ExternalEntity,
    team: TeamRecord,
    client: StatsProvider,
    ledger: LedgerClient,
    store: RegistryStore,
    registry: Registry,
    *,
    now: datetime,
) -> EntityResult:
    """Allocate, initialize and seed one new ledger record, then register it."""

    display_name = entity.display_name
    payment_token = resolve_team_token_address(team.team_id, config.team_token_addresses)
    if payment_token is None and config.require_team_token:
        logger.warning("No team token for team %s; skipping %s", team.team_id, display_name)
        return EntityResult(
            external_id=entity.external_id,
            display_name=display_name,
            outcome=EntityOutcome.SKIPPED_NO_TEAM_TOKEN,
        )

    name = token_name(display_name, config.collection_name, config.scope.period)
    symbol = token_symbol(display_name)

    logger.info("Provisioning %s as %s [%s]", entity.external_id, name, symbol)
    receipt = ledger.allocate_record(name=name, symbol=symbol, payment_token=payment_token)
    address = receipt.address
    if not address:
        raise LedgerWriteFailed(f"Ledger allocation for {display_name} returned no address")

    ledger.initialize_record(
        address,
        InitializationPayload(
            external_id=entity.external_id,
            display_name=display_name,
            team_name=entity.team_name or team.name,
            position=entity.position,
            collection_name=config.collection_name,
            period=config.scope.period,
            initial_supply=config.initial_supply,
        ),
    )

    snapshot, photo_url, team_logo_url = _initial_snapshot(config, entity, client, now=now)
    ledger.write_snapshot(address, snapshot)

    store.upsert(
        registry,
        RegistryRecord(
            external_id=entity.external_id,
            display_name=display_name,
            ledger_address=address,
            token_name=name,
            token_symbol=symbol,
            payment_token_address=payment_token,
            team_external_id=team.team_id,
            team_name=team.name,
            team_code=team.code,
            team_logo_url=team_logo_url or team.logo_url,
            team_venue=team.venue,
            position=entity.position,
            nationality=entity.nationality,
            age=entity.age,
            photo_url=photo_url,
            provisioned_at=now,
            last_synced_at=now,
            last_snapshot=snapshot,
        ),
    )
    logger.info("Provisioned %s at %s", display_name, address)

    return EntityResult(
        external_id=entity.external_id,
        display_name=display_name,
        outcome=EntityOutcome.PROVISIONED,
        ledger_address=address,
        placeholder_snapshot=snapshot.placeholder,
    )


def provision_all(
    config: PipelineConfig,
    client: StatsProvider,
    ledger: LedgerClient,
    store: RegistryStore,
    registry: Registry,
    *,
    clock: Clock = utcnow,
) -> SyncRunSummary:
    """Provision a ledger record for every discovered entity not yet in the registry.

    Teams and their players are walked in provider order. Entities already in
    the registry are skipped, so re-running after a crash or a partial failure
    only picks up what is missing. The registry is saved every
    ``config.checkpoint_every`` provisioned entities and always at the end.
    """

    scope = config.scope
    if registry.scope != scope:
        raise ValueError(f"Registry is for {registry.scope}, pipeline is for {scope}")

    summary = SyncRunSummary(
        kind=RunKind.PROVISION,
        scope=scope,
        collection_name=config.collection_name,
        started_at=clock(),
    )
    checkpoint = Checkpointer(store=store, registry=registry, every=config.checkpoint_every)
    players_seen = 0

    try:
        try:
            teams = client.fetch_teams(scope)
        except ProviderError as exc:
            reason = format_failure_reason(exc)
            logger.error("Could not fetch teams for %s: %s", scope, reason)
            summary.run_errors.append(reason)
            summary.count_failure(reason)
            if config.stop_on_failure:
                raise
            return summary

        logger.info("Found %d teams for %s", len(teams), scope)
        summary.teams_seen = len(teams)
        registry.total_teams = len(teams)

        for team_idx, team in enumerate(teams, start=1):
            logger.info("Team %d/%d: %s (%s)", team_idx, len(teams), team.name, team.team_id)
            client.pace(config.pace_ms)
            try:
                entities = client.fetch_entity_list(team.team_id, scope)
            except Exception as exc:
                reason = format_failure_reason(exc)
                logger.error("Failed to list players for team %s: %s", team.name, reason)
                summary.teams_failed.append(str(team.team_id))
                summary.count_failure(reason)
                if config.stop_on_failure:
                    raise
                continue

            players_seen += len(entities)
            for entity in entities:
                existing = store.get(registry, entity.external_id)
                if existing is not None:
                    summary.add(
                        EntityResult(
                            external_id=entity.external_id,
                            display_name=entity.display_name,
                            outcome=EntityOutcome.SKIPPED_EXISTING,
                            ledger_address=existing.ledger_address,
                        )
                    )
                    continue

                try:
                    result = provision_entity(
                        config, entity, team, client, ledger, store, registry, now=clock()
                    )
                except Exception as exc:
                    result = EntityResult.failure(entity.external_id, entity.display_name, exc)
                    assert result.error is not None
                    logger.error(
                        "Failed to provision %s (%s): %s",
                        entity.display_name,
                        entity.external_id,
                        result.error.message,
                    )
                    summary.add(result)
                    if config.stop_on_failure:
                        raise
                else:
                    summary.add(result)
                    if result.outcome is EntityOutcome.PROVISIONED:
                        checkpoint.advance()

                client.pace(config.pace_ms)

        registry.total_players = players_seen
    finally:
        checkpoint.flush()
        summary.finished_at = clock()

    logger.info(
        "Provisioning finished for %s: total=%d provisioned=%d skipped=%d failed=%d",
        scope,
        summary.total,
        summary.provisioned,
        summary.skipped,
        summary.failed,
    )
    return summary
