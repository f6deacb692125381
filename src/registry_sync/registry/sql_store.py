from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from registry_sync.db.models.registry_record import RegistryRecordRow
from registry_sync.db.models.registry_scope import RegistryScopeRow
from registry_sync.db.repos.registry_repo import RegistryRecordRepository, RegistryScopeRepository
from registry_sync.domain.models import DatasetScope, StatSnapshot, VenueInfo
from registry_sync.registry.errors import RegistryStoreError
from registry_sync.registry.models import Registry, RegistryRecord
from registry_sync.registry.store import Clock, RegistryStore, utcnow

logger = logging.getLogger(__name__)


def _aware(dt: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone=True columns.
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=UTC)


def _record_values(record: RegistryRecord) -> dict[str, Any]:
    return {
        "display_name": record.display_name,
        "ledger_address": record.ledger_address,
        "token_name": record.token_name,
        "token_symbol": record.token_symbol,
        "payment_token_address": record.payment_token_address,
        "team_external_id": record.team_external_id,
        "team_name": record.team_name,
        "team_code": record.team_code,
        "team_logo_url": record.team_logo_url,
        "team_venue_json": record.team_venue.model_dump(mode="json"),
        "position": record.position,
        "nationality": record.nationality,
        "age": record.age,
        "photo_url": record.photo_url,
        "provisioned_at": record.provisioned_at,
        "last_synced_at": record.last_synced_at,
        "snapshot_json": record.last_snapshot.model_dump(mode="json"),
    }


def _row_to_record(row: RegistryRecordRow) -> RegistryRecord:
    provisioned_at = _aware(row.provisioned_at)
    assert provisioned_at is not None
    return RegistryRecord(
        external_id=row.external_id,
        display_name=row.display_name,
        ledger_address=row.ledger_address,
        token_name=row.token_name,
        token_symbol=row.token_symbol,
        payment_token_address=row.payment_token_address,
        team_external_id=row.team_external_id,
        team_name=row.team_name,
        team_code=row.team_code,
        team_logo_url=row.team_logo_url,
        team_venue=VenueInfo.model_validate(row.team_venue_json),
        position=row.position,
        nationality=row.nationality,
        age=row.age,
        photo_url=row.photo_url,
        provisioned_at=provisioned_at,
        last_synced_at=_aware(row.last_synced_at),
        last_snapshot=StatSnapshot.model_validate(row.snapshot_json),
    )


class SqlRegistryStore(RegistryStore):
    """Registry persisted in SQL tables (see the Alembic migrations).

    Scopes are keyed by ``(collection_id, period)``, so two scopes can never
    share records. Each save is a single transaction.
    """

    def __init__(self, session_factory: sessionmaker[Session], *, clock: Clock = utcnow) -> None:
        super().__init__(clock=clock)
        self._session_factory = session_factory

    def load_or_create(self, scope: DatasetScope, *, collection_name: str = "") -> Registry:
        try:
            with self._session_factory() as session:
                scope_row = RegistryScopeRepository(session).for_scope(
                    scope.collection_id, scope.period
                )
                if scope_row is None:
                    logger.info("Creating new registry for %s", scope)
                    return Registry.empty(
                        scope, collection_name=collection_name, now=self._clock()
                    )

                rows = RegistryRecordRepository(session).by_external_id(scope_row.id)
                created_at = _aware(scope_row.registry_created_at)
                last_updated = _aware(scope_row.last_updated)
                registry = Registry(
                    schema_version=scope_row.schema_version,
                    scope=scope,
                    collection_name=scope_row.collection_name,
                    created_at=created_at,
                    last_updated=last_updated,
                    total_teams=scope_row.total_teams,
                    total_players=scope_row.total_players,
                    records={ext_id: _row_to_record(row) for ext_id, row in sorted(rows.items())},
                )
        except SQLAlchemyError as exc:
            raise RegistryStoreError(f"Could not load registry for {scope}: {exc}") from exc

        logger.info("Loaded registry for %s with %d records", scope, len(registry.records))
        return registry

    def _write(self, registry: Registry) -> None:
        scope = registry.scope
        with self._session_factory() as session, session.begin():
            scope_repo = RegistryScopeRepository(session)
            record_repo = RegistryRecordRepository(session)

            header = {
                "collection_name": registry.collection_name,
                "registry_created_at": registry.created_at,
                "last_updated": registry.last_updated,
                "schema_version": registry.schema_version,
                "total_teams": registry.total_teams,
                "total_players": registry.total_players,
            }
            scope_row = scope_repo.for_scope(scope.collection_id, scope.period)
            if scope_row is None:
                scope_row = scope_repo.add(
                    RegistryScopeRow(
                        collection_id=scope.collection_id, period=scope.period, **header
                    )
                )
            else:
                scope_repo.patch(scope_row, header, flush=False)

            existing = record_repo.by_external_id(scope_row.id)
            for external_id, record in registry.records.items():
                values = _record_values(record)
                row = existing.get(external_id)
                if row is None:
                    record_repo.add(
                        RegistryRecordRow(scope_id=scope_row.id, external_id=external_id, **values),
                        flush=False,
                    )
                else:
                    record_repo.patch(row, values, flush=False)
