from __future__ import annotations

from sqlalchemy.orm import Session

from registry_sync.db.models.registry_record import RegistryRecordRow
from registry_sync.db.models.registry_scope import RegistryScopeRow
from registry_sync.db.repos.base import BaseRepository


class RegistryScopeRepository(BaseRepository[RegistryScopeRow]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=RegistryScopeRow)

    def for_scope(self, collection_id: int, period: int) -> RegistryScopeRow | None:
        return self.first_where(
            RegistryScopeRow.collection_id == collection_id,
            RegistryScopeRow.period == period,
        )


class RegistryRecordRepository(BaseRepository[RegistryRecordRow]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=RegistryRecordRow)

    def by_external_id(self, scope_id: int) -> dict[int, RegistryRecordRow]:
        rows = self.all_where(RegistryRecordRow.scope_id == scope_id)
        return {row.external_id: row for row in rows}
