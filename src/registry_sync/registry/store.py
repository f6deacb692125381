from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from registry_sync.domain.models import DatasetScope
from registry_sync.registry.errors import LedgerAddressReassigned, RegistryStoreError, ScopeMismatch
from registry_sync.registry.models import Registry, RegistryRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class RegistryStore(ABC):
    """Load, mutate and persist a scope's registry.

    Only one pass may hold a registry for writing at a time.
    """

    def __init__(self, *, clock: Clock = utcnow) -> None:
        self._clock = clock

    @abstractmethod
    def load_or_create(self, scope: DatasetScope, *, collection_name: str = "") -> Registry:
        ...

    @abstractmethod
    def _write(self, registry: Registry) -> None:
        ...

    def save(self, registry: Registry) -> None:
        """Persist the registry. Safe to call repeatedly, including from failure handlers."""

        registry.last_updated = self._clock()
        try:
            self._write(registry)
        except RegistryStoreError:
            raise
        except Exception as exc:
            raise RegistryStoreError(
                f"Failed to save registry for {registry.scope}: {exc}"
            ) from exc

    @staticmethod
    def get(registry: Registry, external_id: int) -> RegistryRecord | None:
        return registry.records.get(external_id)

    @staticmethod
    def upsert(registry: Registry, record: RegistryRecord) -> None:
        existing = registry.records.get(record.external_id)
        if existing is not None and existing.ledger_address != record.ledger_address:
            raise LedgerAddressReassigned(
                f"Record {record.external_id} is bound to {existing.ledger_address}; "
                f"refusing to rebind to {record.ledger_address}"
            )
        registry.records[record.external_id] = record


def registry_filename(scope: DatasetScope) -> str:
    return f"player-registry-{scope.collection_id}-{scope.period}.json"


class JsonFileRegistryStore(RegistryStore):
    """Human-inspectable JSON document per scope.

    Writes go to a temporary sibling and are moved into place, so a reader
    never sees a half-written file.
    """

    def __init__(
        self,
        directory: Path,
        *,
        path: Path | None = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(clock=clock)
        self.directory = directory
        self._fixed_path = path

    def path_for(self, scope: DatasetScope) -> Path:
        if self._fixed_path is not None:
            return self._fixed_path
        return self.directory / registry_filename(scope)

    def _read(self, path: Path) -> Registry:
        try:
            return Registry.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError) as exc:
            raise RegistryStoreError(f"Could not read registry {path}: {exc}") from exc

    def load_or_create(self, scope: DatasetScope, *, collection_name: str = "") -> Registry:
        path = self.path_for(scope)
        if path.exists():
            registry = self._read(path)
            if registry.scope == scope:
                logger.info("Loaded registry %s with %d records", path, len(registry.records))
                return registry

            # Never merge two scopes into one registry.
            mismatch = ScopeMismatch(expected=scope, found=registry.scope)
            stale = self._move_aside(path)
            logger.warning("%s; moved stale registry to %s and starting fresh", mismatch, stale)

        logger.info("Creating new registry for %s", scope)
        return Registry.empty(scope, collection_name=collection_name, now=self._clock())

    def _move_aside(self, path: Path) -> Path:
        stamp = self._clock().strftime("%Y%m%dT%H%M%S")
        stale = path.with_name(f"{path.stem}.stale-{stamp}{path.suffix}")
        path.replace(stale)
        return stale

    def _write(self, registry: Registry) -> None:
        path = self.path_for(registry.scope)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(registry.model_dump_json(indent=2) + "\n", encoding="utf-8")
        tmp.replace(path)
