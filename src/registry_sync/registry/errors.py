from __future__ import annotations

from registry_sync.domain.models import DatasetScope


class RegistryStoreError(RuntimeError):
    """Registry could not be loaded or persisted. Fatal for a run."""


class ScopeMismatch(RegistryStoreError):
    """A persisted registry belongs to a different dataset scope."""

    def __init__(self, *, expected: DatasetScope, found: DatasetScope) -> None:
        super().__init__(f"Registry scope mismatch: expected {expected}, found {found}")
        self.expected = expected
        self.found = found


class LedgerAddressReassigned(ValueError):
    """An upsert tried to change the ledger address of an existing record."""
