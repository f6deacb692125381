from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

from registry_sync.domain.models import StatSnapshot
from registry_sync.ledger.client import InitializationPayload, LedgerClient, LedgerReceipt
from registry_sync.ledger.errors import LedgerWriteFailed


@dataclass
class InMemoryRecord:
    address: str
    name: str
    symbol: str
    payment_token: str | None
    initialization: InitializationPayload | None = None
    snapshots: list[StatSnapshot] = field(default_factory=list)


class InMemoryLedger(LedgerClient):
    """Process-local ledger used for dry runs and tests. Counts every write."""

    def __init__(self) -> None:
        self.records: dict[str, InMemoryRecord] = {}
        self.allocations = 0
        self.initializations = 0
        self.snapshot_writes = 0
        self._tx = 0

    @property
    def write_calls(self) -> int:
        return self.allocations + self.initializations + self.snapshot_writes

    def _next_tx(self) -> str:
        self._tx += 1
        return f"0x{self._tx:064x}"

    def _record(self, address: str) -> InMemoryRecord:
        record = self.records.get(address)
        if record is None:
            raise LedgerWriteFailed(f"No ledger record at {address}")
        return record

    def allocate_record(
        self, *, name: str, symbol: str, payment_token: str | None = None
    ) -> LedgerReceipt:
        self.allocations += 1
        seed = f"{self.allocations}:{name}:{symbol}".encode()
        address = "0x" + hashlib.sha256(seed).hexdigest()[:40]
        self.records[address] = InMemoryRecord(
            address=address, name=name, symbol=symbol, payment_token=payment_token
        )
        return LedgerReceipt(tx_hash=self._next_tx(), address=address, block_number=self._tx)

    def initialize_record(self, address: str, payload: InitializationPayload) -> LedgerReceipt:
        record = self._record(address)
        if record.initialization is not None:
            raise LedgerWriteFailed(f"Record {address} is already initialized")
        self.initializations += 1
        record.initialization = payload
        return LedgerReceipt(tx_hash=self._next_tx(), address=address, block_number=self._tx)

    def write_snapshot(self, address: str, snapshot: StatSnapshot) -> LedgerReceipt:
        record = self._record(address)
        self.snapshot_writes += 1
        record.snapshots.append(snapshot)
        return LedgerReceipt(tx_hash=self._next_tx(), address=address, block_number=self._tx)
