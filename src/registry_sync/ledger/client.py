from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from registry_sync.domain.models import StatSnapshot


@dataclass(frozen=True)
class LedgerReceipt:
    tx_hash: str
    address: str | None = None
    block_number: int | None = None


@dataclass(frozen=True)
class InitializationPayload:
    external_id: int
    display_name: str
    team_name: str
    position: str
    collection_name: str
    period: int
    initial_supply: str

    def to_json(self) -> dict[str, object]:
        return {
            "playerId": self.external_id,
            "name": self.display_name,
            "teamName": self.team_name,
            "position": self.position,
            "leagueName": self.collection_name,
            "season": str(self.period),
            "initialSupply": self.initial_supply,
        }


class LedgerClient(Protocol):
    """Write side of the ledger. Every call blocks until the write is confirmed."""

    def allocate_record(
        self, *, name: str, symbol: str, payment_token: str | None = None
    ) -> LedgerReceipt:
        """Create a new addressed record. The receipt always carries the address."""
        ...

    def initialize_record(self, address: str, payload: InitializationPayload) -> LedgerReceipt:
        ...

    def write_snapshot(self, address: str, snapshot: StatSnapshot) -> LedgerReceipt:
        ...
