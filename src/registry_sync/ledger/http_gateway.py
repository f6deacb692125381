from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from registry_sync.domain.models import STAT_COUNTER_FIELDS, StatSnapshot
from registry_sync.ingestion.providers.base.client import BaseHttpClient
from registry_sync.ingestion.providers.base.errors import ProviderError
from registry_sync.ledger.client import InitializationPayload, LedgerClient, LedgerReceipt
from registry_sync.ledger.errors import LedgerConfirmationTimeout, LedgerWriteFailed

logger = logging.getLogger(__name__)


@dataclass
class HttpLedgerClient(LedgerClient):
    """Ledger writes through an HTTP transaction gateway.

    Each write is submitted, then ``/transactions/{hash}`` is polled until the
    gateway reports it confirmed or failed, or the confirmation timeout passes.
    """

    http: BaseHttpClient
    api_key: str | None = None
    confirm_timeout_s: float = 120.0
    poll_interval_s: float = 2.0

    _sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    _monotonic: Callable[[], float] = field(default=time.monotonic, repr=False)

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    def _submit(self, path: str, body: Mapping[str, Any]) -> str:
        try:
            data = self.http.post_json(path, json=body, headers=self._headers())
        except ProviderError as exc:
            raise LedgerWriteFailed(f"Ledger gateway rejected {path}: {exc}") from exc

        tx_hash = data.get("txHash")
        if not isinstance(tx_hash, str) or not tx_hash:
            raise LedgerWriteFailed(f"Ledger gateway returned no txHash for {path}: {data}")
        return tx_hash

    def _wait(self, tx_hash: str) -> LedgerReceipt:
        deadline = float(self._monotonic()) + self.confirm_timeout_s
        while True:
            try:
                data = self.http.get_json(f"/transactions/{tx_hash}", headers=self._headers())
            except ProviderError as exc:
                raise LedgerWriteFailed(f"Could not confirm transaction {tx_hash}: {exc}") from exc

            status = str(data.get("status") or "pending").lower()
            if status == "confirmed":
                block = data.get("blockNumber")
                return LedgerReceipt(
                    tx_hash=tx_hash,
                    address=data.get("address"),
                    block_number=block if isinstance(block, int) else None,
                )
            if status == "failed":
                reason = data.get("error") or "no reason given"
                raise LedgerWriteFailed(f"Transaction {tx_hash} failed: {reason}")

            if float(self._monotonic()) >= deadline:
                raise LedgerConfirmationTimeout(
                    f"Transaction {tx_hash} not confirmed within {self.confirm_timeout_s:.0f}s"
                )
            self._sleep(self.poll_interval_s)

    def allocate_record(
        self, *, name: str, symbol: str, payment_token: str | None = None
    ) -> LedgerReceipt:
        body: dict[str, Any] = {"name": name, "symbol": symbol}
        if payment_token:
            body["paymentToken"] = payment_token
        tx_hash = self._submit("/records", body)
        logger.info("Allocation transaction sent for %s (%s): %s", name, symbol, tx_hash)

        receipt = self._wait(tx_hash)
        if not receipt.address:
            raise LedgerWriteFailed(f"Allocation {tx_hash} confirmed without an address")
        return receipt

    def initialize_record(self, address: str, payload: InitializationPayload) -> LedgerReceipt:
        tx_hash = self._submit(f"/records/{address}/initialize", payload.to_json())
        return self._wait(tx_hash)

    def write_snapshot(self, address: str, snapshot: StatSnapshot) -> LedgerReceipt:
        body = {
            "fields": [*STAT_COUNTER_FIELDS, "last_updated"],
            "stats": snapshot.ledger_payload(),
        }
        tx_hash = self._submit(f"/records/{address}/stats", body)
        return self._wait(tx_hash)
