from __future__ import annotations

import json

import httpx
import pytest

from registry_sync.domain.models import StatSnapshot
from registry_sync.ingestion.providers.base.client import BaseHttpClient
from registry_sync.ledger.client import InitializationPayload
from registry_sync.ledger.errors import LedgerConfirmationTimeout, LedgerWriteFailed
from registry_sync.ledger.http_gateway import HttpLedgerClient
from registry_sync.ledger.memory import InMemoryLedger

ADDRESS = "0x00000000000000000000000000000000000000aa"


def _client(handler, **kwargs) -> HttpLedgerClient:
    http = BaseHttpClient(base_url="https://ledger.test", transport=httpx.MockTransport(handler))
    return HttpLedgerClient(http=http, api_key="token", _sleep=lambda s: None, **kwargs)


def test_allocate_waits_for_confirmation_and_returns_address() -> None:
    statuses = iter(["pending", "confirmed"])
    posted: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer token"
        if request.method == "POST":
            assert request.url.path == "/records"
            posted.append(json.loads(request.content))
            return httpx.Response(200, json={"txHash": "0xtx1"})
        assert request.url.path == "/transactions/0xtx1"
        status = next(statuses)
        body: dict[str, object] = {"status": status}
        if status == "confirmed":
            body.update(address=ADDRESS, blockNumber=7)
        return httpx.Response(200, json=body)

    receipt = _client(handler).allocate_record(
        name="Kylian Mbappe (Ligue 1 2024)", symbol="KMBA", payment_token="0xpar"
    )

    assert receipt.address == ADDRESS
    assert receipt.block_number == 7
    assert posted == [
        {"name": "Kylian Mbappe (Ligue 1 2024)", "symbol": "KMBA", "paymentToken": "0xpar"}
    ]


def test_snapshot_write_posts_ordered_counters() -> None:
    posted: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            assert request.url.path == f"/records/{ADDRESS}/stats"
            posted.append(json.loads(request.content))
            return httpx.Response(200, json={"txHash": "0xtx2"})
        return httpx.Response(200, json={"status": "confirmed"})

    snapshot = StatSnapshot(goals=6, assists=2, appearances=11, last_updated=1_700_000_000)
    _client(handler).write_snapshot(ADDRESS, snapshot)

    assert posted[0]["stats"] == [6, 2, 0, 0, 0, 0, 0, 0, 11, 0, 0, 1_700_000_000]
    assert posted[0]["fields"][0] == "goals"  # type: ignore[index]


def test_failed_transaction_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"txHash": "0xtx3"})
        return httpx.Response(200, json={"status": "failed", "error": "execution reverted"})

    payload = InitializationPayload(
        external_id=10,
        display_name="Kylian Mbappe",
        team_name="Paris Saint Germain",
        position="Attacker",
        collection_name="Ligue 1",
        period=2024,
        initial_supply="1000000",
    )
    with pytest.raises(LedgerWriteFailed, match="execution reverted"):
        _client(handler).initialize_record(ADDRESS, payload)


def test_unconfirmed_transaction_times_out() -> None:
    ticks = iter(range(100))
    sleeps: list[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"txHash": "0xtx4"})
        return httpx.Response(200, json={"status": "pending"})

    http = BaseHttpClient(base_url="https://ledger.test", transport=httpx.MockTransport(handler))
    client = HttpLedgerClient(
        http=http,
        confirm_timeout_s=3.0,
        poll_interval_s=1.0,
        _sleep=sleeps.append,
        _monotonic=lambda: float(next(ticks)),
    )

    with pytest.raises(LedgerConfirmationTimeout):
        client.write_snapshot(ADDRESS, StatSnapshot(goals=1))
    assert sleeps == [1.0, 1.0]


def test_gateway_rejection_is_a_write_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    with pytest.raises(LedgerWriteFailed):
        _client(handler).write_snapshot(ADDRESS, StatSnapshot())


def test_dropped_connection_while_confirming_is_a_write_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"txHash": "0xtx5"})
        raise httpx.RemoteProtocolError(
            "Server disconnected without sending a response.", request=request
        )

    with pytest.raises(LedgerWriteFailed, match="0xtx5"):
        _client(handler).write_snapshot(ADDRESS, StatSnapshot(goals=2))


def test_in_memory_ledger_counts_writes() -> None:
    ledger = InMemoryLedger()

    receipt = ledger.allocate_record(name="A (Ligue 1 2024)", symbol="A")
    assert receipt.address is not None
    ledger.write_snapshot(receipt.address, StatSnapshot(goals=1))

    assert ledger.allocations == 1
    assert ledger.snapshot_writes == 1
    assert ledger.write_calls == 2
    with pytest.raises(LedgerWriteFailed):
        ledger.write_snapshot("0xmissing", StatSnapshot())
