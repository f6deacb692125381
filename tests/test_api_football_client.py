from __future__ import annotations

from typing import Any

import httpx
import pytest

from registry_sync.ingestion.providers.api_football.client import (
    ApiFootballClient,
    ApiFootballRateLimiter,
    response_items,
)
from registry_sync.ingestion.providers.base.client import BaseHttpClient
from registry_sync.ingestion.providers.base.errors import (
    ProviderRateLimited,
    ProviderResponseError,
    ProviderUnavailable,
)


def test_rate_limiter_paces_requests() -> None:
    sleeps: list[float] = []
    t = 0.0

    def fake_monotonic() -> float:
        return t

    limiter = ApiFootballRateLimiter(_sleep=sleeps.append, _monotonic=fake_monotonic)
    limiter.min_interval_s = 1.0
    limiter.last_request_monotonic = 0.0

    t = 0.25
    limiter.before_request()
    assert sleeps == [0.75]


def test_rate_limiter_uses_headers_for_minute_cooldown() -> None:
    sleeps: list[float] = []

    limiter = ApiFootballRateLimiter(
        _sleep=sleeps.append,
        _monotonic=lambda: 123.0,
        low_watermark=2,
    )

    limiter.after_response({"X-RateLimit-Limit": "300", "X-RateLimit-Remaining": "1"})
    assert limiter.min_interval_s == pytest.approx(0.2)
    assert 60.0 in sleeps


def test_rate_limiter_cooldowns_are_configurable() -> None:
    sleeps: list[float] = []
    limiter = ApiFootballRateLimiter(
        _sleep=sleeps.append,
        _monotonic=lambda: 0.0,
        low_watermark=5,
        exhausted_cooldown_s=30.0,
        near_limit_cooldown_s=2.5,
    )

    limiter.after_response({"X-RateLimit-Remaining": "4"})
    limiter.after_response({"X-RateLimit-Remaining": "1"})
    limiter.after_response({"X-RateLimit-Remaining": "6"})
    limiter.wait_after_throttle()

    assert sleeps == [2.5, 30.0, 30.0]


def test_rate_limiter_stops_when_daily_quota_is_spent() -> None:
    limiter = ApiFootballRateLimiter(_sleep=lambda s: None, _monotonic=lambda: 0.0)

    limiter.after_response({"x-ratelimit-requests-remaining": "3"})
    limiter.before_request()

    limiter.after_response({"x-ratelimit-requests-remaining": "0"})
    with pytest.raises(ProviderRateLimited, match="daily"):
        limiter.before_request()


def test_client_sends_api_key_and_reads_rate_limit_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"response": [{"team": {"id": 85}}], "errors": []},
            headers={"X-RateLimit-Limit": "300", "X-RateLimit-Remaining": "299"},
        )

    http = BaseHttpClient(
        base_url="https://v3.football.api-sports.io", transport=httpx.MockTransport(handler)
    )
    client = ApiFootballClient(
        http=http,
        api_key="secret",
        rate_limiter=ApiFootballRateLimiter(_sleep=lambda s: None, _monotonic=lambda: 0.0),
    )

    items = client.get_response_items("/teams", params={"league": 61, "season": 2024})

    assert items == [{"team": {"id": 85}}]
    assert seen[0].headers["x-apisports-key"] == "secret"
    assert seen[0].url.path == "/teams"
    assert seen[0].url.params["league"] == "61"
    assert client.rate_limiter.min_interval_s > 0.0


def test_client_retries_http_429_then_gives_up() -> None:
    calls = 0
    sleeps: list[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(429, json={})

    http = BaseHttpClient(base_url="https://api.test", transport=httpx.MockTransport(handler))
    client = ApiFootballClient(
        http=http,
        api_key="k",
        rate_limiter=ApiFootballRateLimiter(_sleep=sleeps.append, _monotonic=lambda: 0.0),
        max_rate_limit_attempts=3,
    )

    with pytest.raises(ProviderRateLimited):
        client.get("/players", params={"id": 10})

    assert calls == 3
    assert sleeps == [60.0, 60.0]


def test_client_raises_on_provider_errors_block() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"response": [], "errors": {"token": "Invalid key"}})

    http = BaseHttpClient(base_url="https://api.test", transport=httpx.MockTransport(handler))
    client = ApiFootballClient(
        http=http,
        api_key="bad",
        rate_limiter=ApiFootballRateLimiter(_sleep=lambda s: None, _monotonic=lambda: 0.0),
    )

    with pytest.raises(ProviderResponseError, match="Invalid key"):
        client.get("/teams")


def test_http_error_names_endpoint_and_scope() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="down")

    http = BaseHttpClient(base_url="https://api.test", transport=httpx.MockTransport(handler))

    with pytest.raises(ProviderUnavailable) as excinfo:
        http.get_json("/players", params={"league": 61, "season": 2024})

    message = str(excinfo.value)
    assert "HTTP 503" in message
    assert "endpoint=/players" in message
    assert "league=61" in message and "season=2024" in message


@pytest.mark.parametrize(
    "error",
    [
        httpx.RemoteProtocolError,
        httpx.ProxyError,
        httpx.UnsupportedProtocol,
        httpx.ConnectError,
        httpx.ReadTimeout,
    ],
)
def test_transport_errors_become_provider_unavailable(error: type[httpx.TransportError]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise error("Server disconnected without sending a response.", request=request)

    http = BaseHttpClient(base_url="https://api.test", transport=httpx.MockTransport(handler))

    with pytest.raises(ProviderUnavailable) as excinfo:
        http.get_json("/teams", params={"league": 61, "season": 2024})

    assert isinstance(excinfo.value.__cause__, error)
    assert "endpoint=/teams" in str(excinfo.value)


def test_response_items_tolerates_missing_response() -> None:
    payload: dict[str, Any] = {"errors": []}
    assert response_items(payload, path="/teams") == []

    with pytest.raises(ProviderUnavailable):
        response_items({"response": {"oops": 1}}, path="/teams")
