from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from registry_sync.ingestion.providers.base.client import BaseHttpClient
from registry_sync.ingestion.providers.base.errors import (
    ProviderRateLimited,
    ProviderResponseError,
    ProviderUnavailable,
)


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class ApiFootballRateLimiter:
    """Proactive throttling based on API-Football rate limit headers.

    ``X-RateLimit-Limit``/``X-RateLimit-Remaining`` describe the per-minute
    bucket and set the spacing between requests. ``x-ratelimit-requests-remaining``
    is the daily quota; once it reaches zero further requests fail fast with
    ProviderRateLimited instead of sleeping until the next day.
    """

    bucket_window_s: float = 60.0
    low_watermark: int = 2
    exhausted_cooldown_s: float = 60.0
    near_limit_cooldown_s: float = 10.0

    min_interval_s: float = 0.0
    last_request_monotonic: float | None = None
    daily_remaining: int | None = None

    _sleep: Any = field(default=time.sleep, repr=False)
    _monotonic: Any = field(default=time.monotonic, repr=False)

    def before_request(self) -> None:
        if self.daily_remaining is not None and self.daily_remaining <= 0:
            raise ProviderRateLimited("api-football daily request quota is exhausted.")
        if self.min_interval_s <= 0.0 or self.last_request_monotonic is None:
            return
        elapsed = float(self._monotonic()) - self.last_request_monotonic
        remaining = self.min_interval_s - elapsed
        if remaining > 0:
            self._sleep(remaining)

    def after_response(self, headers: Mapping[str, str]) -> None:
        limit = _parse_int(headers.get("X-RateLimit-Limit"))
        remaining = _parse_int(headers.get("X-RateLimit-Remaining"))
        daily = _parse_int(headers.get("x-ratelimit-requests-remaining"))

        if limit and limit > 0:
            self.min_interval_s = max(self.min_interval_s, self.bucket_window_s / float(limit))
        if daily is not None:
            self.daily_remaining = daily

        # The minute bucket has no reset header; wait it out near zero.
        if remaining is not None and remaining <= self.low_watermark:
            if remaining <= 1:
                self._sleep(self.exhausted_cooldown_s)
            else:
                self._sleep(self.near_limit_cooldown_s)

        self.last_request_monotonic = float(self._monotonic())

    def wait_after_throttle(self) -> None:
        self._sleep(self.exhausted_cooldown_s)


@dataclass
class ApiFootballClient:
    http: BaseHttpClient
    api_key: str
    rate_limiter: ApiFootballRateLimiter = field(default_factory=ApiFootballRateLimiter)
    max_rate_limit_attempts: int = 5

    def _headers(self) -> dict[str, str]:
        return {"x-apisports-key": self.api_key}

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        self.rate_limiter.before_request()

        # Basic retry on minute-bucket throttling.
        attempts = 0
        while True:
            attempts += 1
            try:
                data, headers = self.http.get_json_with_headers(
                    path, params=params, headers=self._headers()
                )
                self.rate_limiter.after_response(headers)
                break
            except ProviderRateLimited:
                if attempts >= self.max_rate_limit_attempts:
                    raise
                self.rate_limiter.wait_after_throttle()

        errors = data.get("errors") or []
        if errors:
            raise ProviderResponseError(f"api-football returned errors for {path}: {errors}")

        return data

    def get_response_items(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        payload = self.get(path, params=params)
        return response_items(payload, path=path, params=params)


def response_items(
    payload: Mapping[str, Any],
    *,
    path: str,
    params: Mapping[str, Any] | None = None,
) -> list[dict[str, Any]]:
    items = payload.get("response")
    if items is None:
        return []
    if not isinstance(items, list):
        raise ProviderUnavailable(
            f"Expected 'response' list, got: {type(items)}", endpoint=path, params=params
        )
    return [i for i in items if isinstance(i, dict)]
