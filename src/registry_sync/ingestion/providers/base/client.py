from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from .errors import ProviderRateLimited, ProviderUnavailable


Json = dict[str, Any]


@dataclass
class BaseHttpClient:
    """
    Provider-agnostic HTTP client wrapper.

    - Uses a single underlying httpx.Client for connection pooling.
    - Provides consistent error handling.
    - Provider-specific clients can subclass and add convenience methods / auth.
    """

    base_url: str
    timeout_s: float = 30.0
    connect_timeout_s: float = 10.0
    headers: Mapping[str, str] = field(default_factory=dict)

    transport: httpx.BaseTransport | None = None

    def __post_init__(self) -> None:
        self._client = httpx.Client(
            base_url=self.base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(self.timeout_s, connect=self.connect_timeout_s),
            headers=dict(self.headers),
            transport=self.transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> BaseHttpClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[Json, httpx.Headers]:
        """
        Perform an HTTP request and return parsed JSON (dict) plus the response headers.
        Raises ProviderUnavailable (including ProviderRateLimited) on any httpx transport
        error (timeouts, dropped connections, protocol and proxy errors) or non-2xx.
        """
        try:
            resp = self._client.request(
                method=method,
                url=path.lstrip("/"),
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.TransportError as e:
            raise ProviderUnavailable(
                str(e) or e.__class__.__name__, endpoint=path, params=params
            ) from e

        if resp.status_code == 429:
            raise ProviderRateLimited(
                "Provider rate limited the request (HTTP 429).", endpoint=path, params=params
            )

        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderUnavailable(
                f"HTTP {resp.status_code} for {method} {resp.request.url}",
                endpoint=path,
                params=params,
            ) from e

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderUnavailable(
                "Response was not valid JSON.", endpoint=path, params=params
            ) from e

        if not isinstance(data, dict):
            raise ProviderUnavailable(
                f"Expected JSON object, got {type(data)}", endpoint=path, params=params
            )

        return data, resp.headers

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Json:
        data, _ = self.request(method, path, params=params, json=json, headers=headers)
        return data

    def get_json(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Json:
        return self.request_json("GET", path, params=params, headers=headers)

    def get_json_with_headers(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[Json, Mapping[str, str]]:
        return self.request("GET", path, params=params, headers=headers)

    def post_json(
        self,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Json:
        return self.request_json("POST", path, json=json, headers=headers)
