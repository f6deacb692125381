from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


class ProviderError(RuntimeError):
    """Base exception for provider-related failures."""


class ProviderUnavailable(ProviderError):
    """HTTP/network/transport layer failures (timeouts, connection errors, non-2xx, etc.).

    Carries the endpoint and the query parameters (league/season scope) so the
    caller can report which call failed.
    """

    def __init__(
        self,
        message: str,
        *,
        endpoint: str | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.params = dict(params or {})

    def __str__(self) -> str:
        msg = super().__str__()
        if self.endpoint is None:
            return msg
        if self.params:
            query = " ".join(f"{k}={v}" for k, v in sorted(self.params.items()))
            return f"{msg} [endpoint={self.endpoint} {query}]"
        return f"{msg} [endpoint={self.endpoint}]"


class ProviderRateLimited(ProviderUnavailable):
    """Provider throttled the request (e.g., HTTP 429)."""


class ProviderResponseError(ProviderError):
    """Provider returned a well-formed response indicating an application-level error."""


class ProviderEmpty(ProviderError):
    """Well-formed response with no data for the requested entity."""


@dataclass(frozen=True)
class ProviderMappingError(ProviderError):
    """Mapping/extraction failed due to unexpected schema or values."""
    message: str
    context: dict[str, object] | None = None

    def __str__(self) -> str:  # pragma: no cover
        if not self.context:
            return self.message
        return f"{self.message} | context={self.context}"
