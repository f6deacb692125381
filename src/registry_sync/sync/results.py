from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from registry_sync.domain.models import DatasetScope
from registry_sync.ingestion.providers.base.errors import (
    ProviderMappingError,
    ProviderResponseError,
    ProviderUnavailable,
)
from registry_sync.ledger.errors import LedgerWriteFailed
from registry_sync.registry.errors import LedgerAddressReassigned


class RunKind(StrEnum):
    PROVISION = "provision"
    RECONCILE = "reconcile"


class EntityOutcome(StrEnum):
    PROVISIONED = "provisioned"
    UPDATED = "updated"
    METADATA_UPDATED = "metadata_updated"
    UNCHANGED = "unchanged"
    SKIPPED_EXISTING = "skipped_existing"
    SKIPPED_NO_TEAM_TOKEN = "skipped_no_team_token"
    NO_DATA = "no_data"
    FAILED = "failed"


SUCCEEDED_OUTCOMES = frozenset(
    {EntityOutcome.PROVISIONED, EntityOutcome.UPDATED, EntityOutcome.METADATA_UPDATED}
)
SKIPPED_OUTCOMES = frozenset(
    {EntityOutcome.SKIPPED_EXISTING, EntityOutcome.SKIPPED_NO_TEAM_TOKEN, EntityOutcome.NO_DATA}
)


class SyncErrorKind(StrEnum):
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_RESPONSE = "provider_response"
    LEDGER_WRITE_FAILED = "ledger_write_failed"
    INVALID_STATE = "invalid_state"
    UNEXPECTED = "unexpected"


def format_failure_reason(exc: BaseException, *, max_len: int = 300) -> str:
    msg = str(exc).strip() or exc.__class__.__name__
    reason = f"{exc.__class__.__name__}: {msg}"
    if len(reason) > max_len:
        return f"{reason[: max_len - 3]}..."
    return reason


@dataclass(frozen=True)
class SyncError:
    kind: SyncErrorKind
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> SyncError:
        if isinstance(exc, ProviderUnavailable):
            kind = SyncErrorKind.PROVIDER_UNAVAILABLE
        elif isinstance(exc, (ProviderResponseError, ProviderMappingError)):
            kind = SyncErrorKind.PROVIDER_RESPONSE
        elif isinstance(exc, LedgerWriteFailed):
            kind = SyncErrorKind.LEDGER_WRITE_FAILED
        elif isinstance(exc, LedgerAddressReassigned):
            kind = SyncErrorKind.INVALID_STATE
        else:
            kind = SyncErrorKind.UNEXPECTED
        return cls(kind=kind, message=format_failure_reason(exc))


@dataclass(frozen=True)
class EntityResult:
    """Outcome of processing one entity: either a success outcome or a SyncError."""

    external_id: int
    display_name: str
    outcome: EntityOutcome
    ledger_address: str | None = None
    changes: tuple[str, ...] = ()
    placeholder_snapshot: bool = False
    error: SyncError | None = None

    @classmethod
    def failure(cls, external_id: int, display_name: str, exc: BaseException) -> EntityResult:
        return cls(
            external_id=external_id,
            display_name=display_name,
            outcome=EntityOutcome.FAILED,
            error=SyncError.from_exception(exc),
        )

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "externalId": self.external_id,
            "displayName": self.display_name,
            "outcome": self.outcome.value,
        }
        if self.ledger_address:
            out["ledgerAddress"] = self.ledger_address
        if self.changes:
            out["changes"] = list(self.changes)
        if self.placeholder_snapshot:
            out["placeholderSnapshot"] = True
        if self.error is not None:
            out["error"] = {"kind": self.error.kind.value, "message": self.error.message}
        return out


@dataclass
class SyncRunSummary:
    kind: RunKind
    scope: DatasetScope
    collection_name: str
    started_at: datetime
    finished_at: datetime | None = None

    entities: list[EntityResult] = field(default_factory=list)
    teams_seen: int = 0
    teams_failed: list[str] = field(default_factory=list)
    failure_reasons: dict[str, int] = field(default_factory=dict)
    run_errors: list[str] = field(default_factory=list)

    def add(self, result: EntityResult) -> None:
        self.entities.append(result)
        if result.error is not None:
            self.count_failure(result.error.message)

    def count_failure(self, reason: str) -> None:
        self.failure_reasons[reason] = self.failure_reasons.get(reason, 0) + 1

    def _count(self, outcomes: frozenset[EntityOutcome] | set[EntityOutcome]) -> int:
        return sum(1 for e in self.entities if e.outcome in outcomes)

    @property
    def total(self) -> int:
        return len(self.entities)

    @property
    def succeeded(self) -> int:
        return self._count(SUCCEEDED_OUTCOMES)

    @property
    def failed(self) -> int:
        return self._count({EntityOutcome.FAILED})

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED_OUTCOMES)

    @property
    def unchanged(self) -> int:
        return self._count({EntityOutcome.UNCHANGED})

    @property
    def provisioned(self) -> int:
        return self._count({EntityOutcome.PROVISIONED})

    @property
    def updated(self) -> int:
        return self._count({EntityOutcome.UPDATED})

    def with_outcome(self, outcome: EntityOutcome) -> list[EntityResult]:
        return [e for e in self.entities if e.outcome is outcome]

    def top_failure_reasons(self, n: int = 5) -> list[tuple[str, int]]:
        return sorted(self.failure_reasons.items(), key=lambda kv: kv[1], reverse=True)[:n]

    def to_json(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "leagueId": self.scope.collection_id,
            "leagueName": self.collection_name,
            "season": self.scope.period,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "teamsSeen": self.teams_seen,
            "teamsFailed": self.teams_failed,
            "total": self.total,
            "succeeded": self.succeeded,
            "updated": self.updated,
            "failed": self.failed,
            "skipped": self.skipped,
            "unchanged": self.unchanged,
            "failureReasons": self.failure_reasons,
            "runErrors": self.run_errors,
            "entities": [e.to_json() for e in self.entities],
        }


def write_summary(summary: SyncRunSummary, directory: Path) -> Path:
    """Write a run summary as JSON and return its path."""

    stamp = (summary.finished_at or summary.started_at).strftime("%Y%m%dT%H%M%S")
    scope = summary.scope
    path = directory / f"{summary.kind.value}-summary-{scope.key}-{stamp}.json"
    directory.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_json(), indent=2) + "\n", encoding="utf-8")
    return path
