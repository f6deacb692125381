from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from registry_sync.domain.models import DatasetScope
from registry_sync.ingestion.providers.base.errors import ProviderUnavailable
from registry_sync.sync.results import (
    EntityOutcome,
    EntityResult,
    RunKind,
    SyncRunSummary,
    format_failure_reason,
    write_summary,
)
from registry_sync.sync.scheduler import RECONCILE_JOB_ID, ReconcileScheduler

SCOPE = DatasetScope(collection_id=61, period=2024)
STARTED = datetime(2024, 11, 3, 2, 0, tzinfo=UTC)


def _summary() -> SyncRunSummary:
    summary = SyncRunSummary(
        kind=RunKind.RECONCILE, scope=SCOPE, collection_name="Ligue 1", started_at=STARTED
    )
    summary.add(EntityResult(10, "Player 10", EntityOutcome.UNCHANGED))
    summary.add(EntityResult(11, "Player 11", EntityOutcome.UPDATED, changes=("goals",)))
    summary.add(
        EntityResult.failure(
            12, "Player 12", ProviderUnavailable("HTTP 500", endpoint="/players", params={"id": 12})
        )
    )
    summary.finished_at = STARTED
    return summary


def test_failure_reason_is_truncated() -> None:
    reason = format_failure_reason(RuntimeError("x" * 500))

    assert reason.startswith("RuntimeError: xxx")
    assert len(reason) == 300
    assert reason.endswith("...")


def test_write_summary_names_file_by_kind_and_scope(tmp_path: Path) -> None:
    path = write_summary(_summary(), tmp_path)

    assert path.name == "reconcile-summary-61-2024-20241103T020000.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["total"] == 3
    assert data["updated"] == 1
    assert data["unchanged"] == 1
    assert data["failed"] == 1
    assert data["entities"][2]["error"]["kind"] == "provider_unavailable"
    assert data["entities"][1]["changes"] == ["goals"]


def test_scheduler_registers_single_cron_job() -> None:
    backend = BackgroundScheduler(timezone="UTC")
    scheduler = ReconcileScheduler(
        _summary, cron="0 2 * * *", timezone="UTC", scheduler=backend
    )

    scheduler.add_job()

    job = backend.get_job(RECONCILE_JOB_ID)
    assert job is not None
    assert isinstance(job.trigger, CronTrigger)
    assert job.max_instances == 1
    assert job.coalesce is True


def test_scheduled_pass_failure_is_logged_not_raised() -> None:
    def broken() -> SyncRunSummary:
        raise RuntimeError("registry unavailable")

    scheduler = ReconcileScheduler(broken, scheduler=BackgroundScheduler(timezone="UTC"))

    assert scheduler.run_once() is None
    assert scheduler.last_summary is None

    ok = ReconcileScheduler(_summary, scheduler=BackgroundScheduler(timezone="UTC"))
    summary = ok.run_once()
    assert summary is not None
    assert ok.last_summary is summary
