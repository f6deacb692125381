from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from registry_sync.sync.results import SyncRunSummary

logger = logging.getLogger(__name__)

RECONCILE_JOB_ID = "reconcile_registry"


class ReconcileScheduler:
    """
    Run a reconciliation pass on a cron cadence.

    ``run_pass`` does the whole unit of work (load registry, reconcile, save,
    write summary). At most one pass runs at a time and missed runs are
    coalesced into one.
    """

    def __init__(
        self,
        run_pass: Callable[[], SyncRunSummary],
        *,
        cron: str = "0 2 * * *",
        timezone: str = "UTC",
        scheduler: BaseScheduler | None = None,
    ) -> None:
        self.run_pass = run_pass
        self.cron = cron
        self.timezone = timezone
        self.scheduler = scheduler or BlockingScheduler(
            timezone=timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 300,
            },
        )
        self.last_summary: SyncRunSummary | None = None

    def run_once(self) -> SyncRunSummary | None:
        """Run one pass now. Errors are logged so the schedule keeps going."""

        logger.info("Reconciliation pass starting")
        try:
            summary = self.run_pass()
        except Exception:
            logger.exception("Reconciliation pass failed")
            return None
        self.last_summary = summary
        logger.info(
            "Reconciliation pass done: updated=%d unchanged=%d failed=%d",
            summary.updated,
            summary.unchanged,
            summary.failed,
        )
        return summary

    def add_job(self) -> Any:
        trigger = CronTrigger.from_crontab(self.cron, timezone=self.timezone)
        job = self.scheduler.add_job(
            self.run_once,
            trigger=trigger,
            id=RECONCILE_JOB_ID,
            name="Reconcile registry with provider statistics",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled %s with cron '%s' (%s)", RECONCILE_JOB_ID, self.cron, self.timezone)
        return job

    def start(self) -> None:
        """Register the job and start the scheduler. Blocks with the default scheduler."""

        self.add_job()
        logger.info("Starting reconciliation scheduler (Ctrl+C to stop)")
        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler stopped")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
