"""Recurring recovery-report scheduler built on APScheduler."""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)


def parse_cron(cron: str, timezone: str = "UTC") -> CronTrigger:
    """Build a CronTrigger from a 5-field expression (min hour day month weekday)."""
    parts = cron.strip().split()
    if len(parts) != 5:
        raise ValueError(f"Cron expression must have 5 fields, got {len(parts)}: {cron!r}")
    return CronTrigger(
        minute=parts[0],
        hour=parts[1],
        day=parts[2],
        month=parts[3],
        day_of_week=parts[4],
        timezone=timezone,
    )


def report_job_id(site_url: str) -> str:
    return f"weekly_report:{site_url}"


class ReportScheduler:
    """Wrapper around APScheduler for the weekly recovery report jobs.

    Usage::

        sched = ReportScheduler(job_store_url=None)
        sched.add_job("weekly_report:example.com", run_report, cron="0 6 * * 1")
        sched.start()
    """

    def __init__(
        self,
        job_store_url: Optional[str] = "sqlite:///data/scheduler_jobs.db",
        timezone: str = "UTC",
        max_workers: int = 2,
    ):
        if job_store_url is None:
            jobstore = MemoryJobStore()
        else:
            if job_store_url.startswith("sqlite:///"):
                Path(job_store_url.replace("sqlite:///", "")).parent.mkdir(parents=True, exist_ok=True)
            jobstore = SQLAlchemyJobStore(url=job_store_url)

        self._scheduler = BackgroundScheduler(
            jobstores={"default": jobstore},
            executors={"default": ThreadPoolExecutor(max_workers=max_workers)},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 3600},
            timezone=timezone,
        )
        self._timezone = timezone
        self._running = False
        logger.info("ReportScheduler initialized (store=%s, tz=%s)", job_store_url or "memory", timezone)

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            logger.warning("Scheduler is already running.")
            return
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started.")

    def stop(self, wait: bool = True) -> None:
        """Shut down the scheduler."""
        if not self._running:
            return
        self._scheduler.shutdown(wait=wait)
        self._running = False
        logger.info("Scheduler stopped.")

    def add_job(
        self,
        job_id: str,
        func: Callable,
        cron: str,
        args: Optional[tuple] = None,
        kwargs: Optional[dict[str, Any]] = None,
    ) -> None:
        """Add or replace a cron-triggered job."""
        self._scheduler.add_job(
            func,
            trigger=parse_cron(cron, self._timezone),
            id=job_id,
            args=args or (),
            kwargs=kwargs or {},
            replace_existing=True,
        )
        logger.info("Job added: %s [%s]", job_id, cron)

    def remove_job(self, job_id: str) -> bool:
        """Remove a scheduled job by ID; False when it did not exist."""
        if self._scheduler.get_job(job_id) is None:
            logger.warning("Job not found: %s", job_id)
            return False
        self._scheduler.remove_job(job_id)
        logger.info("Job removed: %s", job_id)
        return True

    def list_jobs(self) -> list[dict[str, Any]]:
        """List all scheduled jobs with their next run time."""
        return [
            {
                "id": job.id,
                "trigger": str(job.trigger),
                "next_run_time": (
                    job.next_run_time.isoformat()
                    if getattr(job, "next_run_time", None) else None
                ),
            }
            for job in self._scheduler.get_jobs()
        ]

    def schedule_weekly_report(
        self,
        site_url: str,
        cron: str = "0 6 * * 1",
        config_path: str = "config/settings.yaml",
    ) -> str:
        """Register the recurring recovery report for *site_url*; returns the job id."""
        from indexwatch.app import run_weekly_report

        job_id = report_job_id(site_url)
        self.add_job(job_id, run_weekly_report, cron, args=(site_url, config_path))
        return job_id
