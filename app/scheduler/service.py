"""Scheduler service for cron-style job execution."""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.logging import get_logger

logger = get_logger(__name__, component="scheduler")


@dataclass(frozen=True)
class ScheduledJob:
    """
    One job registered with the scheduler.

    Attributes:
        job_id: Stable APScheduler job id
        name: Human-readable name
        func: Callable executed on each trigger
        crontab: Five-field crontab expression, evaluated in the scheduler timezone
    """

    job_id: str
    name: str
    func: Callable[[], object]
    crontab: str


class SchedulerService:
    """
    Wraps APScheduler to trigger notification jobs on cron schedules.

    Uses BackgroundScheduler to run jobs in a separate thread while
    allowing the main thread to handle signals and coordinate shutdown.
    """

    def __init__(
        self,
        jobs: List[ScheduledJob],
        timezone: str = "America/New_York",
        shutdown_event: Optional[threading.Event] = None,
        misfire_grace_seconds: int = 3600,
    ):
        """
        Initialize the scheduler service.

        Args:
            jobs: Jobs to register on start()
            timezone: IANA timezone the crontab expressions are evaluated in
            shutdown_event: Optional event to set on shutdown for coordination
            misfire_grace_seconds: How late a run may start and still execute
        """
        self.jobs = list(jobs)
        self.timezone = timezone
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,  # Prevent overlapping runs
                "coalesce": True,  # If run is delayed, only execute once
                "misfire_grace_time": misfire_grace_seconds,
            },
            timezone=timezone,
        )

    def start(self) -> None:
        """Register every job and start the scheduler."""
        for job in self.jobs:
            self.scheduler.add_job(
                func=job.func,
                trigger=CronTrigger.from_crontab(job.crontab, timezone=self.timezone),
                id=job.job_id,
                name=job.name,
                replace_existing=True,
            )

        self.scheduler.start()

        next_runs = self.get_next_run_times()
        logger.info(
            f"Scheduler started with {len(self.jobs)} jobs",
            extra={
                "event": "scheduler.started",
                "timezone": self.timezone,
                "jobs": {
                    job_id: next_run.isoformat() if next_run else None
                    for job_id, next_run in next_runs.items()
                },
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running jobs to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={
                "event": "scheduler.stopping",
                "wait_for_jobs": wait,
            },
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self, job_id: str) -> None:
        """
        Run one registered job immediately in the current thread.

        Raises:
            KeyError: If no job with that id is registered
        """
        job = next((job for job in self.jobs if job.job_id == job_id), None)
        if job is None:
            raise KeyError(job_id)

        logger.info(
            f"Triggering immediate run of {job_id}",
            extra={"event": "scheduler.trigger_now", "job_id": job_id},
        )
        job.func()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_times(self) -> Dict[str, Optional[datetime]]:
        """Next run time per registered job id (None if paused or not scheduled)."""
        result = {}
        for job in self.jobs:
            scheduled = self.scheduler.get_job(job.job_id)
            result[job.job_id] = getattr(scheduled, "next_run_time", None) if scheduled else None
        return result
