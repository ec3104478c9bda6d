"""Scheduling module for cron-driven execution of the notification jobs."""

from .service import ScheduledJob, SchedulerService

__all__ = [
    "ScheduledJob",
    "SchedulerService",
]
