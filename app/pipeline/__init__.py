"""Notification dispatch and job orchestration for contract expirations and report reminders."""

from .dispatcher import NotificationDispatcher
from .models import (
    BatchResult,
    JobRunStats,
    NotificationOutcome,
    OutcomeStatus,
    PreparedNotification,
    RunResult,
)
from .reminders import due_reminders, parse_months
from .runner import NotificationJobRunner
from .sources import ENTITY_SOURCES, SourceContext

__all__ = [
    "NotificationDispatcher",
    "NotificationJobRunner",
    "BatchResult",
    "JobRunStats",
    "NotificationOutcome",
    "OutcomeStatus",
    "PreparedNotification",
    "RunResult",
    "ENTITY_SOURCES",
    "SourceContext",
    "due_reminders",
    "parse_months",
]
