"""Data models for dispatch outcomes and run reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from app.domain.models import EntityKind, NotificationEvent
from app.notifications.models import SendResult
from app.notifications.recipients import RecipientScope
from app.notifications.smtp_client import PRIORITY_NORMAL


class OutcomeStatus(str, Enum):
    """Final state of one entity."""

    SENT = "sent"
    SEND_FAILED = "send_failed"
    SKIPPED_NO_RECIPIENTS = "skipped_no_recipients"
    SKIPPED_UNPUBLISHED = "skipped_unpublished"
    FAILED = "failed"


@dataclass
class PreparedNotification:
    """Everything an entity source resolved for one event.

    Attributes:
        event: The event this was prepared from
        tenant_code: Tenant the entity belongs to
        display_name: Entity name used in status lines
        notification_type: Key selecting the tenant's email template
        values: Placeholder name -> value for subject and body
        scope: Who receives the notification
        priority: PRIORITY_HIGH or PRIORITY_NORMAL
        skip_reason: Set when the entity must not be sent at all
    """

    event: NotificationEvent
    tenant_code: str
    display_name: str
    notification_type: str
    values: Dict[str, object]
    scope: RecipientScope
    priority: str = PRIORITY_NORMAL
    skip_reason: Optional[str] = None


@dataclass
class NotificationOutcome:
    """
    Result of dispatching one event.

    Attributes:
        event: Event that was dispatched
        status: Final state
        message: Human-readable result, as used in the status line
        tenant_code: Tenant code, when it could be resolved
        display_name: Entity display name, when it could be resolved
        recipients: Recipients computed for the entity
        routed_to: Outbound To value actually used
        send_result: Mail transport outcome (None if no send was attempted)
        audit_result: Audit insert outcome (None if no send was attempted)
        status_line: Line forwarded to the completion notifier
    """

    event: NotificationEvent
    status: OutcomeStatus
    message: str
    tenant_code: Optional[str] = None
    display_name: Optional[str] = None
    recipients: List[str] = field(default_factory=list)
    routed_to: Optional[str] = None
    send_result: Optional[SendResult] = None
    audit_result: Optional[SendResult] = None
    status_line: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == OutcomeStatus.SENT


@dataclass
class BatchResult:
    """
    Aggregate outcome of one batch of events.

    Attributes:
        success: False when the batch stopped on a send failure
        emails_sent: Number of recipients of successfully sent messages
        message: Last result message
        outcomes: Per-entity outcomes in processing order
    """

    success: bool
    emails_sent: int = 0
    message: str = ""
    outcomes: List[NotificationOutcome] = field(default_factory=list)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)


@dataclass
class JobRunStats:
    """Statistics for one configured job within a run."""

    job_name: str
    kind: EntityKind
    success: bool = True
    emails_sent: int = 0
    sent_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    duration_seconds: float = 0.0
    message: str = ""

    @classmethod
    def from_batch(
        cls, job_name: str, kind: EntityKind, batch: BatchResult, duration_seconds: float
    ) -> "JobRunStats":
        return cls(
            job_name=job_name,
            kind=kind,
            success=batch.success,
            emails_sent=batch.emails_sent,
            sent_count=batch.count(OutcomeStatus.SENT),
            skipped_count=(
                batch.count(OutcomeStatus.SKIPPED_NO_RECIPIENTS)
                + batch.count(OutcomeStatus.SKIPPED_UNPUBLISHED)
            ),
            failed_count=(
                batch.count(OutcomeStatus.FAILED) + batch.count(OutcomeStatus.SEND_FAILED)
            ),
            duration_seconds=duration_seconds,
            message=batch.message,
        )


@dataclass
class RunResult:
    """
    Aggregate results from one scheduled or manual run.

    Attributes:
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        job_stats: Per-job statistics
        skipped: Whether the run was skipped (lock already held)
    """

    run_started_at: datetime
    run_finished_at: datetime
    job_stats: List[JobRunStats] = field(default_factory=list)
    skipped: bool = False

    @property
    def had_errors(self) -> bool:
        return any(not stats.success for stats in self.job_stats)

    @property
    def emails_sent(self) -> int:
        return sum(stats.emails_sent for stats in self.job_stats)

    @property
    def duration_seconds(self) -> float:
        return (self.run_finished_at - self.run_started_at).total_seconds()
