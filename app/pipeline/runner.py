"""Job orchestration for scheduled and manual notification runs."""

import threading
import time
from typing import Callable, List, Optional
from uuid import uuid4

from app.config.models import AppConfig
from app.domain.models import EntityKind, NotificationEvent
from app.logging import get_logger
from app.logging.context import log_context
from app.notifications.completion import (
    STATUS_FAILED,
    STATUS_SUCCESS,
    CompletionNotifier,
    format_status,
)
from app.persistence.database import get_session
from app.persistence.exceptions import PersistenceError, TenantConfigurationError
from app.persistence.repositories import ReportRepository
from app.utils.timestamps import utc_now

from .dispatcher import NotificationDispatcher
from .models import BatchResult, JobRunStats, OutcomeStatus, RunResult
from .reminders import due_reminders

logger = get_logger(__name__, component="runner")

CONTRACT_EXPIRATION_JOB = "contract_expiration"
REPORT_REMINDERS_JOB = "report_reminders"
NO_REMINDERS_MESSAGE = "No reminders due"


class NotificationJobRunner:
    """
    Runs the configured notification jobs.

    Runs never overlap within a process: a run that finds the lock held is
    skipped and reported as such. Each job ends with one status line through
    the completion notifier. A TenantConfigurationError or database failure
    ends the job as failed; other jobs in the same run still execute.
    """

    def __init__(
        self,
        app_config: AppConfig,
        dispatcher: NotificationDispatcher,
        completion_notifier: CompletionNotifier,
        session_provider=get_session,
    ):
        """
        Args:
            app_config: Application configuration
            dispatcher: Dispatcher used for every event
            completion_notifier: Receives job-level status lines
            session_provider: Session scope factory
        """
        self.app_config = app_config
        self.dispatcher = dispatcher
        self.completion_notifier = completion_notifier
        self.session_provider = session_provider
        self._lock = threading.Lock()

    def run_once(self) -> RunResult:
        """Run every enabled job once (manual run)."""
        jobs = []
        if self.app_config.jobs.contract_expiration.enabled:
            jobs.append(self._contract_expiration_job)
        if self.app_config.jobs.report_reminders.enabled:
            jobs.append(self._report_reminders_job)
        return self._run(jobs)

    def run_contract_expirations(self, days: Optional[List[int]] = None) -> RunResult:
        """Run the contract expiration job for each threshold.

        Args:
            days: Thresholds to run; defaults to the configured list
        """
        return self._run([lambda: self._contract_expiration_job(days)])

    def run_report_reminders(self) -> RunResult:
        """Dispatch every report reminder due today."""
        return self._run([self._report_reminders_job])

    def run_single_reminder(self, reminder_id: int, month: str) -> RunResult:
        """Dispatch one reminder regardless of its schedule."""
        return self._run([lambda: [self._single_reminder_job(reminder_id, month)]])

    def _run(self, jobs: List[Callable[[], List[JobRunStats]]]) -> RunResult:
        run_started_at = utc_now()
        run_id = uuid4().hex

        # Try to acquire the lock; if already held, skip this run
        if not self._lock.acquire(blocking=False):
            with log_context(run_id=run_id):
                logger.warning(
                    "Run skipped: previous run still in progress",
                    extra={"event": "runner.run.skipped", "reason": "lock_held"},
                )
            return RunResult(run_started_at=run_started_at, run_finished_at=utc_now(), skipped=True)

        try:
            with log_context(run_id=run_id):
                logger.info(
                    "Run started",
                    extra={"event": "runner.run.started", "job_count": len(jobs)},
                )

                job_stats: List[JobRunStats] = []
                for job in jobs:
                    job_stats.extend(job())

                result = RunResult(
                    run_started_at=run_started_at,
                    run_finished_at=utc_now(),
                    job_stats=job_stats,
                )

                logger.info(
                    "Run completed",
                    extra={
                        "event": "runner.run.completed",
                        "duration_ms": int(result.duration_seconds * 1000),
                        "emails_sent": result.emails_sent,
                        "had_errors": result.had_errors,
                    },
                )
                return result

        finally:
            self._lock.release()

    def _contract_expiration_job(self, days: Optional[List[int]] = None) -> List[JobRunStats]:
        thresholds = days if days is not None else self.app_config.jobs.contract_expiration.days
        stats = []
        for threshold in thresholds:
            job_name = f"{CONTRACT_EXPIRATION_JOB}:{threshold}"
            stats.append(
                self._execute(
                    job_name,
                    EntityKind.CONTRACT_EXPIRATION,
                    f"Contracts expiring in {threshold} days",
                    lambda threshold=threshold: self.dispatcher.dispatch_contract_expirations(
                        threshold
                    ),
                )
            )
        return stats

    def _report_reminders_job(self) -> List[JobRunStats]:
        return [
            self._execute(
                REPORT_REMINDERS_JOB,
                EntityKind.REPORT_REMINDER,
                "Report reminders",
                self._dispatch_due_reminders,
            )
        ]

    def _single_reminder_job(self, reminder_id: int, month: str) -> JobRunStats:
        def work() -> BatchResult:
            return self._batch_from_events([NotificationEvent.reminder(reminder_id, month)])

        return self._execute(
            f"{REPORT_REMINDERS_JOB}:{reminder_id}",
            EntityKind.REPORT_REMINDER,
            f"Report reminder {reminder_id} ({month})",
            work,
        )

    def _dispatch_due_reminders(self) -> BatchResult:
        today = self.dispatcher.today()
        with self.session_provider() as session:
            reminders = ReportRepository(session).list_active_reminders()

        due = due_reminders(reminders, today)
        logger.info(
            f"{len(due)} of {len(reminders)} report reminders due on {today}",
            extra={"event": "runner.reminders.due", "due_count": len(due)},
        )
        if not due:
            return BatchResult(success=True, message=NO_REMINDERS_MESSAGE)

        return self._batch_from_events(
            [NotificationEvent.reminder(reminder.id, month) for reminder, month in due]
        )

    def _batch_from_events(self, events: List[NotificationEvent]) -> BatchResult:
        """Dispatch reminder events one by one; send failures do not stop the others."""
        batch = BatchResult(success=True)
        for event in events:
            outcome = self.dispatcher.dispatch(event)
            batch.outcomes.append(outcome)
            if outcome.sent:
                batch.emails_sent += len(outcome.recipients)
            elif outcome.status == OutcomeStatus.SEND_FAILED:
                batch.success = False
                batch.message = outcome.message

        if batch.success:
            batch.message = f"{batch.emails_sent} Emails sent successfully"
        return batch

    def _execute(
        self,
        job_name: str,
        kind: EntityKind,
        entity_label: str,
        work: Callable[[], BatchResult],
    ) -> JobRunStats:
        job_start = time.time()

        with log_context(job=job_name):
            logger.info(f"Job {job_name} started", extra={"event": "runner.job.started"})

            tenant = None
            try:
                batch = work()
            except TenantConfigurationError as e:
                tenant = e.tenant
                batch = BatchResult(success=False, message=str(e))
                logger.error(
                    f"Job {job_name} aborted, tenant configuration missing: {e}",
                    extra={"event": "runner.job.aborted", "tenant": e.tenant},
                )
            except PersistenceError as e:
                batch = BatchResult(success=False, message=str(e))
                logger.error(
                    f"Job {job_name} aborted, database error: {e}",
                    exc_info=True,
                    extra={"event": "runner.job.aborted", "error_type": type(e).__name__},
                )

            stats = JobRunStats.from_batch(job_name, kind, batch, time.time() - job_start)

            self.completion_notifier.notify(
                format_status(
                    STATUS_SUCCESS if batch.success else STATUS_FAILED,
                    tenant,
                    entity_label,
                    batch.message,
                    self.dispatcher.local_now(),
                )
            )

            logger.info(
                f"Job {job_name} finished",
                extra={
                    "event": "runner.job.completed",
                    "success": stats.success,
                    "emails_sent": stats.emails_sent,
                    "sent": stats.sent_count,
                    "skipped": stats.skipped_count,
                    "failed": stats.failed_count,
                    "duration_ms": int(stats.duration_seconds * 1000),
                },
            )
            return stats
