"""Audit trail of send attempts (Email_SystemEmails)."""

from datetime import datetime
from typing import Callable, ContextManager, Optional

from sqlalchemy.orm import Session

from app.domain.models import AuditRecord
from app.logging import get_logger
from app.persistence.database import get_session
from app.persistence.exceptions import PersistenceError
from app.persistence.repositories import SystemEmailRepository
from app.persistence.triggers import TriggerSuspension
from app.utils.timestamps import utc_now

from .models import SendResult

logger = get_logger(__name__, component="audit")


class AuditRecorder:
    """Writes exactly one audit row per send attempt.

    With a ``TriggerSuspension`` the insert runs in the suspension's own
    transaction: trigger disable, insert and re-enable commit together or
    not at all. Without one, the injected session scope is used. Failures
    are rolled back and returned as a failed SendResult.
    """

    def __init__(
        self,
        trigger_suspension: Optional[TriggerSuspension] = None,
        session_provider: Callable[[], ContextManager[Session]] = get_session,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.trigger_suspension = trigger_suspension
        self.session_provider = session_provider
        self.clock = clock

    def record(
        self, recipient: str, subject: str, body: str, sent: bool, tenant_code: str
    ) -> SendResult:
        record = AuditRecord(
            recipient=recipient,
            subject=subject,
            body=body,
            sent=sent,
            tenant_code=tenant_code,
            created_at=self.clock(),
        )

        try:
            if self.trigger_suspension is None:
                with self.session_provider() as session:
                    stored = SystemEmailRepository(session).add(record)
            else:
                stored = self._add_with_trigger_suspended(record)
        except PersistenceError as e:
            logger.error(
                f"Audit insert failed for tenant {tenant_code}: {e}",
                extra={"event": "audit.failed", "tenant": tenant_code, "error_type": type(e).__name__},
            )
            return SendResult.failed(f"Audit insert failed: {e}")

        logger.info(
            f"Audit row {stored.id} recorded for tenant {tenant_code}",
            extra={"event": "audit.recorded", "tenant": tenant_code, "sent": sent},
        )
        return SendResult.ok("Audit row recorded")

    def _add_with_trigger_suspended(self, record: AuditRecord) -> AuditRecord:
        """Insert on the suspension's connection so the row shares its transaction."""
        with self.trigger_suspension.suspended() as conn:
            session = Session(bind=conn, join_transaction_mode="rollback_only")
            try:
                return SystemEmailRepository(session).add(record)
            finally:
                session.close()
