"""Notification dispatch: resolve, render, send, audit and report one entity at a time."""

from datetime import date, datetime, timedelta
from typing import Callable, ContextManager, Dict, Optional

from sqlalchemy.orm import Session

from app.config.models import AppConfig
from app.domain.models import EmailTemplate, EntityKind, NotificationEvent, SmtpProfile
from app.logging import get_logger
from app.logging.context import log_context
from app.notifications.audit import AuditRecorder
from app.notifications.completion import (
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    CompletionNotifier,
    format_status,
)
from app.notifications.models import SendResult, SMTPDeliveryError
from app.notifications.recipients import RecipientResolver
from app.notifications.settings import EmailSettingsResolver
from app.notifications.smtp_client import SMTPClient, build_message
from app.notifications.templates import PlaceholderRenderer
from app.persistence.database import get_session
from app.persistence.exceptions import PersistenceError, TenantConfigurationError
from app.persistence.repositories import ContractRepository, TenantRepository
from app.utils.timestamps import local_now, utc_now

from .models import BatchResult, NotificationOutcome, OutcomeStatus, PreparedNotification
from .sources import ENTITY_SOURCES, EntitySource, SourceContext

logger = get_logger(__name__, component="dispatcher")

NO_CONTRACTS_MESSAGE = "No contracts to process"


class NotificationDispatcher:
    """
    Runs the dispatch flow for one notification event:

    1. resolve the entity through the source registered for its kind
    2. resolve recipients; skip the entity when there are none
    3. load the tenant's email template for the notification type
    4. render subject and body
    5. resolve SMTP settings and route the message (live vs. test address)
    6. send through the mail transport
    7. record the attempt in the audit table, whatever the send outcome
    8. emit one status line through the completion notifier

    Send and audit failures become result values. A missing entity row fails
    that entity only. Missing tenant configuration raises
    TenantConfigurationError to the caller.
    """

    def __init__(
        self,
        app_config: AppConfig,
        recipient_resolver: RecipientResolver,
        settings_resolver: EmailSettingsResolver,
        smtp_client: SMTPClient,
        audit_recorder: AuditRecorder,
        completion_notifier: CompletionNotifier,
        renderer: Optional[PlaceholderRenderer] = None,
        session_provider: Callable[[], ContextManager[Session]] = get_session,
        clock: Callable[[], datetime] = utc_now,
        sources: Optional[Dict[EntityKind, EntitySource]] = None,
    ):
        """
        Args:
            app_config: Application configuration (environment, timezone, email options)
            recipient_resolver: Computes recipients per scope
            settings_resolver: Resolves per-tenant SMTP profiles
            smtp_client: Mail transport
            audit_recorder: Writes audit rows
            completion_notifier: Receives status lines
            renderer: Placeholder renderer (creates default if None)
            session_provider: Session scope factory
            clock: Returns the current UTC time
            sources: Entity sources by kind (defaults to ENTITY_SOURCES)
        """
        self.app_config = app_config
        self.recipient_resolver = recipient_resolver
        self.settings_resolver = settings_resolver
        self.smtp_client = smtp_client
        self.audit_recorder = audit_recorder
        self.completion_notifier = completion_notifier
        self.renderer = renderer or PlaceholderRenderer()
        self.session_provider = session_provider
        self.clock = clock
        self.sources = sources if sources is not None else ENTITY_SOURCES
        self.source_context = SourceContext(
            environment=app_config.environment,
            link_domain=app_config.link_domain,
        )

    def today(self) -> date:
        """Calendar date in the configured timezone."""
        return self.local_now().date()

    def local_now(self) -> datetime:
        return local_now(self.app_config.tz, self.clock())

    def dispatch(self, event: NotificationEvent) -> NotificationOutcome:
        """Dispatch one event.

        Args:
            event: Contract expiration or report reminder event

        Returns:
            NotificationOutcome describing what happened

        Raises:
            TenantConfigurationError: If the tenant's client, email template or
                SMTP settings are missing; nothing is sent or audited
        """
        with log_context(entity_kind=event.kind.value, entity_id=event.entity_id):
            source = self.sources.get(event.kind)
            if source is None:
                raise ValueError(f"No entity source registered for {event.kind.value}")

            try:
                with self.session_provider() as session:
                    prepared = source(session, event, self.source_context)
            except TenantConfigurationError:
                raise
            except PersistenceError as e:
                logger.error(
                    f"Could not resolve {event.kind.value} {event.entity_id}: {e}",
                    extra={"event": "dispatch.entity_failed", "error_type": type(e).__name__},
                )
                return self._finish(
                    NotificationOutcome(event=event, status=OutcomeStatus.FAILED, message=str(e)),
                    STATUS_FAILED,
                )

            with log_context(tenant=prepared.tenant_code):
                return self._dispatch_prepared(prepared)

    def _dispatch_prepared(self, prepared: PreparedNotification) -> NotificationOutcome:
        outcome = NotificationOutcome(
            event=prepared.event,
            status=OutcomeStatus.FAILED,
            message="",
            tenant_code=prepared.tenant_code,
            display_name=prepared.display_name,
        )

        if prepared.skip_reason:
            outcome.status = OutcomeStatus.SKIPPED_UNPUBLISHED
            outcome.message = prepared.skip_reason
            logger.info(
                f"Skipping {prepared.display_name}: {prepared.skip_reason}",
                extra={"event": "dispatch.skipped", "reason": "unpublished"},
            )
            return self._finish(outcome, STATUS_SKIPPED)

        recipients = self.recipient_resolver.resolve(prepared.scope)
        outcome.recipients = recipients
        if not recipients:
            outcome.status = OutcomeStatus.SKIPPED_NO_RECIPIENTS
            outcome.message = "No recipients"
            logger.info(
                f"Skipping {prepared.display_name}: no recipients",
                extra={"event": "dispatch.skipped", "reason": "no_recipients"},
            )
            return self._finish(outcome, STATUS_SKIPPED)

        template = self._load_template(prepared.tenant_code, prepared.notification_type)
        subject = self.renderer.render(template.subject, prepared.values)
        body = self.renderer.render(template.body, prepared.values)

        profile = self.settings_resolver.resolve(prepared.tenant_code)
        routed_to = profile.route(recipients, self.app_config.email.observer_address)
        outcome.routed_to = routed_to

        send_result = self._send(prepared, profile, routed_to, subject, body)
        outcome.send_result = send_result
        outcome.audit_result = self.audit_recorder.record(
            recipient=routed_to,
            subject=subject,
            body=body,
            sent=send_result.success,
            tenant_code=prepared.tenant_code,
        )

        if not send_result.success:
            outcome.status = OutcomeStatus.SEND_FAILED
            outcome.message = send_result.message
            return self._finish(outcome, STATUS_FAILED)

        outcome.status = OutcomeStatus.SENT
        outcome.message = send_result.message
        if not outcome.audit_result.success:
            outcome.message = f"{send_result.message}; {outcome.audit_result.message}"
            return self._finish(outcome, STATUS_FAILED)

        return self._finish(outcome, STATUS_SUCCESS)

    def _load_template(self, tenant_code: str, notification_type: str) -> EmailTemplate:
        with self.session_provider() as session:
            template = TenantRepository(session).get_email_template(tenant_code, notification_type)
        if template is None:
            raise TenantConfigurationError(
                tenant_code,
                f"No email template for notification type '{notification_type}' "
                f"and tenant '{tenant_code}'",
            )
        return template

    def _send(
        self,
        prepared: PreparedNotification,
        profile: SmtpProfile,
        routed_to: str,
        subject: str,
        body: str,
    ) -> SendResult:
        if not routed_to:
            logger.error(
                f"No destination address for {prepared.display_name}",
                extra={"event": "dispatch.send_failed", "reason": "no_destination"},
            )
            return SendResult.failed("No destination address")

        message = build_message(
            to=routed_to,
            subject=subject,
            body=body,
            sender=profile.sender,
            from_address=profile.support_email,
            priority=prepared.priority,
        )

        try:
            self.smtp_client.send(message, profile, use_tls=self.app_config.email.use_tls)
        except SMTPDeliveryError as e:
            logger.error(
                f"Send failed for {prepared.display_name}: {e}",
                extra={"event": "dispatch.send_failed", "error_type": type(e).__name__},
            )
            return SendResult.failed(str(e))

        logger.info(
            f"Email sent for {prepared.display_name}",
            extra={
                "event": "dispatch.sent",
                "live": profile.is_live,
                "priority": prepared.priority,
            },
        )
        return SendResult.ok("Email sent")

    def _finish(self, outcome: NotificationOutcome, status: str) -> NotificationOutcome:
        outcome.status_line = format_status(
            status,
            outcome.tenant_code,
            outcome.display_name or f"{outcome.event.kind.value}:{outcome.event.entity_id}",
            outcome.message,
            self.local_now(),
        )
        self.completion_notifier.notify(outcome.status_line)
        return outcome

    def dispatch_contract_expirations(self, days: int) -> BatchResult:
        """Notify about every eligible contract expiring ``days`` from today.

        Stops at the first send failure; messages already sent stay sent.

        Args:
            days: Days until expiration

        Returns:
            BatchResult with the number of recipients emailed

        Raises:
            TenantConfigurationError: If a tenant's configuration is missing
            PersistenceError: If the contract query fails
        """
        expiration_date = self.today() + timedelta(days=days)
        with self.session_provider() as session:
            contracts = ContractRepository(session).get_expiring(expiration_date)

        logger.info(
            f"Found {len(contracts)} contracts expiring on {expiration_date} ({days} days)",
            extra={
                "event": "dispatch.batch.started",
                "days": days,
                "contract_count": len(contracts),
            },
        )

        if not contracts:
            return BatchResult(success=True, message=NO_CONTRACTS_MESSAGE)

        batch = BatchResult(success=True)
        for contract in contracts:
            outcome = self.dispatch(NotificationEvent.contract(contract.id, days))
            batch.outcomes.append(outcome)

            if outcome.status == OutcomeStatus.SEND_FAILED:
                batch.success = False
                batch.message = outcome.message
                logger.warning(
                    f"Stopping batch after send failure: {outcome.message}",
                    extra={
                        "event": "dispatch.batch.aborted",
                        "days": days,
                        "emails_sent": batch.emails_sent,
                    },
                )
                return batch

            if outcome.sent:
                batch.emails_sent += len(outcome.recipients)

        batch.message = f"{batch.emails_sent} Emails sent successfully"
        logger.info(
            batch.message,
            extra={
                "event": "dispatch.batch.completed",
                "days": days,
                "emails_sent": batch.emails_sent,
                "sent": batch.count(OutcomeStatus.SENT),
                "skipped": batch.count(OutcomeStatus.SKIPPED_NO_RECIPIENTS),
                "failed": batch.count(OutcomeStatus.FAILED),
            },
        )
        return batch

    def dispatch_report_reminder(self, reminder_id: int, month: str) -> NotificationOutcome:
        """Send one report reminder for the reporting period ``month``."""
        return self.dispatch(NotificationEvent.reminder(reminder_id, month))
