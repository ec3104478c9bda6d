"""Run status lines and the sinks they are forwarded to.

A status line has the form::

    SUCCESS tenant:TX / entity:Transit Grant(42) / result:Email sent:01/15/2025 09:05:00 AM

It is meant for people reading logs or alert mail; the alert sink only picks
the status word and tenant code out of it for the subject line.
"""

import re
from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from app.domain.models import SmtpProfile
from app.logging import get_logger
from app.utils.timestamps import format_status_timestamp

from .models import NotificationError
from .smtp_client import SMTPClient, build_message
from .templates import AlertTemplateRenderer

logger = get_logger(__name__, component="completion")

STATUS_SUCCESS = "SUCCESS"
STATUS_FAILED = "FAILED"
STATUS_SKIPPED = "SKIPPED"

_TENANT_PATTERN = re.compile(r"tenant:(\S+)")


def format_status(
    status: str,
    tenant: Optional[str],
    entity: Optional[str],
    result: str,
    timestamp: datetime,
) -> str:
    """Build a status line.

    Args:
        status: SUCCESS, FAILED or SKIPPED
        tenant: Tenant code ("" if unknown)
        entity: Entity display name ("" if unknown)
        result: Human-readable outcome
        timestamp: Local time of the outcome
    """
    return (
        f"{status} tenant:{tenant or ''} / entity:{entity or ''} / "
        f"result:{result}:{format_status_timestamp(timestamp)}"
    )


class StatusSink(Protocol):
    def emit(self, status_line: str) -> None: ...


class LogSink:
    """Writes every status line to the log at INFO."""

    def emit(self, status_line: str) -> None:
        logger.info(status_line, extra={"event": "completion.status"})


class EmailAlertSink:
    """Mails every status line to the ops addresses.

    Delivery problems are logged and never raised; a broken alert channel
    must not change the outcome of a run.
    """

    def __init__(
        self,
        recipients: List[str],
        profile: SmtpProfile,
        smtp_client: Optional[SMTPClient] = None,
        renderer: Optional[AlertTemplateRenderer] = None,
        service_name: str = "expiration-notifier",
        environment: str = "local",
        use_tls: bool = True,
    ):
        self.recipients = list(recipients)
        self.profile = profile
        self.smtp_client = smtp_client or SMTPClient()
        self.renderer = renderer or AlertTemplateRenderer()
        self.service_name = service_name
        self.environment = environment
        self.use_tls = use_tls

    def emit(self, status_line: str) -> None:
        if not self.recipients:
            return

        status = status_line.split(" ", 1)[0]
        tenant_match = _TENANT_PATTERN.search(status_line)
        context = {
            "status": status,
            "status_line": status_line,
            "service": self.service_name,
            "environment": self.environment,
            "tenant": tenant_match.group(1) if tenant_match else "",
        }

        try:
            rendered = self.renderer.render(context)
            message = build_message(
                to=", ".join(self.recipients),
                subject=rendered["subject"],
                body=rendered["text_body"],
                sender=self.profile.sender,
                is_html=False,
            )
            self.smtp_client.send(message, self.profile, use_tls=self.use_tls)
        except NotificationError as e:
            logger.warning(
                f"Status alert could not be delivered: {e}",
                extra={"event": "completion.alert_failed", "error_type": type(e).__name__},
            )
            return

        logger.debug(
            f"Status alert sent to {len(self.recipients)} recipients",
            extra={"event": "completion.alert_sent"},
        )


class CompletionNotifier:
    """Forwards status lines to every configured sink."""

    def __init__(self, sinks: Optional[Iterable[StatusSink]] = None):
        self.sinks = list(sinks) if sinks is not None else [LogSink()]

    def notify(self, status_line: str) -> None:
        for sink in self.sinks:
            sink.emit(status_line)
