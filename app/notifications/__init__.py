"""Notification building blocks: rendering, recipients, SMTP, audit and status lines.

- PlaceholderRenderer: literal [placeholder] substitution for tenant templates
- RecipientResolver: role/organization membership -> distinct addresses (fail-soft)
- EmailSettingsResolver: per-tenant SMTP profile
- SMTPClient: smtplib wrapper with TLS/SSL, authentication and timeouts
- AuditRecorder: one Email_SystemEmails row per send attempt
- CompletionNotifier: forwards run status lines to the log and optional ops mail
"""

from .audit import AuditRecorder
from .completion import (
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    CompletionNotifier,
    EmailAlertSink,
    LogSink,
    format_status,
)
from .models import (
    NotificationError,
    NotificationTemplateError,
    SendResult,
    SMTPDeliveryError,
)
from .recipients import (
    SUBMIT_REPORTING_ROLE,
    VIEW_CONTRACTS_ROLE,
    RecipientResolver,
    RecipientScope,
    ScopeKind,
)
from .settings import EmailSettingsResolver
from .smtp_client import (
    PRIORITY_HIGH,
    PRIORITY_NORMAL,
    SMTPClient,
    build_message,
    is_valid_address,
    parse_recipients,
)
from .templates import AlertTemplateRenderer, PlaceholderRenderer

__all__ = [
    # Components
    "AuditRecorder",
    "CompletionNotifier",
    "EmailAlertSink",
    "LogSink",
    "EmailSettingsResolver",
    "RecipientResolver",
    "SMTPClient",
    "PlaceholderRenderer",
    "AlertTemplateRenderer",
    # Models and results
    "RecipientScope",
    "ScopeKind",
    "SendResult",
    # Exceptions
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    # Utilities
    "build_message",
    "format_status",
    "is_valid_address",
    "parse_recipients",
    # Constants
    "PRIORITY_HIGH",
    "PRIORITY_NORMAL",
    "STATUS_FAILED",
    "STATUS_SKIPPED",
    "STATUS_SUCCESS",
    "SUBMIT_REPORTING_ROLE",
    "VIEW_CONTRACTS_ROLE",
]
