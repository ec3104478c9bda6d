"""Domain models for the expiration notifier."""

from .models import (
    AuditRecord,
    Client,
    Contract,
    EmailTemplate,
    EntityKind,
    NotificationEvent,
    Organization,
    Program,
    ReportReminder,
    ReportTemplate,
    SmtpProfile,
)

__all__ = [
    "AuditRecord",
    "Client",
    "Contract",
    "EmailTemplate",
    "EntityKind",
    "NotificationEvent",
    "Organization",
    "Program",
    "ReportReminder",
    "ReportTemplate",
    "SmtpProfile",
]
