"""Core domain models for notification events, tenant settings and audit rows.

- NotificationEvent: what triggered a dispatch (contract expiration or report reminder)
- Contract, ReportReminder, ReportTemplate: the entities notifications are about
- Organization, Program, Client: lookups used to fill template placeholders
- EmailTemplate: per-tenant subject/body with [placeholder] tokens
- SmtpProfile: per-tenant SMTP credentials and live/test routing
- AuditRecord: one row per send attempt
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class EntityKind(str, Enum):
    """Kind of entity a notification is about."""

    CONTRACT_EXPIRATION = "contract_expiration"
    REPORT_REMINDER = "report_reminder"


class NotificationEvent(BaseModel):
    """Identifies one entity to notify about.

    Contract events carry the days threshold that selected the contract;
    reminder events carry the month label of the reporting period.
    """

    kind: EntityKind
    entity_id: int = Field(..., description="Contract id or report reminder id")
    days_threshold: Optional[int] = Field(None, ge=0)
    month: Optional[str] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_kind_fields(self):
        if self.kind == EntityKind.CONTRACT_EXPIRATION and self.days_threshold is None:
            raise ValueError("Contract expiration events require days_threshold")
        if self.kind == EntityKind.REPORT_REMINDER and not self.month:
            raise ValueError("Report reminder events require a month label")
        return self

    @classmethod
    def contract(cls, contract_id: int, days: int) -> "NotificationEvent":
        return cls(kind=EntityKind.CONTRACT_EXPIRATION, entity_id=contract_id, days_threshold=days)

    @classmethod
    def reminder(cls, reminder_id: int, month: str) -> "NotificationEvent":
        return cls(kind=EntityKind.REPORT_REMINDER, entity_id=reminder_id, month=month)


class Contract(BaseModel):
    """A contract row as needed for expiration notices."""

    id: int
    organization_id: int
    client_id: int
    expiration_date: date
    contract_year: Optional[str] = None
    fund_source_type_id: Optional[int] = None
    contract_type_id: int = 1
    status: Optional[str] = None


class Organization(BaseModel):
    id: int
    legal_name: Optional[str] = None
    common_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        """``Legal Name (Common Name)`` as shown in contract emails."""
        return f"{self.legal_name or ''} ({self.common_name or ''})"


class Program(BaseModel):
    """Funding program (fund source type) of a contract."""

    id: int
    name: Optional[str] = None
    common_name: Optional[str] = None


class Client(BaseModel):
    """Tenant record; ``code`` is the tenant code used everywhere else."""

    id: int
    code: str


class ReportTemplate(BaseModel):
    id: int
    client_id: int
    display_name: str
    status: Optional[str] = None
    reporting_frequency: Optional[str] = None


class ReportReminder(BaseModel):
    """When a report-related notice should fire relative to a reporting period."""

    id: int
    report_template_id: int
    number_of_days: int = 0
    when_to_send: str = Field("1", description="'1' = before the reference date, otherwise after")
    months: Optional[str] = Field(None, description="Comma-separated month numbers or names")
    email_notification_type: str

    @field_validator("when_to_send", mode="before")
    @classmethod
    def coerce_when_to_send(cls, v) -> str:
        return str(v).strip() if v is not None else "1"

    @property
    def is_before(self) -> bool:
        return self.when_to_send == "1"

    @property
    def timing_label(self) -> str:
        return "Before" if self.is_before else "After"


class EmailTemplate(BaseModel):
    subject: str = ""
    body: str = ""

    @field_validator("subject", "body", mode="before")
    @classmethod
    def none_to_empty(cls, v) -> str:
        return v or ""


class SmtpProfile(BaseModel):
    """Per-tenant SMTP server, credentials and routing flags."""

    tenant_code: str
    host: str
    port: int
    sender: str
    password: Optional[str] = None
    username: Optional[str] = None
    is_live: bool = False
    test_address: Optional[str] = None
    support_email: Optional[str] = None

    def route(self, recipients: List[str], observer_address: Optional[str] = None) -> str:
        """Build the outbound ``To`` value.

        Live tenants receive the real recipients. Otherwise everything goes
        to the test address, followed by the observer address when one is
        configured, and the computed recipients are ignored.
        """
        if self.is_live:
            return ", ".join(recipients)

        routed = [address for address in (self.test_address, observer_address) if address]
        return ", ".join(routed)

    def __repr__(self) -> str:
        return (
            f"SmtpProfile(tenant_code={self.tenant_code!r}, host={self.host!r}, "
            f"port={self.port}, sender={self.sender!r}, is_live={self.is_live})"
        )


class AuditRecord(BaseModel):
    """A persisted send attempt."""

    id: Optional[int] = None
    recipient: str
    subject: str
    body: str
    sent: bool
    tenant_code: str
    created_at: datetime
