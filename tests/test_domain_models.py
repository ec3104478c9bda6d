"""Unit tests for domain models."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from app.domain.models import (
    AuditRecord,
    Contract,
    EmailTemplate,
    EntityKind,
    NotificationEvent,
    Organization,
    ReportReminder,
    SmtpProfile,
)


class TestNotificationEvent:
    """Tests for NotificationEvent model."""

    def test_contract_event(self):
        event = NotificationEvent.contract(42, 30)

        assert event.kind == EntityKind.CONTRACT_EXPIRATION
        assert event.entity_id == 42
        assert event.days_threshold == 30
        assert event.month is None

    def test_reminder_event(self):
        event = NotificationEvent.reminder(7, "March")

        assert event.kind == EntityKind.REPORT_REMINDER
        assert event.month == "March"
        assert event.days_threshold is None

    def test_contract_event_requires_days(self):
        with pytest.raises(ValidationError, match="days_threshold"):
            NotificationEvent(kind=EntityKind.CONTRACT_EXPIRATION, entity_id=42)

    def test_reminder_event_requires_month(self):
        with pytest.raises(ValidationError, match="month"):
            NotificationEvent(kind=EntityKind.REPORT_REMINDER, entity_id=7, month="")

    def test_negative_days_rejected(self):
        with pytest.raises(ValidationError):
            NotificationEvent.contract(42, -1)

    def test_zero_days_allowed(self):
        """A zero threshold means contracts expiring today."""
        assert NotificationEvent.contract(42, 0).days_threshold == 0

    def test_events_are_immutable(self):
        event = NotificationEvent.contract(42, 30)

        with pytest.raises(ValidationError):
            event.entity_id = 43

    def test_kind_accepts_string_value(self):
        event = NotificationEvent(kind="report_reminder", entity_id=7, month="June")

        assert event.kind is EntityKind.REPORT_REMINDER


class TestContract:
    def test_defaults(self):
        contract = Contract(id=1, organization_id=10, client_id=1, expiration_date=date(2025, 2, 14))

        assert contract.contract_type_id == 1
        assert contract.status is None
        assert contract.fund_source_type_id is None

    def test_expiration_date_parsed_from_string(self):
        contract = Contract(id=1, organization_id=10, client_id=1, expiration_date="2025-02-14")

        assert contract.expiration_date == date(2025, 2, 14)


class TestOrganization:
    def test_display_name(self):
        organization = Organization(id=10, legal_name="Acme Transit", common_name="ACT")

        assert organization.display_name == "Acme Transit (ACT)"

    def test_display_name_with_missing_parts(self):
        assert Organization(id=10, legal_name="Acme Transit").display_name == "Acme Transit ()"
        assert Organization(id=10).display_name == " ()"


class TestReportReminder:
    """Tests for ReportReminder model."""

    def make(self, **overrides):
        values = {
            "id": 7,
            "report_template_id": 5,
            "number_of_days": 10,
            "months": "3,6",
            "email_notification_type": "ReportReminder",
        }
        values.update(overrides)
        return ReportReminder(**values)

    def test_before_reminder(self):
        reminder = self.make(when_to_send="1")

        assert reminder.is_before is True
        assert reminder.timing_label == "Before"

    def test_after_reminder(self):
        reminder = self.make(when_to_send="2")

        assert reminder.is_before is False
        assert reminder.timing_label == "After"

    @pytest.mark.parametrize("raw,expected", [(1, "1"), (2, "2"), (" 2 ", "2"), (None, "1")])
    def test_when_to_send_coerced(self, raw, expected):
        assert self.make(when_to_send=raw).when_to_send == expected

    def test_default_when_to_send(self):
        assert self.make().is_before is True

    def test_notification_type_required(self):
        with pytest.raises(ValidationError):
            ReportReminder(id=7, report_template_id=5)


class TestEmailTemplate:
    def test_none_becomes_empty(self):
        template = EmailTemplate(subject=None, body=None)

        assert template.subject == ""
        assert template.body == ""

    def test_values_kept(self):
        template = EmailTemplate(subject="Expiring [ContractType]", body="<p>Hi</p>")

        assert template.subject == "Expiring [ContractType]"
        assert template.body == "<p>Hi</p>"


class TestSmtpProfile:
    """Tests for SmtpProfile routing."""

    def make(self, **overrides):
        values = {
            "tenant_code": "TX",
            "host": "smtp.tx.example.com",
            "port": 587,
            "sender": "notices@tx.example.com",
            "password": "hunter2",
            "test_address": "test@x.com",
        }
        values.update(overrides)
        return SmtpProfile(**values)

    def test_live_uses_recipients(self):
        profile = self.make(is_live=True)

        assert profile.route(["a@x.com", "b@x.com"], "observer@x.com") == "a@x.com, b@x.com"

    def test_not_live_uses_test_and_observer(self):
        profile = self.make()

        assert profile.route(["a@x.com"], "observer@x.com") == "test@x.com, observer@x.com"

    def test_not_live_without_observer(self):
        assert self.make().route(["a@x.com"]) == "test@x.com"

    def test_not_live_without_any_address(self):
        assert self.make(test_address=None).route(["a@x.com"]) == ""

    def test_repr_hides_password(self):
        assert "hunter2" not in repr(self.make())


class TestAuditRecord:
    def test_valid_record(self):
        created = datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)
        record = AuditRecord(
            recipient="test@x.com",
            subject="Contract expiring",
            body="<p>body</p>",
            sent=False,
            tenant_code="TX",
            created_at=created,
        )

        assert record.id is None
        assert record.sent is False
        assert record.created_at == created

    def test_requires_tenant(self):
        with pytest.raises(ValidationError):
            AuditRecord(
                recipient="test@x.com",
                subject="s",
                body="b",
                sent=True,
                created_at=datetime(2025, 1, 15, tzinfo=timezone.utc),
            )
