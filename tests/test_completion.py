"""Tests for status lines and completion sinks."""

import logging
from datetime import datetime
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from app.domain.models import SmtpProfile
from app.notifications.completion import (
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    CompletionNotifier,
    EmailAlertSink,
    LogSink,
    format_status,
)
from app.notifications.models import SMTPDeliveryError

NEW_YORK = ZoneInfo("America/New_York")


@pytest.fixture
def ops_profile():
    return SmtpProfile(tenant_code="ops", host="smtp.ops.example.com", port=587, sender="ops@example.com")


def test_format_status_success():
    line = format_status(
        STATUS_SUCCESS,
        "TX",
        "MSA(42)",
        "Email sent",
        datetime(2025, 1, 15, 9, 5, 0, tzinfo=NEW_YORK),
    )

    assert line == "SUCCESS tenant:TX / entity:MSA(42) / result:Email sent:01/15/2025 09:05:00 AM"


def test_format_status_afternoon_and_missing_parts():
    line = format_status(STATUS_FAILED, None, None, "boom", datetime(2025, 7, 4, 16, 30, 5))

    assert line == "FAILED tenant: / entity: / result:boom:07/04/2025 04:30:05 PM"


def test_log_sink_writes_info(caplog):
    with caplog.at_level(logging.INFO):
        LogSink().emit("SKIPPED tenant:TX / entity:x / result:No recipients:01/15/2025 09:00:00 AM")

    assert any("result:No recipients" in record.getMessage() for record in caplog.records)


def test_notifier_defaults_to_log_sink():
    notifier = CompletionNotifier()

    assert len(notifier.sinks) == 1
    assert isinstance(notifier.sinks[0], LogSink)


def test_notifier_fans_out_to_every_sink():
    first, second = MagicMock(), MagicMock()
    notifier = CompletionNotifier([first, second])

    notifier.notify("SUCCESS tenant:TX / entity:a / result:ok:01/15/2025 09:00:00 AM")

    first.emit.assert_called_once_with("SUCCESS tenant:TX / entity:a / result:ok:01/15/2025 09:00:00 AM")
    second.emit.assert_called_once()


def test_email_alert_sink_sends_plain_text(ops_profile):
    smtp_client = MagicMock()
    sink = EmailAlertSink(
        ["oncall@example.com", "lead@example.com"],
        ops_profile,
        smtp_client=smtp_client,
        environment="qa",
    )

    sink.emit(f"{STATUS_FAILED} tenant:TX / entity:MSA(42) / result:SMTP error:01/15/2025 09:00:00 AM")

    smtp_client.send.assert_called_once()
    message, profile = smtp_client.send.call_args.args
    assert profile is ops_profile
    assert message["To"] == "oncall@example.com, lead@example.com"
    assert message["Subject"] == "[QA] expiration-notifier FAILED - TX"
    assert message.get_content_type() == "text/plain"
    assert "entity:MSA(42)" in message.get_content()


def test_email_alert_sink_without_tenant(ops_profile):
    smtp_client = MagicMock()
    sink = EmailAlertSink(["oncall@example.com"], ops_profile, smtp_client=smtp_client)

    sink.emit(f"{STATUS_SKIPPED} tenant: / entity:Report reminders / result:No reminders due:01/15/2025 09:00:00 AM")

    message, _ = smtp_client.send.call_args.args
    assert message["Subject"] == "[LOCAL] expiration-notifier SKIPPED"


def test_email_alert_sink_swallows_delivery_errors(ops_profile, caplog):
    """Test a broken alert channel is logged and never raised."""
    smtp_client = MagicMock()
    smtp_client.send.side_effect = SMTPDeliveryError("Network error: unreachable")
    sink = EmailAlertSink(["oncall@example.com"], ops_profile, smtp_client=smtp_client)

    with caplog.at_level(logging.WARNING):
        sink.emit("FAILED tenant:TX / entity:x / result:y:01/15/2025 09:00:00 AM")

    assert any("could not be delivered" in record.getMessage() for record in caplog.records)


def test_email_alert_sink_without_recipients_does_nothing(ops_profile):
    smtp_client = MagicMock()

    EmailAlertSink([], ops_profile, smtp_client=smtp_client).emit("SUCCESS tenant:TX / entity:x / result:y:z")

    smtp_client.send.assert_not_called()
