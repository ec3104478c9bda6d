"""Tests for the job runner.

The dispatcher is mocked; report reminder tests read reminders from an
in-memory database.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from app.config.models import AppConfig
from app.domain.models import NotificationEvent
from app.notifications.completion import CompletionNotifier
from app.persistence import (
    PersistenceError,
    TenantConfigurationError,
    close_database,
    get_session,
    init_database,
)
from app.pipeline.models import BatchResult, NotificationOutcome, OutcomeStatus
from app.pipeline.runner import NO_REMINDERS_MESSAGE, NotificationJobRunner
from tests.helpers import seed_reminder, seed_report_template, seed_tenant

LOCAL_NOW = datetime(2025, 3, 21, 9, 0, 0)


class RecordingSink:
    def __init__(self):
        self.lines = []

    def emit(self, status_line):
        self.lines.append(status_line)


@pytest.fixture
def database():
    init_database("sqlite:///:memory:")
    with get_session() as session:
        seed_tenant(session, code="TX", client_id=1)
        seed_report_template(session, 5)
    yield
    close_database()


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.local_now.return_value = LOCAL_NOW
    mock.today.return_value = LOCAL_NOW.date()
    mock.dispatch_contract_expirations.return_value = BatchResult(
        success=True, emails_sent=2, message="2 Emails sent successfully"
    )
    return mock


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def runner(dispatcher, sink):
    return NotificationJobRunner(AppConfig(), dispatcher, CompletionNotifier([sink]))


def outcome(event, status, recipients=(), message=""):
    return NotificationOutcome(
        event=event, status=status, message=message, recipients=list(recipients)
    )


def test_contract_job_runs_each_threshold(runner, dispatcher, sink):
    result = runner.run_contract_expirations()

    assert [stats.job_name for stats in result.job_stats] == [
        "contract_expiration:30",
        "contract_expiration:180",
    ]
    assert [call.args[0] for call in dispatcher.dispatch_contract_expirations.call_args_list] == [
        30,
        180,
    ]
    assert result.emails_sent == 4
    assert result.had_errors is False
    assert sink.lines[0] == (
        "SUCCESS tenant: / entity:Contracts expiring in 30 days "
        "/ result:2 Emails sent successfully:03/21/2025 09:00:00 AM"
    )


def test_contract_job_with_explicit_days(runner, dispatcher):
    result = runner.run_contract_expirations([7])

    dispatcher.dispatch_contract_expirations.assert_called_once_with(7)
    assert len(result.job_stats) == 1


def test_tenant_configuration_error_fails_job_and_others_still_run(runner, dispatcher, sink):
    dispatcher.dispatch_contract_expirations.side_effect = [
        TenantConfigurationError("ZZ", "No active email settings for tenant 'ZZ'"),
        BatchResult(success=True, message="No contracts to process"),
    ]

    result = runner.run_contract_expirations()

    assert result.had_errors is True
    assert [stats.success for stats in result.job_stats] == [False, True]
    assert sink.lines[0] == (
        "FAILED tenant:ZZ / entity:Contracts expiring in 30 days "
        "/ result:No active email settings for tenant 'ZZ':03/21/2025 09:00:00 AM"
    )
    assert sink.lines[1].startswith("SUCCESS tenant: / entity:Contracts expiring in 180 days")


def test_database_error_fails_job(runner, dispatcher, sink):
    dispatcher.dispatch_contract_expirations.side_effect = PersistenceError("connection reset")

    result = runner.run_contract_expirations([30])

    assert result.had_errors is True
    assert result.job_stats[0].message == "connection reset"
    assert sink.lines[0].startswith("FAILED tenant: / entity:Contracts expiring in 30 days")


def test_send_failure_batch_marks_job_failed(runner, dispatcher):
    dispatcher.dispatch_contract_expirations.return_value = BatchResult(
        success=False, message="SMTP error: 451"
    )

    result = runner.run_contract_expirations([30])

    assert result.had_errors is True


def test_run_skipped_while_lock_held(runner, dispatcher):
    """Test a second run is skipped instead of overlapping."""
    runner._lock.acquire()
    try:
        result = runner.run_once()
    finally:
        runner._lock.release()

    assert result.skipped is True
    assert result.job_stats == []
    dispatcher.dispatch_contract_expirations.assert_not_called()


def test_lock_released_after_run(runner):
    runner.run_contract_expirations([30])

    assert runner._lock.acquire(blocking=False)
    runner._lock.release()


def test_run_once_runs_only_enabled_jobs(dispatcher, sink):
    app_config = AppConfig(jobs={"report_reminders": {"enabled": False}})
    runner = NotificationJobRunner(app_config, dispatcher, CompletionNotifier([sink]))

    result = runner.run_once()

    assert [stats.job_name for stats in result.job_stats] == [
        "contract_expiration:30",
        "contract_expiration:180",
    ]
    dispatcher.today.assert_not_called()


@pytest.mark.usefixtures("database")
def test_run_once_includes_report_reminders(runner, dispatcher):
    result = runner.run_once()

    assert [stats.job_name for stats in result.job_stats][-1] == "report_reminders"


@pytest.mark.usefixtures("database")
def test_report_reminders_dispatches_due_reminders(runner, dispatcher, sink):
    with get_session() as session:
        seed_reminder(session, 7, 5, number_of_days=10, when_to_send="1", months="3")
        seed_reminder(session, 8, 5, number_of_days=3, when_to_send="1", months="3")
    event = NotificationEvent.reminder(7, "March")
    dispatcher.dispatch.return_value = outcome(
        event, OutcomeStatus.SENT, recipients=["a@x.com", "b@x.com"], message="Email sent"
    )

    result = runner.run_report_reminders()

    dispatcher.dispatch.assert_called_once_with(event)
    stats = result.job_stats[0]
    assert stats.job_name == "report_reminders"
    assert stats.emails_sent == 2
    assert stats.sent_count == 1
    assert sink.lines[0] == (
        "SUCCESS tenant: / entity:Report reminders "
        "/ result:2 Emails sent successfully:03/21/2025 09:00:00 AM"
    )


@pytest.mark.usefixtures("database")
def test_inactive_reminders_are_not_considered(runner, dispatcher):
    with get_session() as session:
        seed_reminder(session, 7, 5, months="3", active=False)

    result = runner.run_report_reminders()

    dispatcher.dispatch.assert_not_called()
    assert result.job_stats[0].message == NO_REMINDERS_MESSAGE


@pytest.mark.usefixtures("database")
def test_no_reminders_due(runner, dispatcher, sink):
    with get_session() as session:
        seed_reminder(session, 7, 5, months="6")

    result = runner.run_report_reminders()

    dispatcher.dispatch.assert_not_called()
    assert result.job_stats[0].success is True
    assert sink.lines[0].startswith(
        f"SUCCESS tenant: / entity:Report reminders / result:{NO_REMINDERS_MESSAGE}"
    )


@pytest.mark.usefixtures("database")
def test_reminder_send_failure_does_not_stop_other_reminders(runner, dispatcher):
    with get_session() as session:
        seed_reminder(session, 7, 5, months="3")
        seed_reminder(session, 8, 5, months="3")
    first = NotificationEvent.reminder(7, "March")
    second = NotificationEvent.reminder(8, "March")
    dispatcher.dispatch.side_effect = [
        outcome(first, OutcomeStatus.SEND_FAILED, ["a@x.com"], "SMTP error: 550"),
        outcome(second, OutcomeStatus.SENT, ["a@x.com"], "Email sent"),
    ]

    result = runner.run_report_reminders()

    assert dispatcher.dispatch.call_count == 2
    stats = result.job_stats[0]
    assert stats.success is False
    assert stats.message == "SMTP error: 550"
    assert stats.emails_sent == 1
    assert stats.failed_count == 1


def test_single_reminder_ignores_schedule(runner, dispatcher, sink):
    event = NotificationEvent.reminder(7, "June")
    dispatcher.dispatch.return_value = outcome(
        event, OutcomeStatus.SKIPPED_NO_RECIPIENTS, message="No recipients"
    )

    result = runner.run_single_reminder(7, "June")

    dispatcher.dispatch.assert_called_once_with(event)
    stats = result.job_stats[0]
    assert stats.job_name == "report_reminders:7"
    assert stats.skipped_count == 1
    assert stats.success is True
    assert sink.lines[0].startswith("SUCCESS tenant: / entity:Report reminder 7 (June)")


def test_run_result_duration(runner):
    result = runner.run_contract_expirations([30])

    assert result.duration_seconds >= 0
    assert result.run_finished_at >= result.run_started_at
