"""Main entry point for the expiration notifier service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from app.config.environment import EnvironmentConfig
from app.config.exceptions import ConfigurationError
from app.config.loader import load_config
from app.config.models import AppConfig
from app.domain.models import SmtpProfile
from app.logging import get_logger
from app.logging.config import configure_logging
from app.notifications.audit import AuditRecorder
from app.notifications.completion import CompletionNotifier, EmailAlertSink, LogSink
from app.notifications.recipients import RecipientResolver
from app.notifications.settings import EmailSettingsResolver
from app.notifications.smtp_client import SMTPClient
from app.persistence.database import close_database, get_engine, init_database
from app.persistence.schema import SystemEmailModel
from app.persistence.triggers import TriggerSuspension
from app.pipeline import NotificationDispatcher, NotificationJobRunner, RunResult
from app.pipeline.runner import CONTRACT_EXPIRATION_JOB, REPORT_REMINDERS_JOB
from app.scheduler import ScheduledJob, SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Path, log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and prepare runtime configuration.

    Args:
        config_path: Path to configuration file
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with the effective log level resolved

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    # Log level priority: CLI > Environment > Config
    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_completion_notifier(
    app_config: AppConfig, env_config: EnvironmentConfig, smtp_client: SMTPClient
) -> CompletionNotifier:
    """Log sink always; ops mail sink when completion.alert_to is configured."""
    sinks = [LogSink()]
    if app_config.completion.alert_to:
        ops_profile = SmtpProfile(
            tenant_code="ops",
            host=env_config.smtp_host,
            port=env_config.smtp_port,
            sender=env_config.smtp_sender or app_config.email.default_sender,
            username=env_config.smtp_user,
            password=env_config.smtp_pass,
            is_live=True,
        )
        sinks.append(
            EmailAlertSink(
                recipients=app_config.completion.alert_to,
                profile=ops_profile,
                smtp_client=smtp_client,
                environment=app_config.environment,
                use_tls=app_config.email.use_tls,
            )
        )
    return CompletionNotifier(sinks)


def build_runner(app_config: AppConfig, env_config: EnvironmentConfig) -> NotificationJobRunner:
    """Wire the dispatcher and its collaborators. The database must be initialized."""
    smtp_client = SMTPClient(timeout_seconds=app_config.email.timeout_seconds)
    completion_notifier = build_completion_notifier(app_config, env_config, smtp_client)

    trigger_suspension = TriggerSuspension(
        engine_provider=get_engine,
        table=SystemEmailModel.__tablename__,
        trigger_name=app_config.audit.trigger_name,
        schema=app_config.audit.trigger_schema,
    )

    dispatcher = NotificationDispatcher(
        app_config=app_config,
        recipient_resolver=RecipientResolver(),
        settings_resolver=EmailSettingsResolver(default_sender=app_config.email.default_sender),
        smtp_client=smtp_client,
        audit_recorder=AuditRecorder(trigger_suspension=trigger_suspension),
        completion_notifier=completion_notifier,
    )

    return NotificationJobRunner(
        app_config=app_config,
        dispatcher=dispatcher,
        completion_notifier=completion_notifier,
    )


def build_scheduled_jobs(app_config: AppConfig, runner: NotificationJobRunner) -> List[ScheduledJob]:
    jobs = []
    if app_config.jobs.contract_expiration.enabled:
        jobs.append(
            ScheduledJob(
                job_id=CONTRACT_EXPIRATION_JOB,
                name="Contract expiration notices",
                func=runner.run_contract_expirations,
                crontab=app_config.jobs.contract_expiration.schedule,
            )
        )
    if app_config.jobs.report_reminders.enabled:
        jobs.append(
            ScheduledJob(
                job_id=REPORT_REMINDERS_JOB,
                name="Report reminders",
                func=runner.run_report_reminders,
                crontab=app_config.jobs.report_reminders.schedule,
            )
        )
    return jobs


def non_negative_int(value: str) -> int:
    days = int(value)
    if days < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {days}")
    return days


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Expiration Notifier - contract expiration notices and report reminders"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Run every enabled job once and exit",
    )
    parser.add_argument(
        "--contract-days",
        type=non_negative_int,
        action="append",
        metavar="N",
        help="Send notices for contracts expiring in N days and exit (repeatable)",
    )
    parser.add_argument(
        "--reminder-id",
        type=int,
        help="Send one report reminder and exit (requires --month)",
    )
    parser.add_argument(
        "--month",
        help="Reporting period label for --reminder-id, e.g. March",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def log_run_summary(result: RunResult) -> None:
    if result.skipped:
        logger.warning("Run skipped", extra={"event": "service.manual_run.skipped"})
        return

    for stats in result.job_stats:
        logger.info(
            f"{stats.job_name}: {stats.sent_count} sent, {stats.skipped_count} skipped, "
            f"{stats.failed_count} failed, {stats.emails_sent} emails",
            extra={
                "event": "service.manual_run.job",
                "job": stats.job_name,
                "success": stats.success,
            },
        )

    logger.info(
        f"Manual run completed: {result.emails_sent} emails sent",
        extra={
            "event": "service.manual_run.completed",
            "duration_seconds": result.duration_seconds,
            "had_errors": result.had_errors,
        },
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the expiration notifier.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    parser = build_parser()
    args = parser.parse_args(argv)

    if (args.reminder_id is None) != (args.month is None):
        parser.error("--reminder-id and --month must be given together")

    try:
        # Configuration first so the log format is known
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=app_config.environment,
        )

        logger.info(
            "Expiration notifier starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config),
                "log_level": env_config.log_level,
                "environment": app_config.environment,
                "manual_run": args.manual_run,
            },
        )

        init_database(env_config.database_url)
        runner = build_runner(app_config, env_config)

        one_shot = None
        if args.contract_days:
            one_shot = lambda: runner.run_contract_expirations(args.contract_days)
        elif args.reminder_id is not None:
            one_shot = lambda: runner.run_single_reminder(args.reminder_id, args.month)
        elif args.manual_run:
            one_shot = runner.run_once

        if one_shot is not None:
            logger.info("Executing manual run", extra={"event": "service.manual_run.starting"})
            result = one_shot()
            log_run_summary(result)

            close_database()
            logger.info(
                "Expiration notifier stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )
            return 1 if result.had_errors else 0

        # Daemon mode: start scheduler
        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            jobs=build_scheduled_jobs(app_config, runner),
            timezone=app_config.timezone,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)
            close_database()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()
        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"},
            )
            scheduler_service.shutdown(wait=False)
            close_database()

        logger.info(
            "Expiration notifier stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
