"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from apscheduler.triggers.cron import CronTrigger
from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, field_validator, model_validator


class DeploymentEnvironment(str, Enum):
    """Deployment the notifier runs in; selects the domain used in email links."""

    LOCAL = "local"
    QA = "qa"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


DEFAULT_DOMAIN_PATTERNS: Dict[str, str] = {
    DeploymentEnvironment.LOCAL.value: "localhost",
    DeploymentEnvironment.QA.value: "Test-{tenant}dot.blackcattransit.com",
    DeploymentEnvironment.STAGING.value: "staging-{tenant}dot.blackcattransit.com",
    DeploymentEnvironment.PRODUCTION.value: "{tenant}dot.blackcattransit.com",
}


def _check_address(value: str) -> str:
    """Validate an address but keep it exactly as written."""
    stripped = value.strip()
    try:
        validate_email(stripped, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"Invalid email address '{stripped}': {e}") from e
    return stripped


def _check_crontab(value: str) -> str:
    stripped = value.strip()
    try:
        CronTrigger.from_crontab(stripped)
    except ValueError as e:
        raise ValueError(f"Invalid crontab expression '{stripped}': {e}") from e
    return stripped


class LinkConfig(BaseModel):
    """Domain routing for links embedded in email bodies."""

    domain_patterns: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_DOMAIN_PATTERNS),
        description="Environment -> domain pattern; '{tenant}' is replaced by the tenant code",
    )

    @field_validator("domain_patterns")
    @classmethod
    def fill_missing_environments(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Unknown keys are rejected, missing environments fall back to the defaults."""
        valid = {env.value for env in DeploymentEnvironment}
        unknown = sorted(set(v) - valid)
        if unknown:
            raise ValueError(
                f"Unknown environments in domain_patterns: {', '.join(unknown)}"
            )
        return {**DEFAULT_DOMAIN_PATTERNS, **v}

    def domain_for(self, environment: str, tenant_code: str) -> str:
        """Resolve the link domain for a tenant in the given environment."""
        pattern = self.domain_patterns.get(
            environment, DEFAULT_DOMAIN_PATTERNS[DeploymentEnvironment.LOCAL.value]
        )
        return pattern.replace("{tenant}", tenant_code)


class EmailConfig(BaseModel):
    """Mail transport and routing settings shared by all tenants."""

    use_tls: bool = Field(True, description="Use STARTTLS when the port is not 465")
    timeout_seconds: int = Field(
        30, ge=1, le=300, description="Socket timeout for SMTP connections"
    )
    default_sender: str = Field(
        "system@blackcattransit.com",
        description="Sender identity used when a tenant's settings leave it blank",
    )
    observer_address: Optional[str] = Field(
        None,
        description="Internal address appended to the test address when a tenant is not live",
    )

    @field_validator("default_sender")
    @classmethod
    def validate_sender(cls, v: str) -> str:
        return _check_address(v)

    @field_validator("observer_address")
    @classmethod
    def validate_observer(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return _check_address(v)


class AuditConfig(BaseModel):
    """Integrity trigger suspended around each audit insert."""

    trigger_name: Optional[str] = Field(
        None, description="Trigger on Email_SystemEmails to suspend (none = no suspension)"
    )
    trigger_schema: str = Field("dbo", min_length=1, description="Schema owning the table")


class ContractExpirationJob(BaseModel):
    """Daily scan for contracts expiring in N days."""

    enabled: bool = True
    schedule: str = Field("0 6 * * *", description="Crontab expression")
    days: List[int] = Field(default_factory=lambda: [30, 180])

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, v: str) -> str:
        return _check_crontab(v)

    @field_validator("days")
    @classmethod
    def dedupe_days(cls, v: List[int]) -> List[int]:
        """Keep thresholds unique and in the given order."""
        seen = []
        for day in v:
            if day < 0:
                raise ValueError(f"Days threshold cannot be negative: {day}")
            if day not in seen:
                seen.append(day)
        return seen


class ReportReminderJob(BaseModel):
    """Daily evaluation of configured report reminders."""

    enabled: bool = True
    schedule: str = Field("0 7 * * *", description="Crontab expression")

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, v: str) -> str:
        return _check_crontab(v)


class JobsConfig(BaseModel):
    """Scheduled jobs."""

    contract_expiration: ContractExpirationJob = Field(default_factory=ContractExpirationJob)
    report_reminders: ReportReminderJob = Field(default_factory=ReportReminderJob)


class CompletionConfig(BaseModel):
    """Where run status lines are forwarded besides the log."""

    alert_to: List[str] = Field(
        default_factory=list, description="Ops addresses that receive every status line"
    )

    @field_validator("alert_to")
    @classmethod
    def validate_recipients(cls, v: List[str]) -> List[str]:
        return [_check_address(address) for address in v if address.strip()]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the expiration notifier."""

    environment: DeploymentEnvironment = Field(
        DeploymentEnvironment.LOCAL, description="Deployment environment"
    )
    timezone: str = Field(
        "America/New_York", description="IANA timezone for 'today' and status timestamps"
    )
    links: LinkConfig = Field(default_factory=LinkConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"use_enum_values": True}

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except Exception as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @model_validator(mode="after")
    def validate_jobs(self):
        """At least one scheduled job has to be enabled."""
        if not (self.jobs.contract_expiration.enabled or self.jobs.report_reminders.enabled):
            raise ValueError("At least one job must be enabled under 'jobs'")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def link_domain(self, tenant_code: str) -> str:
        """Domain used to build links for a tenant in this deployment."""
        return self.links.domain_for(self.environment, tenant_code)
