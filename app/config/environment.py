"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError
from .models import DeploymentEnvironment, LogLevel


class EnvironmentConfig:
    """Environment variable configuration holder.

    Holds everything that should not be committed with config.yaml: the
    database URL and the credentials of the SMTP relay used for ops alerts.
    Tenant SMTP credentials live in the database, not here.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
        app_environment: Optional[str] = None,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender: Optional[str] = None,
    ):
        """Initialize environment configuration."""
        self.database_url = database_url or "sqlite:///./data/notifier.db"
        self.log_level = log_level
        self.app_environment = app_environment
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender = smtp_sender

    @property
    def has_ops_smtp(self) -> bool:
        """Whether an ops SMTP relay is configured."""
        return bool(self.smtp_host and self.smtp_port)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    All variables are optional:
    - DATABASE_URL: SQLAlchemy URL of the tenant database
      (default: sqlite:///./data/notifier.db)
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - APP_ENVIRONMENT: Override the configured environment (local, qa, staging, production)
    - SMTP_HOST / SMTP_PORT: Relay used to mail status lines to ops
    - SMTP_USER / SMTP_PASS: Relay credentials (both or neither)
    - SMTP_SENDER: From address for ops alerts

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If a variable is present but invalid
    """
    errors = []

    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL")
    app_environment = os.getenv("APP_ENVIRONMENT")
    smtp_host = os.getenv("SMTP_HOST")
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER")
    smtp_pass = os.getenv("SMTP_PASS")
    smtp_sender = os.getenv("SMTP_SENDER")

    if log_level:
        valid_levels = [level.value for level in LogLevel]
        if log_level.upper() not in valid_levels:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(valid_levels)}"
            )
        else:
            log_level = log_level.upper()

    if app_environment:
        valid_envs = [env.value for env in DeploymentEnvironment]
        if app_environment.lower() not in valid_envs:
            errors.append(
                f"Invalid APP_ENVIRONMENT: '{app_environment}'. "
                f"Must be one of: {', '.join(valid_envs)}"
            )
        else:
            app_environment = app_environment.lower()

    smtp_port = None
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(
                    f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535."
                )
        except ValueError:
            errors.append(
                f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer."
            )

    if smtp_host and not smtp_port_str:
        errors.append("SMTP_HOST is set but SMTP_PORT is not.")

    if smtp_user and not smtp_pass:
        errors.append(
            "SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication."
        )
    elif smtp_pass and not smtp_user:
        errors.append(
            "SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication."
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and adjust the values",
                "Verify SMTP_PORT is a number between 1 and 65535",
            ],
        )

    return EnvironmentConfig(
        database_url=database_url,
        log_level=log_level,
        app_environment=app_environment,
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender=smtp_sender,
    )
