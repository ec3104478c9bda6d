"""Configuration management module for the expiration notifier."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config, validate_config_file
from .models import (
    AppConfig,
    AuditConfig,
    CompletionConfig,
    ContractExpirationJob,
    DeploymentEnvironment,
    EmailConfig,
    JobsConfig,
    LinkConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ReportReminderJob,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_app_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "AuditConfig",
    "CompletionConfig",
    "ContractExpirationJob",
    "EmailConfig",
    "EnvironmentConfig",
    "JobsConfig",
    "LinkConfig",
    "LoggingConfig",
    "ReportReminderJob",
    # Enums
    "DeploymentEnvironment",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
