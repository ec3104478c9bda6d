"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    jobs = config_dict.get("jobs", {})
    if isinstance(jobs, dict):
        for name, job in jobs.items():
            if isinstance(job, dict) and job.get("enabled") is False:
                warning_messages.append(f"Job '{name}' is disabled and will not be scheduled")

        contract_job = jobs.get("contract_expiration", {})
        if isinstance(contract_job, dict) and contract_job.get("days") == []:
            warning_messages.append(
                "jobs.contract_expiration.days is empty; no contracts will be scanned"
            )

    environment = str(config_dict.get("environment", "local")).lower()
    email = config_dict.get("email", {})
    if isinstance(email, dict) and environment != "production":
        if not email.get("observer_address"):
            warning_messages.append(
                "No email.observer_address set; mail for non-live tenants only reaches their test address"
            )

    audit = config_dict.get("audit", {})
    if isinstance(audit, dict) and environment == "production" and not audit.get("trigger_name"):
        warning_messages.append(
            "audit.trigger_name is not set; audit inserts will run without suspending the insert trigger"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
