"""Test helper utilities for expiration notifier tests."""

from .seed import (
    seed_contract,
    seed_contract_type,
    seed_email_template,
    seed_organization,
    seed_program,
    seed_reminder,
    seed_report_template,
    seed_tenant,
    seed_user,
)

__all__ = [
    "seed_contract",
    "seed_contract_type",
    "seed_email_template",
    "seed_organization",
    "seed_program",
    "seed_reminder",
    "seed_report_template",
    "seed_tenant",
    "seed_user",
]
