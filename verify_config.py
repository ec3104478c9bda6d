#!/usr/bin/env python3
"""Pre-deployment check for a notifier config file (default: config.example.yaml).

Validates the YAML against the configuration models without reading
environment variables or touching the database.
"""

import sys
from pathlib import Path

import yaml

from app.config import validate_config_file
from app.config.validators import check_for_warnings


def verify_config_structure(config_file: Path = Path("config.example.yaml")) -> bool:
    """Validate ``config_file`` and print any non-fatal warnings."""
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    if not validate_config_file(config_file):
        return False

    with open(config_file, "r") as f:
        config = yaml.safe_load(f) or {}

    for warning in check_for_warnings(config):
        print(f"  ! {warning}")

    jobs = config.get("jobs", {})
    print(f"  - Environment: {config.get('environment', 'local')}")
    for name in ("contract_expiration", "report_reminders"):
        job = jobs.get(name) or {}
        state = "enabled" if job.get("enabled", True) else "disabled"
        print(f"  - {name}: {state}, schedule {job.get('schedule', 'default')}")
    return True


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("config.example.yaml")
    success = verify_config_structure(path)
    sys.exit(0 if success else 1)
