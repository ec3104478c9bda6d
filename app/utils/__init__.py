"""Utility functions for time handling."""

from .timestamps import (
    format_status_timestamp,
    local_now,
    local_today,
    utc_now,
)

__all__ = [
    "format_status_timestamp",
    "local_now",
    "local_today",
    "utc_now",
]
