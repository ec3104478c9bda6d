"""Which report reminders are due on a given day.

A reminder lists the months whose reporting period it applies to. The
reference date of a period is the last day of its month; a reminder is due
``number_of_days`` before that date (``when_to_send == "1"``) or that many
days after it (any other value).
"""

import calendar
from datetime import date, timedelta
from typing import Iterable, List, Tuple

from app.domain.models import ReportReminder
from app.logging import get_logger

logger = get_logger(__name__, component="reminders")

_MONTHS_BY_NAME = {name.lower(): index for index, name in enumerate(calendar.month_name) if name}
_MONTHS_BY_ABBR = {name.lower(): index for index, name in enumerate(calendar.month_abbr) if name}


def parse_months(months: str) -> List[int]:
    """Parse ``"1, 4, July, Oct"`` into sorted, distinct month numbers.

    Unrecognised entries are logged and ignored.
    """
    result = set()
    for raw in (months or "").split(","):
        token = raw.strip().lower()
        if not token:
            continue
        if token.isdigit() and 1 <= int(token) <= 12:
            result.add(int(token))
        elif token in _MONTHS_BY_NAME:
            result.add(_MONTHS_BY_NAME[token])
        elif token in _MONTHS_BY_ABBR:
            result.add(_MONTHS_BY_ABBR[token])
        else:
            logger.warning(
                f"Ignoring unrecognised month '{raw.strip()}'",
                extra={"event": "reminders.invalid_month"},
            )
    return sorted(result)


def period_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def send_date(reminder: ReportReminder, year: int, month: int) -> date:
    offset = timedelta(days=reminder.number_of_days)
    end = period_end(year, month)
    return end - offset if reminder.is_before else end + offset


def due_reminders(
    reminders: Iterable[ReportReminder], today: date
) -> List[Tuple[ReportReminder, str]]:
    """Reminders due ``today`` with the month label of their reporting period.

    Periods in the previous, current and next year are checked so offsets
    that cross a year boundary still match.

    Args:
        reminders: Active reminders
        today: Calendar date in the configured timezone

    Returns:
        (reminder, month name) pairs, in reminder order
    """
    due = []
    for reminder in reminders:
        for month in parse_months(reminder.months):
            if any(
                send_date(reminder, year, month) == today
                for year in (today.year - 1, today.year, today.year + 1)
            ):
                due.append((reminder, calendar.month_name[month]))
    return due
