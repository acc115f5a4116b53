"""Date utility functions for resolving the report's target day.

These are pure date functions shared by the CLI and the activity fetcher so
that every query and every comparison uses the same canonical ``YYYY-MM-DD``
form.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from ..errors import CalendarValidationFailure, InvalidDateFormat

# ASCII digits only; \d would also accept fullwidth and other Unicode digits
ISO_DATE_PATTERN = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
DAY_FIRST_PATTERN = re.compile(r"([0-9]{2})-([0-9]{2})-([0-9]{4})")

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def utc_today() -> str:
    """Return today's date in UTC as a canonical date string."""
    return datetime.now(timezone.utc).date().isoformat()


def _to_utc_midnight(value: str) -> datetime:
    """Parse a canonical date into a timezone-aware UTC midnight datetime."""
    return datetime.combine(date.fromisoformat(value), time.min, tzinfo=timezone.utc)


def previous_working_day(value: Optional[str] = None) -> str:
    """Get the working day before the given date.

    WHY: A daily report run on Monday morning is about Friday's work, not
    Sunday's. Saturday still steps back a single day, to Friday.

    DESIGN DECISION: The arithmetic runs on UTC midnight so daylight-saving
    transitions can never produce a 23 or 25 hour "day".

    Args:
        value: Canonical date (defaults to today in UTC)

    Returns:
        Canonical date of the previous working day
    """
    base = _to_utc_midnight(value or utc_today())

    # 0=Monday ... 6=Sunday
    weekday = base.weekday()
    if weekday == 0:
        days_to_subtract = 3
    elif weekday == 6:
        days_to_subtract = 2
    else:
        days_to_subtract = 1

    return (base - timedelta(days=days_to_subtract)).date().isoformat()


def parse_date(raw: Optional[str], today: Optional[str] = None) -> str:
    """Normalize a user supplied date into canonical ``YYYY-MM-DD`` form.

    Accepted inputs:
      - empty / None: previous working day
      - ``today``: today
      - ``yesterday``: previous working day (same as empty)
      - ``YYYY-MM-DD``: passed through
      - ``DD-MM-YYYY``: day and year swapped

    The result is shape-normalized only; use :func:`validate_date` (or
    :func:`resolve_target_date`) to check that it is a real calendar date.

    Args:
        raw: Raw date argument
        today: Canonical date to treat as "today" (defaults to today in UTC)

    Returns:
        Canonical date string

    Raises:
        InvalidDateFormat: If the input matches none of the supported formats
    """
    text = (raw or "").strip()
    today = today or utc_today()

    if text == "":
        return previous_working_day(today)
    if text == "today":
        return today
    if text == "yesterday":
        return previous_working_day(today)
    if ISO_DATE_PATTERN.fullmatch(text):
        return text

    match = DAY_FIRST_PATTERN.fullmatch(text)
    if match:
        day, month, year = match.groups()
        return f"{year}-{month}-{day}"

    raise InvalidDateFormat(text)


def validate_date(value: str) -> bool:
    """Check that a canonical date string names a real calendar day.

    The cheap checks (fixed-width digit groups, month 1-12, day 1-31) run
    first; ``datetime.date`` then decides per-month legality, so
    ``2025-02-31`` passes the range check but is still rejected.
    """
    match = ISO_DATE_PATTERN.fullmatch(value or "")
    if not match:
        return False

    year, month, day = (int(part) for part in match.groups())
    if not 1 <= month <= 12:
        return False
    if not 1 <= day <= 31:
        return False

    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def resolve_target_date(raw: Optional[str], today: Optional[str] = None) -> str:
    """Parse and validate the report date in one step.

    Raises:
        InvalidDateFormat: If the input format is not supported
        CalendarValidationFailure: If the parsed date does not exist
    """
    value = parse_date(raw, today=today)
    if not validate_date(value):
        raise CalendarValidationFailure(value)
    return value


def day_name(value: str) -> str:
    """Return the English weekday name of a canonical date."""
    return DAY_NAMES[date.fromisoformat(value).weekday()]


def lookback_date(value: str, days: int) -> str:
    """Return the canonical date ``days`` calendar days before ``value``."""
    return (_to_utc_midnight(value) - timedelta(days=days)).date().isoformat()


def day_bounds(value: str) -> tuple[datetime, datetime]:
    """Get the UTC start and end of a canonical date.

    Returns:
        Tuple of (00:00:00 UTC, 23:59:59 UTC) for the day
    """
    start = _to_utc_midnight(value)
    end = start + timedelta(hours=23, minutes=59, seconds=59)
    return start, end


def utc_date_of(timestamp: Optional[datetime]) -> Optional[str]:
    """Return the canonical UTC date of a timestamp (naive values are taken as UTC)."""
    if timestamp is None:
        return None
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).date().isoformat()
