"""Utility modules for GitHub Daily Report."""

from .date_utils import (
    day_bounds,
    day_name,
    lookback_date,
    parse_date,
    previous_working_day,
    resolve_target_date,
    utc_date_of,
    utc_today,
    validate_date,
)

__all__ = [
    "parse_date",
    "validate_date",
    "resolve_target_date",
    "previous_working_day",
    "day_name",
    "lookback_date",
    "day_bounds",
    "utc_date_of",
    "utc_today",
]
