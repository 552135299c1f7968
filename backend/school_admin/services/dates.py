"""
Date normalization for attendance keys and report ranges.

Two textual forms are accepted: ``YYYY-MM-DD`` and ``DD-MM-YYYY``. The
form is decided by where the four-digit year sits, so the two can never
be confused with each other. Results are naive datetimes at midnight,
interpreted as UTC, matching how the attendance table stores dates.
"""

import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

from school_admin.errors import InvalidDateFormat, InvalidDateValue, InvalidRange

ISO_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
DAY_FIRST_PATTERN = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")

# Inclusive upper bound for a day: 23:59:59.999
END_OF_DAY = timedelta(hours=23, minutes=59, seconds=59, milliseconds=999)


def _split(value: Optional[str]) -> Tuple[int, int, int]:
    """Return (year, month, day) from either accepted form."""
    text = value.strip() if isinstance(value, str) else ""

    match = ISO_PATTERN.match(text)
    if match:
        year, month, day = match.groups()
        return int(year), int(month), int(day)

    match = DAY_FIRST_PATTERN.match(text)
    if match:
        day, month, year = match.groups()
        return int(year), int(month), int(day)

    raise InvalidDateFormat(value)


def normalize_date(value: str) -> datetime:
    """
    Parse ``value`` into the canonical attendance date (midnight UTC).

    Raises:
        InvalidDateFormat: the string matches neither accepted form
        InvalidDateValue: the form matches but the day does not exist
    """
    year, month, day = _split(value)
    try:
        return datetime(year, month, day)
    except ValueError:
        raise InvalidDateValue(value)


def end_of_day(value: str) -> datetime:
    """Last millisecond of the day named by ``value``, for inclusive range bounds."""
    return normalize_date(value) + END_OF_DAY


def parse_date_range(start: str, end: str) -> Tuple[datetime, datetime]:
    """
    Normalize a report range. The end bound covers its whole day, so a
    range with start == end selects that single day.
    """
    lower = normalize_date(start)
    upper = end_of_day(end)
    if upper < lower:
        raise InvalidRange(start, end)
    return lower, upper


def iso_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")
