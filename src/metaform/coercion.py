"""
Value coercion shared by the rule engine and the validators.

Answers are stored as plain strings. Anything that needs to treat an answer
as a date, a time, a number or a flag goes through the helpers here, so
rules and validators always agree on what a value means.

Date/time format:
    yyyy-mm-dd            date only
    yyyy-mm-dd HH:MM      date and time
    HH:MM                 time only (time helpers)

Parsing never raises. Anything that cannot be understood comes back as None.
"""

import re
from datetime import datetime
from typing import Optional


_INTEGER_RE = re.compile(r"^[+-]?\d+$")

TRUTHY_TOKENS = {"Y", "TRUE", "1"}

MONTH_NAMES = [
    "Month",
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]


def split_part(value: str, separator: str, index: int) -> str:
    """Return the index'th piece of value split on separator, or ''."""
    parts = value.split(separator)
    if index < len(parts):
        return parts[index]
    return ""


def to_int(value: Optional[str]) -> Optional[int]:
    """
    Parse a whole number.

    Only an optional sign followed by digits is accepted; surrounding
    whitespace, decimals and digit separators all fail.
    """
    if value is None or not _INTEGER_RE.match(value):
        return None
    return int(value)


def to_bool(value: Optional[str]) -> bool:
    """Y / TRUE / 1 (any case) are true, everything else is false."""
    if value is None:
        return False
    return value.upper() in TRUTHY_TOKENS


# =============================================================================
# Date and time decomposition
# =============================================================================

def get_date_part(value: str) -> str:
    return split_part(value, " ", 0)


def get_time_part(value: str) -> str:
    return split_part(value, " ", 1)


def get_year_from(value: str) -> str:
    if len(value) > 5:
        return split_part(value, "-", 0)
    return ""


def get_month_from(value: str) -> str:
    if len(value) > 5:
        return split_part(value, "-", 1)
    return ""


def get_day_from(value: str) -> str:
    if len(value) > 5:
        return split_part(value, "-", 2)
    return ""


def _time_of(value: str) -> str:
    # Either a full "yyyy-mm-dd HH:MM" or just "HH:MM"
    if len(value) > 9:
        return get_time_part(value)
    return value


def get_hour_part(value: str) -> str:
    hour = split_part(_time_of(value), ":", 0)
    return ("0" + hour)[-2:]


def get_minute_part(value: str) -> str:
    return split_part(_time_of(value), ":", 1)


def convert_value_to_date(value: str, time_value: Optional[str] = None) -> Optional[datetime]:
    """
    Build a datetime from a date string and an optional time string.

    Returns None if any of year/month/day is missing or not a number, if a
    time was supplied but its hour or minute is not a number, or if the
    result is not a real calendar date (2021-02-30).
    """
    year = to_int(get_year_from(value))
    month = to_int(get_month_from(value))
    day = to_int(get_day_from(value))

    hour, minute = 0, 0
    if time_value is not None:
        hour = to_int(get_hour_part(time_value))
        minute = to_int(get_minute_part(time_value))

    if year is None or month is None or day is None or hour is None or minute is None:
        return None

    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


def parse_date_time(value: str, require_time: bool = False) -> Optional[datetime]:
    """
    Parse "yyyy-mm-dd" or "yyyy-mm-dd HH:MM".

    A time is read whenever the value contains ':'. With require_time the
    value must carry one.
    """
    if value is None:
        return None
    has_time = ":" in value
    if require_time and not has_time:
        return None
    time_part = get_time_part(value) if has_time else None
    return convert_value_to_date(get_date_part(value), time_part)


def parse_date(value: str) -> Optional[datetime]:
    """Parse only the date portion of a value; any time is ignored."""
    if value is None:
        return None
    return convert_value_to_date(get_date_part(value))
