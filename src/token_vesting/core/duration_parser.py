"""
Duration parsing for vesting schedules.

Accepts a restricted ISO-8601 style duration (PnYnMnWnDTnHnMnS) and returns
the total number of seconds. Calendar units use fixed approximations:
a year is 365 days, a month is 30 days, a week is 7 days.

NOTE: fractional values of ``n`` are not supported.
"""

from __future__ import annotations

import re
from typing import Any

from token_vesting.core.vesting_exceptions import DurationFormatError

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY
YEAR = 365 * DAY

# "M" before the T separator is months, after it minutes.
ISO8601_DURATION_REGEX = re.compile(
    r"P?"
    r"(?:(?P<years>\d+)Y)?"
    r"(?:(?P<months>\d+)M)?"
    r"(?:(?P<weeks>\d+)W)?"
    r"(?:(?P<days>\d+)D)?"
    r"(?:T"
    r"(?:(?P<hours>\d+)H)?"
    r"(?:(?P<minutes>\d+)M)?"
    r"(?:(?P<seconds>\d+)S)?"
    r")?",
    re.ASCII,
)

_UNIT_SECONDS = {
    "years": YEAR,
    "months": MONTH,
    "weeks": WEEK,
    "days": DAY,
    "hours": HOUR,
    "minutes": MINUTE,
    "seconds": 1,
}


def parse_duration(text: Any) -> int:
    """
    Parse a duration string into a count of seconds.

    Args:
        text: Duration such as ``"P1Y"``, ``"P1DT2H"`` or ``"PT30M"``

    Returns:
        Total elapsed seconds (always >= 0)

    Raises:
        DurationFormatError: If the text does not match the duration grammar
    """
    if not isinstance(text, str):
        raise DurationFormatError(
            f"Duration must be a string, got {type(text).__name__}", text=text
        )

    match = ISO8601_DURATION_REGEX.fullmatch(text)
    if match is None:
        raise DurationFormatError(f"Malformed duration: {text!r}", text=text)

    total = 0
    for unit, value in match.groupdict().items():
        if value is not None:
            total += int(value) * _UNIT_SECONDS[unit]
    return total


def format_duration(seconds: int) -> str:
    """Render seconds as a canonical day/time duration, e.g. ``P1DT2H``."""
    if seconds < 0:
        raise ValueError("Duration cannot be negative.")
    if seconds == 0:
        return "PT0S"

    days, rest = divmod(seconds, DAY)
    hours, rest = divmod(rest, HOUR)
    minutes, secs = divmod(rest, MINUTE)

    result = "P"
    if days:
        result += f"{days}D"
    if hours or minutes or secs:
        result += "T"
        if hours:
            result += f"{hours}H"
        if minutes:
            result += f"{minutes}M"
        if secs:
            result += f"{secs}S"
    return result
