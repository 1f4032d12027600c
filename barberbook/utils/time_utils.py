# barberbook/utils/time_utils.py
"""
Wall-clock helpers for the scheduling grid.

Times of day travel through the booking core as zero-padded 24-hour
``HH:MM`` strings and are compared as integer minute offsets since midnight.
Every component converts through these two functions.
"""

import re

from ..core.exceptions import MalformedTimeException

MINUTES_PER_DAY = 24 * 60

_TIME_OF_DAY_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def to_minutes(time_of_day: str) -> int:
    """
    Parse an ``HH:MM`` 24-hour string into minutes since midnight.

    Raises:
        MalformedTimeException: On non-string, non-numeric or out-of-range input.
    """
    if not isinstance(time_of_day, str):
        raise MalformedTimeException(time_of_day)

    match = _TIME_OF_DAY_PATTERN.match(time_of_day.strip())
    if match is None:
        raise MalformedTimeException(time_of_day)

    hour, minute = int(match.group(1)), int(match.group(2))
    if not 0 <= hour <= 23:
        raise MalformedTimeException(time_of_day, f"Hour out of range in {time_of_day!r}")
    if not 0 <= minute <= 59:
        raise MalformedTimeException(time_of_day, f"Minute out of range in {time_of_day!r}")
    return hour * 60 + minute


def to_time_of_day(minutes: int) -> str:
    """Format minutes since midnight as a zero-padded ``HH:MM`` string."""
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise MalformedTimeException(minutes)
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise MalformedTimeException(minutes, f"Minute offset out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap test for ``[start_a, end_a)`` and ``[start_b, end_b)``."""
    return start_a < end_b and end_a > start_b
