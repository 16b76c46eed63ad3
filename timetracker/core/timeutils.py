"""
Local time helpers.

All attendance dates and times of day are expressed in the configured
attendance timezone, not in UTC.
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from timetracker.core.config import settings

ELAPSED_FALLBACK = "0h 0m"


def local_now(tz: Optional[ZoneInfo] = None) -> datetime:
    return datetime.now(tz or settings.timezone)


def date_string(moment: datetime) -> str:
    """YYYY-MM-DD for the given local moment."""
    return moment.strftime("%Y-%m-%d")


def time_string(moment: datetime) -> str:
    """HH:MM:SS for the given local moment."""
    return moment.strftime("%H:%M:%S")


def parse_minutes(value: str) -> int:
    """
    Minutes since midnight for an ``HH:MM`` or ``HH:MM:SS`` string.

    Raises ValueError on anything else.
    """
    if not isinstance(value, str):
        raise ValueError(f"Not a time of day: {value!r}")
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Not a time of day: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    if not (0 <= hours < 24 and 0 <= minutes < 60 and 0 <= seconds < 60):
        raise ValueError(f"Time of day out of range: {value!r}")
    return hours * 60 + minutes


def format_elapsed(clock_in: Optional[str], reference: Optional[str]) -> str:
    """
    Elapsed time between two times of day as ``"{H}h {M}m"``.

    Malformed input, or a reference earlier than the clock-in, yields
    ``"0h 0m"`` instead of raising.
    """
    try:
        elapsed = parse_minutes(reference) - parse_minutes(clock_in)
    except (TypeError, ValueError):
        return ELAPSED_FALLBACK
    if elapsed < 0:
        return ELAPSED_FALLBACK
    hours, minutes = divmod(elapsed, 60)
    return f"{hours}h {minutes}m"


def is_workday(moment: datetime, workdays: Optional[list[int]] = None) -> bool:
    days = settings.workdays_list if workdays is None else workdays
    return moment.weekday() in days
