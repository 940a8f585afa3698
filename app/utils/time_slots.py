"""Date/time helpers for appointment scheduling.

Appointment timestamps are naive datetimes holding clinic-local wall time with
minute precision. ``clinic_now`` is the only place that reads the clock.
"""

import re
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from app.config import settings
from app.core.exceptions import InvalidDateTimeException, InvalidTimeFormatException

# Bookable day: 09:00 up to but excluding 17:00, every 30 minutes
SLOT_DAY_START = time(9, 0)
SLOT_DAY_END = time(17, 0)
SLOT_STEP_MINUTES = 30

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_24H_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12H_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")


def clinic_now() -> datetime:
    """Current clinic-local time without tzinfo, truncated to seconds."""
    now = datetime.now(ZoneInfo(settings.clinic_timezone))
    return now.replace(tzinfo=None, microsecond=0)


def parse_date(value: str | date) -> date:
    """
    Parse an ISO-8601 calendar date.

    Raises:
        InvalidDateTimeException: If the string is malformed or the day does not exist
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = value.strip()
    if not _DATE_PATTERN.match(raw):
        raise InvalidDateTimeException(value)

    try:
        return date.fromisoformat(raw)
    except ValueError as e:
        raise InvalidDateTimeException(value) from e


def parse_time(value: str) -> time:
    """
    Parse a 24-hour ``HH:MM`` or 12-hour ``HH:MM AM|PM`` time of day.

    Raises:
        InvalidTimeFormatException: If the string matches neither form
    """
    raw = value.strip()

    match = _TIME_12H_PATTERN.match(raw)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if not 1 <= hours <= 12 or minutes > 59:
            raise InvalidTimeFormatException(value)
        # 12 AM -> 0, 12 PM -> 12
        hours = hours % 12 + (12 if match.group(3).upper() == "PM" else 0)
        return time(hours, minutes)

    match = _TIME_24H_PATTERN.match(raw)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            raise InvalidTimeFormatException(value)
        return time(hours, minutes)

    raise InvalidTimeFormatException(value)


def combine_date_time(day: str | date, time_of_day: str) -> datetime:
    """
    Combine a calendar date and a time string into one appointment timestamp.

    Args:
        day: ISO date (``YYYY-MM-DD``) or ``date``
        time_of_day: ``HH:MM`` or ``HH:MM AM|PM``

    Returns:
        Naive datetime at minute precision

    Raises:
        InvalidTimeFormatException: Unrecognised time string
        InvalidDateTimeException: Malformed or non-existent date
    """
    parsed_time = parse_time(time_of_day)
    parsed_date = parse_date(day)
    return datetime.combine(parsed_date, parsed_time)


def split_date_time(moment: datetime) -> tuple[str, str]:
    """Split a timestamp into ``(YYYY-MM-DD, HH:MM)``."""
    return moment.date().isoformat(), moment.strftime("%H:%M")


def day_bounds(day: str | date) -> tuple[datetime, datetime]:
    """Return the start of ``day`` and the start of the following day."""
    start = datetime.combine(parse_date(day), time.min)
    return start, start + timedelta(days=1)


def day_slots(booked: Iterable[str] = ()) -> list[str]:
    """
    List bookable ``HH:MM`` slots for one day, skipping booked ones.

    Args:
        booked: ``HH:MM`` values already taken

    Returns:
        Ascending slot strings
    """
    taken = set(booked)
    slots = []

    current = datetime.combine(date.min, SLOT_DAY_START)
    end = datetime.combine(date.min, SLOT_DAY_END)
    while current < end:
        label = current.strftime("%H:%M")
        if label not in taken:
            slots.append(label)
        current += timedelta(minutes=SLOT_STEP_MINUTES)

    return slots
