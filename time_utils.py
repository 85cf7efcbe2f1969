# FILE: time_utils.py

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)


def resolve_timezone(tz_name: Optional[str]) -> ZoneInfo:
    """Returns the named zone, or the configured default when it is missing or unknown."""
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone '%s', falling back to %s.", tz_name, DEFAULT_TIMEZONE)
    return ZoneInfo(DEFAULT_TIMEZONE)


def local_now(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> datetime:
    """
    Converts `now` (UTC if naive, current time if omitted) into the user's zone.
    Every "today" in a request should be derived from one call to this.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_timezone(tz_name))


def week_start(day: date) -> date:
    """Sunday on or before `day`."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def quarter_key(day: date) -> str:
    return f"{day.year}-Q{(day.month - 1) // 3 + 1}"


def parse_clock(value) -> time:
    """
    Accepts 'HH:MM', 'HH:MM:SS' or a time and returns a time at second precision.
    '24:00' becomes 00:00, which `block_end` reads as the end of the day.
    """
    if isinstance(value, time):
        return value.replace(microsecond=0)
    text = str(value).strip()
    if text in ("24:00", "24:00:00"):
        return time.min
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time '{value}', expected HH:MM")


def format_clock(value: time) -> str:
    return value.strftime("%H:%M")


def block_end(value: time) -> time:
    """An end time of 00:00 is midnight at the end of the day."""
    return time.max if value == time.min else value


def intervals_overlap(start: time, end: time, other_start: time, other_end: time) -> bool:
    """Half-open [start, end) intersection test; touching intervals do not overlap."""
    return start < block_end(other_end) and other_start < block_end(end)


def derive_streak(completed_dates: Iterable[date], today: date) -> int:
    """Consecutive completed days counting back from today; the first gap ends the count."""
    done = set(completed_dates)
    streak = 0
    day = today
    while day in done:
        streak += 1
        day -= timedelta(days=1)
    return streak
