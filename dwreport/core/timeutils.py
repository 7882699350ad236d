# dwreport/core/timeutils.py
# Conversions between stored timestamps, display strings and elapsed minutes.
# None of these raise: invalid input falls back to "" / 0 / None.
import math
from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dwreport.core.config import settings


def display_tz() -> tzinfo:
    try:
        return ZoneInfo(settings.DISPLAY_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_today(now: datetime | None = None) -> date:
    """Today's date on the display clock, not the server's."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(display_tz()).date()


def parse_timestamp(value) -> datetime | None:
    """Returns an aware datetime; naive input is taken to be UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return local_date(value)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            return local_date(text)
    return None


def local_date(ts) -> date | None:
    """Calendar date of a timestamp in the display timezone."""
    parsed = parse_timestamp(ts)
    return parsed.astimezone(display_tz()).date() if parsed else None


def to_display_time(ts) -> str:
    parsed = parse_timestamp(ts)
    if parsed is None:
        return ""
    return parsed.astimezone(display_tz()).strftime("%H:%M")


def to_display_date(value) -> str:
    parsed = parse_date(value)
    return parsed.strftime("%d-%m-%Y") if parsed else ""


def to_display_datetime(ts) -> str:
    parsed = parse_timestamp(ts)
    if parsed is None:
        return ""
    return parsed.astimezone(display_tz()).strftime("%d-%m-%Y %H:%M")


def duration_minutes(start, end) -> int:
    s = parse_timestamp(start)
    e = parse_timestamp(end)
    if s is None or e is None or e <= s:
        return 0
    # half-up, so 90 seconds is 2 minutes
    return int(math.floor((e - s).total_seconds() / 60 + 0.5))


def format_duration(minutes) -> str:
    try:
        total = int(minutes)
    except (TypeError, ValueError, OverflowError):
        total = 0
    total = max(total, 0)
    return f"{total // 60:02d}:{total % 60:02d}"


def parse_clock(value: str | None) -> time | None:
    """Parses a 24-hour "HH:MM" clock value."""
    if not value:
        return None
    try:
        hours, minutes = value.strip().split(":")
        return time(int(hours), int(minutes))
    except ValueError:
        return None


def combine_local(day, clock: str | None) -> datetime | None:
    """Resolves a display date plus an "HH:MM" clock time into an aware UTC timestamp."""
    parsed_day = parse_date(day)
    parsed_clock = parse_clock(clock)
    if parsed_day is None or parsed_clock is None:
        return None
    local = datetime.combine(parsed_day, parsed_clock, tzinfo=display_tz())
    return local.astimezone(timezone.utc)
