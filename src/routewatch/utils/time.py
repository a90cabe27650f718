from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


DEFAULT_TZ = ZoneInfo("Africa/Kigali")

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def parse_datetime(value: str, default_tz: ZoneInfo = DEFAULT_TZ) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz)
    return dt


def to_utc(dt: datetime, default_tz: ZoneInfo = DEFAULT_TZ) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_time(dt: datetime, tz: ZoneInfo = DEFAULT_TZ) -> datetime:
    return to_utc(dt).astimezone(tz)


def day_of_week(dt: datetime, tz: ZoneInfo = DEFAULT_TZ) -> int:
    """Local day of week with 0=Sunday .. 6=Saturday."""

    return local_time(dt, tz).isoweekday() % 7


def minute_of_day(dt: datetime, tz: ZoneInfo = DEFAULT_TZ) -> int:
    local = local_time(dt, tz)
    return local.hour * 60 + local.minute


def weekday_name(dt: datetime, tz: ZoneInfo = DEFAULT_TZ) -> str:
    return WEEKDAY_NAMES[day_of_week(dt, tz)]


def is_date_only(value: str) -> bool:
    """True for a bare ISO date such as `2026-10-14` (no time component)."""

    text = value.strip()
    return len(text) == 10 and "T" not in text


def end_of_day(dt: datetime) -> datetime:
    """Last microsecond of `dt`'s calendar day, in `dt`'s own timezone."""

    return dt.replace(hour=23, minute=59, second=59, microsecond=999999)
