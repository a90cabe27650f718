"""Infer what traffic usually looks like on a road at this day-of-week and hour.

Used only when a segment has no live reports. The dominant type is chosen by a fixed priority
(`blocked`, `heavy`, `medium`, `light`, then `accident`) rather than by majority, so a single heavy
report outranks five light ones. This surfaces the worst case a driver should expect.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Protocol

from zoneinfo import ZoneInfo

from routewatch.reports.schemas import HistoricalPattern, TrafficReport
from routewatch.storage.report_store import DEFAULT_TOLERANCE_MINUTES, report_summary
from routewatch.utils.time import DEFAULT_TZ, to_utc, weekday_name


SEVERITY_PRIORITY: tuple[str, ...] = ("blocked", "heavy", "medium", "light", "accident")


class HistoricalPool(Protocol):
    def historical_reports(
        self, road_id: Optional[str], day_of_week: int, hour_of_day: int, tolerance_minutes: int = ...
    ) -> list[TrafficReport]: ...

    def historical_reports_by_street_name(
        self, name: Optional[str], day_of_week: int, hour_of_day: int, tolerance_minutes: int = ...
    ) -> list[TrafficReport]: ...


def infer_pattern(
    pool: HistoricalPool,
    road_id: Optional[str],
    road_name: Optional[str],
    day_of_week: int,
    hour_of_day: int,
    tolerance_minutes: int = DEFAULT_TOLERANCE_MINUTES,
) -> Optional[HistoricalPattern]:
    matched: list[TrafficReport] = []
    if road_id:
        matched = pool.historical_reports(road_id, day_of_week, hour_of_day, tolerance_minutes)
    if not matched and road_name:
        matched = pool.historical_reports_by_street_name(
            road_name, day_of_week, hour_of_day, tolerance_minutes
        )
    if not matched:
        return None

    summary = report_summary(matched)
    dominant = next((t for t in SEVERITY_PRIORITY if summary[t] > 0), None)
    if dominant is None:
        return None

    timestamps = [r.timestamp for r in matched if r.timestamp is not None]
    count = summary[dominant]
    return HistoricalPattern(
        type=dominant,
        count=count,
        total_reports=len(matched),
        confidence=count / len(matched),
        last_report_date=max(timestamps) if timestamps else None,
    )


def weeks_ago(last_report_date: Optional[datetime], now: datetime) -> int:
    if last_report_date is None:
        return 0
    elapsed = to_utc(now) - to_utc(last_report_date)
    return max(0, elapsed // timedelta(days=7))


def historical_message(
    pattern: HistoricalPattern, now: datetime, tz: ZoneInfo = DEFAULT_TZ
) -> str:
    plural = "s" if pattern.count > 1 else ""
    weeks = weeks_ago(pattern.last_report_date, now)
    suffix = ""
    if weeks > 0:
        suffix = f", {weeks} week{'s' if weeks > 1 else ''} ago"
    return (
        f"No live reports. Last {weekday_name(now, tz)} at this time: "
        f"{pattern.type} traffic ({pattern.count} report{plural}{suffix})"
    )
