"""In-memory report store with pluggable persistence.

The store publishes its collection as an immutable `ReportSnapshot`. Writers serialize on a
lock and swap in a new snapshot; readers just grab the current reference and never lock, so a
lookup can run while a report is being appended and will simply not see it yet.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from routewatch.reports.schemas import REPORT_TYPES, FlaggedRoad, TrafficReport
from routewatch.storage.repositories import ReportRepository
from routewatch.utils.geo import haversine_meters
from routewatch.utils.time import DEFAULT_TZ, minute_of_day, to_utc, utc_now
from routewatch.utils.time import day_of_week as local_day_of_week


logger = logging.getLogger(__name__)

DEFAULT_RADIUS_METERS = 200.0
DEFAULT_TOLERANCE_MINUTES = 30

# Road identifiers in map data look like "KN 5 Rd", "kg5", "DR 12".
_ROAD_CODE_RE = re.compile(r"(?<![a-z])([a-z]{1,2})\s*(\d+)")


def report_summary(reports: Iterable[TrafficReport]) -> dict[str, int]:
    summary = {report_type: 0 for report_type in REPORT_TYPES}
    for report in reports:
        if report.report_type in summary:
            summary[report.report_type] += 1
    return summary


def _normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def road_code(name: Optional[str]) -> Optional[str]:
    """Return the first road code in `name` with whitespace removed, e.g. "KN 5 Rd" -> "kn5"."""

    match = _ROAD_CODE_RE.search(_normalize_name(name))
    if match is None:
        return None
    return f"{match.group(1)}{match.group(2)}"


def street_names_match(report_name: Optional[str], search_name: Optional[str]) -> bool:
    report_norm = _normalize_name(report_name)
    search_norm = _normalize_name(search_name)
    if not report_norm or not search_norm:
        return False
    if report_norm in search_norm or search_norm in report_norm:
        return True
    report_key = road_code(report_norm)
    return report_key is not None and report_key == road_code(search_norm)


@dataclass(frozen=True)
class ReportSnapshot:
    """Immutable view of the report collection at one point in time."""

    reports: tuple[TrafficReport, ...] = ()
    tz: ZoneInfo = DEFAULT_TZ

    def __len__(self) -> int:
        return len(self.reports)

    def all_reports(self) -> list[TrafficReport]:
        return list(self.reports)

    def get_report(self, report_id: int) -> Optional[TrafficReport]:
        for report in self.reports:
            if report.id == report_id:
                return report
        return None

    def reports_for_road(self, road_id: Optional[str]) -> list[TrafficReport]:
        return [r for r in self.reports if r.road_id == road_id]

    def reports_by_street_name(self, name: Optional[str]) -> list[TrafficReport]:
        if not _normalize_name(name):
            return []
        return [r for r in self.reports if street_names_match(r.road_name, name)]

    def reports_near_location(
        self, lat: float, lng: float, radius_meters: float = DEFAULT_RADIUS_METERS
    ) -> list[TrafficReport]:
        return [
            r
            for r in self.reports
            if r.has_coordinates
            and haversine_meters(r.lat, r.lng, lat, lng) <= radius_meters  # type: ignore[arg-type]
        ]

    def reports_between(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[TrafficReport]:
        start_utc = to_utc(start, self.tz) if start is not None else None
        end_utc = to_utc(end, self.tz) if end is not None else None
        out: list[TrafficReport] = []
        for report in self.reports:
            if report.timestamp is None:
                continue
            if start_utc is not None and report.timestamp < start_utc:
                continue
            if end_utc is not None and report.timestamp > end_utc:
                continue
            out.append(report)
        return out

    def _in_time_window(
        self, report: TrafficReport, target_day: int, hour_of_day: int, tolerance_minutes: int
    ) -> bool:
        if report.timestamp is None:
            return False
        if local_day_of_week(report.timestamp, self.tz) != target_day:
            return False
        diff = abs(minute_of_day(report.timestamp, self.tz) - hour_of_day * 60)
        return diff <= tolerance_minutes

    def historical_reports(
        self,
        road_id: Optional[str],
        day_of_week: int,
        hour_of_day: int,
        tolerance_minutes: int = DEFAULT_TOLERANCE_MINUTES,
    ) -> list[TrafficReport]:
        out: list[TrafficReport] = []
        for report in self.reports:
            if not self._in_time_window(report, day_of_week, hour_of_day, tolerance_minutes):
                continue
            if road_id and report.road_id != road_id:
                report_name = _normalize_name(report.road_name)
                search = road_id.lower()
                if not report_name or (report_name not in search and search not in report_name):
                    continue
            out.append(report)
        return out

    def historical_reports_by_street_name(
        self,
        name: Optional[str],
        day_of_week: int,
        hour_of_day: int,
        tolerance_minutes: int = DEFAULT_TOLERANCE_MINUTES,
    ) -> list[TrafficReport]:
        if not _normalize_name(name):
            return []
        return [
            r
            for r in self.reports
            if self._in_time_window(r, day_of_week, hour_of_day, tolerance_minutes)
            and street_names_match(r.road_name, name)
        ]

    def flagged_roads(self) -> list[FlaggedRoad]:
        grouped: dict[Optional[str], list[TrafficReport]] = {}
        for report in self.reports:
            grouped.setdefault(report.road_id, []).append(report)
        return [
            FlaggedRoad(road_id=road_id, road_name=reports[0].road_name, reports=reports)
            for road_id, reports in grouped.items()
        ]

    @staticmethod
    def report_summary(reports: Iterable[TrafficReport]) -> dict[str, int]:
        return report_summary(reports)


class ReportStore:
    def __init__(self, repository: ReportRepository, tz: ZoneInfo = DEFAULT_TZ) -> None:
        self.repository = repository
        self.tz = tz
        self._lock = threading.Lock()
        loaded = repository.load_all()
        self._next_id = max((r.id for r in loaded if r.id is not None), default=0) + 1
        self._snapshot = ReportSnapshot(tuple(loaded), tz)
        logger.info("Report store loaded %s reports", len(loaded))

    def snapshot(self) -> ReportSnapshot:
        return self._snapshot

    def add_report(self, report: Union[TrafficReport, Mapping[str, Any]]) -> TrafficReport:
        incoming = report if isinstance(report, TrafficReport) else TrafficReport.model_validate(report)
        if not incoming.has_coordinates:
            logger.warning(
                "Report added without coordinates, matching falls back to road id/name: road=%s",
                incoming.road_name or incoming.road_id,
            )

        with self._lock:
            update: dict[str, Any] = {}
            if incoming.id is None:
                update["id"] = self._next_id
            if incoming.timestamp is None:
                update["timestamp"] = utc_now()
            stored = incoming.model_copy(update=update) if update else incoming

            # Persist before publishing so a failed write never leaves a phantom report in memory.
            self.repository.append(stored)
            self._next_id = max(self._next_id, (stored.id or 0) + 1)
            self._snapshot = ReportSnapshot(self._snapshot.reports + (stored,), self.tz)

        logger.info(
            "New report added: id=%s type=%s road=%s coords=(%s, %s)",
            stored.id,
            stored.report_type,
            stored.road_name,
            stored.lat,
            stored.lng,
        )
        return stored

    # Read operations delegate to whatever snapshot is current when they are called.

    def all_reports(self) -> list[TrafficReport]:
        return self._snapshot.all_reports()

    def get_report(self, report_id: int) -> Optional[TrafficReport]:
        return self._snapshot.get_report(report_id)

    def reports_for_road(self, road_id: Optional[str]) -> list[TrafficReport]:
        return self._snapshot.reports_for_road(road_id)

    def reports_by_street_name(self, name: Optional[str]) -> list[TrafficReport]:
        return self._snapshot.reports_by_street_name(name)

    def reports_near_location(
        self, lat: float, lng: float, radius_meters: float = DEFAULT_RADIUS_METERS
    ) -> list[TrafficReport]:
        return self._snapshot.reports_near_location(lat, lng, radius_meters)

    def reports_between(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[TrafficReport]:
        return self._snapshot.reports_between(start, end)

    def historical_reports(
        self,
        road_id: Optional[str],
        day_of_week: int,
        hour_of_day: int,
        tolerance_minutes: int = DEFAULT_TOLERANCE_MINUTES,
    ) -> list[TrafficReport]:
        return self._snapshot.historical_reports(road_id, day_of_week, hour_of_day, tolerance_minutes)

    def historical_reports_by_street_name(
        self,
        name: Optional[str],
        day_of_week: int,
        hour_of_day: int,
        tolerance_minutes: int = DEFAULT_TOLERANCE_MINUTES,
    ) -> list[TrafficReport]:
        return self._snapshot.historical_reports_by_street_name(
            name, day_of_week, hour_of_day, tolerance_minutes
        )

    def flagged_roads(self) -> list[FlaggedRoad]:
        return self._snapshot.flagged_roads()

    @staticmethod
    def report_summary(reports: Iterable[TrafficReport]) -> dict[str, int]:
        return report_summary(reports)
