"""Decide which traffic reports apply to one route segment.

Three strategies run in strict priority order and the first one that finds anything wins:

1. `coordinate` - reports within a radius of any point of the segment geometry.
2. `road_id`    - reports filed under exactly the segment's road id.
3. `name`       - reports whose road name loosely matches the segment's road name.

Results are never merged across tiers. Coordinates are ground truth; name matching is only a
fallback for segments without usable geometry, since a business called "KN 5 Cafe" does not have
to sit on KN 5.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from routewatch.reports.schemas import TrafficReport
from routewatch.routing.schemas import RoadSegment
from routewatch.storage.report_store import DEFAULT_RADIUS_METERS


class ReportPool(Protocol):
    def reports_for_road(self, road_id: Optional[str]) -> list[TrafficReport]: ...

    def reports_by_street_name(self, name: Optional[str]) -> list[TrafficReport]: ...

    def reports_near_location(
        self, lat: float, lng: float, radius_meters: float = ...
    ) -> list[TrafficReport]: ...


class MatchStrategy(Protocol):
    tier: str

    def __call__(self, segment: RoadSegment, pool: ReportPool) -> list[TrafficReport]: ...


def _report_key(report: TrafficReport) -> object:
    return report.id if report.id is not None else report.model_dump_json()


@dataclass(frozen=True)
class CoordinateMatch:
    radius_meters: float = DEFAULT_RADIUS_METERS
    tier: str = "coordinate"

    def __call__(self, segment: RoadSegment, pool: ReportPool) -> list[TrafficReport]:
        if not segment.geometry:
            return []
        found: dict[object, TrafficReport] = {}
        for point in segment.geometry:
            for report in pool.reports_near_location(point.lat, point.lng, self.radius_meters):
                found.setdefault(_report_key(report), report)
        return list(found.values())


@dataclass(frozen=True)
class RoadIdMatch:
    tier: str = "road_id"

    def __call__(self, segment: RoadSegment, pool: ReportPool) -> list[TrafficReport]:
        if not segment.road_id:
            return []
        return pool.reports_for_road(segment.road_id)


@dataclass(frozen=True)
class NameMatch:
    tier: str = "name"

    def __call__(self, segment: RoadSegment, pool: ReportPool) -> list[TrafficReport]:
        if not segment.road_name:
            return []
        return pool.reports_by_street_name(segment.road_name)


DEFAULT_STRATEGIES: tuple[MatchStrategy, ...] = (CoordinateMatch(), RoadIdMatch(), NameMatch())


def default_strategies(radius_meters: float = DEFAULT_RADIUS_METERS) -> tuple[MatchStrategy, ...]:
    return (CoordinateMatch(radius_meters=radius_meters), RoadIdMatch(), NameMatch())


@dataclass(frozen=True)
class SegmentMatch:
    tier: Optional[str]
    reports: list[TrafficReport]


def match_segment(
    segment: RoadSegment,
    pool: ReportPool,
    strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
) -> SegmentMatch:
    for strategy in strategies:
        reports = strategy(segment, pool)
        if reports:
            return SegmentMatch(tier=strategy.tier, reports=reports)
    return SegmentMatch(tier=None, reports=[])


def match_reports(
    segment: RoadSegment,
    pool: ReportPool,
    strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
) -> list[TrafficReport]:
    return match_segment(segment, pool, strategies).reports
