from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from zoneinfo import ZoneInfo

from routewatch.analytics.historical import historical_message, infer_pattern
from routewatch.matching.segment_matcher import default_strategies, match_segment
from routewatch.reports.schemas import TrafficReport
from routewatch.routing.schemas import AnnotatedRoute, AnnotatedSegment, RoadSegment, Route, TrafficSummary
from routewatch.settings import AppConfig, get_config
from routewatch.storage.report_store import ReportSnapshot, ReportStore, report_summary
from routewatch.utils.time import DEFAULT_TZ, day_of_week, local_time, to_utc


@dataclass(frozen=True)
class AnnotationSpec:
    """Parameters for one annotation pass."""

    proximity_radius_meters: float = 200.0
    live_window_minutes: int = 10
    historical_tolerance_minutes: int = 30
    tz: ZoneInfo = DEFAULT_TZ


def annotation_spec_from_config(config: Optional[AppConfig] = None) -> AnnotationSpec:
    resolved = config or get_config()
    section = resolved.matching
    return AnnotationSpec(
        proximity_radius_meters=float(section.proximity_radius_meters),
        live_window_minutes=int(section.live_window_minutes),
        historical_tolerance_minutes=int(section.historical_tolerance_minutes),
        tz=ZoneInfo(resolved.app.timezone),
    )


def _as_snapshot(pool: ReportSnapshot | ReportStore) -> ReportSnapshot:
    return pool.snapshot() if isinstance(pool, ReportStore) else pool


def is_live(report: TrafficReport, now: datetime, window_minutes: int = 10) -> bool:
    if report.timestamp is None:
        return False
    return to_utc(now) - report.timestamp <= timedelta(minutes=window_minutes)


def annotate_segment(
    segment: RoadSegment,
    pool: ReportSnapshot,
    now: datetime,
    spec: AnnotationSpec = AnnotationSpec(),
) -> AnnotatedSegment:
    match = match_segment(segment, pool, default_strategies(spec.proximity_radius_meters))
    matched = match.reports
    recent = [r for r in matched if is_live(r, now, spec.live_window_minutes)]

    pattern = None
    message = None
    if not recent:
        pattern = infer_pattern(
            pool,
            segment.road_id,
            segment.road_name,
            day_of_week(now, spec.tz),
            local_time(now, spec.tz).hour,
            spec.historical_tolerance_minutes,
        )
        if pattern is not None:
            message = historical_message(pattern, now, spec.tz)

    return AnnotatedSegment(
        **segment.model_dump(),
        reports=matched,
        recent_reports=recent,
        report_count=len(matched),
        recent_report_count=len(recent),
        report_summary=report_summary(matched),
        recent_report_summary=report_summary(recent),
        historical_pattern=pattern,
        historical_message=message,
        has_live_data=bool(recent),
        match_tier=match.tier,
    )


def traffic_summary(segments: Iterable[AnnotatedSegment]) -> TrafficSummary:
    """Count segments (not reports) carrying each severity."""

    counts = {"heavy": 0, "medium": 0, "light": 0, "blocked": 0}
    for segment in segments:
        for key in counts:
            if segment.report_summary.get(key, 0) > 0:
                counts[key] += 1
    return TrafficSummary(**counts)


def _distinct_reports(groups: Iterable[list[TrafficReport]]) -> list[TrafficReport]:
    seen: dict[object, TrafficReport] = {}
    for reports in groups:
        for report in reports:
            key = report.id if report.id is not None else report.model_dump_json()
            seen.setdefault(key, report)
    return list(seen.values())


def annotate_route(
    route: Route,
    pool: ReportSnapshot | ReportStore,
    now: datetime,
    spec: AnnotationSpec = AnnotationSpec(),
) -> AnnotatedRoute:
    snapshot = _as_snapshot(pool)
    segments = [annotate_segment(segment, snapshot, now, spec) for segment in route.road_segments]
    route_fields = route.model_dump(exclude={"road_segments"})
    return AnnotatedRoute(
        **route_fields,
        road_segments=segments,
        has_flagged_roads=any(segment.reports for segment in segments),
        traffic_summary=traffic_summary(segments),
        report_summary=report_summary(_distinct_reports(s.reports for s in segments)),
        recent_report_summary=report_summary(_distinct_reports(s.recent_reports for s in segments)),
    )


def rank_routes(routes: Sequence[AnnotatedRoute]) -> list[AnnotatedRoute]:
    """Routes without flagged roads first, then by ascending ETA."""

    return sorted(routes, key=lambda r: (r.has_flagged_roads, r.eta_minutes))


def annotate_routes(
    routes: Sequence[Route],
    pool: ReportSnapshot | ReportStore,
    now: datetime,
    spec: AnnotationSpec = AnnotationSpec(),
) -> list[AnnotatedRoute]:
    # One snapshot for the whole batch so every route sees the same reports.
    snapshot = _as_snapshot(pool)
    return rank_routes([annotate_route(route, snapshot, now, spec) for route in routes])
