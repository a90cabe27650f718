from __future__ import annotations

import logging
import math
import time
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from routewatch.api.deps import get_report_store
from routewatch.api.schemas import (
    EmptyReason,
    ItemsResponse,
    ReasonCode,
    ReportCreate,
    ReportCreated,
    RoadReports,
)
from routewatch.reports.schemas import FlaggedRoad, TrafficReport
from routewatch.storage.report_store import report_summary
from routewatch.utils.time import end_of_day, is_date_only, parse_datetime


router = APIRouter()
logger = logging.getLogger(__name__)


def coordinate_road_id(lat: float, lng: float) -> str:
    """Coarse road bucket (~1 km) for reports submitted with coordinates only."""

    return f"road_{math.floor(lat * 100)}_{math.floor(lng * 100)}"


@router.get("/reports", response_model=ItemsResponse[TrafficReport])
def list_reports(
    start: Optional[str] = Query(default=None, description="Start datetime (ISO 8601)."),
    end: Optional[str] = Query(
        default=None, description="End datetime (ISO 8601); a bare date includes the whole day."
    ),
) -> ItemsResponse[TrafficReport]:
    store = get_report_store()
    try:
        start_dt: Optional[datetime] = parse_datetime(start, store.tz) if start else None
        end_dt: Optional[datetime] = parse_datetime(end, store.tz) if end else None
        if end and end_dt is not None and is_date_only(end):
            # A bare end date covers that whole local day.
            end_dt = end_of_day(end_dt)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid datetime: {exc}") from exc
    if start_dt is not None and end_dt is not None and end_dt < start_dt:
        raise HTTPException(status_code=400, detail="'end' must not be earlier than 'start'.")

    if start_dt is None and end_dt is None:
        reports = store.all_reports()
    else:
        reports = store.reports_between(start_dt, end_dt)

    if not reports:
        windowed = start_dt is not None or end_dt is not None
        return ItemsResponse(
            items=[],
            reason=EmptyReason(
                code=ReasonCode.NO_REPORTS_IN_WINDOW if windowed else ReasonCode.NO_REPORTS,
                message="No traffic reports found." if not windowed else "No reports in this time window.",
                suggestion="Try a wider time window." if windowed else None,
            ),
        )

    # Newest first; undated legacy records sink to the bottom.
    ordered = sorted(
        reports,
        key=lambda r: r.timestamp.timestamp() if r.timestamp is not None else float("-inf"),
        reverse=True,
    )
    return ItemsResponse(items=ordered)


@router.post("/reports", response_model=ReportCreated)
def submit_report(payload: ReportCreate) -> ReportCreated:
    road_id = payload.road_id
    road_name = payload.road_name
    has_coords = payload.lat is not None and payload.lng is not None

    if has_coords and not road_id:
        road_id = coordinate_road_id(payload.lat, payload.lng)  # type: ignore[arg-type]
        if not road_name:
            road_name = f"Road at {payload.lat:.4f}, {payload.lng:.4f}"

    if not road_id:
        raise HTTPException(status_code=400, detail="roadId or coordinates (lat, lng) are required")

    report = TrafficReport(
        road_id=road_id,
        road_name=road_name or f"Road {road_id}",
        report_type=payload.report_type.value,
        user_id=payload.user_id or f"user_{int(time.time() * 1000)}",
        lat=payload.lat if has_coords else None,
        lng=payload.lng if has_coords else None,
    )
    try:
        stored = get_report_store().add_report(report)
    except OSError as exc:
        logger.exception("Failed to persist report")
        raise HTTPException(status_code=500, detail="Failed to submit report") from exc

    return ReportCreated(report=stored, message="Thank you! Your report will help other drivers.")


@router.get("/reports/road/{road_id}", response_model=RoadReports)
def reports_for_road(road_id: str) -> RoadReports:
    reports = get_report_store().reports_for_road(road_id)
    return RoadReports(
        road_id=road_id,
        reports=reports,
        summary=report_summary(reports),
        total_reports=len(reports),
    )


@router.get("/roads/flagged", response_model=list[FlaggedRoad])
def flagged_roads() -> list[FlaggedRoad]:
    return get_report_store().flagged_roads()
