from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from routewatch.reports.schemas import HistoricalPattern, TrafficReport


class LatLng(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class RoadSegment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    road_id: Optional[str] = Field(default=None, alias="roadId")
    road_name: str = Field(default="", alias="roadName")
    # Routing backends send "1.2 km" strings, callers sometimes plain numbers; kept as given.
    distance: Optional[Union[float, str]] = None
    geometry: Optional[list[LatLng]] = None


class Route(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    eta_minutes: float = 0
    distance_km: float = 0.0
    road_segments: list[RoadSegment] = Field(default_factory=list, alias="roadSegments")
    geometry: list[LatLng] = Field(default_factory=list)


class AnnotatedSegment(RoadSegment):
    reports: list[TrafficReport] = Field(default_factory=list)
    recent_reports: list[TrafficReport] = Field(default_factory=list, alias="recentReports")
    report_count: int = Field(default=0, alias="reportCount")
    recent_report_count: int = Field(default=0, alias="recentReportCount")
    report_summary: dict[str, int] = Field(default_factory=dict, alias="reportSummary")
    recent_report_summary: dict[str, int] = Field(default_factory=dict, alias="recentReportSummary")
    historical_pattern: Optional[HistoricalPattern] = Field(default=None, alias="historicalPattern")
    historical_message: Optional[str] = Field(default=None, alias="historicalMessage")
    has_live_data: bool = Field(default=False, alias="hasLiveData")
    match_tier: Optional[str] = Field(default=None, alias="matchTier")


class TrafficSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    heavy: int = 0
    medium: int = 0
    light: int = 0
    blocked: int = 0


class AnnotatedRoute(Route):
    road_segments: list[AnnotatedSegment] = Field(default_factory=list, alias="roadSegments")
    has_flagged_roads: bool = Field(default=False, alias="hasFlaggedRoads")
    traffic_summary: TrafficSummary = Field(default_factory=TrafficSummary, alias="trafficSummary")
    report_summary: dict[str, int] = Field(default_factory=dict, alias="reportSummary")
    recent_report_summary: dict[str, int] = Field(default_factory=dict, alias="recentReportSummary")
