from __future__ import annotations

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from routewatch.reports.schemas import ReportType, TrafficReport
from routewatch.routing.schemas import AnnotatedRoute, LatLng, Route
from routewatch.utils.geo import validate_coordinates

T = TypeVar("T")


class ReasonCode(str, Enum):
    NO_REPORTS = "no_reports"
    NO_REPORTS_IN_WINDOW = "no_reports_in_window"


class EmptyReason(BaseModel):
    code: ReasonCode
    message: str
    suggestion: str | None = None


class ItemsResponse(BaseModel, Generic[T]):
    items: list[T] = Field(default_factory=list)
    reason: EmptyReason | None = None


class ReportCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    road_id: Optional[str] = Field(default=None, alias="roadId")
    road_name: Optional[str] = Field(default=None, alias="roadName")
    report_type: ReportType = Field(alias="reportType")
    user_id: Optional[str] = Field(default=None, alias="userId")
    lat: Optional[float] = None
    lng: Optional[float] = None

    @model_validator(mode="after")
    def _check_coordinates(self) -> "ReportCreate":
        if self.lat is not None and self.lng is not None:
            validate_coordinates(self.lat, self.lng)
        return self


class ReportCreated(BaseModel):
    report: TrafficReport
    message: str


class RoadReports(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    road_id: str = Field(alias="roadId")
    reports: list[TrafficReport]
    summary: dict[str, int]
    total_reports: int = Field(alias="totalReports")


class AnnotateRoutesRequest(BaseModel):
    routes: list[Route]


class RoutesResponse(BaseModel):
    routes: list[AnnotatedRoute]


class RefreshTrafficRequest(BaseModel):
    route: Route


class RouteResponse(BaseModel):
    route: AnnotatedRoute


class AlternativesRequest(BaseModel):
    start: LatLng
    end: LatLng


class AlternativesResponse(BaseModel):
    routes: list[AnnotatedRoute]
    start: LatLng
    end: LatLng
