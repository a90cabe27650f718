from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from routewatch.utils.geo import validate_coordinates
from routewatch.utils.time import to_utc


class ReportType(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"
    BLOCKED = "blocked"
    ACCIDENT = "accident"


REPORT_TYPES: tuple[str, ...] = tuple(member.value for member in ReportType)


class TrafficReport(BaseModel):
    """A crowd-submitted point report.

    `report_type` stays a plain string here so records written by older versions (or by hand)
    still load; submissions are validated against `ReportType` at the API edge.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[int] = None
    road_id: Optional[str] = Field(default=None, alias="roadId")
    road_name: str = Field(default="", alias="roadName")
    report_type: str = Field(alias="reportType")
    user_id: Optional[str] = Field(default=None, alias="userId")
    lat: Optional[float] = None
    lng: Optional[float] = None
    timestamp: Optional[datetime] = None

    @field_validator("road_name", mode="before")
    @classmethod
    def _none_name_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_coordinates(self) -> "TrafficReport":
        if self.lat is not None and self.lng is not None:
            validate_coordinates(self.lat, self.lng)
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class HistoricalPattern(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    count: int
    total_reports: int = Field(alias="totalReports")
    confidence: float
    last_report_date: Optional[datetime] = Field(default=None, alias="lastReportDate")


class FlaggedRoad(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    road_id: Optional[str] = Field(default=None, alias="roadId")
    road_name: str = Field(default="", alias="roadName")
    reports: list[TrafficReport] = Field(default_factory=list)
