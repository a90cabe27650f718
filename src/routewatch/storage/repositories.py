"""Persistence collaborators for the report store.

A repository only has to do two things: hand back every stored record on startup and durably
append one new record. The store keeps the working set in memory, so repositories never serve
queries themselves.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

import pandas as pd
from pydantic import ValidationError

from routewatch.reports.schemas import TrafficReport
from routewatch.settings import AppConfig, get_config
from routewatch.storage.datasets import append_csv, load_csv, write_text_atomic


logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["id", "roadId", "roadName", "reportType", "userId", "lat", "lng", "timestamp"]
_STRING_COLUMNS = {"roadId": "string", "roadName": "string", "reportType": "string", "userId": "string"}


class ReportRepository(Protocol):
    def load_all(self) -> list[TrafficReport]: ...

    def append(self, report: TrafficReport) -> None: ...


def _report_record(report: TrafficReport) -> dict[str, Any]:
    return report.model_dump(by_alias=True, mode="json")


def _parse_records(records: Iterable[dict[str, Any]], source: str) -> list[TrafficReport]:
    reports: list[TrafficReport] = []
    for record in records:
        try:
            reports.append(TrafficReport.model_validate(record))
        except ValidationError as exc:
            logger.warning("Skipping malformed report in %s: %s", source, exc.errors()[:1])
    return reports


class InMemoryReportRepository:
    def __init__(self, reports: Optional[Iterable[TrafficReport]] = None) -> None:
        self._reports: list[TrafficReport] = list(reports or [])

    def load_all(self) -> list[TrafficReport]:
        return list(self._reports)

    def append(self, report: TrafficReport) -> None:
        self._reports.append(report)


class JsonReportRepository:
    """Whole-file JSON snapshot: `{"reports": [...], "nextId": n, "lastUpdated": iso}`.

    Every append rewrites the snapshot through a temp file so readers of the file never see a
    half-written document.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._records: Optional[list[dict[str, Any]]] = None

    def _read_records(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Reports file is not valid JSON: {self.path}") from exc
        records = payload.get("reports") if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            return []
        return [r for r in records if isinstance(r, dict)]

    def load_all(self) -> list[TrafficReport]:
        self._records = self._read_records()
        return _parse_records(self._records, str(self.path))

    def append(self, report: TrafficReport) -> None:
        if self._records is None:
            self._records = self._read_records()
        # Only adopt the new list once it is on disk, so a failed write leaves no trace.
        records = [*self._records, _report_record(report)]
        ids = [int(r["id"]) for r in records if isinstance(r.get("id"), int)]
        payload = {
            "reports": records,
            "nextId": (max(ids) + 1) if ids else 1,
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }
        write_text_atomic(self.path, json.dumps(payload, ensure_ascii=False, indent=2))
        self._records = records
        logger.debug("Reports saved: %s total reports to %s", len(records), self.path)


def _to_optional_int(value: object) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


class CsvReportRepository:
    """Append-only CSV log, one row per report."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load_all(self) -> list[TrafficReport]:
        if not self.path.exists():
            return []
        df = load_csv(self.path, dtype=_STRING_COLUMNS)
        if df.empty:
            return []

        # NaN must become a real None before pydantic sees it.
        df = df.astype(object).where(pd.notnull(df), None)
        records = df.to_dict(orient="records")
        for record in records:
            record["id"] = _to_optional_int(record.get("id"))
        return _parse_records(records, str(self.path))

    def append(self, report: TrafficReport) -> None:
        row = _report_record(report)
        df = pd.DataFrame([{col: row.get(col) for col in REPORT_COLUMNS}], columns=REPORT_COLUMNS)
        append_csv(df, self.path)


def repository_from_config(config: Optional[AppConfig] = None) -> ReportRepository:
    resolved = config or get_config()
    backend = (resolved.storage.backend or "json").lower()
    if backend == "memory":
        return InMemoryReportRepository()
    if backend == "json":
        return JsonReportRepository(resolved.storage.reports_path)
    if backend == "csv":
        return CsvReportRepository(resolved.storage.reports_path)
    raise ValueError("storage.backend must be one of: json, csv, memory")
