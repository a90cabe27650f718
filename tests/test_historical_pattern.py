from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from routewatch.analytics.historical import historical_message, infer_pattern, weeks_ago
from routewatch.reports.schemas import HistoricalPattern, TrafficReport
from routewatch.storage.report_store import ReportSnapshot


KIGALI = ZoneInfo("Africa/Kigali")
# Wednesday 08:00 local time.
NOW = datetime(2026, 10, 14, 8, 0, tzinfo=KIGALI)
WEDNESDAY = 3


def _past(weeks: int, minutes: int = 0) -> datetime:
    return NOW - timedelta(weeks=weeks) + timedelta(minutes=minutes)


def _pool(*reports: TrafficReport) -> ReportSnapshot:
    return ReportSnapshot(tuple(reports), KIGALI)


def test_priority_order_beats_majority() -> None:
    reports = [
        TrafficReport(id=i, road_id="road_1", report_type="light", timestamp=_past(1, i))
        for i in range(5)
    ]
    reports.append(TrafficReport(id=99, road_id="road_1", report_type="heavy", timestamp=_past(2)))

    pattern = infer_pattern(_pool(*reports), "road_1", None, WEDNESDAY, 8)
    assert pattern is not None
    assert pattern.type == "heavy"
    assert pattern.count == 1
    assert pattern.total_reports == 6
    assert abs(pattern.confidence - 1 / 6) < 1e-9


def test_accident_is_checked_last() -> None:
    pool = _pool(
        TrafficReport(id=1, road_id="r", report_type="accident", timestamp=_past(1)),
        TrafficReport(id=2, road_id="r", report_type="light", timestamp=_past(1)),
    )
    pattern = infer_pattern(pool, "r", None, WEDNESDAY, 8)
    assert pattern is not None and pattern.type == "light"

    only_accident = _pool(TrafficReport(id=1, road_id="r", report_type="accident", timestamp=_past(1)))
    pattern = infer_pattern(only_accident, "r", None, WEDNESDAY, 8)
    assert pattern is not None and pattern.type == "accident"


def test_falls_back_to_street_name_and_reports_last_date() -> None:
    pool = _pool(
        TrafficReport(id=1, road_id="road_a", road_name="KN 5 Rd", report_type="medium", timestamp=_past(3)),
        TrafficReport(id=2, road_id="road_b", road_name="KN5", report_type="medium", timestamp=_past(1, 10)),
    )
    pattern = infer_pattern(pool, "road_0_0", "KN 5", WEDNESDAY, 8)
    assert pattern is not None
    assert pattern.type == "medium"
    assert pattern.count == 2
    assert pattern.confidence == 1.0
    assert pattern.last_report_date == _past(1, 10)


def test_no_pattern_when_nothing_in_window() -> None:
    pool = _pool(
        TrafficReport(id=1, road_id="r", report_type="heavy", timestamp=_past(1) + timedelta(hours=3)),
    )
    assert infer_pattern(pool, "r", "KN 5", WEDNESDAY, 8) is None
    assert infer_pattern(_pool(), None, None, WEDNESDAY, 8) is None


def test_unknown_types_only_yield_no_pattern() -> None:
    pool = _pool(TrafficReport(id=1, road_id="r", report_type="gridlock", timestamp=_past(1)))
    assert infer_pattern(pool, "r", None, WEDNESDAY, 8) is None


def test_weeks_ago_floors() -> None:
    assert weeks_ago(NOW - timedelta(days=6, hours=23), NOW) == 0
    assert weeks_ago(NOW - timedelta(days=7), NOW) == 1
    assert weeks_ago(NOW - timedelta(days=20), NOW) == 2
    assert weeks_ago(None, NOW) == 0


def test_historical_message_formats() -> None:
    single = HistoricalPattern(
        type="heavy", count=1, total_reports=1, confidence=1.0, last_report_date=NOW - timedelta(days=2)
    )
    assert historical_message(single, NOW, KIGALI) == (
        "No live reports. Last Wednesday at this time: heavy traffic (1 report)"
    )

    several = HistoricalPattern(
        type="medium", count=3, total_reports=4, confidence=0.75, last_report_date=NOW - timedelta(weeks=2)
    )
    assert historical_message(several, NOW, KIGALI) == (
        "No live reports. Last Wednesday at this time: medium traffic (3 reports, 2 weeks ago)"
    )

    one_week = several.model_copy(update={"last_report_date": NOW - timedelta(weeks=1)})
    assert historical_message(one_week, NOW, KIGALI).endswith("(3 reports, 1 week ago)")
