from __future__ import annotations

import json
from typing import Any, Optional

from fastapi.testclient import TestClient


def _make_client(monkeypatch, tmp_path, records: Optional[list[dict[str, Any]]] = None) -> TestClient:
    reports_path = tmp_path / "reports.json"
    if records is not None:
        reports_path.write_text(json.dumps({"reports": records, "nextId": len(records) + 1}), encoding="utf-8")

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"storage:\n  backend: json\n  reports_path: {reports_path}\n", encoding="utf-8"
    )
    monkeypatch.setenv("ROUTEWATCH_CONFIG", str(config_path))
    monkeypatch.setattr("routewatch.settings._CONFIG", None)
    monkeypatch.setattr("routewatch.api.deps._STORE", None)

    from routewatch.api.app import create_app

    return TestClient(create_app())


SEED = [
    {
        "id": 1,
        "roadId": "road_a",
        "roadName": "KN 5 Rd",
        "reportType": "heavy",
        "lat": -1.95,
        "lng": 30.05,
        "timestamp": "2026-10-14T05:30:00Z",
    },
    {"id": 2, "roadId": "road_b", "roadName": "KG 7 Ave", "reportType": "light", "timestamp": "2026-10-14T07:00:00Z"},
    {"id": 3, "roadId": "road_a", "roadName": "KN 5 Rd", "reportType": "blocked", "timestamp": "2026-10-13T06:00:00Z"},
]


def test_healthz(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path)
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_list_reports_empty_store_has_reason(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path)
    resp = client.get("/reports")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["items"] == []
    assert body["reason"]["code"] == "no_reports"


def test_list_reports_newest_first(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path, SEED)
    resp = client.get("/reports")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert [item["id"] for item in body["items"]] == [2, 1, 3]
    assert body["items"][0]["roadName"] == "KG 7 Ave"
    assert body["reason"] is None


def test_list_reports_time_window(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path, SEED)

    # Naive datetimes are read as local (UTC+2) time: 07:00..09:00 local is 05:00..07:00 UTC.
    resp = client.get("/reports", params={"start": "2026-10-14T07:00:00", "end": "2026-10-14T09:00:00"})
    assert resp.status_code == 200, resp.text
    assert [item["id"] for item in resp.json()["items"]] == [2, 1]

    resp = client.get("/reports", params={"start": "2027-01-01T00:00:00Z"})
    assert resp.status_code == 200
    assert resp.json()["items"] == []
    assert resp.json()["reason"]["code"] == "no_reports_in_window"


def test_list_reports_bare_end_date_covers_whole_day(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path, SEED)
    resp = client.get("/reports", params={"start": "2026-10-14", "end": "2026-10-14"})
    assert resp.status_code == 200, resp.text
    assert [item["id"] for item in resp.json()["items"]] == [2, 1]

    resp = client.get("/reports", params={"start": "2026-10-13", "end": "2026-10-13"})
    assert [item["id"] for item in resp.json()["items"]] == [3]


def test_list_reports_rejects_bad_window(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path, SEED)
    assert client.get("/reports", params={"start": "yesterday"}).status_code == 400
    resp = client.get("/reports", params={"start": "2026-10-14T09:00:00", "end": "2026-10-14T08:00:00"})
    assert resp.status_code == 400


def test_submit_report_with_coordinates_only(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path)
    resp = client.post("/reports", json={"reportType": "heavy", "lat": -1.9501, "lng": 30.0501})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    report = body["report"]
    assert report["id"] == 1
    assert report["roadId"] == "road_-196_3005"
    assert report["roadName"] == "Road at -1.9501, 30.0501"
    assert report["reportType"] == "heavy"
    assert report["userId"].startswith("user_")
    assert report["timestamp"]
    assert body["message"]

    saved = json.loads((tmp_path / "reports.json").read_text(encoding="utf-8"))
    assert saved["nextId"] == 2
    assert saved["reports"][0]["roadId"] == "road_-196_3005"

    listed = client.get("/reports").json()["items"]
    assert [item["id"] for item in listed] == [1]


def test_submit_report_with_road_id_only(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path, SEED)
    resp = client.post(
        "/reports", json={"roadId": "road_a", "roadName": "KN 5 Rd", "reportType": "accident", "userId": "u1"}
    )
    assert resp.status_code == 200, resp.text
    report = resp.json()["report"]
    assert report["id"] == 4
    assert report["lat"] is None and report["lng"] is None
    assert report["userId"] == "u1"


def test_submit_report_requires_road_or_coordinates(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path)
    resp = client.post("/reports", json={"reportType": "light", "lat": -1.95})
    assert resp.status_code == 400
    assert "roadId" in resp.json()["detail"]


def test_submit_report_validates_input(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path)
    assert client.post("/reports", json={"roadId": "r", "reportType": "gridlock"}).status_code == 422
    assert client.post("/reports", json={"reportType": "heavy", "lat": 120.0, "lng": 30.0}).status_code == 422
    assert client.post("/reports", json={"roadId": "r"}).status_code == 422
    assert client.get("/reports").json()["items"] == []


def test_reports_for_road(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path, SEED)
    resp = client.get("/reports/road/road_a")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["roadId"] == "road_a"
    assert body["totalReports"] == 2
    assert body["summary"] == {"light": 0, "medium": 0, "heavy": 1, "blocked": 1, "accident": 0}

    empty = client.get("/reports/road/nowhere").json()
    assert empty["totalReports"] == 0 and empty["reports"] == []


def test_flagged_roads_groups_by_road(monkeypatch, tmp_path) -> None:
    client = _make_client(monkeypatch, tmp_path, SEED)
    resp = client.get("/roads/flagged")
    assert resp.status_code == 200, resp.text
    roads = {road["roadId"]: road for road in resp.json()}
    assert set(roads) == {"road_a", "road_b"}
    assert roads["road_a"]["roadName"] == "KN 5 Rd"
    assert [r["id"] for r in roads["road_a"]["reports"]] == [1, 3]
