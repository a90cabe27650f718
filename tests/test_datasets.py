from __future__ import annotations

import pandas as pd

from routewatch.storage.datasets import append_csv, load_csv, write_text_atomic


def test_append_csv_creates_file(tmp_path) -> None:
    path = tmp_path / "nested" / "reports.csv"
    append_csv(pd.DataFrame([{"id": 1, "reportType": "heavy"}]), path)
    out = load_csv(path)
    assert out.to_dict(orient="records") == [{"id": 1, "reportType": "heavy"}]


def test_append_csv_aligns_to_existing_header(tmp_path) -> None:
    path = tmp_path / "reports.csv"
    append_csv(pd.DataFrame([{"id": 1, "roadId": "a"}]), path)
    append_csv(pd.DataFrame([{"id": 2, "extra": 999}]), path)
    out = load_csv(path)
    assert list(out.columns) == ["id", "roadId"]
    assert out["id"].tolist() == [1, 2]
    assert out["roadId"].isna().tolist() == [False, True]


def test_append_csv_ignores_empty_frames(tmp_path) -> None:
    path = tmp_path / "reports.csv"
    append_csv(pd.DataFrame(), path)
    assert not path.exists()


def test_write_text_atomic_replaces_content(tmp_path) -> None:
    path = tmp_path / "data" / "reports.json"
    write_text_atomic(path, "first")
    write_text_atomic(path, "second")
    assert path.read_text(encoding="utf-8") == "second"
    assert not (tmp_path / "data" / "reports.json.tmp").exists()
