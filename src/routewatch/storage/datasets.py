from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def append_csv(df: pd.DataFrame, path: Path) -> Path:
    """Append rows to a CSV log such as the report log, writing the header on first use.

    Rows are matched to the header already on disk, so a log written before a column was added
    keeps accepting rows: unknown columns are dropped and absent ones are left empty.
    """

    ensure_parent_dir(path)
    if df.empty:
        return path

    if not path.exists():
        df.to_csv(path, index=False)
        return path

    header = list(pd.read_csv(path, nrows=0).columns)
    rows = df.reindex(columns=header)
    rows.to_csv(path, mode="a", header=False, index=False)
    return path


def load_csv(path: Path, dtype: Optional[dict[str, str]] = None) -> pd.DataFrame:
    return pd.read_csv(path, dtype=dtype)


def write_text_atomic(path: Path, text: str) -> Path:
    ensure_parent_dir(path)
    tmp = path.with_suffix(f"{path.suffix}.tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)
    return path
