from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(root: Path, value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else (root / path)


class AppSection(BaseModel):
    name: str = "routewatch"
    timezone: str = "Africa/Kigali"


class StorageSection(BaseModel):
    backend: str = "json"  # json | csv | memory
    reports_path: Path = Path("data/reports.json")


class MatchingSection(BaseModel):
    proximity_radius_meters: float = 200.0
    live_window_minutes: int = 10
    historical_tolerance_minutes: int = 30


class RoutingSection(BaseModel):
    osrm_base_url: str = "https://router.project-osrm.org"
    profile: str = "driving"
    request_timeout_seconds: float = 15.0
    max_retries: int = 2
    retry_backoff_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    max_backoff_seconds: float = 10.0
    respect_retry_after: bool = True
    min_request_interval_seconds: float = 0.2
    alternatives: int = 3
    min_step_distance_meters: float = 50.0
    waypoint_offset_degrees: float = 0.015
    waypoint_positions: list[float] = Field(default_factory=lambda: [0.33, 0.67])
    dedup_threshold_km: float = 0.5


class CorsSection(BaseModel):
    allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )


class ApiSection(BaseModel):
    host: str = "0.0.0.0"
    port: int = 5000
    cors: CorsSection = Field(default_factory=CorsSection)


class AppConfig(BaseModel):
    app: AppSection = Field(default_factory=AppSection)
    storage: StorageSection = Field(default_factory=StorageSection)
    matching: MatchingSection = Field(default_factory=MatchingSection)
    routing: RoutingSection = Field(default_factory=RoutingSection)
    api: ApiSection = Field(default_factory=ApiSection)

    def resolve_paths(self, root: Optional[Path] = None) -> "AppConfig":
        repo_root = project_root() if root is None else root
        updated_storage = self.storage.model_copy(
            update={"reports_path": _resolve_path(repo_root, self.storage.reports_path)}
        )
        return self.model_copy(update={"storage": updated_storage})


def _maybe_load_dotenv() -> None:
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return

    load_dotenv()


def load_config(config_path: str | Path | None = None) -> AppConfig:
    _maybe_load_dotenv()

    root = project_root()
    candidate = config_path or os.getenv("ROUTEWATCH_CONFIG", "configs/config.yaml")
    path = _resolve_path(root, candidate)
    if not path.exists():
        path = root / "configs/config.example.yaml"

    data: dict[str, Any] = {}
    if path.exists():
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return AppConfig.model_validate(data).resolve_paths(root)


_CONFIG: AppConfig | None = None


def get_config() -> AppConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG
