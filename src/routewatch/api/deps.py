from __future__ import annotations

import threading
from zoneinfo import ZoneInfo

from routewatch.routing.osrm_client import OsrmRoutingClient, routing_client_from_config
from routewatch.settings import get_config
from routewatch.storage.report_store import ReportStore
from routewatch.storage.repositories import repository_from_config


_STORE: ReportStore | None = None
_STORE_LOCK = threading.Lock()


def get_report_store() -> ReportStore:
    global _STORE
    if _STORE is None:
        with _STORE_LOCK:
            if _STORE is None:
                config = get_config()
                _STORE = ReportStore(
                    repository_from_config(config), tz=ZoneInfo(config.app.timezone)
                )
    return _STORE


def get_routing_client() -> OsrmRoutingClient:
    return routing_client_from_config(get_config())
