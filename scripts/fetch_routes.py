from __future__ import annotations

import argparse
import json
from zoneinfo import ZoneInfo

from routewatch.analytics.annotator import annotate_routes, annotation_spec_from_config
from routewatch.logging_config import configure_logging
from routewatch.routing.osrm_client import OsrmRoutingClient
from routewatch.routing.schemas import LatLng
from routewatch.settings import get_config
from routewatch.storage.report_store import ReportStore
from routewatch.storage.repositories import repository_from_config
from routewatch.utils.time import parse_datetime, utc_now


def _parse_point(text: str) -> LatLng:
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError("points must be 'lat,lng'")
    try:
        return LatLng(lat=float(parts[0]), lng=float(parts[1]))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch alternative routes from OSRM and annotate them with traffic reports."
    )
    parser.add_argument("--start", required=True, type=_parse_point, help="Start point as 'lat,lng'.")
    parser.add_argument("--end", required=True, type=_parse_point, help="End point as 'lat,lng'.")
    parser.add_argument(
        "--at",
        default=None,
        help="Evaluate live/historical traffic as of this datetime (ISO 8601, default: now).",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print one line per route instead of the full JSON document.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()

    config = get_config()
    tz = ZoneInfo(config.app.timezone)
    now = parse_datetime(args.at, tz) if args.at else utc_now()

    store = ReportStore(repository_from_config(config), tz=tz)
    with OsrmRoutingClient(config=config) as client:
        routes = client.fetch_routes(args.start, args.end)

    annotated = annotate_routes(routes, store.snapshot(), now, annotation_spec_from_config(config))

    if args.summary:
        for route in annotated:
            flag = "FLAGGED" if route.has_flagged_roads else "clear"
            print(
                f"{route.name}: {route.distance_km:.1f} km, {route.eta_minutes:.0f} min, {flag}, "
                f"traffic={route.traffic_summary.model_dump()}"
            )
        return

    payload = [route.model_dump(by_alias=True, mode="json") for route in annotated]
    print(json.dumps(payload, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
