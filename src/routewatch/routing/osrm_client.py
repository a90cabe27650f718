"""OSRM routing client.

Fetches driving routes from an OSRM server and normalizes them into `Route` objects whose road
segments carry step geometry, so the coordinate tier of the segment matcher has something to
work with.

On top of OSRM's own alternatives (the public demo server caps them at 3), the client asks for
one extra route through each diversity waypoint and keeps it only when its length differs enough
from every route already collected.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Optional

import httpx

from routewatch.routing.diversity import intermediate_waypoints, is_distinct_route
from routewatch.routing.schemas import LatLng, RoadSegment, Route
from routewatch.settings import AppConfig, get_config


class RoutingClientError(RuntimeError):
    """Raised when OSRM fails after retries or returns an unusable payload."""


logger = logging.getLogger(__name__)


def _coords_path(points: list[LatLng]) -> str:
    # OSRM wants lng,lat pairs joined by ';'.
    return ";".join(f"{p.lng},{p.lat}" for p in points)


def _geojson_to_points(geometry: Any) -> list[LatLng]:
    if not isinstance(geometry, dict):
        return []
    coords = geometry.get("coordinates") or []
    points: list[LatLng] = []
    for coord in coords:
        if isinstance(coord, (list, tuple)) and len(coord) >= 2:
            points.append(LatLng(lat=float(coord[1]), lng=float(coord[0])))
    return points


class OsrmRoutingClient:
    def __init__(
        self,
        config: Optional[AppConfig] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config or get_config()
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(
            base_url=self.config.routing.osrm_base_url,
            timeout=self.config.routing.request_timeout_seconds,
            headers={"accept": "application/json"},
        )
        self._last_request_epoch_seconds: Optional[float] = None

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "OsrmRoutingClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @staticmethod
    def _parse_retry_after_seconds(value: Optional[str]) -> Optional[float]:
        """Parse a Retry-After header into seconds.

        Only the delay-seconds form is understood; an HTTP-date value yields None and the regular
        backoff applies.
        """

        if not value:
            return None
        try:
            seconds = float(value.strip())
        except ValueError:
            return None
        return seconds if seconds >= 0 else None

    def _sleep_throttle(self) -> None:
        """Keep at least `min_request_interval_seconds` between requests to the same server."""

        min_interval = float(self.config.routing.min_request_interval_seconds or 0.0)
        if min_interval <= 0 or self._last_request_epoch_seconds is None:
            return
        remaining = min_interval - (time.time() - self._last_request_epoch_seconds)
        if remaining > 0:
            time.sleep(remaining)

    def _compute_backoff_seconds(self, attempt: int, retry_after_seconds: Optional[float]) -> float:
        """Sleep time before retry number `attempt` (0-based), honoring Retry-After when configured."""

        section = self.config.routing
        # Exponential backoff: base * multiplier^attempt, capped at max_backoff_seconds.
        delay = float(section.retry_backoff_seconds) * (float(section.backoff_multiplier) ** attempt)
        delay = min(float(section.max_backoff_seconds), max(0.0, delay))
        if delay > 0:
            # Up to 10% jitter so concurrent route requests do not retry in lockstep.
            delay += random.uniform(0.0, delay * 0.1)
        # The server's own Retry-After is a floor, never shortened by our schedule.
        if section.respect_retry_after and retry_after_seconds is not None:
            delay = max(delay, retry_after_seconds)
        return delay

    @staticmethod
    def _is_retryable_status(status_code: int) -> bool:
        """True for timeouts, rate limiting and transient server errors."""

        return status_code in {408, 429, 500, 502, 503, 504}

    def _request_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET `path` on the OSRM server and return the decoded JSON object, retrying transient failures."""

        max_retries = max(0, int(self.config.routing.max_retries))

        # Kept so the final error names the root cause once retries run out.
        last_error: Optional[Exception] = None
        for attempt in range(max_retries + 1):
            try:
                self._sleep_throttle()
                response = self._http.get(path, params=params)
                # Stamp the request time for the throttle, whatever the outcome.
                self._last_request_epoch_seconds = time.time()
                # Non-2xx becomes HTTPStatusError so every status goes through the retry branch.
                response.raise_for_status()
                try:
                    payload = response.json()
                except ValueError as exc:
                    raise RoutingClientError("OSRM returned invalid JSON") from exc
                # OSRM always answers with an object carrying `code`; anything else is unusable.
                if not isinstance(payload, dict):
                    raise RoutingClientError("OSRM returned a non-object payload")
                return payload
            except httpx.HTTPStatusError as exc:
                last_error = exc
                status = int(exc.response.status_code)
                # A 400 for bad coordinates or an unknown profile will not improve on retry.
                if not self._is_retryable_status(status) or attempt >= max_retries:
                    break
                delay = self._compute_backoff_seconds(
                    attempt=attempt,
                    retry_after_seconds=self._parse_retry_after_seconds(
                        exc.response.headers.get("retry-after")
                    ),
                )
                logger.warning(
                    "OSRM request failed (%s). Retrying in %.2fs (attempt %s/%s).",
                    status,
                    delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(delay)
            except httpx.TransportError as exc:
                # Connection failures and timeouts: same backoff, no Retry-After to honor.
                last_error = exc
                if attempt >= max_retries:
                    break
                delay = self._compute_backoff_seconds(attempt=attempt, retry_after_seconds=None)
                logger.warning(
                    "OSRM request error (%s). Retrying in %.2fs (attempt %s/%s).",
                    type(exc).__name__,
                    delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(delay)

        raise RoutingClientError(f"OSRM request failed after retries: {last_error}") from last_error

    def _route_path(self, points: list[LatLng]) -> str:
        return f"/route/v1/{self.config.routing.profile}/{_coords_path(points)}"

    def _fetch_raw_routes(self, points: list[LatLng], alternatives: int = 0) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"overview": "full", "geometries": "geojson", "steps": "true"}
        if alternatives > 0:
            params["alternatives"] = alternatives
        payload = self._request_json(self._route_path(points), params)
        if payload.get("code") != "Ok":
            raise RoutingClientError(
                f"OSRM API error: {payload.get('code')} - {payload.get('message') or 'Unknown error'}"
            )
        routes = payload.get("routes") or []
        if not routes:
            raise RoutingClientError("No routes returned from OSRM")
        return [r for r in routes if isinstance(r, dict)]

    def _road_segments(self, raw: dict[str, Any], id_prefix: str, distance_km: float) -> list[RoadSegment]:
        min_step = float(self.config.routing.min_step_distance_meters)
        segments: list[RoadSegment] = []
        for leg in raw.get("legs") or []:
            for step in leg.get("steps") or []:
                step_distance = float(step.get("distance") or 0.0)
                if step_distance <= min_step:
                    continue
                geometry = _geojson_to_points(step.get("geometry"))
                segments.append(
                    RoadSegment(
                        road_id=f"{id_prefix}_{len(segments)}",
                        road_name=step.get("name") or "Road",
                        distance=f"{step_distance / 1000:.1f} km",
                        geometry=geometry or None,
                    )
                )
        if not segments:
            # No step long enough: one segment spanning the whole route, with its full geometry.
            segments.append(
                RoadSegment(
                    road_id=f"{id_prefix}_0",
                    road_name="Route",
                    distance=f"{distance_km:.1f} km",
                    geometry=_geojson_to_points(raw.get("geometry")) or None,
                )
            )
        return segments

    def _to_route(self, raw: dict[str, Any], number: int, id_prefix: str) -> Route:
        distance_km = round(float(raw.get("distance") or 0.0) / 1000, 1)
        return Route(
            id=f"route_{number}",
            name=f"Route {number}",
            eta_minutes=round(float(raw.get("duration") or 0.0) / 60),
            distance_km=distance_km,
            road_segments=self._road_segments(raw, id_prefix, distance_km),
            geometry=_geojson_to_points(raw.get("geometry")),
        )

    def fetch_routes(self, start: LatLng, end: LatLng) -> list[Route]:
        section = self.config.routing
        raw_routes = self._fetch_raw_routes([start, end], alternatives=int(section.alternatives))
        routes = [
            self._to_route(raw, number=index + 1, id_prefix=f"road_{index}")
            for index, raw in enumerate(raw_routes)
        ]

        waypoints = intermediate_waypoints(
            start,
            end,
            offset_degrees=float(section.waypoint_offset_degrees),
            positions=tuple(section.waypoint_positions),
        )
        for i, waypoint in enumerate(waypoints):
            try:
                raw = self._fetch_raw_routes([start, waypoint, end])[0]
            except RoutingClientError as exc:
                logger.info("Skipping diversity waypoint %s: %s", i, exc)
                continue
            candidate = self._to_route(raw, number=len(routes) + 1, id_prefix=f"road_wp{i}")
            if is_distinct_route(
                candidate.distance_km, (r.distance_km for r in routes), float(section.dedup_threshold_km)
            ):
                routes.append(candidate)

        logger.info("OSRM returned %s distinct routes", len(routes))
        return routes


def routing_client_from_config(config: Optional[AppConfig] = None) -> OsrmRoutingClient:
    return OsrmRoutingClient(config=config)
