"""Via-point heuristics for squeezing distinct alternatives out of a routing backend.

Public routers tend to return one route plus near-duplicates. Forcing the route through a point
offset sideways from the straight start->end line makes the backend pick different roads.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from routewatch.routing.schemas import LatLng, Route


DEFAULT_OFFSET_DEGREES = 0.015  # roughly 1.5 km
DEFAULT_POSITIONS: tuple[float, ...] = (0.33, 0.67)
DEDUP_THRESHOLD_KM = 0.5


def intermediate_waypoints(
    start: LatLng,
    end: LatLng,
    offset_degrees: float = DEFAULT_OFFSET_DEGREES,
    positions: Sequence[float] = DEFAULT_POSITIONS,
) -> list[LatLng]:
    """Return one waypoint on each side of the start->end line at every fraction in `positions`.

    With the defaults that is four points: left/right at one third and at two thirds of the way.
    Coincident endpoints have no direction to offset from and yield no waypoints.
    """

    d_lat = end.lat - start.lat
    d_lng = end.lng - start.lng
    length = math.hypot(d_lat, d_lng)
    if length == 0:
        return []

    perp_lat = -d_lng / length
    perp_lng = d_lat / length

    waypoints: list[LatLng] = []
    for t in positions:
        along_lat = start.lat + d_lat * t
        along_lng = start.lng + d_lng * t
        waypoints.append(
            LatLng(lat=along_lat + perp_lat * offset_degrees, lng=along_lng + perp_lng * offset_degrees)
        )
        waypoints.append(
            LatLng(lat=along_lat - perp_lat * offset_degrees, lng=along_lng - perp_lng * offset_degrees)
        )
    return waypoints


def is_distinct_route(
    distance_km: float,
    existing_km: Iterable[float],
    threshold_km: float = DEDUP_THRESHOLD_KM,
) -> bool:
    return all(abs(float(other) - float(distance_km)) >= threshold_km for other in existing_km)


def merge_distinct_routes(
    collected: Sequence[Route],
    candidates: Iterable[Route],
    threshold_km: float = DEDUP_THRESHOLD_KM,
) -> list[Route]:
    merged = list(collected)
    for candidate in candidates:
        if is_distinct_route(candidate.distance_km, (r.distance_km for r in merged), threshold_km):
            merged.append(candidate)
    return merged
