from __future__ import annotations

import math

import pytest

from routewatch.utils.geo import haversine_meters, validate_coordinates


def test_haversine_is_symmetric_and_zero_on_same_point() -> None:
    a = (-1.95, 30.05)
    b = (-1.9441, 30.0619)
    assert haversine_meters(*a, *b) == haversine_meters(*b, *a)
    assert haversine_meters(*a, *a) == 0.0


def test_haversine_small_offset_in_meters() -> None:
    # 0.0001 deg in both axes near the equator is about 15.7 m.
    distance = haversine_meters(-1.95, 30.05, -1.9501, 30.0501)
    assert 14.0 < distance < 17.0


def test_haversine_one_degree_latitude() -> None:
    distance = haversine_meters(0.0, 0.0, 1.0, 0.0)
    assert math.isclose(distance, 111_195, rel_tol=1e-3)


def test_haversine_antipodal_points_are_finite() -> None:
    distance = haversine_meters(0.0, 0.0, 0.0, 180.0)
    assert math.isfinite(distance)
    assert math.isclose(distance, math.pi * 6_371_000, rel_tol=1e-9)


@pytest.mark.parametrize(
    "lat,lng",
    [(91.0, 0.0), (-90.5, 0.0), (0.0, 180.5), (float("nan"), 0.0), (0.0, float("inf"))],
)
def test_validate_coordinates_rejects_invalid(lat: float, lng: float) -> None:
    with pytest.raises(ValueError):
        validate_coordinates(lat, lng)


def test_validate_coordinates_accepts_bounds() -> None:
    validate_coordinates(90.0, 180.0)
    validate_coordinates(-90.0, -180.0)
