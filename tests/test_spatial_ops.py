"""Unit tests for great-circle distance helpers."""

from __future__ import annotations

import math

import numpy as np
import pytest

from flowmap.config import EARTH_RADIUS_KM
from flowmap.data.spatial_ops import haversine_km, haversine_km_array


def test_same_point_is_zero() -> None:
    assert haversine_km(-33.45, -70.65, -33.45, -70.65) == pytest.approx(0.0, abs=1e-9)


def test_one_degree_on_equator() -> None:
    expected = EARTH_RADIUS_KM * math.radians(1.0)
    assert haversine_km(0, 0, 0, 1) == pytest.approx(expected, rel=1e-9)


def test_london_paris() -> None:
    assert haversine_km(51.5074, -0.1278, 48.8566, 2.3522) == pytest.approx(343.5, rel=1e-2)


def test_antipodal_points_do_not_overflow() -> None:
    assert haversine_km(0, 0, 0, 180) == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-9)


def test_distance_is_symmetric() -> None:
    forward = haversine_km(-33.45, -70.67, -36.82, -73.04)
    backward = haversine_km(-36.82, -73.04, -33.45, -70.67)
    assert forward == pytest.approx(backward)


def test_array_matches_scalar() -> None:
    lat1 = np.array([0.0, 51.5074, -33.45])
    lon1 = np.array([0.0, -0.1278, -70.67])
    lat2 = np.array([0.0, 48.8566, -36.82])
    lon2 = np.array([1.0, 2.3522, -73.04])
    result = haversine_km_array(lat1, lon1, lat2, lon2)
    expected = [haversine_km(*args) for args in zip(lat1, lon1, lat2, lon2)]
    assert result.shape == (3,)
    assert result.tolist() == pytest.approx(expected)
