import math

import pytest

from app.services.geo import EARTH_RADIUS_KM, distance_between, haversine_km


def test_same_point_is_zero():
    assert haversine_km(24.7136, 46.6753, 24.7136, 46.6753) == 0.0


def test_one_degree_of_longitude_on_equator():
    expected = EARTH_RADIUS_KM * math.pi / 180
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(expected, rel=1e-9)
    assert expected == pytest.approx(111.195, abs=0.001)


def test_distance_is_symmetric():
    there = haversine_km(24.7136, 46.6753, 24.7743, 46.7386)
    back = haversine_km(24.7743, 46.7386, 24.7136, 46.6753)
    assert there == pytest.approx(back, rel=1e-12)


def test_short_city_distance():
    # 0.009 degrees of latitude is just over a kilometre anywhere on the globe
    assert haversine_km(24.7136, 46.6753, 24.7226, 46.6753) == pytest.approx(1.0008, abs=0.001)


def test_antipodal_points_are_half_circumference():
    assert haversine_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-9)


def test_distance_between_requires_both_points():
    assert distance_between(None, (24.7, 46.6)) is None
    assert distance_between((24.7, 46.6), None) is None
    assert distance_between((0.0, 0.0), (0.0, 1.0)) == pytest.approx(111.195, abs=0.001)
