"""
Tests for coordinates, regions and locations.
"""

from __future__ import annotations

import math

import pytest

from toporesolver.topo import (
    EARTH_RADIUS_KM,
    Coordinate,
    Location,
    PointRegion,
    PointSetRegion,
    RectRegion,
)


class TestCoordinate:
    def test_degrees_round_trip(self):
        c = Coordinate.from_degrees(48.85, 2.35)
        assert c.lat == pytest.approx(math.radians(48.85))
        assert c.lat_degrees == pytest.approx(48.85)
        assert c.lng_degrees == pytest.approx(2.35)

    def test_zero_distance_to_self(self):
        c = Coordinate.from_degrees(10.0, 20.0)
        assert c.distance(c) == 0.0

    def test_distance_symmetric(self):
        a = Coordinate.from_degrees(39.8, -89.64)
        b = Coordinate.from_degrees(30.04, 31.24)
        assert a.distance(b) == pytest.approx(b.distance(a))

    def test_paris_london_km(self):
        paris = Coordinate.from_degrees(48.8566, 2.3522)
        london = Coordinate.from_degrees(51.5074, -0.1278)
        assert paris.distance_in_km(london) == pytest.approx(343.5, abs=2.0)

    def test_antipodes(self):
        a = Coordinate.from_degrees(0.0, 0.0)
        b = Coordinate.from_degrees(0.0, 180.0)
        assert a.distance(b) == pytest.approx(math.pi)
        assert a.distance_in_km(b) == pytest.approx(math.pi * EARTH_RADIUS_KM)


class TestRectRegion:
    def test_center_and_representatives(self):
        r = RectRegion.from_degrees(30.0, 40.0, -100.0, -90.0)
        assert r.center.lat_degrees == pytest.approx(35.0)
        assert r.center.lng_degrees == pytest.approx(-95.0)
        assert len(r.representatives) == 4

    def test_contains(self):
        r = RectRegion.from_degrees(30.0, 40.0, -100.0, -90.0)
        assert r.contains(Coordinate.from_degrees(35.0, -95.0))
        assert not r.contains(Coordinate.from_degrees(45.0, -95.0))
        assert not r.contains(Coordinate.from_degrees(35.0, -80.0))

    def test_contains_across_antimeridian(self):
        r = RectRegion.from_degrees(-20.0, 0.0, 170.0, -170.0)
        assert r.contains(Coordinate.from_degrees(-10.0, 175.0))
        assert r.contains(Coordinate.from_degrees(-10.0, -175.0))
        assert not r.contains(Coordinate.from_degrees(-10.0, 0.0))

    @pytest.mark.parametrize("west, east, expected", [
        (170.0, -170.0, 180.0),
        (170.0, -160.0, -175.0),
        (160.0, -170.0, 175.0),
    ])
    def test_center_across_antimeridian(self, west, east, expected):
        r = RectRegion.from_degrees(-20.0, 0.0, west, east)
        assert r.center.lat_degrees == pytest.approx(-10.0)
        assert r.center.lng_degrees == pytest.approx(expected)
        assert r.contains(r.center)

    def test_hashable_as_cell_key(self):
        a = RectRegion.from_degrees(0.0, 1.0, 0.0, 1.0)
        b = RectRegion.from_degrees(0.0, 1.0, 0.0, 1.0)
        assert {a: 0.5}[b] == 0.5


class TestRegionDistance:
    def test_point_regions_use_centers(self):
        a = PointRegion(Coordinate.from_degrees(0.0, 0.0))
        b = PointRegion(Coordinate.from_degrees(0.0, 1.0))
        assert a.distance_in_km(b) == pytest.approx(a.center.distance_in_km(b.center))

    def test_rect_uses_nearest_representatives(self):
        rect = RectRegion.from_degrees(0.0, 10.0, 0.0, 10.0)
        point = PointRegion(Coordinate.from_degrees(0.0, 11.0))
        corner = Coordinate.from_degrees(0.0, 10.0)
        assert rect.distance(point) == pytest.approx(corner.distance(point.center))

    def test_point_set_center_is_centroid(self):
        region = PointSetRegion((
            Coordinate.from_degrees(0.0, 0.0),
            Coordinate.from_degrees(2.0, 2.0),
        ))
        assert region.center.lat_degrees == pytest.approx(1.0)
        assert region.center.lng_degrees == pytest.approx(1.0)

    def test_empty_point_set_rejected(self):
        with pytest.raises(ValueError):
            PointSetRegion(())


class TestLocation:
    def test_negative_population_rejected(self):
        with pytest.raises(ValueError):
            Location("x", "X", PointRegion(Coordinate(0.0, 0.0)), population=-1)

    def test_distance_symmetric(self, make_location):
        a = make_location("a", 39.8, -89.64)
        b = make_location("b", 42.1, -72.59)
        assert a.distance_in_km(b) == pytest.approx(b.distance_in_km(a))

    def test_distance_to_coordinate(self, make_location):
        a = make_location("a", 10.0, 10.0)
        assert a.distance(Coordinate.from_degrees(10.0, 10.0)) == 0.0
