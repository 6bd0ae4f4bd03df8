"""Tests for the position model."""

from datetime import datetime, timezone

import pytest

from navconv.conversion import MAX_MERCATOR_LATITUDE, NO_ALTITUDE_DEFINED, wgs84_to_mercator
from navconv.position import BcrPosition, CoordinateKind, MercatorPosition, Wgs84Position


class TestWgs84Position:
    def test_structural_equality(self):
        time = datetime(2020, 1, 1, tzinfo=timezone.utc)
        a = Wgs84Position(11.5, 48.1, 520.0, 10.0, time, "Home", 90.0)
        b = Wgs84Position(11.5, 48.1, 520.0, 10.0, time, "Home", 90.0)
        assert a == b
        assert hash(a) == hash(b)

    def test_origins_excluded_from_equality(self):
        a = Wgs84Position(11.5, 48.1)
        b = Wgs84Position(11.5, 48.1)
        a.set_origin("gpx11", object())
        assert a == b

    def test_has_coordinates(self):
        assert Wgs84Position(11.5, 48.1).has_coordinates()
        assert not Wgs84Position(None, 48.1).has_coordinates()
        assert not Wgs84Position(float("nan"), 48.1).has_coordinates()

    def test_is_within_range(self):
        assert Wgs84Position(-180.0, 90.0).is_within_range()
        assert not Wgs84Position(181.0, 0.0).is_within_range()

    def test_distance_and_bearing(self):
        a = Wgs84Position(11.0, 48.0)
        b = Wgs84Position(11.0, 49.0)
        assert a.calculate_distance(b) == pytest.approx(111_300, rel=0.01)
        assert a.calculate_bearing(b) == pytest.approx(0.0, abs=1e-9)

    def test_distance_without_coordinates(self):
        assert Wgs84Position(11.0, 48.0).calculate_distance(Wgs84Position()) is None
        assert Wgs84Position().calculate_bearing(Wgs84Position(11.0, 48.0)) is None

    def test_copy_has_own_origins(self):
        a = Wgs84Position(11.0, 48.0)
        a.set_origin("nmea", "raw")
        b = a.copy()
        b.set_origin("nmea", "changed")
        assert a.get_origin("nmea") == "raw"
        assert b == a


class TestMercatorPosition:
    def test_kind(self):
        assert MercatorPosition(0, 0).kind is CoordinateKind.PROJECTED
        assert Wgs84Position().kind is CoordinateKind.GEOGRAPHIC

    def test_derived_coordinates(self):
        x, y = wgs84_to_mercator(9.0, 48.0)
        position = MercatorPosition(round(x), round(y))
        assert position.longitude == pytest.approx(9.0, abs=1e-5)
        assert position.latitude == pytest.approx(48.0, abs=1e-5)

    def test_setters_project(self):
        position = MercatorPosition()
        position.longitude = 9.0
        position.latitude = 48.0
        x, y = wgs84_to_mercator(9.0, 48.0)
        assert position.x == round(x)
        assert position.y == round(y)

    def test_planar_distance_between_projected(self):
        a = MercatorPosition(0, 0)
        b = MercatorPosition(3000, 4000)
        assert a.calculate_distance(b) == 5000.0

    def test_mixed_kinds_use_great_circle(self):
        a = MercatorPosition(0, 0)
        b = Wgs84Position(0.0, 1.0)
        assert a.calculate_distance(b) == pytest.approx(111_300, rel=0.01)

    def test_as_wgs84(self):
        position = MercatorPosition(1000, 2000, elevation=10.0, comment="x")
        converted = position.as_wgs84()
        assert isinstance(converted, Wgs84Position)
        assert converted.longitude == pytest.approx(position.longitude)
        assert converted.comment == "x"

    def test_latitude_beyond_projection_is_clamped(self):
        position = MercatorPosition(0, 0)
        position.latitude = 95.0
        assert position.latitude == pytest.approx(MAX_MERCATOR_LATITUDE, abs=1e-5)
        position.latitude = -95.0
        assert position.latitude == pytest.approx(-MAX_MERCATOR_LATITUDE, abs=1e-5)

    def test_non_finite_coordinates_are_empty(self):
        position = BcrPosition(x=0, y=0)
        position.latitude = float("nan")
        position.longitude = float("inf")
        assert position.y is None
        assert position.x is None
        assert not position.has_coordinates()


class TestBcrPosition:
    def test_altitude_sentinel(self):
        position = BcrPosition.from_altitude(1, 2, NO_ALTITUDE_DEFINED, None)
        assert position.elevation is None
        assert position.altitude == NO_ALTITUDE_DEFINED

    def test_altitude_offset(self):
        position = BcrPosition.from_altitude(1, 2, 210995416, None)
        assert position.elevation == 500.0
        assert position.altitude == 210995416

    def test_description_with_zip_and_street(self):
        position = BcrPosition()
        position.comment = "72574 Bad Urach, Zentrum, Ort"
        assert position.zip_code == "72574"
        assert position.city == "Bad Urach"
        assert position.street == "Zentrum"
        assert position.type == "Ort"
        assert position.comment == "72574 Bad Urach, Zentrum"

    def test_city_center_marker(self):
        position = BcrPosition()
        position.comment = "72574 Bad Urach,@"
        assert position.street == "Zentrum"

    def test_no_zip_marker(self):
        position = BcrPosition()
        position.comment = "WP 12 Feldweg"
        assert position.zip_code is None
        assert position.city == "12 Feldweg"
        assert position.format_description() == "WP 12 Feldweg"

    def test_plain_city(self):
        position = BcrPosition()
        position.comment = "Stuttgart"
        assert position.zip_code is None
        assert position.city == "Stuttgart"
        assert position.comment == "Stuttgart"

    def test_empty_description(self):
        position = BcrPosition()
        position.comment = "   "
        assert position.comment is None
        assert position.format_description() == ""

    def test_format_description_round_trip(self):
        for description in ("72574 Bad Urach,Zentrum", "WP 12 Feldweg", "Ulm", "70173 Stuttgart,,Bahnhof"):
            position = BcrPosition()
            position.comment = description
            assert position.format_description() == description

    def test_equality_includes_dialect_fields(self):
        a = BcrPosition(1, 2, zip_code="72574", city="Bad Urach")
        b = BcrPosition(1, 2, zip_code="72575", city="Bad Urach")
        assert a != b

    def test_format_description_is_one_line(self):
        position = BcrPosition()
        position.comment = "Bad\r\nUrach"
        assert position.format_description() == "Bad  Urach"
        position.street = "Markt\nplatz"
        assert "\n" not in position.format_description()
