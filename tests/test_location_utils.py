"""
Tests for location helpers.
"""
import pytest

from tracking_app.utils.location import (
    calculate_distance,
    format_location_string,
    get_client_ip,
    is_valid_coordinates,
)

PARIS = (48.8566, 2.3522)
LONDON = (51.5074, -0.1278)


class TestCalculateDistance:

    def test_point_to_itself_is_zero(self):
        assert calculate_distance(*PARIS, *PARIS) == 0

    def test_symmetric(self):
        assert calculate_distance(*PARIS, *LONDON) == calculate_distance(*LONDON, *PARIS)

    def test_known_reference_value(self):
        # Paris -> London is about 343.5 km on a 6371 km sphere
        assert calculate_distance(*PARIS, *LONDON) == pytest.approx(343.5, abs=1.0)

    def test_rounded_to_two_decimals(self):
        distance = calculate_distance(0, 0, 0.123456, 0.654321)
        assert distance == round(distance, 2)


class TestCoordinates:

    @pytest.mark.parametrize("lat,lon,expected", [
        (0, 0, True),
        (90, 180, True),
        (-90, -180, True),
        (90.1, 0, False),
        (0, -180.5, False),
        (None, 10, False),
        (10, None, False),
    ])
    def test_is_valid_coordinates(self, lat, lon, expected):
        assert is_valid_coordinates(lat, lon) is expected


class TestFormatLocation:

    def test_city_and_country(self):
        assert format_location_string("France", "Paris") == "Paris, France"

    def test_country_only(self):
        assert format_location_string("France", None) == "France"

    def test_city_only(self):
        assert format_location_string(None, "Paris") == "Paris"

    def test_nothing(self):
        assert format_location_string() == "Unknown Location"


class TestClientIp:

    def test_first_forwarded_address_wins(self):
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "10.0.0.2"}
        assert get_client_ip(headers, "10.0.0.3") == "203.0.113.7"

    def test_real_ip_header(self):
        assert get_client_ip({"x-real-ip": "203.0.113.9"}, "10.0.0.3") == "203.0.113.9"

    def test_socket_peer(self):
        assert get_client_ip({}, "198.51.100.4") == "198.51.100.4"

    def test_unknown(self):
        assert get_client_ip({}) == "unknown"
