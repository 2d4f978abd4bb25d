"""
Tests for geospatial utilities
"""
import math

import pytest

from civiclens.core.geo_utils import degrees_for_km, haversine_distance, is_valid_coordinate


class TestHaversineDistance:
    """Test suite for haversine_distance function."""

    def test_same_point_returns_zero(self):
        assert haversine_distance(17.385, 78.4867, 17.385, 78.4867) == 0.0

    def test_known_distance(self):
        # Charminar to Secunderabad station is roughly 6.3 km
        distance = haversine_distance(17.385, 78.4867, 17.4399, 78.4983)
        assert 5.5 < distance < 7.0

    def test_symmetry(self):
        d1 = haversine_distance(17.385, 78.4867, 17.4156, 78.4347)
        d2 = haversine_distance(17.4156, 78.4347, 17.385, 78.4867)
        assert d1 == pytest.approx(d2)

    def test_across_antimeridian(self):
        distance = haversine_distance(0.0, 179.999, 0.0, -179.999)
        assert distance < 0.5


class TestIsValidCoordinate:
    """Test suite for coordinate validation."""

    @pytest.mark.parametrize("lat,lon", [(0, 0), (90, 180), (-90, -180), (17.4, 78.4)])
    def test_valid(self, lat, lon):
        assert is_valid_coordinate(lat, lon)

    @pytest.mark.parametrize("lat,lon", [
        (90.01, 0),
        (0, 180.01),
        (math.nan, 0),
        (0, math.inf),
        (None, 0),
        ("north", 0),
    ])
    def test_invalid(self, lat, lon):
        assert not is_valid_coordinate(lat, lon)


class TestDegreesForKm:
    """Test suite for the degree span helper."""

    def test_span_covers_distance(self):
        lat_deg, lon_deg = degrees_for_km(0.5, 17.4)
        assert haversine_distance(17.4, 78.4, 17.4 + lat_deg, 78.4) >= 0.5
        assert haversine_distance(17.4, 78.4, 17.4, 78.4 + lon_deg) >= 0.5

    def test_longitude_span_capped_at_pole(self):
        _, lon_deg = degrees_for_km(0.5, 90.0)
        assert lon_deg == 360.0
