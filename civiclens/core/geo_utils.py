"""
CivicLens - Geospatial Utilities
Distance and coordinate helpers for report locations.
"""

import math
from typing import Tuple

# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """Check that both values are finite and inside the geographic range."""
    try:
        lat = float(lat)
        lon = float(lon)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def degrees_for_km(distance_km: float, latitude: float) -> Tuple[float, float]:
    """
    Upper bound of the degree span covering a distance at a latitude.

    Returns:
        Tuple of (latitude degrees, longitude degrees)
    """
    lat_deg = distance_km / 111.0
    cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
    lon_deg = distance_km / (111.0 * cos_lat)
    return (lat_deg, min(lon_deg, 360.0))
