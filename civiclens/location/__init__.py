"""
CivicLens - Location Module
Position acquisition and reverse geocoding.
"""

from civiclens.location.models import GPSFix, AddressResolution
from civiclens.location.acquirer import (
    LocationAcquirer,
    AcquirerState,
    PositionProvider,
    FixedPositionProvider,
    NetworkPositionProvider,
)
from civiclens.location.address_resolver import NominatimResolver

__all__ = [
    "GPSFix",
    "AddressResolution",
    "LocationAcquirer",
    "AcquirerState",
    "PositionProvider",
    "FixedPositionProvider",
    "NetworkPositionProvider",
    "NominatimResolver",
]
