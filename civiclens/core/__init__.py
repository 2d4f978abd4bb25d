"""
CivicLens - Core Utilities
Central configuration, constants, errors and geo helpers.
"""

from civiclens.core.config import settings, get_settings
from civiclens.core.constants import (
    Category,
    ReportStatus,
    FORBIDDEN_LABELS,
    CATEGORY_KEYWORDS,
    ADDRESS_UNAVAILABLE,
    UNKNOWN_LOCATION,
)
from civiclens.core.geo_utils import (
    haversine_distance,
    is_valid_coordinate,
)

__all__ = [
    "settings",
    "get_settings",
    "Category",
    "ReportStatus",
    "FORBIDDEN_LABELS",
    "CATEGORY_KEYWORDS",
    "ADDRESS_UNAVAILABLE",
    "UNKNOWN_LOCATION",
    "haversine_distance",
    "is_valid_coordinate",
]
