"""
Location value types
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from civiclens.core.constants import ADDRESS_UNAVAILABLE
from civiclens.core.geo_utils import is_valid_coordinate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GPSFix:
    """A single resolved position reading. Immutable; a retry produces a new one."""
    lat: float
    lng: float
    acquired_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not is_valid_coordinate(self.lat, self.lng):
            raise ValueError(f"Invalid coordinates: ({self.lat}, {self.lng})")


@dataclass(frozen=True)
class AddressResolution:
    """Human readable address derived from a fix."""
    text: str
    resolved: bool = True

    @classmethod
    def unavailable(cls) -> "AddressResolution":
        return cls(text=ADDRESS_UNAVAILABLE, resolved=False)
