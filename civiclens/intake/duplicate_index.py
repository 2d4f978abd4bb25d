"""
Duplicate detection
Proximity check of a new fix against the locations of existing reports.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from civiclens.core.config import settings
from civiclens.core.geo_utils import degrees_for_km, haversine_distance, is_valid_coordinate
from civiclens.location.models import GPSFix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnownReport:
    """Location of an already persisted report."""
    id: str
    lat: float
    lng: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnownReport":
        """Build from a serialized report ({id, location: {lat, lng}})."""
        location = data.get("location") or {}
        return cls(
            id=str(data.get("id") or data.get("_id")),
            lat=float(location.get("lat", data.get("lat"))),
            lng=float(location.get("lng", data.get("lng"))),
        )


@dataclass(frozen=True)
class DuplicateMatch:
    report: KnownReport
    distance_km: float


class DuplicateIndex:
    """
    Grid spatial index over known report locations.

    Cells are ``cell_degrees`` wide; a lookup scans only the cells that can
    hold a point within ``radius_km`` and confirms with haversine distance.
    The index is read-only once built.
    """

    def __init__(
        self,
        reports: Iterable[KnownReport] = (),
        radius_km: Optional[float] = None,
        cell_degrees: Optional[float] = None
    ):
        self.radius_km = radius_km if radius_km is not None else settings.duplicate_radius_km
        self.cell_degrees = (
            cell_degrees if cell_degrees is not None else settings.duplicate_window_degrees
        )
        self._columns = math.ceil(360.0 / self.cell_degrees)
        self._cells: Dict[Tuple[int, int], List[KnownReport]] = {}
        self._count = 0

        for report in reports:
            self._insert(report)

    @classmethod
    def from_reports(
        cls,
        reports: Iterable[Dict[str, Any]],
        radius_km: Optional[float] = None,
        cell_degrees: Optional[float] = None
    ) -> "DuplicateIndex":
        """Build an index from serialized reports, skipping malformed entries."""
        known = []
        for data in reports:
            try:
                known.append(KnownReport.from_dict(data))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping report without usable location: {e}")
        return cls(known, radius_km=radius_km, cell_degrees=cell_degrees)

    def __len__(self) -> int:
        return self._count

    def _cell(self, lat: float, lng: float) -> Tuple[int, int]:
        row = math.floor((lat + 90.0) / self.cell_degrees)
        col = math.floor((lng + 180.0) / self.cell_degrees) % self._columns
        return (row, col)

    def _insert(self, report: KnownReport) -> None:
        if not is_valid_coordinate(report.lat, report.lng):
            logger.warning(f"Ignoring report {report.id} with invalid location")
            return
        self._cells.setdefault(self._cell(report.lat, report.lng), []).append(report)
        self._count += 1

    def find_match(self, fix: GPSFix) -> Optional[DuplicateMatch]:
        """Return the nearest known report within the radius, if any."""
        if not self._cells:
            return None

        lat_span, lng_span = degrees_for_km(self.radius_km, fix.lat)
        row_reach = math.ceil(lat_span / self.cell_degrees)
        col_reach = min(math.ceil(lng_span / self.cell_degrees), self._columns // 2)
        row0, col0 = self._cell(fix.lat, fix.lng)

        best: Optional[DuplicateMatch] = None
        seen_cols = set()
        for dc in range(-col_reach, col_reach + 1):
            col = (col0 + dc) % self._columns
            if col in seen_cols:
                continue
            seen_cols.add(col)
            for dr in range(-row_reach, row_reach + 1):
                for report in self._cells.get((row0 + dr, col), ()):
                    distance = haversine_distance(fix.lat, fix.lng, report.lat, report.lng)
                    if distance <= self.radius_km and (best is None or distance < best.distance_km):
                        best = DuplicateMatch(report=report, distance_km=distance)

        return best
