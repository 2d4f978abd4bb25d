"""
Map viewport for the report location

Renders a folium map centred on the fix with a single marker. The map
library is imported lazily on first mount; a viewport is created at most
once per surface, and a torn-down viewport never writes to its surface.
"""

import asyncio
import importlib
import logging
import uuid
from pathlib import Path
from typing import Any, Optional, Union

from civiclens.core.config import settings
from civiclens.core.constants import OSM_ATTRIBUTION, OSM_MAX_ZOOM, OSM_TILE_URL
from civiclens.location.models import GPSFix

logger = logging.getLogger(__name__)


class MapSurface:
    """Mount point for a map: the HTML file it is written to."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.viewport_id = None


class MapViewport:
    """Lazily initialised, idempotent map for one report session."""

    def __init__(self, zoom: Optional[int] = None):
        self.zoom = zoom or settings.map_zoom
        self._cancelled = False
        self._folium: Any = None
        self.map: Any = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def _load_library(self) -> Any:
        if self._folium is None:
            loop = asyncio.get_running_loop()
            self._folium = await loop.run_in_executor(None, importlib.import_module, "folium")
        return self._folium

    async def mount(self, fix: Optional[GPSFix], surface: Optional[MapSurface]) -> bool:
        """
        Create the map on the surface.

        Returns:
            True if this call created and saved a map
        """
        if fix is None or surface is None or self._cancelled:
            return False
        if surface.viewport_id is not None:
            return False

        folium = await self._load_library()
        if self._cancelled:
            logger.debug("Viewport torn down during library load; skipping map")
            return False
        # Another mount may have claimed the surface while we were suspended
        if surface.viewport_id is not None:
            return False

        report_map = folium.Map(
            location=[fix.lat, fix.lng],
            zoom_start=self.zoom,
            zoom_control=False,
            tiles=OSM_TILE_URL,
            attr=settings.map_tiles_attribution or OSM_ATTRIBUTION,
            max_zoom=OSM_MAX_ZOOM,
        )
        folium.Marker(
            location=[fix.lat, fix.lng],
            tooltip=f"{fix.lat:.6f}, {fix.lng:.6f}",
        ).add_to(report_map)

        surface.path.parent.mkdir(parents=True, exist_ok=True)
        report_map.save(str(surface.path))
        # Set only once the map is on disk
        surface.viewport_id = uuid.uuid4().hex
        self.map = report_map

        logger.info(f"Map saved to: {surface.path}")
        return True

    def teardown(self) -> None:
        """Mark the viewport as gone; pending mounts become no-ops."""
        self._cancelled = True
        self.map = None
