"""
Tests for the location map viewport
"""
import asyncio

import pytest

from civiclens.location.models import GPSFix
from civiclens.visualization.map_viewport import MapSurface, MapViewport


class TestMapViewport:
    """Test suite for MapViewport."""

    def setup_method(self):
        self.fix = GPSFix(lat=17.385, lng=78.4867)

    def test_mount_writes_map(self, tmp_path):
        surface = MapSurface(tmp_path / "maps" / "report_map.html")
        viewport = MapViewport()

        assert asyncio.run(viewport.mount(self.fix, surface)) is True

        html = surface.path.read_text()
        assert surface.viewport_id is not None
        assert "openstreetmap" in html
        assert "17.385" in html
        assert viewport.map is not None

    def test_mount_once_per_surface(self, tmp_path):
        surface = MapSurface(tmp_path / "report_map.html")
        viewport = MapViewport()

        assert asyncio.run(viewport.mount(self.fix, surface)) is True
        first_id = surface.viewport_id

        assert asyncio.run(viewport.mount(self.fix, surface)) is False
        assert asyncio.run(MapViewport().mount(self.fix, surface)) is False
        assert surface.viewport_id == first_id

    def test_concurrent_mounts_create_one_map(self, tmp_path):
        surface = MapSurface(tmp_path / "report_map.html")
        viewport = MapViewport()

        async def scenario():
            return await asyncio.gather(
                viewport.mount(self.fix, surface),
                viewport.mount(self.fix, surface),
            )

        assert sorted(asyncio.run(scenario())) == [False, True]

    def test_failed_save_leaves_surface_unclaimed(self, tmp_path):
        blocker = tmp_path / "maps"
        blocker.write_text("not a directory")
        surface = MapSurface(blocker / "report_map.html")
        viewport = MapViewport()

        with pytest.raises(OSError):
            asyncio.run(viewport.mount(self.fix, surface))

        assert surface.viewport_id is None
        assert viewport.map is None

        blocker.unlink()
        assert asyncio.run(viewport.mount(self.fix, surface)) is True
        assert surface.path.exists()

    def test_missing_fix_or_surface(self, tmp_path):
        viewport = MapViewport()
        surface = MapSurface(tmp_path / "report_map.html")

        assert asyncio.run(viewport.mount(None, surface)) is False
        assert asyncio.run(viewport.mount(self.fix, None)) is False
        assert not surface.path.exists()

    def test_teardown_before_mount(self, tmp_path):
        surface = MapSurface(tmp_path / "report_map.html")
        viewport = MapViewport()
        viewport.teardown()

        assert asyncio.run(viewport.mount(self.fix, surface)) is False
        assert surface.viewport_id is None
        assert not surface.path.exists()

    def test_teardown_during_library_load(self, tmp_path):
        surface = MapSurface(tmp_path / "report_map.html")
        viewport = MapViewport()

        async def scenario():
            task = asyncio.ensure_future(viewport.mount(self.fix, surface))
            await asyncio.sleep(0)
            viewport.teardown()
            return await task

        assert asyncio.run(scenario()) is False
        assert not surface.path.exists()
        assert viewport.map is None
