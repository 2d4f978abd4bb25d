"""
CivicLens - Visualization Module
"""

from civiclens.visualization.map_viewport import MapSurface, MapViewport

__all__ = ["MapSurface", "MapViewport"]
