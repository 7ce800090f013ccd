from __future__ import annotations

import logging

from mapquery.adapters.adapter_interface import CoordinateAdapter
from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.point import MapPoint, ScreenPoint
from mapquery.maps.view_interface import VectorMapInterface
from mapquery.utils.crs import WGS84
from mapquery.utils.geo import degrees_per_pixel

log = logging.getLogger(__name__)

FALLBACK_RESOLUTION_DEGREES = 0.0001

WORLD_BOUNDS = BoundingBox(-180, -90, 180, 90)


class VectorTileCoordinateAdapter(CoordinateAdapter):
    """
    Coordinate adapter for a vector-tile map.

    Map points are WGS84 longitude/latitude, obtained through the map's
    project/unproject pair. Resolution comes from the zoom level,
    ``EARTH_CIRCUMFERENCE / (TILE_SIZE * 2**zoom)`` meters per pixel, expressed
    in degrees so boxes built from it are in the adapter's CRS.
    """

    @property
    def native_crs(self) -> str:
        return WGS84

    def screen_to_map(self, screen_point: ScreenPoint, map_handle: VectorMapInterface) -> MapPoint:
        try:
            lng, lat = map_handle.unproject(screen_point)
            return MapPoint(lng, lat, WGS84)
        except Exception as e:
            log.error(f"vector-tile screen_to_map conversion failed: {e}")
            return MapPoint(0, 0, WGS84)

    def map_to_screen(self, map_point: MapPoint, map_handle: VectorMapInterface) -> ScreenPoint:
        try:
            screen = map_handle.project((map_point.x, map_point.y))
            return ScreenPoint(screen.x, screen.y)
        except Exception as e:
            log.error(f"vector-tile map_to_screen conversion failed: {e}")
            return ScreenPoint(0, 0)

    def get_view_bounds(self, map_handle: VectorMapInterface) -> BoundingBox:
        try:
            bounds = map_handle.get_bounds()
        except Exception as e:
            log.error(f"vector-tile get_view_bounds failed: {e}")
            return WORLD_BOUNDS
        if bounds is None:
            return WORLD_BOUNDS
        return BoundingBox(*bounds)

    def get_resolution(self, map_handle: VectorMapInterface) -> float:
        try:
            zoom = map_handle.get_zoom()
        except Exception as e:
            log.error(f"vector-tile get_resolution failed: {e}")
            return FALLBACK_RESOLUTION_DEGREES
        if zoom is None:
            return FALLBACK_RESOLUTION_DEGREES
        return degrees_per_pixel(zoom)
