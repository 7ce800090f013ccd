from __future__ import annotations

import logging

from mapquery.adapters.adapter_interface import CoordinateAdapter
from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.point import MapPoint, ScreenPoint
from mapquery.maps.view_interface import EngineViewInterface
from mapquery.utils.crs import (
    METERS_PER_DEGREE,
    WEB_MERCATOR,
    WEB_MERCATOR_MAX,
    is_geographic,
    normalize_crs,
)

log = logging.getLogger(__name__)

# degrees per pixel when the view cannot report its resolution
FALLBACK_RESOLUTION_DEGREES = 0.0001

WORLD_BOUNDS_DEGREES = BoundingBox(-180, -90, 180, 90)
WORLD_BOUNDS_MERCATOR = BoundingBox(
    -WEB_MERCATOR_MAX, -WEB_MERCATOR_MAX, WEB_MERCATOR_MAX, WEB_MERCATOR_MAX
)


def _view_crs(view: EngineViewInterface) -> str:
    try:
        crs = view.spatial_reference
    except AttributeError:
        return WEB_MERCATOR
    return normalize_crs(crs) if crs else WEB_MERCATOR


class EngineCoordinateAdapter(CoordinateAdapter):
    """
    Coordinate adapter for a GIS engine view.

    Screen/map conversion is delegated to the view's own projection calls and
    map points are tagged with the view's spatial reference, Web Mercator
    unless the view says otherwise.
    """

    @property
    def native_crs(self) -> str:
        return WEB_MERCATOR

    def screen_to_map(self, screen_point: ScreenPoint, map_handle: EngineViewInterface) -> MapPoint:
        try:
            point = map_handle.to_map(screen_point)
            if point is None:
                log.error(f"engine view could not project screen point {screen_point}")
                return MapPoint(0, 0, _view_crs(map_handle))
            return MapPoint(point.x, point.y, point.crs or _view_crs(map_handle))
        except Exception as e:
            log.error(f"engine screen_to_map conversion failed: {e}")
            return MapPoint(0, 0, self.native_crs)

    def map_to_screen(self, map_point: MapPoint, map_handle: EngineViewInterface) -> ScreenPoint:
        try:
            point = MapPoint(map_point.x, map_point.y, map_point.crs or WEB_MERCATOR)
            screen = map_handle.to_screen(point)
            if screen is None:
                return ScreenPoint(0, 0)
            return ScreenPoint(screen.x, screen.y)
        except Exception as e:
            log.error(f"engine map_to_screen conversion failed: {e}")
            return ScreenPoint(0, 0)

    def get_view_bounds(self, map_handle: EngineViewInterface) -> BoundingBox:
        try:
            extent = map_handle.extent
        except Exception as e:
            log.error(f"engine get_view_bounds failed: {e}")
            extent = None

        if extent is not None:
            return BoundingBox(*extent)

        if is_geographic(_view_crs(map_handle)):
            return WORLD_BOUNDS_DEGREES
        return WORLD_BOUNDS_MERCATOR

    def get_resolution(self, map_handle: EngineViewInterface) -> float:
        """
        The view resolution in view CRS units per pixel.

        The engine reports ground resolution in meters per pixel. Only a
        geographic view divides it by the meters-per-degree constant; a
        projected view returns it unchanged, in CRS units, rather than applying
        the meters-per-degree division to every view.

        When the resolution is missing or unreadable the fallback of
        0.0001 degrees is returned in the view's units.
        """
        try:
            geographic = is_geographic(_view_crs(map_handle))
        except Exception as e:
            log.error(f"engine get_resolution could not read the view CRS: {e}")
            geographic = False

        try:
            resolution = map_handle.resolution
        except Exception as e:
            log.error(f"engine get_resolution failed: {e}")
            resolution = None

        if not resolution:
            if geographic:
                return FALLBACK_RESOLUTION_DEGREES
            return FALLBACK_RESOLUTION_DEGREES * METERS_PER_DEGREE

        if geographic:
            return resolution / METERS_PER_DEGREE
        return resolution
