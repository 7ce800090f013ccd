from __future__ import annotations

from abc import ABCMeta, abstractmethod
from typing import Any, Dict, Optional

from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.point import MapPoint, ScreenPoint


class CoordinateAdapter(metaclass=ABCMeta):
    """
    Abstract base class for converting between screen pixels and map coordinates.

    Each map backend speaks its own native CRS: the engine adapter works in the
    view's projected CRS (meters), the vector-tile adapter works in WGS84
    (degrees). Adapters are stateless; the live map handle is passed to every
    call and nothing is cached between calls.

    Every operation is fail-safe. An invalid handle or a failing projection call
    yields the origin point tagged with the native CRS (or the whole-world
    extent), is logged at error level, and never raises.
    """

    @property
    @abstractmethod
    def native_crs(self) -> str:
        """The CRS this adapter's map points and boxes are expressed in by default."""

    @abstractmethod
    def screen_to_map(self, screen_point: ScreenPoint, map_handle: Any) -> MapPoint:
        """
        Convert a pixel to a map point in the backend's native CRS.

        Args:
            screen_point: The pixel relative to the top-left of the map container
            map_handle: The live view or map

        Returns:
            The map point; the origin tagged with the native CRS on failure
        """

    @abstractmethod
    def map_to_screen(self, map_point: MapPoint, map_handle: Any) -> ScreenPoint:
        """
        Convert a map point in the native CRS to a pixel.

        Args:
            map_point: The map point
            map_handle: The live view or map

        Returns:
            The screen point; (0, 0) on failure
        """

    @abstractmethod
    def get_view_bounds(self, map_handle: Any) -> BoundingBox:
        """
        Read the visible extent in the native CRS.

        Args:
            map_handle: The live view or map

        Returns:
            The extent; the whole world in the native CRS if it is unavailable
        """

    @abstractmethod
    def get_resolution(self, map_handle: Any) -> float:
        """
        The current ground resolution in native CRS units per pixel.

        Args:
            map_handle: The live view or map

        Returns:
            The resolution; a conservative constant if it cannot be read
        """

    def create_bounding_box(
        self, map_point: MapPoint, resolution: float, buffer: float
    ) -> BoundingBox:
        """
        Build a square box centered on a map point.

        The box spans ``buffer`` pixels at the given resolution, so its half
        width is ``buffer * resolution / 2`` in the units of the point's CRS. The
        center is exactly the input point and the width is linear in ``buffer``.

        Args:
            map_point: The center of the box
            resolution: Map units per pixel
            buffer: The box size in pixels, e.g. the click tolerance

        Returns:
            The box in the same CRS as the map point

        Examples:
            >>> adapter.create_bounding_box(MapPoint(100, 200), resolution=10, buffer=5)
            BoundingBox(min_x=75.0, min_y=175.0, max_x=125.0, max_y=225.0)
        """
        half_size = (buffer * resolution) / 2
        return BoundingBox(
            map_point.x - half_size,
            map_point.y - half_size,
            map_point.x + half_size,
            map_point.y + half_size,
        )

    def to_json(self, point: Optional[MapPoint]) -> Optional[Dict[str, Any]]:
        """Serialize a map point to a plain dict; None for None."""
        if point is None:
            return None
        return point.to_json()
