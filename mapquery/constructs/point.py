from __future__ import annotations

from typing import Any, Dict, NamedTuple, Optional


class MapPoint(NamedTuple):
    """
    A geographic point tagged with the CRS its numbers are expressed in.

    The two numbers are always interpreted according to ``crs``; nothing in
    mapquery reinterprets them implicitly. Convert with
    ``mapquery.utils.conversion.convert_coordinate`` when another CRS is needed.

    Attributes:
        x: Easting or longitude
        y: Northing or latitude
        crs: The CRS identifier, e.g. "EPSG:4326" or "EPSG:3857"; None if unknown

    Examples:
        >>> from mapquery.constructs.point import MapPoint
        >>> p = MapPoint(-111.09, 40.76, "EPSG:4326")
        >>> p.to_json()
        {'x': -111.09, 'y': 40.76, 'crs': 'EPSG:4326'}
    """

    x: float
    y: float
    crs: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return self._asdict()

    def to_list(self):
        return [self.x, self.y]


class ScreenPoint(NamedTuple):
    """A pixel position relative to the top-left corner of the map container."""

    x: float
    y: float

    def to_json(self) -> Dict[str, Any]:
        return self._asdict()
