from __future__ import annotations

from enum import Enum
from typing import List, NamedTuple, Optional

import shapely.wkt
from shapely.geometry import Polygon, box
from shapely.geometry.base import BaseGeometry

from mapquery.constructs.bbox import BoundingBox
from mapquery.utils.crs import WEB_MERCATOR, WGS84

Ring = List[List[float]]


class PolygonGeometry(NamedTuple):
    """
    A user-drawn area of interest.

    Unlike a GeoJSON Polygon it carries only the rings and a CRS tag, so it can
    travel through the compact URL encoding in ``mapquery.utils.polygon_url``.

    Attributes:
        rings: Linear rings of [x, y] positions; the first ring is the outer boundary
        crs: The CRS of the positions. Draw tools on the engine backend produce
            Web Mercator, which is the default.
    """

    rings: List[Ring]
    crs: str = WEB_MERCATOR

    def to_geojson(self) -> dict:
        return {"type": "Polygon", "coordinates": self.rings}


class FilterKind(str, Enum):
    BBOX = "bbox"
    POLYGON = "polygon"


class SpatialFilter(NamedTuple):
    """
    The spatial constraint of the current query: a box or a drawn polygon.

    A filter is always expressed in WGS84. It is created when a draw or
    box-select interaction completes and is cleared by the user or by a new
    non-additive click.

    Attributes:
        kind: Which variant is populated
        bbox: The WGS84 box, for FilterKind.BBOX
        polygon: The WGS84 polygon, for FilterKind.POLYGON
    """

    kind: FilterKind
    bbox: Optional[BoundingBox] = None
    polygon: Optional[PolygonGeometry] = None

    @classmethod
    def from_bbox(cls, bbox: BoundingBox) -> SpatialFilter:
        return cls(kind=FilterKind.BBOX, bbox=BoundingBox(*bbox))

    @classmethod
    def from_polygon(cls, polygon: PolygonGeometry) -> SpatialFilter:
        if polygon.crs != WGS84:
            raise ValueError(
                f"spatial filters must be in {WGS84} but found {polygon.crs}"
            )
        return cls(kind=FilterKind.POLYGON, polygon=polygon)

    def to_shape(self) -> BaseGeometry:
        if self.kind == FilterKind.BBOX:
            return box(*self.bbox)
        outer, *holes = self.polygon.rings
        return Polygon(outer, holes)

    def to_wkt(self) -> str:
        """
        Render the filter as EWKT for a CQL INTERSECTS predicate.

        Returns:
            A string like "SRID=4326;POLYGON ((...))"
        """
        return f"SRID=4326;{shapely.wkt.dumps(self.to_shape(), trim=True)}"
