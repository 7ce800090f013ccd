from __future__ import annotations

import copy
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.point import ScreenPoint
from mapquery.maps.view_interface import LngLat, VectorMapInterface
from mapquery.utils.geo import lnglat_to_world, world_to_lnglat

log = logging.getLogger(__name__)

MAX_ZOOM = 22


class VectorTileMap(VectorMapInterface):
    """
    A headless vector-tile map with a Web Mercator camera and a style.

    The camera is a WGS84 center plus a fractional zoom; screen pixels are
    derived from Web Mercator world pixels with 256 px tiles. The style holds
    named GeoJSON/raster sources and an ordered list of layers drawing them.

    Args:
        center: The (lng, lat) at the center of the viewport
        zoom: The zoom level, or None if the map has not loaded
        width: The viewport width in pixels
        height: The viewport height in pixels

    Examples:
        >>> m = VectorTileMap((0, 0), zoom=2)
        >>> m.unproject(ScreenPoint(400, 300))
        (0.0, 0.0)
    """

    def __init__(
        self,
        center: LngLat = (0.0, 0.0),
        zoom: Optional[float] = 0,
        width: int = 800,
        height: int = 600,
    ):
        self.center = (float(center[0]), float(center[1]))
        self.zoom = zoom
        self.width = width
        self.height = height
        self._sources: Dict[str, Dict[str, Any]] = {}
        self._layers: List[Dict[str, Any]] = []

    def _camera(self):
        if self.zoom is None:
            raise ValueError("map camera is not initialised")
        cx, cy = lnglat_to_world(self.center[0], self.center[1], self.zoom)
        return cx, cy, self.zoom

    def project(self, lnglat: LngLat) -> ScreenPoint:
        cx, cy, zoom = self._camera()
        x, y = lnglat_to_world(lnglat[0], lnglat[1], zoom)
        return ScreenPoint(x - cx + self.width / 2, y - cy + self.height / 2)

    def unproject(self, screen_point: ScreenPoint) -> LngLat:
        cx, cy, zoom = self._camera()
        x = cx + screen_point.x - self.width / 2
        y = cy + screen_point.y - self.height / 2
        return world_to_lnglat(x, y, zoom)

    def get_zoom(self) -> Optional[float]:
        return self.zoom

    def get_bounds(self) -> Optional[BoundingBox]:
        if self.zoom is None:
            return None
        corners = [
            self.unproject(ScreenPoint(0, 0)),
            self.unproject(ScreenPoint(self.width, self.height)),
        ]
        return BoundingBox.from_corners(corners)

    def fit_bounds(self, bounds: Sequence[LngLat], padding: float = 0) -> None:
        (min_lng, min_lat), (max_lng, max_lat) = bounds[0], bounds[1]

        x0, y0 = lnglat_to_world(min_lng, max_lat, 0)
        x1, y1 = lnglat_to_world(max_lng, min_lat, 0)
        span_x = abs(x1 - x0)
        span_y = abs(y1 - y0)

        avail_x = max(self.width - 2 * padding, 1)
        avail_y = max(self.height - 2 * padding, 1)

        scales = []
        if span_x > 0:
            scales.append(avail_x / span_x)
        if span_y > 0:
            scales.append(avail_y / span_y)

        if scales:
            self.zoom = min(max(math.log2(min(scales)), 0), MAX_ZOOM)
        else:
            self.zoom = MAX_ZOOM

        self.center = world_to_lnglat((x0 + x1) / 2, (y0 + y1) / 2, 0)
        log.debug(f"vector map fit to {bounds} at zoom {self.zoom}")

    # style

    def add_source(self, source_id: str, source: Dict[str, Any]) -> None:
        if source_id in self._sources:
            raise ValueError(f"There is already a source with id {source_id!r}")
        self._sources[source_id] = source

    def get_source(self, source_id: str) -> Optional[Dict[str, Any]]:
        return self._sources.get(source_id)

    def remove_source(self, source_id: str) -> None:
        users = [layer["id"] for layer in self._layers if layer.get("source") == source_id]
        if users:
            raise ValueError(
                f"Source {source_id!r} cannot be removed while layers {users} use it"
            )
        self._sources.pop(source_id, None)

    def add_layer(self, layer: Dict[str, Any], before_id: Optional[str] = None) -> None:
        layer_id = layer.get("id")
        if self.get_layer(layer_id) is not None:
            raise ValueError(f"Layer with id {layer_id!r} already exists on this map")
        source = layer.get("source")
        if isinstance(source, str) and source not in self._sources:
            raise ValueError(f"Source {source!r} for layer {layer_id!r} does not exist")

        if before_id is None:
            self._layers.append(layer)
            return
        index = next(
            (i for i, existing in enumerate(self._layers) if existing["id"] == before_id),
            len(self._layers),
        )
        self._layers.insert(index, layer)

    def get_layer(self, layer_id: str) -> Optional[Dict[str, Any]]:
        for layer in self._layers:
            if layer.get("id") == layer_id:
                return layer
        return None

    def get_layers(self) -> List[Dict[str, Any]]:
        return list(self._layers)

    def remove_layer(self, layer_id: str) -> None:
        self._layers = [layer for layer in self._layers if layer.get("id") != layer_id]

    def get_style(self) -> Dict[str, Any]:
        """A copy of the current style document."""
        return {
            "sources": copy.deepcopy(self._sources),
            "layers": copy.deepcopy(self._layers),
        }
