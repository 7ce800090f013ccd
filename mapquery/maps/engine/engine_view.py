from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.point import MapPoint, ScreenPoint
from mapquery.maps.view_interface import EngineViewInterface, Graphic, GraphicsCollectionInterface
from mapquery.utils.conversion import convert_bbox
from mapquery.utils.crs import WEB_MERCATOR, normalize_crs

log = logging.getLogger(__name__)

DEFAULT_VIEW_SIZE = (800, 600)


class GraphicsCollection(GraphicsCollectionInterface):
    """An ordered list of graphics, bottom first."""

    def __init__(self, graphics: Optional[List[Graphic]] = None):
        self._graphics: List[Graphic] = list(graphics or [])

    def add(self, graphic: Graphic) -> None:
        self._graphics.append(graphic)

    def remove(self, graphic: Graphic) -> None:
        self._graphics = [g for g in self._graphics if g is not graphic]

    def remove_all(self) -> None:
        self._graphics = []

    def __iter__(self) -> Iterator[Graphic]:
        return iter(list(self._graphics))

    def __len__(self) -> int:
        return len(self._graphics)

    def __contains__(self, graphic: object) -> bool:
        return any(g is graphic for g in self._graphics)


class EngineLayer:
    """
    An operational layer of an engine map.

    Args:
        layer_id: The unique id of the layer
        title: The display title
        renderer: The renderer description used to draw the layer, if any
        url: The service endpoint backing the layer
        layer_name: The name of the layer on its service
    """

    def __init__(
        self,
        layer_id: str,
        title: Optional[str] = None,
        renderer: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
        layer_name: Optional[str] = None,
        visible: bool = True,
    ):
        self.id = layer_id
        self.title = title or layer_id
        self.renderer = renderer
        self.url = url
        self.layer_name = layer_name
        self.visible = visible

    def __repr__(self):
        return f"EngineLayer(id={self.id!r}, title={self.title!r})"


class EngineView(EngineViewInterface):
    """
    A headless GIS engine view over a projected CRS.

    The view is defined by its center, its resolution (CRS units per pixel) and
    its pixel size. Screen y grows downward while map y grows northward.

    Args:
        center: The map point at the center of the view, in ``spatial_reference``
        resolution: Map units per pixel
        width: The view width in pixels
        height: The view height in pixels
        spatial_reference: The CRS of the view. Default is Web Mercator.
        layers: The operational layers, topmost first

    Examples:
        >>> view = EngineView(MapPoint(0, 0, "EPSG:3857"), resolution=10)
        >>> view.to_map(ScreenPoint(400, 300))
        MapPoint(x=0.0, y=0.0, crs='EPSG:3857')
    """

    def __init__(
        self,
        center: MapPoint,
        resolution: Optional[float],
        width: int = DEFAULT_VIEW_SIZE[0],
        height: int = DEFAULT_VIEW_SIZE[1],
        spatial_reference: Optional[str] = WEB_MERCATOR,
        layers: Optional[List[EngineLayer]] = None,
    ):
        self.center = center
        self._resolution = resolution
        self.width = width
        self.height = height
        self._spatial_reference = spatial_reference
        self._graphics = GraphicsCollection()
        self._layers = list(layers or [])

    @property
    def spatial_reference(self) -> Optional[str]:
        return self._spatial_reference

    @property
    def resolution(self) -> Optional[float]:
        return self._resolution

    @property
    def graphics(self) -> GraphicsCollection:
        return self._graphics

    @property
    def layers(self) -> List[EngineLayer]:
        return self._layers

    def find_layer_by_id(self, layer_id: str) -> Optional[EngineLayer]:
        for layer in self._layers:
            if layer.id == layer_id:
                return layer
        return None

    @property
    def extent(self) -> Optional[BoundingBox]:
        if self._resolution is None:
            return None
        half_width = self.width * self._resolution / 2
        half_height = self.height * self._resolution / 2
        return BoundingBox(
            self.center.x - half_width,
            self.center.y - half_height,
            self.center.x + half_width,
            self.center.y + half_height,
        )

    def to_map(self, screen_point: ScreenPoint) -> Optional[MapPoint]:
        if self._resolution is None:
            return None
        x = self.center.x + (screen_point.x - self.width / 2) * self._resolution
        y = self.center.y - (screen_point.y - self.height / 2) * self._resolution
        return MapPoint(x, y, self._spatial_reference)

    def to_screen(self, map_point: MapPoint) -> Optional[ScreenPoint]:
        if not self._resolution:
            return None
        x = (map_point.x - self.center.x) / self._resolution + self.width / 2
        y = (self.center.y - map_point.y) / self._resolution + self.height / 2
        return ScreenPoint(x, y)

    def go_to(self, target: BoundingBox, crs: str) -> None:
        view_crs = self._spatial_reference or WEB_MERCATOR
        if normalize_crs(crs) != normalize_crs(view_crs):
            target = BoundingBox.from_list(convert_bbox(target.to_list(), crs, view_crs))

        center_x, center_y = target.center
        self.center = MapPoint(center_x, center_y, view_crs)

        fit = max(target.width / self.width, target.height / self.height)
        if fit > 0:
            self._resolution = fit

        log.debug(f"engine view moved to {self.center} at resolution {self._resolution}")
