from __future__ import annotations

from abc import ABCMeta, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.point import MapPoint, ScreenPoint
from mapquery.utils.crs import WEB_MERCATOR

LngLat = Tuple[float, float]


class EngineViewInterface(metaclass=ABCMeta):
    """
    Abstract base class for the view of a GIS engine map.

    A GIS engine view speaks a projected CRS (Web Mercator in the reference
    deployment) and projects between screen pixels and map coordinates natively.
    Graphics added to ``graphics`` carry their own geometry CRS and are drawn on
    top of the map's layers.

    mapquery never creates a view; the host application owns it and hands it to
    a ``MapContext``.
    """

    @property
    @abstractmethod
    def spatial_reference(self) -> Optional[str]:
        """
        The CRS of the view, e.g. "EPSG:3857".

        Returns:
            The CRS identifier, or None if the view has not finished loading
        """

    @property
    @abstractmethod
    def resolution(self) -> Optional[float]:
        """
        The ground resolution reported by the view, in meters per pixel.

        Returns:
            The resolution, or None if unavailable
        """

    @property
    @abstractmethod
    def extent(self) -> Optional[BoundingBox]:
        """The visible extent in the view's CRS, or None if unavailable."""

    @property
    @abstractmethod
    def graphics(self) -> GraphicsCollectionInterface:
        """The collection of graphics drawn on top of the map."""

    @property
    @abstractmethod
    def layers(self) -> List[Any]:
        """The operational layers of the map, topmost first."""

    @abstractmethod
    def to_map(self, screen_point: ScreenPoint) -> Optional[MapPoint]:
        """
        Convert a screen pixel to a map point in the view's CRS.

        Args:
            screen_point: The pixel relative to the top-left of the view

        Returns:
            The map point, or None if the pixel cannot be projected
        """

    @abstractmethod
    def to_screen(self, map_point: MapPoint) -> Optional[ScreenPoint]:
        """
        Convert a map point in the view's CRS to a screen pixel.

        Args:
            map_point: The map point

        Returns:
            The screen point, or None if the point cannot be projected
        """

    @abstractmethod
    def go_to(self, target: BoundingBox, crs: str) -> None:
        """
        Animate (or jump) the view so the target extent is visible.

        Args:
            target: The extent to show
            crs: The CRS the extent is expressed in
        """


@dataclass(eq=False)
class Graphic:
    """
    A geometry drawn on top of an engine view with its own symbol.

    Graphics compare by identity so that two graphics with equal content can
    still be removed independently.

    Attributes:
        geometry: A GeoJSON geometry dict
        symbol: The symbol description, e.g. {"type": "simple-line", ...}
        attributes: Arbitrary attributes attached to the graphic
        crs: The CRS of the geometry
    """

    geometry: Optional[Dict[str, Any]]
    symbol: Dict[str, Any]
    attributes: Dict[str, Any] = field(default_factory=dict)
    crs: str = WEB_MERCATOR


class GraphicsCollectionInterface(metaclass=ABCMeta):
    """The mutable set of graphics drawn on an engine view."""

    @abstractmethod
    def add(self, graphic: Graphic) -> None:
        """Add a graphic."""

    @abstractmethod
    def remove(self, graphic: Graphic) -> None:
        """Remove a graphic; removing one that is not present is a no-op."""

    @abstractmethod
    def remove_all(self) -> None:
        """Remove every graphic, including ones mapquery did not add."""

    @abstractmethod
    def __iter__(self):
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    def add_many(self, graphics: Sequence[Graphic]) -> None:
        for graphic in graphics:
            self.add(graphic)

    def remove_many(self, graphics: Sequence[Graphic]) -> None:
        for graphic in graphics:
            self.remove(graphic)


class VectorMapInterface(metaclass=ABCMeta):
    """
    Abstract base class for a WebGL vector-tile map.

    A vector-tile map works in WGS84 longitude/latitude and exposes a
    project/unproject pair between degrees and screen pixels. Its style is a
    set of named sources and an ordered stack of layers drawing those sources.

    Layers are ordered bottom first, as in a style document.
    """

    @abstractmethod
    def project(self, lnglat: LngLat) -> ScreenPoint:
        """Convert a [lng, lat] position to a screen pixel."""

    @abstractmethod
    def unproject(self, screen_point: ScreenPoint) -> LngLat:
        """Convert a screen pixel to a (lng, lat) position."""

    @abstractmethod
    def get_zoom(self) -> Optional[float]:
        """The current (fractional) zoom level, or None if unavailable."""

    @abstractmethod
    def get_bounds(self) -> Optional[BoundingBox]:
        """The visible extent in WGS84, or None if unavailable."""

    @abstractmethod
    def add_source(self, source_id: str, source: Dict[str, Any]) -> None:
        """
        Add a style source.

        Raises:
            ValueError: If a source with that id already exists
        """

    @abstractmethod
    def get_source(self, source_id: str) -> Optional[Dict[str, Any]]:
        """The source with the given id, or None."""

    @abstractmethod
    def remove_source(self, source_id: str) -> None:
        """
        Remove a style source.

        Raises:
            ValueError: If a layer still draws the source
        """

    @abstractmethod
    def add_layer(self, layer: Dict[str, Any], before_id: Optional[str] = None) -> None:
        """
        Add a style layer on top of the stack, or below ``before_id``.

        Raises:
            ValueError: If the layer id exists or its source is missing
        """

    @abstractmethod
    def get_layer(self, layer_id: str) -> Optional[Dict[str, Any]]:
        """The layer with the given id, or None."""

    @abstractmethod
    def get_layers(self) -> List[Dict[str, Any]]:
        """Every style layer, bottom first."""

    @abstractmethod
    def remove_layer(self, layer_id: str) -> None:
        """Remove a style layer; removing an unknown id is a no-op."""

    @abstractmethod
    def fit_bounds(self, bounds: Sequence[LngLat], padding: float = 0) -> None:
        """
        Move the camera so the bounds fill the viewport.

        Args:
            bounds: [[minLng, minLat], [maxLng, maxLat]]
            padding: Pixels to keep free around the bounds
        """
