from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from mapquery.highlight.highlight_interface import (
    DEFAULT_HIGHLIGHT_OPTIONS,
    HALO_COLOR,
    LINES,
    POINTS,
    POLYGONS,
    HighlightOptions,
    HighlightProvider,
    group_by_geometry_class,
    prepare_geometry,
)
from mapquery.maps.view_interface import EngineViewInterface, Graphic
from mapquery.utils.crs import WGS84

log = logging.getLogger(__name__)

PIN_SYMBOL = {
    "type": "simple-marker",
    "style": "circle",
    "color": [255, 0, 0, 1],
    "size": 20,
    "outline": {"color": [255, 255, 255, 1], "width": 2},
}

_MULTI_TYPES = {POINTS: "MultiPoint", LINES: "MultiLineString", POLYGONS: "MultiPolygon"}


def highlight_symbols(geometry_class: str, options: HighlightOptions) -> List[Dict[str, Any]]:
    """
    Build the (halo, main) symbol pair for a geometry class.

    Args:
        geometry_class: One of points, lines or polygons
        options: The highlight appearance

    Returns:
        Two symbol descriptions, drawn in order
    """
    fill = list(options.fill_color)
    outline = list(options.outline_color)

    if geometry_class == POINTS:
        return [
            {
                "type": "simple-marker",
                "color": fill,
                "size": options.point_size + 2,
                "outline": {"color": list(HALO_COLOR), "width": options.outline_width / 2},
            },
            {
                "type": "simple-marker",
                "color": fill,
                "size": options.point_size,
                "outline": {"color": outline, "width": 2 if options.outline_width > 0 else 0},
            },
        ]

    if geometry_class == LINES:
        return [
            {"type": "simple-line", "color": list(HALO_COLOR), "width": options.outline_width + 2},
            {"type": "simple-line", "color": outline, "width": options.outline_width},
        ]

    return [
        {
            "type": "simple-fill",
            "color": [0, 0, 0, 0],
            "outline": {"color": [0, 0, 0, 1], "width": options.outline_width + 2},
        },
        {
            "type": "simple-fill",
            "color": fill,
            "outline": {"color": outline, "width": options.outline_width},
        },
    ]


def merge_geometries(geometry_class: str, geometries: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Combine single and multi geometries of one class into a single multi geometry."""
    parts = []
    for geometry in geometries:
        if geometry["type"].startswith("Multi"):
            parts.extend(geometry["coordinates"])
        else:
            parts.append(geometry["coordinates"])
    return {"type": _MULTI_TYPES[geometry_class], "coordinates": parts}


class EngineHighlight(HighlightProvider):
    """
    Highlight provider for a GIS engine view.

    Highlights are graphics on the view's graphics collection, each drawn as a
    halo graphic plus a main graphic with simple symbols. Geometries are handed
    to the engine in WGS84; the engine projects them for display.

    The provider keeps its own index from title to the graphics it added, so a
    clear never removes graphics added by anything else.

    Args:
        view: The live engine view
    """

    def __init__(self, view: EngineViewInterface):
        self.view = view
        self._graphics: Dict[Optional[str], List[Graphic]] = {}

    @property
    def titles(self) -> List[str]:
        return [t for t in self._graphics if t is not None]

    def _add(self, title: Optional[str], graphics: List[Graphic]) -> bool:
        try:
            self.view.graphics.add_many(graphics)
        except Exception as e:
            log.error(f"failed to add highlight graphics: {e}")
            self.view.graphics.remove_many(graphics)
            return False
        self._graphics.setdefault(title, []).extend(graphics)
        return True

    def _graphic_pair(
        self, geometry: Dict[str, Any], geometry_class: str, title: str, options: HighlightOptions
    ) -> List[Graphic]:
        return [
            Graphic(geometry=geometry, symbol=symbol, attributes={"title": title}, crs=WGS84)
            for symbol in highlight_symbols(geometry_class, options)
        ]

    def highlight_feature(self, feature, source_crs, title, options=None) -> bool:
        if self.view is None:
            log.warning("invalid view provided for highlighting")
            return False

        prepared = prepare_geometry(feature, source_crs)
        if prepared is None:
            return False
        geometry, geometry_class = prepared

        options = DEFAULT_HIGHLIGHT_OPTIONS.merge(options)
        return self._add(title, self._graphic_pair(geometry, geometry_class, title, options))

    def highlight_feature_collection(self, features, source_crs, title, options=None) -> bool:
        if not features or self.view is None:
            return False

        options = DEFAULT_HIGHLIGHT_OPTIONS.merge(options)
        groups = group_by_geometry_class(features, source_crs)

        graphics = []
        for geometry_class in (LINES, POINTS, POLYGONS):
            geometries = groups[geometry_class]
            if not geometries:
                continue
            merged = merge_geometries(geometry_class, geometries)
            graphics.extend(self._graphic_pair(merged, geometry_class, title, options))

        if not graphics:
            return False
        return self._add(title, graphics)

    def clear_graphics(self, title: Optional[str] = None) -> None:
        if title is None:
            titles = list(self._graphics)
        elif title in self._graphics:
            titles = [title]
        else:
            return

        for t in titles:
            self.view.graphics.remove_many(self._graphics.pop(t))

    def create_pin_graphic(self, lat: float, lon: float) -> None:
        pin = Graphic(
            geometry={"type": "Point", "coordinates": [lon, lat]},
            symbol=dict(PIN_SYMBOL),
            crs=WGS84,
        )
        self._add(None, [pin])
