from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

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
from mapquery.maps.view_interface import VectorMapInterface

log = logging.getLogger(__name__)

PIN_STYLE = {
    "circle-radius": 10,
    "circle-color": "#ff0000",
    "circle-stroke-width": 2,
    "circle-stroke-color": "#ffffff",
}


def rgba(color: Sequence[float]) -> str:
    return f"rgba({','.join(str(c) for c in color)})"


def highlight_layers(
    geometry_class: str, source_id: str, options: HighlightOptions
) -> List[Dict[str, Any]]:
    """
    Build the style layers drawing one highlight source, bottom first.

    Every class gets a dark halo underneath the main layer.

    Args:
        geometry_class: One of points, lines or polygons
        source_id: The source the layers draw
        options: The highlight appearance

    Returns:
        The layer specifications
    """
    halo = rgba(HALO_COLOR)
    outline = rgba(options.outline_color)
    fill = rgba(options.fill_color)

    if geometry_class == POINTS:
        return [
            {
                "id": f"{source_id}-outline",
                "type": "circle",
                "source": source_id,
                "paint": {
                    "circle-radius": options.point_size + 2,
                    "circle-color": halo,
                    "circle-stroke-width": options.outline_width / 2,
                    "circle-stroke-color": halo,
                },
            },
            {
                "id": f"{source_id}-main",
                "type": "circle",
                "source": source_id,
                "paint": {
                    "circle-radius": options.point_size,
                    "circle-color": fill,
                    "circle-stroke-width": 2 if options.outline_width > 0 else 0,
                    "circle-stroke-color": outline,
                },
            },
        ]

    if geometry_class == LINES:
        return [
            {
                "id": f"{source_id}-outline",
                "type": "line",
                "source": source_id,
                "paint": {"line-color": halo, "line-width": options.outline_width + 2},
            },
            {
                "id": f"{source_id}-main",
                "type": "line",
                "source": source_id,
                "paint": {"line-color": outline, "line-width": options.outline_width},
            },
        ]

    return [
        {
            "id": f"{source_id}-outline-stroke",
            "type": "line",
            "source": source_id,
            "paint": {"line-color": "rgba(0,0,0,1)", "line-width": options.outline_width + 2},
        },
        {
            "id": f"{source_id}-fill",
            "type": "fill",
            "source": source_id,
            "paint": {"fill-color": fill, "fill-outline-color": outline},
        },
        {
            "id": f"{source_id}-stroke",
            "type": "line",
            "source": source_id,
            "paint": {"line-color": outline, "line-width": options.outline_width},
        },
    ]


class VectorTileHighlight(HighlightProvider):
    """
    Highlight provider for a vector-tile map.

    Every highlight is a GeoJSON source plus the styled layers drawing it.
    The provider keeps an index from each source id it added to the title it was
    added under (None for pins); clears walk that index only.

    Args:
        vector_map: The live map
    """

    def __init__(self, vector_map: VectorMapInterface):
        self.map = vector_map
        self._source_titles: Dict[str, Optional[str]] = {}

    @property
    def source_ids(self) -> List[str]:
        return list(self._source_titles)

    def _add_source_with_layers(
        self,
        source_id: str,
        data: Dict[str, Any],
        layers: List[Dict[str, Any]],
        title: Optional[str],
    ) -> bool:
        added_layers = []
        try:
            self.map.add_source(source_id, {"type": "geojson", "data": data})
            for layer in layers:
                self.map.add_layer(layer)
                added_layers.append(layer["id"])
        except Exception as e:
            log.error(f"failed to add highlight source {source_id}: {e}")
            for layer_id in added_layers:
                self.map.remove_layer(layer_id)
            if self.map.get_source(source_id) is not None:
                self.map.remove_source(source_id)
            return False

        self._source_titles[source_id] = title
        return True

    def highlight_feature(self, feature, source_crs, title, options=None) -> bool:
        if self.map is None:
            log.warning("invalid map provided for highlighting")
            return False

        prepared = prepare_geometry(feature, source_crs)
        if prepared is None:
            return False
        geometry, geometry_class = prepared

        options = DEFAULT_HIGHLIGHT_OPTIONS.merge(options)
        source_id = f"highlight-{title}-{uuid4().hex}"
        data = {"type": "Feature", "geometry": geometry, "properties": {"title": title}}

        return self._add_source_with_layers(
            source_id, data, highlight_layers(geometry_class, source_id, options), title
        )

    def highlight_feature_collection(self, features, source_crs, title, options=None) -> bool:
        if not features or self.map is None:
            return False

        options = DEFAULT_HIGHLIGHT_OPTIONS.merge(options)
        groups = group_by_geometry_class(features, source_crs)

        drawn = False
        for geometry_class in (LINES, POINTS, POLYGONS):
            geometries = groups[geometry_class]
            if not geometries:
                continue
            source_id = f"highlight-{geometry_class}-{title}-{uuid4().hex}"
            data = {
                "type": "FeatureCollection",
                "features": [
                    {"type": "Feature", "geometry": g, "properties": {"title": title}}
                    for g in geometries
                ],
            }
            layers = highlight_layers(geometry_class, source_id, options)
            if self._add_source_with_layers(source_id, data, layers, title):
                drawn = True

        return drawn

    def clear_graphics(self, title: Optional[str] = None) -> None:
        to_remove = [
            source_id
            for source_id, source_title in self._source_titles.items()
            if title is None or source_title == title
        ]

        for source_id in to_remove:
            for layer in self.map.get_layers():
                if layer.get("source") == source_id:
                    self.map.remove_layer(layer["id"])
            if self.map.get_source(source_id) is not None:
                self.map.remove_source(source_id)
            del self._source_titles[source_id]

    def create_pin_graphic(self, lat: float, lon: float) -> None:
        source_id = f"pin-{uuid4().hex}"
        data = {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [lon, lat]},
            "properties": {},
        }
        layer = {
            "id": f"pin-layer-{source_id}",
            "type": "circle",
            "source": source_id,
            "paint": dict(PIN_STYLE),
        }
        self._add_source_with_layers(source_id, data, [layer], None)
