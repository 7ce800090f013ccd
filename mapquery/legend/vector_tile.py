from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from mapquery.legend.legend_interface import (
    LegendItem,
    LegendProvider,
    RendererData,
    fetch_wms_legend,
)
from mapquery.maps.view_interface import VectorMapInterface

log = logging.getLogger(__name__)


def _number(value: Any, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return default


def _string(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def layer_symbol_params(layer: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Derive simplified legend symbol parameters from a style layer.

    Only literal paint values are used; data-driven expressions fall back to
    neutral defaults.

    Args:
        layer: The style layer specification

    Returns:
        The symbol parameters, or None for layer types without a symbol (raster,
        background)
    """
    paint = layer.get("paint") or {}
    layout = layer.get("layout") or {}
    layer_type = layer.get("type")

    if layer_type == "fill":
        return {
            "type": "fill",
            "color": _string(paint.get("fill-color"), "#888"),
            "opacity": _number(paint.get("fill-opacity"), 1),
            "outline_color": _string(paint.get("fill-outline-color"), ""),
        }

    if layer_type == "line":
        dasharray = [
            v for v in paint.get("line-dasharray") or []
            if isinstance(v, (int, float))
        ]
        cap = layout.get("line-cap")
        return {
            "type": "line",
            "color": _string(paint.get("line-color"), "#333"),
            "width": _number(paint.get("line-width"), 2),
            "opacity": _number(paint.get("line-opacity"), 1),
            "dasharray": dasharray or None,
            "cap": cap if cap in ("butt", "round", "square") else None,
        }

    if layer_type == "circle":
        return {
            "type": "circle",
            "color": _string(paint.get("circle-color"), "#888"),
            "radius": _number(paint.get("circle-radius"), 6),
            "opacity": _number(paint.get("circle-opacity"), 1),
            "stroke_color": _string(paint.get("circle-stroke-color"), ""),
            "stroke_width": _number(paint.get("circle-stroke-width"), 1),
        }

    if layer_type == "symbol":
        return {
            "type": "symbol",
            "icon_color": _string(paint.get("icon-color"), ""),
            "text_color": _string(paint.get("text-color"), ""),
        }

    return None


class VectorTileLegend(LegendProvider):
    """
    Legend provider for a vector-tile map.

    Layers backed by a WMS (declared in layer or source metadata) get their
    legend from the map server; everything else is described from the layer's
    own paint properties.

    Args:
        vector_map: The live map
    """

    def __init__(self, vector_map: VectorMapInterface):
        self.map = vector_map

    def get_renderer(self, layer_id, fallback_url=None, fallback_layer_name=None) -> RendererData:
        layer = self.map.get_layer(layer_id)
        if layer is None:
            if fallback_url and fallback_layer_name:
                return fetch_wms_legend(fallback_url, fallback_layer_name)
            return None

        metadata = layer.get("metadata")
        if isinstance(metadata, dict):
            if metadata.get("wfsLayer") and metadata.get("wmsUrl") and metadata.get("wmsLayerName"):
                return fetch_wms_legend(metadata["wmsUrl"], metadata["wmsLayerName"])
            if metadata.get("wms-url") and metadata.get("wms-layer"):
                return fetch_wms_legend(metadata["wms-url"], metadata["wms-layer"])

        source_id = layer.get("source")
        if isinstance(source_id, str):
            source = self.map.get_source(source_id) or {}
            if "tiles" in source:
                return self._source_wms_legend(source_id, source)

        return self._paint_legend(layer, layer_id)

    def _source_wms_legend(self, source_id: str, source: Dict[str, Any]) -> RendererData:
        metadata = source.get("metadata") or {}
        wms_url = metadata.get("wms-url")
        layer_name = metadata.get("wms-layer")
        if not wms_url or not layer_name:
            log.warning(f"Missing WMS metadata for source {source_id}")
            return None
        return fetch_wms_legend(wms_url, layer_name)

    def _paint_legend(self, layer: Dict[str, Any], layer_id: str) -> RendererData:
        params = layer_symbol_params(layer)
        if params is None:
            return None
        source = layer.get("source")
        items: List[LegendItem] = [
            LegendItem(
                label=layer.get("id") or "Layer",
                renderer=params,
                id=layer_id,
                url=source if isinstance(source, str) else "",
            )
        ]
        return items
