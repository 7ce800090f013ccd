from __future__ import annotations

import logging

from mapquery.legend.legend_interface import (
    LegendItem,
    LegendProvider,
    RendererData,
    fetch_wms_legend,
)
from mapquery.maps.view_interface import EngineViewInterface

log = logging.getLogger(__name__)


class EngineLegend(LegendProvider):
    """
    Legend provider for a GIS engine view.

    A layer that carries its own renderer is described by it; a layer backed by
    a WMS endpoint asks the map server.

    Args:
        view: The live engine view
    """

    def __init__(self, view: EngineViewInterface):
        self.view = view

    def _find_layer(self, layer_id: str):
        for layer in self.view.layers:
            if getattr(layer, "id", None) == layer_id:
                return layer
        return None

    def get_renderer(self, layer_id, fallback_url=None, fallback_layer_name=None) -> RendererData:
        layer = self._find_layer(layer_id)
        if layer is None:
            if fallback_url and fallback_layer_name:
                return fetch_wms_legend(fallback_url, fallback_layer_name)
            return None

        renderer = getattr(layer, "renderer", None)
        if renderer:
            return [
                LegendItem(
                    label=getattr(layer, "title", None) or layer_id,
                    renderer=renderer,
                    id=layer_id,
                    url=getattr(layer, "url", None),
                )
            ]

        url = getattr(layer, "url", None)
        layer_name = getattr(layer, "layer_name", None)
        if url and layer_name:
            return fetch_wms_legend(url, layer_name)

        log.debug(f"layer {layer_id} has no renderer or WMS source for a legend")
        return None
