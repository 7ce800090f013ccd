from __future__ import annotations

import logging
from abc import ABCMeta, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional

import requests

from mapquery.config import get_settings

log = logging.getLogger(__name__)

REGULAR_LAYER_RENDERER = "regular-layer-renderer"


class LegendItem(NamedTuple):
    """
    One entry of a layer's legend.

    Attributes:
        label: The text shown next to the symbol
        renderer: The symbol description, or None for an intentionally blank symbol
        id: The layer or source id the entry belongs to
        url: The service or style the entry was derived from
        type: The renderer kind
    """

    label: str
    renderer: Optional[Dict[str, Any]]
    id: str
    url: Optional[str] = None
    type: str = REGULAR_LAYER_RENDERER

    def to_json(self) -> Dict[str, Any]:
        return self._asdict()


RendererData = Optional[List[LegendItem]]


class LegendProvider(metaclass=ABCMeta):
    """
    Abstract base class for reading the legend of a map layer.

    Both backends share this interface and are picked by the same backend
    setting as the coordinate adapter and highlight provider.
    """

    @abstractmethod
    def get_renderer(
        self,
        layer_id: str,
        fallback_url: Optional[str] = None,
        fallback_layer_name: Optional[str] = None,
    ) -> RendererData:
        """
        Get the legend entries for a layer.

        Args:
            layer_id: The id of the layer on the map
            fallback_url: A WMS endpoint to ask if the layer is not on the map
            fallback_layer_name: The WMS layer name to ask for

        Returns:
            The legend entries, or None if no legend could be derived
        """


def _is_default_symbolizer(rule: Dict[str, Any]) -> bool:
    """Whether a rule only carries the bare point mark a map server adds when no style matches."""
    symbolizers = rule.get("symbolizers") or []
    if len(symbolizers) != 1:
        return False
    point = symbolizers[0].get("Point") if isinstance(symbolizers[0], dict) else None
    if not point:
        return False
    graphics = point.get("graphics") or []
    if len(graphics) != 1:
        return False
    graphic = graphics[0]
    return bool(graphic.get("mark")) and not graphic.get("fill") and not graphic.get("stroke")


def fetch_wms_legend(
    wms_url: str, layer_name: str, timeout: Optional[float] = None
) -> RendererData:
    """
    Fetch a layer's legend from a WMS GetLegendGraphic request in JSON format.

    Args:
        wms_url: The WMS endpoint
        layer_name: The WMS layer name
        timeout: Seconds to wait. Default is the configured request timeout.

    Returns:
        One legend entry per rule, or None if the request fails, the response is
        not JSON, or it has no rules
    """
    if timeout is None:
        timeout = get_settings().request_timeout

    params = {
        "service": "WMS",
        "request": "GetLegendGraphic",
        "format": "application/json",
        "layer": layer_name,
        "version": "1.3.0",
    }

    try:
        r = requests.get(
            wms_url, params=params, headers={"Accept": "application/json"}, timeout=timeout
        )
    except requests.RequestException as e:
        log.warning(f"Error fetching WMS legend for {layer_name}: {e}")
        return None

    if not r.ok:
        log.warning(f"Failed to fetch WMS legend: {r.status_code}")
        return None

    content_type = r.headers.get("content-type", "")
    if "application/json" not in content_type:
        log.warning(f"WMS legend returned non-JSON content: {content_type}")
        return None

    try:
        legend = r.json()
    except ValueError as e:
        log.warning(f"WMS legend for {layer_name} is not valid JSON: {e}")
        return None

    legends = legend.get("Legend") or [{}]
    rules = legends[0].get("rules") or []
    if not rules:
        return None

    items = []
    for rule in rules:
        label = rule.get("title") or rule.get("name") or layer_name
        if _is_default_symbolizer(rule):
            renderer = None
        else:
            renderer = {"type": "symbolizers", "symbolizers": rule.get("symbolizers") or []}
        items.append(LegendItem(label=label, renderer=renderer, id=layer_name, url=wms_url))

    return items
