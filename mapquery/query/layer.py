from __future__ import annotations

from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple


class SubLayer(NamedTuple):
    """
    A feature type published by a map layer's service.

    Attributes:
        name: The feature type name on the service, e.g. "hazards:faults"
        queryable: False for sublayers the service will not answer queries for
    """

    name: str
    queryable: bool = True


class MapLayer(NamedTuple):
    """
    A map layer as the query orchestrator sees it.

    Attributes:
        title: The display title; also used to group selected features
        sublayers: The feature types backing the layer
        visible: Whether the layer is currently drawn
        crs: The CRS of the geometries the service returns for this layer;
            the service's output CRS if None
    """

    title: str
    sublayers: List[SubLayer]
    visible: bool = True
    crs: Optional[str] = None


def queryable_targets(layers: Sequence[MapLayer]) -> Iterator[Tuple[MapLayer, str]]:
    """
    Yield (layer, feature type name) for every visible, queryable sublayer.

    The order follows the input, which is topmost layer first.
    """
    for layer in layers:
        if not layer.visible:
            continue
        for sublayer in layer.sublayers or []:
            if sublayer.queryable is False or not sublayer.name:
                continue
            yield layer, sublayer.name
