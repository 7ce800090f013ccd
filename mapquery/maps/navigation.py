from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional

from mapquery.config import MapBackend
from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.feature import as_geojson_feature
from mapquery.utils.conversion import convert_bbox, convert_geometry_bbox
from mapquery.utils.crs import WGS84

if TYPE_CHECKING:
    from mapquery.context import MapContext

log = logging.getLogger(__name__)

FIT_BOUNDS_PADDING = 50


def feature_extent(feature: Any, source_crs: str) -> Optional[List[float]]:
    """
    Find the WGS84 extent to zoom to for a feature.

    A ``bbox`` member on the feature wins; otherwise the geometry is used, with
    a single point padded by 100 m so there is something to show.

    Args:
        feature: A GeoJSON feature dict, HighlightFeature or QueryFeature
        source_crs: The CRS of the feature's bbox and geometry

    Returns:
        [minLng, minLat, maxLng, maxLat], or None if the feature has no usable extent
    """
    geojson = as_geojson_feature(feature)
    if geojson is None:
        return None

    bbox = geojson.get("bbox")
    if bbox and len(bbox) >= 4:
        return convert_bbox(list(bbox[:4]), source_crs, WGS84)

    return convert_geometry_bbox(geojson.get("geometry"), source_crs)


def zoom_to_feature(feature: Any, source_crs: str, context: MapContext) -> bool:
    """
    Move the map so a feature fills the view.

    The backend kind of the context decides which camera call is made: the
    engine view animates to the extent, the vector-tile map fits the bounds
    with 50 px of padding.

    Args:
        feature: The feature to zoom to
        source_crs: The CRS of the feature
        context: The map context holding the live map handle

    Returns:
        True if the camera was moved
    """
    extent = feature_extent(feature, source_crs)
    if extent is None:
        log.warning("zoom_to_feature: feature has no extent to zoom to")
        return False

    bbox = BoundingBox.from_list(extent)

    if context.backend == MapBackend.ENGINE:
        context.handle.go_to(bbox, WGS84)
    else:
        context.handle.fit_bounds(
            [(bbox.min_x, bbox.min_y), (bbox.max_x, bbox.max_y)],
            padding=FIT_BOUNDS_PADDING,
        )
    return True
