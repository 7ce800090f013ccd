"""Compact, URL-safe encoding of user-drawn polygons.

The wire format is ``{"rings": [[[lng, lat], ...], ...]}``: UTF-8 JSON in WGS84
with six decimal places, percent-encoded when placed in a query string. It
carries no CRS metadata; WGS84 is implied.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Union
from urllib.parse import quote, unquote

from mapquery.config import get_settings
from mapquery.constructs.polygon import PolygonGeometry
from mapquery.utils.conversion import convert_coordinate, reduce_coordinate_precision
from mapquery.utils.crs import WEB_MERCATOR, WGS84, is_wgs84

log = logging.getLogger(__name__)

URL_PRECISION = 6

PolygonLike = Union[PolygonGeometry, Mapping[str, Any]]


def _rings_and_crs(polygon: PolygonLike):
    if isinstance(polygon, PolygonGeometry):
        return polygon.rings, polygon.crs
    return polygon.get("rings"), polygon.get("crs") or WEB_MERCATOR


def serialize_polygon_for_url(polygon: Optional[PolygonLike]) -> Optional[str]:
    """
    Serialize a drawn polygon to the compact WGS84 JSON used in URLs.

    Every ring position is converted from the polygon's CRS to WGS84 (skipped if
    it is already WGS84) and rounded to six decimals.

    Args:
        polygon: A PolygonGeometry, or a mapping with ``rings`` and an optional
            ``crs`` (Web Mercator when missing)

    Returns:
        The JSON string, or None if the input is None or has no rings list

    Examples:
        >>> p = PolygonGeometry([[[-111.123456789, 40.0], [-111.0, 40.1], [-111.0, 40.0]]], "EPSG:4326")
        >>> serialize_polygon_for_url(p)
        '{"rings":[[[-111.123457,40.0],[-111.0,40.1],[-111.0,40.0]]]}'
    """
    if polygon is None:
        return None

    rings, source_crs = _rings_and_crs(polygon)
    if not isinstance(rings, (list, tuple)):
        log.warning("serialize_polygon_for_url: polygon has no rings array")
        return None

    if is_wgs84(source_crs):
        wgs84_rings = rings
    else:
        wgs84_rings = [
            [convert_coordinate(position, source_crs, WGS84) for position in ring]
            for ring in rings
        ]

    reduced = reduce_coordinate_precision(wgs84_rings, URL_PRECISION)
    return json.dumps({"rings": reduced}, separators=(",", ":"))


def _valid_rings(rings) -> bool:
    if not rings:
        return False
    for ring in rings:
        if not isinstance(ring, list) or len(ring) < 3:
            return False
        for position in ring:
            if not isinstance(position, (list, tuple)) or len(position) < 2:
                return False
            if not all(
                isinstance(c, (int, float)) and not isinstance(c, bool) for c in position[:2]
            ):
                return False
    return True


def deserialize_polygon_from_url(
    value: Optional[str], target_crs: Optional[str] = None
) -> Optional[PolygonGeometry]:
    """
    Restore a polygon from its URL representation.

    The value is percent-decoded, parsed and every WGS84 position is converted
    back to the working CRS.

    Args:
        value: The (possibly percent-encoded) JSON from the URL
        target_crs: The CRS to restore into. Default is the configured working
            CRS, Web Mercator in the reference deployment.

    Returns:
        A PolygonGeometry tagged with the target CRS, or None if the value is
        empty, not valid JSON, or has no well-formed rings array
    """
    if not value:
        return None

    if target_crs is None:
        target_crs = get_settings().working_crs

    try:
        parsed = json.loads(unquote(value))
    except (TypeError, ValueError) as e:
        log.error(f"Failed to parse polygon from URL: {e}")
        return None

    rings = parsed.get("rings") if isinstance(parsed, dict) else None
    if not isinstance(rings, list):
        log.warning("Invalid polygon data in URL: missing rings array")
        return None

    if not _valid_rings(rings):
        log.warning("Invalid polygon data in URL: rings must hold [x, y] positions")
        return None

    if is_wgs84(target_crs):
        restored = [[list(position) for position in ring] for ring in rings]
    else:
        restored = [
            [convert_coordinate(position, WGS84, target_crs) for position in ring]
            for ring in rings
        ]

    return PolygonGeometry(rings=restored, crs=target_crs)


def polygon_url_param(polygon: Optional[PolygonLike]) -> Optional[str]:
    """Serialize a polygon and percent-encode it for use as a query string value."""
    serialized = serialize_polygon_for_url(polygon)
    if serialized is None:
        return None
    return quote(serialized, safe="")
