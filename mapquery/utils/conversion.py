"""Coordinate conversion between the CRSs the viewer reconciles.

Point and bbox conversion are best-effort: on any failure they log the error and
hand back the untransformed input so a rendering path never crashes. Whole
geometry conversion is all-or-nothing and returns None instead, because a
geometry with only some of its positions reprojected is corrupt.
"""

from __future__ import annotations

import copy
import json
import logging
import math
from numbers import Real
from typing import Any, List, Optional, Sequence, Tuple

from pyproj.exceptions import ProjError

from mapquery.utils.crs import (
    DEGREE_PASSTHROUGH_CRS,
    WEB_MERCATOR,
    WGS84,
    get_transformer,
    is_wgs84,
    normalize_crs,
)

log = logging.getLogger(__name__)

CONVERSION_ERRORS = (ProjError, ValueError, TypeError, IndexError, ArithmeticError)

Bounds = Tuple[Tuple[float, float], Tuple[float, float]]

# coordinate array depth per GeoJSON geometry type
_POSITION_DEPTH = {
    "Point": 0,
    "MultiPoint": 1,
    "LineString": 1,
    "MultiLineString": 2,
    "Polygon": 2,
    "MultiPolygon": 3,
}

# largest span first; the first threshold exceeded wins
_ZOOM_STEPS = (
    (1, 7),
    (0.5, 8),
    (0.2, 9),
    (0.1, 10),
    (0.05, 11),
    (0.02, 12),
)
DEFAULT_ZOOM = 10
MAX_ZOOM_FROM_BOUNDS = 13


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _transform_xy(x: float, y: float, source_crs: str, target_crs: str) -> Tuple[float, float]:
    new_x, new_y = get_transformer(source_crs, target_crs).transform(x, y)
    if not (math.isfinite(new_x) and math.isfinite(new_y)):
        raise ValueError(
            f"Unable to convert {source_crs} ({x}, {y}) -> {target_crs} ({new_x}, {new_y})"
        )
    return new_x, new_y


def convert_dd_to_dms(dd: float, is_longitude: bool = False) -> str:
    """
    Format signed decimal degrees as degrees, minutes and seconds.

    Each component is zero padded to at least two digits and the direction
    letter is picked from the sign and the axis.

    Args:
        dd: The signed decimal degrees
        is_longitude: True for an east/west value, False for north/south

    Returns:
        A string like ``111° 30' 00" E``

    Examples:
        >>> convert_dd_to_dms(-40.75)
        '40° 45\\' 00" S'
        >>> convert_dd_to_dms(5.5, True)
        '05° 30\\' 00" E'
    """
    if dd < 0:
        direction = "W" if is_longitude else "S"
    else:
        direction = "E" if is_longitude else "N"

    abs_dd = abs(dd)
    degrees = math.floor(abs_dd)
    minutes_float = (abs_dd - degrees) * 60
    minutes = math.floor(minutes_float)
    seconds = math.floor((minutes_float - minutes) * 60 + 0.5)

    # rounding can push seconds (and then minutes) over the edge
    if seconds == 60:
        seconds = 0
        minutes += 1
    if minutes == 60:
        minutes = 0
        degrees += 1

    return f"{degrees:02d}° {minutes:02d}' {seconds:02d}\" {direction}"


def convert_coordinate(
    point: Sequence[float], source_crs: str, target_crs: str = WGS84
) -> List[float]:
    """
    Convert a single [x, y] position between two CRSs.

    Conversion is best-effort: if pyproj cannot parse a CRS or the projection
    fails, the error is logged and the original position is returned unchanged.

    Args:
        point: The [x, y] position in the source CRS
        source_crs: The CRS of the input, e.g. "EPSG:3857"
        target_crs: The CRS to convert to. Default is WGS84.

    Returns:
        The converted [x, y] position, or the input position on failure

    Examples:
        >>> convert_coordinate([-12367126.23, 4871080.45], "EPSG:3857")
        [-111.09..., 40.04...]
    """
    try:
        x, y = _transform_xy(point[0], point[1], source_crs, target_crs)
        return [x, y]
    except CONVERSION_ERRORS as e:
        log.error(f"Coordinate conversion error for {point} from {source_crs} to {target_crs}: {e}")
        return point


def convert_bbox(
    bbox: Sequence[float], source_crs: str, target_crs: str = WGS84
) -> List[float]:
    """
    Convert a [minX, minY, maxX, maxY] bounding box between two CRSs.

    All four corners are converted and the extrema re-derived from them, since a
    projection does not in general keep a box axis aligned and converting only
    the south-west and north-east corners can yield an inverted or undersized box.

    Some services report degree values while labelling them Web Mercator or UTM.
    For those source CRSs, a box whose numbers already lie within the WGS84
    ranges (|lon| <= 180, |lat| <= 90) is returned unchanged.

    Args:
        bbox: The box as [minX, minY, maxX, maxY] in the source CRS
        source_crs: The CRS of the box
        target_crs: The CRS to convert to. Default is WGS84.

    Returns:
        The converted box with min <= max on both axes, or the input box on failure

    Examples:
        >>> convert_bbox([-12299216.1559, 4438918.917, -12138631.2685, 4758403.8466], "EPSG:3857")
        [-110.48..., 36.99..., -109.04..., 39.25...]
    """
    try:
        already_degrees = (
            abs(bbox[0]) <= 180
            and abs(bbox[1]) <= 90
            and abs(bbox[2]) <= 180
            and abs(bbox[3]) <= 90
        )
        if already_degrees and normalize_crs(source_crs) in DEGREE_PASSTHROUGH_CRS:
            return bbox

        min_x, min_y, max_x, max_y = bbox[:4]
        corners = [
            _transform_xy(min_x, min_y, source_crs, target_crs),
            _transform_xy(max_x, min_y, source_crs, target_crs),
            _transform_xy(min_x, max_y, source_crs, target_crs),
            _transform_xy(max_x, max_y, source_crs, target_crs),
        ]
        xs = [c[0] for c in corners]
        ys = [c[1] for c in corners]

        return [min(xs), min(ys), max(xs), max(ys)]
    except CONVERSION_ERRORS as e:
        log.error(f"Bbox conversion error for {bbox} from {source_crs} to {target_crs}: {e}")
        return bbox


def _map_positions(coords: Any, depth: int, source_crs: str, target_crs: str) -> None:
    """Reproject every position of a (cloned) coordinate array in place."""
    if depth > 0:
        if not isinstance(coords, list):
            raise ValueError(f"Invalid coordinate structure encountered: {coords!r}")
        for child in coords:
            _map_positions(child, depth - 1, source_crs, target_crs)
        return

    if (
        not isinstance(coords, list)
        or len(coords) < 2
        or not (_is_number(coords[0]) and _is_number(coords[1]))
    ):
        raise ValueError(f"Invalid coordinate structure encountered: {coords!r}")

    coords[0], coords[1] = _transform_xy(coords[0], coords[1], source_crs, target_crs)


def _convert_geometry_in_place(geometry: dict, source_crs: str, target_crs: str) -> None:
    geometry_type = geometry.get("type")

    if geometry_type == "GeometryCollection":
        for child in geometry.get("geometries") or []:
            _convert_geometry_in_place(child, source_crs, target_crs)
        return

    depth = _POSITION_DEPTH.get(geometry_type)
    if depth is None:
        raise ValueError(f"Unsupported geometry type {geometry_type!r}")

    _map_positions(geometry.get("coordinates"), depth, source_crs, target_crs)


def _to_mutable(value: Any) -> Any:
    """Deep clone with every tuple turned into a list so positions can be rewritten."""
    if isinstance(value, dict):
        return {k: _to_mutable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_mutable(v) for v in value]
    return copy.copy(value)


def convert_geometry_to_wgs84(geometry: Optional[Any], source_crs: str) -> Optional[dict]:
    """
    Convert a GeoJSON geometry from its source CRS to WGS84 (EPSG:4326).

    The input is never mutated; the result is a structural clone. If the source
    is already WGS84 ("EPSG:4326", "WGS84" or "4326", any case) the clone is
    returned untransformed.

    Conversion is all-or-nothing: if any single position is malformed (fewer
    than two numeric components) or fails to project, the whole call returns
    None rather than a partially converted geometry.

    Args:
        geometry: A GeoJSON geometry dict, or an object exposing ``__geo_interface__``
        source_crs: The CRS of the geometry's positions

    Returns:
        A converted clone of the geometry, or None on any failure

    Examples:
        >>> g = {"type": "Point", "coordinates": [-12367126.23, 4871080.45]}
        >>> convert_geometry_to_wgs84(g, "EPSG:3857")["coordinates"]
        [-111.09..., 40.04...]
    """
    if geometry is None:
        log.warning("convert_geometry_to_wgs84: input geometry is None")
        return None

    if not isinstance(geometry, dict) and hasattr(geometry, "__geo_interface__"):
        geometry = geometry.__geo_interface__

    try:
        cloned = _to_mutable(geometry)
    except RecursionError as e:
        log.error(f"Error cloning geometry: {e}")
        return None

    if is_wgs84(source_crs):
        return cloned

    try:
        _convert_geometry_in_place(cloned, source_crs, WGS84)
    except CONVERSION_ERRORS as e:
        log.error(f"Geometry conversion from {source_crs} failed: {e}")
        return None

    return cloned


def convert_polygon_to_wgs84(polygon: str) -> Optional[List[List[float]]]:
    """
    Convert the outer ring of a JSON-encoded polygon to WGS84.

    The JSON carries ``rings`` plus either a ``crs`` string or an ArcGIS-style
    ``spatialReference`` with a ``wkid``/``latestWkid``. Without either, the
    rings are assumed to already be WGS84.

    Args:
        polygon: The JSON string

    Returns:
        The first ring as a list of WGS84 [lng, lat] positions, or None if the
        JSON is invalid or has no rings
    """
    try:
        parsed = json.loads(polygon)
    except (TypeError, ValueError) as e:
        log.error(f"Error converting polygon: {e}")
        return None

    rings = parsed.get("rings") if isinstance(parsed, dict) else None
    if not rings or not isinstance(rings[0], list):
        return None

    ring = rings[0]
    source_crs = parsed.get("crs")
    if source_crs is None:
        spatial_reference = parsed.get("spatialReference") or {}
        wkid = spatial_reference.get("wkid") or spatial_reference.get("latestWkid")
        source_crs = normalize_crs(wkid) if wkid else WGS84

    if is_wgs84(source_crs):
        return ring

    return [convert_coordinate(position, source_crs, WGS84) for position in ring]


def reduce_coordinate_precision(coords: Any, decimals: int = 6) -> Any:
    """
    Round every number in a (possibly nested) coordinate array.

    Six decimals of a degree is roughly 0.1 m, which keeps serialized URLs short
    without visibly moving anything.

    Args:
        coords: A number, a position, or any nesting of positions
        decimals: The number of decimal places to keep. Default is 6.

    Returns:
        A new array of the same shape with rounded values

    Examples:
        >>> reduce_coordinate_precision([[-111.123456789, 40.987654321]], 2)
        [[-111.12, 40.99]]
    """
    if isinstance(coords, (list, tuple)):
        return [reduce_coordinate_precision(c, decimals) for c in coords]
    if _is_number(coords):
        return round(coords, decimals)
    return coords


def calculate_bounds(coords: Optional[Sequence[Sequence[Any]]]) -> Optional[Bounds]:
    """
    Calculate [[minLng, minLat], [maxLng, maxLat]] from a list of positions.

    Non-numeric entries are ignored.

    Args:
        coords: A list of [lng, lat] positions

    Returns:
        The bounds, or None for empty or entirely invalid input
    """
    if not coords or not isinstance(coords, (list, tuple)):
        return None

    lngs = [c[0] for c in coords if isinstance(c, (list, tuple)) and len(c) > 0 and _is_number(c[0])]
    lats = [c[1] for c in coords if isinstance(c, (list, tuple)) and len(c) > 1 and _is_number(c[1])]

    if not lngs or not lats:
        return None

    return ((min(lngs), min(lats)), (max(lngs), max(lats)))


def calculate_zoom_from_bounds(bounds: Optional[Bounds]) -> int:
    """
    Pick a zoom level for bounds using a fixed step table.

    This is a coarse, visually tuned heuristic rather than a viewport fit: the
    larger of the longitude and latitude spans is compared against fixed
    thresholds (>1 -> 7, >0.5 -> 8, >0.2 -> 9, >0.1 -> 10, >0.05 -> 11,
    >0.02 -> 12, else 13).

    Args:
        bounds: [[minLng, minLat], [maxLng, maxLat]] or None

    Returns:
        The zoom level; 10 if bounds is None
    """
    if not bounds:
        return DEFAULT_ZOOM

    (min_lng, min_lat), (max_lng, max_lat) = bounds
    max_diff = max(max_lng - min_lng, max_lat - min_lat)

    for threshold, zoom in _ZOOM_STEPS:
        if max_diff > threshold:
            return zoom

    return MAX_ZOOM_FROM_BOUNDS


def calculate_bbox_from_geometry(geometry: Optional[dict]) -> Optional[List[float]]:
    """
    Calculate [minX, minY, maxX, maxY] over every position of a GeoJSON geometry.

    Works in whatever CRS the geometry is in; GeometryCollections are combined.

    Args:
        geometry: The GeoJSON geometry dict

    Returns:
        The bounding box, or None for empty or malformed geometries
    """
    if not geometry:
        return None

    geometry_type = geometry.get("type")
    if geometry_type == "GeometryCollection":
        boxes = [calculate_bbox_from_geometry(g) for g in geometry.get("geometries") or []]
        boxes = [b for b in boxes if b]
        if not boxes:
            return None
        return [
            min(b[0] for b in boxes),
            min(b[1] for b in boxes),
            max(b[2] for b in boxes),
            max(b[3] for b in boxes),
        ]

    depth = _POSITION_DEPTH.get(geometry_type)
    if depth is None:
        return None

    positions = [geometry.get("coordinates")]
    for _ in range(depth):
        positions = [p for group in positions if isinstance(group, (list, tuple)) for p in group]

    positions = [
        p for p in positions
        if isinstance(p, (list, tuple)) and len(p) >= 2 and _is_number(p[0]) and _is_number(p[1])
    ]
    if not positions:
        return None

    xs = [p[0] for p in positions]
    ys = [p[1] for p in positions]
    return [min(xs), min(ys), max(xs), max(ys)]


POINT_ZOOM_BUFFER_METERS = 100


def convert_geometry_bbox(geometry: Optional[dict], source_crs: str) -> Optional[List[float]]:
    """
    Calculate the WGS84 bounding box of a geometry held in any CRS.

    A single point has no extent, so it is padded by 100 m on each side (in Web
    Mercator) to give something to zoom to.

    Args:
        geometry: The GeoJSON geometry dict
        source_crs: The CRS of the geometry

    Returns:
        The WGS84 box as [minLng, minLat, maxLng, maxLat], or None if the
        geometry cannot be converted
    """
    wgs84 = convert_geometry_to_wgs84(geometry, source_crs)
    if wgs84 is None:
        return None

    if wgs84.get("type") == "Point":
        lng, lat = wgs84["coordinates"][:2]
        x, y = convert_coordinate([lng, lat], WGS84, WEB_MERCATOR)
        pad = POINT_ZOOM_BUFFER_METERS
        return convert_bbox([x - pad, y - pad, x + pad, y + pad], WEB_MERCATOR, WGS84)

    return calculate_bbox_from_geometry(wgs84)
