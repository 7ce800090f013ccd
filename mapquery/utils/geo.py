import math
from typing import Tuple

from mapquery.utils.crs import EARTH_CIRCUMFERENCE, METERS_PER_DEGREE, TILE_SIZE

# Web Mercator latitude limit; beyond this the projection is undefined
MAX_LATITUDE = 85.0511287798


def world_size(zoom: float) -> float:
    """The width of the whole world in pixels at a zoom level, for 256 px tiles."""
    return TILE_SIZE * 2**zoom


def meters_per_pixel(zoom: float) -> float:
    """
    Ground resolution at the equator for a zoom level.

    Args:
        zoom: The (fractional) zoom level

    Returns:
        Meters per pixel, ``EARTH_CIRCUMFERENCE / (TILE_SIZE * 2**zoom)``

    Examples:
        >>> round(meters_per_pixel(0), 2)
        156543.04
    """
    return EARTH_CIRCUMFERENCE / world_size(zoom)


def degrees_per_pixel(zoom: float) -> float:
    """
    Ground resolution at the equator for a zoom level, in degrees.

    Uses the same rounded meters-per-degree constant the engine adapter uses, so
    the two backends agree on buffer sizes.
    """
    return meters_per_pixel(zoom) / METERS_PER_DEGREE


def lnglat_to_world(lng: float, lat: float, zoom: float) -> Tuple[float, float]:
    """
    Project WGS84 degrees to Web Mercator world pixels at a zoom level.

    The world pixel origin is the top-left (north-west) corner of the map.

    Args:
        lng: Longitude in degrees
        lat: Latitude in degrees, clamped to the Web Mercator limit
        zoom: The zoom level

    Returns:
        A tuple of (x, y) world pixels
    """
    lat = max(min(lat, MAX_LATITUDE), -MAX_LATITUDE)
    size = world_size(zoom)
    x = (lng + 180) / 360 * size
    sin_lat = math.sin(math.radians(lat))
    y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * size
    return x, y


def world_to_lnglat(x: float, y: float, zoom: float) -> Tuple[float, float]:
    """Inverse of ``lnglat_to_world``."""
    size = world_size(zoom)
    lng = x / size * 360 - 180
    n = math.pi - 2 * math.pi * y / size
    lat = math.degrees(math.atan(math.sinh(n)))
    return lng, lat


def zoom_for_resolution(meters_per_pixel: float) -> float:
    """
    The (fractional) zoom level at which the equator has the given resolution.

    Inverse of ``meters_per_pixel``.
    """
    return math.log2(EARTH_CIRCUMFERENCE / (TILE_SIZE * meters_per_pixel))
