"""Coordinate Reference System (CRS) constants used throughout mapquery.

This module defines the small, fixed set of CRSs the viewer reconciles:
- LATLON_CRS: WGS84 geographic coordinates (EPSG:4326), the interchange format
- XY_CRS: Web Mercator projected coordinates (EPSG:3857), the usual working CRS
- UTM12N_CRS: NAD83 / UTM zone 12N (EPSG:26912), used by some source services
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pyproj import CRS, Transformer

WGS84 = "EPSG:4326"
WEB_MERCATOR = "EPSG:3857"
UTM12N = "EPSG:26912"

# WGS84 latitude/longitude coordinate system (EPSG:4326)
# Range: latitude [-90, 90], longitude [-180, 180]
LATLON_CRS = CRS(4326)

# Web Mercator projected coordinate system (EPSG:3857), meters
XY_CRS = CRS(3857)

UTM12N_CRS = CRS(26912)

KNOWN_CRS = {WGS84: LATLON_CRS, WEB_MERCATOR: XY_CRS, UTM12N: UTM12N_CRS}

WGS84_ALIASES = frozenset(["EPSG:4326", "WGS84", "4326"])

# ArcGIS well-known ids that are Web Mercator under another name
WEB_MERCATOR_WKIDS = frozenset([102100, 102113, 900913])

# Source services that sometimes label degree values as projected meters
DEGREE_PASSTHROUGH_CRS = frozenset([WEB_MERCATOR, UTM12N])

# Half of the Web Mercator world extent, meters
WEB_MERCATOR_MAX = 20037508.342789244

EARTH_CIRCUMFERENCE = 40075017
TILE_SIZE = 256

# Meters per degree at the equator, rounded
METERS_PER_DEGREE = 111320


def is_wgs84(crs_id: Optional[str]) -> bool:
    """
    Check whether a CRS identifier names WGS84.

    "EPSG:4326", "WGS84" and the bare code "4326" are synonyms; the comparison
    is case-insensitive.

    Args:
        crs_id: The CRS identifier to test

    Returns:
        True if the identifier denotes WGS84
    """
    if crs_id is None:
        return False
    return str(crs_id).strip().upper() in WGS84_ALIASES


def normalize_crs(crs_id) -> str:
    """
    Normalize a CRS identifier to the canonical "EPSG:<code>" form where possible.

    Bare numeric codes get the EPSG authority, WGS84 aliases collapse to
    EPSG:4326 and the ArcGIS Web Mercator wkids collapse to EPSG:3857. Anything
    else is returned stripped but otherwise untouched, so pyproj gets to decide
    whether it is valid.

    Args:
        crs_id: A string such as "EPSG:3857", "3857", "wgs84" or an integer code

    Returns:
        The normalized identifier

    Examples:
        >>> normalize_crs("4326")
        'EPSG:4326'
        >>> normalize_crs(102100)
        'EPSG:3857'
    """
    text = str(crs_id).strip()
    if is_wgs84(text):
        return WGS84

    upper = text.upper()
    code = upper[len("EPSG:"):] if upper.startswith("EPSG:") else upper
    if code.isdigit():
        if int(code) in WEB_MERCATOR_WKIDS:
            return WEB_MERCATOR
        return f"EPSG:{int(code)}"

    return text


def is_geographic(crs_id: str) -> bool:
    """Whether the CRS measures in degrees rather than a projected unit."""
    crs_id = normalize_crs(crs_id)
    crs = KNOWN_CRS.get(crs_id)
    if crs is None:
        crs = CRS.from_user_input(crs_id)
    return crs.is_geographic


@lru_cache(maxsize=32)
def get_transformer(source_crs: str, target_crs: str) -> Transformer:
    """
    Build (and cache) a transformer between two CRSs.

    The transformer always uses x/y (longitude/latitude) axis order, matching
    GeoJSON positions regardless of the authority's axis definition.

    Raises:
        pyproj.exceptions.CRSError: If either identifier cannot be parsed
    """
    return Transformer.from_crs(
        normalize_crs(source_crs), normalize_crs(target_crs), always_xy=True
    )
