"""Spatial feature queries against a WFS endpoint using CQL filters."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from mapquery.config import Settings, get_settings
from mapquery.constructs.polygon import SpatialFilter
from mapquery.query.service_interface import LayerQueryService
from mapquery.utils.crs import WGS84
from mapquery.utils.url import wfs_url_from_wms

log = logging.getLogger(__name__)

DEFAULT_GEOMETRY_FIELD = "shape"

GEOMETRY_TYPES = frozenset(
    [
        "MultiPolygon",
        "Polygon",
        "MultiLineString",
        "LineString",
        "Point",
        "MultiPoint",
        "Geometry",
    ]
)


def parse_geometry_field(description: Dict[str, Any]) -> Optional[str]:
    """
    Find the geometry attribute in a JSON DescribeFeatureType response.

    Args:
        description: The parsed response

    Returns:
        The name of the first GML geometry property, or None
    """
    feature_types = description.get("featureTypes") or []
    if not feature_types:
        return None
    for prop in feature_types[0].get("properties") or []:
        prop_type = prop.get("type") or ""
        if prop_type.startswith("gml:") and prop.get("localType") in GEOMETRY_TYPES:
            return prop.get("name")
    return None


def build_cql_filter(
    geometry_field: str, spatial_filter: SpatialFilter, attribute_filter: Optional[str] = None
) -> str:
    """
    Build a CQL INTERSECTS predicate, optionally ANDed with an attribute filter.

    Examples:
        >>> build_cql_filter("shape", SpatialFilter.from_bbox(BoundingBox(0, 0, 1, 1)))
        'INTERSECTS(shape, SRID=4326;POLYGON ((1 0, 1 1, 0 1, 0 0, 1 0)))'
    """
    spatial_cql = f"INTERSECTS({geometry_field}, {spatial_filter.to_wkt()})"
    if attribute_filter:
        return f"{spatial_cql} AND {attribute_filter}"
    return spatial_cql


class WfsQueryService(LayerQueryService):
    """
    Query features from a WFS (GeoServer flavoured) with CQL spatial filters.

    Each feature type's geometry attribute is detected once with
    DescribeFeatureType and cached for ``geometry_field_ttl`` seconds; if it
    cannot be detected, "shape" is assumed.

    Args:
        wfs_url: The WFS endpoint. Default is derived from the configured WMS URL.
        settings: The settings to read timeouts and limits from
        attribute_filter: An extra CQL predicate ANDed onto every query

    Examples:
        >>> service = WfsQueryService("https://maps.example.org/geoserver/wfs")
        >>> features = service.query_features("hazards:faults", spatial_filter, page_size=50)
    """

    def __init__(
        self,
        wfs_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        attribute_filter: Optional[str] = None,
    ):
        self.settings = settings or get_settings()
        if wfs_url is None:
            wfs_url = wfs_url_from_wms(self.settings.wms_url)
        if not wfs_url:
            raise ValueError("a WFS url is required; set MAPQUERY_WMS_URL or pass wfs_url")
        self.wfs_url = wfs_url
        self.attribute_filter = attribute_filter
        self._geometry_fields: Dict[Tuple[str, str], Tuple[str, float]] = {}

    @property
    def output_crs(self) -> str:
        return WGS84

    def geometry_field(self, type_name: str) -> str:
        """
        Get the geometry attribute name of a feature type.

        Args:
            type_name: The feature type

        Returns:
            The detected attribute name, or "shape" if detection fails
        """
        key = (self.wfs_url, type_name)
        now = time.monotonic()

        cached = self._geometry_fields.get(key)
        if cached and now - cached[1] < self.settings.geometry_field_ttl:
            return cached[0]

        field = None
        params = {
            "service": "WFS",
            "version": "2.0.0",
            "request": "DescribeFeatureType",
            "typeName": type_name,
            "outputFormat": "application/json",
        }
        try:
            r = requests.get(self.wfs_url, params=params, timeout=self.settings.request_timeout)
            if r.ok:
                field = parse_geometry_field(r.json())
        except (requests.RequestException, ValueError) as e:
            log.warning(f"Failed to detect geometry field for {type_name}: {e}")

        if not field:
            field = DEFAULT_GEOMETRY_FIELD

        log.debug(f"layer {type_name} using geometry field {field}")
        self._geometry_fields[key] = (field, now)
        return field

    def _fetch_page(
        self,
        type_name: str,
        cql_filter: str,
        count: Optional[int],
        start_index: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            "service": "WFS",
            "version": "1.1.0",
            "request": "GetFeature",
            "typeName": type_name,
            "outputFormat": "application/json",
            "srsName": self.output_crs,
            "CQL_FILTER": cql_filter,
        }
        if count:
            params["maxFeatures"] = count
        if start_index:
            params["startIndex"] = start_index

        r = requests.get(self.wfs_url, params=params, timeout=self.settings.request_timeout)

        if not r.ok:
            log.error(f"WFS request failed for {type_name}: {r.status_code} {r.text[:500]}")
            return []

        try:
            j = r.json()
        except ValueError:
            # map servers answer errors with XML
            log.error(f"Invalid JSON response for {type_name}: {r.text[:500]}")
            return []

        return j.get("features") or []

    def query_features(
        self,
        type_name: str,
        spatial_filter: SpatialFilter,
        page_size: int,
        paginate: bool = False,
        max_features: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        geometry_field = self.geometry_field(type_name)
        cql_filter = build_cql_filter(geometry_field, spatial_filter, self.attribute_filter)

        if not paginate:
            return self._fetch_page(type_name, cql_filter, page_size)

        if max_features is None:
            max_features = self.settings.max_features

        features: List[Dict[str, Any]] = []
        start_index = 0
        while len(features) < max_features:
            page = self._fetch_page(type_name, cql_filter, page_size, start_index)
            features.extend(page)
            if len(page) < page_size:
                break
            start_index += page_size

        return features[:max_features]
