from __future__ import annotations

import json
from typing import Any, Dict, NamedTuple, Optional, Union

from shapely.geometry import mapping

FeatureId = Union[int, str]


class HighlightFeature(NamedTuple):
    """
    A feature to be drawn with visual emphasis.

    Attributes:
        id: The feature id
        geometry: A GeoJSON-shaped geometry dict, in the display CRS or in the
            source CRS handed to the highlight provider
        properties: Arbitrary feature attributes
    """

    id: Optional[FeatureId]
    geometry: Optional[dict]
    properties: Dict[str, Any] = {}

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "id": self.id,
            "geometry": self.geometry,
            "properties": dict(self.properties),
        }


class QueryFeature(NamedTuple):
    """
    A feature returned by a spatial query against one map layer.

    Attributes:
        id: The service feature id, falling back to the ``ogc_fid`` attribute.
            None when the service returned neither.
        properties: The feature attributes
        geometry: The GeoJSON geometry in WGS84, if the service returned one
        layer_title: The title of the map layer the feature came from
    """

    id: Optional[FeatureId]
    properties: Dict[str, Any]
    geometry: Optional[dict] = None
    layer_title: Optional[str] = None

    @classmethod
    def from_geojson(cls, feature: dict, layer_title: Optional[str] = None) -> QueryFeature:
        properties = feature.get("properties") or {}
        feature_id = feature.get("id")
        if feature_id is None:
            feature_id = properties.get("ogc_fid")
        return cls(
            id=feature_id,
            properties=dict(properties),
            geometry=feature.get("geometry"),
            layer_title=layer_title,
        )

    @property
    def key(self) -> str:
        """
        The identity used to deduplicate selections.

        Layer title plus ``ogc_fid`` is more stable than the service feature id,
        which some services regenerate per request.
        Features with neither fall back to their geometry and properties.
        """
        fid = self.properties.get("ogc_fid", self.id)
        if fid is None:
            fid = json.dumps([self.geometry, self.properties], sort_keys=True, default=str)
        return f"{self.layer_title or ''}:{fid}"

    def to_highlight_feature(self) -> HighlightFeature:
        return HighlightFeature(self.id, self.geometry, self.properties)

    def to_geojson(self) -> Dict[str, Any]:
        return self.to_highlight_feature().to_geojson()


def as_geojson_feature(feature: Any) -> Optional[Dict[str, Any]]:
    """
    Coerce the feature shapes mapquery accepts into a GeoJSON Feature dict.

    Accepted inputs are GeoJSON Feature dicts, HighlightFeature / QueryFeature
    tuples and objects exposing ``__geo_interface__`` (shapely geometries,
    geopandas rows and the like).

    Args:
        feature: The feature-like object

    Returns:
        A GeoJSON Feature dict, or None if the input has no recognisable shape
    """
    if feature is None:
        return None
    if isinstance(feature, (HighlightFeature, QueryFeature)):
        return feature.to_geojson()
    if isinstance(feature, dict):
        if feature.get("type") == "Feature" or "geometry" in feature:
            return feature
        if "coordinates" in feature or "geometries" in feature:
            return {"type": "Feature", "geometry": feature, "properties": {}}
        return None
    if hasattr(feature, "__geo_interface__"):
        geo = feature.__geo_interface__
        if geo.get("type") == "Feature":
            return dict(geo)
        return {"type": "Feature", "geometry": dict(mapping(feature)), "properties": {}}
    return None
