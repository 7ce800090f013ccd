from __future__ import annotations

import logging
from abc import ABCMeta, abstractmethod
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from mapquery.constructs.feature import as_geojson_feature
from mapquery.utils.conversion import convert_geometry_to_wgs84

log = logging.getLogger(__name__)

Color = Sequence[float]

POINTS = "points"
LINES = "lines"
POLYGONS = "polygons"

GEOMETRY_CLASSES = {
    "Point": POINTS,
    "MultiPoint": POINTS,
    "LineString": LINES,
    "MultiLineString": LINES,
    "Polygon": POLYGONS,
    "MultiPolygon": POLYGONS,
}

# outline drawn underneath every highlight so it reads on any basemap
HALO_COLOR = (0, 0, 0, 0.5)

# wire names used by map viewers
OPTION_ALIASES = {
    "fillColor": "fill_color",
    "outlineColor": "outline_color",
    "outlineWidth": "outline_width",
    "pointSize": "point_size",
}


class HighlightOptions(NamedTuple):
    """
    The appearance of a highlight.

    Attributes:
        fill_color: RGBA fill for polygons and point interiors. Default is transparent.
        outline_color: RGBA outline color. Default is opaque yellow.
        outline_width: Outline width in pixels. Default is 4.
        point_size: Point marker size in pixels. Default is 12.

    Examples:
        >>> HighlightOptions().merge({"outline_width": 2}).outline_width
        2
    """

    fill_color: Color = (0, 0, 0, 0)
    outline_color: Color = (255, 255, 0, 1)
    outline_width: float = 4
    point_size: float = 12

    def merge(
        self, overrides: Optional[Union[HighlightOptions, Mapping[str, Any]]]
    ) -> HighlightOptions:
        """
        Apply caller overrides on top of these options.

        Keys set to None are ignored so partial option dicts can be passed through.
        The camelCase wire names (``fillColor``, ``outlineWidth``, ...) are accepted;
        any other unknown key is logged and dropped.

        Args:
            overrides: Another HighlightOptions or a mapping of field names

        Returns:
            The merged options
        """
        if overrides is None:
            return self
        if isinstance(overrides, HighlightOptions):
            overrides = overrides._asdict()
        known = {}
        for key, value in overrides.items():
            field = OPTION_ALIASES.get(key, key)
            if field not in self._fields:
                log.warning(f"ignoring unknown highlight option: {key}")
                continue
            if value is not None:
                known[field] = value
        return self._replace(**known)


DEFAULT_HIGHLIGHT_OPTIONS = HighlightOptions()


def prepare_geometry(feature: Any, source_crs: str) -> Optional[Tuple[Dict[str, Any], str]]:
    """
    Convert a feature's geometry to WGS84 and classify it.

    Args:
        feature: Any feature shape ``as_geojson_feature`` accepts
        source_crs: The CRS of the feature's geometry

    Returns:
        A tuple of (WGS84 geometry, geometry class), or None if the feature has no
        geometry, fails conversion or has an unsupported geometry type
    """
    geojson = as_geojson_feature(feature)
    if geojson is None or not geojson.get("geometry"):
        log.warning("invalid feature provided for highlighting")
        return None

    geometry = convert_geometry_to_wgs84(geojson["geometry"], source_crs)
    if geometry is None:
        return None

    geometry_class = GEOMETRY_CLASSES.get(geometry.get("type"))
    if geometry_class is None:
        log.warning(f"unsupported geometry type for highlighting: {geometry.get('type')}")
        return None

    return geometry, geometry_class


def group_by_geometry_class(
    features: Sequence[Any], source_crs: str
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Convert every feature and group the WGS84 geometries into points, lines and polygons.

    Features that fail conversion are skipped.
    """
    groups: Dict[str, List[Dict[str, Any]]] = {POINTS: [], LINES: [], POLYGONS: []}
    for feature in features:
        prepared = prepare_geometry(feature, source_crs)
        if prepared is None:
            continue
        geometry, geometry_class = prepared
        groups[geometry_class].append(geometry)
    return groups


class HighlightProvider(metaclass=ABCMeta):
    """
    Abstract base class for drawing visual emphasis on a map.

    A provider is bound to one map handle. It remembers every source or graphic
    it adds, keyed by the caller's ``title``, so that ``clear_graphics(title)``
    removes exactly those and nothing else: graphics from other providers and
    pre-existing map content are never touched.

    Each call either completes its map mutations and bookkeeping together or
    leaves both untouched.
    """

    @abstractmethod
    def highlight_feature(
        self,
        feature: Any,
        source_crs: str,
        title: str,
        options: Optional[Union[HighlightOptions, Mapping[str, Any]]] = None,
    ) -> bool:
        """
        Highlight a single feature.

        Args:
            feature: A GeoJSON feature (or anything ``as_geojson_feature`` accepts)
            source_crs: The CRS of the feature's geometry
            title: The grouping key used for later clears
            options: Overrides for the default appearance

        Returns:
            True if the highlight was drawn; False if the feature could not be
            converted or its geometry type is unsupported
        """

    @abstractmethod
    def highlight_feature_collection(
        self,
        features: Sequence[Any],
        source_crs: str,
        title: str,
        options: Optional[Union[HighlightOptions, Mapping[str, Any]]] = None,
    ) -> bool:
        """
        Highlight many features with one render source per geometry class.

        Features that fail conversion are skipped.

        Args:
            features: The features
            source_crs: The CRS of the features' geometries
            title: The grouping key used for later clears
            options: Overrides for the default appearance

        Returns:
            True if at least one feature was drawn
        """

    @abstractmethod
    def clear_graphics(self, title: Optional[str] = None) -> None:
        """
        Remove highlights this provider added.

        Args:
            title: Only remove highlights added under this title; everything this
                provider added (pins included) if None
        """

    @abstractmethod
    def create_pin_graphic(self, lat: float, lon: float) -> None:
        """
        Drop a marker at a WGS84 location.

        Pins are not tracked under any title and only go away on a full clear.
        """
