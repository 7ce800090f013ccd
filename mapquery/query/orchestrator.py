from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, NamedTuple, Optional, Sequence, Tuple

from mapquery.config import Settings, get_settings
from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.feature import QueryFeature
from mapquery.constructs.point import MapPoint, ScreenPoint
from mapquery.constructs.polygon import FilterKind, PolygonGeometry, SpatialFilter
from mapquery.query.layer import MapLayer, queryable_targets
from mapquery.query.selection import SelectionState
from mapquery.query.service_interface import LayerQueryService
from mapquery.utils.conversion import convert_bbox, convert_geometry_to_wgs84
from mapquery.utils.crs import METERS_PER_DEGREE, WGS84, is_geographic, is_wgs84
from mapquery.utils.geo import zoom_for_resolution
from mapquery.utils.polygon_url import deserialize_polygon_from_url, polygon_url_param

if TYPE_CHECKING:
    from mapquery.context import MapContext

log = logging.getLogger(__name__)

SELECTION_TITLE = "selection"


class QueryKind(str, Enum):
    CLICK = "click"
    BOX = "box"
    POLYGON = "polygon"


class QueryOutcome(NamedTuple):
    """
    The result of one interaction.

    Attributes:
        kind: Which interaction produced the outcome
        features: This query's results, topmost layer first, service order within a layer
        selection: The selection after the results were applied
        additive: Whether the query was additive
        applied: False if the results were not applied because a newer query of
            the same kind superseded this one, or the interaction was gated
        failed_layers: The feature types whose query failed
        spatial_filter: The active spatial filter after the query
        bbox: The query box in the adapter's native CRS, for click and box queries
        gated: True if box select was refused because the map is zoomed out too far
    """

    kind: QueryKind
    features: List[QueryFeature]
    selection: List[QueryFeature]
    additive: bool
    applied: bool
    failed_layers: List[str]
    spatial_filter: Optional[SpatialFilter]
    bbox: Optional[BoundingBox] = None
    gated: bool = False


class FeatureQueryOrchestrator:
    """
    Turn clicks, box selects and drawn polygons into layer queries and selections.

    Every visible, queryable sublayer is queried concurrently in worker threads.
    A layer whose query raises is logged and reported in
    ``QueryOutcome.failed_layers``; the other layers' results still apply.
    Results are normalised to WGS84, merged into the selection and the whole
    selection is highlighted under a single title.

    Only the latest query of each kind is applied: a response arriving after a
    newer query of the same kind was started is dropped.

    Args:
        context: The map context holding the live map, adapter and highlighter
        query_service: The service answering spatial queries
        settings: Tolerances, page sizes and limits. Default is the process settings.

    Examples:
        >>> orchestrator = FeatureQueryOrchestrator(context, WfsQueryService())
        >>> outcome = await orchestrator.click_query(ScreenPoint(100, 100), layers)
        >>> [f.key for f in outcome.selection]
        ['Faults:12', 'Faults:40']
    """

    def __init__(
        self,
        context: MapContext,
        query_service: LayerQueryService,
        settings: Optional[Settings] = None,
    ):
        self.context = context
        self.query_service = query_service
        self.settings = settings or get_settings()
        self.selection = SelectionState()
        self._spatial_filter: Optional[SpatialFilter] = None
        self._tokens: Dict[QueryKind, int] = {kind: 0 for kind in QueryKind}

    @property
    def spatial_filter(self) -> Optional[SpatialFilter]:
        return self._spatial_filter

    def spatial_filter_param(self) -> Optional[str]:
        """
        The active spatial filter as a URL query value.

        Polygons use the percent-encoded polygon URL format; boxes are
        "minLng,minLat,maxLng,maxLat".
        """
        f = self._spatial_filter
        if f is None:
            return None
        if f.kind == FilterKind.POLYGON:
            return polygon_url_param(f.polygon)
        return f.bbox.to_url_param()

    def restore_polygon_filter(self, value: Optional[str]) -> Optional[SpatialFilter]:
        """
        Restore a polygon spatial filter from its URL value.

        Returns:
            The restored filter, or None if the value could not be decoded
        """
        polygon = deserialize_polygon_from_url(value, target_crs=WGS84)
        if polygon is None:
            return None
        self._spatial_filter = SpatialFilter.from_polygon(polygon)
        return self._spatial_filter

    # bookkeeping

    def _start(self, kind: QueryKind) -> int:
        self._tokens[kind] += 1
        return self._tokens[kind]

    def _is_current(self, kind: QueryKind, token: int) -> bool:
        return self._tokens[kind] == token

    def _to_wgs84_bbox(self, bbox: BoundingBox, crs: str) -> BoundingBox:
        if is_wgs84(crs):
            return bbox
        return BoundingBox.from_list(convert_bbox(bbox.to_list(), crs, WGS84))

    def _normalize(self, layer: MapLayer, feature: dict) -> QueryFeature:
        query_feature = QueryFeature.from_geojson(feature, layer.title)
        if query_feature.geometry is None:
            return query_feature

        source_crs = layer.crs or self.query_service.output_crs
        geometry = convert_geometry_to_wgs84(query_feature.geometry, source_crs)
        if geometry is None:
            log.warning(
                f"dropping geometry of feature {query_feature.id} from {layer.title}: "
                f"conversion from {source_crs} failed"
            )
        return query_feature._replace(geometry=geometry)

    async def _query_layers(
        self,
        layers: Sequence[MapLayer],
        spatial_filter: SpatialFilter,
        page_size: int,
        paginate: bool,
    ) -> Tuple[List[QueryFeature], List[str]]:
        targets = list(queryable_targets(layers))
        if not targets:
            return [], []

        results = await asyncio.gather(
            *[
                asyncio.to_thread(
                    self.query_service.query_features,
                    type_name,
                    spatial_filter,
                    page_size,
                    paginate,
                    self.settings.max_features,
                )
                for _, type_name in targets
            ],
            return_exceptions=True,
        )

        features: List[QueryFeature] = []
        failed: List[str] = []
        for (layer, type_name), result in zip(targets, results):
            if isinstance(result, Exception):
                log.warning(f"Failed to query layer {type_name}: {result}")
                failed.append(type_name)
                continue
            if isinstance(result, BaseException):
                raise result
            features.extend(self._normalize(layer, f) for f in result)

        return features, failed

    def _redraw_selection(self) -> None:
        highlighter = self.context.highlighter
        highlighter.clear_graphics(SELECTION_TITLE)
        highlight_features = self.selection.highlight_features()
        if highlight_features:
            highlighter.highlight_feature_collection(highlight_features, WGS84, SELECTION_TITLE)

    def _apply(
        self,
        kind: QueryKind,
        token: int,
        features: List[QueryFeature],
        failed: List[str],
        additive: bool,
        bbox: Optional[BoundingBox] = None,
    ) -> QueryOutcome:
        if not self._is_current(kind, token):
            log.debug(f"ignoring stale {kind.value} query response")
            return QueryOutcome(
                kind, features, self.selection.features, additive, False, failed,
                self._spatial_filter, bbox,
            )

        if self.selection.apply(features, additive):
            self._redraw_selection()

        return QueryOutcome(
            kind, features, self.selection.features, additive, True, failed,
            self._spatial_filter, bbox,
        )

    # interactions

    async def click_query(
        self,
        screen_point: ScreenPoint,
        layers: Sequence[MapLayer],
        tolerance: Optional[float] = None,
        additive: bool = False,
    ) -> QueryOutcome:
        """
        Query every visible layer around a clicked pixel.

        The click is buffered into a square of ``tolerance`` pixels at the
        current resolution. A non-additive click also clears the active spatial
        filter.

        Args:
            screen_point: The clicked pixel
            layers: The map layers, topmost first
            tolerance: The buffer in pixels. Default is the configured click tolerance.
            additive: Union the results into the selection instead of replacing it

        Returns:
            The outcome of the click
        """
        token = self._start(QueryKind.CLICK)
        if tolerance is None:
            tolerance = self.settings.click_tolerance

        adapter = self.context.adapter
        handle = self.context.handle
        map_point = adapter.screen_to_map(screen_point, handle)
        resolution = adapter.get_resolution(handle)
        bbox = adapter.create_bounding_box(map_point, resolution, tolerance)

        crs = map_point.crs or adapter.native_crs
        spatial_filter = SpatialFilter.from_bbox(self._to_wgs84_bbox(bbox, crs))

        features, failed = await self._query_layers(
            layers, spatial_filter, self.settings.click_page_size, paginate=False
        )

        if not additive and self._is_current(QueryKind.CLICK, token):
            self._spatial_filter = None

        return self._apply(QueryKind.CLICK, token, features, failed, additive, bbox)

    async def box_select_query(
        self,
        layers: Sequence[MapLayer],
        additive: bool = False,
        zoom: Optional[float] = None,
        viewport_center: Optional[ScreenPoint] = None,
    ) -> QueryOutcome:
        """
        Query every visible layer inside a fixed-size square at the viewport center.

        Box select is refused below the configured minimum zoom. Results are
        fetched page by page.

        Args:
            layers: The map layers, topmost first
            additive: Union the results into the selection instead of replacing it
            zoom: The current zoom level. Default is derived from the map resolution.
            viewport_center: The center pixel of the map. Default is the pixel of
                the center of the visible extent.

        Returns:
            The outcome of the box select
        """
        token = self._start(QueryKind.BOX)
        adapter = self.context.adapter
        handle = self.context.handle

        if zoom is None:
            resolution = adapter.get_resolution(handle)
            meters = resolution
            if is_geographic(adapter.native_crs):
                meters = resolution * METERS_PER_DEGREE
            zoom = zoom_for_resolution(meters)

        if zoom < self.settings.box_select_min_zoom:
            log.debug(f"box select disabled at zoom {zoom:.2f}")
            return QueryOutcome(
                QueryKind.BOX, [], self.selection.features, additive, False, [],
                self._spatial_filter, None, True,
            )

        if viewport_center is None:
            view_bounds = adapter.get_view_bounds(handle)
            center_x, center_y = view_bounds.center
            viewport_center = adapter.map_to_screen(
                MapPoint(center_x, center_y, adapter.native_crs), handle
            )

        half = self.settings.box_select_size / 2
        corners = [
            adapter.screen_to_map(ScreenPoint(viewport_center.x + dx, viewport_center.y + dy), handle)
            for dx, dy in ((-half, half), (half, half), (half, -half), (-half, -half))
        ]
        bbox = BoundingBox.from_corners(corners)
        crs = corners[0].crs or adapter.native_crs

        spatial_filter = SpatialFilter.from_bbox(self._to_wgs84_bbox(bbox, crs))

        features, failed = await self._query_layers(
            layers, spatial_filter, self.settings.box_select_page_size, paginate=True
        )

        if self._is_current(QueryKind.BOX, token):
            self._spatial_filter = spatial_filter

        return self._apply(QueryKind.BOX, token, features, failed, additive, bbox)

    async def polygon_query(
        self,
        polygon: PolygonGeometry,
        layers: Sequence[MapLayer],
        additive: bool = False,
    ) -> QueryOutcome:
        """
        Query every visible layer intersecting a drawn polygon.

        The polygon becomes the active spatial filter.

        Args:
            polygon: The drawn polygon in any CRS
            layers: The map layers, topmost first
            additive: Union the results into the selection instead of replacing it

        Returns:
            The outcome of the polygon query; not applied if the polygon cannot
            be converted to WGS84
        """
        token = self._start(QueryKind.POLYGON)

        geometry = convert_geometry_to_wgs84(polygon.to_geojson(), polygon.crs)
        if geometry is None:
            log.error(f"could not convert drawn polygon from {polygon.crs}")
            return QueryOutcome(
                QueryKind.POLYGON, [], self.selection.features, additive, False, [],
                self._spatial_filter,
            )

        spatial_filter = SpatialFilter.from_polygon(PolygonGeometry(geometry["coordinates"], WGS84))

        features, failed = await self._query_layers(
            layers, spatial_filter, self.settings.polygon_page_size, paginate=True
        )

        if self._is_current(QueryKind.POLYGON, token):
            self._spatial_filter = spatial_filter

        return self._apply(QueryKind.POLYGON, token, features, failed, additive)

    def remove_layer(self, layer_title: str) -> None:
        """Drop a layer's features from the selection, e.g. when it is turned off."""
        if self.selection.remove_layer(layer_title):
            self._redraw_selection()

    def clear_selection(self) -> None:
        """
        Clear the selection, its highlight and the spatial filter.

        Queries still in flight are treated as stale when they resolve.
        """
        for kind in QueryKind:
            self._start(kind)
        self.selection.clear()
        self._spatial_filter = None
        self.context.highlighter.clear_graphics(SELECTION_TITLE)
