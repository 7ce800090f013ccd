"""
# Click Query Example

An example of turning a map click into a WFS query, a selection and a highlight
"""


def main():
    import asyncio
    import logging

    logging.basicConfig(level=logging.INFO)

    """
    First, we need a map.
    mapquery drives two kinds of map: a GIS engine view working in Web Mercator meters and a vector-tile map working in WGS84 degrees.
    Which one is used by default comes from the `MAPQUERY_MAP_IMPL` environment variable, but we can also pass the backend explicitly.

    Let's build an engine view centered on Salt Lake City at roughly 10 meters per pixel:
    """

    from mapquery.constructs.point import MapPoint, ScreenPoint
    from mapquery.context import create_map_context
    from mapquery.maps.engine.engine_view import EngineView

    view = EngineView(MapPoint(-12455670, 4977006, "EPSG:3857"), resolution=10)
    context = create_map_context(view, "engine")

    """
    The context carries the map handle along with the coordinate adapter, the highlight provider and the legend provider for that map.

    The adapter converts between screen pixels and map coordinates:
    """

    point = context.adapter.screen_to_map(ScreenPoint(100, 100), view)
    print(point)

    """
    A click is buffered into a small box so that thin lines and points can still be hit.
    The buffer is in pixels and is scaled by the current resolution:
    """

    bbox = context.adapter.create_bounding_box(point, context.adapter.get_resolution(view), 5)
    print(bbox)

    """
    Next, we need to know which layers to query.
    Each map layer is backed by one or more WFS feature types; hidden layers and sublayers flagged as not queryable are skipped:
    """

    from mapquery.query.layer import MapLayer, SubLayer

    layers = [
        MapLayer("Faults", [SubLayer("hazards:faults")]),
        MapLayer("Wells", [SubLayer("water:wells")]),
    ]

    """
    Now we can build the orchestrator.
    It needs a query service; here we use the WFS service, which derives its endpoint from the `MAPQUERY_WMS_URL` setting unless we pass one:
    """

    from mapquery.query.orchestrator import FeatureQueryOrchestrator
    from mapquery.query.wfs import WfsQueryService

    service = WfsQueryService("https://maps.example.org/geoserver/wfs")
    orchestrator = FeatureQueryOrchestrator(context, service)

    """
    Clicking queries every layer concurrently.
    Layers that fail are reported in the outcome without blocking the others, and the selection is highlighted on the map:
    """

    outcome = asyncio.run(orchestrator.click_query(ScreenPoint(100, 100), layers))

    print(f"found {len(outcome.features)} features, failed layers: {outcome.failed_layers}")
    for feature in outcome.selection:
        print(feature.key, feature.properties)

    """
    Holding shift in a viewer usually means an additive click; re-selecting a feature never duplicates it:
    """

    outcome = asyncio.run(
        orchestrator.click_query(ScreenPoint(120, 100), layers, additive=True)
    )

    """
    A drawn polygon becomes the active spatial filter, which can be written to the page URL and restored later:
    """

    from mapquery.constructs.polygon import PolygonGeometry

    polygon = PolygonGeometry(
        [
            [
                [-12460000, 4970000],
                [-12450000, 4970000],
                [-12450000, 4980000],
                [-12460000, 4970000],
            ]
        ],
        "EPSG:3857",
    )
    asyncio.run(orchestrator.polygon_query(polygon, layers))

    param = orchestrator.spatial_filter_param()
    print(f"?filter={param}")

    orchestrator.restore_polygon_filter(param)

    """
    Lastly, let's zoom to the first selected feature and then clear everything:
    """

    from mapquery.maps.navigation import zoom_to_feature

    if orchestrator.selection:
        zoom_to_feature(orchestrator.selection.features[0], "EPSG:4326", context)
        print(view.center, view.resolution)

    orchestrator.clear_selection()


if __name__ == "__main__":
    main()
