from unittest import TestCase
from unittest.mock import Mock, patch

import requests

from mapquery.constructs.point import MapPoint
from mapquery.legend.engine import EngineLegend
from mapquery.legend.legend_interface import LegendItem, fetch_wms_legend
from mapquery.legend.vector_tile import VectorTileLegend, layer_symbol_params
from mapquery.maps.engine.engine_view import EngineLayer, EngineView
from mapquery.maps.vector.vector_map import VectorTileMap

WMS_URL = "https://maps.example.org/geoserver/wms"

POLYGON_RULE = {
    "name": "parcel",
    "title": "Parcels",
    "symbolizers": [{"Polygon": {"fill": "#ff0000", "stroke": "#000000"}}],
}

DEFAULT_RULE = {
    "name": "default",
    "symbolizers": [{"Point": {"graphics": [{"mark": "square"}]}}],
}


def legend_response(rules, content_type="application/json", ok=True):
    response = Mock()
    response.ok = ok
    response.status_code = 200 if ok else 500
    response.headers = {"content-type": content_type}
    response.json.return_value = {"Legend": [{"layerName": "parcels", "rules": rules}]}
    return response


@patch("mapquery.legend.legend_interface.requests.get")
class TestFetchWmsLegend(TestCase):
    def test_request_parameters(self, mock_get):
        mock_get.return_value = legend_response([POLYGON_RULE])

        fetch_wms_legend(WMS_URL, "ws:parcels", timeout=5)

        args, kwargs = mock_get.call_args
        self.assertEqual(args, (WMS_URL,))
        self.assertEqual(kwargs["params"]["request"], "GetLegendGraphic")
        self.assertEqual(kwargs["params"]["format"], "application/json")
        self.assertEqual(kwargs["params"]["layer"], "ws:parcels")
        self.assertEqual(kwargs["headers"], {"Accept": "application/json"})
        self.assertEqual(kwargs["timeout"], 5)

    def test_one_item_per_rule(self, mock_get):
        mock_get.return_value = legend_response([POLYGON_RULE, DEFAULT_RULE])

        items = fetch_wms_legend(WMS_URL, "ws:parcels")

        self.assertEqual(len(items), 2)
        self.assertEqual(items[0].label, "Parcels")
        self.assertEqual(items[0].renderer["type"], "symbolizers")
        self.assertEqual(items[0].renderer["symbolizers"], POLYGON_RULE["symbolizers"])
        self.assertEqual(items[0].url, WMS_URL)
        self.assertEqual(items[1].label, "default")
        self.assertIsNone(items[1].renderer)

    def test_no_rules(self, mock_get):
        mock_get.return_value = legend_response([])

        self.assertIsNone(fetch_wms_legend(WMS_URL, "ws:parcels"))

    def test_non_json(self, mock_get):
        mock_get.return_value = legend_response([POLYGON_RULE], content_type="image/png")

        with self.assertLogs("mapquery.legend.legend_interface", level="WARNING"):
            self.assertIsNone(fetch_wms_legend(WMS_URL, "ws:parcels"))

    def test_not_ok(self, mock_get):
        mock_get.return_value = legend_response([POLYGON_RULE], ok=False)

        with self.assertLogs("mapquery.legend.legend_interface", level="WARNING"):
            self.assertIsNone(fetch_wms_legend(WMS_URL, "ws:parcels"))

    def test_transport_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")

        with self.assertLogs("mapquery.legend.legend_interface", level="WARNING"):
            self.assertIsNone(fetch_wms_legend(WMS_URL, "ws:parcels"))


class TestLayerSymbolParams(TestCase):
    def test_fill(self):
        params = layer_symbol_params(
            {"type": "fill", "paint": {"fill-color": "#00ff00", "fill-opacity": 0.4}}
        )

        self.assertEqual(params["color"], "#00ff00")
        self.assertEqual(params["opacity"], 0.4)

    def test_expressions_use_defaults(self):
        params = layer_symbol_params(
            {"type": "line", "paint": {"line-color": ["get", "color"], "line-width": ["zoom"]}}
        )

        self.assertEqual(params["color"], "#333")
        self.assertEqual(params["width"], 2)
        self.assertIsNone(params["dasharray"])

    def test_circle_defaults(self):
        params = layer_symbol_params({"type": "circle"})

        self.assertEqual(params["color"], "#888")
        self.assertEqual(params["radius"], 6)

    def test_raster_has_no_symbol(self):
        self.assertIsNone(layer_symbol_params({"type": "raster"}))


class TestVectorTileLegend(TestCase):
    def setUp(self):
        self.map = VectorTileMap()
        self.map.add_source("roads", {"type": "geojson", "data": {}})
        self.map.add_source(
            "parcels-wms",
            {
                "type": "raster",
                "tiles": [f"{WMS_URL}?bbox={{bbox-epsg-3857}}"],
                "metadata": {"wms-url": WMS_URL, "wms-layer": "ws:parcels"},
            },
        )
        self.legend = VectorTileLegend(self.map)

    def test_paint_legend(self):
        self.map.add_layer(
            {"id": "roads-line", "type": "line", "source": "roads", "paint": {"line-color": "#f00"}}
        )

        (item,) = self.legend.get_renderer("roads-line")

        self.assertEqual(item.label, "roads-line")
        self.assertEqual(item.url, "roads")
        self.assertEqual(item.renderer["color"], "#f00")

    @patch("mapquery.legend.vector_tile.fetch_wms_legend")
    def test_raster_source_uses_wms(self, mock_fetch):
        mock_fetch.return_value = [LegendItem("Parcels", None, "ws:parcels")]
        self.map.add_layer({"id": "parcels", "type": "raster", "source": "parcels-wms"})

        self.assertEqual(self.legend.get_renderer("parcels"), mock_fetch.return_value)
        mock_fetch.assert_called_once_with(WMS_URL, "ws:parcels")

    @patch("mapquery.legend.vector_tile.fetch_wms_legend")
    def test_layer_metadata_wins(self, mock_fetch):
        self.map.add_layer(
            {
                "id": "zoning",
                "type": "fill",
                "source": "roads",
                "metadata": {"wfsLayer": "ws:zoning", "wmsUrl": WMS_URL, "wmsLayerName": "ws:zoning"},
            }
        )

        self.legend.get_renderer("zoning")

        mock_fetch.assert_called_once_with(WMS_URL, "ws:zoning")

    @patch("mapquery.legend.vector_tile.fetch_wms_legend")
    def test_unknown_layer_fallback(self, mock_fetch):
        self.assertIsNone(self.legend.get_renderer("missing"))
        mock_fetch.assert_not_called()

        self.legend.get_renderer("missing", WMS_URL, "ws:missing")
        mock_fetch.assert_called_once_with(WMS_URL, "ws:missing")

    def test_raster_source_without_metadata(self):
        self.map.add_source("imagery", {"type": "raster", "tiles": ["https://tiles/{z}/{x}/{y}.png"]})
        self.map.add_layer({"id": "imagery", "type": "raster", "source": "imagery"})

        with self.assertLogs("mapquery.legend.vector_tile", level="WARNING"):
            self.assertIsNone(self.legend.get_renderer("imagery"))


class TestEngineLegend(TestCase):
    def setUp(self):
        renderer = {"type": "simple", "symbol": {"type": "simple-fill", "color": [0, 0, 255, 0.3]}}
        self.view = EngineView(
            MapPoint(0, 0),
            resolution=10,
            layers=[
                EngineLayer("zoning", title="Zoning", renderer=renderer),
                EngineLayer("parcels", url=WMS_URL, layer_name="ws:parcels"),
                EngineLayer("sketch"),
            ],
        )
        self.legend = EngineLegend(self.view)

    def test_layer_renderer(self):
        (item,) = self.legend.get_renderer("zoning")

        self.assertEqual(item.label, "Zoning")
        self.assertEqual(item.renderer["type"], "simple")
        self.assertEqual(item.type, "regular-layer-renderer")

    @patch("mapquery.legend.engine.fetch_wms_legend")
    def test_wms_layer(self, mock_fetch):
        self.legend.get_renderer("parcels")

        mock_fetch.assert_called_once_with(WMS_URL, "ws:parcels")

    def test_no_legend(self):
        self.assertIsNone(self.legend.get_renderer("sketch"))
        self.assertIsNone(self.legend.get_renderer("missing"))
