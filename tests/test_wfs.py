from unittest import TestCase
from unittest.mock import Mock, patch

import requests

from mapquery.config import Settings
from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.polygon import PolygonGeometry, SpatialFilter
from mapquery.query.wfs import WfsQueryService, build_cql_filter, parse_geometry_field
from mapquery.utils.url import wfs_url_from_wms

WFS_URL = "https://maps.example.org/geoserver/wfs"

DESCRIBE = {
    "featureTypes": [
        {
            "typeName": "faults",
            "properties": [
                {"name": "ogc_fid", "type": "xsd:int", "localType": "int"},
                {"name": "geom", "type": "gml:MultiLineString", "localType": "MultiLineString"},
            ],
        }
    ]
}


def json_response(payload, ok=True, status_code=200):
    response = Mock()
    response.ok = ok
    response.status_code = status_code
    response.text = "" if payload is None else str(payload)
    response.json.return_value = payload
    return response


def features(start, count):
    return [
        {"type": "Feature", "id": f"faults.{i}", "properties": {"ogc_fid": i}, "geometry": None}
        for i in range(start, start + count)
    ]


class TestCqlFilter(TestCase):
    def test_bbox_filter(self):
        spatial_filter = SpatialFilter.from_bbox(BoundingBox(0, 0, 1, 1))

        self.assertEqual(
            build_cql_filter("shape", spatial_filter),
            "INTERSECTS(shape, SRID=4326;POLYGON ((1 0, 1 1, 0 1, 0 0, 1 0)))",
        )

    def test_polygon_filter_with_attribute_filter(self):
        polygon = PolygonGeometry([[[0, 0], [2, 0], [2, 2], [0, 0]]], "EPSG:4326")

        cql = build_cql_filter("geom", SpatialFilter.from_polygon(polygon), "status = 'active'")

        self.assertEqual(
            cql, "INTERSECTS(geom, SRID=4326;POLYGON ((0 0, 2 0, 2 2, 0 0))) AND status = 'active'"
        )

    def test_polygon_filter_requires_wgs84(self):
        with self.assertRaises(ValueError):
            SpatialFilter.from_polygon(PolygonGeometry([[[0, 0], [2, 0], [2, 2], [0, 0]]]))

    def test_wfs_url_from_wms(self):
        self.assertEqual(wfs_url_from_wms("https://maps.example.org/geoserver/wms/"), WFS_URL)
        self.assertEqual(wfs_url_from_wms("https://maps.example.org/ows"), "https://maps.example.org/ows")

    def test_parse_geometry_field(self):
        self.assertEqual(parse_geometry_field(DESCRIBE), "geom")
        self.assertIsNone(parse_geometry_field({"featureTypes": []}))
        self.assertIsNone(parse_geometry_field({}))


@patch("mapquery.query.wfs.requests.get")
class TestWfsQueryService(TestCase):
    def setUp(self):
        self.settings = Settings(wms_url="https://maps.example.org/geoserver/wms", max_features=250)
        self.service = WfsQueryService(settings=self.settings)
        self.filter = SpatialFilter.from_bbox(BoundingBox(-112, 40, -111, 41))

    def test_url_from_wms(self, mock_get):
        self.assertEqual(self.service.wfs_url, WFS_URL)

    def test_missing_url(self, mock_get):
        with self.assertRaises(ValueError):
            WfsQueryService(settings=Settings(wms_url=""))

    def test_geometry_field_detected_and_cached(self, mock_get):
        mock_get.return_value = json_response(DESCRIBE)

        self.assertEqual(self.service.geometry_field("hazards:faults"), "geom")
        self.assertEqual(self.service.geometry_field("hazards:faults"), "geom")

        self.assertEqual(mock_get.call_count, 1)
        params = mock_get.call_args[1]["params"]
        self.assertEqual(params["request"], "DescribeFeatureType")
        self.assertEqual(params["version"], "2.0.0")
        self.assertEqual(params["typeName"], "hazards:faults")

    def test_geometry_field_cache_expires(self, mock_get):
        mock_get.return_value = json_response(DESCRIBE)
        service = WfsQueryService(WFS_URL, settings=Settings(geometry_field_ttl=0))

        service.geometry_field("hazards:faults")
        service.geometry_field("hazards:faults")

        self.assertEqual(mock_get.call_count, 2)

    def test_geometry_field_default(self, mock_get):
        mock_get.side_effect = requests.Timeout("slow")

        with self.assertLogs("mapquery.query.wfs", level="WARNING"):
            self.assertEqual(self.service.geometry_field("hazards:faults"), "shape")

    def test_get_feature_parameters(self, mock_get):
        mock_get.side_effect = [json_response(DESCRIBE), json_response({"features": features(0, 2)})]

        result = self.service.query_features("hazards:faults", self.filter, page_size=50)

        self.assertEqual(len(result), 2)
        args, kwargs = mock_get.call_args
        self.assertEqual(args, (WFS_URL,))
        params = kwargs["params"]
        self.assertEqual(params["request"], "GetFeature")
        self.assertEqual(params["version"], "1.1.0")
        self.assertEqual(params["maxFeatures"], 50)
        self.assertEqual(params["srsName"], "EPSG:4326")
        self.assertNotIn("startIndex", params)
        self.assertTrue(params["CQL_FILTER"].startswith("INTERSECTS(geom, SRID=4326;POLYGON"))
        self.assertEqual(kwargs["timeout"], self.settings.request_timeout)

    def test_pagination(self, mock_get):
        mock_get.side_effect = [
            json_response(DESCRIBE),
            json_response({"features": features(0, 100)}),
            json_response({"features": features(100, 100)}),
            json_response({"features": features(200, 30)}),
        ]

        result = self.service.query_features("hazards:faults", self.filter, 100, paginate=True)

        self.assertEqual(len(result), 230)
        start_indexes = [c[1]["params"].get("startIndex") for c in mock_get.call_args_list[1:]]
        self.assertEqual(start_indexes, [None, 100, 200])

    def test_pagination_stops_at_max_features(self, mock_get):
        mock_get.side_effect = [
            json_response(DESCRIBE),
            json_response({"features": features(0, 100)}),
            json_response({"features": features(100, 100)}),
            json_response({"features": features(200, 100)}),
        ]

        result = self.service.query_features("hazards:faults", self.filter, 100, paginate=True)

        self.assertEqual(len(result), 250)
        self.assertEqual(mock_get.call_count, 4)

    def test_error_status_returns_empty(self, mock_get):
        mock_get.side_effect = [
            json_response(DESCRIBE),
            json_response(None, ok=False, status_code=500),
        ]

        with self.assertLogs("mapquery.query.wfs", level="ERROR"):
            self.assertEqual(self.service.query_features("hazards:faults", self.filter, 50), [])

    def test_xml_body_returns_empty(self, mock_get):
        xml = json_response(None)
        xml.text = "<ows:ExceptionReport/>"
        xml.json.side_effect = ValueError("Expecting value")
        mock_get.side_effect = [json_response(DESCRIBE), xml]

        with self.assertLogs("mapquery.query.wfs", level="ERROR"):
            self.assertEqual(self.service.query_features("hazards:faults", self.filter, 50), [])

    def test_transport_error_propagates(self, mock_get):
        mock_get.side_effect = [json_response(DESCRIBE), requests.ConnectionError("refused")]

        with self.assertRaises(requests.ConnectionError):
            self.service.query_features("hazards:faults", self.filter, 50)
