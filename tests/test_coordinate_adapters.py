from unittest import TestCase
from unittest.mock import Mock

from mapquery.adapters.engine import EngineCoordinateAdapter
from mapquery.adapters.factory import create_coordinate_adapter
from mapquery.adapters.vector_tile import VectorTileCoordinateAdapter
from mapquery.config import MapBackend
from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.point import MapPoint, ScreenPoint
from mapquery.maps.engine.engine_view import EngineView
from mapquery.maps.vector.vector_map import VectorTileMap
from mapquery.utils.crs import METERS_PER_DEGREE, WEB_MERCATOR_MAX


class TestEngineCoordinateAdapter(TestCase):
    def setUp(self):
        self.adapter = EngineCoordinateAdapter()
        self.view = EngineView(MapPoint(0, 0, "EPSG:3857"), resolution=10, width=800, height=600)

    def test_screen_to_map(self):
        point = self.adapter.screen_to_map(ScreenPoint(100, 100), self.view)

        self.assertEqual(point, MapPoint(-3000, 2000, "EPSG:3857"))

    def test_map_to_screen_inverts(self):
        screen = ScreenPoint(123, 456)
        point = self.adapter.screen_to_map(screen, self.view)
        back = self.adapter.map_to_screen(point, self.view)

        self.assertAlmostEqual(back.x, screen.x)
        self.assertAlmostEqual(back.y, screen.y)

    def test_click_box(self):
        point = self.adapter.screen_to_map(ScreenPoint(100, 100), self.view)
        bbox = self.adapter.create_bounding_box(point, resolution=10, buffer=5)

        self.assertEqual(bbox, BoundingBox(-3025, 1975, -2975, 2025))
        self.assertEqual(bbox.center, (point.x, point.y))

    def test_resolution(self):
        self.assertEqual(self.adapter.get_resolution(self.view), 10)

    def test_resolution_geographic_view(self):
        view = EngineView(MapPoint(0, 0, "EPSG:4326"), resolution=111.32, spatial_reference="EPSG:4326")

        self.assertAlmostEqual(self.adapter.get_resolution(view), 111.32 / METERS_PER_DEGREE)

    def test_resolution_fallback(self):
        view = EngineView(MapPoint(0, 0), resolution=None)

        self.assertAlmostEqual(self.adapter.get_resolution(view), 0.0001 * METERS_PER_DEGREE)

    def test_unreadable_resolution_falls_back_in_view_units(self):
        class BrokenView:
            def __init__(self, spatial_reference):
                self.spatial_reference = spatial_reference

            @property
            def resolution(self):
                raise RuntimeError("view not ready")

        with self.assertLogs("mapquery.adapters.engine", level="ERROR"):
            self.assertEqual(self.adapter.get_resolution(BrokenView("EPSG:4326")), 0.0001)
        with self.assertLogs("mapquery.adapters.engine", level="ERROR"):
            self.assertAlmostEqual(
                self.adapter.get_resolution(BrokenView("EPSG:3857")), 0.0001 * METERS_PER_DEGREE
            )

    def test_view_bounds(self):
        self.assertEqual(self.adapter.get_view_bounds(self.view), BoundingBox(-4000, -3000, 4000, 3000))

    def test_view_bounds_fallback(self):
        view = EngineView(MapPoint(0, 0), resolution=None)

        self.assertEqual(
            self.adapter.get_view_bounds(view),
            BoundingBox(-WEB_MERCATOR_MAX, -WEB_MERCATOR_MAX, WEB_MERCATOR_MAX, WEB_MERCATOR_MAX),
        )

    def test_invalid_handle_is_fail_safe(self):
        with self.assertLogs("mapquery.adapters.engine", level="ERROR"):
            point = self.adapter.screen_to_map(ScreenPoint(1, 1), None)
        self.assertEqual(point, MapPoint(0, 0, "EPSG:3857"))

        with self.assertLogs("mapquery.adapters.engine", level="ERROR"):
            screen = self.adapter.map_to_screen(MapPoint(1, 1), None)
        self.assertEqual(screen, ScreenPoint(0, 0))

    def test_projection_error_is_fail_safe(self):
        view = Mock()
        view.spatial_reference = "EPSG:3857"
        view.to_map.side_effect = RuntimeError("not ready")

        with self.assertLogs("mapquery.adapters.engine", level="ERROR"):
            point = self.adapter.screen_to_map(ScreenPoint(1, 1), view)

        self.assertEqual((point.x, point.y), (0, 0))

    def test_to_json(self):
        self.assertIsNone(self.adapter.to_json(None))
        self.assertEqual(
            self.adapter.to_json(MapPoint(1, 2, "EPSG:3857")),
            {"x": 1, "y": 2, "crs": "EPSG:3857"},
        )


class TestVectorTileCoordinateAdapter(TestCase):
    def setUp(self):
        self.adapter = VectorTileCoordinateAdapter()
        self.map = VectorTileMap((-111.89, 40.76), zoom=12, width=800, height=600)

    def test_center_pixel_is_map_center(self):
        point = self.adapter.screen_to_map(ScreenPoint(400, 300), self.map)

        self.assertEqual(point.crs, "EPSG:4326")
        self.assertAlmostEqual(point.x, -111.89, places=9)
        self.assertAlmostEqual(point.y, 40.76, places=9)

    def test_round_trip(self):
        screen = ScreenPoint(100, 100)
        point = self.adapter.screen_to_map(screen, self.map)
        back = self.adapter.map_to_screen(point, self.map)

        self.assertAlmostEqual(back.x, 100, places=6)
        self.assertAlmostEqual(back.y, 100, places=6)

    def test_resolution_from_zoom(self):
        resolution = self.adapter.get_resolution(self.map)
        meters = 40075017 / (256 * 2**12)

        self.assertAlmostEqual(resolution, meters / METERS_PER_DEGREE)

    def test_resolution_fallback(self):
        self.assertEqual(self.adapter.get_resolution(VectorTileMap(zoom=None)), 0.0001)
        with self.assertLogs("mapquery.adapters.vector_tile", level="ERROR"):
            self.assertEqual(self.adapter.get_resolution(None), 0.0001)

    def test_view_bounds(self):
        bounds = self.adapter.get_view_bounds(self.map)

        self.assertLess(bounds.min_x, -111.89)
        self.assertGreater(bounds.max_x, -111.89)
        self.assertLess(bounds.min_y, 40.76)
        self.assertGreater(bounds.max_y, 40.76)

    def test_view_bounds_fallback(self):
        with self.assertLogs("mapquery.adapters.vector_tile", level="ERROR"):
            self.assertEqual(self.adapter.get_view_bounds(None), BoundingBox(-180, -90, 180, 90))

    def test_invalid_handle_is_fail_safe(self):
        with self.assertLogs("mapquery.adapters.vector_tile", level="ERROR"):
            point = self.adapter.screen_to_map(ScreenPoint(1, 1), None)

        self.assertEqual(point, MapPoint(0, 0, "EPSG:4326"))


class TestBoundingBox(TestCase):
    def test_url_param(self):
        bbox = BoundingBox(-111.123456789, 40.5, -111.0, 41)

        self.assertEqual(bbox.to_url_param(), "-111.123457,40.5,-111.0,41")
        self.assertEqual(
            BoundingBox.from_url_param("-111.123457,40.5,-111.0,41"),
            BoundingBox(-111.123457, 40.5, -111.0, 41.0),
        )

    def test_malformed_url_param(self):
        self.assertIsNone(BoundingBox.from_url_param("1,2,3"))
        self.assertIsNone(BoundingBox.from_url_param("a,b,c,d"))
        self.assertIsNone(BoundingBox.from_url_param(None))

    def test_from_corners(self):
        self.assertEqual(
            BoundingBox.from_corners([(3, 4), (1, 8), (2, 0)]), BoundingBox(1, 0, 3, 8)
        )


class TestBoundingBoxLinearity(TestCase):
    def test_width_is_linear_in_buffer(self):
        for adapter, point, resolution in [
            (EngineCoordinateAdapter(), MapPoint(-12366482, 4977006, "EPSG:3857"), 9.55),
            (VectorTileCoordinateAdapter(), MapPoint(-111.09, 40.76, "EPSG:4326"), 0.0000858),
        ]:
            widths = [
                adapter.create_bounding_box(point, resolution, buffer).width
                for buffer in (1, 2, 4, 10)
            ]
            self.assertAlmostEqual(widths[1], 2 * widths[0])
            self.assertAlmostEqual(widths[2], 4 * widths[0])
            self.assertAlmostEqual(widths[3], 10 * widths[0])

            bbox = adapter.create_bounding_box(point, resolution, 7)
            self.assertAlmostEqual(bbox.center[0], point.x)
            self.assertAlmostEqual(bbox.center[1], point.y)


class TestAdapterFactory(TestCase):
    def test_backends(self):
        self.assertIsInstance(create_coordinate_adapter(MapBackend.ENGINE), EngineCoordinateAdapter)
        self.assertIsInstance(create_coordinate_adapter("vector-tile"), VectorTileCoordinateAdapter)

    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            create_coordinate_adapter("leaflet")
