from unittest import TestCase

from mapquery.constructs.bbox import BoundingBox
from mapquery.constructs.point import MapPoint, ScreenPoint
from mapquery.context import create_map_context
from mapquery.maps.engine.engine_view import EngineLayer, EngineView, GraphicsCollection
from mapquery.maps.navigation import feature_extent, zoom_to_feature
from mapquery.maps.vector.vector_map import VectorTileMap
from mapquery.maps.view_interface import Graphic
from mapquery.utils.conversion import convert_coordinate


class TestEngineView(TestCase):
    def setUp(self):
        self.view = EngineView(MapPoint(0, 0, "EPSG:3857"), resolution=10, width=800, height=600)

    def test_center_pixel(self):
        self.assertEqual(self.view.to_map(ScreenPoint(400, 300)), MapPoint(0, 0, "EPSG:3857"))

    def test_screen_y_grows_downward(self):
        top = self.view.to_map(ScreenPoint(400, 0))
        bottom = self.view.to_map(ScreenPoint(400, 600))

        self.assertGreater(top.y, bottom.y)

    def test_unready_view(self):
        view = EngineView(MapPoint(0, 0), resolution=None)

        self.assertIsNone(view.to_map(ScreenPoint(1, 1)))
        self.assertIsNone(view.to_screen(MapPoint(1, 1)))
        self.assertIsNone(view.extent)

    def test_go_to_same_crs(self):
        self.view.go_to(BoundingBox(1000, 2000, 9000, 4000), "EPSG:3857")

        self.assertEqual(self.view.center, MapPoint(5000, 3000, "EPSG:3857"))
        self.assertEqual(self.view.resolution, 10)

    def test_go_to_converts_wgs84(self):
        self.view.go_to(BoundingBox(-112, 40, -111, 41), "EPSG:4326")

        lng, lat = convert_coordinate([self.view.center.x, self.view.center.y], "EPSG:3857")
        self.assertAlmostEqual(lng, -111.5, places=6)
        self.assertGreater(lat, 40)
        self.assertLess(lat, 41)
        self.assertGreater(self.view.resolution, 10)

    def test_find_layer_by_id(self):
        roads = EngineLayer("roads", title="Roads")
        view = EngineView(MapPoint(0, 0), resolution=1, layers=[roads])

        self.assertIs(view.find_layer_by_id("roads"), roads)
        self.assertIsNone(view.find_layer_by_id("rivers"))
        self.assertEqual(EngineLayer("parcels").title, "parcels")


class TestGraphicsCollection(TestCase):
    def test_remove_is_by_identity(self):
        a = Graphic({"type": "Point", "coordinates": [0, 0]}, {"type": "simple-marker"})
        b = Graphic({"type": "Point", "coordinates": [0, 0]}, {"type": "simple-marker"})
        graphics = GraphicsCollection([a, b])

        graphics.remove(a)

        self.assertEqual(len(graphics), 1)
        self.assertIn(b, graphics)
        self.assertNotIn(a, graphics)

    def test_add_and_remove_many(self):
        graphics = GraphicsCollection()
        items = [Graphic(None, {}) for _ in range(3)]

        graphics.add_many(items)
        self.assertEqual(list(graphics), items)

        graphics.remove_many(items[:2])
        self.assertEqual(list(graphics), items[2:])

        graphics.remove_all()
        self.assertEqual(len(graphics), 0)


class TestVectorTileMap(TestCase):
    def setUp(self):
        self.map = VectorTileMap((-111.89, 40.76), zoom=10)
        self.map.add_source("parcels", {"type": "geojson", "data": {"type": "FeatureCollection", "features": []}})

    def test_project_center(self):
        screen = self.map.project((-111.89, 40.76))

        self.assertAlmostEqual(screen.x, 400)
        self.assertAlmostEqual(screen.y, 300)

    def test_no_camera(self):
        m = VectorTileMap(zoom=None)

        self.assertIsNone(m.get_bounds())
        with self.assertRaises(ValueError):
            m.project((0, 0))

    def test_duplicate_source(self):
        with self.assertRaises(ValueError):
            self.map.add_source("parcels", {"type": "geojson"})

    def test_layer_requires_source(self):
        with self.assertRaises(ValueError):
            self.map.add_layer({"id": "roads", "type": "line", "source": "roads"})

    def test_duplicate_layer(self):
        self.map.add_layer({"id": "parcels-fill", "type": "fill", "source": "parcels"})

        with self.assertRaises(ValueError):
            self.map.add_layer({"id": "parcels-fill", "type": "fill", "source": "parcels"})

    def test_source_in_use_cannot_be_removed(self):
        self.map.add_layer({"id": "parcels-fill", "type": "fill", "source": "parcels"})

        with self.assertRaises(ValueError):
            self.map.remove_source("parcels")

        self.map.remove_layer("parcels-fill")
        self.map.remove_source("parcels")
        self.assertIsNone(self.map.get_source("parcels"))

    def test_add_layer_before(self):
        self.map.add_layer({"id": "a", "type": "fill", "source": "parcels"})
        self.map.add_layer({"id": "b", "type": "line", "source": "parcels"})
        self.map.add_layer({"id": "c", "type": "line", "source": "parcels"}, before_id="b")

        self.assertEqual([layer["id"] for layer in self.map.get_layers()], ["a", "c", "b"])

    def test_fit_bounds(self):
        self.map.fit_bounds([(-112, 40), (-111, 41)], padding=50)

        bounds = self.map.get_bounds()
        self.assertLessEqual(bounds.min_x, -112 + 1e-6)
        self.assertGreaterEqual(bounds.max_x, -111 - 1e-6)
        self.assertLessEqual(bounds.min_y, 40 + 1e-6)
        self.assertGreaterEqual(bounds.max_y, 41 - 1e-6)
        self.assertAlmostEqual(self.map.center[0], -111.5)

    def test_style_is_a_copy(self):
        style = self.map.get_style()
        style["sources"].clear()

        self.assertIsNotNone(self.map.get_source("parcels"))


class TestZoomToFeature(TestCase):
    def setUp(self):
        self.point = {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [-111.89, 40.76]},
            "properties": {},
        }

    def test_point_extent_is_padded(self):
        extent = feature_extent(self.point, "EPSG:4326")

        self.assertLess(extent[0], -111.89)
        self.assertGreater(extent[2], -111.89)
        # 200 m of Web Mercator is a little over 0.0018 degrees of longitude
        self.assertAlmostEqual(extent[2] - extent[0], 0.0018, delta=0.0001)

    def test_feature_bbox_wins(self):
        feature = dict(self.point, bbox=[-112, 40, -111, 41])

        self.assertEqual(feature_extent(feature, "EPSG:4326"), [-112, 40, -111, 41])

    def test_engine_context_goes_to_extent(self):
        view = EngineView(MapPoint(0, 0, "EPSG:3857"), resolution=1000)
        context = create_map_context(view, "engine")

        self.assertTrue(zoom_to_feature(self.point, "EPSG:4326", context))

        lng, lat = convert_coordinate([view.center.x, view.center.y], "EPSG:3857")
        self.assertAlmostEqual(lng, -111.89, places=6)
        self.assertAlmostEqual(lat, 40.76, places=6)
        self.assertLess(view.resolution, 1)

    def test_vector_context_fits_bounds(self):
        vector_map = VectorTileMap((0, 0), zoom=2)
        context = create_map_context(vector_map, "vector-tile")

        self.assertTrue(zoom_to_feature(self.point, "EPSG:4326", context))

        self.assertAlmostEqual(vector_map.center[0], -111.89, places=6)
        self.assertGreater(vector_map.zoom, 14)

    def test_feature_without_geometry(self):
        context = create_map_context(VectorTileMap(), "vector-tile")

        with self.assertLogs("mapquery.maps.navigation", level="WARNING"):
            self.assertFalse(zoom_to_feature({"type": "Feature", "geometry": None}, "EPSG:4326", context))
