"""
Tests for the polygon validator.
"""

import unittest

from territory_engine.config import ValidationConfig
from territory_engine.geometry import LocalProjection, path_length_m
from territory_engine.models import GeoPoint, InvalidReason
from territory_engine.tracking import PolygonValidator

ORIGIN = GeoPoint(31.2304, 121.4737)
PROJ = LocalProjection(ORIGIN)


def ring(*xy) -> list[GeoPoint]:
    return [PROJ.unproject(x, y) for x, y in xy]


SQUARE_CCW = ring((0, 0), (100, 0), (100, 100), (0, 100))


class TestPolygonValidator(unittest.TestCase):
    """Test area computation and classification."""

    def setUp(self):
        self.validator = PolygonValidator(ValidationConfig())

    def test_square_area_any_start_and_winding(self):
        """Test a 100 m square is 10,000 m² within 1% from every vertex in both directions."""
        for winding, base in (("ccw", SQUARE_CCW), ("cw", list(reversed(SQUARE_CCW)))):
            for start in range(4):
                with self.subTest(winding=winding, start=start):
                    rotated = base[start:] + base[:start]
                    result = self.validator.validate(rotated)

                    self.assertTrue(result.valid)
                    self.assertAlmostEqual(result.area_m2, 10_000, delta=100)
                    self.assertEqual(result.winding, winding)
                    self.assertEqual(result.point_count, 4)

    def test_trailing_closing_point_ignored(self):
        """Test an explicitly closed ring gives the same result."""
        open_result = self.validator.validate(SQUARE_CCW)
        closed_result = self.validator.validate(SQUARE_CCW + [SQUARE_CCW[0]])

        self.assertEqual(closed_result.point_count, 4)
        self.assertAlmostEqual(closed_result.area_m2, open_result.area_m2, places=6)

    def test_perimeter(self):
        """Test the perimeter includes the closing edge."""
        result = self.validator.validate(SQUARE_CCW)
        self.assertAlmostEqual(result.perimeter_m, 400.0, delta=1.0)

    def test_too_few_points(self):
        """Test fewer than 3 distinct points is invalid."""
        a, b = ring((0, 0), (100, 0))
        for path in ([a, b], [a, a, b, b], [a]):
            with self.subTest(count=len(path)):
                result = self.validator.validate(path)
                self.assertFalse(result.valid)
                self.assertEqual(result.reason, InvalidReason.TOO_FEW_POINTS)

    def test_repeated_points_are_not_distinct(self):
        """Test a path revisiting two points counts two distinct points."""
        a, b = ring((0, 0), (100, 0))
        result = self.validator.validate([a, b, a, b])
        self.assertEqual(result.reason, InvalidReason.TOO_FEW_POINTS)
        self.assertEqual(result.point_count, 2)

    def test_self_intersecting(self):
        """Test a bow-tie is rejected."""
        result = self.validator.validate(ring((0, 0), (100, 100), (100, 0), (0, 100)))
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, InvalidReason.SELF_INTERSECTING)

    def test_area_too_small(self):
        """Test a 5 m square is below the minimum area."""
        result = self.validator.validate(ring((0, 0), (5, 0), (5, 5), (0, 5)))
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, InvalidReason.AREA_TOO_SMALL)
        self.assertAlmostEqual(result.area_m2, 25.0, delta=0.5)

    def test_area_above_maximum(self):
        """Test a 2 km square exceeds the maximum area."""
        result = self.validator.validate(ring((0, 0), (2000, 0), (2000, 2000), (0, 2000)))
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, InvalidReason.AREA_IMPLAUSIBLE)

    def test_area_larger_than_walk_can_enclose(self):
        """Test the isoperimetric bound of the walked length."""
        short_walk = self.validator.validate(SQUARE_CCW, traversed_length_m=200.0)
        self.assertFalse(short_walk.valid)
        self.assertEqual(short_walk.reason, InvalidReason.AREA_IMPLAUSIBLE)

        full_walk = self.validator.validate(SQUARE_CCW, traversed_length_m=400.0)
        self.assertTrue(full_walk.valid)

    def test_outlier_vertex_is_implausible(self):
        """Test one wild vertex fails even when the walk covered the whole ring."""
        spiked = ring((0, 0), (100, 0), (900, 900), (100, 100), (0, 100))
        result = self.validator.validate(spiked, traversed_length_m=path_length_m(spiked, closed=True))
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, InvalidReason.AREA_IMPLAUSIBLE)

        walked = [(x, 0) for x in range(0, 100, 10)] + [(100, y) for y in range(0, 100, 10)]
        walked += [(900, 900)] + [(x, 100) for x in range(100, 0, -10)] + [(0, y) for y in range(100, 0, -10)]
        result = self.validator.validate(ring(*walked))
        self.assertEqual(result.reason, InvalidReason.AREA_IMPLAUSIBLE)

    def test_uneven_edges_are_not_outliers(self):
        """Test a single long closing edge and a sparse side stay valid."""
        walked = [(x, 0) for x in range(0, 100, 10)] + [(100, 0), (100, 40), (100, 70)]
        walked += [(x, 100) for x in range(100, 0, -10)] + [(0, y) for y in range(100, 20, -10)]
        result = self.validator.validate(ring(*walked))
        self.assertTrue(result.valid)

    def test_outlier_ratio_from_config(self):
        """Test a looser ratio accepts the same spike."""
        spiked = ring((0, 0), (100, 0), (900, 900), (100, 100), (0, 100))
        validator = PolygonValidator(ValidationConfig(max_spike_ratio=20.0))
        self.assertTrue(validator.validate(spiked).valid)

    def test_custom_thresholds(self):
        """Test thresholds come from config."""
        validator = PolygonValidator(ValidationConfig(min_area_m2=20_000, max_area_m2=50_000))
        result = validator.validate(SQUARE_CCW)
        self.assertEqual(result.reason, InvalidReason.AREA_TOO_SMALL)


if __name__ == "__main__":
    unittest.main()
