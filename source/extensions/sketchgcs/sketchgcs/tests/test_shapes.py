"""
Tests for the sketch geometry the constraints are written against.
"""

import math
import unittest

from sketchgcs.kernel.params import greater_than, less_than
from sketchgcs.kernel.shapes import (
    Arc,
    BezierCurve,
    Circle,
    Ellipse,
    EndPoint,
    Segment,
    index_objects,
)
from sketchgcs.kernel.sketch_math import (
    cubic_bezier_der1,
    cubic_bezier_der2,
    cubic_bezier_point,
    make_angle_0_360,
)


def _visited(obj):
    out = []
    obj.visit_params(out.append)
    return out


class TestVisitOrder(unittest.TestCase):

    def test_point(self):
        p = EndPoint(1, 2)
        self.assertEqual(_visited(p), [p.params_x, p.params_y])

    def test_segment(self):
        s = Segment(0, 0, 3, 4)
        self.assertEqual(
            _visited(s),
            [s.a.params_x, s.a.params_y, s.b.params_x, s.b.params_y, s.params.ang, s.params.t],
        )

    def test_arc(self):
        a = Arc(1, 0, 0, 1, 0, 0)
        self.assertEqual(
            _visited(a),
            [a.r, a.ang1, a.ang2,
             a.a.params_x, a.a.params_y, a.b.params_x, a.b.params_y, a.c.params_x, a.c.params_y],
        )

    def test_bezier_endpoints_first(self):
        b = BezierCurve((0, 0), (1, 1), (2, 1), (3, 0))
        self.assertEqual(
            _visited(b),
            [b.p0.params_x, b.p0.params_y, b.p3.params_x, b.p3.params_y,
             b.p1.params_x, b.p1.params_y, b.p2.params_x, b.p2.params_y],
        )

    def test_visiting_is_deterministic(self):
        e = Ellipse(0, 0, 2, 1, 0.3)
        self.assertEqual(_visited(e), _visited(e))


class TestSegment(unittest.TestCase):

    def test_derived_quantities(self):
        s = Segment(1, 1, 1, 5)
        self.assertAlmostEqual(s.params.ang.value, math.pi / 2)
        self.assertAlmostEqual(s.params.t.value, 4.0)
        self.assertAlmostEqual(s.nx, -1.0)
        self.assertAlmostEqual(s.ny, 0.0)
        self.assertAlmostEqual(s.w, -1.0)

    def test_angle_is_normalised(self):
        s = Segment(0, 5, 0, 0)
        self.assertAlmostEqual(s.angle_deg(), 270.0)
        self.assertAlmostEqual(s.get_angle_from_normal(), 270.0)

    def test_angle_from_normal_ignores_full_turns(self):
        s = Segment(0, 0, 1, 1)
        s.params.ang.set(s.params.ang.value + 4 * math.pi)
        self.assertAlmostEqual(s.get_angle_from_normal(), 45.0)


class TestMirror(unittest.TestCase):

    @staticmethod
    def _across_y_axis(x, y):
        return -x, y

    def test_segment(self):
        src = Segment(1, 0, 3, 2)
        dst = Segment(0, 0, 1, 1)
        src.mirror(dst, self._across_y_axis)
        self.assertEqual(dst.a.to_tuple(), (-1, 0))
        self.assertEqual(dst.b.to_tuple(), (-3, 2))
        self.assertAlmostEqual(dst.angle_deg(), 135.0)

    def test_circle_keeps_radius(self):
        src = Circle(2, 1, 3)
        dst = Circle(0, 0, 1)
        src.mirror(dst, self._across_y_axis)
        self.assertEqual(dst.c.to_tuple(), (-2, 1))
        self.assertEqual(dst.r.value, 3)

    def test_arc_swaps_ends(self):
        src = Arc(2, 0, 1, 1, 1, 0)
        dst = Arc(0, 0, 0, 0, 0, 1)
        src.mirror(dst, self._across_y_axis)
        self.assertEqual(dst.a.to_tuple(), (-1, 1))
        self.assertEqual(dst.b.to_tuple(), (-2, 0))
        self.assertAlmostEqual(dst.r.value, 1.0)

    def test_ellipse_rotation(self):
        src = Ellipse(1, 0, 2, 1, math.pi / 6)
        dst = Ellipse(0, 0, 1, 1)
        src.mirror(dst, self._across_y_axis)
        self.assertEqual(dst.c.to_tuple(), (-1, 0))
        self.assertAlmostEqual(dst.rot.value, math.pi - math.pi / 6)
        self.assertEqual((dst.rx.value, dst.ry.value), (2, 1))


class TestEllipse(unittest.TestCase):

    def test_eccentric_anomaly_inverts_point_at(self):
        e = Ellipse(1, 2, 3, 1, 0.3)
        x, y = e.point_at(0.7)
        self.assertAlmostEqual(e.eccentric_anomaly(x, y), 0.7)


class TestParamBounds(unittest.TestCase):

    def test_open_interval(self):
        lo, hi = greater_than(0), less_than(1)
        self.assertTrue(lo.is_satisfied(0.5) and hi.is_satisfied(0.5))
        self.assertFalse(lo.is_satisfied(0.0))
        self.assertFalse(hi.is_satisfied(1.0))


class TestSketchMath(unittest.TestCase):

    def test_make_angle_0_360(self):
        self.assertAlmostEqual(make_angle_0_360(-math.pi / 2), 3 * math.pi / 2)
        self.assertAlmostEqual(make_angle_0_360(5 * math.pi), math.pi)
        self.assertEqual(make_angle_0_360(0.0), 0.0)

    def test_bezier_point_and_derivatives(self):
        cp = [(0, 0), (1, 2), (3, 2), (4, 0)]
        self.assertEqual(cubic_bezier_point(*cp, 0.0), (0.0, 0.0))
        self.assertEqual(cubic_bezier_point(*cp, 1.0), (4.0, 0.0))
        x, y = cubic_bezier_point(*cp, 0.5)
        self.assertAlmostEqual(x, 2.0)
        self.assertAlmostEqual(y, 1.5)
        dx, dy = cubic_bezier_der1(*cp, 0.5)
        self.assertAlmostEqual(dx, 4.5)
        self.assertAlmostEqual(dy, 0.0)
        ddx, ddy = cubic_bezier_der2(*cp, 0.0)
        # 6 * (p0 - 2 p1 + p2)
        self.assertAlmostEqual(ddx, 6.0)
        self.assertAlmostEqual(ddy, -12.0)


class TestIndex(unittest.TestCase):

    def test_index_includes_sub_objects(self):
        s = Segment(0, 0, 1, 0)
        c = Circle(0, 0, 1)
        index = index_objects([s, c])
        self.assertIs(index[s.id], s)
        self.assertIs(index[s.a.id], s.a)
        self.assertIs(index[s.b.id], s.b)
        self.assertIs(index[c.c.id], c.c)


if __name__ == "__main__":
    unittest.main()
