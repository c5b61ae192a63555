"""
Tests for live constraint instances: constants, ownership and persistence.
"""

import gc
import math
import unittest

from sketchgcs.kernel import (
    Constraint,
    ConstraintConfig,
    EndPoint,
    ManagedObjectConflictError,
    Segment,
    UnknownConstraintTypeError,
    get_schema,
    index_objects,
)


class TestConstants(unittest.TestCase):

    def setUp(self):
        self.p1 = EndPoint(0, 0)
        self.p2 = EndPoint(3, 4)

    def test_constants_start_unset(self):
        c = Constraint(get_schema("DistancePP"), [self.p1, self.p2])
        self.assertIsNone(c.constants)
        self.assertEqual(c.resolve_constants(), {})

    def test_init_uses_configured_precision(self):
        config = ConstraintConfig(constant_precision=3)
        c = Constraint(get_schema("DistancePP"), [self.p1, self.p2], config=config)
        c.init_constants()
        self.assertEqual(c.constants, {"distance": "5.000"})

    def test_init_without_declared_constants(self):
        c = Constraint(get_schema("PCoincident"), [self.p1, self.p2])
        c.init_constants()
        self.assertIsNone(c.constants)

    def test_resolve_is_cached(self):
        """The resolved mapping is reused until a raw value changes."""
        c = Constraint(get_schema("DistancePP"), [self.p1, self.p2], {"distance": "5"})
        first = c.resolve_constants()
        self.assertIs(c.resolve_constants(), first)
        self.assertEqual(first, {"distance": 5.0})

        c.set_constant("distance", "7.5")
        second = c.resolve_constants()
        self.assertIsNot(second, first)
        self.assertEqual(second, {"distance": 7.5})

    def test_cache_sees_direct_edits(self):
        c = Constraint(get_schema("DistancePP"), [self.p1, self.p2], {"distance": "5"})
        c.resolve_constants()
        c.constants["distance"] = "6"
        self.assertEqual(c.resolved_constants, {"distance": 6.0})

    def test_numeric_constants_accept_numbers(self):
        c = Constraint(get_schema("DistancePP"), [self.p1, self.p2], {"distance": 5})
        self.assertEqual(c.resolved_constants, {"distance": 5.0})

    def test_malformed_number_resolves_to_nan(self):
        """A malformed number yields NaN and a warning rather than an error."""
        c = Constraint(get_schema("DistancePP"), [self.p1, self.p2], {"distance": "five"})
        with self.assertLogs("sketchgcs.kernel.constraint", level="WARNING"):
            value = c.resolved_constants["distance"]
        self.assertTrue(math.isnan(value))

        polys = []
        c.collect_polynomials(polys)
        self.assertTrue(math.isnan(polys[0].value()))

    def test_malformed_number_strict(self):
        config = ConstraintConfig(strict_constants=True)
        c = Constraint(get_schema("DistancePP"), [self.p1, self.p2], {"distance": "five"}, config)
        with self.assertRaises(ValueError):
            c.resolve_constants()

    def test_boolean_strings(self):
        line = Segment(0, 0, 10, 0)
        pt = EndPoint(2, 3)
        c = Constraint(get_schema("DistancePL"), [pt, line], {"distance": "3", "inverted": "false"})
        self.assertIs(c.resolved_constants["inverted"], False)
        c.set_constant("inverted", "True")
        self.assertIs(c.resolved_constants["inverted"], True)

    def test_set_unknown_constant(self):
        c = Constraint(get_schema("DistancePP"), [self.p1, self.p2])
        with self.assertRaises(KeyError):
            c.set_constant("radius", "1")

    def test_editable(self):
        seg = Segment(0, 0, 0, 5)
        self.assertTrue(Constraint(get_schema("DistancePP"), [self.p1, self.p2]).editable)
        self.assertFalse(Constraint(get_schema("Vertical"), [seg]).editable)
        self.assertFalse(Constraint(get_schema("PCoincident"), [self.p1, self.p2]).editable)


class TestResync(unittest.TestCase):

    def test_distance_follows_geometry(self):
        p1, p2 = EndPoint(0, 0), EndPoint(3, 4)
        c = Constraint(get_schema("DistancePP"), [p1, p2])
        c.init_constants()
        p2.set(6, 8)
        c.set_constants_from_geometry()
        self.assertEqual(c.constants, {"distance": "10.0"})
        self.assertAlmostEqual(c.resolved_constants["distance"], 10.0)

    def test_vertical_flips_with_line(self):
        seg = Segment(0, 0, 0, 5)
        c = Constraint(get_schema("Vertical"), [seg])
        c.init_constants()
        seg.b.set(0, -5)
        seg.sync_params()
        c.set_constants_from_geometry()
        self.assertEqual(c.constants, {"angle": "270.0"})

    def test_kinds_without_resync_are_untouched(self):
        line = Segment(0, 0, 10, 0)
        pt = EndPoint(2, 3)
        c = Constraint(get_schema("DistancePL"), [pt, line])
        c.init_constants()
        before = dict(c.constants)
        pt.set(2, 9)
        c.set_constants_from_geometry()
        self.assertEqual(c.constants, before)
        self.assertFalse(get_schema("DistancePL").resyncable)
        self.assertTrue(get_schema("DistancePP").resyncable)


class TestOwnership(unittest.TestCase):

    def setUp(self):
        self.line = Segment(0, 0, 0, 10)
        self.src = EndPoint(3, 1)
        self.dst = EndPoint()

    def test_managed_objects_point_back(self):
        c = Constraint(get_schema("Mirror"), [self.line, self.src, self.dst])
        self.assertEqual(c.reference_objects, [self.line, self.src])
        self.assertEqual(c.managed_objects, [self.dst])
        self.assertIs(self.dst.managed_by, c)
        self.assertIsNone(self.src.managed_by)

    def test_second_manager_rejected(self):
        owner = Constraint(get_schema("Mirror"), [self.line, self.src, self.dst])
        with self.assertRaises(ManagedObjectConflictError):
            Constraint(get_schema("Mirror"), [self.line, EndPoint(5, 5), self.dst])
        self.assertIs(self.dst.managed_by, owner)

    def test_failed_claim_leaves_nothing_claimed(self):
        """Ownership is checked for every managed object before any is claimed."""
        owner = Constraint(get_schema("Mirror"), [self.line, self.src, self.dst])
        free = EndPoint()
        with self.assertRaises(ManagedObjectConflictError):
            Constraint(get_schema("Mirror"), [self.line, EndPoint(1, 1), EndPoint(2, 2), free, self.dst])
        self.assertIs(self.dst.managed_by, owner)
        self.assertIsNone(free.managed_by)

    def test_dispose_releases(self):
        c = Constraint(get_schema("Mirror"), [self.line, self.src, self.dst])
        c.dispose()
        self.assertIsNone(self.dst.managed_by)
        Constraint(get_schema("Mirror"), [self.line, self.src, self.dst])

    def test_manager_reference_is_weak(self):
        """Objects never keep their manager alive."""
        Constraint(get_schema("Mirror"), [self.line, self.src, self.dst])
        gc.collect()
        self.assertIsNone(self.dst.managed_by)


class TestPersistence(unittest.TestCase):

    def test_write_record(self):
        seg = Segment(0, 0, 3, 4)
        c = Constraint(get_schema("DistancePP"), [seg.a, seg.b])
        c.init_constants()
        self.assertEqual(c.write(), {
            "typeId": "DistancePP",
            "objects": [seg.a.id, seg.b.id],
            "constants": {"distance": "5.00"},
        })

    def test_write_without_constants(self):
        p1, p2 = EndPoint(), EndPoint(1, 1)
        record = Constraint(get_schema("PCoincident"), [p1, p2]).write()
        self.assertEqual(record["constants"], {})

    def test_read_round_trip(self):
        seg = Segment(0, 0, 3, 4)
        written = Constraint(get_schema("DistancePP"), [seg.a, seg.b], {"distance": "12.5"})
        restored = Constraint.read(written.write(), index_objects([seg]))
        self.assertIs(restored.schema, written.schema)
        self.assertEqual(restored.objects, [seg.a, seg.b])
        self.assertEqual(restored.constants, {"distance": "12.5"})
        self.assertEqual([p.id for p in restored.params], [p.id for p in written.params])

    def test_read_empty_constants_as_unset(self):
        p1, p2 = EndPoint(), EndPoint(1, 1)
        index = {p1.id: p1, p2.id: p2}
        record = {"typeId": "PCoincident", "objects": [p1.id, p2.id], "constants": {}}
        self.assertIsNone(Constraint.read(record, index).constants)

    def test_read_legacy_id(self):
        from sketchgcs.kernel import Circle

        circle = Circle(0, 0, 2)
        record = {"typeId": "RaduisLength", "objects": [circle.id], "constants": {"length": "2"}}
        c = Constraint.read(record, {circle.id: circle})
        self.assertEqual(c.write()["typeId"], "RadiusLength")

    def test_read_unknown_kind(self):
        with self.assertRaises(UnknownConstraintTypeError):
            Constraint.read({"typeId": "Bogus", "objects": []}, {})

    def test_read_missing_object(self):
        with self.assertRaises(KeyError):
            Constraint.read({"typeId": "LockPoint", "objects": ["P-missing"]}, {})


if __name__ == "__main__":
    unittest.main()
