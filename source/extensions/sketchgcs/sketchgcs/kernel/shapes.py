"""
Sketch geometry — the objects constraints are written against.

Every object owns its :class:`~.params.Param` cells and exposes them via
``visit_params(callback)`` in a fixed order.  Constraint schemas depend on
that order, so it must never change for a given kind:

==============  ====================================================
Kind            Visit order
==============  ====================================================
EndPoint        x, y
Segment         a.x, a.y, b.x, b.y, ang, t
Circle          c.x, c.y, r
Arc             r, ang1, ang2, a.x, a.y, b.x, b.y, c.x, c.y
Ellipse         c.x, c.y, rx, ry, rot
BezierCurve     p0, p3, p1, p2 (endpoints first)
==============  ====================================================

Lines are parametrised by an anchor ``a``, a direction angle ``ang`` and a
length ``t``.  The unit normal ``(nx, ny) = (-sin ang, cos ang)`` and offset
``w`` are derived, which keeps vertical lines free of slope singularities.
"""

from __future__ import annotations

import itertools
import math
import weakref
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .params import Param
from .sketch_math import DEG_RAD, make_angle_0_360

ParamVisitor = Callable[[Param], None]
# (x, y) -> mirrored (x, y)
PointMirroring = Callable[[float, float], Tuple[float, float]]

_object_ids = itertools.count(1)


class SketchObject:
    """Base class for anything a constraint can reference."""

    id_prefix = "O"

    def __init__(self, object_id: Optional[str] = None):
        self.id: str = object_id or f"{self.id_prefix}{next(_object_ids)}"
        self._managed_by: Optional[weakref.ref] = None

    # -- Modifier ownership ----------------------------------------------------
    # Non-owning back-reference to the modifier constraint that writes this
    # object.  The constraint store owns constraints; objects only point back.

    @property
    def managed_by(self):
        """The owning modifier constraint, or None."""
        return self._managed_by() if self._managed_by is not None else None

    def set_manager(self, constraint) -> None:
        self._managed_by = weakref.ref(constraint) if constraint is not None else None

    # -- Interface -------------------------------------------------------------

    def children(self) -> List["SketchObject"]:
        """Sub-objects that can be referenced on their own (end points, centres)."""
        return []

    def visit_params(self, callback: ParamVisitor):
        raise NotImplementedError

    def mirror(self, dest: "SketchObject", mirroring: PointMirroring):
        """Write the mirror image of *self* into *dest* (same kind)."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id})"


class EndPoint(SketchObject):
    id_prefix = "P"

    def __init__(self, x: float = 0.0, y: float = 0.0, object_id: Optional[str] = None):
        super().__init__(object_id)
        self.params_x = Param(x, "x")
        self.params_y = Param(y, "y")

    @property
    def x(self) -> float:
        return self.params_x.value

    @property
    def y(self) -> float:
        return self.params_y.value

    def set(self, x: float, y: float):
        self.params_x.set(x)
        self.params_y.set(y)

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def visit_params(self, callback: ParamVisitor):
        callback(self.params_x)
        callback(self.params_y)

    def mirror(self, dest: "EndPoint", mirroring: PointMirroring):
        dest.set(*mirroring(self.x, self.y))


@dataclass
class SegmentParams:
    ang: Param
    t: Param


class Segment(SketchObject):
    """A bounded line segment from ``a`` to ``b``."""

    id_prefix = "S"

    def __init__(
        self,
        x1: float, y1: float,
        x2: float, y2: float,
        object_id: Optional[str] = None,
    ):
        super().__init__(object_id)
        self.a = EndPoint(x1, y1, f"{self.id}.a")
        self.b = EndPoint(x2, y2, f"{self.id}.b")
        self.params = SegmentParams(ang=Param(0.0, "ang"), t=Param(0.0, "t"))
        self.sync_params()

    def sync_params(self):
        """Re-derive ``ang`` / ``t`` from the endpoint coordinates."""
        dx = self.b.x - self.a.x
        dy = self.b.y - self.a.y
        self.params.ang.set(make_angle_0_360(math.atan2(dy, dx)))
        self.params.t.set(math.hypot(dx, dy))

    @property
    def nx(self) -> float:
        return -math.sin(self.params.ang.value)

    @property
    def ny(self) -> float:
        return math.cos(self.params.ang.value)

    @property
    def w(self) -> float:
        return self.nx * self.a.x + self.ny * self.a.y

    def angle_deg(self) -> float:
        """Direction angle in degrees, ``[0, 360)``."""
        return make_angle_0_360(self.params.ang.value) / DEG_RAD

    def get_angle_from_normal(self) -> float:
        """
        Direction angle in degrees as recovered from the unit normal.

        Equivalent to :meth:`angle_deg` but independent of how many full
        turns the raw ``ang`` param has accumulated.
        """
        return make_angle_0_360(math.atan2(-self.nx, self.ny)) / DEG_RAD

    def children(self) -> List[SketchObject]:
        return [self.a, self.b]

    def visit_params(self, callback: ParamVisitor):
        self.a.visit_params(callback)
        self.b.visit_params(callback)
        callback(self.params.ang)
        callback(self.params.t)

    def mirror(self, dest: "Segment", mirroring: PointMirroring):
        self.a.mirror(dest.a, mirroring)
        self.b.mirror(dest.b, mirroring)
        dest.sync_params()


class Circle(SketchObject):
    id_prefix = "C"

    def __init__(self, cx: float, cy: float, r: float, object_id: Optional[str] = None):
        super().__init__(object_id)
        self.c = EndPoint(cx, cy, f"{self.id}.c")
        self.r = Param(r, "r")

    def children(self) -> List[SketchObject]:
        return [self.c]

    def visit_params(self, callback: ParamVisitor):
        self.c.visit_params(callback)
        callback(self.r)

    def mirror(self, dest: "Circle", mirroring: PointMirroring):
        self.c.mirror(dest.c, mirroring)
        dest.r.set(self.r.value)


class Arc(SketchObject):
    """Counter-clockwise circular arc from ``a`` to ``b`` around ``c``."""

    id_prefix = "A"

    def __init__(
        self,
        ax: float, ay: float,
        bx: float, by: float,
        cx: float, cy: float,
        object_id: Optional[str] = None,
    ):
        super().__init__(object_id)
        self.a = EndPoint(ax, ay, f"{self.id}.a")
        self.b = EndPoint(bx, by, f"{self.id}.b")
        self.c = EndPoint(cx, cy, f"{self.id}.c")
        self.r = Param(0.0, "r")
        self.ang1 = Param(0.0, "ang1")
        self.ang2 = Param(0.0, "ang2")
        self.sync_params()

    def sync_params(self):
        """Re-derive radius and end angles from ``a``, ``b`` and ``c``."""
        self.r.set(math.hypot(self.a.x - self.c.x, self.a.y - self.c.y))
        self.ang1.set(math.atan2(self.a.y - self.c.y, self.a.x - self.c.x))
        self.ang2.set(math.atan2(self.b.y - self.c.y, self.b.x - self.c.x))

    def children(self) -> List[SketchObject]:
        return [self.a, self.b, self.c]

    def visit_params(self, callback: ParamVisitor):
        callback(self.r)
        callback(self.ang1)
        callback(self.ang2)
        self.a.visit_params(callback)
        self.b.visit_params(callback)
        self.c.visit_params(callback)

    def mirror(self, dest: "Arc", mirroring: PointMirroring):
        # Reflection flips orientation: swap ends to stay counter-clockwise
        self.a.mirror(dest.b, mirroring)
        self.b.mirror(dest.a, mirroring)
        self.c.mirror(dest.c, mirroring)
        dest.sync_params()


class Ellipse(SketchObject):
    """Ellipse with centre ``c``, semi-axes ``rx``/``ry`` and rotation ``rot``."""

    id_prefix = "E"

    def __init__(
        self,
        cx: float, cy: float,
        rx: float, ry: float,
        rot: float = 0.0,
        object_id: Optional[str] = None,
    ):
        super().__init__(object_id)
        self.c = EndPoint(cx, cy, f"{self.id}.c")
        self.rx = Param(rx, "rx")
        self.ry = Param(ry, "ry")
        self.rot = Param(rot, "rot")

    def point_at(self, t: float) -> Tuple[float, float]:
        """Point at eccentric anomaly *t*."""
        ct, st = math.cos(t), math.sin(t)
        cr, sr = math.cos(self.rot.value), math.sin(self.rot.value)
        rx, ry = self.rx.value, self.ry.value
        return (
            self.c.x + rx * ct * cr - ry * st * sr,
            self.c.y + rx * ct * sr + ry * st * cr,
        )

    def eccentric_anomaly(self, x: float, y: float) -> float:
        """Eccentric anomaly of the ellipse point radially closest to ``(x, y)``."""
        cr, sr = math.cos(self.rot.value), math.sin(self.rot.value)
        dx, dy = x - self.c.x, y - self.c.y
        lx = dx * cr + dy * sr
        ly = -dx * sr + dy * cr
        return math.atan2(ly / self.ry.value, lx / self.rx.value)

    def children(self) -> List[SketchObject]:
        return [self.c]

    def visit_params(self, callback: ParamVisitor):
        self.c.visit_params(callback)
        callback(self.rx)
        callback(self.ry)
        callback(self.rot)

    def mirror(self, dest: "Ellipse", mirroring: PointMirroring):
        self.c.mirror(dest.c, mirroring)
        ax, ay = self.point_at(0.0)
        mx, my = mirroring(ax, ay)
        dest.rx.set(self.rx.value)
        dest.ry.set(self.ry.value)
        dest.rot.set(math.atan2(my - dest.c.y, mx - dest.c.x))


class BezierCurve(SketchObject):
    """Cubic Bezier with control points ``p0..p3``."""

    id_prefix = "B"

    def __init__(self, p0, p1, p2, p3, object_id: Optional[str] = None):
        super().__init__(object_id)
        self.p0 = EndPoint(*p0, object_id=f"{self.id}.p0")
        self.p1 = EndPoint(*p1, object_id=f"{self.id}.p1")
        self.p2 = EndPoint(*p2, object_id=f"{self.id}.p2")
        self.p3 = EndPoint(*p3, object_id=f"{self.id}.p3")

    @property
    def control_points(self):
        return [self.p0.to_tuple(), self.p1.to_tuple(), self.p2.to_tuple(), self.p3.to_tuple()]

    def children(self) -> List[SketchObject]:
        return [self.p0, self.p1, self.p2, self.p3]

    def visit_params(self, callback: ParamVisitor):
        self.p0.visit_params(callback)
        self.p3.visit_params(callback)
        self.p1.visit_params(callback)
        self.p2.visit_params(callback)

    def mirror(self, dest: "BezierCurve", mirroring: PointMirroring):
        self.p0.mirror(dest.p0, mirroring)
        self.p1.mirror(dest.p1, mirroring)
        self.p2.mirror(dest.p2, mirroring)
        self.p3.mirror(dest.p3, mirroring)


def index_objects(objects: Iterable[SketchObject]) -> Dict[str, SketchObject]:
    """Map ids to objects, including every sub-object, for :meth:`Constraint.read`."""
    index: Dict[str, SketchObject] = {}
    stack = list(objects)
    while stack:
        obj = stack.pop()
        index[obj.id] = obj
        stack.extend(obj.children())
    return index
