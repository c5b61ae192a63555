"""
Constraint schemas — the catalog of constraint *kinds*.

A schema knows three things about its kind:

* **Scope** — ``define_params_scope(objects, visit)`` lists, in a fixed
  order, every :class:`~.params.Param` the algebra needs.  It may create
  auxiliary params (e.g. a Bezier position ``t``) that belong to no object.
* **Residuals** — ``collect_polynomials(out, params, constants)`` appends
  :class:`~.polynomial.Polynomial` residuals built *only* from the scoped
  params (in scope order) and the resolved constants.
* **Constants** — named values declared with a type, an initialiser that
  reads current geometry, and an optional transform applied before the
  value enters the algebra (e.g. degrees → radians).

Modifier kinds (:class:`ModifierSchema`) skip the algebra and rewrite
*managed* geometry from *reference* geometry directly.

Composite kinds (Vertical, Symmetry, Fillet …) call the helper functions of
the simpler kinds they are made of; the concatenation order of the scope
must match the order the helpers are invoked in.

Schemas are stateless singletons held in the read-only
:data:`CONSTRAINT_SCHEMAS` table, keyed by their persisted ``id``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional, Sequence

import numpy as np

from .config import DEFAULT_CONFIG, ConstraintConfig
from .params import Param, greater_than, less_than
from .polynomial import COS_FN, POW_1_FN, POW_2_FN, POW_3_FN, SIN_FN, Polynomial
from .shapes import ParamVisitor
from .sketch_math import (
    DEG_RAD,
    cubic_bezier_der1,
    cubic_bezier_point,
    distance_ab,
    make_angle_0_360,
)


class ConstraintError(Exception):
    """Base class for constraint construction / lookup failures."""


class UnknownConstraintTypeError(ConstraintError, LookupError):
    """A persisted ``typeId`` has no registered schema."""


# =========================================================================
# Schema building blocks
# =========================================================================

class ConstantType(Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class ConstantDefinition:
    """
    Declaration of one named constant.

    Attributes:
        type: Semantic type; numbers are parsed from their string form.
        description: Human-readable label for the property editor.
        initial_value: ``objects -> raw value`` computed from geometry.
        transform: Optional ``raw -> solver value`` mapping.
        read_only: Constant is derived, not user-editable.
    """
    type: ConstantType
    description: str
    initial_value: Callable[[Sequence[Any]], Any]
    transform: Optional[Callable[[Any], Any]] = None
    read_only: bool = False


Polynomials = List[Polynomial]
Constants = Mapping[str, Any]


class ConstraintSchema:
    """Common surface of every constraint kind."""
    id: str = ""
    name: str = ""
    constants: Mapping[str, ConstantDefinition] = MappingProxyType({})
    is_modifier: bool = False

    def define_params_scope(
        self,
        objects: Sequence[Any],
        visit: ParamVisitor,
        config: ConstraintConfig = DEFAULT_CONFIG,
    ):
        raise NotImplementedError

    def set_constants_from_geometry(self, objects: Sequence[Any], constants: MutableMapping[str, Any]):
        """Re-anchor raw constants to current geometry.  No-op by default."""

    @property
    def resyncable(self) -> bool:
        return type(self).set_constants_from_geometry is not ConstraintSchema.set_constants_from_geometry

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class AlgebraicSchema(ConstraintSchema):
    """A kind that contributes polynomial residuals to the solver."""

    def collect_polynomials(self, out: Polynomials, params: Sequence[Param], constants: Constants):
        raise NotImplementedError


class ModifierSchema(ConstraintSchema):
    """A kind that recomputes managed geometry from reference geometry."""
    is_modifier = True

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        # Modifiers take no part in the algebraic system
        pass

    def modify(self, reference_objects: Sequence[Any], managed_objects: Sequence[Any], constants: Constants):
        raise NotImplementedError

    def reference_objects(self, objects: Sequence[Any]) -> List[Any]:
        raise NotImplementedError

    def managed_objects(self, objects: Sequence[Any]) -> List[Any]:
        raise NotImplementedError


def _raw(value: float) -> str:
    """Full-precision raw string for constants written back from geometry."""
    return str(float(value))


def _deg_to_rad(degree: float) -> float:
    return degree * DEG_RAD


# =========================================================================
# Shared residual builders
# =========================================================================

def coincident_polynomials(out: Polynomials, x1: Param, y1: Param, x2: Param, y2: Param):
    """``x1 - x2 = 0`` and ``y1 - y2 = 0``."""
    out.append(Polynomial(0).monomial(1).term(x1, POW_1_FN).monomial(-1).term(x2, POW_1_FN))
    out.append(Polynomial(0).monomial(1).term(y1, POW_1_FN).monomial(-1).term(y2, POW_1_FN))


def point_on_line_polynomial(x: Param, y: Param, ax: Param, ay: Param, ang: Param) -> Polynomial:
    """Signed distance ``n·(p - a)`` of ``(x, y)`` from the line through ``a``."""
    return (
        Polynomial(0)
        .monomial(-1).term(x, POW_1_FN).term(ang, SIN_FN)
        .monomial(1).term(y, POW_1_FN).term(ang, COS_FN)
        .monomial(1).term(ax, POW_1_FN).term(ang, SIN_FN)
        .monomial(-1).term(ay, POW_1_FN).term(ang, COS_FN)
    )


def equidistant_polynomial(
    x1: Param, y1: Param,
    x2: Param, y2: Param,
    x3: Param, y3: Param,
) -> Polynomial:
    """``|p1 - p2|² - |p3 - p2|²`` with the ``p2²`` terms cancelled."""
    return (
        Polynomial()
        .monomial(1).term(x1, POW_2_FN)
        .monomial(-2).term(x1, POW_1_FN).term(x2, POW_1_FN)
        .monomial(1).term(y1, POW_2_FN)
        .monomial(-2).term(y1, POW_1_FN).term(y2, POW_1_FN)
        .monomial(-1).term(x3, POW_2_FN)
        .monomial(2).term(x3, POW_1_FN).term(x2, POW_1_FN)
        .monomial(-1).term(y3, POW_2_FN)
        .monomial(2).term(y3, POW_1_FN).term(y2, POW_1_FN)
    )


def middle_point_scope(objects, visit: ParamVisitor):
    """``segment.a``, ``pt``, ``segment.b`` — the layout of :func:`equidistant_polynomial`."""
    pt, segment = objects
    segment.a.visit_params(visit)
    pt.visit_params(visit)
    segment.b.visit_params(visit)


def squared_distance_polynomial(
    x1: Param, y1: Param,
    x2: Param, y2: Param,
    constant: float = 0.0,
) -> Polynomial:
    """``constant + (x1 - x2)² + (y1 - y2)²`` fully expanded."""
    return (
        Polynomial(constant)
        .monomial(1).term(x1, POW_2_FN)
        .monomial(1).term(x2, POW_2_FN)
        .monomial(-2).term(x1, POW_1_FN).term(x2, POW_1_FN)
        .monomial(1).term(y1, POW_2_FN)
        .monomial(1).term(y2, POW_2_FN)
        .monomial(-2).term(y1, POW_1_FN).term(y2, POW_1_FN)
    )


def tangent_lc_polynomial(
    ang: Param, ax: Param, ay: Param,
    cx: Param, cy: Param, r: Param,
    inverted: bool,
) -> Polynomial:
    """Signed distance from centre ``c`` to the line equals ``±r``."""
    return (
        Polynomial(0)
        .monomial(-1).term(cx, POW_1_FN).term(ang, SIN_FN)
        .monomial(1).term(cy, POW_1_FN).term(ang, COS_FN)
        .monomial(1).term(ax, POW_1_FN).term(ang, SIN_FN)
        .monomial(-1).term(ay, POW_1_FN).term(ang, COS_FN)
        .monomial(-(-1 if inverted else 1)).term(r, POW_1_FN)
    )


def line_side_inverted(line, x: float, y: float) -> bool:
    """True when ``(x, y)`` lies on the negative-normal side of *line*."""
    return line.nx * x + line.ny * y < line.w


# -- Cubic Bezier, expanded in t ----------------------------------------------

def bezier3_polynomial(p: Param, t: Param, p0: Param, p1: Param, p2: Param, p3: Param) -> Polynomial:
    """``B(t) - p`` for one coordinate of a cubic Bezier (degree 3 in t)."""
    return (
        Polynomial()
        .monomial(-1).term(t, POW_3_FN).term(p0, POW_1_FN)
        .monomial(3).term(t, POW_2_FN).term(p0, POW_1_FN)
        .monomial(-3).term(t, POW_1_FN).term(p0, POW_1_FN)
        .monomial(1).term(p0, POW_1_FN)

        .monomial(3).term(t, POW_3_FN).term(p1, POW_1_FN)
        .monomial(-6).term(t, POW_2_FN).term(p1, POW_1_FN)
        .monomial(3).term(t, POW_1_FN).term(p1, POW_1_FN)

        .monomial(-3).term(t, POW_3_FN).term(p2, POW_1_FN)
        .monomial(3).term(t, POW_2_FN).term(p2, POW_1_FN)

        .monomial(1).term(t, POW_3_FN).term(p3, POW_1_FN)

        .monomial(-1).term(p, POW_1_FN)
    )


def bezier3_der1_polynomial(p: Param, t: Param, p0: Param, p1: Param, p2: Param, p3: Param) -> Polynomial:
    """``B'(t) - p`` (degree 2 in t)."""
    # -3 P0 t^2 + 6 P0 t - 3 P0 + 9 P1 t^2 - 12 P1 t + 3 P1 - 9 P2 t^2 + 6 P2 t + 3 P3 t^2
    return (
        Polynomial()
        .monomial(-3).term(p0, POW_1_FN).term(t, POW_2_FN)
        .monomial(6).term(p0, POW_1_FN).term(t, POW_1_FN)
        .monomial(-3).term(p0, POW_1_FN)
        .monomial(9).term(p1, POW_1_FN).term(t, POW_2_FN)
        .monomial(-12).term(p1, POW_1_FN).term(t, POW_1_FN)
        .monomial(3).term(p1, POW_1_FN)
        .monomial(-9).term(p2, POW_1_FN).term(t, POW_2_FN)
        .monomial(6).term(p2, POW_1_FN).term(t, POW_1_FN)
        .monomial(3).term(p3, POW_1_FN).term(t, POW_2_FN)
        .monomial(-1).term(p, POW_1_FN)
    )


def bezier3_der2_polynomial(p: Param, t: Param, p0: Param, p1: Param, p2: Param, p3: Param) -> Polynomial:
    """``B''(t) - p`` (degree 1 in t)."""
    # -6 P0 t + 6 P0 + 18 P1 t - 12 P1 - 18 P2 t + 6 P2 + 6 P3 t
    return (
        Polynomial()
        .monomial(-6).term(p0, POW_1_FN).term(t, POW_1_FN)
        .monomial(6).term(p0, POW_1_FN)
        .monomial(18).term(p1, POW_1_FN).term(t, POW_1_FN)
        .monomial(-12).term(p1, POW_1_FN)
        .monomial(-18).term(p2, POW_1_FN).term(t, POW_1_FN)
        .monomial(6).term(p2, POW_1_FN)
        .monomial(6).term(p3, POW_1_FN).term(t, POW_1_FN)
        .monomial(-1).term(p, POW_1_FN)
    )


def _curve_param(config: ConstraintConfig) -> Param:
    t = Param(config.curve_param_initial, "t")
    t.constraints = [greater_than(config.curve_param_lower), less_than(config.curve_param_upper)]
    return t


# -- Orientation helpers ------------------------------------------------------

def angle_scope(objects, visit: ParamVisitor):
    segment, = objects
    visit(segment.params.ang)


def angle_polynomials(out: Polynomials, params, constants: Constants):
    x, = params
    out.append(Polynomial(-constants["angle"]).monomial(1).term(x, POW_1_FN))


def angle_between_scope(objects, visit: ParamVisitor):
    segment1, segment2 = objects
    visit(segment1.params.ang)
    visit(segment2.params.ang)


def angle_between_polynomials(out: Polynomials, params, constants: Constants):
    x1, x2 = params
    out.append(
        Polynomial(-constants["angle"])
        .monomial(1).term(x2, POW_1_FN)
        .monomial(-1).term(x1, POW_1_FN)
    )


def relative_angle_deg(segment1, segment2) -> float:
    """Angle from *segment1* to *segment2* in degrees, ``[0, 360)``."""
    return make_angle_0_360(segment2.params.ang.value - segment1.params.ang.value) / DEG_RAD


def nearest_vertical(deg: float) -> float:
    """Pick 90 or 270, whichever is closer to *deg* (``[0, 360)``)."""
    return 90.0 if abs(270.0 - deg) > abs(90.0 - deg) else 270.0


def nearest_horizontal(deg: float) -> float:
    """Pick 0 or 180, whichever is closer to *deg* (``[0, 360)``)."""
    return 0.0 if abs(180.0 - deg) > min(abs(360.0 - deg), abs(deg)) else 180.0


# =========================================================================
# Point relations
# =========================================================================

class PCoincident(AlgebraicSchema):
    id = "PCoincident"
    name = "Two Points Coincidence"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        p1, p2 = objects
        p1.visit_params(visit)
        p2.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        x1, y1, x2, y2 = params
        coincident_polynomials(out, x1, y1, x2, y2)


class PointOnLine(AlgebraicSchema):
    id = "PointOnLine"
    name = "Point On Line"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        pt, segment = objects
        pt.visit_params(visit)
        segment.a.visit_params(visit)
        visit(segment.params.ang)

    def collect_polynomials(self, out, params, constants):
        x, y, ax, ay, ang = params
        out.append(point_on_line_polynomial(x, y, ax, ay, ang))


class PointOnCircle(AlgebraicSchema):
    id = "PointOnCircle"
    name = "Point On Circle"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        pt, circle = objects
        pt.visit_params(visit)
        circle.c.visit_params(visit)
        visit(circle.r)

    def collect_polynomials(self, out, params, constants):
        x1, y1, x2, y2, r = params
        poly = squared_distance_polynomial(x1, y1, x2, y2)
        poly.monomial(-1).term(r, POW_2_FN)
        out.append(poly)


class PointInMiddle(AlgebraicSchema):
    """The point is equidistant from both segment ends."""
    id = "PointInMiddle"
    name = "Middle Point"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        middle_point_scope(objects, visit)

    def collect_polynomials(self, out, params, constants):
        out.append(equidistant_polynomial(*params))


class Symmetry(AlgebraicSchema):
    """Segment ends symmetric about the point: equidistant *and* collinear."""
    id = "Symmetry"
    name = "Symmetry"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        middle_point_scope(objects, visit)
        visit(objects[1].params.ang)

    def collect_polynomials(self, out, params, constants):
        x1, y1, x2, y2, x3, y3, ang = params
        out.append(equidistant_polynomial(x1, y1, x2, y2, x3, y3))
        out.append(point_on_line_polynomial(x2, y2, x1, y1, ang))


class DistancePP(AlgebraicSchema):
    id = "DistancePP"
    name = "Distance Between Two Point"
    constants = MappingProxyType({
        "distance": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="the distance between two points",
            initial_value=lambda objects: distance_ab(*objects),
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        pt1, pt2 = objects
        pt1.visit_params(visit)
        pt2.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        x1, y1, x2, y2 = params
        distance = constants["distance"]
        out.append(squared_distance_polynomial(x1, y1, x2, y2, -distance * distance))

    def set_constants_from_geometry(self, objects, constants):
        constants["distance"] = _raw(distance_ab(*objects))


def _signed_point_line_distance(objects) -> float:
    p, line = objects
    return line.nx * p.x + line.ny * p.y - line.nx * line.a.x - line.ny * line.a.y


class DistancePL(AlgebraicSchema):
    id = "DistancePL"
    name = "Distance Between Point And Line"
    constants = MappingProxyType({
        "distance": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="the distance between the point and the line",
            initial_value=lambda objects: abs(_signed_point_line_distance(objects)),
        ),
        "inverted": ConstantDefinition(
            type=ConstantType.BOOLEAN,
            description="whether constraint is being calculated on opposite side of the line",
            initial_value=lambda objects: _signed_point_line_distance(objects) < 0,
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        p, line = objects
        p.visit_params(visit)
        visit(line.params.ang)
        line.a.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        x, y, ang, ax, ay = params
        sign = -1 if constants["inverted"] else 1
        poly = point_on_line_polynomial(x, y, ax, ay, ang)
        poly.constant = -sign * constants["distance"]
        out.append(poly)


class LockPoint(AlgebraicSchema):
    id = "LockPoint"
    name = "Lock Point"
    constants = MappingProxyType({
        "x": ConstantDefinition(ConstantType.NUMBER, "X Coordinate", lambda objects: objects[0].x),
        "y": ConstantDefinition(ConstantType.NUMBER, "Y Coordinate", lambda objects: objects[0].y),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        pt, = objects
        pt.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        px, py = params
        out.append(Polynomial(-constants["x"]).monomial().term(px, POW_1_FN))
        out.append(Polynomial(-constants["y"]).monomial().term(py, POW_1_FN))

    def set_constants_from_geometry(self, objects, constants):
        pt, = objects
        constants["x"] = _raw(pt.x)
        constants["y"] = _raw(pt.y)


class Polar(AlgebraicSchema):
    """*target* sits at ``origin + t·(cos ang, sin ang)`` of *segment*."""
    id = "Polar"
    name = "Polar Coordinate"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        segment, origin_pt, target_pt = objects
        visit(segment.params.ang)
        visit(segment.params.t)
        origin_pt.visit_params(visit)
        target_pt.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        ang, t, x1, y1, x2, y2 = params
        out.append(
            Polynomial()
            .monomial(1).term(x1, POW_1_FN)
            .monomial(1).term(ang, COS_FN).term(t, POW_1_FN)
            .monomial(-1).term(x2, POW_1_FN)
        )
        out.append(
            Polynomial()
            .monomial(1).term(y1, POW_1_FN)
            .monomial(1).term(ang, SIN_FN).term(t, POW_1_FN)
            .monomial(-1).term(y2, POW_1_FN)
        )


# =========================================================================
# Orientation
# =========================================================================

class Angle(AlgebraicSchema):
    id = "Angle"
    name = "Absolute Line Angle"
    constants = MappingProxyType({
        "angle": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="line angle",
            initial_value=lambda objects: objects[0].get_angle_from_normal(),
            transform=lambda degree: (degree % 360) * DEG_RAD,
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        angle_scope(objects, visit)

    def collect_polynomials(self, out, params, constants):
        angle_polynomials(out, params, constants)

    def set_constants_from_geometry(self, objects, constants):
        constants["angle"] = _raw(objects[0].get_angle_from_normal())


class Vertical(AlgebraicSchema):
    """Absolute angle frozen at 90° or 270°, whichever is nearer at creation."""
    id = "Vertical"
    name = "Line Verticality"
    constants = MappingProxyType({
        "angle": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="line angle",
            initial_value=lambda objects: nearest_vertical(objects[0].angle_deg()),
            transform=_deg_to_rad,
            read_only=True,
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        angle_scope(objects, visit)

    def collect_polynomials(self, out, params, constants):
        angle_polynomials(out, params, constants)

    def set_constants_from_geometry(self, objects, constants):
        constants["angle"] = _raw(nearest_vertical(objects[0].angle_deg()))


class Horizontal(AlgebraicSchema):
    """Absolute angle frozen at 0° or 180°, whichever is nearer at creation."""
    id = "Horizontal"
    name = "Line Horizontality"
    constants = MappingProxyType({
        "angle": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="line angle",
            initial_value=lambda objects: nearest_horizontal(objects[0].angle_deg()),
            transform=_deg_to_rad,
            read_only=True,
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        angle_scope(objects, visit)

    def collect_polynomials(self, out, params, constants):
        angle_polynomials(out, params, constants)

    def set_constants_from_geometry(self, objects, constants):
        constants["angle"] = _raw(nearest_horizontal(objects[0].angle_deg()))


class AngleBetween(AlgebraicSchema):
    id = "AngleBetween"
    name = "Angle Between Two Lines"
    constants = MappingProxyType({
        "angle": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="line angle",
            initial_value=lambda objects: relative_angle_deg(*objects),
            transform=_deg_to_rad,
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        angle_between_scope(objects, visit)

    def collect_polynomials(self, out, params, constants):
        angle_between_polynomials(out, params, constants)

    def set_constants_from_geometry(self, objects, constants):
        constants["angle"] = _raw(relative_angle_deg(*objects))


class Perpendicular(AlgebraicSchema):
    id = "Perpendicular"
    name = "Perpendicular"
    constants = MappingProxyType({
        "angle": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="line angle",
            initial_value=lambda objects: nearest_vertical(relative_angle_deg(*objects)),
            transform=_deg_to_rad,
            read_only=True,
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        angle_between_scope(objects, visit)

    def collect_polynomials(self, out, params, constants):
        angle_between_polynomials(out, params, constants)

    def set_constants_from_geometry(self, objects, constants):
        constants["angle"] = _raw(nearest_vertical(relative_angle_deg(*objects)))


class Parallel(AlgebraicSchema):
    id = "Parallel"
    name = "Parallel"
    constants = MappingProxyType({
        "angle": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="line angle",
            initial_value=lambda objects: nearest_horizontal(relative_angle_deg(*objects)),
            transform=_deg_to_rad,
            read_only=True,
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        angle_between_scope(objects, visit)

    def collect_polynomials(self, out, params, constants):
        angle_between_polynomials(out, params, constants)

    def set_constants_from_geometry(self, objects, constants):
        constants["angle"] = _raw(nearest_horizontal(relative_angle_deg(*objects)))


# =========================================================================
# Dimensions
# =========================================================================

def _segment_length(segment) -> float:
    return math.hypot(segment.b.x - segment.a.x, segment.b.y - segment.a.y)


class SegmentLength(AlgebraicSchema):
    id = "SegmentLength"
    name = "Segment Length"
    constants = MappingProxyType({
        "length": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="length of the segment",
            initial_value=lambda objects: _segment_length(objects[0]),
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        segment, = objects
        visit(segment.params.t)

    def collect_polynomials(self, out, params, constants):
        t, = params
        out.append(Polynomial(-constants["length"]).monomial(1).term(t, POW_1_FN))

    def set_constants_from_geometry(self, objects, constants):
        constants["length"] = _raw(_segment_length(objects[0]))


class RadiusLength(AlgebraicSchema):
    id = "RadiusLength"
    name = "Radius Length"
    constants = MappingProxyType({
        "length": ConstantDefinition(
            type=ConstantType.NUMBER,
            description="length of the radius",
            initial_value=lambda objects: objects[0].r.get(),
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        circle, = objects
        visit(circle.r)

    def collect_polynomials(self, out, params, constants):
        r, = params
        out.append(Polynomial(-constants["length"]).monomial(1).term(r, POW_1_FN))

    def set_constants_from_geometry(self, objects, constants):
        constants["length"] = _raw(objects[0].r.get())


class EqualRadius(AlgebraicSchema):
    id = "EqualRadius"
    name = "Equal Radius"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        c1, c2 = objects
        visit(c1.r)
        visit(c2.r)

    def collect_polynomials(self, out, params, constants):
        r1, r2 = params
        out.append(Polynomial().monomial().term(r1, POW_1_FN).monomial(-1).term(r2, POW_1_FN))


class EqualLength(AlgebraicSchema):
    id = "EqualLength"
    name = "Equal Length"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        s1, s2 = objects
        visit(s1.params.t)
        visit(s2.params.t)

    def collect_polynomials(self, out, params, constants):
        t1, t2 = params
        out.append(Polynomial().monomial().term(t1, POW_1_FN).monomial(-1).term(t2, POW_1_FN))


class ArcConsistency(AlgebraicSchema):
    """Keeps an arc's end points on its circle at ``ang1`` / ``ang2``."""
    id = "ArcConsistency"
    name = "Arc Consistency"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        arc, = objects
        arc.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        r, ang1, ang2, ax, ay, bx, by, cx, cy = params
        for px, py, ang in ((ax, ay, ang1), (bx, by, ang2)):
            out.append(
                Polynomial()
                .monomial(-1).term(px, POW_1_FN)
                .monomial().term(cx, POW_1_FN)
                .monomial().term(r, POW_1_FN).term(ang, COS_FN)
            )
            out.append(
                Polynomial()
                .monomial(-1).term(py, POW_1_FN)
                .monomial().term(cy, POW_1_FN)
                .monomial().term(r, POW_1_FN).term(ang, SIN_FN)
            )


# =========================================================================
# Tangency
# =========================================================================

class TangentLC(AlgebraicSchema):
    id = "TangentLC"
    name = "Line & Circle Tangency"
    constants = MappingProxyType({
        "inverted": ConstantDefinition(
            type=ConstantType.BOOLEAN,
            description="whether the circle attached from the opposite side",
            initial_value=lambda objects: line_side_inverted(objects[0], objects[1].c.x, objects[1].c.y),
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        segment, circle = objects
        visit(segment.params.ang)
        segment.a.visit_params(visit)
        circle.c.visit_params(visit)
        visit(circle.r)

    def collect_polynomials(self, out, params, constants):
        ang, ax, ay, cx, cy, r = params
        out.append(tangent_lc_polynomial(ang, ax, ay, cx, cy, r, constants["inverted"]))


class Fillet(AlgebraicSchema):
    """Both lines tangent to the shared arc."""
    id = "Fillet"
    name = "Fillet Between Two Lines"
    constants = MappingProxyType({
        "inverted1": ConstantDefinition(
            type=ConstantType.BOOLEAN,
            description="whether the arc is attached to the first line from the opposite side",
            initial_value=lambda objects: line_side_inverted(objects[0], objects[2].c.x, objects[2].c.y),
        ),
        "inverted2": ConstantDefinition(
            type=ConstantType.BOOLEAN,
            description="whether the arc is attached to the second line from the opposite side",
            initial_value=lambda objects: line_side_inverted(objects[1], objects[2].c.x, objects[2].c.y),
        ),
    })

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        l1, l2, arc = objects
        visit(l1.params.ang)
        l1.a.visit_params(visit)
        visit(l2.params.ang)
        l2.a.visit_params(visit)
        arc.c.visit_params(visit)
        visit(arc.r)

    def collect_polynomials(self, out, params, constants):
        ang1, ax1, ay1, ang2, ax2, ay2, cx, cy, r = params
        out.append(tangent_lc_polynomial(ang1, ax1, ay1, cx, cy, r, constants["inverted1"]))
        out.append(tangent_lc_polynomial(ang2, ax2, ay2, cx, cy, r, constants["inverted2"]))


# =========================================================================
# Curves
# =========================================================================

class PointOnBezier(AlgebraicSchema):
    id = "PointOnBezier"
    name = "Point On Bezier Curve"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        pt, curve = objects
        curve.visit_params(visit)
        visit(_curve_param(config))
        pt.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        p0x, p0y, p3x, p3y, p1x, p1y, p2x, p2y, t, px, py = params
        out.append(bezier3_polynomial(px, t, p0x, p1x, p2x, p3x))
        out.append(bezier3_polynomial(py, t, p0y, p1y, p2y, p3y))


class TangentLineBezier(AlgebraicSchema):
    """
    The line touches the curve at an auxiliary position ``t``.

    Auxiliary unknowns: ``t``, the touch point ``(px, py)`` and the curve
    tangent ``(nx, ny)`` there.  Residuals pin the touch point and tangent
    to the curve, make the tangent parallel to the line, and put the touch
    point on the line.
    """
    id = "TangentLineBezier"
    name = "Line & Bezier Tangency"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        segment, curve = objects
        t0 = _curve_param(config)
        cp = curve.control_points
        x0, y0 = cubic_bezier_point(*cp, t0.get())
        nx0, ny0 = cubic_bezier_der1(*cp, t0.get())
        curve.visit_params(visit)
        visit(t0)
        visit(Param(x0, "X"))
        visit(Param(y0, "Y"))
        visit(Param(nx0, "nx"))
        visit(Param(ny0, "ny"))
        visit(segment.params.ang)
        segment.a.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        p0x, p0y, p3x, p3y, p1x, p1y, p2x, p2y, t, px, py, nx, ny, ang, ax, ay = params
        out.append(bezier3_polynomial(px, t, p0x, p1x, p2x, p3x))
        out.append(bezier3_polynomial(py, t, p0y, p1y, p2y, p3y))
        out.append(bezier3_der1_polynomial(nx, t, p0x, p1x, p2x, p3x))
        out.append(bezier3_der1_polynomial(ny, t, p0y, p1y, p2y, p3y))
        out.append(
            Polynomial()
            .monomial(-1).term(ny, POW_1_FN).term(ang, COS_FN)
            .monomial().term(nx, POW_1_FN).term(ang, SIN_FN)
        )
        out.append(point_on_line_polynomial(px, py, ax, ay, ang))


class PointOnEllipse(AlgebraicSchema):
    """
    Point on the parametric ellipse
    ``c + rx·cos t·(cos rot, sin rot) + ry·sin t·(-sin rot, cos rot)``.

    ``t`` (eccentric anomaly) is an auxiliary, unbounded param seeded from
    the point's current position.
    """
    id = "PointOnEllipse"
    name = "Point On Ellipse"

    def define_params_scope(self, objects, visit, config=DEFAULT_CONFIG):
        pt, ellipse = objects
        ellipse.visit_params(visit)
        visit(Param(ellipse.eccentric_anomaly(pt.x, pt.y), "t"))
        pt.visit_params(visit)

    def collect_polynomials(self, out, params, constants):
        cx, cy, rx, ry, rot, t, px, py = params
        out.append(
            Polynomial()
            .monomial().term(cx, POW_1_FN)
            .monomial().term(rx, POW_1_FN).term(t, COS_FN).term(rot, COS_FN)
            .monomial(-1).term(ry, POW_1_FN).term(t, SIN_FN).term(rot, SIN_FN)
            .monomial(-1).term(px, POW_1_FN)
        )
        out.append(
            Polynomial()
            .monomial().term(cy, POW_1_FN)
            .monomial().term(rx, POW_1_FN).term(t, COS_FN).term(rot, SIN_FN)
            .monomial().term(ry, POW_1_FN).term(t, SIN_FN).term(rot, COS_FN)
            .monomial(-1).term(py, POW_1_FN)
        )


# =========================================================================
# Modifiers
# =========================================================================

class Mirror(ModifierSchema):
    """
    Mirror objects across a line.

    Object layout: ``[line, src_1 … src_k, dst_1 … dst_k]``.  The line and
    sources are reference objects; each ``dst_i`` is rewritten as the
    reflection of ``src_i``.
    """
    id = "Mirror"
    name = "Mirror Objects"

    def modify(self, reference_objects, managed_objects, constants):
        reflection_line = reference_objects[0]
        a, b = reflection_line.a, reflection_line.b
        direction = np.array([-(b.y - a.y), b.x - a.x], dtype=np.float64)
        direction /= np.linalg.norm(direction)
        origin = np.array([a.x, a.y], dtype=np.float64)

        def point_mirroring(x: float, y: float):
            pt = np.array([x, y], dtype=np.float64)
            proj = direction.dot(pt - origin)
            mx, my = pt - 2.0 * proj * direction
            return float(mx), float(my)

        for i, managed in enumerate(managed_objects):
            reference_objects[i + 1].mirror(managed, point_mirroring)

    def reference_objects(self, objects):
        return list(objects[:(len(objects) >> 1) + 1])

    def managed_objects(self, objects):
        return list(objects[(len(objects) + 1) >> 1:])


# =========================================================================
# Registry
# =========================================================================

CONSTRAINT_SCHEMAS: Mapping[str, ConstraintSchema] = MappingProxyType({
    schema.id: schema
    for schema in (
        PCoincident(),
        TangentLC(),
        PointOnLine(),
        PointOnCircle(),
        PointOnBezier(),
        TangentLineBezier(),
        PointOnEllipse(),
        PointInMiddle(),
        Symmetry(),
        DistancePP(),
        DistancePL(),
        Angle(),
        Vertical(),
        Horizontal(),
        AngleBetween(),
        Perpendicular(),
        Parallel(),
        SegmentLength(),
        RadiusLength(),
        Polar(),
        EqualRadius(),
        EqualLength(),
        LockPoint(),
        ArcConsistency(),
        Fillet(),
        Mirror(),
    )
})

# Ids written by older files
_LEGACY_IDS: Dict[str, str] = {"RaduisLength": RadiusLength.id}


def get_schema(type_id: str) -> ConstraintSchema:
    """Look up a schema by its persisted id."""
    schema = CONSTRAINT_SCHEMAS.get(_LEGACY_IDS.get(type_id, type_id))
    if schema is None:
        raise UnknownConstraintTypeError(f"constraint schema '{type_id}' doesn't exist")
    return schema
