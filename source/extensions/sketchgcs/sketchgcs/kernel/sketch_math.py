"""
Small numeric helpers shared by shapes and constraint initialisers.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

DEG_RAD = math.pi / 180.0
TWO_PI = 2.0 * math.pi


def make_angle_0_360(angle: float) -> float:
    """Normalise an angle in radians to ``[0, 2π)``."""
    angle = math.fmod(angle, TWO_PI)
    if angle < 0:
        angle += TWO_PI
    # fmod of a tiny negative number can land exactly on 2π
    return 0.0 if angle >= TWO_PI else angle


def distance_ab(a, b) -> float:
    """Euclidean distance between two objects exposing ``.x`` / ``.y``."""
    return math.hypot(b.x - a.x, b.y - a.y)


def _control_points(p0, p1, p2, p3) -> np.ndarray:
    return np.array([p0, p1, p2, p3], dtype=np.float64)


def cubic_bezier_point(
    p0: Sequence[float], p1: Sequence[float],
    p2: Sequence[float], p3: Sequence[float],
    t: float,
) -> Tuple[float, float]:
    """Position on a cubic Bezier at parameter *t*."""
    cp = _control_points(p0, p1, p2, p3)
    mt = 1.0 - t
    w = np.array([mt ** 3, 3.0 * mt * mt * t, 3.0 * mt * t * t, t ** 3])
    x, y = w @ cp
    return float(x), float(y)


def cubic_bezier_der1(
    p0: Sequence[float], p1: Sequence[float],
    p2: Sequence[float], p3: Sequence[float],
    t: float,
) -> Tuple[float, float]:
    """First derivative (tangent vector) of a cubic Bezier at *t*."""
    cp = _control_points(p0, p1, p2, p3)
    mt = 1.0 - t
    w = np.array([-3.0 * mt * mt, 3.0 * mt * mt - 6.0 * mt * t, 6.0 * mt * t - 3.0 * t * t, 3.0 * t * t])
    x, y = w @ cp
    return float(x), float(y)


def cubic_bezier_der2(
    p0: Sequence[float], p1: Sequence[float],
    p2: Sequence[float], p3: Sequence[float],
    t: float,
) -> Tuple[float, float]:
    """Second derivative of a cubic Bezier at *t*."""
    cp = _control_points(p0, p1, p2, p3)
    w = np.array([6.0 * (1.0 - t), 6.0 * (3.0 * t - 2.0), 6.0 * (1.0 - 3.0 * t), 6.0 * t])
    x, y = w @ cp
    return float(x), float(y)
