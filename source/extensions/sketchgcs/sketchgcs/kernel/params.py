"""
Scalar parameters — the mutable numeric cells the solver drives.

A :class:`Param` has a stable identity for the whole life of a sketch.
Polynomials reference params by identity and read ``value`` lazily, so the
solver can update values between residual evaluations without rebuilding
any expression.

Auxiliary params (e.g. a curve position ``t``) may carry inequality
bounds.  Bounds are *not* part of any polynomial — the external solver
enforces them separately.
"""

from __future__ import annotations

import itertools
import operator
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class BoundKind(Enum):
    GREATER_THAN = ">"
    LESS_THAN = "<"


_BOUND_OPS = {
    BoundKind.GREATER_THAN: operator.gt,
    BoundKind.LESS_THAN: operator.lt,
}


@dataclass(frozen=True)
class ParamBound:
    """An open inequality bound ``value > limit`` or ``value < limit``."""
    kind: BoundKind
    limit: float

    def is_satisfied(self, value: float) -> bool:
        return _BOUND_OPS[self.kind](value, self.limit)


def greater_than(limit: float) -> ParamBound:
    return ParamBound(BoundKind.GREATER_THAN, limit)


def less_than(limit: float) -> ParamBound:
    return ParamBound(BoundKind.LESS_THAN, limit)


_param_ids = itertools.count()


class Param:
    """
    A scalar parameter cell.

    Args:
        value: Initial value.
        name: Debug label (``"x"``, ``"ang"``, ``"t"`` …).
        param_id: Explicit identity.  Auto-assigned when omitted.
    """

    __slots__ = ("id", "value", "name", "constraints")

    def __init__(self, value: float = 0.0, name: str = "", param_id: Optional[int] = None):
        self.id: int = next(_param_ids) if param_id is None else param_id
        self.value: float = float(value)
        self.name: str = name
        self.constraints: List[ParamBound] = []

    def get(self) -> float:
        return self.value

    def set(self, value: float):
        self.value = float(value)

    def bounds_satisfied(self) -> bool:
        """True if every attached bound holds for the current value."""
        return all(b.is_satisfied(self.value) for b in self.constraints)

    def __repr__(self) -> str:
        return f"Param({self.name or self.id}={self.value:g})"
