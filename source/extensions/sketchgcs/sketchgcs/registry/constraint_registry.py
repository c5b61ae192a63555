"""
Constraint Registry — the live constraints of one sketch.

The registry owns :class:`~sketchgcs.kernel.constraint.Constraint`
instances; sketch objects are owned elsewhere and only *referenced* by id.
A solver host talks to the registry rather than to individual constraints:

- :meth:`ConstraintRegistry.collect_polynomials` once per residual pass,
- :meth:`ConstraintRegistry.run_modifiers` once the algebra has settled,
- :meth:`ConstraintRegistry.to_json` / :meth:`from_json` for persistence.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, List, Mapping, Optional, Sequence

import numpy as np

from ..kernel.config import DEFAULT_CONFIG, ConstraintConfig
from ..kernel.constraint import Constraint
from ..kernel.constraint_schemas import ConstraintError, get_schema
from ..kernel.params import Param
from ..kernel.polynomial import Polynomial

logger = logging.getLogger(__name__)


class ConstraintRegistry:
    """
    Ordered store of constraints for a single sketch.

    Removing or clearing constraints disposes them, which releases any
    objects a modifier was managing.
    """

    def __init__(self, config: ConstraintConfig = DEFAULT_CONFIG):
        self.config = config
        self._constraints: List[Constraint] = []

    # ── Queries ─────────────────────────────────────────────────────────────

    @property
    def constraints(self) -> List[Constraint]:
        return list(self._constraints)

    @property
    def count(self) -> int:
        return len(self._constraints)

    @property
    def modifiers(self) -> List[Constraint]:
        return [c for c in self._constraints if c.is_modifier]

    @property
    def algebraic(self) -> List[Constraint]:
        return [c for c in self._constraints if not c.is_modifier]

    def __len__(self) -> int:
        return len(self._constraints)

    def __iter__(self) -> Iterator[Constraint]:
        return iter(list(self._constraints))

    def __contains__(self, constraint: Constraint) -> bool:
        return constraint in self._constraints

    def params(self) -> List[Param]:
        """Every param referenced by an algebraic constraint, first-seen order."""
        seen = set()
        result: List[Param] = []
        for c in self.algebraic:
            for p in c.params:
                if p.id not in seen:
                    seen.add(p.id)
                    result.append(p)
        return result

    # ── Mutations ───────────────────────────────────────────────────────────

    def add(self, constraint: Constraint) -> Constraint:
        self._constraints.append(constraint)
        return constraint

    def create(
        self,
        type_id: str,
        objects: Sequence[Any],
        constants: Optional[Mapping[str, Any]] = None,
    ) -> Constraint:
        """
        Build and add a constraint of kind *type_id*.

        When *constants* is omitted they are initialised from the current
        geometry, which is also when ambiguous orientations are frozen.
        """
        constraint = Constraint(get_schema(type_id), objects, constants, self.config)
        if constants is None:
            constraint.init_constants()
        return self.add(constraint)

    def remove(self, constraint: Constraint) -> bool:
        """Remove and dispose *constraint*.  Returns False if it wasn't here."""
        if constraint not in self._constraints:
            return False
        self._constraints.remove(constraint)
        constraint.dispose()
        return True

    def clear(self):
        for c in self._constraints:
            c.dispose()
        self._constraints.clear()

    def resync(self):
        """
        Re-anchor every constraint's constants to current geometry.

        Relative angle kinds (AngleBetween, Perpendicular, Parallel) are only
        re-anchored modulo a full turn: segment angles live in ``[0, 2π)``,
        so when the second line's angle is the smaller one the residual on
        the very geometry just read is ``-2π`` rather than zero.
        """
        for c in self._constraints:
            c.set_constants_from_geometry()

    # ── Solver hooks ────────────────────────────────────────────────────────

    def collect_polynomials(self) -> List[Polynomial]:
        polynomials: List[Polynomial] = []
        for c in self.algebraic:
            c.collect_polynomials(polynomials)
        return polynomials

    @staticmethod
    def residual_vector(polynomials: Sequence[Polynomial]) -> np.ndarray:
        """Current residual values, one per polynomial."""
        return np.array([p.value() for p in polynomials], dtype=np.float64)

    def is_satisfied(self, tol: float = 1e-6) -> bool:
        """
        True if every residual is within *tol* of zero.

        Angle residuals are compared as plain numbers, not modulo 2π, so a
        relative angle kind that is satisfied up to a full turn (see
        :meth:`resync`) reports False here.
        """
        residuals = self.residual_vector(self.collect_polynomials())
        return residuals.size == 0 or float(np.max(np.abs(residuals))) < tol

    def run_modifiers(self):
        """Apply every modifier, in insertion order."""
        for c in self.modifiers:
            c.modify()

    # ── Serialization ───────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "config": self.config.to_dict(),
            "constraints": [c.write() for c in self._constraints],
        }

    @classmethod
    def from_dict(
        cls,
        d: dict,
        index: Mapping[str, Any],
        skip_invalid: bool = False,
    ) -> "ConstraintRegistry":
        """
        Rebuild a registry from :meth:`to_dict` output.

        Args:
            d: Serialised registry.
            index: Sketch objects by id.
            skip_invalid: Log and skip records that cannot be rebuilt
                (unknown kind, missing object, ownership conflict) instead
                of raising.
        """
        registry = cls(ConstraintConfig.from_dict(d.get("config", {})))
        for record in d.get("constraints", []):
            try:
                registry.add(Constraint.read(record, index, registry.config))
            except (ConstraintError, KeyError) as exc:
                if not skip_invalid:
                    raise
                logger.warning("Skipping constraint record %s: %s", record.get("typeId"), exc)
        return registry

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(
        cls,
        s: str,
        index: Mapping[str, Any],
        skip_invalid: bool = False,
    ) -> "ConstraintRegistry":
        return cls.from_dict(json.loads(s), index, skip_invalid)

    def __repr__(self) -> str:
        return f"ConstraintRegistry(constraints={len(self._constraints)}, modifiers={len(self.modifiers)})"
