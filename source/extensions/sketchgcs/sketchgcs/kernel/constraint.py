"""
Live constraint instances.

A :class:`Constraint` binds one schema to a concrete tuple of sketch
objects and a set of raw constant values.  The parameter list is fixed at
construction — if the objects gain or lose params, build a new instance.

Raw constants are kept exactly as the user (or a file) supplied them,
usually as strings such as ``"12.50"``.  :meth:`Constraint.resolve_constants`
turns them into solver values on demand and caches the result until the
raw values change.

Persisted record shape::

    {"typeId": "DistancePP", "objects": ["P1", "P2"], "constants": {"distance": "5.00"}}
"""

from __future__ import annotations

import itertools
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import DEFAULT_CONFIG, ConstraintConfig
from .constraint_schemas import (
    ConstantType,
    ConstraintError,
    ConstraintSchema,
    get_schema,
)
from .params import Param
from .polynomial import Polynomial

logger = logging.getLogger(__name__)


class ManagedObjectConflictError(ConstraintError):
    """A modifier tried to manage an object that already has a manager."""


_TRUE_STRINGS = frozenset({"true", "1", "yes"})


def _parse_boolean(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in _TRUE_STRINGS
    return bool(raw)


class Constraint:
    """
    One constraint in a sketch.

    Args:
        schema: The constraint kind.
        objects: Sketch objects, in the order the schema expects.
        constants: Raw constant values by name.  ``None`` until
            :meth:`init_constants` is called for schemas that declare any.
        config: Construction settings.

    Raises:
        ManagedObjectConflictError: *schema* is a modifier and one of its
            managed objects already belongs to another modifier.
    """

    _counter = itertools.count()

    def __init__(
        self,
        schema: ConstraintSchema,
        objects: Sequence[Any],
        constants: Optional[Mapping[str, Any]] = None,
        config: ConstraintConfig = DEFAULT_CONFIG,
    ):
        # Debug label, not persisted
        self.id: str = f"{schema.id}:{next(Constraint._counter)}"
        self.schema = schema
        self.objects: List[Any] = list(objects)
        self.constants: Optional[Dict[str, Any]] = dict(constants) if constants is not None else None
        self.config = config

        self._resolved: Optional[Dict[str, Any]] = None
        self._resolved_from: Optional[Dict[str, Any]] = None

        self.params: List[Param] = []
        self.schema.define_params_scope(self.objects, self.params.append, config)

        self.reference_objects: List[Any] = []
        self.managed_objects: List[Any] = []
        if self.is_modifier:
            self.reference_objects = self.schema.reference_objects(self.objects)
            self.managed_objects = self.schema.managed_objects(self.objects)
            self._claim_managed_objects()

        logger.debug("Created %s over %s (%d params)", self.id,
                     [getattr(o, "id", o) for o in self.objects], len(self.params))

    @property
    def is_modifier(self) -> bool:
        return self.schema.is_modifier

    # -- Modifier ownership ----------------------------------------------------

    def _claim_managed_objects(self):
        # Check everything before claiming anything so a failed construction
        # leaves no partial ownership behind.
        for obj in self.managed_objects:
            owner = obj.managed_by
            if owner is not None and owner is not self:
                raise ManagedObjectConflictError(
                    f"there can be only one managing modifier for an object: "
                    f"{obj.id} is already managed by {owner.id}"
                )
        for obj in self.managed_objects:
            obj.set_manager(self)

    def dispose(self):
        """Release every managed object this instance owns."""
        for obj in self.managed_objects:
            if obj.managed_by is self:
                obj.set_manager(None)
        logger.debug("Disposed %s", self.id)

    # -- Constants -------------------------------------------------------------

    def _parse_number(self, name: str, raw: Any) -> float:
        try:
            return float(raw)
        except (TypeError, ValueError):
            if self.config.strict_constants:
                raise ValueError(f"{self.schema.id}: constant '{name}' is not a number: {raw!r}") from None
            logger.warning("%s: constant '%s' is not a number (%r); using NaN", self.id, name, raw)
            return math.nan

    def resolve_constants(self) -> Dict[str, Any]:
        """
        Solver-ready constant values.

        Numbers are parsed from their raw form, booleans accept ``"true"`` /
        ``"false"`` strings, then each declared transform is applied.  The
        result is cached until the raw constants change.
        """
        if not self.constants:
            self._resolved = {}
            self._resolved_from = None
            return self._resolved

        if self._resolved is not None and self._resolved_from == self.constants:
            return self._resolved

        resolved: Dict[str, Any] = {}
        for name, raw in self.constants.items():
            definition = self.schema.constants[name]
            if definition.type is ConstantType.NUMBER:
                value = self._parse_number(name, raw)
            else:
                value = _parse_boolean(raw)
            if definition.transform is not None:
                value = definition.transform(value)
            resolved[name] = value

        self._resolved = resolved
        self._resolved_from = dict(self.constants)
        return resolved

    @property
    def resolved_constants(self) -> Dict[str, Any]:
        return self.resolve_constants()

    def init_constants(self):
        """
        Populate raw constants from the schema initialisers.

        Numbers are stored in canonical string form with
        ``config.constant_precision`` decimals (``"90.00"``).
        """
        if not self.schema.constants:
            return
        precision = self.config.constant_precision
        constants: Dict[str, Any] = {}
        for name, definition in self.schema.constants.items():
            value = definition.initial_value(self.objects)
            if not isinstance(value, bool) and isinstance(value, (int, float)):
                value = f"{value:.{precision}f}"
            constants[name] = value
        self.constants = constants

    def set_constants_from_geometry(self):
        """Re-anchor raw constants to the current geometry, if the kind supports it."""
        if not self.schema.resyncable:
            return
        if self.constants is None:
            self.constants = {}
        self.schema.set_constants_from_geometry(self.objects, self.constants)

    def set_constant(self, name: str, value: Any):
        """Set one raw constant.  Unknown names raise ``KeyError``."""
        if name not in self.schema.constants:
            raise KeyError(f"{self.schema.id} has no constant '{name}'")
        if self.constants is None:
            self.constants = {}
        self.constants[name] = value

    @property
    def editable(self) -> bool:
        """True when the kind declares constants and none of them is read-only."""
        defs = self.schema.constants
        if not defs:
            return False
        return not any(d.read_only for d in defs.values())

    # -- Solver hooks ----------------------------------------------------------

    def collect_polynomials(self, polynomials: List[Polynomial]):
        """Append this constraint's residuals to *polynomials*."""
        self.schema.collect_polynomials(polynomials, self.params, self.resolve_constants())

    def modify(self):
        """Rewrite managed geometry from reference geometry (modifiers only)."""
        self.schema.modify(self.reference_objects, self.managed_objects, self.resolve_constants())

    # -- Serialisation ---------------------------------------------------------

    def write(self) -> dict:
        return {
            "typeId": self.schema.id,
            "objects": [o.id for o in self.objects],
            "constants": dict(self.constants) if self.constants is not None else {},
        }

    @classmethod
    def read(
        cls,
        record: Mapping[str, Any],
        index: Mapping[str, Any],
        config: ConstraintConfig = DEFAULT_CONFIG,
    ) -> "Constraint":
        """
        Rebuild a constraint from a :meth:`write` record.

        Raises:
            UnknownConstraintTypeError: ``typeId`` is not registered.
            KeyError: an object id is missing from *index*.
        """
        schema = get_schema(record["typeId"])
        objects = [index[oid] for oid in record["objects"]]
        return cls(schema, objects, record.get("constants") or None, config)

    def __repr__(self) -> str:
        return f"Constraint({self.id}, constants={self.constants})"
