"""
Settings for constraint construction.

These only affect how constraints are *built* (constant formatting,
auxiliary curve parameters, constant validation) — never the solve itself.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields


@dataclass(frozen=True)
class ConstraintConfig:
    """
    Attributes:
        constant_precision: Decimal places used when writing initial numeric
            constants in their canonical string form.
        curve_param_initial: Starting value of the auxiliary ``t`` param
            introduced by Bezier constraints.
        curve_param_lower: Exclusive lower bound attached to ``t``.
        curve_param_upper: Exclusive upper bound attached to ``t``.
        strict_constants: Raise ``ValueError`` on malformed numeric
            constants instead of resolving them to NaN.
    """
    constant_precision: int = 2
    curve_param_initial: float = 0.5
    curve_param_lower: float = 0.0
    curve_param_upper: float = 1.0
    strict_constants: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "ConstraintConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


DEFAULT_CONFIG = ConstraintConfig()
