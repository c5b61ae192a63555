"""
Polynomial residual expressions.

A :class:`Polynomial` is a constant plus a sum of monomials; each monomial
is a coefficient times a product of *terms*, and a term applies one of a
small, fixed set of unary functions to a :class:`~.params.Param`::

    # x1 - x2 = 0
    Polynomial().monomial(1).term(x1, POW_1_FN).monomial(-1).term(x2, POW_1_FN)

Nothing is simplified or folded — a differentiator downstream works term
by term, so the structure built by a constraint is the structure it sees.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterator, List, Mapping

from .params import Param


# =========================================================================
# Term-function table
# =========================================================================

@dataclass(frozen=True)
class TermFunction:
    """A named unary function together with its first derivative."""
    name: str
    fn: Callable[[float], float]
    d: Callable[[float], float]

    def __call__(self, x: float) -> float:
        return self.fn(x)

    def __repr__(self) -> str:
        return f"TermFunction({self.name})"


POW_1_FN = TermFunction("pow1", lambda x: x, lambda x: 1.0)
POW_2_FN = TermFunction("pow2", lambda x: x * x, lambda x: 2.0 * x)
POW_3_FN = TermFunction("pow3", lambda x: x * x * x, lambda x: 3.0 * x * x)
SIN_FN = TermFunction("sin", math.sin, math.cos)
COS_FN = TermFunction("cos", math.cos, lambda x: -math.sin(x))

TERM_FUNCTIONS: Mapping[str, TermFunction] = MappingProxyType({
    f.name: f for f in (POW_1_FN, POW_2_FN, POW_3_FN, SIN_FN, COS_FN)
})


# =========================================================================
# Expression structure
# =========================================================================

@dataclass(frozen=True)
class Term:
    param: Param
    fn: TermFunction

    def value(self) -> float:
        return self.fn(self.param.value)


@dataclass
class Monomial:
    coefficient: float = 1.0
    terms: List[Term] = field(default_factory=list)

    def value(self) -> float:
        v = self.coefficient
        for t in self.terms:
            v *= t.value()
        return v


class Polynomial:
    """
    One scalar residual: ``constant + Σ monomials``.

    Built left-to-right — :meth:`monomial` opens a new product and
    :meth:`term` multiplies a term into the currently open one.
    """

    __slots__ = ("constant", "monomials")

    def __init__(self, constant: float = 0.0):
        self.constant: float = constant
        self.monomials: List[Monomial] = []

    def monomial(self, coefficient: float = 1.0) -> "Polynomial":
        self.monomials.append(Monomial(coefficient))
        return self

    def term(self, param: Param, fn: TermFunction) -> "Polynomial":
        if not self.monomials:
            raise ValueError("term() called before any monomial()")
        self.monomials[-1].terms.append(Term(param, fn))
        return self

    # -- Evaluation ------------------------------------------------------------

    def value(self) -> float:
        """Evaluate at the params' current values."""
        return self.constant + sum(m.value() for m in self.monomials)

    def params(self) -> Iterator[Param]:
        """Every param referenced, in build order (may repeat)."""
        for m in self.monomials:
            for t in m.terms:
                yield t.param

    def __repr__(self) -> str:
        parts = [f"{self.constant:g}"]
        for m in self.monomials:
            factors = "*".join(f"{t.fn.name}({t.param.name or t.param.id})" for t in m.terms)
            parts.append(f"{m.coefficient:g}*{factors}" if factors else f"{m.coefficient:g}")
        return "Polynomial(" + " + ".join(parts) + ")"
