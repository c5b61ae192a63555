"""
sketchgcs — compiles 2D sketch constraints into polynomial residual systems.
"""

from .kernel import Constraint, ConstraintConfig, Polynomial, get_schema
from .registry import ConstraintRegistry

__version__ = "0.1.0"
