from .constraint_registry import ConstraintRegistry
