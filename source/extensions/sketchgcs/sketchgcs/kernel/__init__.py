from .params import Param, ParamBound, greater_than, less_than
from .shapes import Arc, BezierCurve, Circle, Ellipse, EndPoint, Segment, SketchObject, index_objects
from .polynomial import (
    COS_FN,
    POW_1_FN,
    POW_2_FN,
    POW_3_FN,
    SIN_FN,
    TERM_FUNCTIONS,
    Monomial,
    Polynomial,
    Term,
)
from .config import DEFAULT_CONFIG, ConstraintConfig
from .constraint_schemas import (
    CONSTRAINT_SCHEMAS,
    ConstantDefinition,
    ConstantType,
    ConstraintError,
    ConstraintSchema,
    UnknownConstraintTypeError,
    get_schema,
)
from .constraint import Constraint, ManagedObjectConflictError
