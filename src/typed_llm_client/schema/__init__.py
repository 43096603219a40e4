"""Schema and constraint model describing the expected shape of model output.

This module provides:
- Immutable schema nodes with structural equality
- Constraints targeting a node or, through arrays, its elements
- Conversion to and from JSON Schema dictionaries
"""

from .constraints import (
    AnyOf,
    BoolConstant,
    Constant,
    Constraint,
    Count,
    DoubleRange,
    ElementConstraint,
    IntRange,
    Length,
    Pattern,
    ThisConstraint,
    any_of,
    constant,
    count,
    element,
    length,
    maximum,
    maximum_count,
    minimum,
    minimum_count,
    pattern,
    range_of,
)
from .json_schema import from_json_schema, to_json_schema
from .schema import (
    AnyOfSchema,
    ArraySchema,
    BooleanSchema,
    IntegerSchema,
    NumberSchema,
    ObjectSchema,
    Property,
    Schema,
    StringSchema,
    object_schema,
    with_constraint,
    with_constraints,
)

__all__ = [
    # Schema nodes
    "Schema",
    "StringSchema",
    "IntegerSchema",
    "NumberSchema",
    "BooleanSchema",
    "ObjectSchema",
    "ArraySchema",
    "AnyOfSchema",
    "Property",
    "object_schema",
    "with_constraint",
    "with_constraints",
    # Constraints
    "Constraint",
    "ThisConstraint",
    "ElementConstraint",
    "Pattern",
    "Constant",
    "AnyOf",
    "Length",
    "IntRange",
    "DoubleRange",
    "BoolConstant",
    "Count",
    "pattern",
    "constant",
    "any_of",
    "length",
    "minimum",
    "maximum",
    "range_of",
    "minimum_count",
    "maximum_count",
    "count",
    "element",
    # JSON Schema conversion
    "to_json_schema",
    "from_json_schema",
]
