"""Schema model describing the expected shape of model output.

A ``Schema`` is one of a closed set of node kinds. Nodes are immutable and
compare structurally, so ``with_constraint`` always returns a new tree.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from typed_llm_client.exceptions import ConstraintMismatchError, SchemaDefinitionError
from typed_llm_client.schema.constraints import (
    ArrayConstraint,
    BoolConstraint,
    Constraint,
    DoubleConstraint,
    ElementConstraint,
    IntConstraint,
    StringConstraint,
    ThisConstraint,
    target_kind,
)


class Schema:
    """Base class for schema nodes."""

    kind: str = ""

    def with_constraint(self, constraint: Constraint) -> "Schema":
        """Return a copy of this schema with ``constraint`` folded in."""
        return with_constraint(self, constraint)

    def with_constraints(self, constraints: Iterable[Constraint]) -> "Schema":
        """Return a copy of this schema with every constraint folded in, in order."""
        return with_constraints(self, constraints)


@dataclass(frozen=True)
class StringSchema(Schema):
    constraints: tuple[StringConstraint, ...] = ()
    kind = "string"


@dataclass(frozen=True)
class IntegerSchema(Schema):
    constraints: tuple[IntConstraint, ...] = ()
    kind = "integer"


@dataclass(frozen=True)
class NumberSchema(Schema):
    constraints: tuple[DoubleConstraint, ...] = ()
    kind = "number"


@dataclass(frozen=True)
class BooleanSchema(Schema):
    constraints: tuple[BoolConstraint, ...] = ()
    kind = "boolean"


@dataclass(frozen=True)
class Property:
    """A named member of an object schema."""

    name: str
    schema: Schema
    description: str | None = None
    is_optional: bool = False


@dataclass(frozen=True)
class ObjectSchema(Schema):
    """An object with named, ordered properties.

    Raises:
        SchemaDefinitionError: If two properties share a name.
    """

    name: str
    description: str | None = None
    property_list: tuple[Property, ...] = field(default=())
    kind = "object"

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for prop in self.property_list:
            if prop.name in seen:
                raise SchemaDefinitionError(
                    f"Duplicate property '{prop.name}' in object schema '{self.name}'"
                )
            seen.add(prop.name)

    @property
    def properties(self) -> Mapping[str, Property]:
        """Properties keyed by name, in declaration order."""
        return MappingProxyType({prop.name: prop for prop in self.property_list})


@dataclass(frozen=True)
class ArraySchema(Schema):
    items: Schema
    constraints: tuple[ArrayConstraint, ...] = ()
    kind = "array"


@dataclass(frozen=True)
class AnyOfSchema(Schema):
    name: str
    description: str | None = None
    alternatives: tuple[Schema, ...] = ()
    kind = "anyOf"


def object_schema(
    name: str,
    properties: Iterable[Property] | Mapping[str, Schema | Property] = (),
    description: str | None = None,
) -> ObjectSchema:
    """Build an ``ObjectSchema`` from properties or a name-to-schema mapping."""
    if isinstance(properties, Mapping):
        props = tuple(
            value if isinstance(value, Property) else Property(key, value)
            for key, value in properties.items()
        )
    else:
        props = tuple(properties)
    return ObjectSchema(name=name, description=description, property_list=props)


def with_constraint(schema: Schema, constraint: Constraint) -> Schema:
    """Return a new schema with ``constraint`` folded into the tree.

    A "this value" constraint is appended to the node's own constraint list
    when its kind matches. An element constraint is applied to the item
    schema of an array; nested element constraints recurse one array level
    per wrapper.

    Raises:
        ConstraintMismatchError: If the constraint targets another kind.
    """
    if isinstance(constraint, ElementConstraint):
        if not isinstance(schema, ArraySchema):
            raise ConstraintMismatchError(schema.kind, constraint)
        return replace(schema, items=with_constraint(schema.items, constraint.inner))

    if not isinstance(constraint, ThisConstraint):
        raise TypeError(f"Not a constraint: {constraint!r}")

    value_constraint = constraint.kind
    if target_kind(value_constraint) != schema.kind:
        raise ConstraintMismatchError(schema.kind, constraint)

    # only the leaf kinds and arrays carry a constraints tuple
    existing = schema.constraints  # type: ignore[attr-defined]
    return replace(schema, constraints=(*existing, value_constraint))  # type: ignore[call-arg]


def with_constraints(schema: Schema, constraints: Iterable[Constraint]) -> Schema:
    """Fold ``constraints`` into ``schema`` left to right."""
    for constraint in constraints:
        schema = with_constraint(schema, constraint)
    return schema
