"""Conversion between ``Schema`` trees and JSON Schema dictionaries.

``to_json_schema`` emits the strict dialect accepted by OpenAI structured
outputs (every property required, ``additionalProperties: false``, optional
members expressed as a union with ``null``). ``from_json_schema`` reads the
common subset back, which is enough for tool parameter schemas published by
MCP servers and for schemas produced by Pydantic.
"""

import logging
from typing import Any

from typed_llm_client.schema.constraints import (
    AnyOf,
    BoolConstant,
    Constant,
    Count,
    DoubleRange,
    IntRange,
    Length,
    Pattern,
)
from typed_llm_client.schema.schema import (
    AnyOfSchema,
    ArraySchema,
    BooleanSchema,
    IntegerSchema,
    NumberSchema,
    ObjectSchema,
    Property,
    Schema,
    StringSchema,
)

logger = logging.getLogger(__name__)


def to_json_schema(schema: Schema, is_optional: bool = False) -> dict[str, Any]:
    """Convert a schema tree to a strict JSON Schema dictionary.

    Args:
        schema: Schema to convert
        is_optional: Whether the value may be ``null``

    Returns:
        JSON Schema dictionary
    """
    if isinstance(schema, ObjectSchema):
        return _object_to_json(schema, is_optional)
    if isinstance(schema, AnyOfSchema):
        return _any_of_to_json(schema, is_optional)
    if isinstance(schema, ArraySchema):
        return _array_to_json(schema, is_optional)

    result: dict[str, Any] = {"type": _nullable_type(schema.kind, is_optional)}

    if isinstance(schema, StringSchema):
        for constraint in schema.constraints:
            if isinstance(constraint, Pattern):
                result["pattern"] = constraint.regex
            elif isinstance(constraint, Constant):
                result["enum"] = [constraint.value]
            elif isinstance(constraint, AnyOf):
                result["enum"] = list(constraint.options)
            elif isinstance(constraint, Length):
                if constraint.min is not None:
                    result["minLength"] = constraint.min
                if constraint.max is not None:
                    result["maxLength"] = constraint.max
    elif isinstance(schema, (IntegerSchema, NumberSchema)):
        for constraint in schema.constraints:
            if constraint.lower is not None:
                result["minimum"] = constraint.lower
            if constraint.upper is not None:
                result["maximum"] = constraint.upper
    elif isinstance(schema, BooleanSchema):
        for constraint in schema.constraints:
            result["enum"] = [constraint.value]
    else:
        raise TypeError(f"Unknown schema node {schema!r}")

    if is_optional and "enum" in result:
        result["enum"] = [*result["enum"], None]
    return result


def _nullable_type(type_name: str, is_optional: bool) -> str | list[str]:
    # OpenAI emulates optional members with a union including "null"
    return [type_name, "null"] if is_optional else type_name


def _object_to_json(schema: ObjectSchema, is_optional: bool) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    for prop in schema.property_list:
        prop_json = to_json_schema(prop.schema, is_optional=prop.is_optional)
        if prop.description:
            prop_json["description"] = prop.description
        properties[prop.name] = prop_json

    result: dict[str, Any] = {
        "type": _nullable_type("object", is_optional),
        "title": schema.name,
        "properties": properties,
        "required": [prop.name for prop in schema.property_list],
        "additionalProperties": False,
    }
    if schema.description:
        result["description"] = schema.description
    return result


def _array_to_json(schema: ArraySchema, is_optional: bool) -> dict[str, Any]:
    result: dict[str, Any] = {"type": _nullable_type("array", is_optional)}
    for constraint in schema.constraints:
        if constraint.lower is not None:
            result["minItems"] = constraint.lower
        if constraint.upper is not None:
            result["maxItems"] = constraint.upper
    result["items"] = to_json_schema(schema.items)
    return result


def _any_of_to_json(schema: AnyOfSchema, is_optional: bool) -> dict[str, Any]:
    alternatives = [to_json_schema(alt) for alt in schema.alternatives]
    if is_optional:
        alternatives.append({"type": "null"})
    result: dict[str, Any] = {"anyOf": alternatives, "title": schema.name}
    if schema.description:
        result["description"] = schema.description
    return result


def from_json_schema(schema_dict: dict[str, Any], name: str = "Arguments") -> Schema:
    """Convert a JSON Schema dictionary into a schema tree.

    Local ``$ref`` pointers into ``$defs`` / ``definitions`` are resolved.
    Nodes without a recognizable type become string schemas.

    Args:
        schema_dict: JSON Schema dictionary
        name: Name used for the root object when it carries no ``title``

    Returns:
        Equivalent schema tree
    """
    definitions: dict[str, Any] = {
        **schema_dict.get("definitions", {}),
        **schema_dict.get("$defs", {}),
    }
    converted, _ = _from_json(schema_dict, name, definitions)
    return converted


def _from_json(
    node: dict[str, Any], name: str, definitions: dict[str, Any]
) -> tuple[Schema, bool]:
    """Return the converted schema and whether the node admits ``null``."""
    ref = node.get("$ref")
    if isinstance(ref, str):
        target = definitions.get(ref.rsplit("/", 1)[-1])
        if target is None:
            logger.warning("Unresolvable $ref %s, treating as string", ref)
            return StringSchema(), False
        return _from_json(target, ref.rsplit("/", 1)[-1], definitions)

    alternatives = node.get("anyOf") or node.get("oneOf")
    if isinstance(alternatives, list):
        non_null = [alt for alt in alternatives if alt.get("type") != "null"]
        nullable = len(non_null) < len(alternatives)
        if len(non_null) == 1:
            converted, inner_nullable = _from_json(non_null[0], name, definitions)
            return converted, nullable or inner_nullable
        return (
            AnyOfSchema(
                name=node.get("title", name),
                description=node.get("description"),
                alternatives=tuple(
                    _from_json(alt, f"{name}{i}", definitions)[0]
                    for i, alt in enumerate(non_null)
                ),
            ),
            nullable,
        )

    type_field = node.get("type")
    nullable = False
    if isinstance(type_field, list):
        nullable = "null" in type_field
        concrete = [t for t in type_field if t != "null"]
        type_field = concrete[0] if concrete else None

    if type_field is None:
        if "properties" in node:
            type_field = "object"
        elif "items" in node:
            type_field = "array"
        else:
            type_field = "string"

    if type_field == "object":
        return _object_from_json(node, name, definitions), nullable
    if type_field == "array":
        items = node.get("items") if isinstance(node.get("items"), dict) else {}
        item_schema, _ = _from_json(items, f"{name}Item", definitions)
        counts: tuple[Count, ...] = ()
        if "minItems" in node or "maxItems" in node:
            counts = (Count(node.get("minItems"), node.get("maxItems")),)
        return ArraySchema(items=item_schema, constraints=counts), nullable
    if type_field == "integer":
        int_constraints = ()
        if "minimum" in node or "maximum" in node:
            int_constraints = (
                IntRange(_maybe_int(node.get("minimum")), _maybe_int(node.get("maximum"))),
            )
        return IntegerSchema(int_constraints), nullable
    if type_field == "number":
        double_constraints = ()
        if "minimum" in node or "maximum" in node:
            double_constraints = (
                DoubleRange(
                    _maybe_float(node.get("minimum")), _maybe_float(node.get("maximum"))
                ),
            )
        return NumberSchema(double_constraints), nullable
    if type_field == "boolean":
        enum = node.get("enum")
        if isinstance(enum, list) and len(enum) == 1 and isinstance(enum[0], bool):
            return BooleanSchema((BoolConstant(enum[0]),)), nullable
        return BooleanSchema(), nullable
    if type_field == "null":
        return StringSchema(), True
    return _string_from_json(node), nullable


def _object_from_json(
    node: dict[str, Any], name: str, definitions: dict[str, Any]
) -> ObjectSchema:
    required = set(node.get("required", []))
    props: list[Property] = []
    for prop_name, prop_node in (node.get("properties") or {}).items():
        prop_schema, nullable = _from_json(prop_node, prop_name, definitions)
        props.append(
            Property(
                name=prop_name,
                schema=prop_schema,
                description=prop_node.get("description"),
                is_optional=nullable or prop_name not in required,
            )
        )
    return ObjectSchema(
        name=node.get("title", name),
        description=node.get("description"),
        property_list=tuple(props),
    )


def _string_from_json(node: dict[str, Any]) -> StringSchema:
    constraints: list[Any] = []
    if "pattern" in node:
        constraints.append(Pattern(node["pattern"]))
    enum = [value for value in node.get("enum", []) if isinstance(value, str)]
    if len(enum) == 1:
        constraints.append(Constant(enum[0]))
    elif enum:
        constraints.append(AnyOf(tuple(enum)))
    if "const" in node and isinstance(node["const"], str):
        constraints.append(Constant(node["const"]))
    if "minLength" in node or "maxLength" in node:
        constraints.append(Length(node.get("minLength"), node.get("maxLength")))
    return StringSchema(tuple(constraints))


def _maybe_int(value: Any) -> int | None:
    return int(value) if value is not None else None


def _maybe_float(value: Any) -> float | None:
    return float(value) if value is not None else None
