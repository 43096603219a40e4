"""Runtime reflection of Python types into type descriptors.

Pydantic models are the unit of typed output: ``ModelDescriptor`` derives an
object schema from ``model_fields`` (including ``Field`` constraints and
descriptions), decodes structured content into validated model instances, and
builds an all-optional partial model for streaming.
"""

import inspect
import logging
import types
from functools import cached_property
from typing import Annotated, Any, Literal, Optional, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError, create_model
from pydantic.fields import FieldInfo

from typed_llm_client.content.structured import StructuredContent
from typed_llm_client.descriptors.base import (
    AnyOfDescriptor,
    BooleanDescriptor,
    IntegerDescriptor,
    ListDescriptor,
    LiteralDescriptor,
    NumberDescriptor,
    OptionalDescriptor,
    StringDescriptor,
    TypeDescriptor,
)
from typed_llm_client.exceptions import (
    ConstraintMismatchError,
    DecodingError,
    MissingRequiredProperty,
    SchemaDefinitionError,
    SchemaValidationException,
)
from typed_llm_client.schema import constraints as c
from typed_llm_client.schema.schema import ObjectSchema, Property, Schema

logger = logging.getLogger(__name__)

_PRIMITIVES: dict[Any, type[TypeDescriptor[Any]]] = {
    str: StringDescriptor,
    int: IntegerDescriptor,
    float: NumberDescriptor,
    bool: BooleanDescriptor,
}


def descriptor_for(tp: Any) -> TypeDescriptor[Any]:
    """Return a descriptor for a Python type annotation.

    Supports ``str``, ``int``, ``float``, ``bool``, ``list[X]``, ``X | None``,
    unions, string ``Literal`` values, ``Annotated`` wrappers and Pydantic
    models. Descriptor instances are returned unchanged.

    Args:
        tp: Type annotation to describe

    Returns:
        Descriptor for ``tp``

    Raises:
        SchemaDefinitionError: If the type cannot be described
    """
    if isinstance(tp, TypeDescriptor):
        return tp
    if tp in _PRIMITIVES:
        return _PRIMITIVES[tp]()
    if inspect.isclass(tp) and issubclass(tp, BaseModel):
        return ModelDescriptor(tp)

    origin = get_origin(tp)
    args = get_args(tp)

    if origin is Annotated:
        return descriptor_for(args[0])
    if origin in (list, tuple) and args:
        return ListDescriptor(descriptor_for(args[0]))
    if origin is Literal:
        if not all(isinstance(arg, str) for arg in args):
            raise SchemaDefinitionError(f"Only string literals are supported: {tp!r}")
        return LiteralDescriptor(tuple(args))
    if origin in (Union, types.UnionType):
        non_null = [arg for arg in args if arg is not type(None)]
        inner: TypeDescriptor[Any]
        if len(non_null) == 1:
            inner = descriptor_for(non_null[0])
        else:
            inner = AnyOfDescriptor(
                name="Or".join(getattr(arg, "__name__", "Value") for arg in non_null),
                alternatives=tuple(descriptor_for(arg) for arg in non_null),
            )
        if len(non_null) < len(args):
            return OptionalDescriptor(inner)
        return inner

    raise SchemaDefinitionError(f"Cannot derive a schema for type {tp!r}")


def _field_constraints(field: FieldInfo, schema: Schema) -> list[c.Constraint]:
    """Translate Pydantic field metadata into constraints for ``schema``."""
    is_int = schema.kind == "integer"
    found: list[c.Constraint] = []
    for meta in field.metadata:
        ge = getattr(meta, "ge", None)
        gt = getattr(meta, "gt", None)
        le = getattr(meta, "le", None)
        lt = getattr(meta, "lt", None)
        min_length = getattr(meta, "min_length", None)
        max_length = getattr(meta, "max_length", None)
        regex = getattr(meta, "pattern", None)

        lower = ge if ge is not None else (gt + 1 if is_int and gt is not None else gt)
        upper = le if le is not None else (lt - 1 if is_int and lt is not None else lt)
        if lower is not None or upper is not None:
            if is_int:
                found.append(c.ThisConstraint(c.IntRange(lower, upper)))
            else:
                found.append(c.range_of(
                    float(lower) if lower is not None else None,
                    float(upper) if upper is not None else None,
                ))
        if min_length is not None or max_length is not None:
            if schema.kind == "array":
                found.append(c.ThisConstraint(c.Count(min_length, max_length)))
            else:
                found.append(c.length(min_length, max_length))
        if isinstance(regex, str):
            found.append(c.pattern(regex))
    return found


class ModelDescriptor(TypeDescriptor[BaseModel]):
    """Descriptor reflecting a Pydantic model.

    Args:
        model: Pydantic model class describing the target object
    """

    def __init__(self, model: type[BaseModel]) -> None:
        self.model = model

    @cached_property
    def fields(self) -> dict[str, TypeDescriptor[Any]]:
        """Descriptors for each model field, in declaration order."""
        return {
            name: descriptor_for(field.annotation)
            for name, field in self.model.model_fields.items()
        }

    @cached_property
    def schema(self) -> Schema:  # type: ignore[override]
        properties: list[Property] = []
        for name, field in self.model.model_fields.items():
            descriptor = self.fields[name]
            field_schema = descriptor.schema
            for constraint in _field_constraints(field, field_schema):
                try:
                    field_schema = field_schema.with_constraint(constraint)
                except ConstraintMismatchError:
                    logger.debug(
                        "Skipping constraint %s on %s.%s", constraint, self.model.__name__, name
                    )
            properties.append(
                Property(
                    name=name,
                    schema=field_schema,
                    description=field.description,
                    is_optional=isinstance(descriptor, OptionalDescriptor),
                )
            )

        doc = self.model.__dict__.get("__doc__")
        return ObjectSchema(
            name=self.model.__name__,
            description=inspect.cleandoc(doc) if doc else None,
            property_list=tuple(properties),
        )

    def encode(self, value: BaseModel) -> StructuredContent:
        return StructuredContent.from_python(value.model_dump(mode="json"))

    def decode(self, content: StructuredContent) -> BaseModel:
        """Decode an object into a validated model instance.

        Raises:
            TypeMismatch: If the content, or one of its members, has the wrong kind
            MissingRequiredProperty: If a required field is absent
            SchemaValidationException: If Pydantic validation fails
        """
        members = content.as_object()
        values: dict[str, Any] = {}
        for name, field in self.model.model_fields.items():
            descriptor = self.fields[name]
            if name not in members:
                if isinstance(descriptor, OptionalDescriptor):
                    values[name] = None
                elif field.is_required():
                    raise MissingRequiredProperty(name)
                continue
            values[name] = descriptor.decode(members[name])

        try:
            return self.model.model_validate(values)
        except ValidationError as exc:
            raise SchemaValidationException(
                f"Validation failed for {self.model.__name__}",
                schema=self.model.__name__,
                response_text=content.json_string,
                validation_errors=[str(error) for error in exc.errors()],
            ) from exc

    @cached_property
    def partial_model(self) -> type[BaseModel]:
        """Model with the same fields as ``model``, all optional."""
        field_definitions: dict[str, Any] = {
            name: (Optional[descriptor.partial_type], None)
            for name, descriptor in self.fields.items()
        }
        return create_model(f"Partial{self.model.__name__}", **field_definitions)

    @property
    def partial_type(self) -> Any:
        return self.partial_model

    def decode_partial(self, content: StructuredContent) -> BaseModel | None:
        try:
            members = content.as_object()
        except DecodingError:
            return None
        values: dict[str, Any] = {}
        for name, descriptor in self.fields.items():
            if name in members:
                value = descriptor.decode_partial(members[name])
                if value is not None:
                    values[name] = value
        return self.partial_model.model_construct(**values)
