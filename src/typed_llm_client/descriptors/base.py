"""Type descriptors: per-type schema, encoding and decoding.

A ``TypeDescriptor`` tells the tool loop how to describe a target type to a
backend and how to turn model output back into Python values. Descriptors for
primitives and containers live here; Pydantic model reflection lives in
``typed_llm_client.descriptors.reflection``.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from typed_llm_client.content.structured import StructuredContent
from typed_llm_client.exceptions import DecodingError, SchemaValidationException
from typed_llm_client.schema.constraints import AnyOf, Constant, StringConstraint
from typed_llm_client.schema.json_schema import to_json_schema
from typed_llm_client.schema.schema import (
    AnyOfSchema,
    ArraySchema,
    BooleanSchema,
    IntegerSchema,
    NumberSchema,
    Schema,
    StringSchema,
)

T = TypeVar("T")


class TypeDescriptor(ABC, Generic[T]):
    """Schema and codec for one application type."""

    #: True when the target is plain text and the reply needs no decoding
    is_text: bool = False

    @property
    @abstractmethod
    def schema(self) -> Schema:
        """Schema describing the shape of the type."""

    @abstractmethod
    def encode(self, value: T) -> StructuredContent:
        """Convert a value to structured content."""

    @abstractmethod
    def decode(self, content: StructuredContent) -> T:
        """Convert structured content to a value.

        Raises:
            TypeMismatch: If the content has the wrong kind
            MissingRequiredProperty: If an object lacks a required member
        """

    def decode_partial(self, content: StructuredContent) -> Any:
        """Tolerantly decode possibly incomplete content.

        Returns ``None`` instead of raising when the content cannot be decoded.
        """
        try:
            return self.decode(content)
        except DecodingError:
            return None

    @property
    def partial_type(self) -> Any:
        """Python type produced by ``decode_partial``."""
        return Any

    def json_schema(self) -> dict[str, Any]:
        """JSON Schema sent to providers for this type."""
        return to_json_schema(self.schema)


class StringDescriptor(TypeDescriptor[str]):
    is_text = True

    def __init__(self, constraints: tuple[StringConstraint, ...] = ()) -> None:
        self._schema = StringSchema(constraints)

    @property
    def schema(self) -> Schema:
        return self._schema

    def encode(self, value: str) -> StructuredContent:
        return StructuredContent.from_python(value)

    def decode(self, content: StructuredContent) -> str:
        return content.as_string()

    @property
    def partial_type(self) -> Any:
        return str


class IntegerDescriptor(TypeDescriptor[int]):
    @property
    def schema(self) -> Schema:
        return IntegerSchema()

    def encode(self, value: int) -> StructuredContent:
        return StructuredContent.from_python(value)

    def decode(self, content: StructuredContent) -> int:
        return content.as_int()

    @property
    def partial_type(self) -> Any:
        return int


class NumberDescriptor(TypeDescriptor[float]):
    @property
    def schema(self) -> Schema:
        return NumberSchema()

    def encode(self, value: float) -> StructuredContent:
        return StructuredContent.from_python(value)

    def decode(self, content: StructuredContent) -> float:
        return content.as_double()

    @property
    def partial_type(self) -> Any:
        return float


class BooleanDescriptor(TypeDescriptor[bool]):
    @property
    def schema(self) -> Schema:
        return BooleanSchema()

    def encode(self, value: bool) -> StructuredContent:
        return StructuredContent.from_python(value)

    def decode(self, content: StructuredContent) -> bool:
        return content.as_bool()

    @property
    def partial_type(self) -> Any:
        return bool


class ListDescriptor(TypeDescriptor[list[Any]]):
    """Descriptor for homogeneous lists.

    Partial decoding keeps the elements that decode and omits the rest, so a
    list streamed element by element grows monotonically.
    """

    def __init__(self, item: TypeDescriptor[Any]) -> None:
        self.item = item

    @property
    def schema(self) -> Schema:
        return ArraySchema(items=self.item.schema)

    def encode(self, value: list[Any]) -> StructuredContent:
        return StructuredContent.from_python(
            [self.item.encode(element) for element in value]
        )

    def decode(self, content: StructuredContent) -> list[Any]:
        return [self.item.decode(element) for element in content.as_array()]

    def decode_partial(self, content: StructuredContent) -> list[Any] | None:
        try:
            elements = content.as_array()
        except DecodingError:
            return None
        decoded = (self.item.decode_partial(element) for element in elements)
        return [value for value in decoded if value is not None]

    @property
    def partial_type(self) -> Any:
        return list[self.item.partial_type]  # type: ignore[name-defined]


class OptionalDescriptor(TypeDescriptor[Any]):
    """Descriptor for ``X | None``; null content decodes to ``None``."""

    def __init__(self, inner: TypeDescriptor[Any]) -> None:
        self.inner = inner

    @property
    def schema(self) -> Schema:
        return self.inner.schema

    def encode(self, value: Any) -> StructuredContent:
        if value is None:
            return StructuredContent.from_python(None)
        return self.inner.encode(value)

    def decode(self, content: StructuredContent) -> Any:
        if content.is_null:
            return None
        return self.inner.decode(content)

    def decode_partial(self, content: StructuredContent) -> Any:
        if content.is_null:
            return None
        return self.inner.decode_partial(content)

    @property
    def partial_type(self) -> Any:
        return self.inner.partial_type


class LiteralDescriptor(TypeDescriptor[str]):
    """Descriptor for ``Literal[...]`` over strings."""

    def __init__(self, options: tuple[str, ...]) -> None:
        self.options = options

    @property
    def schema(self) -> Schema:
        if len(self.options) == 1:
            return StringSchema((Constant(self.options[0]),))
        return StringSchema((AnyOf(self.options),))

    def encode(self, value: str) -> StructuredContent:
        return StructuredContent.from_python(value)

    def decode(self, content: StructuredContent) -> str:
        value = content.as_string()
        if value not in self.options:
            raise SchemaValidationException(
                f"'{value}' is not one of {list(self.options)}",
                schema=f"Literal{list(self.options)}",
                response_text=value,
            )
        return value

    def decode_partial(self, content: StructuredContent) -> str | None:
        # an option may still be streaming in
        try:
            return content.as_string()
        except DecodingError:
            return None

    @property
    def partial_type(self) -> Any:
        return str


class AnyOfDescriptor(TypeDescriptor[Any]):
    """Descriptor for unions; the first alternative that decodes wins."""

    def __init__(self, name: str, alternatives: tuple[TypeDescriptor[Any], ...]) -> None:
        self.name = name
        self.alternatives = alternatives

    @property
    def schema(self) -> Schema:
        return AnyOfSchema(
            name=self.name,
            alternatives=tuple(alt.schema for alt in self.alternatives),
        )

    def encode(self, value: Any) -> StructuredContent:
        errors: list[str] = []
        for alt in self.alternatives:
            try:
                return alt.encode(value)
            except (DecodingError, AttributeError, TypeError) as exc:
                errors.append(str(exc))
        raise SchemaValidationException(
            f"No alternative of {self.name} can encode {value!r}",
            schema=self.name,
            validation_errors=errors,
        )

    def decode(self, content: StructuredContent) -> Any:
        errors: list[str] = []
        for alt in self.alternatives:
            try:
                return alt.decode(content)
            except DecodingError as exc:
                errors.append(str(exc))
        raise SchemaValidationException(
            f"Content matches no alternative of {self.name}",
            schema=self.name,
            response_text=content.json_string,
            validation_errors=errors,
        )

    def decode_partial(self, content: StructuredContent) -> Any:
        for alt in self.alternatives:
            value = alt.decode_partial(content)
            if value is not None:
                return value
        return None


class RawDescriptor(TypeDescriptor[Any]):
    """Pass-through descriptor for values known only by schema.

    Used for tools discovered at runtime, whose arguments are handed to the
    handler as plain Python values. When ``source`` is given it is sent to
    providers verbatim instead of the strict rendering of ``schema``.
    """

    def __init__(self, schema: Schema, source: dict[str, Any] | None = None) -> None:
        self._schema = schema
        self._source = source

    @property
    def schema(self) -> Schema:
        return self._schema

    def json_schema(self) -> dict[str, Any]:
        if self._source is not None:
            return self._source
        return super().json_schema()

    def encode(self, value: Any) -> StructuredContent:
        return StructuredContent.from_python(value)

    def decode(self, content: StructuredContent) -> Any:
        return content.to_python()
