"""Tagged JSON-like values exchanged with language models.

``StructuredContent`` is the boundary type between provider responses and
typed application values: adapters parse model output into it, descriptors
decode it into Python objects, and tool calls carry their arguments as it.

All numbers are stored as ``float``. ``as_int`` accepts any number without a
fractional part, so ``0`` and ``0.0`` parse to equal content and both
serialize as ``0``.
"""

import json
import math
from enum import Enum
from typing import Any

from typed_llm_client.exceptions import (
    InvalidIntegerValue,
    StructuredContentError,
    TypeMismatch,
)


class ContentKind(Enum):
    """Kinds of value a ``StructuredContent`` can hold."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


class StructuredContent:
    """An immutable JSON-like value with typed, failable accessors.

    Args:
        kind: The kind of value held
        value: The payload; ``None`` for null, ``bool``, ``float``, ``str``,
            a tuple of ``StructuredContent`` for arrays, or a dict of
            ``StructuredContent`` for objects (key order preserved)
    """

    __slots__ = ("_kind", "_value")

    def __init__(self, kind: ContentKind, value: Any = None) -> None:
        self._kind = kind
        self._value = value

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> "StructuredContent":
        """Parse JSON text into structured content.

        Args:
            text: JSON document

        Returns:
            Parsed content

        Raises:
            StructuredContentError: If ``text`` is not valid JSON
        """
        try:
            decoded = json.loads(text, parse_constant=_reject_constant)
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            raise StructuredContentError(f"Invalid JSON: {exc}") from exc
        return cls.from_python(decoded)

    @classmethod
    def from_python(cls, value: Any) -> "StructuredContent":
        """Build structured content from plain Python values.

        Accepts ``None``, ``bool``, ``int``, ``float``, ``str``, lists and
        tuples, dicts with string keys, and existing ``StructuredContent``.

        Raises:
            StructuredContentError: If ``value`` has no JSON representation
        """
        if isinstance(value, StructuredContent):
            return value
        if value is None:
            return cls(ContentKind.NULL)
        # bool is a subclass of int and must be classified first
        if isinstance(value, bool):
            return cls(ContentKind.BOOL, value)
        if isinstance(value, (int, float)):
            try:
                return cls(ContentKind.NUMBER, float(value))
            except OverflowError as exc:
                raise StructuredContentError(
                    "Integer is too large to represent as a JSON number"
                ) from exc
        if isinstance(value, str):
            return cls(ContentKind.STRING, value)
        if isinstance(value, (list, tuple)):
            return cls(ContentKind.ARRAY, tuple(cls.from_python(v) for v in value))
        if isinstance(value, dict):
            members: dict[str, StructuredContent] = {}
            for key, member in value.items():
                if not isinstance(key, str):
                    raise StructuredContentError(
                        f"Object keys must be strings, got {type(key).__name__}"
                    )
                members[key] = cls.from_python(member)
            return cls(ContentKind.OBJECT, members)
        raise StructuredContentError(
            f"Cannot represent {type(value).__name__} as structured content"
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_python(self) -> Any:
        """Convert to plain Python values.

        Integral numbers come back as ``int``, other numbers as ``float``.
        """
        if self._kind is ContentKind.NUMBER:
            number = self._value
            if math.isfinite(number) and number.is_integer():
                return int(number)
            return number
        if self._kind is ContentKind.ARRAY:
            return [item.to_python() for item in self._value]
        if self._kind is ContentKind.OBJECT:
            return {key: member.to_python() for key, member in self._value.items()}
        return self._value

    def serialize(self) -> str:
        """Render as JSON text.

        Raises:
            StructuredContentError: If the content holds a non-finite number
        """
        try:
            return json.dumps(
                self.to_python(), allow_nan=False, ensure_ascii=False
            )
        except ValueError as exc:
            raise StructuredContentError(f"Cannot serialize content: {exc}") from exc

    @property
    def json_string(self) -> str:
        """JSON text for this content, as stored in conversation history."""
        return self.serialize()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def kind(self) -> ContentKind:
        return self._kind

    @property
    def is_null(self) -> bool:
        return self._kind is ContentKind.NULL

    def as_bool(self) -> bool:
        return self._expect(ContentKind.BOOL)

    def as_string(self) -> str:
        return self._expect(ContentKind.STRING)

    def as_double(self) -> float:
        return self._expect(ContentKind.NUMBER)

    def as_int(self) -> int:
        """Return the number as an ``int``.

        Raises:
            TypeMismatch: If the content is not a number
            InvalidIntegerValue: If the number has a fractional part
        """
        number = self._expect(ContentKind.NUMBER)
        if not math.isfinite(number) or number != round(number):
            raise InvalidIntegerValue(number)
        return int(number)

    def as_array(self) -> list["StructuredContent"]:
        return list(self._expect(ContentKind.ARRAY))

    def as_object(self) -> dict[str, "StructuredContent"]:
        return dict(self._expect(ContentKind.OBJECT))

    def _expect(self, kind: ContentKind) -> Any:
        if self._kind is not kind:
            raise TypeMismatch(kind.value, self._kind.value)
        return self._value

    # ------------------------------------------------------------------
    # Dunder methods
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructuredContent):
            return NotImplemented
        return self._kind is other._kind and self._value == other._value

    def __hash__(self) -> int:
        return hash(self.serialize())

    def __repr__(self) -> str:
        return f"StructuredContent({self._kind.value}, {self.to_python()!r})"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")
