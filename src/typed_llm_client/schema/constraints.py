"""Constraint model for schema nodes.

Constraints are discriminated by the kind of value they restrict. A
``Constraint`` either targets the value described by a schema node
(``ThisConstraint``) or reaches into the item schema of an array
(``ElementConstraint``). Element constraints wrap another ``Constraint``, so
``element(element(pattern("x")))`` targets the strings inside an
array-of-arrays.
"""

from dataclasses import dataclass


# String constraints


@dataclass(frozen=True)
class Pattern:
    """Requires the string to match a regular expression."""

    regex: str


@dataclass(frozen=True)
class Constant:
    """Requires the string to be exactly the given value."""

    value: str


@dataclass(frozen=True)
class AnyOf:
    """Requires the string to be one of the given options."""

    options: tuple[str, ...]


@dataclass(frozen=True)
class Length:
    """Bounds the length of the string. ``None`` means unbounded."""

    min: int | None = None
    max: int | None = None


StringConstraint = Pattern | Constant | AnyOf | Length


# Numeric constraints


@dataclass(frozen=True)
class IntRange:
    """Bounds an integer value (inclusive). ``None`` means unbounded."""

    lower: int | None = None
    upper: int | None = None


IntConstraint = IntRange


@dataclass(frozen=True)
class DoubleRange:
    """Bounds a floating-point value (inclusive). ``None`` means unbounded."""

    lower: float | None = None
    upper: float | None = None


DoubleConstraint = DoubleRange


@dataclass(frozen=True)
class BoolConstant:
    """Requires the boolean to be exactly the given value."""

    value: bool


BoolConstraint = BoolConstant


# Array constraints


@dataclass(frozen=True)
class Count:
    """Bounds the number of elements in an array. ``None`` means unbounded."""

    lower: int | None = None
    upper: int | None = None


ArrayConstraint = Count

ValueConstraint = (
    StringConstraint | IntConstraint | DoubleConstraint | BoolConstraint | ArrayConstraint
)


@dataclass(frozen=True)
class ThisConstraint:
    """A constraint on the value described by the schema node itself."""

    kind: ValueConstraint


@dataclass(frozen=True)
class ElementConstraint:
    """A constraint pushed into the item schema of an array."""

    inner: "Constraint"


Constraint = ThisConstraint | ElementConstraint


def target_kind(constraint: ValueConstraint) -> str:
    """Return the schema kind a value constraint applies to."""
    if isinstance(constraint, (Pattern, Constant, AnyOf, Length)):
        return "string"
    if isinstance(constraint, IntRange):
        return "integer"
    if isinstance(constraint, DoubleRange):
        return "number"
    if isinstance(constraint, BoolConstant):
        return "boolean"
    if isinstance(constraint, Count):
        return "array"
    raise TypeError(f"Unknown constraint {constraint!r}")


# Builders


def pattern(regex: str) -> ThisConstraint:
    """Constrain a string to match ``regex``."""
    return ThisConstraint(Pattern(regex))


def constant(value: str | bool) -> ThisConstraint:
    """Constrain a string or boolean to a single value."""
    if isinstance(value, bool):
        return ThisConstraint(BoolConstant(value))
    return ThisConstraint(Constant(value))


def any_of(options: list[str] | tuple[str, ...]) -> ThisConstraint:
    """Constrain a string to one of ``options``."""
    return ThisConstraint(AnyOf(tuple(options)))


def length(min: int | None = None, max: int | None = None) -> ThisConstraint:
    """Constrain the length of a string."""
    return ThisConstraint(Length(min, max))


def minimum(value: int | float) -> ThisConstraint:
    """Lower bound for an integer (``int`` argument) or number (``float`` argument)."""
    if isinstance(value, int) and not isinstance(value, bool):
        return ThisConstraint(IntRange(lower=value))
    return ThisConstraint(DoubleRange(lower=float(value)))


def maximum(value: int | float) -> ThisConstraint:
    """Upper bound for an integer (``int`` argument) or number (``float`` argument)."""
    if isinstance(value, int) and not isinstance(value, bool):
        return ThisConstraint(IntRange(upper=value))
    return ThisConstraint(DoubleRange(upper=float(value)))


def range_of(lower: int | float | None, upper: int | float | None) -> ThisConstraint:
    """Inclusive range; integer bounds build an integer constraint."""
    bounds = [b for b in (lower, upper) if b is not None]
    if bounds and all(isinstance(b, int) and not isinstance(b, bool) for b in bounds):
        return ThisConstraint(IntRange(lower, upper))  # type: ignore[arg-type]
    return ThisConstraint(
        DoubleRange(
            float(lower) if lower is not None else None,
            float(upper) if upper is not None else None,
        )
    )


def minimum_count(value: int) -> ThisConstraint:
    """Require at least ``value`` array elements."""
    return ThisConstraint(Count(lower=value))


def maximum_count(value: int) -> ThisConstraint:
    """Allow at most ``value`` array elements."""
    return ThisConstraint(Count(upper=value))


def count(value: int) -> ThisConstraint:
    """Require exactly ``value`` array elements."""
    return ThisConstraint(Count(lower=value, upper=value))


def element(inner: Constraint) -> ElementConstraint:
    """Apply ``inner`` to every element of an array."""
    return ElementConstraint(inner)
