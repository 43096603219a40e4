"""Type descriptors mapping Python types to schemas and structured content."""

from .base import (
    AnyOfDescriptor,
    BooleanDescriptor,
    IntegerDescriptor,
    ListDescriptor,
    LiteralDescriptor,
    NumberDescriptor,
    OptionalDescriptor,
    RawDescriptor,
    StringDescriptor,
    TypeDescriptor,
)
from .reflection import ModelDescriptor, descriptor_for

__all__ = [
    "AnyOfDescriptor",
    "BooleanDescriptor",
    "IntegerDescriptor",
    "ListDescriptor",
    "LiteralDescriptor",
    "ModelDescriptor",
    "NumberDescriptor",
    "OptionalDescriptor",
    "RawDescriptor",
    "StringDescriptor",
    "TypeDescriptor",
    "descriptor_for",
]
