"""Structured content exchanged with language models."""

from .structured import ContentKind, StructuredContent

__all__ = ["ContentKind", "StructuredContent"]
