"""Conversation messages and content chunks."""

from .messages import (
    AIMessage,
    Chunk,
    Message,
    Role,
    StructuredChunk,
    SystemMessage,
    TextChunk,
    ToolCall,
    ToolOutputMessage,
    UserMessage,
    validate_history,
)

__all__ = [
    "AIMessage",
    "Chunk",
    "Message",
    "Role",
    "StructuredChunk",
    "SystemMessage",
    "TextChunk",
    "ToolCall",
    "ToolOutputMessage",
    "UserMessage",
    "validate_history",
]
