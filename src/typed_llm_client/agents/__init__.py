"""Backends, the tool loop and conversation drivers."""

from .backend import LLMBackend, ReplyOptions, TextDelta
from .chat import Chat
from .client import TypedLLMClient
from .litellm_backend import LiteLLMBackend
from .tool_loop import (
    Reply,
    ReplyResult,
    ReplyStream,
    StructuredResult,
    TextResult,
    run_tool_loop,
    stream_tool_loop,
)

__all__ = [
    "Chat",
    "LiteLLMBackend",
    "LLMBackend",
    "Reply",
    "ReplyOptions",
    "ReplyResult",
    "ReplyStream",
    "StructuredResult",
    "TextDelta",
    "TextResult",
    "TypedLLMClient",
    "run_tool_loop",
    "stream_tool_loop",
]
