"""Typed LLM Client - typed, constrained model output with tool calling."""

__version__ = "0.1.0"

# Core agent classes
from .agents import (
    Chat,
    LiteLLMBackend,
    LLMBackend,
    Reply,
    ReplyOptions,
    ReplyStream,
    StructuredResult,
    TextDelta,
    TextResult,
    TypedLLMClient,
    run_tool_loop,
    stream_tool_loop,
)

# Structured content and conversation entities
from .content import ContentKind, StructuredContent
from .conversation import (
    AIMessage,
    Role,
    StructuredChunk,
    SystemMessage,
    TextChunk,
    ToolCall,
    ToolOutputMessage,
    UserMessage,
)
from .descriptors import ModelDescriptor, TypeDescriptor, descriptor_for

# Custom exceptions
from .exceptions import (
    BackendError,
    CancellationRequested,
    ConfigurationException,
    ConstraintMismatchError,
    ConversationStateError,
    DecodingError,
    InvalidIntegerValue,
    MissingRequiredProperty,
    SchemaDefinitionError,
    SchemaValidationException,
    StructuredContentError,
    ToolExecutionFailed,
    ToolLoopLimitExceeded,
    ToolNotFound,
    TypedLLMException,
    TypeMismatch,
)

# Tool helpers
from .tools import MCPToolSource, Tool, tool

# Utilities
from .utils import (
    create_litellm_backend,
    get_available_providers,
    get_default_models,
    load_environment,
    repair,
)

__all__ = [
    "__version__",
    "Chat",
    "LiteLLMBackend",
    "LLMBackend",
    "Reply",
    "ReplyOptions",
    "ReplyStream",
    "StructuredResult",
    "TextDelta",
    "TextResult",
    "TypedLLMClient",
    "run_tool_loop",
    "stream_tool_loop",
    "ContentKind",
    "StructuredContent",
    "AIMessage",
    "Role",
    "StructuredChunk",
    "SystemMessage",
    "TextChunk",
    "ToolCall",
    "ToolOutputMessage",
    "UserMessage",
    "ModelDescriptor",
    "TypeDescriptor",
    "descriptor_for",
    "MCPToolSource",
    "Tool",
    "tool",
    "create_litellm_backend",
    "get_available_providers",
    "get_default_models",
    "load_environment",
    "repair",
    # Exceptions
    "TypedLLMException",
    "BackendError",
    "CancellationRequested",
    "ConfigurationException",
    "ConstraintMismatchError",
    "ConversationStateError",
    "DecodingError",
    "InvalidIntegerValue",
    "MissingRequiredProperty",
    "SchemaDefinitionError",
    "SchemaValidationException",
    "StructuredContentError",
    "ToolExecutionFailed",
    "ToolLoopLimitExceeded",
    "ToolNotFound",
    "TypeMismatch",
]
