"""Generic tool abstraction for the tool-invocation loop.

Provides a ``Tool`` frozen dataclass that bundles a typed argument descriptor
with its handler, the ``tool`` decorator that builds one from a function, and
``index_tools`` to look tools up by name.
"""

import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, create_model

from typed_llm_client.content.structured import StructuredContent
from typed_llm_client.conversation.messages import (
    Chunk,
    StructuredChunk,
    TextChunk,
    ToolCall,
)
from typed_llm_client.descriptors.base import TypeDescriptor
from typed_llm_client.descriptors.reflection import ModelDescriptor
from typed_llm_client.exceptions import CancellationRequested, ToolExecutionFailed
from typed_llm_client.schema.schema import Schema

ToolHandler = Callable[[Any], Any]


@dataclass(frozen=True)
class Tool:
    """Immutable tool definition pairing typed arguments with an executable handler.

    Args:
        name: Unique tool name.
        description: Human-readable description of what the tool does.
        arguments: Descriptor for the tool's argument type.
        handler: Callable, sync or async, that receives the decoded arguments
            and returns a result (text, a Pydantic model, JSON-like values,
            content chunks, or ``None``).
    """

    name: str
    description: str
    arguments: TypeDescriptor[Any]
    handler: ToolHandler

    @property
    def parameters(self) -> Schema:
        """Schema describing the tool's input arguments."""
        return self.arguments.schema

    def to_litellm_schema(self) -> dict[str, Any]:
        """Convert to the OpenAI-format dict expected by LiteLLM.

        Returns:
            A tool definition dict with ``type`` and ``function`` keys.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.arguments.json_schema(),
            },
        }

    async def execute(self, arguments: StructuredContent) -> list[Chunk]:
        """Decode ``arguments`` and run the handler.

        Args:
            arguments: Arguments produced by the model.

        Returns:
            Result of the handler as content chunks.

        Raises:
            DecodingError: If the arguments do not match the argument type.
            ToolExecutionFailed: If the handler raises.
            CancellationRequested: Re-raised untouched from the handler.
        """
        decoded = self.arguments.decode(arguments)
        try:
            result = self.handler(decoded)
            if inspect.isawaitable(result):
                result = await result
        except CancellationRequested:
            raise
        except Exception as exc:
            raise ToolExecutionFailed(self.name, exc) from exc
        return to_chunks(result)


def to_chunks(result: Any) -> list[Chunk]:
    """Convert a tool result into content chunks for a tool-output message."""
    if result is None:
        return []
    if isinstance(result, str):
        return [TextChunk(result)]
    if isinstance(result, (TextChunk, StructuredChunk, ToolCall)):
        return [result]
    if isinstance(result, StructuredContent):
        return [StructuredChunk(result)]
    if isinstance(result, BaseModel):
        return [
            StructuredChunk(StructuredContent.from_python(result.model_dump(mode="json")))
        ]
    if (
        isinstance(result, (list, tuple))
        and result
        and all(isinstance(item, (TextChunk, StructuredChunk)) for item in result)
    ):
        return list(result)
    if isinstance(result, (bool, int, float, list, tuple, dict)):
        return [StructuredChunk(StructuredContent.from_python(result))]
    return [TextChunk(str(result))]


def tool(
    func: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Any:
    """Build a ``Tool`` from a function.

    A function taking a single Pydantic model receives the decoded model.
    Otherwise the annotated parameters become the fields of a generated
    argument model and are passed as keyword arguments.

    Example::

        @tool
        def add(a: int, b: int) -> int:
            \"\"\"Add two integers.\"\"\"
            return a + b
    """

    def build(fn: Callable[..., Any]) -> Tool:
        tool_name = name or fn.__name__
        doc = inspect.getdoc(fn) or ""
        tool_description = description or doc.split("\n\n", 1)[0]
        params = list(inspect.signature(fn).parameters.values())

        annotation = params[0].annotation if len(params) == 1 else None
        if inspect.isclass(annotation) and issubclass(annotation, BaseModel):
            return Tool(tool_name, tool_description, ModelDescriptor(annotation), fn)

        fields: dict[str, Any] = {}
        for param in params:
            if param.annotation is inspect.Parameter.empty:
                raise TypeError(
                    f"Parameter '{param.name}' of tool '{tool_name}' needs a type annotation"
                )
            default = ... if param.default is inspect.Parameter.empty else param.default
            fields[param.name] = (param.annotation, default)
        args_model = create_model(f"{tool_name}_arguments", **fields)

        def handler(args: BaseModel) -> Any:
            return fn(**{field: getattr(args, field) for field in fields})

        return Tool(tool_name, tool_description, ModelDescriptor(args_model), handler)

    if func is not None:
        return build(func)
    return build


def index_tools(tools: Iterable[Tool]) -> dict[str, Tool]:
    """Map tool names to tools.

    Raises:
        ValueError: If two tools share a name.
    """
    index: dict[str, Tool] = {}
    for item in tools:
        if item.name in index:
            raise ValueError(f"Duplicate tool name '{item.name}'")
        index[item.name] = item
    return index
