"""Unit tests for the Tool dataclass, the tool decorator and index_tools."""

import asyncio
from typing import Any

import pytest
from pydantic import BaseModel, Field

from typed_llm_client.content.structured import StructuredContent
from typed_llm_client.conversation.messages import StructuredChunk, TextChunk
from typed_llm_client.descriptors import ModelDescriptor, RawDescriptor
from typed_llm_client.exceptions import (
    CancellationRequested,
    MissingRequiredProperty,
    ToolExecutionFailed,
)
from typed_llm_client.schema import ObjectSchema, StringSchema
from typed_llm_client.tools.tool import Tool, index_tools, to_chunks, tool


class SearchArgs(BaseModel):
    """Arguments for a search."""

    query: str = Field(description="Search term")
    limit: int = 10


def _args(**values: Any) -> StructuredContent:
    return StructuredContent.from_python(values)


class TestTool:
    """Tests for the Tool frozen dataclass."""

    @pytest.mark.unit
    def test_tool_creation(self) -> None:
        """Test that Tool stores all fields correctly."""


        def handler(args: SearchArgs) -> str:
            return "ok"

        search = Tool(
            name="search",
            description="A test tool",
            arguments=ModelDescriptor(SearchArgs),
            handler=handler,
        )

        assert search.name == "search"
        assert search.description == "A test tool"
        assert isinstance(search.parameters, ObjectSchema)
        assert list(search.parameters.properties) == ["query", "limit"]
        assert search.handler is handler

    @pytest.mark.unit
    def test_tool_frozen(self) -> None:
        """Test that Tool is immutable (frozen dataclass)."""
        immutable = Tool(
            name="immutable",
            description="Cannot change",
            arguments=RawDescriptor(StringSchema()),
            handler=lambda args: None,
        )

        with pytest.raises(AttributeError):
            immutable.name = "changed"  # type: ignore[misc]

    @pytest.mark.unit
    def test_tool_to_litellm_schema(self) -> None:
        """Test that to_litellm_schema produces an OpenAI-format dict."""
        search = Tool(
            name="search",
            description="Search for items",
            arguments=ModelDescriptor(SearchArgs),
            handler=lambda args: "result",
        )

        schema = search.to_litellm_schema()

        assert schema["type"] == "function"
        assert schema["function"]["name"] == "search"
        assert schema["function"]["description"] == "Search for items"
        parameters = schema["function"]["parameters"]
        assert parameters["type"] == "object"
        assert parameters["required"] == ["query", "limit"]
        assert parameters["properties"]["query"]["description"] == "Search term"


class TestToolExecute:
    """Tests for Tool.execute."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sync_handler_receives_decoded_model(self) -> None:
        """Test that a sync handler receives the decoded arguments model."""
        captured: list[SearchArgs] = []

        def handler(args: SearchArgs) -> str:
            captured.append(args)
            return f"found {args.query}"

        search = Tool("search", "Search", ModelDescriptor(SearchArgs), handler)

        chunks = await search.execute(_args(query="cells", limit=2))

        assert chunks == [TextChunk("found cells")]
        assert captured[0] == SearchArgs(query="cells", limit=2)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_handler_awaited(self) -> None:
        """Test that an async handler is awaited."""
        async def handler(args: Any) -> dict[str, Any]:
            await asyncio.sleep(0)
            return {"echo": args}

        echo = Tool("echo", "Echo", RawDescriptor(StringSchema()), handler)

        chunks = await echo.execute(_args(x=1))

        assert chunks == [StructuredChunk(StructuredContent.from_python({"echo": {"x": 1}}))]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_handler_failure_wrapped(self) -> None:
        """Test that handler exceptions are wrapped in ToolExecutionFailed."""

        def handler(args: Any) -> str:
            raise ZeroDivisionError("boom")

        broken = Tool("broken", "Fails", RawDescriptor(StringSchema()), handler)

        with pytest.raises(ToolExecutionFailed) as exc_info:
            await broken.execute(_args())

        assert exc_info.value.tool == "broken"
        assert isinstance(exc_info.value.underlying, ZeroDivisionError)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancellation_passes_through(self) -> None:
        """Test that cancellation is not wrapped."""

        def handler(args: Any) -> str:
            raise CancellationRequested()

        stop = Tool("stop", "Stops", RawDescriptor(StringSchema()), handler)

        with pytest.raises(CancellationRequested):
            await stop.execute(_args())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bad_arguments_raise_decoding_error(self) -> None:
        """Test that invalid arguments raise MissingRequiredProperty."""
        search = Tool("search", "Search", ModelDescriptor(SearchArgs), lambda a: "x")

        with pytest.raises(MissingRequiredProperty):
            await search.execute(_args(limit=3))


class TestToChunks:
    """Conversion of handler results to chunks."""

    @pytest.mark.unit
    def test_none_gives_no_chunks(self) -> None:
        """Test that a None result produces no chunks."""
        assert to_chunks(None) == []

    @pytest.mark.unit
    def test_model_result_is_structured(self) -> None:
        """Test that a model result becomes a structured chunk."""
        chunks = to_chunks(SearchArgs(query="q"))

        assert chunks == [
            StructuredChunk(StructuredContent.from_python({"query": "q", "limit": 10}))
        ]

    @pytest.mark.unit
    def test_number_result_is_structured(self) -> None:
        """Test that a number result becomes a structured chunk."""
        assert to_chunks(42) == [StructuredChunk(StructuredContent.from_python(42))]

    @pytest.mark.unit
    def test_chunk_list_kept(self) -> None:
        """Test that a list of chunks is returned unchanged."""
        chunks = [TextChunk("a"), TextChunk("b")]

        assert to_chunks(chunks) == chunks


class TestToolDecorator:
    """Tests for the tool decorator."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_decorator_from_parameters(self) -> None:
        """Test that the decorator builds an arguments model from parameters."""

        @tool
        def add(a: int, b: int) -> int:
            """Add two integers.

            Longer explanation that is not part of the description.
            """
            return a + b

        assert isinstance(add, Tool)
        assert add.name == "add"
        assert add.description == "Add two integers."
        assert list(add.parameters.properties) == ["a", "b"]  # type: ignore[attr-defined]
        assert await add.execute(_args(a=15, b=27)) == [
            StructuredChunk(StructuredContent.from_python(42))
        ]

    @pytest.mark.unit
    def test_decorator_with_model_parameter(self) -> None:
        """Test that a single model parameter is used as the arguments model."""

        @tool(name="lookup", description="Look something up")
        def find(args: SearchArgs) -> str:
            return args.query

        assert find.name == "lookup"
        assert find.description == "Look something up"
        assert isinstance(find.arguments, ModelDescriptor)
        assert find.arguments.model is SearchArgs

    @pytest.mark.unit
    def test_decorator_requires_annotations(self) -> None:
        """Test that unannotated parameters raise TypeError."""
        with pytest.raises(TypeError):

            @tool
            def untyped(a):  # type: ignore[no-untyped-def]
                return a


class TestIndexTools:
    """Tests for index_tools."""

    @pytest.mark.unit
    def test_index_by_name(self) -> None:
        """Test that tools are indexed by name."""
        first = Tool("a", "A", RawDescriptor(StringSchema()), lambda x: None)
        second = Tool("b", "B", RawDescriptor(StringSchema()), lambda x: None)

        assert index_tools([first, second]) == {"a": first, "b": second}

    @pytest.mark.unit
    def test_duplicate_names_rejected(self) -> None:
        """Test that duplicate tool names raise ValueError."""
        first = Tool("a", "A", RawDescriptor(StringSchema()), lambda x: None)

        with pytest.raises(ValueError):
            index_tools([first, first])
