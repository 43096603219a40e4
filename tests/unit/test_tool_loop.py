"""Unit tests for the tool-invocation loop."""

from typing import Any

import pytest
from conftest import ScriptedBackend, json_turn, text_turn, tool_turn
from pydantic import BaseModel

from typed_llm_client.agents.backend import ReplyOptions
from typed_llm_client.agents.tool_loop import (
    StructuredResult,
    TextResult,
    run_tool_loop,
)
from typed_llm_client.content.structured import StructuredContent
from typed_llm_client.conversation.messages import (
    AIMessage,
    SystemMessage,
    ToolOutputMessage,
    UserMessage,
)
from typed_llm_client.descriptors import RawDescriptor
from typed_llm_client.exceptions import (
    BackendError,
    CancellationRequested,
    ConversationStateError,
    MissingRequiredProperty,
    ToolExecutionFailed,
    ToolLoopLimitExceeded,
    ToolNotFound,
)
from typed_llm_client.schema import ObjectSchema, StringSchema
from typed_llm_client.tools.tool import Tool, tool


class City(BaseModel):
    name: str
    population: int


@tool
def calculator(a: int, b: int) -> int:
    """Add two integers."""
    return a + b


class TestTerminalTurn:
    """Loops that end on the first backend turn."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_single_invocation_without_tool_calls(self) -> None:
        """Test that a turn without tool calls ends the loop."""
        backend = ScriptedBackend([text_turn("Hello!")])
        history = [UserMessage.from_text("Hi")]

        reply = await run_tool_loop(backend, history)

        assert len(backend.calls) == 1
        assert reply.content == "Hello!"
        assert reply.result == TextResult("Hello!")
        assert [type(m) for m in reply.history] == [UserMessage, AIMessage]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_string_target_sends_string_schema(self) -> None:
        """Test that a str target sends a string schema."""
        backend = ScriptedBackend([text_turn("ok")])

        await run_tool_loop(backend, [UserMessage.from_text("Hi")])

        assert backend.calls[0]["schema"] == StringSchema()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_structured_target_decoded(self) -> None:
        """Test that a structured chunk decodes into the target model."""
        backend = ScriptedBackend([json_turn({"name": "Paris", "population": 2100000})])

        reply = await run_tool_loop(
            backend, [UserMessage.from_text("A city")], returning=City
        )

        assert reply.content == City(name="Paris", population=2100000)
        assert isinstance(reply.result, StructuredResult)
        assert isinstance(backend.calls[0]["schema"], ObjectSchema)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_structured_target_from_text_chunk(self) -> None:
        """Test that JSON text decodes into the target model."""
        backend = ScriptedBackend([text_turn('{"name": "Oslo", "population": 700000}')])

        reply = await run_tool_loop(
            backend, [UserMessage.from_text("A city")], returning=City
        )

        assert reply.content.name == "Oslo"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_target(self) -> None:
        """Test that a list target decodes a JSON array."""
        backend = ScriptedBackend([json_turn([1, 2, 3])])

        reply = await run_tool_loop(
            backend, [UserMessage.from_text("Numbers")], returning=list[int]
        )

        assert reply.content == [1, 2, 3]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_decode_failure_propagates(self) -> None:
        """Test that a decoding error propagates and leaves history untouched."""
        backend = ScriptedBackend([json_turn({"name": "Nowhere"})])
        history = [UserMessage.from_text("A city")]

        with pytest.raises(MissingRequiredProperty):
            await run_tool_loop(backend, history, returning=City)

        assert history == [UserMessage.from_text("A city")]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_options_forwarded(self) -> None:
        """Test that reply options reach the backend unchanged."""
        backend = ScriptedBackend([text_turn("ok")])
        options = ReplyOptions(temperature=0.2, max_tokens=50)

        await run_tool_loop(backend, [UserMessage.from_text("Hi")], options=options)

        assert backend.calls[0]["options"] is options


class TestHistoryValidation:
    """The loop refuses histories it cannot reply to."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_history_must_end_in_user_message(self) -> None:
        """Test that a history not ending in a user message is refused."""
        backend = ScriptedBackend([text_turn("unused")])
        history = [SystemMessage.from_text("be nice")]

        with pytest.raises(ConversationStateError):
            await run_tool_loop(backend, history)

        assert backend.calls == []


class TestToolDispatch:
    """Loops that execute tools."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_calculator_end_to_end(self) -> None:
        """Test that a tool call is executed and its output sent back."""
        backend = ScriptedBackend(
            [
                tool_turn(("call_1", "calculator", {"a": 15, "b": 27})),
                text_turn("15 + 27 = 42"),
            ]
        )

        reply = await run_tool_loop(
            backend, [UserMessage.from_text("Calculate 15 + 27")], tools=[calculator]
        )

        assert "42" in reply.content
        assert [type(m) for m in reply.history] == [
            UserMessage,
            AIMessage,
            ToolOutputMessage,
            AIMessage,
        ]
        output = reply.history[2]
        assert isinstance(output, ToolOutputMessage)
        assert output.id == "call_1"
        assert output.tool_name == "calculator"
        assert output.text == "42"
        assert backend.calls[1]["history"] == reply.history[:3]
        assert backend.calls[0]["tools"] == ["calculator"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("turns", [1, 2, 4])
    async def test_n_tool_turns_extend_history(self, turns: int) -> None:
        """Test that each tool turn adds a call and an output to history."""
        executions: list[Any] = []

        def handler(args: Any) -> str:
            executions.append(args)
            return "done"

        counter = Tool("count", "Counts", calculator.arguments, handler)
        script = [
            tool_turn((f"call_{i}", "count", {"a": i, "b": 0})) for i in range(turns)
        ]
        backend = ScriptedBackend([*script, text_turn("finished")])
        history = [SystemMessage.from_text("sys"), UserMessage.from_text("go")]

        reply = await run_tool_loop(backend, history, tools=[counter])

        assert len(executions) == turns
        assert len(backend.calls) == turns + 1
        assert len(reply.history) == len(history) + 2 * turns + 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_multiple_calls_in_one_turn_run_in_order(self) -> None:
        """Test that calls from one turn run in the order given."""
        order: list[str] = []

        def handler(args: Any) -> str:
            order.append(args["tag"])
            return args["tag"]

        echo = Tool("echo", "Echo", RawDescriptor(StringSchema()), handler)
        backend = ScriptedBackend(
            [
                tool_turn(("c1", "echo", {"tag": "first"}), ("c2", "echo", {"tag": "second"})),
                text_turn("done"),
            ]
        )

        reply = await run_tool_loop(backend, [UserMessage.from_text("go")], tools=[echo])

        assert order == ["first", "second"]
        assert [m.id for m in reply.history if isinstance(m, ToolOutputMessage)] == [
            "c1",
            "c2",
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_tool_raises(self) -> None:
        """Test that a call to an unregistered tool raises ToolNotFound."""
        backend = ScriptedBackend([tool_turn(("c1", "missing", {}))])

        with pytest.raises(ToolNotFound) as exc_info:
            await run_tool_loop(backend, [UserMessage.from_text("go")], tools=[calculator])

        assert exc_info.value.name == "missing"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failing_tool_aborts_without_further_calls(self) -> None:
        """Test that a tool failure stops the loop."""

        def handler(args: Any) -> str:
            raise RuntimeError("tool crashed")

        broken = Tool("broken", "Fails", calculator.arguments, handler)
        backend = ScriptedBackend(
            [tool_turn(("c1", "broken", {"a": 1, "b": 2})), text_turn("never")]
        )
        history = [UserMessage.from_text("go")]

        with pytest.raises(ToolExecutionFailed) as exc_info:
            await run_tool_loop(backend, history, tools=[broken])

        assert exc_info.value.tool == "broken"
        assert len(backend.calls) == 1
        assert history == [UserMessage.from_text("go")]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_arguments_raise_decoding_error(self) -> None:
        """Test that invalid tool arguments raise MissingRequiredProperty."""
        backend = ScriptedBackend([tool_turn(("c1", "calculator", {"a": 1}))])

        with pytest.raises(MissingRequiredProperty):
            await run_tool_loop(backend, [UserMessage.from_text("go")], tools=[calculator])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancellation_passes_through(self) -> None:
        """Test that cancellation from a tool is not wrapped."""

        def handler(args: Any) -> str:
            raise CancellationRequested()

        stop = Tool("stop", "Stops", calculator.arguments, handler)
        backend = ScriptedBackend([tool_turn(("c1", "stop", {"a": 1, "b": 1}))])

        with pytest.raises(CancellationRequested):
            await run_tool_loop(backend, [UserMessage.from_text("go")], tools=[stop])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_backend_error_passes_through(self) -> None:
        """Test that backend errors propagate unchanged."""
        error = BackendError("rate limited", provider="openai")
        backend = ScriptedBackend([error])

        with pytest.raises(BackendError) as exc_info:
            await run_tool_loop(backend, [UserMessage.from_text("go")])

        assert exc_info.value is error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_max_turns_bounds_the_loop(self) -> None:
        """Test that the loop stops after max_turns backend calls."""
        backend = ScriptedBackend(
            [tool_turn((f"c{i}", "calculator", {"a": 1, "b": 1})) for i in range(5)]
        )

        with pytest.raises(ToolLoopLimitExceeded) as exc_info:
            await run_tool_loop(
                backend, [UserMessage.from_text("go")], tools=[calculator], max_turns=3
            )

        assert exc_info.value.max_turns == 3
        assert len(backend.calls) == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_tool_arguments_sent_back_in_history(self) -> None:
        """Test that the AI message in history keeps the tool arguments."""
        backend = ScriptedBackend(
            [tool_turn(("c1", "calculator", {"a": 2, "b": 3})), text_turn("5")]
        )

        reply = await run_tool_loop(
            backend, [UserMessage.from_text("go")], tools=[calculator]
        )

        ai_message = reply.history[1]
        assert isinstance(ai_message, AIMessage)
        assert ai_message.tool_calls[0].arguments == StructuredContent.from_python(
            {"a": 2, "b": 3}
        )
