"""Shared pytest configuration and fixtures for the test suite."""

import os
from collections.abc import AsyncIterator, Sequence
from typing import Any
from unittest.mock import Mock

import pytest

from typed_llm_client.agents.backend import LLMBackend, ReplyOptions, TextDelta
from typed_llm_client.content.structured import StructuredContent
from typed_llm_client.conversation.messages import (
    AIMessage,
    Message,
    StructuredChunk,
    TextChunk,
    ToolCall,
)
from typed_llm_client.schema.schema import Schema
from typed_llm_client.tools.tool import Tool

# Environment detection for integration testing strategy
IS_CI = os.getenv("CI", "false").lower() == "true"


class ScriptedBackend(LLMBackend):
    """Backend replaying a fixed list of model turns.

    Each entry is an ``AIMessage`` to return or an exception to raise.
    ``deltas`` optionally lists, per turn, the text deltas to stream before
    the turn's message.
    """

    def __init__(
        self,
        turns: Sequence[AIMessage | BaseException],
        deltas: Sequence[Sequence[str]] | None = None,
    ) -> None:
        self.turns = list(turns)
        self.deltas = [list(d) for d in deltas] if deltas is not None else None
        self.calls: list[dict[str, Any]] = []

    def _next(
        self,
        history: Sequence[Message],
        schema: Schema,
        tools: Sequence[Tool],
        options: ReplyOptions,
    ) -> AIMessage:
        self.calls.append(
            {
                "history": list(history),
                "schema": schema,
                "tools": [t.name for t in tools],
                "options": options,
            }
        )
        if not self.turns:
            raise AssertionError("ScriptedBackend ran out of turns")
        turn = self.turns.pop(0)
        if isinstance(turn, BaseException):
            raise turn
        return turn

    async def reply(
        self,
        history: Sequence[Message],
        schema: Schema,
        tools: Sequence[Tool],
        options: ReplyOptions,
    ) -> AIMessage:
        return self._next(history, schema, tools, options)

    async def reply_stream(
        self,
        history: Sequence[Message],
        schema: Schema,
        tools: Sequence[Tool],
        options: ReplyOptions,
    ) -> AsyncIterator[TextDelta | AIMessage]:
        if self.deltas is None:
            async for item in super().reply_stream(history, schema, tools, options):
                yield item
            return
        turn_deltas = self.deltas.pop(0) if self.deltas else []
        message = self._next(history, schema, tools, options)
        for text in turn_deltas:
            yield TextDelta(text)
        yield message


def text_turn(text: str) -> AIMessage:
    return AIMessage(chunks=(TextChunk(text),))


def json_turn(value: Any) -> AIMessage:
    return AIMessage(chunks=(StructuredChunk(StructuredContent.from_python(value)),))


def tool_turn(*calls: tuple[str, str, dict[str, Any]]) -> AIMessage:
    return AIMessage(
        chunks=tuple(
            ToolCall(id=call_id, tool_name=name, arguments=StructuredContent.from_python(args))
            for call_id, name, args in calls
        )
    )


@pytest.fixture
def scripted_backend() -> type[ScriptedBackend]:
    """Factory for backends replaying scripted turns."""
    return ScriptedBackend


@pytest.fixture
def mock_api_response() -> Mock:
    """Mock LiteLLM completion response with plain text content."""
    mock_response = Mock()
    mock_response.choices = [Mock()]
    mock_response.choices[0].message.content = "Test response"
    mock_response.choices[0].message.tool_calls = None
    return mock_response


@pytest.fixture
def sample_api_key() -> str:
    """Sample API key for testing."""
    return "test-api-key-12345"


class SecureTestConfig:
    """Test configuration that doesn't expose API keys in repr."""

    def __init__(self, openai_key: str | None, anthropic_key: str | None) -> None:
        self._openai_key = openai_key
        self._anthropic_key = anthropic_key

    def __getitem__(self, key: str) -> Any:
        if key == "openai_api_key":
            return self._openai_key
        elif key == "anthropic_api_key":
            return self._anthropic_key
        else:
            raise KeyError(key)

    def __repr__(self) -> str:
        return "SecureTestConfig(keys_available=True)"


@pytest.fixture
def integration_test_setup() -> SecureTestConfig:
    """Setup fixture for integration tests; skips when no API key is set."""
    openai_key = os.getenv("OPENAI_API_KEY")
    anthropic_key = os.getenv("ANTHROPIC_API_KEY")

    if not openai_key and not anthropic_key:
        pytest.skip(
            "Integration tests require real API keys. Set OPENAI_API_KEY or "
            "ANTHROPIC_API_KEY environment variables."
        )

    return SecureTestConfig(openai_key=openai_key, anthropic_key=anthropic_key)
