"""The tool-invocation loop and its streaming counterpart.

Both loops alternate backend turns and tool execution until the model
answers without requesting tools. They work on a copy of the caller's
history: the copy is returned on success, and a failure at any point leaves
the caller's list exactly as it was.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any

from typed_llm_client.agents.backend import LLMBackend, ReplyOptions, TextDelta
from typed_llm_client.content.structured import StructuredContent
from typed_llm_client.conversation.messages import (
    AIMessage,
    Message,
    StructuredChunk,
    ToolCall,
    ToolOutputMessage,
    validate_history,
)
from typed_llm_client.descriptors.base import TypeDescriptor
from typed_llm_client.descriptors.reflection import descriptor_for
from typed_llm_client.exceptions import (
    BackendError,
    StructuredContentError,
    ToolLoopLimitExceeded,
    ToolNotFound,
)
from typed_llm_client.tools.tool import Tool, index_tools
from typed_llm_client.utils.json_repair import repair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextResult:
    """Final answer requested as plain text."""

    text: str


@dataclass(frozen=True)
class StructuredResult:
    """Final answer decoded from structured content."""

    content: StructuredContent
    value: Any


ReplyResult = TextResult | StructuredResult


@dataclass
class Reply:
    """Outcome of a completed tool loop.

    Attributes:
        content: The final answer, typed per the requested return type
        history: Full conversation including every turn of this reply
        result: How ``content`` was obtained (raw text or decoded content)
    """

    content: Any
    history: list[Message]
    result: ReplyResult


def _resolve_result(message: AIMessage, descriptor: TypeDescriptor[Any]) -> ReplyResult:
    if descriptor.is_text:
        return TextResult(message.text)

    structured = [chunk for chunk in message.chunks if isinstance(chunk, StructuredChunk)]
    if structured:
        content = structured[0].content
    else:
        content = StructuredContent.parse(message.text)
    return StructuredResult(content, descriptor.decode(content))


def _result_value(result: ReplyResult) -> Any:
    if isinstance(result, TextResult):
        return result.text
    return result.value


async def _dispatch_tool_calls(
    calls: Sequence[ToolCall], tools: dict[str, Tool]
) -> list[ToolOutputMessage]:
    """Run tool calls in model order; the first failure aborts the rest."""
    outputs: list[ToolOutputMessage] = []
    for call in calls:
        selected = tools.get(call.tool_name)
        if selected is None:
            raise ToolNotFound(call.tool_name)
        logger.info("Executing tool %s (call %s)", call.tool_name, call.id)
        chunks = await selected.execute(call.arguments)
        outputs.append(
            ToolOutputMessage(chunks=tuple(chunks), id=call.id, tool_name=call.tool_name)
        )
    return outputs


def _check_turn_limit(turn: int, max_turns: int | None) -> None:
    if max_turns is not None and turn >= max_turns:
        raise ToolLoopLimitExceeded(max_turns)


async def run_tool_loop(
    backend: LLMBackend,
    history: Sequence[Message],
    returning: Any = str,
    tools: Sequence[Tool] = (),
    options: ReplyOptions | None = None,
    max_turns: int | None = None,
) -> Reply:
    """Drive backend turns and tool calls until the model gives a final answer.

    Args:
        backend: Backend producing model turns
        history: Conversation ending in a user message; never mutated
        returning: Requested answer type (``str``, a Pydantic model, a type
            annotation, or a ``TypeDescriptor``)
        tools: Tools the model may call
        options: Sampling options forwarded to the backend
        max_turns: Optional bound on backend turns; unbounded by default

    Returns:
        Reply holding the decoded answer and the extended history

    Raises:
        ConversationStateError: If ``history`` cannot be replied to
        ToolNotFound: If the model calls an unknown tool
        DecodingError: If tool arguments or the final answer fail to decode
        ToolExecutionFailed: If a tool handler raises
        ToolLoopLimitExceeded: If ``max_turns`` is reached
    """
    descriptor = descriptor_for(returning)
    options = options or ReplyOptions()
    working = list(history)
    validate_history(working)
    tool_index = index_tools(tools)

    turn = 0
    while True:
        _check_turn_limit(turn, max_turns)
        turn += 1
        logger.debug("Tool loop turn %d with %d message(s)", turn, len(working))

        message = await backend.reply(list(working), descriptor.schema, list(tools), options)
        calls = message.tool_calls
        if not calls:
            working.append(message)
            result = _resolve_result(message, descriptor)
            return Reply(content=_result_value(result), history=working, result=result)

        outputs = await _dispatch_tool_calls(calls, tool_index)
        # a turn and its tool outputs land together
        working.extend([message, *outputs])


class ReplyStream:
    """Single-pass async iterator over partial answers.

    Yields the accumulated text for text answers, or partially decoded values
    for structured answers. Once exhausted, ``history``, ``content`` and
    ``result`` describe the completed reply.
    """

    def __init__(
        self,
        backend: LLMBackend,
        history: Sequence[Message],
        descriptor: TypeDescriptor[Any],
        tools: Sequence[Tool],
        options: ReplyOptions,
        max_turns: int | None,
    ) -> None:
        self._backend = backend
        self._history = list(history)
        self._descriptor = descriptor
        self._tools = list(tools)
        self._options = options
        self._max_turns = max_turns
        self._started = False
        self._reply: Reply | None = None

    def __aiter__(self) -> AsyncIterator[Any]:
        if self._started:
            raise RuntimeError("ReplyStream can only be iterated once")
        self._started = True
        return self._run()

    @property
    def reply(self) -> Reply:
        if self._reply is None:
            raise RuntimeError("ReplyStream has not finished")
        return self._reply

    @property
    def history(self) -> list[Message]:
        return self.reply.history

    @property
    def content(self) -> Any:
        return self.reply.content

    @property
    def result(self) -> ReplyResult:
        return self.reply.result

    async def _run(self) -> AsyncIterator[Any]:
        working = list(self._history)
        validate_history(working)
        tool_index = index_tools(self._tools)
        schema = self._descriptor.schema

        turn = 0
        while True:
            _check_turn_limit(turn, self._max_turns)
            turn += 1
            logger.debug("Streaming turn %d with %d message(s)", turn, len(working))

            accumulated = ""
            last_repaired = ""
            final: AIMessage | None = None
            async for item in self._backend.reply_stream(
                list(working), schema, self._tools, self._options
            ):
                if isinstance(item, AIMessage):
                    final = item
                    continue
                if not isinstance(item, TextDelta) or not item.text:
                    continue
                accumulated += item.text
                if self._descriptor.is_text:
                    yield accumulated
                    continue
                repaired = repair(accumulated)
                if not repaired or repaired == last_repaired:
                    continue
                last_repaired = repaired
                partial = self._decode_partial(repaired)
                if partial is not None:
                    yield partial

            if final is None:
                raise BackendError("Stream ended without a final message")

            calls = final.tool_calls
            if not calls:
                working.append(final)
                result = _resolve_result(final, self._descriptor)
                self._reply = Reply(
                    content=_result_value(result), history=working, result=result
                )
                return

            outputs = await _dispatch_tool_calls(calls, tool_index)
            working.extend([final, *outputs])

    def _decode_partial(self, repaired: str) -> Any:
        try:
            content = StructuredContent.parse(repaired)
        except StructuredContentError as exc:
            logger.warning("Skipping undecodable partial output: %s", exc)
            return None
        return self._descriptor.decode_partial(content)


def stream_tool_loop(
    backend: LLMBackend,
    history: Sequence[Message],
    returning: Any = str,
    tools: Sequence[Tool] = (),
    options: ReplyOptions | None = None,
    max_turns: int | None = None,
) -> ReplyStream:
    """Streaming variant of ``run_tool_loop``.

    Nothing is sent to the backend until the returned stream is iterated.
    """
    return ReplyStream(
        backend,
        history,
        descriptor_for(returning),
        tools,
        options or ReplyOptions(),
        max_turns,
    )
