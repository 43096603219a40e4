"""Stateful conversations with a single writer."""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from typed_llm_client.agents.backend import LLMBackend, ReplyOptions
from typed_llm_client.agents.tool_loop import run_tool_loop, stream_tool_loop
from typed_llm_client.conversation.messages import Message, SystemMessage, UserMessage
from typed_llm_client.tools.tool import Tool

logger = logging.getLogger(__name__)


class Chat:
    """A conversation that keeps its history between turns.

    Turns are serialized by a lock, so concurrent ``send`` calls run one
    after the other. The history is replaced only once a turn completes;
    a failed or cancelled turn leaves it unchanged.

    Args:
        backend: Backend producing model turns
        tools: Tools available in every turn
        history: Initial messages
        system_prompt: Optional system message placed first when
            ``history`` is empty
    """

    def __init__(
        self,
        backend: LLMBackend,
        tools: Sequence[Tool] = (),
        history: Sequence[Message] = (),
        system_prompt: str | None = None,
    ) -> None:
        self.backend = backend
        self.tools = list(tools)
        self._history: list[Message] = list(history)
        if system_prompt and not self._history:
            self._history.append(SystemMessage.from_text(system_prompt))
        self._lock = asyncio.Lock()

    @property
    def history(self) -> list[Message]:
        """Copy of the conversation so far."""
        return list(self._history)

    async def send(
        self,
        prompt: str | UserMessage,
        returning: Any = str,
        options: ReplyOptions | None = None,
        max_turns: int | None = None,
    ) -> Any:
        """Send a user message and return the decoded answer.

        Args:
            prompt: Text or user message to append
            returning: Requested answer type
            options: Sampling options
            max_turns: Optional bound on backend turns

        Returns:
            The answer, typed per ``returning``
        """
        async with self._lock:
            request = [*self._history, _as_user_message(prompt)]
            reply = await run_tool_loop(
                self.backend,
                request,
                returning=returning,
                tools=self.tools,
                options=options,
                max_turns=max_turns,
            )
            self._history = reply.history
            logger.debug("Chat history now has %d message(s)", len(self._history))
            return reply.content

    async def send_stream(
        self,
        prompt: str | UserMessage,
        returning: Any = str,
        options: ReplyOptions | None = None,
        max_turns: int | None = None,
    ) -> AsyncIterator[Any]:
        """Send a user message and yield partial answers as they stream in.

        The history is updated after the stream is exhausted.
        """
        async with self._lock:
            stream = stream_tool_loop(
                self.backend,
                [*self._history, _as_user_message(prompt)],
                returning=returning,
                tools=self.tools,
                options=options,
                max_turns=max_turns,
            )
            async for partial in stream:
                yield partial
            self._history = stream.history


def _as_user_message(prompt: str | UserMessage) -> UserMessage:
    if isinstance(prompt, UserMessage):
        return prompt
    return UserMessage.from_text(prompt)  # type: ignore[return-value]
