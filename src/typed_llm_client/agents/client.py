"""High-level client combining a backend with the tool loop."""

from collections.abc import Sequence
from typing import Any

from typed_llm_client.agents.backend import LLMBackend, ReplyOptions
from typed_llm_client.agents.chat import Chat
from typed_llm_client.agents.tool_loop import (
    Reply,
    ReplyStream,
    run_tool_loop,
    stream_tool_loop,
)
from typed_llm_client.conversation.messages import Message, SystemMessage, UserMessage
from typed_llm_client.tools.tool import Tool


class TypedLLMClient:
    """Entry point for typed replies from any ``LLMBackend``.

    Example::

        client = TypedLLMClient(create_litellm_backend("gpt-4o-mini"))
        reply = await client.reply("Name a city in France", returning=City)
        print(reply.content.name)
    """

    def __init__(self, backend: LLMBackend) -> None:
        self.backend = backend

    def _build_history(
        self,
        prompt: str | Sequence[Message],
        system_message: str | None,
    ) -> list[Message]:
        if isinstance(prompt, str):
            history: list[Message] = [UserMessage.from_text(prompt)]
        else:
            history = list(prompt)
        if system_message:
            history.insert(0, SystemMessage.from_text(system_message))
        return history

    async def reply(
        self,
        prompt: str | Sequence[Message],
        returning: Any = str,
        tools: Sequence[Tool] = (),
        system_message: str | None = None,
        options: ReplyOptions | None = None,
        max_turns: int | None = None,
    ) -> Reply:
        """Run the tool loop for a prompt or a full conversation.

        Args:
            prompt: User text, or a history ending in a user message
            returning: Requested answer type (``str`` for plain text)
            tools: Tools the model may call
            system_message: Optional system prompt placed first
            options: Sampling options
            max_turns: Optional bound on backend turns

        Returns:
            Reply with the typed content and the extended history
        """
        return await run_tool_loop(
            self.backend,
            self._build_history(prompt, system_message),
            returning=returning,
            tools=tools,
            options=options,
            max_turns=max_turns,
        )

    def reply_stream(
        self,
        prompt: str | Sequence[Message],
        returning: Any = str,
        tools: Sequence[Tool] = (),
        system_message: str | None = None,
        options: ReplyOptions | None = None,
        max_turns: int | None = None,
    ) -> ReplyStream:
        """Streaming variant of ``reply``; iterate the result for partial answers."""
        return stream_tool_loop(
            self.backend,
            self._build_history(prompt, system_message),
            returning=returning,
            tools=tools,
            options=options,
            max_turns=max_turns,
        )

    def chat(
        self,
        tools: Sequence[Tool] = (),
        system_prompt: str | None = None,
        history: Sequence[Message] = (),
    ) -> Chat:
        """Start a stateful conversation on this client's backend."""
        return Chat(self.backend, tools=tools, history=history, system_prompt=system_prompt)
