"""Backend adapter contract used by the tool loop."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from typed_llm_client.conversation.messages import AIMessage, Message
from typed_llm_client.schema.schema import Schema
from typed_llm_client.tools.tool import Tool


@dataclass(frozen=True)
class ReplyOptions:
    """Sampling and transport options forwarded to the backend.

    ``None`` leaves the provider default in place.
    """

    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class TextDelta:
    """An incremental piece of model output while streaming."""

    text: str


class LLMBackend(ABC):
    """Abstract base class for model backends.

    A backend produces exactly one model turn per call: an ``AIMessage``
    holding zero or more ``ToolCall`` chunks plus optional text or structured
    content. Backends never execute tools and never mutate ``history``.
    """

    @abstractmethod
    async def reply(
        self,
        history: Sequence[Message],
        schema: Schema,
        tools: Sequence[Tool],
        options: ReplyOptions,
    ) -> AIMessage:
        """Generate one model turn.

        Args:
            history: Conversation so far, ending in a user or tool-output message
            schema: Shape requested for the final answer
            tools: Tools the model may call
            options: Sampling options

        Returns:
            The model turn

        Raises:
            BackendError: If the provider call fails
        """

    async def reply_stream(
        self,
        history: Sequence[Message],
        schema: Schema,
        tools: Sequence[Tool],
        options: ReplyOptions,
    ) -> AsyncIterator[TextDelta | AIMessage]:
        """Generate one model turn incrementally.

        Yields ``TextDelta`` items followed by the complete ``AIMessage`` as
        the last item. The default implementation calls ``reply`` and emits
        the whole text as a single delta.
        """
        message = await self.reply(history, schema, tools, options)
        if message.text:
            yield TextDelta(message.text)
        yield message
