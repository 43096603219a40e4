"""Conversation entities exchanged between callers, the tool loop and backends."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from typed_llm_client.content.structured import StructuredContent
from typed_llm_client.exceptions import ConversationStateError


class Role(Enum):
    SYSTEM = "system"
    USER = "user"
    AI = "ai"
    TOOL_OUTPUT = "tool_output"


@dataclass(frozen=True)
class TextChunk:
    text: str


@dataclass(frozen=True)
class StructuredChunk:
    content: StructuredContent


@dataclass(frozen=True)
class ToolCall:
    """A request from the model to run a tool.

    Args:
        id: Provider-assigned call identifier, echoed by the matching output
        tool_name: Name of the requested tool
        arguments: Arguments produced by the model
    """

    id: str
    tool_name: str
    arguments: StructuredContent


Chunk = TextChunk | StructuredChunk | ToolCall


def _chunk_text(chunk: Chunk) -> str:
    if isinstance(chunk, TextChunk):
        return chunk.text
    if isinstance(chunk, StructuredChunk):
        return chunk.content.json_string
    return ""


@dataclass(frozen=True)
class Message:
    """Base class for conversation messages.

    ``chunks`` is normalized to a tuple so messages stay immutable.
    """

    chunks: tuple[Chunk, ...] = ()
    role: ClassVar[Role]

    def __post_init__(self) -> None:
        object.__setattr__(self, "chunks", tuple(self.chunks))

    @classmethod
    def from_text(cls, text: str) -> "Message":
        return cls(chunks=(TextChunk(text),))

    @property
    def text(self) -> str:
        """Concatenated text of the message; structured chunks are serialized."""
        return "".join(_chunk_text(chunk) for chunk in self.chunks)


@dataclass(frozen=True)
class SystemMessage(Message):
    role: ClassVar[Role] = Role.SYSTEM


@dataclass(frozen=True)
class UserMessage(Message):
    role: ClassVar[Role] = Role.USER


@dataclass(frozen=True)
class AIMessage(Message):
    role: ClassVar[Role] = Role.AI

    @property
    def tool_calls(self) -> list[ToolCall]:
        """Tool calls requested in this message, in model order."""
        return [chunk for chunk in self.chunks if isinstance(chunk, ToolCall)]


@dataclass(frozen=True)
class ToolOutputMessage(Message):
    """Result of one tool call, matched to the request by ``id``."""

    id: str = ""
    tool_name: str = ""
    role: ClassVar[Role] = Role.TOOL_OUTPUT


def validate_history(history: Sequence[Message]) -> None:
    """Check that ``history`` can be sent to a backend for a reply.

    The history must end in a user message, and every AI message carrying
    tool calls must be followed by tool outputs for each call id before any
    other message.

    Raises:
        ConversationStateError: If either condition does not hold
    """
    if not history or not isinstance(history[-1], UserMessage):
        raise ConversationStateError(
            "A reply can only be requested when the history ends in a user message"
        )

    pending: set[str] = set()
    for message in history:
        if isinstance(message, ToolOutputMessage):
            if message.id not in pending:
                raise ConversationStateError(
                    f"Tool output '{message.id}' does not answer a pending tool call"
                )
            pending.discard(message.id)
            continue
        if pending:
            raise ConversationStateError(
                f"Tool calls {sorted(pending)} have no matching tool output"
            )
        if isinstance(message, AIMessage):
            pending = {call.id for call in message.tool_calls}
