"""Backend adapter built on LiteLLM for multi-provider support."""

import logging
import re
from collections.abc import AsyncIterator, Sequence
from typing import Any

from litellm import acompletion

from typed_llm_client.agents.backend import LLMBackend, ReplyOptions, TextDelta
from typed_llm_client.content.structured import ContentKind, StructuredContent
from typed_llm_client.conversation.messages import (
    AIMessage,
    Chunk,
    Message,
    StructuredChunk,
    SystemMessage,
    TextChunk,
    ToolCall,
    ToolOutputMessage,
    UserMessage,
)
from typed_llm_client.exceptions import BackendError, StructuredContentError
from typed_llm_client.schema.json_schema import to_json_schema
from typed_llm_client.schema.schema import ObjectSchema, Property, Schema
from typed_llm_client.tools.tool import Tool

logger = logging.getLogger(__name__)

# OpenAI structured outputs require an object at the root
_WRAPPER_KEY = "value"


class LiteLLMBackend(LLMBackend):
    """LLM backend using LiteLLM for multi-provider support.

    Structured targets are requested through ``response_format`` with a
    strict JSON Schema. Targets that are not objects are wrapped in an
    object with a single ``value`` property and unwrapped on the way back.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        max_tokens: int = 1000,
    ):
        """Initialize the LiteLLM backend.

        Args:
            model: The model name (e.g., 'gpt-4o-mini', 'claude-3-haiku-20240307')
            api_key: The API key for authentication
            max_tokens: Maximum tokens for response (default: 1000)

        Raises:
            ValueError: If model or api_key is None
        """
        if model is None:
            raise ValueError("Model is required")
        if api_key is None:
            raise ValueError("API key is required")

        self.model = model
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.provider = self._get_provider_from_model(model)

    # ------------------------------------------------------------------
    # LLMBackend
    # ------------------------------------------------------------------

    async def reply(
        self,
        history: Sequence[Message],
        schema: Schema,
        tools: Sequence[Tool],
        options: ReplyOptions,
    ) -> AIMessage:
        kwargs = self._request_kwargs(history, schema, tools, options)
        try:
            response = await acompletion(**kwargs)
        except Exception as exc:
            raise self._backend_error(exc) from exc

        response_message = response.choices[0].message
        raw_calls = [
            (
                getattr(tool_call, "id", "") or "",
                getattr(tool_call.function, "name", "") or "",
                getattr(tool_call.function, "arguments", "") or "",
            )
            for tool_call in (getattr(response_message, "tool_calls", None) or [])
        ]
        return self._build_message(response_message.content, raw_calls, schema)

    async def reply_stream(
        self,
        history: Sequence[Message],
        schema: Schema,
        tools: Sequence[Tool],
        options: ReplyOptions,
    ) -> AsyncIterator[TextDelta | AIMessage]:
        kwargs = self._request_kwargs(history, schema, tools, options)
        kwargs["stream"] = True
        wrapped = self._needs_wrapper(schema)

        text_parts: list[str] = []
        # tool calls arrive as fragments keyed by index
        calls: dict[int, dict[str, str]] = {}
        try:
            response = await acompletion(**kwargs)
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                content = getattr(delta, "content", None)
                if content:
                    text_parts.append(content)
                    if not wrapped:
                        yield TextDelta(content)
                for fragment in getattr(delta, "tool_calls", None) or []:
                    entry = calls.setdefault(
                        fragment.index or 0, {"id": "", "name": "", "arguments": ""}
                    )
                    if fragment.id:
                        entry["id"] = fragment.id
                    function = getattr(fragment, "function", None)
                    if function is not None:
                        if function.name:
                            entry["name"] = function.name
                        if function.arguments:
                            entry["arguments"] += function.arguments
        except Exception as exc:
            raise self._backend_error(exc) from exc

        raw_calls = [
            (entry["id"], entry["name"], entry["arguments"])
            for _, entry in sorted(calls.items())
        ]
        yield self._build_message("".join(text_parts) or None, raw_calls, schema)

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _request_kwargs(
        self,
        history: Sequence[Message],
        schema: Schema,
        tools: Sequence[Tool],
        options: ReplyOptions,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": self._to_litellm_messages(history),
            "max_tokens": options.max_tokens or self.max_tokens,
            "api_key": self.api_key,
        }
        if tools:
            kwargs["tools"] = [t.to_litellm_schema() for t in tools]
        response_format = self._response_format(schema)
        if response_format is not None:
            kwargs["response_format"] = response_format
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature
        if options.top_p is not None:
            kwargs["top_p"] = options.top_p
        if options.timeout is not None:
            kwargs["timeout"] = options.timeout
        return kwargs

    def _to_litellm_messages(self, history: Sequence[Message]) -> list[dict[str, Any]]:
        """Convert conversation messages to OpenAI-format chat messages."""
        messages: list[dict[str, Any]] = []
        for message in history:
            if isinstance(message, SystemMessage):
                messages.append({"role": "system", "content": message.text})
            elif isinstance(message, UserMessage):
                messages.append({"role": "user", "content": message.text})
            elif isinstance(message, AIMessage):
                assistant_message: dict[str, Any] = {
                    "role": "assistant",
                    "content": message.text or None,
                }
                if message.tool_calls:
                    assistant_message["tool_calls"] = [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.tool_name,
                                "arguments": call.arguments.json_string,
                            },
                        }
                        for call in message.tool_calls
                    ]
                messages.append(assistant_message)
            elif isinstance(message, ToolOutputMessage):
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": message.id,
                        "content": message.text,
                    }
                )
        return messages

    @staticmethod
    def _needs_wrapper(schema: Schema) -> bool:
        return schema.kind not in ("string", "object")

    def _response_format(self, schema: Schema) -> dict[str, Any] | None:
        if schema.kind == "string":
            return None
        if self._needs_wrapper(schema):
            schema = ObjectSchema(
                name="Response", property_list=(Property(_WRAPPER_KEY, schema),)
            )
        name = getattr(schema, "name", "Response")
        return {
            "type": "json_schema",
            "json_schema": {
                "name": re.sub(r"[^a-zA-Z0-9_-]", "_", name)[:64],
                "schema": to_json_schema(schema),
                "strict": True,
            },
        }

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def _build_message(
        self,
        content: str | None,
        raw_calls: list[tuple[str, str, str]],
        schema: Schema,
    ) -> AIMessage:
        chunks: list[Chunk] = []
        if content:
            chunks.append(self._content_chunk(content, schema, bool(raw_calls)))

        for index, (call_id, name, arguments) in enumerate(raw_calls):
            try:
                parsed = StructuredContent.parse(arguments or "{}")
            except StructuredContentError as exc:
                raise BackendError(
                    f"Failed to parse arguments for tool '{name}'.",
                    underlying=exc,
                    provider=self.provider,
                    model=self.model,
                ) from exc
            chunks.append(
                ToolCall(id=call_id or f"{name}_{index}", tool_name=name, arguments=parsed)
            )

        return AIMessage(chunks=tuple(chunks))

    def _content_chunk(self, content: str, schema: Schema, has_calls: bool) -> Chunk:
        if schema.kind == "string" or has_calls:
            return TextChunk(content)
        try:
            parsed = StructuredContent.parse(content)
        except StructuredContentError:
            logger.warning("Model returned non-JSON content for a structured reply")
            return TextChunk(content)
        if self._needs_wrapper(schema):
            members = parsed.as_object() if parsed.kind is ContentKind.OBJECT else {}
            if _WRAPPER_KEY in members:
                parsed = members[_WRAPPER_KEY]
        return StructuredChunk(parsed)

    def _backend_error(self, exc: Exception) -> BackendError:
        return BackendError(
            f"{self.provider} request failed: {exc}",
            underlying=exc,
            provider=self.provider,
            model=self.model,
        )

    def _get_provider_from_model(self, model: str) -> str:
        """Determine provider from model name.

        Args:
            model: The model name

        Returns:
            Provider name ('openai', 'anthropic', etc.)
        """
        model_lower = model.lower()

        if "claude" in model_lower:
            return "anthropic"
        elif any(
            prefix in model_lower
            for prefix in ["gpt", "davinci", "curie", "babbage", "ada"]
        ):
            return "openai"
        elif any(prefix in model_lower for prefix in ["gemini", "palm", "bison"]):
            return "google"
        elif "llama" in model_lower:
            return "meta"
        else:
            return "unknown"
