"""MCP tool discovery via the ``mcp`` SDK and LiteLLM's experimental MCP client.

Provides ``MCPToolSource``, an async context manager that connects to an MCP
server, discovers available tools, and wraps them as ``Tool`` objects whose
async handlers dispatch calls back to the MCP session.
"""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack
from typing import Any

from litellm.experimental_mcp_client import load_mcp_tools
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.stdio import StdioServerParameters, stdio_client

from typed_llm_client.descriptors.base import RawDescriptor
from typed_llm_client.schema.json_schema import from_json_schema
from typed_llm_client.tools.tool import Tool, ToolHandler

logger = logging.getLogger(__name__)


class MCPToolSource:
    """Discovers MCP tools and wraps them as ``Tool`` objects for the tool loop.

    Uses the ``mcp`` SDK for transport/session management and LiteLLM's
    ``experimental_mcp_client.load_mcp_tools`` for schema conversion. The
    session lives as long as the ``async with`` block, on the caller's event
    loop.

    Args:
        server: URL for SSE/streamable-HTTP servers, or command/path for stdio servers.
        transport: Transport type (``"auto"``, ``"sse"``, ``"stdio"``,
            ``"streamable_http"``). ``"auto"`` infers from *server*.
        **kwargs: Extra keyword arguments forwarded to the transport client
            (e.g. ``headers``, ``timeout``).

    Example::

        async with MCPToolSource("https://example.com/mcp") as source:
            reply = await client.reply("...", tools=source.tools)
    """

    def __init__(
        self,
        server: str,
        transport: str = "auto",
        **kwargs: Any,
    ) -> None:
        self._server = server
        self._transport = transport
        self._kwargs = kwargs

        self._tools: list[Tool] = []
        self._session: ClientSession | None = None
        self._stack: AsyncExitStack | None = None

    # ------------------------------------------------------------------
    # Transport detection
    # ------------------------------------------------------------------

    def _detect_transport(self) -> str:
        """Return the resolved transport type.

        Returns:
            One of ``"sse"``, ``"stdio"``, or ``"streamable_http"``.
        """
        if self._transport != "auto":
            return self._transport

        if self._server.startswith(("http://", "https://")):
            return "sse"
        return "stdio"

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MCPToolSource:
        stack = AsyncExitStack()
        try:
            read, write = await self._open_transport(stack)
            session = await stack.enter_async_context(ClientSession(read, write))
            await self._init_session(session)
        except Exception as exc:
            await stack.aclose()
            raise RuntimeError(
                f"MCPToolSource failed to connect to {self._server}"
            ) from exc
        self._stack = stack
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._stack is not None:
            await self._stack.aclose()
        self._stack = None
        self._session = None

    async def _open_transport(self, stack: AsyncExitStack) -> tuple[Any, Any]:
        transport_type = self._detect_transport()

        if transport_type == "sse":
            read, write = await stack.enter_async_context(
                sse_client(self._server, **self._kwargs)
            )
        elif transport_type == "streamable_http":
            from mcp.client.streamable_http import streamable_http_client

            read, write, _get_session_id = await stack.enter_async_context(
                streamable_http_client(self._server, **self._kwargs)
            )
        else:
            parts = self._server.split()
            params = StdioServerParameters(command=parts[0], args=parts[1:])
            read, write = await stack.enter_async_context(stdio_client(params))
        return read, write

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def tools(self) -> list[Tool]:
        """List of discovered ``Tool`` objects."""
        return list(self._tools)

    async def _init_session(self, session: ClientSession) -> None:
        """Initialise the MCP session and discover tools."""
        self._session = session
        await session.initialize()

        openai_tools: list[dict[str, Any]] = await load_mcp_tools(
            session, format="openai"
        )  # type: ignore[assignment]
        self._tools = [self._wrap_tool(t) for t in openai_tools]

        logger.info(
            "MCPToolSource connected to %s, discovered %d tool(s)",
            self._server,
            len(self._tools),
        )

    # ------------------------------------------------------------------
    # Tool wrapping
    # ------------------------------------------------------------------

    def _wrap_tool(self, openai_tool: dict[str, Any]) -> Tool:
        """Convert an OpenAI-format tool dict into a ``Tool`` with an MCP handler."""
        func = openai_tool["function"]
        name = func["name"]
        parameters = func.get("parameters") or {"type": "object", "properties": {}}

        return Tool(
            name=name,
            description=func.get("description", ""),
            arguments=RawDescriptor(
                from_json_schema(parameters, name=f"{name}_arguments"),
                source=parameters,
            ),
            handler=self._make_handler(name),
        )

    def _make_handler(self, tool_name: str) -> ToolHandler:
        """Build an async handler that dispatches to ``session.call_tool``."""

        async def handler(args: dict[str, Any]) -> str | None:
            if self._session is None:
                raise RuntimeError("MCP session is not active")

            logger.info("Calling MCP tool %s", tool_name)
            result = await self._session.call_tool(tool_name, args)
            # Extract text from result content blocks
            texts: list[str] = []
            for block in result.content:
                if hasattr(block, "text"):
                    texts.append(block.text)
                else:
                    texts.append(json.dumps(block.model_dump()))
            if getattr(result, "isError", False):
                raise RuntimeError("\n".join(texts) or f"MCP tool {tool_name} failed")
            return "\n".join(texts) if texts else None

        return handler
