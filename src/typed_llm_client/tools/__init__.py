"""Tool helpers for the tool-invocation loop."""

from .mcp_source import MCPToolSource
from .tool import Tool, index_tools, to_chunks, tool

__all__ = ["MCPToolSource", "Tool", "index_tools", "to_chunks", "tool"]
