"""MCP tools for readwise-mcp-server.

The handlers live in ``toolsets/``; this module turns them into a tool table
once and stamps out a fresh ``ReadwiseToolServer`` per tool call, so no MCP
protocol state survives from one call to the next.
"""

import logging
from functools import lru_cache

from fastmcp import FastMCP
from fastmcp.tools import Tool

from readwise_client import ReadwiseClient
from toolsets import books, documents, highlights, progress, tags, videos

logger = logging.getLogger(__name__)

SERVER_NAME = "readwise-mcp-server"

TOOLSETS = (highlights, books, documents, tags, progress, videos)


@lru_cache(maxsize=1)
def tool_table() -> tuple[Tool, ...]:
    """Every Readwise tool, built once from the handler signatures."""
    table = tuple(Tool.from_function(fn) for toolset in TOOLSETS for fn in toolset.TOOLS)
    logger.info(f"[STARTUP] {len(table)} tools registered")
    return table


def tool_names() -> list[str]:
    return [tool.name for tool in tool_table()]


class ReadwiseToolServer(FastMCP):
    """A FastMCP server carrying the upstream client its tools call through."""

    def __init__(self, client: ReadwiseClient, name: str = SERVER_NAME):
        super().__init__(name, mask_error_details=True)
        self.client = client


def create_tool_registry(client: ReadwiseClient) -> ReadwiseToolServer:
    """Fresh registry with the full tool table, bound to ``client``."""
    registry = ReadwiseToolServer(client)
    for tool in tool_table():
        registry.add_tool(tool)
    return registry
