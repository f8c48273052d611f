"""MCP client utilities shared by the bridge and model MCP connections.

This module handles:
- Normalizing MCP tool results into the string a chat tool returns
- Building chat Tools from MCP tool listings
- Event loop management for async operations in sync contexts
- Server status checking
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastmcp import Client as MCPClient

from wingman.service.chat.models import Tool, ToolContext

logger = logging.getLogger(__name__)

NO_CONTENT = "no content"


def _block_to_dict(block: Any) -> dict[str, Any]:
    if isinstance(block, dict):
        return block
    if hasattr(block, "model_dump"):
        return block.model_dump(mode="json", exclude_none=True)
    return {"type": getattr(block, "type", "unknown"), "value": str(block)}


def normalize_tool_content(blocks: list[Any] | None) -> str:
    """Flatten MCP content blocks into one string.

    Rules:
        - no blocks -> "no content"
        - only text blocks -> their non-empty texts joined by blank lines
        - a single non-text block -> that block as JSON
        - several blocks with any non-text -> a JSON list of the blocks

    Args:
        blocks: The `content` of a CallToolResult (pydantic models or dicts)

    Returns:
        str: Tool output as the model will see it
    """
    if not blocks:
        return NO_CONTENT

    items = [_block_to_dict(block) for block in blocks]

    if all(item.get("type") == "text" for item in items):
        texts = [item.get("text", "") for item in items]
        return "\n\n".join(text for text in texts if text and text.strip())

    if len(items) == 1:
        return json.dumps(items[0])

    return json.dumps(items)


async def call_mcp_tool(
    server_url: str, tool_name: str, params: dict[str, Any] | None = None
) -> str:
    """Connect to an MCP server, call one tool and normalize its result.

    Args:
        server_url: The MCP server URL (e.g., "http://localhost:4200/sse")
        tool_name: Name of the tool to call
        params: Parameters to pass to the tool (default: empty dict)

    Returns:
        str: The normalized tool output

    Raises:
        Exception: If the MCP server connection or tool call fails
    """
    if params is None:
        params = {}

    client = MCPClient(server_url)
    async with client:
        result = await client.call_tool(tool_name, params)
        return normalize_tool_content(result.content)


def mcp_tools_to_chat_tools(
    mcp_tools: list[Any],
    call: Callable[[str, dict[str, Any]], Awaitable[str]],
) -> list[Tool]:
    """Wrap listed MCP tools as chat Tools that route through `call`.

    Args:
        mcp_tools: Tools from `client.list_tools()`
        call: Async function (name, args) -> normalized result

    Returns:
        list[Tool]: One chat tool per MCP tool, in listing order
    """
    tools = []
    for mcp_tool in mcp_tools:

        def make_function(name: str):
            async def function(args: dict[str, Any], context: ToolContext | None = None) -> str:
                return await call(name, args)

            return function

        tools.append(
            Tool(
                name=mcp_tool.name,
                description=mcp_tool.description or "",
                parameters=mcp_tool.inputSchema or {"type": "object", "properties": {}},
                function=make_function(mcp_tool.name),
            )
        )
    return tools


async def check_mcp_server(url: str, timeout: float = 5.0) -> dict[str, Any]:
    """Check if an MCP server is reachable and get its info.

    Args:
        url: The MCP server URL to check
        timeout: Connection timeout in seconds (default 5.0)

    Returns:
        Dict containing:
        - url: The server URL
        - status: "connected" or "failed"
        - tools: List of tool names (if connected)
        - server_name: Server name from protocol (if available)
        - error: Error message (if failed)
    """
    try:
        client = MCPClient(url)
        async with asyncio.timeout(timeout):
            async with client:
                tools = await client.list_tools()
                tool_names = [tool.name for tool in tools] if tools else []

                server_name = None
                if client.initialize_result and client.initialize_result.serverInfo:
                    server_name = client.initialize_result.serverInfo.name

                return {
                    "url": url,
                    "status": "connected",
                    "tools": tool_names,
                    "server_name": server_name,
                }
    except asyncio.TimeoutError:
        logger.warning(f"⚠️ Timeout connecting to MCP server {url}")
        return {
            "url": url,
            "status": "failed",
            "error": f"Connection timeout ({timeout}s)",
        }
    except Exception as e:
        logger.warning(f"⚠️ Failed to connect to MCP server {url}: {e}")
        return {
            "url": url,
            "status": "failed",
            "error": str(e),
        }


def run_async(coro: Any) -> Any:
    """Run an async coroutine in a new event loop.

    Used by synchronous Flask routes to drive the async services. CLI
    commands use asyncio.run() directly.

    Args:
        coro: An awaitable coroutine to execute

    Returns:
        The result of the coroutine
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()
