"""Connections to remote MCP servers bound to the selected model."""

import asyncio
import logging
from collections.abc import Callable
from contextlib import AsyncExitStack
from typing import Any
from urllib.parse import urlparse

from fastmcp import Client as MCPClient

from wingman.constants import MCP_RECONNECT_INTERVAL
from wingman.service.chat.models import Model, Tool
from wingman.service.mcp_helpers import mcp_tools_to_chat_tools, normalize_tool_content

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]


class MCPConnection:
    """A long-lived FastMCP client session to one server.

    Only http(s) URLs are accepted. The session stays open between calls
    until disconnect() or the end of an `async with` block.
    """

    def __init__(self, server_url: str, client_factory: ClientFactory = MCPClient) -> None:
        scheme = urlparse(server_url).scheme
        if scheme not in ("http", "https"):
            raise ValueError(f"Unsupported MCP server URL: {server_url}")
        self.server_url = server_url
        self.client_factory = client_factory
        self._client: Any = None
        self._stack: AsyncExitStack | None = None
        self._tools: list[Any] = []

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        if self.is_connected:
            return

        stack = AsyncExitStack()
        try:
            client = await stack.enter_async_context(self.client_factory(self.server_url))
            self._tools = list(await client.list_tools())
        except BaseException:
            await stack.aclose()
            raise

        self._stack = stack
        self._client = client
        logger.info(f"✅ Connected to MCP server {self.server_url} ({len(self._tools)} tools)")

    async def disconnect(self) -> None:
        stack, self._stack = self._stack, None
        self._client = None
        self._tools = []
        if stack is not None:
            try:
                await stack.aclose()
            except Exception as e:
                logger.warning(f"⚠️ Error closing MCP session {self.server_url}: {e}")

    async def list_tools(self) -> list[Any]:
        if not self.is_connected:
            raise ConnectionError(f"Not connected to MCP server {self.server_url}")
        self._tools = list(await self._client.list_tools())
        return self._tools

    async def call_tool(self, name: str, args: dict[str, Any]) -> str:
        """Call a tool on the server and normalize its content.

        Raises:
            ConnectionError: If the session is not open
        """
        if not self.is_connected:
            raise ConnectionError(f"Not connected to MCP server {self.server_url}")
        result = await self._client.call_tool(name, args)
        return normalize_tool_content(result.content)

    def chat_tools(self) -> list[Tool]:
        return mcp_tools_to_chat_tools(self._tools, self.call_tool)

    async def __aenter__(self) -> "MCPConnection":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()


class ModelMCPTools:
    """Tool provider that follows the selected model's MCP server.

    set_model() switches the target server; ensure_connected() (and the run()
    loop) opens the session, dropping the old one when the URL changed.
    Connection failures leave the provider with no tools.
    """

    def __init__(
        self,
        model: Model | None = None,
        client_factory: ClientFactory = MCPClient,
        instructions_text: str = "",
    ) -> None:
        self.client_factory = client_factory
        self.instructions_text = instructions_text
        self.model = model
        self._connection: MCPConnection | None = None

    @property
    def server_url(self) -> str | None:
        return self.model.mcp_server if self.model else None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.is_connected

    def set_model(self, model: Model | None) -> None:
        self.model = model

    async def ensure_connected(self) -> bool:
        """Connect to the current model's server if not already connected.

        Returns:
            bool: True when a session to the current server is open
        """
        url = self.server_url
        if self._connection is not None and self._connection.server_url != url:
            logger.info(f"🔌 MCP server changed, disconnecting {self._connection.server_url}")
            await self.close()

        if not url:
            return False
        if self.is_connected:
            return True

        try:
            connection = MCPConnection(url, self.client_factory)
            await connection.connect()
        except Exception as e:
            logger.warning(f"⚠️ Could not connect to MCP server {url}: {e}")
            self._connection = None
            return False

        self._connection = connection
        return True

    async def run(
        self, interval: float = MCP_RECONNECT_INTERVAL, stop: asyncio.Event | None = None
    ) -> None:
        """Keep the session alive, retrying every `interval` seconds."""
        stop = stop or asyncio.Event()
        while not stop.is_set():
            if self.is_connected:
                try:
                    await self._connection.list_tools()
                except Exception as e:
                    logger.warning(f"⚠️ Lost MCP connection to {self.server_url}: {e}")
                    await self.close()
            await self.ensure_connected()
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        await self.close()

    async def close(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.disconnect()

    def tools(self) -> list[Tool]:
        if not self.is_connected:
            return []
        return self._connection.chat_tools()

    def instructions(self) -> str:
        return self.instructions_text if self.is_connected else ""

    async def __aenter__(self) -> "ModelMCPTools":
        await self.ensure_connected()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
