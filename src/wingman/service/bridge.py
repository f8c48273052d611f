"""Tools served by a bridge process on the local host."""

import asyncio
import logging
from typing import Any
from urllib.parse import urljoin

import requests
from fastmcp import Client as MCPClient

from wingman.constants import (
    BRIDGE_DISCOVERY_PATH,
    BRIDGE_POLL_INTERVAL,
    BRIDGE_PROBE_TIMEOUT,
    BRIDGE_SSE_PATH,
    DEFAULT_BRIDGE_URL,
)
from wingman.service.chat.models import Tool
from wingman.service.mcp_client import ClientFactory, MCPConnection

logger = logging.getLogger(__name__)


class LocalBridge:
    """Discovers and connects to a local bridge exposing MCP tools over SSE.

    The bridge advertises itself at `/.well-known/wingman`. When that answers,
    a FastMCP session is opened to `/sse` and its tools become chat tools.
    A missing or unreachable bridge is not an error: it simply offers no
    tools. Calling a bridge tool after the connection dropped raises.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BRIDGE_URL,
        client_factory: ClientFactory = MCPClient,
        probe_timeout: float = BRIDGE_PROBE_TIMEOUT,
    ) -> None:
        self.base_url = base_url
        self.client_factory = client_factory
        self.probe_timeout = probe_timeout
        self.config: dict[str, Any] | None = None
        self._connection: MCPConnection | None = None

    @property
    def discovery_url(self) -> str:
        return urljoin(self.base_url, BRIDGE_DISCOVERY_PATH)

    @property
    def sse_url(self) -> str:
        return urljoin(self.base_url, BRIDGE_SSE_PATH)

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.is_connected

    async def discover(self) -> dict[str, Any] | None:
        """Probe the discovery endpoint.

        Returns:
            dict | None: The bridge's config payload, or None if unavailable
        """

        def probe() -> dict[str, Any] | None:
            response = requests.get(self.discovery_url, timeout=self.probe_timeout)
            if not response.ok:
                return None
            payload = response.json()
            return payload if isinstance(payload, dict) else {}

        try:
            return await asyncio.to_thread(probe)
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Bridge not available at {self.base_url}: {e}")
            return None

    async def connect(self) -> bool:
        """Discover the bridge and open its MCP session.

        Returns:
            bool: True if connected
        """
        if self.is_connected:
            return True

        config = await self.discover()
        if config is None:
            logger.info(f"Bridge not available at {self.base_url}")
            return False

        connection = MCPConnection(self.sse_url, self.client_factory)
        try:
            await connection.connect()
        except Exception as e:
            logger.warning(f"⚠️ Bridge at {self.base_url} answered but MCP connect failed: {e}")
            return False

        self.config = config
        self._connection = connection
        logger.info(f"✅ Bridge connected: {config.get('name', self.base_url)}")
        return True

    async def refresh(self) -> list[Tool]:
        """Re-list tools, reconnecting or dropping the session as needed."""
        if self.is_connected:
            try:
                await self._connection.list_tools()
            except Exception as e:
                logger.warning(f"⚠️ Lost bridge connection: {e}")
                await self.close()

        if not self.is_connected:
            await self.connect()
        return self.tools()

    async def run(self, interval: float = BRIDGE_POLL_INTERVAL, stop: asyncio.Event | None = None) -> None:
        """Poll the bridge every `interval` seconds until `stop` is set."""
        stop = stop or asyncio.Event()
        while not stop.is_set():
            await self.refresh()
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        await self.close()

    async def call_tool(self, name: str, args: dict[str, Any]) -> str:
        connection = self._connection
        if connection is None or not connection.is_connected:
            raise ConnectionError(f"Bridge tool '{name}' is currently unavailable")
        return await connection.call_tool(name, args)

    def tools(self) -> list[Tool]:
        if not self.is_connected:
            return []
        connection = self._connection
        return [
            Tool(
                name=tool.name,
                description=tool.description,
                parameters=tool.parameters,
                function=self._bind(tool.name),
            )
            for tool in connection.chat_tools()
        ]

    def _bind(self, name: str):
        async def function(args: dict[str, Any], context=None) -> str:
            return await self.call_tool(name, args)

        return function

    def instructions(self) -> str:
        if not self.is_connected or not self.config:
            return ""
        return str(self.config.get("instructions") or "")

    async def close(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.disconnect()

    async def __aenter__(self) -> "LocalBridge":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
