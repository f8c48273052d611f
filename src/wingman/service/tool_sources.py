"""Long-lived bridge and MCP sessions for a multi-request host.

Flask requests each run on a short-lived event loop, but a FastMCP session
belongs to the loop that opened it. ToolSourceMonitor therefore runs the
bridge polling loop and the MCP reconnect loop on one background loop, and
hands request loops providers whose tool calls are forwarded to it.
"""

import asyncio
import logging
import threading
from dataclasses import replace
from typing import Any

from wingman.constants import BRIDGE_POLL_INTERVAL, MCP_RECONNECT_INTERVAL
from wingman.service.bridge import LocalBridge
from wingman.service.chat.models import Tool, ToolContext
from wingman.service.mcp_client import ModelMCPTools

logger = logging.getLogger(__name__)


class LoopBoundProvider:
    """A tool provider whose sessions live on another event loop.

    tools() and instructions() read the provider's current state; each tool
    call is scheduled on the owning loop and awaited from the caller's loop.
    """

    def __init__(self, source: Any, loop: asyncio.AbstractEventLoop) -> None:
        self.source = source
        self.loop = loop

    def tools(self) -> list[Tool]:
        return [replace(tool, function=self._forward(tool)) for tool in self.source.tools()]

    def instructions(self) -> str:
        return self.source.instructions()

    def _forward(self, tool: Tool):
        async def function(args: dict[str, Any], context: ToolContext | None = None) -> str:
            future = asyncio.run_coroutine_threadsafe(tool.function(args, context), self.loop)
            return await asyncio.wrap_future(future)

        return function


class ToolSourceMonitor:
    """Owns the background loop that keeps tool sources connected.

    The bridge is polled every `bridge_interval` seconds and the model's MCP
    server is retried every `mcp_interval` seconds after a lost connection.
    stop() ends both loops, closes their sessions and joins the thread.
    """

    def __init__(
        self,
        bridge: LocalBridge | None = None,
        model_tools: ModelMCPTools | None = None,
        bridge_interval: float = BRIDGE_POLL_INTERVAL,
        mcp_interval: float = MCP_RECONNECT_INTERVAL,
    ) -> None:
        self.bridge = bridge
        self.model_tools = model_tools
        self.bridge_interval = bridge_interval
        self.mcp_interval = mcp_interval
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop: asyncio.Event | None = None
        self._ready = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, timeout: float = 5.0) -> None:
        """Start the background loop; a second call is a no-op."""
        with self._lock:
            if self._thread is not None:
                return
            self._ready.clear()
            self._thread = threading.Thread(
                target=self._run, name="wingman-tool-sources", daemon=True
            )
            self._thread.start()
        if not self._ready.wait(timeout):
            raise RuntimeError("Tool source loop did not start")
        logger.info("🔌 Tool source monitor started")

    def stop(self, timeout: float = 10.0) -> None:
        """Signal both loops to stop and wait for the sessions to close."""
        with self._lock:
            thread, self._thread = self._thread, None
        if thread is None:
            return

        loop, stop = self._loop, self._stop
        if loop is not None and stop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(stop.set)
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("⚠️ Tool source monitor did not stop in time")
        else:
            logger.info("🔌 Tool source monitor stopped")

    def providers(self) -> list[LoopBoundProvider]:
        """Providers for one turn, in bridge-then-model order."""
        loop = self._loop
        if not self.is_running or loop is None:
            return []
        sources = [s for s in (self.bridge, self.model_tools) if s is not None]
        return [LoopBoundProvider(source, loop) for source in sources]

    def _run(self) -> None:
        try:
            asyncio.run(self._supervise())
        except Exception as e:
            logger.error(f"❌ Tool source monitor crashed: {e}", exc_info=True)
        finally:
            self._loop = None
            self._ready.set()

    async def _supervise(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        self._ready.set()

        runners = []
        if self.bridge is not None:
            runners.append(self.bridge.run(interval=self.bridge_interval, stop=self._stop))
        if self.model_tools is not None:
            runners.append(self.model_tools.run(interval=self.mcp_interval, stop=self._stop))
        if runners:
            await asyncio.gather(*runners)
        else:
            await self._stop.wait()
