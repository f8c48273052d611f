"""Collect tools and instructions from the sources active for a turn."""

import logging
from collections.abc import Iterable
from typing import Protocol

from wingman.service.chat.models import Tool

logger = logging.getLogger(__name__)


class DuplicateToolError(ValueError):
    """Raised when two tool sources offer a tool with the same name."""


class ToolProvider(Protocol):
    """A source of tools and system instructions (bridge, MCP server, repository)."""

    def tools(self) -> list[Tool]: ...

    def instructions(self) -> str: ...


def collect_tools(*tool_lists: Iterable[Tool]) -> list[Tool]:
    """Merge tool lists into one flat list, preserving order.

    Raises:
        DuplicateToolError: If a name appears more than once
    """
    merged: list[Tool] = []
    seen: set[str] = set()
    for tools in tool_lists:
        for tool in tools or []:
            if tool.name in seen:
                raise DuplicateToolError(f"Duplicate tool name: {tool.name}")
            seen.add(tool.name)
            merged.append(tool)
    return merged


def collect_instructions(*parts: str | None) -> str:
    return "\n\n".join(p.strip() for p in parts if p and p.strip())


def collect_context(
    providers: Iterable[ToolProvider],
    tools: list[Tool] | None = None,
    instructions: str | None = None,
) -> tuple[list[Tool], str]:
    """Gather tools and instructions for one completion turn.

    Provider tools come first, in provider order, followed by the caller's
    own tools. A provider without tools contributes no instructions, so an
    idle bridge does not describe tools the model cannot call.

    Returns:
        tuple[list[Tool], str]: Merged tools and joined instructions
    """
    tool_lists: list[list[Tool]] = []
    parts: list[str | None] = [instructions]
    for provider in providers:
        provided = provider.tools()
        tool_lists.append(provided)
        text = provider.instructions()
        if provided or _always_instructs(provider):
            parts.append(text)

    merged = collect_tools(*tool_lists, tools or [])
    logger.debug(f"🔧 Collected {len(merged)} tools from {len(tool_lists)} providers")
    return merged, collect_instructions(*parts)


def _always_instructs(provider: ToolProvider) -> bool:
    return getattr(provider, "always_instructs", False)
