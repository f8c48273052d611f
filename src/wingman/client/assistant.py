"""Run one chat turn with every tool source the configuration enables."""

import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass

from wingman.llm.base import LLMService
from wingman.service.bridge import LocalBridge
from wingman.service.chat import Chat, ChatStore, Message, Model, Role
from wingman.service.chat.context import ToolProvider
from wingman.service.chat.orchestrator import ChatOrchestrator
from wingman.service.mcp_client import ModelMCPTools
from wingman.service.repository import KnowledgeBase, RepositoryRegistry, RetrievalMode
from wingman.service.tool_sources import ToolSourceMonitor

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTIONS = (
    "You are a helpful assistant. Answer accurately and concisely, and say so "
    "when you do not know the answer."
)


@dataclass
class TurnOptions:
    """Where the tools for a turn come from.

    Attributes:
        repository_id: Repository whose knowledge is offered, if any
        mode: Retrieval mode for the repository
        context_pages: Page threshold for auto mode
        bridge_url: Local bridge base URL, or None to skip the bridge
        mcp_server_url: MCP server bound to the model, or None
        max_iterations: Optional cap on tool-calling rounds
        instructions: Base system instructions
        tool_sources: Running monitor whose live bridge and MCP sessions
            replace the per-turn connections to bridge_url and mcp_server_url
    """

    repository_id: str | None = None
    mode: RetrievalMode = RetrievalMode.AUTO
    context_pages: float = 0
    bridge_url: str | None = None
    mcp_server_url: str | None = None
    max_iterations: int | None = None
    instructions: str = SYSTEM_INSTRUCTIONS
    tool_sources: ToolSourceMonitor | None = None


async def run_turn(
    llm_service: LLMService,
    model_id: str,
    text: str,
    chat_store: ChatStore,
    registry: RepositoryRegistry | None = None,
    options: TurnOptions | None = None,
    chat_id: str | None = None,
) -> Chat:
    """Send one user message and wait for the turn and its title summary.

    Without a running tool source monitor, bridge and MCP sessions are opened
    for the duration of the turn.

    Args:
        llm_service: Completion and embedding provider
        model_id: Model to answer with
        text: The user's message
        chat_store: Store holding the chat
        registry: Repository registry, required when options name a repository
        options: Tool sources for this turn
        chat_id: Existing chat to continue, or None for a new chat

    Returns:
        Chat: The chat after the turn settled
    """
    options = options or TurnOptions()
    model = Model(id=model_id, name=model_id, mcp_server=options.mcp_server_url)

    async with AsyncExitStack() as stack:
        providers: list[ToolProvider] = []
        live = options.tool_sources is not None and options.tool_sources.is_running

        if live:
            providers.extend(options.tool_sources.providers())
        elif options.bridge_url:
            providers.append(await stack.enter_async_context(LocalBridge(options.bridge_url)))

        if options.repository_id and registry is not None:
            providers.append(
                KnowledgeBase(
                    registry,
                    llm_service,
                    options.repository_id,
                    mode=options.mode,
                    context_pages=options.context_pages,
                )
            )

        if options.mcp_server_url and not live:
            providers.append(await stack.enter_async_context(ModelMCPTools(model)))

        orchestrator = ChatOrchestrator(
            llm_service,
            chat_store=chat_store,
            model=model,
            tool_providers=providers,
            max_iterations=options.max_iterations,
        )
        if chat_id:
            orchestrator.select_chat(chat_id)

        chat = await orchestrator.send_message(
            Message(role=Role.USER, content=text),
            instructions=options.instructions,
        )
        await orchestrator.wait_for_background()

    logger.info(f"✅ Turn complete for chat {chat.id}: {len(chat.messages)} messages")
    return chat


def final_answer(chat: Chat) -> Message | None:
    """The last assistant message of a chat, if any."""
    return next((m for m in reversed(chat.messages) if m.role == Role.ASSISTANT), None)
