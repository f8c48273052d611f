"""Chats, messages, tools and error handling for conversation turns.

The conversation loop itself lives in `wingman.service.chat.orchestrator`
(it depends on the LLM provider protocols, which depend on these models).

Usage:
    from wingman.service.chat import Message, Role
    from wingman.service.chat.orchestrator import ChatOrchestrator

    orchestrator = ChatOrchestrator(llm_service, model=model, tool_providers=[knowledge])
    chat = await orchestrator.send_message(Message(role=Role.USER, content="Hi"))
"""

from wingman.service.chat.context import (
    DuplicateToolError,
    ToolProvider,
    collect_context,
    collect_instructions,
    collect_tools,
)
from wingman.service.chat.errors import (
    ErrorCode,
    classify_completion_error,
    is_missing_finish_reason,
)
from wingman.service.chat.models import (
    Attachment,
    AttachmentType,
    Chat,
    Message,
    MessageError,
    Model,
    Role,
    Tool,
    ToolCall,
    ToolContext,
    ToolResult,
)
from wingman.service.chat.resource import ParsedToolResult, parse_resource
from wingman.service.chat.store import CHAT_DELETED, CHAT_UPDATED, ChatStore

__all__ = [
    # Models
    "Attachment",
    "AttachmentType",
    "Chat",
    "Message",
    "MessageError",
    "Model",
    "Role",
    "Tool",
    "ToolCall",
    "ToolContext",
    "ToolResult",
    # Context
    "DuplicateToolError",
    "ToolProvider",
    "collect_context",
    "collect_instructions",
    "collect_tools",
    # Errors
    "ErrorCode",
    "classify_completion_error",
    "is_missing_finish_reason",
    # Resources
    "ParsedToolResult",
    "parse_resource",
    # Store
    "CHAT_DELETED",
    "CHAT_UPDATED",
    "ChatStore",
]
