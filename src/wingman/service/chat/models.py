"""Data models for chats, messages and tools."""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class AttachmentType(str, Enum):
    TEXT = "text"
    FILE = "file_data"
    IMAGE = "image_data"


@dataclass
class Attachment:
    """Content attached to a message (pasted text, a file, an image data URL)."""

    type: AttachmentType
    name: str
    data: str
    meta: dict[str, Any] | None = None


@dataclass
class ToolCall:
    """A model's request to invoke a tool; arguments are a JSON string."""

    id: str
    name: str
    arguments: str = "{}"


@dataclass
class ToolResult:
    """Raw output of a tool call, correlated to the call by id."""

    id: str
    name: str
    arguments: str
    data: str


@dataclass
class MessageError:
    code: str
    message: str


@dataclass
class Message:
    """One entry in a conversation.

    A tool message carries exactly one tool_result whose id matches a
    ToolCall.id from an earlier assistant message.
    """

    role: Role
    content: str = ""
    attachments: list[Attachment] | None = None
    error: MessageError | None = None
    tool_calls: list[ToolCall] | None = None
    tool_result: ToolResult | None = None


@dataclass
class Model:
    """A selectable language model, optionally bound to an MCP server."""

    id: str
    name: str
    description: str | None = None
    mcp_server: str | None = None


@dataclass
class Chat:
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    title: str | None = None
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    model: Model | None = None
    messages: list[Message] = field(default_factory=list)


@dataclass
class ToolContext:
    """Shared state handed to a tool invocation.

    Tools receive this explicitly instead of capturing mutable state, so a
    tool can be exercised in isolation with a hand-built context.

    Attributes:
        chat_id: Chat the call belongs to
        attachments: Attachments of the user message that started the turn
        extras: Free-form values supplied by the caller of send_message
    """

    chat_id: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    extras: dict[str, Any] = field(default_factory=dict)


ToolFunction = Callable[[dict[str, Any], ToolContext | None], Awaitable[str]]


@dataclass
class Tool:
    """A callable tool offered to the model.

    Attributes:
        name: Unique name within one completion call
        description: What the tool does, shown to the model
        parameters: JSON schema of the arguments
        function: Async callable (args, context) -> str
    """

    name: str
    description: str
    parameters: dict[str, Any]
    function: ToolFunction

    def to_schema(self) -> dict[str, Any]:
        """Describe the tool without its function."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
