"""Base classes and protocols for LLM services."""

import json
import logging
import uuid
from collections.abc import Callable
from typing import Any, Protocol

from wingman.service.chat.models import AttachmentType, Message, Role, Tool

logger = logging.getLogger(__name__)

SnapshotHandler = Callable[[str, str], None]

TITLE_PROMPT = (
    "Summarize the conversation above as a short chat title of at most six words. "
    "Reply with the title only, without quotes or punctuation at the end."
)


class EmbeddingService(Protocol):
    """Anything that can turn text into an embedding vector."""

    async def embed_text(self, text: str, model: str | None = None) -> list[float]:
        """Embed one text.

        Args:
            text: The text to embed
            model: Embedding model name. If None, uses a default for the service.

        Returns:
            list[float]: The embedding vector
        """
        ...


class CompletionService(Protocol):
    """Streaming chat completion with tool calling."""

    async def complete(
        self,
        model: str,
        instructions: str,
        messages: list[Message],
        tools: list[Tool],
        on_snapshot: SnapshotHandler | None = None,
    ) -> Message:
        """Run one completion over the conversation.

        Args:
            model: Model id to use
            instructions: System instructions ("" for none)
            messages: Conversation so far
            tools: Tools the model may request
            on_snapshot: Called with (delta, snapshot) as text streams in

        Returns:
            Message: The settled assistant message, including any tool_calls
        """
        ...

    async def summarize(self, model: str, messages: list[Message]) -> str:
        """Produce a short title for a conversation."""
        ...


class LLMService(CompletionService, EmbeddingService, Protocol):
    """Protocol defining the full interface of an LLM provider.

    This protocol ensures type safety and allows for multiple LLM provider
    implementations while maintaining a consistent interface.
    """


class ToolCallMixin:
    """Helpers shared by providers for tool calls and message text."""

    @staticmethod
    def new_tool_call_id() -> str:
        return f"call_{uuid.uuid4().hex[:24]}"

    @staticmethod
    def parse_arguments(arguments: str) -> dict[str, Any]:
        """Decode tool call arguments, tolerating empty or invalid JSON."""
        if not arguments:
            return {}
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError:
            logger.warning(f"⚠️ Could not decode tool arguments: {arguments[:100]}")
            return {}
        return parsed if isinstance(parsed, dict) else {}

    @staticmethod
    def dump_arguments(arguments: Any) -> str:
        return json.dumps(dict(arguments or {}))

    @staticmethod
    def message_text(message: Message) -> str:
        """Message content with text attachments appended."""
        parts = [message.content] if message.content else []
        for attachment in message.attachments or []:
            if attachment.type == AttachmentType.TEXT:
                parts.append(f"{attachment.name}:\n{attachment.data}")
        return "\n\n".join(parts)

    @staticmethod
    def transcript(messages: list[Message]) -> str:
        """Plain-text rendering of user and assistant turns for summaries."""
        lines = [
            f"{m.role.value}: {m.content}"
            for m in messages
            if m.role in (Role.USER, Role.ASSISTANT) and m.content
        ]
        return "\n".join(lines)
