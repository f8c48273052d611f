"""Ollama LLM service implementation."""

import logging
from typing import Any

import ollama

from wingman.constants import get_embedding_model
from wingman.llm.base import TITLE_PROMPT, SnapshotHandler, ToolCallMixin
from wingman.service.chat.models import AttachmentType, Message, Role, Tool, ToolCall

logger = logging.getLogger(__name__)


class OllamaService(ToolCallMixin):
    """Ollama LLM service implementation.

    This service streams chat completions from local models through the
    Ollama API, passing tools in Ollama's function format, and produces
    embeddings with a local embedding model.
    """

    def __init__(self, host: str, model: str, client: Any = None) -> None:
        """Initialize the Ollama service.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            model: Default model name (e.g., "llama3")
            client: Optional preconfigured ollama.AsyncClient
        """
        self.host = host
        self.model = model
        logger.info(f"🤖 Initializing OllamaService: host={host}, model={model}")
        self.client = client or ollama.AsyncClient(host=host)

    def _convert_tools_to_ollama_format(self, tools: list[Tool]) -> list[dict[str, Any]]:
        return [{"type": "function", "function": tool.to_schema()} for tool in tools]

    def _convert_messages(self, instructions: str, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert chat messages to Ollama's message dicts."""
        converted: list[dict[str, Any]] = []
        if instructions:
            converted.append({"role": "system", "content": instructions})

        for message in messages:
            if message.role == Role.TOOL:
                converted.append(
                    {
                        "role": "tool",
                        "content": message.content,
                        "tool_name": message.tool_result.name if message.tool_result else "",
                    }
                )
                continue

            entry: dict[str, Any] = {
                "role": message.role.value,
                "content": self.message_text(message),
            }

            images = [
                a.data.split(",", 1)[-1]
                for a in message.attachments or []
                if a.type == AttachmentType.IMAGE
            ]
            if images:
                entry["images"] = images

            if message.tool_calls:
                entry["tool_calls"] = [
                    {"function": {"name": c.name, "arguments": self.parse_arguments(c.arguments)}}
                    for c in message.tool_calls
                ]
            converted.append(entry)
        return converted

    async def complete(
        self,
        model: str,
        instructions: str,
        messages: list[Message],
        tools: list[Tool],
        on_snapshot: SnapshotHandler | None = None,
    ) -> Message:
        """Stream a chat completion and return the settled assistant message.

        Raises:
            RuntimeError: If the stream ends without a final chunk
                ("missing finish_reason")
        """
        model = model or self.model
        logger.info(f"🗣️  Generating response with {model}")
        logger.debug(f"Messages: {len(messages)} messages, {len(tools)} tools")

        chat_kwargs: dict[str, Any] = {
            "model": model,
            "messages": self._convert_messages(instructions, messages),
            "stream": True,
        }
        if tools:
            chat_kwargs["tools"] = self._convert_tools_to_ollama_format(tools)

        content = ""
        tool_calls: list[ToolCall] = []
        done = False

        try:
            stream = await self.client.chat(**chat_kwargs)
            async for chunk in stream:
                delta = chunk.message.content or ""
                if delta:
                    content += delta
                    if on_snapshot:
                        on_snapshot(delta, content)

                for call in chunk.message.tool_calls or []:
                    tool_calls.append(
                        ToolCall(
                            id=self.new_tool_call_id(),
                            name=call.function.name,
                            arguments=self.dump_arguments(call.function.arguments),
                        )
                    )

                if chunk.done:
                    done = True
        except Exception as e:
            logger.error(f"❌ Ollama API error: {e}", exc_info=True)
            raise

        if not done:
            raise RuntimeError("Ollama stream ended with missing finish_reason")

        if tool_calls:
            logger.info(f"🔧 Model requested {len(tool_calls)} tool calls")
        logger.info(f"✅ Response generated: {len(content)} characters")
        return Message(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or None)

    async def summarize(self, model: str, messages: list[Message]) -> str:
        response = await self.client.chat(
            model=model or self.model,
            messages=[
                {"role": "user", "content": f"{self.transcript(messages)}\n\n{TITLE_PROMPT}"},
            ],
        )
        return (response.message.content or "").strip().strip('"')

    async def embed_text(self, text: str, model: str | None = None) -> list[float]:
        """Generate an embedding for one text using Ollama.

        Args:
            text: Text to embed
            model: Optional embedding model name. If None, uses EMBEDDING_MODEL env var
                   or service-specific default.

        Returns:
            list[float]: The embedding vector
        """
        embedding_model = model or get_embedding_model("ollama")
        response = await self.client.embed(model=embedding_model, input=text)
        return list(response["embeddings"][0])
