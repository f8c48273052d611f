"""Google Gemini LLM service implementation."""

import base64
import logging
from typing import Any

from google import genai

from wingman.constants import get_embedding_model
from wingman.llm.base import TITLE_PROMPT, SnapshotHandler, ToolCallMixin
from wingman.service.chat.models import AttachmentType, Message, Role, Tool, ToolCall

logger = logging.getLogger(__name__)


class GeminiService(ToolCallMixin):
    """Google Gemini LLM service implementation.

    This service streams responses from Google's models through the async
    google-genai client. The API key is automatically retrieved from the
    GEMINI_API_KEY environment variable.
    """

    def __init__(self, model: str, client: Any = None) -> None:
        """Initialize the Gemini service.

        Args:
            model: Default model name (e.g., "gemini-2.5-flash")
            client: Optional preconfigured genai.Client
        """
        self.model = model
        logger.info(f"🤖 Initializing GeminiService: model={model}")
        # The client gets the API key from the GEMINI_API_KEY environment variable
        self.client = client or genai.Client()

    def _convert_tools_to_gemini_format(self, tools: list[Tool]) -> list[genai.types.Tool]:
        function_declarations = [
            genai.types.FunctionDeclaration(
                name=tool.name,
                description=tool.description,
                parameters=tool.parameters,
            )
            for tool in tools
        ]
        if function_declarations:
            return [genai.types.Tool(function_declarations=function_declarations)]
        return []

    def _convert_messages(self, messages: list[Message]) -> list[genai.types.Content]:
        """Convert chat messages to Gemini contents (roles "user" and "model")."""
        contents = []
        for message in messages:
            if message.role == Role.TOOL:
                result = message.tool_result
                contents.append(
                    genai.types.Content(
                        role="user",
                        parts=[
                            genai.types.Part.from_function_response(
                                name=result.name if result else "",
                                response={"result": message.content},
                            )
                        ],
                    )
                )
                continue

            parts = []
            text = self.message_text(message)
            if text:
                parts.append(genai.types.Part(text=text))

            for attachment in message.attachments or []:
                if attachment.type == AttachmentType.IMAGE and attachment.data.startswith("data:"):
                    header, data = attachment.data.split(",", 1)
                    mime_type = header[len("data:"):].split(";", 1)[0]
                    parts.append(
                        genai.types.Part.from_bytes(data=base64.b64decode(data), mime_type=mime_type)
                    )

            for call in message.tool_calls or []:
                parts.append(
                    genai.types.Part(
                        function_call=genai.types.FunctionCall(
                            id=call.id,
                            name=call.name,
                            args=self.parse_arguments(call.arguments),
                        )
                    )
                )

            if not parts:
                continue
            role = "model" if message.role == Role.ASSISTANT else "user"
            contents.append(genai.types.Content(role=role, parts=parts))
        return contents

    async def complete(
        self,
        model: str,
        instructions: str,
        messages: list[Message],
        tools: list[Tool],
        on_snapshot: SnapshotHandler | None = None,
    ) -> Message:
        """Stream a completion and return the settled assistant message.

        Raises:
            RuntimeError: If no chunk carried a finish reason
                ("missing finish_reason")
        """
        model = model or self.model
        logger.info(f"🗣️  Generating response with {model}")
        logger.debug(f"Messages: {len(messages)} messages, {len(tools)} tools")

        config = genai.types.GenerateContentConfig(
            system_instruction=instructions or None,
            tools=self._convert_tools_to_gemini_format(tools) or None,
        )

        content = ""
        tool_calls: list[ToolCall] = []
        finished = False

        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=model,
                contents=self._convert_messages(messages),
                config=config,
            )
            async for chunk in stream:
                for candidate in chunk.candidates or []:
                    if candidate.finish_reason:
                        finished = True
                    if not candidate.content or not candidate.content.parts:
                        continue
                    for part in candidate.content.parts:
                        if part.function_call:
                            tool_calls.append(
                                ToolCall(
                                    id=part.function_call.id or self.new_tool_call_id(),
                                    name=part.function_call.name,
                                    arguments=self.dump_arguments(part.function_call.args),
                                )
                            )
                        elif part.text:
                            content += part.text
                            if on_snapshot:
                                on_snapshot(part.text, content)
        except Exception as e:
            logger.error(f"❌ Gemini API error: {e}", exc_info=True)
            raise

        if not finished:
            raise RuntimeError("Gemini stream ended with missing finish_reason")

        if tool_calls:
            logger.info(f"🔧 Model requested {len(tool_calls)} tool calls")
        logger.info(f"✅ Response generated: {len(content)} characters")
        return Message(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or None)

    async def summarize(self, model: str, messages: list[Message]) -> str:
        response = await self.client.aio.models.generate_content(
            model=model or self.model,
            contents=f"{self.transcript(messages)}\n\n{TITLE_PROMPT}",
        )
        return (response.text or "").strip().strip('"')

    async def embed_text(self, text: str, model: str | None = None) -> list[float]:
        """Generate an embedding for one text using Gemini.

        Args:
            text: Text to embed
            model: Optional embedding model name. If None, uses EMBEDDING_MODEL env var
                   or service-specific default.

        Returns:
            list[float]: The embedding vector
        """
        embedding_model = model or get_embedding_model("gemini")
        try:
            response = await self.client.aio.models.embed_content(
                model=embedding_model, contents=[text]
            )
        except Exception as e:
            logger.error(f"❌ Gemini embedding error: {e}", exc_info=True)
            raise
        return list(response.embeddings[0].values)
