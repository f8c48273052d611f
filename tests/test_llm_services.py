"""Tests for the LLM provider services."""

import json
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google import genai

from wingman.llm import GeminiService, OllamaService, get_llm_service
from wingman.llm.factory import resolve_llm_config
from wingman.service.chat import (
    Attachment,
    AttachmentType,
    Message,
    Role,
    Tool,
    ToolCall,
    ToolResult,
)


async def stream_of(*chunks):
    for chunk in chunks:
        yield chunk


def ollama_chunk(content="", tool_calls=None, done=False):
    chunk = MagicMock()
    chunk.message.content = content
    chunk.message.tool_calls = tool_calls
    chunk.done = done
    return chunk


def ollama_tool_call(name, arguments):
    call = MagicMock()
    call.function.name = name
    call.function.arguments = arguments
    return call


def gemini_chunk(*parts, finish_reason=None):
    return genai.types.GenerateContentResponse(
        candidates=[
            genai.types.Candidate(
                content=genai.types.Content(role="model", parts=list(parts)) if parts else None,
                finish_reason=finish_reason,
            )
        ]
    )


async def noop(args, context=None):
    return ""


SEARCH_TOOL = Tool(
    name="search",
    description="Search documents",
    parameters={"type": "object", "properties": {"q": {"type": "string"}}},
    function=noop,
)


class TestOllamaService:
    """Tests for OllamaService class."""

    @pytest.mark.asyncio
    async def test_complete_streams_snapshots(self):
        """Test that text deltas are accumulated and reported as snapshots."""
        client = MagicMock()
        client.chat = AsyncMock(
            return_value=stream_of(
                ollama_chunk("Hello"), ollama_chunk(", world!"), ollama_chunk(done=True)
            )
        )
        service = OllamaService(host="http://test:11434", model="test-model", client=client)
        snapshots = []

        message = await service.complete(
            "",
            "Be nice.",
            [Message(role=Role.USER, content="Say hello")],
            [],
            lambda delta, snapshot: snapshots.append((delta, snapshot)),
        )

        assert message.role == Role.ASSISTANT
        assert message.content == "Hello, world!"
        assert message.tool_calls is None
        assert snapshots == [("Hello", "Hello"), (", world!", "Hello, world!")]
        client.chat.assert_awaited_once_with(
            model="test-model",
            messages=[
                {"role": "system", "content": "Be nice."},
                {"role": "user", "content": "Say hello"},
            ],
            stream=True,
        )

    @pytest.mark.asyncio
    async def test_complete_with_tool_calls(self):
        """Test that streamed tool calls become ToolCalls with JSON arguments."""
        client = MagicMock()
        client.chat = AsyncMock(
            return_value=stream_of(
                ollama_chunk(tool_calls=[ollama_tool_call("search", {"q": "mcp"})]),
                ollama_chunk(done=True),
            )
        )
        service = OllamaService(host="http://test:11434", model="test-model", client=client)

        message = await service.complete(
            "llama3", "", [Message(role=Role.USER, content="find")], [SEARCH_TOOL]
        )

        assert len(message.tool_calls) == 1
        call = message.tool_calls[0]
        assert call.name == "search"
        assert json.loads(call.arguments) == {"q": "mcp"}
        assert call.id.startswith("call_")

        kwargs = client.chat.call_args.kwargs
        assert kwargs["model"] == "llama3"
        assert kwargs["tools"] == [
            {
                "type": "function",
                "function": {
                    "name": "search",
                    "description": "Search documents",
                    "parameters": SEARCH_TOOL.parameters,
                },
            }
        ]

    @pytest.mark.asyncio
    async def test_stream_without_done_raises(self):
        client = MagicMock()
        client.chat = AsyncMock(return_value=stream_of(ollama_chunk("partial")))
        service = OllamaService(host="http://test:11434", model="test-model", client=client)

        with pytest.raises(RuntimeError, match="missing finish_reason"):
            await service.complete("", "", [Message(role=Role.USER, content="hi")], [])

    @pytest.mark.asyncio
    async def test_api_error_propagates(self):
        client = MagicMock()
        client.chat = AsyncMock(side_effect=ConnectionError("Connection refused"))
        service = OllamaService(host="http://test:11434", model="test-model", client=client)

        with pytest.raises(ConnectionError):
            await service.complete("", "", [Message(role=Role.USER, content="hi")], [])

    def test_convert_messages_with_tools_and_images(self):
        """Test conversion of tool calls, tool results and image attachments."""
        service = OllamaService(host="http://test:11434", model="test-model", client=MagicMock())
        messages = [
            Message(
                role=Role.USER,
                content="Look",
                attachments=[
                    Attachment(AttachmentType.IMAGE, "a.png", "data:image/png;base64,AAAA"),
                    Attachment(AttachmentType.TEXT, "notes.txt", "some notes"),
                ],
            ),
            Message(
                role=Role.ASSISTANT,
                tool_calls=[ToolCall(id="call_1", name="search", arguments='{"q": "x"}')],
            ),
            Message(
                role=Role.TOOL,
                content="result",
                tool_result=ToolResult(id="call_1", name="search", arguments="{}", data="result"),
            ),
        ]

        converted = service._convert_messages("", messages)

        assert converted[0] == {
            "role": "user",
            "content": "Look\n\nnotes.txt:\nsome notes",
            "images": ["AAAA"],
        }
        assert converted[1]["tool_calls"] == [{"function": {"name": "search", "arguments": {"q": "x"}}}]
        assert converted[2] == {"role": "tool", "content": "result", "tool_name": "search"}

    @pytest.mark.asyncio
    async def test_summarize(self):
        client = MagicMock()
        response = MagicMock()
        response.message.content = ' "Weekend Plans" '
        client.chat = AsyncMock(return_value=response)
        service = OllamaService(host="http://test:11434", model="test-model", client=client)

        title = await service.summarize("", [Message(role=Role.USER, content="plans?")])

        assert title == "Weekend Plans"
        assert "user: plans?" in client.chat.call_args.kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_embed_text(self):
        client = MagicMock()
        client.embed = AsyncMock(return_value={"embeddings": [[0.1, 0.2, 0.3]]})
        service = OllamaService(host="http://test:11434", model="test-model", client=client)

        vector = await service.embed_text("hello", "nomic-embed-text")

        assert vector == [0.1, 0.2, 0.3]
        client.embed.assert_awaited_once_with(model="nomic-embed-text", input="hello")

    @pytest.mark.asyncio
    async def test_embed_text_default_model(self):
        client = MagicMock()
        client.embed = AsyncMock(return_value={"embeddings": [[1.0]]})
        service = OllamaService(host="http://test:11434", model="test-model", client=client)

        with patch.dict(os.environ, {"EMBEDDING_MODEL": "custom-embed"}):
            await service.embed_text("hello")

        client.embed.assert_awaited_once_with(model="custom-embed", input="hello")

    @pytest.mark.integration
    @pytest.mark.requires_ollama
    @pytest.mark.asyncio
    async def test_embed_text_real_ollama(self, ollama_service):
        """Test generating embeddings with real Ollama service."""
        from wingman.service.vectordb import cosine_similarity

        first = await ollama_service.embed_text("Python programming language", "nomic-embed-text")
        second = await ollama_service.embed_text("Programming in Python", "nomic-embed-text")
        third = await ollama_service.embed_text("Cooking delicious recipes", "nomic-embed-text")

        assert len(first) == 768
        assert cosine_similarity(first, second) > cosine_similarity(first, third)


class TestGeminiService:
    """Tests for GeminiService class."""

    @pytest.mark.asyncio
    async def test_complete_streams_text(self):
        client = MagicMock()
        client.aio.models.generate_content_stream = AsyncMock(
            return_value=stream_of(
                gemini_chunk(genai.types.Part(text="Hello")),
                gemini_chunk(genai.types.Part(text=" there"), finish_reason="STOP"),
            )
        )
        service = GeminiService(model="gemini-2.5-flash", client=client)
        snapshots = []

        message = await service.complete(
            "",
            "System rules.",
            [Message(role=Role.USER, content="Hi")],
            [],
            lambda delta, snapshot: snapshots.append(snapshot),
        )

        assert message.content == "Hello there"
        assert snapshots == ["Hello", "Hello there"]
        kwargs = client.aio.models.generate_content_stream.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["config"].system_instruction == "System rules."
        assert kwargs["contents"][0].role == "user"
        assert kwargs["contents"][0].parts[0].text == "Hi"

    @pytest.mark.asyncio
    async def test_complete_with_function_call(self):
        client = MagicMock()
        client.aio.models.generate_content_stream = AsyncMock(
            return_value=stream_of(
                gemini_chunk(
                    genai.types.Part(
                        function_call=genai.types.FunctionCall(name="search", args={"q": "x"})
                    ),
                    finish_reason="STOP",
                )
            )
        )
        service = GeminiService(model="gemini-2.5-flash", client=client)

        message = await service.complete(
            "", "", [Message(role=Role.USER, content="find")], [SEARCH_TOOL]
        )

        assert message.tool_calls[0].name == "search"
        assert json.loads(message.tool_calls[0].arguments) == {"q": "x"}
        config = client.aio.models.generate_content_stream.call_args.kwargs["config"]
        declaration = config.tools[0].function_declarations[0]
        assert declaration.name == "search"

    @pytest.mark.asyncio
    async def test_stream_without_finish_reason_raises(self):
        client = MagicMock()
        client.aio.models.generate_content_stream = AsyncMock(
            return_value=stream_of(gemini_chunk(genai.types.Part(text="partial")))
        )
        service = GeminiService(model="gemini-2.5-flash", client=client)

        with pytest.raises(RuntimeError, match="missing finish_reason"):
            await service.complete("", "", [Message(role=Role.USER, content="hi")], [])

    def test_convert_messages(self):
        service = GeminiService(model="gemini-2.5-flash", client=MagicMock())
        messages = [
            Message(role=Role.USER, content="Hi"),
            Message(
                role=Role.ASSISTANT,
                tool_calls=[ToolCall(id="call_1", name="search", arguments='{"q": "x"}')],
            ),
            Message(
                role=Role.TOOL,
                content="found",
                tool_result=ToolResult(id="call_1", name="search", arguments="{}", data="found"),
            ),
            Message(role=Role.ASSISTANT, content=""),
        ]

        contents = service._convert_messages(messages)

        assert [c.role for c in contents] == ["user", "model", "user"]
        assert contents[1].parts[0].function_call.name == "search"
        assert contents[2].parts[0].function_response.name == "search"
        assert contents[2].parts[0].function_response.response == {"result": "found"}

    @pytest.mark.asyncio
    async def test_summarize(self):
        client = MagicMock()
        response = MagicMock()
        response.text = "Greeting Chat\n"
        client.aio.models.generate_content = AsyncMock(return_value=response)
        service = GeminiService(model="gemini-2.5-flash", client=client)

        assert await service.summarize("", [Message(role=Role.USER, content="hello")]) == "Greeting Chat"

    @pytest.mark.asyncio
    async def test_embed_text(self):
        client = MagicMock()
        embedding = MagicMock()
        embedding.values = [0.5, 0.25]
        client.aio.models.embed_content = AsyncMock(return_value=MagicMock(embeddings=[embedding]))
        service = GeminiService(model="gemini-2.5-flash", client=client)

        assert await service.embed_text("hello", "text-embedding-004") == [0.5, 0.25]
        client.aio.models.embed_content.assert_awaited_once_with(
            model="text-embedding-004", contents=["hello"]
        )

    @pytest.mark.asyncio
    async def test_embed_text_error(self):
        client = MagicMock()
        client.aio.models.embed_content = AsyncMock(side_effect=Exception("API Error"))
        service = GeminiService(model="gemini-2.5-flash", client=client)

        with pytest.raises(Exception, match="API Error"):
            await service.embed_text("hello")


class TestGetLLMService:
    """Tests for get_llm_service factory function."""

    @patch("wingman.llm.factory.OllamaService")
    def test_creates_ollama_service_with_defaults(self, mock_ollama_class):
        """Test creating Ollama service with default configuration."""
        mock_service = MagicMock()
        mock_ollama_class.return_value = mock_service

        with patch.dict(
            os.environ,
            {"OLLAMA_HOST": "http://env-host:11434", "LLM_MODEL": "env-model", "LLM_SERVICE": "ollama"},
        ):
            service = get_llm_service()

            mock_ollama_class.assert_called_once_with(
                host="http://env-host:11434", model="env-model"
            )
            assert service is mock_service

    @patch("wingman.llm.factory.OllamaService")
    def test_creates_ollama_service_with_custom_config(self, mock_ollama_class):
        """Test creating Ollama service with custom configuration."""
        config = {
            "service": "ollama",
            "host": "http://custom:11434",
            "model": "custom-model",
        }
        get_llm_service(config)

        mock_ollama_class.assert_called_once_with(host="http://custom:11434", model="custom-model")

    @patch("wingman.llm.factory.OllamaService")
    def test_uses_hardcoded_defaults_when_no_env(self, mock_ollama_class):
        """Test that hardcoded defaults are used when env vars are missing."""
        with patch.dict(os.environ, {}, clear=True):
            get_llm_service()

            mock_ollama_class.assert_called_once_with(host="http://localhost:11434", model="llama3")

    def test_raises_error_for_unsupported_service(self):
        """Test that ValueError is raised for unsupported service types."""
        with pytest.raises(ValueError, match="Unsupported service type: unsupported"):
            get_llm_service({"service": "unsupported"})

    @patch("wingman.llm.factory.GeminiService")
    def test_creates_gemini_service_with_config(self, mock_gemini_class):
        """Test creating Gemini service with custom configuration."""
        get_llm_service({"service": "gemini", "model": "gemini-2.0-flash"})

        mock_gemini_class.assert_called_once_with(model="gemini-2.0-flash")

    @patch("wingman.llm.factory.GeminiService")
    def test_creates_gemini_service_with_hardcoded_default(self, mock_gemini_class):
        """Test Gemini service uses hardcoded default when env var missing."""
        with patch.dict(os.environ, {}, clear=True):
            get_llm_service({"service": "gemini"})

            mock_gemini_class.assert_called_once_with(model="gemini-2.5-flash")

    @patch("wingman.llm.factory.GeminiService")
    def test_service_name_is_case_insensitive(self, mock_gemini_class):
        with patch.dict(os.environ, {"LLM_SERVICE": " Gemini "}, clear=True):
            get_llm_service()

        mock_gemini_class.assert_called_once_with(model="gemini-2.5-flash")


class TestResolveLLMConfig:
    """Tests for resolve_llm_config."""

    def test_ollama_config_includes_host(self):
        with patch.dict(os.environ, {}, clear=True):
            assert resolve_llm_config() == {
                "service": "ollama",
                "model": "llama3",
                "host": "http://localhost:11434",
            }

    def test_gemini_config_has_no_host(self):
        with patch.dict(os.environ, {"LLM_MODEL": "gemini-2.0-pro"}, clear=True):
            assert resolve_llm_config({"service": "gemini"}) == {
                "service": "gemini",
                "model": "gemini-2.0-pro",
            }

    def test_explicit_keys_win_over_environment(self):
        env = {"LLM_SERVICE": "gemini", "LLM_MODEL": "env-model"}
        with patch.dict(os.environ, env, clear=True):
            resolved = resolve_llm_config({"service": "ollama", "model": "mistral"})

        assert resolved["service"] == "ollama"
        assert resolved["model"] == "mistral"

    def test_unsupported_service(self):
        with pytest.raises(ValueError, match="Unsupported service type: openai"):
            resolve_llm_config({"service": "openai"})
