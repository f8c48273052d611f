"""Pytest configuration and shared fixtures for the test suite."""

import asyncio
import json
from collections.abc import Callable

import pytest
import requests

from wingman.service.chat import Message, Model, Role, Tool, ToolCall
from wingman.service.repository import RepositoryRegistry


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible.

    Returns:
        True if Ollama is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


@pytest.fixture
def ollama_service():
    """Provide OllamaService instance, skip if Ollama not available."""
    if not ollama_available():
        pytest.skip("Ollama server not running on localhost:11434")

    from wingman.llm import OllamaService

    return OllamaService(host="http://localhost:11434", model="llama3")


class FakeEmbedder:
    """Deterministic embedder that records concurrency.

    Each text maps to a small vector derived from its characters, so equal
    texts embed identically. An optional delay keeps calls in flight long
    enough to observe concurrency.
    """

    def __init__(self, delay: float = 0.0, fail_on: str | None = None, dimensions: int = 4):
        self.delay = delay
        self.fail_on = fail_on
        self.dimensions = dimensions
        self.calls: list[tuple[str, str | None]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def vector_for(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for i, char in enumerate(text):
            vector[i % self.dimensions] += (ord(char) % 31) + 1
        return vector

    async def embed_text(self, text: str, model: str | None = None) -> list[float]:
        self.calls.append((text, model))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            if self.fail_on is not None and self.fail_on in text:
                raise RuntimeError(f"embedding failed for '{text}'")
            return self.vector_for(text)
        finally:
            self.in_flight -= 1


class ScriptedCompletion:
    """Completion service that replays scripted assistant messages.

    Each script entry is either a Message to return or an exception to raise.
    Text content is streamed through on_snapshot one word at a time.
    """

    def __init__(self, script: list, title: str = "A Title"):
        self.script = list(script)
        self.title = title
        self.calls: list[dict] = []
        self.summaries: list[list[Message]] = []
        self.snapshots: list[str] = []

    async def complete(self, model, instructions, messages, tools, on_snapshot=None):
        self.calls.append(
            {
                "model": model,
                "instructions": instructions,
                "messages": list(messages),
                "tools": [t.name for t in tools],
            }
        )
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step

        snapshot = ""
        for word in step.content.split(" ") if step.content else []:
            delta = word if not snapshot else f" {word}"
            snapshot += delta
            self.snapshots.append(snapshot)
            if on_snapshot:
                on_snapshot(delta, snapshot)
        return step

    async def summarize(self, model, messages):
        self.summaries.append(list(messages))
        if isinstance(self.title, BaseException):
            raise self.title
        return self.title


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def registry() -> RepositoryRegistry:
    return RepositoryRegistry()


@pytest.fixture
def model() -> Model:
    return Model(id="test-model", name="Test Model")


@pytest.fixture
def make_tool() -> Callable[..., Tool]:
    """Factory fixture for tools that record their calls."""

    def _make_tool(name: str, result: str = "ok", error: Exception | None = None) -> Tool:
        calls = []

        async def function(args, context=None):
            calls.append((args, context))
            if error is not None:
                raise error
            return result

        tool = Tool(
            name=name,
            description=f"{name} tool",
            parameters={"type": "object", "properties": {}},
            function=function,
        )
        tool.calls = calls
        return tool

    return _make_tool


def assistant(content: str = "", *calls: tuple[str, dict]) -> Message:
    """Build an assistant message with optional (name, args) tool calls."""
    tool_calls = [
        ToolCall(id=f"call_{i}", name=name, arguments=json.dumps(args))
        for i, (name, args) in enumerate(calls)
    ]
    return Message(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or None)
