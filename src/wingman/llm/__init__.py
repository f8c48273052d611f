"""LLM service abstraction layer for wingman.

This package provides a unified interface for multiple LLM providers:
- OllamaService: Local LLM via Ollama
- GeminiService: Google Gemini API

All services implement the LLMService protocol: streaming completions with
tool calls, title summaries and embeddings.

Usage:
    from wingman.llm import get_llm_service, LLMService

    # Create service from environment config
    service = get_llm_service()

    # Or with explicit config
    service = get_llm_service({"service": "gemini", "model": "gemini-2.5-flash"})
"""

from wingman.llm.base import (
    CompletionService,
    EmbeddingService,
    LLMService,
    SnapshotHandler,
    ToolCallMixin,
)
from wingman.llm.factory import get_llm_service
from wingman.llm.gemini import GeminiService
from wingman.llm.ollama import OllamaService

__all__ = [
    "CompletionService",
    "EmbeddingService",
    "LLMService",
    "SnapshotHandler",
    "ToolCallMixin",
    "OllamaService",
    "GeminiService",
    "get_llm_service",
]
