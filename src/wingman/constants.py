"""Application-wide constants and defaults for Wingman.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application.
"""

import os

# =============================================================================
# File Upload Limits
# =============================================================================
MAX_UPLOAD_SIZE_BYTES = 50 * 1024 * 1024  # 50MB

# =============================================================================
# Vector Store
# =============================================================================
DEFAULT_QUERY_TOP_K = 10  # Default number of results for a raw store query

# =============================================================================
# Ingestion
# =============================================================================
MAX_EMBEDDING_CONCURRENCY = 10  # Maximum in-flight embedding calls per file
DEFAULT_CHUNK_SIZE = 300  # Words per chunk
DEFAULT_CHUNK_OVERLAP = 30  # Words shared between consecutive chunks

# Progress checkpoints (percent)
PROGRESS_EXTRACTED = 10
PROGRESS_SEGMENTED = 20
PROGRESS_COMPLETE = 100

# =============================================================================
# Knowledge Retrieval
# =============================================================================
CHARACTERS_PER_PAGE = 1800  # Approximate characters on one printed page
DEFAULT_CONTEXT_PAGES = 0  # Corpora above this many pages switch to RAG in auto mode
KNOWLEDGE_TOOL_TOP_K = 5  # Chunks returned by the knowledge query tool
KNOWLEDGE_TOOL_NAME = "query_knowledge_database"

# =============================================================================
# Conversation
# =============================================================================
TITLE_SUMMARY_INTERVAL = 3  # Re-title a chat when its length is a multiple of this

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_BRIDGE_URL = "http://localhost:4200"
BRIDGE_DISCOVERY_PATH = "/.well-known/wingman"
BRIDGE_SSE_PATH = "/sse"
DEFAULT_STATE_FILE = "wingman_state.json"

# =============================================================================
# Tool Bridges
# =============================================================================
BRIDGE_POLL_INTERVAL = 5.0  # Seconds between bridge availability checks
MCP_RECONNECT_INTERVAL = 5.0  # Seconds between MCP reconnect attempts
BRIDGE_PROBE_TIMEOUT = 2.0  # Seconds to wait for the discovery endpoint

# =============================================================================
# Model Defaults
# =============================================================================
DEFAULT_LLM_MODELS = {
    "ollama": "llama3",
    "gemini": "gemini-2.5-flash",
}

EMBEDDING_DEFAULTS = {
    "ollama": "nomic-embed-text",
    "gemini": "text-embedding-004",
}


def get_embedding_model(service: str | None = None) -> str:
    """Get the default embedding model for a given LLM service.

    Checks the EMBEDDING_MODEL environment variable first, then falls back
    to service-specific defaults.

    Args:
        service: The LLM service name ("ollama" or "gemini").
                If None, uses LLM_SERVICE env var or defaults to "ollama".

    Returns:
        str: The embedding model name to use.
    """
    env_model = os.getenv("EMBEDDING_MODEL")
    if env_model:
        return env_model

    if service is None:
        service = os.getenv("LLM_SERVICE", "ollama")

    return EMBEDDING_DEFAULTS.get(service, EMBEDDING_DEFAULTS["ollama"])


def get_context_pages() -> float:
    """Get the page threshold below which repositories are inlined as context.

    Returns:
        float: Value of WINGMAN_CONTEXT_PAGES, or DEFAULT_CONTEXT_PAGES.
    """
    value = os.getenv("WINGMAN_CONTEXT_PAGES")
    if not value:
        return DEFAULT_CONTEXT_PAGES
    return float(value)


def get_max_tool_iterations() -> int | None:
    """Get the optional cap on tool-calling rounds per turn.

    Returns:
        int | None: Value of WINGMAN_MAX_TOOL_ITERATIONS, or None (unbounded).
    """
    value = os.getenv("WINGMAN_MAX_TOOL_ITERATIONS")
    if not value:
        return None
    return int(value)
