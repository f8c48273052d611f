"""Shared configuration for route modules."""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wingman.client.ingest import SUPPORTED_EXTENSIONS
from wingman.service.chat import ChatStore
from wingman.service.repository import RepositoryRegistry, RetrievalMode
from wingman.service.tool_sources import ToolSourceMonitor


@dataclass
class RouteConfig:
    """Configuration container for Flask route dependencies.

    Async clients are bound to the event loop they were created on, and
    every request runs on a fresh loop, so routes build their LLM service
    through `llm_factory` instead of sharing one instance.
    """

    llm_factory: Callable[[], Any] | None = None
    model_id: str | None = None
    registry: RepositoryRegistry = field(default_factory=RepositoryRegistry)
    chat_store: ChatStore = field(default_factory=ChatStore)
    state_file: Path | None = None
    bridge_url: str | None = None
    mcp_server_url: str | None = None
    retrieval_mode: RetrievalMode = RetrievalMode.AUTO
    context_pages: float = 0
    max_iterations: int | None = None
    tool_sources: ToolSourceMonitor | None = None
    allowed_extensions: set[str] = field(default_factory=lambda: set(SUPPORTED_EXTENSIONS))

    def create_llm_service(self) -> Any:
        if self.llm_factory is None:
            raise RuntimeError("LLM service is not initialized")
        return self.llm_factory()


# Single shared config instance
_config = RouteConfig()


def get_config() -> RouteConfig:
    """Get the shared route configuration.

    Returns:
        RouteConfig instance with current settings
    """
    return _config


def init_config(**settings: Any) -> RouteConfig:
    """Initialize the shared route configuration.

    Only settings passed with a non-None value are changed.

    Args:
        **settings: RouteConfig field values

    Returns:
        RouteConfig: The updated shared configuration

    Raises:
        TypeError: If a setting is not a RouteConfig field
    """
    for key, value in settings.items():
        if not hasattr(_config, key):
            raise TypeError(f"Unknown route setting: {key}")
        if value is not None:
            setattr(_config, key, value)
    return _config
