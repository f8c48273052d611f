"""Flask web application for the Wingman assistant API.

This module exposes repositories, file ingestion, similarity search and the
tool-calling chat loop over HTTP. Repository state is loaded from and saved
to a JSON state file.
"""

import atexit
import logging
import os
from functools import partial
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from wingman.client.routes import (
    chat_bp,
    get_config,
    health_bp,
    init_config,
    repositories_bp,
)
from wingman.constants import (
    DEFAULT_BRIDGE_URL,
    DEFAULT_STATE_FILE,
    MAX_UPLOAD_SIZE_BYTES,
    get_context_pages,
    get_max_tool_iterations,
)
from wingman.llm import get_llm_service
from wingman.llm.factory import resolve_llm_config
from wingman.service.bridge import LocalBridge
from wingman.service.chat import Model
from wingman.service.mcp_client import ModelMCPTools
from wingman.service.repository import RetrievalMode, load_state
from wingman.service.tool_sources import ToolSourceMonitor

# Configure logging
log_level = os.getenv("LOG_LEVEL", "DEBUG")
logging.basicConfig(
    level=getattr(logging, log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()
logger.debug("Environment variables loaded")

# Create Flask app
app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_SIZE_BYTES
logger.debug("Flask app created")

# Register blueprints
app.register_blueprint(chat_bp)
app.register_blueprint(repositories_bp)
app.register_blueprint(health_bp)


def start_tool_sources(
    bridge_url: str | None, mcp_server_url: str | None, model_id: str
) -> ToolSourceMonitor | None:
    """Start background polling of the bridge and the model's MCP server.

    Returns:
        ToolSourceMonitor | None: The running monitor, or None when no tool
        source is configured
    """
    if not bridge_url and not mcp_server_url:
        return None

    monitor = ToolSourceMonitor(
        bridge=LocalBridge(bridge_url) if bridge_url else None,
        model_tools=(
            ModelMCPTools(Model(id=model_id, name=model_id, mcp_server=mcp_server_url))
            if mcp_server_url
            else None
        ),
    )
    monitor.start()
    atexit.register(monitor.stop)
    return monitor


def initialize_services() -> None:
    """Load repository state and configure LLM and tool sources."""
    logger.info("🔧 Initializing services...")

    llm_config = resolve_llm_config()
    logger.debug(f"LLM config: {llm_config}")

    state_file = Path(os.getenv("WINGMAN_STATE_FILE", DEFAULT_STATE_FILE))
    registry = load_state(state_file)
    logger.info(f"✅ Loaded {len(registry.repositories)} repositories from {state_file}")

    bridge_url = os.getenv("WINGMAN_BRIDGE_URL", DEFAULT_BRIDGE_URL) or None
    mcp_server_url = os.getenv("MCP_SERVER_URL") or None
    if mcp_server_url:
        logger.info(f"✅ Model MCP server configured: {mcp_server_url}")
    else:
        logger.info("ℹ️ No MCP server configured for the model")

    previous = get_config().tool_sources
    if previous is not None:
        previous.stop()
    tool_sources = start_tool_sources(bridge_url, mcp_server_url, llm_config["model"])

    init_config(
        llm_factory=partial(get_llm_service, llm_config),
        model_id=llm_config["model"],
        registry=registry,
        state_file=state_file,
        bridge_url=bridge_url,
        mcp_server_url=mcp_server_url,
        retrieval_mode=RetrievalMode(os.getenv("WINGMAN_RETRIEVAL_MODE", RetrievalMode.AUTO.value)),
        context_pages=get_context_pages(),
        max_iterations=get_max_tool_iterations(),
        tool_sources=tool_sources,
    )
    logger.info("✅ Services initialized")


def create_app():
    """Factory function for creating the Flask application.

    This function is used by WSGI servers like gunicorn to create the app.
    It initializes services before returning the app instance.

    Returns:
        Flask: The configured Flask application instance
    """
    initialize_services()
    return app


def main() -> None:
    """Entry point for the Flask application command-line interface."""
    print("🚀 Starting Wingman Flask application...")

    print("📦 Initializing services...")
    initialize_services()
    print("✅ Services initialized successfully")

    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "5000"))
    debug = os.getenv("FLASK_ENV", "development") == "development"

    print(f"🌐 Starting Flask server on http://{host}:{port}")
    print(f"🔧 Debug mode: {debug}")
    print("📝 Press CTRL+C to quit")

    try:
        app.run(host=host, port=port, debug=debug)
    finally:
        tool_sources = get_config().tool_sources
        if tool_sources is not None:
            tool_sources.stop()


if __name__ == "__main__":
    main()
