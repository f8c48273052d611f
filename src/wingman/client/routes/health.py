"""Health check and tool source status API routes."""

import logging
from urllib.parse import urljoin

from flask import Blueprint, jsonify

from wingman.client.routes.config import get_config
from wingman.constants import BRIDGE_SSE_PATH
from wingman.service.bridge import LocalBridge
from wingman.service.mcp_helpers import check_mcp_server, run_async

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint.

    Returns:
        JSON with service status
    """
    config = get_config()
    return jsonify(
        {
            "status": "healthy",
            "llm_service": "initialized" if config.llm_factory else "not initialized",
            "repositories": len(config.registry.repositories),
        }
    )


@health_bp.route("/api/mcp-status", methods=["GET"])
def get_mcp_status():
    """Get status of the local bridge and the model's MCP server.

    Returns:
        JSON response with connected and failed servers
    """
    config = get_config()
    logger.info("🔌 Checking MCP server status...")

    connected_servers = []
    failed_servers = []
    total = 0

    if config.bridge_url:
        total += 1
        bridge = LocalBridge(config.bridge_url)
        discovered = run_async(bridge.discover())
        if discovered is None:
            result = {
                "url": bridge.discovery_url,
                "status": "failed",
                "error": "Bridge not available",
            }
        else:
            result = run_async(check_mcp_server(urljoin(config.bridge_url, BRIDGE_SSE_PATH)))
        result["name"] = (discovered or {}).get("name") or "Local Bridge"
        result["type"] = "bridge"
        if result["status"] == "connected":
            connected_servers.append(result)
        else:
            failed_servers.append(result)

    if config.mcp_server_url:
        total += 1
        result = run_async(check_mcp_server(config.mcp_server_url))
        result["name"] = result.get("server_name") or "Model MCP Server"
        result["type"] = "model"
        if result["status"] == "connected":
            connected_servers.append(result)
        else:
            failed_servers.append(result)

    logger.info(f"✅ Connected: {len(connected_servers)}, Failed: {len(failed_servers)}")
    return jsonify(
        {
            "connected": connected_servers,
            "failed": failed_servers,
            "total_configured": total,
        }
    )
