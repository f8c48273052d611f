"""Chat API routes driving the tool-calling conversation loop."""

import logging

from flask import Blueprint, jsonify, request

from wingman.client.assistant import TurnOptions, final_answer, run_turn
from wingman.client.routes.config import get_config
from wingman.client.serializers import serialize_chat
from wingman.service.chat import DuplicateToolError
from wingman.service.mcp_helpers import run_async
from wingman.service.repository import RetrievalMode

logger = logging.getLogger(__name__)

chat_bp = Blueprint("chat", __name__)


@chat_bp.route("/api/chat", methods=["POST"])
def chat():
    """Send a message and return the settled chat.

    Request:
        {
            "message": "What do my notes say about X?",
            "chat_id": "uuid",          # Optional, continues an existing chat
            "repository_id": "uuid",    # Optional knowledge repository
            "mode": "auto",             # Optional: auto | rag | context
            "model": "llama3"           # Optional model override
        }

    Response:
        {
            "chat": {"id": ..., "title": ..., "messages": [...]},
            "response": "final assistant text",
            "error": {"code": ..., "message": ...} | null
        }
    """
    config = get_config()
    logger.info("📨 Received chat request")

    data = request.get_json(silent=True)
    if not data or not (data.get("message") or "").strip():
        logger.warning("❌ Missing 'message' field in request")
        return jsonify({"error": "Missing 'message' field in request"}), 400

    chat_id = data.get("chat_id")
    if chat_id and config.chat_store.get_chat(chat_id) is None:
        return jsonify({"error": f"Chat '{chat_id}' not found"}), 404

    repository_id = data.get("repository_id")
    if repository_id and config.registry.find_repository(repository_id) is None:
        return jsonify({"error": f"Repository '{repository_id}' not found"}), 404

    try:
        mode = RetrievalMode(data.get("mode") or config.retrieval_mode)
    except ValueError:
        return jsonify({"error": f"Invalid mode: {data.get('mode')}"}), 400

    model_id = data.get("model") or config.model_id
    if not model_id:
        return jsonify({"error": "No model configured"}), 400

    options = TurnOptions(
        repository_id=repository_id,
        mode=mode,
        context_pages=config.context_pages,
        bridge_url=config.bridge_url,
        mcp_server_url=config.mcp_server_url,
        max_iterations=config.max_iterations,
        tool_sources=config.tool_sources,
    )

    try:
        result = run_async(
            run_turn(
                config.create_llm_service(),
                model_id,
                data["message"],
                config.chat_store,
                registry=config.registry,
                options=options,
                chat_id=chat_id,
            )
        )
    except DuplicateToolError as e:
        logger.error(f"❌ Conflicting tools: {e}")
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        logger.error(f"❌ Error processing chat request: {e}", exc_info=True)
        return jsonify({"error": f"Internal server error: {str(e)}"}), 500

    answer = final_answer(result)
    error = answer.error if answer else None
    logger.info("✅ Chat request completed")
    return jsonify(
        {
            "chat": serialize_chat(result),
            "response": answer.content if answer else "",
            "error": {"code": error.code, "message": error.message} if error else None,
        }
    )


@chat_bp.route("/api/chats", methods=["GET"])
def list_chats():
    config = get_config()
    return jsonify(
        {
            "chats": [
                {"id": c.id, "title": c.title, "updated": c.updated.isoformat()}
                for c in config.chat_store.list_chats()
            ]
        }
    )


@chat_bp.route("/api/chats/<chat_id>", methods=["GET"])
def get_chat(chat_id: str):
    config = get_config()
    chat = config.chat_store.get_chat(chat_id)
    if chat is None:
        return jsonify({"error": f"Chat '{chat_id}' not found"}), 404
    return jsonify(serialize_chat(chat))


@chat_bp.route("/api/chats/<chat_id>", methods=["DELETE"])
def delete_chat(chat_id: str):
    config = get_config()
    if not config.chat_store.delete_chat(chat_id):
        return jsonify({"error": f"Chat '{chat_id}' not found"}), 404
    return jsonify({"deleted": chat_id})
