"""Repository, file upload and search API routes."""

import logging
from pathlib import Path

from flask import Blueprint, jsonify, request
from werkzeug.utils import secure_filename

from wingman.client.ingest import chunk_text, extract_text
from wingman.client.routes.config import RouteConfig, get_config
from wingman.client.serializers import file_summary, repository_summary
from wingman.constants import get_embedding_model
from wingman.service.mcp_helpers import run_async
from wingman.service.repository import (
    IngestionPipeline,
    KnowledgeBase,
    RepositoryNotFoundError,
    save_state,
)

logger = logging.getLogger(__name__)

repositories_bp = Blueprint("repositories", __name__)


def _persist(config: RouteConfig) -> None:
    if config.state_file is not None:
        save_state(config.state_file, config.registry)


def _not_found(repository_id: str):
    return jsonify({"error": f"Repository '{repository_id}' not found"}), 404


@repositories_bp.route("/api/repositories", methods=["GET"])
def list_repositories():
    config = get_config()
    current = config.registry.current
    return jsonify(
        {
            "repositories": [repository_summary(r) for r in config.registry.repositories],
            "current": current.id if current else None,
        }
    )


@repositories_bp.route("/api/repositories", methods=["POST"])
def create_repository():
    """Create a repository.

    Request:
        {"name": "papers", "embedder": "nomic-embed-text", "instructions": "..."}

    Returns:
        JSON repository summary, 201
    """
    config = get_config()
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return jsonify({"error": "Missing 'name' field in request"}), 400

    repository = config.registry.create_repository(
        name,
        embedder=data.get("embedder") or get_embedding_model(),
        instructions=data.get("instructions"),
    )
    _persist(config)
    return jsonify(repository_summary(repository)), 201


@repositories_bp.route("/api/repositories/<repository_id>", methods=["DELETE"])
def delete_repository(repository_id: str):
    config = get_config()
    if not config.registry.delete_repository(repository_id):
        return _not_found(repository_id)
    _persist(config)
    return jsonify({"deleted": repository_id})


@repositories_bp.route("/api/repositories/<repository_id>/files", methods=["GET"])
def list_files(repository_id: str):
    config = get_config()
    repository = config.registry.find_repository(repository_id)
    if repository is None:
        return _not_found(repository_id)
    return jsonify({"files": [file_summary(f) for f in repository.files]})


@repositories_bp.route("/api/repositories/<repository_id>/files", methods=["POST"])
def upload_file(repository_id: str):
    """Upload a file into a repository and ingest it.

    The repository becomes the current one. Ingestion failures are reported
    through the file's status, not as an HTTP error.

    Returns:
        JSON file summary, 201
    """
    config = get_config()
    if config.registry.find_repository(repository_id) is None:
        return _not_found(repository_id)

    if "file" not in request.files:
        logger.warning("❌ No file in upload request")
        return jsonify({"error": "No file provided"}), 400

    upload = request.files["file"]
    filename = secure_filename(upload.filename or "")
    if not filename:
        return jsonify({"error": "No file selected"}), 400

    if Path(filename).suffix.lower() not in config.allowed_extensions:
        logger.warning(f"❌ Rejected file type: {filename}")
        return jsonify({"error": f"Unsupported file type: {filename}"}), 400

    content = upload.read()
    logger.info(f"📤 Upload received: {filename} ({len(content)} bytes)")

    config.registry.set_current(repository_id)
    pipeline = IngestionPipeline(
        config.registry,
        config.create_llm_service(),
        extract_text,
        chunk_text,
    )
    try:
        file = run_async(pipeline.add_file(filename, content, repository_id))
    except ValueError as e:
        logger.warning(f"⚠️ Upload superseded by a repository switch: {e}")
        return jsonify({"error": str(e)}), 409
    _persist(config)
    return jsonify(file_summary(file)), 201


@repositories_bp.route("/api/repositories/<repository_id>/files/<file_id>", methods=["DELETE"])
def delete_file(repository_id: str, file_id: str):
    config = get_config()
    try:
        removed = config.registry.remove_file(repository_id, file_id)
    except RepositoryNotFoundError:
        return _not_found(repository_id)

    if not removed:
        return jsonify({"error": f"File '{file_id}' not found"}), 404
    _persist(config)
    return jsonify({"deleted": file_id})


@repositories_bp.route("/api/repositories/<repository_id>/search", methods=["GET"])
def search(repository_id: str):
    """Similarity search over a repository.

    Query parameters:
        q: The search text (required)
        top_k: Number of results (default 5)
    """
    config = get_config()
    if config.registry.find_repository(repository_id) is None:
        return _not_found(repository_id)

    query = request.args.get("q", "").strip()
    if not query:
        return jsonify({"error": "Missing 'q' query parameter"}), 400

    try:
        top_k = int(request.args.get("top_k", 5))
    except ValueError:
        return jsonify({"error": "'top_k' must be an integer"}), 400

    knowledge = KnowledgeBase(config.registry, config.create_llm_service(), repository_id)
    try:
        chunks = run_async(knowledge.query_chunks(query, top_k))
    except Exception as e:
        logger.error(f"❌ Search failed: {e}", exc_info=True)
        return jsonify({"error": f"Search failed: {str(e)}"}), 500

    return jsonify(
        {
            "query": query,
            "results": [
                {
                    "file_id": chunk.file.id,
                    "file_name": chunk.file.name,
                    "text": chunk.text,
                    "similarity": chunk.similarity,
                }
                for chunk in chunks
            ],
        }
    )
