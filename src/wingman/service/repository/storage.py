"""Save and load repository state as a JSON file."""

import json
import logging
from pathlib import Path

from wingman.service.events import EventEmitter
from wingman.service.repository.ingestion import index_repository_segments
from wingman.service.repository.models import Repository
from wingman.service.repository.registry import RepositoryRegistry
from wingman.service.vectordb import VectorStore

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def save_state(path: str | Path, registry: RepositoryRegistry) -> None:
    """Write all repositories and the current selection to a JSON file.

    Args:
        path: Destination file; parent directories are created
        registry: Registry to persist
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with registry.lock:
        current = registry.current
        state = {
            "version": STATE_VERSION,
            "current_repository_id": current.id if current else None,
            "repositories": [r.to_dict() for r in registry.repositories],
        }
        path.write_text(json.dumps(state, indent=2), encoding="utf-8")
    logger.info(f"💾 Saved {len(state['repositories'])} repositories to {path}")


def load_state(
    path: str | Path,
    vector_store: VectorStore | None = None,
    events: EventEmitter | None = None,
) -> RepositoryRegistry:
    """Load repositories from a JSON file and rebuild the vector store.

    A missing file yields an empty registry.

    Args:
        path: State file written by save_state
        vector_store: Store to populate (a new one by default)
        events: Event emitter for the registry

    Returns:
        RepositoryRegistry: Registry with the persisted current selection
    """
    registry = RepositoryRegistry(vector_store=vector_store, events=events)
    path = Path(path)
    if not path.exists():
        logger.info(f"No state file at {path}, starting empty")
        return registry

    state = json.loads(path.read_text(encoding="utf-8"))
    for data in state.get("repositories", []):
        repository = Repository.from_dict(data)
        registry.add_repository(repository)
        index_repository_segments(registry.vector_store, repository)

    current_id = state.get("current_repository_id")
    if current_id and registry.find_repository(current_id):
        registry.set_current(current_id)

    logger.info(f"📂 Loaded {len(registry.repositories)} repositories from {path}")
    return registry
