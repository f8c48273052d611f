"""Repository registry with current-repository tracking and file updates."""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from wingman.service.events import EventEmitter
from wingman.service.repository.models import Repository, RepositoryFile, RepositoryNotFoundError
from wingman.service.vectordb import VectorStore

logger = logging.getLogger(__name__)

FILE_UPDATED = "file_updated"
FILE_REMOVED = "file_removed"
REPOSITORY_DELETED = "repository_deleted"


@dataclass(frozen=True)
class Generation:
    """Identifies the repository selection an async job started under."""

    repository_id: str
    number: int


class RepositoryRegistry:
    """Holds repositories, the current selection and the shared vector store.

    Every change of the current repository increments a generation counter;
    reselecting the repository that is already current leaves it unchanged.
    Long-running work captures a Generation at its start and asks
    is_current() before writing results; a superseded job simply drops its
    output.

    Request threads share one registry, so mutations and check-then-write
    sequences hold `lock` (reentrant).

    Events (payload is a dict):
        file_updated: {"repository_id", "file"}
        file_removed: {"repository_id", "file_id"}
        repository_deleted: {"repository_id"}
    """

    def __init__(
        self,
        vector_store: VectorStore | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self.vector_store = vector_store or VectorStore()
        self.events = events or EventEmitter()
        self._repositories: dict[str, Repository] = {}
        self._current_id: str | None = None
        self._generation = 0
        self.lock = threading.RLock()

    @property
    def repositories(self) -> list[Repository]:
        return list(self._repositories.values())

    @property
    def current(self) -> Repository | None:
        if self._current_id is None:
            return None
        return self._repositories.get(self._current_id)

    @property
    def generation(self) -> Generation | None:
        with self.lock:
            if self._current_id is None:
                return None
            return Generation(self._current_id, self._generation)

    def create_repository(
        self,
        name: str,
        embedder: str,
        instructions: str | None = None,
        make_current: bool = True,
    ) -> Repository:
        repository = Repository(name=name, embedder=embedder, instructions=instructions)
        self.add_repository(repository, make_current=make_current)
        logger.info(f"📁 Created repository '{name}' ({repository.id})")
        return repository

    def add_repository(self, repository: Repository, make_current: bool = False) -> None:
        with self.lock:
            self._repositories[repository.id] = repository
            if make_current:
                self.set_current(repository.id)

    def find_repository(self, repository_id: str) -> Repository | None:
        return self._repositories.get(repository_id)

    def find_repository_by_name(self, name: str) -> Repository | None:
        return next((r for r in self.repositories if r.name == name), None)

    def get_repository(self, repository_id: str) -> Repository:
        repository = self._repositories.get(repository_id)
        if repository is None:
            raise RepositoryNotFoundError(repository_id)
        return repository

    def update_repository(self, repository_id: str, **updates: Any) -> Repository:
        """Update name, embedder or instructions of a repository."""
        with self.lock:
            repository = self.get_repository(repository_id)
            for key in ("name", "embedder", "instructions"):
                if key in updates:
                    setattr(repository, key, updates[key])
            repository.updated_at = datetime.now(timezone.utc)
            return repository

    def delete_repository(self, repository_id: str) -> bool:
        """Delete a repository together with all of its indexed documents."""
        with self.lock:
            if self._repositories.pop(repository_id, None) is None:
                return False

            self.vector_store.delete_domain(repository_id)
            if self._current_id == repository_id:
                self.set_current(None)

        logger.info(f"🗑️ Deleted repository {repository_id}")
        self.events.emit(REPOSITORY_DELETED, {"repository_id": repository_id})
        return True

    def set_current(self, repository_id: str | None) -> None:
        """Select the current repository, starting a new generation on a switch."""
        with self.lock:
            if repository_id is not None:
                self.get_repository(repository_id)
            if repository_id == self._current_id:
                return
            self._current_id = repository_id
            self._generation += 1

    def is_current(self, generation: Generation) -> bool:
        with self.lock:
            return (
                self._current_id == generation.repository_id
                and self._generation == generation.number
            )

    def upsert_file(self, repository_id: str, file: RepositoryFile) -> None:
        with self.lock:
            repository = self.get_repository(repository_id)
            for i, existing in enumerate(repository.files):
                if existing.id == file.id:
                    repository.files[i] = file
                    break
            else:
                repository.files.append(file)

            repository.updated_at = datetime.now(timezone.utc)
            self.events.emit(FILE_UPDATED, {"repository_id": repository_id, "file": file})

    def update_file(self, repository_id: str, file_id: str, **changes: Any) -> RepositoryFile | None:
        """Replace a file with a copy carrying the given field changes.

        Returns:
            RepositoryFile | None: The updated file, or None if it no longer exists
        """
        with self.lock:
            repository = self.find_repository(repository_id)
            if repository is None:
                return None
            existing = repository.find_file(file_id)
            if existing is None:
                return None

            updated = replace(existing, **changes)
            self.upsert_file(repository_id, updated)
            return updated

    def remove_file(self, repository_id: str, file_id: str) -> bool:
        """Remove a file and every vector store document derived from it."""
        with self.lock:
            repository = self.get_repository(repository_id)
            if repository.find_file(file_id) is None:
                return False

            repository.files = [f for f in repository.files if f.id != file_id]
            repository.updated_at = datetime.now(timezone.utc)

            removed = self.vector_store.delete_documents(repository_id, f"{repository_id}:{file_id}:")
            if self.vector_store.delete_document(repository_id, f"{repository_id}:{file_id}"):
                removed += 1

        logger.info(f"🗑️ Removed file {file_id} ({removed} documents)")
        self.events.emit(FILE_REMOVED, {"repository_id": repository_id, "file_id": file_id})
        return True
