"""Knowledge repositories: files, ingestion and retrieval.

This package provides:
- Repository and RepositoryFile models
- RepositoryRegistry: repositories, current selection, file updates
- IngestionPipeline: extract, segment, embed and index uploaded files
- KnowledgeBase: retrieval mode selection and the knowledge query tool
- save_state / load_state: JSON persistence

Usage:
    from wingman.service.repository import IngestionPipeline, RepositoryRegistry

    registry = RepositoryRegistry()
    repo = registry.create_repository("papers", embedder="nomic-embed-text")
    pipeline = IngestionPipeline(registry, llm_service, extract_text, chunk_text)
    await pipeline.add_file("notes.md", b"...")
"""

from wingman.service.repository.ingestion import (
    IngestionPipeline,
    chunk_document_id,
    embedding_progress,
    index_file,
    index_repository_segments,
)
from wingman.service.repository.knowledge import (
    CorpusStats,
    FileChunk,
    KnowledgeBase,
    RetrievalMode,
    corpus_stats,
    select_retrieval_mode,
)
from wingman.service.repository.models import (
    FileStatus,
    Repository,
    RepositoryFile,
    RepositoryNotFoundError,
    Segment,
)
from wingman.service.repository.registry import (
    FILE_REMOVED,
    FILE_UPDATED,
    REPOSITORY_DELETED,
    Generation,
    RepositoryRegistry,
)
from wingman.service.repository.storage import load_state, save_state

__all__ = [
    # Models
    "FileStatus",
    "Repository",
    "RepositoryFile",
    "RepositoryNotFoundError",
    "Segment",
    # Registry
    "FILE_REMOVED",
    "FILE_UPDATED",
    "REPOSITORY_DELETED",
    "Generation",
    "RepositoryRegistry",
    # Ingestion
    "IngestionPipeline",
    "chunk_document_id",
    "embedding_progress",
    "index_file",
    "index_repository_segments",
    # Knowledge
    "CorpusStats",
    "FileChunk",
    "KnowledgeBase",
    "RetrievalMode",
    "corpus_stats",
    "select_retrieval_mode",
    # Storage
    "load_state",
    "save_state",
]
