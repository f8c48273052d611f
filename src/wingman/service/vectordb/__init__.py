"""In-memory vector store for repository documents.

This package provides:
- Document and QueryResult models
- VectorStore: domain/tag partitioned cosine-similarity index
- Vector helpers (cosine_similarity, average_vector)

Usage:
    from wingman.service.vectordb import Document, VectorStore

    store = VectorStore()
    store.add_document("repo-1", Document(id="repo-1:f1:0", source="a.txt", vector=[...]))
    results = store.query_documents("repo-1", query_vector, top_k=5)
"""

from wingman.service.vectordb.models import (
    Document,
    QueryResult,
    VectorDimensionError,
    VectorStoreImportError,
)
from wingman.service.vectordb.store import VectorStore
from wingman.service.vectordb.utils import average_vector, cosine_similarity

__all__ = [
    # Models
    "Document",
    "QueryResult",
    "VectorDimensionError",
    "VectorStoreImportError",
    # Store
    "VectorStore",
    # Utils
    "average_vector",
    "cosine_similarity",
]
