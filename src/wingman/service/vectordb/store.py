"""In-memory similarity index partitioned by domain and tag."""

import json
import logging
from typing import Any

from wingman.constants import DEFAULT_QUERY_TOP_K
from wingman.service.vectordb.models import (
    Document,
    QueryResult,
    VectorDimensionError,
    VectorStoreImportError,
)
from wingman.service.vectordb.utils import cosine_similarity

logger = logging.getLogger(__name__)


class VectorStore:
    """Cosine-similarity document index.

    Each domain (typically one per repository) holds its own document map,
    the tags registered for each document, and an inverted tag index.
    Iteration order of a domain is insertion order, which is also the
    tie-break order for query results.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Document]] = {}
        self._tags: dict[str, dict[str, list[str]]] = {}
        self._tag_index: dict[str, dict[str, list[str]]] = {}

    def add_document(self, domain: str, document: Document, tags: list[str] | None = None) -> None:
        """Insert or overwrite a document and register its tags.

        Tags are append-only: overwriting a document adds any new tags but
        keeps earlier registrations until the document is deleted.

        Raises:
            VectorDimensionError: If the vector length differs from the
                documents already in the domain
        """
        for existing_id, existing in self._documents.get(domain, {}).items():
            if existing_id == document.id:
                continue
            if len(existing.vector) != len(document.vector):
                raise VectorDimensionError(
                    f"Document {document.id} has {len(document.vector)} dimensions, "
                    f"domain '{domain}' uses {len(existing.vector)}"
                )
            break

        if domain not in self._documents:
            self._documents[domain] = {}
            self._tags[domain] = {}
            self._tag_index[domain] = {}

        self._documents[domain][document.id] = document

        doc_tags = self._tags[domain].setdefault(document.id, [])
        domain_tag_index = self._tag_index[domain]
        for tag in tags or []:
            if tag not in doc_tags:
                doc_tags.append(tag)
            tag_doc_ids = domain_tag_index.setdefault(tag, [])
            if document.id not in tag_doc_ids:
                tag_doc_ids.append(document.id)

    def query_documents(
        self,
        domain: str,
        vector: list[float],
        tags: list[str] | None = None,
        top_k: int | None = DEFAULT_QUERY_TOP_K,
        id_prefix: str | None = None,
    ) -> list[QueryResult]:
        """Find the documents most similar to a query vector.

        Args:
            domain: Domain to search
            vector: Query embedding
            tags: If given, only documents registered under any of these tags
            top_k: Maximum number of results (default: 10)
            id_prefix: If given, only documents whose id starts with it

        Returns:
            list[QueryResult]: Sorted by similarity, highest first

        Raises:
            VectorDimensionError: If the query vector does not match the domain
        """
        if top_k is None:
            top_k = DEFAULT_QUERY_TOP_K
        if top_k <= 0 or domain not in self._documents:
            return []

        domain_docs = self._documents[domain]

        if tags:
            candidate_ids: set[str] = set()
            domain_tag_index = self._tag_index[domain]
            for tag in tags:
                candidate_ids.update(domain_tag_index.get(tag, []))
            if not candidate_ids:
                return []
            candidates = [doc for doc_id, doc in domain_docs.items() if doc_id in candidate_ids]
        else:
            candidates = list(domain_docs.values())

        if id_prefix is not None:
            candidates = [doc for doc in candidates if doc.id.startswith(id_prefix)]

        results = [
            QueryResult(document=doc, similarity=cosine_similarity(vector, doc.vector))
            for doc in candidates
        ]
        results.sort(key=lambda result: result.similarity, reverse=True)
        return results[:top_k]

    def get_document(self, domain: str, doc_id: str) -> Document | None:
        return self._documents.get(domain, {}).get(doc_id)

    def get_tags(self, domain: str, doc_id: str) -> list[str]:
        return list(self._tags.get(domain, {}).get(doc_id, []))

    def list_domains(self) -> list[str]:
        return list(self._documents)

    def list_documents(self, domain: str) -> list[Document]:
        return list(self._documents.get(domain, {}).values())

    def delete_document(self, domain: str, doc_id: str) -> bool:
        """Remove a document and drop it from every tag bucket.

        Returns:
            bool: False if the document did not exist
        """
        domain_docs = self._documents.get(domain)
        if not domain_docs or doc_id not in domain_docs:
            return False

        del domain_docs[doc_id]

        doc_tags = self._tags[domain].pop(doc_id, [])
        domain_tag_index = self._tag_index[domain]
        for tag in doc_tags:
            tag_doc_ids = domain_tag_index.get(tag)
            if tag_doc_ids is None:
                continue
            if doc_id in tag_doc_ids:
                tag_doc_ids.remove(doc_id)
            if not tag_doc_ids:
                del domain_tag_index[tag]

        return True

    def delete_documents(self, domain: str, id_prefix: str) -> int:
        """Remove every document in a domain whose id starts with a prefix.

        Returns:
            int: Number of documents removed
        """
        doc_ids = [
            doc_id for doc_id in self._documents.get(domain, {}) if doc_id.startswith(id_prefix)
        ]
        for doc_id in doc_ids:
            self.delete_document(domain, doc_id)
        return len(doc_ids)

    def delete_domain(self, domain: str) -> bool:
        if domain not in self._documents:
            return False
        del self._documents[domain]
        del self._tags[domain]
        del self._tag_index[domain]
        return True

    def stats(self) -> dict[str, Any]:
        """Get document counts per domain."""
        documents_by_domain = {domain: len(docs) for domain, docs in self._documents.items()}
        return {
            "domains": len(self._documents),
            "total_documents": sum(documents_by_domain.values()),
            "documents_by_domain": documents_by_domain,
        }

    def clear(self) -> None:
        self._documents.clear()
        self._tags.clear()
        self._tag_index.clear()

    def export_json(self) -> str:
        """Serialize all domains, documents and tags to JSON."""
        data = {
            "documents": {
                domain: {doc_id: doc.to_dict() for doc_id, doc in docs.items()}
                for domain, docs in self._documents.items()
            },
            "tags": {
                domain: {doc_id: list(tags) for doc_id, tags in doc_tags.items()}
                for domain, doc_tags in self._tags.items()
            },
        }
        return json.dumps(data)

    def import_json(self, json_data: str) -> None:
        """Replace the store contents with previously exported data.

        The new state is built completely before it replaces the current
        one, so a failed import leaves the store unchanged.

        Raises:
            VectorStoreImportError: If the data is not a valid export
        """
        try:
            data = json.loads(json_data)
            staged = VectorStore()
            all_tags = data.get("tags") or {}
            for domain, docs in data["documents"].items():
                domain_tags = all_tags.get(domain) or {}
                for doc_id, doc in docs.items():
                    staged.add_document(domain, Document.from_dict(doc), domain_tags.get(doc_id, []))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise VectorStoreImportError(f"Failed to import vector store: {e}") from e

        self._documents = staged._documents
        self._tags = staged._tags
        self._tag_index = staged._tag_index
        logger.info(f"📦 Imported {self.stats()['total_documents']} documents")
