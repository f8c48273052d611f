"""Retrieval mode selection and the knowledge query tool."""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from wingman.constants import (
    CHARACTERS_PER_PAGE,
    DEFAULT_QUERY_TOP_K,
    KNOWLEDGE_TOOL_NAME,
    KNOWLEDGE_TOOL_TOP_K,
)
from wingman.llm.base import EmbeddingService
from wingman.service.chat.models import Tool, ToolContext
from wingman.service.repository.models import Repository, RepositoryFile
from wingman.service.repository.registry import RepositoryRegistry

logger = logging.getLogger(__name__)


class RetrievalMode(str, Enum):
    AUTO = "auto"
    RAG = "rag"
    CONTEXT = "context"


@dataclass(frozen=True)
class CorpusStats:
    total_characters: int

    @property
    def total_pages(self) -> float:
        return self.total_characters / CHARACTERS_PER_PAGE


@dataclass
class FileChunk:
    file: RepositoryFile
    text: str
    similarity: float


def corpus_stats(files: list[RepositoryFile]) -> CorpusStats:
    return CorpusStats(total_characters=sum(len(f.text or "") for f in files))


def select_retrieval_mode(
    files: list[RepositoryFile],
    mode: RetrievalMode = RetrievalMode.AUTO,
    context_pages: float = 0,
) -> RetrievalMode:
    """Decide between retrieval (RAG) and inlining all content (CONTEXT).

    In auto mode a corpus of exactly `context_pages` pages is still inlined;
    anything larger switches to retrieval.

    Returns:
        RetrievalMode: RAG or CONTEXT, never AUTO
    """
    mode = RetrievalMode(mode)
    if mode != RetrievalMode.AUTO:
        return mode
    if corpus_stats(files).total_pages > context_pages:
        return RetrievalMode.RAG
    return RetrievalMode.CONTEXT


KNOWLEDGE_TOOL_DESCRIPTION = (
    "Search and retrieve information from a knowledge database using natural language "
    "queries. Returns relevant documents, facts, or answers based on the search criteria."
)

KNOWLEDGE_TOOL_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": (
                "The search query or question to find relevant information in the knowledge "
                "database. Use natural language and be specific about what information "
                "you're looking for."
            ),
        }
    },
    "required": ["query"],
}

RAG_INSTRUCTIONS = f"""
## Personal RAG Knowledge Database

You have access to a personal knowledge database containing the user's uploaded documents. \
This is a Retrieval-Augmented Generation (RAG) system that allows you to search and retrieve \
specific information from their files.

### Best Practices:
1. For *every* user query, you MUST first invoke the `{KNOWLEDGE_TOOL_NAME}` tool with a \
concise, natural-language query.
2. Examine the tool's results.
   - If you get one or more relevant documents or facts, answer the user *solely* using those results.
   - Include source citations (e.g. file names, relevance scores, or text snippets).
3. Only if the tool returns no relevant information, you may answer from general knowledge, \
but still note "no document match; using fallback knowledge".
4. If the tool call fails, report the failure and either retry or ask the user to clarify.
5. Be concise, accurate, and transparent about sources.
""".strip()

CONTEXT_INSTRUCTIONS = """
## Personal Knowledge Base

You have full access to the user's uploaded documents. Because the total size is below the \
RAG threshold, ALL file contents have been embedded directly below in this system prompt. \
No retrieval tool call is required.

### Best Practices:
1. Answer using ONLY the provided file contents below when possible; cite file names and \
(if helpful) short indicative snippets.
2. If the answer cannot be found in these files, explicitly state that the repository lacks \
the required information before using general knowledge.
3. Keep answers concise but complete.

### Provided Files
The following section lists each file wrapped in a fenced block. Treat this as authoritative context.
""".strip()


class KnowledgeBase:
    """Per-repository view exposing tools and instructions to a chat turn.

    Everything is derived from the registry on each call, so adding or
    removing files changes the retrieval mode immediately.
    """

    # Context mode inlines files without offering any tool.
    always_instructs = True

    def __init__(
        self,
        registry: RepositoryRegistry,
        embedder: EmbeddingService,
        repository_id: str,
        mode: RetrievalMode = RetrievalMode.AUTO,
        context_pages: float = 0,
    ) -> None:
        self.registry = registry
        self.embedder = embedder
        self.repository_id = repository_id
        self.mode = RetrievalMode(mode)
        self.context_pages = context_pages

    @property
    def repository(self) -> Repository | None:
        return self.registry.find_repository(self.repository_id)

    @property
    def files(self) -> list[RepositoryFile]:
        repository = self.repository
        return list(repository.files) if repository else []

    @property
    def stats(self) -> CorpusStats:
        return corpus_stats(self.files)

    @property
    def effective_mode(self) -> RetrievalMode:
        return select_retrieval_mode(self.files, self.mode, self.context_pages)

    @property
    def use_rag(self) -> bool:
        return self.effective_mode == RetrievalMode.RAG

    async def query_chunks(self, query: str, top_k: int = DEFAULT_QUERY_TOP_K) -> list[FileChunk]:
        """Embed a query and return the most similar chunks of this repository.

        Raises:
            Exception: Embedding or store failures propagate to the caller
        """
        if not query.strip():
            return []

        repository = self.registry.get_repository(self.repository_id)
        vector = await self.embedder.embed_text(query, repository.embedder or None)
        with self.registry.lock:
            results = self.registry.vector_store.query_documents(
                self.repository_id,
                vector,
                top_k=top_k,
                id_prefix=f"{self.repository_id}:",
            )

        chunks = []
        for result in results:
            parts = result.document.id.split(":")
            file = repository.find_file(parts[1]) if len(parts) > 1 else None
            if file is None:
                continue
            chunks.append(FileChunk(file=file, text=result.document.text, similarity=result.similarity))
        return chunks

    async def query_knowledge_database(
        self, args: dict[str, Any], context: ToolContext | None = None
    ) -> str:
        """Tool function: search the repository, always returning JSON."""
        query = args.get("query")
        logger.info(f"🔍 Knowledge query: {str(query)[:100]}")

        if not query or not isinstance(query, str):
            return json.dumps({"error": "No query provided"})

        try:
            results = await self.query_chunks(query, KNOWLEDGE_TOOL_TOP_K)
        except Exception as e:
            logger.error(f"❌ Knowledge query failed: {e}", exc_info=True)
            return json.dumps({"error": "Failed to query repository"})

        logger.info(f"✅ Knowledge query returned {len(results)} chunks")
        return json.dumps(
            [
                {
                    "file_name": chunk.file.name,
                    "file_chunk": chunk.text,
                    "similarity": chunk.similarity,
                }
                for chunk in results
            ]
        )

    def tools(self) -> list[Tool]:
        """Tools for the current mode: the query tool in RAG mode, else none."""
        if not self.files or not self.use_rag:
            return []

        return [
            Tool(
                name=KNOWLEDGE_TOOL_NAME,
                description=KNOWLEDGE_TOOL_DESCRIPTION,
                parameters=KNOWLEDGE_TOOL_PARAMETERS,
                function=self.query_knowledge_database,
            )
        ]

    def instructions(self) -> str:
        repository = self.repository
        if repository is None:
            return ""

        sections = []
        if repository.instructions and repository.instructions.strip():
            sections.append(
                f"## Instructions\n\n````text\n{repository.instructions.strip()}\n````"
            )

        files = self.files
        if files:
            if self.use_rag:
                sections.append(RAG_INSTRUCTIONS)
            else:
                sections.append(CONTEXT_INSTRUCTIONS)
                for file in files:
                    if not file.text or not file.text.strip():
                        continue
                    sections.append(f"```text {file.name}\n{file.text}\n```")

        return "\n\n".join(sections)
