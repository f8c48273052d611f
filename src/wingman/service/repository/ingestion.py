"""Ingestion pipeline: extract, segment, embed and index repository files."""

import asyncio
import logging
from collections.abc import Callable

from wingman.constants import (
    MAX_EMBEDDING_CONCURRENCY,
    PROGRESS_COMPLETE,
    PROGRESS_EXTRACTED,
    PROGRESS_SEGMENTED,
)
from wingman.llm.base import EmbeddingService
from wingman.service.repository.models import (
    FileStatus,
    Repository,
    RepositoryFile,
    Segment,
)
from wingman.service.repository.registry import Generation, RepositoryRegistry
from wingman.service.vectordb import Document, VectorStore, average_vector

logger = logging.getLogger(__name__)

Extractor = Callable[[str, bytes], str]
Segmenter = Callable[[str], list[str]]


def chunk_document_id(repository_id: str, file_id: str, index: int) -> str:
    return f"{repository_id}:{file_id}:{index}"


def embedding_progress(completed: int, total: int) -> int:
    """Progress after `completed` of `total` embeddings (20% -> 100% band)."""
    if total <= 0:
        return PROGRESS_COMPLETE
    band = PROGRESS_COMPLETE - PROGRESS_SEGMENTED
    return round(PROGRESS_SEGMENTED + (completed / total) * band)


class IngestionPipeline:
    """Turns uploaded files into indexed, searchable segments.

    Stages and progress checkpoints:
        1. extract text          0% -> 10%
        2. segment into chunks  10% -> 20%
        3. embed chunks         20% -> 100%, at most `max_concurrency` in flight
        4. index segments and mark the file completed

    Before every write the pipeline checks that the repository selection it
    started under is still current and that the file still exists; if not,
    the result is dropped and nothing is written.
    """

    def __init__(
        self,
        registry: RepositoryRegistry,
        embedder: EmbeddingService,
        extractor: Extractor,
        segmenter: Segmenter,
        max_concurrency: int = MAX_EMBEDDING_CONCURRENCY,
        index_whole_document: bool = False,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.registry = registry
        self.embedder = embedder
        self.extractor = extractor
        self.segmenter = segmenter
        self.max_concurrency = max_concurrency
        self.index_whole_document = index_whole_document

    async def add_file(
        self, name: str, content: bytes, repository_id: str | None = None
    ) -> RepositoryFile:
        """Register an upload and ingest it into the current repository.

        Failures never propagate: they end in an error status on the file.

        Args:
            name: Original file name
            content: Raw file bytes
            repository_id: Target repository; must be the current one

        Returns:
            RepositoryFile: The file's latest state (or its initial state if
            the work was superseded)
        """
        file = RepositoryFile(name=name, content=content)
        with self.registry.lock:
            generation = self.registry.generation
            if generation is None:
                raise ValueError("No current repository selected")
            if repository_id is not None and repository_id != generation.repository_id:
                raise ValueError(f"Repository {repository_id} is not the current repository")
            self.registry.upsert_file(generation.repository_id, file)
        logger.info(f"📥 Ingesting '{name}' into repository {generation.repository_id}")

        try:
            await self._process(generation, file.id)
        except Exception as e:
            logger.error(f"❌ Ingestion of '{name}' failed: {e}", exc_info=True)
            self._write(
                generation, file.id, status=FileStatus.ERROR, error=str(e) or type(e).__name__
            )

        repository = self.registry.find_repository(generation.repository_id)
        current = repository.find_file(file.id) if repository else None
        return current or file

    def remove_file(self, repository_id: str, file_id: str) -> bool:
        return self.registry.remove_file(repository_id, file_id)

    def index_repository(self, repository: Repository) -> int:
        """Rebuild a repository's store domain from its stored segments.

        Returns:
            int: Number of documents indexed
        """
        count = index_repository_segments(self.registry.vector_store, repository)
        logger.info(f"📚 Indexed {count} documents for repository '{repository.name}'")
        return count

    def _is_live(self, generation: Generation, file_id: str) -> bool:
        if not self.registry.is_current(generation):
            return False
        repository = self.registry.find_repository(generation.repository_id)
        return repository is not None and repository.find_file(file_id) is not None

    def _write(self, generation: Generation, file_id: str, **changes) -> bool:
        with self.registry.lock:
            if not self._is_live(generation, file_id):
                logger.debug(f"Dropping stale update for file {file_id}")
                return False
            self.registry.update_file(generation.repository_id, file_id, **changes)
            return True

    async def _process(self, generation: Generation, file_id: str) -> None:
        repository = self.registry.get_repository(generation.repository_id)
        file = repository.find_file(file_id)
        if file is None:
            return

        if not self._write(generation, file_id, status=FileStatus.PROCESSING, progress=0):
            return

        text = await asyncio.to_thread(self.extractor, file.name, file.content)
        if not self._write(generation, file_id, text=text, progress=PROGRESS_EXTRACTED):
            return

        chunks = await asyncio.to_thread(self.segmenter, text)
        if not self._write(generation, file_id, progress=PROGRESS_SEGMENTED):
            return
        logger.info(f"  Created {len(chunks)} chunks from '{file.name}'")

        vectors = await self._embed_chunks(generation, file_id, repository.embedder, chunks)

        segments = [Segment(text=chunk, vector=vector) for chunk, vector in zip(chunks, vectors)]
        with self.registry.lock:
            if not self._is_live(generation, file_id):
                return
            current = repository.find_file(file_id)
            self._index_segments(generation.repository_id, current, segments)
            self._write(
                generation,
                file_id,
                status=FileStatus.COMPLETED,
                progress=PROGRESS_COMPLETE,
                segments=segments,
            )
        logger.info(f"✅ Ingested '{file.name}': {len(segments)} segments")

    async def _embed_chunks(
        self, generation: Generation, file_id: str, model: str, chunks: list[str]
    ) -> list[list[float]]:
        """Embed all chunks with bounded concurrency, preserving chunk order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)
        completed = 0

        async def embed(chunk: str) -> list[float]:
            nonlocal completed
            async with semaphore:
                vector = await self.embedder.embed_text(chunk, model or None)
            completed += 1
            self._write(generation, file_id, progress=embedding_progress(completed, len(chunks)))
            return vector

        tasks = [asyncio.ensure_future(embed(chunk)) for chunk in chunks]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    def _index_segments(self, repository_id: str, file: RepositoryFile, segments: list[Segment]) -> int:
        return index_file(
            self.registry.vector_store,
            repository_id,
            file,
            segments,
            whole_document=self.index_whole_document,
        )


def index_file(
    store: VectorStore,
    repository_id: str,
    file: RepositoryFile,
    segments: list[Segment],
    whole_document: bool = False,
) -> int:
    """Store a file's segments (and optionally a whole-document entry).

    Returns:
        int: Number of documents written
    """
    for index, segment in enumerate(segments):
        store.add_document(
            repository_id,
            Document(
                id=chunk_document_id(repository_id, file.id, index),
                source=file.name,
                vector=segment.vector,
                text=segment.text,
            ),
            tags=[file.id],
        )

    if whole_document and segments:
        store.add_document(
            repository_id,
            Document(
                id=f"{repository_id}:{file.id}",
                source=file.name,
                vector=average_vector([s.vector for s in segments]),
                text=file.text or "\n".join(s.text for s in segments),
            ),
            tags=[file.id],
        )
        return len(segments) + 1

    return len(segments)


def index_repository_segments(store: VectorStore, repository: Repository) -> int:
    """Rebuild a repository's store domain from its completed files."""
    store.delete_domain(repository.id)
    count = 0
    for file in repository.files:
        if file.status != FileStatus.COMPLETED or not file.segments:
            continue
        count += index_file(store, repository.id, file, file.segments)
    return count
