"""Tests for the repository registry and state persistence."""

import json

import pytest
from conftest import FakeEmbedder

from wingman.service.repository import (
    FILE_REMOVED,
    REPOSITORY_DELETED,
    FileStatus,
    IngestionPipeline,
    Repository,
    RepositoryFile,
    RepositoryNotFoundError,
    Segment,
    load_state,
    save_state,
)


class TestRepositoryRegistry:
    """Tests for RepositoryRegistry."""

    def test_create_makes_current(self, registry):
        repo = registry.create_repository("papers", embedder="nomic-embed-text")

        assert registry.current is repo
        assert registry.find_repository_by_name("papers") is repo
        assert registry.generation.repository_id == repo.id

    def test_switching_bumps_generation(self, registry):
        first = registry.create_repository("papers", embedder="m")
        second = registry.create_repository("notes", embedder="m", make_current=False)
        before = registry.generation

        registry.set_current(second.id)

        assert registry.generation.number == before.number + 1
        assert not registry.is_current(before)
        assert registry.is_current(registry.generation)

        registry.set_current(first.id)
        assert not registry.is_current(before)

    def test_reselecting_current_keeps_generation(self, registry):
        repo = registry.create_repository("papers", embedder="m")
        before = registry.generation

        registry.set_current(repo.id)

        assert registry.generation == before
        assert registry.is_current(before)

    def test_set_current_unknown_raises(self, registry):
        with pytest.raises(RepositoryNotFoundError):
            registry.set_current("missing")

    def test_clear_selection(self, registry):
        registry.create_repository("papers", embedder="m")
        registry.set_current(None)

        assert registry.current is None
        assert registry.generation is None

    def test_update_repository(self, registry):
        repo = registry.create_repository("papers", embedder="m")

        registry.update_repository(repo.id, name="articles", instructions="Cite pages.", ignored=1)

        assert repo.name == "articles"
        assert repo.instructions == "Cite pages."

    def test_update_file_returns_none_for_missing(self, registry):
        repo = registry.create_repository("papers", embedder="m")
        assert registry.update_file(repo.id, "missing", progress=50) is None
        assert registry.update_file("missing", "missing", progress=50) is None

    @pytest.mark.asyncio
    async def test_delete_repository_drops_documents(self, registry):
        repo = registry.create_repository("papers", embedder="m")
        pipeline = IngestionPipeline(
            registry, FakeEmbedder(), lambda n, c: c.decode(), lambda t: t.split("|")
        )
        await pipeline.add_file("a.txt", b"one|two")
        deleted = []
        registry.events.subscribe(REPOSITORY_DELETED, deleted.append)

        assert registry.delete_repository(repo.id) is True

        assert registry.current is None
        assert registry.vector_store.list_documents(repo.id) == []
        assert deleted == [{"repository_id": repo.id}]
        assert registry.delete_repository(repo.id) is False

    def test_remove_file_emits_event(self, registry):
        repo = registry.create_repository("papers", embedder="m")
        file = RepositoryFile(name="a.txt")
        registry.upsert_file(repo.id, file)
        removed = []
        registry.events.subscribe(FILE_REMOVED, removed.append)

        assert registry.remove_file(repo.id, file.id) is True
        assert removed == [{"repository_id": repo.id, "file_id": file.id}]


class TestModelsSerialization:
    def test_file_round_trip_keeps_bytes_and_segments(self):
        file = RepositoryFile(
            name="a.bin",
            content=b"\x00\xffdata",
            status=FileStatus.COMPLETED,
            progress=100,
            text="data",
            segments=[Segment(text="data", vector=[0.5, 0.25])],
        )

        restored = RepositoryFile.from_dict(json.loads(json.dumps(file.to_dict())))

        assert restored == file


class TestStatePersistence:
    """Tests for save_state and load_state."""

    def test_missing_file_gives_empty_registry(self, tmp_path):
        registry = load_state(tmp_path / "nope.json")
        assert registry.repositories == []
        assert registry.current is None

    @pytest.mark.asyncio
    async def test_save_and_load_rebuilds_index(self, registry, tmp_path):
        embedder = FakeEmbedder()
        repo = registry.create_repository("papers", embedder="m", instructions="Be precise.")
        registry.create_repository("other", embedder="m", make_current=False)
        pipeline = IngestionPipeline(
            registry, embedder, lambda n, c: c.decode(), lambda t: t.split("|")
        )
        await pipeline.add_file("a.txt", b"alpha|beta")
        path = tmp_path / "state" / "wingman.json"

        save_state(path, registry)
        restored = load_state(path)

        assert json.loads(path.read_text())["version"] == 1
        assert [r.name for r in restored.repositories] == ["papers", "other"]
        assert restored.current.id == repo.id
        assert restored.current.instructions == "Be precise."
        assert restored.current.files[0].content == b"alpha|beta"

        query = embedder.vector_for("alpha")
        original = registry.vector_store.query_documents(repo.id, query)
        reloaded = restored.vector_store.query_documents(repo.id, query)
        assert [(r.document, r.similarity) for r in original] == [
            (r.document, r.similarity) for r in reloaded
        ]

    def test_unknown_current_id_is_ignored(self, tmp_path):
        path = tmp_path / "state.json"
        repo = Repository(name="papers", embedder="m")
        path.write_text(
            json.dumps(
                {
                    "version": 1,
                    "current_repository_id": "gone",
                    "repositories": [repo.to_dict()],
                }
            )
        )

        registry = load_state(path)

        assert registry.current is None
        assert registry.find_repository(repo.id) is not None

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(ValueError):
            load_state(path)
