"""
Tests for the record store implementations.
"""

import asyncio
import json
import tempfile
from pathlib import Path

import pytest

from series_catalog.domain.catalog.entities import Collection, Series
from series_catalog.domain.catalog.value_objects import BlobMedia
from series_catalog.domain.result import ConflictError, Failure, Success
from series_catalog.exceptions import CorruptStoreError, StorageError
from series_catalog.infrastructure.repositories.record_store import (
    FileBasedRecordStore,
    InMemoryRecordStore,
)


def add_series(series_id, name):
    def fn(collection):
        if collection.name_taken(name):
            return Failure(ConflictError(name))
        collection.add(Series(id=series_id, name=name, owner_handle="alice"))
        return Success(collection)
    return fn


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def catalog_path(temp_dir):
    return temp_dir / "data" / "catalog.json"


class TestFileBasedRecordStore:
    """Test the JSON file backed record store."""

    @pytest.mark.asyncio
    async def test_load_creates_empty_document(self, catalog_path):
        store = FileBasedRecordStore(catalog_path)
        result = await store.load()

        assert result.is_success()
        assert len(result.value()) == 0
        assert store.is_loaded
        assert json.loads(catalog_path.read_text()) == {"format_version": 1, "series": []}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        b"{not json",
        b'{"format_version": 1, "series": [\xff\xfe]}',
        b'{"format_version": 1, "series": [[]]}',
        b'{"format_version": 1, "series": {}}',
        b'{"format_version": 1, "series": [{"id": "s1", "name": "A", "owner_handle": "a", "episodes": "x"}]}',
        b'[]',
    ])
    async def test_corrupt_document_fails_to_load(self, catalog_path, raw):
        catalog_path.parent.mkdir(parents=True)
        catalog_path.write_bytes(raw)

        store = FileBasedRecordStore(catalog_path)
        result = await store.load()

        assert result.is_failure()
        assert isinstance(result.error(), CorruptStoreError)
        assert result.error().path == catalog_path
        # The unreadable file is never overwritten
        assert catalog_path.read_bytes() == raw

    @pytest.mark.asyncio
    async def test_duplicate_series_names_fail_to_load(self, catalog_path):
        catalog_path.parent.mkdir(parents=True)
        catalog_path.write_text(json.dumps({"format_version": 1, "series": [
            {"id": "s1", "name": "Naruto", "owner_handle": "alice"},
            {"id": "s2", "name": "naruto", "owner_handle": "bob"},
        ]}))

        result = await FileBasedRecordStore(catalog_path).load()

        assert isinstance(result.error(), CorruptStoreError)
        assert "Duplicate series name" in str(result.error())

    @pytest.mark.asyncio
    async def test_duplicate_episode_ids_fail_to_load(self, catalog_path):
        episode = {"id": "a-1", "title": "Pilot", "owner_handle": "alice", "parent_series_id": "s1",
                   "media": {"kind": "external", "url": "https://x/1.mp4"}}
        catalog_path.parent.mkdir(parents=True)
        catalog_path.write_text(json.dumps({"format_version": 1, "series": [
            {"id": "s1", "name": "A", "owner_handle": "alice", "episodes": [episode, episode]},
        ]}))

        result = await FileBasedRecordStore(catalog_path).load()

        assert isinstance(result.error(), CorruptStoreError)
        assert "already exists" in str(result.error())

    @pytest.mark.asyncio
    async def test_open_raises_on_corruption(self, catalog_path):
        catalog_path.parent.mkdir(parents=True)
        catalog_path.write_text(json.dumps({"format_version": 1, "series": [{"id": "x"}]}))

        with pytest.raises(CorruptStoreError):
            await FileBasedRecordStore.open(catalog_path)

    def test_snapshot_before_load_raises(self, catalog_path):
        with pytest.raises(StorageError):
            FileBasedRecordStore(catalog_path).snapshot()

    @pytest.mark.asyncio
    async def test_mutate_before_load_fails(self, catalog_path):
        result = await FileBasedRecordStore(catalog_path).mutate(add_series("s1", "A"))
        assert isinstance(result.error(), StorageError)

    @pytest.mark.asyncio
    async def test_commit_is_durable(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)
        result = await store.mutate(add_series("s1", "Naruto"))

        assert result.is_success()
        reopened = await FileBasedRecordStore.open(catalog_path)
        assert [s.name for s in reopened.snapshot()] == ["Naruto"]

    @pytest.mark.asyncio
    async def test_failed_mutation_changes_nothing(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)
        await store.mutate(add_series("s1", "Naruto"))
        before = catalog_path.read_text()

        result = await store.mutate(add_series("s2", "naruto"))

        assert isinstance(result.error(), ConflictError)
        assert catalog_path.read_text() == before
        assert len(store.snapshot()) == 1

    @pytest.mark.asyncio
    async def test_raising_mutation_becomes_failure(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)

        def boom(collection):
            collection.add(Series(id="s1", name="A", owner_handle="alice"))
            raise RuntimeError("boom")

        result = await store.mutate(boom)

        assert isinstance(result.error(), RuntimeError)
        assert len(store.snapshot()) == 0

    @pytest.mark.asyncio
    async def test_mutation_must_return_result(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)
        result = await store.mutate(lambda collection: collection)
        assert isinstance(result.error(), TypeError)

    @pytest.mark.asyncio
    async def test_snapshot_is_isolated(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)
        await store.mutate(add_series("s1", "A"))

        snapshot = store.snapshot()
        snapshot.series.clear()

        assert len(store.snapshot()) == 1

    @pytest.mark.asyncio
    async def test_write_failure_keeps_previous_state(self, catalog_path, monkeypatch):
        store = await FileBasedRecordStore.open(catalog_path)
        await store.mutate(add_series("s1", "A"))

        async def failing_write(payload):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write_atomic", failing_write)
        result = await store.mutate(add_series("s2", "B"))

        assert isinstance(result.error(), StorageError)
        assert [s.id for s in store.snapshot()] == ["s1"]

    @pytest.mark.asyncio
    async def test_stale_temp_files_removed_on_load(self, catalog_path):
        catalog_path.parent.mkdir(parents=True)
        stale = catalog_path.parent / ".catalog.json.deadbeef.tmp"
        stale.write_text("partial")
        unrelated = catalog_path.parent / "notes.tmp"
        unrelated.write_text("keep")

        await FileBasedRecordStore.open(catalog_path)

        assert not stale.exists()
        assert unrelated.exists()

    @pytest.mark.asyncio
    async def test_no_temp_files_left_after_commit(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)
        await store.mutate(add_series("s1", "A"))
        leftovers = [p.name for p in catalog_path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    @pytest.mark.asyncio
    async def test_concurrent_mutations_are_serialized(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)

        results = await asyncio.gather(*(
            store.mutate(add_series(f"s{i}", f"Series {i}")) for i in range(10)
        ))

        assert all(r.is_success() for r in results)
        reopened = await FileBasedRecordStore.open(catalog_path)
        assert len(reopened.snapshot()) == 10

    @pytest.mark.asyncio
    async def test_concurrent_same_name_only_one_wins(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)

        results = await asyncio.gather(
            store.mutate(add_series("s1", "Naruto")),
            store.mutate(add_series("s2", "NARUTO")),
        )

        assert sum(r.is_success() for r in results) == 1
        assert len(store.snapshot()) == 1

    @pytest.mark.asyncio
    async def test_blob_references_persist(self, catalog_path):
        store = await FileBasedRecordStore.open(catalog_path)

        def with_cover(collection):
            collection.add(Series(id="s1", name="A", owner_handle="alice",
                                  cover_image=BlobMedia("video-cover.png")))
            return Success(collection)

        await store.mutate(with_cover)
        reopened = await FileBasedRecordStore.open(catalog_path)
        assert reopened.snapshot().blob_paths() == {"video-cover.png"}


class TestInMemoryRecordStore:
    """Test the in-memory record store."""

    @pytest.mark.asyncio
    async def test_mutate_and_snapshot(self):
        store = InMemoryRecordStore()
        result = await store.mutate(add_series("s1", "A"))

        assert result.is_success()
        assert [s.id for s in store.snapshot()] == ["s1"]

    @pytest.mark.asyncio
    async def test_initial_collection_is_copied(self):
        initial = Collection([Series(id="s1", name="A", owner_handle="alice")])
        store = InMemoryRecordStore(initial)
        initial.series.clear()

        loaded = await store.load()
        assert len(loaded.value()) == 1

    @pytest.mark.asyncio
    async def test_failure_leaves_state(self):
        store = InMemoryRecordStore()
        await store.mutate(add_series("s1", "A"))
        result = await store.mutate(add_series("s2", "a"))

        assert result.is_failure()
        assert len(store.snapshot()) == 1
