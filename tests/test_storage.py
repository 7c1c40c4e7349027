"""Storage tests: analysis cache, memory source, artifact sink."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json

import pytest

from core import ArtifactKind, MemoryRecord, Provenance
from storage import (
    FileArtifactStore,
    InMemoryArtifactStore,
    InMemoryMemoryStore,
    MemoryCache,
    MemoryFilter,
    get_artifact_store,
    memory_set_key,
)
from utils.exceptions import NotFoundError, StorageError


def test_memory_set_key_ignores_order():
    assert memory_set_key(["b", "a"]) == memory_set_key(["a", "b"])
    assert memory_set_key(["a"]) != memory_set_key(["a", "b"])
    assert memory_set_key(["a"]).startswith("analysis:")


def test_memory_cache_expiry():
    cache = MemoryCache(ttl=60)
    cache.set("k", {"v": 1})
    assert cache.get("k") == {"v": 1}
    assert cache.exists("k")

    cache._entries["k"]["expires_at"] = datetime.now() - timedelta(seconds=1)
    assert cache.get("k") is None
    assert cache.size() == 0


def test_memory_cache_evicts_oldest_when_full():
    cache = MemoryCache(max_size=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache._entries["a"]["created_at"] -= timedelta(seconds=5)
    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3

    cache.delete("b")
    assert cache.size() == 1
    cache.clear()
    assert cache.size() == 0


def _memory(memory_id: str, minutes: int) -> MemoryRecord:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes)
    return MemoryRecord(id=memory_id, content=f"note {memory_id}", created_at=created)


def test_memory_store_lists_newest_first_per_user():
    store = InMemoryMemoryStore()
    store.add_memories("u1", [_memory("old", 0), _memory("new", 10), _memory("mid", 5)])
    store.add_memories("u2", [_memory("other", 1)])

    assert [r.id for r in store.list_memories("u1")] == ["new", "mid", "old"]
    assert [r.id for r in store.fetch_memories(MemoryFilter(user_id="u1", limit=2))] == ["new", "mid"]
    assert store.count("u1") == 3
    assert store.count("nobody") == 0


def test_memory_store_lookup_errors():
    store = InMemoryMemoryStore()
    store.add_memories("u1", [_memory("m1", 0)])

    assert store.fetch_memories(MemoryFilter(user_id="u1", memory_id="m1"))[0].id == "m1"
    with pytest.raises(NotFoundError):
        store.get_memory("u2", "m1")
    with pytest.raises(NotFoundError):
        store.fetch_memories(MemoryFilter(user_id="u1", memory_id="missing"))
    with pytest.raises(NotFoundError):
        store.fetch_memories(MemoryFilter(user_id="u2"))

    assert store.delete_memory("u1", "m1") is True
    assert store.delete_memory("u1", "m1") is False


def test_in_memory_artifact_store_round_trip():
    store = InMemoryArtifactStore()
    record = store.create_artifact(
        ArtifactKind.POEM,
        {"text": "salt"},
        Provenance(model="m", provider="p"),
        title="A Poem",
        memory_id="mem_1",
        user_id="u1",
    )
    store.create_artifact("image", {"url": "x"}, user_id="u2")

    assert record.id.startswith("art_")
    assert store.get_artifact(record.id) == record
    assert [r.id for r in store.list_artifacts(user_id="u1")] == [record.id]
    assert [r.kind for r in store.list_artifacts(kind=ArtifactKind.IMAGE)] == [ArtifactKind.IMAGE]

    payload = record.to_payload()
    assert payload["memoryId"] == "mem_1"
    assert payload["provenance"] == {"model": "m", "provider": "p"}

    with pytest.raises(NotFoundError):
        store.get_artifact("art_missing")


def test_artifact_store_rejects_unknown_kind():
    with pytest.raises(StorageError):
        InMemoryArtifactStore().create_artifact("sculpture", {})


def test_file_artifact_store_persists_json(tmp_path):
    store = FileArtifactStore(str(tmp_path / "artefacts"))
    record = store.create_artifact(ArtifactKind.JOURNAL, {"content": "# Entry"}, title="Journal", user_id="u1")

    path = tmp_path / "artefacts" / f"{record.id}.json"
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8"))["payload"] == {"content": "# Entry"}
    assert not list((tmp_path / "artefacts").glob("*.tmp"))

    reopened = FileArtifactStore(str(tmp_path / "artefacts"))
    loaded = reopened.get_artifact(record.id)
    assert loaded.title == "Journal"
    assert loaded.kind is ArtifactKind.JOURNAL
    assert [r.id for r in reopened.list_artifacts(user_id="u1")] == [record.id]
    assert reopened.list_artifacts(user_id="u2") == []

    with pytest.raises(NotFoundError):
        reopened.get_artifact("art_missing")


def test_file_artifact_store_empty_dir(tmp_path):
    assert FileArtifactStore(str(tmp_path / "missing")).list_artifacts() == []


def test_file_artifact_store_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = FileArtifactStore(str(blocker / "artefacts"))

    with pytest.raises(StorageError):
        store.create_artifact(ArtifactKind.POEM, {"text": "x"})


def test_get_artifact_store_factory(tmp_path):
    assert isinstance(get_artifact_store("memory"), InMemoryArtifactStore)
    assert isinstance(get_artifact_store("file", str(tmp_path)), FileArtifactStore)
    with pytest.raises(StorageError):
        get_artifact_store("redis")
