"""Tests for the key/value byte stores."""

import pytest

from ollamachat.storage.kv import FileKeyValueStore, MemoryKeyValueStore


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryKeyValueStore()
    return FileKeyValueStore(str(tmp_path / "kv"))


async def test_missing_key(store):
    assert await store.get_item("@ollamachat:settings") is None


async def test_set_get_remove(store):
    await store.set_item("@ollamachat:settings", b"{}")
    await store.set_item("@ollamachat:settings", b'{"a": 1}')
    assert await store.get_item("@ollamachat:settings") == b'{"a": 1}'

    await store.remove_item("@ollamachat:settings")
    await store.remove_item("@ollamachat:settings")
    assert await store.get_item("@ollamachat:settings") is None


async def test_file_store_keys_are_escaped(tmp_path):
    store = FileKeyValueStore(str(tmp_path))
    await store.set_item("a/b:c", b"x")
    assert [p.name for p in tmp_path.iterdir()] == ["a%2Fb%3Ac"]
