"""Conversation persistence: one contract, two backends."""

from ollamachat.config import Config
from ollamachat.storage.base import ChatStorage
from ollamachat.storage.database import SQLiteStorage
from ollamachat.storage.kv import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from ollamachat.storage.snapshot import SnapshotStorage


def create_storage(config: Config, store: KeyValueStore | None = None) -> ChatStorage:
    """Build the backend selected by `config.backend`."""
    if config.backend == "snapshot":
        return SnapshotStorage(store or FileKeyValueStore(config.kv_dir))
    return SQLiteStorage(config.db_path)


__all__ = [
    "ChatStorage",
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteStorage",
    "SnapshotStorage",
    "create_storage",
]
