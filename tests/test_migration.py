"""Tests for migrating databases created before providers and assistants existed."""

import aiosqlite

from ollamachat.defaults import DEFAULT_ASSISTANT_ID, DEFAULT_PROVIDER_ID
from ollamachat.storage import MemoryKeyValueStore, SnapshotStorage, SQLiteStorage

LEGACY_SCHEMA_SQL = """
CREATE TABLE conversations (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    model TEXT NOT NULL,
    context TEXT
);

CREATE TABLE messages (
    id TEXT PRIMARY KEY,
    conversation_id TEXT NOT NULL,
    text TEXT NOT NULL,
    is_user INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    message_order INTEGER NOT NULL,
    FOREIGN KEY (conversation_id) REFERENCES conversations (id) ON DELETE CASCADE
);

INSERT INTO conversations VALUES ('c1', 'Old chat', '2024-01-01T00:00:00', '2024-01-02T00:00:00', 'llama2', '[1,2,3]');
INSERT INTO messages VALUES ('m1', 'c1', 'hello', 1, '2024-01-01T00:00:00', 1);
INSERT INTO messages VALUES ('m2', 'c1', 'hi there', 0, '2024-01-01T00:00:01', 2);
"""


async def _legacy_db(path: str) -> None:
    async with aiosqlite.connect(path) as conn:
        await conn.executescript(LEGACY_SCHEMA_SQL)
        await conn.commit()


async def _snapshot_rows(storage):
    cursor = await storage.conn.execute("SELECT * FROM conversations ORDER BY id")
    conversations = [tuple(r) for r in await cursor.fetchall()]
    cursor = await storage.conn.execute("SELECT * FROM messages ORDER BY id")
    messages = [tuple(r) for r in await cursor.fetchall()]
    providers = [p.id for p in await storage.list_providers()]
    assistants = [a.id for a in await storage.list_assistants()]
    return conversations, messages, providers, assistants


async def test_legacy_rows_get_default_provider_and_assistant(tmp_path):
    path = str(tmp_path / "legacy.db")
    await _legacy_db(path)

    storage = SQLiteStorage(path)
    await storage.initialize()
    try:
        conv = await storage.get_conversation("c1")
        assert conv.title == "Old chat"
        assert conv.provider_id == DEFAULT_PROVIDER_ID
        assert conv.assistant_id == DEFAULT_ASSISTANT_ID
        assert conv.context == "[1,2,3]"
        assert [m.order for m in await storage.list_messages("c1")] == [2, 1]
    finally:
        await storage.close()


async def test_migration_is_idempotent(tmp_path):
    path = str(tmp_path / "legacy.db")
    await _legacy_db(path)

    storage = SQLiteStorage(path)
    await storage.initialize()
    first = await _snapshot_rows(storage)
    await storage.close()

    storage = SQLiteStorage(path)
    await storage.initialize()
    try:
        second = await _snapshot_rows(storage)
    finally:
        await storage.close()

    assert first == second
    assert len(second[2]) == 4
    assert len(second[3]) == 1


async def test_snapshot_backend_migrates_legacy_image():
    store = MemoryKeyValueStore()
    await store.set_item("ollamachat_db", LEGACY_SCHEMA_SQL.encode("utf-8"))

    storage = SnapshotStorage(store)
    await storage.initialize()
    first = await _snapshot_rows(storage)
    await storage.close()

    storage = SnapshotStorage(store)
    await storage.initialize()
    try:
        second = await _snapshot_rows(storage)
        assert (await storage.get_conversation("c1")).provider_id == DEFAULT_PROVIDER_ID
    finally:
        await storage.close()

    assert first == second
    assert len(second[1]) == 2
