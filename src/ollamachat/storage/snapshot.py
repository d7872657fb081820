"""In-memory SQLite storage persisted as a full image after every mutation."""

from __future__ import annotations

import logging

import aiosqlite

from ollamachat.config import SNAPSHOT_KEY
from ollamachat.errors import PersistenceError
from ollamachat.storage.kv import KeyValueStore
from ollamachat.storage.sql import SqlStorage

logger = logging.getLogger(__name__)


async def _connect(image: bytes | None) -> aiosqlite.Connection:
    conn = await aiosqlite.connect(":memory:")
    if image:
        try:
            await conn.executescript(image.decode("utf-8"))
        except Exception:
            await conn.close()
            raise
    return conn


class SnapshotStorage(SqlStorage):
    """SQL engine with no durability of its own.

    The SQL dump of the whole database is written to `store` under `key`
    after every committed mutation and restored on `initialize()`. When a
    snapshot write fails the engine is reloaded from the last image that
    was written, so memory never holds rows the store does not.
    """

    def __init__(self, store: KeyValueStore, key: str = SNAPSHOT_KEY) -> None:
        super().__init__()
        self._store = store
        self._key = key
        self._image: bytes | None = None

    async def _open(self) -> aiosqlite.Connection:
        image = await self._store.get_item(self._key)
        if image:
            logger.info("Restoring database image (%d bytes)", len(image))
        conn = await _connect(image)
        self._image = image
        return conn

    async def export_image(self) -> bytes:
        lines = [line async for line in self.conn.iterdump()]
        return "\n".join(lines).encode("utf-8")

    async def _persist(self) -> None:
        image = await self.export_image()
        try:
            await self._store.set_item(self._key, image)
        except Exception as exc:
            logger.error("Snapshot write failed, reloading last stored image: %s", exc)
            await self._reload()
            raise PersistenceError(f"Could not write database image: {exc}") from exc
        self._image = image

    async def _reload(self) -> None:
        await self.close()
        conn = await _connect(self._image)
        conn.row_factory = aiosqlite.Row
        self._conn = conn
