"""File-backed SQLite storage using aiosqlite."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from ollamachat.storage.sql import SqlStorage


class SQLiteStorage(SqlStorage):
    """Embedded SQLite database; each write commits independently."""

    def __init__(self, db_path: str) -> None:
        super().__init__()
        self._db_path = db_path

    @property
    def db_path(self) -> str:
        return self._db_path

    async def _open(self) -> aiosqlite.Connection:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        return await aiosqlite.connect(self._db_path)
