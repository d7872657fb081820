"""Lightweight key/value byte stores.

Used for the settings mirror and as the durable image store of the
in-memory SQL backend.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote


class KeyValueStore(ABC):
    """Async get/set/remove of raw bytes under string keys."""

    @abstractmethod
    async def get_item(self, key: str) -> bytes | None: ...

    @abstractmethod
    async def set_item(self, key: str, value: bytes) -> None: ...

    @abstractmethod
    async def remove_item(self, key: str) -> None: ...


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store. Survives backend restarts within one process."""

    def __init__(self) -> None:
        self._items: dict[str, bytes] = {}

    async def get_item(self, key: str) -> bytes | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: bytes) -> None:
        self._items[key] = bytes(value)

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileKeyValueStore(KeyValueStore):
    """One file per key inside `directory`. Writes replace the file atomically."""

    def __init__(self, directory: str) -> None:
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        return self._dir / quote(key, safe="")

    async def get_item(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    async def set_item(self, key: str, value: bytes) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(value)
        os.replace(tmp, path)

    async def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
