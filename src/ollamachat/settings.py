"""App settings mirrored into the relational store and a key/value blob.

The relational row is authoritative. The key/value copy is a fallback read
source; a value found only there is written back to the relational store.
Failures on either side are logged and never raised.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from ollamachat.config import SETTINGS_KEY
from ollamachat.storage.base import ChatStorage
from ollamachat.storage.kv import KeyValueStore
from ollamachat.types import AppSettings

logger = logging.getLogger(__name__)


class SettingsMirror:
    def __init__(self, storage: ChatStorage, store: KeyValueStore, key: str = SETTINGS_KEY) -> None:
        self._storage = storage
        self._store = store
        self._key = key

    async def load(self) -> AppSettings | None:
        try:
            settings = await self._storage.get_settings()
        except Exception:
            logger.warning("Could not read settings from database", exc_info=True)
            settings = None
        if settings is not None:
            return settings

        settings = await self._read_mirror()
        if settings is None:
            return None

        try:
            await self._storage.save_settings(settings)
            logger.info("Backfilled settings from key/value mirror")
        except Exception:
            logger.warning("Could not backfill settings into database", exc_info=True)
        return settings

    async def save(self, settings: AppSettings) -> None:
        try:
            await self._store.set_item(self._key, settings.model_dump_json(by_alias=True).encode("utf-8"))
        except Exception:
            logger.warning("Could not write settings mirror", exc_info=True)
        try:
            await self._storage.save_settings(settings)
        except Exception:
            logger.warning("Could not write settings to database", exc_info=True)

    async def _read_mirror(self) -> AppSettings | None:
        try:
            raw = await self._store.get_item(self._key)
        except Exception:
            logger.warning("Could not read settings mirror", exc_info=True)
            return None
        if not raw:
            return None
        try:
            return AppSettings.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Ignoring malformed settings mirror")
            return None
