"""SQL implementation of the storage contract shared by both backends."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from abc import abstractmethod
from typing import Any

import aiosqlite

from ollamachat.defaults import DEFAULT_ASSISTANT_ID, DEFAULT_PROVIDER_ID, seed_assistant, seed_providers
from ollamachat.errors import PersistenceError
from ollamachat.storage.base import ChatStorage
from ollamachat.storage.migration import drop_legacy_tables, read_legacy_rows, restore_legacy_rows
from ollamachat.storage.schema import SCHEMA_SQL
from ollamachat.types import SETTINGS_ROW_ID, AppSettings, Assistant, Conversation, Message, Provider, now_iso

logger = logging.getLogger(__name__)

_PROVIDER_FIELDS = {
    "name": "name",
    "type": "type",
    "base_url": "base_url",
    "api_key": "api_key",
    "is_default": "is_default",
}

_ASSISTANT_FIELDS = {
    "name": "name",
    "description": "description",
    "instructions": "instructions",
    "is_default": "is_default",
}


def _provider(row: aiosqlite.Row) -> Provider:
    return Provider(
        id=row["id"],
        name=row["name"],
        type=row["type"],
        base_url=row["base_url"],
        api_key=row["api_key"],
        is_default=bool(row["is_default"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _assistant(row: aiosqlite.Row) -> Assistant:
    return Assistant(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        instructions=row["instructions"],
        is_default=bool(row["is_default"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _conversation(row: aiosqlite.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        title=row["title"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        model=row["model"],
        provider_id=row["provider_id"],
        assistant_id=row["assistant_id"],
        context=row["context"],
    )


def _message(row: aiosqlite.Row) -> Message:
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        text=row["text"],
        is_user=row["is_user"] == 1,
        timestamp=row["timestamp"],
        order=row["message_order"],
    )


def _assignments(updates: dict[str, Any], fields: dict[str, str]) -> tuple[list[str], list[Any]]:
    columns: list[str] = []
    values: list[Any] = []
    for key, value in updates.items():
        column = fields.get(key)
        if column is None:
            raise ValueError(f"Unknown field: {key}")
        columns.append(f"{column} = ?")
        values.append(int(value) if key == "is_default" else value)
    return columns, values


class SqlStorage(ChatStorage):
    """aiosqlite-backed storage; subclasses decide where the database lives."""

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None

    @abstractmethod
    async def _open(self) -> aiosqlite.Connection:
        """Open the connection and load any existing data."""

    async def _persist(self) -> None:
        """Hook run after every committed mutation."""

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call initialize() first.")
        return self._conn

    async def _commit(self) -> None:
        await self.conn.commit()
        await self._persist()

    # --- Lifecycle ---

    async def initialize(self) -> None:
        if self._conn is not None:
            return
        try:
            self._conn = await self._open()
            self._conn.row_factory = aiosqlite.Row

            legacy = await read_legacy_rows(self._conn)
            if legacy is not None:
                await drop_legacy_tables(self._conn)

            await self._conn.executescript(SCHEMA_SQL)
            await self._seed_defaults()

            if legacy is not None:
                provider = await self.get_default_provider()
                assistant = await self.get_default_assistant()
                await restore_legacy_rows(
                    self._conn,
                    legacy,
                    provider_id=provider.id if provider else DEFAULT_PROVIDER_ID,
                    assistant_id=assistant.id if assistant else DEFAULT_ASSISTANT_ID,
                )
            await self._commit()
        except PersistenceError:
            logger.exception("Database initialization failed")
            await self.close()
            raise
        except (sqlite3.Error, OSError) as exc:
            logger.exception("Database initialization failed")
            await self.close()
            raise PersistenceError(f"Could not initialize database: {exc}") from exc

    async def _seed_defaults(self) -> None:
        """Insert seed rows into empty tables. Counting rows makes a partial seed self-healing."""
        cursor = await self.conn.execute("SELECT COUNT(*) AS n FROM providers")
        if (await cursor.fetchone())["n"] == 0:
            for p in seed_providers():
                await self.conn.execute(
                    """INSERT INTO providers (id, name, type, base_url, api_key, is_default, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (p.id, p.name, p.type, p.base_url, p.api_key, int(p.is_default), p.created_at, p.updated_at),
                )
            logger.info("Seeded default providers")

        cursor = await self.conn.execute("SELECT COUNT(*) AS n FROM assistants")
        if (await cursor.fetchone())["n"] == 0:
            a = seed_assistant()
            await self.conn.execute(
                """INSERT INTO assistants (id, name, description, instructions, is_default, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (a.id, a.name, a.description, a.instructions, int(a.is_default), a.created_at, a.updated_at),
            )
            logger.info("Seeded default assistant")

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    # --- Conversations ---

    async def create_conversation(
        self,
        *,
        title: str,
        model: str,
        provider_id: str,
        assistant_id: str,
        context: str | None = None,
    ) -> Conversation:
        now = now_iso()
        conversation = Conversation(
            id=uuid.uuid4().hex,
            title=title,
            created_at=now,
            updated_at=now,
            model=model,
            provider_id=provider_id,
            assistant_id=assistant_id,
            context=context,
        )
        await self.conn.execute(
            """INSERT INTO conversations (id, title, created_at, updated_at, model, provider_id, assistant_id, context)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                conversation.id,
                conversation.title,
                conversation.created_at,
                conversation.updated_at,
                conversation.model,
                conversation.provider_id,
                conversation.assistant_id,
                conversation.context,
            ),
        )
        await self._commit()
        return conversation

    async def update_conversation(
        self,
        conversation_id: str,
        *,
        title: str | None = None,
        updated_at: str | None = None,
        context: str | None = None,
    ) -> None:
        columns: list[str] = []
        values: list[Any] = []
        if title is not None:
            columns.append("title = ?")
            values.append(title)
        if updated_at is not None:
            columns.append("updated_at = ?")
            values.append(updated_at)
        if context is not None:
            columns.append("context = ?")
            values.append(context)
        if not columns:
            return

        values.append(conversation_id)
        await self.conn.execute(f"UPDATE conversations SET {', '.join(columns)} WHERE id = ?", values)
        await self._commit()

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        cursor = await self.conn.execute("SELECT * FROM conversations WHERE id = ?", (conversation_id,))
        row = await cursor.fetchone()
        return _conversation(row) if row else None

    async def list_conversations(self) -> list[Conversation]:
        cursor = await self.conn.execute("SELECT * FROM conversations ORDER BY updated_at DESC")
        return [_conversation(r) for r in await cursor.fetchall()]

    async def delete_conversation(self, conversation_id: str) -> None:
        await self.conn.execute("DELETE FROM messages WHERE conversation_id = ?", (conversation_id,))
        await self.conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
        await self._commit()

    # --- Messages ---

    async def save_message(self, message: Message) -> None:
        await self.conn.execute(
            """INSERT INTO messages (id, conversation_id, text, is_user, timestamp, message_order)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                message.id,
                message.conversation_id,
                message.text,
                int(message.is_user),
                message.timestamp,
                message.order,
            ),
        )
        await self._commit()

    async def list_messages(self, conversation_id: str) -> list[Message]:
        cursor = await self.conn.execute(
            "SELECT * FROM messages WHERE conversation_id = ? ORDER BY message_order DESC",
            (conversation_id,),
        )
        return [_message(r) for r in await cursor.fetchall()]

    async def count_messages(self, conversation_id: str) -> int:
        cursor = await self.conn.execute(
            "SELECT COUNT(*) AS n FROM messages WHERE conversation_id = ?", (conversation_id,)
        )
        row = await cursor.fetchone()
        return row["n"] if row else 0

    async def get_user_messages(self, conversation_id: str, limit: int = 3) -> list[str]:
        cursor = await self.conn.execute(
            """SELECT text FROM messages WHERE conversation_id = ? AND is_user = 1
               ORDER BY message_order ASC LIMIT ?""",
            (conversation_id, limit),
        )
        return [r["text"] for r in await cursor.fetchall()]

    # --- Providers ---

    async def list_providers(self) -> list[Provider]:
        cursor = await self.conn.execute("SELECT * FROM providers ORDER BY created_at, id")
        return [_provider(r) for r in await cursor.fetchall()]

    async def get_provider(self, provider_id: str) -> Provider | None:
        cursor = await self.conn.execute("SELECT * FROM providers WHERE id = ?", (provider_id,))
        row = await cursor.fetchone()
        return _provider(row) if row else None

    async def get_default_provider(self) -> Provider | None:
        cursor = await self.conn.execute("SELECT * FROM providers WHERE is_default = 1 LIMIT 1")
        row = await cursor.fetchone()
        return _provider(row) if row else None

    async def update_provider(self, provider_id: str, **updates: object) -> Provider | None:
        current = await self.get_provider(provider_id)
        if current is None:
            return None
        if updates.get("is_default") is False and current.is_default:
            raise ValueError("Cannot unset the default provider; make another provider the default instead")

        columns, values = _assignments(updates, _PROVIDER_FIELDS)
        if not columns:
            return current
        columns.append("updated_at = ?")
        values.extend([now_iso(), provider_id])

        if updates.get("is_default"):
            await self.conn.execute("UPDATE providers SET is_default = 0 WHERE id != ?", (provider_id,))
        await self.conn.execute(f"UPDATE providers SET {', '.join(columns)} WHERE id = ?", values)
        await self._commit()
        return await self.get_provider(provider_id)

    # --- Assistants ---

    async def list_assistants(self) -> list[Assistant]:
        cursor = await self.conn.execute("SELECT * FROM assistants ORDER BY created_at, id")
        return [_assistant(r) for r in await cursor.fetchall()]

    async def get_assistant(self, assistant_id: str) -> Assistant | None:
        cursor = await self.conn.execute("SELECT * FROM assistants WHERE id = ?", (assistant_id,))
        row = await cursor.fetchone()
        return _assistant(row) if row else None

    async def get_default_assistant(self) -> Assistant | None:
        cursor = await self.conn.execute("SELECT * FROM assistants WHERE is_default = 1 LIMIT 1")
        row = await cursor.fetchone()
        return _assistant(row) if row else None

    async def create_assistant(
        self,
        *,
        name: str,
        description: str = "",
        instructions: str = "",
        is_default: bool = False,
    ) -> Assistant:
        assistant = Assistant(
            id=uuid.uuid4().hex,
            name=name,
            description=description,
            instructions=instructions,
            is_default=is_default,
        )
        if is_default:
            await self.conn.execute("UPDATE assistants SET is_default = 0")
        await self.conn.execute(
            """INSERT INTO assistants (id, name, description, instructions, is_default, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                assistant.id,
                assistant.name,
                assistant.description,
                assistant.instructions,
                int(assistant.is_default),
                assistant.created_at,
                assistant.updated_at,
            ),
        )
        await self._commit()
        return assistant

    async def update_assistant(self, assistant_id: str, **updates: object) -> Assistant | None:
        current = await self.get_assistant(assistant_id)
        if current is None:
            return None

        columns, values = _assignments(updates, _ASSISTANT_FIELDS)
        if not columns:
            return current
        columns.append("updated_at = ?")
        values.extend([now_iso(), assistant_id])

        if updates.get("is_default"):
            await self.conn.execute("UPDATE assistants SET is_default = 0 WHERE id != ?", (assistant_id,))
        await self.conn.execute(f"UPDATE assistants SET {', '.join(columns)} WHERE id = ?", values)
        await self._commit()
        return await self.get_assistant(assistant_id)

    async def delete_assistant(self, assistant_id: str) -> None:
        await self.conn.execute("DELETE FROM assistants WHERE id = ?", (assistant_id,))
        await self._commit()

    # --- Settings ---

    async def get_settings(self) -> AppSettings | None:
        cursor = await self.conn.execute("SELECT * FROM settings WHERE id = ?", (SETTINGS_ROW_ID,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return AppSettings(
            selected_provider_id=row["selected_provider_id"],
            selected_model=row["selected_model"],
            selected_assistant_id=row["selected_assistant_id"],
        )

    async def save_settings(self, settings: AppSettings) -> None:
        await self.conn.execute(
            """INSERT INTO settings (id, selected_provider_id, selected_model, selected_assistant_id)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   selected_provider_id=excluded.selected_provider_id,
                   selected_model=excluded.selected_model,
                   selected_assistant_id=excluded.selected_assistant_id""",
            (
                SETTINGS_ROW_ID,
                settings.selected_provider_id,
                settings.selected_model,
                settings.selected_assistant_id,
            ),
        )
        await self._commit()

    # --- Maintenance ---

    async def clear_all(self) -> None:
        await self.conn.execute("DELETE FROM messages")
        await self.conn.execute("DELETE FROM conversations")
        await self._commit()
