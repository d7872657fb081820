"""One-time migration of conversations stored before providers existed.

Legacy databases have a ``conversations`` table without ``provider_id`` /
``assistant_id``. Their rows are read into memory, the legacy tables are
dropped, and after the normal schema and seed path has run the rows are
reinserted with the default provider and assistant substituted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import aiosqlite

from ollamachat.storage.schema import LEGACY_TABLES

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("provider_id", "assistant_id")


@dataclass
class LegacyRows:
    conversations: list[dict[str, Any]] = field(default_factory=list)
    messages: list[dict[str, Any]] = field(default_factory=list)


async def _table_columns(conn: aiosqlite.Connection, table: str) -> set[str]:
    cursor = await conn.execute(f"PRAGMA table_info({table})")
    rows = await cursor.fetchall()
    return {row["name"] for row in rows}


async def needs_migration(conn: aiosqlite.Connection) -> bool:
    """True when a conversations table exists but predates provider columns."""
    columns = await _table_columns(conn, "conversations")
    if not columns:
        return False
    return not all(col in columns for col in REQUIRED_COLUMNS)


async def read_legacy_rows(conn: aiosqlite.Connection) -> LegacyRows | None:
    """Read legacy rows into memory, or return None when nothing needs migrating."""
    if not await needs_migration(conn):
        return None

    cursor = await conn.execute("SELECT * FROM conversations")
    conversations = [dict(r) for r in await cursor.fetchall()]

    messages: list[dict[str, Any]] = []
    if await _table_columns(conn, "messages"):
        cursor = await conn.execute("SELECT * FROM messages")
        messages = [dict(r) for r in await cursor.fetchall()]

    logger.info(
        "Migrating legacy schema: %d conversations, %d messages", len(conversations), len(messages)
    )
    return LegacyRows(conversations=conversations, messages=messages)


async def drop_legacy_tables(conn: aiosqlite.Connection) -> None:
    for table in LEGACY_TABLES:
        await conn.execute(f"DROP TABLE IF EXISTS {table}")


async def restore_legacy_rows(
    conn: aiosqlite.Connection,
    rows: LegacyRows,
    *,
    provider_id: str,
    assistant_id: str,
) -> None:
    """Reinsert legacy rows into the fresh tables."""
    for conv in rows.conversations:
        await conn.execute(
            """INSERT OR IGNORE INTO conversations
               (id, title, created_at, updated_at, model, provider_id, assistant_id, context)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                conv["id"],
                conv.get("title") or "",
                conv["created_at"],
                conv["updated_at"],
                conv.get("model") or "",
                provider_id,
                assistant_id,
                conv.get("context"),
            ),
        )
    for msg in rows.messages:
        await conn.execute(
            """INSERT OR IGNORE INTO messages
               (id, conversation_id, text, is_user, timestamp, message_order)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                msg["id"],
                msg["conversation_id"],
                msg["text"],
                msg["is_user"],
                msg["timestamp"],
                msg["message_order"],
            ),
        )
