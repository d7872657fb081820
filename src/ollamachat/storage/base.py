"""Storage contract implemented by both persistence backends.

Durability differs between implementations:

* ``SQLiteStorage`` writes through a file-backed SQLite connection; every
  mutating call commits on its own.
* ``SnapshotStorage`` keeps the database in memory and, after every mutating
  call, re-serializes the whole image into a key/value byte store. A crash
  between the SQL mutation and the snapshot write loses that mutation. A
  failed snapshot write reloads the engine from the last stored image and
  raises PersistenceError. The snapshot write is not locked; callers must
  not issue overlapping mutating calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ollamachat.types import AppSettings, Assistant, Conversation, Message, Provider


class ChatStorage(ABC):
    """Providers, assistants, conversations, messages and settings."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create the schema, migrate legacy rows and seed defaults. Raises PersistenceError."""

    @abstractmethod
    async def close(self) -> None: ...

    # --- Conversations ---

    @abstractmethod
    async def create_conversation(
        self,
        *,
        title: str,
        model: str,
        provider_id: str,
        assistant_id: str,
        context: str | None = None,
    ) -> Conversation: ...

    @abstractmethod
    async def update_conversation(
        self,
        conversation_id: str,
        *,
        title: str | None = None,
        updated_at: str | None = None,
        context: str | None = None,
    ) -> None: ...

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Conversation | None: ...

    @abstractmethod
    async def list_conversations(self) -> list[Conversation]:
        """Most recently updated first."""

    @abstractmethod
    async def delete_conversation(self, conversation_id: str) -> None: ...

    # --- Messages ---

    @abstractmethod
    async def save_message(self, message: Message) -> None: ...

    @abstractmethod
    async def list_messages(self, conversation_id: str) -> list[Message]:
        """Highest order first."""

    @abstractmethod
    async def count_messages(self, conversation_id: str) -> int: ...

    @abstractmethod
    async def get_user_messages(self, conversation_id: str, limit: int = 3) -> list[str]:
        """Texts of the first `limit` user messages, oldest first."""

    # --- Providers ---

    @abstractmethod
    async def list_providers(self) -> list[Provider]: ...

    @abstractmethod
    async def get_provider(self, provider_id: str) -> Provider | None: ...

    @abstractmethod
    async def get_default_provider(self) -> Provider | None: ...

    @abstractmethod
    async def update_provider(self, provider_id: str, **updates: object) -> Provider | None: ...

    # --- Assistants ---

    @abstractmethod
    async def list_assistants(self) -> list[Assistant]: ...

    @abstractmethod
    async def get_assistant(self, assistant_id: str) -> Assistant | None: ...

    @abstractmethod
    async def get_default_assistant(self) -> Assistant | None: ...

    @abstractmethod
    async def create_assistant(
        self,
        *,
        name: str,
        description: str = "",
        instructions: str = "",
        is_default: bool = False,
    ) -> Assistant: ...

    @abstractmethod
    async def update_assistant(self, assistant_id: str, **updates: object) -> Assistant | None: ...

    @abstractmethod
    async def delete_assistant(self, assistant_id: str) -> None: ...

    # --- Settings ---

    @abstractmethod
    async def get_settings(self) -> AppSettings | None: ...

    @abstractmethod
    async def save_settings(self, settings: AppSettings) -> None: ...

    # --- Maintenance ---

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every conversation and message."""
