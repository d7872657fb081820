"""Conversation orchestrator: one long-lived instance per process.

Owns the provider/assistant/settings caches, the in-memory chat view
(most recent message first) and the per-turn state machine:
idle -> awaiting_response -> completed | failed.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel

from ollamachat.context import build_context
from ollamachat.defaults import GREETING_ID, default_model_for, greeting_text
from ollamachat.errors import PersistenceError, PreconditionError, TurnFailedError
from ollamachat.registry import ProviderRegistry
from ollamachat.settings import SettingsMirror
from ollamachat.storage.base import ChatStorage
from ollamachat.types import (
    AppSettings,
    Assistant,
    ChatMessage,
    Conversation,
    GenerateRequest,
    Message,
    ModelInfo,
    Provider,
    SamplingOptions,
    TurnState,
    now_iso,
)

logger = logging.getLogger(__name__)

TITLE_TURNS = 3
INITIAL_TITLE_LEN = 50

# Failures the settings path logs and swallows; anything else is a caller error.
STORAGE_ERRORS = (sqlite3.Error, OSError, PersistenceError)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _apply_updates(current: ModelT, updates: dict[str, Any], readonly: tuple[str, ...]) -> ModelT:
    """Validated copy of `current` with `updates` applied. Raises ValueError on bad input."""
    fields = type(current).model_fields
    unknown = [key for key in updates if key not in fields or key in readonly]
    if unknown:
        raise ValueError(f"Unknown field: {', '.join(unknown)}")
    return type(current).model_validate({**current.model_dump(), **updates})


def _encode_context(context: list[int] | None) -> str | None:
    return json.dumps(context) if context is not None else None


def _decode_context(raw: str | None) -> list[int] | None:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed stored context")
        return None
    return value if isinstance(value, list) else None


class ChatOrchestrator:
    """Coordinates context building, provider calls and persistence per turn."""

    def __init__(
        self,
        storage: ChatStorage,
        registry: ProviderRegistry,
        settings: SettingsMirror,
        *,
        sampling: SamplingOptions | None = None,
    ) -> None:
        self.storage = storage
        self.registry = registry
        self._mirror = settings
        self._sampling = sampling

        self.providers: dict[str, Provider] = {}
        self.assistants: dict[str, Assistant] = {}
        self.settings = AppSettings()
        self.is_connected = False

        self.messages: list[ChatMessage] = []
        self.conversation: Conversation | None = None
        self.turn_state: TurnState = "idle"
        self._next_order = 1
        self._user_turns = 0
        self._context: list[int] | None = None

    # --- Startup ---

    async def start(self) -> None:
        """Open storage, configure adapters and load settings."""
        await self.storage.initialize()

        for provider in await self.storage.list_providers():
            self.providers[provider.id] = provider
            self.registry.configure(provider)
        for assistant in await self.storage.list_assistants():
            self.assistants[assistant.id] = assistant

        loaded = await self._mirror.load()
        self.settings = self._fill_defaults(loaded or AppSettings())
        if loaded != self.settings:
            await self._mirror.save(self.settings)

        self.new_conversation()
        await self.check_connection()
        logger.info(
            "Ready with provider %s, model %s", self.settings.selected_provider_id, self.settings.selected_model
        )

    def _fill_defaults(self, settings: AppSettings) -> AppSettings:
        updates: dict[str, Any] = {}
        if settings.selected_provider_id not in self.providers:
            default = next((p for p in self.providers.values() if p.is_default), None)
            updates["selected_provider_id"] = default.id if default else None
            updates["selected_model"] = None
        if settings.selected_assistant_id not in self.assistants:
            updates["selected_assistant_id"] = self._fallback_assistant_id()

        settings = settings.model_copy(update=updates)
        if not settings.selected_model and settings.selected_provider_id:
            provider = self.providers[settings.selected_provider_id]
            settings = settings.model_copy(update={"selected_model": default_model_for(provider.type)})
        return settings

    def _fallback_assistant_id(self, exclude: str | None = None) -> str | None:
        remaining = [a for a in self.assistants.values() if a.id != exclude]
        default = next((a for a in remaining if a.is_default), None)
        if default:
            return default.id
        return remaining[0].id if remaining else None

    async def close(self) -> None:
        await self.storage.close()
        await self.registry.aclose()

    # --- Selection ---

    @property
    def selected_provider(self) -> Provider | None:
        return self.providers.get(self.settings.selected_provider_id or "")

    @property
    def selected_assistant(self) -> Assistant | None:
        return self.assistants.get(self.settings.selected_assistant_id or "")

    @property
    def selected_model(self) -> str:
        if self.settings.selected_model:
            return self.settings.selected_model
        provider = self.selected_provider
        return default_model_for(provider.type if provider else "ollama")

    async def check_connection(self) -> bool:
        self.is_connected = await self.registry.check_connection(self.settings.selected_provider_id)
        return self.is_connected

    async def list_models(self, provider_id: str | None = None) -> list[ModelInfo]:
        adapter = self.registry.resolve(provider_id or self.settings.selected_provider_id)
        if adapter is None:
            return []
        return await adapter.list_models()

    # --- Conversations ---

    def new_conversation(self) -> None:
        """Start a fresh session. No row is written until the first message is sent."""
        self.conversation = None
        self.messages = [
            ChatMessage(id=GREETING_ID, text=greeting_text(self.selected_model), is_user=False, greeting=True)
        ]
        self.turn_state = "idle"
        self._next_order = 1
        self._user_turns = 0
        self._context = None

    async def load_conversation(self, conversation_id: str) -> bool:
        conversation = await self.storage.get_conversation(conversation_id)
        if conversation is None:
            return False

        stored = await self.storage.list_messages(conversation_id)
        self.conversation = conversation
        self.messages = [
            ChatMessage(id=m.id, text=m.text, is_user=m.is_user, timestamp=m.timestamp) for m in stored
        ]
        self.turn_state = "idle"
        self._next_order = (stored[0].order if stored else 0) + 1
        self._user_turns = sum(1 for m in stored if m.is_user)
        self._context = _decode_context(conversation.context)
        return True

    async def list_conversations(self) -> list[Conversation]:
        return await self.storage.list_conversations()

    async def delete_conversation(self, conversation_id: str) -> None:
        await self.storage.delete_conversation(conversation_id)
        if self.conversation and self.conversation.id == conversation_id:
            self.new_conversation()

    async def clear_all(self) -> None:
        await self.storage.clear_all()
        self.new_conversation()

    # --- Turns ---

    async def send(
        self,
        text: str,
        on_chunk: Callable[[str], Any] | None = None,
        on_complete: Callable[..., Any] | None = None,
    ) -> ChatMessage:
        """Run one turn and return the persisted assistant reply.

        Raises PreconditionError before touching the view when no provider is
        usable, and TurnFailedError after rolling back the placeholder when
        the turn fails.
        """
        text = text.strip()
        if not text:
            raise PreconditionError("Message is empty")
        adapter = self.registry.resolve(self.settings.selected_provider_id)
        if adapter is None or not self.is_connected:
            raise PreconditionError("No provider connected")
        adapter.validate()

        model = self.selected_model
        provider_id = adapter.id
        assistant = self.selected_assistant
        history = list(self.messages)

        user_message = ChatMessage(id=uuid.uuid4().hex, text=text, is_user=True)
        placeholder = ChatMessage(id=f"pending-{uuid.uuid4().hex}", text="", is_user=False, pending=True)
        self.messages.insert(0, user_message)
        self.messages.insert(0, placeholder)
        self.turn_state = "awaiting_response"

        completed: dict[str, list[int] | None] = {}

        def handle_chunk(chunk: str) -> None:
            placeholder.text += chunk
            if on_chunk:
                on_chunk(chunk)

        def handle_complete(context: list[int] | None = None) -> None:
            completed.setdefault("context", context)

        try:
            conversation = await self._ensure_conversation(text, model, provider_id, assistant)
            await self._persist(conversation.id, user_message)
            self._user_turns += 1

            request = GenerateRequest(
                model=model,
                prompt=text,
                instructions=assistant.instructions if assistant and assistant.instructions else None,
                history=build_context(history, text),
                context=self._context,
                options=self._sampling,
            )
            await adapter.stream(request, handle_chunk, handle_complete)

            reply = ChatMessage(id=uuid.uuid4().hex, text=placeholder.text, is_user=False)
            await self._persist(conversation.id, reply)
        except Exception as exc:
            self.messages = [m for m in self.messages if m.id != placeholder.id]
            self.turn_state = "failed"
            logger.exception("Turn failed")
            if on_complete:
                on_complete()
            raise TurnFailedError("Failed to send message") from exc

        self.messages = [reply if m.id == placeholder.id else m for m in self.messages]
        context = completed.get("context")
        if context is not None:
            self._context = context
        await self._touch_conversation(conversation.id, context)

        self.turn_state = "completed"
        if on_complete:
            on_complete(context)

        if self._user_turns <= TITLE_TURNS:
            await self._regenerate_title(conversation.id, provider_id, model)
        return reply

    async def _ensure_conversation(
        self,
        first_text: str,
        model: str,
        provider_id: str,
        assistant: Assistant | None,
    ) -> Conversation:
        if self.conversation is None:
            self.conversation = await self.storage.create_conversation(
                title=first_text[:INITIAL_TITLE_LEN],
                model=model,
                provider_id=provider_id,
                assistant_id=assistant.id if assistant else "",
            )
        return self.conversation

    async def _persist(self, conversation_id: str, message: ChatMessage) -> None:
        # The counter only advances once the row is written.
        await self.storage.save_message(
            Message(
                id=message.id,
                conversation_id=conversation_id,
                text=message.text,
                is_user=message.is_user,
                timestamp=message.timestamp,
                order=self._next_order,
            )
        )
        self._next_order += 1

    async def _touch_conversation(self, conversation_id: str, context: list[int] | None) -> None:
        updated_at = now_iso()
        try:
            await self.storage.update_conversation(
                conversation_id, updated_at=updated_at, context=_encode_context(context)
            )
        except STORAGE_ERRORS:
            logger.warning("Could not update conversation %s", conversation_id, exc_info=True)
            return
        if self.conversation and self.conversation.id == conversation_id:
            update: dict[str, Any] = {"updated_at": updated_at}
            if context is not None:
                update["context"] = _encode_context(context)
            self.conversation = self.conversation.model_copy(update=update)

    async def _regenerate_title(self, conversation_id: str, provider_id: str, model: str) -> None:
        try:
            texts = await self.storage.get_user_messages(conversation_id, TITLE_TURNS)
            title = await self.registry.generate_title(provider_id, " ".join(texts), model)
            await self.storage.update_conversation(conversation_id, title=title)
        except Exception:
            logger.warning("Title regeneration failed for %s", conversation_id, exc_info=True)
            return
        if self.conversation and self.conversation.id == conversation_id:
            self.conversation = self.conversation.model_copy(update={"title": title})

    # --- Settings path ---

    async def update_settings(self, **changes: Any) -> AppSettings:
        """Update the in-memory settings, then persist both copies."""
        self.settings = _apply_updates(self.settings, changes, readonly=("id",))
        await self._mirror.save(self.settings)
        if "selected_provider_id" in changes:
            await self.check_connection()
        return self.settings

    async def select_provider(self, provider_id: str, model: str | None = None) -> AppSettings:
        provider = self.providers.get(provider_id)
        if provider is None:
            raise KeyError(provider_id)
        return await self.update_settings(
            selected_provider_id=provider_id,
            selected_model=model or default_model_for(provider.type),
        )

    async def update_provider(self, provider_id: str, **updates: Any) -> Provider:
        current = self.providers.get(provider_id)
        if current is None:
            raise KeyError(provider_id)
        if updates.get("is_default") is False and current.is_default:
            raise ValueError("Cannot unset the default provider; make another provider the default instead")

        updated = _apply_updates(current, updates, readonly=("id", "created_at", "updated_at"))
        updated.updated_at = now_iso()
        self.registry.configure(updated)

        if updated.is_default:
            for pid, provider in self.providers.items():
                if pid != provider_id and provider.is_default:
                    self.providers[pid] = provider.model_copy(update={"is_default": False})
        self.providers[provider_id] = updated

        try:
            await self.storage.update_provider(provider_id, **updates)
        except STORAGE_ERRORS:
            logger.warning("Could not persist provider %s", provider_id, exc_info=True)

        if provider_id == self.settings.selected_provider_id:
            await self.check_connection()
        return updated

    async def create_assistant(
        self,
        *,
        name: str,
        description: str = "",
        instructions: str = "",
        is_default: bool = False,
    ) -> Assistant:
        assistant = await self.storage.create_assistant(
            name=name, description=description, instructions=instructions, is_default=is_default
        )
        if is_default:
            self._clear_default_assistant()
        self.assistants[assistant.id] = assistant
        return assistant

    def _clear_default_assistant(self) -> None:
        for aid, assistant in self.assistants.items():
            if assistant.is_default:
                self.assistants[aid] = assistant.model_copy(update={"is_default": False})

    async def update_assistant(self, assistant_id: str, **updates: Any) -> Assistant:
        current = self.assistants.get(assistant_id)
        if current is None:
            raise KeyError(assistant_id)
        updated = _apply_updates(current, updates, readonly=("id", "created_at", "updated_at"))
        updated.updated_at = now_iso()
        if updated.is_default:
            self._clear_default_assistant()
        self.assistants[assistant_id] = updated
        try:
            await self.storage.update_assistant(assistant_id, **updates)
        except STORAGE_ERRORS:
            logger.warning("Could not persist assistant %s", assistant_id, exc_info=True)
        return updated

    async def delete_assistant(self, assistant_id: str) -> None:
        if assistant_id not in self.assistants:
            return
        fallback = self._fallback_assistant_id(exclude=assistant_id)
        del self.assistants[assistant_id]
        try:
            await self.storage.delete_assistant(assistant_id)
        except STORAGE_ERRORS:
            logger.warning("Could not delete assistant %s", assistant_id, exc_info=True)
        if self.settings.selected_assistant_id == assistant_id:
            await self.update_settings(selected_assistant_id=fallback)
