"""Core types for providers, conversations and generation calls.

All types use Pydantic models for validation and serialization.
snake_case naming throughout, with camelCase aliases for JSON compatibility.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ProviderType = Literal["ollama", "anthropic", "openai", "gemini"]

Role = Literal["user", "assistant"]

TurnState = Literal["idle", "awaiting_response", "completed", "failed"]

SETTINGS_ROW_ID = "app_settings"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- Persisted rows ---


class Provider(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: ProviderType
    base_url: str = Field(alias="baseUrl")
    api_key: str | None = Field(default=None, alias="apiKey")
    is_default: bool = Field(default=False, alias="isDefault")
    created_at: str = Field(default_factory=now_iso, alias="createdAt")
    updated_at: str = Field(default_factory=now_iso, alias="updatedAt")


class Assistant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    instructions: str = ""
    is_default: bool = Field(default=False, alias="isDefault")
    created_at: str = Field(default_factory=now_iso, alias="createdAt")
    updated_at: str = Field(default_factory=now_iso, alias="updatedAt")


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    created_at: str = Field(default_factory=now_iso, alias="createdAt")
    updated_at: str = Field(default_factory=now_iso, alias="updatedAt")
    model: str
    provider_id: str = Field(alias="providerId")
    assistant_id: str = Field(alias="assistantId")
    context: str | None = None  # opaque serialized vector, local inference only


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    conversation_id: str = Field(alias="conversationId")
    text: str
    is_user: bool = Field(alias="isUser")
    timestamp: str = Field(default_factory=now_iso)
    order: int


class AppSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = SETTINGS_ROW_ID
    selected_provider_id: str | None = Field(default=None, alias="selectedProviderId")
    selected_model: str | None = Field(default=None, alias="selectedModel")
    selected_assistant_id: str | None = Field(default=None, alias="selectedAssistantId")


# --- In-memory chat view ---


class ChatMessage(BaseModel):
    """A message as shown in the chat view (most recent first)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    is_user: bool = Field(alias="isUser")
    timestamp: str = Field(default_factory=now_iso)
    pending: bool = False
    greeting: bool = False


# --- Generation contract ---


class HistoryEntry(BaseModel):
    role: Role
    content: str


class SamplingOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: float | None = None
    top_p: float | None = Field(default=None, alias="topP")
    seed: int | None = None


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    model: str
    prompt: str
    instructions: str | None = None
    history: list[HistoryEntry] = Field(default_factory=list)
    context: list[int] | None = None
    options: SamplingOptions | None = None


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    done: bool = True
    model: str = ""
    context: list[int] | None = None


class ModelInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    display_name: str = Field(alias="displayName")
