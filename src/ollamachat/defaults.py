"""Seed rows, endpoints and curated model lists."""

from __future__ import annotations

from ollamachat.env import get_env_base_url, get_env_credential
from ollamachat.types import Assistant, ModelInfo, Provider

OLLAMA_URL = "http://localhost:11434"
ANTHROPIC_URL = "https://api.anthropic.com"
OPENAI_URL = "https://api.openai.com"
GEMINI_URL = "https://generativelanguage.googleapis.com"

ANTHROPIC_VERSION = "2023-06-01"
PROXY_PREFIX = "/proxy"
MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7

OLLAMA_DEFAULT_MODEL = "llama2"

DEFAULT_PROVIDER_ID = "ollama-default"
DEFAULT_ASSISTANT_ID = "default-assistant"

GREETING_ID = "greeting"


def greeting_text(model: str) -> str:
    return f"¡Hola! Soy tu asistente con {model}. ¿En qué puedo ayudarte hoy?"


def seed_providers() -> list[Provider]:
    """Providers inserted on first run. Ollama is the default."""
    return [
        Provider(
            id=DEFAULT_PROVIDER_ID,
            name="Ollama",
            type="ollama",
            base_url=get_env_base_url("ollama") or OLLAMA_URL,
            is_default=True,
        ),
        Provider(
            id="anthropic-default",
            name="Anthropic",
            type="anthropic",
            base_url=ANTHROPIC_URL,
            api_key=get_env_credential("anthropic"),
        ),
        Provider(
            id="openai-default",
            name="OpenAI",
            type="openai",
            base_url=OPENAI_URL,
            api_key=get_env_credential("openai"),
        ),
        Provider(
            id="gemini-default",
            name="Google Gemini",
            type="gemini",
            base_url=GEMINI_URL,
            api_key=get_env_credential("gemini"),
        ),
    ]


def seed_assistant() -> Assistant:
    return Assistant(
        id=DEFAULT_ASSISTANT_ID,
        name="Asistente General",
        description="Asistente de propósito general para conversaciones",
        instructions=(
            "Eres un asistente útil y amigable. Responde de manera clara y concisa "
            "a las preguntas del usuario."
        ),
        is_default=True,
    )


def default_model_for(provider_type: str) -> str:
    if provider_type == "anthropic":
        return "claude-sonnet-4-20250514"
    if provider_type == "openai":
        return "gpt-4"
    if provider_type == "gemini":
        return "gemini-1.5-flash"
    return OLLAMA_DEFAULT_MODEL


# --- Curated model lists ---

ANTHROPIC_BASIC_MODELS: list[ModelInfo] = [
    ModelInfo(id="claude-sonnet-4-20250514", display_name="Claude 4 Sonnet (Latest)"),
    ModelInfo(id="claude-3-7-sonnet-20250219", display_name="Claude 3.7 Sonnet"),
    ModelInfo(id="claude-3-5-sonnet-20241022", display_name="Claude 3.5 Sonnet"),
    ModelInfo(id="claude-3-5-haiku-20241022", display_name="Claude 3.5 Haiku"),
    ModelInfo(id="claude-3-haiku-20240307", display_name="Claude 3 Haiku"),
]

ANTHROPIC_EXTENDED_MODELS: list[ModelInfo] = [
    ModelInfo(id="claude-opus-4-20250514", display_name="Claude 4 Opus (Most Powerful)"),
    ModelInfo(id="claude-sonnet-4-20250514", display_name="Claude 4 Sonnet (Balanced)"),
    ModelInfo(id="claude-3-7-sonnet-20250219", display_name="Claude 3.7 Sonnet (Extended Thinking)"),
    ModelInfo(id="claude-3-5-sonnet-20241022", display_name="Claude 3.5 Sonnet (Latest)"),
    ModelInfo(id="claude-3-5-haiku-20241022", display_name="Claude 3.5 Haiku (Fast & Smart)"),
    ModelInfo(id="claude-3-5-sonnet-20240620", display_name="Claude 3.5 Sonnet (June)"),
    ModelInfo(id="claude-3-opus-20240229", display_name="Claude 3 Opus (Most Capable)"),
    ModelInfo(id="claude-3-sonnet-20240229", display_name="Claude 3 Sonnet (Balanced)"),
    ModelInfo(id="claude-3-haiku-20240307", display_name="Claude 3 Haiku (Fast)"),
    ModelInfo(id="claude-instant-1.2", display_name="Claude Instant 1.2 (Legacy)"),
    ModelInfo(id="claude-2.1", display_name="Claude 2.1 (Legacy)"),
    ModelInfo(id="claude-2.0", display_name="Claude 2.0 (Legacy)"),
]

ANTHROPIC_PROBE_MODEL = "claude-3-haiku-20240307"

OPENAI_FALLBACK_MODELS: list[ModelInfo] = [
    ModelInfo(id="gpt-3.5-turbo", display_name="GPT-3.5 Turbo"),
    ModelInfo(id="gpt-4", display_name="GPT-4"),
    ModelInfo(id="gpt-4-turbo", display_name="GPT-4 Turbo"),
]

GEMINI_MODELS: list[ModelInfo] = [
    ModelInfo(id="gemini-pro", display_name="Gemini Pro"),
    ModelInfo(id="gemini-pro-vision", display_name="Gemini Pro Vision"),
    ModelInfo(id="gemini-1.5-pro", display_name="Gemini 1.5 Pro"),
    ModelInfo(id="gemini-1.5-flash", display_name="Gemini 1.5 Flash"),
]

GEMINI_PROBE_MODEL = "gemini-1.5-flash"
