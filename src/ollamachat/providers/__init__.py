"""Provider adapters, one per provider type."""

from ollamachat.providers.anthropic import AnthropicAdapter
from ollamachat.providers.base import ProviderAdapter
from ollamachat.providers.gemini import GeminiAdapter
from ollamachat.providers.ollama import OllamaAdapter
from ollamachat.providers.openai import OpenAIAdapter

ADAPTERS: dict[str, type[ProviderAdapter]] = {
    "ollama": OllamaAdapter,
    "anthropic": AnthropicAdapter,
    "openai": OpenAIAdapter,
    "gemini": GeminiAdapter,
}

__all__ = [
    "ADAPTERS",
    "AnthropicAdapter",
    "GeminiAdapter",
    "OllamaAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
]
