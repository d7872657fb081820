"""Provider registry: one configured adapter per provider id."""

from __future__ import annotations

import logging
import re

from ollamachat.config import Timeouts
from ollamachat.providers import ADAPTERS, ProviderAdapter
from ollamachat.transport import HttpTransport
from ollamachat.types import GenerateRequest, Provider

logger = logging.getLogger(__name__)

TITLE_MAX_LEN = 50

TITLE_PROMPT = """Based on this conversation context: "{context}"

Generate a short, descriptive title for this conversation (maximum 6 words). The title should be clear and concise, capturing the main topic or intent of the entire conversation. Do not use quotes or special characters. Only respond with the title, nothing else.

Examples:
- Context: "How do I learn Python? What are the best resources? Should I start with basics?" → Title: "Python Learning Resources Guide"
- Context: "What's the weather like? Will it rain tomorrow? Should I bring umbrella?" → Title: "Weather Forecast and Planning"
- Context: "Help me with math homework. How do I solve equations? What about quadratic formulas?" → Title: "Math Homework Help Session"

Title:"""

_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_TITLE_PREFIX_RE = re.compile(r"^Title:\s*", re.IGNORECASE)


def fallback_title(context: str) -> str:
    """First four words of the context, shortened when long."""
    first_words = " ".join(context.split(" ")[:4])
    if len(first_words) > 30:
        return first_words[:27] + "..."
    return first_words


def clean_title(raw: str) -> str:
    title = raw.strip()
    title = _QUOTES_RE.sub("", title)
    title = _TITLE_PREFIX_RE.sub("", title)
    return title[:TITLE_MAX_LEN]


class ProviderRegistry:
    """Maps provider id to a configured adapter.

    Reconfiguring replaces the entry wholesale; adapters are never mutated,
    so a call already holding an adapter keeps the configuration it started with.
    """

    def __init__(self, transport: HttpTransport | None = None, timeouts: Timeouts | None = None) -> None:
        self._transport = transport or HttpTransport()
        self._timeouts = timeouts or Timeouts()
        self._adapters: dict[str, ProviderAdapter] = {}

    def configure(self, provider: Provider) -> ProviderAdapter:
        """Build an adapter for `provider` and make it the only one for its id."""
        adapter_cls = ADAPTERS.get(provider.type)
        if adapter_cls is None:
            raise ValueError(f"Unsupported provider type: {provider.type}")
        adapter = adapter_cls(provider.model_copy(), self._transport, self._timeouts)
        self._adapters[provider.id] = adapter
        return adapter

    def resolve(self, provider_id: str | None) -> ProviderAdapter | None:
        if provider_id is None:
            return None
        return self._adapters.get(provider_id)

    def remove(self, provider_id: str) -> None:
        self._adapters.pop(provider_id, None)

    def ids(self) -> list[str]:
        return list(self._adapters)

    def clear(self) -> None:
        self._adapters.clear()

    async def check_connection(self, provider_id: str | None) -> bool:
        adapter = self.resolve(provider_id)
        if adapter is None:
            return False
        return await adapter.check_connection()

    async def generate_title(self, provider_id: str, context: str, model: str) -> str:
        """Ask the provider for a short title. Never raises."""
        adapter = self.resolve(provider_id)
        if adapter is None:
            return fallback_title(context)
        try:
            response = await adapter.generate(
                GenerateRequest(model=model, prompt=TITLE_PROMPT.format(context=context))
            )
        except Exception:
            logger.warning("Title generation failed for provider %s", provider_id, exc_info=True)
            return fallback_title(context)

        title = clean_title(response.text)
        if len(title) < 3:
            return fallback_title(context)
        return title

    async def aclose(self) -> None:
        await self._transport.aclose()
