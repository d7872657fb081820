"""Tests for the provider registry and title generation."""

import httpx
import pytest

from ollamachat.providers import AnthropicAdapter, OllamaAdapter
from ollamachat.registry import ProviderRegistry, clean_title, fallback_title
from ollamachat.types import Provider


def _ollama(base_url: str = "http://localhost:11434") -> Provider:
    return Provider(id="ollama-default", name="Ollama", type="ollama", base_url=base_url, is_default=True)


def test_configure_dispatches_on_type(make_transport):
    registry = ProviderRegistry(make_transport(lambda r: httpx.Response(200, json={})))
    registry.configure(_ollama())
    registry.configure(
        Provider(id="anthropic-default", name="Anthropic", type="anthropic", base_url="https://api.anthropic.com")
    )

    assert isinstance(registry.resolve("ollama-default"), OllamaAdapter)
    assert isinstance(registry.resolve("anthropic-default"), AnthropicAdapter)
    assert registry.resolve("missing") is None
    assert registry.resolve(None) is None
    assert sorted(registry.ids()) == ["anthropic-default", "ollama-default"]


def test_reconfigure_replaces_adapter(make_transport):
    registry = ProviderRegistry(make_transport(lambda r: httpx.Response(200, json={})))
    first = registry.configure(_ollama())
    second = registry.configure(_ollama("http://127.0.0.1:9999"))

    assert registry.resolve("ollama-default") is second
    assert first.provider.base_url == "http://localhost:11434"
    assert len(registry.ids()) == 1


def test_configure_copies_provider(make_transport):
    registry = ProviderRegistry(make_transport(lambda r: httpx.Response(200, json={})))
    provider = _ollama()
    adapter = registry.configure(provider)
    provider.base_url = "http://elsewhere"
    assert adapter.provider.base_url == "http://localhost:11434"


def test_remove_and_clear(make_transport):
    registry = ProviderRegistry(make_transport(lambda r: httpx.Response(200, json={})))
    registry.configure(_ollama())
    registry.remove("ollama-default")
    assert registry.resolve("ollama-default") is None
    registry.configure(_ollama())
    registry.clear()
    assert registry.ids() == []


async def test_check_connection_unknown_provider(make_transport):
    registry = ProviderRegistry(make_transport(lambda r: httpx.Response(200, json={})))
    assert not await registry.check_connection("nope")


async def test_generate_title_cleans_response(make_transport, fast_timeouts):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"response": '  "Rust Ownership Basics"  ', "done": True})

    registry = ProviderRegistry(make_transport(handler), fast_timeouts)
    registry.configure(_ollama())
    title = await registry.generate_title("ollama-default", "tell me about rust ownership", "llama2")
    assert title == "Rust Ownership Basics"


async def test_generate_title_falls_back_on_failure(make_transport, fast_timeouts):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    registry = ProviderRegistry(make_transport(handler), fast_timeouts)
    registry.configure(_ollama())
    title = await registry.generate_title("ollama-default", "tell me about rust ownership", "llama2")
    assert title == "tell me about rust"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Title: Weather Plans", "Weather Plans"),
        ("'Quoted'", "Quoted"),
        ("x" * 80, "x" * 50),
    ],
)
def test_clean_title(raw, expected):
    assert clean_title(raw) == expected


def test_fallback_title_truncates():
    assert fallback_title("supercalifragilistic expialidocious words here more") == "supercalifragilistic expial..."
    assert fallback_title("short one") == "short one"
