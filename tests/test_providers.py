"""Tests for provider adapters against a mocked HTTP layer."""

from __future__ import annotations

import json

import httpx
import pytest

from ollamachat.defaults import ANTHROPIC_BASIC_MODELS, ANTHROPIC_EXTENDED_MODELS, ANTHROPIC_VERSION, GEMINI_MODELS
from ollamachat.errors import PreconditionError, TransportError, VendorError
from ollamachat.providers import AnthropicAdapter, GeminiAdapter, OllamaAdapter, OpenAIAdapter
from ollamachat.providers.base import is_local_address, render_transcript
from ollamachat.types import GenerateRequest, HistoryEntry, Provider, SamplingOptions


def _provider(type_: str, base_url: str, api_key: str | None = "key") -> Provider:
    return Provider(id=f"{type_}-test", name=type_.title(), type=type_, base_url=base_url, api_key=api_key)


def _request(**kwargs) -> GenerateRequest:
    defaults = {"model": "m", "prompt": "Hello"}
    defaults.update(kwargs)
    return GenerateRequest(**defaults)


class Collector:
    def __init__(self):
        self.chunks: list[str] = []
        self.completions: list[tuple] = []

    def on_chunk(self, chunk: str) -> None:
        self.chunks.append(chunk)

    def on_complete(self, *args) -> None:
        self.completions.append(args)

    @property
    def text(self) -> str:
        return "".join(self.chunks)


def test_is_local_address():
    assert is_local_address("http://localhost:3000")
    assert is_local_address("http://127.0.0.1:8080/")
    assert not is_local_address("https://api.openai.com")


def test_render_transcript():
    request = _request(
        instructions="Be brief.",
        history=[HistoryEntry(role="user", content="Hi"), HistoryEntry(role="assistant", content="Hello!")],
    )
    assert render_transcript(request) == "Be brief.\n\nUser: Hi\nAssistant: Hello!\nUser: Hello\nAssistant:"
    assert render_transcript(_request()) == "Hello"


# --- Ollama ---


class TestOllama:
    async def test_stream_ndjson_drops_bad_fragments(self, make_transport, fast_timeouts):
        body = "\n".join(
            [
                json.dumps({"response": "Hel", "done": False}),
                "{not json",
                "",
                json.dumps({"response": "lo", "done": False}),
                json.dumps({"response": "", "done": True, "context": [1, 2, 3]}),
            ]
        )

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/generate"
            assert json.loads(request.content)["stream"] is True
            return httpx.Response(200, content=body.encode())

        adapter = OllamaAdapter(_provider("ollama", "http://localhost:11434", None), make_transport(handler), fast_timeouts)
        out = Collector()
        await adapter.stream(_request(), out.on_chunk, out.on_complete)

        assert out.text == "Hello"
        assert out.completions == [([1, 2, 3],)]

    async def test_stream_falls_back_to_whole_response(self, make_transport, fast_timeouts):
        def handler(request: httpx.Request) -> httpx.Response:
            if json.loads(request.content)["stream"]:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"response": "one two three four five", "done": True, "context": [9]})

        adapter = OllamaAdapter(_provider("ollama", "http://localhost:11434", None), make_transport(handler), fast_timeouts)
        out = Collector()
        await adapter.stream(_request(), out.on_chunk, out.on_complete)

        assert out.text == "one two three four five"
        assert out.completions == [([9],)]

    async def test_generate_retries_transient_errors(self, make_transport, fast_timeouts):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"response": "ok", "done": True})

        adapter = OllamaAdapter(_provider("ollama", "http://localhost:11434", None), make_transport(handler), fast_timeouts)
        response = await adapter.generate(_request())

        assert response.text == "ok"
        assert len(calls) == 3

    async def test_generate_gives_up_after_max_retries(self, make_transport, fast_timeouts):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("slow", request=request)

        adapter = OllamaAdapter(_provider("ollama", "http://localhost:11434", None), make_transport(handler), fast_timeouts)
        with pytest.raises(TransportError):
            await adapter.generate(_request())
        assert len(calls) == 1 + fast_timeouts.max_retries

    async def test_context_replaces_history(self, make_transport, fast_timeouts):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"response": "ok", "done": True})

        adapter = OllamaAdapter(_provider("ollama", "http://localhost:11434", None), make_transport(handler), fast_timeouts)
        await adapter.generate(
            _request(
                history=[HistoryEntry(role="user", content="earlier")],
                context=[4, 5],
                options=SamplingOptions(temperature=0.2),
            )
        )

        assert seen["context"] == [4, 5]
        assert seen["prompt"] == "Hello"
        assert seen["options"] == {"temperature": 0.2}

    async def test_list_models_and_connection(self, make_transport, fast_timeouts):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"models": [{"name": "llama2"}, {"name": "mistral"}]})

        adapter = OllamaAdapter(_provider("ollama", "http://localhost:11434", None), make_transport(handler), fast_timeouts)
        assert [m.id for m in await adapter.list_models()] == ["llama2", "mistral"]
        assert await adapter.check_connection()

    async def test_connection_refused(self, make_transport, fast_timeouts):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        adapter = OllamaAdapter(_provider("ollama", "http://localhost:11434", None), make_transport(handler), fast_timeouts)
        assert not await adapter.check_connection()
        assert await adapter.list_models() == []


# --- Anthropic ---


class TestAnthropic:
    async def test_generate_request_shape(self, make_transport, fast_timeouts):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Hi there"}]})

        adapter = AnthropicAdapter(_provider("anthropic", "https://api.anthropic.com"), make_transport(handler), fast_timeouts)
        response = await adapter.generate(
            _request(instructions="Be nice.", history=[HistoryEntry(role="user", content="Hi")])
        )

        assert response.text == "Hi there"
        assert seen["url"] == "https://api.anthropic.com/v1/messages"
        assert seen["headers"]["x-api-key"] == "key"
        assert seen["headers"]["anthropic-version"] == ANTHROPIC_VERSION
        assert seen["body"]["system"] == "Be nice."
        assert seen["body"]["messages"][-1] == {"role": "user", "content": "Hello"}

    async def test_local_base_url_uses_proxy_prefix(self, make_transport, fast_timeouts):
        urls = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url))
            return httpx.Response(200, json={"content": [{"type": "text", "text": "x"}]})

        adapter = AnthropicAdapter(_provider("anthropic", "http://localhost:3001"), make_transport(handler), fast_timeouts)
        await adapter.generate(_request())
        assert urls == ["http://localhost:3001/proxy/messages"]

    async def test_missing_credential_rejected_without_request(self, make_transport, fast_timeouts):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        adapter = AnthropicAdapter(
            _provider("anthropic", "https://api.anthropic.com", None), make_transport(handler), fast_timeouts
        )
        with pytest.raises(PreconditionError):
            await adapter.generate(_request())
        assert calls == []

    async def test_auth_failure_degrades_model_list(self, make_transport, fast_timeouts):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": {"type": "authentication_error"}})

        adapter = AnthropicAdapter(_provider("anthropic", "https://api.anthropic.com"), make_transport(handler), fast_timeouts)
        models = await adapter.list_models()
        assert [m.id for m in models] == [m.id for m in ANTHROPIC_BASIC_MODELS]

    async def test_valid_key_gets_extended_models(self, make_transport, fast_timeouts):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": []})

        adapter = AnthropicAdapter(_provider("anthropic", "https://api.anthropic.com"), make_transport(handler), fast_timeouts)
        assert len(await adapter.list_models()) == len(ANTHROPIC_EXTENDED_MODELS)
        assert await adapter.check_connection()

    async def test_vendor_error_fails_stream(self, make_transport, fast_timeouts):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="overloaded")

        adapter = AnthropicAdapter(_provider("anthropic", "https://api.anthropic.com"), make_transport(handler), fast_timeouts)
        out = Collector()
        with pytest.raises(VendorError) as excinfo:
            await adapter.stream(_request(), out.on_chunk, out.on_complete)
        assert excinfo.value.status_code == 500
        assert out.chunks == []
        assert out.completions == [()]


# --- OpenAI ---


class TestOpenAI:
    async def test_generate_and_pseudo_stream(self, make_transport, fast_timeouts):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "a b c d e f g"}}]})

        adapter = OpenAIAdapter(_provider("openai", "https://api.openai.com"), make_transport(handler), fast_timeouts)
        out = Collector()
        await adapter.stream(_request(instructions="System text."), out.on_chunk, out.on_complete)

        assert out.text == "a b c d e f g"
        assert out.chunks[0] == "a b c "
        assert out.completions == [(None,)]
        assert seen["url"] == "https://api.openai.com/v1/chat/completions"
        assert seen["auth"] == "Bearer key"
        assert seen["body"]["messages"][0] == {"role": "system", "content": "System text."}

    async def test_list_models_filters_gpt(self, make_transport, fast_timeouts):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"id": "gpt-4"}, {"id": "whisper-1"}, {"id": "gpt-4o"}]})

        adapter = OpenAIAdapter(_provider("openai", "https://api.openai.com"), make_transport(handler), fast_timeouts)
        assert [m.id for m in await adapter.list_models()] == ["gpt-4", "gpt-4o"]

    async def test_list_models_without_key(self, make_transport, fast_timeouts):
        adapter = OpenAIAdapter(
            _provider("openai", "https://api.openai.com", None), make_transport(lambda r: httpx.Response(500)), fast_timeouts
        )
        assert await adapter.list_models() == []
        assert not await adapter.check_connection()


# --- Gemini ---


class TestGemini:
    async def test_generate_request_shape(self, make_transport, fast_timeouts):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "Hola"}]}}]})

        adapter = GeminiAdapter(
            _provider("gemini", "https://generativelanguage.googleapis.com"), make_transport(handler), fast_timeouts
        )
        response = await adapter.generate(_request(model="gemini-1.5-flash", instructions="Be brief."))

        assert response.text == "Hola"
        assert seen["url"].path == "/v1beta/models/gemini-1.5-flash:generateContent"
        assert seen["url"].params["key"] == "key"
        assert seen["body"]["contents"][0]["parts"][0]["text"].startswith("Be brief.")

    async def test_static_models(self, make_transport, fast_timeouts):
        adapter = GeminiAdapter(
            _provider("gemini", "https://generativelanguage.googleapis.com"),
            make_transport(lambda r: httpx.Response(500)),
            fast_timeouts,
        )
        assert [m.id for m in await adapter.list_models()] == [m.id for m in GEMINI_MODELS]
        assert not await adapter.check_connection()
