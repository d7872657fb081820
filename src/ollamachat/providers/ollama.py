"""Local inference (Ollama) provider.

Streams newline-delimited JSON from /api/generate. When the connection fails
before any data arrives, falls back to a whole-response call that is then
pseudo-streamed. Returns the opaque context vector so the next turn can
resume the server's cached state.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from ollamachat.errors import ParseError, TransportError
from ollamachat.providers.base import ProviderAdapter, render_transcript
from ollamachat.streaming import ChunkCallback, CompleteCallback
from ollamachat.types import GenerateRequest, GenerateResponse, ModelInfo

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
TAGS_PATH = "/api/tags"


def parse_fragment(line: str) -> dict[str, Any]:
    """Decode one NDJSON line. Raises ParseError on anything but a JSON object."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Malformed stream fragment: {line[:80]!r}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"Unexpected stream fragment: {line[:80]!r}")
    return data


class OllamaAdapter(ProviderAdapter):
    requires_credential = False

    def _url(self, path: str) -> str:
        return f"{self.provider.base_url.rstrip('/')}{path}"

    def _payload(self, request: GenerateRequest, *, stream: bool) -> dict[str, Any]:
        # History is redundant when the server can resume from its own context.
        prompt_request = request if request.context is None else request.model_copy(update={"history": []})
        payload: dict[str, Any] = {
            "model": request.model,
            "prompt": render_transcript(prompt_request),
            "stream": stream,
        }
        if request.context is not None:
            payload["context"] = request.context
        if request.options:
            options = request.options.model_dump(exclude_none=True)
            if options:
                payload["options"] = options
        return payload

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        payload = self._payload(request, stream=False)
        attempt = 0
        while True:
            try:
                data = await self._transport.post_json(
                    self._url(GENERATE_PATH), payload, timeout=self._timeouts.long
                )
                break
            except TransportError as exc:
                if not exc.transient or attempt >= self._timeouts.max_retries:
                    raise
                attempt += 1
                logger.warning("Transient error from Ollama (%s), retry %d", exc, attempt)
                await asyncio.sleep(self._timeouts.retry_delay)

        return GenerateResponse(
            text=data.get("response", ""),
            done=bool(data.get("done", True)),
            model=data.get("model", request.model),
            context=data.get("context"),
        )

    async def stream(
        self,
        request: GenerateRequest,
        on_chunk: ChunkCallback,
        on_complete: CompleteCallback,
    ) -> None:
        received = False
        context: list[int] | None = None
        try:
            async for line in self._transport.stream_lines(
                self._url(GENERATE_PATH),
                self._payload(request, stream=True),
                timeout=self._timeouts.long,
            ):
                received = True
                if not line.strip():
                    continue
                try:
                    fragment = parse_fragment(line)
                except ParseError:
                    logger.debug("Dropping stream fragment", exc_info=True)
                    continue
                text = fragment.get("response")
                if text:
                    on_chunk(text)
                if fragment.get("done"):
                    context = fragment.get("context", context)
        except Exception as exc:
            if received:
                on_complete()
                raise
            logger.info("Incremental read failed before first byte (%s), using whole-response fallback", exc)
        else:
            on_complete(context)
            return

        await super().stream(request, on_chunk, on_complete)

    async def list_models(self) -> list[ModelInfo]:
        try:
            data = await self._transport.get_json(self._url(TAGS_PATH), timeout=self._timeouts.medium)
        except TransportError:
            logger.warning("Could not list Ollama models", exc_info=True)
            return []
        return [
            ModelInfo(id=m["name"], display_name=m["name"])
            for m in data.get("models") or []
            if m.get("name")
        ]

    async def check_connection(self) -> bool:
        try:
            await self._transport.get_json(self._url(TAGS_PATH), timeout=self._timeouts.short)
        except TransportError as exc:
            logger.info("Ollama connection error: %s", exc)
            return False
        return True
