"""Google Gemini generateContent provider.

Takes a single prompt string; the key travels as a query parameter.
"""

from __future__ import annotations

import logging
from typing import Any

from ollamachat.defaults import DEFAULT_TEMPERATURE, GEMINI_MODELS, GEMINI_PROBE_MODEL, MAX_TOKENS
from ollamachat.errors import TransportError
from ollamachat.providers.base import ProviderAdapter, is_local_address, render_transcript
from ollamachat.types import GenerateRequest, GenerateResponse, ModelInfo

logger = logging.getLogger(__name__)

API_PREFIX = "/v1beta"


class GeminiAdapter(ProviderAdapter):
    def _url(self, endpoint: str) -> str:
        base = self.provider.base_url.rstrip("/")
        if is_local_address(base):
            return f"{base}{endpoint}"
        return f"{base}{API_PREFIX}{endpoint}"

    def _params(self) -> dict[str, str]:
        return {"key": self.provider.api_key or ""}

    def _body(self, request: GenerateRequest) -> dict[str, Any]:
        options = request.options
        config: dict[str, Any] = {
            "temperature": options.temperature if options and options.temperature is not None else DEFAULT_TEMPERATURE,
            "maxOutputTokens": MAX_TOKENS,
        }
        if options and options.top_p is not None:
            config["topP"] = options.top_p
        if options and options.seed is not None:
            config["seed"] = options.seed
        return {
            "contents": [{"parts": [{"text": render_transcript(request)}]}],
            "generationConfig": config,
        }

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        self.validate()
        data = await self._transport.post_json(
            self._url(f"/models/{request.model}:generateContent"),
            self._body(request),
            params=self._params(),
            timeout=self._timeouts.long,
        )
        candidates = data.get("candidates") or [{}]
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts)
        return GenerateResponse(text=text, done=True, model=request.model)

    async def list_models(self) -> list[ModelInfo]:
        return list(GEMINI_MODELS)

    async def check_connection(self) -> bool:
        if not self.provider.api_key:
            return False
        try:
            await self._transport.post_json(
                self._url(f"/models/{GEMINI_PROBE_MODEL}:generateContent"),
                {"contents": [{"parts": [{"text": "Hello"}]}], "generationConfig": {"maxOutputTokens": 10}},
                params=self._params(),
                timeout=self._timeouts.short,
            )
        except TransportError as exc:
            logger.info("Gemini connection error: %s", exc)
            return False
        return True
