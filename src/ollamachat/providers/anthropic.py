"""Anthropic Messages API provider."""

from __future__ import annotations

import logging
from typing import Any

from ollamachat.defaults import (
    ANTHROPIC_BASIC_MODELS,
    ANTHROPIC_EXTENDED_MODELS,
    ANTHROPIC_PROBE_MODEL,
    ANTHROPIC_VERSION,
    DEFAULT_TEMPERATURE,
    MAX_TOKENS,
    PROXY_PREFIX,
)
from ollamachat.errors import TransportError, VendorError
from ollamachat.providers.base import ProviderAdapter, is_local_address
from ollamachat.types import GenerateRequest, GenerateResponse, ModelInfo

logger = logging.getLogger(__name__)


class AnthropicAdapter(ProviderAdapter):
    def _url(self, endpoint: str) -> str:
        base = self.provider.base_url.rstrip("/")
        if is_local_address(base):
            return f"{base}{PROXY_PREFIX}{endpoint}"
        return f"{base}/v1{endpoint}"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.provider.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def _body(self, request: GenerateRequest) -> dict[str, Any]:
        messages = [entry.model_dump() for entry in request.history]
        messages.append({"role": "user", "content": request.prompt})
        options = request.options
        body: dict[str, Any] = {
            "model": request.model,
            "max_tokens": MAX_TOKENS,
            "messages": messages,
            "temperature": options.temperature if options and options.temperature is not None else DEFAULT_TEMPERATURE,
        }
        if request.instructions:
            body["system"] = request.instructions
        if options and options.top_p is not None:
            body["top_p"] = options.top_p
        return body

    async def _probe(self, timeout: float) -> None:
        await self._transport.post_json(
            self._url("/messages"),
            {
                "model": ANTHROPIC_PROBE_MODEL,
                "max_tokens": 1,
                "messages": [{"role": "user", "content": "test"}],
            },
            headers=self._headers(),
            timeout=timeout,
        )

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        self.validate()
        logger.debug("Sending %d messages to Anthropic", len(request.history) + 1)
        data = await self._transport.post_json(
            self._url("/messages"), self._body(request), headers=self._headers(), timeout=self._timeouts.long
        )
        blocks = data.get("content") or []
        text = "".join(b.get("text", "") for b in blocks if b.get("type", "text") == "text")
        return GenerateResponse(text=text, done=True, model=data.get("model", request.model))

    async def list_models(self) -> list[ModelInfo]:
        if not self.provider.api_key:
            return list(ANTHROPIC_EXTENDED_MODELS)
        try:
            await self._probe(self._timeouts.short)
        except VendorError as exc:
            if exc.is_auth_error:
                logger.warning("Anthropic rejected the API key, offering basic models only")
                return list(ANTHROPIC_BASIC_MODELS)
            logger.warning("Anthropic probe failed (%s), offering extended models", exc.status_code)
            return list(ANTHROPIC_EXTENDED_MODELS)
        except TransportError as exc:
            logger.warning("Anthropic unreachable (%s), offering extended models", exc)
            return list(ANTHROPIC_EXTENDED_MODELS)
        return list(ANTHROPIC_EXTENDED_MODELS)

    async def check_connection(self) -> bool:
        if not self.provider.api_key:
            return False
        try:
            await self._probe(self._timeouts.short)
        except TransportError as exc:
            logger.info("Anthropic connection error: %s", exc)
            return False
        return True
