"""OpenAI Chat Completions provider."""

from __future__ import annotations

import logging
from typing import Any

from ollamachat.defaults import DEFAULT_TEMPERATURE, MAX_TOKENS, OPENAI_FALLBACK_MODELS, PROXY_PREFIX
from ollamachat.errors import TransportError
from ollamachat.providers.base import ProviderAdapter, is_local_address
from ollamachat.types import GenerateRequest, GenerateResponse, ModelInfo

logger = logging.getLogger(__name__)


class OpenAIAdapter(ProviderAdapter):
    def _url(self, endpoint: str) -> str:
        base = self.provider.base_url.rstrip("/")
        if is_local_address(base):
            return f"{base}{PROXY_PREFIX}{endpoint}"
        return f"{base}/v1{endpoint}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.provider.api_key or ''}"}

    def _body(self, request: GenerateRequest) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if request.instructions:
            messages.append({"role": "system", "content": request.instructions})
        messages.extend(entry.model_dump() for entry in request.history)
        messages.append({"role": "user", "content": request.prompt})

        options = request.options
        body: dict[str, Any] = {
            "model": request.model,
            "messages": messages,
            "temperature": options.temperature if options and options.temperature is not None else DEFAULT_TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }
        if options and options.top_p is not None:
            body["top_p"] = options.top_p
        if options and options.seed is not None:
            body["seed"] = options.seed
        return body

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        self.validate()
        data = await self._transport.post_json(
            self._url("/chat/completions"), self._body(request), headers=self._headers(), timeout=self._timeouts.long
        )
        choice = (data.get("choices") or [{}])[0]
        message = choice.get("message") or {}
        return GenerateResponse(
            text=message.get("content", "") or "",
            done=True,
            model=data.get("model", request.model),
        )

    async def list_models(self) -> list[ModelInfo]:
        if not self.provider.api_key:
            return []
        try:
            data = await self._transport.get_json(
                self._url("/models"), headers=self._headers(), timeout=self._timeouts.medium
            )
        except TransportError:
            logger.warning("Could not list OpenAI models, using curated list", exc_info=True)
            return list(OPENAI_FALLBACK_MODELS)
        return [
            ModelInfo(id=m["id"], display_name=m["id"])
            for m in data.get("data") or []
            if "gpt" in m.get("id", "")
        ]

    async def check_connection(self) -> bool:
        if not self.provider.api_key:
            return False
        try:
            await self._transport.get_json(self._url("/models"), headers=self._headers(), timeout=self._timeouts.short)
        except TransportError as exc:
            logger.info("OpenAI connection error: %s", exc)
            return False
        return True
