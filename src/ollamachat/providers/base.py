"""Uniform capability contract for provider adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from urllib.parse import urlparse

from ollamachat.config import Timeouts
from ollamachat.errors import PreconditionError
from ollamachat.streaming import ChunkCallback, CompleteCallback, pseudo_stream
from ollamachat.transport import HttpTransport
from ollamachat.types import GenerateRequest, GenerateResponse, ModelInfo, Provider

logger = logging.getLogger(__name__)

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}


def is_local_address(base_url: str) -> bool:
    """True when `base_url` points at this machine (development pass-through)."""
    host = urlparse(base_url).hostname or ""
    return host in _LOCAL_HOSTS


def render_transcript(request: GenerateRequest) -> str:
    """Flatten instructions, history and prompt into a single prompt string."""
    lines: list[str] = []
    for entry in request.history:
        speaker = "User" if entry.role == "user" else "Assistant"
        lines.append(f"{speaker}: {entry.content}")
    if not request.instructions and not lines:
        return request.prompt
    lines.append(f"User: {request.prompt}")
    lines.append("Assistant:")
    body = "\n".join(lines)
    if request.instructions:
        return f"{request.instructions}\n\n{body}"
    return body


class ProviderAdapter(ABC):
    """One configured provider. Instances are immutable once built."""

    requires_credential = True

    def __init__(
        self,
        provider: Provider,
        transport: HttpTransport,
        timeouts: Timeouts | None = None,
    ) -> None:
        self.provider = provider
        self._transport = transport
        self._timeouts = timeouts or Timeouts()

    @property
    def id(self) -> str:
        return self.provider.id

    def validate(self) -> None:
        """Raise PreconditionError when the adapter cannot be called at all."""
        if self.requires_credential and not self.provider.api_key:
            raise PreconditionError(f"API key is required for {self.provider.name}")

    @abstractmethod
    async def generate(self, request: GenerateRequest) -> GenerateResponse: ...

    @abstractmethod
    async def list_models(self) -> list[ModelInfo]: ...

    @abstractmethod
    async def check_connection(self) -> bool: ...

    async def stream(
        self,
        request: GenerateRequest,
        on_chunk: ChunkCallback,
        on_complete: CompleteCallback,
    ) -> None:
        """Single blocking call, then client-side chunking."""
        try:
            response = await self.generate(request)
        except Exception:
            on_complete()
            raise
        await self._emit(response, on_chunk, on_complete)

    async def _emit(
        self,
        response: GenerateResponse,
        on_chunk: ChunkCallback,
        on_complete: CompleteCallback,
    ) -> None:
        await pseudo_stream(
            response.text,
            on_chunk,
            on_complete,
            context=response.context,
            interval=self._timeouts.chunk_interval,
            watchdog=self._timeouts.watchdog,
        )
