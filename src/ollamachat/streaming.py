"""Client-side pseudo-streaming of an already complete response.

The text is split on single spaces and emitted in word groups on a fixed
cadence. A watchdog timer races the normal path; whichever finalizes first
wins and the other becomes a no-op.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], Any]
CompleteCallback = Callable[..., Any]

SMALL_GROUP = 3
LARGE_GROUP = 8
LARGE_RESPONSE_WORDS = 500


def group_size_for(word_count: int) -> int:
    return LARGE_GROUP if word_count > LARGE_RESPONSE_WORDS else SMALL_GROUP


class PseudoStreamer:
    """Emits `text` through `on_chunk` in word groups, then calls `on_complete` once."""

    def __init__(
        self,
        text: str,
        on_chunk: ChunkCallback,
        on_complete: CompleteCallback,
        *,
        context: list[int] | None = None,
        interval: float = 0.05,
        watchdog: float = 30.0,
    ) -> None:
        self._words = text.split(" ")
        self._group = group_size_for(len(self._words))
        self._cursor = 0
        self._finished = False
        self._on_chunk = on_chunk
        self._on_complete = on_complete
        self._context = context
        self._interval = interval
        self._watchdog = watchdog

    @property
    def finished(self) -> bool:
        return self._finished

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        watchdog_handle = loop.call_later(self._watchdog, self._on_watchdog)
        try:
            while not self._finished and self._cursor < len(self._words):
                self._emit_next()
                await asyncio.sleep(self._interval)
            self._finalize()
        finally:
            watchdog_handle.cancel()

    def _emit_next(self) -> None:
        end = min(self._cursor + self._group, len(self._words))
        chunk = " ".join(self._words[self._cursor : end])
        if end < len(self._words):
            chunk += " "
        self._cursor = end
        if chunk:
            self._on_chunk(chunk)

    def _on_watchdog(self) -> None:
        if self._finished:
            return
        logger.warning("Pseudo-stream watchdog fired with %d words unsent", len(self._words) - self._cursor)
        self.flush()

    def flush(self) -> None:
        """Emit everything not yet sent and finalize."""
        if self._finished:
            return
        if self._cursor < len(self._words):
            rest = " ".join(self._words[self._cursor :])
            self._cursor = len(self._words)
            if rest:
                self._on_chunk(rest)
        self._finalize()

    def _finalize(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._on_complete(self._context)


async def pseudo_stream(
    text: str,
    on_chunk: ChunkCallback,
    on_complete: CompleteCallback,
    *,
    context: list[int] | None = None,
    interval: float = 0.05,
    watchdog: float = 30.0,
) -> None:
    """Chunk `text` and deliver it on the running loop."""
    streamer = PseudoStreamer(
        text, on_chunk, on_complete, context=context, interval=interval, watchdog=watchdog
    )
    await streamer.run()
