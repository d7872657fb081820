"""Error taxonomy shared by adapters, storage and the orchestrator."""

from __future__ import annotations


class ChatError(Exception):
    """Base class for all ollamachat errors."""


class PreconditionError(ChatError):
    """A call was rejected before any network or storage work was attempted."""


class TransportError(ChatError):
    """Timeout, refused or reset connection while talking to a provider."""

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class VendorError(TransportError):
    """Provider answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Provider returned HTTP {status_code}: {body[:200]}")
        self.status_code = status_code
        self.body = body

    @property
    def is_auth_error(self) -> bool:
        return self.status_code in (401, 403)


class PersistenceError(ChatError):
    """Storage could not complete an operation."""


class ParseError(ChatError):
    """A streamed fragment could not be decoded."""


class TurnFailedError(ChatError):
    """A chat turn failed; the placeholder reply has been rolled back."""
