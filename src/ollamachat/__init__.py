"""ollamachat: multi-provider chat client with local conversation history."""

from ollamachat.config import Config, Timeouts
from ollamachat.orchestrator import ChatOrchestrator
from ollamachat.registry import ProviderRegistry
from ollamachat.storage import create_storage

__all__ = ["ChatOrchestrator", "Config", "ProviderRegistry", "Timeouts", "create_storage"]
