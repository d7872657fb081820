"""Runtime configuration for the chat client."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

StorageBackend = Literal["sqlite", "snapshot"]

SETTINGS_KEY = "@ollamachat:settings"
SNAPSHOT_KEY = "ollamachat_db"


@dataclass
class Timeouts:
    """Timeouts and cadences, in seconds."""

    short: float = 5.0  # liveness probes
    medium: float = 10.0  # model listing
    long: float = 30.0  # generation
    watchdog: float = 30.0  # pseudo-streaming hard stop
    chunk_interval: float = 0.05
    retry_delay: float = 2.0
    max_retries: int = 2


@dataclass
class Config:
    """Client configuration."""

    data_dir: str = field(default_factory=lambda: str(Path.home() / ".ollamachat"))
    backend: StorageBackend = "sqlite"
    db_name: str = "ollamachat.db"
    timeouts: Timeouts = field(default_factory=Timeouts)

    @property
    def db_path(self) -> str:
        return str(Path(self.data_dir) / self.db_name)

    @property
    def kv_dir(self) -> str:
        return str(Path(self.data_dir) / "kv")
