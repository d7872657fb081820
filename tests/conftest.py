import httpx
import pytest

from ollamachat.config import Timeouts
from ollamachat.storage import MemoryKeyValueStore, SnapshotStorage, SQLiteStorage
from ollamachat.transport import HttpTransport


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Seed rows must not pick up credentials from the developer's shell."""
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY", "OLLAMA_HOST"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fast_timeouts():
    return Timeouts(chunk_interval=0.0, retry_delay=0.0, watchdog=5.0)


@pytest.fixture
def make_transport():
    """Build an HttpTransport whose requests are answered by `handler`."""

    def factory(handler):
        return HttpTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    return factory


class FlakyStore(MemoryKeyValueStore):
    """Memory store that can be told to fail upcoming reads or writes."""

    def __init__(self):
        super().__init__()
        self.fail_reads = False
        self.fail_write_in: int | None = None  # fail the Nth set_item from now

    async def get_item(self, key):
        if self.fail_reads:
            raise OSError("permission denied")
        return await super().get_item(key)

    async def set_item(self, key, value):
        if self.fail_write_in is not None:
            self.fail_write_in -= 1
            if self.fail_write_in == 0:
                self.fail_write_in = None
                raise OSError("disk full")
        await super().set_item(key, value)


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def flaky_store():
    return FlakyStore()


@pytest.fixture(params=["sqlite", "snapshot"])
async def storage(request, tmp_path, kv):
    """Initialized storage for each backend."""
    if request.param == "sqlite":
        backend = SQLiteStorage(str(tmp_path / "chat.db"))
    else:
        backend = SnapshotStorage(kv)
    await backend.initialize()
    yield backend
    await backend.close()
